from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional

from tqdm import tqdm

from gitanki import stats_log, vcs
from gitanki.anki_connect import (
    AnkiConnectClient,
    AnkiConnectError,
    AnkiConnectionError,
    AnkiProtocolError,
)
from gitanki.cards import CardStatus, MalformedRecordError, classify
from gitanki.paths import default_output_path

LOGGER = logging.getLogger(__name__)

REVIEWED_TODAY_QUERY = "rated:1"
SAMPLE_SIZE = 5


@dataclass(frozen=True)
class RunConfig:
    output: Path
    commit: bool = False
    verbose: bool = False


@dataclass
class ReviewSummary:
    processed: int = 0
    skipped: int = 0
    new_words: int = 0
    cards: Dict[str, CardStatus] = field(default_factory=dict)

    def add(self, word: str, status: CardStatus) -> None:
        if word not in self.cards and status is CardStatus.NEW:
            self.new_words += 1
        self.cards[word] = status
        self.processed += 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitanki",
        description="Log the Anki cards reviewed today to a dated TOML file",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=str(default_output_path()),
        help="Path to the output TOML file",
    )
    parser.add_argument(
        "--commit",
        action="store_true",
        help="Stage and commit the output file with git after writing it",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def parse_config(argv: list[str] | None = None) -> RunConfig:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.output.strip():
        parser.error("Output file path cannot be empty. Please specify with -o.")
    return RunConfig(output=Path(args.output).expanduser(), commit=args.commit, verbose=args.verbose)


def collect_reviews(client: AnkiConnectClient, card_ids: List[int]) -> ReviewSummary:
    """Classify every reviewed card, skipping the ones that cannot be read."""

    summary = ReviewSummary()
    for card_id in tqdm(card_ids, desc="Reading cards", unit="card", disable=None):
        try:
            card = classify(client.card_info(card_id), card_id=card_id)
        except (AnkiProtocolError, MalformedRecordError) as exc:
            LOGGER.warning("Error getting info for card ID %s: %s. Skipping card.", card_id, exc)
            summary.skipped += 1
            continue
        summary.add(card.word, card.status)
    return summary


def print_sample(cards: Dict[str, CardStatus], limit: int = SAMPLE_SIZE) -> None:
    print("\nSample of logged cards:")
    for idx, word in enumerate(sorted(cards)):
        if idx >= limit:
            print(f"... and {len(cards) - limit} more")
            break
        printable = word.replace("\n", " ")
        print(f'- "{printable}" = "{cards[word].value}"')


def run(
    config: RunConfig,
    client: Optional[AnkiConnectClient] = None,
    today: Optional[date] = None,
    committer: Callable[[Path, str], object] = vcs.commit_log,
) -> int:
    client = client or AnkiConnectClient()
    today = today or date.today()

    try:
        version = client.version()
    except AnkiConnectError as exc:
        LOGGER.error("Failed to connect to AnkiConnect: %s", exc)
        return 1
    print(f"Connected to AnkiConnect v{version}")

    print(f'Querying Anki for cards matching: "{REVIEWED_TODAY_QUERY}"')
    try:
        card_ids = client.find_cards(REVIEWED_TODAY_QUERY)
    except AnkiConnectError as exc:
        LOGGER.error("Failed to get reviewed cards: %s", exc)
        return 1
    print(f"Found {len(card_ids)} card IDs potentially reviewed today")

    try:
        summary = collect_reviews(client, card_ids)
    except AnkiConnectionError as exc:
        LOGGER.error("Lost connection to AnkiConnect while reading cards: %s", exc)
        return 1
    print(
        f"Processed {summary.processed} cards, skipped {summary.skipped} "
        "due to errors or empty word field."
    )

    if not summary.cards:
        print("No unique cards with non-empty words found to log today.")
        return 0

    try:
        stats_log.merge(config.output, summary.cards, today)
    except OSError as exc:
        LOGGER.error("Failed to update TOML file '%s': %s", config.output, exc)
        return 1
    print(f"\nSuccessfully logged {len(summary.cards)} unique cards to {config.output}")
    print_sample(summary.cards)

    if config.commit:
        message = vcs.commit_message(today.isoformat(), len(summary.cards), summary.new_words)
        try:
            committer(config.output, message)
        except vcs.VcsError as exc:
            LOGGER.warning("Could not commit %s: %s", config.output, exc)
        else:
            print(f"Committed {config.output}: {message}")
    return 0


def main(argv: list[str] | None = None) -> int:
    config = parse_config(argv)
    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return run(config)


if __name__ == "__main__":
    raise SystemExit(main())
