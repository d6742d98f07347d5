from __future__ import annotations

import logging
from pathlib import Path

LOGGER = logging.getLogger(__name__)

APP_NAME = "anki-stats"
STATS_FILENAME = "anki_stats.toml"


def config_dir() -> Path | None:
    """Per-user config directory, or ``None`` when no home can be resolved."""
    try:
        home = Path.home()
    except RuntimeError:
        return None
    return home / ".config" / APP_NAME


def default_output_path() -> Path:
    base = config_dir()
    if base is None:
        fallback = Path(STATS_FILENAME)
        LOGGER.warning(
            "Could not determine home directory. Using default path in current directory: %s",
            fallback,
        )
        return fallback
    return base / STATS_FILENAME


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
