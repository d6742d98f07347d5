"""Dated TOML-like review log.

The log is a sequence of sections, one per day::

    [2024-01-01]
    "日本語" = "review"
    "a" = "new"

    [2024-01-02]
    "b" = "learning"

``merge`` rewrites today's section in place and leaves every other section
untouched, so running the tool several times a day is safe.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from datetime import date
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from gitanki.cards import CardStatus
from gitanki.paths import ensure_parent

LOGGER = logging.getLogger(__name__)

_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}
_UNESCAPES = {v[1]: k for k, v in _ESCAPES.items()}
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_ENTRY_RE = re.compile(r'^\s*"((?:[^"\\]|\\.)*)"\s*=\s*"([^"]*)"\s*$')


class StatsLogError(OSError):
    """The existing log could not be read as text."""


def date_header(day: date) -> str:
    return f"[{day.isoformat()}]"


def is_header(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("[") and stripped.endswith("]")


def split_lines(content: str) -> List[str]:
    """Split on ``\\n`` only, keeping line endings."""
    parts = content.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def escape_word(word: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in word)


def unescape_word(text: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _UNESCAPES.get(m.group(1), m.group(1)), text)


def render_entry(word: str, status: CardStatus) -> str:
    return f'"{escape_word(word)}" = "{status.value}"'


def render_section(day: date, entries: Mapping[str, CardStatus], newline: str = "\n") -> str:
    """Header plus one line per entry, sorted by word, newline-terminated."""

    lines = [date_header(day)]
    lines.extend(render_entry(word, entries[word]) for word in sorted(entries))
    return newline.join(lines) + newline


def detect_newline(content: str) -> str:
    """``\\r\\n`` when every line of ``content`` ends that way, else ``\\n``."""
    count = content.count("\n")
    if count and content.count("\r\n") == count:
        return "\r\n"
    return "\n"


def find_section(lines: List[str], header: str, start: int = 0) -> Optional[tuple[int, int]]:
    """Return ``(begin, end)`` line indices of the first ``header`` section.

    ``end`` stops before the next header, or before the blank lines that
    precede it, so separators between sections survive a rewrite.
    """

    begin = next(
        (idx for idx in range(start, len(lines)) if lines[idx].strip() == header),
        None,
    )
    if begin is None:
        return None
    end = begin + 1
    while end < len(lines) and not is_header(lines[end]):
        end += 1
    if end < len(lines):
        while end > begin + 1 and not lines[end - 1].strip():
            end -= 1
    return begin, end


def merge_content(content: str, entries: Mapping[str, CardStatus], day: date) -> str:
    """Return ``content`` with the section for ``day`` replaced by ``entries``."""

    header = date_header(day)
    newline = detect_newline(content)
    section = render_section(day, entries, newline)
    lines = split_lines(content)

    found = find_section(lines, header)
    if found is None:
        if content.strip():
            merged = content.rstrip("\r\n") + newline * 2 + section
        else:
            merged = section
        return merged.rstrip("\r\n") + newline

    begin, end = found
    out = lines[:begin] + [section] + lines[end:]

    # at most one section per date: drop later duplicates of today's header
    cursor = begin + 1
    while True:
        dup = find_section(out, header, start=cursor)
        if dup is None:
            break
        LOGGER.warning("Removing duplicate %s section from the log.", header)
        stop = dup[1]
        while stop < len(out) and not out[stop].strip():
            stop += 1
        out = out[: dup[0]] + out[stop:]
        cursor = dup[0]

    return "".join(out).rstrip("\r\n") + newline


def read_section(content: str, day: date) -> Dict[str, CardStatus]:
    """Parse the entries of the ``day`` section back into a mapping."""

    lines = split_lines(content)
    found = find_section(lines, date_header(day))
    if found is None:
        return {}
    entries: Dict[str, CardStatus] = {}
    begin, end = found
    for line in lines[begin + 1:end]:
        if not line.strip():
            continue
        match = _ENTRY_RE.match(line)
        if match is None:
            LOGGER.warning("Skipping unparseable log line: %r", line)
            continue
        try:
            status = CardStatus(match.group(2))
        except ValueError:
            LOGGER.warning("Skipping unknown status %r in log line: %r", match.group(2), line)
            continue
        entries[unescape_word(match.group(1))] = status
    return entries


def merge(path: Path | str, entries: Mapping[str, CardStatus], day: date | None = None) -> Path:
    """Merge ``entries`` into today's section of the log at ``path``.

    Missing files start empty.  The new content is written to a temporary
    file next to ``path`` and moved into place, so an interrupted write
    leaves the previous log intact.  Symlinks are followed.  ``OSError``
    propagates, including ``StatsLogError`` for a log that is not UTF-8.
    """

    # write through symlinks so a linked log keeps being updated
    path = Path(path).resolve()
    ensure_parent(path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        LOGGER.info("File '%s' not found, will create a new one.", path)
        content = ""
    except UnicodeDecodeError as exc:
        raise StatsLogError(f"'{path}' is not valid UTF-8: {exc}") from exc

    merged = merge_content(content, entries, day or date.today())
    _write_atomic(path, merged)
    return path


def _write_atomic(path: Path, text: str) -> None:
    mode = path.stat().st_mode & 0o777 if path.exists() else 0o644
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise


__all__ = [
    "date_header",
    "escape_word",
    "unescape_word",
    "render_section",
    "merge_content",
    "read_section",
    "merge",
    "StatsLogError",
]
