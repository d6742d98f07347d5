from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Sequence

LOGGER = logging.getLogger(__name__)

GIT = "git"


class VcsError(RuntimeError):
    """A git command failed or git is not installed."""


def _run(args: Sequence[str], cwd: Path | str | None) -> str:
    cmd = [GIT, *args]
    LOGGER.debug("Running %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True)
    except OSError as exc:
        raise VcsError(f"could not run {' '.join(cmd)}: {exc}") from exc
    output = "\n".join(part.strip() for part in (proc.stdout, proc.stderr) if part and part.strip())
    if proc.returncode != 0:
        raise VcsError(
            f"{' '.join(cmd)} exited with status {proc.returncode}: {output or 'no output'}"
        )
    return output


def commit_log(path: Path | str, message: str, cwd: Path | str | None = None) -> str:
    """Stage ``path`` and commit it with ``message`` in the current repository."""

    _run(["add", str(path)], cwd)
    return _run(["commit", "-m", message], cwd)


def commit_message(day: str, unique: int, new: int) -> str:
    noun = "card" if unique == 1 else "cards"
    return f"Log {unique} reviewed Anki {noun} for {day} ({new} new)"
