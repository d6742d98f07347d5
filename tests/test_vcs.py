import subprocess

import pytest

from gitanki import vcs


class _FakeRun:
    def __init__(self, results):
        self.results = list(results)
        self.calls = []

    def __call__(self, cmd, cwd=None, capture_output=False, text=False):
        self.calls.append(cmd)
        returncode, stdout, stderr = self.results.pop(0)
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)


def test_commit_log_stages_then_commits(monkeypatch):
    fake = _FakeRun([(0, "", ""), (0, "[main abc123] Log 2 reviewed Anki cards\n", "")])
    monkeypatch.setattr(vcs.subprocess, "run", fake)

    output = vcs.commit_log("stats/anki_stats.toml", "Log 2 reviewed Anki cards for 2024-01-01 (1 new)")

    assert fake.calls == [
        ["git", "add", "stats/anki_stats.toml"],
        ["git", "commit", "-m", "Log 2 reviewed Anki cards for 2024-01-01 (1 new)"],
    ]
    assert "abc123" in output


def test_failed_commit_carries_output(monkeypatch):
    fake = _FakeRun([(0, "", ""), (1, "nothing to commit, working tree clean\n", "")])
    monkeypatch.setattr(vcs.subprocess, "run", fake)

    with pytest.raises(vcs.VcsError, match="nothing to commit"):
        vcs.commit_log("anki_stats.toml", "msg")


def test_failed_add_skips_commit(monkeypatch):
    fake = _FakeRun([(128, "", "fatal: not a git repository\n")])
    monkeypatch.setattr(vcs.subprocess, "run", fake)

    with pytest.raises(vcs.VcsError, match="not a git repository"):
        vcs.commit_log("anki_stats.toml", "msg")
    assert len(fake.calls) == 1


def test_missing_git_binary(monkeypatch):
    def _raise(*args, **kwargs):
        raise FileNotFoundError("git")

    monkeypatch.setattr(vcs.subprocess, "run", _raise)

    with pytest.raises(vcs.VcsError, match="could not run git add"):
        vcs.commit_log("anki_stats.toml", "msg")


def test_commit_message_counts():
    assert vcs.commit_message("2024-01-01", 1, 0) == "Log 1 reviewed Anki card for 2024-01-01 (0 new)"
    assert vcs.commit_message("2024-01-01", 12, 3) == "Log 12 reviewed Anki cards for 2024-01-01 (3 new)"
