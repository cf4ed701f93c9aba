"""
Tests for the CLI module.
"""

import io
import json
from datetime import date

import pytest

from mdboard import engine
from mdboard.cli import EXIT_BUSY, EXIT_ERROR, EXIT_OK, main
from mdboard.lock import board_lock


@pytest.fixture
def run(tmp_path, monkeypatch):
    """Run the CLI against a board rooted in tmp_path with a pinned clock."""
    monkeypatch.setattr(engine, "today_utc", lambda: date(2025, 8, 11))
    monkeypatch.delenv("BOARD_PATH", raising=False)
    monkeypatch.delenv("BOARD_ARCHIVE_DIR", raising=False)
    monkeypatch.delenv("BOARD_LOCK_FILE", raising=False)

    def _run(*args):
        return main(["--root", str(tmp_path), *args])
    return _run


class TestCLICommands:
    """Test subcommands end to end."""

    def test_cli_version(self, capsys):
        """Test --version flag."""
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert "mdboard" in capsys.readouterr().out

    def test_create_block_complete(self, run, capsys, tmp_path):
        """Test the main lifecycle through the CLI."""
        assert run("create", "--title", "Fix login bug", "--owner", "human:alice") == EXIT_OK
        assert "Created: 20250811-fix-login-bug" in capsys.readouterr().out

        assert run("block", "20250811-fix-login-bug", "--reason", "waiting on infra", "--review", "2025-08-20") == EXIT_OK
        assert run("complete", "20250811-fix-login-bug", "--links", "pr:#42") == EXIT_OK
        out = capsys.readouterr().out
        assert "Blocked: 20250811-fix-login-bug" in out
        assert "Completed: 20250811-fix-login-bug" in out

        text = (tmp_path / "docs" / "BOARD.md").read_text(encoding="utf-8")
        assert "- [x] 20250811-fix-login-bug — Fix login bug (owner: human:alice) [completed: 2025-08-11] (pr:#42)" in text

    def test_validation_error_exit_code(self, run, capsys):
        """Test a bad owner exits 1 with an ERROR line."""
        assert run("create", "--title", "X", "--owner", "alice") == EXIT_ERROR
        assert capsys.readouterr().err.startswith("ERROR: owner must be")

    def test_move_to_done_refused(self, run, capsys):
        """Test move --to DONE fails."""
        run("create", "--title", "X", "--owner", "ai:bot")
        assert run("move", "20250811-x", "--to", "DONE") == EXIT_ERROR
        assert 'Use "complete"' in capsys.readouterr().err

    def test_busy_exit_code(self, run, capsys, tmp_path):
        """Test a held lock exits 2."""
        with board_lock(tmp_path / "docs" / ".board.lock", token="someone"):
            assert run("create", "--title", "X", "--owner", "ai:bot") == EXIT_BUSY
        assert "BUSY: Board is busy" in capsys.readouterr().err

    def test_edit_and_list_json(self, run, capsys):
        """Test edit then JSON listing."""
        run("create", "--title", "X", "--owner", "ai:bot", "--due", "2025-09-01")
        assert run("edit", "20250811-x", "--title", "Renamed", "--clear-due") == EXIT_OK
        capsys.readouterr()
        assert run("list", "--json") == EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert data["TODO"] == [{
            "id": "20250811-x", "title": "Renamed", "owner": "ai:bot", "checked": False,
            "due": None, "blocked": None, "completed": None, "links": None,
        }]
        assert data["BLOCKED"] == [] and data["DONE"] == []

    def test_check_pr_ignores_binary_archive_entries(self, run, capsys, tmp_path):
        """Test a stray binary file in the archive directory is not fatal."""
        archive_dir = tmp_path / "docs" / "board-archive"
        archive_dir.mkdir(parents=True)
        (archive_dir / ".DS_Store").write_bytes(b"\x00\x01\xff\xfe bad")
        assert run("check-pr", "fix: x board:20250811-nope spec:A") == EXIT_ERROR
        assert "Unknown board id: 20250811-nope" in capsys.readouterr().err

    def test_edit_blocked_review(self, run, capsys, tmp_path):
        """Test moving a blocked item's review date with edit."""
        run("create", "--title", "X", "--owner", "ai:bot")
        run("block", "20250811-x", "--reason", "infra", "--review", "2025-08-20")
        assert run("edit", "20250811-x", "--review", "2025-08-27") == EXIT_OK
        text = (tmp_path / "docs" / "BOARD.md").read_text(encoding="utf-8")
        assert "[blocked: infra; review: 2025-08-27]" in text
        capsys.readouterr()
        assert run("create", "--title", "Y", "--owner", "ai:bot") == EXIT_OK
        assert run("edit", "20250811-y", "--reason", "later") == EXIT_ERROR
        assert "only BLOCKED items" in capsys.readouterr().err

    def test_list_text(self, run, capsys):
        """Test plain listing prints the section headers."""
        run("create", "--title", "X", "--owner", "ai:bot")
        capsys.readouterr()
        run("list")
        out = capsys.readouterr().out
        assert "## TODO\n- [ ] 20250811-x — X (owner: ai:bot)" in out
        assert "## DONE" in out

    def test_archive(self, run, capsys):
        """Test archive with an explicit keep."""
        run("create", "--title", "A", "--owner", "ai:bot")
        run("complete", "20250811-a")
        assert run("archive", "--keep", "1") == EXIT_OK
        assert "Nothing to archive" in capsys.readouterr().out
        assert run("archive", "--keep", "0") == EXIT_OK
        assert "Archived 1 item(s)" in capsys.readouterr().out

    def test_lint(self, run, capsys, tmp_path):
        """Test lint exit codes."""
        assert run("lint") == EXIT_ERROR
        assert "Cannot read" in capsys.readouterr().err

        run("create", "--title", "A", "--owner", "ai:bot")
        assert run("--verbose", "lint") == EXIT_OK
        assert "OK: board format is valid" in capsys.readouterr().out

        board = tmp_path / "docs" / "BOARD.md"
        board.write_text(board.read_text(encoding="utf-8") + "- [ ] 20250811-b — B (owner: ai:bot) [blocked: x]\n")
        # The stray line lands in DONE, which also lacks [completed: ...].
        assert run("lint") == EXIT_ERROR
        assert "ERROR:" in capsys.readouterr().err

    def test_check_pr(self, run, capsys, monkeypatch):
        """Test check-pr from an argument and from stdin."""
        run("create", "--title", "Fix login", "--owner", "ai:bot")
        capsys.readouterr()
        assert run("check-pr", "fix: login\n\nboard:20250811-fix-login\nspec:AUTH") == EXIT_OK
        assert "OK: PR description looks good" in capsys.readouterr().out

        monkeypatch.setattr("sys.stdin", io.StringIO("no reference here"))
        assert run("check-pr") == EXIT_ERROR
        assert "Missing board:<id> reference" in capsys.readouterr().err

    def test_clean_lock(self, run, capsys, tmp_path):
        """Test clean-lock on a stale sentinel."""
        lock = tmp_path / "docs" / ".board.lock"
        lock.parent.mkdir(parents=True)
        lock.write_text("99:0")
        assert run("clean-lock") == EXIT_OK
        assert "Cleaned stale lock file" in capsys.readouterr().out
        assert not lock.exists()

    def test_bad_config(self, run, capsys, tmp_path):
        """Test an invalid config file is reported as an error."""
        (tmp_path / ".boardrc.yaml").write_text("done_keep: -5\n")
        assert run("list") == EXIT_ERROR
        assert "Invalid board config" in capsys.readouterr().err
