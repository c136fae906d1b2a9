"""Tests for the command line entry point."""

import json
from unittest.mock import patch

import pytest

from sync.cli import main
from sync.ledger import LedgerError

REQUIRED_VARS = ("PLAUD_EMAIL", "PLAUD_PASSWORD", "NOTION_API_KEY", "NOTION_DATABASE_ID")


@pytest.fixture
def ledger_path(tmp_path):
    path = tmp_path / "synced-recordings.json"
    path.write_text(json.dumps({"ids": ["a", "b"], "updatedAt": "2024-05-01T09:30:00Z"}))
    return path


class TestLedgerCommand:
    def test_reports_existing_ledger(self, ledger_path):
        """Test that the ledger command succeeds on an existing ledger."""
        assert main(["--ledger", str(ledger_path), "ledger"]) == 0

    def test_missing_ledger_is_not_an_error(self, tmp_path):
        """Test that a missing ledger is reported as empty."""
        assert main(["--ledger", str(tmp_path / "none.json"), "ledger"]) == 0


class TestInspectCommand:
    """Tests for offline inspection of saved payloads."""

    def test_saved_payload(self, tmp_path, ledger_path):
        """Test inspecting a saved JSON payload."""
        payload = tmp_path / "list.json"
        payload.write_text(
            json.dumps({"data": {"list": [{"id": "a", "title": "Weekly Sync", "summary": "x"}]}})
        )

        assert main(["--ledger", str(ledger_path), "inspect", str(payload)]) == 0
        # Inspecting never touches the ledger
        assert json.loads(ledger_path.read_text())["ids"] == ["a", "b"]

    def test_html_snapshot(self, tmp_path, ledger_path):
        """Test inspecting a saved HTML snapshot."""
        snapshot = tmp_path / "recordings.html"
        snapshot.write_text('<div class="card" data-id="r1"><h3>Call</h3></div>')

        assert main(["--ledger", str(ledger_path), "inspect", str(snapshot)]) == 0

    def test_missing_file(self, tmp_path, ledger_path):
        """Test that a missing input file exits with 1."""
        assert main(["--ledger", str(ledger_path), "inspect", str(tmp_path / "nope.json")]) == 1

    def test_no_recordings(self, tmp_path, ledger_path):
        """Test that a payload without recordings exits with 1."""
        payload = tmp_path / "empty.json"
        payload.write_text('{"code": 0, "data": {}}')

        assert main(["--ledger", str(ledger_path), "inspect", str(payload)]) == 1


class TestRunCommand:
    def test_missing_configuration(self, monkeypatch, ledger_path):
        """Test that missing credentials exit with 1 before any browsing."""
        for name in REQUIRED_VARS:
            monkeypatch.delenv(name, raising=False)

        assert main(["--ledger", str(ledger_path), "run", "--dry-run"]) == 1

    def test_invalid_chunk_size(self, monkeypatch, ledger_path):
        """Test that an invalid chunk size exits with 1."""
        for name in REQUIRED_VARS:
            monkeypatch.setenv(name, "value")
        monkeypatch.setenv("NOTION_CHUNK_SIZE", "5000")

        assert main(["--ledger", str(ledger_path), "run"]) == 1

    def test_subcommand_is_required(self):
        """Test that a subcommand is required."""
        with pytest.raises(SystemExit):
            main([])

    @patch("sync.cli.SyncRunner")
    @patch("harvest.browser.PlaudBrowser")
    @patch("destination.notion.NotionClient")
    def test_ledger_failure_exits_with_error(
        self, mock_client, mock_browser, mock_runner, monkeypatch, ledger_path
    ):
        """Test that a ledger that cannot be saved ends the run with exit code 1."""
        for name in REQUIRED_VARS:
            monkeypatch.setenv(name, "value")
        monkeypatch.delenv("NOTION_CHUNK_SIZE", raising=False)
        mock_runner.return_value.run.side_effect = LedgerError("No space left on device")

        assert main(["--ledger", str(ledger_path), "run"]) == 1
        mock_client.return_value.close.assert_called_once()
