"""Tests for the sync ledger."""

import json
from datetime import datetime, timezone

import pytest

from sync.ledger import LedgerError, SyncLedger, read_updated_at


class TestLoad:
    """Tests for tolerant ledger loading."""

    def test_missing_file_starts_empty(self, tmp_path):
        """Test that a missing ledger file loads as empty."""
        ledger = SyncLedger.load(tmp_path / "missing.json")
        assert len(ledger) == 0

    @pytest.mark.parametrize("content", ["", "   \n", "{not json", '"a string"', '{"other": 1}'])
    def test_empty_or_malformed_file_starts_empty(self, tmp_path, content):
        """Test that empty or malformed ledgers load as empty."""
        path = tmp_path / "ledger.json"
        path.write_text(content)
        assert len(SyncLedger.load(path)) == 0

    def test_non_utf8_file_starts_empty(self, tmp_path):
        """Test that undecodable bytes are treated like any other malformed file."""
        path = tmp_path / "ledger.json"
        path.write_bytes(b'["abc\xff\xfe"]')

        assert len(SyncLedger.load(path)) == 0
        assert read_updated_at(path) is None

    def test_bare_array(self, tmp_path):
        """Test the bare array format."""
        path = tmp_path / "ledger.json"
        path.write_text('["a", "b", "a"]')
        ledger = SyncLedger.load(path)
        assert "a" in ledger and "b" in ledger
        assert len(ledger) == 2

    def test_object_with_ids(self, tmp_path):
        """Test the object format, skipping null and empty ids."""
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps({"ids": ["x", 12, None, ""], "updatedAt": "2024-05-01"}))
        ledger = SyncLedger.load(path)
        assert ledger.ids == {"x", "12"}


class TestSave:
    """Tests for persisting the ledger."""

    def test_round_trip(self, tmp_path):
        """Test that a saved ledger loads back with the same ids."""
        path = tmp_path / "state" / "ledger.json"
        ledger = SyncLedger(path)
        ledger.add("b")
        ledger.add("a")
        ledger.save()

        assert SyncLedger.load(path).ids == {"a", "b"}

    def test_sorted_ids_with_timestamp(self, tmp_path):
        """Test that ids are written sorted with an updatedAt stamp."""
        ledger = SyncLedger(tmp_path / "ledger.json", {"zeta", "alpha", "mid"})
        stamp = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

        data = json.loads(ledger.to_json(stamp))

        assert data == {"ids": ["alpha", "mid", "zeta"], "updatedAt": "2024-05-01T09:30:00Z"}

    def test_save_leaves_no_temp_files(self, tmp_path):
        """Test that repeated saves leave only the ledger file."""
        path = tmp_path / "ledger.json"
        ledger = SyncLedger(path, {"a"})
        ledger.save()
        ledger.add("b")
        ledger.save()

        assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]
        assert read_updated_at(path) is not None

    def test_unwritable_directory_raises_ledger_error(self, tmp_path):
        """Test that a parent path that is a file surfaces as LedgerError."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        ledger = SyncLedger(blocker / "ledger.json", {"a"})

        with pytest.raises(LedgerError):
            ledger.save()

    def test_failed_replace_cleans_up(self, tmp_path, monkeypatch):
        """Test that a failed rename raises LedgerError and leaves no temp file."""
        def fail_replace(src, dst):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr("sync.ledger.os.replace", fail_replace)
        ledger = SyncLedger(tmp_path / "ledger.json", {"a"})

        with pytest.raises(LedgerError, match="No space left"):
            ledger.save()
        assert list(tmp_path.iterdir()) == []

    def test_ledger_only_grows(self, tmp_path):
        """Test that adding an identity twice keeps one entry."""
        ledger = SyncLedger(tmp_path / "ledger.json")
        ledger.add("a")
        ledger.add("a")
        assert len(ledger) == 1

    def test_empty_identity_rejected(self, tmp_path):
        """Test that an empty identity cannot be ledgered."""
        ledger = SyncLedger(tmp_path / "ledger.json")
        with pytest.raises(ValueError):
            ledger.add("")


class TestReadUpdatedAt:
    def test_bare_array_has_no_stamp(self, tmp_path):
        """Test that the bare array format has no updatedAt."""
        path = tmp_path / "ledger.json"
        path.write_text('["a"]')
        assert read_updated_at(path) is None

    def test_missing_file(self, tmp_path):
        """Test that a missing file has no updatedAt."""
        assert read_updated_at(tmp_path / "nope.json") is None
