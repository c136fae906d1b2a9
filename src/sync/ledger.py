"""Persisted ledger of recordings already written to Notion."""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from common.logger import get_logger

logger = get_logger(__name__)


class LedgerError(Exception):
    """The ledger could not be persisted. Aborts the run."""

    pass


def _parse_ids(data: object) -> set[str]:
    # Two shapes on disk: a bare array, or {"ids": [...]}
    if isinstance(data, dict):
        data = data.get("ids")
    if not isinstance(data, list):
        return set()
    return {str(item) for item in data if item is not None and str(item)}


class SyncLedger:
    """Set of identities written to the destination at least once.

    The ledger only grows: an identity is never removed, even when its content
    later stops qualifying. It is owned by the run loop and saved after every
    successful write, so a crash mid-run loses nothing already written.

    Example:
        >>> ledger = SyncLedger.load(Path("synced-recordings.json"))
        >>> if "abc123" not in ledger:
        ...     ledger.add("abc123")
        ...     ledger.save()
    """

    def __init__(self, path: Path, ids: set[str] | None = None):
        self.path = Path(path)
        self.ids: set[str] = set(ids or ())

    @classmethod
    def load(cls, path: Path) -> "SyncLedger":
        """Load the ledger, starting empty on a missing, empty or malformed file."""
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"No ledger at {path}, starting empty")
            return cls(path)
        except OSError as e:
            logger.warning(f"Could not read ledger {path}: {e}. Starting empty")
            return cls(path)
        except UnicodeDecodeError:
            logger.warning(f"Ledger {path} is not UTF-8 text. Starting empty")
            return cls(path)

        if not raw.strip():
            return cls(path)

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning(f"Ledger {path} is not valid JSON. Starting empty")
            return cls(path)

        return cls(path, _parse_ids(data))

    def __contains__(self, identity: object) -> bool:
        return identity in self.ids

    def __len__(self) -> int:
        return len(self.ids)

    def add(self, identity: str) -> None:
        if not identity:
            raise ValueError("Cannot ledger a recording without identity")
        self.ids.add(identity)

    def to_json(self, updated_at: datetime | None = None) -> str:
        """Serialize as sorted ids so re-runs produce minimal diffs."""
        updated_at = updated_at or datetime.now(timezone.utc)
        data = {
            "ids": sorted(self.ids),
            "updatedAt": updated_at.isoformat().replace("+00:00", "Z"),
        }
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    def save(self) -> None:
        """Atomically overwrite the ledger file.

        Raises:
            LedgerError: If the file cannot be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=".ledger-", suffix=".json"
            )
        except OSError as e:
            raise LedgerError(f"Could not save ledger {self.path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self.to_json())
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise LedgerError(f"Could not save ledger {self.path}: {e}") from e
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def read_updated_at(path: Path) -> str | None:
    """Return the updatedAt stamp of a ledger file, if it has one."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if isinstance(data, dict) and isinstance(data.get("updatedAt"), str):
        return data["updatedAt"]
    return None
