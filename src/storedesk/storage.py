"""Shared JSON file storage for the backend stores."""

import fcntl
import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

SCHEMA_VERSION = 1

# Can be overridden via STOREDESK_DATA_DIR environment variable
_default_data_dir = Path(__file__).parent.parent.parent / "data"


def data_dir() -> Path:
    """Resolve the data directory (read from the environment on each call)."""
    return Path(os.environ.get("STOREDESK_DATA_DIR", _default_data_dir))


def write_json_atomic(path: Path, data: Any, prefix: str = ".tmp_") -> None:
    """Write `data` as JSON to a temp file next to `path`, then rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(temp_path, path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


class JsonFileStore:
    """
    A single JSON document holding a list of records under `collection`.

    Read-modify-write sequences run under an exclusive file lock and writes
    go to a temp file that is renamed into place. The lock is not re-entrant:
    code holding one store's lock may take another store's lock, never its own.
    """

    filename = "store.json"
    collection = "records"

    def __init__(
        self,
        config_dir: Path | None = None,
        filename: str | None = None,
        collection: str | None = None,
    ):
        """
        Initialize the store.

        Args:
            config_dir: Override data directory (for testing).
            filename: Override the document file name.
            collection: Override the key the records are stored under.
        """
        self.config_dir = config_dir or data_dir()
        if filename:
            self.filename = filename
        if collection:
            self.collection = collection
        self.config_path = self.config_dir / self.filename

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Acquire exclusive lock on the store file for read-modify-write operations."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.config_dir / f".{self.filename}.lock"
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _load_records(self) -> list[dict[str, Any]]:
        if not self.config_path.exists():
            return []
        with open(self.config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data.get(self.collection, [])

    def _save_records(self, records: list[dict[str, Any]]) -> None:
        """Save records to disk atomically."""
        data = {"schema_version": SCHEMA_VERSION, self.collection: records}
        write_json_atomic(self.config_path, data, prefix=f".{self.collection}_")

    def records(self) -> list[dict[str, Any]]:
        """Read the current records without locking."""
        return self._load_records()

    @contextmanager
    def update(self) -> Iterator[list[dict[str, Any]]]:
        """
        Lock the store and yield its records for in-place changes.

        The list is written back when the block exits normally; an exception
        discards every change.
        """
        with self._lock():
            records = self._load_records()
            yield records
            self._save_records(records)

    def count(self) -> int:
        return len(self._load_records())
