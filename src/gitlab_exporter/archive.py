"""Append-only archive directory with a persisted identity index.

Layout of an archive directory::

    schema.json           archive format version
    seen.jsonl            identity index, one {"type", "key"} object per line
    <type>s.jsonl         serialized records, one JSON object per line
    attachments/...       attachment files copied from GitLab

The identity index is appended to after every record, so an export that is
restarted against the same directory skips everything it already wrote.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Final, Self

from .exceptions import ArchiveError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

    from .models import Record

logger: logging.Logger = logging.getLogger(__name__)

SCHEMA_VERSION: Final[str] = "1.0.0"
_SCHEMA_FILE: Final[str] = "schema.json"
_INDEX_FILE: Final[str] = "seen.jsonl"


def _records_filename(model_type: str) -> str:
    return f"{model_type}s.jsonl"


def _ends_with_newline(path: Path) -> bool:
    with path.open("rb") as f:
        f.seek(-1, 2)
        return f.read(1) == b"\n"


class ArchiveStore:
    """Write target for serialized records, deduplicated by (type, key)."""

    def __init__(self, path: str | Path) -> None:
        self.path: Path = Path(path)
        self._seen: set[tuple[str, str]] = set()
        self._handles: dict[str, IO[str]] = {}
        self._closed: bool = False

        try:
            self.path.mkdir(parents=True, exist_ok=True)
            self._write_schema()
            self._load_index()
            # Records written just before a crash may be missing from the index
            recovered = self._recover_identities()
        except OSError as e:
            msg = f"Failed to open archive at {self.path}: {e}"
            raise ArchiveError(msg) from e

        if recovered:
            logger.warning(f"Recovered {recovered} identities missing from the archive index")

        logger.info(f"Opened archive {self.path} ({len(self._seen)} records already exported)")

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def _write_schema(self) -> None:
        schema_path = self.path / _SCHEMA_FILE
        if not schema_path.exists():
            schema_path.write_text(json.dumps({"version": SCHEMA_VERSION}) + "\n", encoding="utf-8")

    def _load_index(self) -> None:
        index_path = self.path / _INDEX_FILE
        if not index_path.exists():
            return

        with index_path.open(encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    # A crash mid-write can leave a truncated last line
                    logger.warning(f"Ignoring corrupt index entry at {index_path}:{line_number}")
                    continue
                self._seen.add((entry["type"], entry["key"]))

    def _handle(self, filename: str) -> IO[str]:
        if self._closed:
            msg = f"Archive {self.path} is closed"
            raise ArchiveError(msg)

        handle = self._handles.get(filename)
        if handle is None:
            file_path = self.path / filename
            handle = file_path.open("a", encoding="utf-8")
            # A crash can leave the last line unterminated
            if handle.tell() and not _ends_with_newline(file_path):
                handle.write("\n")
            self._handles[filename] = handle
        return handle

    def _append(self, filename: str, data: dict[str, Any]) -> None:
        try:
            handle = self._handle(filename)
            handle.write(json.dumps(data, sort_keys=True) + "\n")
            handle.flush()
        except (OSError, TypeError, ValueError) as e:
            msg = f"Failed to write to {self.path / filename}: {e}"
            raise ArchiveError(msg) from e

    def seen(self, model_type: str, key: str) -> bool:
        """Return True if a record with this identity was already written."""
        return (model_type, key) in self._seen

    def write(self, model_type: str, record: Record) -> None:
        """Append a serialized record to the archive."""
        self._append(_records_filename(model_type), record)

    def mark_seen(self, model_type: str, key: str) -> None:
        """Persist the identity of a written record."""
        self._append(_INDEX_FILE, {"type": model_type, "key": key})
        self._seen.add((model_type, key))

    def write_file(self, relative_path: str, content: bytes) -> Path:
        """Copy a binary file (e.g. an attachment) into the archive."""
        target = (self.path / relative_path).resolve()
        if not target.is_relative_to(self.path.resolve()):
            msg = f"Refusing to write outside the archive: {relative_path}"
            raise ArchiveError(msg)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            msg = f"Failed to write {target}: {e}"
            raise ArchiveError(msg) from e
        return target

    def records(self, model_type: str) -> Iterator[Record]:
        """Yield the records of one type written so far."""
        records_path = self.path / _records_filename(model_type)
        if not records_path.exists():
            return

        handle = self._handles.get(records_path.name)
        if handle is not None:
            handle.flush()

        with records_path.open(encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError:
                    logger.warning(f"Ignoring corrupt record at {records_path}:{line_number}")

    def _recover_identities(self) -> int:
        rebuilt: set[tuple[str, str]] = set()
        for records_path in sorted(self.path.glob("*s.jsonl")):
            model_type = records_path.name.removesuffix("s.jsonl")
            for record in self.records(model_type):
                url = record.get("url")
                if url:
                    rebuilt.add((record.get("type", model_type), url))

        missing = rebuilt - self._seen
        for model_type, key in sorted(missing):
            self.mark_seen(model_type, key)
        return len(missing)

    def rebuild_index(self) -> int:
        """Reconstruct the identity index from the record files.

        Opening an archive already does this; call it again after record files
        were copied in from elsewhere. Records without a URL cannot be
        recovered and are skipped.

        Returns:
            Number of identities in the rebuilt index
        """
        recovered = self._recover_identities()
        logger.info(f"Rebuilt archive index: {recovered} identities recovered")
        return len(self._seen)

    def close(self) -> None:
        """Flush and close all open record files."""
        if self._closed:
            return

        errors: list[str] = []
        for filename, handle in self._handles.items():
            try:
                handle.close()
            except OSError as e:
                errors.append(f"{filename}: {e}")
        self._handles.clear()
        self._closed = True

        if errors:
            msg = f"Failed to close archive files: {'; '.join(errors)}"
            raise ArchiveError(msg)
