"""Tests for the archive directory and its identity index."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from gitlab_exporter.archive import SCHEMA_VERSION, ArchiveStore
from gitlab_exporter.exceptions import ArchiveError

if TYPE_CHECKING:
    from pathlib import Path

USER_URL = "https://gitlab.com/kylemacey"


@pytest.mark.unit
class TestArchiveStore:
    def test_creates_directory_and_schema(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "archive"
        with ArchiveStore(path):
            pass

        assert json.loads((path / "schema.json").read_text()) == {"version": SCHEMA_VERSION}

    def test_write_and_mark_seen(self, archive: ArchiveStore) -> None:
        record = {"type": "user", "url": USER_URL, "login": "kylemacey"}

        assert not archive.seen("user", USER_URL)
        archive.write("user", record)
        archive.mark_seen("user", USER_URL)

        assert archive.seen("user", USER_URL)
        assert not archive.seen("organization", USER_URL)
        assert list(archive.records("user")) == [record]

    def test_records_of_unknown_type(self, archive: ArchiveStore) -> None:
        assert list(archive.records("pull_request")) == []

    def test_index_survives_reopen(self, tmp_path: Path) -> None:
        path = tmp_path / "archive"
        with ArchiveStore(path) as first:
            first.write("user", {"type": "user", "url": USER_URL})
            first.mark_seen("user", USER_URL)

        with ArchiveStore(path) as resumed:
            assert resumed.seen("user", USER_URL)
            assert len(list(resumed.records("user"))) == 1

    def test_ignores_truncated_index_line(self, tmp_path: Path) -> None:
        path = tmp_path / "archive"
        path.mkdir()
        (path / "seen.jsonl").write_text(
            json.dumps({"type": "user", "key": USER_URL}) + '\n{"type": "us', encoding="utf-8"
        )

        with ArchiveStore(path) as store:
            assert store.seen("user", USER_URL)

    def test_write_without_mark_is_recovered_on_reopen(self, tmp_path: Path) -> None:
        path = tmp_path / "archive"
        with ArchiveStore(path) as first:
            first.write("user", {"type": "user", "url": USER_URL})

        with ArchiveStore(path) as resumed:
            assert resumed.seen("user", USER_URL)

        index = (path / "seen.jsonl").read_text(encoding="utf-8").splitlines()
        assert [json.loads(line) for line in index] == [{"type": "user", "key": USER_URL}]

    def test_lost_index_is_rebuilt_on_open(self, tmp_path: Path) -> None:
        path = tmp_path / "archive"
        with ArchiveStore(path) as first:
            first.write("user", {"type": "user", "url": USER_URL})
            first.write("issue", {"type": "issue", "url": f"{USER_URL}/repo/issues/1"})
        (path / "seen.jsonl").unlink(missing_ok=True)

        with ArchiveStore(path) as store:
            assert store.seen("user", USER_URL)
            assert store.seen("issue", f"{USER_URL}/repo/issues/1")
            assert store.rebuild_index() == 2

    def test_rebuild_index_after_copying_records(self, tmp_path: Path) -> None:
        path = tmp_path / "archive"
        with ArchiveStore(path) as store:
            (path / "users.jsonl").write_text(json.dumps({"type": "user", "url": USER_URL}) + "\n", encoding="utf-8")
            assert not store.seen("user", USER_URL)

            assert store.rebuild_index() == 1
            assert store.seen("user", USER_URL)

    def test_truncated_record_is_skipped_and_terminated(self, tmp_path: Path) -> None:
        path = tmp_path / "archive"
        path.mkdir()
        (path / "users.jsonl").write_text(
            json.dumps({"type": "user", "url": USER_URL}) + '\n{"type": "us', encoding="utf-8"
        )
        second = {"type": "user", "url": "https://gitlab.com/jonmagic"}

        with ArchiveStore(path) as store:
            assert store.seen("user", USER_URL)
            store.write("user", second)

            assert list(store.records("user")) == [{"type": "user", "url": USER_URL}, second]

    def test_write_file(self, archive: ArchiveStore) -> None:
        target = archive.write_file("attachments/abc/test.png", b"image data")

        assert target.read_bytes() == b"image data"
        assert target == (archive.path / "attachments" / "abc" / "test.png").resolve()

    def test_write_file_outside_archive(self, archive: ArchiveStore) -> None:
        with pytest.raises(ArchiveError, match="outside the archive"):
            archive.write_file("../escape.txt", b"nope")

    def test_write_after_close(self, tmp_path: Path) -> None:
        store = ArchiveStore(tmp_path / "archive")
        store.close()

        with pytest.raises(ArchiveError, match="closed"):
            store.write("user", {"type": "user", "url": USER_URL})

    def test_close_is_idempotent(self, tmp_path: Path) -> None:
        store = ArchiveStore(tmp_path / "archive")
        store.write("user", {"type": "user", "url": USER_URL})
        store.close()
        store.close()

    def test_unserializable_record(self, archive: ArchiveStore) -> None:
        with pytest.raises(ArchiveError, match="Failed to write"):
            archive.write("user", {"type": "user", "url": object()})

    def test_open_fails_on_file_path(self, tmp_path: Path) -> None:
        path = tmp_path / "archive"
        path.write_text("not a directory")

        with pytest.raises(ArchiveError, match="Failed to open archive"):
            ArchiveStore(path)
