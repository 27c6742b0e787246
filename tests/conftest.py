"""
Pytest configuration and fixtures.

GitLab data is modelled on the Mouse-Hack/hugo-pages project, in the shape
python-gitlab's ``asdict()`` returns. No test touches the network.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from unittest.mock import Mock

import pytest

from gitlab_exporter.archive import ArchiveStore
from gitlab_exporter.session import ExportSession

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

PROJECT_ID = 1169162
HEAD_SHA = "c222af415ecc78c644c139cbf5eb44a25205cbad"
BASE_SHA = "3a1811f3cb96e9bc426f6ee3544a2cf4f7d5f3fd"


def make_project(namespace: str = "Mouse-Hack", path: str = "hugo-pages") -> dict[str, Any]:
    return {
        "id": PROJECT_ID,
        "name": path,
        "path": path,
        "path_with_namespace": f"{namespace}/{path}",
        "description": "Hugo pages",
        "namespace": {"id": 42, "name": namespace, "path": namespace, "full_path": namespace, "kind": "group"},
        "web_url": f"https://gitlab.com/{namespace}/{path}",
        "http_url_to_repo": f"https://gitlab.com/{namespace}/{path}.git",
        "visibility": "private",
        "issues_enabled": True,
        "wiki_enabled": True,
        "default_branch": "master",
        "created_at": "2016-03-01T10:00:00.000Z",
    }


def make_group(full_path: str = "Mouse-Hack") -> dict[str, Any]:
    return {
        "id": 42,
        "name": full_path,
        "path": full_path.rsplit("/", 1)[-1],
        "full_path": full_path,
        "description": "",
        "web_url": f"https://gitlab.com/groups/{full_path}",
        "members": [],
    }


def make_user(username: str = "spraints") -> dict[str, Any]:
    return {
        "id": 7,
        "username": username,
        "name": username.title(),
        "web_url": f"https://gitlab.com/{username}",
        "public_email": f"{username}@example.com",
        "created_at": "2015-01-01T00:00:00.000Z",
    }


def make_merge_request(iid: int = 2, **overrides: Any) -> dict[str, Any]:  # noqa: ANN401
    merge_request = {
        "id": 3190000 + iid,
        "iid": iid,
        "project_id": PROJECT_ID,
        "title": "WIP: this one'll really be about what the branch name says",
        "description": "Please report this. To verizon. Or the NSA.",
        "state": "opened",
        "created_at": "2016-05-10T22:20:29.649Z",
        "updated_at": "2016-05-11T08:00:00.000Z",
        "target_branch": "master",
        "source_branch": "omniauth-login",
        "author": make_user("spraints"),
        "assignee": make_user("spraints"),
        "milestone": {"id": 100, "iid": 1, "title": "v1"},
        "labels": ["Blocker", "Don't Drink and Code"],
        "squash": False,
        "squash_commit_sha": None,
        "web_url": f"https://gitlab.com/Mouse-Hack/hugo-pages/merge_requests/{iid}",
    }
    merge_request.update(overrides)
    return merge_request


def make_note(note_id: int = 11735615, body: str = "Looks good", **overrides: Any) -> dict[str, Any]:  # noqa: ANN401
    note = {
        "id": note_id,
        "body": body,
        "author": make_user("kylemacey"),
        "created_at": "2016-05-12T10:00:00.000Z",
        "system": False,
    }
    note.update(overrides)
    return note


def make_tag(name: str = "v1.0", description: str | None = "First release") -> dict[str, Any]:
    return {
        "name": name,
        "message": "",
        "target": HEAD_SHA,
        "commit": {"id": HEAD_SHA, "created_at": "2016-05-13T09:00:00.000Z"},
        "release": {"tag_name": name, "description": description} if description is not None else None,
        "protected": False,
    }


def make_commit_comment(note: str = "Nice catch", **overrides: Any) -> dict[str, Any]:  # noqa: ANN401
    comment = {
        "note": note,
        "path": "config.toml",
        "line": 3,
        "line_type": "new",
        "author": make_user("kylemacey"),
        "created_at": "2016-05-12T11:00:00.000Z",
        "commit_id": HEAD_SHA,
    }
    comment.update(overrides)
    return comment


@pytest.fixture
def source() -> Mock:
    """SourceClient fake serving one group-owned project."""
    mock = Mock()
    mock.project.side_effect = lambda _path: make_project()
    mock.group.side_effect = lambda full_path: make_group(full_path)
    mock.user_by_username.side_effect = lambda username: make_user(username)
    mock.fetch_labels.return_value = []
    mock.fetch_milestones.return_value = []
    mock.fetch_issues.return_value = []
    mock.fetch_issue_notes.return_value = []
    mock.fetch_merge_requests.return_value = []
    mock.fetch_notes.side_effect = lambda _project_id, _iid: [make_note(1), make_note(2, body="See !2")]
    mock.fetch_commits.side_effect = lambda _project_id, _iid: [{"id": HEAD_SHA}]
    mock.fetch_tags.return_value = []
    mock.fetch_commit_comments.return_value = []
    mock.download_attachment.return_value = (b"file content", "image/png")
    return mock


@pytest.fixture
def archive(tmp_path: Path) -> Generator[ArchiveStore]:
    store = ArchiveStore(tmp_path / "archive")
    yield store
    store.close()


@pytest.fixture
def session(archive: ArchiveStore, source: Mock) -> ExportSession:
    """Session with mock loggers, so log calls can be asserted."""
    return ExportSession(
        archive=archive,
        source=source,
        logger=Mock(spec=logging.Logger),
        output_logger=Mock(spec=logging.Logger),
    )
