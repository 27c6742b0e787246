"""Protocols for the collaborators the export pipeline consumes.

The exporters never talk to GitLab or git directly. They go through:

1. SourceClient: fetches already-parsed GitLab entities (plain dicts)
2. RepositoryData: answers git-level questions about the project repository

This keeps transport, pagination and retries out of the exporters and lets
tests substitute simple fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import MergeBase, Model


class SourceClient(Protocol):
    """Read access to the source GitLab instance.

    Implementations return fully parsed entities as dictionaries, the shape
    python-gitlab's ``asdict()`` produces. Lists are complete (pagination is
    the implementation's job).

    Example implementations:
        - GitlabSource: python-gitlab REST client
        - test fakes built on unittest.mock
    """

    def project(self, project_path: str) -> Model:
        """Return the project at ``namespace/project``."""
        ...

    def group(self, full_path: str) -> Model:
        """Return a group, including its ``members``."""
        ...

    def fetch_labels(self, project_id: int) -> list[Model]:
        ...

    def fetch_milestones(self, project_id: int) -> list[Model]:
        ...

    def fetch_issues(self, project_id: int) -> list[Model]:
        ...

    def fetch_issue_notes(self, project_id: int, issue_iid: int) -> list[Model]:
        ...

    def fetch_merge_requests(self, project_id: int) -> list[Model]:
        ...

    def fetch_merge_request(self, project_id: int, iid: int) -> Model:
        ...

    def fetch_notes(self, project_id: int, merge_request_iid: int) -> list[Model]:
        """Return the notes of a merge request in chronological order."""
        ...

    def fetch_commits(self, project_id: int, merge_request_iid: int) -> list[Model]:
        """Return the commits of a merge request, newest first."""
        ...

    def fetch_tags(self, project_id: int) -> list[Model]:
        """Return the tags of a project; a tag with release notes has a ``release``."""
        ...

    def fetch_commit_comments(self, project_id: int) -> list[Model]:
        """Return the comments on the default branch commits, each with its ``commit_id``."""
        ...

    def user_by_username(self, username: str) -> Model | None:
        """Return the user with this username, or None if there is none."""
        ...

    def download_attachment(self, project_id: int, secret: str, filename: str) -> tuple[bytes, str]:
        """Download an upload, returning its bytes and content type."""
        ...


class RepositoryData(Protocol):
    """Git-level data of the exported repository."""

    def merge_base(self, head_ref: str, base_ref: str) -> MergeBase:
        """Return the merge base of two refs.

        Missing commits or branches are reported through the returned
        MergeBase (``found`` is False), never raised.
        """
        ...
