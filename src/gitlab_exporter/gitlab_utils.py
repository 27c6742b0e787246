from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any, Final, cast

import requests
from gitlab import Gitlab
from gitlab.exceptions import GitlabError, GitlabGetError

from . import utils
from .exceptions import ExportError

if TYPE_CHECKING:
    from gitlab.v4.objects import Project as GitlabProject

    from .models import Model

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "GITLAB_TOKEN"  # noqa: S105
_URL_ENV_VAR: Final[str] = "GITLAB_URL"
_DEFAULT_TOKEN_PASS_PATH: Final[str] = "gitlab/cli/ro_token"  # noqa: S105
_DEFAULT_URL: Final[str] = "https://gitlab.com"
_DOWNLOAD_TIMEOUT_SECONDS: Final[int] = 30


def get_token(pass_path: str | None = None) -> str | None:
    """Get GitLab token from pass path, env var GITLAB_TOKEN, or default pass location."""
    # Try pass path first
    if pass_path:
        return utils.get_pass_value(pass_path)

    # Try environment variable
    token: str | None = os.environ.get(_TOKEN_ENV_VAR)
    if token:
        return token

    # Try default pass path
    try:
        return utils.get_pass_value(_DEFAULT_TOKEN_PASS_PATH)
    except (ValueError, utils.PassError, FileNotFoundError):
        logger.warning("No GitLab token specified nor found")
        return None


def get_url(url: str | None = None) -> str:
    """Get the GitLab instance URL from the argument, env var GITLAB_URL, or the default."""
    return (url or os.environ.get(_URL_ENV_VAR) or _DEFAULT_URL).rstrip("/")


def get_client(url: str | None = None, token: str | None = None) -> Gitlab:
    """Get a GitLab client using the token."""
    return Gitlab(url=get_url(url), private_token=token)


def _as_dicts(objects: Any) -> list[Model]:  # noqa: ANN401 - python-gitlab has no precise list types
    return [obj.asdict() for obj in objects]


class GitlabSource:
    """SourceClient backed by the python-gitlab REST API."""

    def __init__(self, client: Gitlab) -> None:
        self._client: Gitlab = client

    def _project(self, project_id: int) -> GitlabProject:
        return self._client.projects.get(project_id, lazy=True)

    def project(self, project_path: str) -> Model:
        try:
            return self._client.projects.get(project_path).asdict()
        except GitlabError as e:
            msg = f"Failed to get project {project_path}: {e}"
            raise ExportError(msg) from e

    def group(self, full_path: str) -> Model:
        try:
            group = self._client.groups.get(full_path)
            data = group.asdict()
            data["members"] = _as_dicts(group.members.list(get_all=True))
        except GitlabError as e:
            msg = f"Failed to get group {full_path}: {e}"
            raise ExportError(msg) from e
        return data

    def fetch_labels(self, project_id: int) -> list[Model]:
        try:
            return _as_dicts(self._project(project_id).labels.list(get_all=True))
        except GitlabError as e:
            msg = f"Failed to get labels of project {project_id}: {e}"
            raise ExportError(msg) from e

    def fetch_milestones(self, project_id: int) -> list[Model]:
        try:
            milestones = _as_dicts(self._project(project_id).milestones.list(get_all=True))
        except GitlabError as e:
            msg = f"Failed to get milestones of project {project_id}: {e}"
            raise ExportError(msg) from e
        return sorted(milestones, key=lambda m: m["iid"])

    def fetch_issues(self, project_id: int) -> list[Model]:
        try:
            issues = _as_dicts(self._project(project_id).issues.list(get_all=True, state="all"))
        except GitlabError as e:
            msg = f"Failed to get issues of project {project_id}: {e}"
            raise ExportError(msg) from e
        return sorted(issues, key=lambda i: i["iid"])

    def fetch_issue_notes(self, project_id: int, issue_iid: int) -> list[Model]:
        try:
            issue = self._project(project_id).issues.get(issue_iid, lazy=True)
            return _as_dicts(issue.notes.list(get_all=True, sort="asc", order_by="created_at"))
        except GitlabError as e:
            msg = f"Failed to get notes of issue #{issue_iid}: {e}"
            raise ExportError(msg) from e

    def fetch_merge_requests(self, project_id: int) -> list[Model]:
        try:
            merge_requests = _as_dicts(self._project(project_id).mergerequests.list(get_all=True, state="all"))
        except GitlabError as e:
            msg = f"Failed to get merge requests of project {project_id}: {e}"
            raise ExportError(msg) from e
        return sorted(merge_requests, key=lambda mr: mr["iid"])

    def fetch_merge_request(self, project_id: int, iid: int) -> Model:
        try:
            return self._project(project_id).mergerequests.get(iid).asdict()
        except GitlabError as e:
            msg = f"Failed to get merge request !{iid}: {e}"
            raise ExportError(msg) from e

    def fetch_notes(self, project_id: int, merge_request_iid: int) -> list[Model]:
        try:
            merge_request = self._project(project_id).mergerequests.get(merge_request_iid, lazy=True)
            return _as_dicts(merge_request.notes.list(get_all=True, sort="asc", order_by="created_at"))
        except GitlabError as e:
            msg = f"Failed to get notes of merge request !{merge_request_iid}: {e}"
            raise ExportError(msg) from e

    def fetch_commits(self, project_id: int, merge_request_iid: int) -> list[Model]:
        try:
            merge_request = self._project(project_id).mergerequests.get(merge_request_iid, lazy=True)
            return _as_dicts(merge_request.commits())
        except GitlabError as e:
            msg = f"Failed to get commits of merge request !{merge_request_iid}: {e}"
            raise ExportError(msg) from e

    def fetch_tags(self, project_id: int) -> list[Model]:
        try:
            return _as_dicts(self._project(project_id).tags.list(get_all=True))
        except GitlabError as e:
            msg = f"Failed to get tags of project {project_id}: {e}"
            raise ExportError(msg) from e

    def fetch_commit_comments(self, project_id: int) -> list[Model]:
        comments: list[Model] = []
        try:
            for commit in self._project(project_id).commits.list(iterator=True):
                for comment in commit.comments.list(get_all=True):
                    comments.append({**comment.asdict(), "commit_id": commit.id})
        except GitlabError as e:
            msg = f"Failed to get commit comments of project {project_id}: {e}"
            raise ExportError(msg) from e
        return comments

    def user_by_username(self, username: str) -> Model | None:
        try:
            users = self._client.users.list(username=username, get_all=False)
        except GitlabGetError as e:
            if e.response_code == 404:
                return None
            msg = f"Failed to look up user {username}: {e}"
            raise ExportError(msg) from e
        except GitlabError as e:
            msg = f"Failed to look up user {username}: {e}"
            raise ExportError(msg) from e

        for user in users:
            if user.username == username:
                return user.asdict()
        return None

    def download_attachment(self, project_id: int, secret: str, filename: str) -> tuple[bytes, str]:
        """Download an upload by secret and filename.

        Uses the REST API endpoint (GitLab 17.4+) instead of the web URL, which
        may sit behind Cloudflare.

        Returns:
            Tuple of (content bytes, content type)
        """
        api_path = f"/projects/{project_id}/uploads/{secret}/{filename}"
        try:
            # http_get with raw=True returns requests.Response (type stubs are incorrect)
            response = cast(
                requests.Response,
                self._client.http_get(api_path, raw=True, timeout=_DOWNLOAD_TIMEOUT_SECONDS),
            )
            response.raise_for_status()
        except (GitlabError, requests.RequestException) as e:
            msg = f"Failed to download attachment /uploads/{secret}/{filename}: {e}"
            raise ExportError(msg) from e

        return response.content, response.headers.get("Content-Type", "application/octet-stream")
