"""Canonical URLs for exported GitLab entities.

Every record in the archive is identified, and referenced by other records,
through the URL computed here. The destination namespace is flat, so GitLab
subgroup paths are collapsed with ``-`` (``Mouse-Hack/subgroup`` becomes
``Mouse-Hack-subgroup``). Only the variable segment of a URL is
percent-encoded, so a ``/`` inside a tag name stays ``%2F``.
"""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Final
from urllib.parse import quote_plus

if TYPE_CHECKING:
    from collections.abc import Callable

    from .models import Model, ModelType

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_ROOT_URL: Final[str] = "https://gitlab.com"


def flatten_path(path: str) -> str:
    """Collapse a hierarchical GitLab namespace into a single path segment."""
    return path.strip("/").replace("/", "-")


class ModelUrlService:
    """Builds stable, namespace-flattened URLs for GitLab models."""

    def __init__(self, root_url: str = DEFAULT_ROOT_URL) -> None:
        self.root_url: str = root_url.rstrip("/")
        self._builders: dict[str, Callable[[Model], str | None]] = {
            "user": self._user_url,
            "organization": self._organization_url,
            "repository": self._repository_url,
            "label": self._label_url,
            "release": self._release_url,
            "milestone": self._milestone_url,
            "issue": self._issue_url,
            "pull_request": self._pull_request_url,
            "commit": self._commit_url,
            "issue_comment": self._issue_comment_url,
            "commit_comment": self._commit_comment_url,
            "attachment": self._attachment_url,
        }

    def url_for_model(self, model: Model | None, model_type: ModelType | None = None) -> str | None:
        """Return the canonical URL of a model.

        Args:
            model: GitLab entity, hydrated with the relations its type needs
            model_type: Explicit type tag. When omitted the type is inferred for
                users, groups and projects; anything else keeps its own web_url.

        Returns:
            The canonical URL, or None for a None model or a model without
            enough data to identify it
        """
        if model is None:
            return None

        if model_type is None:
            model_type = self._infer_type(model)
            if model_type is None:
                return model.get("web_url")

        builder = self._builders.get(model_type)
        if builder is None:
            msg = f"Unknown model type: {model_type}"
            raise ValueError(msg)

        return builder(model) or model.get("web_url")

    @staticmethod
    def _infer_type(model: Model) -> ModelType | None:
        if "username" in model:
            return "user"
        if "path_with_namespace" in model:
            return "repository"
        if "full_path" in model and "/groups/" in model.get("web_url", ""):
            return "organization"
        return None

    # Owners and projects

    def _user_url(self, model: Model) -> str | None:
        username = model.get("username")
        if not username:
            return None
        return f"{self.root_url}/{username}"

    def _organization_url(self, model: Model) -> str | None:
        full_path = model.get("full_path") or model.get("path")
        if not full_path:
            return None
        return f"{self.root_url}/groups/{flatten_path(full_path)}"

    def _repository_url(self, model: Model) -> str | None:
        namespace = model.get("namespace") or {}
        namespace_path = namespace.get("full_path")
        path = model.get("path")

        if not (namespace_path and path) and model.get("path_with_namespace"):
            namespace_path, _, path = model["path_with_namespace"].rpartition("/")

        if not (namespace_path and path):
            return None
        return f"{self.root_url}/{flatten_path(namespace_path)}/{path}"

    def _project_scoped(self, model: Model, suffix: str) -> str | None:
        repository = model.get("repository")
        if not repository:
            return None
        repository_url = self._repository_url(repository)
        if repository_url is None:
            return None
        return f"{repository_url}/{suffix}"

    # Project-scoped entities

    def _named(self, model: Model, prefix: str) -> str | None:
        name = model.get("name")
        if not name:
            return None
        return self._project_scoped(model, f"{prefix}{quote_plus(name)}")

    def _numbered(self, model: Model, prefix: str, field: str = "iid") -> str | None:
        number = model.get(field)
        if number is None:
            return None
        return self._project_scoped(model, f"{prefix}{number}")

    def _label_url(self, model: Model) -> str | None:
        return self._named(model, "labels#/")

    def _release_url(self, model: Model) -> str | None:
        return self._named(model, "tags/")

    def _milestone_url(self, model: Model) -> str | None:
        return self._numbered(model, "milestones/")

    def _issue_url(self, model: Model) -> str | None:
        return self._numbered(model, "issues/")

    def _pull_request_url(self, model: Model) -> str | None:
        return self._numbered(model, "merge_requests/")

    def _commit_url(self, model: Model) -> str | None:
        return self._numbered(model, "commit/", field="id")

    def _attachment_url(self, model: Model) -> str | None:
        secret = model.get("secret")
        filename = model.get("filename")
        if not (secret and filename):
            return None
        return self._project_scoped(model, f"uploads/{secret}/{quote_plus(filename)}")

    # Nested entities

    def _issue_comment_url(self, model: Model) -> str | None:
        # Notes hang off either an issue or a merge request; a merge request
        # that was degraded to an issue is attached as "issue".
        if model.get("issue"):
            parent_url = self._issue_url(model["issue"])
        elif model.get("pull_request"):
            parent_url = self._pull_request_url(model["pull_request"])
        else:
            return None

        note_id = model.get("id")
        if parent_url is None or note_id is None:
            return None
        return f"{parent_url}#note_{note_id}"

    def _commit_comment_url(self, model: Model) -> str | None:
        commit = model.get("commit")
        if not commit:
            return None

        repository = commit.get("repository") or model.get("repository")
        if not repository:
            return None
        commit_url = self._commit_url({**commit, "repository": repository})
        if commit_url is None:
            return None

        return f"{commit_url}#note_{commit_comment_digest(model)}"


def commit_comment_digest(model: Model) -> str:
    """Identify a commit comment, which has no id of its own in the GitLab API."""
    author = model.get("author") or {}
    parts = [
        str(model.get("created_at") or ""),
        str(model.get("path") or ""),
        str(model.get("line") or ""),
        str(author.get("username") or ""),
        str(model.get("note") or ""),
    ]
    return hashlib.md5("\x00".join(parts).encode(), usedforsecurity=False).hexdigest()
