"""Transform hydrated GitLab models into archive records.

Each serializer is pure given a model hydrated with the relations its type
needs (see ``models.hydrate``); every reference to another entity is emitted
as that entity's canonical URL.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar

from .exceptions import ExportError
from .url_service import flatten_path

if TYPE_CHECKING:
    from .models import Model, ModelType, Record
    from .url_service import ModelUrlService

logger: logging.Logger = logging.getLogger(__name__)

# GitLab access level at or above which a member administers a group
_OWNER_ACCESS_LEVEL = 50


def closed_at(model: Model) -> str | None:
    """Closed timestamp: the last update of a closed or merged model, else None."""
    if model.get("state") in ("closed", "merged"):
        return model.get("updated_at")
    return None


def merged_at(model: Model) -> str | None:
    """Merged timestamp: the last update of a merged model, else None."""
    if model.get("state") == "merged":
        return model.get("updated_at")
    return None


def head_sha(merge_request: Model) -> str | None:
    """Select the sha the pull request head points at.

    A squashed merge request points at its squash commit; otherwise the first
    commit of the merge request commit list (GitLab lists newest first). No
    commits means there is no head to point at.
    """
    commits = merge_request.get("commits") or []
    if not commits:
        return None
    if merge_request.get("squash") and merge_request.get("squash_commit_sha"):
        return merge_request["squash_commit_sha"]
    return commits[0]["id"]


class Serializer:
    """Base class for record serializers."""

    model_type: ClassVar[ModelType]

    def __init__(self, url_service: ModelUrlService) -> None:
        self.url_service: ModelUrlService = url_service

    def serialize(self, model: Model) -> Record:
        raise NotImplementedError

    def url(self, model: Model | None, model_type: ModelType | None = None) -> str | None:
        return self.url_service.url_for_model(model, model_type)

    def user_url(self, user: Model | None) -> str | None:
        return self.url(user, "user")

    def owner_url(self, owner: Model | None) -> str | None:
        """URL of a project owner, which is either a user or a group."""
        if owner is None:
            return None
        if "username" in owner or owner.get("kind") == "user":
            return self.url(owner, "user")
        return self.url(owner, "organization")

    def label_urls(self, model: Model) -> list[str | None]:
        repository = model.get("repository")
        return [
            self.url({"name": name, "repository": repository}, "label")
            for name in model.get("labels") or []
        ]

    def milestone_url(self, model: Model) -> str | None:
        milestone = model.get("milestone")
        if not milestone:
            return None
        return self.url({**milestone, "repository": model.get("repository")}, "milestone")


class UserSerializer(Serializer):
    model_type = "user"

    def serialize(self, model: Model) -> Record:
        email = model.get("public_email") or model.get("email")
        return {
            "type": self.model_type,
            "url": self.url(model, "user"),
            "login": model["username"],
            "name": model.get("name"),
            "company": model.get("organization"),
            "website": model.get("website_url") or None,
            "location": model.get("location") or None,
            "emails": [{"address": email, "primary": True}] if email else [],
            "created_at": model.get("created_at"),
        }


class OrganizationSerializer(Serializer):
    model_type = "organization"

    def serialize(self, model: Model) -> Record:
        members: list[dict[str, Any]] = [
            {
                "user": self.user_url(member),
                "role": "admin" if member.get("access_level", 0) >= _OWNER_ACCESS_LEVEL else "direct_member",
                "state": "active",
            }
            for member in model.get("members") or []
        ]
        return {
            "type": self.model_type,
            "url": self.url(model, "organization"),
            "login": flatten_path(model.get("full_path") or model["path"]),
            "name": model.get("name"),
            "description": model.get("description") or None,
            "website": model.get("web_url"),
            "location": None,
            "email": None,
            "members": members,
        }


class RepositorySerializer(Serializer):
    model_type = "repository"

    def serialize(self, model: Model) -> Record:
        namespace = model.get("namespace") or {}
        namespace_path = flatten_path(namespace.get("full_path") or "")
        return {
            "type": self.model_type,
            "url": self.url(model, "repository"),
            "owner": self.owner_url(model.get("owner") or namespace),
            "name": model["path"],
            "description": model.get("description") or None,
            "website": model.get("web_url"),
            "private": model.get("visibility") != "public",
            "has_issues": model.get("issues_enabled", True),
            "has_wiki": model.get("wiki_enabled", False),
            "has_downloads": True,
            "default_branch": model.get("default_branch") or "master",
            "git_url": f"tarball://root/repositories/{namespace_path}/{model['path']}.git",
            "created_at": model.get("created_at"),
        }


class LabelSerializer(Serializer):
    model_type = "label"

    def serialize(self, model: Model) -> Record:
        return {
            "type": self.model_type,
            "url": self.url(model, "label"),
            "name": model["name"],
            "color": (model.get("color") or "").lstrip("#"),
            "created_at": model.get("created_at"),
        }


class MilestoneSerializer(Serializer):
    model_type = "milestone"

    def serialize(self, model: Model) -> Record:
        state = "closed" if model.get("state") == "closed" else "open"
        return {
            "type": self.model_type,
            "url": self.url(model, "milestone"),
            "repository": self.url(model.get("repository"), "repository"),
            "user": None,
            "title": model["title"],
            "description": model.get("description") or "",
            "state": state,
            "due_on": model.get("due_date"),
            "created_at": model.get("created_at"),
            "updated_at": model.get("updated_at"),
            "closed_at": model.get("updated_at") if state == "closed" else None,
        }


class IssueSerializer(Serializer):
    """Serializes issues, and merge requests degraded to issues."""

    model_type = "issue"

    def serialize(self, model: Model) -> Record:
        return {
            "type": self.model_type,
            "url": self.url(model, "issue"),
            "repository": self.url(model.get("repository"), "repository"),
            "user": self.user_url(model.get("author")),
            "title": model["title"],
            "body": model.get("description") or "",
            "assignee": self.user_url(model.get("assignee")),
            "milestone": self.milestone_url(model),
            "labels": self.label_urls(model),
            "closed_at": closed_at(model),
            "created_at": model.get("created_at"),
        }


class PullRequestSerializer(Serializer):
    """Serializes merge requests.

    The base sha comes from the ``base_sha`` relation attached by the merge
    request exporter after a successful merge-base lookup.
    """

    model_type = "pull_request"

    def serialize(self, model: Model) -> Record:
        repository_url = self.url(model.get("repository"), "repository")
        owner_url = self.owner_url(model.get("owner"))
        return {
            "type": self.model_type,
            "url": self.url(model, "pull_request"),
            "repository": repository_url,
            "user": self.user_url(model.get("author")),
            "title": model["title"],
            "body": model.get("description") or "",
            "base": {
                "ref": model.get("target_branch"),
                "sha": model.get("base_sha"),
                "user": owner_url,
                "repo": repository_url,
            },
            "head": {
                "ref": model.get("source_branch"),
                "sha": head_sha(model),
                "user": owner_url,
                "repo": repository_url,
            },
            "assignee": self.user_url(model.get("assignee")),
            "milestone": self.milestone_url(model),
            "labels": self.label_urls(model),
            "merged_at": merged_at(model),
            "closed_at": closed_at(model),
            "created_at": model.get("created_at"),
        }


class IssueCommentSerializer(Serializer):
    """Serializes notes on issues and merge requests."""

    model_type = "issue_comment"

    def serialize(self, model: Model) -> Record:
        return {
            "type": self.model_type,
            "url": self.url(model, "issue_comment"),
            "issue": self.url(model.get("issue"), "issue"),
            "pull_request": self.url(model.get("pull_request"), "pull_request"),
            "user": self.user_url(model.get("author")),
            "body": model.get("body") or "",
            "formatter": "markdown",
            "created_at": model.get("created_at"),
        }


class ReleaseSerializer(Serializer):
    """Serializes tags that carry GitLab release notes."""

    model_type = "release"

    def serialize(self, model: Model) -> Record:
        release = model.get("release") or {}
        commit = model.get("commit") or {}
        return {
            "type": self.model_type,
            "url": self.url(model, "release"),
            "repository": self.url(model.get("repository"), "repository"),
            "user": None,
            "name": model["name"],
            "tag_name": release.get("tag_name") or model["name"],
            "body": release.get("description") or model.get("message") or "",
            "state": "published",
            "pending_tag": model["name"],
            "prerelease": False,
            "target_commitish": commit.get("id") or model.get("target"),
            "release_assets": [],
            "published_at": commit.get("created_at"),
            "created_at": commit.get("created_at"),
        }


class CommitCommentSerializer(Serializer):
    """Serializes comments on commits; the commit is identified by its sha."""

    model_type = "commit_comment"

    def serialize(self, model: Model) -> Record:
        commit = model.get("commit") or {}
        return {
            "type": self.model_type,
            "url": self.url(model, "commit_comment"),
            "repository": self.url(model.get("repository"), "repository"),
            "user": self.user_url(model.get("author")),
            "commit_id": commit.get("id"),
            "body": model.get("note") or "",
            "path": model.get("path"),
            "line": model.get("line"),
            "position": None,
            "formatter": "markdown",
            "created_at": model.get("created_at"),
        }


class AttachmentSerializer(Serializer):
    model_type = "attachment"

    def serialize(self, model: Model) -> Record:
        return {
            "type": self.model_type,
            "url": self.url(model, "attachment"),
            model["parent_type"]: model["parent_url"],
            "user": self.user_url(model.get("author")),
            "asset_name": model["filename"],
            "asset_content_type": model.get("content_type") or "application/octet-stream",
            "asset_url": f"tarball://root/{model['archive_path']}",
            "created_at": model.get("created_at"),
        }


SERIALIZERS: dict[str, type[Serializer]] = {
    serializer.model_type: serializer
    for serializer in (
        UserSerializer,
        OrganizationSerializer,
        RepositorySerializer,
        LabelSerializer,
        MilestoneSerializer,
        IssueSerializer,
        PullRequestSerializer,
        IssueCommentSerializer,
        ReleaseSerializer,
        CommitCommentSerializer,
        AttachmentSerializer,
    )
}


def serializer_for(model_type: str, url_service: ModelUrlService) -> Serializer:
    """Return the serializer for a type tag.

    Raises:
        ExportError: If no serializer handles the type; ``commit`` only has a URL
    """
    serializer = SERIALIZERS.get(model_type)
    if serializer is None:
        msg = f"No serializer for {model_type}"
        raise ExportError(msg)
    return serializer(url_service)
