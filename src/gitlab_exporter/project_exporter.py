"""Export of one GitLab project into the archive.

Export Flow
-----------
Phase 1: Owner and repository
    - Export the owning group (with its members) or user
    - Export the repository record

Phase 2: Labels and milestones
    - Project-scoped records referenced by issues and pull requests

Phase 3: Load issues and merge requests
    - Fetch every issue and merge request with its notes (and commits)
    - Renumber merge requests to follow the highest issue number, since the
      destination shares one number space between issues and pull requests

Phase 4: Rewrite user content
    - With every renumbering known, rewrite ``!N`` / ``#N`` references in all
      descriptions and notes in a single pass

Phase 5: Export
    - Issues, then merge requests (as pull requests, or degraded to issues)
    - Each record is written before its notes

Phase 6: Releases and commit comments
    - Tags that carry release notes
    - Comments on the default branch commits, with references rewritten

Every write goes through ``writable.serialize``, so running the export again
against the same archive only writes what is missing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .authorable import export_user
from .content_rewriter import rewrite_user_content
from .issue_exporter import IssueExporter
from .merge_request_exporter import MergeRequestExporter
from .models import ExportState, hydrate
from .writable import serialize

if TYPE_CHECKING:
    from .models import Model
    from .protocols import RepositoryData
    from .session import ExportSession

logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class ExportStats:
    """Records written during one project export."""

    labels: int = 0
    milestones: int = 0
    issues: int = 0
    pull_requests: int = 0
    merge_requests_as_issues: int = 0
    releases: int = 0
    commit_comments: int = 0


class ProjectExporter:
    """Exports a project and everything that hangs off it."""

    def __init__(self, project: Model, *, session: ExportSession, repository: RepositoryData) -> None:
        self.session: ExportSession = session
        self.repository: RepositoryData = repository
        self.project: Model = project
        self.owner: Model = self._load_owner()

        logger.info(f"Initialized exporter for {project.get('path_with_namespace', project.get('id'))}")

    def _load_owner(self) -> Model:
        namespace = self.project.get("namespace") or {}
        if namespace.get("kind") == "group":
            return self.session.source.group(namespace["full_path"])

        user = self.session.source.user_by_username(namespace["path"])
        if user is None:
            # Deleted or blocked users still own their projects
            return {"username": namespace["path"], "name": namespace.get("name")}
        return user

    def export_owner(self) -> None:
        if "username" in self.owner:
            export_user(self.session, self.owner)
            return

        for member in self.owner.get("members") or []:
            export_user(self.session, member)
        serialize(self.session, "organization", self.owner)

    def export_repository(self) -> None:
        serialize(self.session, "repository", hydrate(self.project, owner=self.owner))

    def export_labels(self, stats: ExportStats) -> None:
        for label in self.session.source.fetch_labels(self.project["id"]):
            stats.labels += serialize(self.session, "label", hydrate(label, repository=self.project))

    def export_milestones(self, stats: ExportStats) -> None:
        for milestone in self.session.source.fetch_milestones(self.project["id"]):
            stats.milestones += serialize(self.session, "milestone", hydrate(milestone, repository=self.project))

    def load_issues(self) -> list[IssueExporter]:
        return [
            IssueExporter(issue, project_exporter=self)
            for issue in self.session.source.fetch_issues(self.project["id"])
        ]

    def load_merge_requests(self) -> list[MergeRequestExporter]:
        return [
            MergeRequestExporter(merge_request, project_exporter=self)
            for merge_request in self.session.source.fetch_merge_requests(self.project["id"])
        ]

    def export_releases(self, stats: ExportStats) -> None:
        """Export tags with release notes; plain tags travel with the git data."""
        renumbering = self.session.renumbering
        for tag in self.session.source.fetch_tags(self.project["id"]):
            release = tag.get("release")
            if not release:
                continue
            release["description"] = rewrite_user_content(release.get("description"), renumbering)
            stats.releases += serialize(self.session, "release", hydrate(tag, repository=self.project))

    def export_commit_comments(self, stats: ExportStats) -> None:
        for comment in self.session.source.fetch_commit_comments(self.project["id"]):
            hydrate(comment, repository=self.project, commit={"id": comment.get("commit_id")})
            comment["note"] = rewrite_user_content(comment.get("note"), self.session.renumbering)

            export_user(self.session, comment.get("author"))
            stats.commit_comments += serialize(self.session, "commit_comment", comment)
            self.session.attachments.extract_attachments("commit_comment", comment)

    @staticmethod
    def renumber_merge_requests(issues: list[IssueExporter], merge_requests: list[MergeRequestExporter]) -> None:
        """Number merge requests after the highest issue number, in GitLab order."""
        next_number = max((issue.model["iid"] for issue in issues), default=0) + 1
        for offset, merge_request in enumerate(merge_requests):
            merge_request.renumber(next_number + offset)

    def export(self) -> ExportStats:
        """Execute the full project export."""
        stats = ExportStats()
        logger.info("Starting project export")

        self.export_owner()
        self.export_repository()
        self.export_labels(stats)
        self.export_milestones(stats)

        issues = self.load_issues()
        merge_requests = self.load_merge_requests()
        self.renumber_merge_requests(issues, merge_requests)

        for exporter in [*issues, *merge_requests]:
            exporter.rewrite()

        for issue in issues:
            stats.issues += issue.export()

        for merge_request in merge_requests:
            if merge_request.export() is ExportState.EXPORTED_AS_PULL_REQUEST:
                stats.pull_requests += 1
            else:
                stats.merge_requests_as_issues += 1

        self.export_releases(stats)
        self.export_commit_comments(stats)

        logger.info(
            f"Exported {stats.issues} issues, {stats.pull_requests} pull requests, "
            f"{stats.merge_requests_as_issues} merge requests as issues, {stats.releases} releases, "
            f"{stats.commit_comments} commit comments"
        )
        return stats
