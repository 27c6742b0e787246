"""Export of a single merge request.

A merge request becomes a ``pull_request`` record only when the git data it
needs is available: at least one commit for the head, and a merge base with
the target branch for the base. Otherwise it is degraded to an ``issue``
record and its notes become issue comments. Either way ``export`` returns
normally; the degradation is reported to the user and to the diagnostic log.

States::

    INITIALIZED -> EXPORTED_AS_PULL_REQUEST
    INITIALIZED -> EXPORTED_AS_ISSUE
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .authorable import export_user
from .content_rewriter import rewrite_user_content
from .exceptions import ExportError, ReferenceNotFoundError
from .models import ExportState, MergeBase, hydrate
from .note_exporter import NoteExporter
from .serializers import head_sha
from .writable import serialize

if TYPE_CHECKING:
    from .models import Model
    from .project_exporter import ProjectExporter
    from .session import ExportSession

logger: logging.Logger = logging.getLogger(__name__)


class MergeRequestExporter:
    """Exports a merge request, its author, attachments and notes."""

    def __init__(self, merge_request: Model, *, project_exporter: ProjectExporter) -> None:
        self.project_exporter: ProjectExporter = project_exporter
        self.session: ExportSession = project_exporter.session
        self.state: ExportState = ExportState.INITIALIZED

        self.merge_request: Model = hydrate(
            merge_request,
            repository=project_exporter.project,
            owner=project_exporter.owner,
        )
        # Renumbering changes "iid"; the GitLab number is kept for API calls and logs
        self.original_iid: int = merge_request["iid"]

        source = self.session.source
        project_id = project_exporter.project["id"]
        self.merge_request_notes: list[NoteExporter] = [
            NoteExporter(note, parent=self) for note in source.fetch_notes(project_id, self.original_iid)
        ]
        hydrate(self.merge_request, commits=source.fetch_commits(project_id, self.original_iid))

    @property
    def model(self) -> Model:
        return self.merge_request

    @property
    def project(self) -> Model:
        return self.project_exporter.project

    @property
    def created_at(self) -> str | None:
        return self.merge_request.get("created_at")

    def renumber(self, new_id: int) -> None:
        """Give the merge request a new number in the destination.

        Raises:
            RenumberingError: If it was already renumbered to a different number
        """
        self.session.renumbering.record("merge_requests", self.original_iid, new_id)
        self.merge_request["iid"] = new_id

    def rewrite_user_content(self) -> None:
        self.merge_request["description"] = rewrite_user_content(
            self.merge_request.get("description"), self.session.renumbering
        )

    def rewrite(self) -> None:
        """Rewrite cross-references in the description and in every note."""
        self.rewrite_user_content()
        for note in self.merge_request_notes:
            note.rewrite_user_content()

    def merge_base(self) -> MergeBase:
        """Look up the base sha of the pull request."""
        head = head_sha(self.merge_request)
        if head is None:
            return MergeBase.not_found("merge request has no commits")

        base_ref = self.merge_request.get("target_branch")
        if not base_ref:
            return MergeBase.not_found("merge request has no target branch")

        try:
            return self.project_exporter.repository.merge_base(head, base_ref)
        except ReferenceNotFoundError as e:
            return MergeBase.not_found(str(e))

    def export(self) -> ExportState:
        """Export the merge request as a pull request, or as an issue if it must degrade."""
        if self.state is not ExportState.INITIALIZED:
            msg = f"Merge request !{self.original_iid} was already exported ({self.state.value})"
            raise ExportError(msg)

        export_user(self.session, self.merge_request.get("author"))

        merge_base = self.merge_base()
        if merge_base.found:
            self._export_as_pull_request(merge_base)
        else:
            self._export_as_issue(merge_base)
        return self.state

    def _export_as_pull_request(self, merge_base: MergeBase) -> None:
        hydrate(self.merge_request, base_sha=merge_base.sha)
        serialize(self.session, "pull_request", self.merge_request)
        self.session.attachments.extract_attachments("pull_request", self.merge_request)

        for note in self.merge_request_notes:
            note.export()

        self.state = ExportState.EXPORTED_AS_PULL_REQUEST
        logger.debug(f"Exported merge request !{self.original_iid} as pull request #{self.merge_request['iid']}")

    def _export_as_issue(self, merge_base: MergeBase) -> None:
        self.session.logger.error(
            f"Merge request !{self.original_iid} cannot be exported as a pull request: {merge_base.error}"
        )
        self.session.output_logger.warning(
            f"Merge request !{self.original_iid} ({self.merge_request.get('title')}) is missing git data "
            f"and will be exported as issue #{self.merge_request['iid']}"
        )

        serialize(self.session, "issue", self.merge_request)
        self.session.attachments.extract_attachments("issue", self.merge_request)

        for note in self.merge_request_notes:
            note.export_as_issue_note()

        self.state = ExportState.EXPORTED_AS_ISSUE
