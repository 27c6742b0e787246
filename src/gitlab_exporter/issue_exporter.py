"""Export of a single issue and its notes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .authorable import export_user
from .content_rewriter import rewrite_user_content
from .models import hydrate
from .note_exporter import NoteExporter
from .writable import serialize

if TYPE_CHECKING:
    from .models import Model
    from .project_exporter import ProjectExporter
    from .session import ExportSession

logger: logging.Logger = logging.getLogger(__name__)


class IssueExporter:
    def __init__(self, issue: Model, *, project_exporter: ProjectExporter) -> None:
        self.project_exporter: ProjectExporter = project_exporter
        self.session: ExportSession = project_exporter.session
        self.issue: Model = hydrate(issue, repository=project_exporter.project)

        self.issue_notes: list[NoteExporter] = [
            NoteExporter(note, parent=self)
            for note in self.session.source.fetch_issue_notes(project_exporter.project["id"], issue["iid"])
        ]

    @property
    def model(self) -> Model:
        return self.issue

    def rewrite_user_content(self) -> None:
        self.issue["description"] = rewrite_user_content(self.issue.get("description"), self.session.renumbering)

    def rewrite(self) -> None:
        self.rewrite_user_content()
        for note in self.issue_notes:
            note.rewrite_user_content()

    def export(self) -> bool:
        """Export the author, the issue, its attachments, then its notes."""
        export_user(self.session, self.issue.get("author"))
        written = serialize(self.session, "issue", self.issue)
        self.session.attachments.extract_attachments("issue", self.issue)

        for note in self.issue_notes:
            note.export_as_issue_note()

        logger.debug(f"Exported issue #{self.issue['iid']}")
        return written
