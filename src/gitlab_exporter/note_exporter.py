"""Export of notes (comments) on issues and merge requests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from .authorable import export_user
from .content_rewriter import rewrite_user_content
from .models import hydrate
from .writable import serialize

if TYPE_CHECKING:
    from .models import Model
    from .session import ExportSession

logger: logging.Logger = logging.getLogger(__name__)


class NoteParent(Protocol):
    """The exporter of the issue or merge request a note belongs to."""

    session: ExportSession

    @property
    def model(self) -> Model: ...


class NoteExporter:
    """Exports one note as an ``issue_comment`` record.

    The note is attached to its parent as a pull request comment or, when the
    parent was exported as an issue, as an issue comment. Either way the
    parent's record must already be written.
    """

    def __init__(self, note: Model, *, parent: NoteParent) -> None:
        self.note: Model = note
        self.parent: NoteParent = parent
        self.session: ExportSession = parent.session

    def rewrite_user_content(self) -> None:
        self.note["body"] = rewrite_user_content(self.note.get("body"), self.session.renumbering)

    def export(self) -> bool:
        """Export as a comment on the parent pull request."""
        return self._export(pull_request=self.parent.model)

    def export_as_issue_note(self) -> bool:
        """Export as a comment on the parent issue."""
        return self._export(issue=self.parent.model)

    def _export(self, **parent: Model) -> bool:
        self.note.pop("issue", None)
        self.note.pop("pull_request", None)
        hydrate(self.note, **parent)

        export_user(self.session, self.note.get("author"))
        written = serialize(self.session, "issue_comment", self.note)
        # Attachments dedupe on their own, so a resumed run fills in any it missed
        self.session.attachments.extract_attachments("issue_comment", self.note)
        return written
