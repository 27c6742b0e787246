"""Copy GitLab uploads referenced in user content into the archive."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from .exceptions import ExportError
from .models import hydrate
from .writable import serialize

if TYPE_CHECKING:
    from .models import Model, ModelType
    from .session import ExportSession

logger: logging.Logger = logging.getLogger(__name__)

ATTACHMENT_PATTERN: Final[re.Pattern[str]] = re.compile(r"/uploads/([a-f0-9]{32})/([^)\s\]\"']+)")

# Field holding the user content of each exportable type
_BODY_FIELDS: Final[dict[str, str]] = {
    "issue": "description",
    "pull_request": "description",
    "issue_comment": "body",
    "commit_comment": "note",
}


@dataclass(frozen=True)
class AttachmentReference:
    """An upload referenced from user content."""

    secret: str
    filename: str

    @property
    def short_url(self) -> str:
        return f"/uploads/{self.secret}/{self.filename}"

    @property
    def archive_path(self) -> str:
        return f"attachments/{self.secret}/{self.filename}"


def find_attachments(content: str | None) -> list[AttachmentReference]:
    """Return the distinct uploads referenced in ``content``, in order of appearance."""
    if not content:
        return []
    references = [AttachmentReference(secret, filename) for secret, filename in ATTACHMENT_PATTERN.findall(content)]
    return list(dict.fromkeys(references))


def _owning_repository(model: Model) -> Model | None:
    if model.get("repository"):
        return model["repository"]
    parent = model.get("issue") or model.get("pull_request") or {}
    return parent.get("repository")


class AttachmentExtractor:
    """Downloads uploads referenced by exported models and records them."""

    def __init__(self, session: ExportSession) -> None:
        self._session: ExportSession = session

    def extract_attachments(self, model_type: ModelType, model: Model) -> int:
        """Copy every upload referenced by ``model`` into the archive.

        Args:
            model_type: Type the model was exported as; attachments point at it
            model: Hydrated model whose body is scanned

        Returns:
            Number of attachments written
        """
        body_field = _BODY_FIELDS.get(model_type)
        if body_field is None:
            return 0

        references = find_attachments(model.get(body_field))
        if not references:
            return 0

        repository = _owning_repository(model)
        parent_url = self._session.url_service.url_for_model(model, model_type)
        if repository is None or parent_url is None:
            logger.warning(f"Cannot place attachments of {model_type} without its repository")
            return 0

        written = 0
        for reference in references:
            attachment = hydrate(
                {
                    "secret": reference.secret,
                    "filename": reference.filename,
                    "archive_path": reference.archive_path,
                    "parent_type": model_type,
                    "parent_url": parent_url,
                    "author": model.get("author"),
                    "created_at": model.get("created_at"),
                },
                repository=repository,
            )

            url = self._session.url_service.url_for_model(attachment, "attachment")
            if url and self._session.archive.seen("attachment", url):
                logger.debug(f"Reusing already exported attachment {reference.short_url}")
                continue

            if self._copy(reference, repository, attachment, context=parent_url):
                written += serialize(self._session, "attachment", attachment)

        return written

    def _copy(self, reference: AttachmentReference, repository: Model, attachment: Model, context: str) -> bool:
        try:
            content, content_type = self._session.source.download_attachment(
                repository["id"], reference.secret, reference.filename
            )
        except ExportError as e:
            self._session.logger.warning(f"Failed to download attachment {reference.short_url}: {e}")
            self._session.output_logger.warning(f"Skipping attachment {reference.filename} in {context}")
            return False

        # Empty uploads cannot be imported
        if not content:
            self._session.output_logger.warning(
                f"Skipping empty attachment {reference.filename} (0 bytes) in {context}"
            )
            return False

        self._session.archive.write_file(reference.archive_path, content)
        attachment["content_type"] = content_type
        logger.debug(f"Copied {reference.filename}: {len(content)} bytes, Content-Type: {content_type}")
        return True
