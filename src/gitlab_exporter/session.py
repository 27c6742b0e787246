"""Per-run export context.

One ``ExportSession`` is created per export run and passed explicitly to every
exporter. It exclusively owns the archive and the renumbering map for the
duration of the run; the URL service and serializers are stateless.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Self

from .archive import ArchiveStore
from .attachments import AttachmentExtractor
from .renumbering import RenumberingMap
from .url_service import DEFAULT_ROOT_URL, ModelUrlService

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

    from .protocols import SourceClient


def _default_logger() -> logging.Logger:
    return logging.getLogger("gitlab_exporter")


def _default_output_logger() -> logging.Logger:
    return logging.getLogger("gitlab_exporter.output")


@dataclass
class ExportSession:
    """Shared state of one export run.

    Attributes:
        archive: Write target, owned by the session
        source: GitLab API client used for lookups (users, attachments)
        url_service: Canonical URL resolver
        renumbering: Old -> new id mappings recorded during this run
        logger: Diagnostic logger (causes, exceptions)
        output_logger: User-facing logger (skips, degradations)
    """

    archive: ArchiveStore
    source: SourceClient
    url_service: ModelUrlService = field(default_factory=ModelUrlService)
    renumbering: RenumberingMap = field(default_factory=RenumberingMap)
    logger: logging.Logger = field(default_factory=_default_logger)
    output_logger: logging.Logger = field(default_factory=_default_output_logger)
    attachments: AttachmentExtractor = field(init=False)

    def __post_init__(self) -> None:
        self.attachments = AttachmentExtractor(self)

    @classmethod
    def open(
        cls,
        archive_path: str | Path,
        source: SourceClient,
        *,
        root_url: str = DEFAULT_ROOT_URL,
    ) -> Self:
        """Open (or resume) the archive at ``archive_path`` and start a session."""
        return cls(
            archive=ArchiveStore(archive_path),
            source=source,
            url_service=ModelUrlService(root_url),
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if exc_value is not None:
            self.logger.error(f"Export aborted: {exc_value}")
        self.close()

    def close(self) -> None:
        self.archive.close()
