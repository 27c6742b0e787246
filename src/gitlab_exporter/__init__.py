"""
GitLab Exporter

Exports a GitLab project (merge requests, issues, notes, users, labels,
milestones and attachments) into a resumable archive of canonical,
cross-referenced records for import into GitHub.
"""

from __future__ import annotations

from .archive import ArchiveStore
from .authorable import export_user
from .cli import main
from .exceptions import ArchiveError, ExportError, ReferenceNotFoundError, RenumberingError
from .merge_request_exporter import MergeRequestExporter
from .project_exporter import ProjectExporter
from .renumbering import RenumberingMap
from .session import ExportSession
from .url_service import ModelUrlService
from .utils import setup_logging
from .writable import serialize

# Package version
__version__ = "0.1.0"

__all__ = [
    "ArchiveError",
    "ArchiveStore",
    "ExportError",
    "ExportSession",
    "MergeRequestExporter",
    "ModelUrlService",
    "ProjectExporter",
    "ReferenceNotFoundError",
    "RenumberingError",
    "RenumberingMap",
    "export_user",
    "main",
    "serialize",
    "setup_logging",
]
