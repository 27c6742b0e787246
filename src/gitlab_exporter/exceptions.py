"""
Custom exception classes for the GitLab exporter.
"""

from __future__ import annotations


class ExportError(Exception):
    """Base exception for export errors."""


class ArchiveError(ExportError):
    """Raised when the archive cannot be read or written."""


class RenumberingError(ExportError):
    """Raised when an id is renumbered twice to different targets."""


class ReferenceNotFoundError(ExportError):
    """Raised when a git reference or commit is missing from the repository."""
