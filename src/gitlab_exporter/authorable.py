"""User export, by username or by already fetched user data."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .writable import serialize

if TYPE_CHECKING:
    from .models import Model
    from .session import ExportSession

logger: logging.Logger = logging.getLogger(__name__)


def export_user(session: ExportSession, username_or_user: str | Model | None) -> bool:
    """Export a user.

    A username is looked up through the source client first; a user mapping
    (e.g. the ``author`` of an issue) is serialized as is.

    Returns:
        True if a user record was written
    """
    if isinstance(username_or_user, str):
        user = session.source.user_by_username(username_or_user)
        if user is None:
            session.output_logger.error(f"{username_or_user} not found")
            return False
        return serialize(session, "user", user)

    return serialize(session, "user", username_or_user)
