"""The single write path for every exported record.

``serialize`` resolves a model's identity, checks the archive's identity
index, and writes the record only if it was never written before. Every
exporter goes through it, which is what makes re-running an export safe.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .serializers import serializer_for

if TYPE_CHECKING:
    from .models import Model, ModelType
    from .session import ExportSession

logger: logging.Logger = logging.getLogger(__name__)


def identity_key(model_type: ModelType, model: Model, url: str | None) -> str | None:
    """Archive identity of a model: its canonical URL, else ``{type}/{id}``."""
    if url:
        return url

    model_id = model.get("id")
    if model_id is None:
        return None
    return f"{model_type}/{model_id}"


def serialize(session: ExportSession, model_type: ModelType, model: Model | None) -> bool:
    """Write a model to the archive unless it was written before.

    Args:
        session: Current export session
        model_type: Type tag selecting the URL builder and serializer
        model: Hydrated GitLab model

    Returns:
        True if a record was written, False if the model was already exported
        or could not be identified

    Raises:
        ArchiveError: If the archive cannot be written
    """
    url = session.url_service.url_for_model(model, model_type)
    key = identity_key(model_type, model, url) if model is not None else None
    if model is None or key is None:
        session.logger.error(f"{model_type}: {url or ''} could not be serialized")
        return False

    if session.archive.seen(model_type, key):
        logger.debug(f"Skipping already exported {model_type} {key}")
        return False

    record = serializer_for(model_type, session.url_service).serialize(model)
    session.archive.write(model_type, record)
    session.archive.mark_seen(model_type, key)
    logger.debug(f"Exported {model_type} {key}")
    return True
