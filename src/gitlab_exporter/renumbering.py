"""Session-scoped mapping of renumbered GitLab ids.

GitHub shares one number space between issues and pull requests, while GitLab
numbers merge requests independently. Merge requests are therefore given new
numbers during export, and every old -> new assignment is recorded here so
cross-references in user content can be rewritten.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Literal

from .exceptions import RenumberingError

logger: logging.Logger = logging.getLogger(__name__)

ModelClass = Literal["issues", "merge_requests"]


class RenumberingMap:
    """Old id -> new id, per model class."""

    def __init__(self) -> None:
        self._mappings: defaultdict[str, dict[int, int]] = defaultdict(dict)

    def record(self, model_class: ModelClass, old_id: int, new_id: int) -> None:
        """Record that ``old_id`` of ``model_class`` is exported as ``new_id``.

        Raises:
            RenumberingError: If ``old_id`` was already renumbered to a different id
        """
        mapping = self._mappings[model_class]
        current = mapping.get(old_id)
        if current is not None and current != new_id:
            msg = f"{model_class} #{old_id} already renumbered to #{current}, refusing #{new_id}"
            raise RenumberingError(msg)

        mapping[old_id] = new_id
        logger.debug(f"Renumbered {model_class} #{old_id} -> #{new_id}")

    def get(self, model_class: ModelClass, old_id: int) -> int | None:
        return self._mappings[model_class].get(old_id)

    def __getitem__(self, model_class: ModelClass) -> dict[int, int]:
        return dict(self._mappings[model_class])

