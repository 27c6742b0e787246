"""Data types shared by the exporter.

GitLab entities are kept as the plain dictionaries python-gitlab returns from
``RESTObject.asdict()``. They are structurally ambiguous (an issue and a label
are both just mappings), so the type tag always travels alongside the model
instead of being guessed from its keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

Model = dict[str, Any]
Record = dict[str, Any]

ModelType = Literal[
    "user",
    "organization",
    "repository",
    "label",
    "release",
    "issue",
    "issue_comment",
    "milestone",
    "commit",
    "commit_comment",
    "pull_request",
    "attachment",
]

# Transient fields the exporters attach before serializing. Serializers only
# ever emit URLs derived from them, never the raw values.
RELATION_FIELDS: frozenset[str] = frozenset(
    {"repository", "owner", "issue", "pull_request", "commit", "commits", "base_sha"}
)


def hydrate(model: Model, **relations: Any) -> Model:  # noqa: ANN401 - relation values are GitLab data
    """Attach relation fields to a model and return it.

    Args:
        model: GitLab entity to hydrate (modified in place)
        **relations: Relation fields, e.g. ``repository=project``

    Returns:
        The same model, for chaining

    Raises:
        ValueError: If a relation name is not a known relation field
    """
    unknown = set(relations) - RELATION_FIELDS
    if unknown:
        msg = f"Unknown relation field(s): {', '.join(sorted(unknown))}"
        raise ValueError(msg)
    model.update(relations)
    return model


@dataclass(frozen=True)
class MergeBase:
    """Result of a merge-base lookup.

    ``sha`` is set when the repository contains both refs; otherwise ``error``
    describes what was missing.
    """

    sha: str | None
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.sha is not None

    @classmethod
    def not_found(cls, error: str) -> MergeBase:
        return cls(sha=None, error=error)


class ExportState(Enum):
    """Outcome of exporting one merge request."""

    INITIALIZED = "initialized"
    EXPORTED_AS_PULL_REQUEST = "exported_as_pull_request"
    EXPORTED_AS_ISSUE = "exported_as_issue"
