"""Rewrite GitLab cross-references in user content for renumbered ids.

GitLab writes ``!12`` for merge request 12 and ``#12`` for issue 12. In the
destination both live in one number space, so merge request references become
``#<new number>`` and issue references follow the issue mapping, if any.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from .renumbering import RenumberingMap

# Not preceded by a word character, "&" (HTML entities) or "/" (URL fragments)
REFERENCE_PATTERN: Final[re.Pattern[str]] = re.compile(r"(?<![\w&/])([#!])(\d+)\b")


def rewrite_user_content(content: str | None, renumbering: RenumberingMap) -> str | None:
    """Return ``content`` with local issue and merge request references renumbered.

    All references are rewritten in a single pass, so a rewritten number is
    never rewritten again. Unmapped references are left unchanged.
    """
    if not content:
        return content

    merge_requests = renumbering["merge_requests"]
    issues = renumbering["issues"]

    def replace(match: re.Match[str]) -> str:
        sigil, number = match.group(1), int(match.group(2))
        mapping = merge_requests if sigil == "!" else issues
        new_number = mapping.get(number)
        if new_number is None:
            return match.group(0)
        return f"#{new_number}"

    return REFERENCE_PATTERN.sub(replace, content)
