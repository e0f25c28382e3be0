"""Conflict-of-interest matching domain service.

Decides whether an adjudicator must be excluded from a dispute because they
share an affiliation with one of the parties.

Matching rule:
- Exact label match: the member holds a label equal to a party label.
- Short-code match: the member holds a label whose bracketed code equals
  the bracketed code of a party label, e.g. "Great Britain [GB]" and
  "[GB] Staff" both carry "gb".

Codes are compared case-insensitively. Two unrelated affiliations that happen
to share a code will match; the rule is kept as-is and that risk is accepted.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

_BRACKET_CODE = re.compile(r"\[([^\]]+)\]")


def bracket_code(label: str | None) -> str:
    """Extract the lowercased short code from a bracketed label.

    Args:
        label: Affiliation label such as "Canada [CA]".

    Returns:
        The code inside the first bracket pair, lowercased, or "" if none.
    """
    if not label:
        return ""
    match = _BRACKET_CODE.search(label)
    return match.group(1).lower() if match else ""


def is_affiliation_label(label: str | None) -> bool:
    """Check whether a role name looks like an affiliation label."""
    return bool(label) and _BRACKET_CODE.search(label or "") is not None


def conflicting_labels(
    party_labels: Iterable[str | None], member_labels: Iterable[str]
) -> list[str]:
    """Find the member labels that conflict with any party label.

    Args:
        party_labels: Affiliation labels of the dispute parties. Empty and
            None entries are ignored.
        member_labels: All labels (role names) the candidate holds.

    Returns:
        The member labels that matched, in input order.
    """
    names = {label for label in party_labels if label}
    codes = {bracket_code(label) for label in names} - {""}
    matched: list[str] = []
    for label in member_labels:
        if label in names:
            matched.append(label)
            continue
        code = bracket_code(label)
        if code and code in codes:
            matched.append(label)
    return matched


def is_conflicted(
    party_labels: Iterable[str | None], member_labels: Iterable[str]
) -> bool:
    """Decide whether a member is excluded from the dispute roster."""
    return bool(conflicting_labels(party_labels, member_labels))
