"""Session presentation helpers.

Pure functions used when replying to operators and when choosing where a
ruling is posted.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from refdesk.domain.models.dispute_session import DisputeSession
from refdesk.domain.models.platform import TextChannel

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_RESULT_CHANNEL_PREFIX = re.compile(r"^(post|result)")

EMPTY = "—"


def slugify(label: str | None) -> str:
    """Lowercase a label and join its alphanumeric runs with hyphens.

    Example:
        >>> slugify("Canada [CA]")
        'canada-ca'
    """
    return _NON_ALNUM.sub("-", (label or "").lower()).strip("-")


def pick_decision_channel(
    channels: Sequence[TextChannel],
    label_a: str | None,
    label_b: str | None,
) -> TextChannel | None:
    """Pick the origin channel a ruling for two affiliations belongs in.

    A candidate's name must contain both affiliation slugs. Names starting
    with "post" or "result" are preferred, otherwise the first candidate
    wins.

    Returns:
        The chosen channel, or None when either label is unknown or no
        channel matches.
    """
    slug_a, slug_b = slugify(label_a), slugify(label_b)
    if not slug_a or not slug_b:
        return None
    candidates = [c for c in channels if slug_a in c.name and slug_b in c.name]
    for channel in candidates:
        if _RESULT_CHANNEL_PREFIX.match(channel.name):
            return channel
    return candidates[0] if candidates else None


def _mention_or_empty(user_id: str | None) -> str:
    return f"<@{user_id}>" if user_id else EMPTY


def session_preview(session: DisputeSession) -> str:
    """Summarize a session's metadata for command replies."""
    options = session.decision_options.to_dict()

    def opt(name: str) -> str:
        value = options.get(name)
        return str(value) if value else EMPTY

    return "\n".join(
        [
            f"• Disputer: {_mention_or_empty(session.party_a_id)} "
            f"({session.party_a_affiliation or EMPTY})",
            f"• Opponent: {_mention_or_empty(session.party_b_id)} "
            f"({session.party_b_affiliation or EMPTY})",
            f"• Issue: {session.issue.value if session.issue else EMPTY}",
            f"• Favour: {opt('favour')} | PenaltyAgainst: {opt('penalty_against')}",
            f"• DeviceParty: {opt('device_party')} | TeamRule: {opt('team_rule')}",
            f"• Window: {opt('schedule_window')}",
            f"• Item: {opt('item_name')} | Change: {opt('old_value')} → {opt('new_value')}",
        ]
    )
