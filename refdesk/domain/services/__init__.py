"""Pure domain services for refdesk."""

from refdesk.domain.services.conflict_matcher import (
    bracket_code,
    conflicting_labels,
    is_affiliation_label,
    is_conflicted,
)
from refdesk.domain.services.decision_text import DecisionOutcome, render_decision
from refdesk.domain.services.session_presentation import (
    pick_decision_channel,
    session_preview,
    slugify,
)

__all__: list[str] = [
    "DecisionOutcome",
    "bracket_code",
    "conflicting_labels",
    "is_affiliation_label",
    "is_conflicted",
    "pick_decision_channel",
    "render_decision",
    "session_preview",
    "slugify",
]
