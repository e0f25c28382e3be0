"""Unit tests for session presentation helpers."""

from refdesk.domain.models.dispute_session import DecisionOptions, IssueCategory, PartySide
from refdesk.domain.models.platform import TextChannel
from refdesk.domain.services.session_presentation import (
    pick_decision_channel,
    session_preview,
    slugify,
)
from tests.helpers import make_session


class TestSlugify:
    def test_lowercases_and_hyphenates(self) -> None:
        assert slugify("Canada [CA]") == "canada-ca"
        assert slugify("  Great Britain [GB] ") == "great-britain-gb"

    def test_empty_label(self) -> None:
        assert slugify(None) == ""


class TestPickDecisionChannel:
    """Ruling channel detection by affiliation slugs."""

    def test_prefers_result_channels(self) -> None:
        channels = [
            TextChannel("c-1", "chat-canada-ca-vs-mexico-mx"),
            TextChannel("c-2", "canada-ca-vs-mexico-mx"),
            TextChannel("c-3", "results-canada-ca-vs-mexico-mx"),
        ]
        picked = pick_decision_channel(channels, "Canada [CA]", "Mexico [MX]")
        assert picked is not None
        assert picked.channel_id == "c-3"

    def test_falls_back_to_first_match(self) -> None:
        channels = [
            TextChannel("c-1", "general"),
            TextChannel("c-2", "mexico-mx-canada-ca"),
        ]
        picked = pick_decision_channel(channels, "Canada [CA]", "Mexico [MX]")
        assert picked is not None
        assert picked.channel_id == "c-2"

    def test_requires_both_slugs(self) -> None:
        channels = [TextChannel("c-1", "post-canada-ca")]
        assert pick_decision_channel(channels, "Canada [CA]", "Mexico [MX]") is None

    def test_unknown_label_picks_nothing(self) -> None:
        channels = [TextChannel("c-1", "post-canada-ca")]
        assert pick_decision_channel(channels, "Canada [CA]", None) is None


class TestSessionPreview:
    def test_preview_lists_metadata_with_placeholders(self) -> None:
        session = (
            make_session()
            .with_parties("p-a", "p-b")
            .with_issue(IssueCategory.COMMUNICATION)
            .with_decision_options(DecisionOptions(favour=PartySide.PARTY_A))
        )
        lines = session_preview(session).splitlines()

        assert lines[0] == "• Disputer: <@p-a> (Canada [CA])"
        assert lines[1] == "• Opponent: <@p-b> (Great Britain [GB])"
        assert lines[2] == "• Issue: Communication"
        assert lines[3] == "• Favour: party_a | PenaltyAgainst: —"
        assert lines[5] == "• Window: —"

    def test_preview_of_new_session(self) -> None:
        preview = session_preview(make_session(party_a_affiliation=None))
        assert "• Disputer: — (—)" in preview
        assert "• Issue: —" in preview
