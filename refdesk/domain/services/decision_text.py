"""Decision text templating.

Pure lookup-and-substitute rendering of referee rulings. No state, no I/O.
Callers must check decision prerequisites before rendering; placeholders are
used for any option still unset.
"""

from __future__ import annotations

from enum import Enum

from refdesk.domain.models.dispute_session import (
    DecisionOptions,
    DisputeSession,
    PartySide,
    TeamRule,
)

CLOSING_REMINDER = (
    "We would like to remind all parties involved that referees and staff "
    "members from countries involved in disputes cannot be involved in the "
    "resolution of the dispute."
)
SIGN_OFF = "Good luck in your remaining battles."


class DecisionOutcome(str, Enum):
    """Templated ruling outcomes, grouped by issue."""

    LAG_REMATCH = "lag_rematch"
    LAG_NO_REMATCH = "lag_no_rematch"
    LAG_WIN_PARTY_A = "lag_win_p1"
    LAG_WIN_PARTY_B = "lag_win_p2"
    COMM_BAD_ONE = "comm_bad_1"
    COMM_BAD_THREE = "comm_bad_3"
    COMM_INVALID = "comm_invalid"
    DEVICE_REMATCH = "dev_rematch"
    DEVICE_NO_REMATCH = "dev_no_rematch"
    DEVICE_WIN_PARTY_A = "dev_win_p1"
    DEVICE_WIN_PARTY_B = "dev_win_p2"
    NO_SHOW_PARTY_A_ONE = "ns_p1_1"
    NO_SHOW_PARTY_B_ONE = "ns_p2_1"
    NO_SHOW_PARTY_A_THREE = "ns_p1_3"
    NO_SHOW_PARTY_B_THREE = "ns_p2_3"
    WRONG_ITEM = "wp_pokemon"
    WRONG_MOVESET = "wp_moveset"


_TEAM_RULE_LINES: dict[TeamRule, str] = {
    TeamRule.SAME_TEAMS_SAME_LEAD: "The same teams must be used, with the same lead Pokémon.",
    TeamRule.SAME_LEAD_FLEX_BACK: "The same lead Pokémon must be used, the back line may be changed.",
    TeamRule.NEW_TEAMS: "New teams may be used.",
}


def mention(user_id: str | None) -> str:
    return f"<@{user_id}>" if user_id else "@User"


def _team_rule_lines(rule: TeamRule | None) -> list[str]:
    return [_TEAM_RULE_LINES[rule]] if rule in _TEAM_RULE_LINES else []


def render_decision(
    session: DisputeSession,
    outcome: DecisionOutcome,
    options: DecisionOptions,
    raiser_id: str | None,
) -> str:
    """Render the ruling text for a session.

    Args:
        session: The session being ruled on.
        outcome: The chosen ruling template.
        options: Outcome-specific values (favour, team rule, ...).
        raiser_id: User who raised the dispute.

    Returns:
        The full decision message text.
    """
    disputer = mention(session.party_a_id)
    opponent = mention(session.party_b_id)
    country_a = session.party_a_affiliation or "Disputer country"
    country_b = session.party_b_affiliation or "Opponent country"

    def country(side: PartySide | None) -> str:
        if side == PartySide.PARTY_A:
            return country_a
        if side == PartySide.PARTY_B:
            return country_b
        return "(country)"

    favour = country(options.favour)
    penalty_against = country(options.penalty_against)
    device_user = mention(session.party_for(options.device_party)) if options.device_party else "@player"
    window = options.schedule_window or "24 hours"
    item = options.item_name
    old_value = options.old_value
    new_value = options.new_value

    lines: list[str] = []
    match outcome:
        case DecisionOutcome.LAG_REMATCH:
            lines.append("A **rematch will be granted**.")
            lines.extend(_team_rule_lines(options.team_rule))
        case DecisionOutcome.LAG_NO_REMATCH:
            lines.append("A **rematch will NOT be granted**.")
        case DecisionOutcome.LAG_WIN_PARTY_A | DecisionOutcome.LAG_WIN_PARTY_B:
            a_wins = outcome == DecisionOutcome.LAG_WIN_PARTY_A
            winner = disputer if a_wins else opponent
            lines.append(
                f"The **win is awarded to {winner}**. The remaining games are "
                "still to be played (if applicable)."
            )
            lines.append(
                f"The score is 1-0 in favour of the {'Disputer' if a_wins else 'Opponent'}. "
                "Please update the score when available."
            )
        case DecisionOutcome.COMM_BAD_ONE:
            lines.append("**Did not communicate sufficiently.**")
            lines.append(f"Subsequent to 6.1, a penalty point is issued in favour of **{favour}**.")
            lines.append(f"The games must be scheduled within **{window}**. All games are to be played.")
        case DecisionOutcome.COMM_BAD_THREE:
            lines.append("**Did not communicate sufficiently (both opponents in the pair).**")
            lines.append(f"Subsequent to 6.1, **3 penalty points** are issued in favour of **{favour}**.")
            lines.append(f"The games must be scheduled within **{window}**. All games are to be played.")
        case DecisionOutcome.COMM_INVALID:
            lines.append("The dispute is **ruled invalid** under 6.1.")
            lines.append(
                "Both players are to communicate and agree a new time to battle "
                "within the next 24 hours."
            )
            lines.append(
                "If scheduling or communication issues persist please contact team captains first."
            )
        case DecisionOutcome.DEVICE_REMATCH:
            lines.append("A **rematch will be granted** due to a device issue.")
            lines.extend(_team_rule_lines(options.team_rule))
            lines.append(f"A warning is issued to {device_user}.")
        case DecisionOutcome.DEVICE_NO_REMATCH:
            lines.append("A **rematch will NOT be granted** (device issue).")
            lines.append(f"A warning is issued to {device_user}.")
        case DecisionOutcome.DEVICE_WIN_PARTY_A | DecisionOutcome.DEVICE_WIN_PARTY_B:
            winner = disputer if outcome == DecisionOutcome.DEVICE_WIN_PARTY_A else opponent
            lines.append(f"The **win is awarded to {winner}** (device issue on opponent).")
            lines.append(f"A warning is issued to {device_user}.")
        case DecisionOutcome.NO_SHOW_PARTY_A_ONE | DecisionOutcome.NO_SHOW_PARTY_B_ONE:
            absent = disputer if outcome == DecisionOutcome.NO_SHOW_PARTY_A_ONE else opponent
            lines.append(
                f"{absent} **failed to show in time**. Subsequent to 6.2.4 the "
                "penalty is **1 penalty point**."
            )
            lines.append("The remaining games are to be played.")
        case DecisionOutcome.NO_SHOW_PARTY_A_THREE | DecisionOutcome.NO_SHOW_PARTY_B_THREE:
            absent = disputer if outcome == DecisionOutcome.NO_SHOW_PARTY_A_THREE else opponent
            lines.append(
                f"{absent} **failed to show in time**. Subsequent to 6.2.5 (last "
                "24 hours) the penalty is **3 penalty points**."
            )
            lines.append("The remaining games are to be played.")
        case DecisionOutcome.WRONG_ITEM:
            lines.append(f"An **unregistered Pokémon** was used ({item or '(Pokémon)'}).")
            lines.append(
                "Subsequent to 2.5.1 the outcome is **1 Penalty Point** on the "
                f"Global Score against **{penalty_against}**."
            )
            lines.append(f"The matches where {item or '(the Pokémon)'} was used must be replayed.")
            lines.append(
                f"{disputer} and {opponent} must only use the **registered Pokémon** "
                "in those games and with the rest of their opponents."
            )
        case DecisionOutcome.WRONG_MOVESET:
            lines.append(
                f"An **illegal moveset change** was used ({old_value or '(old move)'} → "
                f"{new_value or '(new move)'}; {item or '(Pokémon)'})."
            )
            lines.append(
                "Subsequent to 2.5.1 the outcome is **1 Penalty Point** on the "
                f"Global Score against **{penalty_against}**."
            )
            lines.append(f"The matches where {new_value or '(the new move)'} was used must be replayed.")
            lines.append(
                f"Only **{old_value or '(the old move)'}** is allowed in those games "
                "and with the rest of the opponents."
            )

    issue = session.issue.value if session.issue else "(issue)"
    header = [
        f"{disputer} {opponent}",
        f"After reviewing the match dispute set by {mention(raiser_id)} regarding "
        f"{issue}. The Referees team has decided:",
    ]
    return "\n".join([*header, "", *lines, "", CLOSING_REMINDER, "", SIGN_OFF])
