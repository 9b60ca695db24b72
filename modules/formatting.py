"""Plain-text renderings of ballots and results for chat delivery."""

from __future__ import annotations

from typing import Any, Dict, Optional

from modules.tally import OUTCOME_NO_VOTES, OUTCOME_TIE


def make_bar(pct: int, length: int = 10) -> str:
    pct = max(0, min(100, int(pct)))
    filled = (pct * length * 2 + 100) // 200
    return "█" * filled + "░" * (length - filled)


def format_announcement(proposal: Dict[str, Any]) -> str:
    lines = [f"{idx + 1}. {opt}" for idx, opt in enumerate(proposal.get("options") or [])]
    text = f'Voting is now OPEN: "{proposal.get("title", "")}"\n\n' + "\n".join(lines)
    if proposal.get("quorum_weight") is not None:
        text += f"\n\nQuorum: {proposal['quorum_weight']} total weight"
    if proposal.get("ends_at") is not None:
        text += f"\nCloses at: {proposal['ends_at']} (unix time)"
    return text


def format_ballot(proposal: Dict[str, Any], weight: Optional[int]) -> str:
    weight_text = f"Your voting weight: {weight}\n" if weight is not None else ""
    lines = [f"{idx}: {opt}" for idx, opt in enumerate(proposal.get("options") or [])]
    return (
        f'Proposal "{proposal.get("title", "")}"\n\n'
        + weight_text
        + "Cast or change your vote with one of:\n"
        + "\n".join(lines)
    )


def format_result_summary(result: Dict[str, Any]) -> str:
    """Render a closed-proposal result the way it is posted to the group."""
    proposal = result["proposal"]
    outcome = result["outcome"]
    options = proposal.get("options") or []
    total = outcome["total_weight"]

    if outcome["outcome"] == OUTCOME_NO_VOTES:
        headline = "No votes were cast. No outcome could be determined."
    elif outcome["outcome"] == OUTCOME_TIE:
        tied = " and ".join(f'"{options[idx]}"' for idx in outcome["tied_indexes"])
        headline = f"It's a tie between {tied}.\nNo single winner."
    else:
        headline = (
            f'Winner: "{outcome["winner_label"]}" with '
            f'{outcome["winner_pct"]}% of total voting weight'
        )

    text = f'Voting closed for: "{proposal.get("title", "")}"\n\n{headline}\n\n'
    text += f"Turnout: {total} total weight\n"
    quorum_weight = result.get("quorum_weight")
    if quorum_weight is not None:
        if result.get("quorum_reached"):
            text += "Quorum: reached\n"
        else:
            text += f"Quorum: not reached ({total} < {quorum_weight})\n"

    breakdown = "\n".join(
        f"- {row['label']} {make_bar(row['pct'])} {row['pct']}% ({row['weight']} weight)"
        for row in outcome["breakdown"]
    )
    return text + f"\nFinal breakdown:\n{breakdown}\n\nThis vote is now final."


def format_join_request(request: Dict[str, Any]) -> str:
    text = (
        "New voter request:\n"
        f'Community: {request.get("title", "")} (id {request["community_id"]})\n'
        f'User: {request.get("display_name") or "Unknown"}\n'
        f'ID: {request["member_id"]}'
    )
    if request.get("previously_rejected"):
        text += "\n(previously rejected)"
    return text


def format_member_decision(community: Dict[str, Any], approved: bool, weight: Optional[int]) -> str:
    title = community.get("title", "")
    if approved:
        return f'You can vote in "{title}". Weight: {weight}.'
    return f'Your request to vote in "{title}" was rejected.'
