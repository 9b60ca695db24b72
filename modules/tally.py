"""Weighted tally and outcome resolution.

Everything here is pure: the inputs are the proposal's option labels and
either the aggregated ``votes`` map (option index -> weight) or the raw vote
rows read from the store.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

OUTCOME_NO_VOTES = "no_votes"
OUTCOME_WINNER = "winner"
OUTCOME_TIE = "tie"


def aggregate_votes(rows: Iterable[Mapping[str, Any]], option_count: int = 0) -> Dict[int, int]:
    """Sum ``weight_at_vote_time`` per ``option_index`` over vote rows.

    With ``option_count`` every option index is present, zero when unvoted.
    """
    votes: Dict[int, int] = {idx: 0 for idx in range(option_count)}
    for row in rows:
        idx = int(row["option_index"])
        votes[idx] = votes.get(idx, 0) + max(0, int(row.get("weight_at_vote_time") or 0))
    return votes


def voter_map(rows: Iterable[Mapping[str, Any]]) -> Dict[str, int]:
    return {str(row["voter_id"]): int(row["option_index"]) for row in rows}


def compute_total_weight(votes: Mapping[int, int]) -> int:
    return sum(int(weight or 0) for weight in votes.values())


def percentage(weight: int, total: int) -> int:
    """Integer percentage of ``total``, rounding halves up.

    1/3 -> 33, 1/8 (12.5%) -> 13, 5/8 (62.5%) -> 63. Zero when total is zero.
    """
    if total <= 0:
        return 0
    return (200 * weight + total) // (2 * total)


def compute_outcome(options: Sequence[str], votes: Mapping[int, int]) -> Dict[str, Any]:
    weights = [int(votes.get(idx) or 0) for idx in range(len(options))]
    total = compute_total_weight(votes)
    max_weight = max(weights) if weights else 0
    tied_indexes = [idx for idx, weight in enumerate(weights) if weight == max_weight]

    breakdown: List[Dict[str, Any]] = [
        {
            "index": idx,
            "label": label,
            "weight": weights[idx],
            "pct": percentage(weights[idx], total),
        }
        for idx, label in enumerate(options)
    ]

    winner_index: Optional[int] = None
    winner_pct = 0
    if total == 0:
        outcome = OUTCOME_NO_VOTES
        tied_indexes = []
    elif len(tied_indexes) == 1:
        outcome = OUTCOME_WINNER
        winner_index = tied_indexes[0]
        winner_pct = breakdown[winner_index]["pct"]
    else:
        outcome = OUTCOME_TIE

    return {
        "outcome": outcome,
        "winner_index": winner_index,
        "winner_label": options[winner_index] if winner_index is not None else None,
        "winner_pct": winner_pct,
        "tied_indexes": tied_indexes,
        "total_weight": total,
        "breakdown": breakdown,
    }


def evaluate_quorum(quorum_weight: Optional[int], total: int) -> bool:
    if quorum_weight is None:
        return True
    return total >= int(quorum_weight)
