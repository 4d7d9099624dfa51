"""
User overrides applied at the result-sink boundary.

An evaluator may reorder the computed top 3 or swap in another candidate.
The override is layered on top of the resolved ranking; the resolver itself
never sees it.
"""

from collections.abc import Sequence
from dataclasses import replace

from .exceptions import ValidationError
from .models import RankingResult


def apply_top3_override(result: RankingResult, ordered_ids: Sequence[str]) -> RankingResult:
    """
    Return a copy of result whose leading entries are ordered_ids.

    Every other candidate keeps its relative order behind them, and ranks
    are renumbered. Annotations (wins, elo, cycle membership, head-to-head)
    travel with their candidate.
    """
    if not 1 <= len(ordered_ids) <= 3:
        raise ValidationError(f"Override must name 1 to 3 candidates, got {len(ordered_ids)}")
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ValidationError(f"Override names a candidate twice: {list(ordered_ids)}")

    by_id = {r.candidate.id: r for r in result.ranked}
    unknown = [cid for cid in ordered_ids if cid not in by_id]
    if unknown:
        raise ValidationError(f"Override names unranked candidates: {unknown}")

    leading = [by_id[cid] for cid in ordered_ids]
    rest = [r for r in result.ranked if r.candidate.id not in set(ordered_ids)]
    ranked = [replace(r, rank=rank) for rank, r in enumerate(leading + rest, 1)]
    return replace(result, ranked=ranked)
