"""
Ranking resolution.

Orders candidates with a comparator cascade that prefers direct evidence
over inferred evidence, and inferred evidence over Elo:

1. Cycle rule: both candidates in a cycle -> Elo descending
2. Direct head-to-head decisive wins
3. Common-opponent inference
4. Elo descending
"""

from collections import Counter
from collections.abc import Iterable, Sequence
from functools import cmp_to_key
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from ..logging_config import get_logger
from ..models import Candidate, CycleReport, EloRating, HeadToHead, RankedCandidate, Vote


class RankingResolver:
    """Resolve a total order from ratings, the vote log and cycle membership."""

    def __init__(self, top_n: int = 3):
        """
        Args:
            top_n: Number of leading candidates that get a head-to-head map
        """
        self.top_n: int = top_n
        self.logger: "Logger" = get_logger("ranking_resolver")

    @staticmethod
    def count_wins(votes: Iterable[Vote]) -> Counter[tuple[str, str]]:
        """Decisive win counts keyed by (winner_id, loser_id)."""
        beats = Counter[tuple[str, str]]()
        for vote in votes:
            if vote.is_tie or vote.winner_id is None:
                continue
            loser_id = vote.loser_id
            assert loser_id is not None
            beats[(vote.winner_id, loser_id)] += 1
        return beats

    def resolve(
        self,
        candidates: Sequence[Candidate],
        ratings: Sequence[EloRating],
        votes: Sequence[Vote],
        cycles: CycleReport,
    ) -> list[RankedCandidate]:
        """
        Produce the final ranked list.

        Candidates without a rating are ignored. Fully tied pairs keep their
        Elo order, so the same input always gives the same output.
        """
        by_id = {c.id: c for c in candidates}
        rated = {r.candidate_id: r for r in ratings if r.candidate_id in by_id}
        order = [r.candidate_id for r in sorted(rated.values(), key=lambda r: r.rating, reverse=True)]

        beats = self.count_wins(votes)
        in_cycle = cycles.in_cycle

        def by_elo(a: str, b: str) -> int:
            diff = rated[b].rating - rated[a].rating
            return (diff > 0) - (diff < 0)

        def common_opponents(a: str, b: str) -> int:
            score = 0
            for c in order:
                if c == a or c == b:
                    continue
                a_beat_c = beats[(a, c)] > 0
                b_beat_c = beats[(b, c)] > 0
                c_beat_a = beats[(c, a)] > 0
                c_beat_b = beats[(c, b)] > 0
                if a_beat_c and not b_beat_c:
                    score += 1
                if b_beat_c and not a_beat_c:
                    score -= 1
                if c_beat_b and not c_beat_a:
                    score += 1
                if c_beat_a and not c_beat_b:
                    score -= 1
            return score

        def compare(a: str, b: str) -> int:
            if a in in_cycle and b in in_cycle:
                return by_elo(a, b)

            a_wins, b_wins = beats[(a, b)], beats[(b, a)]
            if a_wins != b_wins:
                return -1 if a_wins > b_wins else 1

            advantage = common_opponents(a, b)
            if advantage:
                return -1 if advantage > 0 else 1

            return by_elo(a, b)

        resolved = sorted(order, key=cmp_to_key(compare))
        self.logger.debug(f"Resolved order: {resolved}")

        ranked = list[RankedCandidate]()
        for rank, candidate_id in enumerate(resolved, 1):
            relationships: dict[str, HeadToHead] = {}
            if rank <= self.top_n:
                relationships = self.head_to_head(candidate_id, resolved, beats)
            rating = rated[candidate_id]
            ranked.append(
                RankedCandidate(
                    candidate=by_id[candidate_id],
                    rank=rank,
                    wins=rating.wins,
                    rating=rating.rating,
                    in_cycle=candidate_id in in_cycle,
                    h2h_relationships=relationships,
                )
            )
        return ranked

    @staticmethod
    def head_to_head(
        candidate_id: str, others: Iterable[str], beats: Counter[tuple[str, str]]
    ) -> dict[str, HeadToHead]:
        """Decisive record of candidate_id against everyone it met."""
        relationships = dict[str, HeadToHead]()
        for other_id in others:
            if other_id == candidate_id:
                continue
            wins = beats[(candidate_id, other_id)]
            losses = beats[(other_id, candidate_id)]
            if wins or losses:
                relationships[other_id] = HeadToHead(wins=wins, losses=losses)
        return relationships
