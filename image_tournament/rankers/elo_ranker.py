"""
Elo rating engine.

Replays a chronological vote log into per-candidate ratings:
- Expected score: E = 1 / (1 + 10^((R_opp - R_self) / 400))
- Rating update: R_new = R_old + K * (S - E)
"""

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from ..logging_config import get_logger
from ..models import Candidate, EloRating, Vote

DEFAULT_K_FACTOR = 32
DEFAULT_INITIAL_RATING = 1500.0


class EloRatingEngine:
    """
    Stateless Elo replay.

    Every call starts from scratch, so replaying the same votes twice
    yields identical ratings. Safe to share across threads.
    """

    def __init__(self, k_factor: float = DEFAULT_K_FACTOR, initial_rating: float = DEFAULT_INITIAL_RATING):
        """
        Initialize the Elo engine.

        Args:
            k_factor: Rating volatility (default: 32)
            initial_rating: Starting rating for every candidate (default: 1500)
        """
        self.k_factor: float = k_factor
        self.initial_rating: float = initial_rating
        self.logger: "Logger" = get_logger("elo_ranker")

    @staticmethod
    def expected_score(rating_a: float, rating_b: float) -> float:
        """Expected score for A against B."""
        return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / 400.0))

    def compute(self, candidates: Sequence[Candidate], votes: Iterable[Vote]) -> list[EloRating]:
        """
        Replay votes in the order given.

        Votes that reference a candidate outside the active set are skipped.

        Returns:
            Ratings sorted by rating descending (ties keep candidate order)
        """
        ratings = {c.id: self.initial_rating for c in candidates}
        wins = {c.id: 0.0 for c in candidates}

        skipped = 0
        for vote in votes:
            left, right = vote.left_id, vote.right_id
            if left not in ratings or right not in ratings:
                skipped += 1
                continue

            expected_left = self.expected_score(ratings[left], ratings[right])
            expected_right = 1.0 - expected_left

            if vote.is_tie:
                actual_left = actual_right = 0.5
                wins[left] += 0.5
                wins[right] += 0.5
            elif vote.winner_id == left:
                actual_left, actual_right = 1.0, 0.0
                wins[left] += 1
            else:
                actual_left, actual_right = 0.0, 1.0
                wins[right] += 1

            ratings[left] += self.k_factor * (actual_left - expected_left)
            ratings[right] += self.k_factor * (actual_right - expected_right)

        if skipped:
            self.logger.warning(f"Skipped {skipped} votes referencing unknown candidates")

        result = [EloRating(candidate_id=c.id, rating=ratings[c.id], wins=wins[c.id]) for c in candidates]
        result.sort(key=lambda r: r.rating, reverse=True)
        self.logger.debug(f"Elo replay: {[(r.candidate_id, r.elo) for r in result]}")
        return result
