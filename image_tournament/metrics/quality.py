"""
Quality metrics calculator.

Derives voter-consistency and pacing signals from the same vote log the
ranking is built from.
"""

from collections.abc import Sequence

import numpy as np

from ..models import QualityReport, Vote

# Flag thresholds
MIN_VOTES_FOR_FLAGS = 3          # Most flags need more than this many votes
MIN_VOTES_FOR_TIE_RATE = 5       # high_tie_rate needs more than this many votes
MIN_VOTES_FOR_ALL_TIES = 2       # all_ties needs more than this many votes
MIN_VOTES_FOR_CONSISTENCY = 3    # Consistency is 100 below this many votes
TOO_FAST_SECONDS = 2.0
TOO_SLOW_SECONDS = 60.0
LOW_CONSISTENCY = 50.0
RANDOM_VOTING = 30.0
HIGH_TIE_RATE = 0.5


class QualityMetricsCalculator:
    """Pure calculator; every method takes a full vote snapshot."""

    @staticmethod
    def transitivity_violations(votes: Sequence[Vote]) -> int:
        """Count paths A -> B -> C where C -> A also exists."""
        wins = dict[str, set[str]]()
        for vote in votes:
            if vote.is_tie or vote.winner_id is None:
                continue
            loser_id = vote.loser_id
            assert loser_id is not None
            wins.setdefault(vote.winner_id, set()).add(loser_id)

        violations = 0
        for a, beaten in wins.items():
            for b in beaten:
                for c in wins.get(b, ()):
                    if a in wins.get(c, ()):
                        violations += 1
        return violations

    def consistency_score(self, votes: Sequence[Vote]) -> float:
        """100 minus the violation rate as a percentage, floored at 0."""
        if len(votes) < MIN_VOTES_FOR_CONSISTENCY:
            return 100.0
        violations = self.transitivity_violations(votes)
        score = max(0.0, 100.0 - (violations / max(1, len(votes))) * 100.0)
        return round(score, 2)

    @staticmethod
    def tie_rate(votes: Sequence[Vote]) -> float:
        if not votes:
            return 0.0
        return sum(1 for v in votes if v.is_tie) / len(votes)

    def vote_certainty(self, votes: Sequence[Vote]) -> float:
        """Share of decisive votes as a percentage (0 with no votes)."""
        if not votes:
            return 0.0
        return round((1.0 - self.tie_rate(votes)) * 100.0, 2)

    @staticmethod
    def average_vote_time(votes: Sequence[Vote]) -> float:
        """Mean gap between consecutive votes in seconds (0 below two votes)."""
        if len(votes) < 2:
            return 0.0
        timestamps = np.sort(np.array([v.timestamp for v in votes], dtype=float))
        return round(float(np.diff(timestamps).mean()), 2)

    def detect_flags(self, votes: Sequence[Vote], average_vote_time: float, consistency_score: float) -> list[str]:
        """Independent quality flags for a session."""
        flags = list[str]()
        count = len(votes)
        tie_rate = self.tie_rate(votes)

        if count > MIN_VOTES_FOR_FLAGS:
            # Likely random clicking
            if average_vote_time < TOO_FAST_SECONDS:
                flags.append("too_fast")
            # Possibly distracted
            if average_vote_time > TOO_SLOW_SECONDS:
                flags.append("too_slow")
            if consistency_score < LOW_CONSISTENCY:
                flags.append("low_consistency")
            if consistency_score < RANDOM_VOTING:
                flags.append("random_voting")

        if tie_rate > HIGH_TIE_RATE and count > MIN_VOTES_FOR_TIE_RATE:
            flags.append("high_tie_rate")

        if count > MIN_VOTES_FOR_ALL_TIES and tie_rate == 1.0:
            flags.append("all_ties")

        return flags

    def calculate(self, votes: Sequence[Vote]) -> QualityReport:
        """Calculate all quality metrics at once."""
        violations = self.transitivity_violations(votes)
        consistency = self.consistency_score(votes)
        certainty = self.vote_certainty(votes)
        average = self.average_vote_time(votes)
        return QualityReport(
            consistency_score=consistency,
            transitivity_violations=violations,
            vote_certainty=certainty,
            average_vote_time_seconds=average,
            flags=self.detect_flags(votes, average, consistency),
            vote_count=len(votes),
            tie_count=sum(1 for v in votes if v.is_tie),
        )
