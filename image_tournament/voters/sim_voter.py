"""
Simulated voter implementation.

Picks winners from latent quality scores with a noise parameter for testing.
"""

import random

from typing_extensions import override

from ..interfaces import Voter
from ..models import Candidate


class SimulatedVoter(Voter):
    """
    Simulated evaluator for testing purposes.

    Compares ground truth scores with added Gaussian noise. Noisy scores
    closer than tie_margin produce a tie.
    """

    def __init__(
        self,
        ground_truth: dict[str, float],
        noise: float = 0.1,
        tie_margin: float = 0.0,
        seed: int | None = None,
    ):
        """
        Initialize simulated voter.

        Args:
            ground_truth: Dict mapping candidate id to true quality score
            noise: Amount of noise to add (0-1, where 1 = full noise)
            tie_margin: Score gap under which the vote is a tie
            seed: Optional seed for reproducible runs
        """
        self.ground_truth = ground_truth
        self.noise = max(0.0, min(1.0, noise))  # Clamp to [0, 1]
        self.tie_margin = max(0.0, tie_margin)
        self.voter_id = "simulated"
        self._rng = random.Random(seed)

    def _add_noise(self, score: float) -> float:
        """Add Gaussian noise to score."""
        if self.noise == 0:
            return score

        # Scale noise by score magnitude
        noise_scale = abs(score) * self.noise
        return score + self._rng.gauss(0, noise_scale)

    @override
    def choose(self, champion: Candidate, challenger: Candidate) -> Candidate | None:
        champion_score = self._add_noise(self.ground_truth.get(champion.id, 0.0))
        challenger_score = self._add_noise(self.ground_truth.get(challenger.id, 0.0))

        if abs(champion_score - challenger_score) <= self.tie_margin and self.tie_margin > 0:
            return None
        # The champion keeps the title on an exact draw
        return challenger if challenger_score > champion_score else champion

    def get_ground_truth(self) -> dict[str, float]:
        """Get ground truth scores for debugging."""
        return self.ground_truth.copy()
