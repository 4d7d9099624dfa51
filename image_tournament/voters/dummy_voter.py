"""
Dummy voter implementation for testing.

Provides deterministic and random choices for testing purposes.
"""

import random

from typing_extensions import override

from ..exceptions import ValidationError
from ..interfaces import Voter
from ..models import Candidate


class DummyVoter(Voter):
    """
    Dummy voter for testing purposes.

    "deterministic" prefers the candidate whose id sorts first; "random"
    flips a seeded coin; "tie" always abstains.
    """

    MODES = ("deterministic", "random", "tie")

    def __init__(self, mode: str = "deterministic", seed: int = 42):
        """
        Initialize dummy voter.

        Args:
            mode: "deterministic", "random" or "tie"
            seed: Random seed for reproducible results
        """
        if mode not in self.MODES:
            raise ValidationError(f"Unknown mode: {mode}")
        self.mode = mode
        self.voter_id = f"dummy_{mode}"
        self._rng = random.Random(seed)

    @override
    def choose(self, champion: Candidate, challenger: Candidate) -> Candidate | None:
        if self.mode == "tie":
            return None
        if self.mode == "random":
            return self._rng.choice([champion, challenger])
        return min(champion, challenger, key=lambda c: c.id)
