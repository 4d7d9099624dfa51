"""
Voter implementations.
"""

from .dummy_voter import DummyVoter
from .sim_voter import SimulatedVoter

__all__ = ["DummyVoter", "SimulatedVoter"]
