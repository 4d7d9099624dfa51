"""
Ranker implementations.

Pure, side-effect-free components that turn a vote log into a ranking.

Available implementations:
- EloRatingEngine: replays votes into Elo ratings and win counts
- CycleDetector: finds preference cycles in the winner -> loser graph
- RankingResolver: orders candidates by cycle rule, head-to-head,
  common-opponent inference and Elo
"""

from .cycle_detector import CycleDetector
from .elo_ranker import EloRatingEngine
from .ranking_resolver import RankingResolver

__all__ = ["CycleDetector", "EloRatingEngine", "RankingResolver"]
