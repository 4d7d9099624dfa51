"""
Image Tournament - blind pairwise ranking of image-generation models

A King-of-the-Hill tournament engine that turns pairwise preference votes
into a trustworthy top 3 using head-to-head evidence, common-opponent
inference and Elo, with cycle detection and vote-quality metrics.
"""

from .controller import TournamentConfig, TournamentController, TournamentPhase, rank_votes
from .interfaces import CandidateSource, ResultSink, SessionStore, Voter, VoteStore
from .models import (
    Candidate,
    CycleReport,
    EloRating,
    PairKey,
    QualityReport,
    RankedCandidate,
    RankingResult,
    SessionState,
    Vote,
)
from .overrides import apply_top3_override

__version__ = "0.1.0"
__all__ = [
    "Candidate",
    "Vote",
    "PairKey",
    "SessionState",
    "EloRating",
    "CycleReport",
    "RankedCandidate",
    "QualityReport",
    "RankingResult",
    "CandidateSource",
    "ResultSink",
    "SessionStore",
    "Voter",
    "VoteStore",
    "TournamentConfig",
    "TournamentController",
    "TournamentPhase",
    "rank_votes",
    "apply_top3_override",
]
