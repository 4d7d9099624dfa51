"""
Exception classes for the image tournament system.

Centralized location for all custom exceptions to avoid circular imports.
"""


class TournamentError(Exception):
    """Base exception for all tournament errors."""
    pass


class ValidationError(TournamentError):
    """Base exception for validation-related errors."""
    pass


class ConfigurationError(TournamentError):
    """Base exception for configuration-related errors."""
    pass


class InsufficientCandidates(TournamentError):
    """Fewer than two candidates to start a tournament."""
    pass


class InsufficientForRanking(TournamentError):
    """Fewer than three candidates at finalize time."""
    pass


class DuplicatePair(TournamentError):
    """
    The ordered (champion, challenger) pair already has a vote.

    Callers should treat this as "already recorded", not as a failure.
    """

    def __init__(self, pair_key: str):
        super().__init__(f"Pair already voted: {pair_key}")
        self.pair_key = pair_key


class NothingToUndo(TournamentError):
    """Undo requested with an empty history stack."""
    pass


class AlreadyFinalizing(TournamentError):
    """Finalize re-entered while a finalize is in flight."""
    pass


class TournamentBusy(TournamentError):
    """A vote, undo or reset was requested while another one is in flight."""
    pass


class TournamentIncomplete(TournamentError):
    """Finalize requested before the tournament reached completion."""
    pass


class VoteConflict(TournamentError):
    """Raised by vote stores when the ordered-pair uniqueness constraint is hit."""

    def __init__(self, pair_key: str, existing_vote_id: str | None = None):
        super().__init__(f"Vote already stored for pair {pair_key}")
        self.pair_key = pair_key
        self.existing_vote_id = existing_vote_id


class StoreFailure(TournamentError):
    """Opaque wrapper around a collaborator store error."""
    pass
