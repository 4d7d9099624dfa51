"""
Abstract base classes defining the interfaces for the image tournament system.

All interfaces are synchronous to avoid asyncio complexity in core interfaces.
Stores may still be slow; the controller guards against re-entry while a
call is outstanding.
"""

from abc import ABC, abstractmethod

from .models import Candidate, QualityReport, RankingResult, Vote


class VoteStore(ABC):
    """Interface for persisting votes."""

    @abstractmethod
    def insert_vote(self, vote: Vote) -> str:
        """
        Persist a vote and return its id.

        Raises:
            VoteConflict: a vote for the same (prompt, user, champion,
                challenger) already exists. Callers treat this as
                "already recorded".
        """
        pass

    @abstractmethod
    def delete_vote(self, vote_id: str) -> None:
        """Delete a vote by id."""
        pass

    @abstractmethod
    def list_votes(self, prompt_id: str, user_id: str) -> list[Vote]:
        """Return every stored vote for one (prompt, user) session."""
        pass


class SessionStore(ABC):
    """Interface for session bookkeeping."""

    @abstractmethod
    def upsert_session(self, prompt_id: str, user_id: str, estimated_total: int) -> str:
        """Create or fetch the session for (prompt, user) and return its id."""
        pass

    @abstractmethod
    def update_completed_count(self, session_id: str, completed: int) -> None:
        """Record the number of comparisons completed so far."""
        pass

    @abstractmethod
    def mark_completed(self, session_id: str, final_metrics: QualityReport) -> None:
        """Mark a session as completed with its final quality metrics."""
        pass


class CandidateSource(ABC):
    """Interface for supplying the candidates of a prompt (read-only)."""

    @abstractmethod
    def list_candidates(self, prompt_id: str) -> list[Candidate]:
        """Return the candidates for a prompt in pairing order."""
        pass


class ResultSink(ABC):
    """Interface receiving finalized rankings."""

    @abstractmethod
    def submit_result(self, result: RankingResult) -> None:
        """Accept a finalized ranking for downstream submission."""
        pass


class Voter(ABC):
    """Interface for something that picks a winner between two candidates."""

    @abstractmethod
    def choose(self, champion: Candidate, challenger: Candidate) -> Candidate | None:
        """
        Pick the preferred candidate.

        Args:
            champion: Candidate currently holding the title
            challenger: Candidate challenging it

        Returns:
            The preferred candidate, or None for a tie
        """
        pass
