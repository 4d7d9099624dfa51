"""
In-memory storage implementation.

Enforces the same (prompt, user, champion, challenger) uniqueness
constraint as a database-backed vote table would.
"""

import uuid
from dataclasses import dataclass

from typing_extensions import override

from ..exceptions import VoteConflict
from ..interfaces import ResultSink, SessionStore, VoteStore
from ..logging_config import get_logger
from ..models import QualityReport, RankingResult, Vote

# Module-level logger
logger = get_logger("memory_storage")


@dataclass
class SessionRecord:
    """Bookkeeping row for one (prompt, user) session."""

    session_id: str
    prompt_id: str
    user_id: str
    estimated_total: int
    completed_comparisons: int = 0
    completed: bool = False
    final_metrics: QualityReport | None = None


class InMemoryStorage(VoteStore, SessionStore, ResultSink):
    """Dict-backed vote, session and result storage."""

    def __init__(self) -> None:
        self.votes: dict[str, Vote] = {}
        self.sessions: dict[str, SessionRecord] = {}
        self.results: list[RankingResult] = []
        self._pair_index: dict[tuple[str, str, str, str], str] = {}

    @staticmethod
    def _unique_key(vote: Vote) -> tuple[str, str, str, str]:
        return (vote.prompt_id, vote.user_id, vote.left_id, vote.right_id)

    @override
    def insert_vote(self, vote: Vote) -> str:
        key = self._unique_key(vote)
        if key in self._pair_index:
            raise VoteConflict(str(vote.pair_key), self._pair_index[key])
        self.votes[vote.id] = vote
        self._pair_index[key] = vote.id
        logger.debug(f"Inserted vote {vote.id} for {vote.pair_key}")
        return vote.id

    @override
    def delete_vote(self, vote_id: str) -> None:
        vote = self.votes.pop(vote_id, None)
        if vote is None:
            logger.warning(f"Delete of unknown vote {vote_id}")
            return
        _ = self._pair_index.pop(self._unique_key(vote), None)
        logger.debug(f"Deleted vote {vote_id}")

    @override
    def list_votes(self, prompt_id: str, user_id: str) -> list[Vote]:
        return [v for v in self.votes.values() if v.prompt_id == prompt_id and v.user_id == user_id]

    @override
    def upsert_session(self, prompt_id: str, user_id: str, estimated_total: int) -> str:
        for record in self.sessions.values():
            if record.prompt_id == prompt_id and record.user_id == user_id:
                record.estimated_total = estimated_total
                return record.session_id
        session_id = uuid.uuid4().hex
        self.sessions[session_id] = SessionRecord(session_id, prompt_id, user_id, estimated_total)
        return session_id

    @override
    def update_completed_count(self, session_id: str, completed: int) -> None:
        self.sessions[session_id].completed_comparisons = completed

    @override
    def mark_completed(self, session_id: str, final_metrics: QualityReport) -> None:
        record = self.sessions[session_id]
        record.completed = True
        record.final_metrics = final_metrics

    @override
    def submit_result(self, result: RankingResult) -> None:
        self.results.append(result)
