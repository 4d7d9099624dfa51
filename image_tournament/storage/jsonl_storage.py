"""
JSONL storage implementation.

Persists votes to an append-only JSONL log (deletions are tombstone lines),
sessions to a JSON file and finalized rankings to a results JSONL file.
"""

import json
import time
import uuid
from dataclasses import asdict
from pathlib import Path
from typing import Any, Literal

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from typing_extensions import NotRequired, TypedDict, override

from ..exceptions import ValidationError, VoteConflict
from ..interfaces import ResultSink, SessionStore, VoteStore
from ..logging_config import get_logger
from ..models import QualityReport, RankingResult, Vote

# Module-level logger
logger = get_logger("jsonl_storage")


class VoteRecord(TypedDict):
    """One line of votes.jsonl."""

    op: Literal["insert", "delete"]
    id: str
    prompt_id: NotRequired[str]
    user_id: NotRequired[str]
    left_id: NotRequired[str]
    right_id: NotRequired[str]
    winner_id: NotRequired[str | None]
    is_tie: NotRequired[bool]
    timestamp: NotRequired[float]


class SessionRecord(TypedDict):
    """One entry of sessions.json."""

    session_id: str
    prompt_id: str
    user_id: str
    estimated_total: int
    completed_comparisons: int
    completed_at: float | None
    final_metrics: dict[str, Any] | None  # pyright: ignore[reportExplicitAny]


_vote_record_adapter = TypeAdapter(VoteRecord)
_sessions_adapter = TypeAdapter(dict[str, SessionRecord])


def result_to_dict(result: RankingResult) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Serializable form of a finalized ranking."""
    data = asdict(result)
    data["top3"] = [r.candidate.id for r in result.top3]
    for row, ranked in zip(data["ranked"], result.ranked):
        row["elo"] = ranked.elo
    return data


class JSONLStorage(VoteStore, SessionStore, ResultSink):
    """
    JSONL-based storage implementation.

    Votes are never rewritten in place: an undo appends a delete record and
    the active set is folded from the log on read.
    """

    votes_path: Path
    sessions_path: Path
    results_path: Path

    def __init__(self, output_dir: Path):
        """
        Initialize JSONL storage.

        Args:
            output_dir: Directory holding votes.jsonl, sessions.json and results.jsonl
        """
        output_dir = Path(output_dir)
        self.votes_path = output_dir / "votes.jsonl"
        self.sessions_path = output_dir / "sessions.json"
        self.results_path = output_dir / "results.jsonl"

        # Ensure parent directories exist
        output_dir.mkdir(parents=True, exist_ok=True)

        logger.info(
            f"JSONL storage initialized: votes={self.votes_path}, sessions={self.sessions_path}, results={self.results_path}"
        )

    def _append(self, path: Path, data: dict[str, Any]) -> None:  # pyright: ignore[reportExplicitAny]
        with open(path, "a", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
            f.write("\n")

    def _load_active_votes(self) -> dict[str, Vote]:
        """Fold the vote log into the currently active votes, in insertion order."""
        active = dict[str, Vote]()
        if not self.votes_path.exists():
            return active

        with open(self.votes_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue

                try:
                    record = _vote_record_adapter.validate_python(json.loads(line))
                    if record["op"] == "delete":
                        _ = active.pop(record["id"], None)
                        continue
                    vote = Vote(
                        id=record["id"],
                        prompt_id=record["prompt_id"],
                        user_id=record["user_id"],
                        left_id=record["left_id"],
                        right_id=record["right_id"],
                        winner_id=record.get("winner_id"),
                        is_tie=record.get("is_tie", False),
                        timestamp=record.get("timestamp", 0.0),
                    )
                    active[vote.id] = vote
                except (json.JSONDecodeError, PydanticValidationError, KeyError, ValidationError) as e:
                    # Skip corrupted or invalid lines
                    logger.warning(f"Skipping invalid line in {self.votes_path}: {e}")
                    continue
        return active

    @override
    def insert_vote(self, vote: Vote) -> str:
        for existing in self._load_active_votes().values():
            if (
                existing.prompt_id == vote.prompt_id
                and existing.user_id == vote.user_id
                and existing.pair_key == vote.pair_key
            ):
                raise VoteConflict(str(vote.pair_key), existing.id)

        record: VoteRecord = {
            "op": "insert",
            "id": vote.id,
            "prompt_id": vote.prompt_id,
            "user_id": vote.user_id,
            "left_id": vote.left_id,
            "right_id": vote.right_id,
            "winner_id": vote.winner_id,
            "is_tie": vote.is_tie,
            "timestamp": vote.timestamp,
        }
        self._append(self.votes_path, dict(record))
        logger.debug(f"Persisted vote {vote.id} for {vote.pair_key}")
        return vote.id

    @override
    def delete_vote(self, vote_id: str) -> None:
        self._append(self.votes_path, {"op": "delete", "id": vote_id})
        logger.debug(f"Recorded deletion of vote {vote_id}")

    @override
    def list_votes(self, prompt_id: str, user_id: str) -> list[Vote]:
        return [
            v for v in self._load_active_votes().values()
            if v.prompt_id == prompt_id and v.user_id == user_id
        ]

    def _load_sessions(self) -> dict[str, SessionRecord]:
        if not self.sessions_path.exists():
            return {}
        try:
            with open(self.sessions_path, "r", encoding="utf-8") as f:
                return _sessions_adapter.validate_python(json.load(f))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.error(f"Failed to load sessions from {self.sessions_path}: {e}")
            return {}

    def _save_sessions(self, sessions: dict[str, SessionRecord]) -> None:
        with open(self.sessions_path, "w", encoding="utf-8") as f:
            json.dump(sessions, f, indent=2, ensure_ascii=False)

    @override
    def upsert_session(self, prompt_id: str, user_id: str, estimated_total: int) -> str:
        sessions = self._load_sessions()
        for session_id, record in sessions.items():
            if record["prompt_id"] == prompt_id and record["user_id"] == user_id:
                record["estimated_total"] = estimated_total
                self._save_sessions(sessions)
                return session_id

        session_id = uuid.uuid4().hex
        sessions[session_id] = {
            "session_id": session_id,
            "prompt_id": prompt_id,
            "user_id": user_id,
            "estimated_total": estimated_total,
            "completed_comparisons": 0,
            "completed_at": None,
            "final_metrics": None,
        }
        self._save_sessions(sessions)
        logger.info(f"Created session {session_id} for {prompt_id}/{user_id}")
        return session_id

    def get_session(self, session_id: str) -> SessionRecord | None:
        return self._load_sessions().get(session_id)

    @override
    def update_completed_count(self, session_id: str, completed: int) -> None:
        sessions = self._load_sessions()
        if session_id not in sessions:
            raise KeyError(f"Session not found: {session_id}")
        sessions[session_id]["completed_comparisons"] = completed
        self._save_sessions(sessions)

    @override
    def mark_completed(self, session_id: str, final_metrics: QualityReport) -> None:
        sessions = self._load_sessions()
        if session_id not in sessions:
            raise KeyError(f"Session not found: {session_id}")
        sessions[session_id]["completed_at"] = time.time()
        sessions[session_id]["final_metrics"] = asdict(final_metrics)
        self._save_sessions(sessions)
        logger.info(f"Session {session_id} completed")

    @override
    def submit_result(self, result: RankingResult) -> None:
        self._append(self.results_path, result_to_dict(result))
        logger.info(f"Saved ranking for {result.prompt_id}/{result.user_id} to {self.results_path}")

    def load_results(self) -> list[dict[str, Any]]:  # pyright: ignore[reportExplicitAny]
        """Load every finalized ranking as plain dicts."""
        if not self.results_path.exists():
            return []
        results = list[dict[str, Any]]()  # pyright: ignore[reportExplicitAny]
        with open(self.results_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    results.append(json.loads(line))
                except json.JSONDecodeError as e:
                    logger.warning(f"Skipping invalid JSON line in {self.results_path}: {e}")
        return results

    def get_vote_count(self) -> int:
        """Number of active votes across all sessions."""
        return len(self._load_active_votes())
