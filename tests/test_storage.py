"""
Tests for JSONLStorage and InMemoryStorage implementations.

Focus on persistence, the ordered-pair uniqueness constraint and data integrity.
"""

import json
import tempfile
from pathlib import Path

import pytest

from image_tournament.controller import rank_votes
from image_tournament.exceptions import VoteConflict
from image_tournament.models import Candidate, QualityReport, Vote
from image_tournament.storage.jsonl_storage import JSONLStorage
from image_tournament.storage.memory_storage import InMemoryStorage


def make_vote(left: str = "a", right: str = "b", winner: str | None = "a", user: str = "u1", ts: float = 1.0) -> Vote:
    return Vote(
        prompt_id="p1",
        user_id=user,
        left_id=left,
        right_id=right,
        winner_id=winner,
        is_tie=winner is None,
        timestamp=ts,
    )


def make_quality() -> QualityReport:
    return QualityReport(
        consistency_score=100.0,
        transitivity_violations=0,
        vote_certainty=100.0,
        average_vote_time_seconds=4.5,
        flags=["too_fast"],
        vote_count=2,
    )


class TestJSONLStorage:
    """Test JSONLStorage behavior through public interface."""

    def test_insert_and_list_votes(self) -> None:
        """Inserted votes come back with every field intact."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLStorage(Path(temp_dir))
            vote = make_vote()
            tie = make_vote("a", "c", None, ts=2.0)

            # Act
            assert storage.insert_vote(vote) == vote.id
            _ = storage.insert_vote(tie)
            loaded = storage.list_votes("p1", "u1")

            # Assert
            assert loaded == [vote, tie], "Should round-trip both votes in insertion order"
            assert storage.get_vote_count() == 2

    def test_list_votes_filters_by_session(self) -> None:
        """Votes of other users are not returned."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLStorage(Path(temp_dir))
            mine = make_vote(user="u1")
            _ = storage.insert_vote(mine)
            _ = storage.insert_vote(make_vote(user="u2"))

            # Act
            loaded = storage.list_votes("p1", "u1")

            # Assert
            assert loaded == [mine]
            assert storage.list_votes("other-prompt", "u1") == []

    def test_duplicate_ordered_pair_conflicts(self) -> None:
        """A second vote for the same ordered pair is rejected."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLStorage(Path(temp_dir))
            first = make_vote()
            _ = storage.insert_vote(first)

            # Act
            with pytest.raises(VoteConflict) as exc_info:
                _ = storage.insert_vote(make_vote(winner="b"))

            # Assert
            assert exc_info.value.existing_vote_id == first.id
            assert storage.get_vote_count() == 1

    def test_reversed_pair_is_a_different_key(self) -> None:
        """Uniqueness is on the ordered pair."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLStorage(Path(temp_dir))
            _ = storage.insert_vote(make_vote("a", "b", "a"))

            # Act
            _ = storage.insert_vote(make_vote("b", "a", "b"))

            # Assert
            assert storage.get_vote_count() == 2

    def test_delete_appends_tombstone(self) -> None:
        """Deleting a vote keeps the log append-only and frees the pair."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLStorage(Path(temp_dir))
            vote = make_vote()
            _ = storage.insert_vote(vote)

            # Act
            storage.delete_vote(vote.id)
            replacement = make_vote(winner="b", ts=2.0)
            _ = storage.insert_vote(replacement)

            # Assert
            lines = storage.votes_path.read_text(encoding="utf-8").strip().splitlines()
            assert len(lines) == 3, "insert, delete, insert"
            assert json.loads(lines[1]) == {"op": "delete", "id": vote.id}
            assert storage.list_votes("p1", "u1") == [replacement]

    def test_skips_corrupted_lines(self) -> None:
        """Invalid lines are skipped without losing valid votes."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLStorage(Path(temp_dir))
            vote = make_vote()
            _ = storage.insert_vote(vote)
            with open(storage.votes_path, "a", encoding="utf-8") as f:
                _ = f.write("not json\n")
                _ = f.write('{"op": "insert", "id": "x"}\n')
                _ = f.write(json.dumps({
                    "op": "insert", "id": "y", "prompt_id": "p1", "user_id": "u1",
                    "left_id": "a", "right_id": "a", "winner_id": "a",
                }) + "\n")

            # Act
            loaded = storage.list_votes("p1", "u1")

            # Assert
            assert loaded == [vote], "Only the valid vote should survive"

    def test_votes_survive_reopen(self) -> None:
        """A fresh storage instance sees the same log."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            vote = make_vote()
            _ = JSONLStorage(Path(temp_dir)).insert_vote(vote)

            # Act
            loaded = JSONLStorage(Path(temp_dir)).list_votes("p1", "u1")

            # Assert
            assert loaded == [vote]

    def test_upsert_session_is_idempotent(self) -> None:
        """The same (prompt, user) maps to one session."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLStorage(Path(temp_dir))

            # Act
            first = storage.upsert_session("p1", "u1", 4)
            second = storage.upsert_session("p1", "u1", 5)
            other = storage.upsert_session("p1", "u2", 4)

            # Assert
            assert first == second
            assert other != first
            record = storage.get_session(first)
            assert record is not None
            assert record["estimated_total"] == 5
            assert record["completed_at"] is None

    def test_session_progress_and_completion(self) -> None:
        """Progress counts and final metrics are persisted."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLStorage(Path(temp_dir))
            session_id = storage.upsert_session("p1", "u1", 2)

            # Act
            storage.update_completed_count(session_id, 2)
            storage.mark_completed(session_id, make_quality())

            # Assert
            record = JSONLStorage(Path(temp_dir)).get_session(session_id)
            assert record is not None
            assert record["completed_comparisons"] == 2
            assert record["completed_at"] is not None
            assert record["final_metrics"] is not None
            assert record["final_metrics"]["flags"] == ["too_fast"]

    def test_unknown_session_raises(self) -> None:
        """Updating a session that was never opened is an error."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLStorage(Path(temp_dir))

            # Act & Assert
            with pytest.raises(KeyError):
                storage.update_completed_count("missing", 1)

    def test_submit_result_writes_jsonl(self) -> None:
        """Finalized rankings are appended with their top 3 ids."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            storage = JSONLStorage(Path(temp_dir))
            candidates = [Candidate(id=i, label=f"Model {i}") for i in "abc"]
            votes = [make_vote("a", "b", "a", ts=1.0), make_vote("a", "c", "a", ts=2.0)]
            result = rank_votes("p1", "u1", candidates, votes)

            # Act
            storage.submit_result(result)
            loaded = storage.load_results()

            # Assert
            assert len(loaded) == 1
            assert loaded[0]["prompt_id"] == "p1"
            assert loaded[0]["top3"][0] == "a"
            assert loaded[0]["ranked"][0]["elo"] == result.ranked[0].elo
            assert loaded[0]["quality"]["vote_count"] == 2


class TestInMemoryStorage:
    """Test InMemoryStorage behavior through public interface."""

    def test_duplicate_ordered_pair_conflicts(self) -> None:
        """Same constraint as the JSONL store."""
        # Arrange
        storage = InMemoryStorage()
        first = make_vote()
        _ = storage.insert_vote(first)

        # Act & Assert
        with pytest.raises(VoteConflict) as exc_info:
            _ = storage.insert_vote(make_vote(winner=None))
        assert exc_info.value.existing_vote_id == first.id

    def test_delete_frees_pair(self) -> None:
        """A deleted vote's pair can be voted again."""
        # Arrange
        storage = InMemoryStorage()
        first = make_vote()
        _ = storage.insert_vote(first)

        # Act
        storage.delete_vote(first.id)
        second = make_vote(winner="b")
        _ = storage.insert_vote(second)

        # Assert
        assert storage.list_votes("p1", "u1") == [second]

    def test_delete_unknown_vote_is_noop(self) -> None:
        """Deleting twice does not fail."""
        # Arrange
        storage = InMemoryStorage()

        # Act
        storage.delete_vote("missing")

        # Assert
        assert storage.votes == {}

    def test_sessions(self) -> None:
        """Session bookkeeping follows the store contract."""
        # Arrange
        storage = InMemoryStorage()

        # Act
        session_id = storage.upsert_session("p1", "u1", 3)
        storage.update_completed_count(session_id, 3)
        storage.mark_completed(session_id, make_quality())

        # Assert
        record = storage.sessions[session_id]
        assert storage.upsert_session("p1", "u1", 3) == session_id
        assert record.completed_comparisons == 3
        assert record.completed
        assert record.final_metrics == make_quality()
