"""
Tests for core models.

Focus on validation, label disambiguation and the pure King-of-the-Hill transition.
"""

import pytest

from image_tournament.exceptions import ValidationError
from image_tournament.models import Candidate, HistoryEntry, PairKey, SessionState, Vote, disambiguate_labels


def make_candidates(*ids: str) -> list[Candidate]:
    return [Candidate(id=i, label=f"Model {i}") for i in ids]


class TestCandidate:
    """Test Candidate validation."""

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = Candidate(id="", label="Flux")

    def test_empty_label_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = Candidate(id="a", label="")


class TestDisambiguateLabels:
    """Test label disambiguation."""

    def test_unique_labels_untouched(self) -> None:
        """Already unique labels are returned as-is."""
        candidates = make_candidates("a", "b")
        assert disambiguate_labels(candidates) == candidates

    def test_repeated_labels_numbered(self) -> None:
        """Second and third occurrences get (2) and (3)."""
        # Arrange
        candidates = [Candidate(id=i, label="Flux") for i in "abc"]

        # Act
        labels = [c.label for c in disambiguate_labels(candidates)]

        # Assert
        assert labels == ["Flux", "Flux (2)", "Flux (3)"]

    def test_suffix_skips_taken_labels(self) -> None:
        """A literal "Flux (2)" already present pushes the duplicate to (3)."""
        # Arrange
        candidates = [
            Candidate(id="a", label="Flux"),
            Candidate(id="b", label="Flux (2)"),
            Candidate(id="c", label="Flux"),
        ]

        # Act
        labels = [c.label for c in disambiguate_labels(candidates)]

        # Assert
        assert labels == ["Flux", "Flux (2)", "Flux (3)"]
        assert len(set(labels)) == 3


class TestVote:
    """Test Vote validation and derived fields."""

    def test_self_comparison_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = Vote(prompt_id="p", user_id="u", left_id="a", right_id="a", winner_id="a")

    def test_winner_must_be_displayed(self) -> None:
        with pytest.raises(ValidationError):
            _ = Vote(prompt_id="p", user_id="u", left_id="a", right_id="b", winner_id="c")

    def test_tie_cannot_have_winner(self) -> None:
        with pytest.raises(ValidationError):
            _ = Vote(prompt_id="p", user_id="u", left_id="a", right_id="b", winner_id="a", is_tie=True)

    def test_decisive_vote_needs_winner(self) -> None:
        with pytest.raises(ValidationError):
            _ = Vote(prompt_id="p", user_id="u", left_id="a", right_id="b", winner_id=None)

    def test_derived_fields(self) -> None:
        """Pair key keeps orientation; loser is the other side."""
        vote = Vote(prompt_id="p", user_id="u", left_id="a", right_id="b", winner_id="b")
        assert vote.pair_key == PairKey("a", "b")
        assert str(vote.pair_key) == "a->b"
        assert vote.loser_id == "a"
        assert vote.id, "Ids are generated"

    def test_tie_has_no_loser(self) -> None:
        vote = Vote(prompt_id="p", user_id="u", left_id="a", right_id="b", winner_id=None, is_tie=True)
        assert vote.loser_id is None


class TestSessionState:
    """Test the pure pairing transition."""

    def test_initial_with_two_candidates(self) -> None:
        """Two candidates give an empty queue."""
        state = SessionState.initial(make_candidates("a", "b"))
        assert state.pair_key == PairKey("a", "b")
        assert state.queue == ()

    def test_advance_does_not_mutate(self) -> None:
        """advance returns a new state."""
        # Arrange
        state = SessionState.initial(make_candidates("a", "b", "c"))

        # Act
        after = state.advance("b")

        # Assert
        assert state.comparisons_completed == 0
        assert after.comparisons_completed == 1
        assert after.pair_key == PairKey("b", "c")

    def test_last_vote_empties_loser_slot(self) -> None:
        """With the queue exhausted the loser's slot is emptied."""
        # Arrange
        state = SessionState.initial(make_candidates("a", "b"))

        # Act
        after = state.advance("b")

        # Assert
        assert after.left is None
        assert after.champion is not None and after.champion.id == "b"
        assert after.challenger is None
        assert after.pair_key is None

    def test_history_is_bounded(self) -> None:
        """Only the most recent entries are kept."""
        # Arrange
        state = SessionState.initial(make_candidates("a", "b"))
        entries = [HistoryEntry(state_before=state, vote_id=str(i), pair_key=PairKey("a", "b")) for i in range(5)]

        # Act
        for entry in entries:
            state = state.push_history(entry, 3)

        # Assert
        assert [e.vote_id for e in state.history] == ["2", "3", "4"]

    def test_zero_history_limit_disables_undo(self) -> None:
        state = SessionState.initial(make_candidates("a", "b"))
        entry = HistoryEntry(state_before=state, vote_id="v", pair_key=PairKey("a", "b"))
        assert state.push_history(entry, 0).history == ()
