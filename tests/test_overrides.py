"""
Tests for top 3 overrides.

Focus on validation and rank renumbering.
"""

import pytest

from image_tournament.controller import rank_votes
from image_tournament.exceptions import ValidationError
from image_tournament.models import Candidate, RankingResult, Vote
from image_tournament.overrides import apply_top3_override


def make_result() -> RankingResult:
    candidates = [Candidate(id=i, label=f"Model {i}") for i in "abcd"]
    votes = [
        Vote(prompt_id="p", user_id="u", left_id="a", right_id=x, winner_id="a", timestamp=float(t))
        for t, x in enumerate("bcd")
    ]
    votes.append(Vote(prompt_id="p", user_id="u", left_id="b", right_id="c", winner_id="b", timestamp=3.0))
    votes.append(Vote(prompt_id="p", user_id="u", left_id="c", right_id="d", winner_id="c", timestamp=4.0))
    return rank_votes("p", "u", candidates, votes)


class TestApplyTop3Override:
    """Test apply_top3_override behavior through public interface."""

    def test_computed_order(self) -> None:
        """Sanity check of the fixture's computed order."""
        assert [r.candidate.id for r in make_result().ranked] == ["a", "b", "c", "d"]

    def test_reorder_top3(self) -> None:
        """Named candidates lead; the rest keep their order; ranks renumbered."""
        # Arrange
        result = make_result()

        # Act
        overridden = apply_top3_override(result, ["c", "a", "b"])

        # Assert
        assert [r.candidate.id for r in overridden.ranked] == ["c", "a", "b", "d"]
        assert [r.rank for r in overridden.ranked] == [1, 2, 3, 4]
        assert overridden.ranked[0].elo == result.ranked[2].elo, "Annotations travel with the candidate"
        assert [r.candidate.id for r in result.ranked] == ["a", "b", "c", "d"], "Original is untouched"

    def test_swap_in_fourth_place(self) -> None:
        """A candidate outside the top 3 can be promoted."""
        overridden = apply_top3_override(make_result(), ["d"])
        assert [r.candidate.id for r in overridden.top3] == ["d", "a", "b"]

    @pytest.mark.parametrize("ordered_ids", [[], ["a", "b", "c", "d"], ["a", "a"], ["x"]])
    def test_invalid_overrides(self, ordered_ids: list[str]) -> None:
        """Empty, too long, repeated or unknown ids are rejected."""
        with pytest.raises(ValidationError):
            _ = apply_top3_override(make_result(), ordered_ids)
