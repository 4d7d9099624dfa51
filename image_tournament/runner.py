"""
Drive a tournament with a Voter.

Used by the CLI and tests to run a King-of-the-Hill session end to end
without a human in the loop.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from .controller import TournamentController
from .exceptions import DuplicatePair
from .interfaces import Voter
from .logging_config import get_logger
from .models import RankingResult

# Safety net against a controller that never completes
MAX_ROUNDS_FACTOR = 4


def play(controller: TournamentController, voter: Voter) -> int:
    """
    Ask the voter about every remaining pair until the tournament completes.

    Returns:
        Number of votes recorded by this call
    """
    logger: "Logger" = get_logger("runner")
    _ = controller.start()

    recorded = 0
    rounds = 0
    max_rounds = MAX_ROUNDS_FACTOR * len(controller.candidates)
    while not controller.is_complete():
        if rounds >= max_rounds:
            raise RuntimeError(f"Tournament did not complete within {max_rounds} rounds")
        rounds += 1

        state = controller.state
        champion, challenger = state.champion, state.challenger
        assert champion is not None and challenger is not None, "incomplete tournament without a pair"

        choice = voter.choose(champion, challenger)
        try:
            if choice is None:
                _ = controller.submit_tie()
            else:
                _ = controller.submit_vote(choice)
            recorded += 1
        except DuplicatePair as e:
            # Already recorded; the controller has resynchronised its pairing
            logger.info(f"{e}, continuing")

    logger.info(f"Tournament complete after {recorded} new votes")
    return recorded


def play_and_finalize(controller: TournamentController, voter: Voter) -> RankingResult:
    """Play every remaining pair and return the finalized ranking."""
    _ = play(controller, voter)
    return controller.finalize()
