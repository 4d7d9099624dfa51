"""
King-of-the-Hill tournament controller.

Owns one (prompt, user) session: pairing, vote intake, deduplication, undo,
resume and completion detection. On finalize it replays the vote log through
Elo, cycle detection, ranking resolution and quality metrics.

The algorithmic transition (SessionState.advance) is pure; persistence goes
through the Vote/Session stores and is guarded by in-flight flags.
"""

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from .exceptions import (
    AlreadyFinalizing,
    ConfigurationError,
    DuplicatePair,
    InsufficientCandidates,
    InsufficientForRanking,
    NothingToUndo,
    StoreFailure,
    TournamentBusy,
    TournamentIncomplete,
    ValidationError,
    VoteConflict,
)
from .interfaces import ResultSink, SessionStore, VoteStore
from .logging_config import get_logger
from .metrics.quality import QualityMetricsCalculator
from .models import (
    Candidate,
    HistoryEntry,
    PairKey,
    RankingResult,
    SessionState,
    Vote,
    disambiguate_labels,
)
from .rankers.cycle_detector import CycleDetector
from .rankers.elo_ranker import DEFAULT_INITIAL_RATING, DEFAULT_K_FACTOR, EloRatingEngine
from .rankers.ranking_resolver import RankingResolver

MIN_CANDIDATES = 2          # Needed to form a first pair
MIN_RANKED_CANDIDATES = 3   # Needed for a top 3


@dataclass
class TournamentConfig:
    """Configuration for a tournament session."""

    k_factor: float = DEFAULT_K_FACTOR
    initial_rating: float = DEFAULT_INITIAL_RATING
    history_limit: int = 10  # undo depth
    top_n: int = 3  # candidates that get a head-to-head map

    def __post_init__(self):
        """Validate configuration."""
        if self.k_factor <= 0:
            raise ConfigurationError(f"k_factor must be positive, got {self.k_factor}")
        if self.history_limit < 0:
            raise ConfigurationError(f"history_limit must be >= 0, got {self.history_limit}")
        if self.top_n <= 0:
            raise ConfigurationError(f"top_n must be positive, got {self.top_n}")


class TournamentPhase(str, Enum):
    IDLE = "idle"
    PENDING_VOTE = "pending-vote"
    TRANSITIONING = "transitioning"
    COMPLETE = "complete"


def rank_votes(
    prompt_id: str,
    user_id: str,
    candidates: Sequence[Candidate],
    votes: Sequence[Vote],
    config: TournamentConfig | None = None,
) -> RankingResult:
    """
    Build a RankingResult from a vote log.

    Pure: Elo -> cycles -> resolution -> quality. Votes are taken in the
    order given, which should be chronological.
    """
    config = config or TournamentConfig()
    ratings = EloRatingEngine(config.k_factor, config.initial_rating).compute(candidates, votes)
    cycles = CycleDetector().detect(candidates, votes)
    ranked = RankingResolver(top_n=config.top_n).resolve(candidates, ratings, votes, cycles)
    quality = QualityMetricsCalculator().calculate(votes)
    return RankingResult(
        prompt_id=prompt_id,
        user_id=user_id,
        ranked=ranked,
        cycles=cycles.cycles,
        quality=quality,
        vote_count=len(votes),
    )


class TournamentController:
    """
    Stateful King-of-the-Hill session for one (prompt, user).

    Not safe for concurrent mutation: use one controller per key under
    external mutual exclusion. Re-entrant calls while a store call is
    outstanding fail fast with TournamentBusy / AlreadyFinalizing.
    """

    def __init__(
        self,
        prompt_id: str,
        user_id: str,
        candidates: Sequence[Candidate],
        vote_store: VoteStore,
        session_store: SessionStore | None = None,
        result_sink: ResultSink | None = None,
        config: TournamentConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the controller.

        Args:
            prompt_id: Prompt being judged
            user_id: Evaluator
            candidates: Candidates in pairing order
            vote_store: Vote persistence
            session_store: Optional session bookkeeping
            result_sink: Optional receiver of finalized rankings
            config: Tournament configuration
            clock: Timestamp source for new votes
        """
        if len(candidates) < MIN_CANDIDATES:
            raise InsufficientCandidates(
                f"Need at least {MIN_CANDIDATES} candidates to compare, found {len(candidates)}"
            )
        ids = [c.id for c in candidates]
        if len(set(ids)) != len(ids):
            raise ValidationError(f"Duplicate candidate ids: {ids}")

        self.prompt_id: str = prompt_id
        self.user_id: str = user_id
        self.candidates: list[Candidate] = disambiguate_labels(candidates)
        self.vote_store: VoteStore = vote_store
        self.session_store: SessionStore | None = session_store
        self.result_sink: ResultSink | None = result_sink
        self.config: TournamentConfig = config or TournamentConfig()
        self.clock: Callable[[], float] = clock

        self._state: SessionState = SessionState.initial(self.candidates)
        self._seen: set[PairKey] = set()
        self._session_id: str | None = None
        self._started: bool = False
        self._last_result: RankingResult | None = None

        # In-flight guards
        self.pending_vote: bool = False
        self.is_finalizing: bool = False
        self._transitioning: bool = False

        self.logger: "Logger" = get_logger("controller")

    # ------------------------------------------------------------------
    # Read-only views

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def seen_pairs(self) -> frozenset[PairKey]:
        return frozenset(self._seen)

    @property
    def estimated_total(self) -> int:
        return len(self.candidates) - 1

    @property
    def phase(self) -> TournamentPhase:
        if self.pending_vote:
            return TournamentPhase.PENDING_VOTE
        if self._transitioning or self.is_finalizing:
            return TournamentPhase.TRANSITIONING
        if self.is_complete():
            return TournamentPhase.COMPLETE
        return TournamentPhase.IDLE

    def is_complete(self) -> bool:
        """Challenger slot empty, queue exhausted and at least one vote recorded."""
        state = self._state
        return state.challenger is None and not state.queue and state.comparisons_completed >= 1

    def can_undo(self) -> bool:
        return bool(self._state.history)

    # ------------------------------------------------------------------
    # Lifecycle

    def start(self) -> SessionState:
        """
        Create or resume the session.

        With no stored votes the session starts fresh; otherwise the stored
        log is replayed to rebuild pairing, history and the seen-pair set.
        """
        if self._started:
            return self._state

        votes = self._list_votes()
        if votes:
            self._replay(votes)
            self.logger.info(
                f"Resuming {self.prompt_id}/{self.user_id}: {len(votes)} stored votes, "
                + f"{self._state.comparisons_completed} of {self.estimated_total} comparisons completed"
            )
        else:
            self._state = SessionState.initial(self.candidates)
            self._seen = set()
            self.logger.info(f"Starting {self.prompt_id}/{self.user_id} with {len(self.candidates)} candidates")

        self._open_session()
        self._started = True
        return self._state

    def reset(self) -> SessionState:
        """Delete every stored vote for this session and start over."""
        self._ensure_not_busy()
        self._transitioning = True
        try:
            for vote in self._list_votes():
                self.vote_store.delete_vote(vote.id)
        except StoreFailure:
            raise
        except Exception as e:
            self.logger.error(f"Reset failed for {self.prompt_id}/{self.user_id}: {e}")
            # Some deletes may have landed; follow whatever the store still holds
            self._resync()
            raise StoreFailure(f"Failed to delete votes: {e}") from e
        finally:
            self._transitioning = False

        self._state = SessionState.initial(self.candidates)
        self._seen = set()
        self._last_result = None
        self._open_session()
        self._started = True
        self.logger.info(f"Reset {self.prompt_id}/{self.user_id}")
        return self._state

    # ------------------------------------------------------------------
    # Voting

    def submit_vote(self, winner: Candidate) -> Vote:
        """
        Record that winner beat the other displayed candidate.

        Raises:
            DuplicatePair: the current pair already has a vote (treat as recorded)
            StoreFailure: the vote store failed; local state is rolled back
        """
        return self._record(winner.id)

    def submit_tie(self) -> Vote:
        """Record a tie; the champion keeps the title."""
        return self._record(None)

    def _record(self, winner_id: str | None) -> Vote:
        self._ensure_started()
        self._ensure_not_busy()

        state = self._state
        champion, challenger = state.champion, state.challenger
        if champion is None or challenger is None:
            raise TournamentIncomplete("No pair to vote on: the tournament is complete")
        if winner_id is not None and winner_id not in (champion.id, challenger.id):
            raise ValidationError(f"{winner_id} is not one of the displayed candidates")

        key = PairKey(champion.id, challenger.id)
        if key in self._seen:
            self.logger.debug(f"Pair {key} already voted, resynchronising from vote store")
            self._resync()
            raise DuplicatePair(str(key))

        vote = Vote(
            prompt_id=self.prompt_id,
            user_id=self.user_id,
            left_id=champion.id,
            right_id=challenger.id,
            winner_id=winner_id,
            is_tie=winner_id is None,
            timestamp=self.clock(),
        )

        # Optimistic reservation, rolled back if the store rejects the write
        entry = HistoryEntry(state_before=replace(state, history=()), vote_id=vote.id, pair_key=key)
        self._seen.add(key)
        self._state = state.push_history(entry, self.config.history_limit)
        self.pending_vote = True
        try:
            vote_id = self.vote_store.insert_vote(vote)
        except VoteConflict as e:
            self._seen.discard(key)
            self._state = state
            self.pending_vote = False
            self.logger.info(f"Pair {key} already stored, resynchronising from vote store")
            self._resync()
            raise DuplicatePair(str(key)) from e
        except Exception as e:
            self._seen.discard(key)
            self._state = state
            self.logger.error(f"Failed to store vote for {key}: {e}")
            raise StoreFailure(f"Failed to store vote for {key}: {e}") from e
        finally:
            self.pending_vote = False

        if vote_id != vote.id:
            vote = replace(vote, id=vote_id)
            history = self._state.history
            if history:
                self._state = replace(self._state, history=history[:-1] + (replace(entry, vote_id=vote_id),))

        self._state = self._state.advance(winner_id)
        outcome = "tie" if winner_id is None else f"winner={winner_id}"
        self.logger.info(
            f"Vote {key} {outcome} ({self._state.comparisons_completed}/{self.estimated_total})"
        )
        self._update_completed_count()
        return vote

    def undo(self) -> str:
        """
        Undo the most recent vote.

        Deletes it from the store and restores the exact pre-vote state.

        Returns:
            Id of the deleted vote
        """
        self._ensure_started()
        self._ensure_not_busy()

        history = self._state.history
        if not history:
            raise NothingToUndo("No votes to undo")
        entry = history[-1]

        self._transitioning = True
        try:
            self.vote_store.delete_vote(entry.vote_id)
        except Exception as e:
            self.logger.error(f"Failed to delete vote {entry.vote_id}: {e}")
            raise StoreFailure(f"Failed to delete vote {entry.vote_id}: {e}") from e
        finally:
            self._transitioning = False

        self._state = replace(entry.state_before, history=history[:-1])
        self._seen.discard(entry.pair_key)
        self.logger.info(f"Undid vote {entry.vote_id} for {entry.pair_key}")
        self._update_completed_count()
        return entry.vote_id

    # ------------------------------------------------------------------
    # Finalization

    def finalize(self) -> RankingResult:
        """
        Compute the final ranking and reset to a clean pre-tournament state.

        Calling it again without new votes returns the previous result.

        Raises:
            AlreadyFinalizing: a finalize is already in flight
            InsufficientForRanking: fewer than 3 candidates
            TournamentIncomplete: pairing has not finished
        """
        if self.is_finalizing:
            raise AlreadyFinalizing(f"Finalize already in flight for {self.prompt_id}/{self.user_id}")
        if self._last_result is not None and self._state.comparisons_completed == 0:
            return self._last_result

        self._ensure_started()
        self._ensure_not_busy()
        if len(self.candidates) < MIN_RANKED_CANDIDATES:
            raise InsufficientForRanking(
                f"Only {len(self.candidates)} candidates available, need at least {MIN_RANKED_CANDIDATES}"
            )
        if not self.is_complete():
            raise TournamentIncomplete(
                f"Only {self._state.comparisons_completed} of {self.estimated_total} comparisons completed"
            )

        self.is_finalizing = True
        try:
            votes = sorted(self._list_votes(), key=lambda v: v.timestamp)
            result = rank_votes(self.prompt_id, self.user_id, self.candidates, votes, self.config)
            self.logger.info(
                "Top 3: "
                + ", ".join(f"{r.candidate.label} (elo={r.elo}, wins={r.wins})" for r in result.top3)
            )
            try:
                if self.session_store is not None and self._session_id is not None:
                    self.session_store.mark_completed(self._session_id, result.quality)
                if self.result_sink is not None:
                    self.result_sink.submit_result(result)
            except Exception as e:
                self.logger.error(f"Failed to hand off result for {self.prompt_id}/{self.user_id}: {e}")
                raise StoreFailure(f"Failed to hand off result: {e}") from e
        finally:
            self.is_finalizing = False

        self._state = SessionState.initial(self.candidates)
        self._seen = set()
        self._last_result = result
        return result

    # ------------------------------------------------------------------
    # Internals

    def _ensure_started(self) -> None:
        if not self._started:
            _ = self.start()

    def _ensure_not_busy(self) -> None:
        if self.is_finalizing:
            raise TournamentBusy("Finalize in flight")
        if self.pending_vote:
            raise TournamentBusy("A vote is still being recorded")
        if self._transitioning:
            raise TournamentBusy("An undo or reset is in flight")

    def _list_votes(self) -> list[Vote]:
        try:
            return list(self.vote_store.list_votes(self.prompt_id, self.user_id))
        except Exception as e:
            self.logger.error(f"Failed to list votes for {self.prompt_id}/{self.user_id}: {e}")
            raise StoreFailure(f"Failed to list votes: {e}") from e

    def _replay(self, votes: Sequence[Vote]) -> None:
        """
        Rebuild state and the seen-pair set from a stored vote log.

        Pairing is replayed by looking up the stored vote for each current
        pair; votes that never match a pairing only mark their key as seen.
        """
        by_key = dict[PairKey, Vote]()
        for vote in sorted(votes, key=lambda v: v.timestamp):
            _ = by_key.setdefault(vote.pair_key, vote)

        state = SessionState.initial(self.candidates)
        while state.pair_key is not None and state.pair_key in by_key:
            vote = by_key.pop(state.pair_key)
            entry = HistoryEntry(state_before=replace(state, history=()), vote_id=vote.id, pair_key=vote.pair_key)
            state = state.push_history(entry, self.config.history_limit).advance(vote.winner_id)

        if by_key:
            self.logger.debug(f"{len(by_key)} stored votes do not match the replayed pairing: {list(map(str, by_key))}")
        self._state = state
        self._seen = {vote.pair_key for vote in votes}

    def _resync(self) -> None:
        """Replay the stored log after a partial failure; keep local state if the store is unreadable."""
        try:
            self._replay(self._list_votes())
        except StoreFailure:
            self.logger.error(f"Could not resynchronise {self.prompt_id}/{self.user_id} from vote store")

    def _open_session(self) -> None:
        if self.session_store is None:
            return
        try:
            self._session_id = self.session_store.upsert_session(
                self.prompt_id, self.user_id, self.estimated_total
            )
            self.session_store.update_completed_count(self._session_id, self._state.comparisons_completed)
        except Exception as e:
            self.logger.error(f"Failed to open session for {self.prompt_id}/{self.user_id}: {e}")
            raise StoreFailure(f"Failed to open session: {e}") from e

    def _update_completed_count(self) -> None:
        """Progress is advisory: a failure is logged and never undoes a committed vote."""
        if self.session_store is None or self._session_id is None:
            return
        try:
            self.session_store.update_completed_count(self._session_id, self._state.comparisons_completed)
        except Exception as e:
            self.logger.error(f"Failed to update progress of session {self._session_id}: {e}")
