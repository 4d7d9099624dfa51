"""
Core dataclasses for the image tournament system.

Defines candidates, votes, the King-of-the-Hill session state and the
finalized ranking artifacts, with validation.
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from collections.abc import Iterable, Sequence

from .exceptions import ValidationError


@dataclass(frozen=True)
class Candidate:
    """One model's image for the active prompt."""

    id: str
    label: str
    file_path: str | None = None

    def __post_init__(self) -> None:
        """Validate candidate data."""
        if not self.id:
            raise ValidationError("candidate id cannot be empty")
        if not self.label:
            raise ValidationError("candidate label cannot be empty")


def disambiguate_labels(candidates: Iterable[Candidate]) -> list[Candidate]:
    """
    Make labels unique within a session.

    The second and later occurrences of a label get a " (2)", " (3)", ...
    suffix. First occurrences and already-unique labels are left untouched.
    """
    result = list[Candidate]()
    seen = dict[str, int]()
    taken = set[str]()
    for candidate in candidates:
        label = candidate.label
        if label in taken:
            n = seen.get(label, 1) + 1
            while f"{label} ({n})" in taken:
                n += 1
            seen[label] = n
            label = f"{label} ({n})"
            candidate = replace(candidate, label=label)
        taken.add(label)
        result.append(candidate)
    return result


@dataclass(frozen=True, order=True)
class PairKey:
    """Ordered (champion, challenger) pair; at most one vote per key per session."""

    champion_id: str
    challenger_id: str

    def __str__(self) -> str:
        return f"{self.champion_id}->{self.challenger_id}"


@dataclass(frozen=True)
class Vote:
    """
    A single pairwise preference.

    Recorded in (champion, challenger) orientation: left_id is the champion
    at vote time, right_id the challenger.
    """

    prompt_id: str
    user_id: str
    left_id: str
    right_id: str
    winner_id: str | None
    is_tie: bool = False
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        """Validate vote data."""
        if not self.left_id or not self.right_id:
            raise ValidationError("left_id and right_id cannot be empty")
        if self.left_id == self.right_id:
            raise ValidationError(f"vote compares {self.left_id} with itself")
        if self.is_tie:
            if self.winner_id is not None:
                raise ValidationError("a tied vote cannot have a winner")
        elif self.winner_id not in (self.left_id, self.right_id):
            raise ValidationError(
                f"winner_id must be {self.left_id} or {self.right_id}, got {self.winner_id}"
            )

    @property
    def pair_key(self) -> PairKey:
        return PairKey(self.left_id, self.right_id)

    @property
    def loser_id(self) -> str | None:
        """Loser of a decisive vote, None for ties."""
        if self.is_tie:
            return None
        return self.right_id if self.winner_id == self.left_id else self.left_id


@dataclass(frozen=True)
class HistoryEntry:
    """Undo snapshot pushed for every recorded vote."""

    state_before: "SessionState"
    vote_id: str
    pair_key: PairKey


@dataclass(frozen=True)
class SessionState:
    """
    King-of-the-Hill session state.

    left/right are display slots. champion_id says which slot currently
    holds tournament leadership; the other slot is the challenger. Slots are
    positions, not identities, so a winning challenger stays where it is.
    """

    left: Candidate | None
    right: Candidate | None
    queue: tuple[Candidate, ...]
    champion_id: str | None
    comparisons_completed: int = 0
    history: tuple[HistoryEntry, ...] = ()

    @classmethod
    def initial(cls, candidates: Sequence[Candidate]) -> "SessionState":
        """Champion = first candidate, challenger = second, queue = rest."""
        first = candidates[0] if candidates else None
        second = candidates[1] if len(candidates) > 1 else None
        return cls(
            left=first,
            right=second,
            queue=tuple(candidates[2:]),
            champion_id=first.id if first else None,
        )

    @property
    def champion(self) -> Candidate | None:
        if self.left is not None and self.left.id == self.champion_id:
            return self.left
        if self.right is not None and self.right.id == self.champion_id:
            return self.right
        return None

    @property
    def challenger(self) -> Candidate | None:
        if self.left is not None and self.left.id == self.champion_id:
            return self.right
        return self.left

    @property
    def pair_key(self) -> PairKey | None:
        champion, challenger = self.champion, self.challenger
        if champion is None or challenger is None:
            return None
        return PairKey(champion.id, challenger.id)

    def advance(self, winner_id: str | None) -> "SessionState":
        """
        Return the state after a vote on the current pair.

        winner_id None means a tie, which the champion survives. The losing
        slot is refilled from the queue (or emptied when it is exhausted).
        """
        champion, challenger = self.champion, self.challenger
        assert champion is not None and challenger is not None, "no pair to advance"

        new_champion_id = challenger.id if winner_id == challenger.id else champion.id
        loser_id = champion.id if new_champion_id == challenger.id else challenger.id
        next_candidate = self.queue[0] if self.queue else None
        left, right = self.left, self.right
        if left is not None and left.id == loser_id:
            left = next_candidate
        else:
            right = next_candidate
        return replace(
            self,
            left=left,
            right=right,
            queue=self.queue[1:],
            champion_id=new_champion_id,
            comparisons_completed=self.comparisons_completed + 1,
        )

    def push_history(self, entry: HistoryEntry, limit: int) -> "SessionState":
        """Return a copy with entry pushed onto the bounded history stack."""
        history = (self.history + (entry,))[-limit:] if limit > 0 else ()
        return replace(self, history=history)


@dataclass(frozen=True)
class EloRating:
    """Replayed Elo rating for one candidate."""

    candidate_id: str
    rating: float
    wins: float

    @property
    def elo(self) -> int:
        """Rating rounded for display."""
        return int(round(self.rating))


@dataclass(frozen=True)
class CycleReport:
    """Preference cycles found in the win graph."""

    cycles: list[list[str]]
    in_cycle: frozenset[str]

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)


@dataclass(frozen=True)
class HeadToHead:
    """Decisive record of one candidate against another."""

    wins: int
    losses: int


@dataclass(frozen=True)
class RankedCandidate:
    """One row of the finalized ranking."""

    candidate: Candidate
    rank: int
    wins: float
    rating: float
    in_cycle: bool = False
    h2h_relationships: dict[str, HeadToHead] = field(default_factory=dict)

    @property
    def elo(self) -> int:
        return int(round(self.rating))


@dataclass(frozen=True)
class QualityReport:
    """Vote-quality metrics derived from a session's vote log."""

    consistency_score: float
    transitivity_violations: int
    vote_certainty: float
    average_vote_time_seconds: float
    flags: list[str] = field(default_factory=list)
    vote_count: int = 0
    tie_count: int = 0


@dataclass(frozen=True)
class RankingResult:
    """The externally visible artifact of a completed tournament."""

    prompt_id: str
    user_id: str
    ranked: list[RankedCandidate]
    cycles: list[list[str]]
    quality: QualityReport
    vote_count: int
    finalized_at: float = field(default_factory=time.time)

    @property
    def top3(self) -> list[RankedCandidate]:
        return self.ranked[:3]
