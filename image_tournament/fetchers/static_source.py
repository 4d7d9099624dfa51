"""
Static candidate source.

Serves candidate lists handed in by the caller.
"""

from collections.abc import Mapping, Sequence

from typing_extensions import override

from ..interfaces import CandidateSource
from ..models import Candidate, disambiguate_labels


class StaticCandidateSource(CandidateSource):
    """Candidate source backed by fixed lists per prompt."""

    def __init__(self, candidates: Mapping[str, Sequence[Candidate]]):
        self._candidates: dict[str, list[Candidate]] = {
            prompt_id: disambiguate_labels(items) for prompt_id, items in candidates.items()
        }

    @override
    def list_candidates(self, prompt_id: str) -> list[Candidate]:
        return list(self._candidates.get(prompt_id, []))
