"""
Storage implementations.

Provides implementations of the VoteStore, SessionStore and ResultSink
interfaces for persisting tournament data.

Available implementations:
- InMemoryStorage: dict-backed, for tests and embedding
- JSONLStorage: persists votes to an append-only JSONL log, sessions to JSON
  and finalized results to JSONL
"""

from .jsonl_storage import JSONLStorage
from .memory_storage import InMemoryStorage

__all__ = ["InMemoryStorage", "JSONLStorage"]
