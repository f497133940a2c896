"""Document number allocation strategies."""

from sla_engine.strategies.numbering.allocator import (
    MAX_COMMIT_ATTEMPTS,
    SequenceAllocator,
    commit_with_retry,
    extract_sequence,
    next_counter,
)

__all__ = [
    "MAX_COMMIT_ATTEMPTS",
    "SequenceAllocator",
    "commit_with_retry",
    "extract_sequence",
    "next_counter",
]
