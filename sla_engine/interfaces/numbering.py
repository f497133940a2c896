"""Document numbering interfaces.

The allocator only proposes numbers; committing them is the job of a
NumberingStore supplied by the persistence layer, whose uniqueness
constraint is the actual mutual-exclusion mechanism.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SequenceAllocation(BaseModel):
    """A proposed document number. The stored counter is not touched."""

    model_config = ConfigDict(frozen=True)

    proposed_number: str
    counter_value_consumed: int = Field(ge=0)


class NumberingStore(ABC):
    """Persistence-side half of the numbering conflict protocol."""

    @abstractmethod
    def read_counter(self) -> int:
        """Return the current stored counter value."""

    @abstractmethod
    def advance_counter(self) -> int:
        """Increment the stored counter by one and return the refreshed value."""

    @abstractmethod
    def persist(self, allocation: SequenceAllocation) -> Any:
        """Store the document under ``allocation.proposed_number``.

        Raises:
            DuplicateRecordError: If the number violates the uniqueness constraint.
        """


class BaseSequenceAllocator(ABC):
    """Abstract base class for document number allocation."""

    @abstractmethod
    def propose(
        self,
        format_template: str,
        current_counter: int,
        context_vars: Mapping[str, Any] | None = None,
    ) -> SequenceAllocation:
        """Propose the document number for ``current_counter``.

        Deterministic given its arguments, so it is safe to compute
        speculatively before a transaction commits.
        """
