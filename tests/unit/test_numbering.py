"""Unit tests for the Sequence Allocator and the numbering conflict protocol."""

import datetime

import pytest

from sla_engine.core.errors import (
    DataValidationError,
    DuplicateRecordError,
    NumberingConflictError,
    TemplateError,
)
from sla_engine.interfaces.numbering import NumberingStore, SequenceAllocation
from sla_engine.strategies.numbering import (
    MAX_COMMIT_ATTEMPTS,
    SequenceAllocator,
    commit_with_retry,
    extract_sequence,
    next_counter,
)


class InMemoryNumberingStore(NumberingStore):
    """Numbering store backed by a set of taken numbers."""

    def __init__(self, counter: int, taken: set[str] | None = None) -> None:
        self.counter = counter
        self.taken = set(taken or ())
        self.persist_calls: list[str] = []
        self.advance_calls = 0

    def read_counter(self) -> int:
        return self.counter

    def advance_counter(self) -> int:
        self.advance_calls += 1
        self.counter += 1
        return self.counter

    def persist(self, allocation: SequenceAllocation) -> str:
        self.persist_calls.append(allocation.proposed_number)
        if allocation.proposed_number in self.taken:
            raise DuplicateRecordError()
        self.taken.add(allocation.proposed_number)
        return allocation.proposed_number


# =============================================================================
# Sequence Allocator Tests
# =============================================================================


class TestSequenceAllocator:
    """Test suite for SequenceAllocator.propose."""

    @pytest.fixture
    def allocator(self):
        """Create an allocator instance."""
        return SequenceAllocator()

    def test_zero_padded_counter(self, allocator):
        """Test the quote number format for a fixed year."""
        allocation = allocator.propose("Q-{YYYY}-{seq:04d}", 7, {"year": 2025})

        assert allocation.proposed_number == "Q-2025-0007"
        assert allocation.counter_value_consumed == 7

    def test_two_digit_counter(self, allocator):
        """Test a counter padded to four digits."""
        allocation = allocator.propose("Q-{YYYY}-{seq:04d}", 42, {"year": 2025})

        assert allocation.proposed_number.endswith("-0042")

    def test_deterministic(self, allocator):
        """Test the same inputs always give the same number."""
        first = allocator.propose("SLA-{YYYY}-{seq:04d}", 3, {"year": 2024})
        second = allocator.propose("SLA-{YYYY}-{seq:04d}", 3, {"year": 2024})

        assert first == second

    def test_year_from_issue_date(self, allocator):
        """Test the year is taken from the issue date when no year is given."""
        allocation = allocator.propose(
            "INV-{YYYY}-{seq:03d}", 5, {"issued_at": datetime.date(2023, 12, 31)}
        )

        assert allocation.proposed_number == "INV-2023-005"

    def test_year_defaults_to_current_utc_year(self, allocator):
        """Test the current year is used without context."""
        allocation = allocator.propose("Q-{YYYY}-{seq:04d}", 1)

        year = datetime.datetime.now(datetime.timezone.utc).year
        assert allocation.proposed_number == f"Q-{year}-0001"

    def test_wide_counter_is_not_truncated(self, allocator):
        """Test counters wider than the pad width are rendered in full."""
        allocation = allocator.propose("Q-{seq:04d}", 123456, {"year": 2025})

        assert allocation.proposed_number == "Q-123456"

    def test_unpadded_counter_and_literals(self, allocator):
        """Test the unpadded token and untouched literal text."""
        allocation = allocator.propose("{seq:d}/{YYYY} {other}", 9, {"year": 2025})

        assert allocation.proposed_number == "9/2025 {other}"

    def test_format_without_sequence_token(self, allocator):
        """Test a format that cannot encode the counter is rejected."""
        with pytest.raises(TemplateError):
            allocator.propose("Q-{YYYY}", 1, {"year": 2025})

    def test_negative_counter(self, allocator):
        """Test a negative counter is rejected."""
        with pytest.raises(DataValidationError):
            allocator.propose("Q-{seq:04d}", -1)

    def test_invalid_year(self, allocator):
        """Test a non-numeric year is rejected."""
        with pytest.raises(DataValidationError):
            allocator.propose("Q-{YYYY}-{seq:04d}", 1, {"year": "next"})

    # =========================================================================
    # Sequence Extraction Tests
    # =========================================================================

    @pytest.mark.parametrize(
        "number,expected",
        [("INV-2025-0042", 42), ("Q-2024-0001", 1), ("DRAFT", 0), ("", 0)],
    )
    def test_extract_sequence(self, number, expected):
        """Test the trailing digit run is the counter."""
        assert extract_sequence(number) == expected

    def test_next_counter(self):
        """Test the next counter follows the highest issued number."""
        assert next_counter(["Q-2025-0003", "Q-2025-0010", "Q-2024-0099"]) == 100
        assert next_counter([]) == 1


# =============================================================================
# Conflict Protocol Tests
# =============================================================================


class TestCommitWithRetry:
    """Test suite for the single-retry commit protocol."""

    FORMAT = "Q-{YYYY}-{seq:04d}"
    CONTEXT = {"year": 2025}

    @pytest.fixture
    def allocator(self):
        """Create an allocator instance."""
        return SequenceAllocator()

    def test_commits_first_proposal(self, allocator):
        """Test the common path persists once without advancing."""
        store = InMemoryNumberingStore(counter=7)

        allocation = commit_with_retry(allocator, store, self.FORMAT, self.CONTEXT)

        assert allocation.proposed_number == "Q-2025-0007"
        assert store.persist_calls == ["Q-2025-0007"]
        assert store.advance_calls == 0

    def test_retries_once_after_conflict(self, allocator):
        """Test a conflict advances the counter and re-proposes."""
        store = InMemoryNumberingStore(counter=7, taken={"Q-2025-0007"})

        allocation = commit_with_retry(allocator, store, self.FORMAT, self.CONTEXT)

        assert allocation.proposed_number == "Q-2025-0008"
        assert allocation.counter_value_consumed == 8
        assert store.persist_calls == ["Q-2025-0007", "Q-2025-0008"]
        assert store.advance_calls == 1

    def test_second_conflict_surfaces(self, allocator):
        """Test the protocol gives up after exactly one retry."""
        store = InMemoryNumberingStore(counter=7, taken={"Q-2025-0007", "Q-2025-0008"})

        with pytest.raises(NumberingConflictError) as exc_info:
            commit_with_retry(allocator, store, self.FORMAT, self.CONTEXT)

        assert len(store.persist_calls) == MAX_COMMIT_ATTEMPTS
        assert store.advance_calls == 1
        assert exc_info.value.number == "Q-2025-0008"
        assert exc_info.value.user_message == "Numbering conflict, please retry."
