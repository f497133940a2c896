"""Document number allocation.

Number formats are a fixed micro-grammar, separate from template
placeholders:

    {YYYY}      four-digit year
    {seq:0Nd}   counter zero-padded to N digits
    {seq:d}     counter, unpadded

Any other text passes through unchanged. A counter wider than the pad
width is rendered in full, never truncated.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from typing import Any

from sla_engine.core.errors import (
    DataValidationError,
    DuplicateRecordError,
    NumberingConflictError,
    TemplateError,
)
from sla_engine.interfaces.numbering import BaseSequenceAllocator, NumberingStore, SequenceAllocation

logger = logging.getLogger(__name__)

FORMAT_TOKEN = re.compile(r"\{(?:(?P<year>YYYY)|seq:(?:0(?P<width>\d+))?d)\}")
TRAILING_DIGITS = re.compile(r"(\d+)$")

# One initial attempt plus exactly one retry
MAX_COMMIT_ATTEMPTS = 2


def has_sequence_token(format_template: str) -> bool:
    return any(m.group("year") is None for m in FORMAT_TOKEN.finditer(format_template))


def extract_sequence(number: str) -> int:
    """Counter value encoded in an existing document number.

    >>> extract_sequence("INV-2025-0042")
    42
    """
    match = TRAILING_DIGITS.search(number or "")
    return int(match.group(1)) if match else 0


def next_counter(existing_numbers: Iterable[str]) -> int:
    """The counter following the highest one already issued."""
    return max((extract_sequence(n) for n in existing_numbers), default=0) + 1


class SequenceAllocator(BaseSequenceAllocator):
    """Renders number formats; never touches the stored counter."""

    def propose(
        self,
        format_template: str,
        current_counter: int,
        context_vars: Mapping[str, Any] | None = None,
    ) -> SequenceAllocation:
        if isinstance(current_counter, bool) or not isinstance(current_counter, int):
            raise DataValidationError(f"Counter must be an integer, got {current_counter!r}")
        if current_counter < 0:
            raise DataValidationError(f"Counter must not be negative, got {current_counter}")
        if not has_sequence_token(format_template):
            raise TemplateError(
                "Invalid document number format",
                detail=f"Format {format_template!r} has no sequence token",
            )

        year = self._resolve_year(context_vars or {})

        def render(match: re.Match[str]) -> str:
            if match.group("year"):
                return f"{year:04d}"
            width = int(match.group("width") or 0)
            return str(current_counter).zfill(width)

        number = FORMAT_TOKEN.sub(render, format_template)
        logger.debug(f"Proposed document number {number} for counter {current_counter}")

        return SequenceAllocation(proposed_number=number, counter_value_consumed=current_counter)

    @staticmethod
    def _resolve_year(context_vars: Mapping[str, Any]) -> int:
        """Explicit year, then the issue date's year, then the current UTC year."""
        year = context_vars.get("year")
        if year is not None:
            try:
                return int(year)
            except (TypeError, ValueError) as e:
                raise DataValidationError(f"Year must be an integer, got {year!r}") from e

        issued_at = context_vars.get("issued_at")
        if isinstance(issued_at, (date, datetime)):
            return issued_at.year
        if isinstance(issued_at, str):
            try:
                return datetime.fromisoformat(issued_at).year
            except ValueError as e:
                raise DataValidationError(f"issued_at is not an ISO date: {issued_at!r}") from e

        return datetime.now(timezone.utc).year


def commit_with_retry(
    allocator: BaseSequenceAllocator,
    store: NumberingStore,
    format_template: str,
    context_vars: Mapping[str, Any] | None = None,
) -> SequenceAllocation:
    """Propose and persist a document number, retrying once on a conflict.

    On a uniqueness violation the stored counter is advanced by one and the
    number is proposed again from the refreshed counter. A second violation
    is surfaced rather than retried.

    Args:
        allocator: Renders the number for a counter value.
        store: Reads and advances the counter and persists the document.
        format_template: Number format, e.g. ``Q-{YYYY}-{seq:04d}``.
        context_vars: Year context passed through to ``propose``.

    Returns:
        The allocation that was persisted.

    Raises:
        NumberingConflictError: If the retried number is also taken.
    """
    allocation = allocator.propose(format_template, store.read_counter(), context_vars)
    try:
        store.persist(allocation)
    except DuplicateRecordError:
        logger.warning(
            f"Document number {allocation.proposed_number} already taken, "
            f"advancing counter and retrying"
        )
    else:
        logger.info(f"Committed document number {allocation.proposed_number}")
        return allocation

    retry = allocator.propose(format_template, store.advance_counter(), context_vars)
    try:
        store.persist(retry)
    except DuplicateRecordError as e:
        logger.error(
            f"Document number {retry.proposed_number} still conflicts "
            f"after {MAX_COMMIT_ATTEMPTS} attempts"
        )
        raise NumberingConflictError(retry.proposed_number) from e

    logger.info(f"Committed document number {retry.proposed_number} on retry")
    return retry
