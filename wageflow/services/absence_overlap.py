"""Absence date-overlap validation.

Pure helpers that decide whether a proposed absence for an employee shares
any calendar day with the employee's existing absences. Nothing here touches
the database: callers load the existing absences (same company, same
employee, not cancelled) and pass them in.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union


DateInput = Union[date, str, None]

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# =============================================================================
# Date Primitives
# =============================================================================

def parse_iso_date(value: DateInput) -> Optional[date]:
    """
    Parse a ``YYYY-MM-DD`` string (or pass a ``date`` through).

    Returns None for empty, malformed or impossible dates such as
    ``2025-02-30`` instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not _ISO_DATE_RE.match(text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def normalize_range(start: date, end: date) -> Tuple[date, date]:
    """Return the range with its bounds in ascending order."""
    return (start, end) if start <= end else (end, start)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """
    Inclusive interval intersection.

    A shared boundary day counts as an overlap; adjacent ranges
    (one ends the day before the other starts) do not.
    """
    return a_start <= b_end and a_end >= b_start


# =============================================================================
# Result Types
# =============================================================================

@dataclass(frozen=True)
class AbsenceRange:
    """An existing absence reduced to its inclusive date range."""

    id: str
    start_date: DateInput
    end_date: DateInput


@dataclass(frozen=True)
class OverlapConflict:
    """An existing absence that overlaps the proposed range."""

    id: str
    start_date: DateInput
    end_date: DateInput

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "startDate": _as_text(self.start_date),
            "endDate": _as_text(self.end_date),
        }


@dataclass
class OverlapValidationResult:
    """Outcome of an overlap check. An overlap is reported, never raised."""

    has_overlap: bool
    conflicts: List[OverlapConflict] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasOverlap": self.has_overlap,
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


def _as_text(value: DateInput) -> Optional[str]:
    if isinstance(value, date):
        return value.isoformat()
    return value


# =============================================================================
# Overlap Validator
# =============================================================================

def validate_absence_overlap(
    proposed_start: DateInput,
    proposed_end: DateInput,
    existing_ranges: Iterable[AbsenceRange],
    exclude_id: Optional[str] = None,
) -> OverlapValidationResult:
    """
    Find every existing absence that overlaps a proposed range.

    Args:
        proposed_start: First day of the proposed absence
        proposed_end: Last day of the proposed absence
        existing_ranges: Active absences for the same employee and company
        exclude_id: ID of the absence being edited, never compared to itself

    Returns:
        OverlapValidationResult listing conflicts in input order. Unparseable
        proposed dates yield no overlap; date format is the caller's check.
    """
    start = parse_iso_date(proposed_start)
    end = parse_iso_date(proposed_end)

    if start is None or end is None:
        return OverlapValidationResult(has_overlap=False, conflicts=[])

    range_start, range_end = normalize_range(start, end)
    conflicts: List[OverlapConflict] = []

    for existing in existing_ranges:
        if exclude_id is not None and str(existing.id) == str(exclude_id):
            continue

        existing_start = parse_iso_date(existing.start_date)
        existing_end = parse_iso_date(existing.end_date)

        # Broken stored data is skipped
        if existing_start is None or existing_end is None:
            continue

        existing_start, existing_end = normalize_range(existing_start, existing_end)

        if ranges_overlap(range_start, range_end, existing_start, existing_end):
            conflicts.append(OverlapConflict(
                id=existing.id,
                start_date=existing.start_date,
                end_date=existing.end_date,
            ))

    return OverlapValidationResult(has_overlap=bool(conflicts), conflicts=conflicts)


# =============================================================================
# Row-to-Range Mapping
# =============================================================================

def read_row_field(row: Any, name: str) -> Any:
    """Read a field from an ORM row or a mapping."""
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def get_effective_end_date(row: Any) -> DateInput:
    """
    Effective last day of an absence row for overlap purposes.

    Order: ``last_day_actual``, then ``last_day_expected``, then
    ``first_day`` (an absence with only a start date is a single day).
    """
    return (
        read_row_field(row, "last_day_actual")
        or read_row_field(row, "last_day_expected")
        or read_row_field(row, "first_day")
    )


def map_absence_row_to_range(row: Any) -> AbsenceRange:
    """Map an ORM row or mapping to an AbsenceRange."""
    return AbsenceRange(
        id=str(read_row_field(row, "id")),
        start_date=read_row_field(row, "first_day"),
        end_date=get_effective_end_date(row),
    )


def map_absence_rows_to_ranges(rows: Iterable[Any]) -> List[AbsenceRange]:
    """
    Map absence rows to AbsenceRange objects.

    The caller scopes rows to one employee and company and drops
    cancelled rows before mapping.
    """
    return [map_absence_row_to_range(row) for row in rows]
