"""Same-person stay conflict detection.

A person cannot be registered in two stays that share a calendar day. The
check uses the inclusive ``stay_conflicts`` rule, so checking out of one room
and into another on the same day is a conflict. Room capacity uses a
different rule; see ``tripstay.domain.capacity``.

The detector is advisory: it answers True/False and leaves blocking, warning
or ignoring to the caller.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable

from tripstay.domain.models import ROOM_ASSIGNMENTS, RoomAssignment
from tripstay.domain.stay_dates import normalize_date, stay_conflicts
from tripstay.infra.store import StoreTxn
from tripstay.observability.logging import get_logger
from tripstay.observability.redaction import safe_log_context

logger = get_logger(__name__)


def find_conflicting_stay(
    stays: Iterable[RoomAssignment],
    start_date: str,
    end_date: str,
    exclude_assignment_id: str | None = None,
) -> RoomAssignment | None:
    """Return the earliest stay overlapping ``[start_date, end_date]``, if any.

    Args:
        stays: Existing stays of one person.
        start_date: Proposed check-in (normalized).
        end_date: Proposed checkout (normalized).
        exclude_assignment_id: Stay to ignore, used when re-checking a stay
            being edited against the others.
    """
    for stay in sorted(stays, key=lambda s: (s.start_date, s.id)):
        if exclude_assignment_id is not None and stay.id == exclude_assignment_id:
            continue
        if stay_conflicts(start_date, end_date, stay.start_date, stay.end_date):
            return stay
    return None


def has_conflict(
    tx: StoreTxn,
    *,
    trip_id: str,
    person_id: str,
    start_date: date | str,
    end_date: date | str,
    exclude_assignment_id: str | None = None,
) -> bool:
    """Check whether a proposed stay overlaps another stay of the same person.

    Args:
        tx: Open store transaction (caller manages it).
        trip_id: Trip scope of the lookup.
        person_id: Person whose stays are checked.
        start_date: Proposed check-in day.
        end_date: Proposed checkout day.
        exclude_assignment_id: Stay to leave out of the comparison. An id
            that does not belong to this person/trip is simply never met.

    Returns:
        True if any other stay of the person shares a calendar day with the
        proposed one.
    """
    start_s = normalize_date(start_date)
    end_s = normalize_date(end_date)
    rows = tx.select(
        ROOM_ASSIGNMENTS,
        where={"trip_id": trip_id, "person_id": person_id},
        order_by=("start_date", "id"),
    )
    conflicting = find_conflicting_stay(
        (RoomAssignment.from_record(r) for r in rows),
        start_s,
        end_s,
        exclude_assignment_id,
    )
    if conflicting is None:
        return False

    logger.warning(
        "stay conflict detected",
        extra={
            "extra_fields": safe_log_context(
                trip_id=trip_id,
                person_id=person_id,
                requested_start=start_s,
                requested_end=end_s,
                conflicting_assignment_id=conflicting.id,
                existing_start=conflicting.start_date,
                existing_end=conflicting.end_date,
            )
        },
    )
    return True
