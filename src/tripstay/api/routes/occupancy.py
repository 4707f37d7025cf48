"""Occupancy endpoints.

Provides:
- GET /trips/{trip_id}/rooms/{room_id}/occupancy: peak, free spots, full flag
  and per-night guest counts for one room over [start, end)
- GET /trips/{trip_id}/occupants: stays sleeping in their room on a given day
"""

from __future__ import annotations

import os
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from tripstay.api.deps import store_dependency
from tripstay.domain import assignments as assignment_ops
from tripstay.infra.store import Store

router = APIRouter(prefix="/trips/{trip_id}", tags=["occupancy"])

DEFAULT_MAX_RANGE_DAYS = 366


def _max_range_days() -> int:
    return int(os.environ.get("MAX_OCCUPANCY_RANGE_DAYS", DEFAULT_MAX_RANGE_DAYS))


@router.get("/rooms/{room_id}/occupancy")
def get_room_occupancy(
    trip_id: str,
    room_id: str,
    start: date = Query(..., description="First night (YYYY-MM-DD, inclusive)"),
    end: date = Query(..., description="End of range (YYYY-MM-DD, exclusive)"),
    store: Store = Depends(store_dependency),
) -> dict:
    """Occupancy of one room.

    An empty range (start == end) reports zero occupancy.
    """
    if end < start:
        raise HTTPException(status_code=422, detail="end must not be before start")

    max_days = _max_range_days()
    if (end - start).days > max_days:
        raise HTTPException(
            status_code=422,
            detail=f"Date range cannot exceed {max_days} days",
        )

    report = assignment_ops.room_occupancy(
        store, trip_id=trip_id, room_id=room_id, range_start=start, range_end=end
    )
    availability = report.availability
    return {
        "room_id": room_id,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "capacity": availability.capacity,
        "peak_occupancy": availability.peak_occupancy,
        "available_spots": availability.available_spots,
        "is_full": availability.is_full,
        "nights": [{"date": night, "occupancy": count} for night, count in report.nights.items()],
    }


@router.get("/occupants")
def get_occupants(
    trip_id: str,
    day: date = Query(..., description="Night to inspect (YYYY-MM-DD)"),
    store: Store = Depends(store_dependency),
) -> dict:
    """Stays occupying a room on ``day``; guests checking out that day are excluded."""
    stays = assignment_ops.occupants_for_day(store, trip_id=trip_id, day=day)
    return {"day": day.isoformat(), "assignments": [s.to_record() for s in stays]}
