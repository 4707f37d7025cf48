"""Room assignment endpoints.

GET    /trips/{trip_id}/assignments              → list (room_id / person_id filters)
POST   /trips/{trip_id}/assignments              → create
POST   /trips/{trip_id}/assignments/conflicts    → same-guest conflict check
POST   /trips/{trip_id}/assignments/preview      → conflict + capacity preview
PATCH  /trips/{trip_id}/assignments/{id}         → partial update
DELETE /trips/{trip_id}/assignments/{id}         → delete (204, idempotent)

Create and update answer 409 when the guest already has an overlapping
stay, unless ``allow_conflict=true``. Capacity is reported, never enforced.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict

from tripstay.api.deps import store_dependency
from tripstay.domain import assignments as assignment_ops
from tripstay.infra.store import Store

router = APIRouter(prefix="/trips/{trip_id}/assignments", tags=["assignments"])


# ── Schemas ───────────────────────────────────────────────────────────────────


class CreateAssignmentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_id: str
    person_id: str
    start_date: date
    end_date: date


class UpdateAssignmentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_id: str | None = None
    person_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class ConflictCheckRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    person_id: str
    start_date: date
    end_date: date
    exclude_assignment_id: str | None = None


class PreviewRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_id: str
    person_id: str
    start_date: date
    end_date: date
    exclude_assignment_id: str | None = None


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.get("")
def list_assignments(
    trip_id: str,
    room_id: str | None = Query(None),
    person_id: str | None = Query(None),
    store: Store = Depends(store_dependency),
) -> list[dict]:
    if room_id is not None:
        stays = assignment_ops.assignments_by_room(store, trip_id=trip_id, room_id=room_id)
        if person_id is not None:
            stays = [s for s in stays if s.person_id == person_id]
    elif person_id is not None:
        stays = assignment_ops.assignments_by_person(store, trip_id=trip_id, person_id=person_id)
    else:
        stays = assignment_ops.list_trip_assignments(store, trip_id=trip_id)
    return [s.to_record() for s in stays]


@router.post("", status_code=201)
def create_assignment(
    trip_id: str,
    body: CreateAssignmentRequest,
    allow_conflict: bool = Query(False),
    store: Store = Depends(store_dependency),
) -> dict:
    """Create a stay.

    The room and guest must belong to the trip (404/403 otherwise).
    """
    assignment, outcome = assignment_ops.book_assignment(
        store,
        trip_id=trip_id,
        room_id=body.room_id,
        person_id=body.person_id,
        start_date=body.start_date,
        end_date=body.end_date,
        allow_conflict=allow_conflict,
    )
    return {
        **assignment.to_record(),
        "conflict": outcome.conflict,
        "over_capacity": outcome.over_capacity,
    }


@router.post("/conflicts")
def check_conflict(
    trip_id: str,
    body: ConflictCheckRequest,
    store: Store = Depends(store_dependency),
) -> dict:
    conflict = assignment_ops.has_conflict(
        store,
        trip_id=trip_id,
        person_id=body.person_id,
        start_date=body.start_date,
        end_date=body.end_date,
        exclude_assignment_id=body.exclude_assignment_id,
    )
    return {"conflict": conflict}


@router.post("/preview")
def preview_assignment(
    trip_id: str,
    body: PreviewRequest,
    store: Store = Depends(store_dependency),
) -> dict:
    preview = assignment_ops.preview_assignment(
        store,
        trip_id=trip_id,
        room_id=body.room_id,
        person_id=body.person_id,
        start_date=body.start_date,
        end_date=body.end_date,
        exclude_assignment_id=body.exclude_assignment_id,
    )
    return {
        "conflict": preview.conflict,
        "room_id": preview.room_id,
        "capacity": preview.capacity,
        "peak_with_stay": preview.peak_with_stay,
        "over_capacity": preview.over_capacity,
    }


@router.patch("/{assignment_id}")
def update_assignment(
    trip_id: str,
    assignment_id: str,
    body: UpdateAssignmentRequest,
    allow_conflict: bool = Query(False),
    store: Store = Depends(store_dependency),
) -> dict:
    """Partially update a stay.

    A new room or guest must belong to the trip. Explicit nulls are rejected.
    """
    updated = assignment_ops.rebook_assignment(
        store,
        assignment_id=assignment_id,
        trip_id=trip_id,
        changes=body.model_dump(exclude_unset=True),
        allow_conflict=allow_conflict,
    )
    return updated.to_record()


@router.delete("/{assignment_id}", status_code=204)
def delete_assignment(
    trip_id: str,
    assignment_id: str,
    store: Store = Depends(store_dependency),
) -> Response:
    assignment_ops.delete_assignment(store, assignment_id=assignment_id, trip_id=trip_id)
    return Response(status_code=204)
