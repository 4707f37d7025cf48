"""Room endpoints.

GET    /trips/{trip_id}/rooms             → list in display order
POST   /trips/{trip_id}/rooms             → create (appended to the order)
PUT    /trips/{trip_id}/rooms/order       → reorder
PATCH  /trips/{trip_id}/rooms/{room_id}   → rename / change capacity
DELETE /trips/{trip_id}/rooms/{room_id}   → delete with its stays (204)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, Field

from tripstay.api.deps import store_dependency
from tripstay.domain import rooms as room_ops
from tripstay.infra.store import Store

router = APIRouter(prefix="/trips/{trip_id}/rooms", tags=["rooms"])


# ── Schemas ───────────────────────────────────────────────────────────────────


class CreateRoomRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    capacity: int = Field(ge=1)


class UpdateRoomRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    capacity: int | None = Field(default=None, ge=1)


class ReorderRoomsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_ids: list[str]


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.get("")
def list_rooms(trip_id: str, store: Store = Depends(store_dependency)) -> list[dict]:
    return [room.to_record() for room in room_ops.list_trip_rooms(store, trip_id=trip_id)]


@router.post("", status_code=201)
def create_room(
    trip_id: str,
    body: CreateRoomRequest,
    store: Store = Depends(store_dependency),
) -> dict:
    room = room_ops.create_room(store, trip_id=trip_id, name=body.name, capacity=body.capacity)
    return room.to_record()


@router.put("/order")
def reorder_rooms(
    trip_id: str,
    body: ReorderRoomsRequest,
    store: Store = Depends(store_dependency),
) -> list[dict]:
    """Reorder rooms; the body must list every room of the trip exactly once."""
    rooms = room_ops.reorder_rooms(store, trip_id=trip_id, room_ids=body.room_ids)
    return [room.to_record() for room in rooms]


@router.patch("/{room_id}")
def update_room(
    trip_id: str,
    room_id: str,
    body: UpdateRoomRequest,
    store: Store = Depends(store_dependency),
) -> dict:
    changes = body.model_dump(exclude_unset=True)
    room = room_ops.update_room(store, room_id=room_id, trip_id=trip_id, changes=changes)
    return room.to_record()


@router.delete("/{room_id}", status_code=204)
def delete_room(trip_id: str, room_id: str, store: Store = Depends(store_dependency)) -> Response:
    room_ops.delete_room(store, room_id=room_id, trip_id=trip_id)
    return Response(status_code=204)
