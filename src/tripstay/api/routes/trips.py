"""Trip endpoints.

POST   /trips              → create
GET    /trips/{trip_id}    → read
DELETE /trips/{trip_id}    → cascade delete (204)
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict

from tripstay.api.deps import store_dependency
from tripstay.domain import trips as trip_ops
from tripstay.infra.store import Store

router = APIRouter(prefix="/trips", tags=["trips"])


class CreateTripRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    start_date: date | None = None
    end_date: date | None = None


@router.post("", status_code=201)
def create_trip(body: CreateTripRequest, store: Store = Depends(store_dependency)) -> dict:
    trip = trip_ops.create_trip(
        store, name=body.name, start_date=body.start_date, end_date=body.end_date
    )
    return trip.to_record()


@router.get("/{trip_id}")
def get_trip(trip_id: str, store: Store = Depends(store_dependency)) -> dict:
    return trip_ops.get_trip_by_id(store, trip_id=trip_id).to_record()


@router.delete("/{trip_id}", status_code=204)
def delete_trip(trip_id: str, store: Store = Depends(store_dependency)) -> Response:
    """Delete the trip with all its rooms, guests and stays."""
    trip_ops.delete_trip(store, trip_id=trip_id)
    return Response(status_code=204)
