"""Guest endpoints.

GET    /trips/{trip_id}/persons               → list
POST   /trips/{trip_id}/persons               → create
DELETE /trips/{trip_id}/persons/{person_id}   → delete with their stays (204)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict

from tripstay.api.deps import store_dependency
from tripstay.domain import persons as person_ops
from tripstay.infra.store import Store

router = APIRouter(prefix="/trips/{trip_id}/persons", tags=["persons"])


class CreatePersonRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str


@router.get("")
def list_persons(trip_id: str, store: Store = Depends(store_dependency)) -> list[dict]:
    return [p.to_record() for p in person_ops.list_trip_persons(store, trip_id=trip_id)]


@router.post("", status_code=201)
def create_person(
    trip_id: str,
    body: CreatePersonRequest,
    store: Store = Depends(store_dependency),
) -> dict:
    return person_ops.create_person(store, trip_id=trip_id, name=body.name).to_record()


@router.delete("/{person_id}", status_code=204)
def delete_person(
    trip_id: str,
    person_id: str,
    store: Store = Depends(store_dependency),
) -> Response:
    person_ops.delete_person(store, person_id=person_id, trip_id=trip_id)
    return Response(status_code=204)
