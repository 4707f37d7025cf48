"""Trip-scope ownership check shared by every mutating operation."""

from __future__ import annotations

from typing import Any

from tripstay.domain.errors import NotFoundError, OwnershipError


def verify_ownership(
    record: dict[str, Any] | None,
    *,
    entity: str,
    entity_id: str,
    expected_trip_id: str,
) -> dict[str, Any]:
    """Return ``record`` if it exists and belongs to ``expected_trip_id``.

    Must be called on a record read inside the same transaction as the
    mutation it guards.

    Raises:
        NotFoundError: ``record`` is None.
        OwnershipError: ``record["trip_id"]`` differs from the caller's trip.
    """
    if record is None:
        raise NotFoundError(entity, entity_id)
    if record["trip_id"] != expected_trip_id:
        raise OwnershipError(entity, entity_id, expected_trip_id)
    return record
