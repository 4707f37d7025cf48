"""Per-trip lookup maps of stays, by room and by guest.

The maps are a read model: rebuilt wholesale from the store on every
committed change to the active trip's assignments and on every scope
switch, never patched incrementally.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Literal

from tripstay.domain.models import ROOM_ASSIGNMENTS, RoomAssignment
from tripstay.infra.repositories.assignments_repository import list_for_trip
from tripstay.infra.store import ChangeEvent, Store
from tripstay.observability.logging import get_logger
from tripstay.observability.redaction import safe_log_context

logger = get_logger(__name__)

IndexState = Literal["stale", "fresh"]


class AssignmentIndex:
    """Room -> stays and guest -> stays for one trip at a time.

    Lookups are dict hits returning tuples ordered by ``start_date``.
    """

    def __init__(self, store: Store, trip_id: str | None = None) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._scope: str | None = None
        self._generation = 0
        self._by_room: dict[str, tuple[RoomAssignment, ...]] = {}
        self._by_person: dict[str, tuple[RoomAssignment, ...]] = {}
        self._state: IndexState = "stale"
        self._unsubscribe = store.changes.subscribe(self._on_change)
        if trip_id is not None:
            self.set_scope(trip_id)

    @property
    def scope(self) -> str | None:
        return self._scope

    @property
    def state(self) -> IndexState:
        return self._state

    def set_scope(self, trip_id: str | None) -> None:
        """Switch to another trip (or none); both maps are discarded."""
        with self._lock:
            self._scope = trip_id
            self._generation += 1
            self._by_room = {}
            self._by_person = {}
            self._state = "stale"
        if trip_id is not None:
            self.rebuild()

    def rebuild(self) -> bool:
        """Reload both maps for the current scope.

        Returns False when the scope changed while the read was in flight;
        that result is dropped and the newer scope's rebuild wins.
        """
        with self._lock:
            scope = self._scope
            generation = self._generation
        if scope is None:
            return False

        with self._store.transaction() as tx:
            stays = list_for_trip(tx, scope)

        by_room: dict[str, list[RoomAssignment]] = defaultdict(list)
        by_person: dict[str, list[RoomAssignment]] = defaultdict(list)
        for stay in stays:
            by_room[stay.room_id].append(stay)
            by_person[stay.person_id].append(stay)

        with self._lock:
            if generation != self._generation:
                logger.debug(
                    "index rebuild discarded",
                    extra={"extra_fields": safe_log_context(trip_id=scope)},
                )
                return False
            self._by_room = {k: tuple(v) for k, v in by_room.items()}
            self._by_person = {k: tuple(v) for k, v in by_person.items()}
            self._state = "fresh"

        logger.debug(
            "index rebuilt",
            extra={"extra_fields": safe_log_context(trip_id=scope, stays=len(stays))},
        )
        return True

    def _on_change(self, event: ChangeEvent) -> None:
        scope = self._scope
        if scope is None or ROOM_ASSIGNMENTS not in event.tables:
            return
        if scope not in event.trip_ids:
            return
        with self._lock:
            # Bump so an older in-flight rebuild cannot overwrite this one.
            self._generation += 1
            self._state = "stale"
        self.rebuild()

    def assignments_by_room(self, room_id: str) -> tuple[RoomAssignment, ...]:
        return self._by_room.get(room_id, ())

    def assignments_by_person(self, person_id: str) -> tuple[RoomAssignment, ...]:
        return self._by_person.get(person_id, ())

    def close(self) -> None:
        self._unsubscribe()
