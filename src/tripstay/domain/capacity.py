"""Room occupancy and capacity calculations.

Check-in / check-out model: a stay occupies every night from ``start_date``
(inclusive) to ``end_date`` (exclusive). The checkout day is not a night, so
a guest leaving on the 5th and another arriving on the 5th never count
together.

All functions are pure; callers hand them an already-fetched snapshot of
the room's stays.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

from tripstay.domain.stay_dates import is_night_occupied, iter_nights


class Stay(Protocol):
    start_date: str
    end_date: str


@dataclass(frozen=True)
class RoomAvailability:
    room_id: str
    capacity: int
    peak_occupancy: int
    available_spots: int
    is_full: bool


def occupancy_on(stays: Iterable[Stay], night: str) -> int:
    return sum(1 for s in stays if is_night_occupied(s.start_date, s.end_date, night))


def occupants_on(stays: Iterable[Stay], day: str) -> list[Stay]:
    """Stays whose guest sleeps in the room on ``day``."""
    return [s for s in stays if is_night_occupied(s.start_date, s.end_date, day)]


def nightly_occupancy(stays: Sequence[Stay], range_start: str, range_end: str) -> dict[str, int]:
    """Guest count for every night of ``[range_start, range_end)``."""
    if range_start >= range_end:
        return {}
    return {night: occupancy_on(stays, night) for night in iter_nights(range_start, range_end)}


def peak_occupancy(stays: Sequence[Stay], range_start: str, range_end: str) -> int:
    """Maximum simultaneous guests across the nights of ``[range_start, range_end)``.

    Evaluates every night against every stay: O(nights x stays).
    """
    if range_start >= range_end or not stays:
        return 0
    peak = 0
    for night in iter_nights(range_start, range_end):
        count = occupancy_on(stays, night)
        if count > peak:
            peak = count
    return peak


def peak_occupancy_sweep(stays: Sequence[Stay], range_start: str, range_end: str) -> int:
    """Same result as ``peak_occupancy`` in O(n log n).

    Each stay, clipped to the range, becomes +1 at its first night and -1 at
    its checkout. At equal dates the -1 sorts first: a checkout frees the bed
    before the next check-in takes it.
    """
    if range_start >= range_end or not stays:
        return 0
    events: list[tuple[str, int]] = []
    for s in stays:
        first = max(s.start_date, range_start)
        stop = min(s.end_date, range_end)
        if first < stop:
            events.append((first, 1))
            events.append((stop, -1))
    events.sort()

    peak = current = 0
    for _, delta in events:
        current += delta
        if current > peak:
            peak = current
    return peak


def available_spots(capacity: int, peak: int) -> int:
    return max(0, capacity - peak)


def is_room_full(capacity: int, peak: int) -> bool:
    return peak >= capacity


def room_availability(
    room_id: str,
    capacity: int,
    stays: Sequence[Stay],
    range_start: str,
    range_end: str,
) -> RoomAvailability:
    peak = peak_occupancy_sweep(stays, range_start, range_end)
    return RoomAvailability(
        room_id=room_id,
        capacity=capacity,
        peak_occupancy=peak,
        available_spots=available_spots(capacity, peak),
        is_full=is_room_full(capacity, peak),
    )
