"""
Availability Index for Clinic Domain

Committed time intervals per doctor and per room. Answers overlap queries
and admits a reservation only if nothing overlaps it. Mutations are
synchronous (no await in between the check and the insert) and callers
serialize them per subject through ``locked()``.
"""

import logging
from bisect import bisect_left, insort
from collections.abc import Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator

from clinicbook.core.infrastructure.locks import KeyedLocks

from ..value_objects import TimeInterval

logger = logging.getLogger(__name__)


class SubjectKind(str, Enum):
    DOCTOR = "doctor"
    ROOM = "room"


@dataclass(frozen=True, order=True)
class SubjectKey:
    """A doctor or a room. Sorts by (kind, id), the global lock order."""

    kind: SubjectKind
    id: int

    @classmethod
    def doctor(cls, doctor_id: int) -> "SubjectKey":
        return cls(SubjectKind.DOCTOR, doctor_id)

    @classmethod
    def room(cls, room_id: int) -> "SubjectKey":
        return cls(SubjectKind.ROOM, room_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True)
class Reservation:
    """Interval held on a subject by an appointment (the holder)."""

    subject: SubjectKey
    interval: TimeInterval
    holder_id: int


@dataclass(frozen=True)
class ReservationResult:
    """Outcome of a reservation attempt: ok, or the reservation it ran into."""

    ok: bool
    conflict: Reservation | None = None

    @classmethod
    def success(cls) -> "ReservationResult":
        return cls(ok=True)

    @classmethod
    def conflicted(cls, existing: Reservation) -> "ReservationResult":
        return cls(ok=False, conflict=existing)

    def __bool__(self) -> bool:
        return self.ok


def _start_of(reservation: Reservation):
    return reservation.interval.start


def reservations_for_appointment(
    appointment_id: int,
    doctor_id: int,
    room_id: int | None,
    interval: TimeInterval,
) -> list[Reservation]:
    """Doctor reservation plus the room reservation when a room is assigned."""
    reservations = [Reservation(SubjectKey.doctor(doctor_id), interval, appointment_id)]
    if room_id is not None:
        reservations.append(Reservation(SubjectKey.room(room_id), interval, appointment_id))
    return reservations


class AvailabilityIndex:
    """
    In-memory index of committed reservations.

    Non-empty reservations of one subject are pairwise disjoint, so kept
    sorted by start they are also sorted by end. An overlap query bisects
    on the requested end and walks back while intervals still end after the
    requested start: O(log n + k). Zero-length reservations are kept apart
    because they never overlap anything.

    Example:
        ```python
        index = AvailabilityIndex(lock_timeout=2.0)
        doctor = SubjectKey.doctor(1)
        async with index.locked(doctor):
            result = index.reserve(doctor, TimeInterval(nine, nine_twenty), holder_id=10)
        ```
    """

    def __init__(self, lock_timeout: float = 2.0):
        self._slots: dict[SubjectKey, list[Reservation]] = {}
        self._instants: dict[SubjectKey, list[Reservation]] = {}
        self._locks = KeyedLocks(timeout=lock_timeout, name="availability")

    # Locking

    @asynccontextmanager
    async def locked(self, *subjects: SubjectKey) -> AsyncIterator[None]:
        """Hold the per-subject locks of all given subjects."""
        keys = [(s.kind.value, s.id) for s in subjects]
        async with self._locks.hold(*keys):
            yield

    # Queries

    def find_overlapping(self, subject: SubjectKey, interval: TimeInterval) -> list[Reservation]:
        """Reservations of the subject overlapping the interval, in start order."""
        if interval.is_empty:
            return []
        slots = self._slots.get(subject)
        if not slots:
            return []

        found: list[Reservation] = []
        i = bisect_left(slots, interval.end, key=_start_of) - 1
        while i >= 0 and slots[i].interval.end > interval.start:
            found.append(slots[i])
            i -= 1
        found.reverse()
        return found

    def is_reserved(self, subject: SubjectKey, interval: TimeInterval) -> bool:
        """Whether any reservation of the subject overlaps the interval."""
        return bool(self.find_overlapping(subject, interval))

    def holds(self, reservation: Reservation) -> bool:
        """Whether exactly this reservation is committed."""
        bucket = self._bucket(reservation, create=False)
        return bucket is not None and reservation in bucket

    def reservations_for(self, subject: SubjectKey) -> list[Reservation]:
        items = list(self._slots.get(subject, [])) + list(self._instants.get(subject, []))
        return sorted(items, key=lambda r: (r.interval.start, r.interval.end, r.holder_id))

    def subjects(self) -> list[SubjectKey]:
        return sorted(set(self._slots) | set(self._instants))

    def __len__(self) -> int:
        return sum(len(v) for v in self._slots.values()) + sum(len(v) for v in self._instants.values())

    # Mutations

    def _bucket(self, reservation: Reservation, create: bool = True) -> list[Reservation] | None:
        table = self._instants if reservation.interval.is_empty else self._slots
        if create:
            return table.setdefault(reservation.subject, [])
        return table.get(reservation.subject)

    def _first_conflict(self, reservation: Reservation) -> Reservation | None:
        overlapping = self.find_overlapping(reservation.subject, reservation.interval)
        return overlapping[0] if overlapping else None

    def _insert(self, reservation: Reservation) -> None:
        bucket = self._bucket(reservation)
        if reservation.interval.is_empty:
            bucket.append(reservation)
        else:
            insort(bucket, reservation, key=_start_of)

    def reserve(self, subject: SubjectKey, interval: TimeInterval, holder_id: int) -> ReservationResult:
        """Insert the reservation unless something overlaps it."""
        return self.reserve_all([Reservation(subject, interval, holder_id)])

    def reserve_all(self, requests: Iterable[Reservation]) -> ReservationResult:
        """
        All-or-nothing reservation across subjects.

        Either every request is inserted, or none is and the first conflict
        found is returned.
        """
        requests = list(requests)
        for n, request in enumerate(requests):
            existing = self._first_conflict(request)
            if existing is not None:
                return ReservationResult.conflicted(existing)
            for earlier in requests[:n]:
                if earlier.subject == request.subject and earlier.interval.overlaps(request.interval):
                    return ReservationResult.conflicted(earlier)

        for request in requests:
            self._insert(request)
        return ReservationResult.success()

    def release(self, subject: SubjectKey, interval: TimeInterval, holder_id: int) -> bool:
        """Remove a reservation. Unknown reservations are a no-op (False)."""
        reservation = Reservation(subject, interval, holder_id)
        bucket = self._bucket(reservation, create=False)
        if not bucket or reservation not in bucket:
            return False
        bucket.remove(reservation)
        if not bucket:
            table = self._instants if interval.is_empty else self._slots
            del table[subject]
        return True

    def release_all(self, reservations: Iterable[Reservation]) -> int:
        return sum(1 for r in list(reservations) if self.release(r.subject, r.interval, r.holder_id))

    def replace(self, old: Iterable[Reservation], new: Iterable[Reservation]) -> ReservationResult:
        """
        Swap reservations atomically.

        The old reservations are released, the new ones reserved; if any new
        one conflicts the old ones are put back untouched.
        """
        old = [r for r in old if self.holds(r)]
        for reservation in old:
            self.release(reservation.subject, reservation.interval, reservation.holder_id)

        result = self.reserve_all(new)
        if not result.ok:
            for reservation in old:
                self._insert(reservation)
        return result

    def release_holder(self, holder_id: int) -> int:
        """Drop every reservation held by one appointment."""
        held = [r for s in self.subjects() for r in self.reservations_for(s) if r.holder_id == holder_id]
        return self.release_all(held)

    def clear(self) -> None:
        self._slots.clear()
        self._instants.clear()

    def load(self, reservations: Iterable[Reservation]) -> list[Reservation]:
        """
        Rebuild the index from persisted reservations.

        Entries that overlap one already loaded are skipped and returned.
        """
        self.clear()
        skipped: list[Reservation] = []
        for reservation in reservations:
            if not self.reserve_all([reservation]).ok:
                logger.warning(
                    f"Skipping overlapping persisted reservation {reservation.subject} "
                    f"{reservation.interval} held by appointment {reservation.holder_id}"
                )
                skipped.append(reservation)
        logger.info(f"Availability index loaded with {len(self)} reservations ({len(skipped)} skipped)")
        return skipped
