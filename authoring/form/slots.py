"""Time-slot editing for the authoring form.

Slots are kept in insertion order. Every mutation re-derives the wire list
and writes it into the draft's ``time_slots`` field.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional

import structlog

from authoring.domain.errors import ConfirmationRequiredError, NoPendingDateError
from authoring.domain.models import RemoteTimeSlot
from authoring.form.fields import FormFieldState

LOGGER = structlog.get_logger(__name__)


def to_utc_iso(value: datetime) -> str:
    """Serialize an aware datetime as UTC with millisecond precision and a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class TimeSlotDraft:
    """One bookable interval; ``id`` is only set for slots the backend already knows."""

    date: date
    seats: int
    start: datetime
    end: datetime
    id: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "date": self.date.isoformat(),
            "seats": self.seats,
            "startTime": to_utc_iso(self.start),
            "endTime": to_utc_iso(self.end),
        }
        if self.id:
            payload = {"id": self.id, **payload}
        return payload


class TimeSlotEditor:
    """Adds, edits and deletes slots and keeps the draft's wire list current."""

    def __init__(self, fields: FormFieldState, *, tz: tzinfo = timezone.utc) -> None:
        self._fields = fields
        self._tz = tz
        self._slots: List[TimeSlotDraft] = []
        self.pending_date: Optional[date] = None

    @property
    def slots(self) -> List[TimeSlotDraft]:
        return list(self._slots)

    @property
    def dialog_open(self) -> bool:
        return self.pending_date is not None

    def __len__(self) -> int:
        return len(self._slots)

    def select_date(self, value: Optional[date]) -> None:
        """Set the date for the next slot; clearing it closes the add dialog."""
        self.pending_date = value

    def add_slot(self, seats: int, start_time: time, end_time: time) -> TimeSlotDraft:
        if self.pending_date is None:
            raise NoPendingDateError()
        start, end = self._resolve(self.pending_date, seats, start_time, end_time)
        slot = TimeSlotDraft(date=self.pending_date, seats=seats, start=start, end=end)
        self._slots.append(slot)
        self._publish()
        self.pending_date = None
        LOGGER.info("slot_added", index=len(self._slots) - 1, date=slot.date.isoformat(), seats=seats)
        return slot

    def edit_slot(self, index: int, seats: int, start_time: time, end_time: time) -> TimeSlotDraft:
        current = self._at(index)
        start, end = self._resolve(current.date, seats, start_time, end_time)
        updated = TimeSlotDraft(date=current.date, seats=seats, start=start, end=end, id=current.id)
        self._slots[index] = updated
        self._publish()
        LOGGER.info("slot_edited", index=index, slot_id=updated.id)
        return updated

    def delete_slot(self, index: int, *, confirmed: bool = False) -> TimeSlotDraft:
        slot = self._at(index)
        if not confirmed:
            raise ConfirmationRequiredError("Deleting a time slot")
        del self._slots[index]
        self._publish()
        LOGGER.info("slot_deleted", index=index, slot_id=slot.id)
        return slot

    def load(self, slots: Iterable[TimeSlotDraft]) -> None:
        """Replace all slots, e.g. when an existing event is opened."""
        self._slots = list(slots)
        self.pending_date = None
        self._publish()

    def load_remote(self, slots: Iterable[RemoteTimeSlot]) -> None:
        converted = []
        for remote in slots:
            start = remote.start_time.astimezone(self._tz)
            converted.append(
                TimeSlotDraft(
                    id=remote.id,
                    date=start.date(),
                    seats=remote.total_seats,
                    start=start,
                    end=remote.end_time.astimezone(self._tz),
                )
            )
        self.load(converted)

    def anchor(self, on: date, at: time) -> datetime:
        """Resolve a wall-clock time against a calendar date in the editor timezone."""
        return datetime.combine(on, at, tzinfo=self._tz)

    def to_wire(self) -> List[Dict[str, Any]]:
        return [slot.to_wire() for slot in self._slots]

    def _at(self, index: int) -> TimeSlotDraft:
        if not 0 <= index < len(self._slots):
            raise IndexError(f"No time slot at index {index} ({len(self._slots)} slots)")
        return self._slots[index]

    def _resolve(self, on: date, seats: int, start_time: time, end_time: time) -> tuple[datetime, datetime]:
        if seats < 1:
            raise ValueError("Number of seats must be at least 1")
        start = self.anchor(on, start_time)
        end = self.anchor(on, end_time)
        if end <= start:
            raise ValueError("End time must be after start time")
        return start, end

    def _publish(self) -> None:
        self._fields.set_field("time_slots", self.to_wire())
