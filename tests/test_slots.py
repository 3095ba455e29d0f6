from datetime import date, datetime, time, timezone

import pytest
from dateutil import tz as dateutil_tz

from authoring.domain.errors import ConfirmationRequiredError, NoPendingDateError
from authoring.domain.models import RemoteTimeSlot
from authoring.form.fields import FormFieldState
from authoring.form.slots import TimeSlotDraft, TimeSlotEditor, to_utc_iso

DAY = date(2026, 11, 2)


def _editor(tz=timezone.utc):
    fields = FormFieldState()
    return fields, TimeSlotEditor(fields, tz=tz)


def test_add_slot_requires_selected_date():
    _, editor = _editor()
    with pytest.raises(NoPendingDateError):
        editor.add_slot(10, time(9, 0), time(11, 0))


def test_add_slot_appends_and_publishes_wire_list():
    fields, editor = _editor()
    editor.select_date(DAY)
    assert editor.dialog_open
    editor.add_slot(20, time(10, 0), time(12, 0))

    assert not editor.dialog_open
    assert fields.draft.time_slots == [
        {
            "date": "2026-11-02",
            "seats": 20,
            "startTime": "2026-11-02T10:00:00.000Z",
            "endTime": "2026-11-02T12:00:00.000Z",
        }
    ]


@pytest.mark.parametrize(
    "seats,start,end",
    [(0, time(9, 0), time(10, 0)), (5, time(10, 0), time(10, 0)), (5, time(11, 0), time(9, 0))],
)
def test_add_slot_rejects_bad_input(seats, start, end):
    fields, editor = _editor()
    editor.select_date(DAY)
    with pytest.raises(ValueError):
        editor.add_slot(seats, start, end)
    assert len(editor) == 0
    assert editor.dialog_open


def test_edit_keeps_new_slot_without_id():
    fields, editor = _editor()
    editor.select_date(DAY)
    editor.add_slot(20, time(10, 0), time(12, 0))
    edited = editor.edit_slot(0, 25, time(9, 30), time(12, 0))

    assert edited.id is None
    assert edited.date == DAY
    assert "id" not in fields.draft.time_slots[0]
    assert fields.draft.time_slots[0]["seats"] == 25


def test_edit_preserves_existing_id():
    fields, editor = _editor()
    editor.load(
        [
            TimeSlotDraft(
                id="slot-9",
                date=DAY,
                seats=10,
                start=editor.anchor(DAY, time(8, 0)),
                end=editor.anchor(DAY, time(9, 0)),
            )
        ]
    )
    editor.edit_slot(0, 12, time(8, 30), time(9, 30))

    assert editor.slots[0].id == "slot-9"
    assert fields.draft.time_slots[0]["id"] == "slot-9"
    assert fields.draft.time_slots[0]["startTime"] == "2026-11-02T08:30:00.000Z"


def test_invalid_index_raises_index_error():
    _, editor = _editor()
    with pytest.raises(IndexError):
        editor.edit_slot(0, 5, time(9, 0), time(10, 0))
    with pytest.raises(IndexError):
        editor.delete_slot(3, confirmed=True)


def test_delete_requires_confirmation():
    fields, editor = _editor()
    editor.select_date(DAY)
    editor.add_slot(20, time(10, 0), time(12, 0))

    with pytest.raises(ConfirmationRequiredError):
        editor.delete_slot(0)
    assert len(editor) == 1

    editor.delete_slot(0, confirmed=True)
    assert len(editor) == 0
    assert fields.draft.time_slots == []


def test_slots_keep_insertion_order():
    _, editor = _editor()
    for day in (date(2026, 11, 5), date(2026, 11, 3)):
        editor.select_date(day)
        editor.add_slot(4, time(14, 0), time(15, 0))
    assert [slot.date for slot in editor.slots] == [date(2026, 11, 5), date(2026, 11, 3)]


def test_local_times_are_sent_as_utc():
    lisbon = dateutil_tz.gettz("Europe/Lisbon")
    fields, editor = _editor(tz=lisbon)
    editor.select_date(date(2026, 7, 1))
    editor.add_slot(8, time(10, 0), time(12, 0))
    # Lisbon is UTC+1 in summer.
    assert fields.draft.time_slots[0]["startTime"] == "2026-07-01T09:00:00.000Z"


def test_load_remote_takes_date_from_start_time():
    fields, editor = _editor()
    editor.load_remote(
        [
            RemoteTimeSlot(
                id="slot-1",
                start_time=datetime(2026, 11, 2, 10, 0, tzinfo=timezone.utc),
                end_time=datetime(2026, 11, 2, 12, 0, tzinfo=timezone.utc),
                total_seats=20,
            )
        ]
    )
    slot = editor.slots[0]
    assert slot.id == "slot-1"
    assert slot.date == DAY
    assert slot.seats == 20
    assert fields.draft.time_slots[0]["id"] == "slot-1"


def test_to_utc_iso_uses_z_suffix():
    value = datetime(2026, 1, 1, 23, 15, 30, 123456, tzinfo=timezone.utc)
    assert to_utc_iso(value) == "2026-01-01T23:15:30.123Z"
