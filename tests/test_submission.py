import asyncio

import pytest

from authoring.domain.errors import (
    AuthResolutionFailure,
    ConfirmationRequiredError,
    LoadFailure,
    NotAuthorizedError,
    PersistFailure,
)
from authoring.domain.models import CallerIdentity, Category, EventStatus
from authoring.form.session import AuthoringSession
from authoring.orchestrator.submission import SubmissionState
from authoring.quality.richtext import flatten_rich_text
from authoring.quality.validate import validate


def test_publish_creates_event_once_with_caller_attached(filled_session, event_api, calls):
    session = filled_session()
    assert validate(session.fields.draft, session.slots.slots) == []
    assert len(flatten_rich_text(session.fields.draft.description)) == 120

    result = asyncio.run(session.submit("published"))

    assert result.ok
    assert [name for name, _ in calls] == ["resolve_identity", "create_event"]
    payload = event_api.payloads[0]
    assert payload.status is EventStatus.PUBLISHED
    assert payload.coach_id == "coach-7"
    assert payload.coach_name == "Rita Marques"
    wire = payload.to_wire()
    assert wire["coachId"] == "coach-7"
    assert wire["categories"] == ["BEACH_CLEANUP"]
    assert wire["timeSlots"][0]["seats"] == 20
    assert "id" not in wire["timeSlots"][0]
    assert isinstance(wire["description"], str)
    assert session.notices.last.description == "Event published successfully"
    assert session.navigator.location == "/my-events"
    assert session.fields.draft.status is EventStatus.PUBLISHED


def test_state_machine_walks_through_submission(filled_session):
    session = filled_session()
    asyncio.run(session.submit(EventStatus.DRAFT))
    assert session.orchestrator.transitions == [
        SubmissionState.IDLE,
        SubmissionState.VALIDATING,
        SubmissionState.SUBMITTING,
        SubmissionState.SUCCEEDED,
    ]
    assert session.notices.last.description == "Event draft saved successfully"


def test_existing_event_is_updated_not_created(filled_session, event_api, calls):
    session = filled_session(event_id="evt-42")
    assert session.mode == "edit"
    result = asyncio.run(session.submit("draft"))

    assert result.ok
    assert ("update_event", "evt-42") in calls
    assert not any(name == "create_event" for name, _ in calls)


def test_persist_failure_keeps_draft_for_retry(filled_session, event_api):
    session = filled_session()
    event_api.fail = True
    before = session.fields.snapshot()

    result = asyncio.run(session.submit("published"))

    assert not result.ok
    assert isinstance(result.error, PersistFailure)
    assert session.fields.draft == before
    assert session.orchestrator.state is SubmissionState.IDLE
    assert session.navigator.history == []
    assert session.notices.last.description == "Failed to save event. Please try again."

    event_api.fail = False
    assert asyncio.run(session.submit("published")).ok
    assert len(event_api.payloads) == 2


def test_identity_failure_stops_before_persisting(filled_session, auth, calls):
    session = filled_session()
    auth.fail = True
    result = asyncio.run(session.submit("published"))

    assert isinstance(result.error, AuthResolutionFailure)
    assert [name for name, _ in calls] == ["resolve_identity"]
    assert session.metrics.get("submissions_failed") == 1


def test_on_success_callback_runs_once(filled_session):
    seen = []
    session = filled_session(on_success=lambda: seen.append("cleared"))
    asyncio.run(session.submit("published"))
    assert seen == ["cleared"]


def test_delete_requires_confirmation_then_navigates(make_session, calls):
    session = make_session(event_id="evt-42")
    with pytest.raises(ConfirmationRequiredError):
        asyncio.run(session.delete())
    assert calls == []

    result = asyncio.run(session.delete(confirmed=True))
    assert result.ok
    assert calls == [("delete_event", "evt-42")]
    assert session.navigator.location == "/my-events"
    assert session.notices.last.description == "Event deleted successfully"


def test_failed_delete_stays_on_page(make_session, event_api):
    session = make_session(event_id="evt-42")
    event_api.fail = True
    result = asyncio.run(session.delete(confirmed=True))
    assert not result.ok
    assert session.navigator.history == []
    assert session.notices.last.description == "Failed to delete event. Please try again."
    assert not session.orchestrator.deleting


def test_delete_without_event_is_refused(make_session):
    session = make_session()
    with pytest.raises(ValueError):
        asyncio.run(session.delete(confirmed=True))


def test_non_coach_cannot_open_session(make_session):
    with pytest.raises(NotAuthorizedError):
        make_session(identity=CallerIdentity(id="u1", name="Bo", role="user"))


def test_open_seeds_fields_slots_and_images(make_session, event_api, remote_event):
    event_api.remote = remote_event

    async def _open():
        session = make_session(event_id="evt-42")
        await session.load()
        return session

    session = asyncio.run(_open())
    draft = session.fields.draft
    assert draft.title == remote_event.title
    assert draft.categories == [Category.BEACH_CLEANUP]
    assert flatten_rich_text(draft.description) == "Hello"
    assert draft.cover_image == "https://cdn.example.com/cover.jpg"
    assert draft.gallery_images == ["https://cdn.example.com/a.jpg", "https://cdn.example.com/b.jpg"]
    assert draft.time_slots[0]["id"] == "slot-1"
    assert draft.time_slots[0]["startTime"] == "2026-11-02T10:00:00.000Z"


def test_open_classmethod_loads_event(coach, event_api, storage, auth, remote_event):
    event_api.remote = remote_event
    session = asyncio.run(
        AuthoringSession.open("evt-42", identity=coach, api=event_api, storage=storage, auth=auth)
    )
    assert session.event_id == "evt-42"
    assert len(session.slots) == 1


def test_failed_load_raises_and_notifies(make_session):
    session = make_session(event_id="evt-42")
    with pytest.raises(LoadFailure):
        asyncio.run(session.load())
    assert session.notices.last.description == "Failed to load event data. Please try again."
