from datetime import date, time, timedelta

import httpx
import pytest
import structlog

from authoring.domain.errors import UploadFailure
from authoring.domain.models import CallerIdentity, Category, RemoteEvent
from authoring.form.images import ImageFile
from authoring.form.session import AuthoringSession
from authoring.observability.metrics import MetricsRegistry
from authoring.quality.richtext import plain_text_document

TITLE = "Beach Cleanup Volunteer Day!!"
DESCRIPTION = (
    "Join us on the shore for a morning of litter picking, sorting and logging what we find. "
    "Gloves, bags and water provided."
)


@pytest.fixture(autouse=True, scope="session")
def stdlib_logging():
    structlog.configure(
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class FakeStorage:
    def __init__(self, calls):
        self.calls = calls
        self.fail_uploads = set()
        self.fail_deletes = set()
        self.gates = {}

    async def upload(self, file):
        self.calls.append(("upload", file.name))
        gate = self.gates.get(file.name)
        if gate is not None:
            await gate.wait()
        if file.name in self.fail_uploads:
            self.calls.append(("upload_failed", file.name))
            raise UploadFailure(file.name, "storage unavailable")
        self.calls.append(("uploaded", file.name))
        return f"https://cdn.example.com/{file.name}"

    async def delete_image(self, public_url):
        self.calls.append(("delete_image", public_url))
        if public_url in self.fail_deletes:
            raise httpx.ConnectError("storage unreachable")


class FakeEventApi:
    def __init__(self, calls):
        self.calls = calls
        self.payloads = []
        self.fail = False
        self.remote = None

    async def create_event(self, payload):
        self.calls.append(("create_event", None))
        self.payloads.append(payload)
        if self.fail:
            raise httpx.ConnectError("backend down")
        return {"id": "evt-new"}

    async def update_event(self, event_id, payload):
        self.calls.append(("update_event", event_id))
        self.payloads.append(payload)
        if self.fail:
            raise httpx.ConnectError("backend down")
        return {"id": event_id}

    async def delete_event(self, event_id):
        self.calls.append(("delete_event", event_id))
        if self.fail:
            raise httpx.ConnectError("backend down")

    async def fetch_event_for_editing(self, event_id):
        self.calls.append(("fetch_event", event_id))
        if self.remote is None:
            raise httpx.ConnectError("backend down")
        return self.remote


class FakeAuth:
    def __init__(self, calls, identity):
        self.calls = calls
        self.identity = identity
        self.fail = False

    async def get_current_caller_identity(self):
        self.calls.append(("resolve_identity", None))
        if self.fail:
            raise httpx.ConnectError("auth down")
        return self.identity


@pytest.fixture
def calls():
    return []


@pytest.fixture
def coach():
    return CallerIdentity(id="coach-7", name="Rita Marques", email="rita@example.com", role="coach")


@pytest.fixture
def storage(calls):
    return FakeStorage(calls)


@pytest.fixture
def event_api(calls):
    return FakeEventApi(calls)


@pytest.fixture
def auth(calls, coach):
    return FakeAuth(calls, coach)


@pytest.fixture
def make_session(coach, event_api, storage, auth):
    def _make(**kwargs):
        options = dict(identity=coach, api=event_api, storage=storage, auth=auth, metrics=MetricsRegistry())
        options.update(kwargs)
        return AuthoringSession(**options)

    return _make


@pytest.fixture
def filled_session(make_session):
    """A session whose draft passes every submission rule."""

    def _fill(**kwargs):
        session = make_session(**kwargs)
        session.fields.set_field("title", TITLE)
        session.fields.set_field("description", plain_text_document(DESCRIPTION))
        session.fields.set_field("location", "Lisbon")
        session.fields.set_field("categories", [Category.BEACH_CLEANUP])
        session.fields.set_field("price_per_seat", 15)
        session.slots.select_date(date.today() + timedelta(days=1))
        session.slots.add_slot(20, time(10, 0), time(12, 0))
        session.images.load("https://cdn.example.com/cover.jpg", ["https://cdn.example.com/shore.jpg"])
        return session

    return _fill


@pytest.fixture
def remote_event():
    return RemoteEvent.model_validate(
        {
            "id": "evt-42",
            "title": TITLE,
            "description": '{"type":"doc","content":[{"type":"paragraph","content":[{"type":"text","text":"Hello"}]}]}',
            "location": "Lisbon",
            "eventTypes": ["BEACH_CLEANUP", "KAYAKING"],
            "pricePerSeat": 15,
            "status": "published",
            "coverImage": "https://cdn.example.com/cover.jpg",
            "galleryImages": ["https://cdn.example.com/a.jpg", "https://cdn.example.com/b.jpg"],
            "timeSlots": [
                {
                    "id": "slot-1",
                    "startTime": "2026-11-02T10:00:00.000Z",
                    "endTime": "2026-11-02T12:00:00.000Z",
                    "totalSeats": 20,
                    "availableSeats": 12,
                }
            ],
        }
    )


@pytest.fixture
def make_image():
    def _make(name="photo.jpg", content_type="image/jpeg", size=1024):
        return ImageFile(name=name, content_type=content_type, data=b"\xff" * size)

    return _make
