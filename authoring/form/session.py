"""The authoring session: one draft, its editors and its submission workflow."""
from __future__ import annotations

import uuid
from datetime import timezone, tzinfo
from typing import Any, Callable, Dict, Optional

import structlog

from authoring.clients.api import COLLABORATOR_ERRORS
from authoring.domain.errors import LoadFailure
from authoring.domain.models import CallerIdentity, Category, EventStatus, RemoteEvent
from authoring.form.drafts import apply_draft, export_draft
from authoring.form.fields import FormFieldState
from authoring.form.guard import require_role
from authoring.form.images import ImageAttachmentManager, ImageStorage
from authoring.form.notices import Navigator, NoticeBoard
from authoring.form.slots import TimeSlotEditor
from authoring.observability.metrics import MetricsRegistry
from authoring.observability.tracing import clear_context, set_context
from authoring.orchestrator.submission import (
    AuthProvider,
    EventApi,
    SubmissionOrchestrator,
    SubmissionResult,
)
from authoring.quality.richtext import parse_rich_text

LOGGER = structlog.get_logger(__name__)


class AuthoringSession:
    """Wires field state, slot editor, image manager and orchestrator for one draft.

    The caller identity is passed in rather than looked up, and must belong
    to a coach.
    """

    def __init__(
        self,
        *,
        identity: CallerIdentity,
        api: EventApi,
        storage: ImageStorage,
        auth: AuthProvider,
        event_id: Optional[str] = None,
        tz: tzinfo = timezone.utc,
        listing_path: str = "/my-events",
        metrics: Optional[MetricsRegistry] = None,
        on_success: Optional[Callable[[], None]] = None,
    ) -> None:
        self.identity = require_role(identity, "coach")
        self.session_id = uuid.uuid4().hex
        self.event_id = event_id
        self.metrics = metrics or MetricsRegistry()
        self.notices = NoticeBoard()
        self.navigator = Navigator("/create" if event_id is None else f"/edit/{event_id}")
        self.fields = FormFieldState()
        self.slots = TimeSlotEditor(self.fields, tz=tz)
        self.images = ImageAttachmentManager(self.fields, storage, notices=self.notices, metrics=self.metrics)
        self.orchestrator = SubmissionOrchestrator(
            fields=self.fields,
            slots=self.slots,
            api=api,
            auth=auth,
            notices=self.notices,
            navigator=self.navigator,
            event_id=event_id,
            listing_path=listing_path,
            metrics=self.metrics,
            on_success=on_success,
        )
        self._api = api

    @classmethod
    async def open(cls, event_id: str, **kwargs: Any) -> "AuthoringSession":
        """Create an edit-mode session seeded from the stored event."""
        session = cls(event_id=event_id, **kwargs)
        await session.load()
        return session

    @property
    def mode(self) -> str:
        return self.orchestrator.mode

    async def load(self) -> None:
        if not self.event_id:
            raise ValueError("Nothing to load for a new event")
        set_context(session_id=self.session_id, event_id=self.event_id)
        try:
            try:
                event = await self._api.fetch_event_for_editing(self.event_id)
            except COLLABORATOR_ERRORS as exc:
                LOGGER.warning("event_load_failed", error=str(exc))
                self.notices.error("Failed to load event data. Please try again.")
                raise LoadFailure(self.event_id, str(exc)) from exc
            self._seed(event)
        finally:
            clear_context()

    def to_draft(self) -> Dict[str, Any]:
        return export_draft(self.fields, self.slots, event_id=self.event_id)

    def apply_draft(self, payload: Dict[str, Any]) -> None:
        apply_draft(payload, fields=self.fields, slots=self.slots, images=self.images)

    async def submit(self, target_status: EventStatus | str) -> SubmissionResult:
        set_context(session_id=self.session_id, event_id=self.event_id)
        try:
            return await self.orchestrator.submit(target_status)
        finally:
            clear_context()

    async def delete(self, *, confirmed: bool = False) -> SubmissionResult:
        set_context(session_id=self.session_id, event_id=self.event_id)
        try:
            return await self.orchestrator.delete(confirmed=confirmed)
        finally:
            clear_context()

    def _seed(self, event: RemoteEvent) -> None:
        categories = []
        for tag in event.event_types:
            try:
                categories.append(Category(tag))
            except ValueError:
                LOGGER.warning("unknown_category_dropped", category=tag)
        self.fields.set_field("title", event.title)
        self.fields.set_field("description", parse_rich_text(event.description))
        self.fields.set_field("location", event.location)
        self.fields.set_field("categories", categories)
        self.fields.set_field("price_per_seat", event.price_per_seat)
        self.fields.set_field("status", event.status)
        self.slots.load_remote(event.time_slots)
        self.images.load(event.cover_image, event.gallery_images or [])
        LOGGER.info("event_loaded", slots=len(event.time_slots), gallery=len(event.gallery_images or []))
