"""Submission workflow: validate, persist, then leave the authoring view."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

import structlog
from pydantic import ValidationError

from authoring.clients.api import COLLABORATOR_ERRORS
from authoring.domain.errors import (
    AuthoringError,
    AuthResolutionFailure,
    ConfirmationRequiredError,
    DeleteFailure,
    OperationInProgressError,
    PersistFailure,
    ValidationFailure,
)
from authoring.domain.models import CallerIdentity, EventPayload, EventStatus, RemoteEvent, TimeSlotPayload
from authoring.form.fields import EventDraft, FormFieldState
from authoring.form.notices import Navigator, NoticeBoard
from authoring.form.slots import TimeSlotEditor
from authoring.observability.metrics import MetricsRegistry, record_duration
from authoring.quality.richtext import serialize_rich_text
from authoring.quality.validate import ValidationViolation, format_violations, validate

LOGGER = structlog.get_logger(__name__)


class EventApi(Protocol):
    async def create_event(self, payload: EventPayload) -> Any: ...

    async def update_event(self, event_id: str, payload: EventPayload) -> Any: ...

    async def delete_event(self, event_id: str) -> None: ...

    async def fetch_event_for_editing(self, event_id: str) -> RemoteEvent: ...


class AuthProvider(Protocol):
    async def get_current_caller_identity(self) -> CallerIdentity: ...


class SubmissionState(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class SubmissionResult:
    """What a submit or delete attempt ended with."""

    ok: bool
    state: SubmissionState
    violations: List[ValidationViolation] = field(default_factory=list)
    error: Optional[AuthoringError] = None
    event: Any = None


def build_payload(draft: EventDraft, status: EventStatus, identity: CallerIdentity) -> EventPayload:
    """Stamp the caller and target status onto the draft and shape it for the wire."""
    return EventPayload(
        title=draft.title,
        description=serialize_rich_text(draft.description),
        location=draft.location,
        categories=list(draft.categories),
        price_per_seat=draft.price_per_seat,
        cover_image=draft.cover_image,
        gallery_images=list(draft.gallery_images),
        time_slots=[TimeSlotPayload.model_validate(slot) for slot in draft.time_slots],
        status=status,
        coach_id=identity.id,
        coach_name=identity.display_name,
    )


class SubmissionOrchestrator:
    """Runs validation and create/update/delete against the event API."""

    def __init__(
        self,
        *,
        fields: FormFieldState,
        slots: TimeSlotEditor,
        api: EventApi,
        auth: AuthProvider,
        notices: NoticeBoard,
        navigator: Navigator,
        event_id: Optional[str] = None,
        listing_path: str = "/my-events",
        metrics: Optional[MetricsRegistry] = None,
        on_success: Optional[Callable[[], None]] = None,
    ) -> None:
        self._fields = fields
        self._slots = slots
        self._api = api
        self._auth = auth
        self._notices = notices
        self._navigator = navigator
        self._listing_path = listing_path
        self._metrics = metrics or MetricsRegistry()
        self._on_success = on_success
        self.event_id = event_id
        self.state = SubmissionState.IDLE
        self.transitions: List[SubmissionState] = [SubmissionState.IDLE]
        self.deleting = False

    @property
    def submitting(self) -> bool:
        return self.state in (SubmissionState.VALIDATING, SubmissionState.SUBMITTING)

    async def submit(self, target_status: EventStatus | str) -> SubmissionResult:
        status = EventStatus(target_status)
        if self.submitting:
            raise OperationInProgressError("submit")
        self._transition(SubmissionState.VALIDATING)
        violations = validate(self._fields.draft, self._slots.slots)
        if violations:
            self._metrics.incr("validation_failures")
            self._transition(SubmissionState.FAILED)
            self._notices.error(format_violations(violations), title="Validation Error")
            self._transition(SubmissionState.IDLE)
            return SubmissionResult(
                ok=False,
                state=SubmissionState.FAILED,
                violations=violations,
                error=ValidationFailure(violations),
            )

        self._transition(SubmissionState.SUBMITTING)
        with record_duration(self._metrics, "submit_duration_ms"):
            try:
                identity = await self._resolve_identity()
                payload = build_payload(self._fields.draft, status, identity)
                if self.event_id:
                    event = await self._api.update_event(self.event_id, payload)
                else:
                    event = await self._api.create_event(payload)
            except AuthResolutionFailure as exc:
                return self._failed(exc, "Could not confirm your account. Please sign in again and retry.")
            except ValidationError as exc:
                return self._failed(PersistFailure(str(exc)), "Failed to save event. Please try again.")
            except COLLABORATOR_ERRORS as exc:
                return self._failed(PersistFailure(str(exc)), "Failed to save event. Please try again.")

        self._fields.set_field("status", status)
        self._fields.set_field("coach_id", identity.id)
        self._fields.set_field("coach_name", identity.display_name)
        self._transition(SubmissionState.SUCCEEDED)
        self._metrics.incr("submissions_ok")
        verb = "draft saved" if status is EventStatus.DRAFT else "published"
        self._notices.success(f"Event {verb} successfully")
        LOGGER.info("event_submitted", event_id=self.event_id, status=status.value, mode=self.mode)
        if self._on_success is not None:
            self._on_success()
        self._navigator.go(self._listing_path)
        return SubmissionResult(ok=True, state=SubmissionState.SUCCEEDED, event=event)

    async def delete(self, *, confirmed: bool = False) -> SubmissionResult:
        if not self.event_id:
            raise ValueError("Only an existing event can be deleted")
        if not confirmed:
            raise ConfirmationRequiredError("Deleting an event")
        if self.deleting:
            raise OperationInProgressError("delete")
        self.deleting = True
        try:
            await self._api.delete_event(self.event_id)
        except COLLABORATOR_ERRORS as exc:
            error = DeleteFailure(self.event_id, str(exc))
            LOGGER.warning("event_delete_failed", event_id=self.event_id, error=str(exc))
            self._notices.error("Failed to delete event. Please try again.")
            return SubmissionResult(ok=False, state=self.state, error=error)
        finally:
            self.deleting = False
        self._metrics.incr("events_deleted")
        LOGGER.info("event_deleted", event_id=self.event_id)
        self._notices.success("Event deleted successfully")
        self._navigator.go(self._listing_path)
        return SubmissionResult(ok=True, state=self.state)

    @property
    def mode(self) -> str:
        return "edit" if self.event_id else "create"

    async def _resolve_identity(self) -> CallerIdentity:
        try:
            return await self._auth.get_current_caller_identity()
        except COLLABORATOR_ERRORS as exc:
            raise AuthResolutionFailure(str(exc)) from exc

    def _failed(self, error: AuthoringError, message: str) -> SubmissionResult:
        self._metrics.incr("submissions_failed")
        self._transition(SubmissionState.FAILED)
        LOGGER.warning("event_submit_failed", code=error.code.value, error=error.message, mode=self.mode)
        self._notices.error(message)
        self._transition(SubmissionState.IDLE)
        return SubmissionResult(ok=False, state=SubmissionState.FAILED, error=error)

    def _transition(self, state: SubmissionState) -> None:
        LOGGER.debug("submission_state", previous=self.state.value, current=state.value)
        self.state = state
        self.transitions.append(state)
