"""Pydantic models for the JSON exchanged with the marketplace backend."""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UserRole = Literal["coach", "user"]


class Category(str, Enum):
    """Event type tags offered by the authoring form and the search page."""

    WORKSHOP = "WORKSHOP"
    TRAINING = "TRAINING"
    SEMINAR = "SEMINAR"
    CONFERENCE = "CONFERENCE"
    NETWORKING = "NETWORKING"
    TEAM_BUILDING = "TEAM_BUILDING"
    BEACH_CLEANUP = "BEACH_CLEANUP"
    REFORESTATION = "REFORESTATION"
    WILDLIFE_CONSERVATION = "WILDLIFE_CONSERVATION"


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CallerIdentity(WireModel):
    """Resolved identity of the signed-in user."""

    id: str = Field(min_length=1)
    display_name: str = Field(alias="name")
    email: Optional[str] = None
    role: UserRole = "user"


class TimeSlotPayload(WireModel):
    """One slot as sent to the backend; `id` only for slots that already exist."""

    id: Optional[str] = None
    slot_date: date = Field(alias="date")
    seats: int = Field(gt=0)
    start_time: str = Field(..., description="UTC ISO-8601 start")
    end_time: str = Field(..., description="UTC ISO-8601 end")


class EventPayload(WireModel):
    """Body of create and update requests."""

    title: str
    description: str = Field(..., description="Serialized rich-text document")
    location: str
    categories: List[Category]
    price_per_seat: float = Field(ge=0)
    cover_image: Optional[str] = None
    gallery_images: List[str] = Field(default_factory=list)
    time_slots: List[TimeSlotPayload] = Field(default_factory=list)
    status: EventStatus
    coach_id: str
    coach_name: str

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RemoteTimeSlot(WireModel):
    """A slot as stored by the backend."""

    id: str
    event_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    total_seats: int
    available_seats: Optional[int] = None
    is_available: bool = True


class RemoteEvent(WireModel):
    """An event as returned by the coach event endpoints."""

    id: str
    title: str
    description: str = ""
    location: str = ""
    event_types: List[str] = Field(default_factory=list)
    price_per_seat: float = 0
    status: EventStatus = EventStatus.DRAFT
    cover_image: Optional[str] = None
    gallery_images: Optional[List[str]] = None
    coach_id: Optional[str] = None
    time_slots: List[RemoteTimeSlot] = Field(default_factory=list)
    timezone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UploadLocation(WireModel):
    """Pre-signed upload target handed out by the storage endpoint."""

    upload_url: str = Field(min_length=1)
    key: str = Field(min_length=1)
    url: str = Field(min_length=1)
