"""Form field state for the event being authored."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields as dataclass_fields
from typing import Any, Dict, List, Optional

import structlog

from authoring.domain.models import Category, EventStatus

LOGGER = structlog.get_logger(__name__)


@dataclass
class EventDraft:
    """The in-memory aggregate edited by one authoring session."""

    title: str = ""
    description: Dict[str, Any] = field(default_factory=lambda: {"type": "doc", "content": []})
    location: str = ""
    categories: List[Category] = field(default_factory=list)
    price_per_seat: float = 0
    cover_image: Optional[str] = None
    gallery_images: List[str] = field(default_factory=list)
    time_slots: List[Dict[str, Any]] = field(default_factory=list)
    status: EventStatus = EventStatus.DRAFT
    coach_id: Optional[str] = None
    coach_name: Optional[str] = None


FIELD_NAMES = frozenset(item.name for item in dataclass_fields(EventDraft))


class FormFieldState:
    """Holds the draft and applies single-field replacements."""

    def __init__(self, draft: Optional[EventDraft] = None) -> None:
        self._draft = draft or EventDraft()

    @property
    def draft(self) -> EventDraft:
        return self._draft

    def set_field(self, name: str, value: Any) -> None:
        """Replace one named field, leaving the others untouched."""
        if name not in FIELD_NAMES:
            raise KeyError(f"Unknown draft field: {name}")
        setattr(self._draft, name, value)
        LOGGER.debug("field_set", field=name)

    def toggle_category(self, category: Category) -> None:
        current = list(self._draft.categories)
        if category in current:
            current.remove(category)
        else:
            current.append(category)
        self.set_field("categories", current)

    def snapshot(self) -> EventDraft:
        """Return a deep copy safe to hand to validation or persistence."""
        return copy.deepcopy(self._draft)
