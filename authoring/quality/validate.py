"""Submission rules for an event draft.

``validate`` is pure: every rule is checked, nothing short-circuits, and
violations come back in rule order so they can be shown as one message.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from authoring.form.fields import EventDraft
from authoring.form.slots import TimeSlotDraft
from authoring.quality.richtext import flatten_rich_text

MIN_TITLE_LENGTH = 20
MIN_DESCRIPTION_LENGTH = 100


class Rule(Enum):
    TITLE_LENGTH = "title_length"
    DESCRIPTION_LENGTH = "description_length"
    TIME_SLOT_REQUIRED = "time_slot_required"
    TIME_SLOT_ORDER = "time_slot_order"
    GALLERY_REQUIRED = "gallery_required"
    COVER_REQUIRED = "cover_required"
    LOCATION_REQUIRED = "location_required"
    CATEGORY_REQUIRED = "category_required"
    PRICE_POSITIVE = "price_positive"


@dataclass(frozen=True)
class ValidationViolation:
    """One reason the draft cannot be submitted."""

    rule: Rule
    message: str
    slot_index: Optional[int] = None


def validate(draft: EventDraft, time_slots: Sequence[TimeSlotDraft]) -> List[ValidationViolation]:
    violations: List[ValidationViolation] = []

    if len(draft.title or "") < MIN_TITLE_LENGTH:
        violations.append(
            ValidationViolation(Rule.TITLE_LENGTH, f"Title must be at least {MIN_TITLE_LENGTH} characters long")
        )

    if len(flatten_rich_text(draft.description)) < MIN_DESCRIPTION_LENGTH:
        violations.append(
            ValidationViolation(
                Rule.DESCRIPTION_LENGTH,
                f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters long",
            )
        )

    if not time_slots:
        violations.append(ValidationViolation(Rule.TIME_SLOT_REQUIRED, "At least one time slot must be created"))
    for index, slot in enumerate(time_slots):
        if slot.end <= slot.start:
            violations.append(
                ValidationViolation(
                    Rule.TIME_SLOT_ORDER,
                    f"Time slot {index + 1}: End time must be after start time",
                    slot_index=index,
                )
            )

    if not draft.gallery_images:
        violations.append(ValidationViolation(Rule.GALLERY_REQUIRED, "At least one gallery image must be uploaded"))

    if not draft.cover_image:
        violations.append(ValidationViolation(Rule.COVER_REQUIRED, "A cover image must be selected"))

    if not (draft.location or "").strip():
        violations.append(ValidationViolation(Rule.LOCATION_REQUIRED, "Location must be provided"))

    if not draft.categories:
        violations.append(ValidationViolation(Rule.CATEGORY_REQUIRED, "At least one category must be selected"))

    if not draft.price_per_seat or draft.price_per_seat <= 0:
        violations.append(ValidationViolation(Rule.PRICE_POSITIVE, "Price per seat must be greater than 0"))

    return violations


def format_violations(violations: Sequence[ValidationViolation]) -> str:
    return "\n".join(violation.message for violation in violations)
