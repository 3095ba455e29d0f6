"""Local draft files so an authoring session can be resumed or retried."""
from __future__ import annotations

from datetime import date, time
from pathlib import Path
from typing import Any, Dict, Optional

import orjson

from authoring.domain.models import Category, EventStatus
from authoring.form.fields import FormFieldState
from authoring.form.images import ImageAttachmentManager
from authoring.form.slots import TimeSlotDraft, TimeSlotEditor
from authoring.quality.richtext import parse_rich_text
from authoring.quality.schema import SchemaRegistry


def draft_path(root: Path, name: str) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    return root / f"{name}.json"


def load_draft(root: Path, name: str, registry: SchemaRegistry) -> Optional[Dict[str, Any]]:
    path = draft_path(root, name)
    if not path.exists():
        return None
    try:
        payload = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as exc:
        raise ValueError(f"Draft {name} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Draft {name} must be a JSON object")
    result = registry.validate("draft", payload)
    if not result.ok:
        raise ValueError(f"Draft {name} is malformed: " + "; ".join(result.errors))
    return registry.prune("draft", payload)


def save_draft(root: Path, name: str, payload: Dict[str, Any]) -> Path:
    path = draft_path(root, name)
    path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
    return path


def clear_draft(root: Path, name: str) -> None:
    path = draft_path(root, name)
    if path.exists():
        path.unlink()


def _export_slot(slot: TimeSlotDraft) -> Dict[str, Any]:
    item: Dict[str, Any] = {
        "id": slot.id,
        "date": slot.date.isoformat(),
        "seats": slot.seats,
        "start_time": slot.start.strftime("%H:%M"),
        "end_time": slot.end.strftime("%H:%M"),
    }
    # Only slots that run past midnight carry their own end date.
    if slot.end.date() != slot.date:
        item["end_date"] = slot.end.date().isoformat()
    return item


def export_draft(fields: FormFieldState, slots: TimeSlotEditor, *, event_id: Optional[str] = None) -> Dict[str, Any]:
    """Snapshot the session in the draft file layout."""
    draft = fields.snapshot()
    return {
        "event_id": event_id,
        "title": draft.title,
        "description": draft.description,
        "location": draft.location,
        "categories": [Category(item).value for item in draft.categories],
        "price_per_seat": draft.price_per_seat,
        "cover_image": draft.cover_image,
        "gallery_images": list(draft.gallery_images),
        "time_slots": [_export_slot(slot) for slot in slots.slots],
        "status": EventStatus(draft.status).value,
    }


def apply_draft(
    payload: Dict[str, Any],
    *,
    fields: FormFieldState,
    slots: TimeSlotEditor,
    images: Optional[ImageAttachmentManager] = None,
) -> None:
    """Seed field state, slots and images from a loaded draft file."""
    fields.set_field("title", payload.get("title", ""))
    fields.set_field("description", parse_rich_text(payload.get("description")))
    fields.set_field("location", payload.get("location", ""))
    fields.set_field("categories", [Category(item) for item in payload.get("categories", [])])
    fields.set_field("price_per_seat", payload.get("price_per_seat", 0))
    fields.set_field("status", EventStatus(payload.get("status", EventStatus.DRAFT.value)))

    loaded = []
    for item in payload.get("time_slots", []):
        on = date.fromisoformat(item["date"])
        ends_on = date.fromisoformat(item.get("end_date") or item["date"])
        loaded.append(
            TimeSlotDraft(
                id=item.get("id"),
                date=on,
                seats=int(item["seats"]),
                start=slots.anchor(on, time.fromisoformat(item["start_time"])),
                end=slots.anchor(ends_on, time.fromisoformat(item["end_time"])),
            )
        )
    slots.load(loaded)

    cover = payload.get("cover_image")
    gallery = payload.get("gallery_images", [])
    if images is not None:
        images.load(cover, gallery)
    else:
        fields.set_field("cover_image", cover)
        fields.set_field("gallery_images", list(gallery))
