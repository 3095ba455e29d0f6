import pytest

from authoring.domain.errors import NotAuthorizedError
from authoring.domain.models import CallerIdentity, Category, EventStatus
from authoring.form.fields import FormFieldState
from authoring.form.guard import require_role


def test_set_field_replaces_only_the_named_field():
    state = FormFieldState()
    state.set_field("title", "Mangrove Planting Morning")
    state.set_field("location", "Faro")
    state.set_field("title", "Mangrove Planting Afternoon")

    draft = state.draft
    assert draft.title == "Mangrove Planting Afternoon"
    assert draft.location == "Faro"
    assert draft.categories == []
    assert draft.status is EventStatus.DRAFT


def test_set_field_rejects_unknown_names():
    state = FormFieldState()
    with pytest.raises(KeyError):
        state.set_field("subtitle", "nope")


def test_toggle_category_adds_then_removes():
    state = FormFieldState()
    state.toggle_category(Category.REFORESTATION)
    state.toggle_category(Category.WORKSHOP)
    state.toggle_category(Category.REFORESTATION)
    assert state.draft.categories == [Category.WORKSHOP]


def test_snapshot_is_detached_from_live_draft():
    state = FormFieldState()
    state.set_field("gallery_images", ["https://cdn.example.com/a.jpg"])
    snapshot = state.snapshot()
    snapshot.gallery_images.append("https://cdn.example.com/b.jpg")
    assert state.draft.gallery_images == ["https://cdn.example.com/a.jpg"]


def test_require_role_accepts_coach_and_rejects_others():
    coach = CallerIdentity(id="c1", name="Ana", role="coach")
    attendee = CallerIdentity(id="u1", name="Bo", role="user")

    assert require_role(coach, "coach") is coach
    with pytest.raises(NotAuthorizedError) as excinfo:
        require_role(attendee, "coach")
    assert excinfo.value.actual == "user"
    with pytest.raises(NotAuthorizedError):
        require_role(None, "coach")
