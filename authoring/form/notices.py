"""User-facing notices and navigation for an authoring session."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Optional

import structlog

LOGGER = structlog.get_logger(__name__)

NoticeVariant = Literal["default", "warning", "destructive"]


@dataclass(frozen=True)
class Notice:
    """A single toast-style message shown to the user."""

    variant: NoticeVariant
    title: str
    description: str


class NoticeBoard:
    """Collects notices in the order they were raised."""

    def __init__(self) -> None:
        self.notices: List[Notice] = []

    def _push(self, notice: Notice) -> Notice:
        self.notices.append(notice)
        log = LOGGER.error if notice.variant == "destructive" else LOGGER.info
        log("notice", variant=notice.variant, title=notice.title, description=notice.description)
        return notice

    def success(self, description: str, *, title: str = "Success") -> Notice:
        return self._push(Notice("default", title, description))

    def warning(self, description: str, *, title: str = "Warning") -> Notice:
        return self._push(Notice("warning", title, description))

    def error(self, description: str, *, title: str = "Error") -> Notice:
        return self._push(Notice("destructive", title, description))

    @property
    def last(self) -> Optional[Notice]:
        return self.notices[-1] if self.notices else None

    def errors(self) -> List[Notice]:
        return [notice for notice in self.notices if notice.variant == "destructive"]


class Navigator:
    """Records where the session sent the user."""

    def __init__(self, location: str = "/") -> None:
        self.location = location
        self.history: List[str] = []

    def go(self, path: str) -> None:
        self.history.append(path)
        self.location = path
        LOGGER.info("navigate", path=path)
