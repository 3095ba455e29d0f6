"""Cover and gallery image handling with optimistic previews.

Each image slot is a tagged value: ``PendingImage`` while its upload is in
flight, ``UploadedImage`` once storage confirmed it. Failed uploads are
rolled back and reported as ``FailedImage``; they never stay in the draft.
Slots are addressed by a stable key, so completions arriving out of order
or after a local delete never touch the wrong entry.
"""
from __future__ import annotations

import asyncio
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Union

import structlog

from authoring.clients.api import COLLABORATOR_ERRORS
from authoring.domain.errors import (
    AuthoringError,
    DeleteFailure,
    ImageRejectedError,
    OperationInProgressError,
    UploadFailure,
)
from authoring.form.fields import FormFieldState
from authoring.form.notices import NoticeBoard
from authoring.observability.metrics import MetricsRegistry

LOGGER = structlog.get_logger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024
ALLOWED_FILE_TYPES = ("image/jpeg", "image/png", "image/webp")


@dataclass(frozen=True)
class ImageFile:
    """A file picked by the user."""

    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path) -> "ImageFile":
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            content_type=content_type or "application/octet-stream",
            data=path.read_bytes(),
        )


@dataclass(frozen=True)
class PendingImage:
    key: str
    local_ref: str


@dataclass(frozen=True)
class UploadedImage:
    key: str
    remote_ref: str


@dataclass(frozen=True)
class FailedImage:
    key: str
    file_name: str
    reason: str


ImageAttachment = Union[PendingImage, UploadedImage, FailedImage]


class ImageStorage(Protocol):
    async def upload(self, file: ImageFile) -> str: ...

    async def delete_image(self, public_url: str) -> None: ...


def validate_image(file: ImageFile) -> Optional[str]:
    """Return a user-facing reason when the file may not be uploaded."""
    if file.content_type not in ALLOWED_FILE_TYPES:
        return "Invalid file type. Please upload a JPEG, PNG, or WebP image."
    if file.size > MAX_FILE_SIZE:
        return "File is too large. Maximum size is 5MB."
    return None


def _new_key() -> str:
    return uuid.uuid4().hex


def _preview_ref(key: str, file: ImageFile) -> str:
    return f"preview://{key}/{file.name}"


class ImageAttachmentManager:
    """Uploads and deletes the cover and gallery images of a draft."""

    def __init__(
        self,
        fields: FormFieldState,
        storage: ImageStorage,
        *,
        notices: NoticeBoard,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._fields = fields
        self._storage = storage
        self._notices = notices
        self._metrics = metrics or MetricsRegistry()
        self.cover: Optional[ImageAttachment] = None
        self.gallery: List[ImageAttachment] = []
        self.uploading = False
        self.deleting = False
        self.last_error: Optional[AuthoringError] = None

    def load(self, cover: Optional[str], gallery: Sequence[str]) -> None:
        """Seed from already stored images, e.g. when an event is opened for editing."""
        self.cover = UploadedImage(_new_key(), cover) if cover else None
        self.gallery = [UploadedImage(_new_key(), url) for url in gallery if url]
        self._sync()

    def previews(self) -> List[str]:
        """Local or remote reference for every gallery slot, in display order."""
        refs = []
        for item in self.gallery:
            if isinstance(item, PendingImage):
                refs.append(item.local_ref)
            elif isinstance(item, UploadedImage):
                refs.append(item.remote_ref)
        return refs

    async def upload_cover(self, file: ImageFile) -> ImageAttachment:
        rejected = self._check(file)
        if rejected is not None:
            return rejected
        self._begin("uploading")
        try:
            previous = self.cover
            key = _new_key()
            pending = PendingImage(key, _preview_ref(key, file))
            self.cover = pending
            try:
                remote = await self._storage.upload(file)
            except COLLABORATOR_ERRORS as exc:
                if self.cover is pending:
                    self.cover = previous
                elif self.cover is None:
                    await self._release_deleted(previous)
                return self._upload_failed(
                    key, file, exc, "Failed to upload cover image. Please try again.", notify=True
                )
            uploaded = UploadedImage(key, remote)
            if self.cover is not pending:
                await self._discard(remote)
                if self.cover is None:
                    await self._release_deleted(previous)
                return uploaded
            self.cover = uploaded
            self._sync()
            self._metrics.incr("images_uploaded")
            LOGGER.info("cover_uploaded", file=file.name, url=remote)
            if isinstance(previous, UploadedImage):
                try:
                    await self._storage.delete_image(previous.remote_ref)
                except COLLABORATOR_ERRORS as exc:
                    LOGGER.warning("cover_cleanup_failed", url=previous.remote_ref, error=str(exc))
                    self._notices.warning("The previous cover image could not be removed from storage.")
                else:
                    self._metrics.incr("images_deleted")
            self._notices.success("Cover image uploaded successfully")
            return uploaded
        finally:
            self.uploading = False

    async def upload_gallery_images(self, files: Sequence[ImageFile]) -> List[ImageAttachment]:
        """Upload a batch concurrently; returns one outcome per file, in input order."""
        outcomes: Dict[int, ImageAttachment] = {}
        accepted = []
        for index, file in enumerate(files):
            rejected = self._check(file)
            if rejected is not None:
                outcomes[index] = rejected
            else:
                accepted.append((index, file))
        if not accepted:
            return [outcomes[index] for index in range(len(files))]

        self._begin("uploading")
        try:
            batch = []
            for index, file in accepted:
                key = _new_key()
                pending = PendingImage(key, _preview_ref(key, file))
                self.gallery.append(pending)
                batch.append((index, file, pending))
            results = await asyncio.gather(
                *(self._upload_gallery_item(file, pending) for _, file, pending in batch)
            )
            for (index, _, _), result in zip(batch, results):
                outcomes[index] = result
        finally:
            self.uploading = False

        succeeded = sum(1 for result in results if isinstance(result, UploadedImage))
        if succeeded:
            plural = "s" if succeeded > 1 else ""
            self._notices.success(f"{succeeded} image{plural} uploaded successfully")
        if succeeded < len(results):
            self._notices.error("Failed to upload gallery images. Please try again.")
        return [outcomes[index] for index in range(len(files))]

    async def delete_cover(self) -> bool:
        target = self.cover
        if target is None:
            return False
        self._begin("deleting")
        try:
            if isinstance(target, UploadedImage):
                try:
                    await self._storage.delete_image(target.remote_ref)
                except COLLABORATOR_ERRORS as exc:
                    self._delete_failed(target.remote_ref, exc, "Failed to delete cover image. Please try again.")
                    return False
                self._metrics.incr("images_deleted")
            if self.cover is target:
                self.cover = None
            self._sync()
            self._notices.success("Cover image deleted successfully")
            return True
        finally:
            self.deleting = False

    async def delete_gallery_image(self, index: int) -> bool:
        if not 0 <= index < len(self.gallery):
            raise IndexError(f"No gallery image at index {index} ({len(self.gallery)} images)")
        target = self.gallery[index]
        self._begin("deleting")
        try:
            if isinstance(target, UploadedImage):
                try:
                    await self._storage.delete_image(target.remote_ref)
                except COLLABORATOR_ERRORS as exc:
                    self._delete_failed(target.remote_ref, exc, "Failed to delete gallery image. Please try again.")
                    return False
                self._metrics.incr("images_deleted")
            self._remove(target.key)
            self._sync()
            self._notices.success("Gallery image deleted successfully")
            return True
        finally:
            self.deleting = False

    async def _upload_gallery_item(self, file: ImageFile, pending: PendingImage) -> ImageAttachment:
        try:
            remote = await self._storage.upload(file)
        except COLLABORATOR_ERRORS as exc:
            self._remove(pending.key)
            return self._upload_failed(pending.key, file, exc, "Failed to upload gallery images. Please try again.")
        uploaded = UploadedImage(pending.key, remote)
        if not self._replace(pending.key, uploaded):
            await self._discard(remote)
            return uploaded
        self._sync()
        self._metrics.incr("images_uploaded")
        LOGGER.info("gallery_image_uploaded", file=file.name, url=remote)
        return uploaded

    def _check(self, file: ImageFile) -> Optional[FailedImage]:
        reason = validate_image(file)
        if reason is None:
            return None
        error = ImageRejectedError(file.name, reason)
        self.last_error = error
        self._metrics.incr("images_rejected")
        LOGGER.info("image_rejected", file=file.name, content_type=file.content_type, size=file.size)
        self._notices.error(reason)
        return FailedImage(_new_key(), file.name, reason)

    def _begin(self, flag: str) -> None:
        if getattr(self, flag):
            raise OperationInProgressError(flag)
        setattr(self, flag, True)

    def _upload_failed(
        self, key: str, file: ImageFile, exc: Exception, message: str, *, notify: bool = False
    ) -> FailedImage:
        self._sync()
        self.last_error = UploadFailure(file.name, str(exc))
        self._metrics.incr("upload_failures")
        LOGGER.warning("image_upload_failed", file=file.name, error=str(exc))
        if notify:
            self._notices.error(message)
        return FailedImage(key, file.name, message)

    def _delete_failed(self, url: str, exc: Exception, message: str) -> None:
        self.last_error = DeleteFailure(url, str(exc))
        self._metrics.incr("delete_failures")
        LOGGER.warning("image_delete_failed", url=url, error=str(exc))
        self._notices.error(message)

    async def _discard(self, remote: str) -> None:
        # Nothing in the draft refers to this image any more.
        try:
            await self._storage.delete_image(remote)
        except COLLABORATOR_ERRORS as exc:
            LOGGER.warning("orphan_cleanup_failed", url=remote, error=str(exc))
        else:
            LOGGER.info("orphan_discarded", url=remote)

    async def _release_deleted(self, previous: Optional[ImageAttachment]) -> None:
        # The cover was deleted while a replacement uploaded; the image the draft
        # still pointed at has to go as well.
        if isinstance(previous, UploadedImage):
            await self._discard(previous.remote_ref)

    def _replace(self, key: str, item: ImageAttachment) -> bool:
        for position, current in enumerate(self.gallery):
            if current.key == key:
                self.gallery[position] = item
                return True
        return False

    def _remove(self, key: str) -> None:
        self.gallery = [item for item in self.gallery if item.key != key]

    def _sync(self) -> None:
        cover = self.cover.remote_ref if isinstance(self.cover, UploadedImage) else None
        self._fields.set_field("cover_image", cover)
        self._fields.set_field(
            "gallery_images",
            [item.remote_ref for item in self.gallery if isinstance(item, UploadedImage)],
        )
