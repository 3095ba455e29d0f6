"""Image storage collaborator built on pre-signed uploads."""
from __future__ import annotations

import httpx
import structlog
from pydantic import ValidationError

from authoring.clients.api import send, unwrap
from authoring.domain.errors import ApiResponseError, UploadFailure
from authoring.domain.models import UploadLocation
from authoring.form.images import ImageFile

LOGGER = structlog.get_logger(__name__)

UPLOAD_ENDPOINT = "/api/upload/event-image"


class ImageStorageClient:
    """Requests upload locations, PUTs raw bytes and deletes stored images."""

    def __init__(self, api: httpx.AsyncClient, uploads: httpx.AsyncClient) -> None:
        self._api = api
        self._uploads = uploads

    async def request_upload_location(self, file_name: str, content_type: str) -> UploadLocation:
        response = await send(
            self._api,
            "POST",
            UPLOAD_ENDPOINT,
            json={"fileName": file_name, "contentType": content_type},
        )
        data = unwrap(response)
        try:
            return UploadLocation.model_validate(data)
        except ValidationError as exc:
            raise ApiResponseError(
                "Invalid response from server: Missing required fields",
                response.status_code,
            ) from exc

    async def upload(self, file: ImageFile) -> str:
        """Store the file and return its durable public URL."""
        location = await self.request_upload_location(file.name, file.content_type)
        try:
            await send(
                self._uploads,
                "PUT",
                location.upload_url,
                content=file.data,
                headers={"Content-Type": file.content_type},
            )
        except httpx.HTTPStatusError as exc:
            raise UploadFailure(file.name, f"Failed to upload to storage: {exc.response.reason_phrase}") from exc
        LOGGER.info("image_stored", file=file.name, key=location.key, url=location.url)
        return location.url

    async def delete_image(self, public_url: str) -> None:
        if not public_url:
            raise ValueError("delete_image requires a stored image URL")
        await send(self._api, "DELETE", UPLOAD_ENDPOINT, params={"cloudFrontUrl": public_url})
