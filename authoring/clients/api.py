"""REST collaborators: event persistence and caller identity."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

import httpx
import orjson
from pydantic import ValidationError

from authoring.domain.errors import ApiResponseError, AuthoringError
from authoring.domain.models import CallerIdentity, EventPayload, RemoteEvent
from authoring.observability.tracing import log_call_result, span

# Failures a collaborator call may raise; operation boundaries catch exactly these.
COLLABORATOR_ERRORS = (httpx.HTTPError, AuthoringError)


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    json: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, str]] = None,
    content: Optional[bytes] = None,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.Response:
    """Issue a request, log its outcome and raise for non-2xx answers."""
    with span(name=f"{method} {url}", target=url):
        start = time.perf_counter()
        response = await client.request(method, url, json=json, params=params, content=content, headers=headers)
    log_call_result(
        method=method,
        url=url,
        status=response.status_code,
        elapsed_ms=int((time.perf_counter() - start) * 1000),
    )
    response.raise_for_status()
    return response


def unwrap(response: httpx.Response) -> Any:
    """Return the ``data`` member of a ``{"success", "data"}`` envelope."""
    try:
        payload = orjson.loads(response.content)
    except orjson.JSONDecodeError as exc:
        raise ApiResponseError("Invalid response from server: body is not JSON", response.status_code) from exc
    if not isinstance(payload, dict):
        raise ApiResponseError("Invalid response from server: unexpected payload", response.status_code)
    if payload.get("success") is False:
        raise ApiResponseError(str(payload.get("message") or "Request was not successful"), response.status_code)
    if "data" not in payload:
        raise ApiResponseError("Invalid response from server: Missing data", response.status_code)
    return payload["data"]


class EventApiClient:
    """Create, update, delete and fetch events on the backend."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def create_event(self, payload: EventPayload) -> Any:
        response = await send(self._client, "POST", "/api/events", json=payload.to_wire())
        return unwrap(response)

    async def update_event(self, event_id: str, payload: EventPayload) -> Any:
        response = await send(self._client, "PUT", f"/api/events/{event_id}", json=payload.to_wire())
        return unwrap(response)

    async def delete_event(self, event_id: str) -> None:
        await send(self._client, "DELETE", f"/api/events/{event_id}")

    async def fetch_event_for_editing(self, event_id: str) -> RemoteEvent:
        response = await send(self._client, "GET", f"/api/coach/events/{event_id}")
        data = unwrap(response)
        try:
            return RemoteEvent.model_validate(data)
        except ValidationError as exc:
            raise ApiResponseError(f"Invalid event payload: {exc.error_count()} errors", response.status_code) from exc


class AuthClient:
    """Resolves the signed-in caller from the profile endpoint."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def get_current_caller_identity(self) -> CallerIdentity:
        response = await send(self._client, "GET", "/api/user/profile")
        data = unwrap(response)
        try:
            return CallerIdentity.model_validate(data)
        except ValidationError as exc:
            raise ApiResponseError("Invalid profile payload", response.status_code) from exc
