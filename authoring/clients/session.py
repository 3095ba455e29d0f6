"""Factories for the httpx clients used to talk to the backend."""
from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Optional

import httpx


@dataclass
class ApiSession:
    """Authenticated API client plus a bare client for pre-signed uploads."""

    api: httpx.AsyncClient
    uploads: httpx.AsyncClient


@contextlib.asynccontextmanager
async def create_api_session(
    *,
    base_url: str,
    token: Optional[str],
    user_agent: str,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[ApiSession]:
    """Yield a configured `ApiSession` for the duration of the context."""
    headers: Dict[str, str] = {"User-Agent": user_agent, "Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    async with httpx.AsyncClient(
        base_url=base_url,
        headers=headers,
        timeout=timeout,
        transport=transport,
    ) as api:
        # Pre-signed URLs carry their own credentials; no Authorization header here.
        async with httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            timeout=timeout,
            transport=transport,
        ) as uploads:
            yield ApiSession(api=api, uploads=uploads)
