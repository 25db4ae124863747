from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from .auth import Session, auth_headers, raise_for_response
from .errors import ApiError, PayloadTooLargeError, ServerError

logger = logging.getLogger(__name__)

MAX_TEXT_PREVIEW_BYTES = 1024 * 1024
DEFAULT_TIMEOUT = httpx.Timeout(30.0)


def _json(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        logger.error("Backend returned a non-JSON body for %s", response.url)
        raise ApiError("Invalid response from backend") from exc


class ApiClient:
    """Async client for the backend proxy routes."""

    def __init__(
        self,
        base_url: str,
        session: Session,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[httpx.Timeout] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self._transport = transport
        self._timeout = timeout or DEFAULT_TIMEOUT
        self._client: Optional[httpx.AsyncClient] = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = auth_headers(self.session)
        url = f"{self.base_url}{path}"
        try:
            response = await self._http().request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise ServerError(f"Could not reach backend: {exc}") from exc
        raise_for_response(response)
        return response

    async def list_buckets(self) -> list[dict]:
        response = await self._request("GET", "/buckets")
        data = _json(response)
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict)]

    async def list_objects(self, bucket: str, prefix: str = "") -> dict[str, list]:
        params = {"prefix": prefix} if prefix else None
        response = await self._request(
            "GET", f"/buckets/{quote(bucket, safe='')}/objects", params=params
        )
        data = _json(response)
        if not isinstance(data, dict):
            data = {}
        return {
            "CommonPrefixes": data.get("CommonPrefixes") or [],
            "Contents": data.get("Contents") or [],
        }

    async def presign(self, bucket: str, key: str) -> str:
        response = await self._request(
            "POST", "/presign", json={"bucket": bucket, "key": key}
        )
        data = _json(response)
        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            raise ApiError("No presigned URL received")
        return url

    async def download_text(
        self, url: str, limit: int = MAX_TEXT_PREVIEW_BYTES
    ) -> str:
        # Signed URLs carry their own credentials; no auth header here.
        chunks: list[bytes] = []
        received = 0
        async with self._http().stream("GET", url) as response:
            response.raise_for_status()
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > limit:
                    raise PayloadTooLargeError(limit)
                chunks.append(chunk)
        return b"".join(chunks).decode("utf-8", errors="replace")
