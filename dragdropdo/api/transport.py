"""HTTP transport for the Dragdropdo business API.

WHY: The upload orchestrator and status poller should not know about
URLs, headers, JSON envelopes, or httpx. They call a handful of typed
methods and get typed results back, or one kind of failure
(TransportError). Keeping the wire details here lets tests swap in an
in-memory fake.

HOW: Transport is the Protocol the core depends on. HTTPTransport
implements it with two httpx.AsyncClient instances: one bound to the API
base URL with Bearer auth, and one bare client for PUTting part bytes to
presigned storage URLs (those URLs carry their own signature, so the API
key must not leak to the storage host). HTTPTransport is an async context
manager; enter it to open both connection pools, exit to close them.

RULES:
- All API endpoints live under API_PREFIX (/v1/biz)
- Successful JSON bodies are unwrapped from a top-level "data" key
- Non-2xx API responses raise APIError with status, code and raw body
- Network failures raise TransportError("Network error: ...")
- Malformed success payloads raise TransportError("Unexpected API response shape")
- Part PUTs never raise on a non-2xx status; the caller inspects success
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol, runtime_checkable

import httpx

from dragdropdo.api.models import (
    InitiateUploadResponse,
    OperationResponse,
    OperationStatus,
    PartUploadResponse,
    SupportedOperation,
    UploadedPart,
)
from dragdropdo.config import API_PREFIX, DEFAULT_TIMEOUT_MS, DRAGDROPDO_BASE_URL
from dragdropdo.errors import APIError, TransportError

logger = logging.getLogger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Narrow interface the upload and polling logic call through."""

    async def initiate_upload(
        self, file_name: str, size: int, mime_type: str, parts: int
    ) -> InitiateUploadResponse:
        ...

    async def put_part(self, url: str, data: bytes, content_type: str) -> PartUploadResponse:
        ...

    async def complete_upload(
        self,
        file_key: str,
        upload_id: str,
        object_name: str | None,
        parts: list[UploadedPart],
    ) -> dict:
        ...

    async def get_status(
        self, main_task_id: str, file_task_id: str | None = None
    ) -> OperationStatus:
        ...

    async def create_operation(
        self,
        action: str,
        file_keys: list[str],
        parameters: dict | None = None,
        notes: dict | None = None,
    ) -> OperationResponse:
        ...

    async def check_supported_operation(
        self, ext: str, action: str | None = None, parameters: dict | None = None
    ) -> SupportedOperation:
        ...


class HTTPTransport:
    """httpx-backed Transport for the Dragdropdo API.

    WHY: One place owns the connection pools, auth header and error
    mapping for every call the client makes.

    HOW: Wraps httpx.AsyncClient. Pass `transport=httpx.MockTransport(...)`
    to run against an in-process handler instead of the network.

    RULES:
    - Use as: async with HTTPTransport(api_key) as transport: ...
    - Custom headers are merged over the defaults (they can override them)
    - timeout_ms applies to every request, API and storage alike
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout_ms: int | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or DRAGDROPDO_BASE_URL).rstrip("/")
        self._timeout_ms = DEFAULT_TIMEOUT_MS if timeout_ms is None else timeout_ms
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        self._headers.update(headers or {})
        self._http_transport = transport
        self._client: httpx.AsyncClient | None = None
        self._storage: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    async def __aenter__(self) -> HTTPTransport:
        timeout = httpx.Timeout(self._timeout_ms / 1000.0)
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=timeout,
            transport=self._http_transport,
        )
        self._storage = httpx.AsyncClient(timeout=timeout, transport=self._http_transport)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._storage:
            await self._storage.aclose()
            self._storage = None

    def _ensure_clients(self) -> tuple[httpx.AsyncClient, httpx.AsyncClient]:
        """Return the active (api, storage) clients, raising if not in context manager."""
        if self._client is None or self._storage is None:
            raise RuntimeError(
                "HTTPTransport must be used as an async context manager: "
                "async with HTTPTransport(api_key) as transport: ..."
            )
        return self._client, self._storage

    # ------------------------------------------------------------------
    # Generic JSON request
    # ------------------------------------------------------------------

    async def request(self, method: str, path: str, body: dict | None = None) -> dict:
        """Send one JSON request to the API and return the unwrapped payload.

        WHY: Every API endpoint shares the same envelope and error shape.

        HOW: Prefixes the path with API_PREFIX, sends `body` as JSON,
        maps failures to TransportError/APIError, and returns payload["data"]
        when the response wraps its data that way.

        RULES:
        - Raises TransportError on network failure or a non-JSON success body
        - Raises APIError on any non-2xx status
        - Always returns a dict

        Args:
            method: HTTP method ("GET", "POST", ...).
            path: Endpoint path below API_PREFIX, starting with "/".
            body: Optional JSON body.

        Returns:
            The decoded response data.
        """
        client, _ = self._ensure_clients()
        url = f"{API_PREFIX}{path}"
        logger.debug("%s %s", method, url)

        try:
            resp = await client.request(method, url, json=body)
        except httpx.HTTPError as exc:
            raise TransportError(f"Network error: {exc}") from exc

        if not resp.is_success:
            raise _api_error(resp)

        try:
            payload = resp.json()
        except ValueError as exc:
            raise TransportError(
                "Invalid JSON in API response",
                status_code=resp.status_code,
                raw_body=resp.text,
            ) from exc

        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        if not isinstance(payload, dict):
            raise TransportError(
                "Unexpected API response shape",
                status_code=resp.status_code,
                raw_body=resp.text,
            )
        return payload

    # ------------------------------------------------------------------
    # Upload endpoints
    # ------------------------------------------------------------------

    async def initiate_upload(
        self, file_name: str, size: int, mime_type: str, parts: int
    ) -> InitiateUploadResponse:
        data = await self.request(
            "POST",
            "/initiate-upload",
            {
                "file_name": file_name,
                "size": size,
                "mime_type": mime_type,
                "parts": parts,
            },
        )
        return _parse(InitiateUploadResponse, data)

    async def put_part(self, url: str, data: bytes, content_type: str) -> PartUploadResponse:
        """PUT raw part bytes to a presigned storage URL.

        The storage host answers with an ETag header; httpx headers are
        case-insensitive, so "ETag" and "etag" both match.
        """
        _, storage = self._ensure_clients()
        logger.debug("PUT part (%d bytes)", len(data))

        try:
            resp = await storage.put(url, content=data, headers={"Content-Type": content_type})
        except httpx.HTTPError as exc:
            raise TransportError(f"Network error: {exc}") from exc

        return PartUploadResponse(
            success=resp.is_success,
            status_code=resp.status_code,
            etag=resp.headers.get("etag", ""),
        )

    async def complete_upload(
        self,
        file_key: str,
        upload_id: str,
        object_name: str | None,
        parts: list[UploadedPart],
    ) -> dict:
        return await self.request(
            "POST",
            "/complete-upload",
            {
                "file_key": file_key,
                "upload_id": upload_id,
                "object_name": object_name,
                "parts": [p.to_dict() for p in parts],
            },
        )

    # ------------------------------------------------------------------
    # Operation endpoints
    # ------------------------------------------------------------------

    async def create_operation(
        self,
        action: str,
        file_keys: list[str],
        parameters: dict | None = None,
        notes: dict | None = None,
    ) -> OperationResponse:
        data = await self.request(
            "POST",
            "/do",
            {
                "action": action,
                "file_keys": list(file_keys),
                "parameters": parameters,
                "notes": notes,
            },
        )
        return _parse(OperationResponse, data)

    async def check_supported_operation(
        self, ext: str, action: str | None = None, parameters: dict | None = None
    ) -> SupportedOperation:
        data = await self.request(
            "POST",
            "/supported-operation",
            {"ext": ext, "action": action, "parameters": parameters},
        )
        return _parse(SupportedOperation, data)

    async def get_status(
        self, main_task_id: str, file_task_id: str | None = None
    ) -> OperationStatus:
        path = f"/status/{main_task_id}"
        if file_task_id:
            path += f"/{file_task_id}"
        data = await self.request("GET", path)
        return _parse(OperationStatus, data)


def _parse(model: Any, data: dict) -> Any:
    """Build `model` from a response payload, mapping malformed shapes to TransportError."""
    try:
        return model.from_dict(data)
    except (TypeError, AttributeError, ValueError) as exc:
        raise TransportError(
            f"Unexpected API response shape: {exc}",
            details=data,
            raw_body=json.dumps(data, default=str),
        ) from exc


def _api_error(resp: httpx.Response) -> APIError:
    """Build an APIError from a non-2xx response, tolerating non-JSON bodies."""
    try:
        body: Any = resp.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {}

    message = body.get("message") or body.get("error") or "API request failed"
    return APIError(
        str(message),
        status_code=resp.status_code,
        code=body.get("code"),
        details=body or None,
        raw_body=resp.text,
    )
