"""Async client for the Dragdropdo business file-processing API.

WHY: Callers need to upload files, run operations on them (convert,
compress, merge, zip, share, PDF lock/unlock/reset), and wait for the
results. This module puts the whole workflow behind a single client class
so callers (scripts, services, tests) don't need to know HTTP details.

HOW: DragdropdoClient is an async context manager that owns one
HTTPTransport (httpx). Entering it opens the connection pools, exiting
closes them. Uploads are delegated to UploadOrchestrator and polling to
StatusPoller; everything else is a validated call straight to the
transport. Typical flow:
upload_file → convert/compress/... → poll_status → read download links.

RULES:
- Always use the async context manager (async with DragdropdoClient(...) as client:)
- api_key defaults to load_api_key() from .env; an empty key is rejected
- Input validation raises ValidationError before any request is sent
- poll_status defaults: interval 2000 ms, timeout 300000 ms
- No retries: every error reaches the caller
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx

from dragdropdo.api.models import (
    OperationResponse,
    OperationStatus,
    SupportedOperation,
    UploadResult,
)
from dragdropdo.api.transport import HTTPTransport, Transport
from dragdropdo.config import DEFAULT_POLL_INTERVAL_MS, DEFAULT_POLL_TIMEOUT_MS, load_api_key
from dragdropdo.core.polling import StatusCallback, StatusPoller
from dragdropdo.core.upload import ProgressCallback, UploadOrchestrator
from dragdropdo.errors import ValidationError


class DragdropdoClient:
    """Async client for the Dragdropdo business API.

    WHY: Provides a clean, typed interface for the full workflow:
    upload → operate → poll. Handles auth, validation, and error wrapping.

    HOW: Builds an HTTPTransport unless one is injected. Use as an async
    context manager to ensure the HTTP connection pools are closed.

    RULES:
    - Use as: async with DragdropdoClient() as client: ...
    - base_url defaults to DRAGDROPDO_BASE_URL from config
    - timeout_ms defaults to DEFAULT_TIMEOUT_MS from config
    - An injected transport is used as-is and not entered/exited
    - http_transport is handed to httpx (e.g. httpx.MockTransport in tests)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_ms: int | None = None,
        headers: dict[str, str] | None = None,
        transport: Transport | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if api_key is None and transport is None:
            try:
                api_key = load_api_key()
            except ValueError as exc:
                raise ValidationError("API key is required") from exc
        if transport is None and not (api_key or "").strip():
            raise ValidationError("API key is required")

        self._api_key = api_key
        self._http: HTTPTransport | None = None
        if transport is None:
            self._http = HTTPTransport(
                api_key=api_key or "",
                base_url=base_url,
                timeout_ms=timeout_ms,
                headers=headers,
                transport=http_transport,
            )
            transport = self._http
        self._transport: Transport = transport
        self._uploader = UploadOrchestrator(transport)
        self._poller = StatusPoller(transport)

    @property
    def api_key(self) -> str | None:
        return self._api_key

    @property
    def transport(self) -> Transport:
        return self._transport

    async def __aenter__(self) -> DragdropdoClient:
        if self._http is not None:
            await self._http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._http is not None:
            await self._http.__aexit__(exc_type, exc_val, exc_tb)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload_file(
        self,
        file_path: str | Path,
        file_name: str,
        mime_type: str | None = None,
        parts: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        """Upload a local file to Dragdropdo storage and return its file key.

        WHY: Every operation works on file keys, and the only way to get
        one is the multipart upload flow.

        HOW: Delegates to UploadOrchestrator: request presigned URLs, PUT
        each part, complete the upload.

        RULES:
        - file_path must point to an existing file
        - on_progress exceptions propagate and abort the upload
        - Raises UploadError for protocol failures after initiation

        Args:
            file_path: Path to the file to upload.
            file_name: Original file name (also used for MIME detection).
            mime_type: MIME type; auto-detected when omitted.
            parts: Number of parts; auto-calculated when omitted.
            on_progress: Optional callback receiving UploadProgress per part.

        Returns:
            UploadResult whose file_key feeds create_operation().
        """
        return await self._uploader.upload(
            file_path,
            file_name,
            mime_type=mime_type,
            parts=parts,
            on_progress=on_progress,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def check_supported_operation(
        self,
        ext: str,
        action: str | None = None,
        parameters: dict[str, Any] | None = None,
    ) -> SupportedOperation:
        """Ask whether an extension (and optionally an action) is supported."""
        if not ext:
            raise ValidationError("Extension (ext) is required")
        return await self._transport.check_supported_operation(ext, action, parameters)

    async def create_operation(
        self,
        action: str,
        file_keys: list[str],
        parameters: dict[str, Any] | None = None,
        notes: dict[str, Any] | None = None,
    ) -> OperationResponse:
        """Create a file operation and return its main task id.

        RULES:
        - action and at least one file key are required
        - parameters are action-specific and passed through unchanged
        - notes is free-form user metadata stored with the task

        Args:
            action: Action name ("convert", "compress", "merge", ...).
            file_keys: File keys from upload_file().
            parameters: Optional action-specific parameters.
            notes: Optional user metadata.

        Returns:
            OperationResponse carrying main_task_id for poll_status().
        """
        if not action:
            raise ValidationError("Action is required")
        if not file_keys:
            raise ValidationError("At least one file key is required")
        return await self._transport.create_operation(action, list(file_keys), parameters, notes)

    async def convert(
        self, file_keys: list[str], convert_to: str, notes: dict[str, Any] | None = None
    ) -> OperationResponse:
        """Convert files to another format (e.g. convert_to="png")."""
        return await self.create_operation(
            "convert", file_keys, parameters={"convert_to": convert_to}, notes=notes
        )

    async def compress(
        self,
        file_keys: list[str],
        compression_value: str = "recommended",
        notes: dict[str, Any] | None = None,
    ) -> OperationResponse:
        return await self.create_operation(
            "compress",
            file_keys,
            parameters={"compression_value": compression_value},
            notes=notes,
        )

    async def merge(
        self, file_keys: list[str], notes: dict[str, Any] | None = None
    ) -> OperationResponse:
        return await self.create_operation("merge", file_keys, notes=notes)

    async def zip(
        self, file_keys: list[str], notes: dict[str, Any] | None = None
    ) -> OperationResponse:
        return await self.create_operation("zip", file_keys, notes=notes)

    async def share(
        self, file_keys: list[str], notes: dict[str, Any] | None = None
    ) -> OperationResponse:
        """Generate shareable links for files."""
        return await self.create_operation("share", file_keys, notes=notes)

    async def lock_pdf(
        self, file_keys: list[str], password: str, notes: dict[str, Any] | None = None
    ) -> OperationResponse:
        return await self.create_operation(
            "lock", file_keys, parameters={"password": password}, notes=notes
        )

    async def unlock_pdf(
        self, file_keys: list[str], password: str, notes: dict[str, Any] | None = None
    ) -> OperationResponse:
        return await self.create_operation(
            "unlock", file_keys, parameters={"password": password}, notes=notes
        )

    async def reset_pdf_password(
        self,
        file_keys: list[str],
        old_password: str,
        new_password: str,
        notes: dict[str, Any] | None = None,
    ) -> OperationResponse:
        return await self.create_operation(
            "reset_password",
            file_keys,
            parameters={"old_password": old_password, "new_password": new_password},
            notes=notes,
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def get_status(
        self, main_task_id: str, file_task_id: str | None = None
    ) -> OperationStatus:
        """Fetch the current status of an operation once."""
        if not main_task_id:
            raise ValidationError("main_task_id is required")
        return await self._transport.get_status(main_task_id, file_task_id)

    async def poll_status(
        self,
        main_task_id: str,
        file_task_id: str | None = None,
        interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        timeout_ms: int = DEFAULT_POLL_TIMEOUT_MS,
        on_update: StatusCallback | None = None,
    ) -> OperationStatus:
        """Poll an operation until it completes or fails.

        WHY: Operations finish asynchronously; callers want to await the
        final status rather than write their own loop.

        HOW: Delegates to StatusPoller with the client's defaults.

        RULES:
        - Returns the status as soon as it is "completed" or "failed"
          (a "failed" operation is returned, not raised)
        - Raises PollingTimeoutError after timeout_ms
        - on_update is called with every fetched status

        Args:
            main_task_id: Main task id from create_operation().
            file_task_id: Optional specific file task id.
            interval_ms: Polling interval in milliseconds.
            timeout_ms: Maximum polling duration in milliseconds.
            on_update: Optional callback for each status update.

        Returns:
            The terminal OperationStatus.
        """
        return await self._poller.poll(
            main_task_id,
            file_task_id,
            interval_ms=interval_ms,
            timeout_ms=timeout_ms,
            on_update=on_update,
        )
