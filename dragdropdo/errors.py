"""Exception taxonomy for the Dragdropdo client.

WHY: Callers need typed exceptions to tell apart bad input (fix the call),
a broken upload (retry the upload end-to-end), a poll that ran out of time,
and a failed HTTP exchange (inspect status code and body).

HOW: Every exception derives from DragdropdoError, which carries the
optional HTTP status code, API error code, and a details payload. The
transport raises TransportError/APIError; the upload orchestrator and
status poller raise UploadError and PollingTimeoutError.

RULES:
- ValidationError is raised before any network effect
- UploadError carries the failing part number and protocol stage when known
- PollingTimeoutError is also a builtin TimeoutError
- APIError is a TransportError that has an HTTP response behind it
"""

from __future__ import annotations

from typing import Any

UPLOAD_STAGES = ("initiate", "read", "transfer", "complete")


class DragdropdoError(Exception):
    """Base class for every error raised by this package."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        super().__init__(message)


class ValidationError(DragdropdoError, ValueError):
    """Raised when caller input violates a precondition.

    Always raised before the client touches the network.
    """

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message, status_code=400, details=details)


class TransportError(DragdropdoError):
    """Raised when an HTTP exchange fails.

    WHY: The upload and polling logic never parse the wire format. They
    only need one failure signal with whatever the transport knew about
    the failure.

    HOW: Network failures leave status_code as None. Error responses from
    the API use the APIError subclass and fill in status_code, code and
    the raw body.

    RULES:
    - raw_body is the undecoded response text, or None for network errors
    - details is the decoded JSON error body when there was one
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        details: Any = None,
        raw_body: str | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, code=code, details=details)
        self.raw_body = raw_body


class APIError(TransportError):
    """Raised when the Dragdropdo API returns a non-2xx response."""

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"Dragdropdo API error {self.status_code}: {self.message}"


class UploadError(DragdropdoError):
    """Raised when the multipart upload protocol fails part-way.

    WHY: After the initiate call the remote side may already hold state
    (an open multipart upload, some stored parts). The caller needs to
    know where it broke to decide whether to retry the whole upload.

    HOW: stage names the protocol step ("initiate", "read", "transfer",
    "complete"); part_number is set for per-part failures.

    RULES:
    - part_number is 1-based, None when the failure is not tied to a part
    - stage is None only for failures outside the named steps
    """

    def __init__(
        self,
        message: str,
        part_number: int | None = None,
        stage: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message, details=details)
        self.part_number = part_number
        self.stage = stage


class PollingTimeoutError(DragdropdoError, TimeoutError):
    """Raised when status polling passes its deadline without a terminal status."""

    def __init__(self, message: str = "Operation timed out", details: Any = None) -> None:
        super().__init__(message, details=details)
