"""Dragdropdo API request and response dataclasses.

WHY: The Dragdropdo business API returns flat JSON objects for upload
sessions, operations, and status. Typed dataclasses make these structures
explicit, enable IDE autocompletion, and catch field mismatches early.
The upload orchestrator also needs small value types (plan, ranges,
targets, uploaded parts, progress) that never touch the wire.

HOW: Each response dataclass maps 1:1 to an API JSON object. Factory
methods (from_dict) handle parsing from raw, already-unwrapped API
responses. Fields the API only sends in some states are Optional.

RULES:
- Field names are snake_case, matching the wire format exactly
- No camelCase aliases are produced
- from_dict never mutates its input
- Upload value types are frozen; they live for one upload call only
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dragdropdo.config import TERMINAL_STATUSES

# ---------------------------------------------------------------------------
# Upload value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UploadPlan:
    """Everything decided about an upload before the first network call.

    RULES:
    - part_count is in [1, 100]
    - total_size_bytes is the file size at planning time
    """

    file_path: Path
    file_name: str
    mime_type: str
    total_size_bytes: int
    part_count: int


@dataclass(frozen=True)
class PartRange:
    """Half-open byte range [start, end) of one part."""

    part_number: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class UploadTarget:
    """Presigned destination for one part (part_number is 1-based)."""

    part_number: int
    url: str


@dataclass(frozen=True)
class UploadedPart:
    """A part the storage endpoint acknowledged, with its unquoted ETag."""

    part_number: int
    etag: str

    def to_dict(self) -> dict[str, Any]:
        return {"etag": self.etag, "part_number": self.part_number}


@dataclass(frozen=True)
class UploadProgress:
    """Progress snapshot passed to on_progress after each part.

    RULES:
    - bytes_uploaded is cumulative across parts
    - percentage is round(bytes_uploaded / total_bytes * 100), 100 for empty files
    """

    current_part: int
    total_parts: int
    bytes_uploaded: int
    total_bytes: int
    percentage: int


@dataclass
class UploadResult:
    """Returned by a successful upload.

    file_key is the durable handle used by every later operation.
    """

    file_key: str
    upload_id: str
    presigned_urls: list[str]
    object_name: str | None = None


# ---------------------------------------------------------------------------
# Wire responses
# ---------------------------------------------------------------------------


@dataclass
class InitiateUploadResponse:
    """Response of POST /v1/biz/initiate-upload.

    WHY: The orchestrator checks the URL count and upload id before it
    reads a single byte of the file.

    HOW: Missing keys become empty values instead of raising, so the
    orchestrator can report the integrity failure itself.

    RULES:
    - presigned_urls is in part order (index 0 → part 1)
    - object_name is optional and passed back unchanged on completion
    """

    file_key: str
    upload_id: str
    presigned_urls: list[str] = field(default_factory=list)
    object_name: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> InitiateUploadResponse:
        urls = data.get("presigned_urls") or []
        if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
            raise TypeError(f"presigned_urls must be a list of strings, got {urls!r}")
        return cls(
            file_key=data.get("file_key") or "",
            upload_id=data.get("upload_id") or "",
            presigned_urls=list(urls),
            object_name=data.get("object_name"),
        )


@dataclass
class PartUploadResponse:
    """Result of PUTting one part's bytes to its presigned URL.

    etag is the raw header value (quotes not yet stripped), empty when the
    storage endpoint sent none.
    """

    success: bool
    status_code: int
    etag: str = ""


@dataclass
class OperationResponse:
    """Response of POST /v1/biz/do: the main task id of the new operation."""

    main_task_id: str

    @classmethod
    def from_dict(cls, data: dict) -> OperationResponse:
        return cls(main_task_id=data.get("main_task_id") or "")


@dataclass
class SupportedOperation:
    """Response of POST /v1/biz/supported-operation.

    WHY: Callers ask before uploading whether an extension/action pair is
    accepted. The API adds extra keys depending on the action, so the full
    payload is kept in raw.

    RULES:
    - supported defaults to False when the API omits it
    - available_actions defaults to an empty list
    """

    supported: bool
    ext: str | None = None
    available_actions: list[str] = field(default_factory=list)
    parameters: dict[str, Any] | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> SupportedOperation:
        return cls(
            supported=bool(data.get("supported", False)),
            ext=data.get("ext"),
            available_actions=list(data.get("available_actions") or []),
            parameters=data.get("parameters"),
            raw=dict(data),
        )


@dataclass
class FileStatus:
    """Per-file entry of an operation status response.

    RULES:
    - download_link is present once the file finished successfully
    - error_code/error_message are present only for failed files
    """

    file_key: str
    status: str
    download_link: str | None = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> FileStatus:
        return cls(
            file_key=data.get("file_key") or "",
            status=data.get("status") or "",
            download_link=data.get("download_link"),
            error_code=data.get("error_code"),
            error_message=data.get("error_message"),
        )


@dataclass
class OperationStatus:
    """Status response from GET /v1/biz/status/{main_task_id}[/{file_task_id}].

    WHY: The polling loop checks whether an operation is still queued or
    running, or has reached a terminal state. Callers then read the
    per-file download links or errors.

    HOW: Maps operation_status and the ordered files_data list.

    RULES:
    - operation_status is one of "queued", "running", "completed", "failed",
      but unknown values are kept as-is (the set belongs to the remote API)
    - files_data keeps the API's order
    """

    operation_status: str
    files_data: list[FileStatus] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.operation_status in TERMINAL_STATUSES

    @classmethod
    def from_dict(cls, data: dict) -> OperationStatus:
        files = data.get("files_data") or []
        if not isinstance(files, list) or not all(isinstance(f, dict) for f in files):
            raise TypeError(f"files_data must be a list of objects, got {files!r}")
        return cls(
            operation_status=data.get("operation_status") or "",
            files_data=[FileStatus.from_dict(f) for f in files],
        )
