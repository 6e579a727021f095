"""Multipart upload orchestration: plan, initiate, transfer parts, complete.

WHY: Files of any size go to Dragdropdo storage as up to 100 parts, each
PUT to its own presigned URL. The storage endpoint answers each PUT with
an ETag, and the upload only becomes a usable file_key once the API is
told every (part_number, etag) pair. This module owns that protocol so
callers only see upload(file) → UploadResult.

HOW: plan_upload() derives an UploadPlan (size, MIME type, part count)
from the filesystem. UploadOrchestrator.upload() then:
initiate → PUT part 1..N in order (seek/read/put/capture ETag/progress)
→ complete. compute_part_ranges() is the pure byte-range arithmetic.

RULES:
- Part count is ceil(size / 5 MiB) unless given, always clamped to [1, 100]
- Byte ranges partition [0, size) exactly; trailing ranges may be empty
- Parts are sent one at a time, ascending; the first failure aborts the rest
- No retries anywhere: a failed upload must be restarted by the caller
- on_progress exceptions propagate unchanged and abort remaining parts
- The file handle is closed on every exit path
- Zero-byte files upload as one empty part
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO

from dragdropdo.api.models import (
    InitiateUploadResponse,
    PartRange,
    UploadedPart,
    UploadPlan,
    UploadProgress,
    UploadResult,
    UploadTarget,
)
from dragdropdo.api.transport import Transport
from dragdropdo.config import (
    DEFAULT_MIME_TYPE,
    MAX_UPLOAD_PARTS,
    MIME_TYPES,
    MIN_UPLOAD_PARTS,
    UPLOAD_CHUNK_SIZE,
)
from dragdropdo.errors import DragdropdoError, TransportError, UploadError, ValidationError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[UploadProgress], None]


# ---------------------------------------------------------------------------
# Planning (pure, no network)
# ---------------------------------------------------------------------------


def detect_mime_type(file_name: str) -> str:
    """Look up the MIME type for a file name by its lowercased extension."""
    return MIME_TYPES.get(Path(file_name).suffix.lower(), DEFAULT_MIME_TYPE)


def resolve_part_count(total_size: int, parts: int | None = None) -> int:
    """Return the number of parts to request, clamped to [1, 100].

    Without an explicit count, one part per started 5 MiB chunk:
    12 MiB → 3, 600 MiB → 100 (not 120), 0 bytes → 1.
    """
    requested = parts if parts is not None else _ceil_div(total_size, UPLOAD_CHUNK_SIZE)
    return max(MIN_UPLOAD_PARTS, min(requested, MAX_UPLOAD_PARTS))


def compute_part_ranges(total_size: int, part_count: int) -> list[PartRange]:
    """Split [0, total_size) into part_count contiguous byte ranges.

    WHY: The API hands out exactly part_count presigned URLs; each must
    receive one slice, and together the slices must rebuild the file.

    HOW: Every part gets ceil(total_size / part_count) bytes; ranges are
    clipped to the file end, so the last non-empty part carries the tail
    and any parts beyond the end are empty.

    RULES:
    - part_count must be >= 1
    - Ranges are returned in ascending part_number order (1-based)
    - Sum of sizes == total_size, no gaps, no overlaps

    Args:
        total_size: File size in bytes.
        part_count: Number of parts.

    Returns:
        One PartRange per part.
    """
    if part_count < 1:
        raise ValueError(f"part_count must be >= 1, got {part_count}")
    if total_size < 0:
        raise ValueError(f"total_size must be >= 0, got {total_size}")

    chunk = _ceil_div(total_size, part_count)
    ranges: list[PartRange] = []
    for index in range(part_count):
        start = min(index * chunk, total_size)
        end = min(start + chunk, total_size)
        ranges.append(PartRange(part_number=index + 1, start=start, end=end))
    return ranges


def validate_upload_request(file_path: str | Path, file_name: str) -> Path:
    """Check upload preconditions; return file_path as a Path.

    Raises ValidationError when file_name is empty or file_path is not an
    existing regular file.
    """
    if not file_name:
        raise ValidationError("file_name is required")
    if not isinstance(file_path, (str, Path)) or not str(file_path):
        raise ValidationError("file must be a file path")

    path = Path(file_path)
    if not path.is_file():
        raise ValidationError(f"File not found: {path}")
    return path


def plan_upload(
    file_path: str | Path,
    file_name: str,
    mime_type: str | None = None,
    parts: int | None = None,
) -> UploadPlan:
    """Validate the request and derive its UploadPlan from the filesystem."""
    path = validate_upload_request(file_path, file_name)

    try:
        size = path.stat().st_size
    except OSError as exc:
        raise UploadError(f"Upload failed: cannot stat {path}: {exc}", stage="read") from exc

    return UploadPlan(
        file_path=path,
        file_name=file_name,
        mime_type=mime_type or detect_mime_type(file_name),
        total_size_bytes=size,
        part_count=resolve_part_count(size, parts),
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


class UploadOrchestrator:
    """Runs the multipart upload protocol over a Transport.

    WHY: Separates the control flow (ordering, integrity checks, progress,
    error staging) from HTTP details, so it can be tested against a fake
    transport and reused by any front-end.

    HOW: Holds only the transport; every upload() call builds its own
    plan, targets and part list, so concurrent uploads never share state.

    RULES:
    - Known DragdropdoError kinds from initiate propagate unchanged
    - Part failures (HTTP status, missing ETag, network) → UploadError(stage="transfer")
    - File read failures → UploadError(stage="read")
    - Completion failures → UploadError(stage="complete")
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def upload(
        self,
        file_path: str | Path,
        file_name: str,
        mime_type: str | None = None,
        parts: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        """Upload a local file and return its file_key.

        WHY: This is the only way to get a file_key for later operations.

        HOW: Plans the upload, initiates it, checks the returned URL count
        and upload id, transfers each part in order, then completes.

        RULES:
        - ValidationError before any network call for bad input
        - on_progress is called synchronously once per part, in order; if it
          raises, the exception propagates as-is and no further parts are sent
        - The remote upload is left uncommitted on any failure after initiate

        Args:
            file_path: Path to the local file.
            file_name: Name the file should have on the remote side.
            mime_type: Content type; detected from file_name when omitted.
            parts: Requested part count; auto-calculated when omitted.
            on_progress: Optional callback receiving UploadProgress.

        Returns:
            UploadResult with file_key, upload_id, presigned_urls, object_name.
        """
        plan = plan_upload(file_path, file_name, mime_type, parts)
        logger.info(
            "Uploading %s (%d bytes, %d parts, %s)",
            plan.file_name,
            plan.total_size_bytes,
            plan.part_count,
            plan.mime_type,
        )

        session = await self._initiate(plan)
        targets = [
            UploadTarget(part_number=number, url=url)
            for number, url in enumerate(session.presigned_urls, start=1)
        ]
        uploaded = await self._transfer_parts(plan, targets, on_progress)
        await self._complete(session, uploaded)

        logger.info("Upload of %s complete (file_key=%s)", plan.file_name, session.file_key)
        return UploadResult(
            file_key=session.file_key,
            upload_id=session.upload_id,
            presigned_urls=list(session.presigned_urls),
            object_name=session.object_name,
        )

    async def _initiate(self, plan: UploadPlan) -> InitiateUploadResponse:
        session = await self._transport.initiate_upload(
            plan.file_name, plan.total_size_bytes, plan.mime_type, plan.part_count
        )

        received = len(session.presigned_urls)
        if received != plan.part_count:
            raise UploadError(
                f"Mismatch: requested {plan.part_count} parts but received "
                f"{received} presigned URLs",
                stage="initiate",
            )
        if not session.upload_id:
            raise UploadError("Upload ID not received from server", stage="initiate")
        return session

    async def _transfer_parts(
        self,
        plan: UploadPlan,
        targets: list[UploadTarget],
        on_progress: ProgressCallback | None,
    ) -> list[UploadedPart]:
        ranges = compute_part_ranges(plan.total_size_bytes, plan.part_count)
        uploaded: list[UploadedPart] = []
        bytes_uploaded = 0

        try:
            handle = open(plan.file_path, "rb")
        except OSError as exc:
            raise UploadError(
                f"Upload failed: cannot open {plan.file_path}: {exc}", stage="read"
            ) from exc

        with handle:
            for target, part_range in zip(targets, ranges):
                chunk = _read_range(handle, part_range)
                uploaded.append(await self._send_part(target, chunk, plan.mime_type))
                bytes_uploaded += len(chunk)

                if on_progress:
                    on_progress(
                        UploadProgress(
                            current_part=part_range.part_number,
                            total_parts=plan.part_count,
                            bytes_uploaded=bytes_uploaded,
                            total_bytes=plan.total_size_bytes,
                            percentage=_percentage(bytes_uploaded, plan.total_size_bytes),
                        )
                    )

        return uploaded

    async def _send_part(
        self, target: UploadTarget, chunk: bytes, content_type: str
    ) -> UploadedPart:
        number = target.part_number
        logger.debug("Sending part %d (%d bytes)", number, len(chunk))

        try:
            resp = await self._transport.put_part(target.url, chunk, content_type)
        except TransportError as exc:
            raise UploadError(
                f"Failed to upload part {number}: {exc.message}",
                part_number=number,
                stage="transfer",
                details=exc.details,
            ) from exc
        except Exception as exc:
            raise UploadError(
                f"Failed to upload part {number}: {exc}",
                part_number=number,
                stage="transfer",
            ) from exc

        if not resp.success:
            raise UploadError(
                f"Failed to upload part {number} (HTTP {resp.status_code})",
                part_number=number,
                stage="transfer",
            )

        etag = _strip_quotes(resp.etag)
        if not etag:
            raise UploadError(
                f"Failed to get ETag for part {number}",
                part_number=number,
                stage="transfer",
            )
        return UploadedPart(part_number=number, etag=etag)

    async def _complete(
        self, session: InitiateUploadResponse, uploaded: list[UploadedPart]
    ) -> None:
        ordered = sorted(uploaded, key=lambda p: p.part_number)
        try:
            await self._transport.complete_upload(
                session.file_key, session.upload_id, session.object_name, ordered
            )
        except DragdropdoError as exc:
            raise UploadError(
                f"Failed to complete upload: {exc.message}",
                stage="complete",
                details=exc.details,
            ) from exc
        except Exception as exc:
            raise UploadError(
                f"Failed to complete upload: {exc}", stage="complete"
            ) from exc


# ---------------------------------------------------------------------------
# Helpers (module-private)
# ---------------------------------------------------------------------------


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def _percentage(done: int, total: int) -> int:
    """Round done/total to a whole percent, halves rounding up."""
    if total <= 0:
        return 100
    return (done * 200 + total) // (2 * total)


def _strip_quotes(etag: str | None) -> str:
    """Drop at most one leading and one trailing double quote."""
    value = etag or ""
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


def _read_range(handle: BinaryIO, part_range: PartRange) -> bytes:
    """Read exactly part_range.size bytes at part_range.start."""
    try:
        handle.seek(part_range.start)
        chunk = handle.read(part_range.size)
    except OSError as exc:
        raise UploadError(
            f"Upload failed: cannot read part {part_range.part_number}: {exc}",
            part_number=part_range.part_number,
            stage="read",
        ) from exc

    if len(chunk) != part_range.size:
        raise UploadError(
            f"Upload failed: short read for part {part_range.part_number} "
            f"({len(chunk)} of {part_range.size} bytes); file changed during upload",
            part_number=part_range.part_number,
            stage="read",
        )
    return chunk
