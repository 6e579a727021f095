"""Shared test fixtures for the dragdropdo test suite.

WHY: The upload and polling tests all need the same stand-in for the
remote API: something that records every call and replies with scripted
responses, without any HTTP. Centralizing it here keeps each test focused
on the behavior it checks.

HOW: FakeTransport implements the Transport protocol in memory. Part
PUTs answer with quoted "etag-part-N" tokens unless a test scripts a
different response (or an exception) for part N. Status fetches pop from
a scripted list and repeat the last entry once it runs out. FakeClock
drives the poller deterministically: sleeping advances the clock.

RULES:
- Each test builds its own FakeTransport (no shared mutable state)
- Scripted exceptions are raised, scripted values are returned
- Files are created under pytest's tmp_path and removed with it
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from dragdropdo.api.models import (
    FileStatus,
    InitiateUploadResponse,
    OperationResponse,
    OperationStatus,
    PartUploadResponse,
    SupportedOperation,
)


class FakeTransport:
    """In-memory Transport that records calls and replays scripted responses."""

    def __init__(
        self,
        file_key: str = "file-key-123",
        upload_id: str = "upload-id-456",
        object_name: Optional[str] = "uploads/file-key-123",
        presigned_urls: Optional[List[str]] = None,
        part_responses: Optional[Dict[int, Any]] = None,
        complete_error: Optional[Exception] = None,
        initiate_error: Optional[Exception] = None,
        statuses: Optional[List[Any]] = None,
    ) -> None:
        self.file_key = file_key
        self.upload_id = upload_id
        self.object_name = object_name
        self.presigned_urls = presigned_urls
        self.part_responses = part_responses or {}
        self.complete_error = complete_error
        self.initiate_error = initiate_error
        self.statuses = list(statuses or [])

        self.initiate_calls: List[Dict[str, Any]] = []
        self.put_calls: List[Dict[str, Any]] = []
        self.complete_calls: List[Dict[str, Any]] = []
        self.status_calls: List[tuple] = []
        self.operation_calls: List[Dict[str, Any]] = []
        self.supported_calls: List[Dict[str, Any]] = []

    @property
    def network_calls(self) -> int:
        return (
            len(self.initiate_calls)
            + len(self.put_calls)
            + len(self.complete_calls)
            + len(self.status_calls)
            + len(self.operation_calls)
            + len(self.supported_calls)
        )

    async def initiate_upload(self, file_name, size, mime_type, parts):
        self.initiate_calls.append(
            {"file_name": file_name, "size": size, "mime_type": mime_type, "parts": parts}
        )
        if self.initiate_error is not None:
            raise self.initiate_error
        urls = self.presigned_urls
        if urls is None:
            urls = ["https://storage.test/part{}".format(n) for n in range(1, parts + 1)]
        return InitiateUploadResponse(
            file_key=self.file_key,
            upload_id=self.upload_id,
            presigned_urls=list(urls),
            object_name=self.object_name,
        )

    async def put_part(self, url, data, content_type):
        self.put_calls.append({"url": url, "data": data, "content_type": content_type})
        number = len(self.put_calls)
        scripted = self.part_responses.get(number)
        if isinstance(scripted, Exception):
            raise scripted
        if scripted is not None:
            return scripted
        return PartUploadResponse(success=True, status_code=200, etag='"etag-part-{}"'.format(number))

    async def complete_upload(self, file_key, upload_id, object_name, parts):
        self.complete_calls.append(
            {
                "file_key": file_key,
                "upload_id": upload_id,
                "object_name": object_name,
                "parts": [(p.part_number, p.etag) for p in parts],
            }
        )
        if self.complete_error is not None:
            raise self.complete_error
        return {"message": "Upload completed successfully", "file_key": file_key}

    async def get_status(self, main_task_id, file_task_id=None):
        self.status_calls.append((main_task_id, file_task_id))
        if not self.statuses:
            raise AssertionError("FakeTransport has no scripted statuses")
        scripted = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(scripted, Exception):
            raise scripted
        return scripted

    async def create_operation(self, action, file_keys, parameters=None, notes=None):
        self.operation_calls.append(
            {"action": action, "file_keys": file_keys, "parameters": parameters, "notes": notes}
        )
        return OperationResponse(main_task_id="task-123")

    async def check_supported_operation(self, ext, action=None, parameters=None):
        self.supported_calls.append({"ext": ext, "action": action, "parameters": parameters})
        return SupportedOperation(supported=True, ext=ext, available_actions=["convert"])


class FakeClock:
    """Monotonic clock whose sleep() advances time instead of waiting."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _make_status(operation_status: str, download_link: Optional[str] = None) -> OperationStatus:
    """Build a one-file OperationStatus for scripting poll responses."""
    file_status = "completed" if download_link else operation_status
    return OperationStatus(
        operation_status=operation_status,
        files_data=[
            FileStatus(file_key="file-key-123", status=file_status, download_link=download_link)
        ],
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_transport():
    """A FakeTransport with default upload responses and no statuses."""
    return FakeTransport()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_file(tmp_path):
    """Factory writing a file of `size` bytes under tmp_path.

    Content is a repeating 0..255 byte pattern so every part's bytes are
    distinguishable. `sparse=True` only sets the size (for large files).
    """

    def _make(name: str = "document.pdf", size: int = 0, sparse: bool = False) -> Path:
        path = tmp_path / name
        with open(path, "wb") as f:
            if sparse:
                f.truncate(size)
            else:
                f.write(bytes(i % 256 for i in range(size)))
        return path

    return _make


@pytest.fixture
def make_transport():
    """The FakeTransport class, for tests that need scripted responses."""
    return FakeTransport


@pytest.fixture
def make_status():
    """Factory for one-file OperationStatus objects."""
    return _make_status
