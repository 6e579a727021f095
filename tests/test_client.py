"""Tests for the DragdropdoClient facade.

WHY: The facade is what callers actually use: it validates input, picks
defaults, and wires the transport, orchestrator and poller together. These
tests run the full upload → convert → poll workflow over mocked HTTP and
check every convenience wrapper sends the right action and parameters.

HOW: Workflow tests give the client an httpx.MockTransport handler that
serves the API and storage endpoints. Wrapper and validation tests inject
the in-memory FakeTransport from conftest.

RULES:
- No real network
- Async calls run via asyncio.run() inside sync tests
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from dragdropdo import DragdropdoClient, PollingTimeoutError, ValidationError
from dragdropdo.config import DEFAULT_POLL_INTERVAL_MS, DEFAULT_POLL_TIMEOUT_MS

API_BASE = "https://api-dev.dragdropdo.com"


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    """API key handling."""

    def test_empty_api_key_rejected(self):
        with pytest.raises(ValidationError, match="API key is required"):
            DragdropdoClient(api_key="")

    def test_missing_env_key_rejected(self, monkeypatch):
        monkeypatch.delenv("DRAGDROPDO_API_KEY", raising=False)
        with pytest.raises(ValidationError, match="API key is required"):
            DragdropdoClient()

    def test_env_key_used(self, monkeypatch):
        monkeypatch.setenv("DRAGDROPDO_API_KEY", "env-key")
        assert DragdropdoClient().api_key == "env-key"

    def test_explicit_key_kept(self):
        assert DragdropdoClient(api_key="test-key").api_key == "test-key"

    def test_poll_defaults(self):
        assert DEFAULT_POLL_INTERVAL_MS == 2000
        assert DEFAULT_POLL_TIMEOUT_MS == 300_000


# ---------------------------------------------------------------------------
# Full workflow over mocked HTTP
# ---------------------------------------------------------------------------


class FakeAPI:
    """httpx handler serving the Dragdropdo API and presigned storage URLs."""

    def __init__(self, statuses):
        self.statuses = list(statuses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "PUT":
            number = path.rsplit("part", 1)[1]
            return httpx.Response(200, headers={"ETag": '"etag-part-{}"'.format(number)})
        if path == "/v1/biz/initiate-upload":
            parts = json.loads(request.content)["parts"]
            return httpx.Response(200, json={"data": {
                "file_key": "file-key-123",
                "upload_id": "upload-id-456",
                "presigned_urls": [
                    "https://upload.d3.com/part{}".format(n) for n in range(1, parts + 1)
                ],
                "object_name": "objects/file-key-123",
            }})
        if path == "/v1/biz/complete-upload":
            return httpx.Response(200, json={"data": {
                "message": "Upload completed successfully",
                "file_key": "file-key-123",
            }})
        if path == "/v1/biz/do":
            return httpx.Response(200, json={"data": {"main_task_id": "task-123"}})
        if path.startswith("/v1/biz/status/"):
            body = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            return httpx.Response(200, json={"data": body})
        return httpx.Response(404, json={"message": "Not found"})

    def bodies(self, path):
        return [json.loads(r.content) for r in self.requests if r.url.path == path]


def _client(api):
    return DragdropdoClient(
        api_key="test-key",
        base_url=API_BASE,
        timeout_ms=30_000,
        http_transport=httpx.MockTransport(api),
    )


class TestWorkflow:
    """upload → convert → poll against a mocked API."""

    def test_upload_convert_poll(self, make_file):
        path = make_file("test.pdf", size=6 * 1024)
        api = FakeAPI(statuses=[
            {"operation_status": "queued",
             "files_data": [{"file_key": "file-key-123", "status": "queued"}]},
            {"operation_status": "completed",
             "files_data": [{"file_key": "file-key-123", "status": "completed",
                             "download_link": "https://files.d3.com/output.png"}]},
        ])
        progress = []
        updates = []

        async def _run():
            async with _client(api) as client:
                upload = await client.upload_file(
                    path, "test.pdf", mime_type="application/pdf", parts=2,
                    on_progress=progress.append,
                )
                operation = await client.convert([upload.file_key], convert_to="png")
                status = await client.poll_status(
                    operation.main_task_id, interval_ms=10, timeout_ms=5000,
                    on_update=updates.append,
                )
                return upload, operation, status

        upload, operation, status = asyncio.run(_run())

        assert upload.file_key == "file-key-123"
        assert upload.upload_id == "upload-id-456"
        assert len(upload.presigned_urls) == 2
        assert api.bodies("/v1/biz/complete-upload")[0]["parts"] == [
            {"etag": "etag-part-1", "part_number": 1},
            {"etag": "etag-part-2", "part_number": 2},
        ]
        assert [p.current_part for p in progress] == [1, 2]

        assert operation.main_task_id == "task-123"
        assert api.bodies("/v1/biz/do")[0]["parameters"] == {"convert_to": "png"}

        assert status.operation_status == "completed"
        assert status.files_data[0].download_link == "https://files.d3.com/output.png"
        assert [u.operation_status for u in updates] == ["queued", "completed"]

    def test_poll_timeout(self):
        api = FakeAPI(statuses=[{"operation_status": "running", "files_data": []}])

        async def _run():
            async with _client(api) as client:
                await client.poll_status("task-123", interval_ms=5, timeout_ms=20)

        with pytest.raises(PollingTimeoutError):
            asyncio.run(_run())


# ---------------------------------------------------------------------------
# Operations over the fake transport
# ---------------------------------------------------------------------------


def _call(transport, method, *args, **kwargs):
    client = DragdropdoClient(transport=transport)
    return asyncio.run(getattr(client, method)(*args, **kwargs))


class TestConvenienceWrappers:
    """Each wrapper sends its action string and parameters."""

    @pytest.mark.parametrize(
        "method, kwargs, action, parameters",
        [
            ("convert", {"convert_to": "png"}, "convert", {"convert_to": "png"}),
            ("compress", {}, "compress", {"compression_value": "recommended"}),
            ("compress", {"compression_value": "extreme"}, "compress", {"compression_value": "extreme"}),
            ("merge", {}, "merge", None),
            ("zip", {}, "zip", None),
            ("share", {}, "share", None),
            ("lock_pdf", {"password": "s3cret"}, "lock", {"password": "s3cret"}),
            ("unlock_pdf", {"password": "s3cret"}, "unlock", {"password": "s3cret"}),
            (
                "reset_pdf_password",
                {"old_password": "old", "new_password": "new"},
                "reset_password",
                {"old_password": "old", "new_password": "new"},
            ),
        ],
    )
    def test_wrapper_action(self, fake_transport, method, kwargs, action, parameters):
        result = _call(fake_transport, method, ["file-key-123"], **kwargs)

        assert result.main_task_id == "task-123"
        assert fake_transport.operation_calls == [
            {"action": action, "file_keys": ["file-key-123"], "parameters": parameters, "notes": None}
        ]

    def test_notes_are_forwarded(self, fake_transport):
        _call(fake_transport, "merge", ["a", "b"], notes={"ticket": "T-1"})
        assert fake_transport.operation_calls[0]["notes"] == {"ticket": "T-1"}


class TestValidation:
    """Client-side checks fail before any request."""

    def test_create_operation_requires_action(self, fake_transport):
        with pytest.raises(ValidationError, match="Action is required"):
            _call(fake_transport, "create_operation", "", ["k"])
        assert fake_transport.network_calls == 0

    def test_create_operation_requires_file_keys(self, fake_transport):
        with pytest.raises(ValidationError, match="At least one file key"):
            _call(fake_transport, "convert", [], convert_to="png")
        assert fake_transport.network_calls == 0

    def test_get_status_requires_task_id(self, fake_transport):
        with pytest.raises(ValidationError, match="main_task_id is required"):
            _call(fake_transport, "get_status", "")

    def test_check_supported_operation_requires_ext(self, fake_transport):
        with pytest.raises(ValidationError, match="Extension"):
            _call(fake_transport, "check_supported_operation", "")

    def test_check_supported_operation(self, fake_transport):
        result = _call(fake_transport, "check_supported_operation", "pdf", action="convert")
        assert result.supported is True
        assert fake_transport.supported_calls == [
            {"ext": "pdf", "action": "convert", "parameters": None}
        ]

    def test_get_status_single_fetch(self, make_transport, make_status):
        transport = make_transport(statuses=[make_status("running")])
        status = _call(transport, "get_status", "task-123", "file-1")
        assert status.operation_status == "running"
        assert transport.status_calls == [("task-123", "file-1")]
