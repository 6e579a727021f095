"""Dragdropdo API wire layer: typed models and the HTTP transport.

WHY: The upload and polling logic should never touch URLs, headers or
JSON envelopes. This package holds everything that knows the wire format.

HOW: models.py defines dataclasses for every request/response shape;
transport.py defines the Transport protocol and its httpx implementation.

RULES:
- All HTTP calls go through a Transport (no direct httpx usage elsewhere)
- Authentication is via Bearer token
- This package never imports dragdropdo.core
"""

from dragdropdo.api.models import (
    FileStatus,
    OperationResponse,
    OperationStatus,
    SupportedOperation,
    UploadProgress,
    UploadResult,
)
from dragdropdo.api.transport import HTTPTransport, Transport

__all__ = [
    "FileStatus",
    "HTTPTransport",
    "OperationResponse",
    "OperationStatus",
    "SupportedOperation",
    "Transport",
    "UploadProgress",
    "UploadResult",
]
