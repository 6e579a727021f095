"""Dragdropdo client: typed async access to the Dragdropdo file-processing API.

WHY: The Dragdropdo business API converts, compresses, merges, zips,
shares and (un)locks files. Using it means a multipart upload with
presigned URLs, an operation request, and status polling. This package
wraps that workflow in one async client.

HOW: Three layers: wire (api: models + httpx transport), core (upload
orchestration and the polling state machine), and the DragdropdoClient
facade that wires them together. Each layer is independently testable.

RULES:
- The core depends only on the Transport protocol
- Every error the client raises itself is a DragdropdoError subclass
- No retries anywhere; callers decide how to recover
"""

from dragdropdo.client import DragdropdoClient
from dragdropdo.errors import (
    APIError,
    DragdropdoError,
    PollingTimeoutError,
    TransportError,
    UploadError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "APIError",
    "DragdropdoClient",
    "DragdropdoError",
    "PollingTimeoutError",
    "TransportError",
    "UploadError",
    "ValidationError",
    "__version__",
]
