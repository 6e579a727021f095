"""Configuration constants, MIME lookup table, and .env loading.

WHY: Centralizes every configurable value so it is easy to find, update,
and override. Upload limits, polling defaults, and the extension→MIME
table are plain data, not buried in the upload or polling logic.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level ints, strings, and dicts. The load_api_key() function
provides a clear error when the key is missing.

RULES:
- API key is loaded from .env via python-dotenv, never hardcoded
- All network defaults can be overridden via environment variables
- Timeouts and intervals are expressed in milliseconds
- MIME_TYPES keys are lowercase extensions including the dot
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the current working directory (where the host app runs)
load_dotenv()

# ---------------------------------------------------------------------------
# API configuration defaults
# ---------------------------------------------------------------------------

DRAGDROPDO_BASE_URL = os.getenv("DRAGDROPDO_BASE_URL", "https://api-dev.dragdropdo.com")
API_PREFIX = "/v1/biz"

DEFAULT_TIMEOUT_MS = int(os.getenv("DRAGDROPDO_TIMEOUT_MS", "30000"))
DEFAULT_POLL_INTERVAL_MS = int(os.getenv("DRAGDROPDO_POLL_INTERVAL_MS", "2000"))
DEFAULT_POLL_TIMEOUT_MS = int(os.getenv("DRAGDROPDO_POLL_TIMEOUT_MS", "300000"))

# ---------------------------------------------------------------------------
# Multipart upload limits
# ---------------------------------------------------------------------------

UPLOAD_CHUNK_SIZE = 5 * 1024 * 1024  # 5 MiB per part when parts are auto-calculated
MIN_UPLOAD_PARTS = 1
MAX_UPLOAD_PARTS = 100
"""The remote API rejects initiate requests asking for more parts than this."""

# ---------------------------------------------------------------------------
# Operation status values
# ---------------------------------------------------------------------------

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

# ---------------------------------------------------------------------------
# MIME type lookup: file extension → content type
# ---------------------------------------------------------------------------

MIME_TYPES: dict[str, str] = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".zip": "application/zip",
    ".txt": "text/plain",
    ".mp4": "video/mp4",
    ".mp3": "audio/mpeg",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def load_api_key() -> str:
    """Load the Dragdropdo API key from the environment.

    WHY: The API key is required for every API call. Loading it from the
    environment (via .env) keeps it out of source code.

    HOW: Reads DRAGDROPDO_API_KEY from os.environ (populated by python-dotenv).

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("DRAGDROPDO_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "Dragdropdo API key not configured. "
            "Pass api_key= or add DRAGDROPDO_API_KEY to your .env file."
        )
    return key
