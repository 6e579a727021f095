"""Time-bounded status polling for submitted operations.

WHY: Operations (convert, compress, merge, ...) run asynchronously on the
Dragdropdo side. Callers need one awaitable that keeps asking for the
status until the operation finishes, fails, or takes too long.

HOW: StatusPoller.poll() fixes a deadline up front, then loops: check the
deadline, fetch the status, hand it to on_update, return on a terminal
status, otherwise sleep for the interval. The clock and sleep functions
are injectable so the loop can be driven deterministically in tests.

RULES:
- Terminal statuses are exactly "completed" and "failed"; everything else
  (including unknown strings) keeps polling
- The deadline is checked before every fetch; no fetch happens past it
- A failed fetch propagates immediately (no retry)
- on_update exceptions propagate unchanged
- interval_ms and timeout_ms are required here; defaults live on the client
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from dragdropdo.api.models import OperationStatus
from dragdropdo.api.transport import Transport
from dragdropdo.errors import PollingTimeoutError, ValidationError

logger = logging.getLogger(__name__)

StatusCallback = Callable[[OperationStatus], None]


class StatusPoller:
    """Polls GET status/{main_task_id}[/{file_task_id}] until a terminal status.

    WHY: Keeps the polling state machine separate from HTTP so its
    termination behavior can be tested exactly.

    HOW: Holds the transport plus a clock (seconds, monotonic) and an
    async sleep. No state survives between poll() calls.

    RULES:
    - clock defaults to time.monotonic, sleep to asyncio.sleep
    - Cancelling the awaiting task stops polling at the next await
    """

    def __init__(
        self,
        transport: Transport,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._clock = clock
        self._sleep = sleep

    async def poll(
        self,
        main_task_id: str,
        file_task_id: str | None = None,
        *,
        interval_ms: int,
        timeout_ms: int,
        on_update: StatusCallback | None = None,
    ) -> OperationStatus:
        """Poll until the operation completes or fails.

        WHY: The only success exit is a terminal status; a slow operation
        must not hang the caller forever.

        HOW: deadline = now + timeout_ms. Each tick: if now > deadline raise
        PollingTimeoutError; else fetch, notify, return if terminal, sleep.

        RULES:
        - Returns on the first terminal status, without sleeping
        - Raises PollingTimeoutError once the deadline has passed
        - Transport errors propagate unchanged

        Args:
            main_task_id: Main task id from create_operation().
            file_task_id: Optional file task id to narrow the status.
            interval_ms: Sleep between fetches, in milliseconds.
            timeout_ms: Maximum polling duration, in milliseconds.
            on_update: Optional callback receiving every fetched status.

        Returns:
            The terminal OperationStatus ("completed" or "failed").
        """
        if not main_task_id:
            raise ValidationError("main_task_id is required")
        if interval_ms < 0 or timeout_ms < 0:
            raise ValidationError("interval_ms and timeout_ms must be >= 0")

        deadline = self._clock() + timeout_ms / 1000.0
        fetches = 0

        while True:
            if self._clock() > deadline:
                raise PollingTimeoutError(
                    f"Polling timed out after {timeout_ms}ms",
                    details={"main_task_id": main_task_id, "fetches": fetches},
                )

            status = await self._transport.get_status(main_task_id, file_task_id)
            fetches += 1
            logger.debug(
                "Task %s status %r (fetch %d)", main_task_id, status.operation_status, fetches
            )

            if on_update:
                on_update(status)

            if status.is_terminal:
                logger.info(
                    "Task %s finished with status %r", main_task_id, status.operation_status
                )
                return status

            await self._sleep(interval_ms / 1000.0)
