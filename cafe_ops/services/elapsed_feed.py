"""Live elapsed-time feed for a check-in session.

Yields an ElapsedSnapshot immediately, then once per interval while the
session is running. Changes to the ``checkIns`` collection wake the feed
early so that a pause or check-out is reported without waiting out the
tick. The feed ends right after emitting the frozen value of a paused or
closed session.
"""

import asyncio
import json
from typing import AsyncIterator, Optional

from cafe_ops.logging_config import get_logger
from cafe_ops.models.check_in import CheckInState, ElapsedSnapshot
from cafe_ops.repositories.document_store import CHECK_INS
from cafe_ops.services.session_timer import SessionTimer, get_session_timer

logger = get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 1.0


async def watch_elapsed(
        check_in_id: str,
        timer: Optional[SessionTimer] = None,
        interval: float = DEFAULT_INTERVAL_SECONDS,
) -> AsyncIterator[ElapsedSnapshot]:
    """Stream elapsed snapshots for ``check_in_id``.

    Raises:
        CheckInNotFoundError: If the session is unknown (or disappears)
    """
    timer = timer or get_session_timer()
    loop = asyncio.get_running_loop()
    changed = asyncio.Event()

    def on_snapshot(_documents) -> None:
        # Store callbacks may run on any thread
        loop.call_soon_threadsafe(changed.set)

    unsubscribe = timer.store.subscribe(CHECK_INS, on_snapshot)
    logger.debug("elapsed_feed_started", check_in_id=check_in_id, interval=interval)
    ticks = 0
    try:
        while True:
            changed.clear()
            snapshot = timer.elapsed(check_in_id)
            ticks += 1
            yield snapshot

            if snapshot.state != CheckInState.RUNNING:
                return

            try:
                await asyncio.wait_for(changed.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
    finally:
        unsubscribe()
        logger.debug("elapsed_feed_stopped", check_in_id=check_in_id, ticks=ticks)


def to_event(snapshot: ElapsedSnapshot) -> str:
    """Encode a snapshot as a server-sent event."""
    payload = {
        "checkInId": snapshot.check_in_id,
        "state": snapshot.state.value,
        "elapsedMillis": snapshot.elapsed_millis,
        "elapsed": snapshot.elapsed,
    }
    return f"event: elapsed\ndata: {json.dumps(payload)}\n\n"
