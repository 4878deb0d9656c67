"""Waiting for the client before presenting anything."""

from __future__ import annotations

import asyncio


async def settle(delay: float, ready: asyncio.Event | None = None) -> None:
    """Wait until the client can present UI.

    An explicit readiness event wins when the host provides one; otherwise
    fall back to the fixed delay.
    """
    if ready is not None:
        await ready.wait()
        return
    if delay > 0:
        await asyncio.sleep(delay)
