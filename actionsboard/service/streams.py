from __future__ import annotations

import asyncio
import json
from typing import AsyncGenerator, Optional

from actionsboard.broadcast.channel import BroadcastChannel, Subscription


async def stream_events_sse(channel: BroadcastChannel, *, keepalive_s: float = 15.0) -> AsyncGenerator[str, None]:
    """
    Server-Sent Events view of the broadcast channel.

    Subscribes on first iteration and releases the subscription whenever the
    generator is closed, including right after the initial comment.
    """
    sub: Optional[Subscription] = None
    try:
        sub = channel.subscribe()
        # Initial comment so browsers leave the "connecting" state even if nothing happens yet.
        yield ": hello\n\n"
        while True:
            try:
                ev = await asyncio.wait_for(sub.get(), timeout=keepalive_s)
            except asyncio.TimeoutError:
                yield ": ping\n\n"
                continue
            yield f"event: {ev.event.value}\ndata: {json.dumps(ev.data, ensure_ascii=False)}\n\n"
    finally:
        if sub is not None:
            sub.close()
