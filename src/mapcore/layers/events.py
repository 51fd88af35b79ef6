"""ToggleEvents — typed subscription for layer on/off requests.

Decouples the controller from whatever UI produces the toggles. Dispatches
are processed to completion in the order they were issued.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable


@dataclass(frozen=True)
class ToggleEvent:
    layer_id: str
    on: bool


ToggleHandler = Callable[[ToggleEvent], Awaitable[None]]


class ToggleEvents:
    """Async pub/sub for ToggleEvent.

    Handlers run sequentially in subscription order. An exception from a
    handler propagates to the dispatcher and stops later handlers.
    """

    def __init__(self) -> None:
        self._handlers: list[ToggleHandler] = []
        self._lock = asyncio.Lock()

    def on_toggle(self, handler: ToggleHandler) -> Callable[[], None]:
        """Subscribe a handler. Returns a function that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass

        return unsubscribe

    async def dispatch(self, layer_id: str, on: bool) -> ToggleEvent:
        event = ToggleEvent(layer_id=layer_id, on=on)
        async with self._lock:
            for handler in list(self._handlers):
                await handler(event)
        return event
