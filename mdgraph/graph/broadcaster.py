"""Owner of the last published snapshot and its subscribers."""
from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Awaitable, Callable

from mdgraph.models import GraphSnapshot
from mdgraph.observability import record_broadcast

logger = logging.getLogger("mdgraph.graph")

Subscriber = Callable[[GraphSnapshot], Awaitable[None]]

DEFAULT_SEND_TIMEOUT = 5.0


def canonical_json(snapshot: GraphSnapshot) -> str:
    return json.dumps(snapshot.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))


class SnapshotBroadcaster:
    """Publishes complete snapshots, skipping ones identical to the last.

    Subscribers are sent to concurrently; one that fails or does not accept
    a snapshot within ``send_timeout`` seconds is dropped.
    """

    def __init__(self, initial: GraphSnapshot | None = None, send_timeout: float = DEFAULT_SEND_TIMEOUT):
        self._current = initial or GraphSnapshot()
        self._current_json = canonical_json(self._current)
        self._subscribers: dict[int, Subscriber] = {}
        self._tokens = itertools.count(1)
        self.send_timeout = send_timeout

    @property
    def current(self) -> GraphSnapshot:
        return self._current

    def count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, subscriber: Subscriber) -> int:
        """Register ``subscriber`` and send it the current snapshot."""
        token = next(self._tokens)
        self._subscribers[token] = subscriber
        await self._deliver(token, subscriber, self._current)
        return token

    def unsubscribe(self, token: int) -> None:
        self._subscribers.pop(token, None)

    async def publish(self, snapshot: GraphSnapshot) -> bool:
        """Replace the current snapshot and notify subscribers if it changed."""
        encoded = canonical_json(snapshot)
        if encoded == self._current_json:
            return False

        self._current = snapshot
        self._current_json = encoded
        await asyncio.gather(
            *(
                self._deliver(token, subscriber, snapshot)
                for token, subscriber in list(self._subscribers.items())
            )
        )
        record_broadcast(len(self._subscribers))
        return True

    async def _deliver(self, token: int, subscriber: Subscriber, snapshot: GraphSnapshot) -> None:
        try:
            await asyncio.wait_for(subscriber(snapshot), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Subscriber {token} did not accept graph update within {self.send_timeout}s")
            self.unsubscribe(token)
        except Exception as e:
            logger.error(f"Error sending graph update to subscriber {token}: {e}")
            self.unsubscribe(token)
