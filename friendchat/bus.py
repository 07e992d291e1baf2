from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional, Set

from bson import ObjectId

from . import config
from .records import MessageRecord

LOGGER = logging.getLogger("friendchat.bus")


@dataclass(frozen=True)
class MessageEvent:
    chat_id: ObjectId
    message: MessageRecord


Predicate = Callable[[MessageEvent], bool]


class MessageBus:
    """In-process fan-out of "message added" events.

    Delivery is fire-and-forget to whoever is subscribed at publish time.
    Nothing is stored, so a subscriber only sees events published after it
    subscribed.
    """

    def __init__(self, backlog: int = config.SUBSCRIBER_BACKLOG) -> None:
        self._queues: Set[asyncio.Queue] = set()
        self._closed = False
        self.backlog = backlog

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    def publish(self, event: MessageEvent) -> int:
        reached = 0
        for q in list(self._queues):
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                # slow subscriber, drop for it only
                LOGGER.warning("subscriber backlog full, dropped message %s", event.message.id)
                continue
            reached += 1
        LOGGER.debug("published message %s to %d subscriber(s)", event.message.id, reached)
        return reached

    def subscribe(self, predicate: Optional[Predicate] = None) -> AsyncIterator[MessageEvent]:
        """Register a listener now and return the stream of its future events.

        The listener is removed once the returned iterator is closed.
        """
        q: asyncio.Queue = asyncio.Queue(maxsize=self.backlog)
        self._queues.add(q)
        return self._drain(q, predicate)

    async def _drain(self, q: asyncio.Queue, predicate: Optional[Predicate]) -> AsyncIterator[MessageEvent]:
        try:
            while not self._closed:
                event = await q.get()
                if event is None:
                    break
                if predicate is None or predicate(event):
                    yield event
        finally:
            # dropped connection or closed bus
            self._queues.discard(q)

    def close(self) -> None:
        self._closed = True
        for q in list(self._queues):
            try:
                q.put_nowait(None)
            except asyncio.QueueFull:
                # the drain loop sees _closed after its next get
                pass
