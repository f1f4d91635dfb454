"""Status stream for task progress.

Each subscriber owns an ``asyncio.Queue`` that receives snapshots of
:class:`WorkStatus` whenever a task changes phase or a step changes state.
Publishing never awaits, so observers cannot slow down execution; a
subscriber that falls behind loses its oldest snapshots.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from ..core.logger import get_logger
from .base import WorkStatus

logger = get_logger("orchestration.status")

DEFAULT_QUEUE_SIZE = 100


class StatusSubscription:
    """A single observer of the status stream.

    Iterate it with ``async for`` to receive snapshots until it is closed.
    """

    def __init__(
        self,
        broadcaster: StatusBroadcaster,
        task_id: str | None = None,
        maxsize: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._broadcaster = broadcaster
        self.task_id = task_id
        self.queue: asyncio.Queue[WorkStatus | None] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def wants(self, status: WorkStatus) -> bool:
        return self.task_id is None or self.task_id == status.task_id

    def offer(self, item: WorkStatus | None) -> None:
        """Enqueue without waiting, discarding the oldest entry when full."""
        while True:
            try:
                self.queue.put_nowait(item)
                return
            except asyncio.QueueFull:
                try:
                    self.queue.get_nowait()
                    self.dropped += 1
                except asyncio.QueueEmpty:
                    pass

    async def get(self) -> WorkStatus | None:
        """Wait for the next snapshot. Returns None once the subscription is closed."""
        return await self.queue.get()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._broadcaster.unsubscribe(self)
            self.offer(None)

    def __aiter__(self) -> AsyncIterator[WorkStatus]:
        return self

    async def __anext__(self) -> WorkStatus:
        item = await self.queue.get()
        if item is None:
            raise StopAsyncIteration
        return item

    def __enter__(self) -> StatusSubscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class StatusBroadcaster:
    """Fans status snapshots out to every subscriber."""

    def __init__(self) -> None:
        self._subscribers: list[StatusSubscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(
        self, task_id: str | None = None, maxsize: int = DEFAULT_QUEUE_SIZE
    ) -> StatusSubscription:
        """Create a subscription, optionally limited to one task.

        Args:
            task_id: Only deliver snapshots of this task when given
            maxsize: Queue capacity before old snapshots are dropped

        Returns:
            New subscription
        """
        subscription = StatusSubscription(self, task_id=task_id, maxsize=maxsize)
        self._subscribers.append(subscription)
        return subscription

    def unsubscribe(self, subscription: StatusSubscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def publish(self, status: WorkStatus) -> None:
        """Send a deep copy of the status to every interested subscriber."""
        if not self._subscribers:
            return
        snapshot = status.model_copy(deep=True)
        for subscription in list(self._subscribers):
            if subscription.wants(snapshot):
                subscription.offer(snapshot)

    def close(self) -> None:
        """Close every subscription."""
        for subscription in list(self._subscribers):
            subscription.close()
        logger.debug("Status broadcaster closed")
