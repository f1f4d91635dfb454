"""Tests for the status stream."""

from __future__ import annotations

import pytest

from insight_router.orchestration import Scenario, StatusBroadcaster, TaskPhase, WorkStatus


def status(task_id: str = "task_1", phase: TaskPhase = TaskPhase.CREATED) -> WorkStatus:
    return WorkStatus(task_id=task_id, scenario=Scenario.GENERAL_THINKING, phase=phase)


# ==============================================================================
# Broadcaster Tests
# ==============================================================================


class TestStatusBroadcaster:
    """Tests for StatusBroadcaster and StatusSubscription."""

    @pytest.mark.anyio
    async def test_publish_delivers_snapshot(self):
        """Test subscribers receive a copy, not the live object."""
        broadcaster = StatusBroadcaster()
        subscription = broadcaster.subscribe()
        live = status()

        broadcaster.publish(live)
        live.phase = TaskPhase.COMPLETED

        received = await subscription.get()
        assert received.phase == TaskPhase.CREATED
        assert received is not live

    @pytest.mark.anyio
    async def test_task_filter(self):
        """Test task-scoped subscriptions ignore other tasks."""
        broadcaster = StatusBroadcaster()
        subscription = broadcaster.subscribe(task_id="task_2")

        broadcaster.publish(status("task_1"))
        broadcaster.publish(status("task_2"))

        received = await subscription.get()
        assert received.task_id == "task_2"
        assert subscription.queue.empty()

    @pytest.mark.anyio
    async def test_full_queue_drops_oldest(self):
        """Test a slow subscriber loses its oldest snapshots."""
        broadcaster = StatusBroadcaster()
        subscription = broadcaster.subscribe(maxsize=2)

        for phase in (TaskPhase.DETECTING, TaskPhase.SELECTING, TaskPhase.EXECUTING):
            broadcaster.publish(status(phase=phase))

        assert subscription.dropped == 1
        assert (await subscription.get()).phase == TaskPhase.SELECTING
        assert (await subscription.get()).phase == TaskPhase.EXECUTING

    @pytest.mark.anyio
    async def test_close_ends_iteration(self):
        """Test closing a subscription ends async iteration."""
        broadcaster = StatusBroadcaster()
        subscription = broadcaster.subscribe()
        broadcaster.publish(status(phase=TaskPhase.DETECTING))
        broadcaster.close()

        phases = [snapshot.phase async for snapshot in subscription]

        assert phases == [TaskPhase.DETECTING]
        assert subscription.closed is True
        assert broadcaster.subscriber_count == 0

    def test_context_manager_unsubscribes(self):
        """Test leaving the with-block unsubscribes."""
        broadcaster = StatusBroadcaster()

        with broadcaster.subscribe():
            assert broadcaster.subscriber_count == 1

        assert broadcaster.subscriber_count == 0

    def test_publish_without_subscribers(self):
        """Test publishing with nobody listening is a no-op."""
        StatusBroadcaster().publish(status())
