"""Tests for the WebhookQueue."""

import asyncio

import pytest

from paymirror.core.exceptions import WebhookBackpressureError
from paymirror.core.shared_models import ShutdownPolicy
from paymirror.platform.webhooks.queue import WebhookConfig, WebhookQueue
from paymirror.schemas import ProviderEvent


def _event(n: int) -> ProviderEvent:
    return ProviderEvent(
        provider="stripe",
        event_id=f"evt_{n}",
        event_type="customer.updated",
        record={"id": f"cus_{n}"},
        payload={},
    )


class TestConsumer:
    """Tests for event consumption."""

    @pytest.mark.asyncio
    async def test_fifo(self):
        """Events are handled one at a time in arrival order."""
        handled = []

        async def handler(event):
            await asyncio.sleep(0)
            handled.append(event.event_id)

        queue = WebhookQueue(handler)
        queue.start()
        for n in range(5):
            await queue.put(_event(n))
        await queue.join()
        await queue.stop()

        assert handled == [f"evt_{n}" for n in range(5)]

    @pytest.mark.asyncio
    async def test_handler_failure_is_contained(self):
        """A failing event is dropped and the consumer keeps going."""
        handled = []

        async def handler(event):
            if event.event_id == "evt_0":
                raise RuntimeError("boom")
            handled.append(event.event_id)

        queue = WebhookQueue(handler)
        queue.start()
        await queue.put(_event(0))
        await queue.put(_event(1))
        await queue.join()

        assert handled == ["evt_1"]
        assert queue.running
        await queue.stop()

    @pytest.mark.asyncio
    async def test_put_before_start(self):
        """A queue that is not running refuses events."""
        queue = WebhookQueue(lambda event: asyncio.sleep(0))

        with pytest.raises(WebhookBackpressureError):
            await queue.put(_event(0))


class TestBackpressureAndShutdown:
    """Tests for the bounded capacity and the shutdown policies."""

    @pytest.mark.asyncio
    async def test_full_queue_times_out(self):
        """Enqueueing fails once the queue stays full past the timeout."""
        release = asyncio.Event()

        async def handler(event):
            await release.wait()

        queue = WebhookQueue(handler, WebhookConfig(queue_maxsize=1, enqueue_timeout=0.05))
        queue.start()
        await queue.put(_event(0))
        await asyncio.sleep(0.01)  # consumer takes evt_0 and blocks
        await queue.put(_event(1))

        with pytest.raises(WebhookBackpressureError) as exc_info:
            await queue.put(_event(2))

        assert exc_info.value.event_id == "evt_2"
        release.set()
        await queue.stop()

    @pytest.mark.asyncio
    async def test_drain_on_stop(self):
        """The drain policy handles the backlog before stopping."""
        handled = []

        async def handler(event):
            await asyncio.sleep(0.01)
            handled.append(event.event_id)

        queue = WebhookQueue(handler, WebhookConfig(shutdown_policy=ShutdownPolicy.DRAIN))
        queue.start()
        for n in range(3):
            await queue.put(_event(n))
        await queue.stop()

        assert handled == ["evt_0", "evt_1", "evt_2"]
        assert not queue.running

    @pytest.mark.asyncio
    async def test_drain_timeout_abandons_backlog(self):
        """Events still queued after the drain timeout are abandoned."""
        release = asyncio.Event()

        async def handler(event):
            await release.wait()

        queue = WebhookQueue(
            handler,
            WebhookConfig(shutdown_policy=ShutdownPolicy.DRAIN, drain_timeout=0.05),
        )
        queue.start()
        await queue.put(_event(0))
        await queue.put(_event(1))
        await queue.stop()

        assert queue.qsize() == 0
        assert not queue.running

    @pytest.mark.asyncio
    async def test_discard_on_stop(self):
        """The discard policy stops without handling the backlog."""
        handled = []

        async def handler(event):
            handled.append(event.event_id)

        queue = WebhookQueue(handler, WebhookConfig(shutdown_policy=ShutdownPolicy.DISCARD))
        queue.start()
        for n in range(3):
            await queue.put(_event(n))
        await queue.stop()

        assert handled == []
        assert queue.qsize() == 0

    @pytest.mark.asyncio
    async def test_stopped_queue_refuses_events(self):
        """Nothing is accepted after stop."""
        queue = WebhookQueue(lambda event: asyncio.sleep(0))
        queue.start()
        await queue.stop()

        with pytest.raises(WebhookBackpressureError):
            await queue.put(_event(0))
