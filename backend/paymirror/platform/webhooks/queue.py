"""Bounded in-process queue feeding verified webhook events to a single consumer."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from paymirror.core.config import Settings
from paymirror.core.exceptions import WebhookBackpressureError
from paymirror.core.logging import LoggerConfigurator
from paymirror.core.shared_models import ShutdownPolicy
from paymirror.schemas.webhook_event import ProviderEvent

logger = LoggerConfigurator.configure_logger(__name__, dimensions={"component": "webhook_queue"})

EventHandler = Callable[[ProviderEvent], Awaitable[None]]


@dataclass(frozen=True)
class WebhookConfig:
    """Limits and shutdown behaviour of the webhook path."""

    max_body_bytes: int = 65536
    queue_maxsize: int = 1000
    enqueue_timeout: float = 5.0
    shutdown_policy: ShutdownPolicy = ShutdownPolicy.DRAIN
    drain_timeout: float = 30.0
    revalidate_objects: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebhookConfig":
        """Build the config from application settings."""
        return cls(
            max_body_bytes=settings.WEBHOOK_MAX_BODY_BYTES,
            queue_maxsize=settings.WEBHOOK_QUEUE_MAXSIZE,
            enqueue_timeout=settings.WEBHOOK_ENQUEUE_TIMEOUT,
            shutdown_policy=settings.WEBHOOK_SHUTDOWN_POLICY,
            drain_timeout=settings.WEBHOOK_DRAIN_TIMEOUT,
            revalidate_objects=settings.WEBHOOK_REVALIDATE_OBJECTS,
        )


class WebhookQueue:
    """FIFO queue with exactly one consumer task.

    Events are handled strictly one at a time in arrival order. A handler that
    raises is logged and the event is dropped; nothing is ever re-queued.
    """

    def __init__(self, handler: EventHandler, config: Optional[WebhookConfig] = None):
        """Initialize the queue.

        Args:
        ----
            handler (EventHandler): Coroutine applied to each event.
            config (Optional[WebhookConfig]): Capacity, timeouts and shutdown policy.

        """
        self.handler = handler
        self.config = config or WebhookConfig()
        self._queue: asyncio.Queue[ProviderEvent] = asyncio.Queue(
            maxsize=self.config.queue_maxsize
        )
        self._consumer: Optional[asyncio.Task] = None
        self._accepting = False

    @property
    def running(self) -> bool:
        """Whether the consumer task is alive."""
        return self._consumer is not None and not self._consumer.done()

    def qsize(self) -> int:
        """Number of events waiting to be handled."""
        return self._queue.qsize()

    def start(self) -> None:
        """Start the consumer task."""
        if self.running:
            return
        self._accepting = True
        self._consumer = asyncio.create_task(self._consume(), name="paymirror-webhook-consumer")

    async def put(self, event: ProviderEvent) -> None:
        """Enqueue an event, waiting up to ``enqueue_timeout`` for space.

        Raises:
        ------
            WebhookBackpressureError: If the queue is stopped or stayed full.

        """
        if not self._accepting:
            raise WebhookBackpressureError(event.event_id, "Webhook queue is not accepting events")
        try:
            self._queue.put_nowait(event)
            return
        except asyncio.QueueFull:
            pass
        try:
            await asyncio.wait_for(self._queue.put(event), timeout=self.config.enqueue_timeout)
        except asyncio.TimeoutError as e:
            raise WebhookBackpressureError(
                event.event_id,
                f"Webhook queue full for {self.config.enqueue_timeout}s",
            ) from e

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        """Stop accepting events and shut the consumer down per the shutdown policy.

        ``drain`` lets the consumer finish the backlog for up to ``drain_timeout``
        seconds; ``discard`` stops at once. Events left behind are logged.
        """
        self._accepting = False
        if self._consumer is None:
            return

        if self.config.shutdown_policy == ShutdownPolicy.DRAIN and self.running:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=self.config.drain_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Webhook queue not drained after {self.config.drain_timeout}s, "
                    f"{self._queue.qsize()} events pending"
                )

        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None

        abandoned = []
        while not self._queue.empty():
            abandoned.append(self._queue.get_nowait().event_id)
            self._queue.task_done()
        if abandoned:
            logger.warning(f"Abandoned {len(abandoned)} webhook events: {', '.join(abandoned)}")

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            event_logger = logger.with_context(event_id=event.event_id, event_type=event.event_type)
            try:
                await self.handler(event)
            except Exception as e:
                event_logger.error(f"Webhook handler failed: {e}", exc_info=True)
            finally:
                self._queue.task_done()
