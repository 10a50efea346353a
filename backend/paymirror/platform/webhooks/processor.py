"""Webhook processor for billing provider events.

Requests are verified, recorded in the ledger and queued inside the request;
the mirror itself is changed later by the queue's consumer through the same
write path the reconciler uses.
"""

from typing import Awaitable, Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from paymirror import crud, schemas
from paymirror.core.exceptions import (
    LedgerWriteError,
    PayloadTooLargeError,
    RemoteRecordNotFound,
    WebhookBackpressureError,
)
from paymirror.core.logging import LoggerConfigurator
from paymirror.core.shared_models import EntityKind, WebhookAction
from paymirror.db.session import get_db_context
from paymirror.integrations.provider_client import BillingProviderClient
from paymirror.platform.sync.mirror_writer import MirrorWriter
from paymirror.platform.webhooks.queue import WebhookConfig, WebhookQueue

logger = LoggerConfigurator.configure_logger(
    __name__, dimensions={"component": "webhook_processor"}
)


class WebhookProcessor:
    """Accept provider webhooks and apply them to the mirror.

    An event id is accepted at most once: the ledger row is written before the
    request is acknowledged, and a redelivery of a recorded id is answered
    without queueing it again.
    """

    def __init__(
        self,
        provider: BillingProviderClient,
        writer: MirrorWriter,
        session_factory: async_sessionmaker[AsyncSession],
        config: Optional[WebhookConfig] = None,
    ):
        """Initialize the webhook processor.

        Args:
        ----
            provider (BillingProviderClient): Verifies, routes and converts events.
            writer (MirrorWriter): The shared write path.
            session_factory (async_sessionmaker[AsyncSession]): Sessions for ledger and mirror.
            config (Optional[WebhookConfig]): Limits and shutdown behaviour.

        """
        self.provider = provider
        self.writer = writer
        self.session_factory = session_factory
        self.config = config or WebhookConfig()
        self.queue = WebhookQueue(self.apply, self.config)

        self.handlers: dict[
            WebhookAction, Callable[[EntityKind, schemas.ProviderEvent], Awaitable[None]]
        ] = {
            WebhookAction.UPSERT: self._apply_upsert,
            WebhookAction.REMOVE: self._apply_remove,
        }

    def start(self) -> None:
        """Start consuming queued events."""
        self.queue.start()

    async def stop(self) -> None:
        """Stop the consumer according to the configured shutdown policy."""
        await self.queue.stop()

    async def receive(self, payload: bytes, signature: Optional[str]) -> schemas.WebhookReceipt:
        """Verify, record and queue one webhook delivery.

        Args:
        ----
            payload (bytes): The raw request body.
            signature (Optional[str]): The provider's signature header.

        Returns:
        -------
            schemas.WebhookReceipt: The accepted event, flagged if it was a redelivery.

        Raises:
        ------
            WebhookRejectedError: If the body is too large or fails verification.
            LedgerWriteError: If the event could not be recorded or queued.

        """
        if len(payload) > self.config.max_body_bytes:
            raise PayloadTooLargeError(
                f"Webhook body of {len(payload)} bytes exceeds {self.config.max_body_bytes}"
            )

        event = self.provider.construct_event(payload, signature)
        event_logger = logger.with_context(event_id=event.event_id, event_type=event.event_type)
        receipt = schemas.WebhookReceipt(event_id=event.event_id, event_type=event.event_type)
        duplicate = receipt.model_copy(update={"duplicate": True})
        routed = self.provider.route_event(event.event_type) is not None

        async with get_db_context(self.session_factory) as db:
            try:
                if await crud.webhook_event.exists(
                    db, provider=event.provider, event_id=event.event_id
                ):
                    event_logger.info("Duplicate webhook event, already recorded")
                    return duplicate

                await crud.webhook_event.add(
                    db,
                    obj_in=schemas.WebhookEventCreate(
                        provider=event.provider,
                        event_id=event.event_id,
                        event_type=event.event_type,
                        payload=event.payload,
                    ),
                )
            except IntegrityError:
                await db.rollback()
                event_logger.info("Duplicate webhook event, recorded concurrently")
                return duplicate
            except SQLAlchemyError as e:
                await db.rollback()
                raise LedgerWriteError(event.event_id, f"Failed to record event: {e}") from e

            if routed:
                try:
                    await self.queue.put(event)
                except WebhookBackpressureError:
                    await db.rollback()
                    event_logger.error("Webhook queue full, event not recorded")
                    raise
            else:
                event_logger.info("Ignoring unhandled event type")

            try:
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                raise LedgerWriteError(event.event_id, f"Failed to record event: {e}") from e

        event_logger.info("Webhook event accepted")
        return receipt

    async def apply(self, event: schemas.ProviderEvent) -> None:
        """Apply a recorded event to the mirror; called by the queue consumer."""
        route = self.provider.route_event(event.event_type)
        if route is None:
            return
        kind, action = route
        await self.handlers[action](kind, event)

    async def _apply_upsert(self, kind: EntityKind, event: schemas.ProviderEvent) -> None:
        """Create or update the event's object; an update for an unknown row creates it."""
        record = event.record
        if self.config.revalidate_objects:
            external_id = self.provider.identify(kind, record)
            try:
                record = await self.provider.retrieve(kind, external_id)
            except RemoteRecordNotFound:
                await self._remove(kind, external_id)
                return

        converted = self.provider.convert(kind, record)
        async with get_db_context(self.session_factory) as db:
            result = await self.writer.upsert(db, kind, converted)
        logger.with_context(entity_kind=kind.value, event_id=event.event_id).info(
            f"{event.event_type}: {converted.provider_id} {result.action.value}"
        )

    async def _apply_remove(self, kind: EntityKind, event: schemas.ProviderEvent) -> None:
        """Delete the event's object; deleting an unknown row is a no-op."""
        external_id = self.provider.identify(kind, event.record)
        await self._remove(kind, external_id)

    async def _remove(self, kind: EntityKind, external_id: str) -> None:
        async with get_db_context(self.session_factory) as db:
            snapshot = await self.writer.remove(
                db, kind, provider=self.provider.name, provider_id=external_id
            )
        logger.with_context(entity_kind=kind.value).info(
            f"{external_id} {'removed' if snapshot is not None else 'already absent'}"
        )
