"""The billing mirror service, wired from settings."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from paymirror.core.config import Settings
from paymirror.core.config import settings as default_settings
from paymirror.core.events import EventBus
from paymirror.core.exceptions import MirrorSyncError
from paymirror.core.logging import logger
from paymirror.db.init_db import init_db
from paymirror.db.session import create_engine, create_session_factory
from paymirror.integrations.provider_client import BillingProviderClient
from paymirror.integrations.stripe_client import StripeClientConfig, StripeProviderClient
from paymirror.platform.sync.mirror_writer import MirrorWriter
from paymirror.platform.sync.reconciler import Reconciler, ReconcilerConfig
from paymirror.platform.sync.scheduler import PeriodicSync
from paymirror.platform.webhooks.processor import WebhookProcessor
from paymirror.platform.webhooks.queue import WebhookConfig


class BillingMirror:
    """Owns every component of one mirror: storage, provider, bus, sync and webhooks.

    The hosting application subscribes to ``bus`` and calls ``start``/``stop``
    around its own lifetime.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        provider: BillingProviderClient,
        *,
        bus: Optional[EventBus] = None,
        reconciler_config: Optional[ReconcilerConfig] = None,
        webhook_config: Optional[WebhookConfig] = None,
        create_tables: bool = True,
        sync_on_startup: bool = False,
        sync_interval_seconds: Optional[float] = None,
    ):
        """Wire the mirror components together.

        Args:
        ----
            engine (AsyncEngine): The mirror database.
            provider (BillingProviderClient): The billing provider.
            bus (Optional[EventBus]): Bus to publish on; a new one is created if omitted.
            reconciler_config (Optional[ReconcilerConfig]): Reconciler switches.
            webhook_config (Optional[WebhookConfig]): Webhook limits and shutdown policy.
            create_tables (bool): Create missing tables on start.
            sync_on_startup (bool): Run a full sync on start.
            sync_interval_seconds (Optional[float]): Period of the background sync, if any.

        """
        self.engine = engine
        self.session_factory = create_session_factory(engine)
        self.provider = provider
        self.bus = bus or EventBus()
        self.writer = MirrorWriter(self.bus)
        self.reconciler = Reconciler(
            provider, self.writer, self.session_factory, reconciler_config
        )
        self.webhooks = WebhookProcessor(
            provider, self.writer, self.session_factory, webhook_config
        )
        self.scheduler = (
            PeriodicSync(self.reconciler, sync_interval_seconds) if sync_interval_seconds else None
        )
        self.create_tables = create_tables
        self.sync_on_startup = sync_on_startup

    @classmethod
    def from_settings(cls, settings: Settings = default_settings) -> "BillingMirror":
        """Build a Stripe-backed mirror from application settings."""
        return cls(
            create_engine(settings.SQLALCHEMY_ASYNC_DATABASE_URI),
            StripeProviderClient(StripeClientConfig.from_settings(settings)),
            reconciler_config=ReconcilerConfig.from_settings(settings),
            webhook_config=WebhookConfig.from_settings(settings),
            create_tables=settings.CREATE_TABLES_ON_STARTUP,
            sync_on_startup=settings.SYNC_ON_STARTUP,
            sync_interval_seconds=settings.SYNC_INTERVAL_SECONDS,
        )

    async def start(self) -> None:
        """Prepare storage, start the webhook consumer and the optional sync jobs."""
        if self.create_tables:
            await init_db(self.engine)

        self.webhooks.start()

        if self.sync_on_startup:
            try:
                await self.reconciler.sync()
            except MirrorSyncError as e:
                logger.warning(f"Startup sync incomplete: {e}")

        if self.scheduler:
            self.scheduler.start()
        logger.info(f"Billing mirror started for provider {self.provider.name}")

    async def stop(self) -> None:
        """Stop background work and release the database."""
        if self.scheduler:
            await self.scheduler.stop()
        await self.webhooks.stop()
        await self.engine.dispose()
        logger.info("Billing mirror stopped")
