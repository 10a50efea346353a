"""Common test fixtures and configuration for pytest.

Mirror tests run against a file-backed SQLite database per test, created with
the same metadata the service uses.
"""

import pytest

from paymirror.core.events import EventBus
from paymirror.db.init_db import init_db
from paymirror.db.session import create_engine, create_session_factory, get_db_context
from paymirror.platform.sync.mirror_writer import MirrorWriter
from paymirror.platform.sync.reconciler import Reconciler
from paymirror.platform.webhooks.processor import WebhookProcessor
from paymirror.platform.webhooks.queue import WebhookConfig
from tests.fixtures.events import EventRecorder
from tests.fixtures.provider import FakeStripeProvider


@pytest.fixture
def database_uri(tmp_path):
    """URI of a fresh SQLite database."""
    return f"sqlite+aiosqlite:///{tmp_path / 'mirror.db'}"


@pytest.fixture
async def db_engine(database_uri):
    """Engine with every mirror table created."""
    engine = create_engine(database_uri)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory on the test database."""
    return create_session_factory(db_engine)


@pytest.fixture
async def db(session_factory):
    """A database session for arranging and asserting."""
    async with get_db_context(session_factory) as session:
        yield session


@pytest.fixture
def bus():
    """A fresh event bus."""
    return EventBus()


@pytest.fixture
def recorder(bus):
    """Records every notification published on ``bus``."""
    return EventRecorder(bus)


@pytest.fixture
def provider():
    """In-memory Stripe provider."""
    return FakeStripeProvider()


@pytest.fixture
def writer(bus):
    """The shared mirror write path."""
    return MirrorWriter(bus)


@pytest.fixture
def reconciler(provider, writer, session_factory):
    """Reconciler with the default conversion failure policy."""
    return Reconciler(provider, writer, session_factory)


@pytest.fixture
def webhook_config():
    """Webhook limits sized for tests."""
    return WebhookConfig(queue_maxsize=10, enqueue_timeout=0.1, drain_timeout=2.0)


@pytest.fixture
async def processor(provider, writer, session_factory, webhook_config):
    """A started webhook processor, stopped after the test."""
    processor = WebhookProcessor(provider, writer, session_factory, webhook_config)
    processor.start()
    yield processor
    await processor.stop()
