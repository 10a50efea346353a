"""Unit tests for the Stripe provider client."""

import json
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
import stripe

from paymirror.core.config import Settings
from paymirror.core.exceptions import RemoteRecordNotFound, SignatureError, TransportError
from paymirror.core.shared_models import EntityKind
from paymirror.integrations.stripe_client import StripeClientConfig, StripeProviderClient
from tests.fixtures import stripe_objects as so


@pytest.fixture
def client():
    """Stripe client with test credentials."""
    return StripeProviderClient(
        StripeClientConfig(
            secret_key="sk_test_123",
            webhook_secret=so.WEBHOOK_SECRET,
            api_version="2024-06-20",
            page_size=50,
        )
    )


def _page(records):
    """A list result whose auto-pager yields ``records``."""

    async def pages():
        for record in records:
            yield record

    page = MagicMock()
    page.auto_paging_iter.return_value = pages()
    return page


class TestConfig:
    """Tests for StripeClientConfig."""

    def test_from_settings(self):
        """Credentials and limits come from settings."""
        settings = Settings(
            STRIPE_SECRET_KEY="sk_test_1",
            STRIPE_WEBHOOK_SECRET="whsec_1",
            STRIPE_PAGE_SIZE=25,
            WEBHOOK_SIGNATURE_TOLERANCE=60,
        )

        config = StripeClientConfig.from_settings(settings)

        assert config.secret_key == "sk_test_1"
        assert config.page_size == 25
        assert config.signature_tolerance == 60

    def test_from_settings_requires_credentials(self):
        """A mirror cannot be built without Stripe credentials."""
        with pytest.raises(ValueError):
            StripeClientConfig.from_settings(Settings(STRIPE_SECRET_KEY=None))


class TestConstructEvent:
    """Tests for webhook signature verification."""

    def test_valid_signature(self, client):
        """A correctly signed event is parsed."""
        payload, signature = so.signed_event("evt_1", "customer.created", so.customer("cus_1"))

        event = client.construct_event(payload, signature)

        assert event.provider == "stripe"
        assert event.event_id == "evt_1"
        assert event.event_type == "customer.created"
        assert event.record["id"] == "cus_1"
        assert event.payload["data"]["object"]["id"] == "cus_1"

    def test_wrong_secret(self, client):
        """A signature made with another secret is rejected."""
        payload, signature = so.signed_event(
            "evt_1", "customer.created", so.customer("cus_1"), secret="whsec_other"
        )

        with pytest.raises(SignatureError):
            client.construct_event(payload, signature)

    def test_tampered_body(self, client):
        """Changing the body after signing invalidates the signature."""
        payload, signature = so.signed_event("evt_1", "customer.created", so.customer("cus_1"))

        with pytest.raises(SignatureError):
            client.construct_event(payload.replace(b"cus_1", b"cus_2"), signature)

    def test_stale_timestamp(self, client):
        """Signatures older than the tolerance are rejected."""
        payload = json.dumps(so.event("evt_1", "customer.created", so.customer("cus_1"))).encode()
        signature = so.sign(payload, timestamp=int(time.time()) - 3600)

        with pytest.raises(SignatureError):
            client.construct_event(payload, signature)

    def test_missing_header(self, client):
        """A delivery without a signature header is rejected."""
        with pytest.raises(SignatureError):
            client.construct_event(b"{}", None)

    def test_signed_garbage(self, client):
        """A correctly signed body that is not an event is rejected."""
        payload = b'{"hello": "world"}'

        with pytest.raises(SignatureError):
            client.construct_event(payload, so.sign(payload))


class TestApiCalls:
    """Tests for list and retrieve calls."""

    @pytest.mark.asyncio
    async def test_list_records_pages_through(self, client, monkeypatch):
        """All records are yielded and credentials travel with the request."""
        list_async = AsyncMock(return_value=_page([so.product("prod_1"), so.product("prod_2")]))
        monkeypatch.setattr(stripe.Product, "list_async", list_async)

        records = [record async for record in client.list_records(EntityKind.PLAN)]

        assert [record["id"] for record in records] == ["prod_1", "prod_2"]
        list_async.assert_awaited_once_with(
            limit=50, api_key="sk_test_123", stripe_version="2024-06-20"
        )

    @pytest.mark.asyncio
    async def test_list_records_transport_error(self, client, monkeypatch):
        """Stripe errors while listing surface as transport errors."""
        monkeypatch.setattr(
            stripe.Customer,
            "list_async",
            AsyncMock(side_effect=stripe.APIConnectionError("network down")),
        )

        with pytest.raises(TransportError):
            [record async for record in client.list_records(EntityKind.CUSTOMER)]

    @pytest.mark.asyncio
    async def test_retrieve_missing(self, client, monkeypatch):
        """A resource_missing error means the record is gone."""
        error = stripe.InvalidRequestError("No such price", "id", code="resource_missing")
        monkeypatch.setattr(stripe.Price, "retrieve_async", AsyncMock(side_effect=error))

        with pytest.raises(RemoteRecordNotFound) as exc_info:
            await client.retrieve(EntityKind.PRICE, "price_1")

        assert exc_info.value.external_id == "price_1"

    @pytest.mark.asyncio
    async def test_retrieve_deleted(self, client, monkeypatch):
        """Deleted customers are reported as missing."""
        monkeypatch.setattr(
            stripe.Customer,
            "retrieve_async",
            AsyncMock(return_value={"id": "cus_1", "object": "customer", "deleted": True}),
        )

        with pytest.raises(RemoteRecordNotFound):
            await client.retrieve(EntityKind.CUSTOMER, "cus_1")

    @pytest.mark.asyncio
    async def test_retrieve_other_error(self, client, monkeypatch):
        """Other request errors are transport errors."""
        error = stripe.InvalidRequestError("Bad request", "id", code="parameter_invalid")
        monkeypatch.setattr(stripe.Subscription, "retrieve_async", AsyncMock(side_effect=error))

        with pytest.raises(TransportError):
            await client.retrieve(EntityKind.SUBSCRIPTION, "sub_1")
