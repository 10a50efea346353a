"""Stripe implementation of the billing provider contract.

This module handles every direct Stripe interaction. Credentials travel with
each request through ``StripeClientConfig``; the SDK's module-level
``stripe.api_key`` is never set.
"""

import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import stripe

from paymirror import schemas
from paymirror.core.config import Settings
from paymirror.core.exceptions import (
    RemoteRecordNotFound,
    SignatureError,
    TransportError,
)
from paymirror.core.logging import LoggerConfigurator
from paymirror.core.shared_models import EntityKind, WebhookAction
from paymirror.integrations import stripe_converters
from paymirror.integrations.provider_client import (
    BillingProviderClient,
    ConvertedRecord,
    RemoteRecord,
)

logger = LoggerConfigurator.configure_logger(__name__, dimensions={"provider": "stripe"})

_RESOURCES = {
    EntityKind.CUSTOMER: stripe.Customer,
    EntityKind.PLAN: stripe.Product,
    EntityKind.PRICE: stripe.Price,
    EntityKind.SUBSCRIPTION: stripe.Subscription,
}


@dataclass(frozen=True)
class StripeClientConfig:
    """Connection settings for one Stripe account."""

    secret_key: str
    webhook_secret: str
    api_version: Optional[str] = None
    page_size: int = 100
    signature_tolerance: int = 300

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeClientConfig":
        """Build the config from application settings."""
        if not settings.stripe_enabled:
            raise ValueError("STRIPE_SECRET_KEY and STRIPE_WEBHOOK_SECRET must be set")
        return cls(
            secret_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            api_version=settings.STRIPE_API_VERSION,
            page_size=settings.STRIPE_PAGE_SIZE,
            signature_tolerance=settings.WEBHOOK_SIGNATURE_TOLERANCE,
        )


def _to_dict(obj: Any) -> RemoteRecord:
    """Plain, recursive dict copy of a Stripe object."""
    if isinstance(obj, dict) and not isinstance(obj, stripe.StripeObject):
        return obj
    return json.loads(str(obj))


class StripeProviderClient(BillingProviderClient):
    """Client for the Stripe objects mirrored locally."""

    name = stripe_converters.PROVIDER_NAME
    signature_header = "Stripe-Signature"

    def __init__(self, config: StripeClientConfig):
        """Initialize the Stripe client.

        Args:
        ----
            config (StripeClientConfig): Credentials and paging settings.

        """
        self.config = config

    def _request_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"api_key": self.config.secret_key}
        if self.config.api_version:
            options["stripe_version"] = self.config.api_version
        return options

    async def list_records(self, kind: EntityKind) -> AsyncIterator[RemoteRecord]:
        """Every Stripe object of ``kind``, following pagination transparently.

        Raises:
        ------
            TransportError: If any page fails to load.

        """
        resource = _RESOURCES[kind]
        try:
            page = await resource.list_async(
                limit=self.config.page_size, **self._request_options()
            )
            count = 0
            async for obj in page.auto_paging_iter():
                count += 1
                yield _to_dict(obj)
        except stripe.StripeError as e:
            raise TransportError(
                service_name="Stripe",
                message=f"Failed to list {kind.value} records: {str(e)}",
            ) from e
        logger.with_context(entity_kind=kind.value).debug(f"Listed {count} {kind.value} records")

    async def retrieve(self, kind: EntityKind, external_id: str) -> RemoteRecord:
        """Fetch one Stripe object.

        Raises:
        ------
            RemoteRecordNotFound: If Stripe has no such object or it was deleted.
            TransportError: If Stripe cannot be reached.

        """
        resource = _RESOURCES[kind]
        try:
            obj = await resource.retrieve_async(external_id, **self._request_options())
        except stripe.InvalidRequestError as e:
            if e.code == "resource_missing":
                raise RemoteRecordNotFound(kind, external_id) from e
            raise TransportError(
                service_name="Stripe",
                message=f"Failed to retrieve {kind.value} {external_id}: {str(e)}",
            ) from e
        except stripe.StripeError as e:
            raise TransportError(
                service_name="Stripe",
                message=f"Failed to retrieve {kind.value} {external_id}: {str(e)}",
            ) from e

        record = _to_dict(obj)
        if record.get("deleted"):
            raise RemoteRecordNotFound(kind, external_id)
        return record

    def construct_event(self, payload: bytes, signature: Optional[str]) -> schemas.ProviderEvent:
        """Verify the ``Stripe-Signature`` header and parse the event.

        Raises:
        ------
            SignatureError: If the signature is missing, invalid or too old, or the
                signed body is not a Stripe event.

        """
        if not signature:
            raise SignatureError("Missing Stripe-Signature header")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SignatureError("Webhook body is not valid UTF-8") from e

        try:
            stripe.WebhookSignature.verify_header(
                body, signature, self.config.webhook_secret, self.config.signature_tolerance
            )
        except stripe.SignatureVerificationError as e:
            raise SignatureError(f"Invalid webhook signature: {e}") from e

        try:
            event = json.loads(body)
        except ValueError as e:
            raise SignatureError(f"Invalid webhook payload: {e}") from e

        event_id = event.get("id") if isinstance(event, dict) else None
        event_type = event.get("type") if isinstance(event, dict) else None
        record = (event.get("data") or {}).get("object") if isinstance(event, dict) else None
        if not event_id or not event_type or not isinstance(record, dict):
            raise SignatureError("Webhook payload is not a Stripe event")

        return schemas.ProviderEvent(
            provider=self.name,
            event_id=event_id,
            event_type=event_type,
            record=record,
            payload=event,
        )

    def identify(self, kind: EntityKind, record: RemoteRecord) -> str:
        """External id of a Stripe object."""
        return stripe_converters.identify(record)

    def convert(self, kind: EntityKind, record: RemoteRecord) -> ConvertedRecord:
        """Convert a Stripe object into the mirror's shape."""
        return stripe_converters.convert(kind, record)

    def route_event(self, event_type: str) -> Optional[tuple[EntityKind, WebhookAction]]:
        """Stripe event type to entity kind and action."""
        return stripe_converters.EVENT_ROUTES.get(event_type)
