"""Pure conversion of Stripe API objects into mirror records.

Functions here take plain dictionaries (as delivered in webhook payloads or
returned by the API) and never call Stripe.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import ValidationError

from paymirror import schemas
from paymirror.core.exceptions import ConversionError
from paymirror.core.shared_models import BillingSchedule, EntityKind, WebhookAction

PROVIDER_NAME = "stripe"

_INTERVAL_SCHEDULES = {
    "month": BillingSchedule.MONTHLY,
    "year": BillingSchedule.ANNUAL,
}

_ACTIVE_SUBSCRIPTION_STATUSES = frozenset({"active", "trialing"})

EVENT_ROUTES: dict[str, tuple[EntityKind, WebhookAction]] = {
    "customer.created": (EntityKind.CUSTOMER, WebhookAction.UPSERT),
    "customer.updated": (EntityKind.CUSTOMER, WebhookAction.UPSERT),
    "customer.deleted": (EntityKind.CUSTOMER, WebhookAction.REMOVE),
    "product.created": (EntityKind.PLAN, WebhookAction.UPSERT),
    "product.updated": (EntityKind.PLAN, WebhookAction.UPSERT),
    "product.deleted": (EntityKind.PLAN, WebhookAction.REMOVE),
    "price.created": (EntityKind.PRICE, WebhookAction.UPSERT),
    "price.updated": (EntityKind.PRICE, WebhookAction.UPSERT),
    "price.deleted": (EntityKind.PRICE, WebhookAction.REMOVE),
    "customer.subscription.created": (EntityKind.SUBSCRIPTION, WebhookAction.UPSERT),
    "customer.subscription.updated": (EntityKind.SUBSCRIPTION, WebhookAction.UPSERT),
    "customer.subscription.paused": (EntityKind.SUBSCRIPTION, WebhookAction.UPSERT),
    "customer.subscription.resumed": (EntityKind.SUBSCRIPTION, WebhookAction.UPSERT),
    "customer.subscription.deleted": (EntityKind.SUBSCRIPTION, WebhookAction.REMOVE),
}


def ref_id(value: Any) -> Optional[str]:
    """Id of a linked object, whether Stripe returned it as an id or expanded it."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        linked = value.get("id")
        return linked if isinstance(linked, str) and linked else None
    return None


def identify(record: dict[str, Any]) -> str:
    """External id of any Stripe object."""
    external_id = record.get("id")
    if not isinstance(external_id, str) or not external_id:
        raise ConversionError(None, "record has no id")
    return external_id


def convert_customer(record: dict[str, Any]) -> schemas.CustomerRecord:
    """Stripe customer to customer record."""
    return schemas.CustomerRecord(
        provider=PROVIDER_NAME,
        provider_id=identify(record),
        name=record.get("name") or "",
        email=record.get("email") or "",
    )


def convert_product(record: dict[str, Any]) -> schemas.PlanRecord:
    """Stripe product to plan record."""
    external_id = identify(record)
    name = record.get("name")
    if not name:
        raise ConversionError(external_id, "product has no name")
    return schemas.PlanRecord(
        provider=PROVIDER_NAME,
        provider_id=external_id,
        name=name,
        description=record.get("description") or None,
        active=bool(record.get("active", True)),
    )


def billing_schedule(record: dict[str, Any]) -> BillingSchedule:
    """Billing schedule of a Stripe price.

    One-time prices are billed once; recurring prices must bill monthly or yearly.
    """
    if record.get("type") == "one_time":
        return BillingSchedule.ONCE

    recurring = record.get("recurring") or {}
    interval = recurring.get("interval")
    if interval not in _INTERVAL_SCHEDULES:
        raise ConversionError(record.get("id"), f"unsupported billing interval {interval!r}")
    return _INTERVAL_SCHEDULES[interval]


def convert_price(record: dict[str, Any]) -> schemas.PriceRecord:
    """Stripe price to price record."""
    external_id = identify(record)

    amount = record.get("unit_amount")
    if amount is None:
        raise ConversionError(external_id, "price has no unit_amount")

    product_id = ref_id(record.get("product"))
    if product_id is None:
        raise ConversionError(external_id, "price has no product")

    currency = record.get("currency")
    if not isinstance(currency, str) or len(currency) != 3:
        raise ConversionError(external_id, f"invalid currency {currency!r}")

    recurring = record.get("recurring") or {}
    return schemas.PriceRecord(
        provider=PROVIDER_NAME,
        provider_id=external_id,
        plan_provider_id=product_id,
        amount=amount,
        currency=currency.lower(),
        schedule=billing_schedule(record),
        trial_days=recurring.get("trial_period_days") or 0,
    )


def convert_subscription(record: dict[str, Any]) -> schemas.SubscriptionRecord:
    """Stripe subscription to subscription record.

    Only the first line item is mirrored; a subscription without one cannot be
    linked to a price.
    """
    external_id = identify(record)

    customer_id = ref_id(record.get("customer"))
    if customer_id is None:
        raise ConversionError(external_id, "subscription has no customer")

    items = (record.get("items") or {}).get("data") or []
    price_id = ref_id(items[0].get("price")) if items else None
    if price_id is None:
        raise ConversionError(external_id, "subscription has no price line item")

    status = record.get("status")
    if not status:
        raise ConversionError(external_id, "subscription has no status")

    created = record.get("created")
    started_at = (
        datetime.fromtimestamp(created, tz=timezone.utc).replace(tzinfo=None)
        if isinstance(created, (int, float))
        else None
    )

    return schemas.SubscriptionRecord(
        provider=PROVIDER_NAME,
        provider_id=external_id,
        customer_provider_id=customer_id,
        price_provider_id=price_id,
        active=status in _ACTIVE_SUBSCRIPTION_STATUSES,
        status=status,
        started_at=started_at,
    )


CONVERTERS: dict[EntityKind, Callable[[dict[str, Any]], Any]] = {
    EntityKind.CUSTOMER: convert_customer,
    EntityKind.PLAN: convert_product,
    EntityKind.PRICE: convert_price,
    EntityKind.SUBSCRIPTION: convert_subscription,
}


def convert(kind: EntityKind, record: dict[str, Any]):
    """Convert a Stripe object of the given kind.

    Raises:
    ------
        ConversionError: If the object cannot be represented in the mirror.

    """
    try:
        return CONVERTERS[kind](record)
    except ValidationError as e:
        raise ConversionError(record.get("id"), str(e)) from e
