"""Shared enums used across the mirror, the sync engine and the webhook path."""

from enum import Enum


class EntityKind(str, Enum):
    """Billing entity types mirrored locally."""

    CUSTOMER = "customer"
    PLAN = "plan"
    PRICE = "price"
    SUBSCRIPTION = "subscription"


# Customer and Plan are independent, Price needs Plan, Subscription needs Customer and Price.
SYNC_ORDER: tuple[EntityKind, ...] = (
    EntityKind.CUSTOMER,
    EntityKind.PLAN,
    EntityKind.PRICE,
    EntityKind.SUBSCRIPTION,
)


class Transition(str, Enum):
    """Mirror changes observers can subscribe to."""

    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"


class BillingSchedule(str, Enum):
    """How often a price is charged."""

    ONCE = "once"
    MONTHLY = "monthly"
    ANNUAL = "annual"


class UpsertAction(str, Enum):
    """Outcome of writing one converted record to the mirror."""

    ADDED = "added"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class WebhookAction(str, Enum):
    """What a routed webhook event does to the mirror."""

    UPSERT = "upsert"
    REMOVE = "remove"


class ShutdownPolicy(str, Enum):
    """What happens to queued webhook events when the service stops."""

    DRAIN = "drain"
    DISCARD = "discard"


class ConversionFailurePolicy(str, Enum):
    """How conversion failures during a pull affect orphan removal."""

    RETAIN = "retain"  # keep the unconvertible row, still remove true orphans
    SUPPRESS_ORPHAN_REMOVAL = "suppress_orphan_removal"
