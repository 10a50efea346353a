"""Schemas for the application."""

from .customer import Customer, CustomerRecord
from .plan import Plan, PlanRecord
from .price import Price, PriceRecord
from .subscription import Subscription, SubscriptionRecord
from .sync import EntitySyncStats, SyncReport
from .webhook_event import ProviderEvent, WebhookEvent, WebhookEventCreate, WebhookReceipt

__all__ = [
    "Customer",
    "CustomerRecord",
    "EntitySyncStats",
    "Plan",
    "PlanRecord",
    "Price",
    "PriceRecord",
    "ProviderEvent",
    "Subscription",
    "SubscriptionRecord",
    "SyncReport",
    "WebhookEvent",
    "WebhookEventCreate",
    "WebhookReceipt",
]
