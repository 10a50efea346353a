"""Models for the application."""

from ._base import Base, MirrorBase
from .customer import Customer
from .plan import Plan
from .price import Price
from .subscription import Subscription, subscription_user
from .webhook_event import WebhookEvent

__all__ = [
    "Base",
    "Customer",
    "MirrorBase",
    "Plan",
    "Price",
    "Subscription",
    "WebhookEvent",
    "subscription_user",
]
