"""Contract between the mirror and a billing provider."""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional, Union

from paymirror import schemas
from paymirror.core.shared_models import EntityKind, WebhookAction

RemoteRecord = dict[str, Any]
ConvertedRecord = Union[
    schemas.CustomerRecord,
    schemas.PlanRecord,
    schemas.PriceRecord,
    schemas.SubscriptionRecord,
]


class BillingProviderClient(ABC):
    """Read access to one billing provider plus its webhook conventions.

    Remote records are plain dictionaries in the provider's own format. Only
    ``identify`` and ``convert`` interpret them, and both are pure so the sync
    path and the webhook path always agree on what a record means locally.
    """

    name: str
    signature_header: str

    @abstractmethod
    def list_records(self, kind: EntityKind) -> AsyncIterator[RemoteRecord]:
        """Every remote record of ``kind``, across all pages.

        Raises:
        ------
            TransportError: If a page cannot be fetched.

        """

    @abstractmethod
    async def retrieve(self, kind: EntityKind, external_id: str) -> RemoteRecord:
        """Fetch a single record.

        Raises:
        ------
            RemoteRecordNotFound: If the provider has no live record with this id.
            TransportError: If the provider cannot be reached.

        """

    @abstractmethod
    def construct_event(self, payload: bytes, signature: Optional[str]) -> schemas.ProviderEvent:
        """Verify a webhook delivery and parse it.

        Raises:
        ------
            SignatureError: If the signature or the payload is invalid.

        """

    @abstractmethod
    def identify(self, kind: EntityKind, record: RemoteRecord) -> str:
        """External id of a remote record; raises ``ConversionError`` if it has none."""

    @abstractmethod
    def convert(self, kind: EntityKind, record: RemoteRecord) -> ConvertedRecord:
        """Convert a remote record into the mirror's shape; raises ``ConversionError``."""

    @abstractmethod
    def route_event(self, event_type: str) -> Optional[tuple[EntityKind, WebhookAction]]:
        """Which entity kind an event type touches and how, or None to ignore it."""
