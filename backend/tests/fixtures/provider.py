"""In-memory Stripe provider for tests.

Only the network calls are replaced; signature checking, identification,
conversion and event routing are the real Stripe implementations.
"""

import copy
from typing import Any, AsyncIterator, Optional

from paymirror.core.exceptions import RemoteRecordNotFound, TransportError
from paymirror.core.shared_models import EntityKind
from paymirror.integrations.stripe_client import StripeClientConfig, StripeProviderClient
from tests.fixtures.stripe_objects import WEBHOOK_SECRET


class FakeStripeProvider(StripeProviderClient):
    """Stripe client serving records from memory."""

    def __init__(self, webhook_secret: str = WEBHOOK_SECRET):
        super().__init__(StripeClientConfig(secret_key="sk_test", webhook_secret=webhook_secret))
        self.records: dict[EntityKind, dict[str, dict[str, Any]]] = {
            kind: {} for kind in EntityKind
        }
        self.fail_after: dict[EntityKind, int] = {}
        self.list_calls: list[EntityKind] = []
        self.retrieve_calls: list[tuple[EntityKind, str]] = []

    def put(self, kind: EntityKind, record: dict[str, Any]) -> None:
        """Create or replace a remote record."""
        self.records[kind][record["id"]] = record

    def delete(self, kind: EntityKind, external_id: str) -> None:
        """Remove a remote record."""
        self.records[kind].pop(external_id)

    def fail_listing(self, kind: EntityKind, after: int = 0) -> None:
        """Make listing ``kind`` fail after yielding ``after`` records."""
        self.fail_after[kind] = after

    async def list_records(self, kind: EntityKind) -> AsyncIterator[dict[str, Any]]:
        self.list_calls.append(kind)
        fail_after: Optional[int] = self.fail_after.get(kind)
        for index, record in enumerate(list(self.records[kind].values())):
            if fail_after is not None and index >= fail_after:
                raise TransportError("Stripe", "connection reset")
            yield copy.deepcopy(record)
        if fail_after is not None:
            raise TransportError("Stripe", "connection reset")

    async def retrieve(self, kind: EntityKind, external_id: str) -> dict[str, Any]:
        self.retrieve_calls.append((kind, external_id))
        if external_id not in self.records[kind]:
            raise RemoteRecordNotFound(kind, external_id)
        return copy.deepcopy(self.records[kind][external_id])
