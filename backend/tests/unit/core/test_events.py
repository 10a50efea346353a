"""Unit tests for the EventBus."""

import pytest

from paymirror.core.events import EventBus
from paymirror.core.shared_models import EntityKind, Transition
from paymirror.schemas import CustomerRecord


@pytest.fixture
def snapshot():
    """Any snapshot will do for the bus."""
    return CustomerRecord(provider="stripe", provider_id="cus_1", email="a@x.com")


class TestEventBus:
    """Tests for subscription and publishing."""

    @pytest.mark.asyncio
    async def test_callbacks_run_in_registration_order(self, snapshot):
        """Callbacks for a transition are called in the order they subscribed."""
        bus = EventBus()
        calls = []
        bus.on_added(EntityKind.CUSTOMER, lambda s: calls.append("first"))
        bus.on_added(EntityKind.CUSTOMER, lambda s: calls.append("second"))

        await bus.publish_added(EntityKind.CUSTOMER, snapshot)

        assert calls == ["first", "second"]

    @pytest.mark.asyncio
    async def test_scoped_by_kind_and_transition(self, snapshot):
        """Only callbacks for the published kind and transition run."""
        bus = EventBus()
        calls = []
        bus.on_added(EntityKind.PLAN, lambda s: calls.append("plan added"))
        bus.on_removed(EntityKind.CUSTOMER, lambda s: calls.append("customer removed"))

        await bus.publish_added(EntityKind.CUSTOMER, snapshot)

        assert calls == []

    @pytest.mark.asyncio
    async def test_updated_receives_previous_and_new(self, snapshot):
        """Update callbacks get both snapshots."""
        bus = EventBus()
        received = []
        bus.on_updated(EntityKind.CUSTOMER, lambda prev, new: received.append((prev, new)))
        new = snapshot.model_copy(update={"email": "b@x.com"})

        await bus.publish_updated(EntityKind.CUSTOMER, snapshot, new)

        assert received == [(snapshot, new)]

    @pytest.mark.asyncio
    async def test_coroutine_callbacks_are_awaited(self, snapshot):
        """Async callbacks complete before publish returns."""
        bus = EventBus()
        calls = []

        async def on_removed(s):
            calls.append(s.provider_id)

        bus.on_removed(EntityKind.CUSTOMER, on_removed)
        await bus.publish_removed(EntityKind.CUSTOMER, snapshot)

        assert calls == ["cus_1"]

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_others(self, snapshot):
        """An exception in one callback is contained."""
        bus = EventBus()
        calls = []

        def broken(s):
            raise RuntimeError("boom")

        bus.on_added(EntityKind.CUSTOMER, broken)
        bus.on_added(EntityKind.CUSTOMER, lambda s: calls.append("after"))

        await bus.publish_added(EntityKind.CUSTOMER, snapshot)

        assert calls == ["after"]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, snapshot):
        """The returned callable removes the subscription."""
        bus = EventBus()
        calls = []
        unsubscribe = bus.on_added(EntityKind.CUSTOMER, lambda s: calls.append(s))

        unsubscribe()
        unsubscribe()
        await bus.publish_added(EntityKind.CUSTOMER, snapshot)

        assert calls == []
        assert bus.subscriber_count(EntityKind.CUSTOMER) == 0

    def test_buses_are_independent(self):
        """Registrations are scoped to one bus instance."""
        first, second = EventBus(), EventBus()
        first.subscribe(EntityKind.PRICE, Transition.UPDATED, lambda prev, new: None)

        assert first.subscriber_count(EntityKind.PRICE, Transition.UPDATED) == 1
        assert second.subscriber_count(EntityKind.PRICE) == 0
