"""Tests for the generic mirror repository against SQLite."""

import uuid

import pytest

from paymirror import crud
from paymirror.core.exceptions import ConstraintViolation


async def _customer(db, provider_id="cus_1", email="a@x.com", provider="stripe"):
    return await crud.customer.create(
        db,
        obj_in={"provider": provider, "provider_id": provider_id, "name": "Ada", "email": email},
    )


async def _plan(db, provider_id="prod_1", active=True):
    return await crud.plan.create(
        db,
        obj_in={
            "provider": "stripe",
            "provider_id": provider_id,
            "name": provider_id.title(),
            "active": active,
        },
    )


async def _price(db, plan_id, provider_id="price_1", amount=1000):
    return await crud.price.create(
        db,
        obj_in={
            "provider": "stripe",
            "provider_id": provider_id,
            "plan_id": plan_id,
            "amount": amount,
            "currency": "usd",
            "schedule": "monthly",
            "trial_days": 0,
        },
    )


async def _subscription(db, customer_id, price_id, provider_id="sub_1"):
    return await crud.subscription.create(
        db,
        obj_in={
            "provider": "stripe",
            "provider_id": provider_id,
            "customer_id": customer_id,
            "price_id": price_id,
            "active": True,
            "status": "active",
        },
    )


class TestCreateAndGet:
    """Tests for inserts and lookups."""

    @pytest.mark.asyncio
    async def test_internal_id_assigned(self, db):
        """Inserts get an internal id unrelated to the external one."""
        customer = await _customer(db)

        assert isinstance(customer.id, uuid.UUID)
        assert (await crud.customer.get(db, customer.id)).provider_id == "cus_1"

    @pytest.mark.asyncio
    async def test_get_by_external(self, db):
        """Lookups by external identity are scoped to the provider."""
        await _customer(db)

        assert await crud.customer.get_by_external(db, provider="stripe", provider_id="cus_1")
        assert (
            await crud.customer.get_by_external(db, provider="paddle", provider_id="cus_1")
        ) is None

    @pytest.mark.asyncio
    async def test_duplicate_external_identity(self, db):
        """The external identity is unique per provider."""
        await _customer(db)

        with pytest.raises(ConstraintViolation) as exc_info:
            await _customer(db, email="other@x.com")

        assert exc_info.value.table == "customer"
        assert len(await crud.customer.get_multi(db)) == 1

    @pytest.mark.asyncio
    async def test_same_external_id_for_another_provider(self, db):
        """Different providers may reuse an external id."""
        await _customer(db)
        await _customer(db, provider="paddle")

        assert len(await crud.customer.get_multi(db)) == 2
        assert len(await crud.customer.get_multi(db, provider="paddle")) == 1

    @pytest.mark.asyncio
    async def test_unknown_foreign_key(self, db):
        """A price must point at an existing plan."""
        with pytest.raises(ConstraintViolation):
            await _price(db, plan_id=uuid.uuid4())

    @pytest.mark.asyncio
    async def test_update_skips_identity(self, db):
        """Updates never touch the external identity."""
        customer = await _customer(db)

        updated = await crud.customer.update(
            db, db_obj=customer, obj_in={"email": "b@x.com", "provider_id": "cus_other"}
        )

        assert updated.email == "b@x.com"
        assert updated.provider_id == "cus_1"


class TestRemove:
    """Tests for deletes."""

    @pytest.mark.asyncio
    async def test_remove_by_external_returns_snapshot(self, db):
        """The deleted row's last values are returned."""
        await _customer(db, email="gone@x.com")

        snapshot = await crud.customer.remove_by_external(db, provider="stripe", provider_id="cus_1")

        assert snapshot.email == "gone@x.com"
        assert (
            await crud.customer.get_by_external(db, provider="stripe", provider_id="cus_1")
        ) is None

    @pytest.mark.asyncio
    async def test_remove_missing(self, db):
        """Removing an unknown row is not an error."""
        assert (
            await crud.customer.remove_by_external(db, provider="stripe", provider_id="cus_x")
        ) is None

    @pytest.mark.asyncio
    async def test_remove_orphans(self, db):
        """Rows not in the seen set are deleted and returned; others stay."""
        await _customer(db, "cus_1")
        await _customer(db, "cus_2", email="b@x.com")
        await _customer(db, "cus_3", provider="paddle")

        removed = await crud.customer.remove_orphans(db, provider="stripe", seen_ids={"cus_1"})

        assert [snapshot.provider_id for snapshot in removed] == ["cus_2"]
        assert removed[0].email == "b@x.com"
        remaining = {(c.provider, c.provider_id) for c in await crud.customer.get_multi(db)}
        assert remaining == {("stripe", "cus_1"), ("paddle", "cus_3")}

    @pytest.mark.asyncio
    async def test_referenced_orphan_is_kept(self, db):
        """A plan that prices still point at is not deleted."""
        used = await _plan(db, "prod_used")
        await _plan(db, "prod_unused")
        await _price(db, used.id)

        removed = await crud.plan.remove_orphans(db, provider="stripe", seen_ids=set())

        assert [snapshot.provider_id for snapshot in removed] == ["prod_unused"]
        assert await crud.plan.get_by_external(db, provider="stripe", provider_id="prod_used")

    @pytest.mark.asyncio
    async def test_remove_referenced_row(self, db):
        """Deleting a row that is still referenced raises."""
        customer = await _customer(db)
        plan = await _plan(db)
        price = await _price(db, plan.id)
        await _subscription(db, customer.id, price.id)

        with pytest.raises(ConstraintViolation):
            await crud.customer.remove_by_external(db, provider="stripe", provider_id="cus_1")


class TestEntityQueries:
    """Tests for the per-entity helpers."""

    @pytest.mark.asyncio
    async def test_customer_email_and_user_link(self, db):
        """Customers can be found by email and linked to a local user."""
        customer = await _customer(db)

        await crud.customer.link_user(db, db_obj=customer, user_id="user-1")

        assert [c.provider_id for c in await crud.customer.get_by_email(db, email="a@x.com")] == [
            "cus_1"
        ]
        assert (await crud.customer.get_by_user(db, user_id="user-1")).id == customer.id

    @pytest.mark.asyncio
    async def test_active_plans_and_prices_by_plan(self, db):
        """Inactive plans are excluded; prices are listed per plan."""
        plan = await _plan(db, "prod_a")
        await _plan(db, "prod_b", active=False)
        await _price(db, plan.id, "price_2", amount=2000)
        await _price(db, plan.id, "price_1", amount=1000)

        assert [p.provider_id for p in await crud.plan.get_active(db)] == ["prod_a"]
        assert [p.provider_id for p in await crud.price.get_by_plan(db, plan_id=plan.id)] == [
            "price_1",
            "price_2",
        ]

    @pytest.mark.asyncio
    async def test_subscription_users(self, db):
        """Application users attach to subscriptions and go away with them."""
        customer = await _customer(db)
        plan = await _plan(db)
        price = await _price(db, plan.id)
        subscription = await _subscription(db, customer.id, price.id)
        # A refused insert rolls the session back and expires loaded rows
        customer_id, subscription_id = customer.id, subscription.id

        assert await crud.subscription.add_user(db, subscription_id=subscription_id, user_id="u1")
        assert await crud.subscription.add_user(db, subscription_id=subscription_id, user_id="u2")
        assert not await crud.subscription.add_user(
            db, subscription_id=subscription_id, user_id="u1"
        )
        assert await crud.subscription.get_user_ids(db, subscription_id=subscription_id) == [
            "u1",
            "u2",
        ]
        assert [s.id for s in await crud.subscription.get_by_user(db, user_id="u2")] == [
            subscription_id
        ]
        assert [
            s.id for s in await crud.subscription.get_by_customer(db, customer_id=customer_id)
        ] == [subscription_id]

        assert await crud.subscription.remove_user(
            db, subscription_id=subscription_id, user_id="u2"
        )
        await crud.subscription.remove_by_external(db, provider="stripe", provider_id="sub_1")

        assert await crud.subscription.get_user_ids(db, subscription_id=subscription_id) == []
