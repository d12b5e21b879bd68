"""Integration tests against an in-memory SQLite database (aiosqlite).

Covers what needs a real store: order-number uniqueness, customer statistics
after every mutation, and the soft-delete / restore round-trip.
"""
from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from orderdesk.config import DatabaseConfig, OrderDeskConfig
from orderdesk.core.exceptions import (
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from orderdesk.infra.database import build_engine, build_session_factory, close_engine, init_db
from orderdesk.infra.database.repositories import CustomerRepository, OrderRepository
from orderdesk.lifecycle.customer_stats import aggregate
from orderdesk.lifecycle.reconciliation import ReconciliationOutcome
from orderdesk.schemas import OrderOut
from orderdesk.services import CustomerService, OrderService, PricingService

PHONE = "010-1234-5678"
OTHER_PHONE = "010-9999-0000"


class _Clock:
    """Deterministic clock; every reading is one minute after the previous one."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def __call__(self) -> datetime:
        now = self._now
        self._now += timedelta(minutes=1)
        return now


def _payload(**kwargs) -> dict:
    data = {
        "customer_name": "김민지",
        "customer_phone": PHONE,
        "zip_code": "06234",
        "address1": "서울시 강남구 테헤란로 1",
        "small_box_quantity": 2,
    }
    data.update(kwargs)
    return data


class StoreTestCase(unittest.IsolatedAsyncioTestCase):
    config = OrderDeskConfig()

    async def asyncSetUp(self) -> None:
        await close_engine()
        db = DatabaseConfig(url="sqlite+aiosqlite:///:memory:")
        await init_db(db)
        self.session = build_session_factory(build_engine(db))()
        self.clock = _Clock(datetime(2025, 1, 15, 1, 0, tzinfo=timezone.utc))
        self.orders = OrderService(self.session, config=self.config, clock=self.clock)
        self.customers = CustomerService(self.session, clock=self.clock)
        self.pricing = PricingService(self.session, self.config)

    async def asyncTearDown(self) -> None:
        await self.session.close()
        await close_engine()

    async def assertStatsConsistent(self, phone: str) -> None:
        customer = await CustomerRepository(self.session).get_by_phone(phone)
        self.assertIsNotNone(customer)
        expected = aggregate(await OrderRepository(self.session).list_by_customer(phone=phone))
        self.assertEqual(customer.order_count, expected.order_count)
        self.assertEqual(customer.total_spent, expected.total_spent)
        self.assertEqual(customer.last_order_date, expected.last_order_date)


class TestOrderNumbers(StoreTestCase):
    async def test_sequential_numbers(self):
        first = await self.orders.create_order(_payload())
        second = await self.orders.create_order(_payload(customer_phone=OTHER_PHONE))
        self.assertEqual(first.order_number, "250115-1")
        self.assertEqual(second.order_number, "250115-2")
        self.assertEqual(first.total_amount, 34000)

    async def test_deleted_orders_keep_their_number(self):
        first = await self.orders.create_order(_payload())
        await self.orders.soft_delete_order(first.id, actor="admin")
        second = await self.orders.create_order(_payload())
        self.assertEqual(second.order_number, "250115-2")

    async def test_stale_read_is_resolved_by_retry(self):
        await self.orders.create_order(_payload())
        # simulate a concurrent writer whose read missed the first insert
        self.orders._orders.numbers_with_prefix = AsyncMock(return_value=[])
        second = await self.orders.create_order(_payload())
        self.assertEqual(second.order_number, "250115-2")
        self.assertEqual(await OrderRepository(self.session).count(), 2)

    async def test_conflict_after_retries(self):
        service = OrderService(
            self.session,
            config=OrderDeskConfig(order_number_max_attempts=1),
            clock=self.clock,
        )
        await service.create_order(_payload())
        service._orders.numbers_with_prefix = AsyncMock(return_value=[])
        with self.assertRaises(ConflictError):
            await service.create_order(_payload())
        self.assertEqual(await OrderRepository(self.session).count(), 1)


class TestCustomerStatistics(StoreTestCase):
    async def test_stats_follow_every_mutation(self):
        a = await self.orders.create_order(_payload())
        await self.assertStatsConsistent(PHONE)
        customer = await CustomerRepository(self.session).get_by_phone(PHONE)
        self.assertEqual((customer.order_count, customer.total_spent), (1, 0))
        self.assertEqual(customer.address1, "서울시 강남구 테헤란로 1")

        await self.orders.reconcile_payment(a.id, "confirmed", actor="admin", actual_paid_amount=34000)
        await self.assertStatsConsistent(PHONE)
        self.assertEqual(customer.total_spent, 34000)

        b = await self.orders.create_order(_payload(small_box_quantity=1))
        result = await self.orders.reconcile_payment(b.id, "confirmed", actor="admin", actual_paid_amount=10000)
        self.assertIs(result.outcome, ReconciliationOutcome.PARTIAL)
        await self.assertStatsConsistent(PHONE)
        self.assertEqual((customer.order_count, customer.total_spent), (2, 44000))

        await self.orders.update_financials(b.id, {"actual_paid_amount": 15000}, actor="admin")
        await self.assertStatsConsistent(PHONE)
        self.assertEqual(customer.total_spent, 49000)

        await self.orders.soft_delete_order(a.id, actor="admin")
        await self.assertStatsConsistent(PHONE)
        self.assertEqual((customer.order_count, customer.total_spent), (1, 15000))

        await self.orders.restore_order(a.id, actor="admin")
        await self.assertStatsConsistent(PHONE)
        self.assertEqual((customer.order_count, customer.total_spent), (2, 49000))

        c = await self.orders.create_order(_payload())
        await self.orders.edit_order(c.id, {"customer_phone": OTHER_PHONE})
        await self.assertStatsConsistent(PHONE)
        await self.assertStatsConsistent(OTHER_PHONE)
        self.assertEqual(customer.order_count, 2)
        other = await CustomerRepository(self.session).get_by_phone(OTHER_PHONE)
        self.assertEqual(other.order_count, 1)

        await self.orders.permanent_delete_order(c.id, actor="admin")
        await self.assertStatsConsistent(OTHER_PHONE)
        self.assertEqual((other.order_count, other.total_spent, other.last_order_date), (0, 0, None))

    async def test_recompute_is_idempotent(self):
        a = await self.orders.create_order(_payload())
        await self.orders.reconcile_payment(a.id, "confirmed", actor="admin", actual_paid_amount=34000)
        first = await self.customers.recompute_stats(PHONE)
        snapshot = (first.order_count, first.total_spent, first.last_order_date)
        second = await self.customers.recompute_stats(PHONE)
        self.assertEqual((second.order_count, second.total_spent, second.last_order_date), snapshot)
        self.assertEqual(await self.customers.refresh_all_stats(), 1)
        self.assertEqual((second.order_count, second.total_spent, second.last_order_date), snapshot)

    async def test_deleted_customer_is_not_restored_by_new_orders(self):
        await self.orders.create_order(_payload())
        customer = await CustomerRepository(self.session).get_by_phone(PHONE)
        await self.customers.soft_delete_customer(customer.id)
        await self.orders.create_order(_payload())
        self.assertTrue(customer.is_deleted)
        self.assertEqual(customer.order_count, 2)

    async def test_manual_customer_and_addresses(self):
        created = await self.customers.create_customer({"name": "박서준", "phone": "02-123-4567"})
        self.assertEqual((created.order_count, created.total_spent), (0, 0))
        with self.assertRaises(ConflictError):
            await self.customers.create_customer({"name": "박서준", "phone": "021234567"})

        await self.orders.create_order(_payload(customer_phone="021234567"))
        await self.orders.create_order(_payload(customer_phone="021234567", address2="2층"))
        await self.orders.create_order(_payload(customer_phone="021234567", address2="2층"))
        addresses = await self.customers.list_addresses("02-123-4567")
        self.assertEqual([(a.address2, a.order_count) for a in addresses], [("2층", 2), (None, 1)])


class TestLifecycle(StoreTestCase):
    async def test_soft_delete_restore_round_trip(self):
        order = await self.orders.create_order(_payload(special_requests="문 앞에 놓아주세요"))
        before = OrderOut.model_validate(order).model_dump()

        await self.orders.soft_delete_order(order.id, actor="admin")
        deleted_at = order.deleted_at
        self.assertIsNotNone(deleted_at)
        await self.orders.soft_delete_order(order.id, actor="admin")
        self.assertEqual(order.deleted_at, deleted_at)
        with self.assertRaises(NotFoundError):
            await self.orders.get_order(order.id)
        self.assertEqual([o.id for o in await self.orders.list_deleted_orders()], [order.id])

        await self.orders.restore_order(order.id, actor="admin")
        after = OrderOut.model_validate(await self.orders.get_order(order.id)).model_dump()
        self.assertEqual(after, before)

    async def test_seller_shipped_implies_delivered(self):
        order = await self.orders.create_order(_payload())
        await self.orders.change_status(order.id, "scheduled", actor="admin")
        with self.assertRaises(PreconditionFailedError):
            await self.orders.set_seller_shipped(order.id, True, actor="admin")

        await self.orders.set_seller_shipped(order.id, True, actor="manager")
        self.assertEqual(order.status, "delivered")
        self.assertTrue(order.seller_shipped)
        self.assertEqual(order.delivered_date, order.seller_shipped_date)

        await self.orders.change_status(order.id, "pending", actor="admin")
        self.assertFalse(order.seller_shipped)
        self.assertIsNone(order.seller_shipped_date)
        self.assertIsNone(order.delivered_date)

    async def test_editability_gate(self):
        order = await self.orders.create_order(_payload())
        edited = await self.orders.edit_order(order.id, {"large_box_quantity": 1})
        self.assertEqual(edited.total_amount, 2 * 15000 + 18000 + 4000)

        await self.orders.change_status(order.id, "scheduled", actor="admin")
        with self.assertRaises(PreconditionFailedError):
            await self.orders.edit_order(order.id, {"address2": "101동"})

        await self.orders.change_status(order.id, "pending", actor="admin")
        await self.orders.reconcile_payment(order.id, "partial", actor="admin")
        with self.assertRaises(PreconditionFailedError):
            await self.orders.edit_order(order.id, {"address2": "101동"})

    async def test_edit_cannot_leave_only_wrapping(self):
        order = await self.orders.create_order(_payload())
        with self.assertRaises(ValidationError):
            await self.orders.edit_order(
                order.id, {"small_box_quantity": 0, "wrapping_quantity": 2}
            )
        stored = await self.orders.get_order(order.id)
        self.assertEqual(stored.small_box_quantity, 2)
        self.assertEqual(stored.wrapping_quantity, 0)
        self.assertEqual(stored.total_amount, 2 * 15000 + 4000)

    async def test_lookup(self):
        await self.orders.create_order(_payload())
        newest = await self.orders.create_order(_payload(wrapping_quantity=1))
        found = await self.orders.lookup_orders(phone="010 1234 5678")
        self.assertEqual(found[0].id, newest.id)
        self.assertEqual(len(await self.orders.lookup_orders(phone=PHONE, name="김민지")), 2)
        with self.assertRaises(NotFoundError):
            await self.orders.lookup_orders(name="없는사람")
        by_number = await self.orders.get_order_by_number(newest.order_number)
        self.assertEqual(by_number.id, newest.id)


class TestReporting(StoreTestCase):
    async def test_financials_follow_the_pricing_table(self):
        await self.pricing.set_line({"key": "yakgwa", "name": "약과", "unit_price": 12000, "unit_cost": 5000})
        order = await self.orders.create_order(_payload(extra_quantities={"yakgwa": 1}))
        self.assertEqual(order.total_amount, 2 * 15000 + 12000 + 4000)
        await self.orders.reconcile_payment(order.id, "confirmed", actor="admin", actual_paid_amount=order.total_amount)

        [view] = await self.orders.list_orders_with_financials()
        self.assertEqual(view.financials.total_cost, 5000)
        self.assertEqual(view.financials.net_profit, 46000 - 5000 - 4000)

        await self.pricing.set_line(
            {"key": "small_box", "name": "한과1호", "unit_price": 20000, "unit_cost": 6000}
        )
        await self.pricing.remove_line("yakgwa")
        [view] = await self.orders.list_orders_with_financials()
        self.assertEqual(view.total_amount, 46000)
        self.assertEqual(view.financials.total_cost, 12000)
        self.assertEqual(view.financials.unpriced_lines, ["yakgwa"])

    async def test_unknown_extra_line_rejected_at_intake(self):
        with self.assertRaises(ValidationError):
            await self.orders.create_order(_payload(extra_quantities={"yakgwa": 1}))


if __name__ == "__main__":
    unittest.main()
