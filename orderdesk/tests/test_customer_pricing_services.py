"""Unit tests for CustomerService and PricingService with mocked repositories."""
from __future__ import annotations

import asyncio
import unittest
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from orderdesk.config import OrderDeskConfig
from orderdesk.core.exceptions import ConfigurationError, ConflictError, NotFoundError, ValidationError
from orderdesk.services.customer_service import _PHONE_LOCKS, CustomerService, _phone_lock
from orderdesk.services.pricing_service import LINE_PREFIX, SHIPPING_KEY, PricingService


def _run(coro):
    return asyncio.run(coro)


def _fake_order(**kwargs):
    defaults = {
        "id": 1,
        "order_number": "250115-1",
        "customer_name": "김민지",
        "customer_phone": "010-1234-5678",
        "zip_code": "06234",
        "address1": "서울시 강남구 테헤란로 1",
        "address2": None,
        "user_id": None,
        "created_at": datetime(2025, 1, 15, 10, 0),
        "payment_status": "confirmed",
        "total_amount": 34000,
        "actual_paid_amount": 34000,
        "is_deleted": False,
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _customer_service() -> CustomerService:
    session = MagicMock()
    session.begin_nested.return_value.__aenter__ = AsyncMock(return_value=None)
    session.begin_nested.return_value.__aexit__ = AsyncMock(return_value=False)
    svc = CustomerService(session)
    svc._customers.apply = AsyncMock(
        side_effect=lambda c, changes: SimpleNamespace(**{**vars(c), **changes})
    )
    return svc


class TestRecomputeStats(unittest.TestCase):
    def test_updates_existing_customer(self):
        svc = _customer_service()
        customer = SimpleNamespace(id=7, phone="010-1234-5678", order_count=0, total_spent=0, last_order_date=None)
        svc._customers.get_by_phone = AsyncMock(return_value=customer)
        svc._orders.list_by_customer = AsyncMock(
            return_value=[_fake_order(), _fake_order(id=2, payment_status="pending", created_at=datetime(2025, 1, 16))]
        )
        result = _run(svc.recompute_stats("010-1234-5678"))
        self.assertEqual(result.order_count, 2)
        self.assertEqual(result.total_spent, 34000)
        self.assertEqual(result.last_order_date, datetime(2025, 1, 16))
        svc._customers.get_by_phone.assert_awaited_once_with("010-1234-5678", for_update=True)

    def test_creates_customer_from_earliest_order(self):
        svc = _customer_service()
        svc._customers.get_by_phone = AsyncMock(return_value=None)
        svc._orders.list_by_customer = AsyncMock(
            return_value=[
                _fake_order(id=3, address1="새 주소", created_at=datetime(2025, 2, 1)),
                _fake_order(id=1),
            ]
        )
        svc._customers.create = AsyncMock(side_effect=lambda data: SimpleNamespace(id=9, **data))
        result = _run(svc.recompute_stats("010-1234-5678"))
        created_with = svc._customers.create.await_args.args[0]
        self.assertEqual(created_with["address1"], "서울시 강남구 테헤란로 1")
        self.assertEqual(result.order_count, 2)

    def test_no_customer_and_no_orders(self):
        svc = _customer_service()
        svc._customers.get_by_phone = AsyncMock(return_value=None)
        svc._orders.list_by_customer = AsyncMock(return_value=[])
        svc._customers.create = AsyncMock()
        self.assertIsNone(_run(svc.recompute_stats("010-1234-5678")))
        svc._customers.create.assert_not_awaited()

    def test_phone_locks_are_released_after_use(self):
        svc = _customer_service()
        svc._customers.get_by_phone = AsyncMock(return_value=None)
        svc._orders.list_by_customer = AsyncMock(return_value=[])

        async def scenario():
            held = _phone_lock("010-1234-5678")
            self.assertIs(_phone_lock("010-1234-5678"), held)
            del held
            for i in range(50):
                await svc.recompute_stats(f"010-0000-{i:04d}")
            return len(_PHONE_LOCKS[asyncio.get_running_loop()])

        self.assertEqual(_run(scenario()), 0)


class TestCustomerManagement(unittest.TestCase):
    def test_duplicate_phone(self):
        svc = _customer_service()
        svc._customers.get_by_phone = AsyncMock(return_value=SimpleNamespace(id=1))
        with self.assertRaises(ConflictError):
            _run(svc.create_customer({"name": "김민지", "phone": "010-1234-5678"}))

    def test_unknown_customer(self):
        svc = _customer_service()
        svc._customers.get_by_id = AsyncMock(return_value=None)
        with self.assertRaises(NotFoundError):
            _run(svc.get_customer(5))
        with self.assertRaises(NotFoundError):
            _run(svc.soft_delete_customer(5))

    def test_restore_is_idempotent(self):
        svc = _customer_service()
        live = SimpleNamespace(id=1, is_deleted=False, deleted_at=None)
        svc._customers.get_by_id = AsyncMock(return_value=live)
        self.assertIs(_run(svc.restore_customer(1)), live)
        svc._customers.apply.assert_not_awaited()


def _pricing_service(stored_lines=None, shipping=None) -> PricingService:
    svc = PricingService(MagicMock(), OrderDeskConfig())
    svc._settings.values_with_prefix = AsyncMock(return_value=stored_lines or {})
    svc._settings.get_value = AsyncMock(return_value=shipping)
    svc._settings.set_value = AsyncMock()
    svc._settings.delete_key = AsyncMock(return_value=True)
    return svc


class TestPricingService(unittest.TestCase):
    def test_defaults_from_config(self):
        table = _run(_pricing_service().get_table())
        self.assertEqual(table.lines["small_box"].unit_price, 15000)
        self.assertEqual(table.lines["wrapping"].unit_cost, 2000)
        self.assertFalse(table.lines["wrapping"].counts_toward_shipping)
        self.assertEqual(table.shipping.flat_fee, 4000)

    def test_stored_values_override_defaults(self):
        stored = {
            LINE_PREFIX + "small_box": {"key": "small_box", "name": "한과1호", "unit_price": 16000, "unit_cost": 7000},
            LINE_PREFIX + "yakgwa": {"key": "yakgwa", "name": "약과", "unit_price": 12000, "unit_cost": 5000},
        }
        svc = _pricing_service(stored, {"flat_fee": 3500, "free_threshold": 8})
        table = _run(svc.get_table())
        self.assertEqual(table.lines["small_box"].unit_cost, 7000)
        self.assertIn("yakgwa", table)
        self.assertEqual(table.lines["large_box"].unit_price, 18000)
        self.assertEqual(table.shipping.free_threshold, 8)
        svc._settings.get_value.assert_awaited_once_with(SHIPPING_KEY)

    def test_malformed_stored_line(self):
        svc = _pricing_service({LINE_PREFIX + "bad": {"name": "no key"}})
        with self.assertRaises(ConfigurationError):
            _run(svc.get_table())

    def test_set_line_validates(self):
        svc = _pricing_service()
        with self.assertRaises(ValidationError):
            _run(svc.set_line({"key": "yakgwa", "name": "약과", "unit_price": -1, "unit_cost": 0}))
        line = _run(svc.set_line({"key": "yakgwa", "name": "약과", "unit_price": 12000, "unit_cost": 5000}))
        self.assertEqual(line.unit_price, 12000)
        self.assertEqual(svc._settings.set_value.await_args.args[0], LINE_PREFIX + "yakgwa")

    def test_set_shipping_rule(self):
        svc = _pricing_service()
        rule = _run(svc.set_shipping_rule({"flat_fee": 3500, "free_threshold": 8}))
        self.assertEqual((rule.flat_fee, rule.free_threshold), (3500, 8))
        svc._settings.set_value.assert_awaited_once_with(
            SHIPPING_KEY, {"flat_fee": 3500, "free_threshold": 8}, description="shipping rule"
        )
        with self.assertRaises(ValidationError):
            _run(svc.set_shipping_rule({"flat_fee": -1, "free_threshold": 8}))

    def test_builtin_lines_cannot_be_removed(self):
        svc = _pricing_service()
        with self.assertRaises(ValidationError):
            _run(svc.remove_line("wrapping"))
        svc._settings.delete_key.assert_not_awaited()

    def test_remove_unknown_line(self):
        svc = _pricing_service()
        svc._settings.delete_key = AsyncMock(return_value=False)
        with self.assertRaises(NotFoundError):
            _run(svc.remove_line("yakgwa"))


if __name__ == "__main__":
    unittest.main()
