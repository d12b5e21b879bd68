"""Unit tests for intake pricing and derived financials."""
from __future__ import annotations

import unittest
from types import SimpleNamespace

from orderdesk.config import OrderDeskConfig
from orderdesk.core.exceptions import ValidationError
from orderdesk.lifecycle.financials import derive, quantities_of, quote, unit_cost
from orderdesk.lifecycle.types import PricingTable, ProductLine, ShippingRule

TABLE = PricingTable.from_config(OrderDeskConfig())


def _order(**kwargs) -> SimpleNamespace:
    defaults = {
        "order_number": "250115-1",
        "small_box_quantity": 0,
        "large_box_quantity": 0,
        "wrapping_quantity": 0,
        "extra_quantities": {},
        "small_box_cost": None,
        "large_box_cost": None,
        "actual_paid_amount": None,
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


class TestQuote(unittest.TestCase):
    def test_flat_shipping_below_threshold(self):
        q = quote({"small_box": 2, "large_box": 1, "wrapping": 3}, TABLE)
        self.assertEqual(q.subtotal, 2 * 15000 + 18000 + 3 * 1000)
        self.assertEqual(q.shipping_fee, 4000)
        self.assertEqual(q.total_amount, 55000)

    def test_free_shipping_at_threshold(self):
        q = quote({"small_box": 6}, TABLE)
        self.assertEqual(q.shipping_fee, 0)
        self.assertEqual(q.total_amount, 90000)

    def test_wrapping_does_not_count_toward_shipping(self):
        q = quote({"small_box": 5, "wrapping": 5}, TABLE)
        self.assertEqual(q.shipping_fee, 4000)

    def test_unknown_line_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            quote({"small_box": 1, "mystery": 2}, TABLE)
        self.assertEqual(ctx.exception.details["unknown_lines"], ["mystery"])

    def test_negative_quantity_rejected(self):
        with self.assertRaises(ValidationError):
            quote({"small_box": -1}, TABLE)


class TestDerive(unittest.TestCase):
    def test_costs_shipping_and_profit(self):
        order = _order(
            small_box_quantity=2,
            large_box_quantity=1,
            wrapping_quantity=3,
            large_box_cost=12000,
            actual_paid_amount=55000,
        )
        f = derive(order, TABLE)
        self.assertEqual(f.small_box_cost, 0)
        self.assertEqual(f.large_box_cost, 12000)
        self.assertEqual(f.total_cost, 12000 + 3 * 2000)
        self.assertEqual(f.shipping_fee, 4000)
        self.assertEqual(f.net_profit, 55000 - 18000 - 4000)
        self.assertEqual(f.unpriced_lines, ())

    def test_unpaid_order_has_negative_profit(self):
        f = derive(_order(wrapping_quantity=1), TABLE)
        self.assertEqual(f.net_profit, -2000 - 4000)

    def test_override_zero_is_respected(self):
        table = PricingTable(
            lines={**TABLE.lines, "small_box": ProductLine("small_box", "한과1호", 15000, 7000)},
            shipping=TABLE.shipping,
        )
        order = _order(small_box_quantity=2, small_box_cost=0)
        self.assertEqual(unit_cost(order, "small_box", table), 0)
        self.assertEqual(derive(order, table).total_cost, 0)

    def test_table_change_is_retroactive(self):
        order = _order(small_box_quantity=2)
        dearer = PricingTable(
            lines={**TABLE.lines, "small_box": ProductLine("small_box", "한과1호", 15000, 9000)},
            shipping=ShippingRule(3000, 10),
        )
        f = derive(order, dearer)
        self.assertEqual(f.total_cost, 18000)
        self.assertEqual(f.shipping_fee, 3000)

    def test_extra_lines(self):
        table = PricingTable(
            lines={**TABLE.lines, "yakgwa": ProductLine("yakgwa", "약과", 12000, 5000)},
            shipping=TABLE.shipping,
        )
        order = _order(extra_quantities={"yakgwa": 2, "retired": 1})
        f = derive(order, table)
        self.assertEqual(f.total_cost, 10000)
        self.assertEqual(f.unpriced_lines, ("retired",))
        self.assertEqual(f.to_dict()["unpriced_lines"], ["retired"])

    def test_quantities_of_drops_zeros(self):
        order = _order(small_box_quantity=1, extra_quantities={"yakgwa": 0})
        self.assertEqual(quantities_of(order), {"small_box": 1})


if __name__ == "__main__":
    unittest.main()
