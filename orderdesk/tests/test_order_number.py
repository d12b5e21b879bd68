"""Unit tests for YYMMDD-N order number proposal."""
from __future__ import annotations

import unittest
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from orderdesk.lifecycle.order_number import (
    business_date,
    date_prefix,
    next_order_number,
    used_sequences,
)

DAY = date(2025, 1, 15)


class TestNextOrderNumber(unittest.TestCase):
    def test_first_of_the_day(self):
        self.assertEqual(next_order_number([], DAY), "250115-1")

    def test_fills_smallest_gap(self):
        existing = ["250115-1", "250115-3", "250115-4"]
        self.assertEqual(next_order_number(existing, DAY), "250115-2")

    def test_after_contiguous_run(self):
        existing = ["250115-1", "250115-2", "250115-3"]
        self.assertEqual(next_order_number(existing, DAY), "250115-4")

    def test_other_days_are_ignored(self):
        existing = ["250114-1", "250114-2", "250116-1"]
        self.assertEqual(next_order_number(existing, DAY), "250115-1")

    def test_taken_numbers_are_skipped(self):
        self.assertEqual(
            next_order_number(["250115-1"], DAY, taken={"250115-2"}),
            "250115-3",
        )

    def test_malformed_numbers_are_ignored(self):
        existing = ["250115-0", "250115-x", "250115", "", "250115-01"]
        self.assertEqual(used_sequences(existing, "250115"), set())
        self.assertEqual(next_order_number(existing, DAY), "250115-1")

    def test_double_digit_sequences(self):
        existing = [f"250115-{n}" for n in range(1, 12)]
        self.assertEqual(next_order_number(existing, DAY), "250115-12")


class TestBusinessDate(unittest.TestCase):
    def test_prefix_format(self):
        self.assertEqual(date_prefix(date(2024, 3, 9)), "240309")

    def test_utc_evening_is_next_day_in_seoul(self):
        now = datetime(2025, 1, 14, 16, 0, tzinfo=timezone.utc)
        self.assertEqual(business_date(now, ZoneInfo("Asia/Seoul")), date(2025, 1, 15))

    def test_utc_morning_is_same_day_in_seoul(self):
        now = datetime(2025, 1, 15, 3, 0, tzinfo=timezone.utc)
        self.assertEqual(business_date(now, ZoneInfo("Asia/Seoul")), date(2025, 1, 15))


if __name__ == "__main__":
    unittest.main()
