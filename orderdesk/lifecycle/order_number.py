"""Date-scoped order numbers: ``YYMMDD-N`` with the smallest unused positive N.

This module only proposes a candidate; uniqueness is enforced by the unique
index on ``orders.order_number`` and the retry loop in OrderService.
"""
from __future__ import annotations

import re
from datetime import date, datetime, tzinfo
from typing import Iterable, Optional, Set

ORDER_NUMBER_RE = re.compile(r"^(\d{6})-([1-9]\d*)$")


def date_prefix(day: date) -> str:
    return day.strftime("%y%m%d")


def business_date(now: datetime, tz: tzinfo) -> date:
    """Calendar date of ``now`` in the business timezone."""
    return now.astimezone(tz).date()


def used_sequences(existing: Iterable[str], prefix: str) -> Set[int]:
    used: Set[int] = set()
    for number in existing:
        m = ORDER_NUMBER_RE.match(number or "")
        if m and m.group(1) == prefix:
            used.add(int(m.group(2)))
    return used


def next_order_number(
    existing: Iterable[str],
    day: date,
    *,
    taken: Optional[Iterable[str]] = None,
) -> str:
    """Smallest ``YYMMDD-N`` not in ``existing`` (nor in ``taken``, e.g. numbers lost to a race)."""
    prefix = date_prefix(day)
    used = used_sequences(existing, prefix)
    if taken:
        used |= used_sequences(taken, prefix)
    n = 1
    while n in used:
        n += 1
    return f"{prefix}-{n}"
