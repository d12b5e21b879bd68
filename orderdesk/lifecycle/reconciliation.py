"""Payment reconciliation: classify an actually-deposited amount against the order total.

Confirming a payment does not guarantee the stored status is ``confirmed``: a
shortfall that is not marked as a discount is stored as ``partial``. The
result type names the outcome so callers never mistake the requested status
for the stored one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from orderdesk.core.exceptions import ValidationError
from orderdesk.lifecycle.types import PaymentStatus

logger = logging.getLogger(__name__)

DISCOUNT_MARKER = "할인"
"""Substring that marks a shortfall as an intentional discount when no explicit flag is given."""


class ReconciliationOutcome(str, Enum):
    CONFIRMED = "confirmed"      # paid exactly the total
    DISCOUNTED = "discounted"    # shortfall accepted as a discount
    PARTIAL = "partial"          # shortfall without a discount marker → stored as partial
    OVERPAID = "overpaid"        # paid more than the total
    STATUS_ONLY = "status_only"  # no amount to reconcile; status written as requested


@dataclass(frozen=True)
class ReconciliationResult:
    outcome: ReconciliationOutcome
    requested_status: PaymentStatus
    payment_status: PaymentStatus
    payment_confirmed_at: Optional[datetime]
    actual_paid_amount: Optional[int] = None
    discount_amount: Optional[int] = None
    discount_reason: Optional[str] = None

    @property
    def overridden(self) -> bool:
        return self.payment_status is not self.requested_status

    def changes(self) -> Dict[str, Any]:
        """Column updates for the order row."""
        out: Dict[str, Any] = {
            "payment_status": self.payment_status.value,
            "payment_confirmed_at": self.payment_confirmed_at,
        }
        if self.outcome is not ReconciliationOutcome.STATUS_ONLY:
            out["actual_paid_amount"] = self.actual_paid_amount
            out["discount_amount"] = self.discount_amount
            out["discount_reason"] = self.discount_reason
        return out


def shortfall_reason(amount: int) -> str:
    return f"부분미입금 (미입금 {amount}원)"


def excess_reason(amount: int) -> str:
    return f"과납입 ({amount}원 추가 입금)"


def _with_caller_reason(caller: Optional[str], synthesized: str) -> str:
    caller = (caller or "").strip()
    return f"{caller} / {synthesized}" if caller else synthesized


def is_discount_reason(reason: Optional[str]) -> bool:
    return bool(reason) and DISCOUNT_MARKER in reason


def reconcile(
    total_amount: int,
    requested_status: PaymentStatus,
    *,
    now: datetime,
    actual_paid_amount: Optional[int] = None,
    discount_reason: Optional[str] = None,
    is_discount: Optional[bool] = None,
) -> ReconciliationResult:
    """Classify a payment update.

    Amounts are only reconciled when ``requested_status`` is confirmed and an
    amount is supplied; otherwise the requested status is written as-is.
    ``is_discount`` overrides the substring heuristic on ``discount_reason``.
    """
    requested_status = PaymentStatus(requested_status)
    if actual_paid_amount is not None and actual_paid_amount < 0:
        raise ValidationError(
            "actual_paid_amount must be non-negative",
            details={"actual_paid_amount": actual_paid_amount},
        )

    if requested_status is not PaymentStatus.CONFIRMED or actual_paid_amount is None:
        confirmed = requested_status is PaymentStatus.CONFIRMED
        return ReconciliationResult(
            outcome=ReconciliationOutcome.STATUS_ONLY,
            requested_status=requested_status,
            payment_status=requested_status,
            payment_confirmed_at=now if confirmed else None,
        )

    diff = total_amount - actual_paid_amount

    if diff > 0:
        discount = is_discount if is_discount is not None else is_discount_reason(discount_reason)
        if discount:
            return ReconciliationResult(
                outcome=ReconciliationOutcome.DISCOUNTED,
                requested_status=requested_status,
                payment_status=PaymentStatus.CONFIRMED,
                payment_confirmed_at=now,
                actual_paid_amount=actual_paid_amount,
                discount_amount=diff,
                discount_reason=discount_reason,
            )
        logger.warning(
            "Payment of %d against total %d has no discount marker; storing as partial",
            actual_paid_amount, total_amount,
        )
        return ReconciliationResult(
            outcome=ReconciliationOutcome.PARTIAL,
            requested_status=requested_status,
            payment_status=PaymentStatus.PARTIAL,
            payment_confirmed_at=now,
            actual_paid_amount=actual_paid_amount,
            discount_amount=0,
            discount_reason=_with_caller_reason(discount_reason, shortfall_reason(diff)),
        )

    if diff < 0:
        return ReconciliationResult(
            outcome=ReconciliationOutcome.OVERPAID,
            requested_status=requested_status,
            payment_status=PaymentStatus.CONFIRMED,
            payment_confirmed_at=now,
            actual_paid_amount=actual_paid_amount,
            discount_amount=0,
            discount_reason=_with_caller_reason(discount_reason, excess_reason(-diff)),
        )

    return ReconciliationResult(
        outcome=ReconciliationOutcome.CONFIRMED,
        requested_status=requested_status,
        payment_status=PaymentStatus.CONFIRMED,
        payment_confirmed_at=now,
        actual_paid_amount=actual_paid_amount,
        discount_amount=0,
        discount_reason=None,
    )
