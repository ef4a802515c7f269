"""Payment ledger: pure functions over a document's settlement block.

Every function returns new model instances; callers persist the result.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from staffledger.core.exceptions import ValidationError
from staffledger.models.settlement import (
    ZERO,
    EndOfWorkDocument,
    FinancialSettlement,
    PaymentMethod,
    PaymentStatus,
)

OverpaymentPolicy = Literal["allow", "reject"]


def recompute_remaining(settlement: FinancialSettlement) -> FinancialSettlement:
    """Restore ``remaining_amount == total_amount - paid_amount``."""
    remaining = (settlement.total_amount or ZERO) - (settlement.paid_amount or ZERO)
    return settlement.model_copy(update={"remaining_amount": remaining})


def derive_payment_status(paid: Decimal, remaining: Decimal) -> PaymentStatus:
    if paid <= ZERO:
        return PaymentStatus.PENDING
    if remaining <= ZERO:
        return PaymentStatus.COMPLETED
    return PaymentStatus.PARTIAL


def refresh_payment_state(document: EndOfWorkDocument) -> EndOfWorkDocument:
    """Recompute the remaining amount and the status derived from it."""
    settlement = recompute_remaining(document.financial_settlement)
    return document.model_copy(
        update={
            "financial_settlement": settlement,
            "payment_status": derive_payment_status(
                settlement.paid_amount, settlement.remaining_amount
            ),
        }
    )


def apply_payment(
    document: EndOfWorkDocument,
    amount: Decimal,
    method: PaymentMethod,
    reference: Optional[str],
    paid_at: datetime,
    overpayment: OverpaymentPolicy = "allow",
) -> EndOfWorkDocument:
    """Add ``amount`` to the paid total and advance the payment status.

    Raises:
        ValidationError: amount is not positive, or exceeds the remaining
            balance while over-payment is rejected.
    """
    if amount <= ZERO:
        raise ValidationError("Le montant du paiement doit être strictement positif.")

    current = recompute_remaining(document.financial_settlement)
    if overpayment == "reject" and amount > current.remaining_amount:
        raise ValidationError(
            f"Le paiement ({amount}) dépasse le reste à payer ({current.remaining_amount})."
        )

    paid = current.paid_amount + amount
    settlement = recompute_remaining(current.model_copy(update={"paid_amount": paid}))
    return document.model_copy(
        update={
            "financial_settlement": settlement,
            "payment_status": derive_payment_status(paid, settlement.remaining_amount),
            "payment_method": method,
            "payment_date": paid_at,
            "payment_reference": reference,
        }
    )


def reset_payments(document: EndOfWorkDocument) -> EndOfWorkDocument:
    """Drop all payment progress; used when a settlement is recalculated."""
    settlement = recompute_remaining(
        document.financial_settlement.model_copy(update={"paid_amount": ZERO})
    )
    return document.model_copy(
        update={
            "financial_settlement": settlement,
            "payment_status": PaymentStatus.PENDING,
            "payment_method": None,
            "payment_date": None,
            "payment_reference": None,
        }
    )
