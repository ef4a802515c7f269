"""Settlement calculation from a work contract's accrued financial rights.

Pure function, no I/O. The contract's ``financialRights.total`` is trusted
verbatim as the amount owed; the other fields are a breakdown for display.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from staffledger.models.contract import WorkContract
from staffledger.models.settlement import ZERO, FinancialSettlement

CENT = Decimal("0.01")
DEFAULT_DAYS_PER_MONTH = 30


def daily_rate(base_salary: Decimal, days_per_month: int = DEFAULT_DAYS_PER_MONTH) -> Decimal:
    """Daily salary approximated over a fixed-length month."""
    return base_salary / Decimal(days_per_month)


def unused_leave_amount(
    leave_days: Decimal, base_salary: Decimal, days_per_month: int = DEFAULT_DAYS_PER_MONTH
) -> Decimal:
    """Indemnity for untaken leave, rounded to the cent."""
    amount = leave_days * daily_rate(base_salary, days_per_month)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_settlement(
    contract: WorkContract, days_per_month: int = DEFAULT_DAYS_PER_MONTH
) -> FinancialSettlement:
    """Build a fresh settlement from the contract; payment progress starts at zero."""
    rights = contract.financial_rights
    leave_days = rights.paid_leave or ZERO
    total = rights.total or ZERO

    return FinancialSettlement(
        accrued_salary=rights.accrued_salary or ZERO,
        unused_leave_days=leave_days,
        unused_leave_amount=unused_leave_amount(
            leave_days, contract.salary.base_salary or ZERO, days_per_month
        ),
        notice_pay=rights.notice_pay or ZERO,
        notice_days=rights.notice_days or ZERO,
        severance_pay=rights.severance_pay or ZERO,
        other_benefits=rights.bonuses or ZERO,
        total_amount=total,
        deductions=ZERO,
        paid_amount=ZERO,
        remaining_amount=total,
    )
