"""End-of-work document and its embedded financial settlement.

The settlement block is a value type owned by the document. Its
``remaining_amount`` is derived (``total_amount - paid_amount``) and is
refreshed explicitly by :func:`staffledger.settlement.ledger.recompute_remaining`
on every write path.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Optional

from pydantic import Field

from staffledger.models.base import CamelModel, utcnow

ZERO = Decimal("0")


class TerminationType(StrEnum):
    RESIGNATION = "resignation"
    DISMISSAL = "dismissal"
    END_OF_CONTRACT = "end_of_contract"
    MUTUAL_AGREEMENT = "mutual_agreement"
    RETIREMENT = "retirement"
    DEATH = "death"
    OTHER = "other"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"


class PaymentMethod(StrEnum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    CHECK = "check"
    OTHER = "other"


class ItemCondition(StrEnum):
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    DAMAGED = "damaged"


class SeniorityPeriod(CamelModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ReturnedItem(CamelModel):
    """Equipment handed back by the departing agent."""

    item: str = Field(min_length=1)
    quantity: int = 1
    returned_at: datetime = Field(default_factory=utcnow)
    condition: Optional[ItemCondition] = None
    notes: Optional[str] = None


class DocumentReturned(CamelModel):
    document_type: str = Field(min_length=1)
    returned_at: datetime = Field(default_factory=utcnow)
    notes: Optional[str] = None


class SettlementBreakdown(CamelModel):
    """Amounts owed to the agent, as entered or calculated."""

    # Settlement statement layout
    monthly_salary: Decimal = Field(default=ZERO, ge=0)
    total_salary_for_months: Decimal = Field(default=ZERO, ge=0)
    service_rendered_percentage: Decimal = Field(default=ZERO, ge=0, le=100)
    service_rendered_amount: Decimal = Field(default=ZERO, ge=0)
    annual_leave_indemnity: Decimal = Field(default=ZERO, ge=0)
    end_of_contract_indemnity: Decimal = Field(default=ZERO, ge=0)
    social_rights_indemnity: Decimal = Field(default=ZERO, ge=0)
    total_amount: Decimal = Field(default=ZERO, ge=0)

    # Breakdown produced by the contract-driven calculation
    accrued_salary: Decimal = ZERO
    unused_leave_days: Decimal = ZERO
    unused_leave_amount: Decimal = ZERO
    notice_pay: Decimal = ZERO
    notice_days: Decimal = ZERO
    severance_pay: Decimal = ZERO
    other_benefits: Decimal = ZERO
    deductions: Decimal = ZERO


class FinancialSettlement(SettlementBreakdown):
    """Breakdown plus payment progress."""

    paid_amount: Decimal = Field(default=ZERO, ge=0)
    remaining_amount: Decimal = ZERO  # negative only after an accepted over-payment


class EndOfWorkDocument(CamelModel):
    """Settlement record produced when an agent's contract ends."""

    id: str
    document_number: str
    agent_id: str
    work_contract_id: str

    termination_type: TerminationType
    termination_date: date
    last_working_day: date
    notice_period_start: Optional[date] = None
    notice_period_end: Optional[date] = None
    reason: str = Field(min_length=1)
    seniority_period: SeniorityPeriod = SeniorityPeriod()
    months_worked: int = Field(default=0, ge=0)

    financial_settlement: FinancialSettlement = FinancialSettlement()

    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[PaymentMethod] = None
    payment_date: Optional[datetime] = None
    payment_reference: Optional[str] = None

    returned_items: list[ReturnedItem] = Field(default_factory=list)
    documents_returned: list[DocumentReturned] = Field(default_factory=list)
    admin_notes: Optional[str] = None
    agent_acknowledged: bool = False
    agent_acknowledged_at: Optional[datetime] = None
    document_path: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None

    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 0
