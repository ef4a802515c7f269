"""Work contract models (read-only reference for settlement calculation)."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Optional

from pydantic import Field

from staffledger.models.base import CamelModel


class ContractType(StrEnum):
    CDI = "cdi"
    CDD = "cdd"
    STAGE = "stage"
    INTERIM = "interim"
    TEMPORAIRE = "temporaire"


class ContractSalary(CamelModel):
    """Salary terms of a work contract."""

    base_salary: Decimal = Field(default=Decimal("0"), ge=0)
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    currency: str = "FCFA"
    payment_frequency: str = "mensuel"  # mensuel, hebdomadaire, bihebdomadaire, quotidien


class FinancialRights(CamelModel):
    """Entitlements accrued on the contract, maintained by the contract module."""

    accrued_salary: Decimal = Decimal("0")
    paid_leave: Decimal = Decimal("0")  # unused leave, in days
    notice_pay: Decimal = Decimal("0")
    notice_days: Decimal = Decimal("0")
    severance_pay: Decimal = Decimal("0")
    bonuses: Decimal = Decimal("0")
    total: Decimal = Decimal("0")


class WorkContract(CamelModel):
    """Employment contract tying an agent to its salary and accrued rights."""

    id: str
    agent_id: str
    contract_number: Optional[str] = None
    contract_type: Optional[str] = None
    position: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    salary: ContractSalary = ContractSalary()
    financial_rights: FinancialRights = FinancialRights()
