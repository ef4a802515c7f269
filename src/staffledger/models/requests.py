"""Request and response payloads for the document and recruitment operations.

Payload models forbid unknown keys: system-managed fields (payment tracking,
audit stamps, conversion linkage) can only change through the dedicated
operations.
"""

from __future__ import annotations

import math
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import Field

from staffledger.models.agent import AgentRef, IdentityDocument
from staffledger.models.base import CamelModel
from staffledger.models.contract import WorkContract
from staffledger.models.recruitment import Experience, RecruitmentStatus
from staffledger.models.settlement import (
    DocumentReturned,
    EndOfWorkDocument,
    PaymentMethod,
    ReturnedItem,
    SeniorityPeriod,
    SettlementBreakdown,
    TerminationType,
)

_FORBID = {**CamelModel.model_config, "extra": "forbid"}


class SettlementInput(SettlementBreakdown):
    """Settlement amounts accepted on create; payment tracking is not accepted."""

    model_config = _FORBID


class DocumentCreate(CamelModel):
    """Body of ``POST /end-of-work-documents``."""

    model_config = _FORBID

    document_number: Optional[str] = None
    agent_id: str = Field(min_length=1)
    work_contract_id: str = Field(min_length=1)
    termination_type: TerminationType
    termination_date: date
    last_working_day: date
    notice_period_start: Optional[date] = None
    notice_period_end: Optional[date] = None
    reason: str = Field(min_length=1)
    seniority_period: SeniorityPeriod = SeniorityPeriod()
    months_worked: int = Field(default=0, ge=0)
    financial_settlement: SettlementInput = SettlementInput()
    returned_items: list[ReturnedItem] = Field(default_factory=list)
    documents_returned: list[DocumentReturned] = Field(default_factory=list)
    admin_notes: Optional[str] = None
    agent_acknowledged: bool = False
    document_path: Optional[str] = None


class SettlementPatch(CamelModel):
    """Partial settlement breakdown; payment tracking is not patchable."""

    model_config = _FORBID

    monthly_salary: Optional[Decimal] = Field(default=None, ge=0)
    total_salary_for_months: Optional[Decimal] = Field(default=None, ge=0)
    service_rendered_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    service_rendered_amount: Optional[Decimal] = Field(default=None, ge=0)
    annual_leave_indemnity: Optional[Decimal] = Field(default=None, ge=0)
    end_of_contract_indemnity: Optional[Decimal] = Field(default=None, ge=0)
    social_rights_indemnity: Optional[Decimal] = Field(default=None, ge=0)
    total_amount: Optional[Decimal] = Field(default=None, ge=0)
    accrued_salary: Optional[Decimal] = None
    unused_leave_days: Optional[Decimal] = None
    unused_leave_amount: Optional[Decimal] = None
    notice_pay: Optional[Decimal] = None
    notice_days: Optional[Decimal] = None
    severance_pay: Optional[Decimal] = None
    other_benefits: Optional[Decimal] = None
    deductions: Optional[Decimal] = None


class DocumentUpdate(CamelModel):
    """Body of ``PUT /end-of-work-documents/{id}``: the mutable allow-list."""

    model_config = _FORBID

    agent_id: Optional[str] = Field(default=None, min_length=1)
    work_contract_id: Optional[str] = Field(default=None, min_length=1)
    termination_type: Optional[TerminationType] = None
    termination_date: Optional[date] = None
    last_working_day: Optional[date] = None
    notice_period_start: Optional[date] = None
    notice_period_end: Optional[date] = None
    reason: Optional[str] = Field(default=None, min_length=1)
    seniority_period: Optional[SeniorityPeriod] = None
    months_worked: Optional[int] = Field(default=None, ge=0)
    financial_settlement: Optional[SettlementPatch] = None
    returned_items: Optional[list[ReturnedItem]] = None
    documents_returned: Optional[list[DocumentReturned]] = None
    admin_notes: Optional[str] = None
    agent_acknowledged: Optional[bool] = None
    document_path: Optional[str] = None
    approved_by: Optional[str] = None


class PaymentRequest(CamelModel):
    """Body of ``POST /end-of-work-documents/{id}/payment``."""

    model_config = _FORBID

    amount: Decimal = Field(gt=0)
    payment_method: PaymentMethod
    payment_reference: Optional[str] = None


class RecruitmentUpdate(CamelModel):
    """Body of ``PUT /recruitment/{id}``; conversion linkage is excluded."""

    model_config = _FORBID

    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, min_length=3)
    phone: Optional[str] = Field(default=None, min_length=1)
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    identity_document: Optional[IdentityDocument] = None
    address: Optional[str] = None
    languages: Optional[list[str]] = None
    skills: Optional[list[str]] = None
    experience: Optional[Experience] = None
    expected_hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[RecruitmentStatus] = None
    recruiter_notes: Optional[str] = None
    rejection_reason: Optional[str] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> Pagination:
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit))


class DocumentView(CamelModel):
    """Document with its references resolved for display."""

    document: EndOfWorkDocument
    agent: Optional[AgentRef] = None
    contract: Optional[WorkContract] = None

    def to_wire(self) -> dict[str, Any]:
        data = self.document.to_wire()
        if self.agent is not None:
            data["agent"] = self.agent.to_wire()
        if self.contract is not None:
            data["workContract"] = self.contract.to_wire()
        return data


class DocumentPage(CamelModel):
    documents: list[DocumentView]
    pagination: Pagination
