"""Display-ready data for the settlement statement ("décompte des droits acquis").

The PDF renderer only lays this out; every fallback between the document,
its contract and its agent is resolved here.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from staffledger.models.agent import Agent
from staffledger.models.contract import ContractType, WorkContract
from staffledger.models.settlement import ZERO, EndOfWorkDocument

NOT_AVAILABLE = "N/A"

CONTRACT_TYPE_LABELS = {
    ContractType.CDI: "CDI",
    ContractType.CDD: "CDD",
    ContractType.STAGE: "Stage",
    ContractType.INTERIM: "Intérim",
    ContractType.TEMPORAIRE: "Temporaire",
}


def format_date(value: Optional[date]) -> str:
    return value.strftime("%d/%m/%Y") if value else NOT_AVAILABLE


def format_amount(value: Decimal) -> str:
    """Whole-unit amount with space thousands separators, e.g. ``1 250 000``."""
    return f"{value:,.0f}".replace(",", " ")


def contract_type_label(contract: Optional[WorkContract]) -> str:
    if contract is None or not contract.contract_type:
        return NOT_AVAILABLE
    return CONTRACT_TYPE_LABELS.get(contract.contract_type, contract.contract_type)


def _monthly_salary(document: EndOfWorkDocument, contract: Optional[WorkContract],
                    agent: Optional[Agent]) -> Decimal:
    candidates = [
        document.financial_settlement.monthly_salary,
        contract.salary.base_salary if contract else None,
        agent.base_salary if agent else None,
    ]
    return next((c for c in candidates if c), ZERO)


def _seniority(document: EndOfWorkDocument, contract: Optional[WorkContract]) -> tuple[Optional[date], Optional[date]]:
    period = document.seniority_period
    start = period.start_date or (contract.start_date if contract else None) or document.termination_date
    end = period.end_date or document.termination_date or document.last_working_day
    return start, end


def build_pdf_context(
    document: EndOfWorkDocument,
    agent: Optional[Agent],
    contract: Optional[WorkContract],
    issued_on: date,
    place: str = "N'Djamena",
) -> dict[str, Any]:
    settlement = document.financial_settlement
    monthly_salary = _monthly_salary(document, contract, agent)
    months = document.months_worked
    total_for_months = settlement.total_salary_for_months or monthly_salary * months
    start, end = _seniority(document, contract)

    return {
        "title": "DECOMPTE DES DROITS ACQUIS",
        "documentNumber": document.document_number,
        "filename": f"fin-travail-{document.document_number}.pdf",
        "agentName": agent.display_name if agent else "",
        "matricule": (agent.matricule_number if agent else None) or NOT_AVAILABLE,
        "monthlySalary": format_amount(monthly_salary),
        "seniorityPeriod": f"{format_date(start)} - {format_date(end)}" if start and end else NOT_AVAILABLE,
        "contractType": contract_type_label(contract),
        "monthsWorked": months,
        "totalSalaryForMonths": format_amount(total_for_months),
        "serviceRenderedPercentage": f"{settlement.service_rendered_percentage.normalize():f}",
        "serviceRenderedAmount": format_amount(settlement.service_rendered_amount),
        "annualLeaveIndemnity": format_amount(settlement.annual_leave_indemnity),
        "endOfContractIndemnity": format_amount(settlement.end_of_contract_indemnity),
        "socialRightsIndemnity": format_amount(settlement.social_rights_indemnity),
        "totalAmount": format_amount(settlement.total_amount),
        "paidAmount": format_amount(settlement.paid_amount),
        "remainingAmount": format_amount(settlement.remaining_amount),
        "paymentStatus": str(document.payment_status),
        "terminationType": str(document.termination_type),
        "issuedAt": f"Fait à {place} le {issued_on.strftime('%d/%m/%Y')}",
    }
