"""Tests for settlement statement data preparation."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from staffledger.models.agent import Agent
from staffledger.models.contract import ContractSalary, WorkContract
from staffledger.models.settlement import (
    EndOfWorkDocument,
    FinancialSettlement,
    SeniorityPeriod,
    TerminationType,
)
from staffledger.services.pdf_context import build_pdf_context, contract_type_label, format_amount

ISSUED = date(2025, 3, 15)


def _document(**overrides) -> EndOfWorkDocument:
    data = {
        "id": "d1",
        "document_number": "DFT-2025-000003",
        "agent_id": "a1",
        "work_contract_id": "c1",
        "termination_type": TerminationType.RESIGNATION,
        "termination_date": date(2025, 2, 28),
        "last_working_day": date(2025, 2, 27),
        "reason": "Démission",
        "months_worked": 10,
    }
    data.update(overrides)
    return EndOfWorkDocument(**data)


def _contract(**overrides) -> WorkContract:
    data = {"id": "c1", "agent_id": "a1", "contract_type": "cdi",
            "start_date": date(2024, 5, 1), "salary": ContractSalary(base_salary=Decimal("120000"))}
    data.update(overrides)
    return WorkContract(**data)


AGENT = Agent(id="a1", first_name="Khadija", last_name="Oumar", matricule_number="M-001",
              base_salary=Decimal("80000"))


class TestMonthlySalary:
    def test_settlement_value_first(self):
        doc = _document(financial_settlement=FinancialSettlement(monthly_salary=Decimal("150000")))
        assert build_pdf_context(doc, AGENT, _contract(), ISSUED)["monthlySalary"] == "150 000"

    def test_falls_back_to_contract(self):
        assert build_pdf_context(_document(), AGENT, _contract(), ISSUED)["monthlySalary"] == "120 000"

    def test_falls_back_to_agent(self):
        assert build_pdf_context(_document(), AGENT, None, ISSUED)["monthlySalary"] == "80 000"

    def test_zero_without_sources(self):
        assert build_pdf_context(_document(), None, None, ISSUED)["monthlySalary"] == "0"


class TestSeniorityPeriod:
    def test_uses_document_period(self):
        doc = _document(seniority_period=SeniorityPeriod(start_date=date(2020, 1, 2), end_date=date(2025, 1, 31)))
        assert build_pdf_context(doc, AGENT, _contract(), ISSUED)["seniorityPeriod"] == "02/01/2020 - 31/01/2025"

    def test_contract_start_and_termination_date(self):
        ctx = build_pdf_context(_document(), AGENT, _contract(), ISSUED)
        assert ctx["seniorityPeriod"] == "01/05/2024 - 28/02/2025"

    def test_termination_date_when_no_contract(self):
        ctx = build_pdf_context(_document(), AGENT, None, ISSUED)
        assert ctx["seniorityPeriod"] == "28/02/2025 - 28/02/2025"


@pytest.mark.parametrize("raw,label", [
    ("cdi", "CDI"), ("cdd", "CDD"), ("stage", "Stage"),
    ("interim", "Intérim"), ("temporaire", "Temporaire"), ("freelance", "freelance"),
])
def test_contract_type_labels(raw, label):
    assert contract_type_label(_contract(contract_type=raw)) == label


def test_contract_type_not_available():
    assert contract_type_label(None) == "N/A"
    assert contract_type_label(_contract(contract_type=None)) == "N/A"


def test_total_salary_for_months_derived_from_monthly_salary():
    ctx = build_pdf_context(_document(), AGENT, _contract(), ISSUED)
    assert ctx["totalSalaryForMonths"] == "1 200 000"


def test_total_salary_for_months_from_settlement():
    doc = _document(financial_settlement=FinancialSettlement(total_salary_for_months=Decimal("999000")))
    assert build_pdf_context(doc, AGENT, _contract(), ISSUED)["totalSalaryForMonths"] == "999 000"


def test_matricule_and_identity():
    ctx = build_pdf_context(_document(), AGENT, _contract(), ISSUED)
    assert ctx["agentName"] == "Khadija Oumar"
    assert ctx["matricule"] == "M-001"
    no_matricule = AGENT.model_copy(update={"matricule_number": None})
    assert build_pdf_context(_document(), no_matricule, None, ISSUED)["matricule"] == "N/A"


def test_amounts_and_filename():
    doc = _document(financial_settlement=FinancialSettlement(
        total_amount=Decimal("500000"), paid_amount=Decimal("200000"), remaining_amount=Decimal("300000"),
        service_rendered_percentage=Decimal("25"),
    ))
    ctx = build_pdf_context(doc, AGENT, _contract(), ISSUED)
    assert ctx["totalAmount"] == "500 000"
    assert ctx["paidAmount"] == "200 000"
    assert ctx["remainingAmount"] == "300 000"
    assert ctx["serviceRenderedPercentage"] == "25"
    assert ctx["filename"] == "fin-travail-DFT-2025-000003.pdf"
    assert ctx["issuedAt"].endswith("15/03/2025")


def test_format_amount_rounds_to_whole_units():
    assert format_amount(Decimal("1234567.5")) == "1 234 568"
