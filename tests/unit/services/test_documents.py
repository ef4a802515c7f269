"""Tests for EndOfWorkDocumentService against the memory backends."""

from __future__ import annotations

import threading
from datetime import date, datetime, timezone
from decimal import Decimal
from itertools import count

import pytest

from staffledger.core.config import SettlementConfig
from staffledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from staffledger.models.agent import Agent
from staffledger.models.contract import ContractSalary, FinancialRights, WorkContract
from staffledger.models.settlement import PaymentMethod, PaymentStatus
from staffledger.services.documents import EndOfWorkDocumentService
from tests.fakes import (
    MemoryAgentStore,
    MemoryContractStore,
    MemoryDocumentStore,
    MemorySequenceStore,
)

NOW = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)


# ---------- fixtures ----------

@pytest.fixture
def documents():
    return MemoryDocumentStore()


@pytest.fixture
def sequences():
    return MemorySequenceStore()


@pytest.fixture
def contracts():
    store = MemoryContractStore()
    store.put(WorkContract(
        id="c1",
        agent_id="a1",
        contract_type="cdd",
        start_date=date(2023, 1, 1),
        salary=ContractSalary(base_salary=Decimal("90000")),
        financial_rights=FinancialRights(
            accrued_salary=Decimal("90000"),
            paid_leave=Decimal("12"),
            severance_pay=Decimal("74000"),
            total=Decimal("500000"),
        ),
    ))
    return store


@pytest.fixture
def agents():
    store = MemoryAgentStore()
    store.create(Agent(id="a1", first_name="Amina", last_name="Mahamat", matricule_number="AG-7"))
    return store


def _service(documents, sequences, contracts, agents, **settings):
    ids = count(1)
    return EndOfWorkDocumentService(
        documents=documents,
        sequences=sequences,
        contracts=contracts,
        agents=agents,
        settings=SettlementConfig(**settings),
        clock=lambda: NOW,
        id_factory=lambda: f"doc-{next(ids)}",
    )


@pytest.fixture
def service(documents, sequences, contracts, agents):
    return _service(documents, sequences, contracts, agents)


def _payload(**overrides):
    payload = {
        "agentId": "a1",
        "workContractId": "c1",
        "terminationType": "end_of_contract",
        "terminationDate": "2025-02-28",
        "lastWorkingDay": "2025-02-28",
        "reason": "Fin de contrat",
        "financialSettlement": {"totalAmount": "500000"},
    }
    payload.update(overrides)
    return payload


# ---------- create ----------

class TestCreate:
    def test_first_document_of_year_gets_sequence_one(self, service):
        view = service.create(_payload(), actor_id="u-admin")
        assert view.document.document_number == "DFT-2025-000001"

    def test_numbers_increase_within_year(self, service):
        service.create(_payload(), actor_id="u1")
        second = service.create(_payload(), actor_id="u1")
        assert second.document.document_number == "DFT-2025-000002"

    def test_sequence_continues_from_counter(self, service, sequences):
        sequences.seed("DFT", "2025", 41)
        assert service.create(_payload(), actor_id="u1").document.document_number == "DFT-2025-000042"

    def test_blank_number_is_allocated(self, service):
        view = service.create(_payload(documentNumber="   "), actor_id="u1")
        assert view.document.document_number == "DFT-2025-000001"

    def test_explicit_number_kept(self, service):
        view = service.create(_payload(documentNumber="DFT-LEGACY-9"), actor_id="u1")
        assert view.document.document_number == "DFT-LEGACY-9"

    def test_duplicate_number_conflicts(self, service):
        service.create(_payload(documentNumber="DFT-2025-000010"), actor_id="u1")
        with pytest.raises(ConflictError):
            service.create(_payload(documentNumber="DFT-2025-000010"), actor_id="u1")

    def test_stamps_creator_and_timestamps(self, service):
        doc = service.create(_payload(), actor_id="u-admin").document
        assert doc.created_by == "u-admin"
        assert doc.created_at == NOW
        assert doc.updated_at == NOW

    def test_remaining_computed_and_status_pending(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        assert doc.financial_settlement.remaining_amount == Decimal("500000")
        assert doc.financial_settlement.paid_amount == Decimal("0")
        assert doc.payment_status == PaymentStatus.PENDING

    def test_resolves_agent(self, service):
        view = service.create(_payload(), actor_id="u1")
        assert view.agent.first_name == "Amina"
        assert view.to_wire()["agent"]["matriculeNumber"] == "AG-7"

    def test_acknowledged_on_create_is_stamped(self, service):
        doc = service.create(_payload(agentAcknowledged=True), actor_id="u1").document
        assert doc.agent_acknowledged_at == NOW

    def test_missing_required_field_is_validation_error(self, service):
        payload = _payload()
        del payload["reason"]
        with pytest.raises(ValidationError):
            service.create(payload, actor_id="u1")

    def test_paid_amount_cannot_be_supplied(self, service):
        with pytest.raises(ValidationError):
            service.create(_payload(financialSettlement={"totalAmount": "10", "paidAmount": "5"}),
                           actor_id="u1")

    def test_concurrent_creates_get_distinct_numbers(self, service):
        numbers, errors = [], []

        def worker():
            try:
                numbers.append(service.create(_payload(), actor_id="u1").document.document_number)
            except Exception as exc:  # pragma: no cover
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert not errors
        assert len(set(numbers)) == 10


# ---------- queries ----------

class TestFindAll:
    def test_filters_sorts_and_paginates(self, service):
        for day in (5, 20, 12):
            service.create(_payload(terminationDate=f"2025-01-{day:02d}"), actor_id="u1")
        service.create(_payload(agentId="a2"), actor_id="u1")

        page = service.find_all(agent_id="a1", page=1, limit=2)
        dates = [v.document.termination_date.day for v in page.documents]
        assert dates == [20, 12]
        assert page.pagination.total == 3
        assert page.pagination.pages == 2

        second = service.find_all(agent_id="a1", page=2, limit=2)
        assert [v.document.termination_date.day for v in second.documents] == [5]

    def test_filters_by_payment_status(self, service):
        first = service.create(_payload(), actor_id="u1").document
        service.create(_payload(), actor_id="u1")
        service.record_payment(first.id, "1000", "cash")

        partial = service.find_all(payment_status="partial")
        assert [v.document.id for v in partial.documents] == [first.id]

    def test_default_limit(self, service):
        page = service.find_all()
        assert page.pagination.limit == 10
        assert page.pagination.total == 0
        assert page.pagination.pages == 0

    @pytest.mark.parametrize("page,limit", [(0, 10), (1, 0)])
    def test_rejects_invalid_paging(self, service, page, limit):
        with pytest.raises(ValidationError):
            service.find_all(page=page, limit=limit)

    def test_rejects_unknown_status(self, service):
        with pytest.raises(ValidationError):
            service.find_all(payment_status="refunded")


class TestFindOne:
    def test_resolves_agent_and_contract(self, service):
        created = service.create(_payload(), actor_id="u1").document
        view = service.find_one(created.id)
        assert view.agent.id == "a1"
        assert view.contract.id == "c1"
        assert view.to_wire()["workContract"]["contractType"] == "cdd"

    def test_missing_references_resolve_to_none(self, service):
        created = service.create(_payload(agentId="ghost", workContractId="gone"), actor_id="u1").document
        view = service.find_one(created.id)
        assert view.agent is None
        assert view.contract is None

    def test_missing_document(self, service):
        with pytest.raises(NotFoundError, match="Document non trouvé"):
            service.find_one("nope")


# ---------- update ----------

class TestUpdate:
    def test_merges_allowed_fields(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        view = service.update(doc.id, {"adminNotes": "RAS", "monthsWorked": 26}, actor_id="u2")
        assert view.document.admin_notes == "RAS"
        assert view.document.months_worked == 26
        assert view.document.reason == "Fin de contrat"

    def test_settlement_patch_recomputes_remaining(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        service.record_payment(doc.id, "100000", "cash")
        view = service.update(doc.id, {"financialSettlement": {"totalAmount": "600000"}})
        s = view.document.financial_settlement
        assert s.paid_amount == Decimal("100000")
        assert s.remaining_amount == Decimal("500000")
        assert view.document.payment_status == PaymentStatus.PARTIAL

    def test_total_change_keeps_payment_status(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        service.record_payment(doc.id, "100000", "cash")
        view = service.update(doc.id, {"financialSettlement": {"totalAmount": "100000"}})
        assert view.document.financial_settlement.remaining_amount == Decimal("0")
        assert view.document.payment_status == PaymentStatus.PARTIAL

    def test_raising_total_does_not_reopen_completed_document(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        total = doc.financial_settlement.total_amount
        service.record_payment(doc.id, total, "cash")
        view = service.update(doc.id, {"financialSettlement": {"totalAmount": str(total + 1)}})
        assert view.document.financial_settlement.remaining_amount == Decimal("1")
        assert view.document.payment_status == PaymentStatus.COMPLETED

    @pytest.mark.parametrize("field", [
        "documentNumber", "paymentStatus", "paymentMethod", "paymentDate",
        "createdBy", "createdAt", "version", "id",
    ])
    def test_system_managed_fields_rejected(self, service, field):
        doc = service.create(_payload(), actor_id="u1").document
        with pytest.raises(ValidationError):
            service.update(doc.id, {field: "x"})

    @pytest.mark.parametrize("field", ["paidAmount", "remainingAmount"])
    def test_payment_tracking_rejected_inside_settlement(self, service, field):
        doc = service.create(_payload(), actor_id="u1").document
        with pytest.raises(ValidationError):
            service.update(doc.id, {"financialSettlement": {field: "1"}})

    def test_unknown_field_rejected(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        with pytest.raises(ValidationError):
            service.update(doc.id, {"favouriteColour": "blue"})

    def test_invalid_value_rejected(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        with pytest.raises(ValidationError):
            service.update(doc.id, {"terminationType": "vacation"})

    def test_acknowledgement_and_approval_are_stamped(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        view = service.update(doc.id, {"agentAcknowledged": True, "approvedBy": "u-boss"})
        assert view.document.agent_acknowledged_at == NOW
        assert view.document.approved_at == NOW
        assert view.document.approved_by == "u-boss"

    def test_missing_document(self, service):
        with pytest.raises(NotFoundError):
            service.update("nope", {"adminNotes": "x"})

    def test_bumps_version(self, service, documents):
        doc = service.create(_payload(), actor_id="u1").document
        service.update(doc.id, {"adminNotes": "x"})
        assert documents.get(doc.id).version == doc.version + 1


# ---------- calculate ----------

class TestCalculateFinancialRights:
    def test_overwrites_settlement_from_contract(self, service):
        doc = service.create(_payload(financialSettlement={"totalAmount": "1", "monthlySalary": "5"}),
                             actor_id="u1").document
        s = service.calculate_financial_rights(doc.id).document.financial_settlement
        assert s.total_amount == Decimal("500000")
        assert s.unused_leave_amount == Decimal("36000.00")
        assert s.severance_pay == Decimal("74000")
        assert s.monthly_salary == Decimal("0")
        assert s.remaining_amount == Decimal("500000")

    def test_reset_policy_wipes_payment_progress(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        service.record_payment(doc.id, "200000", "bank_transfer", "VIR-1")
        recalculated = service.calculate_financial_rights(doc.id).document
        assert recalculated.financial_settlement.paid_amount == Decimal("0")
        assert recalculated.payment_status == PaymentStatus.PENDING
        assert recalculated.payment_method is None
        assert recalculated.payment_reference is None

    def test_preserve_policy_keeps_paid_amount(self, documents, sequences, contracts, agents):
        service = _service(documents, sequences, contracts, agents, recalculation="preserve")
        doc = service.create(_payload(), actor_id="u1").document
        service.record_payment(doc.id, "200000", "cash")
        recalculated = service.calculate_financial_rights(doc.id).document
        assert recalculated.financial_settlement.paid_amount == Decimal("200000")
        assert recalculated.financial_settlement.remaining_amount == Decimal("300000")
        assert recalculated.payment_status == PaymentStatus.PARTIAL

    def test_idempotent(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        first = service.calculate_financial_rights(doc.id).document.financial_settlement
        second = service.calculate_financial_rights(doc.id).document.financial_settlement
        assert first == second

    def test_missing_contract(self, service):
        doc = service.create(_payload(workContractId="gone"), actor_id="u1").document
        with pytest.raises(NotFoundError, match="Contrat associé non trouvé"):
            service.calculate_financial_rights(doc.id)

    def test_missing_document(self, service):
        with pytest.raises(NotFoundError):
            service.calculate_financial_rights("nope")


# ---------- payments ----------

class TestRecordPayment:
    def test_installments(self, service):
        doc = service.create(_payload(), actor_id="u1").document

        first = service.record_payment(doc.id, "200000", "cash").document
        assert first.financial_settlement.remaining_amount == Decimal("300000")
        assert first.payment_status == PaymentStatus.PARTIAL

        second = service.record_payment(doc.id, Decimal("300000"), PaymentMethod.CHECK, "CHQ-9").document
        assert second.financial_settlement.remaining_amount == Decimal("0")
        assert second.payment_status == PaymentStatus.COMPLETED
        assert second.payment_method == PaymentMethod.CHECK
        assert second.payment_reference == "CHQ-9"
        assert second.payment_date == NOW

    @pytest.mark.parametrize("amount", ["0", "-5", "abc"])
    def test_invalid_amount(self, service, amount):
        doc = service.create(_payload(), actor_id="u1").document
        with pytest.raises(ValidationError):
            service.record_payment(doc.id, amount, "cash")

    def test_invalid_method(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        with pytest.raises(ValidationError):
            service.record_payment(doc.id, "10", "barter")

    def test_reject_overpayment_policy(self, documents, sequences, contracts, agents):
        service = _service(documents, sequences, contracts, agents, overpayment="reject")
        doc = service.create(_payload(), actor_id="u1").document
        with pytest.raises(ValidationError):
            service.record_payment(doc.id, "500001", "cash")

    def test_missing_document(self, service):
        with pytest.raises(NotFoundError):
            service.record_payment("nope", "10", "cash")

    def test_concurrent_payments_are_not_lost(self, documents, sequences, contracts, agents):
        service = _service(documents, sequences, contracts, agents, max_write_attempts=50)
        doc = service.create(_payload(), actor_id="u1").document
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            service.record_payment(doc.id, "1000", "cash")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stored = documents.get(doc.id)
        assert stored.financial_settlement.paid_amount == Decimal("8000")
        assert stored.financial_settlement.remaining_amount == Decimal("492000")

    def test_exhausted_retries_raise_conflict(self, service, documents, monkeypatch):
        doc = service.create(_payload(), actor_id="u1").document
        original_get = documents.get

        def racing_get(document_id):
            current = original_get(document_id)
            # Another writer bumps the version right after every read.
            documents.replace(current, expected_version=current.version)
            return current

        monkeypatch.setattr(documents, "get", racing_get)
        with pytest.raises(ConflictError):
            service.record_payment(doc.id, "10", "cash")


# ---------- delete / pdf ----------

class TestDelete:
    def test_deletes_and_frees_number(self, service):
        doc = service.create(_payload(documentNumber="DFT-X-1"), actor_id="u1").document
        service.delete(doc.id)
        with pytest.raises(NotFoundError):
            service.find_one(doc.id)
        service.create(_payload(documentNumber="DFT-X-1"), actor_id="u1")

    def test_completed_document_can_be_deleted(self, service):
        doc = service.create(_payload(), actor_id="u1").document
        service.record_payment(doc.id, "500000", "cash")
        service.delete(doc.id)

    def test_missing_document(self, service):
        with pytest.raises(NotFoundError, match="Document non trouvé"):
            service.delete("nope")


def test_pdf_context_uses_references(service):
    doc = service.create(_payload(monthsWorked=26), actor_id="u1").document
    context = service.pdf_context(doc.id)
    assert context["documentNumber"] == "DFT-2025-000001"
    assert context["agentName"] == "Amina Mahamat"
    assert context["monthlySalary"] == "90 000"
    assert context["contractType"] == "CDD"
    assert context["seniorityPeriod"] == "01/01/2023 - 28/02/2025"
