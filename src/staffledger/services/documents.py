"""End-of-work document lifecycle: create, list, update, calculate, pay, delete.

Every mutation of an existing document goes through :meth:`_mutate`, a
compare-and-swap loop on the document ``version``: the document is re-read,
the mutation re-applied and the conditional write retried when another
writer got there first.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional
from uuid import uuid4

from staffledger.core.config import SettlementConfig
from staffledger.core.exceptions import (
    ConcurrentModificationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from staffledger.core.protocols import (
    IAgentStore,
    IContractStore,
    IDocumentStore,
    ISequenceStore,
)
from staffledger.models.agent import AgentRef
from staffledger.models.base import utcnow
from staffledger.models.requests import (
    DocumentCreate,
    DocumentPage,
    DocumentUpdate,
    DocumentView,
    Pagination,
    PaymentRequest,
)
from staffledger.models.settlement import (
    EndOfWorkDocument,
    FinancialSettlement,
    PaymentMethod,
    PaymentStatus,
)
from staffledger.services.pdf_context import build_pdf_context
from staffledger.services.validation import validate
from staffledger.settlement.calculator import calculate_settlement
from staffledger.settlement.ledger import (
    apply_payment,
    recompute_remaining,
    refresh_payment_state,
    reset_payments,
)
from staffledger.settlement.numbering import format_document_number

logger = logging.getLogger(__name__)

DOCUMENT_NOT_FOUND = "Document non trouvé"
CONTRACT_NOT_FOUND = "Contrat associé non trouvé"

# Only changed by dedicated operations (numbering, payment, audit stamps).
SYSTEM_MANAGED_FIELDS = frozenset({
    "id",
    "documentNumber", "document_number",
    "paymentStatus", "payment_status",
    "paidAmount", "paid_amount",
    "remainingAmount", "remaining_amount",
    "paymentMethod", "payment_method",
    "paymentDate", "payment_date",
    "paymentReference", "payment_reference",
    "createdBy", "created_by",
    "createdAt", "created_at",
    "updatedAt", "updated_at",
    "version",
})

Mutation = Callable[[EndOfWorkDocument], EndOfWorkDocument]


def _new_id() -> str:
    return uuid4().hex


class EndOfWorkDocumentService:
    """Operations behind the ``/end-of-work-documents`` routes."""

    def __init__(
        self,
        *,
        documents: IDocumentStore,
        sequences: ISequenceStore,
        contracts: IContractStore,
        agents: IAgentStore,
        settings: SettlementConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._documents = documents
        self._sequences = sequences
        self._contracts = contracts
        self._agents = agents
        self._settings = settings or SettlementConfig()
        self._clock = clock
        self._id_factory = id_factory

    # ---------- queries ----------

    def find_all(
        self,
        agent_id: Optional[str] = None,
        payment_status: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> DocumentPage:
        limit = limit if limit is not None else self._settings.default_page_size
        if page < 1 or limit < 1:
            raise ValidationError("Les paramètres page et limit doivent être supérieurs ou égaux à 1.")

        status = None
        if payment_status:
            try:
                status = PaymentStatus(payment_status)
            except ValueError:
                raise ValidationError(f"Statut de paiement invalide: {payment_status}") from None

        matches = self._documents.find(agent_id=agent_id or None, payment_status=status)
        matches.sort(key=lambda d: (d.termination_date, d.created_at), reverse=True)
        start = (page - 1) * limit
        views = [self._view(doc) for doc in matches[start:start + limit]]
        return DocumentPage(documents=views, pagination=Pagination.build(page, limit, len(matches)))

    def find_one(self, document_id: str) -> DocumentView:
        document = self._load(document_id)
        return self._view(document, with_contract=True)

    def pdf_context(self, document_id: str) -> dict[str, Any]:
        """Render data for the settlement statement; read-only."""
        document = self._load(document_id)
        agent = self._agents.get(document.agent_id)
        contract = self._contracts.get(document.work_contract_id)
        return build_pdf_context(document, agent, contract, issued_on=self._clock().date())

    # ---------- commands ----------

    def create(self, payload: DocumentCreate | Mapping[str, Any], actor_id: Optional[str]) -> DocumentView:
        request = validate(DocumentCreate, payload)
        now = self._clock()

        number = request.document_number or self._allocate_number(now)
        data = request.model_dump(exclude={"document_number", "financial_settlement"})
        document = EndOfWorkDocument(
            **data,
            id=self._id_factory(),
            document_number=number,
            financial_settlement=FinancialSettlement(**request.financial_settlement.model_dump()),
            agent_acknowledged_at=now if request.agent_acknowledged else None,
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        )
        document = refresh_payment_state(document)
        self._documents.insert(document)
        logger.info("Created end-of-work document %s (id=%s, agent=%s)",
                    document.document_number, document.id, document.agent_id)
        return self._view(document)

    def update(self, document_id: str, fields: Mapping[str, Any], actor_id: Optional[str] = None) -> DocumentView:
        forbidden = sorted(SYSTEM_MANAGED_FIELDS.intersection(fields))
        settlement_fields = fields.get("financialSettlement") or fields.get("financial_settlement")
        if isinstance(settlement_fields, Mapping):
            forbidden += sorted(SYSTEM_MANAGED_FIELDS.intersection(settlement_fields))
        if forbidden:
            raise ValidationError(f"Champs non modifiables: {', '.join(forbidden)}")

        patch = validate(DocumentUpdate, fields)
        changes = patch.model_dump(exclude_unset=True, exclude={"financial_settlement"})
        settlement_changes = (
            patch.financial_settlement.model_dump(exclude_unset=True, exclude_none=True)
            if patch.financial_settlement is not None
            else {}
        )

        def merge(current: EndOfWorkDocument) -> EndOfWorkDocument:
            now = self._clock()
            merged = current.model_dump()
            merged.update(changes)
            merged["financial_settlement"] = {**merged["financial_settlement"], **settlement_changes}
            if merged.get("agent_acknowledged") and merged.get("agent_acknowledged_at") is None:
                merged["agent_acknowledged_at"] = now
            if merged.get("approved_by") and merged.get("approved_at") is None:
                merged["approved_at"] = now
            document = validate(EndOfWorkDocument, merged)
            # Status only moves through payments and recalculation.
            return document.model_copy(
                update={"financial_settlement": recompute_remaining(document.financial_settlement)}
            )

        document = self._mutate(document_id, merge)
        logger.info("Updated end-of-work document %s (fields=%s, by=%s)",
                    document.document_number, sorted(fields), actor_id)
        return self._view(document)

    def calculate_financial_rights(self, document_id: str) -> DocumentView:
        """Rebuild the settlement from the linked contract's financial rights."""
        preserve = self._settings.recalculation == "preserve"

        def recalculate(current: EndOfWorkDocument) -> EndOfWorkDocument:
            contract = self._contracts.get(current.work_contract_id)
            if contract is None:
                raise NotFoundError("WorkContract", current.work_contract_id, CONTRACT_NOT_FOUND)
            settlement = calculate_settlement(contract, self._settings.leave_days_per_month)
            if preserve:
                settlement = settlement.model_copy(
                    update={"paid_amount": current.financial_settlement.paid_amount}
                )
                return refresh_payment_state(current.model_copy(update={"financial_settlement": settlement}))
            return reset_payments(current.model_copy(update={"financial_settlement": settlement}))

        document = self._mutate(document_id, recalculate)
        logger.info("Calculated financial rights for %s: total=%s (policy=%s)",
                    document.document_number, document.financial_settlement.total_amount,
                    self._settings.recalculation)
        return self._view(document)

    def record_payment(
        self,
        document_id: str,
        amount: Decimal | str | int,
        payment_method: PaymentMethod | str,
        payment_reference: Optional[str] = None,
    ) -> DocumentView:
        request = validate(PaymentRequest, {
            "amount": amount,
            "paymentMethod": payment_method,
            "paymentReference": payment_reference,
        })

        def pay(current: EndOfWorkDocument) -> EndOfWorkDocument:
            return apply_payment(
                current,
                request.amount,
                request.payment_method,
                request.payment_reference,
                paid_at=self._clock(),
                overpayment=self._settings.overpayment,
            )

        document = self._mutate(document_id, pay)
        settlement = document.financial_settlement
        logger.info("Recorded payment of %s on %s: paid=%s remaining=%s status=%s",
                    request.amount, document.document_number, settlement.paid_amount,
                    settlement.remaining_amount, document.payment_status)
        return self._view(document)

    def delete(self, document_id: str) -> None:
        if not self._documents.delete(document_id):
            raise NotFoundError("EndOfWorkDocument", document_id, DOCUMENT_NOT_FOUND)
        logger.info("Deleted end-of-work document %s", document_id)

    # ---------- internals ----------

    def _allocate_number(self, now: datetime) -> str:
        prefix = self._settings.document_prefix
        sequence = self._sequences.next_value(prefix, str(now.year))
        return format_document_number(now.year, sequence, prefix, self._settings.sequence_width)

    def _load(self, document_id: str) -> EndOfWorkDocument:
        document = self._documents.get(document_id)
        if document is None:
            raise NotFoundError("EndOfWorkDocument", document_id, DOCUMENT_NOT_FOUND)
        return document

    def _mutate(self, document_id: str, mutation: Mutation) -> EndOfWorkDocument:
        attempts = max(1, self._settings.max_write_attempts)
        for attempt in range(1, attempts + 1):
            current = self._load(document_id)
            updated = mutation(current).model_copy(update={"updated_at": self._clock()})
            try:
                return self._documents.replace(updated, expected_version=current.version)
            except ConcurrentModificationError:
                logger.warning("Concurrent write on document %s (attempt %d/%d), retrying",
                               document_id, attempt, attempts)
        raise ConflictError(
            "Le document a été modifié simultanément, veuillez réessayer.", key=document_id
        )

    def _view(self, document: EndOfWorkDocument, with_contract: bool = False) -> DocumentView:
        agent = self._agents.get(document.agent_id)
        contract = self._contracts.get(document.work_contract_id) if with_contract else None
        return DocumentView(
            document=document,
            agent=AgentRef.from_agent(agent) if agent else None,
            contract=contract,
        )
