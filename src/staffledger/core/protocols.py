"""Protocol interfaces for all StaffLedger abstractions.

Services depend on these Protocols only; DynamoDB, Redis and in-memory
backends satisfy them structurally.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable

from staffledger.models.agent import Agent, User
from staffledger.models.contract import WorkContract
from staffledger.models.recruitment import Recruitment
from staffledger.models.settlement import EndOfWorkDocument, PaymentStatus


# ---------------------------------------------------------------------------
# Persistence: End-of-work documents
# ---------------------------------------------------------------------------

@runtime_checkable
class IDocumentStore(Protocol):
    """Settlement document collection with a unique document number."""

    def get(self, document_id: str) -> EndOfWorkDocument | None: ...

    def insert(self, document: EndOfWorkDocument) -> None:
        """Raises ConflictError when the document number is taken."""
        ...

    def replace(self, document: EndOfWorkDocument, expected_version: int) -> EndOfWorkDocument:
        """Write ``document`` only if the stored version equals ``expected_version``.

        Returns the stored document (version bumped). Raises
        ConcurrentModificationError on a version mismatch and NotFoundError
        if the document vanished.
        """
        ...

    def delete(self, document_id: str) -> bool: ...

    def find(
        self, agent_id: Optional[str] = None, payment_status: Optional[PaymentStatus] = None
    ) -> list[EndOfWorkDocument]: ...


# ---------------------------------------------------------------------------
# Persistence: Sequences
# ---------------------------------------------------------------------------

@runtime_checkable
class ISequenceStore(Protocol):
    """Atomic counters, one per (name, scope)."""

    def next_value(self, name: str, scope: str) -> int: ...


# ---------------------------------------------------------------------------
# Persistence: Reference data
# ---------------------------------------------------------------------------

@runtime_checkable
class IContractStore(Protocol):
    def get(self, contract_id: str) -> WorkContract | None: ...


@runtime_checkable
class IAgentStore(Protocol):
    def get(self, agent_id: str) -> Agent | None: ...

    def find_by_user(self, user_id: str) -> Agent | None: ...

    def create(self, agent: Agent) -> Agent:
        """Raises ConflictError when another agent holds the same user id."""
        ...

    def delete(self, agent_id: str) -> bool:
        """Remove the agent and its user-id marker; False when absent."""
        ...


@runtime_checkable
class IUserStore(Protocol):
    def get(self, user_id: str) -> User | None: ...

    def find_by_email(self, email: str) -> User | None: ...


# ---------------------------------------------------------------------------
# Persistence: Recruitment
# ---------------------------------------------------------------------------

@runtime_checkable
class IRecruitmentStore(Protocol):
    def get(self, recruitment_id: str) -> Recruitment | None: ...

    def insert(self, recruitment: Recruitment) -> None: ...

    def replace(self, recruitment: Recruitment, expected_version: int) -> Recruitment: ...

    def delete(self, recruitment_id: str) -> bool: ...

    def mark_converted(
        self, recruitment_id: str, agent_id: str, reviewer_id: Optional[str], at: datetime
    ) -> Recruitment:
        """Atomically stamp the conversion.

        Only succeeds while the stored status is ``accepted`` and no agent is
        linked yet; raises AlreadyConvertedError or InvalidStateError otherwise.
        """
        ...


# ---------------------------------------------------------------------------
# Persistence: Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# PDF rendering
# ---------------------------------------------------------------------------

@runtime_checkable
class IPdfRenderer(Protocol):
    """Lays out a settlement statement; returns a single-page PDF."""

    def render(self, context: dict[str, Any]) -> bytes: ...
