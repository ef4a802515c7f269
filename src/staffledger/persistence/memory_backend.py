"""In-memory backends for unit tests: dict-backed fakes.

Each store guards its dict with a lock so conditional writes and counters
behave atomically under threaded tests, like their DynamoDB counterparts.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Any, Optional

from staffledger.core.exceptions import (
    AlreadyConvertedError,
    ConcurrentModificationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
)
from staffledger.models.agent import Agent, User
from staffledger.models.contract import WorkContract
from staffledger.models.recruitment import Recruitment, RecruitmentStatus
from staffledger.models.settlement import EndOfWorkDocument, PaymentStatus


class MemoryDocumentStore:
    """Dict-backed IDocumentStore for unit tests."""

    def __init__(self) -> None:
        self._docs: dict[str, EndOfWorkDocument] = {}
        self._numbers: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, document_id: str) -> EndOfWorkDocument | None:
        doc = self._docs.get(document_id)
        return doc.model_copy(deep=True) if doc else None

    def insert(self, document: EndOfWorkDocument) -> None:
        with self._lock:
            if document.document_number in self._numbers:
                raise ConflictError(
                    f"Le numéro de document {document.document_number} existe déjà.",
                    key=document.document_number,
                )
            if document.id in self._docs:
                raise ConflictError(f"Document {document.id!r} already exists", key=document.id)
            self._numbers[document.document_number] = document.id
            self._docs[document.id] = document.model_copy(deep=True)

    def replace(self, document: EndOfWorkDocument, expected_version: int) -> EndOfWorkDocument:
        with self._lock:
            current = self._docs.get(document.id)
            if current is None:
                raise NotFoundError("EndOfWorkDocument", document.id, "Document non trouvé")
            if current.version != expected_version:
                raise ConcurrentModificationError("EndOfWorkDocument", document.id, expected_version)
            stored = document.model_copy(update={"version": expected_version + 1}, deep=True)
            self._docs[document.id] = stored
            return stored.model_copy(deep=True)

    def delete(self, document_id: str) -> bool:
        with self._lock:
            doc = self._docs.pop(document_id, None)
            if doc is None:
                return False
            self._numbers.pop(doc.document_number, None)
            return True

    def find(
        self, agent_id: Optional[str] = None, payment_status: Optional[PaymentStatus] = None
    ) -> list[EndOfWorkDocument]:
        return [
            d.model_copy(deep=True)
            for d in self._docs.values()
            if (agent_id is None or d.agent_id == agent_id)
            and (payment_status is None or d.payment_status == payment_status)
        ]


class MemorySequenceStore:
    """Dict-backed ISequenceStore for unit tests."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()

    def next_value(self, name: str, scope: str) -> int:
        key = f"{name}:{scope}"
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + 1
            return self._counters[key]

    def seed(self, name: str, scope: str, value: int) -> None:
        self._counters[f"{name}:{scope}"] = value


class MemoryContractStore:
    """Dict-backed IContractStore for unit tests."""

    def __init__(self) -> None:
        self._contracts: dict[str, WorkContract] = {}

    def get(self, contract_id: str) -> WorkContract | None:
        return self._contracts.get(contract_id)

    def put(self, contract: WorkContract) -> None:
        self._contracts[contract.id] = contract


class MemoryAgentStore:
    """Dict-backed IAgentStore for unit tests."""

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}
        self._lock = threading.Lock()

    def get(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)

    def find_by_user(self, user_id: str) -> Agent | None:
        return next((a for a in self._agents.values() if a.user_id == user_id), None)

    def create(self, agent: Agent) -> Agent:
        with self._lock:
            if agent.user_id is not None and self.find_by_user(agent.user_id) is not None:
                raise ConflictError(f"Agent already exists for user {agent.user_id!r}", key=agent.user_id)
            self._agents[agent.id] = agent
            return agent

    def delete(self, agent_id: str) -> bool:
        with self._lock:
            return self._agents.pop(agent_id, None) is not None

    def all(self) -> list[Agent]:
        return list(self._agents.values())


class MemoryUserStore:
    """Dict-backed IUserStore for unit tests."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    def get(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def find_by_email(self, email: str) -> User | None:
        email = email.lower()
        return next((u for u in self._users.values() if u.email.lower() == email), None)

    def put(self, user: User) -> None:
        self._users[user.id] = user


class MemoryRecruitmentStore:
    """Dict-backed IRecruitmentStore for unit tests."""

    def __init__(self) -> None:
        self._items: dict[str, Recruitment] = {}
        self._lock = threading.Lock()

    def get(self, recruitment_id: str) -> Recruitment | None:
        item = self._items.get(recruitment_id)
        return item.model_copy(deep=True) if item else None

    def insert(self, recruitment: Recruitment) -> None:
        with self._lock:
            if recruitment.id in self._items:
                raise ConflictError(f"Recruitment {recruitment.id!r} already exists", key=recruitment.id)
            self._items[recruitment.id] = recruitment.model_copy(deep=True)

    def replace(self, recruitment: Recruitment, expected_version: int) -> Recruitment:
        with self._lock:
            current = self._items.get(recruitment.id)
            if current is None:
                raise NotFoundError("Recruitment", recruitment.id, "Candidature non trouvée")
            if current.version != expected_version:
                raise ConcurrentModificationError("Recruitment", recruitment.id, expected_version)
            stored = recruitment.model_copy(update={"version": expected_version + 1}, deep=True)
            self._items[recruitment.id] = stored
            return stored.model_copy(deep=True)

    def delete(self, recruitment_id: str) -> bool:
        with self._lock:
            return self._items.pop(recruitment_id, None) is not None

    def mark_converted(
        self, recruitment_id: str, agent_id: str, reviewer_id: Optional[str], at: datetime
    ) -> Recruitment:
        with self._lock:
            current = self._items.get(recruitment_id)
            if current is None:
                raise NotFoundError("Recruitment", recruitment_id, "Candidature non trouvée")
            if current.is_converted:
                raise AlreadyConvertedError(recruitment_id, current.converted_to_agent)
            if current.status != RecruitmentStatus.ACCEPTED:
                raise InvalidStateError(
                    "Seules les candidatures acceptées peuvent être converties en agent.",
                    current_status=current.status,
                )
            update: dict[str, Any] = {
                "status": RecruitmentStatus.CONVERTED,
                "converted_to_agent": agent_id,
                "converted_at": at,
                "reviewed_by": reviewer_id,
                "reviewed_at": at,
                "updated_at": at,
                "version": current.version + 1,
            }
            stored = current.model_copy(update=update, deep=True)
            self._items[recruitment_id] = stored
            return stored.model_copy(deep=True)


class MemoryCacheBackend:
    """Dict-backed ICacheBackend for unit tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)


class MemoryPdfRenderer:
    """IPdfRenderer stand-in that records contexts and returns a stub PDF."""

    def __init__(self, payload: bytes = b"%PDF-1.4\n%stub\n%%EOF\n") -> None:
        self._payload = payload
        self.rendered: list[dict[str, Any]] = []

    def render(self, context: dict[str, Any]) -> bytes:
        self.rendered.append(context)
        return self._payload
