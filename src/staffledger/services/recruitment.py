"""Recruitment applications and their promotion into agent records.

``converted`` is terminal and reachable only from ``accepted`` through
:meth:`RecruitmentService.convert_to_agent`. The final stamp is a single
conditional write in the store, so two concurrent conversions cannot both
link an agent. A conversion that loses the stamp removes the agent it created.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional
from uuid import uuid4

from staffledger.core.exceptions import (
    AlreadyConvertedError,
    ConcurrentModificationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    StaffLedgerError,
    ValidationError,
)
from staffledger.core.protocols import IAgentStore, IRecruitmentStore, IUserStore
from staffledger.models.agent import Agent, AgentStatus, User
from staffledger.models.base import CamelModel, utcnow
from staffledger.models.recruitment import Recruitment, RecruitmentStatus
from staffledger.models.requests import RecruitmentUpdate
from staffledger.services.validation import validate

logger = logging.getLogger(__name__)

RECRUITMENT_NOT_FOUND = "Candidature non trouvée"
AGENT_ALREADY_EXISTS = (
    "Un agent existe déjà pour cet utilisateur. La candidature a peut-être déjà été convertie."
)

LINKAGE_FIELDS = frozenset({
    "convertedToAgent", "converted_to_agent",
    "convertedAt", "converted_at",
    "reviewedBy", "reviewed_by",
    "reviewedAt", "reviewed_at",
})


class AgentSummary(CamelModel):
    id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class ConversionResult(CamelModel):
    recruitment: Recruitment
    agent: AgentSummary
    reused_existing: bool = False


def _new_id() -> str:
    return uuid4().hex


class RecruitmentService:
    """Operations behind the ``/recruitment/{id}`` routes."""

    def __init__(
        self,
        *,
        recruitments: IRecruitmentStore,
        agents: IAgentStore,
        users: IUserStore,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_id,
        max_write_attempts: int = 3,
    ) -> None:
        self._recruitments = recruitments
        self._agents = agents
        self._users = users
        self._clock = clock
        self._id_factory = id_factory
        self._max_write_attempts = max(1, max_write_attempts)

    def get(self, recruitment_id: str) -> Recruitment:
        recruitment = self._recruitments.get(recruitment_id)
        if recruitment is None:
            raise NotFoundError("Recruitment", recruitment_id, RECRUITMENT_NOT_FOUND)
        return recruitment

    def update(self, recruitment_id: str, fields: Mapping[str, Any], actor_id: Optional[str]) -> Recruitment:
        """Merge applicant fields and review decisions.

        A status change to anything but ``pending`` stamps the reviewer.

        Raises:
            NotFoundError: no such recruitment.
            InvalidStateError: the recruitment is already converted.
            ValidationError: payload invalid, touches conversion linkage, or
                tries to set ``converted`` directly.
        """
        linkage = sorted(LINKAGE_FIELDS.intersection(fields))
        if linkage:
            raise ValidationError(f"Champs non modifiables: {', '.join(linkage)}")
        patch = validate(RecruitmentUpdate, fields)
        if patch.status == RecruitmentStatus.CONVERTED:
            raise ValidationError(
                "Le statut 'converted' ne peut être défini que par la conversion en agent."
            )
        changes = patch.model_dump(exclude_unset=True)

        for attempt in range(1, self._max_write_attempts + 1):
            current = self.get(recruitment_id)
            if current.is_converted:
                logger.warning("Rejected update of converted recruitment %s", recruitment_id)
                raise InvalidStateError(
                    "Impossible de modifier une candidature déjà convertie en agent.",
                    current_status=current.status,
                )
            now = self._clock()
            merged = {**current.model_dump(), **changes, "updated_at": now}
            if patch.status is not None and patch.status != RecruitmentStatus.PENDING:
                merged["reviewed_by"] = actor_id
                merged["reviewed_at"] = now
            updated = validate(Recruitment, merged)
            try:
                stored = self._recruitments.replace(updated, expected_version=current.version)
            except ConcurrentModificationError:
                logger.warning("Concurrent write on recruitment %s (attempt %d/%d), retrying",
                               recruitment_id, attempt, self._max_write_attempts)
                continue
            logger.info("Updated recruitment %s (status=%s)", recruitment_id, stored.status)
            return stored
        raise ConflictError(
            "La candidature a été modifiée simultanément, veuillez réessayer.", key=recruitment_id
        )

    def convert_to_agent(self, recruitment_id: str, actor_id: Optional[str]) -> ConversionResult:
        recruitment = self.get(recruitment_id)
        if recruitment.is_converted:
            raise AlreadyConvertedError(recruitment_id, recruitment.converted_to_agent)
        if recruitment.status != RecruitmentStatus.ACCEPTED:
            raise InvalidStateError(
                "Seules les candidatures acceptées peuvent être converties en agent.",
                current_status=recruitment.status,
            )

        user = self._users.find_by_email(recruitment.email)
        agent = self._agents.find_by_user(user.id) if user else None
        reused = agent is not None
        if agent is None:
            agent, reused, user = self._create_agent(recruitment, user)

        try:
            stamped = self._recruitments.mark_converted(
                recruitment_id, agent.id, actor_id, self._clock()
            )
        except (InvalidStateError, NotFoundError):
            # Agents tied to a user are found again through the user marker.
            if not reused and agent.user_id is None:
                self._discard_agent(agent.id, recruitment_id)
            raise
        logger.info("Converted recruitment %s to agent %s (reused=%s)",
                    recruitment_id, agent.id, reused)
        return ConversionResult(
            recruitment=stamped,
            agent=AgentSummary(
                id=agent.id,
                first_name=agent.first_name,
                last_name=agent.last_name,
                email=user.email if user else recruitment.email,
                phone=user.phone if user else recruitment.phone,
            ),
            reused_existing=reused,
        )

    def delete(self, recruitment_id: str) -> None:
        recruitment = self.get(recruitment_id)
        if recruitment.is_converted:
            raise InvalidStateError(
                "Impossible de supprimer une candidature déjà convertie en agent.",
                current_status=recruitment.status,
            )
        if not self._recruitments.delete(recruitment_id):
            raise NotFoundError("Recruitment", recruitment_id, RECRUITMENT_NOT_FOUND)
        logger.info("Deleted recruitment %s", recruitment_id)

    def _discard_agent(self, agent_id: str, recruitment_id: str) -> None:
        """Remove an agent created for a conversion that lost the final stamp."""
        try:
            self._agents.delete(agent_id)
        except StaffLedgerError:
            logger.error("Could not remove orphan agent %s after failed conversion of %s",
                         agent_id, recruitment_id, exc_info=True)
            return
        logger.warning("Removed agent %s: conversion of %s was not recorded", agent_id, recruitment_id)

    def _create_agent(
        self, recruitment: Recruitment, user: Optional[User]
    ) -> tuple[Agent, bool, Optional[User]]:
        """Create the agent; on a user-id collision fall back to the agent holding it."""
        candidate = Agent(
            id=self._id_factory(),
            user_id=user.id if user else None,
            first_name=recruitment.first_name,
            last_name=recruitment.last_name,
            birth_date=recruitment.birth_date,
            marital_status=recruitment.marital_status,
            address=recruitment.address,
            languages=list(recruitment.languages),
            skills=list(recruitment.skills),
            identity_document=recruitment.identity_document,
            base_salary=Decimal("0"),
            hourly_rate=Decimal("0"),
            status=AgentStatus.UNDER_VERIFICATION,
        )
        try:
            return self._agents.create(candidate), False, user
        except ConflictError:
            logger.warning("Agent creation for recruitment %s collided, looking up existing agent",
                           recruitment.id)
            user = self._users.find_by_email(recruitment.email)
            existing = self._agents.find_by_user(user.id) if user else None
            if existing is None:
                raise ConflictError(AGENT_ALREADY_EXISTS, key=recruitment.email) from None
            return existing, True, user
