"""Agent and user reference models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Optional

from pydantic import Field

from staffledger.models.base import CamelModel


class AgentStatus(StrEnum):
    AVAILABLE = "available"
    ASSIGNED = "assigned"
    INACTIVE = "inactive"
    UNDER_VERIFICATION = "under_verification"


class IdentityDocument(CamelModel):
    """Identity paper carried over from a recruitment application."""

    type: Optional[str] = None  # CNI, Passeport, Carte consulaire, Permis de conduire, Autre
    number: Optional[str] = None
    issued_date: Optional[date] = None
    issued_at: Optional[str] = None


class Agent(CamelModel):
    """Field worker record."""

    id: str
    user_id: Optional[str] = None  # unique when present
    matricule_number: Optional[str] = None
    first_name: str
    last_name: str
    birth_date: Optional[date] = None
    marital_status: Optional[str] = None
    address: Optional[str] = None
    languages: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    identity_document: Optional[IdentityDocument] = None
    base_salary: Decimal = Field(default=Decimal("0"), ge=0)
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    status: AgentStatus = AgentStatus.UNDER_VERIFICATION

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class AgentRef(CamelModel):
    """Agent reference resolved for display alongside a document."""

    id: str
    first_name: str
    last_name: str
    matricule_number: Optional[str] = None

    @classmethod
    def from_agent(cls, agent: Agent) -> AgentRef:
        return cls(
            id=agent.id,
            first_name=agent.first_name,
            last_name=agent.last_name,
            matricule_number=agent.matricule_number,
        )


class User(CamelModel):
    """Application account; only looked up, never written by this service."""

    id: str
    email: str
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = "agent"
    is_active: bool = True
