"""Recruitment application model and its status machine."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Optional

from pydantic import Field, field_validator

from staffledger.models.agent import IdentityDocument
from staffledger.models.base import CamelModel, utcnow


class RecruitmentStatus(StrEnum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CONVERTED = "converted"


class Experience(CamelModel):
    years: int = Field(default=0, ge=0)
    description: str = ""


class Recruitment(CamelModel):
    """Candidate application, promotable to an agent once accepted."""

    id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    identity_document: Optional[IdentityDocument] = None
    address: Optional[str] = None
    languages: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    experience: Experience = Experience()
    expected_hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)

    status: RecruitmentStatus = RecruitmentStatus.PENDING
    recruiter_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    converted_to_agent: Optional[str] = None
    converted_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 0

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, value: str) -> str:
        return value.lower()

    @property
    def is_converted(self) -> bool:
        return self.status == RecruitmentStatus.CONVERTED or self.converted_to_agent is not None
