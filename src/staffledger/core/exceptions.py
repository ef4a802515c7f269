"""StaffLedger exception hierarchy."""

from __future__ import annotations


class StaffLedgerError(Exception):
    """Base exception for all StaffLedger errors."""


class NotFoundError(StaffLedgerError):
    """A referenced document, contract, agent or recruitment does not exist."""

    def __init__(self, entity: str, entity_id: str, message: str | None = None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message or f"{entity} {entity_id!r} not found")


class InvalidStateError(StaffLedgerError):
    """Operation not allowed in the entity's current state."""

    def __init__(self, message: str, current_status: str | None = None) -> None:
        self.current_status = current_status
        super().__init__(message)


class AlreadyConvertedError(InvalidStateError):
    """Recruitment has already been converted to an agent."""

    def __init__(self, recruitment_id: str, agent_id: str | None = None) -> None:
        self.recruitment_id = recruitment_id
        self.agent_id = agent_id
        super().__init__(
            "Cette candidature a déjà été convertie en agent.", current_status="converted"
        )


class ConflictError(StaffLedgerError):
    """Uniqueness violation or lost optimistic-concurrency race."""

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class ConcurrentModificationError(ConflictError):
    """Conditional write rejected because the stored version moved on."""

    def __init__(self, entity: str, entity_id: str, expected_version: int) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"{entity} {entity_id!r} was modified concurrently (expected version {expected_version})",
            key=entity_id,
        )


class ValidationError(StaffLedgerError):
    """Input violates a schema or business constraint."""

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class PersistenceError(StaffLedgerError):
    """Backing store request failed."""


class CacheError(StaffLedgerError):
    """Redis cache operation failed."""


class RendererError(StaffLedgerError):
    """PDF rendering collaborator failed or is not configured."""
