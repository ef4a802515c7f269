"""Re-export persistence protocols from core for convenience."""

from __future__ import annotations

from staffledger.core.protocols import (
    IAgentStore,
    ICacheBackend,
    IContractStore,
    IDocumentStore,
    IRecruitmentStore,
    ISequenceStore,
    IUserStore,
)

__all__ = [
    "IAgentStore",
    "ICacheBackend",
    "IContractStore",
    "IDocumentStore",
    "IRecruitmentStore",
    "ISequenceStore",
    "IUserStore",
]
