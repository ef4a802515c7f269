"""Shared test doubles: memory backends wired into a Persistence bundle."""

from __future__ import annotations

from staffledger.persistence import Persistence
from staffledger.persistence.memory_backend import (
    MemoryAgentStore,
    MemoryCacheBackend,
    MemoryContractStore,
    MemoryDocumentStore,
    MemoryPdfRenderer,
    MemoryRecruitmentStore,
    MemorySequenceStore,
    MemoryUserStore,
)


def memory_persistence() -> Persistence:
    return Persistence(
        documents=MemoryDocumentStore(),
        sequences=MemorySequenceStore(),
        contracts=MemoryContractStore(),
        agents=MemoryAgentStore(),
        users=MemoryUserStore(),
        recruitments=MemoryRecruitmentStore(),
    )


__all__ = [
    "MemoryAgentStore",
    "MemoryCacheBackend",
    "MemoryContractStore",
    "MemoryDocumentStore",
    "MemoryPdfRenderer",
    "MemoryRecruitmentStore",
    "MemorySequenceStore",
    "MemoryUserStore",
    "memory_persistence",
]
