"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from dataclasses import dataclass

from staffledger.core.config import AppSettings
from staffledger.persistence.dynamodb_backend import (
    DynamoDBAgentStore,
    DynamoDBContractStore,
    DynamoDBDocumentStore,
    DynamoDBRecruitmentStore,
    DynamoDBSequenceStore,
    DynamoDBUserStore,
    create_resource,
)
from staffledger.persistence.protocols import (
    IAgentStore,
    IContractStore,
    IDocumentStore,
    IRecruitmentStore,
    ISequenceStore,
    IUserStore,
)
from staffledger.persistence.redis_backend import RedisCacheBackend


@dataclass
class Persistence:
    """The set of stores the services are wired with."""

    documents: IDocumentStore
    sequences: ISequenceStore
    contracts: IContractStore
    agents: IAgentStore
    users: IUserStore
    recruitments: IRecruitmentStore


def create_persistence(settings: AppSettings | None = None) -> Persistence:
    """Create wired-up DynamoDB stores (and the Redis agent cache) from settings."""
    if settings is None:
        settings = AppSettings()

    ddb_cfg = settings.dynamodb
    resource = create_resource(
        ddb_cfg.region,
        ddb_cfg.endpoint_url,
        connect_timeout=ddb_cfg.connect_timeout,
        read_timeout=ddb_cfg.read_timeout,
        max_attempts=ddb_cfg.max_attempts,
    )
    common = {"table_suffix": ddb_cfg.table_suffix, "resource": resource}

    cache = None
    if settings.redis.enabled:
        cache = RedisCacheBackend.from_config(settings.redis)

    return Persistence(
        documents=DynamoDBDocumentStore(**common),
        sequences=DynamoDBSequenceStore(**common),
        contracts=DynamoDBContractStore(**common),
        agents=DynamoDBAgentStore(**common, cache=cache, cache_ttl=settings.redis.ttl),
        users=DynamoDBUserStore(**common),
        recruitments=DynamoDBRecruitmentStore(**common),
    )
