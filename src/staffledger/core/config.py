"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "STAFFLEDGER_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "eu-west-3"
    endpoint_url: str | None = None  # LocalStack override
    connect_timeout: int = 5
    read_timeout: int = 10
    max_attempts: int = 3


class RedisConfig(BaseSettings):
    """Redis cache configuration (agent display lookups)."""

    model_config = {"env_prefix": "STAFFLEDGER_REDIS_"}

    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    ttl: int = 300
    namespace: str = "staffledger"
    socket_timeout: float = 0.5


class SettlementConfig(BaseSettings):
    """End-of-work settlement rules."""

    model_config = {"env_prefix": "STAFFLEDGER_SETTLEMENT_"}

    document_prefix: str = "DFT"
    sequence_width: int = 6
    leave_days_per_month: int = 30
    # "reset" wipes payment progress on recalculation, "preserve" keeps it
    recalculation: Literal["reset", "preserve"] = "reset"
    overpayment: Literal["allow", "reject"] = "allow"
    max_write_attempts: int = 3
    default_page_size: int = 10


class ApiConfig(BaseSettings):
    """HTTP surface configuration."""

    model_config = {"env_prefix": "STAFFLEDGER_API_"}

    title: str = "StaffLedger End-of-Work API"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "STAFFLEDGER_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    settlement: SettlementConfig = SettlementConfig()
    api: ApiConfig = ApiConfig()
