"""DynamoDB backends for documents, sequences, reference data and recruitment.

Every table uses string ``PK``/``SK`` keys. Uniqueness (document number,
agent user id, user email) is enforced with marker items written in the same
transaction as the entity, guarded by ``attribute_not_exists(PK)``. A
cancelled transaction is a uniqueness conflict only when DynamoDB reports a
``ConditionalCheckFailed`` reason; any other cancellation is a backend
failure.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, TypeVar

import boto3
from boto3.dynamodb.conditions import Attr
from boto3.dynamodb.types import TypeSerializer
from botocore.config import Config
from botocore.exceptions import ClientError
from pydantic import BaseModel

from staffledger.core.exceptions import (
    AlreadyConvertedError,
    CacheError,
    ConcurrentModificationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
)
from staffledger.core.protocols import ICacheBackend
from staffledger.models.agent import Agent, User
from staffledger.models.contract import WorkContract
from staffledger.models.recruitment import Recruitment, RecruitmentStatus
from staffledger.models.settlement import EndOfWorkDocument, PaymentStatus

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

DOCUMENTS_TABLE = "staffledger-documents"
SEQUENCES_TABLE = "staffledger-sequences"
CONTRACTS_TABLE = "staffledger-contracts"
AGENTS_TABLE = "staffledger-agents"
USERS_TABLE = "staffledger-users"
RECRUITMENTS_TABLE = "staffledger-recruitments"

ALL_TABLES = [
    DOCUMENTS_TABLE,
    SEQUENCES_TABLE,
    CONTRACTS_TABLE,
    AGENTS_TABLE,
    USERS_TABLE,
    RECRUITMENTS_TABLE,
]

_CONDITION_FAILED = "ConditionalCheckFailedException"
_TX_CANCELLED = "TransactionCanceledException"
_TX_REASON_CONDITION = "ConditionalCheckFailed"


def _encode(value: Any) -> Any:
    """Convert a pydantic python-mode dump into DynamoDB-storable values."""
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def _decode_decimals(value: Any) -> Any:
    """Turn integral Decimals back into ints; fractional amounts stay Decimal."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else value
    if isinstance(value, dict):
        return {k: _decode_decimals(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode_decimals(v) for v in value]
    return value


def to_item(model: BaseModel, pk: str, sk: str) -> dict[str, Any]:
    item = _encode(model.model_dump(by_alias=True, exclude_none=True))
    item.update({"PK": pk, "SK": sk})
    return item


def from_item(model_cls: type[M], item: dict[str, Any]) -> M:
    data = {k: v for k, v in item.items() if k not in ("PK", "SK")}
    return model_cls.model_validate(_decode_decimals(data))


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _transaction_condition_failed(exc: ClientError) -> bool:
    """True when a transaction was cancelled by one of its condition expressions."""
    if _error_code(exc) != _TX_CANCELLED:
        return False
    reasons = exc.response.get("CancellationReasons") or []
    return any(reason.get("Code") == _TX_REASON_CONDITION for reason in reasons)


def create_resource(region: str, endpoint_url: str | None = None, *,
                    connect_timeout: int = 5, read_timeout: int = 10, max_attempts: int = 3):
    """boto3 DynamoDB resource with bounded timeouts."""
    kwargs: dict = {
        "region_name": region,
        "config": Config(
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries={"max_attempts": max_attempts, "mode": "standard"},
        ),
    }
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.resource("dynamodb", **kwargs)


class _DynamoTable:
    """Shared table access for the concrete stores."""

    TABLE = ""

    def __init__(self, table_suffix: str = "", region: str = "eu-west-3",
                 endpoint_url: str | None = None, resource: Any = None) -> None:
        self._table_suffix = table_suffix
        self._ddb = resource if resource is not None else create_resource(region, endpoint_url)
        self._serializer = TypeSerializer()

    @property
    def table_name(self) -> str:
        return f"{self.TABLE}{self._table_suffix}"

    def _table(self):
        return self._ddb.Table(self.table_name)

    def _get_item(self, pk: str, sk: str) -> dict[str, Any] | None:
        """Get a single item by PK + SK. Returns None if not found."""
        try:
            resp = self._table().get_item(Key={"PK": pk, "SK": sk})
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB get {pk}/{sk} on {self.table_name} failed: {exc}") from exc
        return resp.get("Item")

    def _scan(self, filter_expression: Any) -> list[dict[str, Any]]:
        """Scan the whole table, following LastEvaluatedKey."""
        items: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {"FilterExpression": filter_expression}
        try:
            while True:
                resp = self._table().scan(**kwargs)
                items.extend(resp.get("Items", []))
                if "LastEvaluatedKey" not in resp:
                    return items
                kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB scan on {self.table_name} failed: {exc}") from exc

    def _put_unique(self, items: list[dict[str, Any]]) -> None:
        """Write items in one transaction; each must not exist yet."""
        client = self._ddb.meta.client
        client.transact_write_items(
            TransactItems=[
                {
                    "Put": {
                        "TableName": self.table_name,
                        "Item": {k: self._serializer.serialize(v) for k, v in item.items()},
                        "ConditionExpression": "attribute_not_exists(PK)",
                    }
                }
                for item in items
            ]
        )

    def _delete_together(self, entity_key: tuple[str, str], *marker_keys: tuple[str, str]) -> bool:
        """Delete an entity and its marker items in one transaction.

        Returns False when the entity no longer exists; markers are then left
        untouched.
        """
        deletes: list[dict[str, Any]] = [
            {
                "Delete": {
                    "TableName": self.table_name,
                    "Key": self._key(*entity_key),
                    "ConditionExpression": "attribute_exists(PK)",
                }
            }
        ]
        deletes.extend(
            {"Delete": {"TableName": self.table_name, "Key": self._key(*key)}} for key in marker_keys
        )
        try:
            self._ddb.meta.client.transact_write_items(TransactItems=deletes)
        except ClientError as exc:
            if _transaction_condition_failed(exc):
                return False
            raise PersistenceError(f"DynamoDB delete of {entity_key[0]} on {self.table_name} failed: {exc}") from exc
        return True

    def _key(self, pk: str, sk: str) -> dict[str, Any]:
        return {"PK": self._serializer.serialize(pk), "SK": self._serializer.serialize(sk)}

    def _put_versioned(self, item: dict[str, Any], expected_version: int) -> None:
        self._table().put_item(
            Item=item,
            ConditionExpression=Attr("PK").exists() & Attr("version").eq(expected_version),
        )


class DynamoDBDocumentStore(_DynamoTable):
    """Production IDocumentStore."""

    TABLE = DOCUMENTS_TABLE
    SK = "DOCUMENT"

    @staticmethod
    def _pk(document_id: str) -> str:
        return f"DOC#{document_id}"

    @staticmethod
    def _number_pk(number: str) -> str:
        return f"DOCNUM#{number}"

    def get(self, document_id: str) -> EndOfWorkDocument | None:
        item = self._get_item(self._pk(document_id), self.SK)
        return from_item(EndOfWorkDocument, item) if item else None

    def insert(self, document: EndOfWorkDocument) -> None:
        marker = {
            "PK": self._number_pk(document.document_number),
            "SK": "UNIQUE",
            "documentId": document.id,
        }
        try:
            self._put_unique([marker, to_item(document, self._pk(document.id), self.SK)])
        except ClientError as exc:
            if _transaction_condition_failed(exc):
                raise ConflictError(
                    f"Le numéro de document {document.document_number} existe déjà.",
                    key=document.document_number,
                ) from exc
            raise PersistenceError(f"DynamoDB insert of document {document.id!r} failed: {exc}") from exc

    def replace(self, document: EndOfWorkDocument, expected_version: int) -> EndOfWorkDocument:
        stored = document.model_copy(update={"version": expected_version + 1})
        try:
            self._put_versioned(to_item(stored, self._pk(document.id), self.SK), expected_version)
        except ClientError as exc:
            if _error_code(exc) != _CONDITION_FAILED:
                raise PersistenceError(f"DynamoDB replace of document {document.id!r} failed: {exc}") from exc
            if self.get(document.id) is None:
                raise NotFoundError("EndOfWorkDocument", document.id, "Document non trouvé") from exc
            raise ConcurrentModificationError("EndOfWorkDocument", document.id, expected_version) from exc
        return stored

    def delete(self, document_id: str) -> bool:
        item = self._get_item(self._pk(document_id), self.SK)
        if item is None:
            return False
        return self._delete_together(
            (self._pk(document_id), self.SK),
            (self._number_pk(item["documentNumber"]), "UNIQUE"),
        )

    def find(
        self, agent_id: Optional[str] = None, payment_status: Optional[PaymentStatus] = None
    ) -> list[EndOfWorkDocument]:
        condition = Attr("SK").eq(self.SK)
        if agent_id is not None:
            condition = condition & Attr("agentId").eq(agent_id)
        if payment_status is not None:
            condition = condition & Attr("paymentStatus").eq(str(payment_status))
        return [from_item(EndOfWorkDocument, item) for item in self._scan(condition)]


class DynamoDBSequenceStore(_DynamoTable):
    """Production ISequenceStore: one atomic ``ADD`` counter per (name, scope)."""

    TABLE = SEQUENCES_TABLE

    def next_value(self, name: str, scope: str) -> int:
        try:
            resp = self._table().update_item(
                Key={"PK": f"SEQ#{name}", "SK": f"SCOPE#{scope}"},
                UpdateExpression="ADD #c :one",
                ExpressionAttributeNames={"#c": "current"},
                ExpressionAttributeValues={":one": 1},
                ReturnValues="UPDATED_NEW",
            )
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB sequence {name}/{scope} increment failed: {exc}") from exc
        return int(resp["Attributes"]["current"])


class DynamoDBContractStore(_DynamoTable):
    """Read access to work contracts (writes are for seeding only)."""

    TABLE = CONTRACTS_TABLE
    SK = "CONTRACT"

    def get(self, contract_id: str) -> WorkContract | None:
        item = self._get_item(f"CONTRACT#{contract_id}", self.SK)
        return from_item(WorkContract, item) if item else None

    def put(self, contract: WorkContract) -> None:
        self._table().put_item(Item=to_item(contract, f"CONTRACT#{contract.id}", self.SK))


class DynamoDBAgentStore(_DynamoTable):
    """Production IAgentStore with optional read-through cache on ``get``."""

    TABLE = AGENTS_TABLE
    SK = "AGENT"
    CACHE_TTL = 300  # 5 minutes

    def __init__(self, table_suffix: str = "", region: str = "eu-west-3",
                 endpoint_url: str | None = None, resource: Any = None,
                 cache: ICacheBackend | None = None, cache_ttl: int | None = None) -> None:
        super().__init__(table_suffix, region, endpoint_url, resource)
        self._cache = cache
        self._cache_ttl = cache_ttl or self.CACHE_TTL

    @staticmethod
    def _cache_key(agent_id: str) -> str:
        return f"agent:{agent_id}"

    def get(self, agent_id: str) -> Agent | None:
        cached = self._cache_get(self._cache_key(agent_id))
        if cached is not None:
            return Agent.model_validate_json(cached)

        item = self._get_item(f"AGENT#{agent_id}", self.SK)
        if item is None:
            return None
        agent = from_item(Agent, item)
        self._cache_put(self._cache_key(agent_id), agent.model_dump_json(by_alias=True))
        return agent

    def find_by_user(self, user_id: str) -> Agent | None:
        marker = self._get_item(f"AGENTUSER#{user_id}", "UNIQUE")
        return self.get(marker["agentId"]) if marker else None

    def delete(self, agent_id: str) -> bool:
        item = self._get_item(f"AGENT#{agent_id}", self.SK)
        if item is None:
            return False
        markers = [(f"AGENTUSER#{item['userId']}", "UNIQUE")] if item.get("userId") else []
        deleted = self._delete_together((f"AGENT#{agent_id}", self.SK), *markers)
        self._cache_evict(self._cache_key(agent_id))
        return deleted

    # A cache outage degrades to direct DynamoDB reads.

    def _cache_get(self, key: str) -> str | None:
        if self._cache is None:
            return None
        try:
            return self._cache.get(key)
        except CacheError as exc:
            logger.warning("Agent cache read failed, reading DynamoDB instead: %s", exc)
            return None

    def _cache_put(self, key: str, value: str) -> None:
        if self._cache is None:
            return
        try:
            self._cache.setex(key, self._cache_ttl, value)
        except CacheError as exc:
            logger.warning("Agent cache write failed: %s", exc)

    def _cache_evict(self, key: str) -> None:
        if self._cache is None:
            return
        try:
            self._cache.delete(key)
        except CacheError as exc:
            logger.warning("Agent cache eviction failed for %s: %s", key, exc)

    def create(self, agent: Agent) -> Agent:
        items = [to_item(agent, f"AGENT#{agent.id}", self.SK)]
        if agent.user_id is not None:
            items.insert(0, {"PK": f"AGENTUSER#{agent.user_id}", "SK": "UNIQUE", "agentId": agent.id})
        try:
            self._put_unique(items)
        except ClientError as exc:
            if _transaction_condition_failed(exc):
                raise ConflictError(
                    f"Agent already exists for user {agent.user_id!r}", key=agent.user_id
                ) from exc
            raise PersistenceError(f"DynamoDB create of agent {agent.id!r} failed: {exc}") from exc
        return agent


class DynamoDBUserStore(_DynamoTable):
    """User lookups by id and by (lowercased) email."""

    TABLE = USERS_TABLE
    SK = "USER"

    def get(self, user_id: str) -> User | None:
        item = self._get_item(f"USER#{user_id}", self.SK)
        return from_item(User, item) if item else None

    def find_by_email(self, email: str) -> User | None:
        marker = self._get_item(f"EMAIL#{email.lower()}", "UNIQUE")
        return self.get(marker["userId"]) if marker else None

    def put(self, user: User) -> None:
        marker = {"PK": f"EMAIL#{user.email.lower()}", "SK": "UNIQUE", "userId": user.id}
        try:
            self._put_unique([marker, to_item(user, f"USER#{user.id}", self.SK)])
        except ClientError as exc:
            if _transaction_condition_failed(exc):
                raise ConflictError(f"User with email {user.email!r} already exists", key=user.email) from exc
            raise PersistenceError(f"DynamoDB put of user {user.id!r} failed: {exc}") from exc


class DynamoDBRecruitmentStore(_DynamoTable):
    """Production IRecruitmentStore."""

    TABLE = RECRUITMENTS_TABLE
    SK = "RECRUITMENT"

    @staticmethod
    def _pk(recruitment_id: str) -> str:
        return f"RECRUITMENT#{recruitment_id}"

    def get(self, recruitment_id: str) -> Recruitment | None:
        item = self._get_item(self._pk(recruitment_id), self.SK)
        return from_item(Recruitment, item) if item else None

    def insert(self, recruitment: Recruitment) -> None:
        try:
            self._put_unique([to_item(recruitment, self._pk(recruitment.id), self.SK)])
        except ClientError as exc:
            if _transaction_condition_failed(exc):
                raise ConflictError(f"Recruitment {recruitment.id!r} already exists", key=recruitment.id) from exc
            raise PersistenceError(f"DynamoDB insert of recruitment {recruitment.id!r} failed: {exc}") from exc

    def replace(self, recruitment: Recruitment, expected_version: int) -> Recruitment:
        stored = recruitment.model_copy(update={"version": expected_version + 1})
        try:
            self._put_versioned(to_item(stored, self._pk(recruitment.id), self.SK), expected_version)
        except ClientError as exc:
            if _error_code(exc) != _CONDITION_FAILED:
                raise PersistenceError(f"DynamoDB replace of recruitment {recruitment.id!r} failed: {exc}") from exc
            if self.get(recruitment.id) is None:
                raise NotFoundError("Recruitment", recruitment.id, "Candidature non trouvée") from exc
            raise ConcurrentModificationError("Recruitment", recruitment.id, expected_version) from exc
        return stored

    def delete(self, recruitment_id: str) -> bool:
        try:
            resp = self._table().delete_item(
                Key={"PK": self._pk(recruitment_id), "SK": self.SK}, ReturnValues="ALL_OLD"
            )
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB delete of recruitment {recruitment_id!r} failed: {exc}") from exc
        return bool(resp.get("Attributes"))

    def mark_converted(
        self, recruitment_id: str, agent_id: str, reviewer_id: Optional[str], at: datetime
    ) -> Recruitment:
        stamp = at.isoformat()
        assignments = [
            "#status = :converted",
            "convertedToAgent = :agent",
            "convertedAt = :at",
            "reviewedAt = :at",
            "updatedAt = :at",
        ]
        values: dict[str, Any] = {
            ":converted": RecruitmentStatus.CONVERTED.value,
            ":accepted": RecruitmentStatus.ACCEPTED.value,
            ":agent": agent_id,
            ":at": stamp,
            ":one": 1,
        }
        if reviewer_id is not None:
            assignments.append("reviewedBy = :reviewer")
            values[":reviewer"] = reviewer_id
        try:
            resp = self._table().update_item(
                Key={"PK": self._pk(recruitment_id), "SK": self.SK},
                UpdateExpression=f"SET {', '.join(assignments)} ADD #ver :one",
                ConditionExpression="#status = :accepted AND attribute_not_exists(convertedToAgent)",
                ExpressionAttributeNames={"#status": "status", "#ver": "version"},
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if _error_code(exc) != _CONDITION_FAILED:
                raise PersistenceError(f"DynamoDB conversion of recruitment {recruitment_id!r} failed: {exc}") from exc
            current = self.get(recruitment_id)
            if current is None:
                raise NotFoundError("Recruitment", recruitment_id, "Candidature non trouvée") from exc
            if current.is_converted:
                raise AlreadyConvertedError(recruitment_id, current.converted_to_agent) from exc
            raise InvalidStateError(
                "Seules les candidatures acceptées peuvent être converties en agent.",
                current_status=current.status,
            ) from exc
        return from_item(Recruitment, resp["Attributes"])
