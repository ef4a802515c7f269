"""Create the StaffLedger DynamoDB tables and seed a sample contract, agent and user.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from datetime import date
from decimal import Decimal
from typing import Any

import boto3

from staffledger.core.exceptions import ConflictError
from staffledger.models.agent import Agent, AgentStatus, User
from staffledger.models.contract import ContractSalary, FinancialRights, WorkContract
from staffledger.persistence.dynamodb_backend import (
    ALL_TABLES,
    DynamoDBAgentStore,
    DynamoDBContractStore,
    DynamoDBUserStore,
)

SAMPLE_USER = User(
    id="user-sample-1",
    email="amina.mahamat@example.td",
    phone="+235 66 00 00 01",
    first_name="Amina",
    last_name="Mahamat",
    role="agent",
)

SAMPLE_AGENT = Agent(
    id="agent-sample-1",
    user_id=SAMPLE_USER.id,
    matricule_number="AG-0001",
    first_name="Amina",
    last_name="Mahamat",
    base_salary=Decimal("90000"),
    status=AgentStatus.ASSIGNED,
)

SAMPLE_CONTRACT = WorkContract(
    id="contract-sample-1",
    agent_id=SAMPLE_AGENT.id,
    contract_number="CT-2024-0001",
    contract_type="cdd",
    position="Agent de sécurité",
    start_date=date(2024, 1, 15),
    end_date=date(2025, 6, 30),
    salary=ContractSalary(base_salary=Decimal("90000")),
    financial_rights=FinancialRights(
        accrued_salary=Decimal("90000"),
        paid_leave=Decimal("12"),
        notice_pay=Decimal("45000"),
        notice_days=Decimal("15"),
        severance_pay=Decimal("60000"),
        bonuses=Decimal("10000"),
        total=Decimal("241000"),
    ),
)


def create_tables(ddb: Any, suffix: str = "") -> None:
    """Create every StaffLedger table. Skips tables that already exist."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for name in ALL_TABLES:
        table_name = f"{name}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        print(f"  Created table {table_name}")


def seed_sample_data(ddb: Any, suffix: str = "") -> None:
    """Write the sample user, agent and contract through the production stores.

    Re-running is safe: records guarded by a unique marker are skipped.
    """
    try:
        DynamoDBUserStore(table_suffix=suffix, resource=ddb).put(SAMPLE_USER)
        print(f"  Seeded user {SAMPLE_USER.email}")
    except ConflictError:
        print(f"  User {SAMPLE_USER.email} already exists, skipping")

    try:
        DynamoDBAgentStore(table_suffix=suffix, resource=ddb).create(SAMPLE_AGENT)
        print(f"  Seeded agent {SAMPLE_AGENT.display_name} ({SAMPLE_AGENT.matricule_number})")
    except ConflictError:
        print(f"  Agent {SAMPLE_AGENT.matricule_number} already exists, skipping")

    DynamoDBContractStore(table_suffix=suffix, resource=ddb).put(SAMPLE_CONTRACT)
    print(f"  Seeded contract {SAMPLE_CONTRACT.contract_number}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB tables for StaffLedger")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="eu-west-3", help="AWS region")
    parser.add_argument("--no-sample-data", action="store_true", help="Only create the tables")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    if not args.no_sample_data:
        print("Seeding data...")
        seed_sample_data(ddb, suffix=args.table_suffix)

    print("Done!")


if __name__ == "__main__":
    main()
