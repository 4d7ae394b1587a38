"""Create the Redwing DynamoDB tables and their indexes.

Usage:
    python scripts/create_tables.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

from redwing.persistence.dynamodb_backend import (
    AUDIT_TABLE,
    ESCALATIONS_TABLE,
    HISTORY_TABLE,
    SESSION_INDEX,
    STATE_INDEX,
)


def _gsi(name: str) -> dict[str, Any]:
    return {
        "IndexName": name,
        "KeySchema": [
            {"AttributeName": f"{name}PK", "KeyType": "HASH"},
            {"AttributeName": f"{name}SK", "KeyType": "RANGE"},
        ],
        "Projection": {"ProjectionType": "ALL"},
    }


TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {"name": ESCALATIONS_TABLE, "indexes": [STATE_INDEX, SESSION_INDEX]},
    {"name": AUDIT_TABLE, "indexes": ["GSI1"]},
    {"name": HISTORY_TABLE, "indexes": []},
]


def create_tables(ddb: Any, suffix: str = "") -> list[str]:
    """Create every Redwing table. Skips tables that already exist."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])
    created = []

    for defn in TABLE_DEFINITIONS:
        table_name = f"{defn['name']}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue

        attributes = ["PK", "SK"]
        for index in defn["indexes"]:
            attributes += [f"{index}PK", f"{index}SK"]
        kwargs: dict[str, Any] = {
            "TableName": table_name,
            "KeySchema": [
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            "AttributeDefinitions": [{"AttributeName": a, "AttributeType": "S"} for a in attributes],
            "BillingMode": "PAY_PER_REQUEST",
        }
        if defn["indexes"]:
            kwargs["GlobalSecondaryIndexes"] = [_gsi(index) for index in defn["indexes"]]
        client.create_table(**kwargs)
        created.append(table_name)
        print(f"  Created table {table_name}")

    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Create DynamoDB tables for Redwing")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)
    print("Done!")


if __name__ == "__main__":
    main()
