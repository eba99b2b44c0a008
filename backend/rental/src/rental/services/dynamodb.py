"""Thin DynamoDB access layer shared by the stores.

Table names are `{prefix}-{table}`; the prefix comes from
DYNAMODB_TABLE_PREFIX. Conditional writes report a failed condition as a
falsy return value instead of raising, so callers can map it to a domain
error.
"""

from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from rental.config import get_settings

_CONDITION_FAILED = "ConditionalCheckFailedException"
_TRANSACTION_CANCELED = "TransactionCanceledException"

# One instance per Lambda container
_dynamodb_service_instance: "DynamoDBService | None" = None


def get_dynamodb_service(table_prefix: str | None = None) -> "DynamoDBService":
    """Return the process-wide DynamoDBService, creating it on first use.

    table_prefix only has an effect on the first call.
    """
    global _dynamodb_service_instance
    if _dynamodb_service_instance is None:
        _dynamodb_service_instance = DynamoDBService(table_prefix)
    return _dynamodb_service_instance


def reset_dynamodb_service() -> None:
    """Drop the shared instance so the next call builds a new one.

    Tests call this so each mock_aws context gets its own boto3 clients.
    """
    global _dynamodb_service_instance
    _dynamodb_service_instance = None


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class DynamoDBService:
    """Prefixed table access over the boto3 resource and client APIs."""

    def __init__(self, table_prefix: str | None = None) -> None:
        self.name_prefix = table_prefix or get_settings().table_prefix
        self._dynamodb = boto3.resource("dynamodb")
        self._client = boto3.client("dynamodb")

    def table_name(self, table: str) -> str:
        """Full table name including the environment prefix."""
        return f"{self.name_prefix}-{table}"

    def _get_table(self, table: str) -> Any:
        return self._dynamodb.Table(self.table_name(table))

    def get_item(
        self,
        table: str,
        key: dict[str, Any],
        consistent_read: bool = True,
    ) -> dict[str, Any] | None:
        """Fetch one item by primary key, or None when absent."""
        response = self._get_table(table).get_item(
            Key=key, ConsistentRead=consistent_read
        )
        item: dict[str, Any] | None = response.get("Item")
        return item

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> bool:
        """Write an item.

        Returns:
            False when condition_expression did not hold, True otherwise
        """
        kwargs: dict[str, Any] = {"Item": item}
        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression
        try:
            self._get_table(table).put_item(**kwargs)
        except ClientError as e:
            if _error_code(e) == _CONDITION_FAILED:
                return False
            raise
        return True

    def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        condition_expression: str | None = None,
    ) -> dict[str, Any] | None:
        """Apply an update expression and return the item as written.

        Args:
            table: Table name without prefix
            key: Primary key
            update_expression: e.g. "SET payment_status = :payment_status"
            expression_attribute_values: Placeholder values
            condition_expression: Guard for the write

        Returns:
            All attributes after the update, or None if the guard failed
        """
        kwargs: dict[str, Any] = {
            "Key": key,
            "UpdateExpression": update_expression,
            "ExpressionAttributeValues": expression_attribute_values,
            "ReturnValues": "ALL_NEW",
        }
        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression
        try:
            response = self._get_table(table).update_item(**kwargs)
        except ClientError as e:
            if _error_code(e) == _CONDITION_FAILED:
                return None
            raise
        attrs: dict[str, Any] | None = response.get("Attributes")
        return attrs

    def query(
        self,
        table: str,
        key_condition: Any,
        index_name: str | None = None,
        scan_index_forward: bool = True,
        consistent_read: bool = False,
    ) -> list[dict[str, Any]]:
        """Run a key-condition query, reading every page.

        consistent_read is only valid on the base table, not on a GSI.
        """
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ScanIndexForward": scan_index_forward,
        }
        if index_name:
            kwargs["IndexName"] = index_name
        if consistent_read:
            kwargs["ConsistentRead"] = True

        table_resource = self._get_table(table)
        items: list[dict[str, Any]] = []
        while True:
            page = table_resource.query(**kwargs)
            items.extend(page.get("Items", []))
            if "LastEvaluatedKey" not in page:
                return items
            kwargs["ExclusiveStartKey"] = page["LastEvaluatedKey"]

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: str,
        scan_index_forward: bool = True,
    ) -> list[dict[str, Any]]:
        """All items in one GSI partition, ordered by the index sort key."""
        return self.query(
            table,
            Key(partition_key_name).eq(partition_key_value),
            index_name=index_name,
            scan_index_forward=scan_index_forward,
        )

    def transact_write(self, items: list[dict[str, Any]]) -> bool:
        """Run TransactWriteItems.

        Args:
            items: TransactItems in low-level attribute format

        Returns:
            False if DynamoDB cancelled the transaction (a condition failed
            or another transaction touched the same items)
        """
        try:
            self._client.transact_write_items(TransactItems=items)  # type: ignore[arg-type]
        except ClientError as e:
            if _error_code(e) == _TRANSACTION_CANCELED:
                return False
            raise
        return True


def serialize_attribute(value: Any) -> dict[str, Any]:
    """Convert a Python value to a low-level attribute value."""
    if isinstance(value, bool):
        return {"BOOL": value}
    if isinstance(value, str):
        return {"S": value}
    if isinstance(value, int | float | Decimal):
        return {"N": str(value)}
    if value is None:
        return {"NULL": True}
    if isinstance(value, list):
        return {"L": [serialize_attribute(v) for v in value]}
    if isinstance(value, dict):
        return {"M": {k: serialize_attribute(v) for k, v in value.items()}}
    return {"S": str(value)}


def serialize_item(item: dict[str, Any]) -> dict[str, Any]:
    """Convert an item for transact_write, skipping None values."""
    return {k: serialize_attribute(v) for k, v in item.items() if v is not None}
