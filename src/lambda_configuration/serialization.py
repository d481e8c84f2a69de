"""
lambda_configuration.serialization — JSON <-> DynamoDB value conversion.

The boto3 resource layer rejects float and returns every number as Decimal,
so values are converted on the way in and out of the table. KEKCipher values
are stored in their {cipher, encryptedKey} wire form.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from lambda_configuration.models import KEKCipher


def _plain_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def to_dynamodb(value: Any) -> Any:
    """Convert a JSON-compatible value into something boto3 can store."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, KEKCipher):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: to_dynamodb(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamodb(v) for v in value]
    return value


def from_dynamodb(value: Any) -> Any:
    """Convert a value read through the boto3 resource back to plain JSON types."""
    if isinstance(value, Decimal):
        return _plain_number(value)
    if isinstance(value, dict):
        return {k: from_dynamodb(v) for k, v in value.items()}
    if isinstance(value, (list, set)):
        return [from_dynamodb(v) for v in value]
    return value


def json_default(value: Any) -> Any:
    """json.dumps default= hook for Decimals and KEKCipher values."""
    if isinstance(value, Decimal):
        return _plain_number(value)
    if isinstance(value, KEKCipher):
        return value.to_dict()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
