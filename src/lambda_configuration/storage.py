"""
lambda_configuration.storage — Direct DynamoDB access to configuration documents.

Item shape:
    {"configName": <document name>, "data": <JSON value>}

Every document path is expressed through positional placeholders
(#path0.#path1...) so segment names may be reserved words or contain
characters such as '.', which a bare path expression cannot express.

Writes to a sub-path assume its parent containers already exist. DynamoDB
rejects the update otherwise and the ClientError propagates unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import boto3
from aws_lambda_powertools import Logger

from lambda_configuration.config import ResolvedOptions, aws_region
from lambda_configuration.exceptions import DocumentNotFound, UsageError
from lambda_configuration.models import DOCUMENT_KEY_ATTRIBUTE, ROOT_SEGMENT
from lambda_configuration.paths import Key, is_root, placeholders, resolve
from lambda_configuration.serialization import from_dynamodb, to_dynamodb

logger = Logger(service="lambda-configuration")

_DOCUMENT_PLACEHOLDER = "#document"

# Sentinel for "path not present"; None is a legitimate stored value.
_MISSING = object()


class DirectBackend:
    """
    Reads and writes configuration documents straight from DynamoDB.

    Exposes the storage primitives (read_path, write_whole, write_path,
    delete_path, delete_whole, exists) and the backend interface used by
    LambdaConfiguration (get, has, set, delete, delete_document).
    """

    def __init__(self, *, dynamodb_resource: Any = None) -> None:
        self._dynamodb: Any = dynamodb_resource or boto3.resource(
            "dynamodb", region_name=aws_region()
        )

    def _table(self, table_name: str) -> Any:
        return self._dynamodb.Table(table_name)

    @staticmethod
    def _item_key(document_name: str) -> dict[str, str]:
        return {DOCUMENT_KEY_ATTRIBUTE: document_name}

    # -----------------------------------------------------------------------
    # Storage primitives
    # -----------------------------------------------------------------------

    def _lookup(self, table_name: str, document_name: str, path: Sequence[str]) -> Any:
        """Return the stored value at path, or _MISSING.

        The document key attribute is projected alongside the path so an
        existing document never comes back as an empty item.
        """
        expression, names = placeholders(path)
        names[_DOCUMENT_PLACEHOLDER] = DOCUMENT_KEY_ATTRIBUTE
        response = self._table(table_name).get_item(
            Key=self._item_key(document_name),
            ProjectionExpression=f"{_DOCUMENT_PLACEHOLDER}, {expression}",
            ExpressionAttributeNames=names,
        )
        item = response.get("Item")
        if not item:
            raise DocumentNotFound(table_name=table_name, document_name=document_name)

        node: Any = item
        for segment in path:
            if not isinstance(node, dict) or segment not in node:
                return _MISSING
            node = node[segment]
        return from_dynamodb(node)

    def read_path(self, table_name: str, document_name: str, path: Sequence[str]) -> Any:
        """Return the value at path; None when an existing document lacks it.

        Raises DocumentNotFound when the document itself does not exist.
        """
        value = self._lookup(table_name, document_name, path)
        return None if value is _MISSING else value

    def write_whole(self, table_name: str, document_name: str, value: Any) -> None:
        """Create or replace the whole document."""
        self._table(table_name).put_item(
            Item={DOCUMENT_KEY_ATTRIBUTE: document_name, ROOT_SEGMENT: to_dynamodb(value)}
        )

    def write_path(
        self, table_name: str, document_name: str, path: Sequence[str], value: Any
    ) -> None:
        """Assign value at path inside an existing document."""
        if is_root(path):
            self.write_whole(table_name, document_name, value)
            return
        expression, names = placeholders(path)
        self._table(table_name).update_item(
            Key=self._item_key(document_name),
            UpdateExpression=f"SET {expression} = :data",
            ExpressionAttributeNames=names,
            ExpressionAttributeValues={":data": to_dynamodb(value)},
        )

    def delete_path(self, table_name: str, document_name: str, path: Sequence[str]) -> None:
        """Remove the value at path. The whole document is removed by delete_whole."""
        if is_root(path):
            raise UsageError("Refusing to remove the document root; use delete_document")
        expression, names = placeholders(path)
        self._table(table_name).update_item(
            Key=self._item_key(document_name),
            UpdateExpression=f"REMOVE {expression}",
            ExpressionAttributeNames=names,
        )

    def delete_whole(self, table_name: str, document_name: str) -> None:
        self._table(table_name).delete_item(Key=self._item_key(document_name))

    def exists(self, table_name: str, document_name: str, path: Sequence[str]) -> bool:
        """True when the document (root path) or the value at path exists."""
        if is_root(path):
            response = self._table(table_name).get_item(
                Key=self._item_key(document_name),
                ProjectionExpression=_DOCUMENT_PLACEHOLDER,
                ExpressionAttributeNames={_DOCUMENT_PLACEHOLDER: DOCUMENT_KEY_ATTRIBUTE},
            )
            return bool(response.get("Item"))
        try:
            return self._lookup(table_name, document_name, path) is not _MISSING
        except DocumentNotFound:
            return False

    # -----------------------------------------------------------------------
    # Backend interface
    # -----------------------------------------------------------------------

    def get(self, key: Key, options: ResolvedOptions) -> Any:
        logger.debug(
            "Direct configuration read",
            table_name=options.table_name,
            document_name=options.document_name,
        )
        return self.read_path(options.table_name, options.document_name, resolve(key))

    def has(self, key: Key, options: ResolvedOptions) -> bool:
        return self.exists(options.table_name, options.document_name, resolve(key))

    def set(self, data: Any, key: Key, options: ResolvedOptions) -> None:
        logger.debug(
            "Direct configuration write",
            table_name=options.table_name,
            document_name=options.document_name,
            whole_document=key is None,
        )
        self.write_path(options.table_name, options.document_name, resolve(key), data)

    def delete(self, key: Key, options: ResolvedOptions) -> None:
        self.delete_path(options.table_name, options.document_name, resolve(key))

    def delete_document(self, document_name: str, options: ResolvedOptions) -> None:
        logger.debug(
            "Direct document delete",
            table_name=options.table_name,
            document_name=document_name,
        )
        self.delete_whole(options.table_name, document_name)
