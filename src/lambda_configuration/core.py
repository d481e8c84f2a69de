"""
lambda_configuration.core — Delegation to the core configuration function.

The core function owns the DynamoDB table and its cache. This module only
serializes a RequestDescriptor, invokes the function synchronously and parses
its JSON response. No retries: the invocation's own failure is the error.
"""

from __future__ import annotations

import json
from typing import Any

import boto3
from aws_lambda_powertools import Logger

from lambda_configuration.config import ResolvedOptions, aws_region
from lambda_configuration.exceptions import CoreInvocationError
from lambda_configuration.models import Mode, RequestDescriptor, RequestType
from lambda_configuration.paths import Key, resolve
from lambda_configuration.serialization import json_default

logger = Logger(service="lambda-configuration")


def _wire_key(key: Key) -> str | list[str] | None:
    """Validate key locally, then send it in the caller's own form."""
    if key is None:
        return None
    resolve(key)
    return key if isinstance(key, str) else list(key)


class CoreBackend:
    """Routes configuration operations through the core Lambda function."""

    def __init__(self, *, lambda_client: Any = None) -> None:
        self._lambda: Any = lambda_client or boto3.client("lambda", region_name=aws_region())

    def invoke(self, function_name: str, descriptor: RequestDescriptor) -> Any:
        """Invoke the core function and return its decoded response.

        An empty or null payload decodes to None. A payload that is not JSON
        is returned as text.
        """
        logger.debug(
            "Invoking core configuration function",
            function_name=function_name,
            request_type=descriptor.type.value,
            table_name=descriptor.table_name,
            document_name=descriptor.document_name,
        )
        response = self._lambda.invoke(
            FunctionName=function_name,
            InvocationType="RequestResponse",
            Payload=json.dumps(descriptor.to_payload(), default=json_default),
        )
        body = _read_payload(response.get("Payload"))

        if response.get("FunctionError"):
            error = _decode(body)
            if not isinstance(error, dict):
                error = {"errorMessage": error}
            raise CoreInvocationError(
                function_name=function_name,
                error_type=error.get("errorType"),
                error_message=error.get("errorMessage"),
            )
        return _decode(body)

    # -----------------------------------------------------------------------
    # Backend interface
    # -----------------------------------------------------------------------

    def _descriptor(
        self,
        request_type: RequestType,
        options: ResolvedOptions,
        *,
        key: Key = None,
        data: Any = None,
        document_name: str | None = None,
    ) -> RequestDescriptor:
        return RequestDescriptor(
            type=request_type,
            table_name=options.table_name,
            document_name=document_name or options.document_name,
            key=_wire_key(key),
            data=data,
            no_cache=options.mode is Mode.CORE,
        )

    def get(self, key: Key, options: ResolvedOptions) -> Any:
        return self.invoke(options.function_name, self._descriptor(RequestType.GET, options, key=key))

    def has(self, key: Key, options: ResolvedOptions) -> bool:
        result = self.invoke(
            options.function_name, self._descriptor(RequestType.CHECK, options, key=key)
        )
        return bool(result)

    def set(self, data: Any, key: Key, options: ResolvedOptions) -> None:
        self.invoke(
            options.function_name, self._descriptor(RequestType.PUT, options, key=key, data=data)
        )

    def delete(self, key: Key, options: ResolvedOptions) -> None:
        self.invoke(options.function_name, self._descriptor(RequestType.DELETE, options, key=key))

    def delete_document(self, document_name: str, options: ResolvedOptions) -> None:
        self.invoke(
            options.function_name,
            self._descriptor(RequestType.DELETE, options, document_name=document_name),
        )


def _read_payload(payload: Any) -> str:
    if payload is None:
        return ""
    raw = payload.read() if hasattr(payload, "read") else payload
    if isinstance(raw, (bytes, bytearray)):
        return raw.decode("utf-8")
    return str(raw)


def _decode(body: str) -> Any:
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        return body
