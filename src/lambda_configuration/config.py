"""
lambda_configuration.config — Environment-derived defaults and option resolution.

Environment variables are read on every call so that a change to the Lambda
function's configuration applies without redeploying code:

    LAMBDA_CONFIGURATION_FUNCTION_NAME   core function name
    LAMBDA_CONFIGURATION_TABLE_NAME      DynamoDB table
    LAMBDA_CONFIGURATION_DOCUMENT_NAME   default document
    LAMBDA_CONFIGURATION_CMK             default KMS key id or alias
    LAMBDA_CONFIGURATION_MODE            direct | core | cache
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from lambda_configuration.models import (
    DEFAULT_CMK,
    DEFAULT_DOCUMENT_NAME,
    DEFAULT_FUNCTION_NAME,
    DEFAULT_TABLE_NAME,
    Mode,
    Options,
)

ENV_PREFIX = "LAMBDA_CONFIGURATION_"


@dataclass(frozen=True)
class ResolvedOptions:
    """Options with every layer applied; no field is ever None."""

    function_name: str
    table_name: str
    document_name: str
    cmk: str
    mode: Mode


def aws_region() -> str | None:
    """Region handed to boto3; None lets botocore apply its own lookup chain."""
    return os.environ.get("AWS_REGION") or None


def environment_options() -> Options:
    def _env(name: str) -> str | None:
        return os.environ.get(f"{ENV_PREFIX}{name}", "").strip() or None

    return Options(
        function_name=_env("FUNCTION_NAME"),
        table_name=_env("TABLE_NAME"),
        document_name=_env("DOCUMENT_NAME"),
        cmk=_env("CMK"),
        mode=_env("MODE"),  # type: ignore[arg-type]
    )


def resolve_options(per_call: Options, instance: Options) -> ResolvedOptions:
    """Apply per-call > instance > environment > hardcoded defaults."""
    hardcoded = Options(
        function_name=DEFAULT_FUNCTION_NAME,
        table_name=DEFAULT_TABLE_NAME,
        document_name=DEFAULT_DOCUMENT_NAME,
        cmk=DEFAULT_CMK,
        mode=Mode.CACHE,
    )
    merged = per_call.merged_over(instance.merged_over(environment_options().merged_over(hardcoded)))
    return ResolvedOptions(
        function_name=merged.function_name,  # type: ignore[arg-type]
        table_name=merged.table_name,  # type: ignore[arg-type]
        document_name=merged.document_name,  # type: ignore[arg-type]
        cmk=merged.cmk,  # type: ignore[arg-type]
        mode=merged.mode,  # type: ignore[arg-type]
    )
