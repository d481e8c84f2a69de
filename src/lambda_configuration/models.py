"""
lambda_configuration.models — Value types shared by every access mode.

Wire formats defined here:
    core invocation payload  — {type, tableName, documentName, key?, data?, noCache?}
    DynamoDB item            — {configName: <document name>, data: <JSON value>}
    KEK cipher               — {cipher: <hex>, encryptedKey: <base64>}
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from enum import StrEnum
from typing import Any

from lambda_configuration.exceptions import UsageError

# ---------------------------------------------------------------------------
# Hardcoded defaults (lowest precedence, see config.resolve_options)
# ---------------------------------------------------------------------------
DEFAULT_FUNCTION_NAME: str = "lambda-configuration"
DEFAULT_TABLE_NAME: str = "lambda-configurations"
DEFAULT_DOCUMENT_NAME: str = "settings"
DEFAULT_CMK: str = "alias/lambda-configuration-key"

# Partition key attribute of the configuration table
DOCUMENT_KEY_ATTRIBUTE: str = "configName"
# Attribute holding the document's root value; also the root path segment
ROOT_SEGMENT: str = "data"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Mode(StrEnum):
    """How a call reaches the configuration store.

    DIRECT talks to DynamoDB; CORE and CACHE invoke the core function,
    CORE with its cache bypassed.
    """

    DIRECT = "direct"
    CORE = "core"
    CACHE = "cache"


class RequestType(StrEnum):
    GET = "GET"
    PUT = "PUT"
    DELETE = "DELETE"
    CHECK = "CHECK"


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Options:
    """Per-instance or per-call options.

    Unset fields (None) fall through to the next layer:
    per-call > constructor > environment > hardcoded defaults.
    """

    function_name: str | None = None
    table_name: str | None = None
    document_name: str | None = None
    cmk: str | None = None
    mode: Mode | None = None

    def __post_init__(self) -> None:
        if self.mode is not None and not isinstance(self.mode, Mode):
            try:
                object.__setattr__(self, "mode", Mode(self.mode))
            except ValueError:
                raise UsageError(
                    f"mode must be one of {[m.value for m in Mode]}, got {self.mode!r}"
                ) from None

    @classmethod
    def coerce(cls, value: Options | Mapping[str, Any] | None) -> Options:
        """Build Options from an Options instance, a mapping, or None."""
        if value is None:
            return cls()
        if isinstance(value, Options):
            return value
        if isinstance(value, Mapping):
            known = {f.name for f in fields(cls)}
            unknown = sorted(set(value) - known)
            if unknown:
                raise UsageError(f"Unrecognised option(s): {', '.join(map(str, unknown))}")
            return cls(**value)
        raise UsageError(f"options must be a mapping or Options, got {type(value).__name__}")

    def merged_over(self, base: Options) -> Options:
        """Return a copy of base with every field set on self taking precedence."""
        overrides = {f.name: getattr(self, f.name) for f in fields(self)}
        return replace(base, **{k: v for k, v in overrides.items() if v is not None})


# ---------------------------------------------------------------------------
# Core function request
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RequestDescriptor:
    """One request to the core configuration function.

    data is only serialized for PUT; no_cache only for GET and CHECK.
    """

    type: RequestType
    table_name: str
    document_name: str
    key: str | list[str] | None = None
    data: Any = None
    no_cache: bool | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": self.type.value,
            "tableName": self.table_name,
            "documentName": self.document_name,
        }
        if self.key is not None:
            payload["key"] = self.key
        if self.type is RequestType.PUT:
            payload["data"] = self.data
        if self.type in (RequestType.GET, RequestType.CHECK) and self.no_cache is not None:
            payload["noCache"] = self.no_cache
        return payload


# ---------------------------------------------------------------------------
# KEK envelope
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KEKCipher:
    """Value encrypted under a one-time data key.

    cipher:        hex text of the AES-256-CTR ciphertext.
    encrypted_key: base64 text of the data key wrapped by the KMS key.
    """

    cipher: str
    encrypted_key: str

    def to_dict(self) -> dict[str, str]:
        return {"cipher": self.cipher, "encryptedKey": self.encrypted_key}

    @classmethod
    def from_dict(cls, value: Mapping[str, Any]) -> KEKCipher:
        try:
            return cls(cipher=value["cipher"], encrypted_key=value["encryptedKey"])
        except KeyError as exc:
            raise UsageError(f"KEK cipher is missing {exc.args[0]!r}") from None
