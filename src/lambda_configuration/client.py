"""
lambda_configuration.client — LambdaConfiguration, the public entry point.

Routes each call to one of two backends by Mode:
  DIRECT       DirectBackend: DynamoDB reads and writes from this process.
  CORE, CACHE  CoreBackend: invoke the core function; CORE bypasses its cache.

The key argument may be omitted positionally: a mapping (or Options) given
as the key with no separate options is treated as the options.

    config = LambdaConfiguration({"table_name": "my-configurations"})
    host = config.get("db.host")
    config.set(42, ["limits", "max.connections"], {"mode": "direct"})
    settings = config.get({"mode": Mode.DIRECT})
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from aws_lambda_powertools import Logger

from lambda_configuration.config import ResolvedOptions, resolve_options
from lambda_configuration.core import CoreBackend
from lambda_configuration.crypto import EnvelopeCrypto
from lambda_configuration.exceptions import UsageError
from lambda_configuration.models import KEKCipher, Mode, Options
from lambda_configuration.paths import Key, resolve
from lambda_configuration.storage import DirectBackend

logger = Logger(service="lambda-configuration")

OptionsLike = Options | Mapping[str, Any] | None


class ConfigurationBackend(Protocol):
    def get(self, key: Key, options: ResolvedOptions) -> Any: ...

    def has(self, key: Key, options: ResolvedOptions) -> bool: ...

    def set(self, data: Any, key: Key, options: ResolvedOptions) -> None: ...

    def delete(self, key: Key, options: ResolvedOptions) -> None: ...

    def delete_document(self, document_name: str, options: ResolvedOptions) -> None: ...


def _shift_arguments(key: Any, options: OptionsLike) -> tuple[Key, Options]:
    """Treat a mapping passed in the key position as the options argument."""
    if options is None and isinstance(key, (Mapping, Options)):
        return None, Options.coerce(key)
    return key, Options.coerce(options)


class LambdaConfiguration:
    """
    Hierarchical configuration client for code running in AWS Lambda.

    Defaults given here apply to every call and may be overridden per call.
    Unset defaults come from LAMBDA_CONFIGURATION_* environment variables,
    then from the library defaults (function "lambda-configuration", table
    "lambda-configurations", document "settings", key
    "alias/lambda-configuration-key", mode CACHE).

    AWS clients may be injected; otherwise each is built on first use, so a
    client that only uses CORE mode never constructs a DynamoDB resource.
    """

    def __init__(
        self,
        options: OptionsLike = None,
        *,
        dynamodb_resource: Any = None,
        lambda_client: Any = None,
        kms_client: Any = None,
    ) -> None:
        self._defaults = Options.coerce(options)
        self._dynamodb_resource = dynamodb_resource
        self._lambda_client = lambda_client
        self._kms_client = kms_client
        self._direct: DirectBackend | None = None
        self._core: CoreBackend | None = None
        self._crypto: EnvelopeCrypto | None = None

    # -----------------------------------------------------------------------
    # Backend selection
    # -----------------------------------------------------------------------

    def _backend(self, mode: Mode) -> ConfigurationBackend:
        if mode is Mode.DIRECT:
            if self._direct is None:
                self._direct = DirectBackend(dynamodb_resource=self._dynamodb_resource)
            return self._direct
        if self._core is None:
            self._core = CoreBackend(lambda_client=self._lambda_client)
        return self._core

    def _resolve(self, per_call: Options) -> tuple[ConfigurationBackend, ResolvedOptions]:
        resolved = resolve_options(per_call, self._defaults)
        logger.debug(
            "Routing configuration request",
            mode=resolved.mode.value,
            table_name=resolved.table_name,
            document_name=resolved.document_name,
        )
        return self._backend(resolved.mode), resolved

    # -----------------------------------------------------------------------
    # Configuration access
    # -----------------------------------------------------------------------

    def get(self, key: Key | OptionsLike = None, options: OptionsLike = None) -> Any:
        """Return the value at key, or the whole document when key is omitted.

        DIRECT mode raises DocumentNotFound when the document does not exist
        and returns None when the document lacks the path.
        """
        key, per_call = _shift_arguments(key, options)
        resolve(key)
        backend, resolved = self._resolve(per_call)
        return backend.get(key, resolved)

    def get_fresh(self, key: Key | OptionsLike = None, options: OptionsLike = None) -> Any:
        """Same as get(), bypassing the core function's cache.

        DIRECT mode, from any layer, is honoured since it never touches the cache.
        """
        key, per_call = _shift_arguments(key, options)
        if resolve_options(per_call, self._defaults).mode is not Mode.DIRECT:
            per_call = Options(mode=Mode.CORE).merged_over(per_call)
        return self.get(key, per_call)

    def has(self, key: Key | OptionsLike = None, options: OptionsLike = None) -> bool:
        """True when the value at key (or the document, when key is omitted) exists."""
        key, per_call = _shift_arguments(key, options)
        resolve(key)
        backend, resolved = self._resolve(per_call)
        return backend.has(key, resolved)

    def has_document(self, options: OptionsLike = None) -> bool:
        backend, resolved = self._resolve(Options.coerce(options))
        return backend.has(None, resolved)

    def set(self, data: Any, key: Key | OptionsLike = None, options: OptionsLike = None) -> None:
        """Write data at key, or create/replace the whole document when key is omitted.

        A sub-path write assumes the document and every parent container exist.
        """
        key, per_call = _shift_arguments(key, options)
        resolve(key)
        backend, resolved = self._resolve(per_call)
        backend.set(data, key, resolved)

    def delete(self, key: Key, options: OptionsLike = None) -> None:
        """Remove the value at key. Use delete_document to remove a whole document."""
        key, per_call = _shift_arguments(key, options)
        if key is None:
            raise UsageError("delete requires a key; use delete_document to remove a document")
        resolve(key)
        backend, resolved = self._resolve(per_call)
        backend.delete(key, resolved)

    def delete_document(self, document_name: str, options: OptionsLike = None) -> None:
        """Remove a whole document. The name is required; no default applies."""
        if not isinstance(document_name, str) or not document_name:
            raise UsageError("delete_document requires the document name as a non-empty string")
        backend, resolved = self._resolve(Options.coerce(options))
        backend.delete_document(document_name, resolved)

    # -----------------------------------------------------------------------
    # Envelope encryption
    # -----------------------------------------------------------------------

    def _envelope(self) -> EnvelopeCrypto:
        if self._crypto is None:
            self._crypto = EnvelopeCrypto(kms_client=self._kms_client)
        return self._crypto

    def _cmk(self, cmk: str | None) -> str:
        return cmk or resolve_options(Options(), self._defaults).cmk

    def encrypt(self, data: Any, cmk: str | None = None) -> str:
        """Encrypt data directly under cmk (default: the configured key)."""
        return self._envelope().encrypt(data, self._cmk(cmk))

    def decrypt(self, cipher_text: str) -> Any:
        return self._envelope().decrypt(cipher_text)

    def encrypt_kek(self, data: Any, cmk: str | None = None) -> KEKCipher:
        """Encrypt data under a one-time data key wrapped by cmk."""
        return self._envelope().encrypt_kek(data, self._cmk(cmk))

    def decrypt_kek(self, kek_cipher: KEKCipher | Mapping[str, Any]) -> Any:
        return self._envelope().decrypt_kek(kek_cipher)
