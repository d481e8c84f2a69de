"""
lambda_configuration.crypto — KMS envelope encryption for configuration values.

Two schemes:
  encrypt / decrypt          the JSON value is sent to KMS directly. Suits
                             high-entropy, single-use values such as tokens.
  encrypt_kek / decrypt_kek  the JSON value is encrypted locally with a fresh
                             AES-256 data key (CTR mode); only the data key is
                             wrapped by KMS. Suits passwords and structured values.

The CTR counter block is fixed at zero. This is only sound because every
encrypt_kek call asks KMS for a new data key; a data key must never encrypt
two different plaintexts.

Data keys live in a bytearray that is zeroed on every exit path. Python may
still hold transient copies (boto3 response bytes, the cipher context), so
the wipe is best-effort hygiene rather than a guarantee.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import boto3
from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from lambda_configuration.config import aws_region
from lambda_configuration.models import DEFAULT_CMK, KEKCipher
from lambda_configuration.serialization import json_default

logger = Logger(service="lambda-configuration")

DATA_KEY_SPEC = "AES_256"
_ZERO_COUNTER = b"\x00" * 16


def _is_key_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "NotFoundException"


@contextmanager
def _scrubbed(secret: bytes) -> Iterator[bytearray]:
    """Hold secret in a mutable buffer and zero it when the block exits."""
    buffer = bytearray(secret)
    try:
        yield buffer
    finally:
        for index in range(len(buffer)):
            buffer[index] = 0


def _ctr(data_key: bytearray) -> Cipher:
    return Cipher(algorithms.AES(data_key), modes.CTR(_ZERO_COUNTER))


class EnvelopeCrypto:
    """Encrypts and decrypts configuration values with KMS."""

    def __init__(self, *, kms_client: Any = None, cmk: str = DEFAULT_CMK) -> None:
        self._kms: Any = kms_client or boto3.client("kms", region_name=aws_region())
        self._cmk = cmk

    def _log_key_not_found(self, action: str, cmk: str) -> None:
        logger.error(
            f"Can not {action} using key {cmk!r}. Check that the key exists in "
            "this region and that the Lambda execution role may use it. "
            'An alias must look like "alias/my-key".',
            cmk=cmk,
            region=self._kms.meta.region_name,
        )

    def encrypt(self, data: Any, cmk: str | None = None) -> str:
        """Encrypt a JSON-compatible value directly under a KMS key.

        Returns the base64 ciphertext blob.
        """
        key_id = cmk or self._cmk
        try:
            response = self._kms.encrypt(
                KeyId=key_id,
                Plaintext=json.dumps(data, default=json_default).encode("utf-8"),
            )
        except ClientError as exc:
            if _is_key_not_found(exc):
                self._log_key_not_found("encrypt the data", key_id)
            raise
        return base64.b64encode(response["CiphertextBlob"]).decode("ascii")

    def decrypt(self, cipher_text: str) -> Any:
        """Reverse encrypt(): base64 ciphertext blob to the original value."""
        response = self._kms.decrypt(CiphertextBlob=base64.b64decode(cipher_text))
        with _scrubbed(response["Plaintext"]) as plaintext:
            return json.loads(plaintext.decode("utf-8"))

    def encrypt_kek(self, data: Any, cmk: str | None = None) -> KEKCipher:
        """Encrypt a JSON-compatible value under a new single-use data key."""
        key_id = cmk or self._cmk
        plaintext = json.dumps(data, default=json_default).encode("utf-8")
        try:
            data_key = self._kms.generate_data_key(KeyId=key_id, KeySpec=DATA_KEY_SPEC)
        except ClientError as exc:
            if _is_key_not_found(exc):
                self._log_key_not_found("generate a data key", key_id)
            raise

        with _scrubbed(data_key.pop("Plaintext")) as key_bytes:
            encryptor = _ctr(key_bytes).encryptor()
            cipher = encryptor.update(plaintext) + encryptor.finalize()
            del encryptor

        return KEKCipher(
            cipher=cipher.hex(),
            encrypted_key=base64.b64encode(data_key["CiphertextBlob"]).decode("ascii"),
        )

    def decrypt_kek(self, kek_cipher: KEKCipher | Mapping[str, Any]) -> Any:
        """Reverse encrypt_kek(): unwrap the data key with KMS, then decrypt locally."""
        if not isinstance(kek_cipher, KEKCipher):
            kek_cipher = KEKCipher.from_dict(kek_cipher)

        response = self._kms.decrypt(CiphertextBlob=base64.b64decode(kek_cipher.encrypted_key))
        with _scrubbed(response.pop("Plaintext")) as key_bytes:
            decryptor = _ctr(key_bytes).decryptor()
            plaintext = decryptor.update(bytes.fromhex(kek_cipher.cipher)) + decryptor.finalize()
            del decryptor

        with _scrubbed(plaintext) as recovered:
            return json.loads(recovered.decode("utf-8"))
