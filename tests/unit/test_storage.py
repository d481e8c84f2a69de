"""
tests/unit/test_storage.py — DirectBackend against a moto DynamoDB table.

Coverage assertions:
  - Whole-document and sub-path reads, including absent paths (None) vs
    absent documents (DocumentNotFound).
  - Placeholder expressions keep dotted segment names intact.
  - exists() downgrades DocumentNotFound to False; other errors propagate.
  - Parent containers are not auto-created; the store's error propagates.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError
from lambda_configuration import DocumentNotFound, KEKCipher, UsageError
from lambda_configuration.serialization import from_dynamodb, json_default, to_dynamodb
from lambda_configuration.storage import DirectBackend
from moto import mock_aws

REGION = "eu-west-2"
TABLE_NAME = "lambda-configurations"
DOCUMENT = "settings"

SETTINGS = {
    "version": "1.2.0",
    "db": {"host": "db.internal", "port": 5432},
    "features": ["a", "b"],
    "ratio": 0.25,
    "enabled": True,
    "nothing": None,
}


@pytest.fixture(autouse=True)
def aws_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set minimal AWS env vars required by the library and moto."""
    monkeypatch.setenv("AWS_REGION", REGION)
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")


def _make_backend(*, seed: dict[str, Any] | None = None) -> tuple[DirectBackend, Any]:
    """Return (DirectBackend, moto table). Caller must enter mock_aws() first."""
    dynamodb = boto3.resource("dynamodb", region_name=REGION)
    table = dynamodb.create_table(
        TableName=TABLE_NAME,
        KeySchema=[{"AttributeName": "configName", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "configName", "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )
    backend = DirectBackend(dynamodb_resource=dynamodb)
    if seed is not None:
        backend.write_whole(TABLE_NAME, DOCUMENT, seed)
    return backend, table


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


# ===========================================================================
# Init
# ===========================================================================


class TestDirectBackendInit:
    def test_init_with_injected_resource(self) -> None:
        resource = MagicMock()
        backend = DirectBackend(dynamodb_resource=resource)
        assert backend._dynamodb is resource

    def test_init_without_injected_resource_uses_env_region(self) -> None:
        with mock_aws():
            backend = DirectBackend()
        assert backend._dynamodb.meta.client.meta.region_name == REGION


# ===========================================================================
# read_path
# ===========================================================================


class TestReadPath:
    def test_root_returns_whole_document(self) -> None:
        with mock_aws():
            backend, _ = _make_backend(seed=SETTINGS)
            assert backend.read_path(TABLE_NAME, DOCUMENT, ["data"]) == SETTINGS

    def test_nested_value(self) -> None:
        with mock_aws():
            backend, _ = _make_backend(seed=SETTINGS)
            assert backend.read_path(TABLE_NAME, DOCUMENT, ["data", "db", "host"]) == "db.internal"
            port = backend.read_path(TABLE_NAME, DOCUMENT, ["data", "db", "port"])
        assert port == 5432
        assert isinstance(port, int)

    def test_float_round_trips(self) -> None:
        with mock_aws():
            backend, _ = _make_backend(seed=SETTINGS)
            ratio = backend.read_path(TABLE_NAME, DOCUMENT, ["data", "ratio"])
        assert ratio == 0.25
        assert not isinstance(ratio, Decimal)

    def test_missing_path_in_existing_document_is_none(self) -> None:
        with mock_aws():
            backend, _ = _make_backend(seed=SETTINGS)
            assert backend.read_path(TABLE_NAME, DOCUMENT, ["data", "absent"]) is None
            assert backend.read_path(TABLE_NAME, DOCUMENT, ["data", "db", "absent"]) is None

    def test_missing_document_raises(self) -> None:
        with mock_aws():
            backend, _ = _make_backend()
            with pytest.raises(DocumentNotFound) as exc_info:
                backend.read_path(TABLE_NAME, "missing", ["data", "version"])
        assert exc_info.value.document_name == "missing"
        assert exc_info.value.table_name == TABLE_NAME

    def test_projection_uses_placeholders_and_document_key(self) -> None:
        table = MagicMock()
        table.get_item.return_value = {"Item": {"configName": DOCUMENT, "data": {"a": {"b.c": 1}}}}
        resource = MagicMock()
        resource.Table.return_value = table

        value = DirectBackend(dynamodb_resource=resource).read_path(
            TABLE_NAME, DOCUMENT, ["data", "a", "b.c"]
        )

        assert value == 1
        kwargs = table.get_item.call_args.kwargs
        assert kwargs["Key"] == {"configName": DOCUMENT}
        assert kwargs["ProjectionExpression"] == "#document, #path0.#path1.#path2"
        assert kwargs["ExpressionAttributeNames"] == {
            "#document": "configName",
            "#path0": "data",
            "#path1": "a",
            "#path2": "b.c",
        }


# ===========================================================================
# write_whole / write_path
# ===========================================================================


class TestWrite:
    def test_write_whole_creates_item(self) -> None:
        with mock_aws():
            backend, table = _make_backend()
            backend.write_whole(TABLE_NAME, "new-doc", {"a": 1})
            item = table.get_item(Key={"configName": "new-doc"})["Item"]
        assert item == {"configName": "new-doc", "data": {"a": 1}}

    def test_write_whole_replaces_item(self) -> None:
        with mock_aws():
            backend, _ = _make_backend(seed=SETTINGS)
            backend.write_whole(TABLE_NAME, DOCUMENT, {"only": "this"})
            assert backend.read_path(TABLE_NAME, DOCUMENT, ["data"]) == {"only": "this"}

    def test_write_path_root_replaces_document(self) -> None:
        with mock_aws():
            backend, _ = _make_backend(seed=SETTINGS)
            backend.write_path(TABLE_NAME, DOCUMENT, ["data"], [1, 2, 3])
            assert backend.read_path(TABLE_NAME, DOCUMENT, ["data"]) == [1, 2, 3]

    @pytest.mark.parametrize(
        "value",
        ["text", 42, 1.5, True, None, ["x", 2], {"nested": {"deep": [1.25, "y"]}}],
    )
    def test_write_path_then_read_path_round_trip(self, value: Any) -> None:
        with mock_aws():
            backend, _ = _make_backend(seed=SETTINGS)
            backend.write_path(TABLE_NAME, DOCUMENT, ["data", "db", "extra"], value)
            assert backend.read_path(TABLE_NAME, DOCUMENT, ["data", "db", "extra"]) == value

    def test_write_path_keeps_dotted_segment_whole(self) -> None:
        with mock_aws():
            backend, table = _make_backend(seed={"a": {}})
            backend.write_path(TABLE_NAME, DOCUMENT, ["data", "a", "b.c"], 42)
            item = table.get_item(Key={"configName": DOCUMENT})["Item"]
        assert item["data"]["a"] == {"b.c": 42}

    def test_write_path_update_expression(self) -> None:
        table = MagicMock()
        resource = MagicMock()
        resource.Table.return_value = table

        DirectBackend(dynamodb_resource=resource).write_path(
            TABLE_NAME, DOCUMENT, ["data", "a", "b.c"], 0.5
        )

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #path0.#path1.#path2 = :data"
        assert kwargs["ExpressionAttributeNames"]["#path2"] == "b.c"
        assert kwargs["ExpressionAttributeValues"] == {":data": Decimal("0.5")}

    def test_missing_parent_container_error_propagates(self) -> None:
        table = MagicMock()
        table.update_item.side_effect = _client_error("ValidationException", "UpdateItem")
        resource = MagicMock()
        resource.Table.return_value = table

        with pytest.raises(ClientError) as exc_info:
            DirectBackend(dynamodb_resource=resource).write_path(
                TABLE_NAME, DOCUMENT, ["data", "missing", "child"], 1
            )
        assert exc_info.value.response["Error"]["Code"] == "ValidationException"


# ===========================================================================
# delete_path / delete_whole
# ===========================================================================


class TestDelete:
    def test_delete_path_removes_value(self) -> None:
        with mock_aws():
            backend, _ = _make_backend(seed=SETTINGS)
            backend.delete_path(TABLE_NAME, DOCUMENT, ["data", "db", "port"])
            assert backend.read_path(TABLE_NAME, DOCUMENT, ["data", "db"]) == {
                "host": "db.internal"
            }

    def test_delete_path_rejects_root(self) -> None:
        backend = DirectBackend(dynamodb_resource=MagicMock())
        with pytest.raises(UsageError):
            backend.delete_path(TABLE_NAME, DOCUMENT, ["data"])

    def test_delete_path_remove_expression(self) -> None:
        table = MagicMock()
        resource = MagicMock()
        resource.Table.return_value = table

        DirectBackend(dynamodb_resource=resource).delete_path(
            TABLE_NAME, DOCUMENT, ["data", "version"]
        )

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "REMOVE #path0.#path1"
        assert "ExpressionAttributeValues" not in kwargs

    def test_delete_whole_removes_item(self) -> None:
        with mock_aws():
            backend, table = _make_backend(seed=SETTINGS)
            backend.delete_whole(TABLE_NAME, DOCUMENT)
            assert "Item" not in table.get_item(Key={"configName": DOCUMENT})


# ===========================================================================
# exists
# ===========================================================================


class TestExists:
    def test_document_exists(self) -> None:
        with mock_aws():
            backend, _ = _make_backend(seed=SETTINGS)
            assert backend.exists(TABLE_NAME, DOCUMENT, ["data"]) is True
            assert backend.exists(TABLE_NAME, "other", ["data"]) is False

    def test_document_probe_projects_only_the_key(self) -> None:
        table = MagicMock()
        table.get_item.return_value = {"Item": {"configName": DOCUMENT}}
        resource = MagicMock()
        resource.Table.return_value = table

        assert DirectBackend(dynamodb_resource=resource).exists(TABLE_NAME, DOCUMENT, ["data"])
        kwargs = table.get_item.call_args.kwargs
        assert kwargs["ProjectionExpression"] == "#document"
        assert kwargs["ExpressionAttributeNames"] == {"#document": "configName"}

    def test_sub_path(self) -> None:
        with mock_aws():
            backend, _ = _make_backend(seed=SETTINGS)
            assert backend.exists(TABLE_NAME, DOCUMENT, ["data", "db", "host"]) is True
            assert backend.exists(TABLE_NAME, DOCUMENT, ["data", "db", "user"]) is False

    def test_stored_null_counts_as_present(self) -> None:
        with mock_aws():
            backend, _ = _make_backend(seed=SETTINGS)
            assert backend.exists(TABLE_NAME, DOCUMENT, ["data", "nothing"]) is True

    def test_missing_document_is_false(self) -> None:
        with mock_aws():
            backend, _ = _make_backend()
            assert backend.exists(TABLE_NAME, DOCUMENT, ["data", "version"]) is False

    def test_other_errors_propagate(self) -> None:
        table = MagicMock()
        table.get_item.side_effect = _client_error("AccessDeniedException", "GetItem")
        resource = MagicMock()
        resource.Table.return_value = table

        with pytest.raises(ClientError):
            DirectBackend(dynamodb_resource=resource).exists(
                TABLE_NAME, DOCUMENT, ["data", "version"]
            )


# ===========================================================================
# Value conversion
# ===========================================================================


class TestSerialization:
    def test_floats_become_decimals_recursively(self) -> None:
        converted = to_dynamodb({"a": 0.1, "b": [1.5, True, "x"], "c": None})
        assert converted == {"a": Decimal("0.1"), "b": [Decimal("1.5"), True, "x"], "c": None}
        assert converted["b"][1] is True

    def test_decimals_become_int_or_float(self) -> None:
        restored = from_dynamodb({"n": Decimal("5"), "f": Decimal("2.5"), "l": [Decimal("1")]})
        assert restored == {"n": 5, "f": 2.5, "l": [1]}
        assert isinstance(restored["n"], int)
        assert isinstance(restored["f"], float)

    def test_json_default_rejects_unknown_types(self) -> None:
        with pytest.raises(TypeError):
            json_default(object())

    def test_kek_cipher_stored_in_wire_form(self) -> None:
        kek = KEKCipher(cipher="00ff", encrypted_key="d3JhcHBlZA==")
        wire = {"cipher": "00ff", "encryptedKey": "d3JhcHBlZA=="}
        assert to_dynamodb(kek) == wire
        assert to_dynamodb({"secrets": [kek]}) == {"secrets": [wire]}
        assert json_default(kek) == wire

    def test_json_default_decimals(self) -> None:
        assert json_default(Decimal("3")) == 3
        assert json_default(Decimal("0.5")) == 0.5

    def test_write_path_stores_kek_cipher(self) -> None:
        kek = KEKCipher(cipher="abcd", encrypted_key="a2V5")
        with mock_aws():
            backend, _ = _make_backend(seed={"db": {}})
            backend.write_path(TABLE_NAME, DOCUMENT, ["data", "db", "password"], kek)
            stored = backend.read_path(TABLE_NAME, DOCUMENT, ["data", "db", "password"])
        assert stored == {"cipher": "abcd", "encryptedKey": "a2V5"}
        assert KEKCipher.from_dict(stored) == kek
