"""Tests for the support module imported by generated code."""

from typing import Annotated, ClassVar

import pytest
from pydantic import TypeAdapter, ValidationError, model_validator

from starknet_codegen.runtime import (
    QUERY_VERSION_OFFSET,
    STARK_PRIME,
    EthAddress,
    Hash256,
    NumAsHex,
    RpcModel,
    UfeHex,
    base64,
    check_fixed_field,
    check_query_version,
    empty_positional,
    fixed_query_version,
    flatten_fields,
    from_wire,
    in_wire_context,
    keyed_from_positional,
    to_wire,
    unflatten_fields,
    wire_keys,
    with_fixed_fields,
)


class _Inner(RpcModel):
    sender_address: int
    nonce: int


class _Outer(RpcModel):
    wire_flattened: ClassVar[tuple[str, ...]] = ("inner",)

    inner: _Inner
    calldata: list[int]


class _WireFlag(RpcModel):
    wire: bool = False

    @model_validator(mode="before")
    @classmethod
    def _record(cls, value, info):
        return {**value, "wire": in_wire_context(info)}


class TestCodecs:
    """Test the felt, hex and base64 codecs."""

    def test_felt_from_hex(self):
        assert TypeAdapter(UfeHex).validate_python("0x1f") == 31

    def test_felt_from_int(self):
        assert TypeAdapter(UfeHex).validate_python(5) == 5

    def test_felt_to_hex(self):
        assert TypeAdapter(UfeHex).dump_python(31, mode="json") == "0x1f"

    def test_felt_native_in_python_mode(self):
        assert TypeAdapter(UfeHex).dump_python(31) == 31

    def test_felt_out_of_range(self):
        with pytest.raises(ValidationError, match="felt out of range"):
            TypeAdapter(UfeHex).validate_python(hex(STARK_PRIME))

    def test_felt_requires_prefix(self):
        with pytest.raises(ValidationError, match="0x-prefixed"):
            TypeAdapter(UfeHex).validate_python("1f")

    def test_felt_rejects_bool(self):
        with pytest.raises(ValidationError):
            TypeAdapter(UfeHex).validate_python(True)

    def test_num_as_hex_negative(self):
        with pytest.raises(ValidationError):
            TypeAdapter(NumAsHex).validate_python(-1)

    def test_eth_address_padded(self):
        assert TypeAdapter(EthAddress).validate_python("0xAB") == "0x" + "0" * 38 + "ab"

    def test_eth_address_too_long(self):
        with pytest.raises(ValidationError):
            TypeAdapter(EthAddress).validate_python("0x" + "f" * 41)

    def test_hash256_width(self):
        assert len(TypeAdapter(Hash256).validate_python("0x1")) == 66

    def test_base64(self):
        adapter = TypeAdapter(Annotated[bytes, base64])
        assert adapter.validate_python("aGVsbG8=") == b"hello"
        assert adapter.dump_python(b"hello", mode="json") == "aGVsbG8="

    def test_base64_invalid(self):
        with pytest.raises(ValidationError, match="invalid base64"):
            TypeAdapter(Annotated[bytes, base64]).validate_python("not base64!")


class TestPositional:
    """Test positional request decoding."""

    def test_mapping_passes_through(self):
        assert keyed_from_positional({"a": 1}, ("a",), ()) == {"a": 1}

    def test_sequence_filled_in_order(self):
        assert keyed_from_positional([1, 2], ("a", "b"), ()) == {"a": 1, "b": 2}

    def test_trailing_optional_omitted(self):
        assert keyed_from_positional([1], ("a", "b"), ("b",)) == {"a": 1}

    def test_missing_required(self):
        with pytest.raises(ValueError, match="invalid sequence length"):
            keyed_from_positional([1], ("a", "b"), ())

    def test_too_long(self):
        with pytest.raises(ValueError, match="invalid sequence length"):
            keyed_from_positional([1, 2, 3], ("a", "b"), ())

    def test_scalar_rejected(self):
        with pytest.raises(ValueError, match="expected a sequence or a mapping"):
            keyed_from_positional(1, ("a",), ())

    def test_empty_forms(self):
        assert empty_positional([]) == {}
        assert empty_positional({}) == {}

    def test_empty_rejects_values(self):
        with pytest.raises(ValueError, match="invalid sequence length"):
            empty_positional([1])


class TestFixedFields:
    """Test constant field checks and the query-version offset."""

    def test_fixed_stripped(self):
        assert check_fixed_field({"type": "INVOKE", "a": 1}, "type", "INVOKE") == {"a": 1}

    def test_fixed_wrong_value(self):
        with pytest.raises(ValueError, match="invalid `type` value"):
            check_fixed_field({"type": "DECLARE"}, "type", "INVOKE")

    def test_fixed_missing_allowed(self):
        assert check_fixed_field({"a": 1}, "type", "INVOKE") == {"a": 1}

    def test_fixed_missing_required(self):
        with pytest.raises(ValueError, match="missing field `type`"):
            check_fixed_field({"a": 1}, "type", "INVOKE", required=True)

    def test_fixed_hex_compared_numerically(self):
        assert check_fixed_field({"version": "0x01"}, "version", "0x1") == {}

    def test_query_version_plain(self):
        assert check_query_version({"version": "0x1"}, "version", "0x1") == {"is_query": False}

    def test_query_version_offset(self):
        data = {"version": hex(1 + QUERY_VERSION_OFFSET)}
        assert check_query_version(data, "version", "0x1") == {"is_query": True}

    def test_query_version_other(self):
        with pytest.raises(ValueError, match="invalid `version` value"):
            check_query_version({"version": "0x2"}, "version", "0x1")

    def test_fixed_query_version(self):
        assert fixed_query_version("0x1", False) == "0x1"
        assert fixed_query_version("0x1", True) == "0x100000000000000000000000000000001"

    def test_with_fixed_fields_order(self):
        data = with_fixed_fields({"a": 1, "b": 2}, {"type": "X"}, ("a", "type", "b"))
        assert list(data) == ["a", "type", "b"]


class TestWireContext:
    """Test which entry points count as wire decoding."""

    def test_keyword_construction(self):
        assert _WireFlag.model_validate({}).wire is False

    def test_json_input(self):
        assert _WireFlag.model_validate_json("{}").wire is True

    def test_from_wire(self):
        assert from_wire(_WireFlag, {}).wire is True


class TestFlattening:
    """Test merging nested fragment objects into their parent."""

    def test_wire_keys(self):
        assert wire_keys(_Inner) == {"sender_address", "nonce"}
        assert wire_keys(_Outer) == {"sender_address", "nonce", "calldata"}
        assert wire_keys(int) is None

    def test_unflatten(self):
        data = {"sender_address": 1, "nonce": 2, "calldata": [3]}
        assert unflatten_fields(_Outer, data) == {
            "calldata": [3],
            "inner": {"sender_address": 1, "nonce": 2},
        }

    def test_already_nested(self):
        data = {"inner": {"sender_address": 1, "nonce": 2}, "calldata": []}
        assert unflatten_fields(_Outer, data) is data

    def test_flatten(self):
        data = {"inner": {"sender_address": 1, "nonce": 2}, "calldata": [3]}
        assert flatten_fields(_Outer, data) == {"sender_address": 1, "nonce": 2, "calldata": [3]}


class TestToWire:
    def test_model(self):
        assert to_wire(_Inner(sender_address=1, nonce=2)) == {"sender_address": 1, "nonce": 2}

    def test_with_type(self):
        assert to_wire([1, 2], list[UfeHex]) == ["0x1", "0x2"]
