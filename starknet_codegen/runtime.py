"""Support code imported by generated model modules.

Generated models stay declarative: every wire rule that needs code (felt and
hex codecs, positional requests, fixed fields, the query-version offset,
flattened fragments) lives here as a small helper working on plain JSON
values. Generated validators and serializers only call these helpers with
per-type constants.
"""

from __future__ import annotations

import binascii
from base64 import b64decode, b64encode
from collections.abc import Collection, Mapping, Sequence
from typing import Annotated, Any, Callable, ClassVar, NamedTuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler, TypeAdapter, ValidationInfo
from pydantic_core import core_schema

# Order of the Stark field; every felt is reduced modulo this prime.
STARK_PRIME = 2**251 + 17 * 2**192 + 1

# Added to a transaction version to mark a query-only (non-executable) variant.
QUERY_VERSION_OFFSET = 2**128

WIRE_CONTEXT: dict[str, Any] = {"wire": True}

T = TypeVar("T")


class Codec:
    """Decode and encode functions attached to a type through ``Annotated``.

    Decoding runs before the annotated type's own validation; encoding
    replaces its serialization in JSON mode only, so ``model_dump()`` keeps
    native Python values.
    """

    def __init__(self, decode: Callable[[Any], Any], encode: Callable[[Any], Any], name: str):
        self.decode = decode
        self.encode = encode
        self.name = name

    def __get_pydantic_core_schema__(self, source_type: Any, handler: GetCoreSchemaHandler):
        return core_schema.no_info_before_validator_function(
            self.decode,
            handler(source_type),
            serialization=core_schema.plain_serializer_function_ser_schema(
                self.encode, when_used="json",
            ),
        )

    def __repr__(self) -> str:
        return f"Codec({self.name})"


def _parse_hex(value: Any, what: str) -> Any:
    if isinstance(value, bool):
        raise ValueError(f"{what} must be a number or 0x-prefixed hex text")
    if isinstance(value, str):
        if not value.startswith("0x"):
            raise ValueError(f"{what} must be 0x-prefixed hex text, got {value!r}")
        try:
            return int(value, 16)
        except ValueError:
            raise ValueError(f"invalid {what}: {value!r}") from None
    return value


def parse_felt(value: Any) -> Any:
    value = _parse_hex(value, "felt")
    if isinstance(value, int) and not 0 <= value < STARK_PRIME:
        raise ValueError("felt out of range")
    return value


def parse_num_as_hex(value: Any) -> Any:
    value = _parse_hex(value, "number")
    if isinstance(value, int) and value < 0:
        raise ValueError("number must not be negative")
    return value


def format_hex(value: int) -> str:
    return hex(value)


def _fixed_width_hex(width: int, what: str) -> Callable[[Any], str]:
    def parse(value: Any) -> str:
        number = _parse_hex(value, what)
        if not isinstance(number, int) or number < 0 or number.bit_length() > width * 4:
            raise ValueError(f"invalid {what}: {value!r}")
        return f"0x{number:0{width}x}"

    return parse


def decode_base64(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return b64decode(value, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"invalid base64 text: {exc}") from None
    return value


def encode_base64(value: bytes) -> str:
    return b64encode(value).decode("ascii")


Felt = int
UfeHex = Annotated[int, Codec(parse_felt, format_hex, "UfeHex")]
NumAsHex = Annotated[int, Codec(parse_num_as_hex, format_hex, "NumAsHex")]
EthAddress = Annotated[str, Codec(_fixed_width_hex(40, "Ethereum address"), str, "EthAddress")]
Hash256 = Annotated[str, Codec(_fixed_width_hex(64, "256-bit hash"), str, "Hash256")]

# Verbatim codec: used as ``Annotated[bytes, base64]``.
base64 = Codec(decode_base64, encode_base64, "base64")

# A field holding a possibly deep sub-structure shared with other values.
OwnedPtr = Annotated[T, Field(repr=False)]


class RpcModel(BaseModel):
    """Base class of every generated struct."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    # Fields whose keys are merged into this object on the wire.
    wire_flattened: ClassVar[tuple[str, ...]] = ()
    # Wire names of constant fields, which are not model attributes.
    wire_fixed: ClassVar[tuple[str, ...]] = ()

    def to_wire(self) -> Any:
        return to_wire(self)

    @classmethod
    def from_wire(cls: type[T], value: Any) -> T:
        return from_wire(cls, value)


def to_wire(value: Any, tp: Any = None) -> Any:
    """Serialize a generated value to its JSON-compatible wire form."""
    if tp is None and isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    adapter = TypeAdapter(tp if tp is not None else type(value))
    return adapter.dump_python(value, mode="json", by_alias=True, exclude_none=True)


def from_wire(tp: Any, value: Any) -> Any:
    """Decode a wire value strictly: fixed fields must be present."""
    if isinstance(tp, type) and issubclass(tp, BaseModel):
        return tp.model_validate(value, context=WIRE_CONTEXT)
    return TypeAdapter(tp).validate_python(value, context=WIRE_CONTEXT)


def in_wire_context(info: ValidationInfo) -> bool:
    """JSON input and `from_wire` decoding are wire decoding; keyword construction is not."""
    if info.mode == "json":
        return True
    context = info.context
    return isinstance(context, Mapping) and bool(context.get("wire"))


def _as_number(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.startswith("0x"):
        try:
            return int(value, 16)
        except ValueError:
            return None
    return None


def _same_value(seen: Any, literal: Any) -> bool:
    expected = _as_number(literal)
    if expected is not None:
        return _as_number(seen) == expected
    return seen == literal


def keyed_from_positional(value: Any, names: Sequence[str], optional: Collection[str]) -> Any:
    """Turn a positional request into a keyed one.

    Mappings pass through. A sequence fills names in order; only a trailing
    run of optional names may be left out.
    """
    if isinstance(value, Mapping):
        return value
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"expected a sequence or a mapping, got {type(value).__name__}")
    if len(value) > len(names):
        raise ValueError(f"invalid sequence length: {len(value)} (at most {len(names)})")
    missing = [name for name in names[len(value):] if name not in optional]
    if missing:
        raise ValueError(f"invalid sequence length: {len(value)} (missing {', '.join(missing)})")
    return dict(zip(names, value))


def empty_positional(value: Any) -> dict[str, Any]:
    """Accept the wire forms of a field-less request: [] or {}."""
    if isinstance(value, (list, tuple, Mapping)) and len(value) == 0:
        return {}
    raise ValueError("invalid sequence length: expected an empty sequence")


def check_fixed_field(data: Any, name: str, literal: Any, required: bool = False) -> Any:
    """Validate a constant field and strip it from the input."""
    if not isinstance(data, Mapping):
        return data
    if name not in data:
        if required:
            raise ValueError(f"missing field `{name}`")
        return data
    if not _same_value(data[name], literal):
        raise ValueError(f"invalid `{name}` value: {data[name]!r} (expected {literal!r})")
    return {key: value for key, value in data.items() if key != name}


def check_query_version(data: Any, name: str, literal: str, required: bool = False) -> Any:
    """Validate a query-variant version field, recording which variant it was."""
    if not isinstance(data, Mapping):
        return data
    if name not in data:
        if required:
            raise ValueError(f"missing field `{name}`")
        return data

    expected = _as_number(literal)
    seen = _as_number(data[name])
    if seen == expected:
        is_query = False
    elif seen is not None and seen == expected + QUERY_VERSION_OFFSET:
        is_query = True
    else:
        raise ValueError(f"invalid `{name}` value: {data[name]!r}")

    result = {key: value for key, value in data.items() if key != name}
    result["is_query"] = is_query
    return result


def fixed_query_version(literal: str, is_query: bool) -> str:
    if is_query:
        return hex(int(literal, 16) + QUERY_VERSION_OFFSET)
    return literal


def with_fixed_fields(data: Any, fixed: Mapping[str, Any], order: Sequence[str]) -> Any:
    """Insert constant fields, keeping the declared key order."""
    if not isinstance(data, Mapping):
        return data
    merged = {**data, **fixed}
    result = {key: merged[key] for key in order if key in merged}
    for key, value in merged.items():
        result.setdefault(key, value)
    return result


def wire_keys(tp: Any) -> frozenset[str] | None:
    """Return every key a model reads from a flat object, or None if unknown."""
    if not (isinstance(tp, type) and issubclass(tp, RpcModel)):
        return None
    keys = set(tp.wire_fixed)
    for name, info in tp.model_fields.items():
        if name in tp.wire_flattened:
            nested = wire_keys(info.annotation)
            if nested is None:
                return None
            keys |= nested
        else:
            keys.add(info.alias or name)
    return frozenset(keys)


def unflatten_fields(model: type[RpcModel], data: Any) -> Any:
    """Move the keys of flattened fragments into their own nested objects.

    Input that already carries every flattened field as an object or model
    instance is left as is.
    A fragment whose keys cannot be known takes every key left unclaimed.
    """
    if not model.wire_flattened or not isinstance(data, Mapping):
        return data
    if all(isinstance(data.get(name), (Mapping, BaseModel)) for name in model.wire_flattened):
        return data

    own = set()
    for name, info in model.model_fields.items():
        if name not in model.wire_flattened:
            own.update((name, info.alias or name))

    result = {key: value for key, value in data.items() if key in own}
    rest = {key: value for key, value in data.items() if key not in own}
    for name in model.wire_flattened:
        keys = wire_keys(model.model_fields[name].annotation)
        if keys is None:
            result[name], rest = rest, {}
        else:
            result[name] = {key: value for key, value in rest.items() if key in keys}
            rest = {key: value for key, value in rest.items() if key not in keys}
    result.update(rest)
    return result


def flatten_fields(model: type[RpcModel], data: Any) -> Any:
    """Merge nested fragment objects back into the parent, in place of the field."""
    if not model.wire_flattened or not isinstance(data, Mapping):
        return data
    result: dict[str, Any] = {}
    for key, value in data.items():
        if key in model.wire_flattened and isinstance(value, Mapping):
            result.update(value)
        else:
            result[key] = value
    return result


def encode_ref(model: type[RpcModel], ref: NamedTuple) -> Any:
    """Serialize a reference view without validating or copying its values."""
    return to_wire(model.model_construct(**ref._asdict()))


class ProtocolError(Exception):
    """A JSON-RPC error object matched against a generated error enum."""

    def __init__(self, error: Any, data: Any = None, message: str | None = None):
        self.error = error
        self.data = data
        super().__init__(message or error.message)

    @property
    def code(self) -> int:
        return self.error.code

    @classmethod
    def from_response(cls, error_cls: Any, payload: Mapping[str, Any]) -> ProtocolError:
        """Decode ``{"code", "message", "data"}``; unknown codes raise ValueError."""
        try:
            code = payload["code"]
        except KeyError:
            raise ValueError("error object has no `code`") from None
        error = error_cls.from_code(code)
        data = payload.get("data")
        if data is not None and error.data_type is not None:
            data = from_wire(error.data_type, data)
        return cls(error, data, payload.get("message"))
