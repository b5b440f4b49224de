"""Map property and parameter schemas to generated field types.

Rules, in order:
- $ref to a schema in the override table -> the override
- any other $ref -> the referenced type's generated name
- array -> list[item], composing the item's codec
- boolean -> bool, integer -> int
- string mentioning "base64" in its description -> bytes with the base64 codec
- strings with an inline enum -> Literal[...] of the values
- other strings -> str
Anonymous objects, oneOf and allOf must be named schemas to be used here.
"""

from __future__ import annotations

import json

from .errors import GenerationError
from .ir import Codec, FieldType
from .naming import to_type_name
from .overrides import DEFAULT_TABLES, Tables
from .spec import (
    AllOf,
    ArrayPrimitive,
    BooleanPrimitive,
    IntegerPrimitive,
    ObjectPrimitive,
    OneOf,
    Reference,
    Schema,
    StringPrimitive,
)

BASE64_CODEC = Codec("base64", verbatim=True)


def map_field_type(schema: Schema, tables: Tables = DEFAULT_TABLES) -> FieldType:
    """Resolve the generated type (and codec) for a field's schema."""
    if isinstance(schema, Reference):
        override = tables.field_type_overrides.get(schema.name)
        if override is not None:
            return override
        return FieldType(to_type_name(schema.name, tables.type_renames))

    if isinstance(schema, OneOf):
        raise GenerationError("Anonymous oneOf types should not be used for properties")
    if isinstance(schema, AllOf):
        raise GenerationError("Anonymous allOf types should not be used for properties")
    if isinstance(schema, ObjectPrimitive):
        raise GenerationError("Anonymous object types should not be used for properties")

    if isinstance(schema, ArrayPrimitive):
        item = map_field_type(schema.items, tables)
        codec = None
        if item.codec is not None:
            if item.codec.verbatim:
                raise GenerationError(
                    f"Array wrapper for verbatim codec {item.codec.name!r} not supported"
                )
            codec = Codec(f"list[{item.codec.name}]")
        return FieldType(f"list[{item.type_name}]", codec)

    if isinstance(schema, BooleanPrimitive):
        return FieldType("bool")
    if isinstance(schema, IntegerPrimitive):
        return FieldType("int")

    if isinstance(schema, StringPrimitive):
        # The spec has no content-encoding annotation; the description is all we have.
        if schema.description and "base64" in schema.description:
            return FieldType("bytes", BASE64_CODEC)
        if schema.enum:
            values = ", ".join(json.dumps(value) for value in schema.enum)
            return FieldType(f"Literal[{values}]")
        return FieldType("str")

    raise GenerationError(f"Unexpected schema type for field: {type(schema).__name__}")


def map_error_data_type(schema: Schema, tables: Tables = DEFAULT_TABLES) -> FieldType:
    """Resolve the payload type of an error catalogue entry.

    References name the generated type directly, without the override table.
    """
    if isinstance(schema, Reference):
        return FieldType(to_type_name(schema.name, tables.type_renames))
    if isinstance(schema, OneOf):
        raise GenerationError("Anonymous oneOf types should not be used for error data")
    if isinstance(schema, AllOf):
        raise GenerationError("Anonymous allOf types should not be used for error data")
    return map_field_type(schema, tables)


def annotation_for(field_type: FieldType) -> str:
    """Render the Python annotation carrying a field type and its codec."""
    codec = field_type.codec
    if codec is None:
        return field_type.type_name
    if codec.verbatim:
        return f"Annotated[{field_type.type_name}, {codec.name}]"
    return codec.name
