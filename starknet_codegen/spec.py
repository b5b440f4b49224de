"""Schema model for OpenRPC-style Starknet specification documents.

Parsing is strict: every object rejects unknown keys, so a protocol field
added upstream fails loudly instead of being silently dropped.

Handles:
- Methods with their parameters, result and declared errors
- Named schemas: $ref, oneOf, allOf and the primitive shapes
- The error catalogue (inline errors or $ref redirections)
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Strict(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Empty(_Strict):
    """An object that must not carry any key."""


class Info(_Strict):
    version: str
    title: str
    license: Empty | None = None


class Reference(_Strict):
    title: str | None = None
    comment: str | None = Field(default=None, alias="$comment")
    description: str | None = None
    ref: str = Field(alias="$ref")

    @property
    def name(self) -> str:
        """Name of the referenced schema, i.e. the last segment of the pointer."""
        return self.ref.rsplit("/", 1)[-1]


class OneOf(_Strict):
    title: str | None = None
    description: str | None = None
    one_of: list[Schema]


class AllOf(_Strict):
    title: str | None = None
    description: str | None = None
    all_of: list[Schema]


class ArrayPrimitive(_Strict):
    type: Literal["array"]
    title: str | None = None
    description: str | None = None
    items: Schema


class BooleanPrimitive(_Strict):
    type: Literal["boolean"]
    description: str


class IntegerPrimitive(_Strict):
    type: Literal["integer"]
    description: str | None = None
    minimum: int | None = None


class ObjectPrimitive(_Strict):
    type: Literal["object"]
    title: str | None = None
    description: str | None = None
    summary: str | None = None
    properties: dict[str, Schema]
    required: list[str] | None = None


class StringPrimitive(_Strict):
    type: Literal["string"]
    title: str | None = None
    comment: str | None = Field(default=None, alias="$comment")
    description: str | None = None
    enum: list[str] | None = None
    pattern: str | None = None


Primitive = Annotated[
    Union[ArrayPrimitive, BooleanPrimitive, IntegerPrimitive, ObjectPrimitive, StringPrimitive],
    Field(discriminator="type"),
]

Schema = Union[Reference, OneOf, AllOf, Primitive]


class Param(_Strict):
    name: str
    description: str | None = None
    summary: str | None = None
    required: bool
    schema_: Schema = Field(alias="schema")


class MethodResult(_Strict):
    name: str
    description: str | None = None
    summary: str | None = None
    schema_: Schema = Field(alias="schema")


class Method(_Strict):
    name: str
    summary: str
    description: str | None = None
    param_structure: str | None = None
    params: list[Param]
    result: MethodResult
    errors: list[Reference] | None = None


class ErrorEntry(_Strict):
    code: int
    message: str
    data: Schema | None = None


ErrorType = Union[ErrorEntry, Reference]


class Components(_Strict):
    content_descriptors: Empty | None = None
    schemas: dict[str, Schema]
    errors: dict[str, ErrorType] = Field(default_factory=dict)


class Specification(_Strict):
    openrpc: str
    info: Info
    servers: list[str] = Field(default_factory=list)
    methods: list[Method]
    components: Components


for _model in (OneOf, AllOf, ArrayPrimitive, ObjectPrimitive, Param, MethodResult,
               Method, ErrorEntry, Components, Specification):
    _model.model_rebuild()


def title_of(schema: Schema) -> str | None:
    """Return the schema's title, if its shape carries one."""
    if isinstance(schema, (BooleanPrimitive, IntegerPrimitive)):
        return None
    return schema.title


def description_of(schema: Schema) -> str | None:
    """Return the schema's description."""
    return schema.description


def summary_of(schema: Schema) -> str | None:
    """Return the schema's summary. Only object primitives have one."""
    if isinstance(schema, ObjectPrimitive):
        return schema.summary
    return None


def doc_of(schema: Schema) -> str | None:
    """Pick the best single-line doc: description, then title, then summary."""
    return description_of(schema) or title_of(schema) or summary_of(schema)
