"""Intermediate representation produced by the resolver and consumed by codegen.

Every resolved schema becomes a ResolvedType whose content is exactly one of
StructKind, EnumKind, WrapperKind or UnitKind. Schemas kept as plain name
substitutions become ResolvedAlias entries instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class Codec:
    """A named external codec from the runtime module.

    Verbatim codecs wrap the field's declared type as-is and cannot be
    threaded through arrays. Non-verbatim codecs are type expressions that
    replace the declared type and compose with containers (``list[UfeHex]``).
    """

    name: str
    verbatim: bool = False


@dataclass(frozen=True)
class FieldType:
    type_name: str
    codec: Codec | None = None


@dataclass(frozen=True)
class FixedField:
    """A field whose wire value is a constant rather than caller data.

    ``value`` is the literal JSON wire value. A query-version field also
    accepts ``value + QUERY_VERSION_OFFSET`` and records which one it saw in
    the struct's ``is_query`` flag.
    """

    name: str
    value: Any
    query_version: bool = False
    must_be_present: bool = True


@dataclass(frozen=True)
class ResolvedField:
    name: str
    type_name: str
    optional: bool = False
    description: str | None = None
    rename: str | None = None
    flatten: bool = False
    codec: Codec | None = None
    fixed: FixedField | None = None
    shared: bool = False

    @property
    def wire_name(self) -> str:
        return self.rename or self.name


@dataclass(frozen=True)
class StructKind:
    fields: tuple[ResolvedField, ...]
    allow_unknown_fields: bool = False
    hybrid: bool = False
    extra_ref_type: bool = False
    capabilities: tuple[str, ...] = ()

    @property
    def has_query_version(self) -> bool:
        return any(f.fixed is not None and f.fixed.query_version for f in self.fields)

    def needs_custom_serde(self) -> bool:
        return self.hybrid or any(f.fixed is not None for f in self.fields)


@dataclass(frozen=True)
class Variant:
    name: str
    wire_name: str | None = None
    description: str | None = None
    error_code: int | None = None
    error_text: str | None = None
    wraps: FieldType | None = None


@dataclass(frozen=True)
class EnumKind:
    variants: tuple[Variant, ...]
    is_error: bool = False
    capabilities: tuple[str, ...] = ()

    def needs_custom_serde(self) -> bool:
        return False


@dataclass(frozen=True)
class WrapperKind:
    type_name: str

    def needs_custom_serde(self) -> bool:
        return False


@dataclass(frozen=True)
class UnitKind:
    hybrid: bool = False

    def needs_custom_serde(self) -> bool:
        return self.hybrid


TypeKind = Union[StructKind, EnumKind, WrapperKind, UnitKind]


@dataclass(frozen=True)
class ResolvedType:
    name: str
    content: TypeKind
    title: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ResolvedAlias:
    name: str
    target: str


@dataclass
class ResolutionResult:
    model_types: list[ResolvedType] = field(default_factory=list)
    aliases: list[ResolvedAlias] = field(default_factory=list)
    error_type: ResolvedType | None = None
    request_types: list[ResolvedType] = field(default_factory=list)
    not_implemented: list[str] = field(default_factory=list)
