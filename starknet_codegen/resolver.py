"""Resolve the named schema dictionary into generated types.

One forward pass over components.schemas, in dictionary order. Each name
becomes one of:
- nothing (ignored, overridden, flatten-only or an unsupported oneOf)
- an alias (a $ref that is not flattened)
- a struct, enum, wrapper or unit type

The error catalogue and one request holder per method are added after the
pass. Resolution is a pure function of (specification, profile, tables).
"""

from __future__ import annotations

import dataclasses
import logging
from collections import Counter
from typing import Iterable, Mapping

from .errors import GenerationError
from .field_types import map_error_data_type, map_field_type
from .flatten import FlattenPolicy, get_flatten_only_schemas
from .ir import (
    EnumKind,
    ResolutionResult,
    ResolvedAlias,
    ResolvedField,
    ResolvedType,
    StructKind,
    TypeKind,
    UnitKind,
    Variant,
    WrapperKind,
)
from .naming import escape_identifier, to_doc, to_field_name, to_request_name, to_type_name
from .overrides import DEFAULT_TABLES, Tables
from .profiles import GenerationProfile
from .spec import (
    AllOf,
    ArrayPrimitive,
    ErrorEntry,
    Method,
    ObjectPrimitive,
    OneOf,
    Reference,
    Schema,
    Specification,
    StringPrimitive,
    description_of,
    doc_of,
    summary_of,
    title_of,
)

logger = logging.getLogger(__name__)

ERROR_TYPE_TITLE = "JSON-RPC error codes"


def _lookup(schemas: Mapping[str, Schema], name: str) -> Schema:
    try:
        return schemas[name]
    except KeyError:
        raise GenerationError(f"Ref target type not found: {name}") from None


def _references(schema: Schema) -> Iterable[str]:
    """Yield every $ref name reachable inside schema without following refs."""
    if isinstance(schema, Reference):
        yield schema.name
    elif isinstance(schema, OneOf):
        for option in schema.one_of:
            yield from _references(option)
    elif isinstance(schema, AllOf):
        for fragment in schema.all_of:
            yield from _references(fragment)
    elif isinstance(schema, ObjectPrimitive):
        for prop in schema.properties.values():
            yield from _references(prop)
    elif isinstance(schema, ArrayPrimitive):
        yield from _references(schema.items)


def check_references(spec: Specification) -> None:
    """Fail on the first $ref that names a schema missing from the dictionary."""
    schemas = spec.components.schemas
    owners: list[tuple[str, Schema]] = list(schemas.items())
    for method in spec.methods:
        owners.extend((f"{method.name}({p.name})", p.schema_) for p in method.params)
        owners.append((f"{method.name} result", method.result.schema_))
    for name, error in spec.components.errors.items():
        if isinstance(error, ErrorEntry) and error.data is not None:
            owners.append((f"error {name}", error.data))

    for owner, schema in owners:
        for ref in _references(schema):
            if ref not in schemas:
                raise GenerationError(f"Ref target type not found: {ref} (referenced by {owner})")


def _check_identifier(name: str, what: str) -> str:
    if not name.isidentifier() or name.startswith("_"):
        raise GenerationError(f"{what} {name!r} is not a valid Python identifier")
    return name


def _string_enum_variants(
    values: Iterable[str], owner: str, renames: Mapping[str, str],
) -> tuple[Variant, ...]:
    variants = tuple(
        Variant(name=escape_identifier(to_type_name(value, renames)), wire_name=value)
        for value in values
    )
    for variant in variants:
        _check_identifier(variant.name, f"Enum member of {owner}")
    duplicates = [n for n, count in Counter(v.name for v in variants).items() if count > 1]
    if duplicates:
        raise GenerationError(f"Duplicate enum members in {owner}: {sorted(duplicates)}")
    return variants


def _one_of_enum_values(
    one_of: OneOf, schemas: Mapping[str, Schema],
) -> list[str] | None:
    """Return the merged values when every option is a $ref to a string enum."""
    values: list[str] = []
    for option in one_of.one_of:
        if not isinstance(option, Reference):
            return None
        target = _lookup(schemas, option.name)
        if not isinstance(target, StringPrimitive) or target.enum is None:
            return None
        values.extend(target.enum)
    return values or None


class _Resolver:
    """Holds the inputs shared by every step of one resolution run."""

    def __init__(self, spec: Specification, profile: GenerationProfile, tables: Tables):
        self.spec = spec
        self.schemas = spec.components.schemas
        self.profile = profile
        self.policy: FlattenPolicy = profile.flatten_policy
        self.tables = tables

    # -- fields ---------------------------------------------------------

    def collect_fields(
        self,
        schema: Schema,
        owner: str,
        fields: list[ResolvedField],
        visiting: frozenset[str] = frozenset(),
    ) -> None:
        """Append the fields schema contributes, inlining flattened fragments."""
        if isinstance(schema, Reference):
            if schema.name in visiting:
                raise GenerationError(f"Reference cycle through {schema.name} while resolving {owner}")
            target = _lookup(self.schemas, schema.name)
            self.collect_fields(target, owner, fields, visiting | {schema.name})

        elif isinstance(schema, AllOf):
            for fragment in schema.all_of:
                if isinstance(fragment, Reference) and not self.policy.should_flatten(fragment.name):
                    _lookup(self.schemas, fragment.name)
                    name = self.tables.all_of_field_names.get(fragment.name, fragment.name.lower())
                    fields.append(ResolvedField(
                        name=_check_identifier(escape_identifier(name), f"Field of {owner}"),
                        type_name=to_type_name(fragment.name, self.tables.type_renames),
                        description=fragment.description,
                        flatten=True,
                    ))
                else:
                    self.collect_fields(fragment, owner, fields, visiting)

        elif isinstance(schema, ObjectPrimitive):
            required = set(schema.required or ())
            for wire_name, prop in schema.properties.items():
                try:
                    field_type = map_field_type(prop, self.tables)
                except GenerationError as exc:
                    raise GenerationError(f"{owner}.{wire_name}: {exc}") from exc

                name = escape_identifier(to_field_name(wire_name))
                _check_identifier(name, f"Field of {owner}")
                doc = doc_of(prop)
                fields.append(ResolvedField(
                    name=name,
                    type_name=field_type.type_name,
                    optional=wire_name not in required,
                    description=to_doc(doc, False, self.tables.doc_substitutions) if doc else None,
                    rename=None if name == wire_name else wire_name,
                    codec=field_type.codec,
                ))

        else:
            raise GenerationError(
                f"Unexpected schema type when getting object fields of {owner}: {type(schema).__name__}"
            )

    def struct_fields(self, schema: Schema, type_name: str) -> tuple[ResolvedField, ...]:
        fields: list[ResolvedField] = []
        self.collect_fields(schema, type_name, fields)

        duplicates = [n for n, count in Counter(f.name for f in fields).items() if count > 1]
        if duplicates:
            raise GenerationError(f"Duplicate fields in {type_name}: {sorted(duplicates)}")

        return tuple(
            dataclasses.replace(
                f,
                fixed=self.profile.fixed_field(type_name, f.name),
                shared=self.profile.is_shared(type_name, f.name),
            )
            for f in fields
        )

    # -- named schemas --------------------------------------------------

    def resolve_kind(
        self,
        name: str,
        schema: Schema,
        type_name: str,
        visiting: frozenset[str] = frozenset(),
    ) -> TypeKind | ResolvedAlias | None:
        """Decide what a named schema becomes. None means not implemented."""
        if isinstance(schema, Reference):
            if not self.policy.should_flatten(schema.name):
                _lookup(self.schemas, schema.name)
                return ResolvedAlias(type_name, to_type_name(schema.name, self.tables.type_renames))
            if schema.name in visiting or schema.name == name:
                raise GenerationError(f"Reference cycle through {schema.name} while resolving {name}")
            target = _lookup(self.schemas, schema.name)
            return self.resolve_kind(name, target, type_name, visiting | {schema.name})

        capabilities = self.profile.capabilities_for(type_name)

        if isinstance(schema, OneOf):
            values = _one_of_enum_values(schema, self.schemas)
            if values is None:
                return None
            variants = _string_enum_variants(values, type_name, self.tables.type_renames)
            return EnumKind(variants, capabilities=capabilities)

        if isinstance(schema, (AllOf, ObjectPrimitive)):
            return StructKind(
                fields=self.struct_fields(schema, type_name),
                allow_unknown_fields=name in self.profile.allow_unknown_field_types,
                hybrid=type_name in self.profile.hybrid_types,
                capabilities=capabilities,
            )

        if isinstance(schema, StringPrimitive):
            if schema.enum is not None:
                variants = _string_enum_variants(schema.enum, type_name, self.tables.type_renames)
                return EnumKind(variants, capabilities=capabilities)
            return WrapperKind("str")

        raise GenerationError(
            f"Unexpected schema type when generating struct/enum for {name}: {type(schema).__name__}"
        )

    def error_type(self) -> ResolvedType:
        type_name = self.profile.error_type_name
        variants = []
        for name, entry in self.spec.components.errors.items():
            if not isinstance(entry, ErrorEntry):
                raise GenerationError(f"Error redirection not implemented: {name} -> {entry.ref}")
            wraps = None
            if entry.data is not None:
                try:
                    wraps = map_error_data_type(entry.data, self.tables)
                except GenerationError as exc:
                    raise GenerationError(f"error {name}: {exc}") from exc
            variants.append(Variant(
                name=_check_identifier(escape_identifier(to_type_name(name, self.tables.type_renames)),
                                       f"Variant of {type_name}"),
                description=entry.message,
                error_code=entry.code,
                error_text=entry.message,
                wraps=wraps,
            ))

        duplicates = [c for c, count in Counter(v.error_code for v in variants).items() if count > 1]
        if duplicates:
            raise GenerationError(f"Duplicate error codes in {type_name}: {sorted(duplicates)}")
        duplicates = [n for n, count in Counter(v.name for v in variants).items() if count > 1]
        if duplicates:
            raise GenerationError(f"Duplicate variants in {type_name}: {sorted(duplicates)}")

        return ResolvedType(
            name=type_name,
            title=ERROR_TYPE_TITLE,
            content=EnumKind(tuple(variants), is_error=True,
                             capabilities=self.profile.capabilities_for(type_name)),
        )

    def request_type(self, method: Method) -> ResolvedType:
        type_name = to_request_name(method.name, self.profile.method_prefix, self.tables.type_renames)
        _check_identifier(type_name, "Request type")

        fields = []
        for param in method.params:
            try:
                field_type = map_field_type(param.schema_, self.tables)
            except GenerationError as exc:
                raise GenerationError(f"{method.name}({param.name}): {exc}") from exc
            name = escape_identifier(to_field_name(param.name))
            _check_identifier(name, f"Parameter of {method.name}")
            fields.append(ResolvedField(
                name=name,
                type_name=field_type.type_name,
                optional=not param.required,
                description=(to_doc(param.description, False, self.tables.doc_substitutions)
                             if param.description else None),
                rename=None if name == param.name else param.name,
                codec=field_type.codec,
            ))

        duplicates = [n for n, count in Counter(f.name for f in fields).items() if count > 1]
        if duplicates:
            raise GenerationError(f"Duplicate parameters in {method.name}: {sorted(duplicates)}")

        if fields:
            content: TypeKind = StructKind(
                fields=tuple(fields),
                hybrid=True,
                extra_ref_type=True,
                capabilities=self.profile.capabilities_for(type_name),
            )
        else:
            content = UnitKind(hybrid=True)

        return ResolvedType(name=type_name, title=f"Request for method {method.name}", content=content)


def _check_unique_names(result: ResolutionResult) -> None:
    names = [t.name for t in result.model_types]
    names += [a.name for a in result.aliases]
    names += [t.name for t in result.request_types]
    names += [f"{t.name}Ref" for t in result.request_types
              if isinstance(t.content, StructKind) and t.content.extra_ref_type]
    if result.error_type is not None:
        names.append(result.error_type.name)

    duplicates = [n for n, count in Counter(names).items() if count > 1]
    if duplicates:
        raise GenerationError(f"Generated type names collide: {sorted(duplicates)}")


def resolve_types(
    spec: Specification,
    profile: GenerationProfile,
    tables: Tables = DEFAULT_TABLES,
) -> ResolutionResult:
    """Build the generated type model for a specification."""
    check_references(spec)

    resolver = _Resolver(spec, profile, tables)
    result = ResolutionResult()
    schemas = spec.components.schemas

    flatten_only = get_flatten_only_schemas(schemas, resolver.policy, tables.non_flatten_schemas)
    ignored = set(profile.ignore_types)

    for name, schema in schemas.items():
        if name in ignored or name in tables.field_type_overrides or name in flatten_only:
            logger.debug("Skipping %s", name)
            continue

        type_name = _check_identifier(to_type_name(name, tables.type_renames), "Type name")
        kind = resolver.resolve_kind(name, schema, type_name)

        if kind is None:
            logger.warning("OneOf enum generation not implemented. Enum not generated for %s", name)
            result.not_implemented.append(name)
            continue

        if isinstance(kind, ResolvedAlias):
            result.aliases.append(kind)
            continue

        title = title_of(schema)
        description = description_of(schema) or summary_of(schema)
        result.model_types.append(ResolvedType(
            name=type_name,
            content=kind,
            title=to_doc(title, True, tables.doc_substitutions) if title else None,
            description=to_doc(description, True, tables.doc_substitutions) if description else None,
        ))

    result.error_type = resolver.error_type()
    result.request_types = [resolver.request_type(method) for method in spec.methods]

    result.model_types.sort(key=lambda t: t.name)
    result.request_types.sort(key=lambda t: t.name)
    result.not_implemented.sort()

    _check_unique_names(result)

    logger.info(
        "Resolved %d types, %d aliases, %d requests, %d errors (%d not implemented)",
        len(result.model_types),
        len(result.aliases),
        len(result.request_types),
        len(result.error_type.content.variants),
        len(result.not_implemented),
    )
    return result
