"""Build Jinja2 template context from the resolved type model.

Turns ResolvedType/ResolvedAlias values into plain dicts for models.py.j2:
annotations, Field(...) arguments, wrapped docstrings, model config entries
and the per-type wire hooks (positional names, fixed fields, flattening).
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable

from .errors import GenerationError
from .field_types import annotation_for
from .ir import (
    EnumKind,
    FieldType,
    ResolutionResult,
    ResolvedAlias,
    ResolvedField,
    ResolvedType,
    StructKind,
    UnitKind,
    WrapperKind,
)
from .naming import MAX_LINE_LENGTH, camel_to_snake, wrap_doc
from .profiles import GenerationProfile

logger = logging.getLogger(__name__)

# Names generated code imports from the runtime module.
RUNTIME_IMPORTS = (
    "EthAddress",
    "Felt",
    "Hash256",
    "NumAsHex",
    "OwnedPtr",
    "RpcModel",
    "UfeHex",
    "base64",
    "check_fixed_field",
    "check_query_version",
    "empty_positional",
    "encode_ref",
    "fixed_query_version",
    "flatten_fields",
    "in_wire_context",
    "keyed_from_positional",
    "unflatten_fields",
    "with_fixed_fields",
)

RUNTIME_MODULE = "starknet_codegen.runtime"

QUERY_FLAG_DOC = "If set to `True`, uses a query-only transaction version that's invalid for execution."

# Indent plus the quotes of a docstring line.
_DOC_PREFIX = 4 + 6

# Text before a class variable's value in a generated struct.
_CLASS_VAR_PREFIX = "{}: ClassVar[tuple[str, ...]] = "

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_STRING_LITERAL = re.compile(r'"(?:[^"\\]|\\.)*"')

# Names an annotation may use without the module defining them.
_BUILTIN_NAMES = frozenset({
    "Annotated", "Any", "Literal", "None",
    "bool", "bytes", "dict", "float", "int", "list", "str", "tuple",
})


def py_literal(value: Any) -> str:
    """Render a JSON value as a Python literal using double-quoted strings."""
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, (bool, int, float)) or value is None:
        return repr(value)
    if isinstance(value, list):
        return "[" + ", ".join(py_literal(item) for item in value) + "]"
    if isinstance(value, dict):
        items = ", ".join(f"{json.dumps(str(k))}: {py_literal(v)}" for k, v in value.items())
        return "{" + items + "}"
    raise GenerationError(f"Fixed value {value!r} is not a JSON value")


def format_sequence(
    items: Iterable[str], indent: int, open_: str = "(", close: str = ")", prefix: int = 0,
) -> str:
    """Render literal items on one line, or one per line when too long.

    prefix counts the characters sharing the first line with the opening
    bracket. A single item in a tuple gets the trailing comma a one-tuple
    needs.
    """
    items = list(items)
    if not items:
        return open_ + close
    trailing = "," if open_ == "(" and len(items) == 1 else ""
    single = open_ + ", ".join(items) + trailing + close
    if indent + prefix + len(single) <= MAX_LINE_LENGTH:
        return single
    pad = " " * (indent + 4)
    lines = [open_] + [f"{pad}{item}," for item in items] + [" " * indent + close]
    return "\n".join(lines)


def escape_doc(text: str) -> str:
    """Make text safe inside a triple-quoted docstring."""
    text = text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if text.endswith('"'):
        text += " "
    return text


def doc_lines(title: str | None, description: str | None, prefix: int = _DOC_PREFIX) -> list[str]:
    """Docstring lines: the title, then a blank line and the description."""
    lines: list[str] = []
    if title:
        lines.extend(wrap_doc(escape_doc(title), prefix))
    if description and description != title:
        if lines:
            lines.append("")
        lines.extend(wrap_doc(escape_doc(description), prefix))
    return lines


def render_docstring(lines: list[str], indent: str = "    ") -> str:
    """Render docstring lines as an indented triple-quoted block, or "" if empty."""
    if not lines:
        return ""
    if len(lines) == 1:
        return f'{indent}"""{lines[0]}"""'
    body = [f'{indent}"""{lines[0]}']
    body.extend(f"{indent}{line}" if line else "" for line in lines[1:])
    body.append(f'{indent}"""')
    return "\n".join(body)


def _docstring(title: str | None, description: str | None) -> str:
    return render_docstring(doc_lines(title, description))


def field_annotation(field: ResolvedField) -> str:
    annotation = annotation_for(FieldType(field.type_name, field.codec))
    if field.optional:
        annotation = f"{annotation} | None"
    # Field metadata only applies at the top level of an annotation.
    if field.shared:
        annotation = f"OwnedPtr[{annotation}]"
    return annotation


def field_default(field: ResolvedField) -> str:
    """Render the ``= ...`` part of a field declaration, possibly empty."""
    if field.rename:
        args = [f"alias={json.dumps(field.rename)}"]
        if field.optional:
            args.insert(0, "default=None")
        return " = Field(" + ", ".join(args) + ")"
    if field.optional:
        return " = None"
    return ""


def _field_context(field: ResolvedField) -> dict[str, Any]:
    return {
        "name": field.name,
        "annotation": field_annotation(field),
        "default": field_default(field),
        "docstring": _docstring(field.description, None),
    }


def _fixed_context(field: ResolvedField) -> dict[str, Any]:
    fixed = field.fixed
    return {
        "wire_name": json.dumps(field.wire_name),
        "literal": py_literal(fixed.value),
        "query_version": fixed.query_version,
        "must_be_present": fixed.must_be_present,
    }


def build_struct(resolved: ResolvedType) -> dict[str, Any]:
    """Build the template context for a struct."""
    struct: StructKind = resolved.content
    fields = [f for f in struct.fields if f.fixed is None]
    fixed = [f for f in struct.fields if f.fixed is not None]
    flattened = [f.name for f in struct.fields if f.flatten]

    config = [f'extra="{"ignore" if struct.allow_unknown_fields else "forbid"}"']
    if "Hash" in struct.capabilities:
        config.append("frozen=True")

    class_vars = []
    if flattened:
        class_vars.append(("wire_flattened", format_sequence(
            (json.dumps(n) for n in flattened), 4, prefix=len(_CLASS_VAR_PREFIX.format("wire_flattened")),
        )))
    if fixed:
        class_vars.append(("wire_fixed", format_sequence(
            (json.dumps(f.wire_name) for f in fixed), 4, prefix=len(_CLASS_VAR_PREFIX.format("wire_fixed")),
        )))

    context: dict[str, Any] = {
        "kind": "struct",
        "name": resolved.name,
        "docstring": _docstring(resolved.title, resolved.description),
        "config": ", ".join(config),
        "class_vars": class_vars,
        "fields": [_field_context(f) for f in fields],
        "has_query_version": struct.has_query_version,
        "query_flag_docstring": render_docstring(wrap_doc(QUERY_FLAG_DOC, _DOC_PREFIX)),
        "hybrid": struct.hybrid,
        "fixed": [_fixed_context(f) for f in fixed],
        "flattened": bool(flattened),
        "ref": None,
    }

    if struct.hybrid:
        context["positional_names"] = format_sequence(
            (json.dumps(f.wire_name) for f in struct.fields), 12,
        )
        context["optional_names"] = format_sequence(
            (json.dumps(f.wire_name) for f in struct.fields if f.optional), 12,
        )

    context["needs_validator"] = bool(struct.hybrid or fixed or flattened)
    context["needs_serializer"] = bool(fixed or flattened)

    if fixed:
        values = []
        for f in fixed:
            literal = py_literal(f.fixed.value)
            if f.fixed.query_version:
                literal = f"fixed_query_version({literal}, self.is_query)"
            values.append(f"{json.dumps(f.wire_name)}: {literal}")
        context["fixed_values"] = format_sequence(values, 12, "{", "}")
        context["wire_order"] = format_sequence(
            (json.dumps(f.wire_name) for f in struct.fields), 12,
        )

    if struct.extra_ref_type:
        context["ref"] = {
            "name": f"{resolved.name}Ref",
            "fields": [
                {"name": f.name, "annotation": field_annotation(f)} for f in fields
            ],
        }

    return context


def build_enum(resolved: ResolvedType) -> dict[str, Any]:
    """Build the template context for a plain string enum."""
    enum: EnumKind = resolved.content
    return {
        "kind": "enum",
        "name": resolved.name,
        "docstring": _docstring(resolved.title, resolved.description),
        "members": [
            {"name": v.name, "value": json.dumps(v.wire_name if v.wire_name is not None else v.name)}
            for v in enum.variants
        ],
    }


def build_wrapper(resolved: ResolvedType) -> dict[str, Any]:
    wrapper: WrapperKind = resolved.content
    return {
        "kind": "wrapper",
        "name": resolved.name,
        "docstring": _docstring(resolved.title, resolved.description),
        "type_name": wrapper.type_name,
    }


def build_unit(resolved: ResolvedType) -> dict[str, Any]:
    unit: UnitKind = resolved.content
    return {
        "kind": "unit",
        "name": resolved.name,
        "docstring": _docstring(resolved.title, resolved.description),
        "hybrid": unit.hybrid,
    }


def build_error_enum(resolved: ResolvedType) -> dict[str, Any]:
    """Build the template context for the protocol error catalogue."""
    enum: EnumKind = resolved.content
    table_prefix = "_" + camel_to_snake(resolved.name).upper()
    return {
        "kind": "error",
        "name": resolved.name,
        "docstring": _docstring(resolved.title, resolved.description),
        "members": [
            {
                "name": v.name,
                "code": v.error_code,
                "message": json.dumps(v.error_text),
                "docstring": _docstring(v.description, None),
                "data_type": annotation_for(v.wraps) if v.wraps is not None else None,
            }
            for v in enum.variants
        ],
        "messages_table": f"{table_prefix}_MESSAGES",
        "data_table": f"{table_prefix}_DATA",
    }


def build_type(resolved: ResolvedType) -> dict[str, Any]:
    content = resolved.content
    if isinstance(content, StructKind):
        return build_struct(resolved)
    if isinstance(content, EnumKind):
        return build_enum(resolved)
    if isinstance(content, WrapperKind):
        return build_wrapper(resolved)
    if isinstance(content, UnitKind):
        return build_unit(resolved)
    raise GenerationError(f"Unexpected type kind for {resolved.name}: {type(content).__name__}")


def order_aliases(aliases: list[ResolvedAlias]) -> list[ResolvedAlias]:
    """Order aliases so an alias of an alias comes after its target."""
    pending = {alias.name: alias for alias in aliases}
    ordered: list[ResolvedAlias] = []
    while pending:
        ready = [a for a in pending.values() if a.target not in pending]
        if not ready:
            raise GenerationError(f"Alias cycle between {sorted(pending)}")
        for alias in ready:
            ordered.append(alias)
            del pending[alias.name]
    return ordered


def annotation_names(annotation: str) -> set[str]:
    """Type names an annotation refers to, minus builtins and runtime imports."""
    names = set(_IDENTIFIER.findall(_STRING_LITERAL.sub("", annotation)))
    return names - _BUILTIN_NAMES - set(RUNTIME_IMPORTS)


def external_types(
    types: list[dict[str, Any]], aliases: list[dict[str, str]], error_type: dict[str, Any] | None,
) -> list[str]:
    """Names the generated module uses but does not define.

    These come from override tables and ignored schemas, and have to be
    provided through the profile's support imports.
    """
    defined: set[str] = set()
    used: set[str] = set()
    for t in types:
        defined.add(t["name"])
        for field in t.get("fields", ()):
            used |= annotation_names(field["annotation"])
        if t["kind"] == "wrapper":
            used |= annotation_names(t["type_name"])
        if t.get("ref"):
            defined.add(t["ref"]["name"])
    for alias in aliases:
        defined.add(alias["name"])
        used |= annotation_names(alias["target"])
    if error_type is not None:
        defined.add(error_type["name"])
        for member in error_type["members"]:
            if member["data_type"]:
                used |= annotation_names(member["data_type"])
    return sorted(used - defined)


def build_context(result: ResolutionResult, profile: GenerationProfile) -> dict[str, Any]:
    """Build the full template context for models.py.j2."""
    model_types = [build_type(t) for t in result.model_types]
    request_types = [build_type(t) for t in result.request_types]
    error_type = build_error_enum(result.error_type) if result.error_type is not None else None

    rebuild = [
        t["name"] for t in model_types + request_types
        if t["kind"] in ("struct", "unit", "wrapper")
    ]

    aliases = [{"name": a.name, "target": a.target} for a in order_aliases(result.aliases)]
    external = external_types(model_types + request_types, aliases, error_type)
    if external and not profile.support_imports:
        logger.warning("Types used but not generated, add support imports: %s", ", ".join(external))

    type_count = len(model_types) + len(request_types) + (1 if error_type else 0)
    logger.debug("Template context: %d types, %d aliases", type_count, len(result.aliases))

    return {
        "spec_version": profile.version,
        "ignored_types": list(profile.ignore_types),
        "not_implemented": list(result.not_implemented),
        "runtime_module": RUNTIME_MODULE,
        "runtime_imports": RUNTIME_IMPORTS,
        "support_imports": list(profile.support_imports),
        "model_types": model_types,
        "aliases": aliases,
        "external_types": external,
        "error_type": error_type,
        "request_types": request_types,
        "rebuild": format_sequence(rebuild, 0, prefix=len("for _model in :")),
        "type_count": type_count,
    }
