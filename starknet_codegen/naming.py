"""Convert spec identifiers and doc text to generated-code conventions.

Types use PascalCase, fields use snake_case:
  BLOCK_HEADER          -> BlockHeader
  BROADCASTED_TXN       -> BroadcastedTransaction
  DEPRECATED_CAIRO_ENTRY_POINT -> LegacyContractEntryPoint (rename table)
  parentHash            -> parent_hash
  starknet_getBlockWithTxHashes -> GetBlockWithTxHashesRequest

Doc text is sentence-cased, protocol words are re-capitalized and the
result wrapped at MAX_LINE_LENGTH without splitting words.
"""

from __future__ import annotations

import keyword
import re
import textwrap
from typing import Mapping

from .overrides import DOC_SUBSTITUTIONS, TYPE_RENAMES

MAX_LINE_LENGTH = 100

# Attribute names a generated pydantic model cannot use for fields.
_RESERVED_FIELD_NAMES = frozenset({
    "construct", "copy", "dict", "json", "schema", "validate",
    "model_config", "model_fields", "is_query", "wire_flattened", "wire_fixed",
    "to_wire", "from_wire",
})

_ALL_UPPER = re.compile(r"^[A-Z]+$")


def to_pascal_case(name: str) -> str:
    """Convert snake_case or UPPER_SNAKE to PascalCase."""
    result = []
    capitalize = True
    for char in name:
        if char == "_":
            capitalize = True
            continue
        result.append(char.upper() if capitalize else char.lower())
        capitalize = False
    return "".join(result)


def camel_to_snake(name: str) -> str:
    """Convert camelCase or PascalCase to snake_case."""
    s1 = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    return re.sub(r"([a-z\d])([A-Z])", r"\1_\2", s1).lower()


def to_type_name(name: str, renames: Mapping[str, str] = TYPE_RENAMES) -> str:
    """Build the generated type name for a schema name."""
    pascal = to_pascal_case(name).replace("Txn", "Transaction")
    return renames.get(pascal, pascal)


def to_field_name(name: str) -> str:
    """Build the generated field name for a wire property name.

    Names that are all-caps or already contain underscores are treated as
    snake case and only lowercased.
    """
    if _ALL_UPPER.match(name) or "_" in name:
        return name.lower()
    return camel_to_snake(name)


def escape_identifier(name: str) -> str:
    """Append an underscore to names Python or pydantic would reject."""
    if keyword.iskeyword(name) or name in _RESERVED_FIELD_NAMES:
        return name + "_"
    return name


def to_request_name(method_name: str, prefix: str = "starknet_",
                    renames: Mapping[str, str] = TYPE_RENAMES) -> str:
    """Build the request holder type name for an RPC method."""
    base = method_name[len(prefix):] if method_name.startswith(prefix) else method_name
    return f"{to_type_name(camel_to_snake(base), renames)}Request"


def to_sentence_case(text: str) -> str:
    """Lowercase everything but the first letter of each sentence."""
    result = []
    last_period = None
    last_char = None
    for index, char in enumerate(text):
        if char == ".":
            last_period = index
        if last_period is None:
            upper = index == 0
        else:
            upper = index == last_period + 2 and last_char == " "
        result.append(char.upper() if upper else char.lower())
        last_char = char
    return "".join(result)


def to_doc(
    text: str,
    force_period: bool = True,
    substitutions: tuple[tuple[str, str, bool], ...] = DOC_SUBSTITUTIONS,
) -> str:
    """Normalize spec doc text for generated docstrings."""
    doc = to_sentence_case(text.strip())
    for pattern, target, ignore_case in substitutions:
        doc = re.sub(pattern, target, doc, flags=re.IGNORECASE if ignore_case else 0)
    if force_period and not doc.endswith("."):
        doc += "."
    return doc


def wrap_doc(text: str, prefix_length: int = 0, max_length: int = MAX_LINE_LENGTH) -> list[str]:
    """Wrap doc text so each line plus its prefix fits max_length.

    Words longer than the line width get a line of their own.
    """
    lines = textwrap.wrap(
        text,
        width=max(max_length - prefix_length, 1),
        break_long_words=False,
        break_on_hyphens=False,
    )
    return lines or [""]
