"""Merge a primary specification with its secondary documents.

Starknet splits its API across several documents (main, write, trace) that
refer back to the main one. Merging rules:
  - methods are concatenated in document order
  - a schema/error name absent so far is added, in document order
  - a later $ref-only redefinition of an existing name is ignored
  - an identical redefinition is ignored
  - any other redefinition is a conflict
"""

from __future__ import annotations

import logging
from typing import TypeVar

from .errors import MergeError
from .spec import Reference, Specification

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def _merge_definitions(
    kind: str,
    merged: dict[str, _T],
    incoming: dict[str, _T],
) -> None:
    """Fold incoming definitions into merged, in place."""
    for name, definition in incoming.items():
        existing = merged.get(name)
        if existing is None:
            merged[name] = definition
        elif isinstance(definition, Reference):
            logger.debug("Ignoring $ref redefinition of %s %s", kind, name)
        elif definition != existing:
            raise MergeError(f"conflicting definitions for {kind} {name!r}")


def merge_specifications(primary: Specification, *secondary: Specification) -> Specification:
    """Merge secondary documents into the primary one."""
    methods = list(primary.methods)
    schemas = dict(primary.components.schemas)
    errors = dict(primary.components.errors)

    for spec in secondary:
        methods.extend(spec.methods)
        _merge_definitions("schema", schemas, spec.components.schemas)
        _merge_definitions("error", errors, spec.components.errors)

    components = primary.components.model_copy(update={"schemas": schemas, "errors": errors})
    return primary.model_copy(update={"methods": methods, "components": components})
