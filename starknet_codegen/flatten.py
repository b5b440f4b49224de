"""Find schemas that only ever appear as inlined allOf fragments.

Those schemas never become types of their own: their properties are copied
into every struct that composes them. A schema referenced anywhere as a
property, an array item or a oneOf option must stay a standalone type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from .spec import AllOf, ArrayPrimitive, ObjectPrimitive, OneOf, Reference, Schema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlattenPolicy:
    """Which allOf $ref fragments get inlined.

    ``selected`` of None means every fragment is flattened.
    """

    selected: frozenset[str] | None = None

    @classmethod
    def all(cls) -> FlattenPolicy:
        return cls()

    @classmethod
    def only(cls, names: Iterable[str]) -> FlattenPolicy:
        return cls(frozenset(names))

    def should_flatten(self, name: str) -> bool:
        return self.selected is None or name in self.selected


def _visit(
    schema: Schema,
    policy: FlattenPolicy,
    flatten: set[str],
    non_flatten: set[str],
) -> None:
    """Record how the $refs directly inside schema are used."""
    if isinstance(schema, OneOf):
        for option in schema.one_of:
            if isinstance(option, Reference):
                non_flatten.add(option.name)
            else:
                _visit(option, policy, flatten, non_flatten)
    elif isinstance(schema, AllOf):
        for fragment in schema.all_of:
            if isinstance(fragment, Reference):
                if policy.should_flatten(fragment.name):
                    flatten.add(fragment.name)
                else:
                    non_flatten.add(fragment.name)
            else:
                _visit(fragment, policy, flatten, non_flatten)
    elif isinstance(schema, ObjectPrimitive):
        for prop in schema.properties.values():
            if isinstance(prop, Reference):
                non_flatten.add(prop.name)
            else:
                _visit(prop, policy, flatten, non_flatten)
    elif isinstance(schema, ArrayPrimitive):
        if isinstance(schema.items, Reference):
            non_flatten.add(schema.items.name)
        else:
            _visit(schema.items, policy, flatten, non_flatten)


def get_flatten_only_schemas(
    schemas: Mapping[str, Schema],
    policy: FlattenPolicy,
    exceptions: frozenset[str] = frozenset(),
) -> frozenset[str]:
    """Return the names used only as flattened allOf fragments.

    Names in exceptions are never reported, whatever their usage.
    """
    flatten: set[str] = set()
    non_flatten: set[str] = set()

    for schema in schemas.values():
        _visit(schema, policy, flatten, non_flatten)

    result = frozenset(flatten - non_flatten - exceptions)
    logger.debug("Flatten-only schemas: %s", sorted(result))
    return result
