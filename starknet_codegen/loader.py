"""Load and parse Starknet OpenRPC specification documents.

Reads spec JSON files from disk and turns them into strict Specification
models, merging secondary documents (write API, trace API) into the primary.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .errors import SpecError
from .normalizer import merge_specifications
from .spec import Specification

logger = logging.getLogger(__name__)


def read_spec(path: Path) -> dict[str, Any]:
    """Read a raw spec document from disk."""
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise SpecError(f"{path}: invalid JSON: {exc}") from exc
    except OSError as exc:
        raise SpecError(f"{path}: {exc.strerror or exc}") from exc


def parse_spec(raw: dict[str, Any], source: str = "<memory>") -> Specification:
    """Parse a raw spec document, rejecting any unknown or malformed shape."""
    try:
        return Specification.model_validate(raw)
    except ValidationError as exc:
        raise SpecError(f"{source}: specification does not conform:\n{exc}") from exc


def load_spec(paths: list[Path]) -> Specification:
    """Load one or more spec documents and normalize them into one.

    The first path is the primary document; the rest only contribute
    methods and definitions the primary does not have.
    """
    if not paths:
        raise SpecError("at least one specification document is required")

    specs = []
    for path in paths:
        logger.debug("Loading specification %s", path)
        specs.append(parse_spec(read_spec(path), str(path)))

    return merge_specifications(specs[0], *specs[1:])


def dump_spec(spec: Specification, sort: bool = False) -> dict[str, Any]:
    """Re-serialize a spec into its raw JSON shape, optionally sorting definitions."""
    raw = spec.model_dump(mode="json", by_alias=True, exclude_none=True)
    if sort:
        components = raw["components"]
        components["schemas"] = dict(sorted(components["schemas"].items()))
        components["errors"] = dict(sorted(components.get("errors", {}).items()))
    return raw
