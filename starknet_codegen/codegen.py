"""Render the models template and write generated output.

Takes the context from context_builder and produces the source of one
Python module. Rendering finishes before anything is written, so a failed
run never leaves partial output behind.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import jinja2

from .context_builder import build_context
from .errors import GenerationError
from .ir import ResolutionResult
from .profiles import GenerationProfile

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
TEMPLATE_NAME = "models.py.j2"


def _environment() -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=jinja2.StrictUndefined,
    )


def render(context: dict[str, Any]) -> str:
    """Render the models template with a prepared context."""
    try:
        template = _environment().get_template(TEMPLATE_NAME)
        return template.render(**context)
    except jinja2.TemplateError as exc:
        raise GenerationError(f"Unable to render {TEMPLATE_NAME}: {exc}") from exc


def generate(result: ResolutionResult, profile: GenerationProfile) -> tuple[str, int]:
    """Render a resolution result; returns the source and the type count."""
    context = build_context(result, profile)
    source = render(context)
    logger.debug("Rendered %d lines", source.count("\n"))
    return source, context["type_count"]


def write_output(source: str, output_path: Path) -> None:
    """Write rendered source, creating the parent directory if needed."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(source)
