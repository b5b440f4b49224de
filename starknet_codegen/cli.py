"""Command line interface entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from . import codegen
from .errors import CodegenError
from .loader import dump_spec, load_spec
from .profiles import get_profile
from .resolver import resolve_types

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

_spec_files = click.argument(
    "spec_files",
    nargs=-1,
    required=True,
    type=click.Path(path_type=Path, dir_okay=False),
)


class CliError(Exception):
    """Raised by commands for failures reported without a traceback."""


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="starknet-rpc-codegen")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log debug details to stderr.")
def cli(verbose: bool) -> None:
    """Generate Python models from Starknet OpenRPC specifications."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=_LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


@cli.command(name="generate")
@click.option(
    "--spec",
    "version",
    required=True,
    envvar="SPEC",
    help="Version of the specification, selecting the generation profile.",
)
@click.option(
    "--profiles",
    "profiles_path",
    required=False,
    type=click.Path(path_type=Path, dir_okay=False),
    help="JSON file with extra or replacement generation profiles.",
)
@click.option(
    "--output",
    "output_path",
    required=False,
    type=click.Path(path_type=Path, dir_okay=False),
    help="Write the generated module here instead of stdout.",
)
@_spec_files
def generate(
    version: str,
    profiles_path: Path | None,
    output_path: Path | None,
    spec_files: tuple[Path, ...],
) -> None:
    """Generate a models module. The first SPEC_FILE is the primary document."""
    logger.debug("Generating spec %s from %s", version, ", ".join(map(str, spec_files)))
    try:
        profile = get_profile(version, profiles_path)
        spec = load_spec(list(spec_files))
        result = resolve_types(spec, profile)
        source, type_count = codegen.generate(result, profile)
    except CodegenError as exc:
        raise CliError(str(exc)) from exc

    if output_path is None:
        click.echo(source, nl=False)
        return

    try:
        codegen.write_output(source, output_path)
    except OSError as exc:
        raise CliError(f"{output_path}: {exc.strerror or exc}") from exc
    click.echo(f"Generated {output_path} ({type_count} types)", err=True)


@cli.command(name="print")
@click.option("--sort", is_flag=True, default=False, help="Sort schema and error definitions by name.")
@_spec_files
def print_spec(sort: bool, spec_files: tuple[Path, ...]) -> None:
    """Pretty-print the normalized specification."""
    try:
        spec = load_spec(list(spec_files))
    except CodegenError as exc:
        raise CliError(str(exc)) from exc
    click.echo(json.dumps(dump_spec(spec, sort=sort), indent=2))


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), prog_name="starknet-codegen", standalone_mode=False)
    except CliError as exc:
        click.echo(f"Error: {exc}", err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
