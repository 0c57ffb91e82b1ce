"""acpiview CLI - decode and validate ACPI table binaries."""

from __future__ import annotations

import json
from pathlib import Path

import click

from acpiview.config import ENV_ARCH, Architecture, ViewConfig
from acpiview.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def _load_config(**overrides: object) -> ViewConfig:
    """Build the run config, reporting bad environment values as usage errors."""
    try:
        return ViewConfig.from_env(**overrides)
    except ValueError as exc:
        raise click.UsageError(
            f"Invalid {ENV_ARCH} setting: {exc}. "
            f"Valid architectures: {', '.join(a.value for a in Architecture)}"
        ) from exc


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.pass_context
def cli(ctx: click.Context, debug: bool, json_output: bool) -> None:
    """acpiview - ACPI table decoder and validator."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["json_output"] = json_output
    setup_logging(level="DEBUG" if debug else "WARNING", json_output=json_output)


@cli.command()
@click.argument(
    "tables", nargs=-1, required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--consistency/--no-consistency", default=None,
    help="Check field offsets and values (default: on)",
)
@click.option(
    "--arch", type=click.Choice([a.value for a in Architecture]), default=None,
    help="Target architecture to validate against (default: host)",
)
@click.pass_context
def parse(
    ctx: click.Context, tables: tuple[Path, ...], consistency: bool | None, arch: str | None
) -> None:
    """Trace and validate one or more raw ACPI table files."""
    from acpiview.engine.session import DecodeSession
    from acpiview.exceptions import AcpiViewError
    from acpiview.tables import parse_table

    config = _load_config(
        consistency_checking=consistency,
        architecture=Architecture(arch) if arch else None,
    )
    json_output = ctx.obj.get("json_output")
    reports = []
    total_errors = 0

    for path in tables:
        session = DecodeSession(config, writer=None if json_output else click.echo)
        try:
            report = parse_table(session, path.read_bytes())
        except (AcpiViewError, OSError) as exc:
            logger.warning("table_skipped", path=str(path), error=str(exc))
            if not json_output:
                click.echo(f"{path}: {exc}", err=True)
            continue

        if report is None:
            continue

        total_errors += report.errors
        if json_output:
            reports.append({"path": str(path), **report.model_dump()})
        else:
            click.echo()
            click.echo(
                f"Table Statistics ({report.signature}): "
                f"{report.errors} Error(s), {report.warnings} Warning(s)"
            )
            click.echo()

    if json_output:
        click.echo(json.dumps(reports, indent=2))

    if total_errors:
        ctx.exit(1)


@cli.command()
@click.argument("table", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def header(table: Path) -> None:
    """Trace only the standard header of an ACPI table file."""
    from acpiview.engine.header import dump_acpi_header
    from acpiview.engine.session import DecodeSession

    session = DecodeSession(_load_config(), writer=click.echo)
    dump_acpi_header(session, table.read_bytes())


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
