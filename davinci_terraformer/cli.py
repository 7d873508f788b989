"""
Command-line interface for DaVinci Terraformer

Reads a batch of exported DaVinci resource documents from a JSON file and
writes Terraform configuration, optional import blocks and variable
declarations, followed by the end-of-run report.
"""

import sys
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional, Tuple

import click
import structlog
from rich.console import Console
from rich.table import Table

from .config_manager import (
    LoggingConfig,
    VALID_REGIONS,
    create_export_config_from_env,
)
from .exceptions import DaVinciTerraformerError
from .logging_config import configure_logging
from .orchestrator import DaVinciExporter, ExportResult, ResourceBatch
from .resolver.schema import KIND_ORDER, describe_schemas

# Report output goes to stderr so HCL on stdout stays pipeable
console = Console(stderr=True)


def _fail(message: str, error: Exception) -> NoReturn:
    click.echo(f"❌ {message}: {error}", err=True)
    structlog.get_logger(__name__).error(message, error=str(error))
    sys.exit(1)


def _build_config(overrides: Dict[str, Any]):
    """Create the export config, letting explicit options win over .env."""
    cleaned = {k: v for k, v in overrides.items() if v not in (None, (), False)}
    for key in ("include_kinds", "excluded_resources"):
        if key in cleaned:
            cleaned[key] = list(cleaned[key])
    return create_export_config_from_env(**cleaned)


def _run_export(batch_file: str, overrides: Dict[str, Any]) -> ExportResult:
    try:
        config = _build_config(overrides)
        config.log_configuration_summary()
        batch = ResourceBatch.from_json_file(batch_file)
        return DaVinciExporter(config).export(batch)
    except DaVinciTerraformerError as e:
        _fail("Export failed", e)
    except ValueError as e:
        _fail("Invalid configuration", e)


def _write_output(content: str, path: Optional[str], label: str) -> None:
    if path is None or path == "-":
        click.echo(content, nl=False)
        return
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    structlog.get_logger(__name__).info(f"{label} written", path=str(output))


def _print_summary(result: ExportResult) -> None:
    table = Table(title="DaVinci Export")
    table.add_column("Kind")
    table.add_column("Input", justify="right")
    table.add_column("Generated", justify="right")
    table.add_column("Edges", justify="right")
    metrics = result.metrics
    for kind in KIND_ORDER:
        table.add_row(
            kind.value,
            str(metrics.documents_received.get(kind, 0)),
            str(metrics.resources_generated.get(kind, 0)),
            str(metrics.edges_by_kind.get(kind, 0)),
        )
    console.print(table)


@click.group()
@click.option(
    "--log-level",
    default=None,
    help="Logging level (DEBUG, INFO, WARNING, ERROR); defaults to LOG_LEVEL",
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default=None,
    help="Log renderer; defaults to LOG_FORMAT",
)
@click.pass_context
def cli(
    ctx: click.Context, log_level: Optional[str], log_format: Optional[str]
) -> None:
    """DaVinci Terraformer - convert DaVinci exports to Terraform."""
    ctx.ensure_object(dict)
    try:
        logging_config = LoggingConfig(
            **{
                k: v
                for k, v in (("level", log_level), ("format", log_format))
                if v is not None
            }
        )
    except ValueError as e:
        _fail("Invalid logging configuration", e)
    configure_logging(logging_config)
    ctx.obj["log_level"] = logging_config.level


def export_options(f):
    """Options shared by every command that runs an export."""
    options = [
        click.argument("batch_file", type=click.Path(exists=True, dir_okay=False)),
        click.option(
            "--environment-id",
            default=None,
            help="PingOne environment ID (defaults to PINGONE_ENVIRONMENT_ID)",
        ),
        click.option(
            "--region",
            type=click.Choice(VALID_REGIONS, case_sensitive=False),
            default=None,
            help="PingOne region (defaults to PINGONE_REGION)",
        ),
        click.option(
            "--skip-dependencies",
            is_flag=True,
            help="Write literal IDs instead of Terraform references",
        ),
        click.option(
            "--continue-on-parse-error",
            is_flag=True,
            help="Report missing required references instead of aborting",
        ),
        click.option(
            "--include-kind",
            "include_kinds",
            multiple=True,
            help="Only export this kind (repeatable), e.g. flow",
        ),
        click.option(
            "--exclude",
            "excluded_resources",
            multiple=True,
            help="Exclude one resource as <kind>:<id> (repeatable)",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@cli.command()
@export_options
@click.option(
    "--output",
    "-o",
    default=None,
    help="File for the generated HCL (default: stdout)",
)
@click.option(
    "--generate-imports",
    is_flag=True,
    help="Generate Terraform import blocks",
)
@click.option(
    "--imports-out",
    default=None,
    help="File for import blocks (implies --generate-imports)",
)
@click.option(
    "--variables-out",
    default=None,
    help="File for extracted variable declarations",
)
@click.option(
    "--use-variable-references",
    is_flag=True,
    help="Reference extracted input variables for every eligible value",
)
@click.option(
    "--strict", "strict_mode", is_flag=True, help="Fail on conversion errors"
)
@click.option("--report-out", default=None, help="File for the export report")
def convert(
    batch_file: str,
    environment_id: Optional[str],
    region: Optional[str],
    skip_dependencies: bool,
    continue_on_parse_error: bool,
    include_kinds: Tuple[str, ...],
    excluded_resources: Tuple[str, ...],
    output: Optional[str],
    generate_imports: bool,
    imports_out: Optional[str],
    variables_out: Optional[str],
    use_variable_references: bool,
    strict_mode: bool,
    report_out: Optional[str],
) -> None:
    """Convert a batch of DaVinci resource documents to Terraform HCL."""
    result = _run_export(
        batch_file,
        {
            "environment_id": environment_id,
            "region": region,
            "skip_dependencies": skip_dependencies,
            "continue_on_parse_error": continue_on_parse_error,
            "include_kinds": include_kinds,
            "excluded_resources": excluded_resources,
            "generate_imports": generate_imports or imports_out is not None,
            "use_variable_references": use_variable_references,
            "strict_mode": strict_mode,
        },
    )

    _write_output(result.hcl, output, "Terraform configuration")
    if imports_out is not None:
        _write_output(result.imports_hcl, imports_out, "Import blocks")
    if variables_out is not None:
        _write_output(result.variables_hcl, variables_out, "Variable declarations")
    if report_out is not None:
        result.report.save_to_file(Path(report_out))

    _print_summary(result)
    console.print(result.report.format_report(), markup=False, highlight=False)


@cli.command()
@export_options
def report(
    batch_file: str,
    environment_id: Optional[str],
    region: Optional[str],
    skip_dependencies: bool,
    continue_on_parse_error: bool,
    include_kinds: Tuple[str, ...],
    excluded_resources: Tuple[str, ...],
) -> None:
    """Print the dependency validation report for a batch without writing HCL."""
    result = _run_export(
        batch_file,
        {
            "environment_id": environment_id,
            "region": region,
            "skip_dependencies": skip_dependencies,
            "continue_on_parse_error": continue_on_parse_error,
            "include_kinds": include_kinds,
            "excluded_resources": excluded_resources,
        },
    )
    click.echo(result.report.validation.format_report())
    click.echo(result.report.missing_summary)


@cli.command()
def schemas() -> None:
    """List the reference paths searched in each resource kind."""
    for line in describe_schemas():
        click.echo(line)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
