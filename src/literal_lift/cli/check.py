import json
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from literal_lift.config import LiftOptions, load_options
from literal_lift.core.engine import analyze_file
from literal_lift.core.languages import collect_source_files
from literal_lift.errors import ConfigError
from literal_lift.models import Finding

console = Console()


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


ConfigOption = Annotated[Path | None, typer.Option("--config", "-c", help="Path to a JSON options file.")]


def load_cli_options(config: Path | None) -> LiftOptions:
    try:
        return load_options(config)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(code=2) from e


def source_files(paths: Sequence[Path]) -> list[Path]:
    try:
        return collect_source_files(paths)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(code=2) from e


def render_findings(findings: Sequence[Finding]) -> None:
    table = Table(show_lines=False)
    for header in ("file", "position", "element", "prop", "category", "suggestions"):
        table.add_column(header)
    for finding in findings:
        table.add_row(
            finding.path,
            f"{finding.line}:{finding.column}",
            f"<{finding.element}>",
            finding.data["propName"],
            finding.data["type"],
            ", ".join(s.data["name"] for s in finding.suggestions) or "-",
        )
    console.print(table)
    console.print(f"({len(findings)} findings)")


def check(
    paths: Annotated[list[Path], typer.Argument(help="Files or directories to check.")],
    config: ConfigOption = None,
    output_format: Annotated[OutputFormat, typer.Option("--format", "-f", help="Output format.")] = OutputFormat.TEXT,
) -> None:
    """Report inline attribute values that allocate on every render."""
    options = load_cli_options(config)
    findings: list[Finding] = []
    for path in source_files(paths):
        findings.extend(analyze_file(path, options))

    if output_format is OutputFormat.JSON:
        typer.echo(json.dumps([f.model_dump(mode="json") for f in findings], indent=2))
    else:
        render_findings(findings)
    if findings:
        raise typer.Exit(code=1)
