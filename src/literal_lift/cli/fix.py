import difflib
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from literal_lift.cli.check import ConfigOption, load_cli_options, source_files
from literal_lift.core.engine import fix_file

console = Console()


def fix(
    paths: Annotated[list[Path], typer.Argument(help="Files or directories to fix.")],
    config: ConfigOption = None,
    diff: Annotated[bool, typer.Option("--diff", help="Print a unified diff instead of writing files.")] = False,
) -> None:
    """Apply the primary fix of every finding in place."""
    options = load_cli_options(config)
    fixed = 0
    for path in source_files(paths):
        original = path.read_text(encoding="utf-8")
        result = fix_file(path, options, write=not diff)
        if not result.changed:
            continue
        fixed += 1
        if diff:
            typer.echo(
                "".join(
                    difflib.unified_diff(
                        original.splitlines(keepends=True),
                        result.output.splitlines(keepends=True),
                        fromfile=str(path),
                        tofile=str(path),
                    )
                ),
                nl=False,
            )
        else:
            console.print(f"[green]Fixed[/green] {path} ({result.applied} fixes, {result.passes} passes)")
    console.print(f"{'Would fix' if diff else 'Fixed'} {fixed} file(s)")
