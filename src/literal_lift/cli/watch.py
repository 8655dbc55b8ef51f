import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from literal_lift.cli.check import ConfigOption, load_cli_options, render_findings
from literal_lift.config import LiftOptions
from literal_lift.core.engine import analyze_file, fix_file
from literal_lift.core.ports.watcher import ChangeHandler
from literal_lift.watcher.watchfiles_adapter import WatchfilesWatcher

console = Console()


def make_handler(options: LiftOptions, apply_fixes: bool) -> ChangeHandler:
    async def on_change(paths: set[Path]) -> None:
        for path in sorted(paths):
            if not path.is_file():
                continue
            if apply_fixes:
                result = fix_file(path, options)
                if result.changed:
                    console.print(f"[green]Fixed[/green] {path} ({result.applied} fixes)")
                continue
            findings = analyze_file(path, options)
            if findings:
                render_findings(findings)
            else:
                console.print(f"[green]Clean[/green] {path}")

    return on_change


def watch(
    directory: Annotated[Path, typer.Argument(help="Directory to watch.")] = Path("."),
    config: ConfigOption = None,
    apply_fixes: Annotated[bool, typer.Option("--fix", help="Fix changed files instead of reporting.")] = False,
) -> None:
    """Re-check source files whenever they change."""
    options = load_cli_options(config)
    watcher = WatchfilesWatcher(directory, make_handler(options, apply_fixes))

    async def _run() -> None:
        await watcher.start()
        try:
            await asyncio.Event().wait()
        finally:
            await watcher.stop()

    console.print(f"[green]Watching[/green] {directory.resolve()} (Ctrl+C to stop)")
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("Stopped")
