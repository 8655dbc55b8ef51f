import logging
from typing import Annotated

import typer

from literal_lift.cli.check import check
from literal_lift.cli.fix import fix
from literal_lift.cli.serve import serve_app
from literal_lift.cli.watch import watch

app = typer.Typer(
    name="literal-lift",
    help="Find JSX attribute values re-created on every render and lift them out.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug trace events.")] = False,
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


app.command("check")(check)
app.command("fix")(fix)
app.command("watch")(watch)
app.add_typer(serve_app, name="serve")


def main() -> None:
    app()
