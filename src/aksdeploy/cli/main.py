from __future__ import annotations

from typing import Annotated

import typer

from .base import configure_logging
from .commands.cluster import logs_command, status_command
from .commands.render import render_command
from .commands.run import run_command
from .commands.tree import tree_command
from .commands.verify import app as verify_app

configure_logging()
app = typer.Typer(
    name="aksdeploy",
    help="Deploy the QR code app's Kubernetes manifests to AKS",
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.add_typer(verify_app, name="verify")
app.command("run")(run_command)
app.command("render")(render_command)
app.command("status")(status_command)
app.command("logs")(logs_command)


@app.command("tree")
def tree(
    filter_verb: Annotated[
        str | None,
        typer.Option(
            "-f",
            "--filter",
            help="Filter by command (e.g., 'verify', 'run')",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show descriptions and options"),
    ] = False,
) -> None:
    """Display all CLI commands in a hierarchical tree.

    By default shows only command names. Use --verbose to see descriptions
    and options.
    """
    tree_command(typer_app=app, filter_verb=filter_verb, verbose=verbose)


def main() -> None:
    """Main entry point for package CLI.

    Side Effects:
        - Processes CLI arguments and executes commands.
        - Exits non-zero when a deployment or gate fails.
    """
    app()


if __name__ == "__main__":
    main()
