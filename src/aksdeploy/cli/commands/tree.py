"""CLI command to display all commands in a hierarchical tree."""

from __future__ import annotations

from dataclasses import dataclass, field

import click
import typer
from rich.console import Console
from rich.tree import Tree
from typer.main import get_command

# Stage order, so the tree reads in the order a run executes.
PREFERRED_ORDER: list[str] = ["verify", "render", "run", "status", "logs"]


@dataclass
class CommandNode:
    """Represents a command or command group in the CLI tree."""

    name: str
    help_text: str | None = None
    is_group: bool = False
    options: list[str] = field(default_factory=list)
    children: list[CommandNode] = field(default_factory=list)


def _extract_options(click_cmd: click.Command) -> list[str]:
    """Return option names for a Click command, preferring the long form."""
    options = []
    for param in click_cmd.params:
        if not isinstance(param, click.Option):
            continue
        names = [*param.opts, *param.secondary_opts]
        if not names:
            continue
        long_names = [n for n in param.opts if n.startswith("--")]
        name = long_names[0] if long_names else names[0]
        if param.secondary_opts:
            name = "/".join([name, *param.secondary_opts])
        options.append(name)
    return options


def _sort_key(node: CommandNode) -> tuple[int, str]:
    try:
        return (PREFERRED_ORDER.index(node.name), node.name)
    except ValueError:
        return (len(PREFERRED_ORDER), node.name)


def build_node(click_cmd: click.Command, name: str | None = None) -> CommandNode:
    """Convert a Click command/group into a CommandNode recursively."""
    is_group = isinstance(click_cmd, click.Group)
    node = CommandNode(
        name=name or click_cmd.name or "command",
        help_text=click_cmd.get_short_help_str() or None,
        is_group=is_group,
        options=[] if is_group else _extract_options(click_cmd),
    )
    if is_group:
        node.children = sorted(
            (build_node(sub, sub_name) for sub_name, sub in click_cmd.commands.items()),
            key=_sort_key,
        )
    return node


def filter_tree(node: CommandNode, filter_verb: str | None) -> CommandNode | None:
    """Keep only branches containing a command or group named `filter_verb`."""
    if not filter_verb or node.name == filter_verb:
        return node
    children = [c for c in (filter_tree(child, filter_verb) for child in node.children) if c]
    if not children:
        return None
    node.children = children
    return node


def render_tree(node: CommandNode, *, verbose: bool = False) -> Tree:
    """Build a Rich Tree for a command node."""

    def _label(n: CommandNode) -> str:
        color = "bold yellow" if n.is_group else "cyan"
        label = f"[{color}]{n.name}[/{color}]"
        if verbose and n.help_text:
            label += f" [dim]: {n.help_text}[/dim]"
        if verbose and n.options:
            label += " " + " ".join(f"[dim]\\[{opt}][/dim]" for opt in n.options)
        return label

    def _add(branch: Tree, n: CommandNode) -> None:
        for child in n.children:
            _add(branch.add(_label(child)), child)

    root = Tree(f"[bold cyan]{node.name}[/bold cyan]")
    _add(root, node)
    return root


def tree_command(
    typer_app: typer.Typer,
    filter_verb: str | None = None,
    verbose: bool = False,
    console: Console | None = None,
) -> None:
    """Main entry point for the tree command.

    Args:
        typer_app: Root Typer application to introspect.
        filter_verb: Optional command name to filter by (e.g., "verify").
        verbose: If True, show help text and options.
        console: Rich Console to print to (None to create new).
    """
    console = console or Console()
    click_app = get_command(typer_app)
    root = build_node(click_app, name=typer_app.info.name or "aksdeploy")
    filtered = filter_tree(root, filter_verb)
    if filtered is None:
        console.print("[yellow]No commands match the specified filter.[/yellow]")
        return
    console.print(render_tree(filtered, verbose=verbose))
