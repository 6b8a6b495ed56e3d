from __future__ import annotations

import importlib

import pytest
from typer.testing import CliRunner


@pytest.mark.unit
def test_import_package() -> None:
    importlib.import_module("aksdeploy")


@pytest.mark.unit
def test_import_cli_main() -> None:
    importlib.import_module("aksdeploy.cli.main")


@pytest.mark.integration
def test_cli_help_lists_commands() -> None:
    from aksdeploy.cli.main import app

    result = CliRunner().invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("run", "verify", "render", "status", "logs", "tree"):
        assert command in result.output


@pytest.mark.integration
def test_cli_tree_filters_to_verify() -> None:
    from aksdeploy.cli.main import app

    result = CliRunner().invoke(app, ["tree", "-f", "verify"])
    assert result.exit_code == 0
    assert "terraform" in result.output
    assert "docker" in result.output
    assert "render" not in result.output
