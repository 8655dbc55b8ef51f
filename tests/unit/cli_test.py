"""Tests for the check and fix commands."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from literal_lift.cli.app import app
from literal_lift.cli.watch import make_handler
from literal_lift.config import LiftOptions

runner = CliRunner()

INLINE = "function Card() {\n  return <Box items={[1]} />;\n}\n"
CLEAN = "const items = [1];\nfunction Card() {\n  return <Box items={items} />;\n}\n"


@pytest.fixture
def card(tmp_path: Path) -> Path:
    path = tmp_path / "Card.tsx"
    path.write_text(INLINE)
    return path


class TestCheck:
    def test_findings_exit_with_one(self, card: Path) -> None:
        result = runner.invoke(app, ["check", str(card)])

        assert result.exit_code == 1
        assert "(1 findings)" in result.output

    def test_clean_file_exits_with_zero(self, tmp_path: Path) -> None:
        path = tmp_path / "Clean.tsx"
        path.write_text(CLEAN)

        result = runner.invoke(app, ["check", str(path)])

        assert result.exit_code == 0
        assert "(0 findings)" in result.output

    def test_json_output(self, card: Path) -> None:
        result = runner.invoke(app, ["check", str(card), "--format", "json"])

        findings = json.loads(result.output)
        assert result.exit_code == 1
        assert findings[0]["data"] == {"type": "ArrayExpression", "propName": "items"}
        assert findings[0]["suggestions"][0]["data"] == {"name": "BoxItems"}

    def test_directory_is_expanded(self, card: Path) -> None:
        result = runner.invoke(app, ["check", str(card.parent), "-f", "json"])

        assert [f["path"] for f in json.loads(result.output)] == [str(card.resolve())]

    def test_config_file(self, card: Path, tmp_path: Path) -> None:
        config = tmp_path / "lift.json"
        config.write_text('{"checkArray": false}')

        result = runner.invoke(app, ["check", str(card), "--config", str(config)])

        assert result.exit_code == 0

    def test_invalid_config_exits_with_two(self, card: Path, tmp_path: Path) -> None:
        config = tmp_path / "lift.json"
        config.write_text('{"checkEverything": true}')

        result = runner.invoke(app, ["check", str(card), "-c", str(config)])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_missing_path_exits_with_two(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["check", str(tmp_path / "missing.tsx")])

        assert result.exit_code == 2


class TestFix:
    def test_rewrites_files(self, card: Path) -> None:
        result = runner.invoke(app, ["fix", str(card)])

        assert result.exit_code == 0
        assert "Fixed 1 file(s)" in result.output
        assert card.read_text() == (
            "function Card() {\n  return <Box items={BoxItems} />;\n}\nconst BoxItems = [1];\n"
        )

    def test_diff_leaves_files_alone(self, card: Path) -> None:
        result = runner.invoke(app, ["fix", str(card), "--diff"])

        assert result.exit_code == 0
        assert "+const BoxItems = [1];" in result.output
        assert "Would fix 1 file(s)" in result.output
        assert card.read_text() == INLINE


class TestWatchHandler:
    @pytest.mark.asyncio
    async def test_reports_changed_files(self, card: Path) -> None:
        with patch("literal_lift.cli.watch.render_findings") as render:
            await make_handler(LiftOptions(), apply_fixes=False)({card, card.parent / "gone.tsx"})

        render.assert_called_once()
        assert render.call_args[0][0][0].data["propName"] == "items"

    @pytest.mark.asyncio
    async def test_fixes_changed_files(self, card: Path) -> None:
        await make_handler(LiftOptions(), apply_fixes=True)({card})

        assert "const BoxItems = [1];" in card.read_text()


def test_serve_mcp_runs_the_server() -> None:
    server = MagicMock()
    with patch("literal_lift.mcp.server.create_mcp_server", return_value=server) as create:
        result = runner.invoke(app, ["serve", "mcp", "--transport", "http"])

    assert result.exit_code == 0
    create.assert_called_once()
    server.run.assert_called_once_with(transport="http")
