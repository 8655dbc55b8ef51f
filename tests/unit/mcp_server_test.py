"""Tests for the MCP server tool definitions."""

from __future__ import annotations

import inspect
from pathlib import Path

import pytest

from literal_lift.config import LiftOptions
from literal_lift.mcp.server import create_mcp_server

INLINE = "function Card() {\n  return <Box style={{ size: 10 }} />;\n}\n"


def _tool(server, name: str):
    return server._tool_manager._tools[name].fn  # type: ignore[attr-defined]


class TestMcpServerCreation:
    def test_creates_server(self) -> None:
        server = create_mcp_server()
        assert server is not None
        assert server.name == "literal-lift"

    def test_server_has_tools(self) -> None:
        server = create_mcp_server()
        tool_names = {t.name for t in server._tool_manager._tools.values()}
        assert tool_names == {"check_file", "check_code", "fix_code"}

    def test_snippet_language_defaults_to_tsx(self) -> None:
        server = create_mcp_server()
        for name in ("check_code", "fix_code"):
            sig = inspect.signature(_tool(server, name))
            assert sig.parameters["language"].default == "tsx"


class TestMcpTools:
    @pytest.mark.asyncio
    async def test_check_code(self) -> None:
        findings = await _tool(create_mcp_server(), "check_code")(INLINE)

        assert len(findings) == 1
        assert findings[0]["data"] == {"type": "ObjectExpression", "propName": "style"}
        assert findings[0]["suggestions"][0]["strategy"] == "top-level-constant"

    @pytest.mark.asyncio
    async def test_check_file(self, tmp_path: Path) -> None:
        path = tmp_path / "Card.jsx"
        path.write_text(INLINE)

        findings = await _tool(create_mcp_server(), "check_file")(str(path))

        assert [f["line"] for f in findings] == [2]

    @pytest.mark.asyncio
    async def test_fix_code(self) -> None:
        output = await _tool(create_mcp_server(), "fix_code")(INLINE, language="jsx")

        assert output.endswith("const BoxStyle = { size: 10 };\n")

    @pytest.mark.asyncio
    async def test_server_options_apply(self) -> None:
        server = create_mcp_server(LiftOptions(ignored_components=["Box"]))

        assert await _tool(server, "check_code")(INLINE) == []
