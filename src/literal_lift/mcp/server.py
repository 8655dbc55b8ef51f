"""FastMCP server exposing literal-lift tools."""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP

from literal_lift.config import LiftOptions
from literal_lift.core.engine import analyze_file, analyze_source, fix_source


def create_mcp_server(options: LiftOptions | None = None) -> FastMCP:
    """Create a FastMCP server that checks and fixes code with the given options."""
    options = options or LiftOptions()

    mcp = FastMCP(
        "literal-lift",
        instructions="Find JSX attribute values that are re-created on every render and rewrite them "
        "into memoized hooks or module constants.",
    )

    @mcp.tool()
    async def check_file(path: str) -> list[dict[str, Any]]:
        """Report inline attribute values in a source file, with suggested fixes."""
        return [finding.model_dump(mode="json") for finding in analyze_file(path, options)]

    @mcp.tool()
    async def check_code(code: str, language: str = "tsx") -> list[dict[str, Any]]:
        """Report inline attribute values in a code snippet (language: tsx or jsx)."""
        return [finding.model_dump(mode="json") for finding in analyze_source(code, options=options, language=language)]

    @mcp.tool()
    async def fix_code(code: str, language: str = "tsx") -> str:
        """Return the snippet with every inline attribute value lifted out."""
        return fix_source(code, options=options, language=language).output

    return mcp
