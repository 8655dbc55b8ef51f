"""Fixtures for end-to-end runs over small on-disk projects."""

from collections.abc import Callable
from pathlib import Path

import pytest

REACT_TYPES = """\
export interface CSSProperties {
  color?: string;
  width?: number;
}
export function useState<S>(initial: S): [S, Dispatch<SetStateAction<S>>];
export function useMemo<T>(factory: () => T, deps: unknown[]): T;
"""


@pytest.fixture
def app_project(write_project: Callable[[dict[str, str]], Path]) -> Path:
    """A project with path aliases, React typings and components spread over several modules."""
    return write_project(
        {
            "tsconfig.json": (
                "{\n"
                "  // path aliases\n"
                '  "compilerOptions": { "baseUrl": ".", "paths": { "@/*": ["src/*"] } }\n'
                "}\n"
            ),
            "node_modules/@types/react/index.d.ts": REACT_TYPES,
            "src/types/info.ts": "export interface Info {\n  id: string;\n}\n",
            "src/components/Box.tsx": (
                'import type { Info } from "@/types/info";\n'
                "\n"
                "export interface Tone {\n  dark: boolean;\n}\n"
                "\n"
                "export function Box(props: { info?: Info; tone: Tone }) {\n"
                "  return null;\n"
                "}\n"
            ),
            "src/pages/Card.tsx": (
                'import { Box } from "@/components/Box";\n'
                "\n"
                "export function Card() {\n"
                '  return <Box info={{ id: "a" }} tone={{ dark: true }} />;\n'
                "}\n"
            ),
            "src/pages/Panel.tsx": (
                'import { useState } from "react";\n'
                "\n"
                "export function Panel() {\n"
                "  const [width] = useState(1);\n"
                "  return <div style={{ width }} />;\n"
                "}\n"
            ),
        }
    )
