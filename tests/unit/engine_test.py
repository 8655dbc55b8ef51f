from pathlib import Path

import pytest

from literal_lift.config import LiftOptions
from literal_lift.core.engine import MAX_FIX_PASSES, analyze_file, analyze_source, fix_file, fix_source
from literal_lift.models import ExpressionCategory, Strategy


def _path(tmp_path: Path, name: str = "Card.tsx") -> Path:
    return tmp_path / name


def _fix(tmp_path: Path, code: str, **options) -> str:
    return fix_source(code, _path(tmp_path), LiftOptions(**options)).output


class TestFindings:
    def test_finding_fields(self, tmp_path: Path):
        code = "function Card() {\n  return <Box style={{ size: 10 }} />;\n}\n"

        (finding,) = analyze_source(code, _path(tmp_path))

        assert finding.message_id == "noInline"
        assert finding.message == (
            "Avoid passing an inline ObjectExpression as 'style', it creates a new value on every render"
        )
        assert finding.data == {"type": "ObjectExpression", "propName": "style"}
        assert (finding.line, finding.column) == (2, 22)
        assert finding.element == "Box"
        assert code.encode()[finding.start : finding.end] == b"{ size: 10 }"
        assert finding.path == str(_path(tmp_path).resolve())

    def test_function_offers_hook_then_constant(self, tmp_path: Path):
        code = "const LIMIT = 3;\n\nfunction Card() {\n  return <Button onClick={() => console.log(LIMIT)} />;\n}\n"

        (finding,) = analyze_source(code, _path(tmp_path))

        assert [s.strategy for s in finding.suggestions] == [Strategy.HOOK, Strategy.MODULE_CONSTANT]
        assert [s.message for s in finding.suggestions] == [
            'Wrap it with "const handleButtonClick = useCallback(...)"',
            'Move it to the top-level constant "ButtonOnClick"',
        ]
        assert finding.fix == finding.suggestions[0].fix

    def test_finding_without_insertion_point_has_no_fix(self, tmp_path: Path):
        code = (
            "function Card() {\n"
            "  const element = <Box style={{ size }} />;\n"
            "  const size = 1;\n"
            "  return element;\n"
            "}\n"
        )

        (finding,) = analyze_source(code, _path(tmp_path))

        assert finding.suggestions == []
        assert finding.fix is None
        assert fix_source(code, _path(tmp_path)).applied == 0

    def test_serialized_findings_omit_fix_parts(self, tmp_path: Path):
        code = "function Card() {\n  return <Box items={[1]} />;\n}\n"

        dumped = analyze_source(code, _path(tmp_path))[0].model_dump(mode="json")

        assert "parts" not in dumped["suggestions"][0]
        assert dumped["suggestions"][0]["fix"]["edits"]

    def test_typescript_without_jsx_is_skipped(self):
        assert analyze_source("const a = { b: [1] };\n", language="typescript") == []

    def test_jsx_sources(self, tmp_path: Path):
        code = "export function Card() {\n  return <Box items={[1, 2]} onPick={() => go()} />;\n}\n"

        findings = analyze_source(code, _path(tmp_path, "Card.jsx"))

        assert [f.data["type"] for f in findings] == [
            ExpressionCategory.ARRAY.value,
            ExpressionCategory.FUNCTION.value,
        ]

    def test_analyze_file(self, tmp_path: Path):
        path = _path(tmp_path)
        path.write_text("function Card() {\n  return <Box items={[1]} />;\n}\n")

        assert [f.data["propName"] for f in analyze_file(path)] == ["items"]


class TestScenarios:
    def test_static_object_becomes_module_constant(self, tmp_path: Path):
        code = "function Card() {\n  return <Box style={{ size: 10 }} />;\n}\n"

        assert _fix(tmp_path, code) == (
            "function Card() {\n  return <Box style={BoxStyle} />;\n}\nconst BoxStyle = { size: 10 };\n"
        )

    def test_state_dependent_object_is_memoized(self, tmp_path: Path):
        code = (
            'import { useState } from "react";\n'
            "\n"
            "function Card() {\n"
            "  const [size, setSize] = useState(10);\n"
            "  return <Box style={{ size }} />;\n"
            "}\n"
        )

        assert _fix(tmp_path, code) == (
            'import { useMemo, useState } from "react";\n'
            "\n"
            "function Card() {\n"
            "  const [size, setSize] = useState(10);\n"
            "  const boxStyle = useMemo(() => { return { size }; }, [size]);\n"
            "  return <Box style={boxStyle} />;\n"
            "}\n"
        )

    def test_handler_without_local_dependencies(self, tmp_path: Path):
        code = "const LIMIT = 3;\n\nfunction Card() {\n  return <Button onClick={() => console.log(LIMIT)} />;\n}\n"

        assert _fix(tmp_path, code) == (
            'import { useCallback } from "react";\n'
            "const LIMIT = 3;\n"
            "\n"
            "function Card() {\n"
            "  const handleButtonClick = useCallback(() => console.log(LIMIT), []);\n"
            "  return <Button onClick={handleButtonClick} />;\n"
            "}\n"
        )

    def test_setter_only_handler_has_no_dependencies(self, tmp_path: Path):
        code = (
            'import { useState } from "react";\n'
            "function Card() {\n"
            "  const [open, setOpen] = useState(false);\n"
            "  return <Button onClick={() => setOpen(true)} />;\n"
            "}\n"
        )

        assert "const handleButtonClick = useCallback(() => setOpen(true), []);" in _fix(tmp_path, code)

    def test_map_callback_binding_is_left_alone(self, tmp_path: Path):
        code = (
            "function List({ items }) {\n"
            "  return (\n"
            "    <ul>\n"
            "      {items.map((item) => (\n"
            "        <Row key={item} onSelect={() => select(item)} />\n"
            "      ))}\n"
            "    </ul>\n"
            "  );\n"
            "}\n"
        )

        assert analyze_source(code, _path(tmp_path)) == []
        result = fix_source(code, _path(tmp_path))
        assert result.output == code
        assert not result.changed

    def test_map_callback_outside_jsx_is_left_alone(self, tmp_path: Path):
        code = (
            "function List({ items }) {\n"
            "  const rows = items.map((item) => <Row data={{ item }} />);\n"
            "  return <ul>{rows}</ul>;\n"
            "}\n"
        )

        assert analyze_source(code, _path(tmp_path)) == []
        assert fix_source(code, _path(tmp_path)).output == code

    def test_map_callback_without_item_references_uses_the_component(self, tmp_path: Path):
        code = (
            "function List({ items, size }) {\n"
            "  const rows = items.map((item) => <Row key={item} style={{ size }} />);\n"
            "  return <ul>{rows}</ul>;\n"
            "}\n"
        )

        output = _fix(tmp_path, code)

        assert output == (
            'import { useMemo } from "react";\n'
            "function List({ items, size }) {\n"
            "  const rowStyle = useMemo(() => { return { size }; }, [size]);\n"
            "  const rows = items.map((item) => <Row key={item} style={rowStyle} />);\n"
            "  return <ul>{rows}</ul>;\n"
            "}\n"
        )

    def test_render_helper_reading_outer_state_is_left_alone(self, tmp_path: Path):
        code = (
            'import { useState } from "react";\n'
            "\n"
            "function Panel() {\n"
            "  const [size] = useState(1);\n"
            "  const renderRow = () => <Box style={{ size }} />;\n"
            "  return <div>{renderRow()}</div>;\n"
            "}\n"
        )

        assert analyze_source(code, _path(tmp_path)) == []
        output = _fix(tmp_path, code)
        assert "const BoxStyle = { size };" not in output
        assert output == code

    def test_identical_values_share_one_constant(self, tmp_path: Path):
        code = (
            "function Toolbar() {\n"
            "  return (\n"
            "    <div>\n"
            "      <Select options={[1, 2, 3]} />\n"
            "      <Picker values={[1, 2, 3]} />\n"
            "    </div>\n"
            "  );\n"
            "}\n"
        )

        output = _fix(tmp_path, code)

        assert output.count("const SelectOptions = [1, 2, 3];") == 1
        assert "<Select options={SelectOptions} />" in output
        assert "<Picker values={SelectOptions} />" in output

    def test_existing_constant_is_reused(self, tmp_path: Path):
        code = 'const COLORS = ["red", "blue"];\nfunction Palette() {\n  return <Swatch colors={["red", "blue"]} />;\n}\n'

        (finding,) = analyze_source(code, _path(tmp_path))

        assert finding.suggestions[0].data == {"name": "COLORS"}
        assert len(finding.suggestions[0].fix.edits) == 1
        assert _fix(tmp_path, code) == code.replace('colors={["red", "blue"]}', "colors={COLORS}")

    def test_generated_names_avoid_collisions(self, tmp_path: Path):
        code = (
            "const BoxStyle = 1;\n"
            "const BoxStyle1 = 2;\n"
            "function Card() {\n"
            "  return <Box style={{ size: 10 }} />;\n"
            "}\n"
        )

        assert "const BoxStyle2 = { size: 10 };" in _fix(tmp_path, code)

    def test_distinct_values_with_one_name_get_suffixes(self, tmp_path: Path):
        code = (
            "function Card() {\n"
            "  return (\n"
            "    <div>\n"
            "      <Box style={{ a: 1 }} />\n"
            "      <Box style={{ a: 2 }} />\n"
            "    </div>\n"
            "  );\n"
            "}\n"
        )

        output = _fix(tmp_path, code)

        assert "const BoxStyle = { a: 1 };" in output
        assert "const BoxStyle1 = { a: 2 };" in output

    def test_ignored_components_are_left_alone(self, tmp_path: Path):
        code = "function Card() {\n  return <Box style={{ size: 10 }} />;\n}\n"

        assert analyze_source(code, _path(tmp_path), LiftOptions(ignored_components=["Box"])) == []
        assert _fix(tmp_path, code, ignored_components=["Box"]) == code

    def test_constants_at_the_start(self, tmp_path: Path):
        code = 'import { Box } from "./Box";\n\nfunction Card() {\n  return <Box items={[1]} />;\n}\n'

        assert _fix(tmp_path, code, declarations_position="start") == (
            'import { Box } from "./Box";\n'
            "const BoxItems = [1];\n"
            "\n"
            "function Card() {\n"
            "  return <Box items={BoxItems} />;\n"
            "}\n"
        )

    def test_expression_bodied_component_is_wrapped(self, tmp_path: Path):
        code = "export const Card = ({ a }) => (\n  <Box style={{ a }} />\n);\n"

        assert _fix(tmp_path, code) == (
            'import { useMemo } from "react";\n'
            "export const Card = ({ a }) => {\n"
            "  const boxStyle = useMemo(() => { return { a }; }, [a]);\n"
            "  return (\n"
            "  <Box style={boxStyle} />\n"
            ");\n"
            "};\n"
        )

    def test_multi_line_values_are_reindented(self, tmp_path: Path):
        code = (
            "function Card({ width }) {\n"
            "  return (\n"
            "    <Box\n"
            "      style={{\n"
            "        width,\n"
            "        height: 2,\n"
            "      }}\n"
            "    />\n"
            "  );\n"
            "}\n"
        )

        assert (
            "  const boxStyle = useMemo(() => { return {\n"
            "    width,\n"
            "    height: 2,\n"
            "  }; }, [width]);\n"
        ) in _fix(tmp_path, code)


class TestTypedBindings:
    def test_intrinsic_style_constant(self, tmp_path: Path):
        code = 'function Card() {\n  return <div style={{ color: "red" }} />;\n}\n'

        assert _fix(tmp_path, code) == (
            'import { CSSProperties } from "react";\n'
            "function Card() {\n"
            "  return <div style={divStyle} />;\n"
            "}\n"
            'const divStyle: CSSProperties | undefined = { color: "red" };\n'
        )

    def test_memo_imports_hook_before_type(self, tmp_path: Path):
        code = (
            'import { useState } from "react";\n'
            "\n"
            "function Card() {\n"
            "  const [width] = useState(1);\n"
            "  return <div style={{ width }} />;\n"
            "}\n"
        )

        output = _fix(tmp_path, code)

        assert output.startswith('import { useMemo, CSSProperties, useState } from "react";\n')
        assert "const divStyle = useMemo<CSSProperties | undefined>(() => { return { width }; }, [width]);" in output

    def test_callback_type_falls_back_to_indexed_access(self, tmp_path: Path):
        code = (
            'import { useState } from "react";\n'
            "\n"
            "function Modal(props: { onClick?: () => void }) {\n"
            "  return null;\n"
            "}\n"
            "\n"
            "function Page() {\n"
            "  const [open, setOpen] = useState(false);\n"
            "  return <Modal onClick={() => setOpen(!open)} />;\n"
            "}\n"
        )

        output = _fix(tmp_path, code)

        assert output.startswith('import { useCallback, useState } from "react";\n')
        assert (
            "  const handleModalClick = useCallback<(Parameters<typeof Modal>[0][\"onClick\"]) & Function>"
            "(() => setOpen(!open), [open]);\n"
            "  return <Modal onClick={handleModalClick} />;\n"
        ) in output

    def test_callable_declared_type_is_not_intersected(self, tmp_path: Path):
        code = (
            "function Modal(props: { onClick: () => void }) {\n"
            "  return null;\n"
            "}\n"
            "function Page({ id }) {\n"
            "  return <Modal onClick={() => go(id)} />;\n"
            "}\n"
        )

        assert (
            'const handleModalClick = useCallback<Parameters<typeof Modal>[0]["onClick"]>(() => go(id), [id]);'
        ) in _fix(tmp_path, code)

    def test_local_interface_needs_no_import(self, tmp_path: Path):
        code = (
            "interface Info { id: string }\n"
            "function Modal(props: { info?: Info }) {\n"
            "  return null;\n"
            "}\n"
            "function Page() {\n"
            '  return <Modal info={{ id: "a" }} />;\n'
            "}\n"
        )

        output = _fix(tmp_path, code)

        assert not output.startswith("import")
        assert output.endswith('const ModalInfo: Info | undefined = { id: "a" };\n')

    def test_type_parameter_falls_back(self, tmp_path: Path):
        code = (
            "function List<T>(props: { items: T[] }) {\n"
            "  return null;\n"
            "}\n"
            "function Page() {\n"
            "  return <List items={[1]} />;\n"
            "}\n"
        )

        assert 'const ListItems: Parameters<typeof List>[0]["items"] = [1];' in _fix(tmp_path, code)

    def test_shadowed_type_name_falls_back(self, tmp_path: Path):
        code = (
            "const CSSProperties = {};\n"
            "function Card() {\n"
            "  return <div style={{ color: 1 }} />;\n"
            "}\n"
        )

        output = _fix(tmp_path, code)

        assert output.startswith('import { ComponentProps } from "react";\n')
        assert output.endswith('const divStyle: ComponentProps<"div">["style"] = { color: 1 };\n')

    def test_type_definitions_can_be_disabled(self, tmp_path: Path):
        code = 'function Card() {\n  return <div style={{ color: "red" }} />;\n}\n'

        assert _fix(tmp_path, code, type_definitions=False) == (
            'function Card() {\n  return <div style={divStyle} />;\n}\nconst divStyle = { color: "red" };\n'
        )


class TestFixLoop:
    def test_overlapping_fixes_need_a_second_pass(self, tmp_path: Path):
        code = "function Card() {\n  return <List render={() => <Row style={{ a: 1 }} />} />;\n}\n"

        result = fix_source(code, _path(tmp_path))

        assert result.passes == 2
        assert result.applied == 2
        assert result.output == (
            'import { useCallback } from "react";\n'
            "function Card() {\n"
            "  const listRender = useCallback(() => <Row style={RowStyle} />, []);\n"
            "  return <List render={listRender} />;\n"
            "}\n"
            "const RowStyle = { a: 1 };\n"
        )

    @pytest.mark.parametrize(
        "code",
        [
            "function Card() {\n  return <Box style={{ size: 10 }} items={[1]} />;\n}\n",
            'import { useState } from "react";\nfunction Card() {\n  const [a] = useState(1);\n'
            "  return <div style={{ a }} onClick={() => a} />;\n}\n",
            "const Card = ({ a }) => <Box style={{ a }} items={[a]} onPick={() => a} />;\n",
        ],
    )
    def test_fixing_is_idempotent(self, tmp_path: Path, code: str):
        fixed = fix_source(code, _path(tmp_path))

        assert fixed.changed
        assert analyze_source(fixed.output, _path(tmp_path)) == []
        assert fix_source(fixed.output, _path(tmp_path)).output == fixed.output

    def test_pass_limit(self):
        assert MAX_FIX_PASSES == 10

    def test_fix_file_writes_changes(self, tmp_path: Path):
        path = _path(tmp_path)
        path.write_text("function Card() {\n  return <Box items={[1]} />;\n}\n")

        result = fix_file(path)

        assert result.changed
        assert path.read_text() == result.output
        assert "const BoxItems = [1];" in path.read_text()

    def test_fix_file_dry_run(self, tmp_path: Path):
        path = _path(tmp_path)
        original = "function Card() {\n  return <Box items={[1]} />;\n}\n"
        path.write_text(original)

        result = fix_file(path, write=False)

        assert result.changed
        assert path.read_text() == original
