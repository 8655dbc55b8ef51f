import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from literal_lift.config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_FILE,
    IgnorePattern,
    LiftOptions,
    compile_ignore_list,
    load_options,
    parse_options,
)
from literal_lift.errors import ConfigError


class TestParseOptions:
    def test_defaults(self):
        options = parse_options("{}")

        assert options == LiftOptions()
        assert options.check_function
        assert options.short_component_name_threshold == 5
        assert options.declarations_position == "end"
        assert options.ignored_components == []

    def test_camel_case_keys(self):
        options = parse_options(
            '{"checkFunction": false, "checkRegExp": false, "typeDefinitions": false,'
            ' "shortComponentNameThreshold": 3, "declarationsPosition": "start",'
            ' "ignoredComponents": ["Box", {"pattern": "^Mod", "flags": "i"}]}'
        )

        assert not options.check_function
        assert not options.check_reg_exp
        assert not options.type_definitions
        assert options.short_component_name_threshold == 3
        assert options.declarations_position == "start"
        assert options.ignored_components == ["Box", IgnorePattern(pattern="^Mod", flags="i")]

    @pytest.mark.parametrize(
        "raw",
        [
            '{"unknownOption": true}',
            '{"declarationsPosition": "middle"}',
            '{"shortComponentNameThreshold": -1}',
            '{"ignoredComponents": [42]}',
            "not json",
        ],
    )
    def test_invalid_options(self, raw: str):
        with pytest.raises(ConfigError, match="Invalid configuration"):
            parse_options(raw)

    def test_options_are_frozen(self):
        with pytest.raises(ValidationError):
            LiftOptions().check_array = False  # type: ignore[misc]


class TestLoadOptions:
    def test_explicit_path(self, tmp_path: Path):
        config = tmp_path / "lift.json"
        config.write_text('{"checkArray": false}')

        assert not load_options(config).check_array

    def test_missing_explicit_path(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_options(tmp_path / "missing.json")

    def test_environment_variable(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        config = tmp_path / "env.json"
        config.write_text('{"checkNewExpression": false}')
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config))

        assert not load_options().check_new_expression

    def test_environment_variable_to_missing_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "gone.json"))

        with pytest.raises(ConfigError, match=CONFIG_ENV_VAR):
            load_options()

    def test_default_file_in_working_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)
        (tmp_path / DEFAULT_CONFIG_FILE).write_text('{"checkFunction": false}')

        assert not load_options().check_function

    def test_defaults_without_any_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)

        assert load_options() == LiftOptions()


class TestIgnoreList:
    def test_exact_names_and_patterns(self):
        ignore = compile_ignore_list(["Box", IgnorePattern(pattern="^mod", flags="i")])

        assert ignore
        assert ignore.matches("Box")
        assert ignore.matches("Modal")
        assert not ignore.matches("BoxItem")

    def test_empty(self):
        assert not compile_ignore_list([])

    def test_invalid_patterns_are_skipped(self, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.WARNING, logger="literal_lift.config"):
            ignore = compile_ignore_list(
                [IgnorePattern(pattern="(unclosed"), IgnorePattern(pattern="ok", flags="q"), "Box"]
            )

        assert ignore.patterns == ()
        assert ignore.matches("Box")
        assert "(unclosed" in caplog.text
        assert "unknown regular expression flag 'q'" in caplog.text
