"""Rule options and their loading."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from literal_lift.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LITERAL_LIFT_CONFIG"
DEFAULT_CONFIG_FILE = ".literal-lift.json"

_JS_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "u": 0,
    # global and sticky have no meaning for a single test
    "g": 0,
    "y": 0,
}


class IgnorePattern(BaseModel):
    pattern: str
    flags: str = ""


class LiftOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid", frozen=True)

    check_function: bool = True
    check_array: bool = True
    check_return_value_of_calling: bool = True
    check_new_expression: bool = True
    check_reg_exp: bool = True
    type_definitions: bool = True
    short_component_name_threshold: int = Field(default=5, ge=0)
    ignored_components: list[str | IgnorePattern] = Field(default_factory=list)
    declarations_position: Literal["start", "end"] = "end"


@dataclass(frozen=True)
class IgnoreList:
    exact: frozenset[str]
    patterns: tuple[re.Pattern[str], ...]

    def matches(self, name: str) -> bool:
        return name in self.exact or any(p.search(name) for p in self.patterns)

    def __bool__(self) -> bool:
        return bool(self.exact or self.patterns)


def compile_ignore_list(entries: list[str | IgnorePattern]) -> IgnoreList:
    exact: set[str] = set()
    patterns: list[re.Pattern[str]] = []
    for entry in entries:
        if isinstance(entry, str):
            exact.add(entry)
            continue
        try:
            patterns.append(re.compile(entry.pattern, _translate_flags(entry.flags)))
        except (re.error, ValueError) as exc:
            logger.warning("Skipping invalid ignoredComponents pattern %r: %s", entry.pattern, exc)
    return IgnoreList(exact=frozenset(exact), patterns=tuple(patterns))


def _translate_flags(flags: str) -> int:
    value = 0
    for flag in flags:
        if flag not in _JS_REGEX_FLAGS:
            raise ValueError(f"unknown regular expression flag '{flag}'")
        value |= _JS_REGEX_FLAGS[flag]
    return value


def parse_options(raw: str | bytes) -> LiftOptions:
    try:
        return LiftOptions.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_options(path: str | Path | None = None) -> LiftOptions:
    """Load options from ``path``, ``$LITERAL_LIFT_CONFIG`` or ``./.literal-lift.json``.

    Falls back to defaults when none of them exists.
    """
    candidate: Path | None = None
    if path is not None:
        candidate = Path(path)
        if not candidate.is_file():
            raise ConfigError(f"Config file not found: {candidate}")
    elif env_path := os.getenv(CONFIG_ENV_VAR):
        candidate = Path(env_path)
        if not candidate.is_file():
            raise ConfigError(f"{CONFIG_ENV_VAR} points to a missing file: {candidate}")
    elif Path(DEFAULT_CONFIG_FILE).is_file():
        candidate = Path(DEFAULT_CONFIG_FILE)

    if candidate is None:
        return LiftOptions()
    logger.debug("Loading options from %s", candidate)
    return parse_options(candidate.read_bytes())
