from collections.abc import Iterable
from pathlib import Path

_LANGUAGE_ALIASES = {
    "javascript": "javascript",
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "tsx",
    "typescript": "typescript",
}

_EXTENSION_LANGUAGE_MAP = {
    ".cjs": "javascript",
    ".cts": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".mts": "typescript",
    ".ts": "typescript",
    ".tsx": "tsx",
}

_LANGUAGE_DEFAULT_EXTENSIONS = {
    "javascript": ".jsx",
    "tsx": ".tsx",
    "typescript": ".ts",
}

_SUPPORTED_LANGUAGES = set(_LANGUAGE_DEFAULT_EXTENSIONS)

# Grammars that understand JSX.
_JSX_LANGUAGES = frozenset({"javascript", "tsx"})


def normalize_language(language: str) -> str:
    normalized = language.strip().lower()
    resolved = _LANGUAGE_ALIASES.get(normalized, normalized)
    if resolved not in _SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language '{language}'. Supported: {sorted(_SUPPORTED_LANGUAGES)}")
    return resolved


def detect_language_from_path(file_path: Path) -> str:
    suffix = file_path.suffix.lower()
    if suffix in _EXTENSION_LANGUAGE_MAP:
        return _EXTENSION_LANGUAGE_MAP[suffix]
    raise ValueError(f"Unsupported file extension: {suffix}")


def supports_jsx(language: str) -> bool:
    return language in _JSX_LANGUAGES


def default_path_for(language: str, directory: Path | None = None) -> Path:
    """Return a placeholder file path for in-memory sources of ``language``."""
    suffix = _LANGUAGE_DEFAULT_EXTENSIONS.get(language, ".tsx")
    return (directory or Path.cwd()) / f"__snippet__{suffix}"


def is_supported_source(path: Path) -> bool:
    return path.suffix.lower() in _EXTENSION_LANGUAGE_MAP


_SKIPPED_DIRECTORIES = frozenset({"node_modules", ".git"})


def collect_source_files(paths: Iterable[Path]) -> list[Path]:
    """Expand directories into the supported source files below them, skipping dependencies."""
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            for candidate in sorted(path.rglob("*")):
                if _SKIPPED_DIRECTORIES.intersection(candidate.relative_to(path).parts):
                    continue
                if candidate.is_file() and is_supported_source(candidate) and not candidate.name.endswith(".d.ts"):
                    files.append(candidate)
        elif path.is_file():
            files.append(path)
        else:
            raise FileNotFoundError(f"File not found: {path}")
    return files
