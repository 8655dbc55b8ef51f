"""Exception hierarchy for literal-lift."""


class LiftError(Exception):
    """Base class for all literal-lift errors."""


class ConfigError(LiftError):
    """Raised when a configuration file or value is invalid."""


class SiteSkipped(LiftError):
    """Raised when an attribute site must be abandoned without a finding."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TypeResolutionError(LiftError):
    """Raised by a type oracle when a type cannot be determined."""


class OverlappingEditsError(LiftError):
    """Raised when two text edits handed to the assembler overlap."""
