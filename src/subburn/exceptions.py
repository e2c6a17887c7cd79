from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ErrorCategory(str, Enum):
    CONFIG = "config"
    DEPENDENCY = "dependency"
    RUNTIME = "runtime"
    INPUT = "input"
    RENDER = "render"


DEFAULT_EXIT_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.RUNTIME: 1,
    ErrorCategory.CONFIG: 2,
    ErrorCategory.DEPENDENCY: 3,
    ErrorCategory.INPUT: 4,
    ErrorCategory.RENDER: 5,
}

LOG_TAIL_LINES = 40


@dataclass
class SubburnError(Exception):
    """Base exception for subburn with standardized categories."""

    message: str
    category: ErrorCategory = ErrorCategory.RUNTIME
    exit_code: int | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.exit_code is None:
            self.exit_code = DEFAULT_EXIT_CODES.get(self.category, 1)

    def label(self) -> str:
        return {
            ErrorCategory.CONFIG: "Configuration error",
            ErrorCategory.DEPENDENCY: "Dependency error",
            ErrorCategory.RUNTIME: "Runtime error",
            ErrorCategory.INPUT: "Input error",
            ErrorCategory.RENDER: "Render error",
        }.get(self.category, "Error")

    def detail(self) -> str:
        return self.message


class DependencyMissingError(SubburnError):
    """Raised when a required external dependency is missing."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.DEPENDENCY,
            exit_code=exit_code,
        )


class RenderingNotSupportedError(DependencyMissingError):
    """Raised when the runtime cannot capture/encode the requested output."""


class ConfigurationError(SubburnError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.CONFIG,
            exit_code=exit_code,
        )


class InputError(SubburnError):
    """Raised for malformed timelines, empty or undecodable source video."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(
            message,
            category=ErrorCategory.INPUT,
            exit_code=exit_code,
        )


class TranslationMismatchError(InputError):
    """Raised when a translation does not return one line per segment."""

    def __init__(self, expected: int, got: int) -> None:
        super().__init__(
            f"Translation line count mismatch: expected {expected}, got {got}."
        )
        self.expected = expected
        self.got = got


@dataclass
class RenderEngineError(SubburnError):
    """Raised when ffmpeg fails; carries the captured diagnostic log."""

    category: ErrorCategory = ErrorCategory.RENDER
    logs: list[str] = field(default_factory=list)

    def log_tail(self, lines: int = LOG_TAIL_LINES) -> list[str]:
        return self.logs[-lines:] if lines > 0 else []

    def detail(self) -> str:
        tail = self.log_tail()
        if not tail:
            return self.message
        return self.message + "\n--- ffmpeg log (tail) ---\n" + "\n".join(tail)


@dataclass
class OutputValidationError(RenderEngineError):
    """Raised when the encoder reported success but the output is unusable."""


@dataclass
class RenderCancelledError(RenderEngineError):
    """Raised when a render is cancelled before the source ended."""
