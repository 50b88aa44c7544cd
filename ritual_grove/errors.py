"""Error taxonomy for the ritual engine.

Four families are distinguished:

* configuration errors (malformed conditions, bad migration definitions,
  unknown directions) which are always fatal to the current operation,
* answer validation errors which are reported per question and allow retry,
* I/O and resolution errors (missing sources, unwritable destinations),
* migration execution errors, raised after a Failed record has been logged.
"""

from __future__ import annotations

from pathlib import Path


class RitualError(Exception):
    """Base class for every error raised by the engine."""


class ConfigurationError(RitualError):
    """Raised when a manifest or call is misconfigured."""


class ConditionParseError(ConfigurationError):
    """Raised when a condition expression falls outside the supported grammar."""

    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        self.reason = reason
        super().__init__(f"invalid condition expression {expression!r}: {reason}")


class AnswerValidationError(RitualError):
    """Raised when an answer fails its question's validation rules."""

    def __init__(self, question: str, message: str) -> None:
        self.question = question
        self.message = message
        super().__init__(message)


class GenerationError(RitualError):
    """Raised when a file cannot be read, rendered or written."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = str(path)
        super().__init__(message)


class SourceNotFoundError(GenerationError):
    """Raised when a non-optional template or static source is missing."""

    def __init__(self, kind: str, path: str | Path) -> None:
        self.kind = kind
        super().__init__(path, f"{kind} source not found: {path}")


class RenderError(RitualError):
    """Raised when a template cannot be parsed or rendered."""

    def __init__(self, template_name: str, message: str) -> None:
        self.template_name = template_name
        super().__init__(f"failed to render template {template_name}: {message}")


class MigrationError(RitualError):
    """Raised when a migration step fails (after it has been recorded)."""

    def __init__(self, from_version: str, to_version: str, message: str) -> None:
        self.from_version = from_version
        self.to_version = to_version
        super().__init__(message)
