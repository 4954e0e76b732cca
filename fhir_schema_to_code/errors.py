"""
Error taxonomy for the generator.

Every error below is fatal to the run: nothing in the pipeline retries or
recovers from them. ``FrozenGraphError`` is a programming-contract violation
rather than an input problem and is therefore not a ``CodegenError``.
"""

from __future__ import annotations


class CodegenError(Exception):
    """Base class for all fatal generator errors."""


class ConfigurationError(CodegenError):
    """Raised for missing inputs or an unknown type-kind/artifact-kind pair."""


class SchemaParseError(CodegenError):
    """Raised when a schema document is unreadable, malformed or has the wrong root."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class SchemaIntegrityError(CodegenError):
    """Raised for duplicate registrations, dangling references and illegal cycles.

    Attributes:
        type_name: The offending type
        counterpart: The duplicated, missing or cyclic counterpart
    """

    def __init__(self, message: str, type_name: str | None = None, counterpart: str | None = None):
        self.type_name = type_name
        self.counterpart = counterpart
        super().__init__(message)


class EmissionError(CodegenError):
    """Raised when an artifact cannot be rendered or written."""

    def __init__(self, message: str, type_name: str | None = None, artifact_kind: str | None = None):
        self.type_name = type_name
        self.artifact_kind = artifact_kind
        if type_name is not None or artifact_kind is not None:
            message = f"[{type_name or '-'} / {artifact_kind or '-'}] {message}"
        super().__init__(message)


class FrozenGraphError(RuntimeError):
    """Raised when code attempts to mutate a resolved type graph."""
