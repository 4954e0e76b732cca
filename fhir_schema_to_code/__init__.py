"""FHIR Schema to Code Generator

Generates a Python library from a directory of FHIR-style XML Schema
documents: one class per schema type plus a type map, autoloader,
shared interfaces and a response parser.
"""

__version__ = "1.0.0"

from .errors import (
    CodegenError,
    ConfigurationError,
    EmissionError,
    FrozenGraphError,
    SchemaIntegrityError,
    SchemaParseError,
)
from .pipeline import (
    ArtifactKind,
    AtomicWriter,
    BuildOrchestrator,
    BuildState,
    CodeGeneratorConfig,
    Emitter,
    FormatterConfig,
    LayoutConfig,
    OutputConfig,
    SchemaIngestor,
    TypeGraph,
)

__all__ = [
    "ArtifactKind",
    "AtomicWriter",
    "BuildOrchestrator",
    "BuildState",
    "CodeGeneratorConfig",
    "CodegenError",
    "ConfigurationError",
    "Emitter",
    "EmissionError",
    "FormatterConfig",
    "FrozenGraphError",
    "LayoutConfig",
    "OutputConfig",
    "SchemaIngestor",
    "SchemaIntegrityError",
    "SchemaParseError",
    "TypeGraph",
]
