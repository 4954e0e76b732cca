"""
Pipeline - XSD to code library generator.

The run is split into phases, each with its own module:

1. Phase 1 (Ingestor): Parse XSD documents into type stubs
2. Phase 2 (Analyzer): Register, link and freeze stubs into a type graph
3. Phase 3 (Backend): Render class, codec and test artifacts per type
4. Phase 4 (Formatter): Optional post-processing with ruff
5. Phase 5 (Writer): Atomic write of every artifact
"""

from __future__ import annotations

from .analyzer import TypeGraph
from .backends import ArtifactKind, Emitter
from .config import CodeGeneratorConfig, FormatterConfig, LayoutConfig, OutputConfig
from .orchestrator import BuildOrchestrator, BuildState
from .schema_ast import SchemaIngestor
from .writer import AtomicWriter

__all__ = [
    "ArtifactKind",
    "AtomicWriter",
    "BuildOrchestrator",
    "BuildState",
    "CodeGeneratorConfig",
    "Emitter",
    "FormatterConfig",
    "LayoutConfig",
    "OutputConfig",
    "SchemaIngestor",
    "TypeGraph",
]
