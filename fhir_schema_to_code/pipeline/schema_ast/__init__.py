"""
Schema ingestion module.

Parses XSD documents into unresolved type stubs.
"""

from __future__ import annotations

from .ingestor import SchemaIngestor
from .nodes import PropertyStub, TypeKind, TypeStub
from .parser import SchemaDocumentParser

__all__ = [
    "SchemaIngestor",
    "SchemaDocumentParser",
    "TypeStub",
    "PropertyStub",
    "TypeKind",
]
