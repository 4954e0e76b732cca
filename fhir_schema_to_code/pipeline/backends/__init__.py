"""
Code generation backend.

Renders per-type and static artifacts of the generated library.
"""

from __future__ import annotations

from .contexts import (
    ArtifactKind,
    ClassRenderContext,
    ImportContext,
    PropertyContext,
    SerializationBlock,
    StaticRenderContext,
    StaticTypeEntry,
)
from .emitter import STATIC_ARTIFACTS, STATIC_TEST_ARTIFACTS, TEMPLATE_SETS, Emitter

__all__ = [
    "ArtifactKind",
    "ClassRenderContext",
    "Emitter",
    "ImportContext",
    "PropertyContext",
    "SerializationBlock",
    "StaticRenderContext",
    "StaticTypeEntry",
    "STATIC_ARTIFACTS",
    "STATIC_TEST_ARTIFACTS",
    "TEMPLATE_SETS",
]
