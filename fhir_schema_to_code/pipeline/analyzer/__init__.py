"""
Analyzer module.

Contains name resolution, the resolved type records and the type graph.
"""

from __future__ import annotations

from .ir_nodes import EffectiveProperty, Property, Type
from .name_resolver import class_name_for, module_name_for, namespace_for
from .type_graph import TypeGraph

__all__ = [
    "Type",
    "Property",
    "EffectiveProperty",
    "TypeGraph",
    "namespace_for",
    "class_name_for",
    "module_name_for",
]
