"""
Stub records produced by schema ingestion.

Stubs are mutable and may hold forward references by name. They are promoted
to frozen ``Type`` records by ``TypeGraph.resolve``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TypeKind(str, Enum):
    """Kind of a schema type; selects the template set used for emission."""

    PRIMITIVE = "primitive"
    ENUMERATION = "enumeration"
    COMPLEX = "complex"
    RESOURCE = "resource"
    CONTAINER = "container"


@dataclass
class PropertyStub:
    """A property declared by a complex type, with its raw type reference."""

    name: str = ""

    # Schema type name, None when the property holds an XML Schema builtin
    type_ref: str | None = None

    # XML Schema builtin local name ("string", "boolean", ...) or "xhtml"
    builtin: str | None = None

    min_occurs: int = 0

    # None means unbounded
    max_occurs: int | None = 1

    # Properties sharing a group number are mutually exclusive
    choice_group: int | None = None

    is_attribute: bool = False
    declaration_order: int = 0
    documentation: str = ""


@dataclass(eq=False)
class TypeStub:
    """A type record before reference resolution.

    Stubs compare by identity so a set of stubs keeps every ingested
    declaration, including duplicates that resolution must reject.
    """

    name: str = ""
    kind: TypeKind = TypeKind.COMPLEX
    base_ref: str | None = None
    properties: list[PropertyStub] = field(default_factory=list)

    # Originating document, for diagnostics
    source_location: str = ""

    documentation: str = ""

    # For primitives and enumerations: builtin the restriction is based on
    primitive_base: str | None = None

    enum_values: list[str] = field(default_factory=list)
    pattern: str | None = None

    def add_property(self, prop: PropertyStub) -> PropertyStub:
        prop.declaration_order = len(self.properties)
        self.properties.append(prop)
        return prop
