"""
Resolved type records.

These records are produced by ``TypeGraph.resolve`` once every reference has
been checked. They are frozen: emission reads them, nothing writes them.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..schema_ast.nodes import TypeKind


@dataclass(frozen=True)
class Property:
    """A resolved property of a type."""

    name: str
    type_ref: str | None
    builtin: str | None
    min_occurs: int
    max_occurs: int | None
    choice_group: int | None
    is_attribute: bool
    declaration_order: int
    documentation: str = ""

    @property
    def is_choice_member(self) -> bool:
        return self.choice_group is not None

    @property
    def is_collection(self) -> bool:
        return self.max_occurs is None or self.max_occurs > 1

    @property
    def is_required(self) -> bool:
        return self.min_occurs > 0


@dataclass(frozen=True)
class Type:
    """A resolved schema type, corresponding to one generated class."""

    name: str
    kind: TypeKind
    namespace: str
    class_name: str
    module_name: str
    base_name: str | None
    properties: tuple[Property, ...]
    source_location: str
    documentation: str = ""
    primitive_base: str | None = None
    enum_values: tuple[str, ...] = ()
    pattern: str | None = None

    # Set for whitelisted containers; emitted with recursive containment logic
    is_recursive_container: bool = False

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.class_name}"

    @property
    def module_path(self) -> str:
        return f"{self.namespace}.{self.module_name}"

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class EffectiveProperty:
    """A property as seen on a type once inherited properties are flattened in."""

    property: Property

    # Name of the type that declares (or overrides) the property
    declared_by: str

    # Position in the flattened property list
    position: int

    @property
    def choice_key(self) -> tuple[str, int] | None:
        if self.property.choice_group is None:
            return None
        return (self.declared_by, self.property.choice_group)
