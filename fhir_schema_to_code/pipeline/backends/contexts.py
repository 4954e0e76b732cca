"""
Render contexts handed to templates.

Templates receive exactly one of these objects as ``ctx`` and may only read
its fields; the Jinja2 environment uses ``StrictUndefined`` so a reference to
anything else fails the render.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ArtifactKind(str, Enum):
    """Artifacts rendered per type."""

    CLASS = "class"
    XML_CODEC = "xml_codec"
    JSON_CODEC = "json_codec"
    UNIT_TEST = "unit_test"
    INTEGRATION_TEST = "integration_test"


@dataclass(frozen=True)
class ImportContext:
    module: str
    name: str


@dataclass(frozen=True)
class PropertyContext:
    """One flattened property, with every name the templates need precomputed."""

    # Schema name; also the XML element/attribute name and the JSON key
    name: str

    # Python attribute exposing the property
    attribute: str

    # Instance attribute holding the value
    private_attribute: str

    # Class constant holding ``name``
    constant_name: str

    # Referenced schema type, None for builtin values
    type_name: str | None

    # Generated class of the referenced type
    type_class: str | None

    # Native Python type for builtin values ("str", "bool", ...)
    native_type: str | None

    annotation: str
    is_xhtml: bool
    is_collection: bool
    is_attribute: bool
    is_required: bool
    min_occurs: int
    max_occurs: int | None
    is_choice_member: bool

    # Names of the other members of the choice group
    choice_siblings: tuple[str, ...]

    declared_by: str
    documentation: str


@dataclass(frozen=True)
class SerializationBlock:
    """A single property, or a choice group serialized as one unit."""

    members: tuple[PropertyContext, ...]
    is_choice: bool


@dataclass(frozen=True)
class ClassRenderContext:
    """Everything a per-type template may reference."""

    type_name: str
    kind: str
    class_name: str
    module_name: str
    namespace: str
    qualified_name: str
    documentation: str
    source_file: str
    generation_comment: str
    root_package: str
    xml_namespace: str
    parse_options_literal: str

    # Rendered base classes, in MRO order
    bases: tuple[str, ...]

    imports: tuple[ImportContext, ...]
    type_checking_imports: tuple[ImportContext, ...]

    # Flattened properties in declaration order, ancestors first
    properties: tuple[PropertyContext, ...]
    attribute_properties: tuple[PropertyContext, ...]
    element_properties: tuple[PropertyContext, ...]
    blocks: tuple[SerializationBlock, ...]
    choice_groups: tuple[tuple[PropertyContext, ...], ...]

    # Property receiving a scalar passed to the constructor
    value_property: str | None

    is_resource: bool
    is_top_level_resource: bool
    is_recursive_container: bool

    # Primitives and enumerations
    native_type: str
    enum_values: tuple[str, ...]
    pattern: str | None

    # (constant name, value) per enumeration value
    enum_constants: tuple[tuple[str, str], ...]

    test_endpoint: str | None

    # Codec fragments embedded into class artifacts
    xml_codec: str = ""
    json_codec: str = ""


@dataclass(frozen=True)
class StaticTypeEntry:
    name: str
    class_name: str
    module_path: str
    qualified_name: str
    constant_name: str
    kind: str
    is_resource: bool
    is_container: bool


@dataclass(frozen=True)
class StaticRenderContext:
    """Context for artifacts that depend on the whole type set."""

    artifact_name: str
    root_package: str
    generation_comment: str
    generator_version: str
    xml_namespace: str
    parse_options_literal: str

    # Every type, sorted by qualified name
    types: tuple[StaticTypeEntry, ...]
    resources: tuple[StaticTypeEntry, ...]
    containers: tuple[StaticTypeEntry, ...]
