"""
Name resolver for namespaces, class names and module names.

Every function here is pure: the same input always yields the same output,
independent of the order in which types are processed.
"""

from __future__ import annotations

from ...utils import snake_to_pascal_case, to_snake_case
from ..schema_ast.nodes import TypeKind

# Sub-package per kind, relative to the namespace root
KIND_NAMESPACES = {
    TypeKind.PRIMITIVE: "primitive",
    TypeKind.ENUMERATION: "code",
    TypeKind.COMPLEX: "element",
    TypeKind.RESOURCE: "resource",
    TypeKind.CONTAINER: "resource",
}


def namespace_for(kind: TypeKind, name: str, root: str) -> str:
    """
    Compute the effective namespace of a type.

    Dotted names ("Patient.Contact") are backbone parts of their owning type and
    are nested under "backbone.<owner>", which keeps them clear of the owner's
    own module.

    Args:
        kind: The resolved type kind
        name: The declared schema name
        root: Namespace root of the generated library

    Returns:
        Dotted package path, e.g. "fhir.resource" or "fhir.element.backbone.patient"
    """
    namespace = f"{root}.{KIND_NAMESPACES[kind]}"
    if "." in name:
        owner = name.split(".", 1)[0]
        namespace = f"{namespace}.backbone.{to_snake_case(owner)}"
    return namespace


def class_name_for(name: str, prefix: str) -> str:
    """'Patient.Contact' -> 'FHIRPatientContact'."""
    return f"{prefix}{snake_to_pascal_case(name)}"


def module_name_for(name: str) -> str:
    """'Patient.Contact' -> 'patient_contact'."""
    return to_snake_case(name)
