"""
Emitter: renders artifacts for resolved types.

Phase 3 of the pipeline. Templates are selected by ``(TypeKind, ArtifactKind)``
and rendered with Jinja2 from a frozen context built out of the frozen graph.
Nothing in rendering depends on dict or set iteration order of schema data:
properties follow declaration order and type lists follow qualified names.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from pathlib import Path

import jinja2

from ... import __version__
from ...errors import ConfigurationError, EmissionError
from ...utils import python_identifier, to_snake_case
from ..analyzer.ir_nodes import EffectiveProperty, Type
from ..analyzer.type_graph import TypeGraph
from ..config import CodeGeneratorConfig
from ..formatters import RuffFormatter
from ..schema_ast.nodes import TypeKind
from .contexts import (
    ArtifactKind,
    ClassRenderContext,
    ImportContext,
    PropertyContext,
    SerializationBlock,
    StaticRenderContext,
    StaticTypeEntry,
)

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent.parent / "templates" / "python"

# Template per (type kind, artifact kind); a pair missing here is a configuration error
TEMPLATE_SETS: dict[tuple[TypeKind, ArtifactKind], str] = {
    (TypeKind.PRIMITIVE, ArtifactKind.CLASS): "primitive/class.py.jinja2",
    (TypeKind.PRIMITIVE, ArtifactKind.XML_CODEC): "primitive/xml_codec.py.jinja2",
    (TypeKind.PRIMITIVE, ArtifactKind.JSON_CODEC): "primitive/json_codec.py.jinja2",
    (TypeKind.PRIMITIVE, ArtifactKind.UNIT_TEST): "tests/unit.py.jinja2",
    (TypeKind.ENUMERATION, ArtifactKind.CLASS): "enumeration/class.py.jinja2",
    (TypeKind.ENUMERATION, ArtifactKind.XML_CODEC): "primitive/xml_codec.py.jinja2",
    (TypeKind.ENUMERATION, ArtifactKind.JSON_CODEC): "primitive/json_codec.py.jinja2",
    (TypeKind.ENUMERATION, ArtifactKind.UNIT_TEST): "tests/unit.py.jinja2",
    (TypeKind.COMPLEX, ArtifactKind.CLASS): "complex/class.py.jinja2",
    (TypeKind.COMPLEX, ArtifactKind.XML_CODEC): "complex/xml_codec.py.jinja2",
    (TypeKind.COMPLEX, ArtifactKind.JSON_CODEC): "complex/json_codec.py.jinja2",
    (TypeKind.COMPLEX, ArtifactKind.UNIT_TEST): "tests/unit.py.jinja2",
    (TypeKind.RESOURCE, ArtifactKind.CLASS): "resource/class.py.jinja2",
    (TypeKind.RESOURCE, ArtifactKind.XML_CODEC): "complex/xml_codec.py.jinja2",
    (TypeKind.RESOURCE, ArtifactKind.JSON_CODEC): "complex/json_codec.py.jinja2",
    (TypeKind.RESOURCE, ArtifactKind.UNIT_TEST): "tests/unit.py.jinja2",
    (TypeKind.RESOURCE, ArtifactKind.INTEGRATION_TEST): "tests/integration.py.jinja2",
    (TypeKind.CONTAINER, ArtifactKind.CLASS): "container/class.py.jinja2",
    (TypeKind.CONTAINER, ArtifactKind.XML_CODEC): "container/xml_codec.py.jinja2",
    (TypeKind.CONTAINER, ArtifactKind.JSON_CODEC): "container/json_codec.py.jinja2",
    (TypeKind.CONTAINER, ArtifactKind.UNIT_TEST): "tests/unit.py.jinja2",
}

# Cross-cutting artifacts, in emission order
STATIC_ARTIFACTS: tuple[str, ...] = (
    "constants",
    "type_map",
    "autoloader",
    "type_interface",
    "contained_type_interface",
    "comment_container_interface",
    "comment_container_mixin",
    "validation_assertions_mixin",
    "change_tracking_mixin",
    "response_parser_config",
    "response_parser",
)

STATIC_TEST_ARTIFACTS: tuple[str, ...] = ("constants", "type_map")

# XML Schema builtins -> native Python type
BUILTIN_NATIVE_TYPES = {
    "boolean": "bool",
    "int": "int",
    "integer": "int",
    "long": "int",
    "short": "int",
    "positiveInteger": "int",
    "nonNegativeInteger": "int",
    "negativeInteger": "int",
    "nonPositiveInteger": "int",
    "unsignedInt": "int",
    "decimal": "float",
    "double": "float",
    "float": "float",
}

ROOT_MIXINS = ("FHIRCommentContainerMixin", "FHIRValidationAssertionsMixin", "FHIRChangeTrackingMixin")


def native_type_for(builtin: str | None) -> str:
    return BUILTIN_NATIVE_TYPES.get(builtin or "string", "str")


def docstring_text(text: str) -> str:
    """Make schema documentation safe to place inside a triple-quoted docstring."""
    text = text.strip().replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    return "\n".join(line.rstrip() for line in text.splitlines())


def enum_constants(values: tuple[str, ...]) -> tuple[tuple[str, str], ...]:
    """
    Class constant name for each enumeration value.

    Values without a usable identifier ("<=") fall back to their position.
    """
    constants = []
    seen = set()
    for index, value in enumerate(values):
        name = re.sub(r"\W+", "_", to_snake_case(value)).strip("_").upper()
        name = f"VALUE_{name}" if name else f"VALUE_{index}"
        if name in seen:
            name = f"{name}_{index}"
        seen.add(name)
        constants.append((name, value))
    return tuple(constants)


class Emitter:
    """Renders per-type and static artifacts from a frozen ``TypeGraph``."""

    def __init__(self, config: CodeGeneratorConfig):
        """
        Initialize the emitter and load every template.

        Args:
            config: Code generation configuration

        Raises:
            ConfigurationError: If a registered template cannot be loaded
        """
        self.config = config
        self.root = config.layout.namespace_root
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
            lstrip_blocks=True,
            trim_blocks=True,
            keep_trailing_newline=True,
            undefined=jinja2.StrictUndefined,
        )
        self.jinja_env.filters["pyrepr"] = repr
        self.jinja_env.filters["docstring"] = docstring_text
        self.formatter = RuffFormatter() if config.formatter.enabled else None
        self._templates = self._load_templates()

    def _load_templates(self) -> dict[str, jinja2.Template]:
        names = sorted(
            {*TEMPLATE_SETS.values()}
            | {f"static/{name}.py.jinja2" for name in STATIC_ARTIFACTS}
            | {f"tests/static/{name}.py.jinja2" for name in STATIC_TEST_ARTIFACTS}
        )
        templates = {}
        for name in names:
            try:
                templates[name] = self.jinja_env.get_template(name)
            except jinja2.TemplateError as e:
                raise ConfigurationError(f'Unable to load template "{name}": {e}') from e
        return templates

    # -- per-type artifacts ------------------------------------------------

    def emit(self, t: Type, artifact_kind: ArtifactKind, graph: TypeGraph) -> bytes:
        """
        Render one artifact for one type.

        Args:
            t: A type of ``graph``
            artifact_kind: Which artifact to render
            graph: The frozen type graph

        Returns:
            Rendered content, UTF-8 encoded

        Raises:
            ConfigurationError: If no template is registered for the pair
            EmissionError: If rendering fails or a graph fact is missing
        """
        template = self._template_for(t, artifact_kind)
        try:
            ctx = self.build_context(t, graph)
            if artifact_kind is ArtifactKind.CLASS:
                ctx = replace(
                    ctx,
                    xml_codec=self._render(self._template_for(t, ArtifactKind.XML_CODEC), ctx),
                    json_codec=self._render(self._template_for(t, ArtifactKind.JSON_CODEC), ctx),
                )
            content = self._render(template, ctx)
        except (jinja2.TemplateError, KeyError) as e:
            raise EmissionError(f"Render failed: {e}", t.name, artifact_kind.value) from e

        if artifact_kind not in (ArtifactKind.XML_CODEC, ArtifactKind.JSON_CODEC):
            content = self._format(content)
        return content.encode("utf-8")

    def _template_for(self, t: Type, artifact_kind: ArtifactKind) -> jinja2.Template:
        name = TEMPLATE_SETS.get((t.kind, artifact_kind))
        if name is None:
            raise ConfigurationError(f'No template registered for kind "{t.kind.value}" and artifact "{artifact_kind.value}"')
        return self._templates[name]

    def _render(self, template: jinja2.Template, ctx: object) -> str:
        return template.render(ctx=ctx)

    def _format(self, content: str) -> str:
        if self.formatter is None:
            return content
        return self.formatter.format(content, self.config.formatter)

    def build_context(self, t: Type, graph: TypeGraph) -> ClassRenderContext:
        """Build the render context of ``t`` from graph facts."""
        base = graph.base_of(t)
        effective = graph.effective_properties(t)
        choice_members = {}
        for group in graph.choice_groups(t):
            names = tuple(eff.property.name for eff in group)
            for eff in group:
                choice_members[eff.property.name] = tuple(n for n in names if n != eff.property.name)

        properties = tuple(self._property_context(eff, graph, choice_members) for eff in effective)
        self._check_member_names(t, properties)
        blocks = self._serialization_blocks(effective, properties)
        choice_groups = tuple(block.members for block in blocks if block.is_choice)

        # Recursive containers never extend their base: the chain loops back on itself
        if t.is_recursive_container:
            base = None

        bases, imports = self._bases_and_imports(t, base, graph)
        type_checking_imports = self._type_checking_imports(t, properties, graph)

        value_property = None
        if any(p.name == "value" for p in properties):
            value_property = "value"

        native_type = "str"
        if t.kind in (TypeKind.PRIMITIVE, TypeKind.ENUMERATION):
            native_type = native_type_for(graph.native_base(t))

        return ClassRenderContext(
            type_name=t.name,
            kind=t.kind.value,
            class_name=t.class_name,
            module_name=t.module_name,
            namespace=t.namespace,
            qualified_name=t.qualified_name,
            documentation=t.documentation,
            source_file=Path(t.source_location).name,
            generation_comment=self.generation_comment(Path(t.source_location).name),
            root_package=self.root,
            xml_namespace=self.config.xml_namespace,
            parse_options_literal=self.parse_options_literal(),
            bases=bases,
            imports=imports,
            type_checking_imports=type_checking_imports,
            properties=properties,
            attribute_properties=tuple(p for p in properties if p.is_attribute),
            element_properties=tuple(p for p in properties if not p.is_attribute),
            blocks=blocks,
            choice_groups=choice_groups,
            value_property=value_property,
            is_resource=t.kind is TypeKind.RESOURCE,
            is_top_level_resource=graph.is_top_level_resource(t),
            is_recursive_container=t.is_recursive_container,
            native_type=native_type,
            enum_values=t.enum_values,
            pattern=t.pattern,
            enum_constants=enum_constants(t.enum_values),
            test_endpoint=self.config.test_endpoint,
        )

    def _check_member_names(self, t: Type, properties: tuple[PropertyContext, ...]) -> None:
        """Reject two properties that would share a generated attribute, accessor or constant."""
        owners: dict[str, str] = {}
        for p in properties:
            for member in (p.attribute, p.private_attribute, p.constant_name):
                owner = owners.setdefault(member, p.name)
                if owner != p.name:
                    raise EmissionError(
                        f'Properties "{owner}" and "{p.name}" both map to class member "{member}"',
                        t.name,
                        ArtifactKind.CLASS.value,
                    )

    def _property_context(
        self,
        eff: EffectiveProperty,
        graph: TypeGraph,
        choice_members: dict[str, tuple[str, ...]],
    ) -> PropertyContext:
        prop = eff.property
        attribute = python_identifier(prop.name)
        type_class = None
        native_type = None
        if prop.type_ref is not None:
            type_class = graph.get(prop.type_ref).class_name
            item_annotation = type_class
        else:
            native_type = native_type_for(prop.builtin)
            item_annotation = native_type
        annotation = f"list[{item_annotation}]" if prop.is_collection else f"{item_annotation} | None"

        return PropertyContext(
            name=prop.name,
            attribute=attribute,
            private_attribute=f"_{attribute.rstrip('_')}",
            constant_name=f"FIELD_{to_snake_case(prop.name).upper()}",
            type_name=prop.type_ref,
            type_class=type_class,
            native_type=native_type,
            annotation=annotation,
            is_xhtml=prop.builtin == "xhtml",
            is_collection=prop.is_collection,
            is_attribute=prop.is_attribute,
            is_required=prop.is_required,
            min_occurs=prop.min_occurs,
            max_occurs=prop.max_occurs,
            is_choice_member=prop.is_choice_member,
            choice_siblings=choice_members.get(prop.name, ()),
            declared_by=eff.declared_by,
            documentation=prop.documentation,
        )

    def _serialization_blocks(
        self,
        effective: tuple[EffectiveProperty, ...],
        properties: tuple[PropertyContext, ...],
    ) -> tuple[SerializationBlock, ...]:
        """Group properties so each choice group is serialized at its first member's position."""
        blocks: list[SerializationBlock] = []
        group_members: dict[tuple[str, int], list[PropertyContext]] = {}
        order: list[tuple[str, int] | int] = []
        for index, (eff, ctx) in enumerate(zip(effective, properties)):
            key = eff.choice_key
            if key is None:
                order.append(index)
                continue
            if key not in group_members:
                group_members[key] = []
                order.append(key)
            group_members[key].append(ctx)

        for entry in order:
            if isinstance(entry, int):
                blocks.append(SerializationBlock(members=(properties[entry],), is_choice=False))
            else:
                blocks.append(SerializationBlock(members=tuple(group_members[entry]), is_choice=True))
        return tuple(blocks)

    def _bases_and_imports(
        self, t: Type, base: Type | None, graph: TypeGraph
    ) -> tuple[tuple[str, ...], tuple[ImportContext, ...]]:
        root = self.root
        imports = {
            ImportContext(f"{root}.type_interface", "FHIRTypeInterface"),
            ImportContext(f"{root}.type_map", "get_type_class"),
        }
        if base is None:
            bases = list(ROOT_MIXINS)
            imports.add(ImportContext(f"{root}.comment_container_mixin", "FHIRCommentContainerMixin"))
            imports.add(ImportContext(f"{root}.validation_assertions_mixin", "FHIRValidationAssertionsMixin"))
            imports.add(ImportContext(f"{root}.change_tracking_mixin", "FHIRChangeTrackingMixin"))
            if t.kind is TypeKind.RESOURCE:
                bases.append("FHIRContainedTypeInterface")
                imports.add(ImportContext(f"{root}.contained_type_interface", "FHIRContainedTypeInterface"))
            else:
                bases.append("FHIRTypeInterface")
        else:
            bases = [base.class_name]
            imports.add(ImportContext(base.module_path, base.class_name))
            if t.kind is TypeKind.RESOURCE and base.kind is not TypeKind.RESOURCE:
                bases.append("FHIRContainedTypeInterface")
                imports.add(ImportContext(f"{root}.contained_type_interface", "FHIRContainedTypeInterface"))
        return tuple(bases), tuple(sorted(imports, key=lambda i: (i.module, i.name)))

    def _type_checking_imports(
        self, t: Type, properties: tuple[PropertyContext, ...], graph: TypeGraph
    ) -> tuple[ImportContext, ...]:
        imports = set()
        for p in properties:
            if p.type_name is None or p.type_name == t.name:
                continue
            target = graph.get(p.type_name)
            imports.add(ImportContext(target.module_path, target.class_name))
        return tuple(sorted(imports, key=lambda i: (i.module, i.name)))

    # -- static artifacts --------------------------------------------------

    def emit_static(self, artifact_name: str, graph: TypeGraph, test: bool = False) -> bytes:
        """
        Render a cross-cutting artifact from the whole graph.

        Args:
            artifact_name: One of ``STATIC_ARTIFACTS`` (or ``STATIC_TEST_ARTIFACTS`` with ``test``)
            graph: The frozen type graph
            test: Render the test module for the artifact instead

        Raises:
            ConfigurationError: If the artifact is unknown
            EmissionError: If rendering fails
        """
        known = STATIC_TEST_ARTIFACTS if test else STATIC_ARTIFACTS
        if artifact_name not in known:
            raise ConfigurationError(f'Unknown static artifact "{artifact_name}"')
        name = f"tests/static/{artifact_name}.py.jinja2" if test else f"static/{artifact_name}.py.jinja2"
        try:
            content = self._render(self._templates[name], self.build_static_context(artifact_name, graph))
        except jinja2.TemplateError as e:
            raise EmissionError(f"Render failed: {e}", artifact_name, "static_test" if test else "static") from e
        return self._format(content).encode("utf-8")

    def build_static_context(self, artifact_name: str, graph: TypeGraph) -> StaticRenderContext:
        entries = tuple(
            StaticTypeEntry(
                name=t.name,
                class_name=t.class_name,
                module_path=t.module_path,
                qualified_name=t.qualified_name,
                constant_name=to_snake_case(t.name).upper(),
                kind=t.kind.value,
                is_resource=t.kind is TypeKind.RESOURCE,
                is_container=t.kind is TypeKind.CONTAINER,
            )
            for t in graph.types()
        )
        return StaticRenderContext(
            artifact_name=artifact_name,
            root_package=self.root,
            generation_comment=self.generation_comment(),
            generator_version=__version__,
            xml_namespace=self.config.xml_namespace,
            parse_options_literal=self.parse_options_literal(),
            types=entries,
            resources=tuple(e for e in entries if e.is_resource),
            containers=tuple(e for e in entries if e.is_container),
        )

    # -- shared ------------------------------------------------------------

    def generation_comment(self, source: str | None = None) -> str:
        if not self.config.add_generation_comment:
            return ""
        comment = f"Generated by fhir_schema_to_code {__version__}"
        if source:
            comment += f" from {source}"
        return comment + ". Do not edit by hand."

    def parse_options_literal(self) -> str:
        return repr(dict(sorted(self.config.xml_parse_options.items())))
