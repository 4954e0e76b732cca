"""
XML Schema document parser that builds type stubs.

Phase 1 of the pipeline: parse one XSD document into ``TypeStub`` records
without resolving any reference. Only the structural grammar used by the
clinical-data schemas is understood: top-level named ``complexType`` and
``simpleType`` declarations with sequence/choice/all particles, attributes
and single-base extension or restriction.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from xml.etree.ElementTree import Element

import defusedxml
import defusedxml.ElementTree as ET

from ...errors import SchemaParseError
from .nodes import PropertyStub, TypeKind, TypeStub

logger = logging.getLogger(__name__)

XS_NS = "http://www.w3.org/2001/XMLSchema"
XHTML_NS = "http://www.w3.org/1999/xhtml"
XML_NS = "http://www.w3.org/XML/1998/namespace"


def xs(tag: str) -> str:
    return f"{{{XS_NS}}}{tag}"


def local_name(tag: str) -> str:
    if "}" in tag:
        return tag.rsplit("}", 1)[1]
    return tag


def parse_max_occurs(raw: str | None) -> int | None:
    if raw is None:
        return 1
    if raw == "unbounded":
        return None
    return int(raw)


class SchemaDocumentParser:
    """Parses a single XSD document into type stubs."""

    # Base names that mark a complex type as a resource
    RESOURCE_ROOTS = ("Resource", "DomainResource")

    def __init__(self, container_types: list[str] | tuple[str, ...] = ()):
        """
        Initialize the parser.

        Args:
            container_types: Names classified as recursive containers
        """
        self.container_types = frozenset(container_types)

    def parse_file(self, path: Path) -> list[TypeStub]:
        """
        Parse the document at ``path``.

        Raises:
            SchemaParseError: If the file cannot be read or is not an XSD document
        """
        logger.debug('Parsing classes from file "%s"...', path)
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise SchemaParseError(f"Unable to read schema document: {e}", str(path)) from e
        return self.parse_bytes(data, str(path))

    def parse_bytes(self, data: bytes, source: str) -> list[TypeStub]:
        """
        Parse document content.

        Args:
            data: Raw document bytes
            source: Source location recorded on every stub

        Returns:
            Stubs in document order
        """
        try:
            root, scopes = self._parse_scoped(data)
        except ET.ParseError as e:
            raise SchemaParseError(f"Error occurred while parsing: {e}", source) from e
        except defusedxml.DefusedXmlException as e:
            raise SchemaParseError(f"Forbidden XML construct: {e!r}", source) from e

        if root.tag != xs("schema"):
            raise SchemaParseError(f'Expected root element "xs:schema", found "{local_name(root.tag)}"', source)

        context = _DocumentContext(
            source=source,
            scopes=scopes,
            target_namespace=root.get("targetNamespace"),
        )

        stubs = []
        for child in root:
            if not isinstance(child.tag, str):
                continue
            name = child.get("name")
            if not name:
                attributes = ", ".join(f"{k} : {v}" for k, v in sorted(child.attrib.items()))
                logger.debug(
                    'Unable to locate "name" attribute on element "%s" in file "%s" with attributes [%s]',
                    local_name(child.tag),
                    source,
                    attributes,
                )
                continue

            try:
                if child.tag == xs("complexType"):
                    stub = self._parse_complex_type(child, name, context)
                elif child.tag == xs("simpleType"):
                    stub = self._parse_simple_type(child, name, context)
                else:
                    logger.debug('Skipping top-level "%s" named "%s" in file "%s"', local_name(child.tag), name, source)
                    continue
            except ValueError as e:
                raise SchemaParseError(f'Invalid occurrence bound in type "{name}": {e}', source) from e

            logger.info('Located %s type "%s" in file "%s"', stub.kind.value, name, Path(source).name)
            stubs.append(stub)

        return stubs

    def _parse_scoped(self, data: bytes) -> tuple[Element, dict[Element, dict[str, str]]]:
        """Parse ``data`` and record the prefix bindings in scope on every element."""
        scopes: dict[Element, dict[str, str]] = {}
        stack: list[dict[str, str]] = [{"xml": XML_NS}]
        declared: dict[str, str] = {}
        root = None
        for event, item in ET.iterparse(io.BytesIO(data), events=("start-ns", "start", "end")):
            if event == "start-ns":
                prefix, uri = item
                declared[prefix or ""] = uri
            elif event == "start":
                scope = {**stack[-1], **declared} if declared else stack[-1]
                declared = {}
                scopes[item] = scope
                stack.append(scope)
                if root is None:
                    root = item
            else:
                stack.pop()
        return root, scopes

    def _parse_simple_type(self, elem: Element, name: str, context: _DocumentContext) -> TypeStub:
        stub = TypeStub(
            name=name,
            kind=TypeKind.PRIMITIVE,
            source_location=context.source,
            documentation=_documentation(elem),
        )

        restriction = elem.find(xs("restriction"))
        if restriction is not None:
            base = restriction.get("base")
            if base:
                builtin, ref = context.resolve_qname(base, restriction)
                if ref is not None:
                    stub.base_ref = ref
                else:
                    stub.primitive_base = builtin
            for facet in restriction:
                if facet.tag == xs("enumeration") and facet.get("value") is not None:
                    stub.enum_values.append(facet.get("value"))
                elif facet.tag == xs("pattern") and stub.pattern is None:
                    stub.pattern = facet.get("value")
        else:
            # xs:union and xs:list carry their values as text
            stub.primitive_base = "string"

        if stub.enum_values:
            stub.kind = TypeKind.ENUMERATION
        return stub

    def _parse_complex_type(self, elem: Element, name: str, context: _DocumentContext) -> TypeStub:
        stub = TypeStub(
            name=name,
            source_location=context.source,
            documentation=_documentation(elem),
        )
        state = _ParticleState()

        content = elem.find(xs("complexContent"))
        if content is None:
            content = elem.find(xs("simpleContent"))

        if content is not None:
            derivation = content.find(xs("extension"))
            if derivation is None:
                derivation = content.find(xs("restriction"))
            if derivation is not None:
                base = derivation.get("base")
                if base:
                    builtin, ref = context.resolve_qname(base, derivation)
                    if ref is not None:
                        stub.base_ref = ref
                    else:
                        # simpleContent over a builtin: the text node becomes "value"
                        stub.add_property(PropertyStub(name="value", builtin=builtin, is_attribute=True))
                self._collect_particles(derivation, stub, context, state)
        else:
            self._collect_particles(elem, stub, context, state)

        if name in self.container_types:
            stub.kind = TypeKind.CONTAINER
        elif name == "Resource" or stub.base_ref in self.RESOURCE_ROOTS:
            stub.kind = TypeKind.RESOURCE
        else:
            stub.kind = TypeKind.COMPLEX
        return stub

    def _collect_particles(
        self,
        node: Element,
        stub: TypeStub,
        context: _DocumentContext,
        state: _ParticleState,
        choice_group: int | None = None,
        unbounded: bool = False,
    ) -> None:
        for child in node:
            if not isinstance(child.tag, str):
                continue
            tag = local_name(child.tag)
            if tag in ("sequence", "all"):
                nested_unbounded = unbounded or child.get("maxOccurs") == "unbounded"
                self._collect_particles(child, stub, context, state, choice_group, nested_unbounded)
            elif tag == "choice":
                group = state.next_choice_group()
                nested_unbounded = unbounded or child.get("maxOccurs") == "unbounded"
                self._collect_particles(child, stub, context, state, group, nested_unbounded)
            elif tag == "element":
                prop = self._parse_element_particle(child, context)
                if prop is None:
                    continue
                if choice_group is not None:
                    prop.choice_group = choice_group
                    prop.min_occurs = 0
                if unbounded:
                    prop.max_occurs = None
                stub.add_property(prop)
            elif tag == "attribute":
                prop = self._parse_attribute(child, context)
                if prop is not None:
                    stub.add_property(prop)
            elif tag == "annotation":
                continue
            else:
                logger.debug('Ignoring "%s" particle in type "%s" (%s)', tag, stub.name, context.source)

    def _parse_element_particle(self, elem: Element, context: _DocumentContext) -> PropertyStub | None:
        ref = elem.get("ref")
        name = elem.get("name")
        type_attr = elem.get("type")
        if ref:
            builtin, type_ref = context.resolve_qname(ref, elem)
            name = ref.split(":")[-1]
        elif name and type_attr:
            builtin, type_ref = context.resolve_qname(type_attr, elem)
        elif name:
            logger.debug('Element "%s" in %s has no type, treating as anyType', name, context.source)
            builtin, type_ref = "anyType", None
        else:
            logger.debug("Skipping element particle without name or ref in %s", context.source)
            return None

        return PropertyStub(
            name=name,
            type_ref=type_ref,
            builtin=builtin,
            min_occurs=int(elem.get("minOccurs", "1")),
            max_occurs=parse_max_occurs(elem.get("maxOccurs")),
            documentation=_documentation(elem),
        )

    def _parse_attribute(self, elem: Element, context: _DocumentContext) -> PropertyStub | None:
        name = elem.get("name")
        if not name:
            logger.debug("Skipping attribute reference %s in %s", elem.get("ref"), context.source)
            return None
        builtin, type_ref = context.resolve_qname(elem.get("type", "xs:string"), elem)
        return PropertyStub(
            name=name,
            type_ref=type_ref,
            builtin=builtin,
            min_occurs=1 if elem.get("use") == "required" else 0,
            max_occurs=1,
            is_attribute=True,
            documentation=_documentation(elem),
        )


class _DocumentContext:
    """Namespace information needed to classify qualified names in one document."""

    def __init__(self, source: str, scopes: dict[Element, dict[str, str]], target_namespace: str | None):
        self.source = source
        self.scopes = scopes
        self.target_namespace = target_namespace

    def resolve_qname(self, qname: str, elem: Element) -> tuple[str | None, str | None]:
        """
        Classify a QName used on ``elem`` as ``(builtin, None)`` or ``(None, schema type name)``.

        Names in any namespace other than XML Schema and XHTML are schema type
        references, so a missing target is reported when the graph is linked.

        Raises:
            SchemaParseError: If the prefix is not bound where the name is used
        """
        if ":" in qname:
            prefix, local = qname.split(":", 1)
        else:
            prefix, local = "", qname
        uri = self.scopes.get(elem, {}).get(prefix)
        if uri is None and prefix:
            raise SchemaParseError(f'Undeclared namespace prefix "{prefix}" in reference "{qname}"', self.source)
        if uri == XS_NS:
            return local, None
        if uri == XHTML_NS:
            return "xhtml", None
        if uri is not None and uri != self.target_namespace:
            logger.debug('Reference "%s" in %s points into namespace "%s"', qname, self.source, uri)
        return None, local


class _ParticleState:
    def __init__(self):
        self._choice_groups = 0

    def next_choice_group(self) -> int:
        group = self._choice_groups
        self._choice_groups += 1
        return group


def _documentation(elem: Element) -> str:
    doc = elem.find(f"{xs('annotation')}/{xs('documentation')}")
    if doc is None or not doc.text:
        return ""
    return " ".join(doc.text.split())
