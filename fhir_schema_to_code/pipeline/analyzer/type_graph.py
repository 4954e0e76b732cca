"""
Type graph construction and queries.

Phase 2 of the pipeline: register every stub, link base types and property
types by name, reject integrity violations, then freeze the result.
Registration completes before any linking so the outcome never depends on
the order in which documents were read.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from types import MappingProxyType

from ...errors import FrozenGraphError, SchemaIntegrityError
from ..config import CodeGeneratorConfig
from ..schema_ast.nodes import TypeKind, TypeStub
from .ir_nodes import EffectiveProperty, Property, Type
from .name_resolver import class_name_for, module_name_for, namespace_for

logger = logging.getLogger(__name__)


class TypeGraph:
    """The resolved, read-only mapping from type name to ``Type``.

    Instances are only created by ``resolve`` and are frozen before they are
    returned.
    """

    DOMAIN_RESOURCE = "DomainResource"

    def __init__(self, types: Iterable[Type]):
        ordered = tuple(sorted(types, key=lambda t: t.qualified_name))
        self._types = MappingProxyType({t.name: t for t in ordered})
        self._ordered = ordered
        self._frozen = True

    def __setattr__(self, name, value):
        if getattr(self, "_frozen", False):
            raise FrozenGraphError(f"TypeGraph is frozen; cannot set attribute {name!r}")
        super().__setattr__(name, value)

    def __delattr__(self, name):
        raise FrozenGraphError(f"TypeGraph is frozen; cannot delete attribute {name!r}")

    @classmethod
    def resolve(cls, stubs: Iterable[TypeStub], config: CodeGeneratorConfig | None = None) -> TypeGraph:
        """
        Resolve a set of stubs into a frozen graph.

        Args:
            stubs: Every stub produced by ingestion
            config: Supplies namespace root, class prefix and container whitelist

        Returns:
            The frozen graph

        Raises:
            SchemaIntegrityError: On duplicate registration, dangling reference or illegal cycle
        """
        return _Resolver(config or CodeGeneratorConfig()).resolve(stubs)

    # -- queries -----------------------------------------------------------

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self) -> Iterator[Type]:
        return iter(self._ordered)

    def get(self, name: str) -> Type:
        try:
            return self._types[name]
        except KeyError:
            raise KeyError(f'Type "{name}" is not registered in the graph') from None

    def types(self) -> tuple[Type, ...]:
        """All types, sorted by qualified name."""
        return self._ordered

    def base_of(self, t: Type) -> Type | None:
        if t.base_name is None:
            return None
        return self._types[t.base_name]

    def ancestors(self, t: Type) -> tuple[Type, ...]:
        """Base chain of ``t``, nearest first. Stops when the chain loops back."""
        chain = []
        seen = {t.name}
        current = self.base_of(t)
        while current is not None and current.name not in seen:
            chain.append(current)
            seen.add(current.name)
            current = self.base_of(current)
        return tuple(chain)

    def effective_properties(self, t: Type) -> tuple[EffectiveProperty, ...]:
        """
        Flatten the properties of ``t`` and its ancestors.

        Ancestors' properties come first, root first, each in declaration
        order. A property redeclared further down the chain replaces the
        inherited definition in place, so every name appears once.
        """
        flattened: dict[str, tuple[Property, str]] = {}
        for owner in (*reversed(self.ancestors(t)), t):
            for prop in sorted(owner.properties, key=lambda p: p.declaration_order):
                flattened[prop.name] = (prop, owner.name)
        return tuple(
            EffectiveProperty(property=prop, declared_by=owner, position=position)
            for position, (prop, owner) in enumerate(flattened.values())
        )

    def choice_groups(self, t: Type) -> tuple[tuple[EffectiveProperty, ...], ...]:
        """Mutually exclusive property groups of ``t``, members in declaration order."""
        groups: dict[tuple[str, int], list[EffectiveProperty]] = {}
        for eff in self.effective_properties(t):
            key = eff.choice_key
            if key is not None:
                groups.setdefault(key, []).append(eff)
        return tuple(tuple(members) for members in groups.values())

    def native_base(self, t: Type) -> str:
        """XML Schema builtin a primitive or enumeration is ultimately based on."""
        for candidate in (t, *self.ancestors(t)):
            if candidate.primitive_base:
                return candidate.primitive_base
        return "string"

    def is_top_level_resource(self, t: Type) -> bool:
        """A concrete, non-backbone resource: one that derives from DomainResource."""
        if t.kind is not TypeKind.RESOURCE or "." in t.name:
            return False
        return any(a.name == self.DOMAIN_RESOURCE for a in self.ancestors(t))

    def descendants_of(self, name: str) -> tuple[Type, ...]:
        """Every type with ``name`` among its ancestors, sorted by qualified name."""
        return tuple(t for t in self._ordered if any(a.name == name for a in self.ancestors(t)))

    def resources(self) -> tuple[Type, ...]:
        return tuple(t for t in self._ordered if t.kind is TypeKind.RESOURCE)


class _Resolver:
    """Runs the registration, linking, cycle and freeze phases."""

    def __init__(self, config: CodeGeneratorConfig):
        self.root = config.layout.namespace_root
        self.class_prefix = config.class_prefix
        self.whitelist = frozenset(config.recursive_container_types)

    def resolve(self, stubs: Iterable[TypeStub]) -> TypeGraph:
        ordered = sorted(stubs, key=lambda s: (s.name, s.source_location))
        logger.info("Resolving %d type stubs", len(ordered))

        index = self._register(ordered)
        self._link(ordered, index)
        value_types = self._simple_content_values(ordered, index)
        bases = {stub.name: None if stub.name in value_types else stub.base_ref for stub in ordered}
        recursive = self._check_cycles(ordered, bases)
        kinds = self._refine_kinds(ordered, index, bases)

        types = [
            self._promote(stub, kinds[stub.name], stub.name in recursive, bases[stub.name], value_types.get(stub.name))
            for stub in ordered
        ]
        graph = TypeGraph(types)
        logger.info("Type graph resolved and frozen with %d types", len(graph))
        return graph

    def _register(self, ordered: list[TypeStub]) -> dict[str, TypeStub]:
        by_key: dict[tuple[str, str], TypeStub] = {}
        by_name: dict[str, TypeStub] = {}
        for stub in ordered:
            key = (namespace_for(stub.kind, stub.name, self.root), stub.name)
            if key in by_key:
                other = by_key[key]
                raise SchemaIntegrityError(
                    f'Duplicate registration of type "{stub.name}" in namespace "{key[0]}": '
                    f'declared in "{other.source_location}" and "{stub.source_location}"',
                    type_name=stub.name,
                    counterpart=other.source_location,
                )
            if stub.name in by_name:
                other = by_name[stub.name]
                raise SchemaIntegrityError(
                    f'Type name "{stub.name}" is declared as both {other.kind.value} '
                    f'("{other.source_location}") and {stub.kind.value} ("{stub.source_location}")',
                    type_name=stub.name,
                    counterpart=other.source_location,
                )
            by_key[key] = stub
            by_name[stub.name] = stub
        return by_name

    def _link(self, ordered: list[TypeStub], index: dict[str, TypeStub]) -> None:
        for stub in ordered:
            if stub.base_ref is not None and stub.base_ref not in index:
                raise SchemaIntegrityError(
                    f'Type "{stub.name}" ({stub.source_location}) extends unknown type "{stub.base_ref}"',
                    type_name=stub.name,
                    counterpart=stub.base_ref,
                )
            for prop in stub.properties:
                if prop.type_ref is not None and prop.type_ref not in index:
                    raise SchemaIntegrityError(
                        f'Property "{stub.name}.{prop.name}" ({stub.source_location}) '
                        f'references unknown type "{prop.type_ref}"',
                        type_name=stub.name,
                        counterpart=prop.type_ref,
                    )

    def _simple_content_values(self, ordered: list[TypeStub], index: dict[str, TypeStub]) -> dict[str, str]:
        """
        Map each structured type based on a primitive or enumeration to that base.

        Such a type carries simple content: it does not inherit from the
        primitive, it holds the primitive as its ``value`` attribute.
        """
        values = {}
        for stub in ordered:
            if stub.kind is TypeKind.PRIMITIVE or stub.kind is TypeKind.ENUMERATION or stub.base_ref is None:
                continue
            if index[stub.base_ref].kind in (TypeKind.PRIMITIVE, TypeKind.ENUMERATION):
                logger.debug('Type "%s" holds simple content of type "%s"', stub.name, stub.base_ref)
                values[stub.name] = stub.base_ref
        return values

    def _check_cycles(self, ordered: list[TypeStub], bases: dict[str, str | None]) -> set[str]:
        """Reject inheritance cycles; return the whitelisted names to tag as recursive."""
        recursive = {stub.name for stub in ordered if stub.name in self.whitelist and stub.kind is TypeKind.CONTAINER}
        for stub in ordered:
            path = [stub.name]
            base = bases[stub.name]
            while base is not None:
                if base in path:
                    cycle = path[path.index(base) :] + [base]
                    members = set(cycle)
                    if members & self.whitelist:
                        logger.debug("Tolerating self-referential chain %s", " -> ".join(cycle))
                        recursive.update(members & self.whitelist)
                        break
                    raise SchemaIntegrityError(
                        f"Inheritance cycle detected: {' -> '.join(cycle)}",
                        type_name=cycle[0],
                        counterpart=cycle[-2],
                    )
                path.append(base)
                base = bases[base]
        return recursive

    def _refine_kinds(
        self, ordered: list[TypeStub], index: dict[str, TypeStub], bases: dict[str, str | None]
    ) -> dict[str, TypeKind]:
        """A complex type with a resource ancestor is a resource."""
        kinds = {}
        for stub in ordered:
            kind = stub.kind
            if kind is TypeKind.COMPLEX:
                seen = {stub.name}
                base = bases[stub.name]
                while base is not None and base not in seen:
                    if index[base].kind is TypeKind.RESOURCE:
                        kind = TypeKind.RESOURCE
                        break
                    seen.add(base)
                    base = bases[base]
            kinds[stub.name] = kind
        return kinds

    def _promote(
        self,
        stub: TypeStub,
        kind: TypeKind,
        recursive: bool,
        base_name: str | None,
        value_type: str | None = None,
    ) -> Type:
        properties = tuple(
            Property(
                name=p.name,
                type_ref=p.type_ref,
                builtin=p.builtin,
                min_occurs=p.min_occurs,
                max_occurs=p.max_occurs,
                choice_group=p.choice_group,
                is_attribute=p.is_attribute,
                declaration_order=p.declaration_order,
                documentation=p.documentation,
            )
            for p in sorted(stub.properties, key=lambda p: p.declaration_order)
        )
        if value_type is not None:
            value = Property(
                name="value",
                type_ref=value_type,
                builtin=None,
                min_occurs=0,
                max_occurs=1,
                choice_group=None,
                is_attribute=True,
                declaration_order=-1,
            )
            properties = (value, *properties)
        return Type(
            name=stub.name,
            kind=kind,
            namespace=namespace_for(kind, stub.name, self.root),
            class_name=class_name_for(stub.name, self.class_prefix),
            module_name=module_name_for(stub.name),
            base_name=base_name,
            properties=properties,
            source_location=stub.source_location,
            documentation=stub.documentation,
            primitive_base=stub.primitive_base,
            enum_values=tuple(stub.enum_values),
            pattern=stub.pattern,
            is_recursive_container=recursive,
        )
