"""
livescene/registry/type_registry.py
The Type Registry.
Maps type names (and Python classes) to TypeDescriptors and their capabilities.
"""

import logging
from typing import Any, Callable, Dict, Iterator, Optional

from livescene.errors import InvalidParamType, UnknownType, type_name
from livescene.registry.descriptors import TemplateFn, TypeDescriptor, ValueParserFn

logger = logging.getLogger(__name__)


def generic_name(base: str, param: str) -> str:
    return f"{base}<{param}>"


def resolve_generic(name: str) -> str:
    """Documents write generic types as `Name:Param`; the registry stores `Name<Param>`."""
    if ":" in name:
        base, param = name.split(":", 1)
        return generic_name(base, param)
    return name


class TypeRegistry:
    """
    Process-wide table of TypeDescriptors, populated once at startup.

    Descriptors are immutable; registering a capability replaces the stored
    descriptor with an updated copy.
    """

    def __init__(self):
        self._by_name: Dict[str, TypeDescriptor] = {}
        self._by_id: Dict[type, TypeDescriptor] = {}

    def register(self, descriptor: TypeDescriptor) -> TypeDescriptor:
        existing = self._by_id.get(descriptor.type_id)
        if existing is not None and existing.name != descriptor.name:
            self._by_name.pop(existing.name, None)
        if descriptor.name in self._by_name:
            logger.debug(f"[TypeRegistry] Replacing descriptor for {descriptor.name}")
        self._by_name[descriptor.name] = descriptor
        self._by_id[descriptor.type_id] = descriptor
        return descriptor

    def _update(self, type_id: type, **changes: Any) -> TypeDescriptor:
        descriptor = self.get(type_id)
        return self.register(descriptor.with_capabilities(**changes))

    def register_default(self, type_id: type, factory: Callable[[], Any]) -> TypeDescriptor:
        return self._update(type_id, default=factory)

    def register_parser(self, type_id: type, parser: ValueParserFn) -> TypeDescriptor:
        return self._update(type_id, parser=parser)

    def register_template(self, type_id: type, expansion: TemplateFn) -> TypeDescriptor:
        return self._update(type_id, template=expansion)

    def lookup(self, name: str) -> TypeDescriptor:
        """Find a descriptor by name, accepting the `Name:Param` generic spelling."""
        resolved = resolve_generic(name)
        descriptor = self._by_name.get(resolved)
        if descriptor is None:
            raise UnknownType(resolved)
        return descriptor

    def lookup_attribute(self, attribute: str) -> TypeDescriptor:
        """
        Like lookup(), but a `Name:Param` attribute whose base is a known
        generic family and whose parametrization is missing is reported as
        InvalidParamType rather than UnknownType.
        """
        try:
            return self.lookup(attribute)
        except UnknownType:
            if ":" in attribute:
                base, param = attribute.split(":", 1)
                prefix = f"{base}<"
                if any(name.startswith(prefix) for name in self._by_name):
                    raise InvalidParamType(attribute, param)
            raise

    def get(self, type_id: type) -> TypeDescriptor:
        descriptor = self._by_id.get(type_id)
        if descriptor is None:
            raise UnknownType(type_name(type_id))
        return descriptor

    def find(self, type_id: type) -> Optional[TypeDescriptor]:
        return self._by_id.get(type_id)

    def name_of(self, type_id: type) -> str:
        descriptor = self._by_id.get(type_id)
        return descriptor.name if descriptor else type_name(type_id)

    def __contains__(self, name: str) -> bool:
        return resolve_generic(name) in self._by_name

    def __iter__(self) -> Iterator[TypeDescriptor]:
        return iter(list(self._by_name.values()))

    def __len__(self) -> int:
        return len(self._by_name)
