"""Module descriptors: the shapes and capabilities of registered types."""
#
# PURPOSE:
# A TypeDescriptor tells the deserializer everything it may do with a type:
# which shape its textual value takes and how to build an instance from the
# pieces, plus the optional capabilities (default factory, value parser,
# template expansion).
#
# KEY TYPES:
# - StructShape: ordered named fields ("field: value" maps)
# - TupleShape: ordered positional fields
# - EnumShape: named variants, each unit, tuple or struct
# - ValueShape: opaque leaf, only reachable through a parser or constructor function
#
# The type id of a descriptor is the Python class its instances have; field
# types are referenced by type id and resolved through the TypeRegistry.
#

from __future__ import annotations

import dataclasses
import typing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Type, Union

from pydantic import BaseModel

# (parsed plain value, scene context) -> instance
ValueParserFn = Callable[[Any, Any], Any]
# instance -> SceneDocument
TemplateFn = Callable[[Any], Any]


# ============================================================================
# Shapes
# ============================================================================

@dataclass(frozen=True)
class NamedField:
    name: str
    type_id: type


@dataclass(frozen=True)
class StructShape:
    """Named fields; build(**fields) creates an instance, fields are read back with getattr."""
    fields: Tuple[NamedField, ...]
    build: Callable[..., Any]

    def field(self, name: str) -> Optional[NamedField]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def read(self, instance: Any) -> Dict[str, Any]:
        return {f.name: getattr(instance, f.name) for f in self.fields}


@dataclass(frozen=True)
class TupleShape:
    """Positional fields; build(*items) creates an instance, unpack(instance) reads them back."""
    fields: Tuple[type, ...]
    build: Callable[..., Any]
    unpack: Callable[[Any], Tuple[Any, ...]] = tuple


class VariantKind(str, Enum):
    UNIT = "unit"
    TUPLE = "tuple"
    STRUCT = "struct"


@dataclass(frozen=True)
class Variant:
    name: str
    kind: VariantKind = VariantKind.UNIT
    # Tuple variants use positional names "0", "1", ...
    fields: Tuple[NamedField, ...] = ()

    @classmethod
    def unit(cls, name: str) -> "Variant":
        return cls(name, VariantKind.UNIT)

    @classmethod
    def positional(cls, name: str, *types: type) -> "Variant":
        return cls(name, VariantKind.TUPLE, tuple(NamedField(str(i), t) for i, t in enumerate(types)))

    @classmethod
    def named(cls, name: str, **types: type) -> "Variant":
        return cls(name, VariantKind.STRUCT, tuple(NamedField(n, t) for n, t in types.items()))


@dataclass(frozen=True)
class EnumShape:
    """
    Named variants. build(variant_name, payload) creates an instance where
    payload is None (unit), a tuple (tuple variant) or a dict (struct variant).
    """
    variants: Tuple[Variant, ...]
    build: Callable[[str, Any], Any]

    def variant(self, name: str) -> Optional[Variant]:
        for v in self.variants:
            if v.name == name:
                return v
        return None

    @property
    def variant_names(self) -> Tuple[str, ...]:
        return tuple(v.name for v in self.variants)


@dataclass(frozen=True)
class ValueShape:
    """Opaque leaf."""


Shape = Union[StructShape, TupleShape, EnumShape, ValueShape]


# ============================================================================
# Descriptor
# ============================================================================

@dataclass(frozen=True)
class TypeDescriptor:
    name: str
    type_id: type
    shape: Shape
    default: Optional[Callable[[], Any]] = None
    parser: Optional[ValueParserFn] = None
    template: Optional[TemplateFn] = None

    @property
    def is_struct(self) -> bool:
        return isinstance(self.shape, StructShape)

    @property
    def is_template(self) -> bool:
        return self.template is not None

    def with_capabilities(self, **changes: Any) -> "TypeDescriptor":
        return dataclasses.replace(self, **changes)


# ============================================================================
# Explicit description helpers
# ============================================================================

def _field_type(owner: type, name: str, annotation: Any) -> type:
    if isinstance(annotation, type):
        return annotation
    raise TypeError(
        f"Field '{name}' of {owner.__name__} is annotated with {annotation!r}; "
        f"describe the type explicitly with a concrete class"
    )


def describe_model(
    model: Type[BaseModel],
    name: Optional[str] = None,
    default: Union[bool, Callable[[], Any]] = True,
    **capabilities: Any,
) -> TypeDescriptor:
    """
    Struct descriptor for a pydantic model, fields in declaration order.

    default=True uses the model's own no-argument constructor; pass a callable
    to override or False when the model has required fields.
    """
    fields = tuple(
        NamedField(field_name, _field_type(model, field_name, info.annotation))
        for field_name, info in model.model_fields.items()
    )
    if default is True:
        default = model
    return TypeDescriptor(
        name=name or model.__name__,
        type_id=model,
        shape=StructShape(fields=fields, build=model),
        default=default or None,
        **capabilities,
    )


def describe_dataclass(cls: type, name: Optional[str] = None, default: Union[bool, Callable[[], Any]] = True, **capabilities: Any) -> TypeDescriptor:
    """Struct descriptor for a dataclass (annotations resolved with typing.get_type_hints)."""
    hints = typing.get_type_hints(cls)
    fields = tuple(
        NamedField(f.name, _field_type(cls, f.name, hints[f.name]))
        for f in dataclasses.fields(cls)
    )
    if default is True:
        default = cls
    return TypeDescriptor(
        name=name or cls.__name__,
        type_id=cls,
        shape=StructShape(fields=fields, build=cls),
        default=default or None,
        **capabilities,
    )


def describe_newtype(
    cls: type,
    inner: type,
    attr: str = "value",
    name: Optional[str] = None,
    default: Optional[Callable[[], Any]] = None,
    **capabilities: Any,
) -> TypeDescriptor:
    """Single-field TupleLike descriptor for a wrapper class with one attribute."""
    shape = TupleShape(
        fields=(inner,),
        build=lambda value: cls(**{attr: value}),
        unpack=lambda instance: (getattr(instance, attr),),
    )
    return TypeDescriptor(name=name or cls.__name__, type_id=cls, shape=shape, default=default, **capabilities)


def describe_enum(
    cls: Type[Enum],
    name: Optional[str] = None,
    default: Optional[Callable[[], Any]] = None,
    **capabilities: Any,
) -> TypeDescriptor:
    """
    Enum descriptor for a unit-only Python Enum.

    Variant names are the member values for str-valued enums (so documents can
    spell variants like "None" that are not valid member names), else the member names.
    """
    by_value = all(isinstance(member.value, str) for member in cls)
    if by_value:
        variants = tuple(Variant.unit(member.value) for member in cls)
        build = lambda variant, _payload: cls(variant)
    else:
        variants = tuple(Variant.unit(member.name) for member in cls)
        build = lambda variant, _payload: cls[variant]
    shape = EnumShape(variants=variants, build=build)
    return TypeDescriptor(name=name or cls.__name__, type_id=cls, shape=shape, default=default, **capabilities)


def describe_value(
    cls: type,
    name: Optional[str] = None,
    default: Optional[Callable[[], Any]] = None,
    parser: Optional[ValueParserFn] = None,
    **capabilities: Any,
) -> TypeDescriptor:
    """Opaque leaf descriptor."""
    return TypeDescriptor(
        name=name or cls.__name__,
        type_id=cls,
        shape=ValueShape(),
        default=default,
        parser=parser,
        **capabilities,
    )
