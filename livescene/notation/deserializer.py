"""
livescene/notation/deserializer.py
The Attribute Value Deserializer.

Builds a typed instance from an attribute's raw text, driven by the type's
descriptor:

    Struct    (field: value, ...)        fields not written keep their default
    TupleLike (a, b, ...)                a single-field type also takes a bare value
    Enum      Variant / Variant(payload) one-field variants take their payload directly
    Value     parsed by the type's parser, else ("function_name", argument)

Struct values are built as PartialStruct patches first and then applied onto
the type's default instance, so a document only spells out what differs.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from livescene.errors import (
    DeserializationFailed,
    MissingDefault,
    MissingParser,
    NonStructPatch,
    TypeMismatch,
    ValueSyntaxError,
)
from livescene.notation.parser import (
    FieldMap,
    Ident,
    Literal,
    Seq,
    Tagged,
    ValueNode,
    function_pair,
    parse_value,
)
from livescene.registry.descriptors import (
    EnumShape,
    StructShape,
    TupleShape,
    TypeDescriptor,
    ValueShape,
    VariantKind,
)

logger = logging.getLogger(__name__)


@dataclass
class PartialStruct:
    """Explicitly written fields of a struct value, not yet applied onto a base."""
    descriptor: TypeDescriptor
    fields: Dict[str, Any] = field(default_factory=dict)


def _is_group(node: ValueNode) -> bool:
    return isinstance(node, Seq) and not node.bracketed and len(node.items) == 1


def strip_grouping(node: ValueNode) -> ValueNode:
    """`((x))` is `x`: parentheses around a single value only group."""
    while _is_group(node):
        node = node.items[0]
    return node


class AttributeValueDeserializer:
    """
    Constructs instances of registered types from attribute text.

    Holds the scene context: its type registry resolves field types, its
    function registry backs the constructor-function fallback, and it is
    handed to value parsers and constructor functions.
    """

    def __init__(self, context: Any):
        self.context = context
        self.types = context.types
        self.functions = context.functions
        self.ignore_unknown_fields = context.config.assembly.ignore_unknown_fields

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def construct(
        self,
        descriptor: TypeDescriptor,
        raw: Optional[str],
        attribute: Optional[str] = None,
        base: Any = None,
    ) -> Any:
        """
        Construct an instance of `descriptor` from `raw` (None when written bare).

        `base` replaces the default instance as the starting point of a patch.

        Raises:
            MissingDefault: no value and no default
            MissingParser: a leaf value with neither parser nor constructor function
            DeserializationFailed: the text does not fit the type
            NonStructPatch: a patch targets a value that has no fields
            UnknownFunction, TypeMismatch: broken constructor function reference
        """
        attribute = attribute or descriptor.name
        if raw is None:
            if base is not None:
                return base
            if descriptor.default is None:
                raise MissingDefault(attribute)
            return descriptor.default()

        text = html.unescape(raw)
        if isinstance(descriptor.shape, (StructShape, TupleShape)):
            text = f"({text})"
        try:
            node = parse_value(text)
        except ValueSyntaxError as e:
            if isinstance(descriptor.shape, ValueShape) and descriptor.parser is not None:
                return self._parse_verbatim(descriptor, text, attribute, e)
            raise DeserializationFailed(attribute, e.reason) from e

        return self.realize(self.build(descriptor, node, attribute), attribute, base)

    # ------------------------------------------------------------------
    # Shape dispatch
    # ------------------------------------------------------------------

    def build(self, descriptor: TypeDescriptor, node: ValueNode, attribute: str) -> Any:
        """Instance (or PartialStruct for struct shapes) for one syntax node."""
        shape = descriptor.shape
        if isinstance(shape, StructShape):
            return self._build_struct(descriptor, shape, strip_grouping(node), attribute)
        if isinstance(shape, TupleShape):
            return self._build_tuple(descriptor, shape, node, attribute)
        if isinstance(shape, EnumShape):
            return self._build_enum(descriptor, shape, strip_grouping(node), attribute)
        if isinstance(shape, ValueShape):
            return self._build_value(descriptor, strip_grouping(node), attribute)
        raise DeserializationFailed(attribute, f"Unsupported shape {type(shape).__name__}")

    def _build_field(self, type_id: type, node: ValueNode, attribute: str) -> Any:
        return self.build(self.types.get(type_id), node, attribute)

    def _build_struct(self, descriptor: TypeDescriptor, shape: StructShape, node: ValueNode, attribute: str) -> PartialStruct:
        if isinstance(node, Tagged):
            if node.name != descriptor.name:
                raise DeserializationFailed(attribute, f"Expected {descriptor.name}, got {node.name}")
            node = node.payload
        if isinstance(node, Seq) and not node.items:
            return PartialStruct(descriptor)
        if not isinstance(node, FieldMap):
            raise DeserializationFailed(attribute, f"Expected fields of {descriptor.name}")

        partial = PartialStruct(descriptor)
        for key, value_node in node.entries:
            declared = shape.field(key)
            if declared is None:
                if self.ignore_unknown_fields:
                    logger.warning(f"[Deserializer] {attribute}: ignoring unknown field '{key}' of {descriptor.name}")
                    continue
                raise DeserializationFailed(attribute, f"Unknown field '{key}' for {descriptor.name}")
            partial.fields[key] = self._build_field(declared.type_id, value_node, f"{attribute}.{key}")
        return partial

    def _build_tuple(self, descriptor: TypeDescriptor, shape: TupleShape, node: ValueNode, attribute: str) -> Any:
        # Redundant parentheses around a sequence
        while _is_group(node) and isinstance(node.items[0], Seq) and not node.items[0].bracketed:
            node = node.items[0]

        arity = len(shape.fields)
        if isinstance(node, Seq) and len(node.items) == arity:
            items = node.items
        elif arity == 1:
            items = (node,)
        else:
            raise DeserializationFailed(attribute, f"{descriptor.name} takes {arity} values")

        values = [
            self.realize(self._build_field(type_id, item, f"{attribute}.{i}"), f"{attribute}.{i}")
            for i, (type_id, item) in enumerate(zip(shape.fields, items))
        ]
        return self._call_build(shape.build, attribute, *values)

    def _build_enum(self, descriptor: TypeDescriptor, shape: EnumShape, node: ValueNode, attribute: str) -> Any:
        if isinstance(node, Ident):
            name, payload = node.name, None
        elif isinstance(node, Literal) and isinstance(node.value, str):
            name, payload = node.value, None
        elif isinstance(node, Tagged):
            name, payload = node.name, node.payload
        else:
            raise DeserializationFailed(attribute, f"Expected a variant of {descriptor.name}")

        variant = shape.variant(name)
        if variant is None:
            raise DeserializationFailed(
                attribute,
                f"Unknown variant '{name}' for {descriptor.name}; expected one of {', '.join(shape.variant_names)}",
            )

        if variant.kind == VariantKind.UNIT:
            if payload is not None and not (isinstance(payload, Seq) and not payload.items):
                raise DeserializationFailed(attribute, f"Variant {name} takes no value")
            return self._call_build(shape.build, attribute, name, None)

        if variant.kind == VariantKind.TUPLE:
            if payload is None:
                raise DeserializationFailed(attribute, f"Variant {name} takes a value")
            if len(variant.fields) == 1:
                items = (strip_grouping(payload),)
            elif isinstance(payload, Seq) and len(payload.items) == len(variant.fields):
                items = payload.items
            else:
                raise DeserializationFailed(attribute, f"Variant {name} takes {len(variant.fields)} values")
            built = []
            for f, item in zip(variant.fields, items):
                path = f"{attribute}.{name}.{f.name}"
                built.append(self.realize(self._build_field(f.type_id, item, path), path))
            return self._call_build(shape.build, attribute, name, tuple(built))

        if isinstance(payload, Seq) and not payload.items:
            payload = FieldMap()
        if not isinstance(payload, FieldMap):
            raise DeserializationFailed(attribute, f"Variant {name} takes named fields")
        declared = {f.name: f for f in variant.fields}
        values: Dict[str, Any] = {}
        for key, value_node in payload.entries:
            if key not in declared:
                raise DeserializationFailed(attribute, f"Unknown field '{key}' for variant {name}")
            path = f"{attribute}.{name}.{key}"
            values[key] = self.realize(self._build_field(declared[key].type_id, value_node, path), path)
        return self._call_build(shape.build, attribute, name, values)

    def _build_value(self, descriptor: TypeDescriptor, node: ValueNode, attribute: str) -> Any:
        failure = ""
        if descriptor.parser is not None:
            try:
                return descriptor.parser(node.to_python(), self.context)
            except (ValueError, TypeError) as e:
                failure = str(e)
                logger.debug(f"[Deserializer] {attribute}: parser for {descriptor.name} rejected value: {e}")

        pair = function_pair(node)
        if pair is not None:
            return self._construct_with_function(descriptor, pair[0], pair[1], attribute)

        if descriptor.parser is None:
            raise MissingParser(attribute)
        raise DeserializationFailed(attribute, failure)

    def _parse_verbatim(self, descriptor: TypeDescriptor, text: str, attribute: str, error: ValueSyntaxError) -> Any:
        """Text outside the notation (a bare path, free text) goes to the parser as-is."""
        try:
            return descriptor.parser(text, self.context)
        except (ValueError, TypeError) as e:
            raise DeserializationFailed(attribute, f"{error.reason}; {e}") from e

    def _construct_with_function(self, descriptor: TypeDescriptor, name: str, argument: ValueNode, attribute: str) -> Any:
        """`("function_name", argument)`: build the argument and let the named function make the value."""
        entry = self.functions.entry(name)
        if entry.output_type is not descriptor.type_id:
            raise TypeMismatch(name, descriptor.type_id, entry.output_type)
        input_descriptor = self.types.get(entry.input_type)
        value = self.realize(self.build(input_descriptor, argument, f"{attribute}.{name}"), attribute)
        logger.debug(f"[Deserializer] {attribute}: constructing {descriptor.name} with '{name}'")
        return self.functions.call(name, value, self.context)

    # ------------------------------------------------------------------
    # Patches
    # ------------------------------------------------------------------

    def realize(self, value: Any, attribute: str, base: Any = None) -> Any:
        """
        Turn a PartialStruct into an instance: applied onto `base`, else onto
        the type's default, else built from the written fields alone.
        """
        if not isinstance(value, PartialStruct):
            return value
        descriptor = value.descriptor
        if base is None and descriptor.default is not None:
            base = descriptor.default()
        if base is not None:
            return self.apply(base, value, attribute)
        fields = {key: self.realize(v, f"{attribute}.{key}") for key, v in value.fields.items()}
        return self._call_build(descriptor.shape.build, attribute, **fields)

    def apply(self, instance: Any, patch: PartialStruct, attribute: str) -> Any:
        """Overwrite only the patched fields of `instance`; nested patches recurse."""
        shape = patch.descriptor.shape
        if not isinstance(shape, StructShape):
            raise NonStructPatch(attribute)
        try:
            current = shape.read(instance)
        except AttributeError as e:
            raise NonStructPatch(attribute) from e

        for key, value in patch.fields.items():
            if isinstance(value, PartialStruct):
                existing = current.get(key)
                current[key] = self.realize(value, f"{attribute}.{key}", base=existing)
            else:
                current[key] = value
        return self._call_build(shape.build, attribute, **current)

    @staticmethod
    def _call_build(build, attribute: str, *args: Any, **kwargs: Any) -> Any:
        try:
            return build(*args, **kwargs)
        except (ValueError, TypeError, KeyError, IndexError) as e:
            raise DeserializationFailed(attribute, str(e)) from e
