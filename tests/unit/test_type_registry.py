"""
tests/unit/test_type_registry.py
Descriptor registration, capabilities and name resolution.
"""
import dataclasses
from enum import Enum

import pytest
from pydantic import BaseModel

from livescene.document.loader import DocumentHandle
from livescene.errors import InvalidParamType, UnknownType
from livescene.registry.builtins import Interaction, XFunction, register_builtins
from livescene.registry.descriptors import (
    EnumShape,
    StructShape,
    TupleShape,
    ValueShape,
    VariantKind,
    describe_enum,
    describe_model,
    describe_newtype,
    describe_value,
)
from livescene.registry.type_registry import TypeRegistry, resolve_generic


class Counter(BaseModel):
    count: int = 0
    step: int = 1


class Level(Enum):
    LOW = 1
    HIGH = 2


@pytest.fixture
def types():
    return register_builtins(TypeRegistry())


def test_lookup_by_name(types):
    types.register(describe_model(Counter))
    descriptor = types.lookup("Counter")
    assert descriptor.type_id is Counter
    assert descriptor.is_struct
    assert [f.name for f in descriptor.shape.fields] == ["count", "step"]
    assert [f.type_id for f in descriptor.shape.fields] == [int, int]


def test_lookup_unknown_type(types):
    with pytest.raises(UnknownType) as exc:
        types.lookup("Row")
    assert exc.value.name == "Row"


def test_generic_suffix_resolves_to_parametrized_name(types):
    assert resolve_generic("Handle:SceneDocument") == "Handle<SceneDocument>"
    descriptor = types.lookup("Handle:SceneDocument")
    assert descriptor.name == "Handle<SceneDocument>"
    assert descriptor.type_id is DocumentHandle
    assert "Handle:SceneDocument" in types


def test_missing_parametrization_is_invalid_param(types):
    with pytest.raises(InvalidParamType) as exc:
        types.lookup_attribute("Handle:Font")
    assert exc.value.attribute == "Handle:Font"
    assert exc.value.param == "Font"


def test_unknown_generic_family_stays_unknown_type(types):
    with pytest.raises(UnknownType):
        types.lookup_attribute("Asset:Font")


def test_capabilities_replace_descriptor(types):
    types.register(describe_model(Counter, default=False))
    assert types.get(Counter).default is None

    types.register_default(Counter, lambda: Counter(count=7))
    assert types.get(Counter).default().count == 7

    def expansion(instance):
        return None

    types.register_template(Counter, expansion)
    descriptor = types.lookup("Counter")
    assert descriptor.is_template
    assert descriptor.default().count == 7


def test_descriptors_are_immutable(types):
    descriptor = types.get(Interaction)
    with pytest.raises(dataclasses.FrozenInstanceError):
        descriptor.name = "Other"


def test_capability_for_unregistered_type_fails(types):
    with pytest.raises(UnknownType):
        types.register_parser(Counter, lambda value, context: Counter())


def test_get_by_type_id(types):
    assert types.get(XFunction).name == "XFunction"
    assert types.name_of(type(None)) == "Unit"
    assert types.find(Counter) is None
    with pytest.raises(UnknownType) as exc:
        types.get(Counter)
    assert exc.value.name == "Counter"


def test_describe_helpers_pick_shapes():
    assert isinstance(describe_model(Counter).shape, StructShape)
    assert isinstance(describe_newtype(XFunction, str, attr="name").shape, TupleShape)
    assert isinstance(describe_value(float).shape, ValueShape)

    level = describe_enum(Level)
    assert isinstance(level.shape, EnumShape)
    assert level.shape.variant_names == ("LOW", "HIGH")
    assert all(v.kind == VariantKind.UNIT for v in level.shape.variants)
    assert level.shape.build("HIGH", None) is Level.HIGH


def test_str_enum_variants_use_values():
    descriptor = describe_enum(Interaction)
    assert descriptor.shape.variant_names == ("None", "Hovered", "Pressed")
    assert descriptor.shape.build("None", None) is Interaction.NONE


def test_reregistering_a_name_replaces_it(types):
    types.register(describe_model(Counter))
    types.register(describe_model(Counter, name="Tally"))
    assert "Counter" not in types
    assert types.lookup("Tally").type_id is Counter
