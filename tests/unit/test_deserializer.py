"""
tests/unit/test_deserializer.py
Typed construction of attribute values: shapes, patches onto defaults,
newtype shorthand and the constructor-function fallback.
"""
import sys
from typing import NamedTuple

import pytest
from pydantic import BaseModel

from livescene.base.config import AssemblyConfig, SceneConfig
from livescene.base.context import SceneContext
from livescene.errors import (
    DeserializationFailed,
    MissingDefault,
    MissingParser,
    NonStructPatch,
    TypeMismatch,
    UnknownFunction,
)
from livescene.notation.deserializer import AttributeValueDeserializer
from livescene.registry.builtins import (
    Interaction,
    TargetRule,
    Text,
    TextStyle,
    TriggerKind,
    XFunction,
    XOn,
    XTarget,
)
from livescene.registry.descriptors import (
    EnumShape,
    TupleShape,
    TypeDescriptor,
    Variant,
    describe_model,
    describe_value,
)


class Counter(BaseModel):
    count: int = 0
    step: int = 1


class Size(NamedTuple):
    width: float
    height: float


class Color:
    def __init__(self, hex_code):
        self.hex_code = hex_code


class Label(BaseModel):
    text: str = "untitled"
    style: TextStyle = TextStyle(size=12.0)


def _context(**assembly):
    ctx = SceneContext.create(SceneConfig(assembly=AssemblyConfig(**assembly)))
    ctx.types.register(describe_model(Counter))
    ctx.types.register(describe_model(Label))
    ctx.types.register(TypeDescriptor(
        name="Size",
        type_id=Size,
        shape=TupleShape(fields=(float, float), build=Size),
    ))
    ctx.types.register(describe_value(Color, "Color"))
    return ctx


@pytest.fixture
def ctx():
    return _context()


@pytest.fixture
def deser(ctx):
    return AttributeValueDeserializer(ctx)


def construct(ctx, deser, name, raw):
    return deser.construct(ctx.types.lookup(name), raw, name)


# ---------------------------------------------------------------------------
# Structs and patches
# ---------------------------------------------------------------------------

def test_absent_value_uses_default(ctx, deser):
    assert construct(ctx, deser, "Counter", None) == Counter()


def test_absent_value_without_default(ctx, deser):
    with pytest.raises(MissingDefault) as exc:
        construct(ctx, deser, "Color", None)
    assert exc.value.attribute == "Color"


def test_partial_patch_keeps_unspecified_defaults(ctx, deser):
    counter = construct(ctx, deser, "Counter", "count: 3")
    assert counter == Counter(count=3, step=1)


@pytest.mark.parametrize("raw", ["count: 5, step: 2", "(count: 5, step: 2)", "{count: 5, step: 2}", "Counter(count: 5, step: 2)"])
def test_full_value_in_any_grouping(ctx, deser, raw):
    assert construct(ctx, deser, "Counter", raw) == Counter(count=5, step=2)


@pytest.mark.parametrize("name, model", [("Counter", Counter), ("TextStyle", TextStyle), ("Label", Label)])
def test_default_then_explicit_fields_round_trip(ctx, deser, name, model):
    default = construct(ctx, deser, name, None)
    explicit = {
        "Counter": "count: 11, step: 13",
        "TextStyle": 'size: 21.5, color: "#ABCDEF", font: "mono"',
        "Label": 'text: "hi", style: (size: 9, color: "red", font: "serif")',
    }[name]
    value = construct(ctx, deser, name, explicit)
    assert isinstance(default, model)
    assert default == model()
    if name == "Counter":
        assert (value.count, value.step) == (11, 13)
    if name == "TextStyle":
        assert (value.size, value.color, value.font) == (21.5, "#ABCDEF", "mono")
    if name == "Label":
        assert value.text == "hi"
        assert value.style == TextStyle(size=9.0, color="red", font="serif")


def test_nested_patch_applies_onto_nested_default(ctx, deser):
    label = construct(ctx, deser, "Label", 'style: (color: "red")')
    assert label.text == "untitled"
    # The field's own default (size 12) survives, not TextStyle's (size 16)
    assert label.style == TextStyle(size=12.0, color="red")


def test_patch_onto_explicit_base(ctx, deser):
    base = TextStyle(size=30.0, color="blue")
    style = deser.construct(ctx.types.lookup("TextStyle"), "font: \"mono\"", "TextStyle", base=base)
    assert style == TextStyle(size=30.0, color="blue", font="mono")
    assert base.font == "default"


def test_patch_onto_non_struct_base(ctx, deser):
    with pytest.raises(NonStructPatch):
        deser.construct(ctx.types.lookup("Counter"), "count: 1", "Counter", base=5)


def test_unknown_field_rejected(ctx, deser):
    with pytest.raises(DeserializationFailed) as exc:
        construct(ctx, deser, "Counter", "cnt: 1")
    assert "cnt" in exc.value.reason


def test_unknown_field_ignored_when_configured():
    ctx = _context(ignore_unknown_fields=True)
    deser = AttributeValueDeserializer(ctx)
    assert construct(ctx, deser, "Counter", "cnt: 1, count: 2") == Counter(count=2)


def test_wrong_field_type(ctx, deser):
    with pytest.raises(DeserializationFailed) as exc:
        construct(ctx, deser, "Counter", 'count: "three"')
    assert exc.value.attribute == "Counter.count"


def test_syntax_error_is_deserialization_failure(ctx, deser):
    with pytest.raises(DeserializationFailed):
        construct(ctx, deser, "Counter", "count: (")


def test_entities_are_decoded(ctx, deser):
    text = construct(ctx, deser, "Text", "value: &quot;a &amp; b&quot;")
    assert text == Text(value="a & b")


# ---------------------------------------------------------------------------
# Tuple-like
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("raw", ["1, 2", "(1, 2)", "((1, 2))"])
def test_tuple_positions(ctx, deser, raw):
    assert construct(ctx, deser, "Size", raw) == Size(1.0, 2.0)


def test_tuple_arity(ctx, deser):
    with pytest.raises(DeserializationFailed):
        construct(ctx, deser, "Size", "1, 2, 3")


@pytest.mark.parametrize("raw", ["increment", '"increment"', '("increment")'])
def test_single_field_tuple_takes_bare_value(ctx, deser, raw):
    assert construct(ctx, deser, "XFunction", raw) == XFunction(name="increment")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

def test_unit_variant(ctx, deser):
    assert construct(ctx, deser, "Interaction", "Pressed") is Interaction.PRESSED
    assert construct(ctx, deser, "Interaction", "None") is Interaction.NONE
    assert construct(ctx, deser, "Interaction", None) is Interaction.NONE


def test_unknown_variant(ctx, deser):
    with pytest.raises(DeserializationFailed) as exc:
        construct(ctx, deser, "Interaction", "Dragged")
    assert "Dragged" in exc.value.reason


@pytest.mark.parametrize("raw", ["Interval(2.5)", "Interval((2.5))", "(Interval(2.5))"])
def test_newtype_variant_bare_or_wrapped(ctx, deser, raw):
    on = construct(ctx, deser, "XOn", raw)
    assert on == XOn(kind=TriggerKind.INTERVAL, seconds=2.5)


def test_newtype_variant_needs_payload(ctx, deser):
    with pytest.raises(DeserializationFailed):
        construct(ctx, deser, "XOn", "Interval")


def test_unit_variant_rejects_payload(ctx, deser):
    with pytest.raises(DeserializationFailed):
        construct(ctx, deser, "XOn", "Click(1)")


def test_string_payload_variants(ctx, deser):
    assert construct(ctx, deser, "XOn", 'Event("save")') == XOn(kind=TriggerKind.EVENT, event="save")
    assert construct(ctx, deser, "XTarget", "Name(title)") == XTarget(rule=TargetRule.NAME, name="title")
    assert construct(ctx, deser, "XTarget", "Root") == XTarget(rule=TargetRule.ROOT)


# ---------------------------------------------------------------------------
# Value leaves
# ---------------------------------------------------------------------------

def test_primitive_parsers(ctx, deser):
    assert construct(ctx, deser, "int", "42") == 42
    assert construct(ctx, deser, "float", "3") == 3.0
    assert construct(ctx, deser, "bool", "true") is True
    assert construct(ctx, deser, "str", '"hello"') == "hello"


def test_free_text_reaches_the_parser(ctx, deser):
    assert construct(ctx, deser, "str", "hello world!") == "hello world!"


def test_parser_rejection(ctx, deser):
    with pytest.raises(DeserializationFailed):
        construct(ctx, deser, "int", "2.5")


def test_no_parser_and_no_constructor(ctx, deser):
    with pytest.raises(MissingParser) as exc:
        construct(ctx, deser, "Color", '"#ff0000"')
    assert exc.value.attribute == "Color"


def test_constructor_function_fallback(ctx, deser):
    ctx.functions.register("hex", str, Color, lambda context, code: Color(code))
    color = construct(ctx, deser, "Color", '("hex", "#ff0000")')
    assert isinstance(color, Color)
    assert color.hex_code == "#ff0000"


def test_constructor_function_receives_context(ctx, deser):
    ctx.resources["palette"] = {"accent": "#00ff00"}
    ctx.functions.register("palette", str, Color, lambda context, key: Color(context.resources["palette"][key]))
    assert construct(ctx, deser, "Color", '("palette", accent)').hex_code == "#00ff00"


def test_constructor_function_with_unit_input(ctx, deser):
    ctx.functions.register("black", None, Color, lambda context, _: Color("#000000"))
    assert construct(ctx, deser, "Color", '("black", ())').hex_code == "#000000"


def test_constructor_used_when_parser_rejects(ctx, deser):
    ctx.functions.register("answer", None, int, lambda context, _: 42)
    assert construct(ctx, deser, "int", '("answer", ())') == 42


def test_constructor_output_type_mismatch(ctx, deser):
    ctx.functions.register("hex", str, str, lambda context, code: code)
    with pytest.raises(TypeMismatch):
        construct(ctx, deser, "Color", '("hex", "#ff0000")')


def test_constructor_unknown_function(ctx, deser):
    with pytest.raises(UnknownFunction):
        construct(ctx, deser, "Color", '("nope", 1)')


def test_constructor_in_struct_field(ctx, deser):
    ctx.functions.register("ten", None, int, lambda context, _: 10)
    assert construct(ctx, deser, "Counter", 'step: ("ten", ())') == Counter(step=10)


# ---------------------------------------------------------------------------
# Malformed text
# ---------------------------------------------------------------------------

def test_out_of_range_escape_is_deserialization_failure(ctx, deser):
    with pytest.raises(DeserializationFailed) as exc:
        construct(ctx, deser, "Text", r'value: "\u{FFFFFFFFFFFFFFFFFFFF}"')
    assert exc.value.attribute == "Text"


@pytest.mark.skipif(
    not hasattr(sys, "get_int_max_str_digits") or sys.get_int_max_str_digits() == 0,
    reason="no integer digit limit",
)
def test_oversized_integer_is_deserialization_failure(ctx, deser):
    digits = "9" * (sys.get_int_max_str_digits() + 1)
    with pytest.raises(DeserializationFailed):
        construct(ctx, deser, "int", digits)
    with pytest.raises(DeserializationFailed):
        construct(ctx, deser, "Counter", f"count: {digits}")


# ---------------------------------------------------------------------------
# Variant field locations
# ---------------------------------------------------------------------------

class Extent(BaseModel):
    width: float


def _shape_context(ctx):
    ctx.types.register(describe_model(Extent, default=False))
    ctx.types.register(TypeDescriptor(
        name="Shape",
        type_id=dict,
        shape=EnumShape(
            variants=(Variant.positional("Boxed", Extent), Variant.named("Sized", extent=Extent)),
            build=lambda variant, payload: {variant: payload},
        ),
    ))
    return ctx


@pytest.mark.parametrize("raw, location", [
    ("Boxed(())", "Shape.Boxed.0"),
    ("Sized(extent: ())", "Shape.Sized.extent"),
])
def test_variant_field_errors_name_the_field(ctx, deser, raw, location):
    _shape_context(ctx)
    with pytest.raises(DeserializationFailed) as exc:
        construct(ctx, deser, "Shape", raw)
    assert exc.value.attribute == location


def test_variant_fields_build(ctx, deser):
    _shape_context(ctx)
    assert construct(ctx, deser, "Shape", "Boxed((width: 2))") == {"Boxed": (Extent(width=2.0),)}
    assert construct(ctx, deser, "Shape", "Sized(extent: (width: 3))") == {"Sized": {"extent": Extent(width=3.0)}}
