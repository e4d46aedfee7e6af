"""
livescene/registry/builtins.py
Facet types every scene understands.

- Primitive leaves: int, float, str, bool, Unit
- Text content: Text, TextStyle
- Host-written state: Interaction
- Trigger bindings: XFunction, XOn, XSwap, XTarget
- Resource references: Handle<SceneDocument>
- Templates: Button
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from livescene.document.loader import DocumentHandle, Handle
from livescene.document.model import SceneDocument
from livescene.document.parser import parse_document
from livescene.registry.descriptors import (
    EnumShape,
    TypeDescriptor,
    Variant,
    describe_enum,
    describe_model,
    describe_newtype,
    describe_value,
)
from livescene.registry.type_registry import TypeRegistry, generic_name

logger = logging.getLogger(__name__)

UNIT = type(None)


# ============================================================================
# Primitive parsers
# ============================================================================
# Parsers receive the plain Python value of the parsed notation and raise
# ValueError when it does not fit.

def parse_int(value: Any, context: Any = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected an integer, got {value!r}")
    return value


def parse_float(value: Any, context: Any = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Expected a number, got {value!r}")
    return float(value)


def parse_str(value: Any, context: Any = None) -> str:
    if not isinstance(value, str):
        raise ValueError(f"Expected a string, got {value!r}")
    return value


def parse_bool(value: Any, context: Any = None) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected true or false, got {value!r}")
    return value


def parse_unit(value: Any, context: Any = None) -> None:
    if value not in ((), None):
        raise ValueError(f"Expected (), got {value!r}")
    return None


# ============================================================================
# Text
# ============================================================================

class TextStyle(BaseModel):
    size: float = 16.0
    color: str = "#FFFFFF"
    font: str = "default"


class Text(BaseModel):
    value: str = ""
    style: TextStyle = Field(default_factory=TextStyle)


# ============================================================================
# Interaction
# ============================================================================

class Interaction(str, Enum):
    """Pointer interaction state of a node, written by the host."""
    NONE = "None"
    HOVERED = "Hovered"
    PRESSED = "Pressed"


# ============================================================================
# Trigger bindings
# ============================================================================

class XFunction(BaseModel):
    """Name of the function producing the replacement document."""
    name: str


class TriggerKind(str, Enum):
    CREATE = "Create"
    TICK = "Tick"
    INTERVAL = "Interval"
    CLICK = "Click"
    INTERACTION = "Interaction"
    EVENT = "Event"


class XOn(BaseModel):
    """When the bound function fires."""
    kind: TriggerKind = TriggerKind.CLICK
    seconds: Optional[float] = None
    event: Optional[str] = None


def _build_xon(variant: str, payload: Any) -> XOn:
    kind = TriggerKind(variant)
    if kind == TriggerKind.INTERVAL:
        return XOn(kind=kind, seconds=payload[0])
    if kind == TriggerKind.EVENT:
        return XOn(kind=kind, event=payload[0])
    return XOn(kind=kind)


class XSwap(str, Enum):
    """How the replacement is spliced into the target."""
    OUTER = "Outer"
    INNER = "Inner"
    PREPEND = "Prepend"
    APPEND = "Append"


class TargetRule(str, Enum):
    THIS = "This"
    NAME = "Name"
    SIBLING = "Sibling"
    ROOT = "Root"


class XTarget(BaseModel):
    """Which node the replacement is spliced into."""
    rule: TargetRule = TargetRule.THIS
    name: Optional[str] = None

    def describe(self) -> str:
        if self.rule == TargetRule.NAME:
            return f"Name({self.name!r})"
        return self.rule.value


def _build_xtarget(variant: str, payload: Any) -> XTarget:
    rule = TargetRule(variant)
    if rule == TargetRule.NAME:
        return XTarget(rule=rule, name=payload[0])
    return XTarget(rule=rule)


# ============================================================================
# Templates
# ============================================================================

class Button(BaseModel):
    """Clickable node: expands to an Interaction facet."""


BUTTON_MARKUP = '<Entity Interaction="None"></Entity>'


def expand_button(button: Button) -> SceneDocument:
    return parse_document(BUTTON_MARKUP, source="template://Button")


# ============================================================================
# Registration
# ============================================================================

def _parse_document_handle(value: Any, context: Any) -> DocumentHandle:
    if not isinstance(value, str):
        raise ValueError(f"Expected a document path, got {value!r}")
    return context.references.resolve("SceneDocument", value)


def register_primitives(types: TypeRegistry) -> None:
    types.register(describe_value(int, "int", default=int, parser=parse_int))
    types.register(describe_value(float, "float", default=float, parser=parse_float))
    types.register(describe_value(str, "str", default=str, parser=parse_str))
    types.register(describe_value(bool, "bool", default=bool, parser=parse_bool))
    types.register(describe_value(UNIT, "Unit", default=lambda: None, parser=parse_unit))


def register_builtins(types: TypeRegistry) -> TypeRegistry:
    """Register every built-in facet type; returns the registry for chaining."""
    register_primitives(types)

    types.register(describe_model(TextStyle))
    types.register(describe_model(Text))
    types.register(describe_enum(Interaction, default=lambda: Interaction.NONE))

    types.register(describe_newtype(XFunction, str, attr="name"))
    types.register(TypeDescriptor(
        name="XOn",
        type_id=XOn,
        shape=EnumShape(
            variants=(
                Variant.unit("Create"),
                Variant.unit("Tick"),
                Variant.positional("Interval", float),
                Variant.unit("Click"),
                Variant.unit("Interaction"),
                Variant.positional("Event", str),
            ),
            build=_build_xon,
        ),
        default=XOn,
    ))
    types.register(describe_enum(XSwap, default=lambda: XSwap.OUTER))
    types.register(TypeDescriptor(
        name="XTarget",
        type_id=XTarget,
        shape=EnumShape(
            variants=(
                Variant.unit("This"),
                Variant.positional("Name", str),
                Variant.unit("Sibling"),
                Variant.unit("Root"),
            ),
            build=_build_xtarget,
        ),
        default=XTarget,
    ))

    register_handle(types, SceneDocument, _parse_document_handle)

    types.register(describe_model(Button, template=expand_button))

    logger.debug(f"[Builtins] Registered {len(types)} built-in types")
    return types


def register_handle(types: TypeRegistry, resource: type, parser) -> TypeDescriptor:
    """Register the `Handle<Resource>` leaf, written `Handle:Resource` in documents."""
    return types.register(describe_value(
        Handle[resource],
        generic_name("Handle", resource.__name__),
        parser=parser,
    ))
