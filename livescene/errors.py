"""Module errors: structured error taxonomy for livescene."""
#
# PURPOSE:
# One exception class per failure kind of the type-driven construction and
# live-patching engine, each tagged with a searchable error code.
#
# ERROR CODE FORMAT:
# - TYPE_XXX: Type registry / attribute resolution errors
# - FUNC_XXX: Named function dispatch errors
# - DESER_XXX: Attribute value construction errors
# - DOC_XXX: Document notation errors
# - PATCH_XXX: Live patch errors
#
# USAGE:
#   from livescene.errors import UnknownTag
#
#   raise UnknownTag("Row")
#
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    # Type errors
    TYPE_UNKNOWN = "TYPE_001"
    TYPE_UNKNOWN_TAG = "TYPE_002"
    TYPE_INVALID_PARAM = "TYPE_003"
    TYPE_TEMPLATE_RECURSION = "TYPE_004"

    # Function errors
    FUNC_UNKNOWN = "FUNC_001"
    FUNC_TYPE_MISMATCH = "FUNC_002"
    FUNC_BUSY = "FUNC_003"

    # Deserialization errors
    DESER_MISSING_DEFAULT = "DESER_001"
    DESER_MISSING_PARSER = "DESER_002"
    DESER_FAILED = "DESER_003"
    DESER_NON_STRUCT_PATCH = "DESER_004"
    DESER_SYNTAX = "DESER_005"

    # Document errors
    DOC_PARSE_ERROR = "DOC_001"

    # Patch errors
    PATCH_UNRESOLVED_TARGET = "PATCH_001"


def type_name(type_id: Any) -> str:
    """Readable name for a type id (a Python class) in error messages."""
    if type_id is type(None):
        return "Unit"
    return getattr(type_id, "__name__", repr(type_id))


class SceneError(Exception):
    """
    Base exception for livescene with structured error information.

    Attributes:
        code: ErrorCode enum value
        message: Human-readable error message
        details: Additional context (attribute names, type names, ...)
    """

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "kind": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


# ============================================================================
# Type resolution
# ============================================================================

class UnknownType(SceneError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(ErrorCode.TYPE_UNKNOWN, f"Referred to undefined type '{name}'", {"name": name})


class UnknownTag(SceneError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(ErrorCode.TYPE_UNKNOWN_TAG, f"Unrecognized tag name '{name}'", {"name": name})


class InvalidParamType(SceneError):
    def __init__(self, attribute: str, param: str):
        self.attribute = attribute
        self.param = param
        super().__init__(
            ErrorCode.TYPE_INVALID_PARAM,
            f"Attribute name [{attribute}]: Invalid attribute associated type <{param}>",
            {"attribute": attribute, "param": param},
        )


class TemplateRecursion(SceneError):
    def __init__(self, name: str, depth: int):
        self.name = name
        self.depth = depth
        super().__init__(
            ErrorCode.TYPE_TEMPLATE_RECURSION,
            f"Template '{name}' expanded past depth {depth}",
            {"name": name, "depth": depth},
        )


# ============================================================================
# Function dispatch
# ============================================================================

class UnknownFunction(SceneError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(ErrorCode.FUNC_UNKNOWN, f"No function registered as '{name}'", {"name": name})


class TypeMismatch(SceneError):
    def __init__(self, function: str, expected: Any, actual: Any):
        self.function = function
        self.expected = expected
        self.actual = actual
        super().__init__(
            ErrorCode.FUNC_TYPE_MISMATCH,
            f"Function '{function}' expects {type_name(expected)}, got {type_name(actual)}",
            {"function": function, "expected": type_name(expected), "actual": type_name(actual)},
        )


class FunctionBusy(SceneError):
    """Raised when a function is called by name while its entry is checked out."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(ErrorCode.FUNC_BUSY, f"Function '{name}' is already executing", {"name": name})


# ============================================================================
# Attribute value construction
# ============================================================================

class MissingDefault(SceneError):
    def __init__(self, attribute: str):
        self.attribute = attribute
        super().__init__(
            ErrorCode.DESER_MISSING_DEFAULT,
            f"Attribute name [{attribute}]: Type has no default and no value was given",
            {"attribute": attribute},
        )


class MissingParser(SceneError):
    def __init__(self, attribute: str):
        self.attribute = attribute
        super().__init__(
            ErrorCode.DESER_MISSING_PARSER,
            f"Attribute name [{attribute}]: Type has no parser or constructor, and you are trying to assign a value",
            {"attribute": attribute},
        )


class DeserializationFailed(SceneError):
    def __init__(self, attribute: str, reason: str = ""):
        self.attribute = attribute
        self.reason = reason
        message = f"Attribute name [{attribute}]: Failed to deserialize"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(ErrorCode.DESER_FAILED, message, {"attribute": attribute, "reason": reason})


class NonStructPatch(SceneError):
    def __init__(self, attribute: str):
        self.attribute = attribute
        super().__init__(
            ErrorCode.DESER_NON_STRUCT_PATCH,
            f"Attribute name [{attribute}]: Attempting to patch a non-struct value",
            {"attribute": attribute},
        )


class ValueSyntaxError(SceneError):
    def __init__(self, text: str, position: int, reason: str):
        self.text = text
        self.position = position
        self.reason = reason
        super().__init__(
            ErrorCode.DESER_SYNTAX,
            f"{reason} at position {position} in {text!r}",
            {"text": text, "position": position},
        )


# ============================================================================
# Documents & patching
# ============================================================================

class DocumentParseError(SceneError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(ErrorCode.DOC_PARSE_ERROR, reason)


class UnresolvedTarget(SceneError):
    def __init__(self, spec: str):
        self.spec = spec
        super().__init__(ErrorCode.PATCH_UNRESOLVED_TARGET, f"Swap target {spec} could not be resolved", {"spec": spec})


__all__ = [
    "ErrorCode",
    "SceneError",
    "UnknownType",
    "UnknownTag",
    "InvalidParamType",
    "TemplateRecursion",
    "UnknownFunction",
    "TypeMismatch",
    "FunctionBusy",
    "MissingDefault",
    "MissingParser",
    "DeserializationFailed",
    "NonStructPatch",
    "ValueSyntaxError",
    "DocumentParseError",
    "UnresolvedTarget",
    "type_name",
]
