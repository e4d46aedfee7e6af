"""
livescene/registry/function_registry.py
The Named Function Registry.

Name-addressed functions with declared input and output types. A call checks
the entry out of its slot for the duration of the call, so a function that
calls itself by name fails with FunctionBusy instead of re-entering.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from livescene.errors import FunctionBusy, TypeMismatch, UnknownFunction, type_name

logger = logging.getLogger(__name__)

# (context, input) -> output
SceneFunction = Callable[[Any, Any], Any]

UNIT = type(None)


@dataclass
class FunctionEntry:
    name: str
    input_type: type
    output_type: type
    # None while the function is checked out by a running call
    slot: Optional[SceneFunction]

    @property
    def checked_out(self) -> bool:
        return self.slot is None


class NamedFunctionRegistry:
    def __init__(self):
        self._entries: Dict[str, FunctionEntry] = {}

    def register(self, name: str, input_type: Optional[type], output_type: type, func: SceneFunction) -> FunctionEntry:
        """
        Register `func` under `name`; the last registration for a name wins.

        input_type None means the function takes no input (the Unit type).
        """
        entry = FunctionEntry(
            name=name,
            input_type=UNIT if input_type is None else input_type,
            output_type=output_type,
            slot=func,
        )
        if name in self._entries:
            logger.debug(f"[FunctionRegistry] Replacing function '{name}'")
        self._entries[name] = entry
        return entry

    def function(self, name: str, input_type: Optional[type], output_type: type):
        """Decorator form of register()."""
        def decorator(func: SceneFunction) -> SceneFunction:
            self.register(name, input_type, output_type, func)
            return func
        return decorator

    def entry(self, name: str) -> FunctionEntry:
        entry = self._entries.get(name)
        if entry is None:
            raise UnknownFunction(name)
        return entry

    def call(self, name: str, input: Any, context: Any, expect: Optional[type] = None) -> Any:
        """
        Invoke a function by name.

        Raises:
            UnknownFunction: nothing registered under `name`
            TypeMismatch: the input's runtime type differs from the declared input
                type, or `expect` differs from the declared output type
            FunctionBusy: the entry is checked out by a call still running
        """
        entry = self.entry(name)
        if expect is not None and entry.output_type is not expect:
            raise TypeMismatch(name, expect, entry.output_type)
        if type(input) is not entry.input_type:
            raise TypeMismatch(name, entry.input_type, type(input))
        if entry.checked_out:
            raise FunctionBusy(name)

        func, entry.slot = entry.slot, None
        logger.debug(f"[FunctionRegistry] Calling '{name}' ({type_name(entry.input_type)} -> {type_name(entry.output_type)})")
        try:
            return func(context, input)
        finally:
            entry.slot = func

    def names(self) -> List[str]:
        return sorted(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
