"""
livescene/patch/bindings.py

Trigger bindings read off a node's facets, and swap target resolution.

A node carrying an XFunction facet is trigger-bearing. XOn, XSwap and XTarget
are optional and default to Click, Outer and This.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from livescene.errors import UnresolvedTarget
from livescene.registry.builtins import TargetRule, TriggerKind, XFunction, XOn, XSwap, XTarget


@dataclass(frozen=True)
class TriggerBinding:
    identity: int
    function: str
    on: XOn
    swap: XSwap
    target: XTarget

    @property
    def kind(self) -> TriggerKind:
        return self.on.kind

    @property
    def rearms(self) -> bool:
        """Tick and interval triggers stay armed after firing."""
        return self.on.kind in (TriggerKind.TICK, TriggerKind.INTERVAL)


def read_binding(store: Any, identity: int) -> Optional[TriggerBinding]:
    function = store.read_facet(identity, XFunction)
    if function is None:
        return None
    return TriggerBinding(
        identity=identity,
        function=function.name,
        on=store.read_facet(identity, XOn) or XOn(),
        swap=store.read_facet(identity, XSwap) or XSwap.OUTER,
        target=store.read_facet(identity, XTarget) or XTarget(),
    )


def resolve_target(context: Any, binding: TriggerBinding) -> int:
    """
    Identity the binding's swap applies to.

    Raises:
        UnresolvedTarget: no node matches the target rule
    """
    store = context.store
    rule = binding.target.rule

    if rule == TargetRule.THIS:
        return binding.identity

    if rule == TargetRule.NAME:
        identity = context.names.lookup(binding.target.name or "")
        if identity is None or not store.exists(identity):
            raise UnresolvedTarget(binding.target.describe())
        return identity

    if rule == TargetRule.SIBLING:
        # Next sibling, else the previous one
        parent = store.get_parent(binding.identity)
        if parent is None:
            raise UnresolvedTarget(binding.target.describe())
        siblings = store.children(parent)
        index = siblings.index(binding.identity)
        if index + 1 < len(siblings):
            return siblings[index + 1]
        if index > 0:
            return siblings[index - 1]
        raise UnresolvedTarget(binding.target.describe())

    identity = binding.identity
    parent = store.get_parent(identity)
    while parent is not None:
        identity, parent = parent, store.get_parent(parent)
    return identity
