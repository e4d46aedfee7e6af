"""
livescene/patch/engine.py
The Live Patch Engine.

One pass per host tick, in two phases:

1. Evaluate: find every trigger-bearing node whose trigger holds this pass,
   call its function by name and resolve its swap target. Every call and
   every target lookup sees the graph as it was before the pass.
2. Apply: splice each replacement document into its target, in identity
   order. Swaps already applied stay applied if a later one fails.

Per-node trigger state: IDLE -> PENDING (trigger held) -> APPLIED (swap
done), back to IDLE right away except for tick and interval triggers.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from livescene.base.events import SceneEventType
from livescene.document.model import SceneDocument
from livescene.errors import SceneError, TypeMismatch, UnresolvedTarget
from livescene.patch.bindings import TriggerBinding, read_binding, resolve_target
from livescene.registry.builtins import Interaction, TriggerKind, XFunction, XSwap
from livescene.scene.assembler import SceneAssembler

logger = logging.getLogger(__name__)

UNIT = type(None)


class TriggerState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    APPLIED = "applied"


@dataclass
class PendingSwap:
    binding: TriggerBinding
    document: SceneDocument
    target: int


@dataclass
class PatchReport:
    """What one pass did."""
    fired: List[int] = field(default_factory=list)
    applied: List[Tuple[int, int, XSwap]] = field(default_factory=list)
    skipped: List[Tuple[int, str]] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied)


class LivePatchEngine:
    def __init__(
        self,
        context: Any,
        assembler: Optional[SceneAssembler] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.context = context
        self.assembler = assembler or SceneAssembler(context)
        self.clock = clock
        self.states: Dict[int, TriggerState] = {}
        self._interval_marks: Dict[int, float] = {}
        self._last_interaction: Dict[int, Interaction] = {}

    def state_of(self, identity: int) -> TriggerState:
        return self.states.get(identity, TriggerState.IDLE)

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    def run_pass(self, now: Optional[float] = None) -> PatchReport:
        """
        Evaluate every trigger, then apply every resulting swap.

        Fired bindings are checked against the function registry before any
        function runs; a failed check leaves the pass unconsumed (creations,
        raised events, interaction and interval tracking) for the next one.
        Triggers that fired but were not applied return to idle whenever the
        pass raises.

        Raises:
            UnknownFunction, TypeMismatch, FunctionBusy: misconfigured binding
            SceneError: a replacement document failed to assemble
        """
        now = self.clock() if now is None else now
        report = PatchReport()
        self._prune()

        created = set(self.context.materialized)
        self.context.materialized.clear()
        raised = self.context.events.drain_raised()

        changes = self._interaction_changes()
        marks: Dict[int, float] = {}
        store = self.context.store
        bindings = [read_binding(store, identity) for identity in store.nodes_with(XFunction)]
        names = set(raised)
        fired = [b for b in bindings if b is not None and self._holds(b, now, created, names, changes, marks)]

        try:
            self._check(fired)
        except SceneError:
            self.context.materialized.update(created)
            self.context.events.restore_raised(raised)
            raise

        for identity, (_, current) in changes.items():
            self._last_interaction[identity] = current
        self._interval_marks.update(marks)

        try:
            queued = self._evaluate(fired, report)
            self._apply(queued, report)
        finally:
            self._settle(report)
        return report

    def _settle(self, report: PatchReport) -> None:
        """Fired triggers go back to idle, except applied tick and interval triggers."""
        store = self.context.store
        for identity in report.fired:
            state = self.states.get(identity)
            if state == TriggerState.PENDING:
                self.states[identity] = TriggerState.IDLE
            elif state == TriggerState.APPLIED:
                binding = read_binding(store, identity) if store.exists(identity) else None
                if binding is None or not binding.rearms:
                    self.states[identity] = TriggerState.IDLE

    def _prune(self) -> None:
        store = self.context.store
        for table in (self.states, self._interval_marks, self._last_interaction):
            for identity in [i for i in table if not store.exists(i)]:
                del table[identity]

    # ------------------------------------------------------------------
    # Phase 1: evaluate against the pre-batch graph
    # ------------------------------------------------------------------

    def _interaction_changes(self) -> Dict[int, Tuple[Interaction, Interaction]]:
        store = self.context.store
        changes = {}
        for identity in store.nodes_with(Interaction):
            current = store.read_facet(identity, Interaction)
            previous = self._last_interaction.get(identity, Interaction.NONE)
            if current != previous:
                changes[identity] = (previous, current)
        return changes

    def _holds(
        self,
        binding: TriggerBinding,
        now: float,
        created: Set[int],
        raised: Set[str],
        changes: Dict[int, Tuple[Interaction, Interaction]],
        marks: Dict[int, float],
    ) -> bool:
        """Whether the trigger holds this pass; new interval marks go into `marks`."""
        kind = binding.kind
        identity = binding.identity
        if kind == TriggerKind.CREATE:
            return identity in created
        if kind == TriggerKind.TICK:
            return True
        if kind == TriggerKind.INTERVAL:
            mark = self._interval_marks.get(identity)
            if mark is None:
                mark = marks[identity] = now
            if now - mark >= (binding.on.seconds or 0.0):
                marks[identity] = now
                return True
            return False
        if kind == TriggerKind.CLICK:
            change = changes.get(identity)
            return change is not None and change[1] == Interaction.PRESSED
        if kind == TriggerKind.INTERACTION:
            return identity in changes
        return binding.on.event in raised

    def _check(self, fired: List[TriggerBinding]) -> None:
        """Every fired binding names a registered Unit -> SceneDocument function."""
        functions = self.context.functions
        for binding in fired:
            entry = functions.entry(binding.function)
            if entry.output_type is not SceneDocument:
                raise TypeMismatch(binding.function, SceneDocument, entry.output_type)
            if entry.input_type is not UNIT:
                raise TypeMismatch(binding.function, entry.input_type, UNIT)

    def _evaluate(self, fired: List[TriggerBinding], report: PatchReport) -> List[PendingSwap]:
        for binding in fired:
            self.states[binding.identity] = TriggerState.PENDING
            report.fired.append(binding.identity)
            self.context.events.emit(
                SceneEventType.TRIGGER_FIRED,
                {"identity": binding.identity, "function": binding.function, "on": binding.kind.value},
            )

        queued = []
        for binding in fired:
            document = self.context.functions.call(binding.function, None, self.context, expect=SceneDocument)
            try:
                target = resolve_target(self.context, binding)
            except UnresolvedTarget as e:
                logger.warning(f"[PatchEngine] Skipping '{binding.function}' on {binding.identity}: {e.message}")
                self._skip(binding, e.message, report)
                continue
            queued.append(PendingSwap(binding=binding, document=document, target=target))
        return queued

    # ------------------------------------------------------------------
    # Phase 2: apply
    # ------------------------------------------------------------------

    def _skip(self, binding: TriggerBinding, reason: str, report: PatchReport) -> None:
        self.states[binding.identity] = TriggerState.IDLE
        report.skipped.append((binding.identity, reason))
        self.context.events.emit(
            SceneEventType.SWAP_SKIPPED,
            {"identity": binding.identity, "function": binding.function, "reason": reason},
        )

    def _apply(self, queued: List[PendingSwap], report: PatchReport) -> None:
        for pending in queued:
            binding = pending.binding
            if not self.context.store.exists(pending.target):
                reason = f"target {pending.target} was removed earlier in this pass"
                logger.warning(f"[PatchEngine] Skipping '{binding.function}' on {binding.identity}: {reason}")
                self._skip(binding, reason, report)
                continue

            self.swap(pending.target, pending.document, binding.swap)
            self.states[binding.identity] = TriggerState.APPLIED
            report.applied.append((binding.identity, pending.target, binding.swap))
            logger.info(
                f"[PatchEngine] {binding.swap.value} swap of {pending.target} "
                f"with '{binding.function}' from {binding.identity}"
            )
            self.context.events.emit(
                SceneEventType.SWAP_APPLIED,
                {
                    "identity": binding.identity,
                    "target": pending.target,
                    "function": binding.function,
                    "mode": binding.swap.value,
                },
            )

    def swap(self, target: int, document: SceneDocument, mode: XSwap) -> int:
        """
        Splice `document` into `target`; returns the identity it was assembled into.

        outer keeps the identity and replaces everything on it; inner, prepend
        and append assemble into one new child.
        """
        store = self.context.store
        staged = self.assembler.stage(document.root)

        if mode == XSwap.OUTER:
            store.clear_facets(target)
            self._interval_marks.pop(target, None)
            self._last_interaction.pop(target, None)
            store.remove_children(target)
            self.assembler.commit(staged, target)
            return target

        child = store.create_identity()
        if mode == XSwap.INNER:
            store.remove_children(target)
            store.append_child(target, child)
        elif mode == XSwap.PREPEND:
            store.insert_child(target, 0, child)
        else:
            store.append_child(target, child)
        self.assembler.commit(staged, child)
        return child
