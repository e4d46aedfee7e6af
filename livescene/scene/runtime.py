"""
livescene/scene/runtime.py
The host scheduler stand-in.

Each tick runs the live patch pass first, then assembles every node tagged
with a document handle that has not been instanced yet. Swapped-in documents
that include other documents (through Handle<SceneDocument> attributes) are
therefore fully assembled within the tick that created them.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from livescene.base.context import SceneContext
from livescene.base.events import SceneEventType
from livescene.document.loader import DocumentHandle
from livescene.document.model import SceneDocument
from livescene.document.parser import parse_document
from livescene.errors import SceneError
from livescene.patch.engine import LivePatchEngine, PatchReport
from livescene.registry.builtins import Interaction
from livescene.scene.assembler import SceneAssembler

logger = logging.getLogger(__name__)


class SceneInstance(BaseModel):
    """Marks a node whose document handle has been assembled into it."""
    model_config = ConfigDict(frozen=True)

    key: str


class SceneRuntime:
    def __init__(self, context: Optional[SceneContext] = None, clock=None):
        self.context = context or SceneContext.create()
        self.assembler = SceneAssembler(self.context)
        self.patcher = LivePatchEngine(self.context, self.assembler, clock=clock or time.monotonic)
        self.failures: List[SceneError] = []

    # ------------------------------------------------------------------
    # Spawning
    # ------------------------------------------------------------------

    def spawn(self, document: Union[SceneDocument, str], parent: Optional[int] = None) -> int:
        """
        Tag a new node with a handle to `document` (markup is parsed first).

        The node is assembled by the next tick().
        """
        if isinstance(document, str):
            document = parse_document(document)
        handle = self.context.documents.add(document)
        return self._spawn_handle(handle, parent)

    def load(self, path: Union[str, Path], parent: Optional[int] = None) -> int:
        """Like spawn(), for a document file."""
        handle = self.context.references.resolve("SceneDocument", str(path))
        return self._spawn_handle(handle, parent)

    def _spawn_handle(self, handle: DocumentHandle, parent: Optional[int]) -> int:
        store = self.context.store
        identity = store.create_identity()
        store.attach_facet(identity, DocumentHandle, handle)
        if parent is not None:
            store.append_child(parent, identity)
        logger.debug(f"[Runtime] Spawned {identity} for {handle.key}")
        return identity

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def pending(self) -> List[int]:
        store = self.context.store
        return [
            identity
            for identity in store.nodes_with(DocumentHandle)
            if store.read_facet(identity, SceneInstance) is None
        ]

    def tick(self, now: Optional[float] = None) -> PatchReport:
        """
        One host tick: patch pass, then assembly of pending documents.

        Raises:
            SceneError: a patch pass misconfiguration, or an assembly failure
                when host.fail_fast is set
        """
        report = self.patcher.run_pass(now)
        self.assemble_pending()
        return report

    def assemble_pending(self) -> None:
        """Assemble pending documents, in rounds, until none are left."""
        for _ in range(self.context.config.host.max_assembly_rounds):
            pending = self.pending()
            if not pending:
                break
            for identity in pending:
                self._assemble_pending(identity)
        else:
            if self.pending():
                logger.warning(
                    f"[Runtime] Documents still pending after "
                    f"{self.context.config.host.max_assembly_rounds} assembly rounds"
                )

    def _assemble_pending(self, identity: int) -> None:
        store = self.context.store
        handle = store.read_facet(identity, DocumentHandle)
        # Marked first so a failing document is not retried every round
        store.attach_facet(identity, SceneInstance, SceneInstance(key=handle.key))
        try:
            document = self.context.documents.get(handle)
            self.assembler.assemble_document(document, identity)
            # A root-level include replaced the handle: assemble that one next round
            if store.read_facet(identity, DocumentHandle) != handle:
                store.remove_facet(identity, SceneInstance)
        except SceneError as e:
            self.failures.append(e)
            logger.error(f"[Runtime] Failed to assemble {handle.key} into {identity}: {e}")
            self.context.events.emit(
                SceneEventType.ASSEMBLY_FAILED,
                {"identity": identity, "source": handle.key, "error": e.to_dict()},
            )
            if self.context.config.host.fail_fast:
                raise

    # ------------------------------------------------------------------
    # Host helpers
    # ------------------------------------------------------------------

    def set_interaction(self, identity: int, state: Any) -> None:
        """Write the pointer interaction state of a node, as an input system would."""
        self.context.store.attach_facet(identity, Interaction, Interaction(state))

    def raise_event(self, name: str) -> None:
        self.context.events.raise_event(name)

    def teardown(self) -> None:
        self.context.reset()
        self.failures.clear()
