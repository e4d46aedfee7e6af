"""Module context: the explicit scene context threaded through every call."""
#
# PURPOSE:
# Everything the engine would otherwise keep in global state lives on one
# SceneContext: the registries (process lifetime, filled at startup) and the
# scene-scoped state (object graph, names, documents, events) that reset()
# clears on scene teardown.
#
# USAGE:
#   ctx = SceneContext.create()
#   ctx.functions.register("increment", None, SceneDocument, increment)
#

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from livescene.base.config import SceneConfig, get_config
from livescene.base.events import EventBus
from livescene.document.loader import DocumentLoader, DocumentStore, FileReferenceLoader
from livescene.registry.builtins import register_builtins
from livescene.registry.function_registry import NamedFunctionRegistry
from livescene.registry.type_registry import TypeRegistry
from livescene.scene.names import NameIndex
from livescene.scene.store import InMemoryObjectStore, ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class SceneContext:
    config: SceneConfig
    types: TypeRegistry
    functions: NamedFunctionRegistry
    store: ObjectStore
    documents: DocumentStore
    references: FileReferenceLoader
    names: NameIndex = field(default_factory=NameIndex)
    events: EventBus = field(default_factory=EventBus)
    # Free-form state for scene functions (counters, app data, ...)
    resources: Dict[str, Any] = field(default_factory=dict)
    # Identities committed by the assembler since the last patch pass
    materialized: Set[int] = field(default_factory=set)

    @classmethod
    def create(
        cls,
        config: Optional[SceneConfig] = None,
        types: Optional[TypeRegistry] = None,
        functions: Optional[NamedFunctionRegistry] = None,
        store: Optional[ObjectStore] = None,
    ) -> "SceneContext":
        """
        Build a context with the built-in types registered.

        A registry passed in is used as-is (its built-ins are the caller's business).
        """
        cfg = config or get_config()
        documents = DocumentStore(DocumentLoader(cfg.document))
        return cls(
            config=cfg,
            types=types if types is not None else register_builtins(TypeRegistry()),
            functions=functions if functions is not None else NamedFunctionRegistry(),
            store=store if store is not None else InMemoryObjectStore(),
            documents=documents,
            references=FileReferenceLoader(documents, cfg.document.root_dir),
        )

    def reset(self) -> None:
        """Scene teardown: drop the object graph and all scene-scoped state; registries stay."""
        self.store.clear()
        self.names.clear()
        self.documents.clear()
        self.events.clear()
        self.resources.clear()
        self.materialized.clear()
        logger.info("[SceneContext] Scene state reset")
