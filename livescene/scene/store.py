"""
livescene/scene/store.py

The object store: identities, their typed facets, and the ordered
parent -> child structure between them.

PURPOSE:
The assembler and the patch engine only talk to the ObjectStore protocol.
InMemoryObjectStore is the implementation used by the runtime and the tests:
a networkx DiGraph with parent -> child edges, where each node carries its
facet map and its ordered children list as node attributes.
"""

from __future__ import annotations

import logging
from itertools import count
from typing import Any, Dict, Iterator, List, Optional, Protocol

import networkx as nx

logger = logging.getLogger(__name__)

Identity = int


class ObjectStore(Protocol):
    def create_identity(self) -> Identity: ...
    def exists(self, identity: Identity) -> bool: ...
    def attach_facet(self, identity: Identity, type_id: type, instance: Any) -> None: ...
    def read_facet(self, identity: Identity, type_id: type) -> Optional[Any]: ...
    def remove_facet(self, identity: Identity, type_id: type) -> None: ...
    def facets(self, identity: Identity) -> Dict[type, Any]: ...
    def clear_facets(self, identity: Identity) -> None: ...
    def children(self, identity: Identity) -> List[Identity]: ...
    def get_parent(self, identity: Identity) -> Optional[Identity]: ...
    def append_child(self, parent: Identity, child: Identity) -> None: ...
    def insert_child(self, parent: Identity, index: int, child: Identity) -> None: ...
    def remove_subtree(self, identity: Identity) -> None: ...
    def remove_children(self, identity: Identity) -> None: ...
    def nodes_with(self, type_id: type) -> List[Identity]: ...
    def clear(self) -> None: ...


class InMemoryObjectStore:
    """ObjectStore over a networkx DiGraph."""

    def __init__(self):
        self.graph = nx.DiGraph()
        self._ids = count(1)

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    def create_identity(self) -> Identity:
        identity = next(self._ids)
        self.graph.add_node(identity, facets={}, children=[])
        return identity

    def exists(self, identity: Identity) -> bool:
        return self.graph.has_node(identity)

    def _node(self, identity: Identity) -> Dict[str, Any]:
        if not self.graph.has_node(identity):
            raise KeyError(f"No node with identity {identity}")
        return self.graph.nodes[identity]

    # ------------------------------------------------------------------
    # Facets
    # ------------------------------------------------------------------

    def attach_facet(self, identity: Identity, type_id: type, instance: Any) -> None:
        self._node(identity)["facets"][type_id] = instance

    def read_facet(self, identity: Identity, type_id: type) -> Optional[Any]:
        return self._node(identity)["facets"].get(type_id)

    def remove_facet(self, identity: Identity, type_id: type) -> None:
        self._node(identity)["facets"].pop(type_id, None)

    def facets(self, identity: Identity) -> Dict[type, Any]:
        return dict(self._node(identity)["facets"])

    def clear_facets(self, identity: Identity) -> None:
        self._node(identity)["facets"].clear()

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def children(self, identity: Identity) -> List[Identity]:
        return list(self._node(identity)["children"])

    def get_parent(self, identity: Identity) -> Optional[Identity]:
        self._node(identity)
        parents = list(self.graph.predecessors(identity))
        return parents[0] if parents else None

    def _detach(self, child: Identity) -> None:
        parent = self.get_parent(child)
        if parent is not None:
            self.graph.remove_edge(parent, child)
            self.graph.nodes[parent]["children"].remove(child)

    def append_child(self, parent: Identity, child: Identity) -> None:
        self.insert_child(parent, len(self._node(parent)["children"]), child)

    def insert_child(self, parent: Identity, index: int, child: Identity) -> None:
        self._node(child)
        self._detach(child)
        self._node(parent)["children"].insert(index, child)
        self.graph.add_edge(parent, child)

    def remove_subtree(self, identity: Identity) -> None:
        """Delete a node and every descendant."""
        self._detach(identity)
        doomed = [identity, *nx.descendants(self.graph, identity)]
        self.graph.remove_nodes_from(doomed)
        logger.debug(f"[ObjectStore] Removed {len(doomed)} node(s) under {identity}")

    def remove_children(self, identity: Identity) -> None:
        for child in self.children(identity):
            self.remove_subtree(child)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def nodes_with(self, type_id: type) -> List[Identity]:
        return sorted(n for n, data in self.graph.nodes(data=True) if type_id in data["facets"])

    def roots(self) -> List[Identity]:
        return sorted(n for n in self.graph.nodes if self.graph.in_degree(n) == 0)

    def walk(self, identity: Identity) -> Iterator[Identity]:
        """Depth-first, children in order."""
        yield identity
        for child in self.children(identity):
            yield from self.walk(child)

    def __contains__(self, identity: Identity) -> bool:
        return self.exists(identity)

    def __len__(self) -> int:
        return self.graph.number_of_nodes()

    def clear(self) -> None:
        self.graph.clear()
