"""
livescene/scene/assembler.py
The Scene Assembler.

Turns an ElementNode tree into facets attached to identities in the object
store.

LOGIC:
1. stage(): walk the element tree and build a StagedNode tree holding the
   constructed facets, names and children. Nothing touches the store, so any
   failure leaves the graph as it was.
2. commit(): write a staged tree into the store, rooted at an identity,
   creating one new identity per child element.

Per element, the attribute sequence is the synthetic `(tag, None)` entry
followed by the declared attributes. The placeholder attribute (`x`) supplies
the value of the synthetic entry; the null tag (`Entity`) and the text-style
attribute never reach the type registry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from livescene.base.events import SceneEventType
from livescene.document.model import ElementNode, SceneDocument
from livescene.errors import TemplateRecursion, UnknownTag, UnknownType
from livescene.notation.deserializer import AttributeValueDeserializer
from livescene.registry.builtins import Text, TextStyle

logger = logging.getLogger(__name__)


@dataclass
class StagedNode:
    """A fully constructed element, not yet written to the store."""
    tag: str
    facets: Dict[type, Any] = field(default_factory=dict)
    names: List[str] = field(default_factory=list)
    children: List["StagedNode"] = field(default_factory=list)

    def count(self) -> int:
        return 1 + sum(child.count() for child in self.children)


@dataclass
class _ElementState:
    # Text style accumulated by the text-style attribute
    style: Optional[TextStyle] = None


class SceneAssembler:
    def __init__(self, context: Any):
        self.context = context
        self.config = context.config.assembly
        self.deserializer = AttributeValueDeserializer(context)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def assemble(self, element: ElementNode, target: int) -> int:
        """
        Assemble `element` onto the existing identity `target`.

        Any failure aborts the whole element tree before the store is touched.
        """
        staged = self.stage(element)
        self.commit(staged, target)
        return target

    def assemble_document(self, document: SceneDocument, target: Optional[int] = None) -> int:
        """Assemble a document's root, onto `target` or onto a new identity."""
        staged = self.stage(document.root)
        if target is None:
            target = self.context.store.create_identity()
        self.commit(staged, target)
        logger.info(f"[Assembler] Assembled {document.source} into {target} ({staged.count()} node(s))")
        self.context.events.emit(
            SceneEventType.DOCUMENT_ASSEMBLED,
            {"source": document.source, "identity": target, "nodes": staged.count()},
        )
        return target

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def stage(self, element: ElementNode) -> StagedNode:
        node = StagedNode(tag=element.tag)
        state = _ElementState()
        self._apply_attributes(element, node, state, depth=0)

        if element.id is not None:
            node.names.append(element.id)

        if not element.children and element.text:
            node.facets[Text] = Text(value=element.text, style=state.style or TextStyle())

        for child in element.children:
            node.children.append(self.stage(child))
        return node

    def attribute_sequence(self, element: ElementNode) -> List[Tuple[str, Optional[str]]]:
        """`(tag, None)` then the declared attributes, with the placeholder folded into the first entry."""
        entries: List[Tuple[str, Optional[str]]] = [(element.tag, None)]
        for name, value in element.attributes:
            if name == self.config.placeholder_attribute:
                entries[0] = (element.tag, value)
            else:
                entries.append((name, value))
        return entries

    def _apply_attributes(self, element: ElementNode, node: StagedNode, state: _ElementState, depth: int) -> None:
        for position, (name, value) in enumerate(self.attribute_sequence(element)):
            if name == self.config.null_tag:
                continue
            if name == self.config.text_style_attribute:
                descriptor = self.context.types.lookup(name)
                state.style = self.deserializer.construct(descriptor, value, name, base=state.style)
                continue

            try:
                descriptor = self.context.types.lookup_attribute(name)
            except UnknownType:
                if position == 0:
                    raise UnknownTag(name) from None
                raise

            instance = self.deserializer.construct(descriptor, value, name)

            if descriptor.is_template:
                if depth >= self.config.max_template_depth:
                    raise TemplateRecursion(descriptor.name, depth)
                expansion = descriptor.template(instance)
                logger.debug(f"[Assembler] <{element.tag}>: inlining template {descriptor.name}")
                self._apply_attributes(expansion.root, node, state, depth + 1)
                continue

            node.facets[descriptor.type_id] = instance
            logger.debug(f"[Assembler] <{element.tag}>: {descriptor.name} attached")

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(self, staged: StagedNode, identity: int) -> None:
        store = self.context.store
        for type_id, instance in staged.facets.items():
            store.attach_facet(identity, type_id, instance)
        for name in staged.names:
            self.context.names.register(name, identity)
        self.context.materialized.add(identity)

        for child in staged.children:
            child_identity = store.create_identity()
            store.append_child(identity, child_identity)
            self.commit(child, child_identity)
