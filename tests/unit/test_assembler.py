"""
tests/unit/test_assembler.py
Element trees to facets: reserved attributes, templates, names, text,
children and the abort-the-whole-document failure policy.
"""
import pytest
from pydantic import BaseModel

from livescene.base.config import AssemblyConfig, SceneConfig
from livescene.base.context import SceneContext
from livescene.base.events import SceneEventType
from livescene.document.loader import DocumentHandle
from livescene.document.parser import parse_document
from livescene.errors import DeserializationFailed, TemplateRecursion, UnknownTag, UnknownType
from livescene.registry.builtins import Interaction, Text, TextStyle, XFunction, XOn, TriggerKind
from livescene.registry.descriptors import describe_model
from livescene.scene.assembler import SceneAssembler


class Counter(BaseModel):
    count: int = 0
    step: int = 1


class Loop(BaseModel):
    pass


@pytest.fixture
def ctx():
    context = SceneContext.create(SceneConfig())
    context.types.register(describe_model(Counter))
    return context


@pytest.fixture
def assembler(ctx):
    return SceneAssembler(ctx)


def assemble(assembler, markup):
    return assembler.assemble_document(parse_document(markup))


# ---------------------------------------------------------------------------
# Tags and attributes
# ---------------------------------------------------------------------------

def test_unregistered_tag(ctx, assembler):
    with pytest.raises(UnknownTag) as exc:
        assemble(assembler, "<Row></Row>")
    assert exc.value.name == "Row"
    assert len(ctx.store) == 0


def test_unregistered_attribute(ctx, assembler):
    with pytest.raises(UnknownType) as exc:
        assemble(assembler, "<Entity Row></Entity>")
    assert not isinstance(exc.value, UnknownTag)
    assert exc.value.name == "Row"


def test_placeholder_sets_the_tag_value(ctx, assembler):
    identity = assemble(assembler, '<Counter x="count: 3"></Counter>')
    assert ctx.store.facets(identity) == {Counter: Counter(count=3)}


def test_bare_tag_uses_default(ctx, assembler):
    identity = assemble(assembler, "<Counter></Counter>")
    assert ctx.store.read_facet(identity, Counter) == Counter()


def test_null_tag_attaches_nothing(ctx, assembler):
    identity = assemble(assembler, "<Entity></Entity>")
    assert ctx.store.facets(identity) == {}


def test_attributes_in_document_order(ctx, assembler):
    identity = assemble(
        assembler,
        '<Entity Counter="count: 1" XFunction="increment" XOn="Tick" Counter="count: 2"></Entity>',
    )
    facets = ctx.store.facets(identity)
    # Later facet of the same type overwrites the earlier one
    assert facets[Counter] == Counter(count=2)
    assert facets[XFunction] == XFunction(name="increment")
    assert facets[XOn] == XOn(kind=TriggerKind.TICK)


def test_identifier_registered(ctx, assembler):
    identity = assemble(assembler, '<Entity id="title"><Entity id="body"></Entity></Entity>')
    assert ctx.names.lookup("title") == identity
    assert ctx.names.lookup("body") == ctx.store.children(identity)[0]


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

def test_text_with_accumulated_style(ctx, assembler):
    identity = assemble(
        assembler,
        '<Entity TextStyle="size: 30" TextStyle="color: &quot;red&quot;">Hello</Entity>',
    )
    facets = ctx.store.facets(identity)
    assert TextStyle not in facets
    assert facets[Text] == Text(value="Hello", style=TextStyle(size=30.0, color="red"))


def test_text_default_style(ctx, assembler):
    identity = assemble(assembler, "<Entity>Hi</Entity>")
    assert ctx.store.read_facet(identity, Text) == Text(value="Hi")


def test_no_text_facet_when_element_has_children(ctx, assembler):
    identity = assemble(assembler, "<Entity>Label<Counter></Counter></Entity>")
    assert ctx.store.read_facet(identity, Text) is None


# ---------------------------------------------------------------------------
# Children
# ---------------------------------------------------------------------------

def test_children_in_document_order(ctx, assembler):
    identity = assemble(
        assembler,
        '<Entity><Counter x="count: 1"></Counter><Counter x="count: 2"></Counter><Entity>three</Entity></Entity>',
    )
    children = ctx.store.children(identity)
    assert len(children) == 3
    assert ctx.store.read_facet(children[0], Counter).count == 1
    assert ctx.store.read_facet(children[1], Counter).count == 2
    assert ctx.store.read_facet(children[2], Text).value == "three"
    assert all(ctx.store.get_parent(c) == identity for c in children)
    assert ctx.materialized == {identity, *children}


def test_assemble_onto_existing_identity(ctx, assembler):
    target = ctx.store.create_identity()
    ctx.store.attach_facet(target, int, 9)
    assembler.assemble(parse_document('<Counter x="count: 5"></Counter>').root, target)
    assert ctx.store.facets(target) == {int: 9, Counter: Counter(count=5)}


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def test_template_matches_written_out_expansion(ctx, assembler):
    expanded = assemble(assembler, '<Counter x="count: 1" Button XFunction="increment"></Counter>')
    written = assemble(assembler, '<Counter x="count: 1" Interaction="None" XFunction="increment"></Counter>')
    assert ctx.store.facets(expanded) == ctx.store.facets(written)
    assert ctx.store.read_facet(expanded, Interaction) is Interaction.NONE
    assert ctx.store.children(expanded) == []


def test_self_expanding_template(ctx, assembler):
    ctx.types.register(describe_model(Loop, template=lambda _: parse_document("<Entity Loop></Entity>")))
    with pytest.raises(TemplateRecursion) as exc:
        assemble(assembler, "<Entity Loop></Entity>")
    assert exc.value.depth == ctx.config.assembly.max_template_depth


def test_template_depth_is_configurable():
    context = SceneContext.create(SceneConfig(assembly=AssemblyConfig(max_template_depth=2)))
    context.types.register(describe_model(Loop, template=lambda _: parse_document("<Entity Loop></Entity>")))
    with pytest.raises(TemplateRecursion) as exc:
        SceneAssembler(context).assemble_document(parse_document("<Loop></Loop>"))
    assert exc.value.depth == 2


# ---------------------------------------------------------------------------
# Failure policy
# ---------------------------------------------------------------------------

def test_failure_aborts_the_whole_document(ctx, assembler):
    markup = (
        '<Entity id="root">'
        '<Counter id="first" x="count: 1"></Counter>'
        '<Entity><Counter x="count: nope"></Counter></Entity>'
        "</Entity>"
    )
    with pytest.raises(DeserializationFailed):
        assemble(assembler, markup)
    assert len(ctx.store) == 0
    assert ctx.names.lookup("root") is None
    assert ctx.names.lookup("first") is None
    assert ctx.materialized == set()


def test_failure_leaves_existing_target_untouched(ctx, assembler):
    target = ctx.store.create_identity()
    ctx.store.attach_facet(target, Counter, Counter(count=7))
    with pytest.raises(UnknownTag):
        assembler.assemble(parse_document("<Entity><Row></Row></Entity>").root, target)
    assert ctx.store.facets(target) == {Counter: Counter(count=7)}
    assert ctx.store.children(target) == []


def test_assembled_event(ctx, assembler):
    seen = []
    ctx.events.subscribe(seen.append)
    identity = assemble(assembler, "<Entity><Entity></Entity></Entity>")
    assert [e.type for e in seen] == [SceneEventType.DOCUMENT_ASSEMBLED]
    assert seen[0].payload["identity"] == identity
    assert seen[0].payload["nodes"] == 2


# ---------------------------------------------------------------------------
# Resource references
# ---------------------------------------------------------------------------

def test_document_handle_attribute(ctx, assembler, tmp_path):
    part = tmp_path / "part.html"
    part.write_text('<Counter x="count: 2"></Counter>', encoding="utf-8")
    identity = assemble(assembler, f'<Entity><Entity Handle:SceneDocument="{part}"></Entity></Entity>')
    child = ctx.store.children(identity)[0]
    handle = ctx.store.read_facet(child, DocumentHandle)
    assert handle.key == str(part.resolve())
    assert ctx.documents.get(handle).root.tag == "Counter"
