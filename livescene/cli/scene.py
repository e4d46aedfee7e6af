"""
livescene CLI: check and inspect scene documents.

Usage examples:
    livescene check ui/counter.html
    livescene tree ui/counter.html
    python -m livescene.cli.scene tree ui/counter.html
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple

from livescene.base.config import get_config, set_config, setup_logging
from livescene.base.context import SceneContext
from livescene.errors import SceneError
from livescene.registry.builtins import Text
from livescene.scene.runtime import SceneRuntime


def _assemble(path: str) -> Tuple[SceneRuntime, int]:
    runtime = SceneRuntime(SceneContext.create(get_config()))
    root = runtime.load(Path(path).resolve())
    runtime.assemble_pending()
    return runtime, root


def _render(runtime: SceneRuntime, identity: int, depth: int = 0) -> List[str]:
    context = runtime.context
    store = context.store
    facets = store.facets(identity)
    labels = sorted(context.types.name_of(type_id) for type_id in facets)
    line = f"{'  ' * depth}[{identity}] {', '.join(labels) or '-'}"
    names = context.names.names_of(identity)
    if names:
        line += f"  #{' #'.join(names)}"
    text = facets.get(Text)
    if text is not None and text.value:
        line += f"  {text.value!r}"
    lines = [line]
    for child in store.children(identity):
        lines.extend(_render(runtime, child, depth + 1))
    return lines


def cmd_check(args) -> int:
    try:
        runtime, root = _assemble(args.file)
    except SceneError as e:
        print(f"✗ {args.file}: {e}", file=sys.stderr)
        return 1
    if runtime.failures:
        for failure in runtime.failures:
            print(f"✗ {args.file}: {failure}", file=sys.stderr)
        return 1
    print(f"✓ {args.file}: {len(runtime.context.store)} node(s)")
    return 0


def cmd_tree(args) -> int:
    try:
        runtime, root = _assemble(args.file)
    except SceneError as e:
        print(f"✗ {args.file}: {e}", file=sys.stderr)
        return 1
    for line in _render(runtime, root):
        print(line)
    for failure in runtime.failures:
        print(f"✗ {failure}", file=sys.stderr)
    return 1 if runtime.failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="livescene", description="Scene document tools")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Parse and assemble a document, report errors")
    check.add_argument("file")
    check.set_defaults(func=cmd_check)

    tree = sub.add_parser("tree", help="Print the assembled node tree")
    tree.add_argument("file")
    tree.set_defaults(func=cmd_tree)

    args = parser.parse_args(argv)
    config = get_config()
    if args.debug:
        config = replace(config, debug=True)
        set_config(config)
    setup_logging(config)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
