"""Assemble a section's lines into an ordered PropertyTree.

Two passes:
    1. Scan. A small state machine (no block open / block open) walks the
       classified lines. Field lines go into the open block body, or into
       the root when no block is open. Block heads and separators commit
       the open body into the tree's definitions registry.
    2. Link. Every block reference with an empty nested tree is pointed at
       the definition of the same name (or block type name). The nested
       tree is shared, not copied, so several fields referencing one body
       see the same object. References inside block bodies are linked
       too, refusing any link that would make a block contain itself.

Bodies may be declared before or after the fields that reference them;
the result is the same. Nothing here raises on malformed input.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from docfmt.field_extractor import extract_field
from docfmt.line_classifier import (
    LINE_BLOCK_HEAD,
    LINE_FENCE,
    LINE_FIELD,
    LINE_SECTION_HEADING,
    LINE_SEPARATOR,
    classify,
)
from docfmt.property_types import (
    POS_ARGUMENTS,
    Property,
    PropertyTree,
)
from docfmt.vocabulary import DEFAULT_VOCABULARY, Vocabulary

log = logging.getLogger(__name__)

ERR_CIRCULAR = "circular block reference"


def _open_block(names: tuple[str, ...], block_of: str, position: str,
                line_number: int, content: str) -> Property:
    name = names[0]
    return Property(
        name=name,
        line=line_number,
        position=position,
        block=True,
        block_type_name=name,
        nested=PropertyTree(),
        parent=block_of if block_of and block_of != name else "",
        content=content,
        aliases=tuple(n for n in names[1:] if n != name),
        block_head=True,
    )


def scan_lines(
    lines: Iterable[str],
    position: str = POS_ARGUMENTS,
    *,
    first_line: int = 1,
    vocab: Vocabulary = DEFAULT_VOCABULARY,
) -> PropertyTree:
    """First pass only: build entries and the definitions registry."""
    tree = PropertyTree()
    current: Property | None = None
    in_fence = False

    def commit() -> None:
        nonlocal current
        if current is not None:
            tree.add_definition(current)
            current = None

    for offset, raw in enumerate(lines):
        line_number = first_line + offset
        lc = classify(raw, vocab)

        if lc.kind == LINE_FENCE:
            in_fence = not in_fence
            continue
        if in_fence:
            continue

        if lc.kind == LINE_SECTION_HEADING:
            commit()
            position = lc.position
        elif lc.kind == LINE_BLOCK_HEAD:
            commit()
            current = _open_block(lc.block_names, lc.block_of, position, line_number, lc.text)
        elif lc.kind == LINE_SEPARATOR:
            commit()
        elif lc.kind == LINE_FIELD:
            prop = extract_field(lc.text, line_number, position, vocab)
            if not prop.name:
                log.debug("line %d: %s", line_number, "; ".join(prop.parse_errors))
                continue
            if current is not None:
                current.add_nested(prop)
            else:
                tree.add(prop)
        # skippable and plain lines leave the state alone

    commit()
    return tree


def _contains_block_named(tree: PropertyTree, name: str, seen: set[int]) -> bool:
    if id(tree) in seen:
        return False
    seen.add(id(tree))
    for prop in tree:
        if prop.block and (prop.name == name or prop.block_type_name == name):
            return True
        if prop.nested is not None and _contains_block_named(prop.nested, name, seen):
            return True
    return False


def _link_entries(entries: PropertyTree, registry: PropertyTree,
                  container: Property | None) -> int:
    unresolved = 0
    for prop in entries:
        if not prop.block or prop.has_nested:
            continue
        definition = registry.find_definition(
            prop.name,
            prop.block_type_name,
            container=container.name if container is not None else "",
        )
        if definition is None:
            unresolved += 1
            log.debug("unresolved block reference `%s` (line %d)", prop.path, prop.line)
            continue
        if container is not None and (
            definition is container
            or _contains_block_named(definition.nested, container.name, set())  # type: ignore[arg-type]
        ):
            prop.parse_errors.append(
                f"{ERR_CIRCULAR}: `{prop.name}` inside `{container.name}`"
            )
            continue
        prop.nested = definition.nested
        prop.definition = definition
    return unresolved


def link_references(tree: PropertyTree) -> int:
    """Second pass: attach block bodies to references. Returns unresolved count."""
    unresolved = _link_entries(tree, tree, None)
    for definition in list(tree.definitions.values()):
        if definition.nested is not None:
            unresolved += _link_entries(definition.nested, tree, definition)
    return unresolved


def build_property_tree(
    lines: Iterable[str],
    position: str = POS_ARGUMENTS,
    *,
    first_line: int = 1,
    vocab: Vocabulary = DEFAULT_VOCABULARY,
) -> PropertyTree:
    """Scan + link. Pure: the same lines always give an equivalent tree."""
    tree = scan_lines(lines, position, first_line=first_line, vocab=vocab)
    unresolved = link_references(tree)
    if unresolved:
        log.debug("%d block reference(s) left without a body", unresolved)
    cycle = tree.circular_reference()
    if cycle:
        log.warning("block `%s` is nested inside itself", cycle)
    return tree
