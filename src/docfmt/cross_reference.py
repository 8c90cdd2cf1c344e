"""Cross-check a schema PropertyTree against a documentation PropertyTree.

Schema and docs are written independently and drift both ways, so the
diff runs in two directions:

  A. schema -> docs: every user-settable schema field (Required or
     Optional, not deprecated) must be documented, and schema blocks must
     be documented as blocks. Matched blocks are compared recursively.
  B. docs -> schema: every documented field must exist in the schema,
     unless the docs mark it deprecated or "not available for" the
     current block.

Diagnostics come out in tree order (direction A first, then B) and carry
the dotted path plus the documentation line (0 when there is none). The
inputs are never modified.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from docfmt.line_classifier import first_code_value
from docfmt.property_types import Property, PropertyTree, requirement_label

MISSING_FROM_DOCS = "missing_from_docs"
SHOULD_BE_BLOCK = "should_be_block"
UNDOCUMENTED_IN_SCHEMA = "undocumented_in_schema"
REQUIREMENT_MISMATCH = "requirement_mismatch"

DEFAULT_IGNORED_NAMES: frozenset[str] = frozenset({"id"})

_NOT_AVAILABLE_FOR = "not available for"
_DEPRECATED = "deprecated"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One structural discrepancy between schema and docs."""

    kind: str
    path: str
    line: int
    message: str


def diagnostic_to_dict(d: Diagnostic) -> dict[str, Any]:
    return {"kind": d.kind, "path": d.path, "line": d.line, "message": d.message}


def _join(parent_path: str, name: str) -> str:
    return f"{parent_path}.{name}" if parent_path else name


# ---------------------------------------------------------------------------
# Direction A: schema -> docs
# ---------------------------------------------------------------------------

def _missing_in_docs(
    schema: PropertyTree,
    docs: PropertyTree,
    parent_path: str,
    ignored: frozenset[str],
    seen: frozenset[int],
) -> list[Diagnostic]:
    out: list[Diagnostic] = []
    for prop in schema:
        if not (prop.required or prop.optional):
            continue
        if prop.name in ignored or prop.deprecated:
            continue
        path = _join(parent_path, prop.name)

        doc_prop = docs.lookup(prop.name)
        if doc_prop is None:
            out.append(Diagnostic(
                MISSING_FROM_DOCS, path, 0,
                f"argument `{path}` exists in schema but is missing from documentation",
            ))
            continue

        if not prop.has_nested:
            continue
        if not doc_prop.has_nested:
            if not doc_prop.block:
                out.append(Diagnostic(
                    SHOULD_BE_BLOCK, path, doc_prop.line,
                    f"argument `{path}` should be declared as a block "
                    f"(e.g. 'One or more `{prop.name}` block as defined below') "
                    f"at line {doc_prop.line}",
                ))
            # a block reference without a body leaves nothing to compare
            continue

        nested = doc_prop.nested
        if prop.nested is None or nested is None or id(nested) in seen:
            continue
        out.extend(_missing_in_docs(prop.nested, nested, path, ignored, seen | {id(nested)}))
    return out


# ---------------------------------------------------------------------------
# Direction B: docs -> schema
# ---------------------------------------------------------------------------

def _not_available_here(doc_prop: Property, path: str) -> bool:
    """Docs say "not available for `x`" and `x` is part of the current path."""
    lower = doc_prop.content.lower()
    idx = lower.find(_NOT_AVAILABLE_FOR)
    if idx <= 0:
        return False
    code = first_code_value(doc_prop.content[idx:])
    return bool(code) and code in path


def _missing_in_schema(
    docs: PropertyTree,
    schema: PropertyTree,
    parent_path: str,
    ignored: frozenset[str],
    seen: frozenset[int],
) -> list[Diagnostic]:
    out: list[Diagnostic] = []
    for doc_prop in docs:
        if doc_prop.name in ignored:
            continue
        path = _join(parent_path, doc_prop.name)

        # block bodies are checked through the fields that reference them
        if not parent_path and doc_prop.is_definition:
            continue
        if _DEPRECATED in doc_prop.content.lower():
            continue

        schema_prop = schema.get(doc_prop.name)
        if schema_prop is None:
            if _not_available_here(doc_prop, path):
                continue
            out.append(Diagnostic(
                UNDOCUMENTED_IN_SCHEMA, path, doc_prop.line,
                f"argument `{path}` is documented at line {doc_prop.line} but does not "
                "exist in schema - should this be removed or is it misspelled?",
            ))
            continue

        if doc_prop.block:
            continue
        nested = doc_prop.nested
        if nested is None or schema_prop.nested is None or id(nested) in seen:
            continue
        if len(nested) and len(schema_prop.nested):
            out.extend(_missing_in_schema(
                nested, schema_prop.nested, path, ignored, seen | {id(nested)},
            ))
    return out


def validate(
    schema_tree: PropertyTree,
    doc_tree: PropertyTree,
    *,
    ignored_names: Iterable[str] = DEFAULT_IGNORED_NAMES,
) -> list[Diagnostic]:
    """Bidirectional structural diff. An empty list means consistent."""
    ignored = frozenset(ignored_names)
    root = frozenset({id(doc_tree)})
    return [
        *_missing_in_docs(schema_tree, doc_tree, "", ignored, root),
        *_missing_in_schema(doc_tree, schema_tree, "", ignored, root),
    ]


# ---------------------------------------------------------------------------
# Requirement flags
# ---------------------------------------------------------------------------

def _requirement_mismatches(
    schema: PropertyTree,
    docs: PropertyTree,
    parent_path: str,
    ignored: frozenset[str],
    seen: frozenset[int],
) -> list[Diagnostic]:
    out: list[Diagnostic] = []
    for prop in schema:
        if prop.name in ignored or prop.deprecated:
            continue
        doc_prop = docs.lookup(prop.name)
        if doc_prop is None:
            continue
        path = _join(parent_path, prop.name)

        # bare "Required"/"Optional" in prose is a guess; only markers count
        expected = ""
        if doc_prop.requirement_explicit:
            if prop.required and doc_prop.optional and not doc_prop.required:
                expected = "Required"
            elif prop.optional and not prop.required and doc_prop.required:
                expected = "Optional"
        if expected:
            out.append(Diagnostic(
                REQUIREMENT_MISMATCH, path, doc_prop.line,
                f"argument `{path}` should be marked as ({expected}) but is documented as "
                f"{requirement_label(doc_prop.requirement)} at line {doc_prop.line}",
            ))

        nested = doc_prop.nested
        if prop.nested is None or nested is None or id(nested) in seen:
            continue
        if len(prop.nested) and len(nested):
            out.extend(_requirement_mismatches(
                prop.nested, nested, path, ignored, seen | {id(nested)},
            ))
    return out


def check_requirements(
    schema_tree: PropertyTree,
    doc_tree: PropertyTree,
    *,
    ignored_names: Iterable[str] = DEFAULT_IGNORED_NAMES,
) -> list[Diagnostic]:
    """Documented (Required)/(Optional) markers that contradict the schema.

    Fields whose documented status is unknown are not reported here, and
    neither are fields whose status was only guessed from a bare
    "Required" or "Optional" in their description.
    """
    ignored = frozenset(ignored_names)
    return _requirement_mismatches(schema_tree, doc_tree, "", ignored, frozenset({id(doc_tree)}))
