#!/usr/bin/env python3
"""Cross-check one resource document against its schema dump.

Usage:
    python3 scripts/doc_lint.py --doc website/docs/r/storage_account.html.markdown \
      --schema schema_dumps/azurerm_storage_account.json --verbose

    # persist findings for later querying
    python3 scripts/doc_lint.py --doc ... --schema ... --db lint_index/findings.duckdb

Structured JSON output goes to stdout; human messages go to stderr.
Exit status: 0 clean, 1 findings reported, 2 bad input.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from docfmt.document import MarkdownDocument
from docfmt.finding_store import FindingStore, SchemaVersionError
from docfmt.io_utils import write_json_stdout
from docfmt.lint_config import lint_config_to_dict, load_lint_config
from docfmt.property_types import PropertyTree, tree_to_dict
from docfmt.rules import Finding, finding_to_dict, run_rules
from docfmt.schema_tree import load_schema_tree

log = logging.getLogger("doc_lint")


def resource_name_from_doc(path: Path, provider: str) -> str:
    """``storage_account.html.markdown`` -> ``azurerm_storage_account``."""
    short = path.name.split(".", 1)[0]
    return f"{provider}_{short}" if provider else short


def collect_parse_errors(tree: PropertyTree) -> list[dict[str, Any]]:
    """Parse errors from entries and block bodies, in document line order."""
    out: list[dict[str, Any]] = []
    seen: set[int] = set()

    def walk(t: PropertyTree, prefix: str) -> None:
        if id(t) in seen:
            return
        seen.add(id(t))
        for prop in t:
            path = f"{prefix}.{prop.name}" if prefix else prop.name
            if prop.parse_errors:
                out.append({"path": path, "line": prop.line, "errors": list(prop.parse_errors)})
            if prop.nested is not None and prop.definition is None:
                walk(prop.nested, path)

    walk(tree, "")
    for definition in tree.definitions.values():
        if definition.parse_errors:
            out.append({
                "path": definition.path,
                "line": definition.line,
                "errors": list(definition.parse_errors),
            })
        if definition.nested is not None:
            walk(definition.nested, definition.path)
    out.sort(key=lambda e: (e["line"], e["path"]))
    return out


def run(args: argparse.Namespace) -> int:
    try:
        cfg = load_lint_config(Path(args.config) if args.config else None)
        schema = load_schema_tree(Path(args.schema))
    except ValueError as exc:  # LintConfigError, SchemaFormatError, malformed JSON
        log.error("%s", exc)
        return 2
    except FileNotFoundError as exc:
        log.error("file not found: %s", exc.filename)
        return 2

    doc_path = Path(args.doc)
    if not doc_path.exists():
        log.error("document not found: %s", doc_path)
        return 2
    doc = MarkdownDocument.from_path(doc_path, vocab=cfg.vocabulary())
    resource = args.resource or resource_name_from_doc(doc_path, args.provider)

    arguments = doc.arguments()
    linked = doc.link_same_names()
    log.info("%s: %d argument(s), %d attribute(s), %d shared name(s)",
             resource, len(arguments), len(doc.attributes()), linked)

    if args.data_source:
        # data source pages document a different argument shape
        log.info("%s is a data source; schema rules skipped", resource)
        findings: list[Finding] = []
    else:
        findings = run_rules(
            schema,
            arguments,
            rule_ids=list(cfg.rules),
            ignored_names=cfg.ignored_names,
        )
    for f in findings:
        log.warning("%s", f.render())

    db_path = args.db or cfg.db_path
    run_id = ""
    if db_path:
        try:
            with FindingStore(db_path, create_if_missing=True) as store:
                run_id = store.start_run(lint_config_to_dict(cfg))
                store.record_findings(run_id, resource, findings)
        except SchemaVersionError as exc:
            log.error("%s", exc)
            return 2
        log.info("stored %d finding(s) in %s (run %s)", len(findings), db_path, run_id)

    counts: dict[str, int] = {}
    for f in findings:
        counts[f.rule_id] = counts.get(f.rule_id, 0) + 1

    payload: dict[str, Any] = {
        "resource": resource,
        "doc": str(doc_path),
        "run_id": run_id,
        "counts": counts,
        "findings": [finding_to_dict(f) for f in findings],
        "parse_errors": collect_parse_errors(arguments),
    }
    if args.dump_tree:
        payload["trees"] = {
            "arguments": tree_to_dict(arguments),
            "attributes": tree_to_dict(doc.attributes()),
            "timeouts": tree_to_dict(doc.timeouts()),
        }
    write_json_stdout(payload)
    return 1 if findings else 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Cross-check a resource document against its provider schema dump.",
    )
    parser.add_argument("--doc", required=True, help="Path to the resource markdown document")
    parser.add_argument("--schema", required=True, help="Path to the schema dump JSON")
    parser.add_argument("--config", default=None, help="Optional lint config JSON")
    parser.add_argument(
        "--db",
        default=None,
        help="Optional findings DuckDB path (overrides db_path from config)",
    )
    parser.add_argument("--resource", default=None, help="Resource name (default: from doc file name)")
    parser.add_argument("--provider", default="azurerm", help="Provider prefix for derived resource names")
    parser.add_argument(
        "--data-source",
        action="store_true",
        help="Document is a data source page; schema rules are skipped.",
    )
    parser.add_argument(
        "--dump-tree",
        action="store_true",
        help="Include the parsed argument/attribute/timeout trees in the output.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
