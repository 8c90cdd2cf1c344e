"""Rule registry: named checks over (schema tree, argument tree) pairs.

Each rule wraps one diagnostic producer and stamps its findings with a
stable id so reports and stored runs can be filtered by rule.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from docfmt.cross_reference import (
    DEFAULT_IGNORED_NAMES,
    Diagnostic,
    check_requirements,
    validate,
)
from docfmt.property_types import PropertyTree

CheckFn: TypeAlias = Callable[..., list[Diagnostic]]


@dataclass(frozen=True, slots=True)
class Rule:
    rule_id: str
    name: str
    description: str
    check: CheckFn


@dataclass(frozen=True, slots=True)
class Finding:
    """A diagnostic attributed to the rule that produced it."""

    rule_id: str
    rule_name: str
    kind: str
    path: str
    line: int
    message: str

    def render(self) -> str:
        return f"{self.rule_id} - {self.rule_name}: {self.message}"


RULES: tuple[Rule, ...] = (
    Rule(
        rule_id="S006",
        name="Arguments Exist in Document",
        description=(
            "Determines whether all arguments defined in schema are documented, "
            "and checks for missing/misspelled properties"
        ),
        check=validate,
    ),
    Rule(
        rule_id="S007",
        name="Argument Requirement Matches Schema",
        description=(
            "Checks that documented (Required)/(Optional) markers agree with "
            "the schema"
        ),
        check=check_requirements,
    ),
)

RULES_BY_ID: dict[str, Rule] = {r.rule_id: r for r in RULES}


def select_rules(rule_ids: Sequence[str] | None = None) -> list[Rule]:
    """Rules in registry order; unknown ids raise KeyError."""
    if rule_ids is None:
        return list(RULES)
    unknown = [rid for rid in rule_ids if rid not in RULES_BY_ID]
    if unknown:
        raise KeyError(f"unknown rule id(s): {', '.join(unknown)}")
    wanted = set(rule_ids)
    return [r for r in RULES if r.rule_id in wanted]


def run_rules(
    schema_tree: PropertyTree,
    doc_tree: PropertyTree,
    *,
    rule_ids: Sequence[str] | None = None,
    ignored_names: Iterable[str] = DEFAULT_IGNORED_NAMES,
) -> list[Finding]:
    ignored = frozenset(ignored_names)
    findings: list[Finding] = []
    for rule in select_rules(rule_ids):
        for d in rule.check(schema_tree, doc_tree, ignored_names=ignored):
            findings.append(Finding(
                rule_id=rule.rule_id,
                rule_name=rule.name,
                kind=d.kind,
                path=d.path,
                line=d.line,
                message=d.message,
            ))
    return findings


def finding_to_dict(f: Finding) -> dict[str, Any]:
    return {
        "rule_id": f.rule_id,
        "rule_name": f.rule_name,
        "kind": f.kind,
        "path": f.path,
        "line": f.line,
        "message": f.message,
    }
