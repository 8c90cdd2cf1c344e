"""Lint configuration loaded from a JSON file.

Example ``docfmt.json``::

    {
      "ignored_names": ["id", "resource_group_name"],
      "rules": ["S006"],
      "extra_headings": {"^data source arguments": "arguments"},
      "extra_value_phrases": ["one of the following"],
      "db_path": "lint_index/findings.duckdb"
    }

Every key is optional; missing keys keep the defaults.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from docfmt.io_utils import load_json
from docfmt.property_types import POSITIONS
from docfmt.rules import RULES, RULES_BY_ID
from docfmt.vocabulary import DEFAULT_VOCABULARY, Vocabulary


class LintConfigError(ValueError):
    """Raised when a lint config file is malformed."""


_KNOWN_KEYS = frozenset({
    "ignored_names", "rules", "extra_headings", "extra_value_phrases", "db_path",
})


@dataclass(frozen=True, slots=True)
class LintConfig:
    ignored_names: tuple[str, ...] = ("id",)
    rules: tuple[str, ...] = tuple(r.rule_id for r in RULES)
    extra_headings: tuple[tuple[str, str], ...] = ()
    extra_value_phrases: tuple[str, ...] = ()
    db_path: str = ""
    _vocab: Vocabulary = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        vocab = DEFAULT_VOCABULARY
        if self.extra_headings or self.extra_value_phrases:
            vocab = vocab.extended(
                headings=self.extra_headings,
                value_phrases=self.extra_value_phrases,
            )
        object.__setattr__(self, "_vocab", vocab)

    def vocabulary(self) -> Vocabulary:
        return self._vocab


def lint_config_to_dict(cfg: LintConfig) -> dict[str, Any]:
    return {
        "ignored_names": list(cfg.ignored_names),
        "rules": list(cfg.rules),
        "extra_headings": dict(cfg.extra_headings),
        "extra_value_phrases": list(cfg.extra_value_phrases),
        "db_path": cfg.db_path,
    }


def _str_list(payload: dict[str, Any], key: str) -> tuple[str, ...] | None:
    if key not in payload:
        return None
    value = payload[key]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise LintConfigError(f"`{key}` must be a list of strings")
    return tuple(value)


def lint_config_from_dict(payload: Any) -> LintConfig:
    if not isinstance(payload, dict):
        raise LintConfigError("lint config must be a JSON object")
    unknown = sorted(set(payload) - _KNOWN_KEYS)
    if unknown:
        raise LintConfigError(f"unknown lint config key(s): {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for key in ("ignored_names", "rules", "extra_value_phrases"):
        values = _str_list(payload, key)
        if values is not None:
            kwargs[key] = values

    bad_rules = [r for r in kwargs.get("rules", ()) if r not in RULES_BY_ID]
    if bad_rules:
        raise LintConfigError(f"unknown rule id(s): {', '.join(bad_rules)}")

    headings = payload.get("extra_headings", {})
    if not isinstance(headings, dict):
        raise LintConfigError("`extra_headings` must map heading regex to position")
    for pattern, position in headings.items():
        try:
            re.compile(pattern)
        except re.error as exc:
            raise LintConfigError(f"heading pattern `{pattern}` is not a valid regex: {exc}") from exc
        if position not in POSITIONS:
            raise LintConfigError(
                f"heading `{pattern}` maps to unknown position `{position}`"
            )
    kwargs["extra_headings"] = tuple(headings.items())

    db_path = payload.get("db_path", "")
    if not isinstance(db_path, str):
        raise LintConfigError("`db_path` must be a string")
    kwargs["db_path"] = db_path

    return LintConfig(**kwargs)


def load_lint_config(path: Path | None) -> LintConfig:
    """Read *path*; ``None`` gives the defaults."""
    if path is None:
        return LintConfig()
    return lint_config_from_dict(load_json(path))
