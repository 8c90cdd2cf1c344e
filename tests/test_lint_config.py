"""Tests for docfmt.lint_config and vocabulary extension."""
from __future__ import annotations

from pathlib import Path

import pytest

from docfmt.field_extractor import extract_field
from docfmt.io_utils import save_json
from docfmt.line_classifier import LINE_SECTION_HEADING, classify
from docfmt.lint_config import (
    LintConfig,
    LintConfigError,
    lint_config_from_dict,
    lint_config_to_dict,
    load_lint_config,
)
from docfmt.property_types import POS_ARGUMENTS
from docfmt.vocabulary import DEFAULT_VOCABULARY


class TestDefaults:
    def test_default_values(self) -> None:
        cfg = LintConfig()
        assert cfg.ignored_names == ("id",)
        assert cfg.rules == ("S006", "S007")
        assert cfg.db_path == ""
        assert cfg.vocabulary() is DEFAULT_VOCABULARY

    def test_load_none(self) -> None:
        assert load_lint_config(None) == LintConfig()

    def test_round_trip_dict(self) -> None:
        payload = {
            "ignored_names": ["id", "resource_group_name"],
            "rules": ["S006"],
            "extra_headings": {"^data source arguments": "arguments"},
            "extra_value_phrases": ["one of the following"],
            "db_path": "lint_index/findings.duckdb",
        }
        assert lint_config_to_dict(lint_config_from_dict(payload)) == payload


class TestValidation:
    def test_not_an_object(self) -> None:
        with pytest.raises(LintConfigError):
            lint_config_from_dict(["S006"])

    def test_unknown_key(self) -> None:
        with pytest.raises(LintConfigError, match="ignore_names"):
            lint_config_from_dict({"ignore_names": ["id"]})

    def test_list_of_strings(self) -> None:
        with pytest.raises(LintConfigError, match="ignored_names"):
            lint_config_from_dict({"ignored_names": "id"})

    def test_unknown_rule(self) -> None:
        with pytest.raises(LintConfigError, match="S999"):
            lint_config_from_dict({"rules": ["S999"]})

    def test_bad_heading_regex(self) -> None:
        with pytest.raises(LintConfigError, match="not a valid regex"):
            lint_config_from_dict({"extra_headings": {"(unclosed": "arguments"}})

    def test_bad_position(self) -> None:
        with pytest.raises(LintConfigError, match="unknown position"):
            lint_config_from_dict({"extra_headings": {"^inputs": "inputs"}})

    def test_headings_must_be_mapping(self) -> None:
        with pytest.raises(LintConfigError):
            lint_config_from_dict({"extra_headings": ["^inputs"]})

    def test_db_path_type(self) -> None:
        with pytest.raises(LintConfigError, match="db_path"):
            lint_config_from_dict({"db_path": 3})

    def test_is_value_error(self) -> None:
        assert issubclass(LintConfigError, ValueError)


class TestVocabularyExtension:
    def test_extra_heading(self) -> None:
        cfg = lint_config_from_dict({"extra_headings": {"^data source arguments": "arguments"}})
        lc = classify("## Data Source Arguments", cfg.vocabulary())
        assert lc.kind == LINE_SECTION_HEADING
        assert lc.position == POS_ARGUMENTS
        assert classify("## Data Source Arguments").kind != LINE_SECTION_HEADING

    def test_extra_value_phrase(self) -> None:
        cfg = lint_config_from_dict({"extra_value_phrases": ["One of the following"]})
        line = "* `x` - (Optional) Use one of the following `a`, `b`."
        assert extract_field(line, vocab=cfg.vocabulary()).possible_values == ["a", "b"]
        assert extract_field(line).possible_values == []

    def test_extended_is_a_copy(self) -> None:
        vocab = DEFAULT_VOCABULARY.extended(value_phrases=("possible value", "new phrase"))
        assert vocab.value_phrases.count("possible value") == 1
        assert "new phrase" in vocab.value_phrases
        assert "new phrase" not in DEFAULT_VOCABULARY.value_phrases


class TestLoad:
    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "docfmt.json"
        save_json({"ignored_names": ["id", "tags"]}, path)
        assert load_lint_config(path).ignored_names == ("id", "tags")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_lint_config(tmp_path / "absent.json")
