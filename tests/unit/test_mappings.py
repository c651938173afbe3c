"""Tests for mappings/loader.py."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from securescore.core.errors import ConfigurationError
from securescore.core.normalizer import UrlNormalizer
from securescore.mappings.loader import (
    build_mapping_table,
    flatten_control_mappings,
    get_mapping_table,
    load_default_mappings,
    load_url_mappings,
)


class TestFlattenControlMappings:
    def test_flattens_categories(self):
        flat, dups = flatten_control_mappings({
            "Identity": {"A": "https://a"},
            "Data": {"B": "https://b"},
        })
        assert flat == {"A": "https://a", "B": "https://b"}
        assert dups == []

    def test_last_writer_wins_and_duplicate_reported(self):
        flat, dups = flatten_control_mappings({
            "Identity": {"A": "https://first"},
            "Apps": {"A": "https://second"},
        })
        assert flat["A"] == "https://second"
        assert dups == ["A"]

    def test_duplicates_differing_only_in_case(self):
        flat, dups = flatten_control_mappings({
            "Identity": {"Require MFA": "https://first"},
            "Apps": {"require mfa ": "https://second"},
        })
        assert flat == {"require mfa ": "https://second"}
        assert dups == ["require mfa "]

    def test_case_duplicate_resolves_to_later_url(self):
        table = build_mapping_table({"controlMappings": {
            "Identity": {"Require MFA": "https://first.example"},
            "Apps": {"require mfa": "https://second.example"},
        }})
        assert table.duplicate_keys == ("require mfa",)
        assert UrlNormalizer(table).exact_match("REQUIRE MFA") == "https://second.example"

    def test_comment_keys_ignored(self):
        flat, _ = flatten_control_mappings({"_comment": "notes", "Identity": {"A": "https://a"}})
        assert flat == {"A": "https://a"}

    def test_non_string_url_rejected(self):
        with pytest.raises(ConfigurationError):
            flatten_control_mappings({"Identity": {"A": 5}})


class TestBuildMappingTable:
    def test_sections(self, mapping_table):
        assert "Require MFA for admins" in mapping_table.control_mappings
        assert [r.name for r in mapping_table.fallback_rules] == ["defender", "purview", "catchAllPhishing"]
        assert mapping_table.url_replacements[0] == ("https://aad.portal.azure.com", "https://portal.azure.com")

    def test_missing_sections_are_empty(self):
        table = build_mapping_table({})
        assert table.control_mappings == {}
        assert table.fallback_rules == ()
        assert table.url_replacements == ()

    def test_rule_without_url_rejected(self):
        with pytest.raises(ConfigurationError, match="url"):
            build_mapping_table({"fallbackRules": {"broken": {"keywords": ["x"]}}})

    def test_section_must_be_object(self):
        with pytest.raises(ConfigurationError):
            build_mapping_table({"urlReplacements": ["a", "b"]})

    def test_string_keyword_accepted(self):
        table = build_mapping_table({"fallbackRules": {"r": {"keywords": "teams", "url": "https://t"}}})
        assert table.fallback_rules[0].keywords == ("teams",)

    def test_table_is_frozen(self, mapping_table):
        with pytest.raises(Exception):
            mapping_table.fallback_rules = ()


class TestLoadUrlMappings:
    def test_loads_file(self, mapping_file: Path):
        table = load_url_mappings(mapping_file)
        assert table.source == str(mapping_file)
        assert len(table.control_mappings) == 3

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_url_mappings(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Cannot parse"):
            load_url_mappings(path)

    def test_bom_tolerated(self, tmp_path: Path, mapping_document: dict):
        path = tmp_path / "bom.json"
        path.write_text(json.dumps(mapping_document), encoding="utf-8-sig")
        assert load_url_mappings(path).control_mappings

    def test_bundled_default(self):
        table = load_default_mappings()
        assert table.control_mappings
        assert table.fallback_rules
        assert table.duplicate_keys == ()

    def test_get_mapping_table_prefers_path(self, mapping_file: Path):
        assert get_mapping_table(mapping_file).source == str(mapping_file)
        assert get_mapping_table(None).source.startswith("<bundled")
