"""Tests for receipt dialect tables and rules.json loading."""

import json
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from receipt_split.core.dialects import (
    BUILTIN_DIALECTS,
    CARD_TRANSACTION,
    FINNISH,
    LOYALTY_CARD,
    VAT_HEADER,
    ReceiptDialect,
    collect,
    footer_markers,
    load_dialects,
)
from receipt_split.core.parsers import parse_receipt


@pytest.fixture
def rules_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({
        "dialects": {
            "finnish": {"skip_patterns": ["^pantti"]},
            "swedish": {"total_markers": ["summa"], "skip_patterns": "^moms"},
        }
    }), encoding="utf-8")
    return path


class TestBuiltinDialects:
    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            BUILTIN_DIALECTS["custom"] = ReceiptDialect(name="custom")

    def test_dialects_are_frozen(self):
        with pytest.raises(FrozenInstanceError):
            FINNISH.name = "other"

    def test_collect_keeps_table_order(self):
        markers = list(collect(BUILTIN_DIALECTS, "footer_markers"))
        assert markers[0].startswith("alv")
        assert markers[-1].startswith("card")

    def test_footer_marker_priority_across_dialects(self):
        assert footer_markers(BUILTIN_DIALECTS) == [VAT_HEADER, CARD_TRANSACTION, LOYALTY_CARD]

    def test_rule_footer_markers_come_last(self):
        table = dict(BUILTIN_DIALECTS, swedish=ReceiptDialect(name="swedish", footer_markers=("moms",)))
        assert footer_markers(table)[-1] == "moms"

    def test_collect_skips_repeats(self):
        table = {
            "a": ReceiptDialect(name="a", currency_symbols=("€",)),
            "b": ReceiptDialect(name="b", currency_symbols=("€", "kr")),
        }
        assert list(collect(table, "currency_symbols")) == ["€", "kr"]


class TestExtend:
    def test_extend_appends_new_patterns(self):
        extra = ReceiptDialect(name="finnish", skip_patterns=("^pantti", "y-tunnus"))
        merged = FINNISH.extend(extra)
        assert merged.skip_patterns[-1] == "^pantti"
        assert merged.skip_patterns.count("y-tunnus") == 1
        assert "^pantti" not in FINNISH.skip_patterns


class TestLoadDialects:
    def test_missing_file_gives_builtin(self, tmp_path):
        assert load_dialects(tmp_path / "missing.json") is BUILTIN_DIALECTS

    def test_none_gives_builtin(self):
        assert load_dialects(None) is BUILTIN_DIALECTS

    def test_rules_extend_and_add(self, rules_file):
        table = load_dialects(rules_file)
        assert "^pantti" in table["finnish"].skip_patterns
        assert table["swedish"].total_markers == ("summa",)
        assert table["swedish"].skip_patterns == ("^moms",)
        assert "english" in table

    def test_rules_without_dialects_section(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text("{}", encoding="utf-8")
        assert dict(load_dialects(path)) == dict(BUILTIN_DIALECTS)

    def test_invalid_pattern_rejected(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"dialects": {"finnish": {"skip_patterns": ["^bonus("]}}}),
                        encoding="utf-8")
        with pytest.raises(ValueError, match=r"'finnish'.*'\^bonus\('.*skip_patterns"):
            load_dialects(path)

    def test_labels_are_not_regexes(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({"dialects": {"finnish": {"discount_labels": ["Etu(kortti)"]}}}),
                        encoding="utf-8")
        assert "Etu(kortti)" in load_dialects(path)["finnish"].discount_labels

    @pytest.mark.parametrize("content", [
        "[]",
        '{"dialects": ["finnish"]}',
        '{"dialects": {"finnish": ["^bonus"]}}',
    ])
    def test_malformed_rules_file(self, tmp_path, content):
        path = tmp_path / "rules.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ValueError, match="rules.json"):
            load_dialects(path)

    def test_loaded_dialects_change_parsing(self, rules_file):
        text = "Mjölk 1,29 €\nPantti 0,10 €\nSumma 1,39 €"
        assert len(parse_receipt(text)) == 3

        items = parse_receipt(text, load_dialects(Path(rules_file)))
        assert [item.name for item in items] == ["Mjölk"]
