"""Tests for receipt line-item parsing."""

import re
import time
from decimal import Decimal

import pytest

from receipt_split.core import parsers
from receipt_split.core.dialects import BUILTIN_DIALECTS, ReceiptDialect
from receipt_split.core.parsers import (
    clean_item_name,
    is_noise,
    parse_currency_items,
    parse_discount_breakdown,
    parse_fixed_width_items,
    parse_noisy_lines,
    parse_receipt,
    placeholder_items,
    split_sections,
)

ONLINE_RECEIPT = """Tuotteet Kuvaus määrä yhteensä Maito 1 kpl 1,29 €
Ruisleipä 500 g 2,49 €
Banaani 0,85 kg 1,52 €
Ruisleipä 500 g 2,49 €
Alennus kampanja -0,50 €
ALV veroton vero verollinen
14 % 4,88 0,68 5,56
"""

REGISTER_RECEIPT = """K-MARKET ESPOO
MAITO 1L      1,29
LEIPÄ         2,49
PANTTI        0,15
YHTEENSÄ      3,93
KORTTI: VISA
"""

NOISY_RECEIPT = """K009 M065146 12:31
JAUHELIHA 400G 1 kpl x 4,99 4,99
~~ BANAANI* 0,25 kg 0,50
Pullopantti 0,05
Puh. 09 1234 12,00
"""

DISCOUNT_RECEIPT = """Maito 1,29 €
Juusto 4,99 €
Plussasetti -0,50 € Juusto 1
Tasaerä -0,20 € Maito 1
"""


def names(items):
    return [item.name for item in items]


class TestParseReceipt:
    def test_empty_string(self):
        assert parse_receipt("") == []

    def test_whitespace_only(self):
        assert parse_receipt("  \n\n \t") == []

    def test_total_line_excluded(self):
        items = parse_receipt("Apple 2,50 €\nYhteensä 2,50 €")
        assert len(items) == 1
        assert items[0].name == "Apple"
        assert items[0].price == Decimal("2.50")

    def test_identical_lines_deduplicated(self):
        items = parse_receipt("Coffee 3,00 €\nCoffee 3,00 €\n")
        assert len(items) == 1

    def test_same_name_different_price_kept(self):
        items = parse_receipt("Coffee 3,00 €\nCoffee 3,50 €\n")
        assert [item.price for item in items] == [Decimal("3.00"), Decimal("3.50")]

    def test_online_receipt(self):
        items = parse_receipt(ONLINE_RECEIPT)
        assert names(items) == ["Maito", "Ruisleipä", "Banaani", "Alennus kampanja"]
        assert items[0].price == Decimal("1.29")
        assert items[-1].price == Decimal("-0.50")

    def test_register_receipt_uses_fixed_width(self):
        items = parse_receipt(REGISTER_RECEIPT)
        assert names(items) == ["MAITO 1L", "LEIPÄ", "PANTTI"]
        assert items[2].price == Decimal("0.15")

    def test_noisy_receipt_uses_last_price_on_line(self):
        items = parse_receipt(NOISY_RECEIPT)
        assert len(items) == 2
        assert items[0].name.startswith("JAUHELIHA")
        assert items[0].price == Decimal("4.99")
        assert items[1].name == "BANAANI 0,25 kg"
        assert items[1].price == Decimal("0.50")

    def test_discount_breakdown_added(self):
        items = parse_receipt(DISCOUNT_RECEIPT)
        assert names(items) == ["Maito", "Juusto", "Juusto Plussasetti", "Maito Tasaerä"]
        assert items[2].price == Decimal("-0.50")
        assert items[3].price == Decimal("-0.20")

    def test_short_negative_name_rejected(self):
        items = parse_receipt("Ale -1,00 €\nMaito 1,29 €")
        assert names(items) == ["Maito"]

    def test_zero_price_dropped(self):
        items = parse_receipt("Lahjakortti 0,00 €\nMaito 1,29 €")
        assert names(items) == ["Maito"]

    def test_receipt_number_line_rejected(self):
        items = parse_receipt("Kuittinumero 12345 1,00 €\nMaito 1,29 €")
        assert names(items) == ["Maito"]

    def test_crlf_line_endings(self):
        items = parse_receipt("MAITO 1L      1,29\r\nLEIPÄ         2,49\r\n")
        assert names(items) == ["MAITO 1L", "LEIPÄ"]

    def test_ids_unique(self):
        items = parse_receipt(ONLINE_RECEIPT)
        assert len({item.id for item in items}) == len(items)

    @pytest.mark.parametrize("text", [
        ONLINE_RECEIPT, REGISTER_RECEIPT, NOISY_RECEIPT, DISCOUNT_RECEIPT,
        "Coffee 3,00 €\nCoffee 3,00 €\nCoffee 3,00 €",
        "€€€ 0,00 € --- ,,, 12:00 \n\n\x00",
        "a" * 5000 + " 1,00 €",
    ])
    def test_output_invariants(self, text):
        items = parse_receipt(text)
        keys = [(item.name, item.price) for item in items]
        assert len(keys) == len(set(keys))
        assert all(item.price != 0 for item in items)
        assert all(item.price == item.price.quantize(Decimal("0.01")) for item in items)


class TestPassFailures:
    def test_failing_pass_is_skipped(self, monkeypatch):
        def broken(section, seen, dialects):
            raise re.error("broken pattern")

        monkeypatch.setattr(parsers, "FALLBACK_PASSES", (broken, parse_currency_items))
        items = parse_receipt("Maito 1,29 €")
        assert names(items) == ["Maito"]

    def test_hand_built_dialect_with_bad_pattern_never_raises(self):
        dialects = {"broken": ReceiptDialect(name="broken", skip_patterns=("(unclosed",))}
        assert parse_receipt("Maito 1,29 €", dialects) == []

    def test_failed_pass_leaves_no_seen_keys(self, monkeypatch):
        def half_done(section, seen, dialects):
            seen.add(("Maito", Decimal("1.29")))
            raise ValueError("gave up")

        monkeypatch.setattr(parsers, "FALLBACK_PASSES", (half_done, parse_currency_items))
        assert names(parse_receipt("Maito 1,29 €")) == ["Maito"]


class TestSplitSections:
    def test_footer_marker_beats_total_in_header(self):
        text = "Tuotteet Kuvaus määrä yhteensä\nMaito 1,29 €\nALV veroton vero verollinen\n14 % 1,13"
        main, discounts = split_sections(text)
        assert "yhteensä" in main
        assert "ALV" not in main
        assert discounts == ""

    def test_loyalty_marker_misread(self):
        main, _ = split_sections("Maito 1,29 €\nKANTA-ASTAKAS 1234\nLeipä 2,00 €")
        assert main == "Maito 1,29 €\n"

    def test_card_transaction_marker(self):
        main, _ = split_sections("MILK  1,29\nCARD TRANSACTION\nTOTAL  1,29")
        assert main == "MILK  1,29\n"

    def test_card_transaction_beats_loyalty_marker(self):
        text = ("Maito 1,29 €\nCARD TRANSACTION\nAMOUNT 5,00 €\n"
                "PURCHASE EUR 5,00 €\nKANTA-ASIAKAS 1234\n")
        main, _ = split_sections(text)
        assert main == "Maito 1,29 €\n"
        assert names(parse_receipt(text)) == ["Maito"]

    def test_discount_block_split_off(self):
        main, discounts = split_sections(DISCOUNT_RECEIPT)
        assert main == "Maito 1,29 €\nJuusto 4,99 €\n"
        assert discounts.startswith("Plussasetti -0,50 €")

    def test_no_markers(self):
        assert split_sections("Maito 1,29 €") == ("Maito 1,29 €", "")


class TestLongInput:
    def test_long_register_tape_is_linear(self):
        tape = "\n".join(f"TUOTE NUMERO {i}      1,{i % 100:02d}" for i in range(1000))
        started = time.perf_counter()
        items = parse_receipt(tape)
        assert time.perf_counter() - started < 5.0
        assert len(items) == 1000

    def test_multi_page_text_without_currency(self):
        page = "\n".join(f"Tuote {i} kpl 2 x 1,00" for i in range(300))
        started = time.perf_counter()
        parse_currency_items("\n".join([page] * 3), set(), BUILTIN_DIALECTS)
        assert time.perf_counter() - started < 5.0


class TestIndividualPasses:
    def test_currency_items_with_quantity(self):
        items = parse_currency_items("Juusto 400g 4,99 €", set(), BUILTIN_DIALECTS)
        assert names(items) == ["Juusto"]

    def test_currency_pass_respects_seen(self):
        seen = {("Maito", Decimal("1.29"))}
        assert parse_currency_items("Maito 1,29 €", seen, BUILTIN_DIALECTS) == []

    def test_fixed_width_needs_two_spaces(self):
        items = parse_fixed_width_items("MAITO 1,29\nLEIPÄ  2,49", set(), BUILTIN_DIALECTS)
        assert names(items) == ["LEIPÄ"]

    def test_fixed_width_negative_amount(self):
        items = parse_fixed_width_items("ALENNUS  -0,40", set(), BUILTIN_DIALECTS)
        assert items[0].price == Decimal("-0.40")

    def test_noisy_lines_price_band(self):
        items = parse_noisy_lines("Pantti 0,05\nKahvi 99,99\nOmena 5,00", set(), BUILTIN_DIALECTS)
        assert names(items) == ["Kahvi", "Omena"]

    def test_noisy_lines_strip_trailing_date(self):
        items = parse_noisy_lines("Kahvi 12.03.2024 4,50", set(), BUILTIN_DIALECTS)
        assert names(items) == ["Kahvi"]

    def test_discount_breakdown_empty_section(self):
        assert parse_discount_breakdown("", set(), BUILTIN_DIALECTS) == []

    def test_discount_breakdown_long_label_first(self):
        items = parse_discount_breakdown("Plussa-tasaerä -1,00 € Kahvi 2", set(), BUILTIN_DIALECTS)
        assert names(items) == ["Kahvi Plussa-tasaerä"]


class TestNameHelpers:
    def test_clean_header_fragment(self):
        assert clean_item_name("Kuvaus määrä yhteensä  Maito") == "Maito"

    def test_clean_collapses_whitespace(self):
        assert clean_item_name("Ruis\n  leipä") == "Ruis leipä"

    @pytest.mark.parametrize("name", [
        "Yhteensä", "VRREENSÄ", "Maksukortti", "Plussa-kortti 1234",
        "Puh. 010 123", "Y-tunnus 123", "1234 **** 5678", "12:31 kassa",
        "ab", "Subtotal", "Card: Visa",
    ])
    def test_noise(self, name):
        assert is_noise(name)

    @pytest.mark.parametrize("name", ["Maito", "Ruisleipä 500 g", "Shampoo Total Care"])
    def test_not_noise(self, name):
        assert not is_noise(name)

    def test_header_glued_to_first_item_rejected(self):
        items = parse_receipt("Kuitti tilauksestasi\nMaito 1,29 €\nLeipä 2,00 €")
        assert names(items) == ["Leipä"]


def test_placeholder_items():
    items = placeholder_items()
    assert len(items) == 1
    assert items[0].name == "Item 1"
    assert items[0].price == 0
