"""
test_cost_lookup.py — Unit tests for rate lookup over the reference tables.

Tests cover:
  - Location factors (longest city name, country defaults, unknown places)
  - Location adjustment and escalation factor (clamped annual rate)
  - Steel rate by weight class, hollow sections, NOT_FOUND misses
  - Concrete rate by grade with DEFAULT fallback
  - Trade rates, including currencies converted from USD
  - Benchmark ranges and currency detection
"""

from datetime import date

import pytest

from estimator.services.cost_lookup import (
    adjust_for_location,
    detect_currency,
    get_benchmark_range,
    get_escalation_factor,
    get_location_factor,
    get_steel_tonnage_rate,
    lookup_concrete_rate,
    lookup_rate,
    lookup_steel_rate,
    lookup_trade_rate,
)

_START = date(2026, 1, 1)


# ===========================================================================
# Class 1: Location and escalation
# ===========================================================================

class TestLocation:

    def test_city_factor(self):
        loc = get_location_factor("Houston, TX")
        assert loc.multiplier == 0.92
        assert loc.currency == "USD"
        assert loc.matched is True

    def test_longest_city_wins(self):
        assert get_location_factor("New Delhi, India").location == "new delhi"

    def test_country_default(self):
        loc = get_location_factor("Somewhere in Australia")
        assert loc.currency == "AUD"
        assert loc.multiplier == 1.0
        assert loc.matched is True

    @pytest.mark.parametrize("location", [None, "", "   ", "Atlantis"])
    def test_unknown_location(self, location):
        loc = get_location_factor(location)
        assert loc.multiplier == 1.0
        assert loc.currency == "USD"
        assert loc.matched is False

    def test_adjust_for_location(self):
        assert adjust_for_location(100, "Sydney") == 115.0
        assert adjust_for_location(100, "Atlantis") == 100.0


class TestEscalation:

    def test_midpoint_formula(self):
        # 4% a year over 24 months → 1 + 0.04 × 1 year to midpoint
        assert get_escalation_factor(_START, 24) == 1.04

    def test_rate_clamped_to_ten_percent(self):
        assert get_escalation_factor(_START, 24, 0.20) == 1.1

    def test_negative_rate_clamped_to_zero(self):
        assert get_escalation_factor(_START, 24, -0.05) == 1.0

    @pytest.mark.parametrize("months", [0, None, -6])
    def test_no_duration(self, months):
        assert get_escalation_factor(_START, months) == 1.0

    def test_start_date_is_informational(self):
        assert get_escalation_factor("2030-06-01", 12) == get_escalation_factor(None, 12) == 1.02


# ===========================================================================
# Class 2: Steel and concrete
# ===========================================================================

class TestSteelRate:

    def test_medium_w_shape_in_houston(self):
        quote = lookup_steel_rate("W24X68", "Houston")
        assert quote.rate == 2760.0
        assert quote.source == "DB"
        assert quote.weight_class == "medium"
        assert quote.unit == "ton"

    @pytest.mark.parametrize("designation, subtype, base", [
        ("W8X10", "light", 3800),
        ("W36X150", "heavy", 2600),
        ("HSS6X6X1/4", "hss", 4200),
    ])
    def test_weight_classes(self, designation, subtype, base):
        quote = lookup_steel_rate(designation, None, "USD")
        assert quote.subtype == subtype
        assert quote.rate == base

    def test_range_adjusted_by_location(self):
        quote = lookup_steel_rate("W24X68", "Houston")
        assert quote.range == (2300.0, 3220.0)

    def test_currency_follows_location(self):
        assert lookup_steel_rate("ISMB300", "Mumbai").currency == "INR"

    def test_currency_without_table_is_not_found(self):
        quote = lookup_steel_rate("W24X68", None, "SGD")
        assert quote.rate == 0.0
        assert quote.source == "NOT_FOUND"

    def test_tonnage_rate_carries_weight(self):
        info = get_steel_tonnage_rate("W24X68", "USD", "Houston")
        assert info["rate_per_ton"] == 2760.0
        assert info["weight_per_length"] == 68.0
        assert info["weight_unit"] == "lb/ft"
        assert info["source"] == "DB"


class TestConcreteRate:

    def test_psi_grade(self):
        quote = lookup_concrete_rate("4000 PSI", None, "USD")
        assert quote.rate == 200.0
        assert quote.source == "DB"

    def test_psi_rounded_to_nearest_row(self):
        assert lookup_concrete_rate("3200 psi", None, "USD").subtype == "3000psi"

    def test_unknown_grade_uses_default(self):
        quote = lookup_concrete_rate("special mix", None, "USD")
        assert quote.subtype == "4000psi"
        assert quote.source == "DEFAULT"

    def test_no_concrete_table(self):
        assert lookup_concrete_rate("4000 PSI", None, "SGD").source == "NOT_FOUND"


# ===========================================================================
# Class 3: Generic and trade rates
# ===========================================================================

class TestLookupRate:

    def test_direct_hit(self):
        quote = lookup_rate("USD", "structural_steel", "deck")
        assert quote.rate == 5.5
        assert quote.unit == "sf"

    def test_fuzzy_hit(self):
        assert lookup_rate("USD", "structural_steel", "misc").source == "FUZZY"

    def test_miss_returns_none(self):
        assert lookup_rate("USD", "structural_steel", "unobtainium") is None
        assert lookup_rate("XYZ", "structural_steel", "medium") is None

    @pytest.mark.parametrize("subtype", ["", "   ", None])
    def test_blank_subtype_is_a_miss(self, subtype):
        assert lookup_rate("USD", "structural_steel", subtype) is None
        assert lookup_trade_rate("USD", "fabrication", subtype or "") is None


class TestTradeRate:

    def test_usd_fabrication(self):
        quote = lookup_trade_rate("USD", "fabrication", "medium")
        assert quote.rate == 1100.0
        assert quote.source == "DB"

    def test_converted_currency(self):
        quote = lookup_trade_rate("EUR", "fabrication", "medium")
        assert quote.currency == "EUR"
        assert quote.source == "DEFAULT"
        assert quote.rate == pytest.approx(1100 * 0.92)
        assert "converted from USD" in quote.descriptor

    def test_custom_tables(self):
        assert lookup_trade_rate("USD", "fabrication", "medium", tables={}) is None

    def test_unknown_currency(self):
        assert lookup_trade_rate("ZZZ", "fabrication", "medium") is None


# ===========================================================================
# Class 4: Benchmarks and currency
# ===========================================================================

class TestBenchmarkAndCurrency:

    def test_benchmark_range(self):
        bench = get_benchmark_range("USD", "Industrial")
        assert (bench["low"], bench["mid"], bench["high"]) == (80, 140, 200)

    def test_benchmark_aliases(self):
        assert get_benchmark_range("USD", "Pre-Engineered Building")["label"] == "Pre-Engineered Building"
        assert get_benchmark_range("USD", "office")["label"] == "Commercial Office"

    def test_benchmark_unknown(self):
        assert get_benchmark_range("SGD", "industrial") is None
        assert get_benchmark_range("USD", None) is None

    @pytest.mark.parametrize("info, currency", [
        (None, "USD"),
        ({}, "USD"),
        ({"currency": "aed"}, "AED"),
        ({"currency": "Rupees"}, "INR"),
        ({"currency": "usd", "location": "Dubai"}, "USD"),
        ({"location": "Sydney"}, "AUD"),
        ({"region": "London", "location": "Houston"}, "GBP"),
        ({"location": "Atlantis", "notes": "Client based in Mumbai"}, "INR"),
        ({"location": "Atlantis"}, "USD"),
    ])
    def test_detect_currency(self, info, currency):
        assert detect_currency(info) == currency
