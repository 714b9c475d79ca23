"""
test_estimation_engine.py — Unit tests for pricing a quantity takeoff.

Tests cover:
  - Reference run: line items, codes, rates and totals for one beam line
    plus one footing line (USD, no location)
  - Every line total equals quantity × unit rate (2 dp)
  - Galvanizing minimum charge
  - Complexity multiplier thresholds, erection height tiers
  - Bolts and hardware per piece, metal deck per area
  - Unresolved rates priced at 0 with NOT_FOUND
  - Cost summary chain: complexity → escalation → contingency →
    preliminaries → overheads & profit → tax
  - Category and rate-source views

Reference case (Imperial, USD):
    MM-SUP  24,480 lbs × 0.85      = 20,808.00
    MM-FAB  12.24 tons × 1,100     = 13,464.00
    MM-GAL  12.24 tons × 650       =  7,956.00
    MM-ERC  12.24 tons × 600       =  7,344.00
    ALW-SUP  3,182.4 lbs × 1.00    =  3,182.40
    CON-01  53.33 CY × 200         = 10,666.00
    REB-01  2.133 tons × 1,500     =  3,199.50
    base                             66,619.90
"""

import pytest

from estimator.models.drawing_models import QuantityItem, QuantityTakeoffResult
from estimator.services.estimation_engine import complexity_multiplier, erection_class, estimate
from estimator.services.units import unit_labels


def _takeoff(steel=None, counts=None, areas=(), member_count=0, unit_system="Imperial", steel_totals=None):
    labels = unit_labels(unit_system)
    return QuantityTakeoffResult(
        unit_system=unit_system,
        mass_unit=labels["mass"],
        ton_unit=labels["ton"],
        volume_unit=labels["volume"],
        steel=steel or {},
        steel_totals=steel_totals or {},
        areas=tuple(areas),
        counts=counts or {},
        member_count=member_count,
    )


def _member(designation, total_weight, bucket="mainMembers", weight_per_unit=None, length=None, complexity="simple"):
    return QuantityItem(
        description=designation,
        count=1,
        unit="EA",
        calculation="",
        designation=designation,
        bucket=bucket,
        weight_per_unit=weight_per_unit,
        length=length,
        total_weight=total_weight,
        complexity=complexity,
    )


def _piece(designation, count, bucket):
    return QuantityItem(description=designation, count=count, unit="EA", calculation="", designation=designation, bucket=bucket)


def _by_code(result):
    return {item.code: item for item in result.items}


# ===========================================================================
# Class 1: Reference run
# ===========================================================================

class TestReferenceRun:

    def test_line_item_codes_in_order(self, estimation_engine, framing_takeoff):
        result = estimation_engine.estimate(framing_takeoff, None, "USD")
        assert [i.code for i in result.items] == [
            "MM-SUP", "MM-FAB", "MM-GAL", "MM-ERC", "ALW-SUP", "CON-01", "REB-01",
        ]

    def test_steel_lines(self, estimation_engine, framing_takeoff):
        items = _by_code(estimation_engine.estimate(framing_takeoff, None, "USD"))
        supply = items["MM-SUP"]
        assert supply.unit == "lbs"
        assert supply.quantity == 24480.0
        assert supply.unit_rate == 0.85
        assert supply.total_cost == 20808.0
        assert "(medium)" in supply.description
        assert items["MM-FAB"].quantity == 12.24
        assert items["MM-FAB"].unit == "tons"
        assert items["MM-FAB"].total_cost == 13464.0
        assert items["MM-GAL"].total_cost == 7956.0
        assert items["MM-ERC"].total_cost == 7344.0

    def test_unknown_height_noted(self, estimation_engine, framing_takeoff):
        erection = _by_code(estimation_engine.estimate(framing_takeoff, None, "USD"))["MM-ERC"]
        assert "(low rise)" in erection.description
        assert erection.notes.endswith("installation height unknown, lowest tier assumed")

    def test_allowance_concrete_rebar(self, estimation_engine, framing_takeoff):
        items = _by_code(estimation_engine.estimate(framing_takeoff, None, "USD"))
        assert items["ALW-SUP"].quantity == 3182.4
        assert items["ALW-SUP"].total_cost == 3182.4
        concrete = items["CON-01"]
        assert concrete.quantity == 53.33
        assert concrete.unit == "CY"
        assert concrete.unit_rate == 200.0
        assert concrete.rate_source == "DEFAULT"
        assert concrete.subcategory == "Footing"
        assert items["REB-01"].quantity == 2.133
        assert items["REB-01"].total_cost == 3199.5

    def test_every_total_is_quantity_times_rate(self, estimation_engine, framing_takeoff):
        result = estimation_engine.estimate(framing_takeoff, "Houston", "USD", {"height_m": 9})
        for item in result.items:
            assert item.total_cost == round(item.quantity * item.unit_rate, 2)

    def test_summary_chain(self, estimation_engine, framing_takeoff):
        s = estimation_engine.estimate(framing_takeoff, None, "USD").cost_summary
        assert s.base_cost == 66619.9
        assert s.complexity_multiplier == 1.0
        assert s.complexity_adjustment == 0.0
        assert s.escalation_factor == 1.0
        assert s.escalation == 0.0
        assert s.contingency == 6661.99
        assert s.preliminaries == 5862.55
        assert s.overheads_profit == 9497.33
        assert s.subtotal_ex_tax == pytest.approx(88641.77)
        assert s.tax == 0.0
        assert s.total_inc_tax == pytest.approx(88641.77)
        assert s.total_tonnage == 13.831
        assert s.rate_per_tonne == round(s.subtotal_ex_tax / 13.831, 2)

    def test_module_function_matches_engine(self, estimation_engine, framing_takeoff):
        assert estimate(framing_takeoff, None, "USD") == estimation_engine.estimate(framing_takeoff, None, "USD")


# ===========================================================================
# Class 2: Steel pricing rules
# ===========================================================================

class TestSteelRules:

    def test_galvanizing_minimum_charge(self, estimation_engine):
        qr = _takeoff(steel={"plates": (_member("PL1/2X12X12", 200.0, bucket="plates"),)})
        items = _by_code(estimation_engine.estimate(qr, None, "USD"))
        galv = items["PL-GAL"]
        assert galv.quantity == 1
        assert galv.unit == "item"
        assert galv.unit_rate == 250.0
        assert galv.total_cost == 250.0
        assert galv.description.endswith("(minimum charge)")
        assert galv.notes == "calculated 65.00 is below the minimum charge"

    def test_plates_use_plate_work(self, estimation_engine):
        qr = _takeoff(steel={"plates": (_member("PL1/2X12X12", 200.0, bucket="plates"),)})
        fab = _by_code(estimation_engine.estimate(qr, None, "USD"))["PL-FAB"]
        assert "(plate work)" in fab.description
        assert fab.total_cost == 140.0

    def test_galvanizing_can_be_skipped(self, estimation_engine, framing_takeoff):
        result = estimation_engine.estimate(framing_takeoff, None, "USD", {"galvanize": False})
        assert "MM-GAL" not in _by_code(result)

    def test_height_selects_erection_tier(self, estimation_engine, framing_takeoff):
        erection = _by_code(estimation_engine.estimate(framing_takeoff, None, "USD", {"height_m": 10}))["MM-ERC"]
        assert "(mid rise)" in erection.description
        assert erection.unit_rate == 780.0
        assert "installation height unknown" not in erection.notes

    def test_purlins_have_own_erection_tier(self, estimation_engine):
        qr = _takeoff(steel={"purlins": (_member("Z200X2.0", 2000.0, bucket="purlins"),)})
        erection = _by_code(estimation_engine.estimate(qr, None, "USD"))["PU-ERC"]
        assert "(purlin)" in erection.description
        assert erection.total_cost == 850.0
        assert "installation height unknown" not in erection.notes

    def test_highest_fabrication_tier_wins(self, estimation_engine):
        qr = _takeoff(steel={"mainMembers": (
            _member("W12X26", 1000.0, weight_per_unit=26.0, length=20.0, complexity="simple"),
            _member("W24X68", 1000.0, weight_per_unit=68.0, length=20.0, complexity="complex"),
        )})
        fab = _by_code(estimation_engine.estimate(qr, None, "USD"))["MM-FAB"]
        assert "(complex)" in fab.description
        assert fab.unit_rate == 1650.0

    def test_metric_units(self, estimation_engine, takeoff_engine):
        from estimator.models.stage_schemas import PlanMember, StructuralExtraction, TargetedExtraction

        extraction = TargetedExtraction(structural=StructuralExtraction(
            beams=[PlanMember(size="310UB40.4", count=10, length="9000")],
        ))
        qr = takeoff_engine.takeoff({"extraction": extraction}, "Metric")
        items = _by_code(estimation_engine.estimate(qr, "Sydney", "AUD"))
        assert items["MM-SUP"].unit == "kg"
        assert "(light)" in items["MM-SUP"].description
        assert items["MM-FAB"].unit == "tonnes"
        assert items["MM-FAB"].quantity == 3.636


class TestMultipliers:

    @pytest.mark.parametrize("count, expected", [
        (0, 1.0), (50, 1.0), (51, 1.10), (150, 1.10), (151, 1.15),
    ])
    def test_complexity_multiplier(self, count, expected):
        assert complexity_multiplier(count) == expected

    @pytest.mark.parametrize("height, expected", [
        (None, "low_rise"), (6, "low_rise"), (6.5, "mid_rise"), (15, "mid_rise"), (20, "high_rise"),
    ])
    def test_erection_class(self, height, expected):
        assert erection_class(height) == expected

    def test_complexity_adjustment_applied(self, estimation_engine):
        qr = _takeoff(steel={"mainMembers": (_member("W24X68", 2000.0, weight_per_unit=68.0, length=30.0),)},
                      member_count=60)
        s = estimation_engine.estimate(qr, None, "USD").cost_summary
        assert s.complexity_multiplier == 1.10
        assert s.complexity_adjustment == round(s.base_cost * 0.10, 2)

    def test_escalation_applied_after_complexity(self, estimation_engine, framing_takeoff):
        s = estimation_engine.estimate(framing_takeoff, None, "USD", {"duration_months": 24}).cost_summary
        assert s.escalation_factor == 1.04
        assert s.escalation == round(s.base_cost * 0.04, 2)


# ===========================================================================
# Class 3: Pieces, deck, unresolved rates
# ===========================================================================

class TestPiecesAndAreas:

    def test_bolts_and_washers(self, estimation_engine):
        qr = _takeoff(counts={
            "connections": (_piece("3/4 A325 BOLT", 24, "connections"),),
            "hardware": (_piece("HARDENED WASHER", 24, "hardware"),),
        })
        items = _by_code(estimation_engine.estimate(qr, None, "USD"))
        bolts = items["CN-BOLT_34"]
        assert bolts.unit == "each"
        assert bolts.total_cost == 192.0
        assert bolts.category == "Connections & Hardware"
        assert bolts.subcategory == "Bolts"
        assert items["HW-WASHER"].total_cost == 19.2

    def test_anchor_bolts(self, estimation_engine):
        qr = _takeoff(counts={"connections": (_piece("M20 ANCHOR BOLT", 8, "connections"),)})
        items = _by_code(estimation_engine.estimate(qr, None, "USD"))
        assert items["CN-ANCHOR_BOLT"].total_cost == 360.0

    def test_deck_area(self, estimation_engine):
        deck = QuantityItem(description="Metal deck", count=5000.0, unit="SF", calculation="", element="deck")
        items = _by_code(estimation_engine.estimate(_takeoff(areas=[deck]), None, "USD"))
        assert items["DCK-01"].unit_rate == 5.5
        assert items["DCK-01"].total_cost == 27500.0

    def test_non_deck_areas_not_priced(self, estimation_engine):
        footprint = QuantityItem(description="Footprint", count=5000.0, unit="SF", calculation="", element="footprint")
        assert estimation_engine.estimate(_takeoff(areas=[footprint]), None, "USD").items == ()


class TestUnresolvedRates:

    def test_unknown_currency_prices_at_zero(self, estimation_engine, framing_takeoff):
        result = estimation_engine.estimate(framing_takeoff, None, "ZZZ")
        assert all(i.rate_source == "NOT_FOUND" for i in result.items)
        assert all(i.total_cost == 0.0 for i in result.items)
        assert _by_code(result)["MM-SUP"].notes == "no steel supply rate for ZZZ/medium"
        assert result.cost_summary.total_inc_tax == 0.0
        assert result.rate_source_breakdown == {"NOT_FOUND": {"items": 7, "total": 0.0}}

    def test_currency_from_location(self, estimation_engine, framing_takeoff):
        assert estimation_engine.estimate(framing_takeoff, "Mumbai").cost_summary.currency == "INR"


# ===========================================================================
# Class 4: Tax and views
# ===========================================================================

class TestTaxAndViews:

    @pytest.mark.parametrize("currency, location, rate", [
        ("USD", "Chicago", 0.0),
        ("GBP", "London", 0.20),
        ("AUD", "Sydney", 0.10),
        ("INR", "Mumbai", 0.18),
        ("AED", "Dubai", 0.05),
    ])
    def test_tax_by_currency(self, estimation_engine, framing_takeoff, currency, location, rate):
        s = estimation_engine.estimate(framing_takeoff, location, currency).cost_summary
        assert s.currency == currency
        assert s.tax == round(s.subtotal_ex_tax * rate, 2)
        assert s.total_inc_tax == round(s.subtotal_ex_tax + s.tax, 2)

    def test_category_totals(self, estimation_engine, framing_takeoff):
        result = estimation_engine.estimate(framing_takeoff, None, "USD")
        steel = result.categories["Structural Steel"]
        assert set(steel["subcategories"]) == {"Supply", "Fabrication", "Surface Treatment", "Erection", "Allowances"}
        assert steel["total"] == 52754.4
        for group in result.categories.values():
            assert group["total"] == pytest.approx(sum(i.total_cost for i in group["items"]))
        assert set(result.categories) == {"Structural Steel", "Concrete", "Reinforcement"}

    def test_rate_source_breakdown(self, estimation_engine, framing_takeoff):
        breakdown = estimation_engine.estimate(framing_takeoff, None, "USD").rate_source_breakdown
        assert breakdown["DB"]["items"] == 6
        assert breakdown["DEFAULT"] == {"items": 1, "total": 10666.0}

    def test_to_dict_shape(self, estimation_engine, framing_takeoff):
        d = estimation_engine.estimate(framing_takeoff, None, "USD").to_dict()
        assert d["costSummary"]["baseCost"] == 66619.9
        assert d["items"][0]["code"] == "MM-SUP"
        assert "Supply" in d["categories"]["Structural Steel"]["subcategories"]
