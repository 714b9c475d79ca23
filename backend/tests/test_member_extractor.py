"""
test_member_extractor.py — Unit tests for member extraction and bucketing.

Tests cover:
  - Quantity inference (NOS, QTY, N x, leading N, schedule column, context)
  - Schedule windows and schedule precedence over general mentions
  - De-duplication within a run
  - Flexible sections following a schedule's preferred category
  - Reclassification by designation prefix
  - SteelDataset buckets and per-bucket summary
"""

import pytest

from estimator.models.drawing_models import BUCKETS, GENERAL_TEXT_SOURCE, ExtractedMember
from estimator.services.member_extractor import (
    ExtractionContext,
    extract_members,
    infer_quantity,
    reclassify,
    summarize,
)


def _span(segment, token):
    start = segment.index(token)
    return (start, start + len(token))


# ===========================================================================
# Class 1: Quantity inference
# ===========================================================================

class TestInferQuantity:

    def test_nos_token(self):
        seg = "4 NOS PL 1/2X12X12"
        assert infer_quantity(seg, _span(seg, "PL 1/2X12X12")) == 4

    def test_qty_token(self):
        seg = "W16X26 QTY: 8"
        assert infer_quantity(seg, _span(seg, "W16X26")) == 8

    def test_times_prefix(self):
        seg = "6 x HSS6X6X1/4 POSTS"
        assert infer_quantity(seg, _span(seg, "HSS6X6X1/4")) == 6

    def test_leading_number(self):
        seg = "10 W12X26 BEAMS"
        assert infer_quantity(seg, _span(seg, "W12X26")) == 10

    def test_numbers_inside_designation_ignored(self):
        seg = "USE W24X68"
        assert infer_quantity(seg, _span(seg, "W24X68")) == 1

    def test_schedule_column_only_in_schedule(self):
        seg = "B1 W24X68 12 30'-0\""
        span = _span(seg, "W24X68")
        assert infer_quantity(seg, span, schedule_row=True) == 12
        assert infer_quantity(seg, span, schedule_row=False) == 1

    def test_schedule_column_rejects_lengths(self):
        seg = "B1 W24X68 30'-0\""
        assert infer_quantity(seg, _span(seg, "W24X68"), schedule_row=True) == 1

    def test_preceding_context(self):
        seg = "W10X33 COLUMNS"
        assert infer_quantity(seg, _span(seg, "W10X33"), preceding="TOTAL 14 NOS") == 14

    def test_out_of_range_rejected(self):
        seg = "20000 NOS W8X10"
        assert infer_quantity(seg, _span(seg, "W8X10")) == 1

    def test_default_is_one(self):
        assert infer_quantity("W8X10", (0, 5)) == 1


# ===========================================================================
# Class 2: Line extraction
# ===========================================================================

class TestExtractMembers:

    def test_plain_strings_accepted(self):
        members = extract_members(["TYPICAL BEAM W24X68"])
        assert len(members) == 1
        m = members[0]
        assert m.designation == "W24X68"
        assert m.category == "mainMembers"
        assert m.source == GENERAL_TEXT_SOURCE
        assert m.weight == 68
        assert m.weight_unit == "lb/ft"

    def test_schedule_rows_carry_title_and_mark(self):
        members = extract_members(["BEAM SCHEDULE", "B1 W24X68 12 30'-0\""])
        assert len(members) == 1
        m = members[0]
        assert m.source == "BEAM SCHEDULE"
        assert m.mark == "B1"
        assert m.quantity == 12
        assert m.length == 30.0
        assert m.length_unit == "ft"

    def test_general_mention_after_schedule_is_skipped(self):
        ctx = ExtractionContext()
        lines = ["TYPICAL BEAM W24X68 AT GRIDS", "BEAM SCHEDULE", "B1 W24X68 12 30'-0\""]
        members = extract_members(lines, context=ctx)
        assert [m.source for m in members] == ["BEAM SCHEDULE"]
        assert any("already scheduled" in note for note in ctx.log)

    def test_duplicate_mentions_deduplicated(self):
        members = extract_members(["W24X68 AT GRID A", "W24X68 AT GRID B"])
        assert len(members) == 1

    def test_title_block_lines_ignored(self):
        members = extract_members(["DRAWN BY: W24X68", "W16X26"])
        assert [m.designation for m in members] == ["W16X26"]

    def test_purlin_schedule_pulls_flexible_sections(self):
        members = extract_members(["PURLIN SCHEDULE", "C8X11.5 AT 5'-0\" O.C."])
        assert members[0].designation == "C8X11.5"
        assert members[0].category == "purlins"

    def test_preferred_category_for_flexible_sections(self):
        members = extract_members(["C8X11.5 GIRTS"], preferred_category="purlins")
        assert members[0].category == "purlins"
        fixed = extract_members(["W8X10"], preferred_category="purlins")
        assert fixed[0].category == "mainMembers"

    def test_schedule_window_closed_by_new_heading(self):
        lines = ["BEAM SCHEDULE", "B1 W24X68 12", "COLUMN SCHEDULE", "C1 W10X33 4"]
        by_designation = {m.designation: m for m in extract_members(lines)}
        assert by_designation["W24X68"].source == "BEAM SCHEDULE"
        assert by_designation["W10X33"].source == "COLUMN SCHEDULE"

    def test_hollow_section_dimensions(self):
        m = extract_members(["HSS6X6X1/4 POSTS"])[0]
        assert m.category == "hollowSections"
        assert m.dimensions.width == 6
        assert m.dimensions.thickness == 0.25
        assert m.dimensions.unit == "in"

    def test_metric_length_read_from_line(self):
        m = extract_members(["BEAM SCHEDULE", "B1 310UB40.4 3 9000MM"])[0]
        assert m.designation == "310 UB 40.4"
        assert m.quantity == 3
        assert m.length == 9.0
        assert m.length_unit == "m"

    def test_several_members_on_one_line(self):
        members = extract_members(["W24X68 WITH HSS6X6X1/4 KICKER"])
        assert {m.designation for m in members} == {"W24X68", "HSS6X6X1/4"}


# ===========================================================================
# Class 3: Reclassification and summary
# ===========================================================================

def _member(designation, category, **kw):
    base = dict(
        type="Test", designation=designation, category=category, sub_category="test",
        source=GENERAL_TEXT_SOURCE,
    )
    base.update(kw)
    return ExtractedMember(**base)


class TestReclassify:

    @pytest.mark.parametrize("designation, bucket", [
        ("SHS100X100X5", "hollowSections"),
        ("HSS6X6X1/4", "hollowSections"),
        ("L4X4X1/4", "angles"),
        ("Z20020", "purlins"),
        ("PL1/2X12X12", "plates"),
        ("N12@200", "bars"),
        ("M20 8.8 BOLT", "connections"),
        ("HARDENED WASHER", "hardware"),
    ])
    def test_prefix_moves_bucket(self, designation, bucket):
        assert reclassify([_member(designation, "mainMembers")])[0].category == bucket

    def test_unmatched_designation_keeps_bucket(self):
        assert reclassify([_member("W24X68", "mainMembers")])[0].category == "mainMembers"


class TestSummarize:

    def test_every_bucket_present(self):
        summary = summarize({})
        assert set(summary) == set(BUCKETS)
        assert all(v == {"members": 0, "quantity": 0, "weight": 0.0} for v in summary.values())

    def test_per_piece_weight_counted(self):
        m = _member("BASE PL20X300X300", "plates", quantity=4, weight=14.13, weight_unit="kg/ea")
        summary = summarize({"plates": (m,)})
        assert summary["plates"] == {"members": 1, "quantity": 4, "weight": 56.52}

    def test_per_length_without_length_excluded(self):
        m = _member("W24X68", "mainMembers", quantity=2, weight=68, weight_unit="lb/ft")
        assert summarize({"mainMembers": (m,)})["mainMembers"]["weight"] == 0.0


# ===========================================================================
# Class 4: SteelDataset for the sample drawing set
# ===========================================================================

class TestBuildSteelDataset:

    def test_buckets(self, steel_dataset):
        designations = {b: [m.designation for m in items] for b, items in steel_dataset.buckets.items()}
        assert designations["mainMembers"] == ["W24X68", "W16X26"]
        assert designations["hollowSections"] == ["HSS6X6X1/4"]
        assert designations["plates"] == ["PL1/2X12X12"]
        assert designations["connections"] == ["3/4 A325 BOLT"]

    def test_schedule_entry_wins_over_general_text(self, steel_dataset):
        w24 = [m for m in steel_dataset.members() if m.designation == "W24X68"]
        assert len(w24) == 1
        assert w24[0].source == "BEAM SCHEDULE"
        assert w24[0].quantity == 12

    def test_quantities(self, steel_dataset):
        quantities = {m.designation: m.quantity for m in steel_dataset.members()}
        assert quantities["W16X26"] == 8
        assert quantities["HSS6X6X1/4"] == 6
        assert quantities["PL1/2X12X12"] == 4
        assert quantities["3/4 A325 BOLT"] == 24

    def test_summary_matches_buckets(self, steel_dataset):
        for bucket, items in steel_dataset.buckets.items():
            assert steel_dataset.summary[bucket]["members"] == len(items)
        assert steel_dataset.member_count == 5

    def test_unique_keys(self, steel_dataset):
        keys = [m.key for m in steel_dataset.members()]
        assert len(keys) == len(set(keys))
