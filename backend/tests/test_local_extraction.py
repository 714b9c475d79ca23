"""
test_local_extraction.py — Unit tests for the locally derived pass records.

Tests cover:
  - Sheet type normalization and keyword classification
  - Design standard detection
  - Page grouping
  - Fallback records for each sheet group
  - Unit-system resolution
"""

import pytest

from estimator.models.drawing_models import SheetClassification
from estimator.models.stage_schemas import ElevationExtraction, FoundationExtraction, ScheduleExtraction, StructuralExtraction
from estimator.services.layout_reader import page_from_text
from estimator.services.local_extraction import (
    classify_sheets_locally,
    detect_design_standard,
    group_pages,
    local_foundation,
    local_group_extraction,
    normalize_sheet_type,
    resolve_unit_system,
)
from estimator.services.measurement_extractor import extract_measurements


# ===========================================================================
# Class 1: Sheet classification
# ===========================================================================

class TestSheetTypes:

    @pytest.mark.parametrize("raw, expected", [
        ("STRUCTURAL_PLAN", "structural"),
        ("PEB_LAYOUT", "structural"),
        ("FOUNDATION_PLAN", "foundation"),
        ("FOOTING_DETAILS", "foundation"),
        ("BEAM_SCHEDULE", "schedule"),
        ("BUILDING_ELEVATION", "elevation"),
        ("ELECTRICAL", "mep"),
        ("SITE_PLAN", "site"),
        ("cover", "general"),
        (None, "general"),
    ])
    def test_normalize_sheet_type(self, raw, expected):
        assert normalize_sheet_type(raw) == expected

    def test_sample_pages_classified(self, drawing_pages, steel_dataset):
        sheets = classify_sheets_locally(drawing_pages, steel_dataset)
        assert [s.page_number for s in sheets] == [1, 2]
        assert sheets[1].sheet_type == "foundation"
        assert sheets[0].sheet_type in ("structural", "schedule")
        assert all(s.design_standard == "AISC" for s in sheets)
        assert sheets[0].scale == "1/8\" = 1'-0\""

    def test_page_without_keywords_is_general(self):
        page = page_from_text(1, "COVER SHEET\nPROJECT DIRECTORY")
        assert classify_sheets_locally([page])[0].sheet_type == "general"


class TestDesignStandard:

    def test_no_dataset(self):
        assert detect_design_standard(None) == "UNKNOWN"

    def test_sample_dataset_is_aisc(self, steel_dataset):
        assert detect_design_standard(steel_dataset) == "AISC"


class TestGroupPages:

    def test_groups_keep_page_order_and_drop_other_types(self):
        sheets = [
            SheetClassification(1, "structural"),
            SheetClassification(2, "mep"),
            SheetClassification(3, "structural"),
            SheetClassification(4, "foundation"),
        ]
        assert group_pages(sheets) == {"structural": [1, 3], "foundation": [4]}


# ===========================================================================
# Class 2: Fallback records
# ===========================================================================

class TestFallbackRecords:

    def test_foundation_callouts(self, foundation_page):
        foundation = local_foundation([foundation_page])
        assert len(foundation.footings) == 1
        f1 = foundation.footings[0]
        assert f1.mark == "F1"
        assert f1.count == 20
        assert f1.width == "6'-0\""
        assert f1.depth == "2'-0\""

    def test_pile_caps_separated(self):
        page = page_from_text(1, "PC1 2400MM x 2400MM x 900MM 6 NOS")
        foundation = local_foundation([page])
        assert foundation.footings == []
        assert foundation.pile_caps[0].mark == "PC1"
        assert foundation.pile_caps[0].count == 6

    def test_schedule_rows_from_dataset(self, steel_dataset):
        schedule = local_group_extraction("schedule", [], steel_dataset, None)
        assert isinstance(schedule, ScheduleExtraction)
        sizes = [r.size for r in schedule.rows()]
        assert sizes == ["W24X68", "W16X26", "HSS6X6X1/4"]
        assert schedule.beam_schedule[0].quantity == 12

    def test_structural_uses_general_text_only(self, steel_dataset):
        structural = local_group_extraction("structural", [], steel_dataset, None)
        assert isinstance(structural, StructuralExtraction)
        assert structural.members() == []

    def test_elevation_heights(self, foundation_page):
        measurements = extract_measurements(foundation_page.text)
        elevation = local_group_extraction("elevation", [], None, measurements)
        assert isinstance(elevation, ElevationExtraction)
        assert elevation.heights.eave_height == "24'-0\""
        assert elevation.heights.overall_height == "24'-0\""

    def test_foundation_group(self, foundation_page):
        assert isinstance(local_group_extraction("foundation", [foundation_page], None, None), FoundationExtraction)

    def test_unknown_group(self):
        with pytest.raises(ValueError):
            local_group_extraction("roofing", [], None, None)


# ===========================================================================
# Class 3: Unit system
# ===========================================================================

class TestResolveUnitSystem:

    def test_majority_vote(self):
        sheets = [
            SheetClassification(1, "structural", unit_system="Metric"),
            SheetClassification(2, "structural", unit_system="Metric"),
            SheetClassification(3, "foundation", unit_system="Imperial"),
        ]
        assert resolve_unit_system(sheets, None) == "Metric"

    def test_tie_falls_back_to_measurements(self):
        sheets = [
            SheetClassification(1, "structural", unit_system="Metric"),
            SheetClassification(2, "structural", unit_system="Imperial"),
        ]
        measurements = extract_measurements("ISMB 300 BEAMS, IPE 200 PURLINS, SPAN 9000 mm, SCALE 1:50")
        assert resolve_unit_system(sheets, measurements) == "Metric"

    def test_default_imperial(self):
        assert resolve_unit_system([], None) == "Imperial"
