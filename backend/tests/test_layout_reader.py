"""
test_layout_reader.py — Unit tests for the text layout reader.

Tests cover:
  - Line grouping by vertical tolerance (5 pt)
  - Reading order: top-to-bottom, then left-to-right within a line
  - Blank fragments and empty pages
  - page_from_text / document_text helpers
  - DocumentReadError for unreadable files
"""

import pytest

from estimator.models.drawing_models import TextFragment
from estimator.services.errors import DocumentReadError
from estimator.services.layout_reader import (
    LINE_TOLERANCE,
    build_lines,
    build_page,
    document_text,
    page_from_text,
    read_pdf_pages,
)


# ===========================================================================
# Class 1: Line grouping
# ===========================================================================

class TestBuildLines:
    """Fragments → lines."""

    def test_fragments_within_tolerance_share_a_line(self):
        fragments = [
            TextFragment(x=120.0, y=700.0, text="W24X68"),
            TextFragment(x=10.0, y=702.0, text="B1"),
            TextFragment(x=200.0, y=698.5, text="12"),
        ]
        lines = build_lines(fragments)
        assert len(lines) == 1
        assert lines[0].text == "B1 W24X68 12"

    def test_new_line_when_y_moves_beyond_tolerance(self):
        fragments = [
            TextFragment(x=0.0, y=700.0, text="BEAM SCHEDULE"),
            TextFragment(x=0.0, y=700.0 - LINE_TOLERANCE - 0.1, text="B1 W24X68"),
        ]
        lines = build_lines(fragments)
        assert [l.text for l in lines] == ["BEAM SCHEDULE", "B1 W24X68"]

    def test_lines_ordered_top_to_bottom(self):
        """Higher y is nearer the top of the sheet and is read first."""
        fragments = [
            TextFragment(x=0.0, y=100.0, text="bottom"),
            TextFragment(x=0.0, y=500.0, text="top"),
            TextFragment(x=0.0, y=300.0, text="middle"),
        ]
        assert [l.text for l in build_lines(fragments)] == ["top", "middle", "bottom"]

    def test_anchor_is_first_fragment_of_line(self):
        """Drift is measured from the line's anchor, not from the previous fragment."""
        fragments = [
            TextFragment(x=0.0, y=100.0, text="a"),
            TextFragment(x=10.0, y=96.0, text="b"),
            TextFragment(x=20.0, y=92.0, text="c"),
        ]
        lines = build_lines(fragments)
        assert [l.text for l in lines] == ["a b", "c"]
        assert lines[0].y_position == 100.0

    def test_source_fragments_preserved(self):
        fragments = [TextFragment(x=5.0, y=50.0, text="HSS6X6X1/4")]
        line = build_lines(fragments)[0]
        assert line.source_fragments == (fragments[0],)

    def test_blank_fragments_dropped(self):
        fragments = [
            TextFragment(x=0.0, y=50.0, text="   "),
            TextFragment(x=10.0, y=50.0, text="PL 1/2X12"),
        ]
        assert build_lines(fragments)[0].text == "PL 1/2X12"

    def test_empty_input_gives_no_lines(self):
        assert build_lines([]) == []

    def test_custom_tolerance(self):
        fragments = [
            TextFragment(x=0.0, y=100.0, text="a"),
            TextFragment(x=10.0, y=92.0, text="b"),
        ]
        assert len(build_lines(fragments, tolerance=10.0)) == 1


# ===========================================================================
# Class 2: Page helpers
# ===========================================================================

class TestPageHelpers:
    """build_page, page_from_text and document_text."""

    def test_build_page_keeps_number(self):
        page = build_page(3, [TextFragment(x=0.0, y=10.0, text="S-301")])
        assert page.page_number == 3
        assert page.text == "S-301"

    def test_page_from_text_preserves_order_and_skips_blanks(self):
        page = page_from_text(1, "FIRST\n\n  \nSECOND\nTHIRD\n")
        assert [l.text for l in page.lines] == ["FIRST", "SECOND", "THIRD"]

    def test_empty_page_has_no_lines(self):
        page = page_from_text(1, "")
        assert page.lines == ()
        assert page.text == ""

    def test_document_text_joins_pages(self):
        pages = [page_from_text(1, "A\nB"), page_from_text(2, "C")]
        text = document_text(pages)
        assert text.splitlines() == ["A", "B", "C"]

    def test_sample_pages_fixture(self, drawing_pages):
        assert [p.page_number for p in drawing_pages] == [1, 2]
        assert drawing_pages[0].lines[0].text == "S-101 ROOF FRAMING PLAN"


# ===========================================================================
# Class 3: PDF adapter
# ===========================================================================

class TestReadPdfPages:

    def test_missing_file_raises_document_read_error(self, tmp_path):
        with pytest.raises(DocumentReadError):
            read_pdf_pages(str(tmp_path / "missing.pdf"))

    def test_non_pdf_file_raises_document_read_error(self, tmp_path):
        path = tmp_path / "notes.pdf"
        path.write_text("this is not a pdf")
        with pytest.raises(DocumentReadError):
            read_pdf_pages(str(path))
