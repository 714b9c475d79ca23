"""
Text layout reader: positioned text fragments → ordered drawing lines.

Drawing PDFs carry their text as loose words with coordinates. Lines are
rebuilt by sorting top-to-bottom (descending y), left-to-right (ascending x)
and starting a new line whenever y moves more than a small tolerance away
from the current line's anchor.

read_pdf_pages() is the pdfplumber adapter that supplies the fragments.
"""
import logging
from typing import Iterable, List

import pdfplumber

from estimator.models.drawing_models import DrawingPage, Line, TextFragment
from estimator.services.errors import DocumentReadError

logger = logging.getLogger("estimator-layout")

LINE_TOLERANCE: float = 5.0   # PDF points


def build_lines(fragments: Iterable[TextFragment], tolerance: float = LINE_TOLERANCE) -> List[Line]:
    ordered = sorted(fragments, key=lambda f: (-f.y, f.x))

    lines: List[Line] = []
    anchor_y = None
    current: list = []

    def _flush():
        text = " ".join(f.text.strip() for f in current if f.text and f.text.strip())
        if text:
            lines.append(Line(y_position=anchor_y, text=text, source_fragments=tuple(current)))

    for frag in ordered:
        if anchor_y is None:
            anchor_y = frag.y
        elif abs(frag.y - anchor_y) > tolerance:
            _flush()
            current = []
            anchor_y = frag.y
        current.append(frag)

    if current:
        _flush()
    return lines


def build_page(page_number: int, fragments: Iterable[TextFragment], tolerance: float = LINE_TOLERANCE) -> DrawingPage:
    return DrawingPage(page_number=page_number, lines=tuple(build_lines(fragments, tolerance)))


def page_from_text(page_number: int, text: str) -> DrawingPage:
    """Build a page from already-ordered plain text (one fragment per line)."""
    rows = [row for row in text.splitlines() if row.strip()]
    fragments = [TextFragment(x=0.0, y=float((len(rows) - i) * 10), text=row) for i, row in enumerate(rows)]
    return build_page(page_number, fragments)


def read_pdf_pages(path: str) -> List[DrawingPage]:
    """
    Decode every page of a drawing PDF into a DrawingPage.

    pdfplumber reports ``top`` measured downwards from the page top; it is
    flipped to a bottom-up y so the reader's descending-y ordering holds.
    Raises DocumentReadError when the file cannot be opened.
    """
    pages: List[DrawingPage] = []
    try:
        with pdfplumber.open(path) as pdf:
            for page in pdf.pages:
                words = page.extract_words(keep_blank_chars=False, use_text_flow=False) or []
                fragments = [
                    TextFragment(x=float(w["x0"]), y=float(page.height) - float(w["top"]), text=w["text"])
                    for w in words
                ]
                pages.append(build_page(page.page_number, fragments))
    except (OSError, ValueError) as e:
        raise DocumentReadError(f"Cannot read drawing {path}: {e}") from e
    except Exception as e:
        # pdfminer raises its own syntax errors for corrupt files
        raise DocumentReadError(f"Cannot decode drawing {path}: {type(e).__name__}: {e}") from e

    logger.info(f"Decoded {len(pages)} pages from {path} ({sum(len(p.lines) for p in pages)} lines)")
    return pages


def document_text(pages: Iterable[DrawingPage]) -> str:
    return "\n".join(page.text for page in pages)
