"""
Locally derived records for the generative passes.

Sheet classification and the per-group targeted extraction both have a
deterministic counterpart computed from the drawing text, the SteelDataset
and the measurement evidence. The orchestrator substitutes these whenever a
generative call times out or returns something unusable.
"""
import logging
import re
from collections import Counter
from typing import Dict, Iterable, List, Optional

from estimator.models.drawing_models import GENERAL_TEXT_SOURCE, DrawingPage, SheetClassification, SteelDataset
from estimator.models.stage_schemas import (
    ElevationExtraction,
    Footing,
    FoundationExtraction,
    Heights,
    PlanMember,
    ScheduleExtraction,
    ScheduleRow,
    StructuralExtraction,
)
from estimator.services.measurement_extractor import MeasurementSet, detect_unit_system, extract_measurements
from estimator.services.units import IMPERIAL, METRIC, normalize_unit_system

logger = logging.getLogger("estimator-local")

SHEET_TYPES = ("structural", "foundation", "schedule", "elevation", "mep", "site", "general")
SHEET_GROUPS = ("structural", "foundation", "schedule", "elevation")

# Checked in order; ties go to the earlier type
SHEET_KEYWORDS = (
    ("schedule", re.compile(r"\bSCHEDULES?\b", re.IGNORECASE)),
    ("foundation", re.compile(r"\bFOUNDATIONS?\b|\bFOOTINGS?\b|\bPILE\s*CAPS?\b|\bGRADE\s*BEAMS?\b|\bANCHOR\s*BOLT\s*PLAN\b", re.IGNORECASE)),
    ("elevation", re.compile(r"\bELEVATIONS?\b|\bBUILDING\s*SECTIONS?\b|\bWALL\s*SECTIONS?\b", re.IGNORECASE)),
    ("structural", re.compile(r"\bFRAMING\b|\bROOF\s*PLAN\b|\bSTRUCTURAL\b|\bSTEEL\b|\bPURLINS?\b|\bRAFTERS?\b|\bBRACING\b|\bGRID\b", re.IGNORECASE)),
    ("mep", re.compile(r"\bMECHANICAL\b|\bELECTRICAL\b|\bPLUMBING\b|\bHVAC\b|\bFIRE\s*PROTECTION\b", re.IGNORECASE)),
    ("site", re.compile(r"\bSITE\s*PLAN\b|\bGRADING\b|\bCIVIL\b|\bPAVING\b|\bLANDSCAP", re.IGNORECASE)),
)
_TITLE_LINES = 5
_TITLE_WEIGHT = 3

_STANDARD_FAMILIES = ("AISC", "IS", "EN", "BS", "AS", "PEB")


def normalize_sheet_type(raw: Optional[str]) -> str:
    """Map a free-form sheet type (STRUCTURAL_PLAN, PEB_LAYOUT, ...) onto the fixed set."""
    value = str(raw or "").lower()
    if value in SHEET_TYPES:
        return value
    if "schedule" in value:
        return "schedule"
    if any(k in value for k in ("found", "footing", "pile")):
        return "foundation"
    if "elev" in value or "section" in value:
        return "elevation"
    if any(k in value for k in ("mep", "mech", "elec", "plumb", "hvac")):
        return "mep"
    if "site" in value or "civil" in value:
        return "site"
    if any(k in value for k in ("struct", "framing", "roof", "plan", "peb", "steel", "layout", "anchor")):
        return "structural"
    return "general"


def _sheet_type_for(page: DrawingPage) -> str:
    title = "\n".join(line.text for line in page.lines[:_TITLE_LINES])
    body = page.text
    scores = {}
    for sheet_type, rx in SHEET_KEYWORDS:
        score = _TITLE_WEIGHT * len(rx.findall(title)) + len(rx.findall(body))
        if score:
            scores[sheet_type] = score
    if not scores:
        return "general"
    best = max(scores.values())
    return next(t for t, _ in SHEET_KEYWORDS if scores.get(t) == best)


def detect_design_standard(dataset: Optional[SteelDataset]) -> str:
    """Most frequent section family among the extracted members."""
    if dataset is None:
        return "UNKNOWN"
    counts = Counter(m.standard for m in dataset.members() if m.standard in _STANDARD_FAMILIES)
    if not counts:
        return "UNKNOWN"
    return counts.most_common(1)[0][0]


def classify_sheets_locally(pages: Iterable[DrawingPage], dataset: Optional[SteelDataset] = None) -> List[SheetClassification]:
    standard = detect_design_standard(dataset)
    sheets = []
    for page in pages:
        evidence = extract_measurements(page.text)
        info = evidence.drawing_info
        name = info["titles"][0] if info["titles"] else (page.lines[0].text if page.lines else "Unknown Sheet")
        if info["sheets"]:
            name = f"{info['sheets'][0]} {name}" if name != "Unknown Sheet" else info["sheets"][0]
        sheets.append(SheetClassification(
            page_number=page.page_number,
            sheet_type=_sheet_type_for(page),
            sheet_name=name[:120],
            scale=evidence.scales[0] if evidence.scales else "N/A",
            design_standard=standard,
            unit_system=detect_unit_system(evidence) if evidence.has_data else IMPERIAL,
        ))
    logger.info(f"Classified {len(sheets)} sheets locally: {dict(Counter(s.sheet_type for s in sheets))}")
    return sheets


def group_pages(sheets: Iterable[SheetClassification]) -> Dict[str, List[int]]:
    """Page numbers per extraction group; sheet types outside the groups are dropped."""
    groups: Dict[str, List[int]] = {}
    for sheet in sheets:
        if sheet.sheet_type in SHEET_GROUPS:
            groups.setdefault(sheet.sheet_type, []).append(sheet.page_number)
    return groups


# ── Pass 2 fallbacks ──────────────────────────────────────────────────────────

def _length_text(value: Optional[float], unit: str) -> Optional[str]:
    if value is None:
        return None
    return f"{value:g} {unit or 'ft'}"


def _role(member) -> str:
    line = member.raw_line.upper()
    if member.sub_category == "joist":
        return "joist"
    if re.search(r"\bCOL(?:UMN)?S?\b|\bC\d{1,2}\b", line):
        return "column"
    if "BRAC" in line:
        return "bracing"
    return "beam"


def local_structural(dataset: Optional[SteelDataset]) -> StructuralExtraction:
    """Plan members from the general-text main members and hollow sections."""
    sections = {"beam": [], "column": [], "bracing": [], "joist": []}
    if dataset is not None:
        for bucket in ("mainMembers", "hollowSections"):
            for m in dataset.buckets.get(bucket, ()):
                if m.source != GENERAL_TEXT_SOURCE:
                    continue
                role = _role(m)
                sections[role].append(PlanMember(
                    mark=m.mark,
                    size=m.designation,
                    count=m.quantity,
                    length=_length_text(m.length, m.length_unit),
                    role=role,
                ))
    return StructuralExtraction(
        beams=sections["beam"],
        columns=sections["column"],
        bracing=sections["bracing"],
        joists=sections["joist"],
    )


def local_schedule(dataset: Optional[SteelDataset]) -> ScheduleExtraction:
    """Schedule rows from the members found inside schedule windows."""
    beams, columns, joists = [], [], []
    if dataset is not None:
        for m in dataset.members():
            if m.source == GENERAL_TEXT_SOURCE or m.category in ("connections", "hardware"):
                continue
            row = ScheduleRow(
                mark=m.mark,
                size=m.designation,
                quantity=m.quantity,
                length=_length_text(m.length, m.length_unit),
                schedule=m.source,
            )
            title = m.source.upper()
            if "COLUMN" in title:
                columns.append(row)
            elif "JOIST" in title:
                joists.append(row)
            else:
                beams.append(row)
    return ScheduleExtraction(beam_schedule=beams, column_schedule=columns, joist_schedule=joists)


_DIM = r"(\d+(?:\.\d+)?\s*(?:['′]\s*-?\s*\d{0,2}\s*[\"″]?|MM\b|M\b)?)"
_FOOTING_CALLOUT = re.compile(
    rf"\b((?:F|PF|SF|CF|WF|PC)-?\d{{1,2}}[A-Z]?)\b\s*[:=\-]?\s*{_DIM}\s*[xX×]\s*{_DIM}\s*[xX×]\s*{_DIM}",
    re.IGNORECASE,
)
_FOOTING_COUNT = re.compile(r"\((\d{1,3})\)|\b(\d{1,3})\s*(?:NOS?\.?|EA\.?|PCS)\b|\bQTY\.?\s*[:=]?\s*(\d{1,3})\b", re.IGNORECASE)


def _footing_count(line: str) -> int:
    m = _FOOTING_COUNT.search(line)
    if not m:
        return 1
    value = int(next(g for g in m.groups() if g))
    return value if value > 0 else 1


def local_foundation(pages: Iterable[DrawingPage]) -> FoundationExtraction:
    """Footing and pile cap call-outs such as ``F1 6'-0" x 6'-0" x 2'-0"``."""
    footings, pile_caps = [], []
    seen = set()
    for page in pages:
        for line in page.lines:
            for m in _FOOTING_CALLOUT.finditer(line.text):
                mark = m.group(1).upper().replace("-", "")
                if mark in seen:
                    continue
                seen.add(mark)
                is_cap = mark.startswith("PC")
                record = Footing(
                    mark=mark,
                    type="pile_cap" if is_cap else "footing",
                    width=m.group(2).strip(),
                    length=m.group(3).strip(),
                    depth=m.group(4).strip(),
                    count=_footing_count(line.text),
                )
                (pile_caps if is_cap else footings).append(record)
    return FoundationExtraction(footings=footings, pile_caps=pile_caps)


def local_elevation(measurements: Optional[MeasurementSet]) -> ElevationExtraction:
    """Heights read from labelled height call-outs."""
    heights = Heights()
    if measurements is None:
        return ElevationExtraction(heights=heights)
    eave = ridge = None
    floors = []
    for entry in measurements.dimensions["heights"]:
        label, _, value = entry.partition(":")
        value = value.strip()
        if label.startswith("EAVE") and eave is None:
            eave = value
        elif label.startswith("RIDGE") and ridge is None:
            ridge = value
        elif label.startswith(("FLOOR", "STORY", "STOREY")):
            floors.append(value)
    heights = Heights(eave_height=eave, ridge_height=ridge, overall_height=ridge or eave, floor_to_floor=floors)
    return ElevationExtraction(heights=heights)


def local_group_extraction(
    group: str,
    pages: List[DrawingPage],
    dataset: Optional[SteelDataset],
    measurements: Optional[MeasurementSet],
):
    """Fallback records for one sheet group."""
    if group == "structural":
        return local_structural(dataset)
    if group == "foundation":
        return local_foundation(pages)
    if group == "schedule":
        return local_schedule(dataset)
    if group == "elevation":
        return local_elevation(measurements)
    raise ValueError(f"unknown sheet group: {group}")


def resolve_unit_system(sheets: Iterable[SheetClassification], measurements: Optional[MeasurementSet]) -> str:
    """Majority of per-sheet unit systems, falling back to the document-wide evidence."""
    votes = Counter(normalize_unit_system(s.unit_system) for s in sheets)
    if votes and votes[METRIC] != votes[IMPERIAL]:
        return METRIC if votes[METRIC] > votes[IMPERIAL] else IMPERIAL
    if measurements is not None and measurements.has_data:
        return detect_unit_system(measurements)
    return IMPERIAL
