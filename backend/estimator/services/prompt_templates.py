"""
Prompt builders for the generative passes.

Every prompt ends with the exact JSON shape the matching schema in
models/stage_schemas.py validates. Drawing text is excerpted to the sizes in
agents/config.py; pre-extracted measurement evidence is appended as a
grounding block when available.
"""
import json
from typing import Iterable, Optional

from estimator.agents.config import GROUP_TEXT_CHARS, PAGE_EXCERPT_CHARS
from estimator.models.drawing_models import DrawingPage
from estimator.services.measurement_extractor import MeasurementSet, format_for_prompt

_SECTION_FORMATS = """Recognize every steel section format:
- AISC: W24x68, HSS8x8x1/2, C15x50, MC12x10.6, L4x4x1/2, WT shapes, open web joists (18K5)
- Indian IS: ISMB450, ISMC300, ISLB400, ISWB600, ISHB350, ISA100x100x10
- European EN: IPE300, HEA200, HEB300, UPN200, SHS150x150x10, RHS200x100x8, CHS168.3x6
- British BS: UB533x210x82, UC305x305x97, PFC230x90, RSA
- Australian AS: 310UB40.4, 250UC89.5, 200PFC, 75x75x6EA, SHS, RHS, CHS
- PEB: tapered / built-up I-sections, Z and C purlins (Z200, C250)"""


def _evidence_block(measurements: Optional[MeasurementSet]) -> str:
    block = format_for_prompt(measurements)
    if not block:
        return ""
    return f"\n\nUse the pre-extracted data below to cross-check what you read:\n{block}"


def sheet_classification_prompt(pages: Iterable[DrawingPage], measurements: Optional[MeasurementSet] = None) -> str:
    excerpts = []
    for page in pages:
        text = page.text[:PAGE_EXCERPT_CHARS]
        excerpts.append(f"=== PAGE {page.page_number} ===\n{text}")
    drawing_text = "\n\n".join(excerpts)

    return f"""Classify EACH page of this construction drawing set.

Sheet types: STRUCTURAL_PLAN, FOUNDATION_PLAN, ROOF_PLAN, FLOOR_PLAN, ELEVATION, SECTION,
SCHEDULE, GENERAL_NOTES, MEP, SITE_PLAN, PEB_LAYOUT, COVER_SHEET.

Detect the design standard (AISC, IS, EN, BS, AS, PEB) and the unit system
(Imperial uses ft/in/lbs, Metric uses mm/m/kg).

Respond in this exact JSON format:
{{
  "sheets": [
    {{"pageNumber": 1, "sheetType": "STRUCTURAL_PLAN", "sheetName": "S-101 Roof Framing Plan",
      "scale": "1/8\\" = 1'-0\\"", "designStandard": "AISC", "unitSystem": "Imperial"}}
  ],
  "drawingSetSummary": {{"designStandard": "AISC", "unitSystem": "Imperial",
                         "structuralSystem": "Steel Frame", "projectTitle": ""}}
}}

Return ONLY valid JSON.

DRAWING TEXT:
{drawing_text}{_evidence_block(measurements)}"""


_GROUP_INSTRUCTIONS = {
    "structural": {
        "title": "STRUCTURAL PLAN",
        "focus": """Extract every beam, column, bracing member and joist with its mark, size,
count and typical length. Count members grid by grid. Include the metal deck
type and area when shown.""",
        "shape": {
            "beams": [{"mark": "B1", "size": "W24x68", "count": 12, "typicalLength": "30'-0\"", "location": "Roof"}],
            "columns": [{"mark": "C1", "size": "W14x48", "count": 20, "typicalLength": "25'-0\""}],
            "bracing": [{"mark": "BR1", "size": "HSS6x6x3/8", "count": 8, "typicalLength": "28'-0\""}],
            "joists": [{"mark": "J1", "size": "18K5", "count": 40, "typicalLength": "30'-0\""}],
            "deck": {"type": "1.5\" 20GA roof deck", "area": 9600},
            "footprintArea": 9600,
        },
    },
    "foundation": {
        "title": "FOUNDATION PLAN",
        "focus": """Extract every footing and pile cap with its mark, plan size, depth and
count, grade beams with total length, slab on grade thickness and area,
retaining walls, cast-in-place concrete columns (section, height, count) and
elevated slabs by level with thickness and area.""",
        "shape": {
            "footings": [{"mark": "F1", "type": "spread", "width": "6'-0\"", "length": "6'-0\"",
                          "depth": "2'-0\"", "count": 20, "concreteGrade": "4000 PSI"}],
            "pileCaps": [],
            "gradeBeams": [{"mark": "GB1", "width": "1'-6\"", "depth": "2'-0\"", "totalLength": "400'-0\""}],
            "slabOnGrade": {"thickness": "6\"", "area": 9600, "concreteStrength": "4000 PSI"},
            "retainingWalls": [],
            "concreteColumns": [{"mark": "C1", "width": "1'-6\"", "depth": "1'-6\"", "height": "12'-0\"",
                                 "count": 8, "concreteGrade": "5000 PSI"}],
            "elevatedSlabs": [{"level": "Level 2", "thickness": "8\"", "area": 4800, "concreteStrength": "4000 PSI"}],
        },
    },
    "schedule": {
        "title": "SCHEDULE",
        "focus": """Transcribe the beam, column, joist and footing schedules row by row. Use
the quantity column exactly as printed. List general material notes.""",
        "shape": {
            "beamSchedule": [{"mark": "B1", "size": "W24x68", "quantity": 14, "length": "30'-0\"", "grade": "A992"}],
            "columnSchedule": [],
            "joistSchedule": [],
            "footingSchedule": [],
            "materialNotes": ["Structural steel ASTM A992"],
        },
    },
    "elevation": {
        "title": "ELEVATION / SECTION",
        "focus": """Extract eave, ridge and overall heights, floor-to-floor heights, roof type
and area, and wall cladding types with their areas.""",
        "shape": {
            "heights": {"eaveHeight": "24'-0\"", "ridgeHeight": "30'-0\"", "overallHeight": "30'-0\"",
                        "floorToFloor": []},
            "roofInfo": {"type": "standing seam", "area": 9600},
            "wallConstruction": [{"type": "insulated metal panel", "area": 12000}],
        },
    },
}


def extraction_prompt(
    group: str,
    pages: Iterable[DrawingPage],
    unit_system: str,
    measurements: Optional[MeasurementSet] = None,
) -> str:
    spec = _GROUP_INSTRUCTIONS[group]
    text = "\n\n".join(f"=== PAGE {p.page_number} ===\n{p.text}" for p in pages)[:GROUP_TEXT_CHARS]
    shape = json.dumps(spec["shape"], indent=2)

    return f"""You are reading {spec['title']} sheets of a construction drawing set.
The drawings use the {unit_system} unit system; keep lengths as written on the drawing.

{_SECTION_FORMATS}

{spec['focus']}

Never invent sizes or counts that are not on the drawings. Omit anything you cannot read.

Respond in this exact JSON format:
{shape}

Return ONLY valid JSON.

DRAWING TEXT:
{text}{_evidence_block(measurements)}"""


def validation_prompt(estimate: dict, takeoff: dict, project_info: dict) -> str:
    summary = estimate.get("costSummary", {})
    categories = {name: group.get("total") for name, group in estimate.get("categories", {}).items()}
    steel_totals = takeoff.get("steelTotals", {})

    return f"""Review this priced estimate as a Chief Estimator.

PROJECT: {project_info.get('name') or 'Unnamed'} | LOCATION: {project_info.get('location') or 'Unknown'} | TYPE: {project_info.get('project_type') or 'Unknown'}

STEEL TOTALS: {json.dumps(steel_totals)}
CATEGORY TOTALS: {json.dumps(categories)}
COST SUMMARY: {json.dumps(summary)}
DISCREPANCIES: {json.dumps(takeoff.get('discrepancies', []))}

Check the arithmetic, compare the installed rate per ton against the market for this
location, and list trades that a complete estimate would carry but this one does not.

Respond in this exact JSON format:
{{
  "issues": [{{"severity": "critical|warning|info", "trade": "Structural Steel", "message": "..."}}],
  "missingTrades": ["Metal Deck"],
  "overallAssessment": "one paragraph"
}}

Return ONLY valid JSON."""
