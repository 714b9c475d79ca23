"""
Measurement extractor — raw drawing text → dimensional and specification evidence.

Independent of member extraction: works on the flat text of one document
(or the same text the member extractor saw) and returns every dimension,
grid spacing, area, named height, member size, grade, standard, load,
scale and schedule entry it can find, each as an ordered, de-duplicated
list.

The confidence score is advisory. It tells the generative passes how much
to trust text-derived evidence; nothing downstream refuses to run because
of it.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from estimator.services.pattern_catalog import MEASUREMENT_CATALOG, normalize_designation
from estimator.services.units import IMPERIAL, METRIC

logger = logging.getLogger("estimator-measure")

MIN_TEXT_CHARS = 20

CONFIDENCE_WEIGHTS = (
    ("dimensions", 20),
    ("grid spacings", 15),
    ("areas", 10),
    ("heights", 10),
    ("member sizes", 20),
    ("steel grades", 10),
    ("concrete grades", 5),
    ("design loads", 5),
    ("scales", 5),
    ("schedule entries", 15),
)

MEMBER_SIZE_LABELS = {
    "wShapes": "W-Shapes",
    "hss": "HSS",
    "channels": "Channels",
    "angles": "Angles",
    "pipes": "Pipes",
    "plates": "Plates",
    "indianSections": "Indian Sections",
    "euroSections": "European Sections",
    "auSections": "Australian/British Sections",
}


def _empty_sections() -> dict:
    return {
        "dimensions": {"imperial": [], "metric": [], "gridSpacings": [], "areas": [], "heights": []},
        "memberSizes": {key: [] for key in MEMBER_SIZE_LABELS},
        "materialSpecs": {
            "steelGrades": [], "concreteGrades": [], "rebarSpecs": [],
            "materialStandards": [], "boltSpecs": [], "weldSpecs": [],
        },
        "designLoads": {"gravity": [], "wind": [], "seismic": []},
        "scales": [],
        "schedules": {"types": [], "entries": []},
        "drawingInfo": {
            "sheets": [], "titles": [], "roofingSpecs": [], "claddingSpecs": [],
            "deckSpecs": [], "insulation": [], "quantities": [], "weights": [],
        },
    }


@dataclass
class MeasurementSet:
    dimensions: dict = field(default_factory=lambda: _empty_sections()["dimensions"])
    member_sizes: dict = field(default_factory=lambda: _empty_sections()["memberSizes"])
    material_specs: dict = field(default_factory=lambda: _empty_sections()["materialSpecs"])
    design_loads: dict = field(default_factory=lambda: _empty_sections()["designLoads"])
    scales: list = field(default_factory=list)
    schedules: dict = field(default_factory=lambda: _empty_sections()["schedules"])
    drawing_info: dict = field(default_factory=lambda: _empty_sections()["drawingInfo"])
    has_data: bool = False
    confidence: dict = field(default_factory=lambda: {"score": 0, "level": "None", "note": "No text"})
    file_name: str = ""
    files_with_data: int = 0
    total_files: int = 1

    def counts(self) -> dict:
        """Evidence volume per confidence category."""
        return {
            "dimensions": len(self.dimensions["imperial"]) + len(self.dimensions["metric"]),
            "grid spacings": len(self.dimensions["gridSpacings"]),
            "areas": len(self.dimensions["areas"]),
            "heights": len(self.dimensions["heights"]),
            "member sizes": sum(len(v) for v in self.member_sizes.values()),
            "steel grades": len(self.material_specs["steelGrades"]),
            "concrete grades": len(self.material_specs["concreteGrades"]),
            "design loads": len(self.design_loads["gravity"]),
            "scales": len(self.scales),
            "schedule entries": len(self.schedules["entries"]),
        }

    def to_dict(self) -> dict:
        return {
            "fileName": self.file_name,
            "hasData": self.has_data,
            "confidence": dict(self.confidence),
            "dimensions": {k: list(v) for k, v in self.dimensions.items()},
            "memberSizes": {k: list(v) for k, v in self.member_sizes.items()},
            "materialSpecs": {k: list(v) for k, v in self.material_specs.items()},
            "designLoads": {k: list(v) for k, v in self.design_loads.items()},
            "scales": list(self.scales),
            "schedules": {k: list(v) for k, v in self.schedules.items()},
            "drawingInfo": {k: list(v) for k, v in self.drawing_info.items()},
            "filesWithData": self.files_with_data,
            "totalFiles": self.total_files,
        }


# ── Helpers ───────────────────────────────────────────────────────────────────

def _add(target: list, value: str):
    value = " ".join(str(value).split())
    if value and value not in target:
        target.append(value)


def _finditer(pattern_id: str, text: str):
    rx = MEASUREMENT_CATALOG.get(pattern_id)
    if rx is None:
        return iter(())
    return rx.finditer(text)


def _upper_words(value: str) -> str:
    return " ".join(value.upper().split())


# ── Section extractors ────────────────────────────────────────────────────────

def _extract_dimensions(text: str, out: dict):
    for m in _finditer("imperial_dimension", text):
        _add(out["imperial"], f"{m.group(1)}'-{m.group(2)}\"")
    for m in _finditer("metric_dimension", text):
        _add(out["metric"], f"{m.group(1)} {m.group(2).lower()}")
    for m in _finditer("grid_spacing", text):
        _add(out["gridSpacings"], f"{m.group(1).strip()} x {m.group(2).strip()}")
    for m in _finditer("area", text):
        _add(out["areas"], f"{m.group(1)} {_upper_words(m.group(2))}")
    for m in _finditer("height", text):
        _add(out["heights"], f"{_upper_words(m.group(1))}: {m.group(2).strip()}")


_SIZE_FAMILIES = (
    ("w_shape", "wShapes"),
    ("hss", "hss"),
    ("channel", "channels"),
    ("angle", "angles"),
    ("pipe", "pipes"),
    ("plate", "plates"),
    ("indian_section", "indianSections"),
    ("euro_section", "euroSections"),
    ("au_section", "auSections"),
)


def _extract_member_sizes(text: str, out: dict):
    for pattern_id, family in _SIZE_FAMILIES:
        for m in _finditer(pattern_id, text):
            _add(out[family], normalize_designation(m.group(0)))


def _extract_material_specs(text: str, out: dict):
    for m in _finditer("astm_spec", text):
        _add(out["steelGrades"], _upper_words(m.group(0)))
    for m in _finditer("steel_grade", text):
        _add(out["steelGrades"], _upper_words(m.group(0)))
    for m in _finditer("concrete_psi", text):
        _add(out["concreteGrades"], f"{m.group(1)} PSI")
    for m in _finditer("concrete_grade", text):
        if 15 <= int(m.group(1)) <= 100:
            _add(out["concreteGrades"], re.sub(r"\s+", "", m.group(0)).upper())
    for m in _finditer("rebar_grade", text):
        _add(out["rebarSpecs"], _upper_words(m.group(0)))
    for m in _finditer("rebar_size", text):
        if m.group(1):
            _add(out["rebarSpecs"], f"#{m.group(1)}")
        elif m.group(2):
            _add(out["rebarSpecs"], f"{m.group(2)}mm")
        elif m.group(3):
            _add(out["rebarSpecs"], f"{m.group(0)[0].upper()}{m.group(3)}")
    for pattern_id in ("is_spec", "en_spec", "as_spec"):
        for m in _finditer(pattern_id, text):
            _add(out["materialStandards"], _upper_words(m.group(0)))
    for m in _finditer("bolt_spec", text):
        _add(out["boltSpecs"], _upper_words(m.group(0)))
    for m in _finditer("weld_spec", text):
        _add(out["weldSpecs"], _upper_words(m.group(0)))


def _extract_design_loads(text: str, out: dict):
    for m in _finditer("load", text):
        label = re.sub(r"\s+", " ", m.group(1).upper().replace(".", ""))
        _add(out["gravity"], f"{label} = {m.group(2)} {m.group(3).upper()}")
    for m in _finditer("wind_speed", text):
        _add(out["wind"], f"{m.group(1)} {m.group(2).upper()}")
    for m in _finditer("seismic", text):
        _add(out["seismic"], m.group(1).upper())


def _extract_scales(text: str, out: list):
    for m in _finditer("scale_imperial", text):
        _add(out, f"{m.group(1)}\" = 1'-0\"")
    for m in _finditer("scale_metric", text):
        _add(out, f"1:{m.group(1)}")


def _extract_schedules(text: str, out: dict):
    for m in _finditer("schedule_header", text):
        _add(out["types"], f"{m.group(1).upper()} SCHEDULE")
    for m in _finditer("schedule_entry", text):
        _add(out["entries"], f"{m.group(1).upper()} = {normalize_designation(m.group(2))}")


def _extract_drawing_info(text: str, out: dict):
    for m in _finditer("sheet_number", text):
        _add(out["sheets"], m.group(1))
    for m in _finditer("drawing_title", text):
        title = m.group(1).strip()
        if len(title) > 8:
            _add(out["titles"], title)
    for m in _finditer("roofing", text):
        _add(out["roofingSpecs"], _upper_words(m.group(0)))
    for m in _finditer("cladding", text):
        _add(out["claddingSpecs"], _upper_words(m.group(0)))
    for m in _finditer("deck_spec", text):
        _add(out["deckSpecs"], _upper_words(m.group(0)))
    for m in _finditer("insulation", text):
        _add(out["insulation"], f"R-{m.group(1)}")
    for m in _finditer("quantity", text):
        _add(out["quantities"], _upper_words(m.group(0)))
    for m in _finditer("weight", text):
        _add(out["weights"], f"{m.group(1)} {m.group(2).upper()}")


# ── Confidence ────────────────────────────────────────────────────────────────

def score_confidence(result: MeasurementSet) -> dict:
    """
    Weighted evidence score: each category contributes up to its weight,
    reaching the full weight at three findings.
    """
    counts = result.counts()
    score = 0.0
    max_score = 0.0
    factors = {}
    for label, weight in CONFIDENCE_WEIGHTS:
        max_score += weight
        contribution = min(weight, counts[label] * weight / 3.0) if counts[label] > 0 else 0.0
        factors[label] = round(contribution, 2)
        score += contribution

    pct = round(score / max_score * 100) if max_score else 0
    if pct >= 70:
        level, note = "High", "Rich dimensional data in the text layer"
    elif pct >= 35:
        level, note = "Medium", "Partial dimensional data in the text layer"
    else:
        level, note = "Low", "Minimal text data, likely a scanned drawing"
    return {"score": pct, "level": level, "note": note, "factors": factors}


# ── Public API ────────────────────────────────────────────────────────────────

def extract_measurements(text: Optional[str], file_name: str = "") -> MeasurementSet:
    if not text or len(text.strip()) < MIN_TEXT_CHARS:
        return MeasurementSet(
            has_data=False,
            confidence={"score": 0, "level": "None", "note": "No extractable text (scanned or image-only drawing)"},
            file_name=file_name,
            files_with_data=0,
        )

    sections = _empty_sections()
    _extract_dimensions(text, sections["dimensions"])
    _extract_member_sizes(text, sections["memberSizes"])
    _extract_material_specs(text, sections["materialSpecs"])
    _extract_design_loads(text, sections["designLoads"])
    _extract_scales(text, sections["scales"])
    _extract_schedules(text, sections["schedules"])
    _extract_drawing_info(text, sections["drawingInfo"])

    result = MeasurementSet(
        dimensions=sections["dimensions"],
        member_sizes=sections["memberSizes"],
        material_specs=sections["materialSpecs"],
        design_loads=sections["designLoads"],
        scales=sections["scales"],
        schedules=sections["schedules"],
        drawing_info=sections["drawingInfo"],
        has_data=True,
        file_name=file_name,
        files_with_data=1,
    )
    result.confidence = score_confidence(result)
    logger.info(
        f"Measurements{' for ' + file_name if file_name else ''}: "
        f"{result.confidence['level']} confidence ({result.confidence['score']}%)"
    )
    return result


def combine_measurements(results: Iterable[MeasurementSet]) -> MeasurementSet:
    """Merge several documents' evidence, keeping first-seen order, and re-score."""
    results = list(results)
    combined = MeasurementSet(total_files=len(results))
    for r in results:
        if not r.has_data:
            continue
        combined.files_with_data += 1
        for attr in ("dimensions", "member_sizes", "material_specs", "design_loads", "schedules", "drawing_info"):
            target = getattr(combined, attr)
            for key, values in getattr(r, attr).items():
                for value in values:
                    _add(target.setdefault(key, []), value)
        for value in r.scales:
            _add(combined.scales, value)

    combined.has_data = combined.files_with_data > 0
    if combined.has_data:
        combined.confidence = score_confidence(combined)
    else:
        combined.confidence = {"score": 0, "level": "None", "note": "No document carried a text layer"}
    return combined


def detect_unit_system(result: MeasurementSet) -> str:
    """Majority of imperial vs metric evidence; Imperial on a tie."""
    imperial = (
        len(result.dimensions["imperial"])
        + len(result.member_sizes["wShapes"]) + len(result.member_sizes["hss"])
        + sum(1 for g in result.material_specs["concreteGrades"] if g.endswith("PSI"))
        + sum(1 for g in result.design_loads["gravity"] if g.endswith("PSF"))
        + sum(1 for s in result.scales if "=" in s)
        + sum(1 for a in result.dimensions["areas"] if re.search(r"SF|FT|FEET", a))
    )
    metric = (
        len(result.dimensions["metric"])
        + len(result.member_sizes["indianSections"]) + len(result.member_sizes["euroSections"])
        + len(result.member_sizes["auSections"])
        + sum(1 for g in result.design_loads["gravity"] if "KPA" in g or "KN" in g)
        + sum(1 for s in result.scales if s.startswith("1:"))
        + sum(1 for a in result.dimensions["areas"] if re.search(r"M2|M²|SQ\.? ?M\b|MET", a))
    )
    return METRIC if metric > imperial else IMPERIAL


def format_for_prompt(result: Optional[MeasurementSet], max_dimensions: int = 40) -> str:
    """Render evidence as a context block for the generative passes."""
    if result is None or not result.has_data:
        return ""

    c = result.confidence
    sections: List[str] = [
        "PRE-EXTRACTED MEASUREMENT DATA FROM PDF TEXT LAYERS",
        f"Extraction confidence: {c.get('level')} ({c.get('score')}%) - {c.get('note', '')}",
        f"Data extracted from {result.files_with_data} of {result.total_files} file(s)",
        "",
    ]

    dims = result.dimensions["imperial"] + result.dimensions["metric"]
    if dims or result.dimensions["gridSpacings"]:
        sections.append("-- DIMENSIONS FOUND --")
        if result.dimensions["gridSpacings"]:
            sections.append(f"Grid/Bay Spacings: {', '.join(result.dimensions['gridSpacings'])}")
        if dims:
            more = f" (+{len(dims) - max_dimensions} more)" if len(dims) > max_dimensions else ""
            sections.append(f"All Dimensions: {', '.join(dims[:max_dimensions])}{more}")
        if result.dimensions["areas"]:
            sections.append(f"Areas: {', '.join(result.dimensions['areas'])}")
        if result.dimensions["heights"]:
            sections.append(f"Heights: {', '.join(result.dimensions['heights'])}")
        sections.append("")

    sizes = [
        f"{MEMBER_SIZE_LABELS[key]}: {', '.join(values)}"
        for key, values in result.member_sizes.items() if values
    ]
    if sizes:
        sections.append("-- STRUCTURAL MEMBER SIZES --")
        sections.extend(sizes)
        sections.append("")

    if result.schedules["types"] or result.schedules["entries"]:
        sections.append("-- SCHEDULES --")
        if result.schedules["types"]:
            sections.append(f"Schedule types: {', '.join(result.schedules['types'])}")
        if result.schedules["entries"]:
            sections.append(f"Entries: {', '.join(result.schedules['entries'])}")
        sections.append("")

    specs = [
        f"{label}: {', '.join(result.material_specs[key])}"
        for key, label in (
            ("steelGrades", "Steel grades"), ("concreteGrades", "Concrete grades"),
            ("rebarSpecs", "Rebar"), ("materialStandards", "Standards"),
            ("boltSpecs", "Bolts"), ("weldSpecs", "Welds"),
        )
        if result.material_specs[key]
    ]
    if specs:
        sections.append("-- MATERIAL SPECIFICATIONS --")
        sections.extend(specs)
        sections.append("")

    loads = [
        f"{label}: {', '.join(result.design_loads[key])}"
        for key, label in (("gravity", "Gravity"), ("wind", "Wind"), ("seismic", "Seismic"))
        if result.design_loads[key]
    ]
    if loads:
        sections.append("-- DESIGN LOADS --")
        sections.extend(loads)
        sections.append("")

    if result.scales:
        sections.append(f"Scales: {', '.join(result.scales)}")

    return "\n".join(sections).strip()
