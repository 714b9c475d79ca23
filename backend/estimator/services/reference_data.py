"""
Static reference data for takeoff and pricing.

Covers:
  - Section weight per length by standard (AISC lb/ft, IS / EN / BS / AS kg/m)
    with geometric estimates for hollow sections, angles, plates, bars, purlins
  - Rebar weights and rebar intensity by concrete element
  - Installed unit rates by currency (steel, concrete, rebar, deck, roofing ...)
  - Trade rates for the estimation engine (supply, fabrication, treatment,
    erection, per-piece connections)
  - Location factors, benchmark ranges, tax rates, FX for unlisted currencies

All tables are module-level and read-only at run time.
"""
import math
import re
from typing import Dict, Optional, Tuple

from estimator.models.drawing_models import CostRate, LocationFactor
from estimator.services.units import STEEL_DENSITY_KG_M3, STEEL_LB_FT_PER_IN2


# ---------------------------------------------------------------------------
# AISC: families whose designation ends in the weight per foot
# ---------------------------------------------------------------------------
_AISC_NOMINAL_WEIGHT = re.compile(r"^(W|WT|M|S|HP|C|MC)(\d{1,2}(?:\.\d+)?)X(\d{1,3}(?:\.\d+)?)$")

AISC_PIPE_STD_LB_FT: Dict[str, float] = {
    "0.5": 0.85, "0.75": 1.13, "1": 1.68, "1.25": 2.27, "1.5": 2.72,
    "2": 3.65, "2.5": 5.79, "3": 7.58, "3.5": 9.11, "4": 10.79,
    "5": 14.62, "6": 18.97, "8": 28.55, "10": 40.48, "12": 49.56,
}
_PIPE_SCHEDULE_FACTOR = {"STD": 1.0, "XS": 1.39, "XXS": 2.55}

# Open web steel joists (approximate lb/ft)
JOIST_LB_FT: Dict[str, float] = {
    "8K1": 5.1, "10K1": 5.0, "12K1": 5.0, "12K3": 5.7, "12K5": 7.1,
    "14K1": 5.2, "14K3": 6.0, "16K2": 5.5, "16K4": 7.0, "18K3": 6.6,
    "18K5": 7.7, "20K3": 6.7, "20K5": 8.2, "22K4": 8.0, "22K6": 9.2,
    "24K4": 8.4, "24K6": 9.7, "24K9": 12.0, "26K5": 9.8, "26K7": 10.9,
    "28K6": 11.4, "28K8": 12.7, "30K7": 12.3, "30K9": 13.4, "30K12": 17.6,
}

# ---------------------------------------------------------------------------
# Indian Standard sections (kg/m)
# ---------------------------------------------------------------------------
INDIAN_STEEL_WEIGHTS: Dict[str, float] = {
    "ISMB100": 11.5, "ISMB125": 13.0, "ISMB150": 14.9, "ISMB175": 19.3,
    "ISMB200": 25.4, "ISMB225": 31.2, "ISMB250": 37.3, "ISMB300": 44.2,
    "ISMB350": 52.4, "ISMB400": 61.6, "ISMB450": 72.4, "ISMB500": 86.9,
    "ISMB550": 103.7, "ISMB600": 122.6,
    "ISMC75": 6.8, "ISMC100": 9.2, "ISMC125": 12.7, "ISMC150": 16.0,
    "ISMC175": 19.1, "ISMC200": 22.1, "ISMC225": 25.9, "ISMC250": 30.4,
    "ISMC300": 36.3, "ISMC350": 42.1, "ISMC400": 49.4,
    "ISLB150": 14.2, "ISLB175": 16.7, "ISLB200": 19.8, "ISLB225": 23.5,
    "ISLB250": 27.9, "ISLB300": 33.0, "ISLB325": 36.7, "ISLB350": 40.9,
    "ISLB400": 45.7, "ISLB450": 52.4, "ISLB500": 58.8, "ISLB550": 65.3,
    "ISLB600": 72.8,
    "ISWB150": 17.0, "ISWB175": 21.3, "ISWB200": 28.4, "ISWB225": 33.9,
    "ISWB250": 40.9, "ISWB300": 48.1, "ISWB350": 56.9, "ISWB400": 66.7,
    "ISWB450": 79.4, "ISWB500": 95.2, "ISWB550": 112.5, "ISWB600": 133.7,
    "ISHB150": 27.1, "ISHB200": 37.3, "ISHB225": 43.1, "ISHB250": 51.0,
    "ISHB300": 58.8, "ISHB350": 67.4, "ISHB400": 77.4, "ISHB450": 87.2,
    "ISJB150": 7.1, "ISJB175": 8.1, "ISJB200": 9.9, "ISJB225": 12.8,
    "ISLC75": 5.7, "ISLC100": 7.9, "ISLC125": 10.7, "ISLC150": 14.4,
    "ISLC175": 17.6, "ISLC200": 20.6, "ISLC225": 24.0, "ISLC250": 28.0,
    "ISLC300": 33.1,
}

# ---------------------------------------------------------------------------
# European sections (kg/m)
# ---------------------------------------------------------------------------
EURO_STEEL_WEIGHTS: Dict[str, float] = {
    "IPE80": 6.0, "IPE100": 8.1, "IPE120": 10.4, "IPE140": 12.9, "IPE160": 15.8,
    "IPE180": 18.8, "IPE200": 22.4, "IPE220": 26.2, "IPE240": 30.7, "IPE270": 36.1,
    "IPE300": 42.2, "IPE330": 49.1, "IPE360": 57.1, "IPE400": 66.3, "IPE450": 77.6,
    "IPE500": 90.7, "IPE550": 106.0, "IPE600": 122.0,
    "HEA100": 16.7, "HEA120": 19.9, "HEA140": 24.7, "HEA160": 30.4, "HEA180": 35.5,
    "HEA200": 42.3, "HEA220": 50.5, "HEA240": 60.3, "HEA260": 68.2, "HEA280": 76.4,
    "HEA300": 88.3, "HEA320": 97.6, "HEA340": 105.0, "HEA360": 112.0, "HEA400": 125.0,
    "HEA450": 140.0, "HEA500": 155.0, "HEA600": 178.0,
    "HEB100": 20.4, "HEB120": 26.7, "HEB140": 33.7, "HEB160": 42.6, "HEB180": 51.2,
    "HEB200": 61.3, "HEB220": 71.5, "HEB240": 83.2, "HEB260": 93.0, "HEB280": 103.0,
    "HEB300": 117.0, "HEB320": 127.0, "HEB340": 134.0, "HEB360": 142.0, "HEB400": 155.0,
    "HEB450": 171.0, "HEB500": 187.0, "HEB600": 212.0,
    "HEM100": 41.8, "HEM120": 52.1, "HEM140": 63.2, "HEM160": 76.2, "HEM180": 88.9,
    "HEM200": 103.0, "HEM220": 117.0, "HEM240": 157.0, "HEM260": 172.0, "HEM280": 189.0,
    "HEM300": 238.0,
    "UPN80": 8.64, "UPN100": 10.6, "UPN120": 13.4, "UPN140": 16.0, "UPN160": 18.8,
    "UPN180": 22.0, "UPN200": 25.3, "UPN220": 29.4, "UPN240": 33.2, "UPN260": 37.9,
    "UPN280": 41.8, "UPN300": 46.2,
    "UPE80": 7.9, "UPE100": 9.82, "UPE120": 12.1, "UPE140": 14.5, "UPE160": 17.0,
    "UPE180": 19.7, "UPE200": 22.8, "UPE220": 26.6, "UPE240": 30.2, "UPE270": 35.2,
    "UPE300": 44.4,
}

# Australian parallel flange channels (kg/m)
AS_PFC_WEIGHTS: Dict[str, float] = {
    "75": 5.92, "100": 8.33, "125": 11.9, "150": 17.7, "180": 20.9,
    "200": 22.9, "230": 25.1, "250": 35.5, "300": 40.1, "380": 55.2,
}

# Cold-formed purlin flange width by web depth (mm)
PURLIN_FLANGE_MM: Dict[int, float] = {
    100: 51.0, 150: 64.0, 200: 76.0, 250: 76.0, 300: 96.0, 350: 129.0, 400: 129.0,
}
_PURLIN_LIP_MM: float = 19.0

# ---------------------------------------------------------------------------
# Rebar
# ---------------------------------------------------------------------------
REBAR_WEIGHTS: Dict[str, float] = {
    # Imperial (lb/ft)
    "#3": 0.376, "#4": 0.668, "#5": 1.043, "#6": 1.502, "#7": 2.044,
    "#8": 2.670, "#9": 3.400, "#10": 4.303, "#11": 5.313, "#14": 7.650, "#18": 13.600,
    # Metric (kg/m)
    "8MM": 0.395, "10MM": 0.617, "12MM": 0.888, "16MM": 1.579, "20MM": 2.466,
    "24MM": 3.551, "25MM": 3.854, "28MM": 4.834, "32MM": 6.313, "36MM": 7.990,
    "40MM": 9.864,
}

# Reinforcement intensity by concrete element
REBAR_INTENSITY_LBS_PER_CY: Dict[str, float] = {
    "footing": 80.0,
    "pile_cap": 100.0,
    "grade_beam": 120.0,
    "slab_on_grade": 40.0,
    "retaining_wall": 110.0,
    "column": 200.0,
    "elevated_slab": 100.0,
}
REBAR_INTENSITY_KG_PER_M3: Dict[str, float] = {
    "footing": 50.0,
    "pile_cap": 60.0,
    "grade_beam": 70.0,
    "slab_on_grade": 25.0,
    "retaining_wall": 65.0,
    "column": 120.0,
    "elevated_slab": 60.0,
}


# ---------------------------------------------------------------------------
# Weight resolution
# ---------------------------------------------------------------------------
def _num(token: str) -> float:
    """'1/4' → 0.25, '3.5' → 3.5, '1-1/2' → 1.5"""
    token = token.strip()
    if "-" in token and "/" in token:
        whole, frac = token.split("-", 1)
        return float(whole) + _num(frac)
    if "/" in token:
        a, b = token.split("/", 1)
        return float(a) / float(b) if float(b) else 0.0
    return float(token)


def _hollow_kg_m(b: float, h: float, t: float) -> float:
    return (2.0 * (b + h) - 4.0 * t) * t * STEEL_DENSITY_KG_M3 / 1e6


def _round_hollow_kg_m(d: float, t: float) -> float:
    return math.pi * (d - t) * t * STEEL_DENSITY_KG_M3 / 1e6


def _angle_kg_m(a: float, b: float, t: float) -> float:
    return (a + b - t) * t * STEEL_DENSITY_KG_M3 / 1e6


_DIMS = r"(\d*\.?\d+(?:-\d+/\d+|/\d+)?)"
_HSS = re.compile(rf"^HSS{_DIMS}X{_DIMS}(?:X{_DIMS})?$")
_PIPE = re.compile(r"^PIPE\s*(\d+(?:\.\d+)?)\s*(STD|XS|XXS)?$")
_L_ANGLE = re.compile(rf"^L{_DIMS}X{_DIMS}X{_DIMS}$")
_METRIC_HOLLOW = re.compile(r"^(SHS|RHS|CHS)(\d+(?:\.\d+)?)X(\d+(?:\.\d+)?)(?:X(\d+(?:\.\d+)?))?$")
_METRIC_ANGLE = re.compile(r"^(?:ISA|EA|UA|RSA)(\d{2,3})X(\d{2,3})X(\d{1,2}(?:\.\d+)?)$")
_AS_SPACED = re.compile(r"^(\d{2,3}) (UB|UC|WB|WC|TFB|PFC)(?: (\d{1,3}(?:\.\d+)?))?$")
_BS_TRIPLE = re.compile(r"^(UB|UC)\d{3}X\d{3}X(\d{2,3}(?:\.\d+)?)$")
_PURLIN = re.compile(r"^([ZC])(\d{3})(?:(\d{2})|X(\d(?:\.\d+)?))$")
_PLATE = re.compile(rf"^(?:[A-Z]+ )?PL{_DIMS}X(\d+(?:\.\d+)?)(?:X(\d+(?:\.\d+)?))?$")
_REBAR_CALLOUT = re.compile(r"^(?:#(\d{1,2})|[NYT](\d{2}))@\d+")
_ROUND_BAR = re.compile(r"^(?:RB|RD)(\d{1,2})$")
_FLAT_BAR = re.compile(r"^FB(\d{2,3})X(\d{1,2})$")
_JOIST = re.compile(r"^(\d{1,2})(K|LH|DLH)(\d{1,2})$")


def steel_weight_per_length(designation: str) -> Optional[Tuple[float, str]]:
    """
    Resolve a normalized designation to (weight, unit) where unit is one of
    "lb/ft", "kg/m" (per unit length) or "kg/ea", "lb/ea" (per piece, plates
    with all three dimensions). Returns None when the section is unknown.
    """
    if not designation:
        return None
    d = designation.strip().upper()
    compact = d.replace(" ", "")

    m = _AISC_NOMINAL_WEIGHT.match(compact)
    if m:
        return float(m.group(3)), "lb/ft"

    if compact in INDIAN_STEEL_WEIGHTS:
        return INDIAN_STEEL_WEIGHTS[compact], "kg/m"
    if compact in EURO_STEEL_WEIGHTS:
        return EURO_STEEL_WEIGHTS[compact], "kg/m"

    m = _HSS.match(compact)
    if m:
        a, b = _num(m.group(1)), _num(m.group(2))
        if m.group(3):
            t = _num(m.group(3)) * 0.93
            area = (2.0 * (a + b) - 4.0 * t) * t
        else:
            t = b * 0.93
            area = math.pi * (a - t) * t
        return round(area * STEEL_LB_FT_PER_IN2, 2), "lb/ft"

    m = _PIPE.match(d)
    if m:
        base = AISC_PIPE_STD_LB_FT.get(m.group(1).rstrip("0").rstrip(".") if "." in m.group(1) else m.group(1))
        if base is None:
            return None
        return round(base * _PIPE_SCHEDULE_FACTOR[m.group(2) or "STD"], 2), "lb/ft"

    m = _L_ANGLE.match(compact)
    if m:
        a, b, t = _num(m.group(1)), _num(m.group(2)), _num(m.group(3))
        return round((a + b - t) * t * STEEL_LB_FT_PER_IN2, 2), "lb/ft"

    m = _JOIST.match(compact)
    if m:
        known = JOIST_LB_FT.get(compact)
        return (known if known else round(0.35 * float(m.group(1)), 2)), "lb/ft"

    m = _AS_SPACED.match(d)
    if m:
        if m.group(2) == "PFC":
            w = AS_PFC_WEIGHTS.get(m.group(1))
            return (w, "kg/m") if w else None
        return (float(m.group(3)), "kg/m") if m.group(3) else None

    m = _BS_TRIPLE.match(compact)
    if m:
        return float(m.group(2)), "kg/m"

    m = _METRIC_HOLLOW.match(compact)
    if m:
        family, a, b = m.group(1), float(m.group(2)), float(m.group(3))
        if family == "CHS":
            return round(_round_hollow_kg_m(a, b), 2), "kg/m"
        if m.group(4) is None:
            return None
        return round(_hollow_kg_m(a, b, float(m.group(4))), 2), "kg/m"

    m = _METRIC_ANGLE.match(compact)
    if m:
        return round(_angle_kg_m(float(m.group(1)), float(m.group(2)), float(m.group(3))), 2), "kg/m"

    m = _PURLIN.match(compact)
    if m:
        depth = float(m.group(2))
        t = float(m.group(3)) / 10.0 if m.group(3) else float(m.group(4))
        flange = PURLIN_FLANGE_MM.get(int(depth), 76.0)
        developed = depth + 2.0 * flange + 2.0 * _PURLIN_LIP_MM
        return round(developed * t * STEEL_DENSITY_KG_M3 / 1e6, 2), "kg/m"

    m = _PLATE.match(d) or _PLATE.match(compact)
    if m:
        t_token = m.group(1)
        t, w = _num(t_token), float(m.group(2))
        imperial = "/" in t_token or (t < 3 and w <= 48)
        if imperial:
            return round(t * w * STEEL_LB_FT_PER_IN2, 2), "lb/ft"
        if m.group(3):
            return round(t * w * float(m.group(3)) * STEEL_DENSITY_KG_M3 / 1e9, 3), "kg/ea"
        return round(t * w * STEEL_DENSITY_KG_M3 / 1e6, 2), "kg/m"

    m = _REBAR_CALLOUT.match(compact)
    if m:
        if m.group(1):
            w = REBAR_WEIGHTS.get(f"#{m.group(1)}")
            return (w, "lb/ft") if w else None
        w = REBAR_WEIGHTS.get(f"{int(m.group(2))}MM")
        return (w, "kg/m") if w else None

    m = _ROUND_BAR.match(compact)
    if m:
        dia = float(m.group(1))
        return round(math.pi / 4.0 * dia * dia * STEEL_DENSITY_KG_M3 / 1e6, 3), "kg/m"

    m = _FLAT_BAR.match(compact)
    if m:
        return round(float(m.group(1)) * float(m.group(2)) * STEEL_DENSITY_KG_M3 / 1e6, 2), "kg/m"

    return None


# ---------------------------------------------------------------------------
# Installed unit rates by currency
# ---------------------------------------------------------------------------
def _table(currency: str, category: str, rows: Dict[str, tuple]) -> Dict[str, CostRate]:
    return {
        subtype: CostRate(
            currency=currency, category=category, subtype=subtype,
            base_rate=float(rate), unit=unit, range=(float(lo), float(hi)), descriptor=desc,
        )
        for subtype, (rate, unit, desc, lo, hi) in rows.items()
    }


UNIT_RATES: Dict[str, Dict[str, Dict[str, CostRate]]] = {
    "USD": {
        "structural_steel": _table("USD", "structural_steel", {
            "light": (3800, "ton", "Light W-shapes (<50 lb/ft), installed", 3000, 4500),
            "medium": (3000, "ton", "Medium W-shapes (50-100 lb/ft), installed", 2500, 3500),
            "heavy": (2600, "ton", "Heavy W-shapes (>100 lb/ft), installed", 2200, 3000),
            "hss": (4200, "ton", "HSS/Tube steel, installed", 3500, 5000),
            "misc_steel": (5000, "ton", "Misc steel (connections, plates, angles)", 4000, 6000),
            "joists": (2200, "ton", "Open web steel joists, installed", 1800, 2800),
            "deck": (5.50, "sf", "Metal deck (1.5\" - 3\"), installed", 4.00, 7.50),
        }),
        "concrete": _table("USD", "concrete", {
            "3000psi": (180, "cy", "3000 PSI concrete, placed & finished", 150, 220),
            "4000psi": (200, "cy", "4000 PSI concrete, placed & finished", 170, 250),
            "5000psi": (230, "cy", "5000 PSI concrete, placed & finished", 190, 280),
            "slab_on_grade": (8.50, "sf", "4-6\" SOG with WWF, complete", 6.50, 12.00),
            "elevated_slab": (18.00, "sf", "Elevated concrete slab, formed & placed", 14.00, 24.00),
            "formwork_wall": (12.00, "sf", "Wall formwork (foundation/retaining)", 9.00, 16.00),
            "formwork_column": (15.00, "sf", "Column formwork", 11.00, 20.00),
        }),
        "rebar": _table("USD", "rebar", {
            "grade60": (1500, "ton", "#3-#11 Grade 60 rebar, placed", 1200, 2000),
            "grade75": (1800, "ton", "#6-#11 Grade 75 rebar, placed", 1400, 2200),
            "wwf": (0.80, "sf", "Welded wire fabric, placed", 0.50, 1.20),
        }),
        "roofing": _table("USD", "roofing", {
            "standing_seam": (14.00, "sf", "Standing seam metal roof", 10.00, 20.00),
            "tpo_single_ply": (9.00, "sf", "TPO single-ply roofing", 6.50, 12.00),
            "built_up": (11.00, "sf", "Built-up roofing (4-ply)", 8.00, 15.00),
            "insulation": (3.50, "sf", "Rigid insulation (R-20)", 2.50, 5.00),
        }),
        "sitework": _table("USD", "sitework", {
            "excavation": (8.00, "cy", "Bulk excavation", 5.00, 14.00),
            "backfill": (12.00, "cy", "Structural backfill, compacted", 8.00, 18.00),
            "grading": (2.50, "sf", "Fine grading", 1.50, 4.00),
        }),
    },
    "INR": {
        "structural_steel": _table("INR", "structural_steel", {
            "light": (75000, "MT", "Light sections, fabricated & erected", 60000, 90000),
            "medium": (68000, "MT", "Medium sections, fabricated & erected", 55000, 82000),
            "heavy": (62000, "MT", "Heavy sections, fabricated & erected", 50000, 75000),
            "hss": (82000, "MT", "Hollow sections, fabricated & erected", 65000, 95000),
            "misc_steel": (90000, "MT", "Misc steel (connections, plates)", 72000, 110000),
            "peb": (55000, "MT", "Pre-engineered building steel", 45000, 68000),
        }),
        "concrete": _table("INR", "concrete", {
            "M25": (5500, "cum", "M25 concrete, placed & finished", 4500, 6800),
            "M30": (6000, "cum", "M30 concrete, placed & finished", 5000, 7500),
            "M40": (7000, "cum", "M40 concrete, placed & finished", 5800, 8500),
            "M50": (8500, "cum", "M50 concrete, placed & finished", 7000, 10000),
        }),
        "rebar": _table("INR", "rebar", {
            "Fe500": (58000, "MT", "Fe500 TMT rebar, cut/bent & placed", 50000, 68000),
            "Fe500D": (62000, "MT", "Fe500D TMT rebar, cut/bent & placed", 54000, 72000),
        }),
        "roofing": _table("INR", "roofing", {
            "metal_sheet": (450, "sqm", "Color coated profile sheet", 350, 600),
            "sandwich_panel": (1200, "sqm", "Insulated sandwich panel (50mm PUF)", 900, 1600),
        }),
    },
    "AED": {
        "structural_steel": _table("AED", "structural_steel", {
            "light": (12000, "MT", "Light sections, fabricated & erected", 9500, 14500),
            "medium": (10500, "MT", "Medium sections, fabricated & erected", 8500, 13000),
            "heavy": (9500, "MT", "Heavy sections, fabricated & erected", 8000, 11500),
            "hss": (13000, "MT", "Hollow sections", 10000, 16000),
        }),
        "concrete": _table("AED", "concrete", {
            "C30": (750, "cum", "C30 concrete, placed & finished", 600, 950),
            "C40": (850, "cum", "C40 concrete, placed & finished", 700, 1050),
            "C50": (1000, "cum", "C50 concrete, placed & finished", 800, 1200),
        }),
        "rebar": _table("AED", "rebar", {
            "grade460": (4500, "MT", "Grade 460 rebar, placed", 3500, 5800),
            "grade500": (5000, "MT", "Grade 500 rebar, placed", 4000, 6200),
        }),
    },
    "GBP": {
        "structural_steel": _table("GBP", "structural_steel", {
            "light": (3200, "tonne", "Light sections, installed", 2600, 3800),
            "medium": (2800, "tonne", "Medium sections, installed", 2200, 3400),
            "heavy": (2500, "tonne", "Heavy sections, installed", 2000, 3000),
        }),
        "concrete": _table("GBP", "concrete", {
            "C30": (120, "cum", "C30 concrete, placed", 95, 150),
            "C40": (140, "cum", "C40 concrete, placed", 110, 175),
        }),
        "rebar": _table("GBP", "rebar", {
            "B500B": (1150, "tonne", "B500B rebar, cut/bent & fixed", 950, 1400),
        }),
    },
    "AUD": {
        "structural_steel": _table("AUD", "structural_steel", {
            "light": (6200, "tonne", "Light sections, supplied & erected", 5200, 7400),
            "medium": (5600, "tonne", "Medium sections, supplied & erected", 4800, 6600),
            "heavy": (5200, "tonne", "Heavy sections, supplied & erected", 4400, 6100),
            "hss": (6800, "tonne", "Hollow sections, supplied & erected", 5800, 8000),
        }),
        "concrete": _table("AUD", "concrete", {
            "N32": (320, "cum", "N32 concrete, supplied & placed", 270, 380),
            "N40": (350, "cum", "N40 concrete, supplied & placed", 300, 420),
        }),
        "rebar": _table("AUD", "rebar", {
            "n12_bars": (2800, "tonne", "N-class bars, cut/bent & fixed", 2400, 3300),
            "sl82_mesh": (9.20, "sqm", "SL82 mesh, fixed", 7.50, 11.00),
        }),
    },
}


# ---------------------------------------------------------------------------
# Trade rates: supply / fabrication / treatment / erection / connections
# Mass-based rates are per ton unit of the table ("ton" = 2000 lb, "tonne" = 1000 kg).
# ---------------------------------------------------------------------------
TRADE_RATES: Dict[str, Dict[str, Dict[str, CostRate]]] = {
    "USD": {
        "steel_supply": _table("USD", "steel_supply", {
            "light": (1900, "ton", "Structural steel supply, light sections", 1600, 2300),
            "medium": (1700, "ton", "Structural steel supply, medium sections", 1450, 2000),
            "heavy": (1550, "ton", "Structural steel supply, heavy sections", 1300, 1850),
            "hss": (2300, "ton", "Hollow structural section supply", 1950, 2700),
            "angle": (1650, "ton", "Angle supply", 1400, 1950),
            "purlin": (1800, "ton", "Cold-formed purlin/girt supply", 1500, 2150),
            "plate": (1500, "ton", "Plate supply", 1250, 1800),
            "bar": (1300, "ton", "Bar supply", 1100, 1550),
            "misc": (2000, "ton", "Miscellaneous steel supply", 1700, 2400),
        }),
        "fabrication": _table("USD", "fabrication", {
            "simple": (700, "ton", "Fabrication, simple members", 550, 900),
            "medium": (1100, "ton", "Fabrication, moderate connections", 900, 1350),
            "complex": (1650, "ton", "Fabrication, complex members", 1350, 2000),
            "plate_work": (1400, "ton", "Plate cutting, drilling & welding", 1150, 1700),
        }),
        "surface_treatment": _table("USD", "surface_treatment", {
            "galvanizing": (650, "ton", "Hot-dip galvanizing", 520, 800),
            "galvanizing_minimum": (250, "item", "Galvanizing minimum charge", 200, 300),
        }),
        "erection": _table("USD", "erection", {
            "low_rise": (600, "ton", "Erection, up to 20 ft", 480, 750),
            "mid_rise": (780, "ton", "Erection, 20-50 ft", 620, 950),
            "high_rise": (980, "ton", "Erection, above 50 ft", 800, 1200),
            "purlin": (850, "ton", "Purlin/girt erection", 700, 1050),
        }),
        "connections": _table("USD", "connections", {
            "bolt_1/2": (4.0, "each", "1/2\" structural bolt set", 3.0, 5.0),
            "bolt_5/8": (6.0, "each", "5/8\" structural bolt set", 4.5, 7.5),
            "bolt_3/4": (8.0, "each", "3/4\" structural bolt set", 6.0, 10.0),
            "bolt_7/8": (11.0, "each", "7/8\" structural bolt set", 8.5, 14.0),
            "bolt_1": (15.0, "each", "1\" structural bolt set", 12.0, 19.0),
            "m12": (4.0, "each", "M12 bolt set", 3.0, 5.0),
            "m16": (6.0, "each", "M16 bolt set", 4.5, 7.5),
            "m20": (8.0, "each", "M20 bolt set", 6.0, 10.0),
            "m24": (12.0, "each", "M24 bolt set", 9.0, 15.0),
            "m30": (18.0, "each", "M30 bolt set", 14.0, 22.0),
            "anchor_bolt": (45.0, "each", "Cast-in anchor bolt", 35.0, 60.0),
        }),
        "hardware": _table("USD", "hardware", {
            "washer": (0.8, "each", "Hardened washer", 0.5, 1.2),
            "nut": (1.2, "each", "Heavy hex nut", 0.8, 1.6),
        }),
    },
    "AUD": {
        "steel_supply": _table("AUD", "steel_supply", {
            "light": (3150, "tonne", "Structural steel supply (UB/UC/PFC)", 2800, 3500),
            "medium": (3150, "tonne", "Structural steel supply (UB/UC/PFC)", 2800, 3500),
            "heavy": (3050, "tonne", "Structural steel supply, heavy sections", 2700, 3400),
            "hss": (3400, "tonne", "SHS/RHS/CHS supply", 3000, 3800),
            "angle": (3100, "tonne", "Angle supply", 2750, 3450),
            "purlin": (3100, "tonne", "Z/C purlin supply", 2750, 3450),
            "plate": (2800, "tonne", "Plate supply", 2500, 3100),
            "bar": (2600, "tonne", "Bar supply", 2300, 2900),
            "misc": (3300, "tonne", "Miscellaneous steel supply", 2900, 3700),
        }),
        "fabrication": _table("AUD", "fabrication", {
            "simple": (800, "tonne", "Fabrication, simple", 650, 950),
            "medium": (1200, "tonne", "Fabrication, medium", 1000, 1400),
            "complex": (1800, "tonne", "Fabrication, complex", 1500, 2100),
            "plate_work": (1500, "tonne", "Plate work", 1250, 1750),
        }),
        "surface_treatment": _table("AUD", "surface_treatment", {
            "galvanizing": (800, "tonne", "Hot-dip galvanizing", 650, 950),
            "galvanizing_minimum": (150, "item", "Galvanizing minimum charge", 120, 180),
        }),
        "erection": _table("AUD", "erection", {
            "low_rise": (650, "tonne", "Steel erection, up to 6 m", 550, 750),
            "mid_rise": (780, "tonne", "Steel erection, 6-15 m", 650, 900),
            "high_rise": (950, "tonne", "Steel erection, above 15 m", 800, 1100),
            "purlin": (950, "tonne", "Purlin erection", 800, 1100),
        }),
        "connections": _table("AUD", "connections", {
            "m12": (12.0, "each", "M12 bolt assembly", 10.0, 14.0),
            "m16": (18.0, "each", "M16 bolt assembly", 15.0, 21.0),
            "m20": (25.0, "each", "M20 bolt assembly", 21.0, 29.0),
            "m24": (35.0, "each", "M24 bolt assembly", 30.0, 40.0),
            "anchor_bolt": (42.0, "each", "M16 chemical anchor", 36.0, 48.0),
        }),
        "hardware": _table("AUD", "hardware", {
            "washer": (1.5, "each", "Hardened washer", 1.0, 2.0),
            "nut": (2.0, "each", "Hex nut", 1.5, 2.5),
        }),
    },
    "INR": {
        "steel_supply": _table("INR", "steel_supply", {
            "light": (58000, "MT", "Structural steel supply, light", 52000, 64000),
            "medium": (54000, "MT", "Structural steel supply, medium", 49000, 60000),
            "heavy": (52000, "MT", "Structural steel supply, heavy", 47000, 58000),
            "hss": (64000, "MT", "Hollow section supply", 58000, 71000),
            "angle": (55000, "MT", "Angle supply", 50000, 61000),
            "purlin": (60000, "MT", "Cold-formed purlin supply", 54000, 67000),
            "plate": (56000, "MT", "Plate supply", 50000, 62000),
            "bar": (52000, "MT", "Bar supply", 47000, 58000),
            "peb": (48000, "MT", "PEB built-up member supply", 43000, 54000),
            "misc": (62000, "MT", "Miscellaneous steel supply", 55000, 69000),
        }),
        "fabrication": _table("INR", "fabrication", {
            "simple": (9000, "MT", "Fabrication, simple", 7500, 11000),
            "medium": (13000, "MT", "Fabrication, medium", 11000, 15500),
            "complex": (18000, "MT", "Fabrication, complex", 15000, 22000),
            "plate_work": (15000, "MT", "Plate work", 12500, 18000),
        }),
        "surface_treatment": _table("INR", "surface_treatment", {
            "galvanizing": (14000, "MT", "Hot-dip galvanizing", 11500, 17000),
            "galvanizing_minimum": (5000, "item", "Galvanizing minimum charge", 4000, 6000),
        }),
        "erection": _table("INR", "erection", {
            "low_rise": (6500, "MT", "Erection, up to 6 m", 5500, 7500),
            "mid_rise": (8000, "MT", "Erection, 6-15 m", 6800, 9300),
            "high_rise": (10500, "MT", "Erection, above 15 m", 9000, 12000),
            "purlin": (9000, "MT", "Purlin erection", 7500, 10500),
        }),
        "connections": _table("INR", "connections", {
            "m12": (25.0, "each", "M12 bolt set", 20.0, 30.0),
            "m16": (40.0, "each", "M16 bolt set", 32.0, 48.0),
            "m20": (60.0, "each", "M20 bolt set", 50.0, 72.0),
            "m24": (90.0, "each", "M24 bolt set", 75.0, 105.0),
            "anchor_bolt": (450.0, "each", "Foundation bolt", 380.0, 520.0),
        }),
        "hardware": _table("INR", "hardware", {
            "washer": (5.0, "each", "Washer", 4.0, 6.0),
            "nut": (8.0, "each", "Hex nut", 6.0, 10.0),
        }),
    },
    "AED": {
        "steel_supply": _table("AED", "steel_supply", {
            "light": (4200, "MT", "Structural steel supply, light", 3800, 4700),
            "medium": (3900, "MT", "Structural steel supply, medium", 3500, 4400),
            "heavy": (3700, "MT", "Structural steel supply, heavy", 3300, 4200),
            "hss": (4800, "MT", "Hollow section supply", 4300, 5400),
            "angle": (4000, "MT", "Angle supply", 3600, 4500),
            "purlin": (4300, "MT", "Cold-formed purlin supply", 3900, 4800),
            "plate": (3800, "MT", "Plate supply", 3400, 4300),
            "bar": (3500, "MT", "Bar supply", 3100, 3900),
            "misc": (4500, "MT", "Miscellaneous steel supply", 4000, 5100),
        }),
        "fabrication": _table("AED", "fabrication", {
            "simple": (2200, "MT", "Fabrication, simple", 1800, 2600),
            "medium": (3200, "MT", "Fabrication, medium", 2700, 3700),
            "complex": (4500, "MT", "Fabrication, complex", 3800, 5200),
            "plate_work": (3800, "MT", "Plate work", 3200, 4400),
        }),
        "surface_treatment": _table("AED", "surface_treatment", {
            "galvanizing": (2400, "MT", "Hot-dip galvanizing", 2000, 2800),
            "galvanizing_minimum": (500, "item", "Galvanizing minimum charge", 400, 600),
        }),
        "erection": _table("AED", "erection", {
            "low_rise": (1500, "MT", "Erection, up to 6 m", 1250, 1750),
            "mid_rise": (1900, "MT", "Erection, 6-15 m", 1600, 2200),
            "high_rise": (2400, "MT", "Erection, above 15 m", 2000, 2800),
            "purlin": (2000, "MT", "Purlin erection", 1700, 2300),
        }),
        "connections": _table("AED", "connections", {
            "m12": (3.0, "each", "M12 bolt set", 2.5, 3.5),
            "m16": (5.0, "each", "M16 bolt set", 4.0, 6.0),
            "m20": (8.0, "each", "M20 bolt set", 6.5, 9.5),
            "m24": (12.0, "each", "M24 bolt set", 10.0, 14.0),
            "anchor_bolt": (65.0, "each", "Anchor bolt", 55.0, 75.0),
        }),
        "hardware": _table("AED", "hardware", {
            "washer": (0.5, "each", "Washer", 0.4, 0.6),
            "nut": (1.0, "each", "Hex nut", 0.8, 1.2),
        }),
    },
    "GBP": {
        "steel_supply": _table("GBP", "steel_supply", {
            "light": (1450, "tonne", "Structural steel supply, light", 1250, 1650),
            "medium": (1350, "tonne", "Structural steel supply, medium", 1150, 1550),
            "heavy": (1300, "tonne", "Structural steel supply, heavy", 1100, 1500),
            "hss": (1700, "tonne", "Hollow section supply", 1450, 1950),
            "angle": (1400, "tonne", "Angle supply", 1200, 1600),
            "purlin": (1500, "tonne", "Cold-formed purlin supply", 1300, 1700),
            "plate": (1250, "tonne", "Plate supply", 1050, 1450),
            "bar": (1100, "tonne", "Bar supply", 950, 1250),
            "misc": (1600, "tonne", "Miscellaneous steel supply", 1350, 1850),
        }),
        "fabrication": _table("GBP", "fabrication", {
            "simple": (650, "tonne", "Fabrication, simple", 550, 750),
            "medium": (950, "tonne", "Fabrication, medium", 800, 1100),
            "complex": (1400, "tonne", "Fabrication, complex", 1200, 1650),
            "plate_work": (1200, "tonne", "Plate work", 1000, 1400),
        }),
        "surface_treatment": _table("GBP", "surface_treatment", {
            "galvanizing": (550, "tonne", "Hot-dip galvanizing", 450, 650),
            "galvanizing_minimum": (180, "item", "Galvanizing minimum charge", 150, 220),
        }),
        "erection": _table("GBP", "erection", {
            "low_rise": (450, "tonne", "Erection, up to 6 m", 380, 520),
            "mid_rise": (550, "tonne", "Erection, 6-15 m", 460, 640),
            "high_rise": (700, "tonne", "Erection, above 15 m", 600, 820),
            "purlin": (600, "tonne", "Purlin erection", 500, 700),
        }),
        "connections": _table("GBP", "connections", {
            "m12": (1.5, "each", "M12 bolt set", 1.2, 1.8),
            "m16": (2.5, "each", "M16 bolt set", 2.0, 3.0),
            "m20": (3.5, "each", "M20 bolt set", 2.8, 4.2),
            "m24": (5.0, "each", "M24 bolt set", 4.0, 6.0),
            "anchor_bolt": (22.0, "each", "Anchor bolt", 18.0, 26.0),
        }),
        "hardware": _table("GBP", "hardware", {
            "washer": (0.2, "each", "Washer", 0.15, 0.3),
            "nut": (0.3, "each", "Hex nut", 0.2, 0.4),
        }),
    },
}

# Units per ton unit, used to turn per-ton rates into per-mass-unit rates
TON_UNIT_MASS: Dict[str, Tuple[float, str]] = {
    "ton": (2000.0, "lbs"),
    "tonne": (1000.0, "kg"),
    "MT": (1000.0, "kg"),
}

# Currencies without their own tables are converted from USD
FX_PER_USD: Dict[str, float] = {
    "USD": 1.0, "INR": 83.0, "AED": 3.6725, "GBP": 0.79, "EUR": 0.92,
    "AUD": 1.52, "CAD": 1.36, "SAR": 3.75, "QAR": 3.64, "OMR": 0.385,
    "KWD": 0.307, "BHD": 0.376, "SGD": 1.34,
}

TAX_RATES: Dict[str, Tuple[float, str]] = {
    "USD": (0.0, "Sales tax"),
    "AUD": (0.10, "GST"),
    "GBP": (0.20, "VAT"),
    "EUR": (0.20, "VAT"),
    "INR": (0.18, "GST"),
    "AED": (0.05, "VAT"),
    "SAR": (0.15, "VAT"),
    "CAD": (0.05, "GST"),
    "SGD": (0.09, "GST"),
    "OMR": (0.05, "VAT"),
    "BHD": (0.10, "VAT"),
    "QAR": (0.0, "Tax"),
    "KWD": (0.0, "Tax"),
}


# ---------------------------------------------------------------------------
# Location factors (RSMeans-style city index)
# ---------------------------------------------------------------------------
def _loc(factor: float, currency: str, country: str) -> Tuple[float, str, str]:
    return (factor, currency, country)


LOCATION_FACTORS: Dict[str, Tuple[float, str, str]] = {
    # US
    "new york": _loc(1.32, "USD", "US"), "nyc": _loc(1.32, "USD", "US"),
    "manhattan": _loc(1.38, "USD", "US"), "los angeles": _loc(1.12, "USD", "US"),
    "san francisco": _loc(1.28, "USD", "US"), "chicago": _loc(1.15, "USD", "US"),
    "houston": _loc(0.92, "USD", "US"), "dallas": _loc(0.90, "USD", "US"),
    "phoenix": _loc(0.93, "USD", "US"), "philadelphia": _loc(1.18, "USD", "US"),
    "san antonio": _loc(0.88, "USD", "US"), "san diego": _loc(1.10, "USD", "US"),
    "austin": _loc(0.91, "USD", "US"), "jacksonville": _loc(0.87, "USD", "US"),
    "charlotte": _loc(0.86, "USD", "US"), "seattle": _loc(1.15, "USD", "US"),
    "denver": _loc(1.02, "USD", "US"), "boston": _loc(1.24, "USD", "US"),
    "nashville": _loc(0.92, "USD", "US"), "atlanta": _loc(0.93, "USD", "US"),
    "miami": _loc(0.98, "USD", "US"), "tampa": _loc(0.91, "USD", "US"),
    "portland": _loc(1.08, "USD", "US"), "las vegas": _loc(1.05, "USD", "US"),
    "detroit": _loc(1.05, "USD", "US"), "pittsburgh": _loc(1.04, "USD", "US"),
    "washington": _loc(1.08, "USD", "US"), "dc": _loc(1.08, "USD", "US"),
    "minneapolis": _loc(1.10, "USD", "US"), "cleveland": _loc(1.02, "USD", "US"),
    "st louis": _loc(1.03, "USD", "US"), "kansas city": _loc(0.98, "USD", "US"),
    "raleigh": _loc(0.87, "USD", "US"), "salt lake city": _loc(0.95, "USD", "US"),
    "honolulu": _loc(1.35, "USD", "US"), "anchorage": _loc(1.28, "USD", "US"),
    # India
    "mumbai": _loc(1.15, "INR", "IN"), "new delhi": _loc(1.10, "INR", "IN"),
    "delhi": _loc(1.10, "INR", "IN"), "bangalore": _loc(1.08, "INR", "IN"),
    "bengaluru": _loc(1.08, "INR", "IN"), "hyderabad": _loc(1.00, "INR", "IN"),
    "chennai": _loc(1.02, "INR", "IN"), "pune": _loc(1.05, "INR", "IN"),
    "kolkata": _loc(0.95, "INR", "IN"), "ahmedabad": _loc(0.95, "INR", "IN"),
    "jaipur": _loc(0.90, "INR", "IN"), "lucknow": _loc(0.88, "INR", "IN"),
    "surat": _loc(0.92, "INR", "IN"), "chandigarh": _loc(0.98, "INR", "IN"),
    "gurgaon": _loc(1.12, "INR", "IN"), "gurugram": _loc(1.12, "INR", "IN"),
    "noida": _loc(1.08, "INR", "IN"), "indore": _loc(0.85, "INR", "IN"),
    "nagpur": _loc(0.88, "INR", "IN"), "bhopal": _loc(0.85, "INR", "IN"),
    "visakhapatnam": _loc(0.90, "INR", "IN"), "coimbatore": _loc(0.92, "INR", "IN"),
    "kochi": _loc(0.98, "INR", "IN"), "thiruvananthapuram": _loc(0.95, "INR", "IN"),
    # GCC
    "dubai": _loc(1.10, "AED", "AE"), "abu dhabi": _loc(1.15, "AED", "AE"),
    "sharjah": _loc(0.95, "AED", "AE"), "ajman": _loc(0.90, "AED", "AE"),
    "riyadh": _loc(1.05, "SAR", "SA"), "jeddah": _loc(1.00, "SAR", "SA"),
    "dammam": _loc(0.95, "SAR", "SA"), "doha": _loc(1.20, "QAR", "QA"),
    "muscat": _loc(1.00, "OMR", "OM"), "kuwait city": _loc(1.10, "KWD", "KW"),
    "manama": _loc(1.05, "BHD", "BH"),
    # UK
    "london": _loc(1.25, "GBP", "GB"), "manchester": _loc(0.92, "GBP", "GB"),
    "birmingham": _loc(0.90, "GBP", "GB"), "leeds": _loc(0.88, "GBP", "GB"),
    "edinburgh": _loc(0.95, "GBP", "GB"), "glasgow": _loc(0.90, "GBP", "GB"),
    "bristol": _loc(0.95, "GBP", "GB"),
    # Other
    "toronto": _loc(1.10, "CAD", "CA"), "vancouver": _loc(1.15, "CAD", "CA"),
    "sydney": _loc(1.15, "AUD", "AU"), "melbourne": _loc(1.12, "AUD", "AU"),
    "brisbane": _loc(1.05, "AUD", "AU"), "perth": _loc(1.00, "AUD", "AU"),
    "adelaide": _loc(0.98, "AUD", "AU"), "singapore": _loc(1.20, "SGD", "SG"),
}

# Country-level defaults: (pattern, currency, country)
COUNTRY_DEFAULTS: Tuple[Tuple[str, str, str], ...] = (
    (r"\bindia\b", "INR", "IN"),
    (r"\buae\b|\bunited arab\b|\bemirates\b", "AED", "AE"),
    (r"\buk\b|\bunited kingdom\b|\bengland\b|\bscotland\b|\bwales\b", "GBP", "GB"),
    (r"\bcanada\b", "CAD", "CA"),
    (r"\baustralia\b", "AUD", "AU"),
    (r"\bsaudi\b|\bksa\b", "SAR", "SA"),
    (r"\bqatar\b", "QAR", "QA"),
    (r"\bsingapore\b", "SGD", "SG"),
)


def get_location_factor(location: Optional[str]) -> LocationFactor:
    """
    Resolve a free-text location to its multiplier and currency.
    Longest city name wins so "new delhi" is preferred over "delhi".
    Unknown locations get factor 1.0 / USD with matched=False.
    """
    if not location or not str(location).strip():
        return LocationFactor(location="", multiplier=1.0, currency="USD", country="US", matched=False)

    normalized = str(location).lower().strip()
    for city in sorted(LOCATION_FACTORS, key=len, reverse=True):
        if re.search(rf"\b{re.escape(city)}\b", normalized):
            factor, currency, country = LOCATION_FACTORS[city]
            return LocationFactor(location=city, multiplier=factor, currency=currency, country=country, matched=True)

    for pattern, currency, country in COUNTRY_DEFAULTS:
        if re.search(pattern, normalized):
            return LocationFactor(location=normalized, multiplier=1.0, currency=currency, country=country, matched=True)

    return LocationFactor(location=normalized, multiplier=1.0, currency="USD", country="US", matched=False)


# ---------------------------------------------------------------------------
# Benchmark ranges (cost per building area)
# ---------------------------------------------------------------------------
BENCHMARK_RANGES: Dict[str, Dict[str, dict]] = {
    "USD": {
        "industrial": {"low": 80, "mid": 140, "high": 200, "unit": "sqft", "label": "Industrial/Warehouse"},
        "warehouse": {"low": 60, "mid": 110, "high": 180, "unit": "sqft", "label": "Warehouse"},
        "commercial": {"low": 150, "mid": 250, "high": 350, "unit": "sqft", "label": "Commercial Office"},
        "retail": {"low": 100, "mid": 175, "high": 280, "unit": "sqft", "label": "Retail"},
        "residential_multi": {"low": 150, "mid": 220, "high": 300, "unit": "sqft", "label": "Residential (Multi-Family)"},
        "healthcare": {"low": 300, "mid": 500, "high": 700, "unit": "sqft", "label": "Healthcare"},
        "educational": {"low": 200, "mid": 300, "high": 400, "unit": "sqft", "label": "Educational"},
        "peb": {"low": 40, "mid": 80, "high": 120, "unit": "sqft", "label": "Pre-Engineered Building"},
        "parking": {"low": 40, "mid": 65, "high": 100, "unit": "sqft", "label": "Parking Structure"},
    },
    "INR": {
        "industrial": {"low": 2000, "mid": 3500, "high": 5000, "unit": "sqft", "label": "Industrial/Warehouse"},
        "warehouse": {"low": 1500, "mid": 2800, "high": 4500, "unit": "sqft", "label": "Warehouse"},
        "commercial": {"low": 3000, "mid": 5500, "high": 8000, "unit": "sqft", "label": "Commercial Office"},
        "peb": {"low": 1200, "mid": 2000, "high": 3000, "unit": "sqft", "label": "Pre-Engineered Building"},
    },
    "AED": {
        "industrial": {"low": 300, "mid": 550, "high": 800, "unit": "sqft", "label": "Industrial/Warehouse"},
        "warehouse": {"low": 250, "mid": 450, "high": 700, "unit": "sqft", "label": "Warehouse"},
        "commercial": {"low": 600, "mid": 1000, "high": 1400, "unit": "sqft", "label": "Commercial Office"},
        "peb": {"low": 150, "mid": 300, "high": 450, "unit": "sqft", "label": "Pre-Engineered Building"},
    },
    "GBP": {
        "industrial": {"low": 70, "mid": 120, "high": 180, "unit": "sqft", "label": "Industrial/Warehouse"},
        "commercial": {"low": 130, "mid": 220, "high": 320, "unit": "sqft", "label": "Commercial Office"},
        "educational": {"low": 170, "mid": 260, "high": 360, "unit": "sqft", "label": "Educational"},
    },
}


def get_benchmark_range(currency: str, project_type: Optional[str]) -> Optional[dict]:
    table = BENCHMARK_RANGES.get((currency or "").upper())
    if not table or not project_type:
        return None
    normalized = re.sub(r"[\s\-/]+", "_", str(project_type).lower())
    normalized = re.sub(r"pre_engineered|pre_eng|\bpeb\b", "peb", normalized)
    normalized = normalized.replace("office", "commercial")
    normalized = re.sub(r"factory|manufacturing", "industrial", normalized)
    if normalized in table:
        return dict(table[normalized])
    for key, data in table.items():
        if key in normalized or normalized in key:
            return dict(data)
    return None


def classify_steel_weight(weight_lb_ft: float) -> str:
    if weight_lb_ft < 50:
        return "light"
    if weight_lb_ft <= 100:
        return "medium"
    return "heavy"
