"""Unit-system constants and length parsing shared by extraction and takeoff."""
import re
from typing import Optional, Union

IMPERIAL = "Imperial"
METRIC = "Metric"

# ---------------------------------------------------------------------------
# Conversion constants
# ---------------------------------------------------------------------------
FT_PER_M: float = 3.28084
KG_PER_LB: float = 0.453592
KG_M_TO_LB_FT: float = 0.671969         # 1 kg/m in lb/ft
LB_FT_TO_KG_M: float = 1.488164
CF_PER_CY: float = 27.0
LBS_PER_TON: float = 2000.0             # US short ton
KG_PER_TONNE: float = 1000.0
STEEL_DENSITY_KG_M3: float = 7850.0
STEEL_LB_FT_PER_IN2: float = 3.40       # lb/ft per in² of section area
SQFT_PER_SQM: float = 10.7639
M3_PER_CY: float = 0.764555


def normalize_unit_system(value: Optional[str]) -> str:
    if value and str(value).strip().lower().startswith("met"):
        return METRIC
    return IMPERIAL


def unit_labels(unit_system: str) -> dict:
    if normalize_unit_system(unit_system) == METRIC:
        return {
            "length": "m", "mass": "kg", "ton": "tonnes", "volume": "m3",
            "area": "m2", "weight_per_length": "kg/m", "divisor": KG_PER_TONNE,
            "rebar_intensity": "kg/m3",
        }
    return {
        "length": "ft", "mass": "lbs", "ton": "tons", "volume": "CY",
        "area": "SF", "weight_per_length": "lb/ft", "divisor": LBS_PER_TON,
        "rebar_intensity": "lbs/CY",
    }


# ---------------------------------------------------------------------------
# Length parsing
# ---------------------------------------------------------------------------
_FT_IN = re.compile(
    r"(\d+(?:\.\d+)?)\s*['′]\s*-?\s*(?:(\d{1,2})(?:\s+(\d{1,2})/(\d{1,2}))?\s*(?:[\"″]|'')?)?"
)
_INCHES = re.compile(r"(\d+(?:\.\d+)?)\s*(?:[\"″]|IN\b|INCH(?:ES)?\b)", re.IGNORECASE)
_METRIC = re.compile(r"(\d+(?:\.\d+)?)\s*(MM|CM|M)\b", re.IGNORECASE)
_FEET_WORD = re.compile(r"(\d+(?:\.\d+)?)\s*(?:FT|FEET)\b", re.IGNORECASE)
_BARE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*$")


def parse_length(value: Union[str, int, float, None], unit_system: str = IMPERIAL) -> Optional[float]:
    """
    Parse a drawing length into the run's base unit (ft for Imperial, m for
    Metric). Accepts 30'-0", 6'-6 1/2", 18", 9000mm, 6.5 m, 20 FT or a bare
    number. A bare metric number of 100 or more is read as millimetres.
    Returns None when no length can be read.
    """
    if value is None:
        return None
    system = normalize_unit_system(unit_system)
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None

    text = str(value).strip()
    if not text:
        return None

    feet = None
    metres = None

    m = _FT_IN.search(text)
    if m:
        feet = float(m.group(1))
        if m.group(2):
            feet += float(m.group(2)) / 12.0
        if m.group(3) and m.group(4) and float(m.group(4)) > 0:
            feet += float(m.group(3)) / float(m.group(4)) / 12.0
    else:
        m = _METRIC.search(text)
        if m:
            scale = {"MM": 0.001, "CM": 0.01, "M": 1.0}[m.group(2).upper()]
            metres = float(m.group(1)) * scale
        else:
            m = _INCHES.search(text)
            if m:
                feet = float(m.group(1)) / 12.0
            else:
                m = _FEET_WORD.search(text)
                if m:
                    feet = float(m.group(1))
                else:
                    m = _BARE.match(text)
                    if not m:
                        return None
                    number = float(m.group(1))
                    if system == METRIC:
                        metres = number / 1000.0 if number >= 100 else number
                    else:
                        feet = number

    if feet is not None:
        result = feet if system == IMPERIAL else feet / FT_PER_M
    else:
        result = metres if system == METRIC else metres * FT_PER_M
    return round(result, 4) if result and result > 0 else None


def format_number(value: float, places: int = 2) -> str:
    """12.0 → '12', 53.3333 → '53.33' for calculation strings."""
    rounded = round(float(value), places)
    if rounded == int(rounded):
        return f"{int(rounded):,}"
    return f"{rounded:,.{places}f}".rstrip("0").rstrip(".")
