"""
Cost lookup over the static reference tables.

All functions are pure: they read the module-level tables in
reference_data.py and return RateQuote records (or None for a generic miss).
Installed rates are location-adjusted by the city index. Every quote is
tagged with where its number came from:

  DB         direct hit in the currency's table
  FUZZY      subtype matched by substring
  DEFAULT    converted from the USD table, or a default grade/tier was used
  NOT_FOUND  nothing usable; rate 0
"""
import json
import logging
import re
from datetime import date
from typing import Optional, Union

from estimator.models.drawing_models import LocationFactor, RateQuote
from estimator.services import reference_data
from estimator.services.reference_data import (
    FX_PER_USD,
    TRADE_RATES,
    UNIT_RATES,
    classify_steel_weight,
    steel_weight_per_length,
)

logger = logging.getLogger("estimator-costs")

# kg/m → lb/ft for weight classing
KG_M_TO_LB_FT_APPROX = 0.672

CONCRETE_GRADE_MAP = {
    # US / Imperial grades (PSI)
    "3000PSI": "3000psi", "3000": "3000psi", "3500PSI": "3000psi",
    "4000PSI": "4000psi", "4000": "4000psi", "4500PSI": "4000psi",
    "5000PSI": "5000psi", "5000": "5000psi", "6000PSI": "5000psi",
    # Indian grades
    "M20": "M25", "M25": "M25",
    "M30": "M30", "M35": "M30",
    "M40": "M40", "M45": "M40",
    "M50": "M50", "M55": "M50", "M60": "M50",
    # British / European grades
    "C25": "C30", "C28": "C30", "C30": "C30", "C32": "C30", "C35": "C30",
    "C40": "C40", "C45": "C40",
    "C50": "C50", "C55": "C50", "C60": "C50",
    # Australian grades
    "N32": "N32", "N40": "N40",
}

_DEFAULT_CONCRETE_GRADE = {"INR": "M30", "AED": "C40", "GBP": "C30", "AUD": "N32"}

_CURRENCY_WORDS = (
    (r"INR|RUPEE|₹", "INR"),
    (r"AED|DIRHAM", "AED"),
    (r"GBP|POUND|£", "GBP"),
    (r"EUR|€", "EUR"),
    (r"CAD|C\$", "CAD"),
    (r"AUD|A\$", "AUD"),
    (r"SAR|RIYAL", "SAR"),
    (r"USD|\$", "USD"),
)

_KEYWORD_CURRENCY = (
    (r"india|mumbai|delhi|bangalore|bengaluru|chennai|kolkata|rupee|\binr\b", "INR"),
    (r"dubai|abu dhabi|\buae\b|sharjah|dirham|\baed\b", "AED"),
    (r"london|manchester|\buk\b|united kingdom|\bgbp\b|pound", "GBP"),
    (r"australia|sydney|melbourne|brisbane|\baud\b", "AUD"),
    (r"canada|toronto|vancouver|\bcad\b", "CAD"),
)


def get_location_factor(location: Optional[str]) -> LocationFactor:
    return reference_data.get_location_factor(location)


def get_benchmark_range(currency: str, project_type: Optional[str]) -> Optional[dict]:
    return reference_data.get_benchmark_range(currency, project_type)


def adjust_for_location(base_rate: float, location: Optional[str]) -> float:
    """Apply the city index to a base rate, rounded to 2 dp."""
    return round(base_rate * get_location_factor(location).multiplier, 2)


def get_escalation_factor(
    start_date: Union[str, date, None],
    duration_months: Optional[float],
    annual_rate: float = 0.04,
) -> float:
    """
    Mid-point escalation multiplier: expenditure is assumed spread evenly, so
    the average cost sits at half the duration. The annual rate is clamped to
    [0, 0.10]. ``start_date`` is informational only.
    """
    if not duration_months or duration_months <= 0:
        return 1.0
    rate = max(0.0, min(float(annual_rate), 0.10))
    midpoint_years = (duration_months / 12.0) / 2.0
    return round(1.0 + rate * midpoint_years, 4)


def _quote(rate, location: Optional[str], source: str, rounding: int = 2, weight_class: str = "") -> RateQuote:
    factor = get_location_factor(location).multiplier if location else 1.0
    adjusted = round(rate.base_rate * factor, rounding) if rounding else float(round(rate.base_rate * factor))
    return RateQuote(
        rate=adjusted,
        unit=rate.unit,
        currency=rate.currency,
        category=rate.category,
        subtype=rate.subtype,
        base_rate=rate.base_rate,
        location_factor=factor,
        range=tuple(float(round(r * factor)) for r in rate.range),
        descriptor=rate.descriptor,
        source=source,
        weight_class=weight_class,
    )


def _find(tables: dict, currency: str, category: str, subtype: str):
    """Direct hit, then substring match on the subtype. Returns (CostRate, source) or None."""
    rows = tables.get(currency, {}).get(category)
    if not rows or not (subtype or "").strip():
        return None
    if subtype in rows:
        return rows[subtype], "DB"
    wanted = subtype.lower()
    for key, rate in rows.items():
        if key.lower() in wanted or wanted in key.lower():
            return rate, "FUZZY"
    return None


def lookup_rate(currency: str, category: str, subtype: str, location: Optional[str] = None) -> Optional[RateQuote]:
    """
    Generic installed-rate lookup (structural_steel, concrete, rebar, roofing,
    sitework). A miss returns None.
    """
    found = _find(UNIT_RATES, (currency or "").upper(), category, subtype or "")
    if found is None:
        logger.debug(f"No unit rate for {currency}/{category}/{subtype}")
        return None
    rate, source = found
    return _quote(rate, location, source)


def lookup_trade_rate(
    currency: str,
    category: str,
    subtype: str,
    location: Optional[str] = None,
    tables: Optional[dict] = None,
) -> Optional[RateQuote]:
    """
    Trade rate (steel_supply, fabrication, surface_treatment, erection,
    connections, hardware). Currencies without their own table are converted
    from USD and tagged DEFAULT. ``tables`` replaces TRADE_RATES.
    """
    tables = TRADE_RATES if tables is None else tables
    currency = (currency or "USD").upper()
    if currency in tables:
        found = _find(tables, currency, category, subtype)
        if found is None:
            return None
        rate, source = found
        return _quote(rate, location, source)

    fx = FX_PER_USD.get(currency)
    found = _find(tables, "USD", category, subtype)
    if fx is None or found is None:
        return None
    usd_rate, _ = found
    quote = _quote(usd_rate, location, "DEFAULT")
    return RateQuote(
        rate=round(quote.rate * fx, 2),
        unit=quote.unit,
        currency=currency,
        category=quote.category,
        subtype=quote.subtype,
        base_rate=round(usd_rate.base_rate * fx, 2),
        location_factor=quote.location_factor,
        range=tuple(round(r * fx) for r in quote.range),
        descriptor=f"{quote.descriptor} (converted from USD at {fx})",
        source="DEFAULT",
    )


def _weight_class(designation: str) -> str:
    found = steel_weight_per_length(designation) if designation else None
    if found is not None:
        weight, unit = found
        if unit == "lb/ft":
            return classify_steel_weight(weight)
        if unit == "kg/m":
            return classify_steel_weight(weight * KG_M_TO_LB_FT_APPROX)
    if designation:
        m = re.search(r"X(\d+(?:\.\d+)?)", designation, re.IGNORECASE)
        if m:
            return classify_steel_weight(float(m.group(1)))
    return "medium"


def _steel_subtype(designation: str, currency: str, weight_class: str) -> str:
    upper = (designation or "").upper()
    if re.match(r"^(?:HSS|SHS|RHS|CHS|PIPE)", upper):
        return "hss"
    if currency == "INR" and re.search(r"PEB|PRE.?ENG|TAPERED|BUILT.?UP", upper):
        return "peb"
    return weight_class


def lookup_steel_rate(designation: str, location: Optional[str], currency: Optional[str] = None) -> RateQuote:
    """
    Installed per-ton rate for a steel section: light < 50 lb/ft ≤ medium
    ≤ 100 < heavy; hollow sections use the hss row; PEB members use the peb
    row in INR. A miss returns rate 0 tagged NOT_FOUND.
    """
    loc = get_location_factor(location)
    curr = (currency or loc.currency or "USD").upper()
    weight_class = _weight_class(designation)
    subtype = _steel_subtype(designation, curr, weight_class)

    rows = UNIT_RATES.get(curr, {}).get("structural_steel", {})
    rate = rows.get(subtype)
    if rate is None:
        logger.warning(f"No structural steel rate for {designation} ({curr}/{subtype})")
        return RateQuote(
            rate=0.0, unit="ton", currency=curr, category="structural_steel", subtype=subtype,
            base_rate=0.0, location_factor=loc.multiplier, source="NOT_FOUND", weight_class=weight_class,
        )
    return _quote(rate, location, "DB", rounding=0, weight_class=weight_class)


def _concrete_subtype(grade: Optional[str]) -> Optional[str]:
    normalized = re.sub(r"\s+", "", grade or "").upper()
    if normalized in CONCRETE_GRADE_MAP:
        return CONCRETE_GRADE_MAP[normalized]
    m = re.search(r"(\d{3,5})\s*PSI", grade or "", re.IGNORECASE)
    if m:
        psi = int(m.group(1))
        return "3000psi" if psi <= 3500 else "4000psi" if psi <= 4500 else "5000psi"
    m = re.search(r"M(\d+)", normalized)
    if m:
        value = int(m.group(1))
        return "M25" if value <= 25 else "M30" if value <= 35 else "M40" if value <= 45 else "M50"
    m = re.search(r"C(\d+)", normalized)
    if m:
        value = int(m.group(1))
        return "C30" if value <= 35 else "C40" if value <= 45 else "C50"
    return None


def lookup_concrete_rate(grade: Optional[str], location: Optional[str], currency: Optional[str] = None) -> RateQuote:
    """
    Installed concrete rate for a grade string ("4000 PSI", "M30", "C40").
    Unknown grades fall back to the currency's mid grade and are tagged
    DEFAULT; a currency without a concrete table gives NOT_FOUND.
    """
    loc = get_location_factor(location)
    curr = (currency or loc.currency or "USD").upper()
    subtype = _concrete_subtype(grade)
    source = "DB"
    rows = UNIT_RATES.get(curr, {}).get("concrete", {})
    if subtype not in rows:
        subtype = _DEFAULT_CONCRETE_GRADE.get(curr, "4000psi")
        source = "DEFAULT"
    rate = rows.get(subtype)
    if rate is None:
        logger.warning(f"No concrete rate for grade {grade!r} in {curr}")
        return RateQuote(
            rate=0.0, unit="cy", currency=curr, category="concrete", subtype=subtype or "",
            base_rate=0.0, location_factor=loc.multiplier, source="NOT_FOUND",
        )
    return _quote(rate, location, source, rounding=0)


def get_steel_tonnage_rate(designation: str, currency: str, location: Optional[str] = None) -> dict:
    """Per-ton rate together with the parsed weight per length of the section."""
    found = steel_weight_per_length(designation) if designation else None
    quote = lookup_steel_rate(designation, location, currency)
    return {
        "rate_per_ton": quote.rate,
        "unit": quote.unit,
        "weight_per_length": found[0] if found else None,
        "weight_unit": found[1] if found else None,
        "weight_class": quote.weight_class,
        "currency": quote.currency,
        "location_factor": quote.location_factor,
        "source": quote.source,
    }


def detect_currency(project_info: Optional[dict]) -> str:
    """
    Currency for a project: explicit field, then a recognised location, then
    a keyword scan of free-text answers and notes. Defaults to USD.
    """
    if not project_info:
        return "USD"

    explicit = str(project_info.get("currency") or "").upper().strip()
    if explicit:
        for pattern, code in _CURRENCY_WORDS:
            if re.search(pattern, explicit):
                return code
        if re.fullmatch(r"[A-Z]{3}", explicit):
            return explicit

    location = project_info.get("region") or project_info.get("location")
    if location:
        loc = get_location_factor(location)
        if loc.matched:
            return loc.currency

    blob = " ".join(
        json.dumps(project_info.get(key), default=str)
        for key in ("answers", "notes", "description")
        if project_info.get(key)
    ).lower()
    for pattern, code in _KEYWORD_CURRENCY:
        if blob and re.search(pattern, blob):
            return code
    return "USD"
