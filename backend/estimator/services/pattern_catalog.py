"""
Pattern catalog — data-driven registry of drawing-text matchers.

Three tables, each iterated uniformly (new standards are new rows):

  MEMBER_PATTERNS       structural sections, plates, bars, bolts, hardware
                        across AISC, IS, EN, BS, AS and PEB conventions
  RECLASSIFY_RULES      designation-prefix → bucket, applied after extraction
  MEASUREMENT_PATTERNS  dimensions, grids, areas, heights, specs, loads, scales,
                        schedule headings and entries

Designations are normalized by compacting the raw match (no whitespace,
uppercase, one multiplication glyph) and then passing it through the first
FORMATTERS row whose expression matches. Formatter outputs compact back to a
string the same row accepts, so normalization is idempotent.
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Pattern, Tuple

from estimator.services.errors import PatternError

logger = logging.getLogger("estimator-patterns")


@dataclass(frozen=True)
class PatternSpec:
    id: str
    expression: str
    type: str
    category: str
    sub_category: str
    standard: str
    fabrication_class: str = "simple"
    flexible: bool = False          # initial bucket may follow a schedule's preferred category
    flags: int = re.IGNORECASE


CompiledPattern = Tuple[PatternSpec, Pattern]


# ── Member patterns (ordered: more specific rows claim a span first) ──────────

_N = r"\d+(?:\.\d+)?"
_FRAC = r"(?:\d+-\d+/\d+|\d+/\d+|\d*\.\d+|\d+)"
_X = r"\s*[xX×*]\s*"

MEMBER_PATTERNS: Tuple[PatternSpec, ...] = (
    # ── Pre-engineered buildings ──
    PatternSpec("peb_built_up", r"\b(?:PEB\s+)?(?:TAPERED|BUILT[\s-]?UP)\s+(?:I[\s-]?SECTION|RAFTER|COLUMN|BEAM|MEMBER)S?\b",
                "Built-up PEB Member", "mainMembers", "peb_built_up", "PEB", "complex"),
    PatternSpec("purlin_zc_code", r"\b[ZC]\s?\d{3}\s?\d{2}\b", "Cold-formed Purlin", "purlins", "zc_purlin", "PEB", "simple"),
    PatternSpec("purlin_zc_thk", rf"\b[ZC]\s?\d{{3}}{_X}\d(?:\.\d+)?\b", "Cold-formed Purlin", "purlins", "zc_purlin", "PEB", "simple"),

    # ── Hollow sections ──
    PatternSpec("hss", rf"\bHSS\s*{_FRAC}{_X}{_FRAC}(?:{_X}{_FRAC})?", "Hollow Structural Section", "hollowSections", "hss", "AISC", "medium"),
    PatternSpec("pipe", r"\bPIPE\s*\d{1,2}(?:\.\d+)?\s*(?:STD|XXS|XS)\b", "Steel Pipe", "hollowSections", "pipe", "AISC", "medium"),
    PatternSpec("metric_hollow_prefix", rf"\b(?:SHS|RHS|CHS)\s*{_N}{_X}{_N}(?:{_X}{_N})?", "Hollow Section", "hollowSections", "metric_hollow", "AS", "medium"),
    PatternSpec("metric_hollow_suffix", rf"\b{_N}{_X}{_N}(?:{_X}{_N})?\s*(?:SHS|RHS|CHS)\b", "Hollow Section", "hollowSections", "metric_hollow", "AS", "medium"),

    # ── British / Australian I-sections and channels ──
    PatternSpec("bs_ub_uc_prefix", rf"\b(?:UB|UC)\s*\d{{3}}{_X}\d{{3}}{_X}\d{{2,3}}(?:\.\d+)?\b", "Universal Beam/Column", "mainMembers", "universal", "BS", "medium"),
    PatternSpec("bs_ub_uc_suffix", rf"\b\d{{3}}{_X}\d{{3}}{_X}\d{{2,3}}(?:\.\d+)?\s*(?:UB|UC)\b", "Universal Beam/Column", "mainMembers", "universal", "BS", "medium"),
    PatternSpec("as_universal", r"\b\d{3}\s*(?:UB|UC|WB|WC)\s*\d{1,3}(?:\.\d+)?\b", "Universal Beam", "mainMembers", "universal", "AS", "medium"),
    PatternSpec("as_tfb", r"\b\d{3}\s*TFB\b", "Taper Flange Beam", "mainMembers", "universal", "AS", "medium"),
    PatternSpec("as_pfc", r"\b\d{2,3}\s*PFC\b", "Parallel Flange Channel", "mainMembers", "channel", "AS", "simple", flexible=True),

    # ── Angles ──
    PatternSpec("as_angle", rf"\b\d{{2,3}}{_X}\d{{2,3}}{_X}\d{{1,2}}(?:\.\d+)?\s*(?:EA|UA)\b", "Angle", "angles", "angle", "AS", "simple"),
    PatternSpec("is_angle", rf"\bISA\s*\d{{2,3}}{_X}\d{{2,3}}{_X}\d{{1,2}}\b", "Angle", "angles", "angle", "IS", "simple"),
    PatternSpec("bs_angle", rf"\bRSA\s*\d{{2,3}}{_X}\d{{2,3}}{_X}\d{{1,2}}\b", "Angle", "angles", "angle", "BS", "simple"),
    PatternSpec("aisc_angle", rf"\bL\s*{_FRAC}{_X}{_FRAC}{_X}{_FRAC}", "Angle", "angles", "angle", "AISC", "simple"),

    # ── Indian / European rolled sections ──
    PatternSpec("is_rolled", r"\b(?:ISMB|ISMC|ISLB|ISWB|ISHB|ISJB|ISLC)\s*\d{2,3}\b", "IS Rolled Section", "mainMembers", "is_rolled", "IS", "medium"),
    PatternSpec("en_rolled", r"\b(?:IPE|HEA|HEB|HEM|UPN|UPE)\s*\d{2,4}\b", "European Rolled Section", "mainMembers", "en_rolled", "EN", "medium"),

    # ── AISC rolled sections ──
    PatternSpec("aisc_wt", rf"\bWT\s*\d{{1,2}}(?:\.\d+)?{_X}\d{{1,3}}(?:\.\d+)?\b", "Structural Tee", "mainMembers", "tee", "AISC", "medium"),
    PatternSpec("aisc_w", rf"\b(?:W|HP)\s*\d{{1,2}}{_X}\d{{1,3}}(?:\.\d+)?\b", "Wide Flange Beam", "mainMembers", "w_shape", "AISC", "medium"),
    PatternSpec("aisc_mc", rf"\bMC\s*\d{{1,2}}{_X}\d{{1,2}}(?:\.\d+)?\b", "Miscellaneous Channel", "mainMembers", "channel", "AISC", "simple", flexible=True),
    PatternSpec("aisc_c", rf"\bC\s*\d{{1,2}}{_X}\d{{1,2}}(?:\.\d+)?\b", "Channel", "mainMembers", "channel", "AISC", "simple", flexible=True),
    PatternSpec("aisc_joist", r"\b\d{1,2}\s*(?:K|LH|DLH)\s*\d{1,2}\b", "Open Web Steel Joist", "mainMembers", "joist", "AISC", "simple", flexible=True),

    # ── Plates ──
    PatternSpec("named_plate", rf"\b(?:BASE|CAP|END|FIN|SPLICE|GUSSET)\s*PL(?:ATE)?\s*{_FRAC}\s*(?:MM)?{_X}\d{{1,4}}(?:{_X}\d{{1,4}})?",
                "Plate", "plates", "plate", "GENERIC", "plate_work"),
    PatternSpec("plate", rf"\bPL\s*{_FRAC}\s*(?:MM)?{_X}\d{{1,4}}(?:\.\d+)?(?:{_X}\d{{1,4}})?", "Plate", "plates", "plate", "GENERIC", "plate_work"),
    PatternSpec("stiffener", r"\bSTIFF(?:ENER)?\.?\s*\d{1,2}\s*MM\b", "Stiffener Plate", "plates", "stiffener", "GENERIC", "plate_work"),

    # ── Bars ──
    PatternSpec("rebar_imperial", r"#\d{1,2}\s*@\s*\d{1,3}\b", "Reinforcing Bar", "bars", "rebar", "ACI", "simple"),
    PatternSpec("rebar_metric", r"\b[NYT]\d{2}\s*[@-]\s*\d{2,3}\b", "Reinforcing Bar", "bars", "rebar", "AS", "simple"),
    PatternSpec("round_bar", r"\b(?:RB|RD)\s*\d{1,2}\b", "Round Bar", "bars", "round_bar", "GENERIC", "simple"),
    PatternSpec("flat_bar", rf"\bFB\s*\d{{2,3}}{_X}\d{{1,2}}\b", "Flat Bar", "bars", "flat_bar", "GENERIC", "simple"),

    # ── Connections & hardware ──
    PatternSpec("metric_bolt_graded", r"\bM(?:12|16|20|24|27|30|36)(?:\s*[xX×]\s*\d{2,3})?\s*(?:GR(?:ADE)?\.?\s*)?(?:4\.6|8\.8|10\.9)(?:\s*/\s*(?:S|TB|TF))?(?:\s*(?:HSFG|HD\s*BOLTS?|ANCHOR\s*BOLTS?|BOLTS?))?",
                "Bolt Assembly", "connections", "bolt", "ISO", "simple"),
    PatternSpec("metric_bolt_named", r"\bM(?:12|16|20|24|27|30|36)(?:\s*[xX×]\s*\d{2,3})?\s*(?:HSFG|HD\s*BOLTS?|ANCHOR\s*BOLTS?|BOLTS?)\b",
                "Bolt Assembly", "connections", "bolt", "ISO", "simple"),
    PatternSpec("astm_bolt", r"\b(?:\d/\d|1)\s*\"?\s*(?:DIA\.?\s*)?(?:A325|A490|F1852)(?:-?[NX])?(?:\s*BOLTS?)?\b",
                "Bolt Assembly", "connections", "bolt", "ASTM", "simple"),
    PatternSpec("washer_nut", r"\b(?:M\d{2}\s*)?(?:HARDENED\s+|PLATE\s+|FLAT\s+|SPRING\s+|LOCK\s*)?(?:WASHERS?|NUTS?)\b",
                "Washer/Nut", "hardware", "fastener", "GENERIC", "simple"),

    # ── Miscellaneous steel ──
    PatternSpec("misc_steel", r"\b(?:GRATING|HANDRAILS?|STAIR\s+STRINGERS?|CAT\s*LADDERS?|LADDERS?|CHEQUER(?:ED)?\s+PLATES?)\b",
                "Miscellaneous Steel", "miscellaneous", "misc", "GENERIC", "medium"),
)


# ── Formatters (compact designation → canonical) ─────────────────────────────

def _fmt_peb(m: re.Match) -> str:
    kind = "BUILT-UP" if m.group(1).startswith("BUILT") else "TAPERED"
    return f"PEB {kind} {m.group(2)}"


def _fmt_spaced(m: re.Match) -> str:
    tail = f" {m.group(3)}" if m.group(3) else ""
    return f"{m.group(1)} {m.group(2)}{tail}"


def _fmt_suffix_first(m: re.Match) -> str:
    return f"{m.group(2)}{m.group(1)}"


def _fmt_pipe(m: re.Match) -> str:
    return f"PIPE {m.group(1)} {m.group(2)}"


def _fmt_named_plate(m: re.Match) -> str:
    return f"{m.group(1)} PL{m.group(2)}"


def _fmt_stiffener(m: re.Match) -> str:
    return f"STIFFENER {m.group(1)}MM"


def _fmt_metric_bolt(m: re.Match) -> str:
    size = f"M{m.group(1)}" + (f"X{m.group(2)}" if m.group(2) else "")
    grade = f" {m.group(3)}" if m.group(3) else ""
    kind = m.group(4) or ""
    if kind.startswith("HSFG"):
        label = "HSFG BOLT"
    elif kind.startswith("HD"):
        label = "HD BOLT"
    elif kind.startswith("ANCHOR"):
        label = "ANCHOR BOLT"
    else:
        label = "BOLT"
    return f"{size}{grade} {label}"


def _fmt_astm_bolt(m: re.Match) -> str:
    return f"{m.group(1)} {m.group(2)} BOLT"


def _fmt_fastener(m: re.Match) -> str:
    size = f"M{m.group(1)} " if m.group(1) else ""
    qualifier = f"{m.group(2)} " if m.group(2) else ""
    noun = "WASHER" if m.group(3).startswith("WASHER") else "NUT"
    if m.group(3).startswith("LOCKNUT"):
        qualifier, noun = "LOCK ", "NUT"
    return f"{size}{qualifier}{noun}"


_MISC_CANONICAL = {
    "GRATING": "GRATING", "HANDRAIL": "HANDRAIL", "HANDRAILS": "HANDRAIL",
    "STAIRSTRINGER": "STAIR STRINGER", "STAIRSTRINGERS": "STAIR STRINGER",
    "LADDER": "LADDER", "LADDERS": "LADDER", "CATLADDER": "CAT LADDER", "CATLADDERS": "CAT LADDER",
    "CHEQUERPLATE": "CHEQUER PLATE", "CHEQUERPLATES": "CHEQUER PLATE",
    "CHEQUEREDPLATE": "CHEQUER PLATE", "CHEQUEREDPLATES": "CHEQUER PLATE",
}


def _fmt_misc(m: re.Match) -> str:
    return _MISC_CANONICAL[m.group(0)]


FORMATTERS: Tuple[Tuple[Pattern, Callable[[re.Match], str]], ...] = (
    (re.compile(r"^(?:PEB)?(TAPERED|BUILT-?UP)(I-?SECTION|RAFTER|COLUMN|BEAM|MEMBER)S?$"), _fmt_peb),
    (re.compile(r"^([NYT]\d{2})[@-](\d{2,3})$"), lambda m: f"{m.group(1)}@{m.group(2)}"),
    (re.compile(r"^(\d{2,3})(UB|UC|WB|WC|TFB|PFC)(\d{1,3}(?:\.\d+)?)?$"), _fmt_spaced),
    (re.compile(r"^(\d+(?:\.\d+)?X\d+(?:\.\d+)?(?:X\d+(?:\.\d+)?)?)(SHS|RHS|CHS|UB|UC|EA|UA)$"), _fmt_suffix_first),
    (re.compile(r"^PIPE(\d{1,2}(?:\.\d+)?)(STD|XXS|XS)$"), _fmt_pipe),
    (re.compile(r"^(BASE|CAP|END|FIN|SPLICE|GUSSET)PL(?:ATE)?(.+)$"), _fmt_named_plate),
    (re.compile(r"^STIFF(?:ENER)?\.?(\d{1,2})MM$"), _fmt_stiffener),
    (re.compile(r"^M(\d{2})(?:X(\d{2,3}))?(?:GR(?:ADE)?\.?)?(4\.6|8\.8|10\.9)?(?:/(?:S|TB|TF))?(HSFG(?:BOLTS?)?|HDBOLTS?|ANCHORBOLTS?|BOLTS?)?$"), _fmt_metric_bolt),
    (re.compile(r"^(\d/\d|1)\"?(?:DIA\.?)?(A325|A490|F1852)(?:-?[NX])?(?:BOLTS?)?$"), _fmt_astm_bolt),
    (re.compile(r"^(?:M(\d{2}))?(HARDENED|PLATE|FLAT|SPRING|LOCK)?(WASHERS?|NUTS?|LOCKNUTS?)$"), _fmt_fastener),
    (re.compile(r"^(?:GRATING|HANDRAILS?|STAIRSTRINGERS?|CATLADDERS?|LADDERS?|CHEQUER(?:ED)?PLATES?)$"), _fmt_misc),
)

_WHITESPACE = re.compile(r"\s+")


def compact_designation(raw: str) -> str:
    """Strip whitespace, unify multiplication glyphs, uppercase."""
    text = _WHITESPACE.sub("", raw or "").upper()
    return text.replace("×", "X").replace("*", "X")


def normalize_designation(raw: str) -> str:
    """
    Canonical designation for a raw matched token.

        normalize_designation("w 24 x 68")   → "W24X68"
        normalize_designation("310ub40.4")   → "310 UB 40.4"
        normalize_designation("100x100x5 SHS") → "SHS100X100X5"
    """
    compact = compact_designation(raw)
    if not compact:
        return ""
    for expression, formatter in FORMATTERS:
        m = expression.match(compact)
        if m:
            # A bare metric size with no bolt context stays as-is
            if formatter is _fmt_metric_bolt and not (m.group(3) or m.group(4)):
                continue
            return formatter(m)
    return compact


# ── Reclassification rules (designation prefix → bucket) ──────────────────────

RECLASSIFY_RULES: Tuple[Tuple[str, str], ...] = (
    (r"^(?:SHS|RHS|CHS|HSS|PIPE)\b|^(?:SHS|RHS|CHS|HSS)\d", "hollowSections"),
    (r"^(?:L\d|ISA\d|EA\d|UA\d|RSA\d)", "angles"),
    (r"^[ZC]\d{3}(?:\d{2}|X)", "purlins"),
    (r"^(?:PL\d|PL\.|STIFFENER\b|(?:BASE|CAP|END|FIN|SPLICE|GUSSET) PL|CHEQUER PLATE)", "plates"),
    (r"^(?:#\d{1,2}@|[NYT]\d{2}@|RB\d|RD\d|FB\d)", "bars"),
    (r"\bBOLT$|^M\d{2}(?:X\d+)?(?: \d+\.\d)? (?:HSFG |HD |ANCHOR )?BOLT|\b(?:A325|A490|F1852)\b", "connections"),
    (r"\b(?:WASHER|NUT)$", "hardware"),
)


# ── Schedule headings ─────────────────────────────────────────────────────────

SCHEDULE_HEADING = re.compile(
    r"\b(BEAM|COLUMN|BRACING|BRACE|PURLIN|GIRT|RAFTER|MEMBER|STEEL|FRAMING|PLATE|BOLT|CONNECTION|"
    r"JOIST|LINTEL|ANCHOR(?:\s+BOLT)?|FOOTING|REBAR|BAR\s+BENDING|PILE|SLAB|STRUT|TRUSS)\s+SCHEDULE\b"
    r"|\b(BILL\s+OF\s+MATERIALS?|MATERIAL\s+LIST|MEMBER\s+LIST|CUTTING\s+LIST)\b",
    re.IGNORECASE,
)

SCHEDULE_CATEGORY_HINTS: Tuple[Tuple[str, str], ...] = (
    (r"PURLIN|GIRT", "purlins"),
    (r"PLATE", "plates"),
    (r"BOLT|CONNECTION|ANCHOR", "connections"),
    (r"REBAR|BAR BENDING", "bars"),
)

SCHEDULE_WINDOW_LINES: int = 30


def schedule_title(line: str) -> Optional[str]:
    m = SCHEDULE_HEADING.search(line or "")
    if not m:
        return None
    return _WHITESPACE.sub(" ", m.group(0)).strip().upper()


def schedule_category(title: str) -> Optional[str]:
    for pattern, category in SCHEDULE_CATEGORY_HINTS:
        if re.search(pattern, title or ""):
            return category
    return None


# ── Skip filter for general text ──────────────────────────────────────────────

SKIP_LINE_PATTERNS: Tuple[str, ...] = (
    r"^\s*(?:DRAWN|CHECKED|APPROVED|DESIGNED|DRG\.?\s*NO|DRAWING\s+(?:NO|NUMBER|TITLE)|PROJECT\s*(?:NO|:)|CLIENT|SHEET\s+\d|JOB\s+NO|SCALE\s*[:=]|DATE\s*[:=])",
    r"^\s*REV(?:ISION)?\.?\s*[A-Z0-9]{1,2}\b.*\d{1,2}[./-]\d{1,2}[./-]\d{2,4}",
    r"^\s*[A-Z0-9]{1,2}\s+\d{1,2}[./-]\d{1,2}[./-]\d{2,4}\b",
    r"^\s*[A-Za-z]\s*$",
)


# ── Measurement patterns ──────────────────────────────────────────────────────

MEASUREMENT_PATTERNS: Tuple[Tuple[str, str, int], ...] = (
    ("imperial_dimension", r"\b(\d{1,4})\s*['′]\s*[-–]?\s*(\d{1,2})\s*(?:[\"″]|'')", 0),
    ("metric_dimension", r"\b(\d+(?:\.\d+)?)\s*(mm|cm|m)\b", re.IGNORECASE),
    ("grid_spacing", r"\b(\d{1,4}(?:\.\d+)?\s*['′]?\s*[-–]?\s*\d{0,2}\s*[\"″]?)\s*[xX×]\s*(\d{1,4}(?:\.\d+)?\s*['′]?\s*[-–]?\s*\d{0,2}\s*[\"″]?)\s*(?:BAY|GRID|O\.?C\.?)", re.IGNORECASE),
    ("area", r"([\d,]+(?:\.\d+)?)\s*(SF|SQ\.?\s*FT|SQ\.?\s*M|M2|m²|FT2|SQUARE\s*(?:FEET|METERS?|METRES?))\b", re.IGNORECASE),
    ("height", r"((?:EAVE|RIDGE|FLOOR[\s-]*TO[\s-]*FLOOR|STORY|STOREY|CLEAR|CEILING)\s*(?:HEIGHT|HT\.?|H))\s*[=:]\s*(\d+(?:\.\d+)?\s*(?:['′]\s*[-–]?\s*\d{0,2}\s*[\"″]?|MM|M\b)?)", re.IGNORECASE),
    ("w_shape", r"\bW\s*(\d{1,2})\s*[xX×]\s*(\d{1,3}(?:\.\d+)?)\b", re.IGNORECASE),
    ("hss", r"\bHSS\s*(\d+(?:\.\d+)?)\s*[xX×]\s*(\d+(?:\.\d+)?)(?:\s*[xX×]\s*(\d+/\d+|\d*\.\d+))?", re.IGNORECASE),
    ("channel", r"\b(?:MC|C)\s*(\d{1,2})\s*[xX×]\s*(\d{1,2}(?:\.\d+)?)\b", 0),
    ("angle", r"\bL\s*(\d+(?:\.\d+)?)\s*[xX×]\s*(\d+(?:\.\d+)?)\s*[xX×]\s*(\d+/\d+|\d*\.\d+)", 0),
    ("pipe", r"\bPIPE\s*(\d+(?:\.\d+)?)\s*(STD|XS|XXS)?", re.IGNORECASE),
    ("plate", r"\bPL\s*(\d+/\d+|\d+(?:\.\d+)?)\s*(?:MM)?\s*[xX×]\s*(\d+)", re.IGNORECASE),
    ("indian_section", r"\b(ISMB|ISMC|ISLB|ISWB|ISA|ISHB)\s*(\d{2,4})", re.IGNORECASE),
    ("euro_section", r"\b(HEA|HEB|HEM|IPE|UPN|UPE)\s*(\d{2,4})", re.IGNORECASE),
    ("au_section", r"\b(\d{2,3})\s*(UB|UC|PFC|SHS|RHS|CHS)\s*(\d{1,3}(?:\.\d+)?)?", re.IGNORECASE),
    ("rebar_size", r"(?:#(\d{1,2})\b|\b(\d{1,2})\s*MM\s*(?:DIA|Ø|⌀)|\b[NYT](\d{2})\b(?=\s*[@-]))", re.IGNORECASE),
    ("rebar_grade", r"\b(?:GRADE\s*(60|75|40)|Fe\s*(415|500D?|550)|B500[ABC]|D500N)\b", re.IGNORECASE),
    ("steel_grade", r"\b(?:A992|A572(?:\s*GR(?:ADE)?\.?\s*\d{2})?|A36|A500(?:\s*GR(?:ADE)?\.?\s*[BC])?|A53|E250|E350|E410|S235|S275|S355|S460|GRADE\s*300|GRADE\s*350|300PLUS|C350L0|C450L0)\b", re.IGNORECASE),
    ("concrete_psi", r"\b(\d{4})\s*PSI\b", re.IGNORECASE),
    ("concrete_grade", r"\b(?:M|C|N)\s*(\d{2,3})(?:\s*/\s*(\d{2,3}))?\b(?!\s*(?:BOLT|X|×|@|-\s*\d|\d))", 0),
    ("astm_spec", r"\bASTM\s*[A-Z]\s*\d{2,4}\b", re.IGNORECASE),
    ("is_spec", r"\bIS\s*[:\-]?\s*\d{3,5}(?:\s*[:\-]\s*\d{4})?\b", 0),
    ("en_spec", r"\b(?:BS\s*)?EN\s*\d{4,5}(?:-\d+)*\b", re.IGNORECASE),
    ("as_spec", r"\bAS(?:/NZS)?\s*\d{4}(?:\.\d+)?\b", 0),
    ("bolt_spec", r"\b(?:\d/\d\s*\"?\s*(?:DIA\.?\s*)?(?:A325|A490|F1852)|M\d{2}\s*(?:GR(?:ADE)?\.?\s*)?(?:8\.8|10\.9|4\.6))", re.IGNORECASE),
    ("weld_spec", r"\b(?:E70XX|E7018|E6013|E4918|(\d+)\s*MM\s*(?:CFW|FW|FILLET\s*WELD)|\d/\d{1,2}\s*\"?\s*FILLET)\b", re.IGNORECASE),
    ("scale_imperial", r"(?:SCALE|SC\.?)\s*:?\s*(\d/\d{1,2})\s*[\"″]\s*=\s*1\s*['′]\s*[-–]?\s*0\s*[\"″]", re.IGNORECASE),
    ("scale_metric", r"(?:SCALE|SC\.?)\s*:?\s*1\s*:\s*(\d{1,4})", re.IGNORECASE),
    ("load", r"(D\.?L\.?|L\.?L\.?|DEAD\s*LOAD|LIVE\s*LOAD|ROOF\s*(?:D\.?L\.?|L\.?L\.?|LIVE\s*LOAD)|SNOW\s*LOAD|COLLATERAL\s*LOAD)\s*[=:]\s*(\d+(?:\.\d+)?)\s*(PSF|KPA|KN/M2|KN/M²|LB/FT2)", re.IGNORECASE),
    ("wind_speed", r"(?:BASIC\s*)?WIND\s*(?:SPEED|VELOCITY)?\s*[=:]?\s*(\d{2,3})\s*(MPH|M/S|KM/H)", re.IGNORECASE),
    ("seismic", r"(?:SEISMIC\s*(?:ZONE|DESIGN\s*CATEGORY|CATEGORY)|SDC)\s*[=:]?\s*([A-F]|I{1,3}V?|IV|V|\d)\b", re.IGNORECASE),
    ("sheet_number", r"\b([SAGEMF]-?\d{1,3}(?:\.\d{1,2})?)\b(?=\s|$)", 0),
    ("drawing_title", r"\b((?:[A-Z]+\s+){0,3}(?:PLAN|ELEVATION|SECTION|DETAILS?|SCHEDULE|NOTES|LAYOUT))\b", 0),
    ("schedule_header", r"\b(BEAM|COLUMN|REBAR|MEMBER|JOIST|FOOTING|PILE|SLAB|PURLIN|BRACING)\s*SCHEDULE\b", re.IGNORECASE),
    ("schedule_entry", r"\b([BCJFP]\d{1,3}[A-Z]?)\s*[=:\-–]\s*((?:W|HSS|C|L|ISMB|ISMC|IPE|HEA|HEB)\s*\d{1,3}(?:\s*[xX×]\s*\d{1,4}(?:\.\d+)?)?|\d{3}\s*(?:UB|UC|PFC)\s*\d{0,3}(?:\.\d+)?)", re.IGNORECASE),
    ("deck_spec", r"\b(\d(?:\.\d)?)\s*[\"″]?\s*(?:-\s*)?(?:\d{2}\s*GA\.?\s*)?(?:COMPOSITE\s*|ROOF\s*|FORM\s*)?(?:METAL\s*)?DECK\b", re.IGNORECASE),
    ("insulation", r"\bR\s*-?\s*(\d{1,2})\s*(?:INSUL(?:ATION)?|BATT|RIGID)?\b", 0),
    ("roofing", r"\b(STANDING\s*SEAM|TPO|EPDM|BUILT[\s-]*UP|MODIFIED\s*BITUMEN|METAL\s*ROOF(?:ING)?|SANDWICH\s*PANEL|PROFILE\s*SHEET(?:ING)?)\b", re.IGNORECASE),
    ("cladding", r"\b(METAL\s*PANEL|INSULATED\s*PANEL|ACM|ACP|CURTAIN\s*WALL|MASONRY\s*VENEER|PRECAST|WALL\s*CLADDING|SIDING)\b", re.IGNORECASE),
    ("quantity", r"\b(\d{1,5})\s*(?:NOS?\.?|PCS|EA\.?|QTY)\b", re.IGNORECASE),
    ("weight", r"\b(\d{1,3}(?:,\d{3})*(?:\.\d+)?)\s*(TONS?|TONNES?|MT|KG|LBS?|KIPS?)\b", re.IGNORECASE),
)


# ── Compilation ───────────────────────────────────────────────────────────────

def _compile(pattern_id: str, expression: str, flags: int) -> Pattern:
    try:
        return re.compile(expression, flags)
    except re.error as e:
        raise PatternError(pattern_id, str(e)) from e


def compile_catalog(rows) -> Tuple[List[CompiledPattern], List[str]]:
    """
    Compile member pattern rows. A malformed row is skipped with a warning
    and reported in the second element; the remaining rows still compile.
    """
    compiled: List[CompiledPattern] = []
    skipped: List[str] = []
    for spec in rows:
        try:
            compiled.append((spec, _compile(spec.id, spec.expression, spec.flags)))
        except PatternError as e:
            logger.warning(f"Skipping pattern {spec.id}: {e.reason}")
            skipped.append(spec.id)
    return compiled, skipped


def compile_measurement_patterns(rows=MEASUREMENT_PATTERNS) -> Tuple[dict, List[str]]:
    compiled: dict = {}
    skipped: List[str] = []
    for pattern_id, expression, flags in rows:
        try:
            compiled[pattern_id] = _compile(pattern_id, expression, flags)
        except PatternError as e:
            logger.warning(f"Skipping measurement pattern {pattern_id}: {e.reason}")
            skipped.append(pattern_id)
    return compiled, skipped


def compile_rules(rules=RECLASSIFY_RULES) -> List[Tuple[Pattern, str]]:
    compiled = []
    for expression, bucket in rules:
        try:
            compiled.append((_compile(f"reclassify:{bucket}", expression, 0), bucket))
        except PatternError as e:
            logger.warning(f"Skipping reclassification rule for {bucket}: {e.reason}")
    return compiled


MEMBER_CATALOG, SKIPPED_MEMBER_PATTERNS = compile_catalog(MEMBER_PATTERNS)
MEASUREMENT_CATALOG, SKIPPED_MEASUREMENT_PATTERNS = compile_measurement_patterns()
RECLASSIFY_CATALOG = compile_rules()
SKIP_LINE_CATALOG = [re.compile(p, re.IGNORECASE) for p in SKIP_LINE_PATTERNS]
