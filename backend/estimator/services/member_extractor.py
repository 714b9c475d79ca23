"""
Member extractor — drawing lines → classified structural member inventory.

Two passes over each page:
  1. Schedule pass: a heading such as "BEAM SCHEDULE" opens a window of up
     to 30 lines (closed early by a different heading); members found there
     carry the schedule title as their source.
  2. General pass: every other line that is not title-block noise; members
     carry source "General Text".

Schedule hits are collected for all pages before any general hit, so a
schedule entry always wins over a general mention of the same section.
A reclassification pass then moves each member to the bucket its
designation prefix implies, and the per-bucket summary is computed last.
"""
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence, Tuple

from estimator.models.drawing_models import (
    BUCKETS,
    GENERAL_TEXT_SOURCE,
    DrawingPage,
    ExtractedMember,
    MemberDimensions,
    SteelDataset,
)
from estimator.services.pattern_catalog import (
    MEMBER_CATALOG,
    RECLASSIFY_CATALOG,
    SCHEDULE_WINDOW_LINES,
    SKIP_LINE_CATALOG,
    SKIPPED_MEMBER_PATTERNS,
    normalize_designation,
    schedule_category,
    schedule_title,
)
from estimator.services.reference_data import steel_weight_per_length
from estimator.services.units import FT_PER_M, IMPERIAL, KG_PER_LB, METRIC, parse_length

logger = logging.getLogger("estimator-members")

MAX_QUANTITY = 10000
PRECEDING_CONTEXT_CHARS = 50


@dataclass
class ExtractionContext:
    """Per-run state: dedup keys, schedule precedence keys and a run log."""
    run_id: str = ""
    seen: set = field(default_factory=set)
    schedule_keys: set = field(default_factory=set)
    skipped_patterns: list = field(default_factory=lambda: list(SKIPPED_MEMBER_PATTERNS))
    log: list = field(default_factory=list)

    def note(self, message: str):
        self.log.append(message)
        logger.debug(f"[{self.run_id or '-'}] {message}")


# ── Quantity inference ────────────────────────────────────────────────────────

_QTY_TOKENS = (
    re.compile(r"\b(\d{1,5})\s*(?:NOS?|NUMBERS?)\b\.?", re.IGNORECASE),
    re.compile(r"\b(?:QTY|QUANTITY)\.?\s*[:=]?\s*(\d{1,5})\b", re.IGNORECASE),
    re.compile(r"\b(\d{1,5})\s*[xX×]\s*(?=[A-Z#])"),
    re.compile(r"^\s*(\d{1,5})\s*[-/]?\s*(?=[A-Z#])"),
)
_CONTEXT_TOKENS = _QTY_TOKENS[:2]
_SCHEDULE_COLUMN = re.compile(
    r"^\s*[|,;]?\s*(\d{1,3})\b(?!\s*(?:MM|CM|M\b|FT|IN\b|KG|LB|['′\"″@/]|\.\d|[xX×]|-\s*\d))",
    re.IGNORECASE,
)


def _valid(value: int) -> bool:
    return 0 < value <= MAX_QUANTITY


def infer_quantity(
    segment: str,
    span: Tuple[int, int],
    preceding: str = "",
    schedule_row: bool = False,
) -> int:
    """
    Count for the designation at ``span`` inside ``segment``.

    Explicit tokens are tried in order: ``N NO(S)``, ``QTY: N``, ``N x``,
    then a leading ``N`` before a capital letter. Inside a schedule a bare
    integer column right after the designation also counts. Failing that,
    the last 50 characters of preceding context are scanned for the
    ``NO``/``QTY`` forms. Values outside (0, 10000] are rejected; the
    default is 1.
    """
    start, end = span
    for token in _QTY_TOKENS:
        for m in token.finditer(segment):
            if m.start(1) < end and m.end(1) > start:
                continue
            value = int(m.group(1))
            if _valid(value):
                return value

    if schedule_row:
        m = _SCHEDULE_COLUMN.match(segment[end:])
        if m and _valid(int(m.group(1))):
            return int(m.group(1))

    tail = (preceding or "")[-PRECEDING_CONTEXT_CHARS:]
    for token in _CONTEXT_TOKENS:
        m = token.search(tail)
        if m and _valid(int(m.group(1))):
            return int(m.group(1))
    return 1


# ── Member attributes ─────────────────────────────────────────────────────────

_MARK = re.compile(r"^\s*([A-Z]{1,3}-?\d{1,3}[A-Z]?)\b")
_LEN_FT_IN = re.compile(r"\d+(?:\.\d+)?\s*['′]\s*-?\s*(?:\d{1,2}(?:\s+\d{1,2}/\d{1,2})?\s*(?:[\"″]|'')?)?")
_LEN_FT_WORD = re.compile(r"\b\d+(?:\.\d+)?\s*(?:FT|FEET)\b", re.IGNORECASE)
_LEN_METRIC = re.compile(r"\b\d+(?:\.\d+)?\s*(?:MM|M)\b(?!\d)", re.IGNORECASE)
_LEN_EQUALS = re.compile(r"\bL\s*=\s*(\d{3,5})\b", re.IGNORECASE)
_DIM_NUMBERS = re.compile(r"(\d*\.?\d+(?:-\d+/\d+|/\d+)?)")

_DIMENSIONED = {"hss", "metric_hollow", "angle", "plate", "flat_bar"}


def _member_length(remainder: str) -> Tuple[Optional[float], str]:
    m = _LEN_FT_IN.search(remainder) or _LEN_FT_WORD.search(remainder)
    if m:
        return parse_length(m.group(0), IMPERIAL), "ft"
    m = _LEN_METRIC.search(remainder)
    if m:
        return parse_length(m.group(0), METRIC), "m"
    m = _LEN_EQUALS.search(remainder)
    if m:
        return parse_length(f"{m.group(1)}mm", METRIC), "m"
    return None, ""


def _to_number(token: str) -> float:
    if "-" in token and "/" in token:
        whole, frac = token.split("-", 1)
        return float(whole) + _to_number(frac)
    if "/" in token:
        a, b = token.split("/", 1)
        return float(a) / float(b) if float(b) else 0.0
    return float(token)


def _dimensions(designation: str, sub_category: str, standard: str) -> Optional[MemberDimensions]:
    if sub_category not in _DIMENSIONED:
        return None
    numbers = [_to_number(t) for t in _DIM_NUMBERS.findall(designation)]
    if not numbers:
        return None
    imperial = standard == "AISC" or "/" in designation or (sub_category == "plate" and numbers[0] < 3)
    unit = "in" if imperial else "mm"

    if sub_category == "plate":
        t = numbers[0]
        w = numbers[1] if len(numbers) > 1 else None
        h = numbers[2] if len(numbers) > 2 else None
        return MemberDimensions(width=w, height=h, thickness=t, unit=unit)
    if sub_category == "flat_bar" and len(numbers) >= 2:
        return MemberDimensions(width=numbers[0], height=None, thickness=numbers[1], unit=unit)
    if designation.startswith("CHS") and len(numbers) >= 2:
        return MemberDimensions(width=numbers[0], height=numbers[0], thickness=numbers[1], unit=unit)
    if len(numbers) >= 3:
        return MemberDimensions(width=numbers[0], height=numbers[1], thickness=numbers[2], unit=unit)
    if len(numbers) == 2:
        return MemberDimensions(width=numbers[0], height=numbers[0], thickness=numbers[1], unit=unit)
    return None


def _is_noise(text: str) -> bool:
    stripped = text.strip()
    if len(stripped) < 3:
        return True
    return any(rx.search(stripped) for rx in SKIP_LINE_CATALOG)


def _line_text(line) -> str:
    return line if isinstance(line, str) else line.text


# ── Line scanning ─────────────────────────────────────────────────────────────

def _scan_line(
    text: str,
    preceding: str,
    source: str,
    preferred_category: Optional[str],
    ctx: ExtractionContext,
    catalog,
) -> List[ExtractedMember]:
    claimed: List[Tuple[int, int]] = []
    hits = []
    for spec, rx in catalog:
        for m in rx.finditer(text):
            start, end = m.span()
            if start == end or any(start < e and end > s for s, e in claimed):
                continue
            claimed.append((start, end))
            hits.append((start, end, spec, m.group(0)))
    if not hits:
        return []

    hits.sort(key=lambda h: h[0])
    schedule_row = source != GENERAL_TEXT_SOURCE
    members: List[ExtractedMember] = []

    for i, (start, end, spec, raw) in enumerate(hits):
        designation = normalize_designation(raw)
        if not designation:
            continue
        category = preferred_category if (spec.flexible and preferred_category) else spec.category
        key = (designation, category, source)
        if key in ctx.seen:
            continue
        if not schedule_row and (designation, category) in ctx.schedule_keys:
            ctx.note(f"{designation} already scheduled; general mention skipped")
            continue

        seg_start = hits[i - 1][1] if i > 0 else 0
        seg_end = hits[i + 1][0] if i + 1 < len(hits) else len(text)
        segment = text[seg_start:seg_end]
        quantity = infer_quantity(
            segment,
            (start - seg_start, end - seg_start),
            preceding=preceding if i == 0 else "",
            schedule_row=schedule_row,
        )

        mark = ""
        if i == 0:
            mm = _MARK.match(text)
            if mm and mm.end(1) <= start:
                mark = mm.group(1).upper()

        length, length_unit = _member_length(text[end:seg_end])
        resolved = steel_weight_per_length(designation)
        weight, weight_unit = resolved if resolved else (None, "")

        ctx.seen.add(key)
        if schedule_row:
            ctx.schedule_keys.add((designation, category))
        members.append(ExtractedMember(
            type=spec.type,
            designation=designation,
            category=category,
            sub_category=spec.sub_category,
            quantity=quantity,
            dimensions=_dimensions(designation, spec.sub_category, spec.standard),
            weight=weight,
            weight_unit=weight_unit,
            length=length,
            length_unit=length_unit,
            source=source,
            raw_line=text.strip(),
            mark=mark,
            standard=spec.standard,
            fabrication_class=spec.fabrication_class,
        ))
    return members


def _schedule_windows(lines: Sequence) -> List[Tuple[str, List[int]]]:
    """(title, line indexes) for every schedule window in reading order."""
    windows = []
    i = 0
    n = len(lines)
    while i < n:
        title = schedule_title(_line_text(lines[i]))
        if not title:
            i += 1
            continue
        indexes = []
        j = i + 1
        while j < n and len(indexes) < SCHEDULE_WINDOW_LINES:
            other = schedule_title(_line_text(lines[j]))
            if other and other != title:
                break
            if not other:
                indexes.append(j)
            j += 1
        windows.append((title, indexes))
        i = j
    return windows


def _schedule_pass(lines: Sequence, preferred_category, ctx, catalog) -> Tuple[List[ExtractedMember], set]:
    members: List[ExtractedMember] = []
    consumed: set = set()
    for title, indexes in _schedule_windows(lines):
        category = schedule_category(title) or preferred_category
        consumed.update(indexes)
        found = 0
        for idx in indexes:
            previous = _line_text(lines[idx - 1]) if idx > 0 else ""
            hits = _scan_line(_line_text(lines[idx]), previous, title, category, ctx, catalog)
            found += len(hits)
            members.extend(hits)
        ctx.note(f"{title}: {found} members from {len(indexes)} lines")
    # Heading lines never feed the general pass
    for i, line in enumerate(lines):
        if schedule_title(_line_text(line)):
            consumed.add(i)
    return members, consumed


def _general_pass(lines: Sequence, consumed: set, preferred_category, ctx, catalog) -> List[ExtractedMember]:
    members: List[ExtractedMember] = []
    for i, line in enumerate(lines):
        if i in consumed:
            continue
        text = _line_text(line)
        if _is_noise(text):
            continue
        previous = _line_text(lines[i - 1]) if i > 0 else ""
        members.extend(_scan_line(text, previous, GENERAL_TEXT_SOURCE, preferred_category, ctx, catalog))
    return members


# ── Public API ────────────────────────────────────────────────────────────────

def extract_members(
    lines: Iterable,
    preferred_category: Optional[str] = None,
    context: Optional[ExtractionContext] = None,
    catalog=None,
) -> List[ExtractedMember]:
    """
    Schedule pass then general pass over one sequence of lines (Line
    records or plain strings). ``preferred_category`` sets the initial
    bucket of sections that serve either as main members or secondary
    framing; schedule titles such as PURLIN SCHEDULE override it.
    """
    ctx = context or ExtractionContext()
    catalog = MEMBER_CATALOG if catalog is None else catalog
    lines = list(lines)
    scheduled, consumed = _schedule_pass(lines, preferred_category, ctx, catalog)
    general = _general_pass(lines, consumed, preferred_category, ctx, catalog)
    return scheduled + general


def reclassify(members: Iterable[ExtractedMember]) -> List[ExtractedMember]:
    """Move each member to the bucket its designation prefix implies."""
    out: List[ExtractedMember] = []
    moved = 0
    for member in members:
        for rx, bucket in RECLASSIFY_CATALOG:
            if rx.search(member.designation):
                if bucket != member.category:
                    member = replace(member, category=bucket)
                    moved += 1
                break
        out.append(member)
    if moved:
        logger.info(f"Reclassified {moved} members by designation prefix")
    return out


def _kg_total(member: ExtractedMember) -> float:
    if member.weight is None:
        return 0.0
    if member.weight_unit == "kg/ea":
        return member.weight * member.quantity
    if member.length is None:
        return 0.0
    per_m = member.weight if member.weight_unit == "kg/m" else member.weight * KG_PER_LB * FT_PER_M
    length_m = member.length if member.length_unit == "m" else member.length / FT_PER_M
    return per_m * length_m * member.quantity


def summarize(buckets: dict) -> dict:
    """
    Per-bucket ``{members, quantity, weight}``. Weight is kg and counts only
    members whose total mass is known (per-piece, or per-length with a
    length on the drawing).
    """
    summary = {}
    for name in BUCKETS:
        items = buckets.get(name, ())
        summary[name] = {
            "members": len(items),
            "quantity": sum(m.quantity for m in items),
            "weight": round(sum(_kg_total(m) for m in items), 2),
        }
    return summary


def build_steel_dataset(
    pages: Iterable[DrawingPage],
    context: Optional[ExtractionContext] = None,
    catalog=None,
) -> SteelDataset:
    """Extract, reclassify and bucket members for a whole drawing set."""
    ctx = context or ExtractionContext()
    catalog = MEMBER_CATALOG if catalog is None else catalog
    pages = list(pages)

    consumed_by_page = []
    members: List[ExtractedMember] = []
    for page in pages:
        scheduled, consumed = _schedule_pass(page.lines, None, ctx, catalog)
        members.extend(scheduled)
        consumed_by_page.append(consumed)
    for page, consumed in zip(pages, consumed_by_page):
        members.extend(_general_pass(page.lines, consumed, None, ctx, catalog))

    members = reclassify(members)

    scheduled_keys = {(m.designation, m.category) for m in members if m.source != GENERAL_TEXT_SOURCE}
    buckets = {name: [] for name in BUCKETS}
    seen = set()
    for m in members:
        if m.key in seen:
            continue
        if m.source == GENERAL_TEXT_SOURCE and (m.designation, m.category) in scheduled_keys:
            continue
        seen.add(m.key)
        buckets.setdefault(m.category, []).append(m)

    frozen = {name: tuple(items) for name, items in buckets.items()}
    dataset = SteelDataset(buckets=frozen, summary=summarize(frozen))
    logger.info(
        f"Extracted {dataset.member_count} members from {len(pages)} pages "
        f"({sum(1 for m in dataset.members() if m.source != GENERAL_TEXT_SOURCE)} from schedules)"
    )
    return dataset
