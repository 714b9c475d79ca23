"""
Advisory validation of a priced estimate and the final confidence score.

Nothing here changes the estimate. Each check returns issues tagged
critical / warning / info, and the confidence score weighs the issues
together with the drawing evidence, the rate sources, the benchmark position
and trade completeness (weights in agents/config.py).
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from estimator.agents.config import (
    CONFIDENCE_FLOOR_LABEL,
    CONFIDENCE_LEVELS,
    CONFIDENCE_WEIGHTS,
    EXPECTED_TRADES,
)
from estimator.models.drawing_models import EstimateResult, QuantityTakeoffResult
from estimator.services.cost_lookup import get_benchmark_range, lookup_rate
from estimator.services.reference_data import TON_UNIT_MASS
from estimator.services.units import KG_PER_LB, SQFT_PER_SQM, unit_labels

logger = logging.getLogger("estimator-validation")

ARITHMETIC_TOLERANCE = 1.0

_ISSUE_PENALTY = {"critical": 12, "warning": 5, "info": 1}
_SOURCE_QUALITY = {"DB": 1.0, "FUZZY": 0.75, "DEFAULT": 0.5, "NOT_FOUND": 0.0}
_BENCHMARK_SCORE = {"within": 1.0, "below": 0.5, "above": 0.5, "far_below": 0.2, "far_above": 0.2}
_NO_BENCHMARK_SCORE = 0.5


@dataclass(frozen=True)
class ValidationIssue:
    severity: str                   # critical | warning | info
    category: str                   # arithmetic | benchmark | unitRate | completeness | discrepancy | review
    message: str

    def to_dict(self) -> dict:
        return {"severity": self.severity, "category": self.category, "message": self.message}


@dataclass(frozen=True)
class ValidationReport:
    issues: tuple = ()
    benchmark: Optional[dict] = None
    rate_check: Optional[dict] = None
    trade_completeness: dict = field(default_factory=dict)
    confidence: dict = field(default_factory=dict)

    @property
    def critical_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == "critical")

    def to_dict(self) -> dict:
        return {
            "issues": [i.to_dict() for i in self.issues],
            "benchmark": self.benchmark,
            "rateCheck": self.rate_check,
            "tradeCompleteness": dict(self.trade_completeness),
            "confidence": dict(self.confidence),
        }


# ── Checks ────────────────────────────────────────────────────────────────────

def check_arithmetic(estimate: EstimateResult) -> List[ValidationIssue]:
    """Re-derive every line total, category total and the summary chain."""
    issues = []
    for item in estimate.items:
        expected = round(item.quantity * item.unit_rate, 2)
        if abs(expected - item.total_cost) > ARITHMETIC_TOLERANCE:
            issues.append(ValidationIssue(
                "critical", "arithmetic",
                f"Line {item.code} total {item.total_cost:,.2f} != {item.quantity} × {item.unit_rate} = {expected:,.2f}",
            ))

    for name, group in estimate.categories.items():
        total = round(sum(i.total_cost for i in group["items"]), 2)
        if abs(total - group["total"]) > ARITHMETIC_TOLERANCE:
            issues.append(ValidationIssue(
                "warning", "arithmetic", f"Category {name} total {group['total']:,.2f} != sum of items {total:,.2f}",
            ))

    s = estimate.cost_summary
    base = round(sum(i.total_cost for i in estimate.items), 2)
    if abs(base - s.base_cost) > ARITHMETIC_TOLERANCE:
        issues.append(ValidationIssue(
            "critical", "arithmetic", f"Base cost {s.base_cost:,.2f} != sum of line items {base:,.2f}",
        ))
    chain = (
        s.base_cost + s.complexity_adjustment + s.escalation
        + s.contingency + s.preliminaries + s.overheads_profit
    )
    if abs(chain - s.subtotal_ex_tax) > ARITHMETIC_TOLERANCE:
        issues.append(ValidationIssue(
            "critical", "arithmetic", f"Subtotal {s.subtotal_ex_tax:,.2f} != base plus markups {chain:,.2f}",
        ))
    if abs(s.subtotal_ex_tax + s.tax - s.total_inc_tax) > ARITHMETIC_TOLERANCE:
        issues.append(ValidationIssue(
            "critical", "arithmetic", f"Total {s.total_inc_tax:,.2f} != subtotal plus tax",
        ))
    return issues


_AREA_VALUE = re.compile(r"([\d,]*\d(?:\.\d+)?)\s*(m2|m²|sqm|sq\.?\s*m\b)?", re.IGNORECASE)


def _area_sqft(project_info: dict, takeoff: Optional[QuantityTakeoffResult]) -> Optional[float]:
    area = project_info.get("total_area")
    if area:
        match = _AREA_VALUE.search(str(area))
        value = float(match.group(1).replace(",", "")) if match else 0.0
        if value > 0:
            return value * SQFT_PER_SQM if match.group(2) else value
    if takeoff is not None:
        for element in ("footprint", "slab_on_grade", "deck", "roof"):
            for a in takeoff.areas:
                if a.element == element and a.count:
                    return a.count * SQFT_PER_SQM if a.unit == "m2" else float(a.count)
    return None


def check_benchmark(
    estimate: EstimateResult,
    project_info: dict,
    takeoff: Optional[QuantityTakeoffResult] = None,
) -> Tuple[List[ValidationIssue], Optional[dict]]:
    """Cost per square foot against the benchmark range for the project type."""
    s = estimate.cost_summary
    if not s.subtotal_ex_tax:
        return [], None
    area = _area_sqft(project_info, takeoff)
    if not area:
        return [ValidationIssue("info", "benchmark", "Cannot benchmark: no building area available")], None
    project_type = project_info.get("project_type") or "industrial"
    bm = get_benchmark_range(s.currency, project_type)
    if not bm:
        return [ValidationIssue("info", "benchmark", f"No benchmark for {project_type!r} in {s.currency}")], None

    cost = s.subtotal_ex_tax / area
    if cost < bm["low"] / 1.5:
        status, severity = "far_below", "critical"
    elif cost < bm["low"]:
        status, severity = "below", "warning"
    elif cost > bm["high"] * 1.5:
        status, severity = "far_above", "critical"
    elif cost > bm["high"]:
        status, severity = "above", "warning"
    else:
        status, severity = "within", None

    comparison = {
        "projectType": bm["label"],
        "currency": s.currency,
        "costPerSqft": round(cost, 2),
        "low": bm["low"],
        "mid": bm["mid"],
        "high": bm["high"],
        "status": status,
    }
    issues = []
    if severity:
        issues.append(ValidationIssue(
            severity, "benchmark",
            f"Cost {s.currency} {cost:,.2f}/sqft is {status.replace('_', ' ')} the {bm['label']} range "
            f"({bm['low']}-{bm['high']})",
        ))
    return issues, comparison


def check_installed_rate(
    estimate: EstimateResult,
    takeoff: QuantityTakeoffResult,
    location: Optional[str],
) -> Tuple[List[ValidationIssue], Optional[dict]]:
    """Installed structural steel cost per ton against the medium-section reference rate."""
    tonnage = takeoff.total_tonnage
    group = estimate.categories.get("Structural Steel")
    if not tonnage or not group:
        return [], None
    currency = estimate.cost_summary.currency
    reference = lookup_rate(currency, "structural_steel", "medium", location)
    if reference is None:
        return [ValidationIssue("info", "unitRate", f"No installed steel reference rate for {currency}")], None

    labels = unit_labels(takeoff.unit_system)
    per_ton, table_mass = TON_UNIT_MASS.get(reference.unit, (1000.0, "kg"))
    run_mass = tonnage * labels["divisor"]
    if table_mass != labels["mass"]:
        run_mass = run_mass * KG_PER_LB if labels["mass"] == "lbs" else run_mass / KG_PER_LB
    installed = group["total"] / (run_mass / per_ton)
    deviation = abs(installed - reference.rate) / reference.rate if reference.rate else 0.0

    check = {
        "installedRate": round(installed, 2),
        "referenceRate": reference.rate,
        "range": list(reference.range),
        "unit": reference.unit,
        "deviationPct": round(deviation * 100, 1),
    }
    issues = []
    if deviation > 1.0:
        issues.append(ValidationIssue(
            "critical", "unitRate",
            f"Installed steel {installed:,.0f}/{reference.unit} deviates {deviation:.0%} from reference {reference.rate:,.0f}",
        ))
    elif deviation > 0.5:
        issues.append(ValidationIssue(
            "warning", "unitRate",
            f"Installed steel {installed:,.0f}/{reference.unit} deviates {deviation:.0%} from reference {reference.rate:,.0f} "
            f"(range {reference.range[0]:,.0f}-{reference.range[1]:,.0f})",
        ))
    return issues, check


def check_trades(
    estimate: EstimateResult,
    extra_missing: Iterable[str] = (),
) -> Tuple[List[ValidationIssue], dict]:
    present, missing = [], []
    for trade in EXPECTED_TRADES:
        priced = estimate.categories.get(trade, {}).get("total", 0) > 0
        (present if priced else missing).append(trade)
    for trade in extra_missing:
        if trade and trade not in missing and trade not in present:
            missing.append(trade)

    issues = []
    if "Structural Steel" in missing:
        issues.append(ValidationIssue("critical", "completeness", "No structural steel was priced"))
    others = [t for t in missing if t != "Structural Steel"]
    if others:
        issues.append(ValidationIssue("warning", "completeness", f"Missing expected trades: {', '.join(others)}"))
    return issues, {"expected": list(EXPECTED_TRADES), "present": present, "missing": missing}


def rate_quality(estimate: EstimateResult) -> float:
    """Cost-weighted share of rates backed by the tables (0-1)."""
    if not estimate.items:
        return 0.0
    total = sum(i.total_cost for i in estimate.items)
    if total <= 0:
        return sum(_SOURCE_QUALITY.get(i.rate_source, 0.0) for i in estimate.items) / len(estimate.items)
    return sum(_SOURCE_QUALITY.get(i.rate_source, 0.0) * i.total_cost for i in estimate.items) / total


# ── Confidence ────────────────────────────────────────────────────────────────

def confidence_level(score: float) -> str:
    for threshold, label in CONFIDENCE_LEVELS:
        if score >= threshold:
            return label
    return CONFIDENCE_FLOOR_LABEL


def score_confidence(
    issues: Iterable[ValidationIssue],
    estimate: EstimateResult,
    benchmark: Optional[dict],
    trade_completeness: dict,
    drawing_score: float = 0.0,
) -> dict:
    issues = list(issues)
    penalty = sum(_ISSUE_PENALTY.get(i.severity, 0) for i in issues)
    expected = trade_completeness.get("expected") or []
    present = trade_completeness.get("present") or []

    parts = {
        "validation": max(0.0, 1.0 - penalty / 100.0),
        "drawing_data": max(0.0, min(drawing_score, 100.0)) / 100.0,
        "rate_quality": rate_quality(estimate),
        "benchmark": _BENCHMARK_SCORE.get(benchmark["status"], _NO_BENCHMARK_SCORE) if benchmark else _NO_BENCHMARK_SCORE,
        "completeness": len(present) / len(expected) if expected else 0.0,
    }
    factors = {name: round(value * CONFIDENCE_WEIGHTS[name], 1) for name, value in parts.items()}
    score = int(round(sum(factors.values())))
    return {"score": score, "level": confidence_level(score), "factors": factors}


def validate_estimate(
    estimate: EstimateResult,
    takeoff: QuantityTakeoffResult,
    project_info: Optional[dict] = None,
    drawing_score: float = 0.0,
    review=None,
) -> ValidationReport:
    """
    Run every check and score the result. ``review`` is an optional
    ReviewResponse from the generative reviewer; its issues are appended
    as-is and its missing trades join the completeness check.
    """
    project_info = project_info or {}
    issues: List[ValidationIssue] = []

    issues.extend(check_arithmetic(estimate))
    bench_issues, benchmark = check_benchmark(estimate, project_info, takeoff)
    issues.extend(bench_issues)
    rate_issues, rate_check = check_installed_rate(estimate, takeoff, project_info.get("location"))
    issues.extend(rate_issues)

    extra_missing = review.missing_trades if review is not None else ()
    trade_issues, completeness = check_trades(estimate, extra_missing)
    issues.extend(trade_issues)

    for d in takeoff.discrepancies:
        issues.append(ValidationIssue("warning", "discrepancy", f"{d.mark}: {d.note}"))
    if takeoff.fallback_reason:
        issues.append(ValidationIssue("warning", "takeoff", f"Quantity takeoff degraded: {takeoff.fallback_reason}"))
    if review is not None:
        issues.extend(ValidationIssue(r.severity, "review", r.message) for r in review.issues)

    confidence = score_confidence(issues, estimate, benchmark, completeness, drawing_score)
    logger.info(
        f"Validation: {len(issues)} issues "
        f"({sum(1 for i in issues if i.severity == 'critical')} critical), "
        f"confidence {confidence['score']} ({confidence['level']})"
    )
    return ValidationReport(
        issues=tuple(issues),
        benchmark=benchmark,
        rate_check=rate_check,
        trade_completeness=completeness,
        confidence=confidence,
    )
