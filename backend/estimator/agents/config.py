"""
Estimation pipeline configuration — single source of truth for pass ordering,
timeouts, model routing, confidence thresholds and estimating defaults.

Import from here in all nodes and services rather than hardcoding values.
"""
from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


# ── Pass execution order ───────────────────────────────────────────────────────
# Canonical pipeline sequence. Actual wiring is in
# estimation_graph.build_estimation_graph().
PASS_ORDER: list[str] = [
    "SheetClassificationNode",
    "TargetedExtractionNode",
    "QuantityTakeoffNode",
    "CostApplicationNode",
    "ValidationNode",
]

# Progress percentages reported through on_pass_update
PASS_PROGRESS: dict[str, int] = {
    "SheetClassificationNode":  15,
    "TargetedExtractionNode":   40,
    "QuantityTakeoffNode":      60,
    "CostApplicationNode":      80,
    "ValidationNode":           95,
}

# Map pass name to its 1-based number
PASS_NUMBER: dict[str, int] = {name: i + 1 for i, name in enumerate(PASS_ORDER)}


# ── Generative-call timeouts (seconds) ────────────────────────────────────────
# A timeout is handled exactly like an unparseable response: the pass falls
# back to its locally computed result.
_DEFAULT_TIMEOUT = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

PASS_TIMEOUTS: dict[str, float] = {
    "SheetClassificationNode":  _DEFAULT_TIMEOUT,
    "TargetedExtractionNode":   _DEFAULT_TIMEOUT * 1.5,   # one call per sheet group
    "ValidationNode":           _DEFAULT_TIMEOUT,
}


# ── LLM routing ───────────────────────────────────────────────────────────────
PRIMARY_MODEL: str = os.getenv("LLM_PRIMARY_MODEL", "groq/llama-3.1-70b-versatile")
FALLBACK_MODEL: str = os.getenv("LLM_FALLBACK_MODEL", "gemini/gemini-1.5-flash")

LLM_ROUTING: dict[str, str] = {
    "SheetClassificationNode":  PRIMARY_MODEL,
    "TargetedExtractionNode":   PRIMARY_MODEL,
    "ValidationNode":           FALLBACK_MODEL,     # Long structured review
}

# Characters of page text sent per page in the classification prompt
PAGE_EXCERPT_CHARS: int = 1_500

# Characters of grouped sheet text sent per extraction call
GROUP_TEXT_CHARS: int = 12_000


# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")    # json | text


# ── Confidence thresholds ──────────────────────────────────────────────────────

# Final confidence levels (0-100 score)
CONFIDENCE_LEVELS: list[tuple[int, str]] = [
    (80, "High"),
    (60, "Medium"),
    (40, "Low"),
]
CONFIDENCE_FLOOR_LABEL: str = "Very Low"

# Weights of the final confidence factors (sum to 100)
CONFIDENCE_WEIGHTS: dict[str, int] = {
    "validation":    30,
    "drawing_data":  25,
    "rate_quality":  20,
    "benchmark":     15,
    "completeness":  10,
}

# Score reported for a document with no text layer
NO_DATA_CONFIDENCE: int = 10


# ── Estimating defaults ────────────────────────────────────────────────────────

ESTIMATING_DEFAULTS: dict[str, float] = {
    # Allowances added to the raw member tonnage
    "connections_allowance_pct": 0.10,    # 10% connections / misc steel
    "waste_allowance_pct": 0.03,          # 3% cutting waste

    # Used when a member has no length on the drawing
    "default_member_length_ft": 20.0,
    "default_member_length_m": 6.0,

    # Markups, each applied once to the running pre-tax subtotal
    "contingency_pct": 0.10,
    "preliminaries_pct": 0.08,
    "overheads_profit_pct": 0.12,

    # Market escalation (clamped to [0, 0.10] by the cost lookup)
    "annual_escalation_pct": 0.04,
}

# Complexity multiplier by extracted member count: (threshold, multiplier)
COMPLEXITY_THRESHOLDS: list[tuple[int, float]] = [
    (150, 1.15),
    (50, 1.10),
]

# Erection tier by installation height (metres)
ERECTION_HEIGHT_CLASSES: list[tuple[float, str]] = [
    (6.0, "low_rise"),
    (15.0, "mid_rise"),
]
ERECTION_DEFAULT_CLASS: str = "high_rise"


# ── Trades expected in a complete estimate ─────────────────────────────────────
EXPECTED_TRADES: list[str] = [
    "Structural Steel",
    "Connections & Hardware",
    "Concrete",
    "Reinforcement",
]
