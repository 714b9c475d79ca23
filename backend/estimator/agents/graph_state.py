"""
LangGraph State definition for the estimation pipeline.

All graph nodes read and write this TypedDict. One state instance exists per
document run; nothing in it is shared between concurrent runs.
"""
from typing import TypedDict, Optional, List, Any


class EstimationState(TypedDict, total=False):
    # ── Core identity ─────────────────────────────────────────────────────────
    run_id: str
    document_name: str

    # ── Workflow control ──────────────────────────────────────────────────────
    current_node: str
    progress_pct: int                       # 0–100
    last_completed_node: str
    stage_status: dict                      # node name → {"status": ok|fallback, "reason"?}
    timings_ms: dict                        # node name → wall time

    # ── Input ─────────────────────────────────────────────────────────────────
    pages: List[Any]                        # DrawingPage
    project_info: dict                      # name, location, currency, project_type, total_area, ...

    # ── Evidence computed before the generative passes ───────────────────────
    measurements: Optional[Any]             # MeasurementSet
    steel_dataset: Optional[Any]            # SteelDataset

    # ── Pass 1: sheet classification ──────────────────────────────────────────
    sheets: List[Any]                       # SheetClassification
    unit_system: str                        # Imperial | Metric
    design_standard: str

    # ── Pass 2: targeted extraction ───────────────────────────────────────────
    extraction: Optional[Any]               # TargetedExtraction

    # ── Pass 3–5 results ──────────────────────────────────────────────────────
    takeoff: Optional[Any]                  # QuantityTakeoffResult
    currency: str
    estimate: Optional[Any]                 # EstimateResult
    validation: Optional[Any]               # ValidationReport
    review_assessment: str
    confidence: dict                        # {score, level, factors}

    # ── Error tracking ────────────────────────────────────────────────────────
    error: Optional[str]
    error_node: Optional[str]               # Which node raised the error
