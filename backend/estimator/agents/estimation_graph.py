"""
LangGraph State Graph — steel estimation pipeline.

Node execution order (strict, one document per run):
  SheetClassificationNode → TargetedExtractionNode → QuantityTakeoffNode
      → CostApplicationNode → ValidationNode

  A document without a text layer stops after SheetClassificationNode and
  comes back as a "no data" result.

Each node:
  1. Updates state.current_node and state.progress_pct
  2. Does its work; a generative call that times out, fails or returns
     nothing usable is replaced by the locally computed result and the
     node's stage_status is tagged "fallback"
  3. Reports (pass_number, name, status) through on_pass_update
"""
import asyncio
import inspect
import logging
import time
import uuid
from collections import Counter
from functools import partial
from typing import Callable, Iterable, List, Optional

from langgraph.graph import StateGraph, END

from estimator.agents.config import NO_DATA_CONFIDENCE, PASS_NUMBER, PASS_PROGRESS, PASS_TIMEOUTS
from estimator.agents.graph_state import EstimationState
from estimator.models.drawing_models import DrawingPage, SheetClassification, as_plain
from estimator.models.stage_schemas import (
    GROUP_SCHEMAS,
    ExtractionMeta,
    ReviewResponse,
    SheetClassificationResponse,
    TargetedExtraction,
)
from estimator.services.cost_lookup import detect_currency
from estimator.services.errors import ResponseParseError
from estimator.services.estimation_engine import EstimationEngine
from estimator.services.layout_reader import document_text, read_pdf_pages
from estimator.services.llm_client import TextGenerator, get_system_prompt
from estimator.services.local_extraction import (
    classify_sheets_locally,
    detect_design_standard,
    group_pages,
    local_group_extraction,
    normalize_sheet_type,
    resolve_unit_system,
)
from estimator.services.logging_config import RunLogAdapter
from estimator.services.measurement_extractor import extract_measurements
from estimator.services.member_extractor import ExtractionContext, build_steel_dataset
from estimator.services.prompt_templates import extraction_prompt, sheet_classification_prompt, validation_prompt
from estimator.services.response_parser import StageResult, call_stage
from estimator.services.takeoff_engine import TakeoffEngine
from estimator.services.units import FT_PER_M, IMPERIAL, normalize_unit_system, parse_length
from estimator.services.validation_engine import confidence_level, validate_estimate

logger = logging.getLogger("estimator-graph")

PassCallback = Callable[[int, str, str], None]

_ESTIMATE_OPTION_KEYS = (
    "height_m", "duration_months", "start_date", "annual_escalation_pct", "concrete_grade", "galvanize",
)


# ── Stage bookkeeping ──────────────────────────────────────────────────────────

def _record_stage(state: EstimationState, name: str, result: StageResult, **extra) -> None:
    entry = result.to_dict()
    entry.update(extra)
    state["stage_status"] = {**(state.get("stage_status") or {}), name: entry}


async def _notify(callback: Optional[PassCallback], name: str, status: str) -> None:
    if callback is None:
        return
    outcome = callback(PASS_NUMBER[name], name, status)
    if inspect.isawaitable(outcome):
        await outcome


# ── Node factory ───────────────────────────────────────────────────────────────

def make_node(name: str, progress: int, impl: Callable | None = None, on_pass_update: Optional[PassCallback] = None):
    """
    Factory: wraps an implementation function with progress tracking, timing
    and pass notifications. If impl is None, the node is a passthrough stub.
    """
    async def node(state: EstimationState) -> EstimationState:
        state["current_node"] = name
        state["progress_pct"] = progress
        log = RunLogAdapter(logger, state.get("run_id", "-"), pass_name=name)
        log.info(f"Entering {name} ({progress}%)")
        await _notify(on_pass_update, name, "started")

        started = time.perf_counter()
        status = "completed"
        if impl is not None:
            try:
                state = await impl(state)
            except Exception as e:
                state["error"] = str(e)
                state["error_node"] = name
                status = "failed"
                log.error(f"{name} failed: {e}", exc_info=True)

        duration_ms = int((time.perf_counter() - started) * 1000)
        state["timings_ms"] = {**(state.get("timings_ms") or {}), name: duration_ms}
        if status == "completed" and (state.get("stage_status") or {}).get(name, {}).get("status") == "fallback":
            status = "fallback"
        log.info(f"{name} {status}", extra={"duration_ms": duration_ms})
        await _notify(on_pass_update, name, status)

        state["last_completed_node"] = name
        return state

    node.__name__ = name
    return node


# ── Pass 1: sheet classification ───────────────────────────────────────────────

def _parse_sheets(data: dict, pages: List[DrawingPage], dataset) -> List[SheetClassification]:
    """
    Accepts the sheet list under ``sheets``, ``sheetInventory`` or ``pages``,
    else the first list in the object. Pages the response skipped are
    classified locally.
    """
    for key in ("sheets", "sheetInventory", "pages"):
        if isinstance(data.get(key), list):
            raw = data[key]
            break
    else:
        raw = next((v for v in data.values() if isinstance(v, list)), None)
    if not raw:
        raise ResponseParseError("response holds no sheet list")

    response = SheetClassificationResponse.model_validate(
        {"sheets": raw, "drawingSetSummary": data.get("drawingSetSummary")}
    )
    summary = response.summary
    known = {p.page_number for p in pages}
    by_page = {}
    for entry in response.sheets:
        if entry.page_number not in known or entry.page_number in by_page:
            continue
        standard = entry.design_standard or (summary.design_standard if summary else None) or "UNKNOWN"
        unit_system = entry.unit_system or (summary.unit_system if summary else None)
        by_page[entry.page_number] = SheetClassification(
            page_number=entry.page_number,
            sheet_type=normalize_sheet_type(entry.sheet_type),
            sheet_name=entry.sheet_name or "Unknown Sheet",
            scale=entry.scale or "N/A",
            design_standard=standard.upper(),
            unit_system=normalize_unit_system(unit_system),
        )
    if not by_page:
        raise ResponseParseError("no classified sheet matches a document page")

    missing = [p for p in pages if p.page_number not in by_page]
    for sheet in classify_sheets_locally(missing, dataset) if missing else ():
        by_page[sheet.page_number] = sheet
    return [by_page[p.page_number] for p in pages]


async def _sheet_classification_impl(state: EstimationState, generator: Optional[TextGenerator] = None) -> EstimationState:
    """
    SheetClassificationNode: reads the measurement evidence and the steel
    member inventory for the whole document, then classifies every page.
    """
    name = "SheetClassificationNode"
    pages = list(state.get("pages") or [])
    text = document_text(pages)

    if state.get("measurements") is None:
        state["measurements"] = extract_measurements(text, state.get("document_name", ""))
    if state.get("steel_dataset") is None:
        state["steel_dataset"] = build_steel_dataset(pages, ExtractionContext())
    measurements = state["measurements"]
    dataset = state["steel_dataset"]

    if not text.strip():
        state["sheets"] = []
        state["unit_system"] = IMPERIAL
        state["design_standard"] = "UNKNOWN"
        _record_stage(state, name, StageResult.fallback([], "document has no text layer"))
        return state

    result = await call_stage(
        generator,
        sheet_classification_prompt(pages, measurements),
        PASS_TIMEOUTS[name],
        parse=partial(_parse_sheets, pages=pages, dataset=dataset),
        fallback=partial(classify_sheets_locally, pages, dataset),
        system=get_system_prompt("sheet_classifier"),
        stage=name,
    )
    sheets = result.data
    standards = Counter(s.design_standard for s in sheets if s.design_standard not in ("", "UNKNOWN"))

    state["sheets"] = sheets
    state["unit_system"] = resolve_unit_system(sheets, measurements)
    state["design_standard"] = standards.most_common(1)[0][0] if standards else detect_design_standard(dataset)
    _record_stage(state, name, result)
    logger.info(
        f"[{state.get('run_id', '-')}] SheetClassification: {len(sheets)} sheets, "
        f"{state['unit_system']}, {state['design_standard']}"
    )
    return state


# ── Pass 2: targeted extraction ────────────────────────────────────────────────

def _parse_group(data: dict, schema):
    if not data:
        raise ResponseParseError("empty extraction object")
    return schema.model_validate(data)


async def _targeted_extraction_impl(state: EstimationState, generator: Optional[TextGenerator] = None) -> EstimationState:
    """
    TargetedExtractionNode: one specialized call per detected sheet group,
    each with its own local fallback, merged into a TargetedExtraction.
    """
    name = "TargetedExtractionNode"
    pages = state.get("pages") or []
    sheets = state.get("sheets") or []
    unit_system = state.get("unit_system", IMPERIAL)
    measurements = state.get("measurements")
    dataset = state.get("steel_dataset")
    by_number = {p.page_number: p for p in pages}

    sections, processed, failed, groups = {}, [], [], {}
    for group, numbers in group_pages(sheets).items():
        group_sheets = [by_number[n] for n in numbers if n in by_number]
        result = await call_stage(
            generator,
            extraction_prompt(group, group_sheets, unit_system, measurements),
            PASS_TIMEOUTS[name],
            parse=partial(_parse_group, schema=GROUP_SCHEMAS[group]),
            fallback=partial(local_group_extraction, group, group_sheets, dataset, measurements),
            system=get_system_prompt("estimator"),
            stage=f"{name}/{group}",
        )
        sections[group] = result.data
        groups[group] = result.to_dict()
        (failed if result.is_fallback else processed).append(group)

    state["extraction"] = TargetedExtraction(
        unit_system=unit_system,
        extraction_meta=ExtractionMeta(groups_processed=processed, groups_failed=failed, total_sheets=len(sheets)),
        **sections,
    )
    if failed:
        outcome = StageResult.fallback(None, f"local records used for {', '.join(failed)}")
    else:
        outcome = StageResult.ok(None)
    _record_stage(state, name, outcome, groups=groups)
    logger.info(
        f"[{state.get('run_id', '-')}] TargetedExtraction: processed={processed or '-'} fallback={failed or '-'}"
    )
    return state


# ── Pass 3: quantity takeoff ───────────────────────────────────────────────────

async def _quantity_takeoff_impl(state: EstimationState) -> EstimationState:
    """QuantityTakeoffNode: deterministic takeoff over the pass 2 records and the member inventory."""
    name = "QuantityTakeoffNode"
    result = TakeoffEngine().takeoff(
        {"steel": state.get("steel_dataset"), "extraction": state.get("extraction")},
        state.get("unit_system", IMPERIAL),
    )
    state["takeoff"] = result
    if result.fallback_reason:
        _record_stage(state, name, StageResult.fallback(None, result.fallback_reason))
    else:
        _record_stage(state, name, StageResult.ok(None))
    return state


# ── Pass 4: cost application ───────────────────────────────────────────────────

def _eave_height_m(state: EstimationState) -> Optional[float]:
    extraction = state.get("extraction")
    if extraction is None:
        return None
    heights = extraction.elevation.heights
    unit_system = state.get("unit_system", IMPERIAL)
    value = parse_length(heights.eave_height or heights.overall_height, unit_system)
    if value is None:
        return None
    return round(value / FT_PER_M, 2) if normalize_unit_system(unit_system) == IMPERIAL else value


def _concrete_grade(state: EstimationState) -> Optional[str]:
    extraction = state.get("extraction")
    if extraction is not None:
        foundation = extraction.foundation
        for footing in list(foundation.footings) + list(foundation.pile_caps):
            if footing.concrete_grade:
                return footing.concrete_grade
        if foundation.slab_on_grade and foundation.slab_on_grade.concrete_strength:
            return foundation.slab_on_grade.concrete_strength
        for column in foundation.concrete_columns:
            if column.concrete_grade:
                return column.concrete_grade
        for slab in foundation.elevated_slabs:
            if slab.concrete_strength:
                return slab.concrete_strength
    measurements = state.get("measurements")
    if measurements is not None and measurements.material_specs.get("concreteGrades"):
        return measurements.material_specs["concreteGrades"][0]
    return None


def estimate_options(state: EstimationState) -> dict:
    """Pricing options from the project info, completed from the drawings."""
    info = state.get("project_info") or {}
    options = {k: info[k] for k in _ESTIMATE_OPTION_KEYS if info.get(k) is not None}
    if "height_m" not in options:
        height = _eave_height_m(state)
        if height:
            options["height_m"] = height
    if "concrete_grade" not in options:
        grade = _concrete_grade(state)
        if grade:
            options["concrete_grade"] = grade
    return options


async def _cost_application_impl(state: EstimationState) -> EstimationState:
    """CostApplicationNode: currency detection and pricing of the takeoff."""
    name = "CostApplicationNode"
    info = state.get("project_info") or {}
    quantities = state.get("takeoff")
    if quantities is None:
        quantities = TakeoffEngine().takeoff(None, state.get("unit_system", IMPERIAL))

    currency = detect_currency(info)
    result = EstimationEngine().estimate(quantities, info.get("location"), currency, estimate_options(state))
    state["currency"] = currency
    state["estimate"] = result

    unresolved = result.rate_source_breakdown.get("NOT_FOUND", {}).get("items", 0)
    if unresolved:
        _record_stage(state, name, StageResult.fallback(None, f"{unresolved} line items without a rate"))
    else:
        _record_stage(state, name, StageResult.ok(None))
    return state


# ── Pass 5: validation ─────────────────────────────────────────────────────────

def _no_data_confidence(note: str) -> dict:
    return {"score": NO_DATA_CONFIDENCE, "level": confidence_level(NO_DATA_CONFIDENCE), "factors": {}, "note": note}


async def _validation_impl(state: EstimationState, generator: Optional[TextGenerator] = None) -> EstimationState:
    """
    ValidationNode: advisory checks plus an optional generative review.
    Never changes the estimate.
    """
    name = "ValidationNode"
    estimate = state.get("estimate")
    quantities = state.get("takeoff")
    info = state.get("project_info") or {}
    if estimate is None or quantities is None:
        state["confidence"] = _no_data_confidence("Nothing was priced")
        _record_stage(state, name, StageResult.fallback(None, "no estimate to validate"))
        return state

    result = await call_stage(
        generator,
        validation_prompt(estimate.to_dict(), quantities.to_dict(), info),
        PASS_TIMEOUTS[name],
        parse=ReviewResponse.model_validate,
        fallback=lambda: None,
        system=get_system_prompt("reviewer"),
        stage=name,
    )
    review = result.data
    measurements = state.get("measurements")
    drawing_score = measurements.confidence.get("score", 0) if measurements is not None else 0

    report = validate_estimate(estimate, quantities, info, drawing_score, review)
    state["validation"] = report
    state["confidence"] = report.confidence
    state["review_assessment"] = review.overall_assessment if review is not None else ""
    _record_stage(state, name, result)
    return state


# ── Conditional edge functions ─────────────────────────────────────────────────

def has_drawing_text(state: EstimationState) -> str:
    if state.get("sheets"):
        return "TargetedExtractionNode"
    return END


# ── Graph construction ─────────────────────────────────────────────────────────

def build_estimation_graph(
    generator: Optional[TextGenerator] = None,
    on_pass_update: Optional[PassCallback] = None,
):
    graph = StateGraph(EstimationState)

    def add(name: str, impl: Callable) -> None:
        graph.add_node(name, make_node(name, PASS_PROGRESS[name], impl, on_pass_update))

    add("SheetClassificationNode", partial(_sheet_classification_impl, generator=generator))
    add("TargetedExtractionNode",  partial(_targeted_extraction_impl, generator=generator))
    add("QuantityTakeoffNode",     _quantity_takeoff_impl)
    add("CostApplicationNode",     _cost_application_impl)
    add("ValidationNode",          partial(_validation_impl, generator=generator))

    graph.set_entry_point("SheetClassificationNode")

    graph.add_conditional_edges(
        "SheetClassificationNode",
        has_drawing_text,
        {"TargetedExtractionNode": "TargetedExtractionNode", END: END},
    )
    graph.add_edge("TargetedExtractionNode", "QuantityTakeoffNode")
    graph.add_edge("QuantityTakeoffNode", "CostApplicationNode")
    graph.add_edge("CostApplicationNode", "ValidationNode")
    graph.add_edge("ValidationNode", END)

    return graph.compile()


# Compiled graph for runs without a text generator or callback
estimation_graph = build_estimation_graph()


# ── Entry points ───────────────────────────────────────────────────────────────

def build_result(state: EstimationState) -> dict:
    """Render the final state as the plain result document."""
    extraction = state.get("extraction")
    if state.get("error"):
        status = "degraded"
    elif not state.get("sheets"):
        status = "no_data"
    else:
        status = "complete"
    confidence = state.get("confidence")
    if not confidence:
        note = f"Run stopped in {state.get('error_node')}" if status == "degraded" else "No extractable text in the document"
        confidence = _no_data_confidence(note)

    return {
        "runId": state.get("run_id"),
        "documentName": state.get("document_name", ""),
        "status": status,
        "unitSystem": state.get("unit_system", IMPERIAL),
        "designStandard": state.get("design_standard", "UNKNOWN"),
        "currency": state.get("currency"),
        "sheets": as_plain(state.get("sheets") or []),
        "measurements": as_plain(state.get("measurements")),
        "steelDataset": as_plain(state.get("steel_dataset")),
        "extraction": extraction.model_dump(by_alias=True) if extraction is not None else None,
        "takeoff": as_plain(state.get("takeoff")),
        "estimate": as_plain(state.get("estimate")),
        "validation": as_plain(state.get("validation")),
        "reviewAssessment": state.get("review_assessment", ""),
        "confidence": dict(confidence),
        "stageStatus": dict(state.get("stage_status") or {}),
        "timingsMs": dict(state.get("timings_ms") or {}),
        "error": state.get("error"),
        "errorNode": state.get("error_node"),
    }


async def run_estimation(
    pages: Iterable[DrawingPage],
    project_info: Optional[dict] = None,
    generator: Optional[TextGenerator] = None,
    on_pass_update: Optional[PassCallback] = None,
    run_id: Optional[str] = None,
    document_name: str = "",
) -> dict:
    """Run the five passes over one document and return the plain result."""
    if generator is None and on_pass_update is None:
        graph = estimation_graph
    else:
        graph = build_estimation_graph(generator, on_pass_update)

    initial: EstimationState = {
        "run_id": run_id or uuid.uuid4().hex[:12],
        "document_name": document_name,
        "pages": list(pages),
        "project_info": dict(project_info or {}),
        "stage_status": {},
        "timings_ms": {},
        "error": None,
        "error_node": None,
    }
    final = await graph.ainvoke(initial)
    return build_result(final)


async def run_estimations(
    documents: Iterable[dict],
    generator: Optional[TextGenerator] = None,
    on_pass_update: Optional[PassCallback] = None,
) -> List[dict]:
    """
    Independent documents concurrently. Each document is a dict with
    ``pages`` and optionally ``project_info`` and ``name``.
    """
    return list(await asyncio.gather(*(
        run_estimation(
            doc.get("pages") or [],
            doc.get("project_info"),
            generator,
            on_pass_update,
            document_name=doc.get("name", ""),
        )
        for doc in documents
    )))


async def estimate_pdf(
    path: str,
    project_info: Optional[dict] = None,
    generator: Optional[TextGenerator] = None,
    on_pass_update: Optional[PassCallback] = None,
) -> dict:
    """Read a drawing PDF and estimate it. An unreadable file raises DocumentReadError."""
    pages = await asyncio.to_thread(read_pdf_pages, path)
    return await run_estimation(pages, project_info, generator, on_pass_update, document_name=path)
