"""
test_estimation_graph.py — End-to-end tests for the five-pass estimation graph.

Tests cover:
  - Runs without a text generator (every generative stage falls back)
  - Non-JSON, slow and valid generator responses per stage
  - Documents without a text layer ("no_data", confidence 10)
  - Pass notifications: order, numbering, sync and async callbacks
  - A failing node marks the run degraded without stopping later passes
  - Concurrent runs and PDF entry point errors
"""

import asyncio
import json

import pytest

from estimator.agents import config, estimation_graph
from estimator.agents.config import PASS_ORDER
from estimator.agents.estimation_graph import estimate_pdf, run_estimation, run_estimations
from estimator.models.drawing_models import DrawingPage
from estimator.services.errors import DocumentReadError

CLASSIFY_KEY = "Classify EACH page"
STRUCTURAL_KEY = "You are reading STRUCTURAL PLAN"
REVIEW_KEY = "Review this priced estimate"

CLASSIFICATION_REPLY = json.dumps({
    "sheets": [
        {"pageNumber": 1, "sheetType": "STRUCTURAL_PLAN", "sheetName": "S-101 Roof Framing Plan",
         "scale": "1/8\" = 1'-0\"", "designStandard": "AISC", "unitSystem": "Imperial"},
        {"pageNumber": 2, "sheetType": "FOUNDATION_PLAN", "sheetName": "S-201 Foundation Plan"},
    ],
    "drawingSetSummary": {"designStandard": "AISC", "unitSystem": "Imperial"},
})

STRUCTURAL_REPLY = "Here is the extraction:\n```json\n" + json.dumps({
    "beams": [{"mark": "B1", "size": "W24x68", "count": 12, "typicalLength": "30'-0\""}],
}) + "\n```"

REVIEW_REPLY = json.dumps({
    "issues": [{"severity": "info", "trade": "Structural Steel", "message": "Rates look typical for the region"}],
    "missingTrades": [],
    "overallAssessment": "Reasonable order-of-magnitude estimate.",
})


def _run(pages, **kwargs):
    return asyncio.run(run_estimation(pages, **kwargs))


# ===========================================================================
# Class 1: No generator
# ===========================================================================

class TestWithoutGenerator:

    def test_run_completes_on_local_results(self, drawing_pages):
        result = _run(drawing_pages, run_id="run-local")
        assert result["runId"] == "run-local"
        assert result["status"] == "complete"
        assert result["error"] is None
        assert result["unitSystem"] == "Imperial"
        assert result["designStandard"] == "AISC"
        assert result["currency"] == "USD"
        assert result["estimate"]["costSummary"]["totalIncTax"] > 0

    def test_generative_stages_marked_fallback(self, drawing_pages):
        stages = _run(drawing_pages)["stageStatus"]
        assert stages["SheetClassificationNode"] == {"status": "fallback", "reason": "no text generator configured"}
        assert stages["ValidationNode"] == {"status": "fallback", "reason": "no text generator configured"}
        assert stages["TargetedExtractionNode"]["status"] == "fallback"
        for group in stages["TargetedExtractionNode"]["groups"].values():
            assert group == {"status": "fallback", "reason": "no text generator configured"}
        assert stages["QuantityTakeoffNode"] == {"status": "ok"}

    def test_sheets_classified_locally(self, drawing_pages):
        sheets = _run(drawing_pages)["sheets"]
        assert [s["pageNumber"] for s in sheets] == [1, 2]
        assert sheets[1]["sheetType"] == "foundation"

    def test_every_pass_timed(self, drawing_pages):
        assert list(_run(drawing_pages)["timingsMs"]) == PASS_ORDER

    def test_currency_from_location(self, drawing_pages):
        result = _run(drawing_pages, project_info={"location": "Mumbai, India"})
        assert result["currency"] == "INR"
        assert result["estimate"]["costSummary"]["currency"] == "INR"


# ===========================================================================
# Class 2: Generator responses
# ===========================================================================

class TestGeneratorResponses:

    def test_non_json_replies_fall_back(self, drawing_pages, stub_generator):
        generator = stub_generator()
        result = _run(drawing_pages, generator=generator)
        baseline = _run(drawing_pages)
        assert result["status"] == "complete"
        assert result["stageStatus"]["SheetClassificationNode"] == {"status": "fallback", "reason": "no JSON object found"}
        assert result["stageStatus"]["ValidationNode"]["reason"] == "no JSON object found"
        assert result["estimate"]["costSummary"] == baseline["estimate"]["costSummary"]
        groups = result["stageStatus"]["TargetedExtractionNode"]["groups"]
        assert len(generator.prompts) == len(groups) + 2

    def test_slow_replies_time_out(self, drawing_pages, stub_generator, monkeypatch):
        for name in list(config.PASS_TIMEOUTS):
            monkeypatch.setitem(config.PASS_TIMEOUTS, name, 0.05)
        result = _run(drawing_pages, generator=stub_generator(default=CLASSIFICATION_REPLY, delay=0.5))
        stages = result["stageStatus"]
        assert stages["SheetClassificationNode"]["reason"] == "timeout after 0s"
        assert stages["ValidationNode"]["status"] == "fallback"
        assert result["status"] == "complete"

    def test_valid_classification_and_structural_group(self, drawing_pages, stub_generator):
        generator = stub_generator({CLASSIFY_KEY: CLASSIFICATION_REPLY, STRUCTURAL_KEY: STRUCTURAL_REPLY})
        result = _run(drawing_pages, generator=generator)
        stages = result["stageStatus"]
        assert stages["SheetClassificationNode"] == {"status": "ok"}
        assert stages["TargetedExtractionNode"]["groups"]["structural"] == {"status": "ok"}
        assert stages["TargetedExtractionNode"]["groups"]["foundation"]["status"] == "fallback"
        assert [s["sheetType"] for s in result["sheets"]] == ["structural", "foundation"]
        assert result["sheets"][0]["sheetName"] == "S-101 Roof Framing Plan"

        main = [i["designation"] for i in result["takeoff"]["steel"]["mainMembers"]]
        assert main.count("W24X68") == 1

    def test_classification_for_unknown_pages_rejected(self, drawing_pages, stub_generator):
        reply = json.dumps({"sheets": [{"pageNumber": 7, "sheetType": "STRUCTURAL_PLAN"}]})
        result = _run(drawing_pages, generator=stub_generator({CLASSIFY_KEY: reply}))
        assert result["stageStatus"]["SheetClassificationNode"] == {
            "status": "fallback", "reason": "no classified sheet matches a document page",
        }
        assert len(result["sheets"]) == 2

    def test_review_reply_used(self, drawing_pages, stub_generator):
        result = _run(drawing_pages, generator=stub_generator({REVIEW_KEY: REVIEW_REPLY}))
        assert result["stageStatus"]["ValidationNode"] == {"status": "ok"}
        assert result["reviewAssessment"] == "Reasonable order-of-magnitude estimate."
        review_issues = [i for i in result["validation"]["issues"] if i["category"] == "review"]
        assert review_issues == [{"severity": "info", "category": "review", "message": "Rates look typical for the region"}]


# ===========================================================================
# Class 3: No data, failures, notifications
# ===========================================================================

class TestNoData:

    def test_empty_document(self):
        events = []
        result = _run([DrawingPage(1)], on_pass_update=lambda n, name, status: events.append((n, name, status)))
        assert result["status"] == "no_data"
        assert result["confidence"]["score"] == 10
        assert result["confidence"]["level"] == "Very Low"
        assert result["estimate"] is None
        assert result["stageStatus"] == {
            "SheetClassificationNode": {"status": "fallback", "reason": "document has no text layer"},
        }
        assert events == [
            (1, "SheetClassificationNode", "started"),
            (1, "SheetClassificationNode", "fallback"),
        ]

    def test_no_pages(self):
        assert _run([])["status"] == "no_data"


class TestPassNotifications:

    def test_order_and_numbering(self, drawing_pages):
        events = []
        _run(drawing_pages, on_pass_update=lambda n, name, status: events.append((n, name, status)))
        started = [(n, name) for n, name, status in events if status == "started"]
        assert started == [(i + 1, name) for i, name in enumerate(PASS_ORDER)]
        assert len(events) == 2 * len(PASS_ORDER)
        assert events[1] == (1, "SheetClassificationNode", "fallback")
        assert events[5] == (3, "QuantityTakeoffNode", "completed")

    def test_async_callback(self, drawing_pages):
        events = []

        async def on_pass_update(number, name, status):
            events.append(name)

        _run(drawing_pages, on_pass_update=on_pass_update)
        assert events[0] == "SheetClassificationNode"
        assert events[-1] == "ValidationNode"

    def test_failed_node_degrades_run(self, drawing_pages):
        events = []
        result = _run(
            drawing_pages,
            project_info={"duration_months": "two years"},
            on_pass_update=lambda n, name, status: events.append((name, status)),
        )
        assert result["status"] == "degraded"
        assert result["errorNode"] == "CostApplicationNode"
        assert ("CostApplicationNode", "failed") in events
        assert events[-1][0] == "ValidationNode"
        assert result["confidence"]["score"] == 10
        assert result["stageStatus"]["ValidationNode"]["reason"] == "no estimate to validate"

    def test_first_pass_failure_is_degraded_not_empty(self, drawing_pages, monkeypatch):
        def broken_extractor(*args, **kwargs):
            raise RuntimeError("member extractor crashed")

        monkeypatch.setattr(estimation_graph, "build_steel_dataset", broken_extractor)
        events = []
        result = _run(drawing_pages, on_pass_update=lambda n, name, status: events.append((name, status)))
        assert result["status"] == "degraded"
        assert result["error"] == "member extractor crashed"
        assert result["errorNode"] == "SheetClassificationNode"
        assert result["estimate"] is None
        assert result["confidence"]["note"] == "Run stopped in SheetClassificationNode"
        assert events == [("SheetClassificationNode", "started"), ("SheetClassificationNode", "failed")]


# ===========================================================================
# Class 4: Entry points
# ===========================================================================

class TestEntryPoints:

    def test_concurrent_documents(self, drawing_pages, foundation_page):
        results = asyncio.run(run_estimations([
            {"pages": drawing_pages, "name": "framing.pdf"},
            {"pages": [foundation_page], "name": "foundation.pdf", "project_info": {"location": "Sydney"}},
        ]))
        assert [r["documentName"] for r in results] == ["framing.pdf", "foundation.pdf"]
        assert results[0]["runId"] != results[1]["runId"]
        assert results[1]["currency"] == "AUD"

    def test_unreadable_pdf(self, tmp_path):
        with pytest.raises(DocumentReadError):
            asyncio.run(estimate_pdf(str(tmp_path / "missing.pdf")))
