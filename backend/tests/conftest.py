"""
conftest.py — Shared pytest fixtures for the steel estimator test suite.

No network, model or PDF fixtures are defined here.  Drawing pages are built
from plain text through the layout reader, and the generative passes are
driven by small in-process stub generators.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``estimator.*`` imports resolve correctly regardless of where pytest is
    invoked.
"""

import asyncio
import os
import sys

import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any estimator imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Drawing text
# ---------------------------------------------------------------------------

FRAMING_SHEET = """\
S-101 ROOF FRAMING PLAN
SCALE: 1/8" = 1'-0"
STRUCTURAL STEEL ASTM A992 GRADE 50
TYPICAL BEAM W24X68 AT GRID LINES
4 NOS PL 1/2X12X12 BASE PLATES
ROOF DEAD LOAD = 15 PSF
BEAM SCHEDULE
B1 W24X68 12 30'-0"
B2 W16X26 8 25'-0"
C1 HSS6X6X1/4 6 18'-0"
"""

FOUNDATION_SHEET = """\
S-201 FOUNDATION PLAN
F1 6'-0" x 6'-0" x 2'-0" (20)
CONCRETE 4000 PSI
EAVE HEIGHT: 24'-0"
24 NOS 3/4 A325 BOLTS
"""


class StubGenerator:
    """
    Minimal text generator for the orchestrator.

    ``responses`` maps a substring of the prompt to the reply; the first
    matching key wins and ``default`` answers everything else.  ``delay``
    makes every call sleep before answering (for timeout tests).
    """

    def __init__(self, responses=None, default="not json at all", delay=0.0):
        self.responses = responses or {}
        self.default = default
        self.delay = delay
        self.prompts = []

    async def generate(self, prompt, system=""):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        for key, reply in self.responses.items():
            if key in prompt:
                return reply
        return self.default


# ---------------------------------------------------------------------------
# Page fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def framing_page():
    """Page 1: general framing notes followed by a three-row beam schedule."""
    from estimator.services.layout_reader import page_from_text
    return page_from_text(1, FRAMING_SHEET)


@pytest.fixture(scope="session")
def foundation_page():
    """Page 2: a foundation plan with one footing call-out (20 off)."""
    from estimator.services.layout_reader import page_from_text
    return page_from_text(2, FOUNDATION_SHEET)


@pytest.fixture(scope="session")
def drawing_pages(framing_page, foundation_page):
    return [framing_page, foundation_page]


@pytest.fixture(scope="session")
def steel_dataset(drawing_pages):
    """SteelDataset for the two sample sheets."""
    from estimator.services.member_extractor import build_steel_dataset
    return build_steel_dataset(drawing_pages)


# ---------------------------------------------------------------------------
# Extraction records
# ---------------------------------------------------------------------------

@pytest.fixture
def framing_extraction():
    """
    TargetedExtraction with one plan beam line and one footing line.

      Plan:     B1 = 12 × W24X68 @ 30'-0"
      Footings: F1 = 20 × 6'-0" × 6'-0" × 2'-0"
    """
    from estimator.models.stage_schemas import (
        Footing,
        FoundationExtraction,
        PlanMember,
        StructuralExtraction,
        TargetedExtraction,
    )
    return TargetedExtraction(
        structural=StructuralExtraction(
            beams=[PlanMember(mark="B1", size="W24X68", count=12, length="30'-0\"")],
        ),
        foundation=FoundationExtraction(
            footings=[Footing(mark="F1", width="6'-0\"", length="6'-0\"", depth="2'-0\"", count=20)],
        ),
    )


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def takeoff_engine():
    """TakeoffEngine with default allowances (10% connections, 3% waste)."""
    from estimator.services.takeoff_engine import TakeoffEngine
    return TakeoffEngine()


@pytest.fixture(scope="session")
def estimation_engine():
    """
    EstimationEngine with the built-in rate tables and default markups.

    Markups: contingency 10%, preliminaries 8%, overheads & profit 12%.
    """
    from estimator.services.estimation_engine import EstimationEngine
    return EstimationEngine()


@pytest.fixture
def framing_takeoff(takeoff_engine, framing_extraction):
    """Imperial takeoff of ``framing_extraction`` (no steel dataset)."""
    return takeoff_engine.takeoff({"extraction": framing_extraction}, "Imperial")


@pytest.fixture
def stub_generator():
    """Factory for StubGenerator instances."""
    return StubGenerator
