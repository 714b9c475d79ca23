"""
Validation schemas for the generative passes.

Every object a model returns is validated here before it reaches the
deterministic stages. Field aliases accept the camelCase keys the prompts
ask for; unknown keys are ignored. A ValidationError sends the pass (or the
sheet group) to its local fallback.

The same models carry the locally derived fallback records, so the takeoff
always receives one shape regardless of where the records came from.
"""
from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SheetType = Literal["structural", "foundation", "schedule", "elevation", "mep", "site", "general"]

Measure = Optional[Union[float, str]]


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _count(value) -> int:
    """Accept 12, 12.0, "12" and "12 NOS"; anything else counts as 0."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    digits = "".join(ch for ch in str(value).split(" ")[0] if ch.isdigit())
    return int(digits) if digits else 0


# ── Pass 1: sheet classification ──────────────────────────────────────────────

class SheetEntry(_Record):
    page_number: int = Field(..., alias="pageNumber", ge=1)
    sheet_type: str = Field("general", alias="sheetType", description="Raw type; normalized downstream")
    sheet_name: str = Field("Unknown Sheet", alias="sheetName")
    scale: str = Field("N/A")
    design_standard: str = Field("UNKNOWN", alias="designStandard")
    unit_system: str = Field("Imperial", alias="unitSystem")

    @field_validator("sheet_name", "scale", "design_standard", "unit_system", "sheet_type", mode="before")
    @classmethod
    def _stringify(cls, value):
        return "" if value is None else str(value)


class DrawingSetSummary(_Record):
    design_standard: Optional[str] = Field(None, alias="designStandard")
    unit_system: Optional[str] = Field(None, alias="unitSystem")
    structural_system: Optional[str] = Field(None, alias="structuralSystem")
    project_title: Optional[str] = Field(None, alias="projectTitle")


class SheetClassificationResponse(_Record):
    sheets: List[SheetEntry] = Field(default_factory=list)
    summary: Optional[DrawingSetSummary] = Field(None, alias="drawingSetSummary")


# ── Pass 2: targeted extraction ───────────────────────────────────────────────

class PlanMember(_Record):
    """A member counted on a framing plan."""
    mark: str = ""
    size: str = Field(..., min_length=1, description="Section designation as drawn")
    count: int = Field(1, ge=0)
    length: Measure = Field(None, alias="typicalLength")
    role: str = Field("beam", description="beam | column | bracing | joist | purlin | girt")
    location: str = ""

    @field_validator("count", mode="before")
    @classmethod
    def _coerce_count(cls, value):
        return _count(value)

    @field_validator("mark", "location", mode="before")
    @classmethod
    def _blank(cls, value):
        return "" if value is None else str(value)


class DeckInfo(_Record):
    type: str = ""
    area: Measure = None


class StructuralExtraction(_Record):
    beams: List[PlanMember] = Field(default_factory=list)
    columns: List[PlanMember] = Field(default_factory=list)
    bracing: List[PlanMember] = Field(default_factory=list)
    joists: List[PlanMember] = Field(default_factory=list)
    deck: Optional[DeckInfo] = None
    footprint_area: Measure = Field(None, alias="footprintArea")

    def members(self) -> List[PlanMember]:
        return list(self.beams) + list(self.columns) + list(self.bracing) + list(self.joists)


class Footing(_Record):
    mark: str = ""
    type: str = "footing"
    width: Measure = None
    length: Measure = None
    depth: Measure = None
    count: int = Field(1, ge=0)
    concrete_grade: Optional[str] = Field(None, alias="concreteGrade")

    @field_validator("count", mode="before")
    @classmethod
    def _coerce_count(cls, value):
        return _count(value)


class GradeBeam(_Record):
    mark: str = ""
    width: Measure = None
    depth: Measure = None
    total_length: Measure = Field(None, alias="totalLength")


class SlabOnGrade(_Record):
    thickness: Measure = None
    area: Measure = None
    concrete_strength: Optional[str] = Field(None, alias="concreteStrength")


class RetainingWall(_Record):
    height: Measure = None
    thickness: Measure = None
    length: Measure = None


class ConcreteColumn(_Record):
    """Cast-in-place column: section width x depth, height per piece."""
    mark: str = ""
    width: Measure = None
    depth: Measure = None
    height: Measure = None
    count: int = Field(1, ge=0)
    concrete_grade: Optional[str] = Field(None, alias="concreteGrade")

    @field_validator("count", mode="before")
    @classmethod
    def _coerce_count(cls, value):
        return _count(value)


class ElevatedSlab(_Record):
    level: str = ""
    thickness: Measure = None
    area: Measure = None
    concrete_strength: Optional[str] = Field(None, alias="concreteStrength")


class FoundationExtraction(_Record):
    footings: List[Footing] = Field(default_factory=list)
    pile_caps: List[Footing] = Field(default_factory=list, alias="pileCaps")
    grade_beams: List[GradeBeam] = Field(default_factory=list, alias="gradeBeams")
    slab_on_grade: Optional[SlabOnGrade] = Field(None, alias="slabOnGrade")
    retaining_walls: List[RetainingWall] = Field(default_factory=list, alias="retainingWalls")
    concrete_columns: List[ConcreteColumn] = Field(default_factory=list, alias="concreteColumns")
    elevated_slabs: List[ElevatedSlab] = Field(default_factory=list, alias="elevatedSlabs")


class ScheduleRow(_Record):
    """One row of a member schedule."""
    mark: str = ""
    size: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=0)
    length: Measure = None
    grade: Optional[str] = None
    schedule: str = "BEAM SCHEDULE"

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value):
        return _count(value)

    @field_validator("mark", mode="before")
    @classmethod
    def _blank(cls, value):
        return "" if value is None else str(value)


class ScheduleExtraction(_Record):
    beam_schedule: List[ScheduleRow] = Field(default_factory=list, alias="beamSchedule")
    column_schedule: List[ScheduleRow] = Field(default_factory=list, alias="columnSchedule")
    joist_schedule: List[ScheduleRow] = Field(default_factory=list, alias="joistSchedule")
    footing_schedule: List[Footing] = Field(default_factory=list, alias="footingSchedule")
    material_notes: List[str] = Field(default_factory=list, alias="materialNotes")

    def rows(self) -> List[ScheduleRow]:
        return list(self.beam_schedule) + list(self.column_schedule) + list(self.joist_schedule)


class Heights(_Record):
    eave_height: Measure = Field(None, alias="eaveHeight")
    ridge_height: Measure = Field(None, alias="ridgeHeight")
    overall_height: Measure = Field(None, alias="overallHeight")
    floor_to_floor: List[Union[float, str]] = Field(default_factory=list, alias="floorToFloor")


class Envelope(_Record):
    type: str = ""
    area: Measure = None


class ElevationExtraction(_Record):
    heights: Heights = Field(default_factory=Heights)
    roof: Optional[Envelope] = Field(None, alias="roofInfo")
    walls: List[Envelope] = Field(default_factory=list, alias="wallConstruction")


GROUP_SCHEMAS = {
    "structural": StructuralExtraction,
    "foundation": FoundationExtraction,
    "schedule": ScheduleExtraction,
    "elevation": ElevationExtraction,
}


class ExtractionMeta(_Record):
    groups_processed: List[str] = Field(default_factory=list)
    groups_failed: List[str] = Field(default_factory=list)
    total_sheets: int = 0


class TargetedExtraction(_Record):
    """Merged pass 2 output handed to the quantity takeoff."""
    unit_system: str = Field("Imperial", alias="unitSystem")
    structural: StructuralExtraction = Field(default_factory=StructuralExtraction)
    foundation: FoundationExtraction = Field(default_factory=FoundationExtraction)
    schedule: ScheduleExtraction = Field(default_factory=ScheduleExtraction)
    elevation: ElevationExtraction = Field(default_factory=ElevationExtraction)
    extraction_meta: ExtractionMeta = Field(default_factory=ExtractionMeta, alias="extractionMeta")


# ── Pass 5: review ────────────────────────────────────────────────────────────

class ReviewIssue(_Record):
    severity: Literal["critical", "warning", "info"] = "info"
    trade: str = ""
    message: str = Field(..., min_length=1)

    @field_validator("severity", mode="before")
    @classmethod
    def _lower(cls, value):
        value = str(value or "info").lower()
        return value if value in ("critical", "warning", "info") else "info"


class ReviewResponse(_Record):
    issues: List[ReviewIssue] = Field(default_factory=list)
    missing_trades: List[str] = Field(default_factory=list, alias="missingTrades")
    overall_assessment: str = Field("", alias="overallAssessment")
