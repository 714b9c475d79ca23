"""
Immutable records passed between the estimation stages.

Every record is created once by the stage that owns it and is never
mutated afterwards; later stages build new records instead. ``to_dict()``
renders the plain structured document handed to callers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


# ── Drawing text ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TextFragment:
    x: float
    y: float
    text: str


@dataclass(frozen=True)
class Line:
    y_position: float
    text: str
    source_fragments: tuple = ()            # tuple[TextFragment]


@dataclass(frozen=True)
class DrawingPage:
    page_number: int
    lines: tuple = ()                       # tuple[Line], reading order

    @property
    def text(self) -> str:
        return "\n".join(line.text for line in self.lines)


# ── Member extraction ─────────────────────────────────────────────────────────

BUCKETS: tuple = (
    "mainMembers",
    "hollowSections",
    "angles",
    "purlins",
    "plates",
    "bars",
    "connections",
    "hardware",
    "miscellaneous",
)

GENERAL_TEXT_SOURCE = "General Text"


@dataclass(frozen=True)
class MemberDimensions:
    width: Optional[float] = None
    height: Optional[float] = None
    thickness: Optional[float] = None
    unit: str = "mm"

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "thickness": self.thickness,
            "unit": self.unit,
        }


@dataclass(frozen=True)
class ExtractedMember:
    type: str
    designation: str
    category: str
    sub_category: str
    quantity: int = 1
    dimensions: Optional[MemberDimensions] = None
    weight: Optional[float] = None          # per unit length, see weight_unit
    weight_unit: str = ""                   # "lb/ft" | "kg/m" | "kg/ea"
    length: Optional[float] = None
    length_unit: str = ""                   # "ft" | "m"
    source: str = GENERAL_TEXT_SOURCE
    raw_line: str = ""
    mark: str = ""
    standard: str = ""
    fabrication_class: str = "simple"       # simple | medium | complex | plate_work

    @property
    def key(self) -> tuple:
        return (self.designation, self.category, self.source)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "designation": self.designation,
            "category": self.category,
            "subCategory": self.sub_category,
            "quantity": self.quantity,
            "dimensions": self.dimensions.to_dict() if self.dimensions else None,
            "weight": self.weight,
            "weightUnit": self.weight_unit,
            "length": self.length,
            "lengthUnit": self.length_unit,
            "source": self.source,
            "rawLine": self.raw_line,
            "mark": self.mark,
            "standard": self.standard,
            "fabricationClass": self.fabrication_class,
        }


@dataclass(frozen=True)
class SteelDataset:
    buckets: dict = field(default_factory=dict)     # bucket → tuple[ExtractedMember]
    summary: dict = field(default_factory=dict)     # bucket → {members, quantity, weight}

    def members(self) -> list:
        out = []
        for name in BUCKETS:
            out.extend(self.buckets.get(name, ()))
        return out

    @property
    def member_count(self) -> int:
        return sum(len(self.buckets.get(name, ())) for name in BUCKETS)

    def to_dict(self) -> dict:
        out = {name: [m.to_dict() for m in self.buckets.get(name, ())] for name in BUCKETS}
        out["summary"] = {name: dict(self.summary.get(name, {})) for name in BUCKETS}
        return out


# ── Sheet classification ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class SheetClassification:
    page_number: int
    sheet_type: str                         # structural | foundation | schedule | elevation | mep | site | general
    sheet_name: str = "Unknown Sheet"
    scale: str = "N/A"
    design_standard: str = "UNKNOWN"        # AISC | IS | EN | BS | AS | PEB | UNKNOWN
    unit_system: str = "Imperial"           # Imperial | Metric

    def to_dict(self) -> dict:
        return {
            "pageNumber": self.page_number,
            "sheetType": self.sheet_type,
            "sheetName": self.sheet_name,
            "scale": self.scale,
            "designStandard": self.design_standard,
            "unitSystem": self.unit_system,
        }


# ── Quantity takeoff ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class QuantityItem:
    description: str
    count: float
    unit: str
    calculation: str
    designation: str = ""
    bucket: str = ""
    element: str = ""                       # concrete / rebar / area element type
    weight_per_unit: Optional[float] = None
    weight_unit: str = ""
    length: Optional[float] = None
    length_unit: str = ""
    total_weight: Optional[float] = None    # in mass unit (lbs | kg)
    volume_per_unit: Optional[float] = None
    total_volume: Optional[float] = None
    ton_unit: str = ""                      # "tons" | "tonnes"
    volume_unit: str = ""                   # "CY" | "m3"
    complexity: str = "simple"
    source: str = ""

    @property
    def total(self) -> float:
        if self.total_weight is not None:
            return self.total_weight
        if self.total_volume is not None:
            return self.total_volume
        return float(self.count)

    def to_dict(self) -> dict:
        out = {
            "description": self.description,
            "designation": self.designation,
            "bucket": self.bucket,
            "element": self.element,
            "count": self.count,
            "unit": self.unit,
            "calculation": self.calculation,
            "complexity": self.complexity,
            "source": self.source,
        }
        if self.total_weight is not None:
            out.update({
                "weightPerUnit": self.weight_per_unit,
                "weightUnit": self.weight_unit,
                "length": self.length,
                "lengthUnit": self.length_unit,
                "totalWeight": self.total_weight,
                "tonUnit": self.ton_unit,
            })
        if self.total_volume is not None:
            out.update({
                "volumePerUnit": self.volume_per_unit,
                "totalVolume": self.total_volume,
                "volumeUnit": self.volume_unit,
            })
        return out


@dataclass(frozen=True)
class Discrepancy:
    mark: str
    plan_count: int
    schedule_count: int
    resolved_count: int
    note: str

    def to_dict(self) -> dict:
        return {
            "mark": self.mark,
            "planCount": self.plan_count,
            "scheduleCount": self.schedule_count,
            "resolvedCount": self.resolved_count,
            "note": self.note,
        }


@dataclass(frozen=True)
class QuantityTakeoffResult:
    unit_system: str
    mass_unit: str                          # "lbs" | "kg"
    ton_unit: str                           # "tons" | "tonnes"
    volume_unit: str                        # "CY" | "m3"
    steel: dict = field(default_factory=dict)       # bucket → tuple[QuantityItem]
    steel_totals: dict = field(default_factory=dict)
    concrete: tuple = ()
    rebar: tuple = ()
    areas: tuple = ()
    counts: dict = field(default_factory=dict)      # bucket → tuple[QuantityItem]
    discrepancies: tuple = ()
    member_count: int = 0
    fallback_reason: Optional[str] = None

    @property
    def total_tonnage(self) -> float:
        return float(self.steel_totals.get("grand_total_tons", 0.0))

    def bucket_weight(self, bucket: str) -> float:
        return round(sum(i.total_weight or 0.0 for i in self.steel.get(bucket, ())), 3)

    def to_dict(self) -> dict:
        return {
            "unitSystem": self.unit_system,
            "massUnit": self.mass_unit,
            "tonUnit": self.ton_unit,
            "volumeUnit": self.volume_unit,
            "steel": {k: [i.to_dict() for i in v] for k, v in self.steel.items()},
            "steelTotals": dict(self.steel_totals),
            "concrete": [i.to_dict() for i in self.concrete],
            "rebar": [i.to_dict() for i in self.rebar],
            "areas": [i.to_dict() for i in self.areas],
            "counts": {k: [i.to_dict() for i in v] for k, v in self.counts.items()},
            "discrepancies": [d.to_dict() for d in self.discrepancies],
            "memberCount": self.member_count,
            "fallbackReason": self.fallback_reason,
        }


# ── Cost reference & estimate ─────────────────────────────────────────────────

@dataclass(frozen=True)
class CostRate:
    currency: str
    category: str
    subtype: str
    base_rate: float
    unit: str
    range: tuple = (0.0, 0.0)
    descriptor: str = ""


@dataclass(frozen=True)
class LocationFactor:
    location: str
    multiplier: float = 1.0
    currency: str = "USD"
    country: str = ""
    matched: bool = False


@dataclass(frozen=True)
class RateQuote:
    rate: float
    unit: str
    currency: str
    category: str
    subtype: str
    base_rate: float
    location_factor: float = 1.0
    range: tuple = (0.0, 0.0)
    descriptor: str = ""
    source: str = "DB"                      # DB | FUZZY | DEFAULT | NOT_FOUND
    weight_class: str = ""

    def to_dict(self) -> dict:
        return {
            "rate": self.rate,
            "unit": self.unit,
            "currency": self.currency,
            "category": self.category,
            "subtype": self.subtype,
            "baseRate": self.base_rate,
            "locationFactor": self.location_factor,
            "range": list(self.range),
            "descriptor": self.descriptor,
            "source": self.source,
            "weightClass": self.weight_class,
        }


@dataclass(frozen=True)
class EstimationLineItem:
    code: str
    description: str
    quantity: float
    unit: str
    unit_rate: float
    total_cost: float
    category: str
    subcategory: str
    rate_source: str = "DB"
    notes: str = ""

    @classmethod
    def priced(
        cls,
        code: str,
        description: str,
        quantity: float,
        unit: str,
        unit_rate: float,
        category: str,
        subcategory: str,
        rate_source: str = "DB",
        notes: str = "",
    ) -> "EstimationLineItem":
        """Build an item whose total is always quantity × unit_rate (2 dp)."""
        quantity = round(float(quantity), 3)
        unit_rate = round(float(unit_rate), 4)
        return cls(
            code=code,
            description=description,
            quantity=quantity,
            unit=unit,
            unit_rate=unit_rate,
            total_cost=round(quantity * unit_rate, 2),
            category=category,
            subcategory=subcategory,
            rate_source=rate_source,
            notes=notes,
        )

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "description": self.description,
            "quantity": self.quantity,
            "unit": self.unit,
            "unitRate": self.unit_rate,
            "totalCost": self.total_cost,
            "category": self.category,
            "subcategory": self.subcategory,
            "rateSource": self.rate_source,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class CostSummary:
    base_cost: float
    complexity_multiplier: float
    complexity_adjustment: float
    escalation_factor: float
    escalation: float
    contingency: float
    preliminaries: float
    overheads_profit: float
    subtotal_ex_tax: float
    tax: float
    total_inc_tax: float
    currency: str
    total_tonnage: float
    rate_per_tonne: float

    def to_dict(self) -> dict:
        return {
            "baseCost": self.base_cost,
            "complexityMultiplier": self.complexity_multiplier,
            "complexityAdjustment": self.complexity_adjustment,
            "escalationFactor": self.escalation_factor,
            "escalation": self.escalation,
            "contingency": self.contingency,
            "preliminaries": self.preliminaries,
            "overheadsProfit": self.overheads_profit,
            "subtotalExTax": self.subtotal_ex_tax,
            "tax": self.tax,
            "totalIncTax": self.total_inc_tax,
            "currency": self.currency,
            "totalTonnage": self.total_tonnage,
            "ratePerTonne": self.rate_per_tonne,
        }


@dataclass(frozen=True)
class EstimateResult:
    items: tuple
    cost_summary: CostSummary
    categories: dict
    rate_source_breakdown: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "items": [i.to_dict() for i in self.items],
            "costSummary": self.cost_summary.to_dict(),
            "categories": {
                name: {
                    "items": [i.to_dict() for i in group["items"]],
                    "total": group["total"],
                    "subcategories": {
                        sub: {"items": [i.to_dict() for i in s["items"]], "total": s["total"]}
                        for sub, s in group["subcategories"].items()
                    },
                }
                for name, group in self.categories.items()
            },
            "rateSourceBreakdown": dict(self.rate_source_breakdown),
        }


def as_plain(value: Any) -> Any:
    """Recursively render records (anything with to_dict) into plain data."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: as_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [as_plain(v) for v in value]
    return value
