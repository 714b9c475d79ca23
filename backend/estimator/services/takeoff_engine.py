"""
TakeoffEngine — deterministic quantity takeoff.

Covers:
  - Steel tonnage per bucket: count × weight per length × length / ton divisor
    (2000 lb per US ton, 1000 kg per tonne), plates and other per-piece items
    by piece mass, plus connections and waste allowances on the raw total
  - Plan vs schedule cross-reference by mark or designation; the higher count
    wins and every mismatch is recorded as a Discrepancy
  - Concrete volumes (footings, pile caps, grade beams, slab on grade,
    retaining walls) in CY or m³, and reinforcement by intensity per element
  - Areas (deck, slab, roof, walls, footprint) and piece counts
    (connections, hardware)

Every quantity carries the literal calculation string that reproduces it.
Missing or invalid inputs never raise: the result comes back with zeroed
buckets and a fallback_reason.
"""
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from estimator.agents.config import ESTIMATING_DEFAULTS
from estimator.models.drawing_models import (
    BUCKETS,
    Discrepancy,
    ExtractedMember,
    QuantityItem,
    QuantityTakeoffResult,
    SteelDataset,
)
from estimator.models.stage_schemas import Footing, TargetedExtraction
from estimator.services.pattern_catalog import RECLASSIFY_CATALOG, normalize_designation
from estimator.services.reference_data import (
    REBAR_INTENSITY_KG_PER_M3,
    REBAR_INTENSITY_LBS_PER_CY,
    steel_weight_per_length,
)
from estimator.services.units import (
    CF_PER_CY,
    IMPERIAL,
    KG_M_TO_LB_FT,
    KG_PER_LB,
    LB_FT_TO_KG_M,
    METRIC,
    SQFT_PER_SQM,
    format_number,
    normalize_unit_system,
    parse_length,
    unit_labels,
)

logger = logging.getLogger("estimator-takeoff")

COUNT_BUCKETS = ("connections", "hardware")
STEEL_BUCKETS = tuple(b for b in BUCKETS if b not in COUNT_BUCKETS)

_DEFAULT_COMPLEXITY = {
    "mainMembers": "medium",
    "hollowSections": "medium",
    "plates": "plate_work",
}

_NUMBER = re.compile(r"\d[\d,]*(?:\.\d+)?")


class _Record:
    """One member line after plan/schedule reconciliation."""

    __slots__ = ("mark", "designation", "count", "length", "source", "role", "member")

    def __init__(self, mark, designation, count, length, source, role="", member=None):
        self.mark = mark
        self.designation = designation
        self.count = count
        self.length = length
        self.source = source
        self.role = role
        self.member = member


def _area_value(value: Any, unit_system: str) -> Optional[float]:
    """Area as a number in the run's area unit (SF or m2)."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    text = str(value)
    m = _NUMBER.search(text)
    if not m:
        return None
    area = float(m.group(0).replace(",", ""))
    upper = text.upper()
    is_metric = bool(re.search(r"M2|M²|SQ\.?\s*M\b|SQM|SQUARE\s*MET", upper))
    is_imperial = bool(re.search(r"SF\b|SQ\.?\s*FT|FT2|SQUARE\s*FEET", upper))
    if unit_system == IMPERIAL and is_metric:
        area *= SQFT_PER_SQM
    elif unit_system == METRIC and is_imperial:
        area /= SQFT_PER_SQM
    return round(area, 2) if area > 0 else None


def _length(value: Any, unit_system: str) -> Optional[float]:
    # Numbers go through the string path so a bare metric 1500 reads as mm
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = f"{value:g}"
    return parse_length(value, unit_system)


def _bucket_for(designation: str) -> str:
    for rx, bucket in RECLASSIFY_CATALOG:
        if rx.search(designation):
            return bucket
    return "mainMembers"


def _weight_in_run_units(weight: float, unit: str, unit_system: str) -> Tuple[float, bool]:
    """Return (weight, per_length) in lb/ft | lbs/ea or kg/m | kg/ea."""
    if unit == "kg/ea":
        value = weight if unit_system == METRIC else weight / KG_PER_LB
        return round(value, 3), False
    if unit == "kg/m":
        value = weight if unit_system == METRIC else weight * KG_M_TO_LB_FT
    else:
        value = weight * LB_FT_TO_KG_M if unit_system == METRIC else weight
    return round(value, 3), True


class TakeoffEngine:
    """Turns extracted records into engineering quantities."""

    def __init__(self, config: Optional[dict] = None):
        self.config = {**ESTIMATING_DEFAULTS, **(config or {})}

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def takeoff(self, datasets: Optional[dict], unit_system: str = IMPERIAL) -> QuantityTakeoffResult:
        """
        ``datasets`` holds ``steel`` (a SteelDataset) and/or ``extraction``
        (a TargetedExtraction or its dict form). Either may be absent.
        """
        unit_system = normalize_unit_system(unit_system)
        if not isinstance(datasets, dict):
            return self._empty(unit_system, "no datasets supplied")

        steel = datasets.get("steel")
        if steel is not None and not isinstance(steel, SteelDataset):
            return self._empty(unit_system, f"steel dataset has unexpected type {type(steel).__name__}")

        raw_extraction = datasets.get("extraction")
        extraction = None
        if isinstance(raw_extraction, TargetedExtraction):
            extraction = raw_extraction
        elif raw_extraction is not None:
            try:
                extraction = TargetedExtraction.model_validate(raw_extraction)
            except ValidationError as e:
                return self._empty(unit_system, f"extraction records failed validation ({e.error_count()} errors)")

        if steel is None and extraction is None:
            return self._empty(unit_system, "no steel dataset or extraction records")

        extraction = extraction or TargetedExtraction()
        labels = unit_labels(unit_system)
        discrepancies: List[Discrepancy] = []

        records = self._reconcile_members(extraction, discrepancies)
        records = self._add_dataset_members(records, steel)

        by_designation = {m.designation: m for m in steel.members()} if steel else {}
        steel_items = {b: [] for b in STEEL_BUCKETS}
        count_items = {b: [] for b in COUNT_BUCKETS}
        for record in records:
            member = record.member or by_designation.get(record.designation)
            bucket = member.category if member else _bucket_for(record.designation)
            if bucket in COUNT_BUCKETS:
                count_items[bucket].append(self._count_item(record, bucket, member))
            else:
                steel_items[bucket].append(self._steel_item(record, bucket, member, unit_system, labels))

        steel_totals = self._steel_totals(steel_items, labels)
        concrete = self._concrete(extraction, unit_system, labels, discrepancies)
        rebar = self._rebar(concrete, unit_system, labels)
        areas = self._areas(extraction, unit_system, labels)
        member_count = int(sum(i.count for items in steel_items.values() for i in items))

        logger.info(
            f"Takeoff: {member_count} steel pieces, {steel_totals['grand_total_tons']} {labels['ton']}, "
            f"{len(concrete)} concrete items, {len(discrepancies)} discrepancies"
        )
        return QuantityTakeoffResult(
            unit_system=unit_system,
            mass_unit=labels["mass"],
            ton_unit=labels["ton"],
            volume_unit=labels["volume"],
            steel={b: tuple(items) for b, items in steel_items.items()},
            steel_totals=steel_totals,
            concrete=tuple(concrete),
            rebar=tuple(rebar),
            areas=tuple(areas),
            counts={b: tuple(items) for b, items in count_items.items()},
            discrepancies=tuple(discrepancies),
            member_count=member_count,
        )

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _reconcile_members(self, extraction: TargetedExtraction, discrepancies: List[Discrepancy]) -> List[_Record]:
        """
        Match plan members with schedule rows by mark, then by designation.
        The schedule's size and length are preferred; the count is the higher
        of the two, with a Discrepancy recorded whenever they differ.
        """
        rows = extraction.schedule.rows()
        used = set()
        by_mark = {}
        by_designation = {}
        for i, row in enumerate(rows):
            if row.mark:
                by_mark.setdefault(row.mark.upper(), i)
            by_designation.setdefault(normalize_designation(row.size), i)

        records: List[_Record] = []
        for member in extraction.structural.members():
            designation = normalize_designation(member.size)
            index = by_mark.get(member.mark.upper()) if member.mark else None
            if index is None or index in used:
                index = by_designation.get(designation)
            if index is None or index in used:
                records.append(_Record(member.mark, designation, member.count, member.length, "plan", member.role))
                continue

            used.add(index)
            row = rows[index]
            resolved = max(member.count, row.quantity)
            if member.count != row.quantity:
                label = member.mark or row.mark or designation
                discrepancies.append(Discrepancy(
                    mark=label,
                    plan_count=member.count,
                    schedule_count=row.quantity,
                    resolved_count=resolved,
                    note=f"Plan shows {member.count}, schedule shows {row.quantity}; using {resolved}",
                ))
            records.append(_Record(
                member.mark or row.mark,
                normalize_designation(row.size),
                resolved,
                row.length if row.length is not None else member.length,
                "plan+schedule",
                member.role,
            ))

        for i, row in enumerate(rows):
            if i not in used:
                records.append(_Record(row.mark, normalize_designation(row.size), row.quantity, row.length, row.schedule))
        return records

    def _add_dataset_members(self, records: List[_Record], steel: Optional[SteelDataset]) -> List[_Record]:
        """
        Members found in the text but absent from the extraction records.
        The dataset keeps one entry per (designation, category, source), so a
        section listed in two schedules contributes both quantities.
        """
        if steel is None:
            return records
        covered = {r.designation for r in records}
        out = list(records)
        for member in steel.members():
            if member.designation in covered:
                continue
            length = f"{member.length:g} {member.length_unit}" if member.length is not None else None
            out.append(_Record(member.mark, member.designation, member.quantity, length, member.source, member=member))
        return out

    # ------------------------------------------------------------------
    # Steel
    # ------------------------------------------------------------------

    def _steel_item(
        self,
        record: _Record,
        bucket: str,
        member: Optional[ExtractedMember],
        unit_system: str,
        labels: dict,
    ) -> QuantityItem:
        mass = labels["mass"]
        count = record.count
        complexity = member.fabrication_class if member else _DEFAULT_COMPLEXITY.get(bucket, "simple")
        name = member.type if member else bucket
        description = f"{record.designation} {name}" + (f" ({record.mark})" if record.mark else "")

        if member is not None and member.weight is not None:
            found = (member.weight, member.weight_unit)
        else:
            found = steel_weight_per_length(record.designation)
        if found is None:
            return QuantityItem(
                description=description, count=count, unit=mass,
                calculation=f"weight per length unknown for {record.designation}; excluded from tonnage",
                designation=record.designation, bucket=bucket, total_weight=0.0,
                ton_unit=labels["ton"], complexity=complexity, source=record.source,
            )

        weight, per_length = _weight_in_run_units(found[0], found[1], unit_system)
        if not per_length:
            total = round(count * weight, 2)
            return QuantityItem(
                description=description, count=count, unit=mass,
                calculation=f"{count} × {format_number(weight, 3)} {mass}/ea = {format_number(total)} {mass}",
                designation=record.designation, bucket=bucket,
                weight_per_unit=weight, weight_unit=f"{mass}/ea",
                total_weight=total, ton_unit=labels["ton"], complexity=complexity, source=record.source,
            )

        length = _length(record.length, unit_system)
        flag = ""
        if length is None:
            key = "default_member_length_m" if unit_system == METRIC else "default_member_length_ft"
            length = float(self.config[key])
            flag = " (default length)"
        total = round(count * weight * length, 2)
        return QuantityItem(
            description=description, count=count, unit=mass,
            calculation=(
                f"{count} × {format_number(weight, 3)} {labels['weight_per_length']} × "
                f"{format_number(length, 3)} {labels['length']}{flag} = {format_number(total)} {mass}"
            ),
            designation=record.designation, bucket=bucket,
            weight_per_unit=weight, weight_unit=labels["weight_per_length"],
            length=length, length_unit=labels["length"],
            total_weight=total, ton_unit=labels["ton"], complexity=complexity, source=record.source,
        )

    def _count_item(self, record: _Record, bucket: str, member: Optional[ExtractedMember]) -> QuantityItem:
        name = member.type if member else bucket
        return QuantityItem(
            description=f"{record.designation} {name}",
            count=record.count,
            unit="EA",
            calculation=f"{record.count} EA counted from {record.source}",
            designation=record.designation,
            bucket=bucket,
            source=record.source,
        )

    def _steel_totals(self, steel_items: Dict[str, list], labels: dict) -> dict:
        divisor = labels["divisor"]
        mass = labels["mass"]
        raw = round(sum(i.total_weight or 0.0 for items in steel_items.values() for i in items), 2)
        connections = round(raw * self.config["connections_allowance_pct"], 2)
        waste = round(raw * self.config["waste_allowance_pct"], 2)
        grand = round(raw + connections + waste, 2)
        return {
            "raw_weight": raw,
            "connections_allowance": connections,
            "waste_allowance": waste,
            "grand_total_weight": grand,
            "raw_tons": round(raw / divisor, 3),
            "grand_total_tons": round(grand / divisor, 3),
            "mass_unit": mass,
            "ton_unit": labels["ton"],
            "calculation": (
                f"{format_number(raw)} {mass} + {format_number(self.config['connections_allowance_pct'] * 100)}% connections "
                f"+ {format_number(self.config['waste_allowance_pct'] * 100)}% waste = {format_number(grand)} {mass} "
                f"÷ {format_number(divisor)} = {format_number(grand / divisor, 3)} {labels['ton']}"
            ),
        }

    # ------------------------------------------------------------------
    # Concrete, rebar, areas
    # ------------------------------------------------------------------

    def _footings(self, extraction: TargetedExtraction, discrepancies: List[Discrepancy]) -> List[Footing]:
        """Foundation plan footings merged with the footing schedule by mark."""
        merged: Dict[str, Footing] = {}
        order: List[str] = []
        for footing in list(extraction.foundation.footings) + list(extraction.foundation.pile_caps):
            key = footing.mark.upper() or f"_{len(order)}"
            if key not in merged:
                merged[key] = footing
                order.append(key)
        for row in extraction.schedule.footing_schedule:
            key = row.mark.upper() or f"_{len(order)}"
            plan = merged.get(key)
            if plan is None:
                merged[key] = row
                order.append(key)
                continue
            resolved = max(plan.count, row.count)
            if plan.count != row.count:
                discrepancies.append(Discrepancy(
                    mark=plan.mark,
                    plan_count=plan.count,
                    schedule_count=row.count,
                    resolved_count=resolved,
                    note=f"Plan shows {plan.count}, schedule shows {row.count}; using {resolved}",
                ))
            merged[key] = plan.model_copy(update={
                "count": resolved,
                "width": row.width if row.width is not None else plan.width,
                "length": row.length if row.length is not None else plan.length,
                "depth": row.depth if row.depth is not None else plan.depth,
            })
        return [merged[k] for k in order]

    def _volume_item(
        self,
        description: str,
        element: str,
        count: float,
        dims: Tuple[Any, Any, Any],
        unit_system: str,
        labels: dict,
    ) -> Optional[QuantityItem]:
        parsed = [_length(d, unit_system) for d in dims]
        if any(p is None for p in parsed) or count <= 0:
            logger.debug(f"Skipping {description}: incomplete dimensions {dims}")
            return None
        a, b, c = parsed
        length_unit = labels["length"]
        cubic = a * b * c
        if unit_system == METRIC:
            per_unit = round(cubic, 4)
            basis = f"{format_number(a, 3)} × {format_number(b, 3)} × {format_number(c, 3)} m"
        else:
            per_unit = round(cubic / CF_PER_CY, 4)
            basis = f"{format_number(a, 3)} × {format_number(b, 3)} × {format_number(c, 3)} ft ÷ {format_number(CF_PER_CY)}"
        total = round(count * cubic / (1.0 if unit_system == METRIC else CF_PER_CY), 2)
        return QuantityItem(
            description=description,
            count=count,
            unit=labels["volume"],
            calculation=f"{format_number(count)} × ({basis}) = {format_number(total)} {labels['volume']}",
            element=element,
            volume_per_unit=per_unit,
            total_volume=total,
            volume_unit=labels["volume"],
            length_unit=length_unit,
            source="foundation",
        )

    def _concrete(self, extraction: TargetedExtraction, unit_system: str, labels: dict, discrepancies) -> List[QuantityItem]:
        items: List[QuantityItem] = []
        for footing in self._footings(extraction, discrepancies):
            element = "pile_cap" if "pile" in footing.type.lower() or footing.mark.upper().startswith("PC") else "footing"
            label = "Pile cap" if element == "pile_cap" else "Footing"
            item = self._volume_item(
                f"{label} {footing.mark}".strip(), element, footing.count,
                (footing.width, footing.length, footing.depth), unit_system, labels,
            )
            if item:
                items.append(item)

        for beam in extraction.foundation.grade_beams:
            item = self._volume_item(
                f"Grade beam {beam.mark}".strip(), "grade_beam", 1,
                (beam.width, beam.depth, beam.total_length), unit_system, labels,
            )
            if item:
                items.append(item)

        slab = extraction.foundation.slab_on_grade
        if slab is not None:
            item = self._slab_item("Slab on grade", "slab_on_grade", slab.area, slab.thickness, unit_system, labels)
            if item:
                items.append(item)

        for i, wall in enumerate(extraction.foundation.retaining_walls, start=1):
            item = self._volume_item(
                f"Retaining wall {i}", "retaining_wall", 1,
                (wall.height, wall.thickness, wall.length), unit_system, labels,
            )
            if item:
                items.append(item)

        for column in extraction.foundation.concrete_columns:
            item = self._volume_item(
                f"Concrete column {column.mark}".strip(), "column", column.count,
                (column.width, column.depth, column.height), unit_system, labels,
            )
            if item:
                items.append(item)

        for i, slab in enumerate(extraction.foundation.elevated_slabs, start=1):
            description = f"Elevated slab {slab.level or i}"
            item = self._slab_item(description, "elevated_slab", slab.area, slab.thickness, unit_system, labels)
            if item:
                items.append(item)
        return items

    def _slab_item(self, description: str, element: str, area_value, thickness_value, unit_system: str, labels: dict):
        """Area x thickness, one item per slab."""
        area = _area_value(area_value, unit_system)
        thickness = _length(thickness_value, unit_system)
        if not (area and thickness):
            logger.debug(f"Skipping {description}: area {area_value!r}, thickness {thickness_value!r}")
            return None
        cubic = area * thickness
        total = round(cubic if unit_system == METRIC else cubic / CF_PER_CY, 2)
        divisor = "" if unit_system == METRIC else f" ÷ {format_number(CF_PER_CY)}"
        return QuantityItem(
            description=description,
            count=1,
            unit=labels["volume"],
            calculation=(
                f"{format_number(area)} {labels['area']} × {format_number(thickness, 3)} {labels['length']}"
                f"{divisor} = {format_number(total)} {labels['volume']}"
            ),
            element=element,
            volume_per_unit=total,
            total_volume=total,
            volume_unit=labels["volume"],
            source="foundation",
        )

    def _rebar(self, concrete: List[QuantityItem], unit_system: str, labels: dict) -> List[QuantityItem]:
        table = REBAR_INTENSITY_KG_PER_M3 if unit_system == METRIC else REBAR_INTENSITY_LBS_PER_CY
        items = []
        for c in concrete:
            intensity = table.get(c.element)
            if intensity is None or not c.total_volume:
                continue
            total = round(c.total_volume * intensity, 2)
            items.append(QuantityItem(
                description=f"Reinforcement: {c.description}",
                count=1,
                unit=labels["mass"],
                calculation=(
                    f"{format_number(c.total_volume)} {labels['volume']} × {format_number(intensity)} "
                    f"{labels['rebar_intensity']} = {format_number(total)} {labels['mass']}"
                ),
                element=c.element,
                weight_per_unit=intensity,
                weight_unit=labels["rebar_intensity"],
                total_weight=total,
                ton_unit=labels["ton"],
                source=c.source,
            ))
        return items

    def _areas(self, extraction: TargetedExtraction, unit_system: str, labels: dict) -> List[QuantityItem]:
        found = []
        structural = extraction.structural
        if structural.deck is not None:
            found.append(("Metal deck" + (f" ({structural.deck.type})" if structural.deck.type else ""), "deck", structural.deck.area))
        found.append(("Building footprint", "footprint", structural.footprint_area))
        slab = extraction.foundation.slab_on_grade
        if slab is not None:
            found.append(("Slab on grade", "slab_on_grade", slab.area))
        roof = extraction.elevation.roof
        if roof is not None:
            found.append(("Roof" + (f" ({roof.type})" if roof.type else ""), "roof", roof.area))
        for wall in extraction.elevation.walls:
            found.append(("Wall" + (f" ({wall.type})" if wall.type else ""), "wall", wall.area))

        items = []
        for description, element, raw in found:
            area = _area_value(raw, unit_system)
            if not area:
                continue
            items.append(QuantityItem(
                description=description,
                count=area,
                unit=labels["area"],
                calculation=f"{format_number(area)} {labels['area']} as drawn",
                element=element,
                source="drawing",
            ))
        return items

    # ------------------------------------------------------------------
    # Fallback
    # ------------------------------------------------------------------

    def _empty(self, unit_system: str, reason: str) -> QuantityTakeoffResult:
        logger.warning(f"Takeoff fallback: {reason}")
        labels = unit_labels(unit_system)
        return QuantityTakeoffResult(
            unit_system=unit_system,
            mass_unit=labels["mass"],
            ton_unit=labels["ton"],
            volume_unit=labels["volume"],
            steel={b: () for b in STEEL_BUCKETS},
            steel_totals=self._steel_totals({}, labels),
            counts={b: () for b in COUNT_BUCKETS},
            fallback_reason=reason,
        )


def takeoff(datasets: Optional[dict], unit_system: str = IMPERIAL, config: Optional[dict] = None) -> QuantityTakeoffResult:
    return TakeoffEngine(config).takeoff(datasets, unit_system)
