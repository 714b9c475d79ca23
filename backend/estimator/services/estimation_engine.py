"""
EstimationEngine — prices a QuantityTakeoffResult into a bill of quantities.

Covers:
  - Per steel bucket: supply (per mass unit), fabrication (tier by member
    complexity), hot-dip galvanizing (floored at the minimum charge) and
    erection (tier by installation height; purlins have their own tier)
  - Connections and misc steel allowance from the takeoff totals
  - Bolts, nuts and washers per piece
  - Concrete by volume, reinforcement by tonnage, metal deck by area
  - Cost summary: complexity multiplier → escalation → contingency →
    preliminaries → overheads & profit → tax, each markup applied once to
    the running pre-tax subtotal

Every line item's total is quantity × unit rate rounded to 2 dp. Rates that
cannot be resolved are priced at 0 with rate_source NOT_FOUND and the reason
in the notes.
"""
import logging
import re
from typing import Dict, List, Optional

from estimator.agents.config import (
    COMPLEXITY_THRESHOLDS,
    ERECTION_DEFAULT_CLASS,
    ERECTION_HEIGHT_CLASSES,
    ESTIMATING_DEFAULTS,
)
from estimator.models.drawing_models import (
    CostSummary,
    EstimateResult,
    EstimationLineItem,
    QuantityItem,
    QuantityTakeoffResult,
    RateQuote,
)
from estimator.services.cost_lookup import (
    detect_currency,
    get_escalation_factor,
    lookup_concrete_rate,
    lookup_rate,
    lookup_trade_rate,
)
from estimator.services.reference_data import FX_PER_USD, TAX_RATES, TON_UNIT_MASS, classify_steel_weight
from estimator.services.units import KG_M_TO_LB_FT, KG_PER_LB, M3_PER_CY, SQFT_PER_SQM, unit_labels

logger = logging.getLogger("estimator-estimation")

# bucket → (label, code prefix, supply subtype)
STEEL_BUCKET_PRICING = {
    "mainMembers": ("Main members", "MM", None),
    "hollowSections": ("Hollow sections", "HS", "hss"),
    "angles": ("Angles", "AN", "angle"),
    "purlins": ("Purlins & girts", "PU", "purlin"),
    "plates": ("Plates & stiffeners", "PL", "plate"),
    "bars": ("Bars", "BR", "bar"),
    "miscellaneous": ("Miscellaneous steel", "MS", "misc"),
}

_COMPLEXITY_ORDER = ("simple", "medium", "plate_work", "complex")

REBAR_SUBTYPE = {"USD": "grade60", "INR": "Fe500", "AED": "grade500", "GBP": "B500B", "AUD": "n12_bars"}

STEEL_CATEGORY = "Structural Steel"
CONNECTIONS_CATEGORY = "Connections & Hardware"
CONCRETE_CATEGORY = "Concrete"
REBAR_CATEGORY = "Reinforcement"
DECK_CATEGORY = "Metal Deck"


def complexity_multiplier(member_count: int) -> float:
    for threshold, multiplier in COMPLEXITY_THRESHOLDS:
        if member_count > threshold:
            return multiplier
    return 1.0


def erection_class(height_m: Optional[float]) -> str:
    if height_m is None:
        return ERECTION_HEIGHT_CLASSES[0][1]
    for limit, name in ERECTION_HEIGHT_CLASSES:
        if height_m <= limit:
            return name
    return ERECTION_DEFAULT_CLASS


def _rate_per_mass_unit(quote: RateQuote, mass_unit: str) -> float:
    """Per-ton rate → rate per lb or per kg of the run."""
    per_ton, table_mass = TON_UNIT_MASS.get(quote.unit, (1000.0, "kg"))
    rate = quote.rate / per_ton
    if table_mass == "lbs" and mass_unit == "kg":
        rate /= KG_PER_LB
    elif table_mass == "kg" and mass_unit == "lbs":
        rate *= KG_PER_LB
    return rate


def _fx_quote(quote: RateQuote, currency: str, fx: float) -> RateQuote:
    return RateQuote(
        rate=round(quote.rate * fx, 2),
        unit=quote.unit,
        currency=currency,
        category=quote.category,
        subtype=quote.subtype,
        base_rate=round(quote.base_rate * fx, 2),
        location_factor=quote.location_factor,
        range=tuple(round(r * fx) for r in quote.range),
        descriptor=f"{quote.descriptor} (converted from USD at {fx})",
        source="DEFAULT",
    )


class EstimationEngine:
    """Prices quantities for one currency and location."""

    def __init__(self, rates: Optional[dict] = None, config: Optional[dict] = None):
        self.rates = rates
        self.config = {**ESTIMATING_DEFAULTS, **(config or {})}

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def estimate(
        self,
        quantity_result: QuantityTakeoffResult,
        location: Optional[str],
        currency: Optional[str] = None,
        options: Optional[dict] = None,
    ) -> EstimateResult:
        """
        Options:
          height_m          installation height for the erection tier
          duration_months   project duration for escalation (none → no escalation)
          start_date        informational, passed to the escalation factor
          concrete_grade    grade string for the concrete rate
          galvanize         price hot-dip galvanizing (default True)
        """
        options = options or {}
        currency = (currency or detect_currency({"location": location})).upper()
        labels = unit_labels(quantity_result.unit_system)
        ctx = {"currency": currency, "location": location, "labels": labels, "options": options}

        items: List[EstimationLineItem] = []
        for bucket in STEEL_BUCKET_PRICING:
            bucket_items = quantity_result.steel.get(bucket, ())
            mass = quantity_result.bucket_weight(bucket)
            if mass > 0:
                items.extend(self._price_steel_bucket(bucket, bucket_items, mass, ctx))
        items.extend(self._price_allowance(quantity_result, ctx))
        for bucket in ("connections", "hardware"):
            for q in quantity_result.counts.get(bucket, ()):
                items.append(self._price_piece(q, bucket, ctx))
        items.extend(self._price_concrete(quantity_result.concrete, ctx))
        items.extend(self._price_rebar(quantity_result.rebar, ctx))
        items.extend(self._price_areas(quantity_result.areas, ctx))

        summary = self._summarize(items, quantity_result, currency, options)
        not_found = sum(1 for i in items if i.rate_source == "NOT_FOUND")
        logger.info(
            f"Estimated {len(items)} line items in {currency} at {location or 'unspecified location'}: "
            f"total {summary.total_inc_tax:,.2f} ({not_found} unresolved rates)"
        )
        return EstimateResult(
            items=tuple(items),
            cost_summary=summary,
            categories=self._categories(items),
            rate_source_breakdown=self._rate_sources(items),
        )

    # ------------------------------------------------------------------
    # Rate resolution
    # ------------------------------------------------------------------

    def _trade(self, category: str, subtype: str, ctx: dict) -> Optional[RateQuote]:
        return lookup_trade_rate(ctx["currency"], category, subtype, ctx["location"], tables=self.rates)

    def _unit_rate(self, category: str, subtype: str, ctx: dict) -> Optional[RateQuote]:
        """Installed unit rate, converted from USD when the currency has no table."""
        quote = lookup_rate(ctx["currency"], category, subtype, ctx["location"])
        if quote is not None:
            return quote
        fx = FX_PER_USD.get(ctx["currency"])
        if fx is None:
            return None
        usd = lookup_rate("USD", category, subtype, ctx["location"])
        return _fx_quote(usd, ctx["currency"], fx) if usd else None

    def _per_mass(self, code, description, mass, quote, category, subcategory, ctx, reason) -> EstimationLineItem:
        mass_unit = ctx["labels"]["mass"]
        if quote is None:
            return EstimationLineItem.priced(
                code, description, mass, mass_unit, 0.0, category, subcategory,
                rate_source="NOT_FOUND", notes=reason,
            )
        return EstimationLineItem.priced(
            code, description, mass, mass_unit, _rate_per_mass_unit(quote, mass_unit), category, subcategory,
            rate_source=quote.source, notes=quote.descriptor,
        )

    def _per_ton(self, code, description, tons, quote, category, subcategory, ctx, reason) -> EstimationLineItem:
        labels = ctx["labels"]
        if quote is None:
            return EstimationLineItem.priced(
                code, description, tons, labels["ton"], 0.0, category, subcategory,
                rate_source="NOT_FOUND", notes=reason,
            )
        rate = _rate_per_mass_unit(quote, labels["mass"]) * labels["divisor"]
        return EstimationLineItem.priced(
            code, description, tons, labels["ton"], rate, category, subcategory,
            rate_source=quote.source, notes=quote.descriptor,
        )

    # ------------------------------------------------------------------
    # Steel
    # ------------------------------------------------------------------

    def _supply_subtype(self, bucket: str, items, ctx: dict) -> str:
        subtype = STEEL_BUCKET_PRICING[bucket][2]
        if subtype:
            return subtype
        if ctx["currency"] == "INR" and any(i.designation.startswith(("TAPERED", "BUILT", "PEB")) for i in items):
            return "peb"
        # Mass-weighted weight per length, classed in lb/ft
        weighted = total = 0.0
        for i in items:
            if i.weight_per_unit is None or i.length is None or not i.total_weight:
                continue
            lb_ft = i.weight_per_unit * (KG_M_TO_LB_FT if ctx["labels"]["mass"] == "kg" else 1.0)
            weighted += lb_ft * i.total_weight
            total += i.total_weight
        return classify_steel_weight(weighted / total) if total else "medium"

    @staticmethod
    def _fabrication_tier(bucket: str, items) -> str:
        if bucket == "plates":
            return "plate_work"
        tiers = [i.complexity for i in items if i.complexity in _COMPLEXITY_ORDER]
        return max(tiers, key=_COMPLEXITY_ORDER.index) if tiers else "simple"

    def _price_steel_bucket(self, bucket: str, items, mass: float, ctx: dict) -> List[EstimationLineItem]:
        label, prefix, _ = STEEL_BUCKET_PRICING[bucket]
        labels = ctx["labels"]
        tons = mass / labels["divisor"]
        out: List[EstimationLineItem] = []

        supply_subtype = self._supply_subtype(bucket, items, ctx)
        out.append(self._per_mass(
            f"{prefix}-SUP", f"{label} supply ({supply_subtype})", mass,
            self._trade("steel_supply", supply_subtype, ctx), STEEL_CATEGORY, "Supply", ctx,
            f"no steel supply rate for {ctx['currency']}/{supply_subtype}",
        ))

        tier = self._fabrication_tier(bucket, items)
        out.append(self._per_ton(
            f"{prefix}-FAB", f"{label} fabrication ({tier.replace('_', ' ')})", tons,
            self._trade("fabrication", tier, ctx), STEEL_CATEGORY, "Fabrication", ctx,
            f"no fabrication rate for {ctx['currency']}/{tier}",
        ))

        if ctx["options"].get("galvanize", True):
            out.append(self._price_galvanizing(prefix, label, tons, ctx))

        height = ctx["options"].get("height_m")
        erection = "purlin" if bucket == "purlins" else erection_class(height)
        item = self._per_ton(
            f"{prefix}-ERC", f"{label} erection ({erection.replace('_', ' ')})", tons,
            self._trade("erection", erection, ctx), STEEL_CATEGORY, "Erection", ctx,
            f"no erection rate for {ctx['currency']}/{erection}",
        )
        if height is None and bucket != "purlins" and item.rate_source != "NOT_FOUND":
            item = EstimationLineItem.priced(
                item.code, item.description, item.quantity, item.unit, item.unit_rate,
                item.category, item.subcategory, rate_source=item.rate_source,
                notes=f"{item.notes}; installation height unknown, lowest tier assumed",
            )
        out.append(item)
        return out

    def _price_galvanizing(self, prefix: str, label: str, tons: float, ctx: dict) -> EstimationLineItem:
        description = f"{label} hot-dip galvanizing"
        line = self._per_ton(
            f"{prefix}-GAL", description, tons,
            self._trade("surface_treatment", "galvanizing", ctx), STEEL_CATEGORY, "Surface Treatment", ctx,
            f"no galvanizing rate for {ctx['currency']}",
        )
        minimum = self._trade("surface_treatment", "galvanizing_minimum", ctx)
        if minimum is not None and line.rate_source != "NOT_FOUND" and line.total_cost < minimum.rate:
            return EstimationLineItem.priced(
                f"{prefix}-GAL", f"{description} (minimum charge)", 1, "item", minimum.rate,
                STEEL_CATEGORY, "Surface Treatment", rate_source=minimum.source,
                notes=f"calculated {line.total_cost:,.2f} is below the minimum charge",
            )
        return line

    def _price_allowance(self, qr: QuantityTakeoffResult, ctx: dict) -> List[EstimationLineItem]:
        totals = qr.steel_totals
        mass = round(totals.get("connections_allowance", 0.0) + totals.get("waste_allowance", 0.0), 2)
        if mass <= 0:
            return []
        return [self._per_mass(
            "ALW-SUP", "Connections, misc steel & waste allowance", mass,
            self._trade("steel_supply", "misc", ctx), STEEL_CATEGORY, "Allowances", ctx,
            f"no misc steel rate for {ctx['currency']}",
        )]

    # ------------------------------------------------------------------
    # Pieces, concrete, rebar, areas
    # ------------------------------------------------------------------

    @staticmethod
    def _piece_subtype(designation: str, bucket: str, currency: str) -> str:
        upper = designation.upper()
        if bucket == "hardware":
            return "washer" if "WASHER" in upper else "nut"
        if "ANCHOR" in upper or re.search(r"\bHD\b", upper):
            return "anchor_bolt"
        m = re.match(r"^M(\d{2})", upper)
        if m:
            return f"m{m.group(1)}"
        m = re.match(r"^(\d/\d|1)\b", upper)
        if m:
            return f"bolt_{m.group(1)}"
        return "bolt_3/4" if currency == "USD" else "m20"

    def _price_piece(self, q: QuantityItem, bucket: str, ctx: dict) -> EstimationLineItem:
        subtype = self._piece_subtype(q.designation, bucket, ctx["currency"])
        quote = self._trade(bucket, subtype, ctx)
        code = f"{'CN' if bucket == 'connections' else 'HW'}-{subtype.upper().replace('/', '')}"
        sub = "Bolts" if bucket == "connections" else "Hardware"
        if quote is None:
            return EstimationLineItem.priced(
                code, q.description, q.count, "each", 0.0, CONNECTIONS_CATEGORY, sub,
                rate_source="NOT_FOUND", notes=f"no {bucket} rate for {ctx['currency']}/{subtype}",
            )
        return EstimationLineItem.priced(
            code, q.description, q.count, "each", quote.rate, CONNECTIONS_CATEGORY, sub,
            rate_source=quote.source, notes=quote.descriptor,
        )

    def _concrete_quote(self, ctx: dict) -> RateQuote:
        grade = ctx["options"].get("concrete_grade")
        quote = lookup_concrete_rate(grade, ctx["location"], ctx["currency"])
        if quote.source == "NOT_FOUND" and ctx["currency"] in FX_PER_USD:
            usd = lookup_concrete_rate(grade, ctx["location"], "USD")
            if usd.source != "NOT_FOUND":
                return _fx_quote(usd, ctx["currency"], FX_PER_USD[ctx["currency"]])
        return quote

    def _price_concrete(self, concrete, ctx: dict) -> List[EstimationLineItem]:
        if not concrete:
            return []
        quote = self._concrete_quote(ctx)
        volume_unit = ctx["labels"]["volume"]
        rate = quote.rate
        if quote.unit == "cy" and volume_unit == "m3":
            rate = quote.rate / M3_PER_CY
        elif quote.unit == "cum" and volume_unit == "CY":
            rate = quote.rate * M3_PER_CY
        out = []
        for i, c in enumerate(concrete, start=1):
            notes = quote.descriptor if quote.source != "NOT_FOUND" else f"no concrete rate for {ctx['currency']}"
            out.append(EstimationLineItem.priced(
                f"CON-{i:02d}", c.description, c.total_volume or 0.0, volume_unit, rate,
                CONCRETE_CATEGORY, c.element.replace("_", " ").title(), rate_source=quote.source, notes=notes,
            ))
        return out

    def _price_rebar(self, rebar, ctx: dict) -> List[EstimationLineItem]:
        mass = round(sum(r.total_weight or 0.0 for r in rebar), 2)
        if mass <= 0:
            return []
        labels = ctx["labels"]
        subtype = REBAR_SUBTYPE.get(ctx["currency"], "grade60")
        quote = self._unit_rate("rebar", subtype, ctx)
        return [self._per_ton(
            "REB-01", "Reinforcement, cut, bent & placed", mass / labels["divisor"], quote,
            REBAR_CATEGORY, "Rebar", ctx, f"no rebar rate for {ctx['currency']}/{subtype}",
        )]

    def _price_areas(self, areas, ctx: dict) -> List[EstimationLineItem]:
        out = []
        area_unit = ctx["labels"]["area"]
        for a in areas:
            if a.element != "deck":
                continue
            quote = self._unit_rate("structural_steel", "deck", ctx)
            if quote is None:
                out.append(EstimationLineItem.priced(
                    "DCK-01", a.description, a.count, area_unit, 0.0, DECK_CATEGORY, "Deck",
                    rate_source="NOT_FOUND", notes=f"no deck rate for {ctx['currency']}",
                ))
                continue
            rate = quote.rate * SQFT_PER_SQM if area_unit == "m2" and quote.unit == "sf" else quote.rate
            out.append(EstimationLineItem.priced(
                "DCK-01", a.description, a.count, area_unit, rate, DECK_CATEGORY, "Deck",
                rate_source=quote.source, notes=quote.descriptor,
            ))
        return out

    # ------------------------------------------------------------------
    # Summary and views
    # ------------------------------------------------------------------

    def _summarize(self, items, qr: QuantityTakeoffResult, currency: str, options: dict) -> CostSummary:
        base = round(sum(i.total_cost for i in items), 2)

        multiplier = complexity_multiplier(qr.member_count)
        complexity = round(base * (multiplier - 1.0), 2)
        running = base + complexity

        factor = get_escalation_factor(
            options.get("start_date"),
            options.get("duration_months"),
            options.get("annual_escalation_pct", self.config["annual_escalation_pct"]),
        )
        escalation = round(running * (factor - 1.0), 2)
        running += escalation

        contingency = round(running * self.config["contingency_pct"], 2)
        running += contingency
        preliminaries = round(running * self.config["preliminaries_pct"], 2)
        running += preliminaries
        overheads = round(running * self.config["overheads_profit_pct"], 2)
        running += overheads

        subtotal = round(running, 2)
        tax_rate, _ = TAX_RATES.get(currency, (0.0, "Tax"))
        tax = round(subtotal * tax_rate, 2)
        tonnage = qr.total_tonnage
        return CostSummary(
            base_cost=base,
            complexity_multiplier=multiplier,
            complexity_adjustment=complexity,
            escalation_factor=factor,
            escalation=escalation,
            contingency=contingency,
            preliminaries=preliminaries,
            overheads_profit=overheads,
            subtotal_ex_tax=subtotal,
            tax=tax,
            total_inc_tax=round(subtotal + tax, 2),
            currency=currency,
            total_tonnage=tonnage,
            rate_per_tonne=round(subtotal / tonnage, 2) if tonnage else 0.0,
        )

    @staticmethod
    def _categories(items) -> Dict[str, dict]:
        categories: Dict[str, dict] = {}
        for item in items:
            group = categories.setdefault(item.category, {"items": [], "total": 0.0, "subcategories": {}})
            group["items"].append(item)
            group["total"] = round(group["total"] + item.total_cost, 2)
            sub = group["subcategories"].setdefault(item.subcategory, {"items": [], "total": 0.0})
            sub["items"].append(item)
            sub["total"] = round(sub["total"] + item.total_cost, 2)
        return categories

    @staticmethod
    def _rate_sources(items) -> Dict[str, dict]:
        breakdown: Dict[str, dict] = {}
        for item in items:
            entry = breakdown.setdefault(item.rate_source, {"items": 0, "total": 0.0})
            entry["items"] += 1
            entry["total"] = round(entry["total"] + item.total_cost, 2)
        return breakdown


def estimate(
    quantity_result: QuantityTakeoffResult,
    location: Optional[str],
    currency: Optional[str] = None,
    options: Optional[dict] = None,
    rates: Optional[dict] = None,
    config: Optional[dict] = None,
) -> EstimateResult:
    return EstimationEngine(rates, config).estimate(quantity_result, location, currency, options)
