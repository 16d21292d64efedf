"""Pure calculation rules shared by orders, job cards and purchases.

Nothing in here touches the database. Functions accept either plain mappings
(request payloads) or ORM objects, and return ``Decimal`` values quantized to
four places, matching the ``Numeric(20, 4)`` columns they end up in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from bagline.app.core.config import settings

logger = logging.getLogger(__name__)

MANUAL_FORMULA = "manual"
INCHES_PER_METER = Decimal("39.37")
FOUR_PLACES = Decimal("0.0001")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce user/DB input to Decimal; ``None`` and blanks become zero."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize(value: Decimal) -> Decimal:
    return value.quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)


def _field(component: Any, name: str) -> Any:
    if isinstance(component, Mapping):
        return component.get(name)
    return getattr(component, name, None)


# ── Manual formulas ─────────────────────────────────────────────────────────


def is_manual_formula(component: Any) -> bool:
    """True when the component's consumption was typed in by hand.

    Either marker is enough: ``formula == "manual"`` or an explicit
    ``is_manual_consumption is True``. Missing fields count as false.
    """
    if component is None:
        return False
    return (
        _field(component, "formula") == MANUAL_FORMULA
        or _field(component, "is_manual_consumption") is True
    )


def scale_manual_consumption(
    component: Mapping[str, Any], order_quantity: int | Decimal
) -> dict[str, Any]:
    """Return a copy of *component* with manual consumption scaled to the order.

    The per-bag figure is kept in ``base_consumption`` and the scaled figure is
    always recomputed from it, so calling this again with a different order
    quantity replaces the previous result instead of compounding it.
    """
    result = dict(component)
    if not is_manual_formula(component):
        return result

    base = component.get("base_consumption")
    if base is None:
        base = component.get("consumption")
    base = to_decimal(base)

    result["base_consumption"] = base
    result["consumption"] = quantize(base * to_decimal(order_quantity))
    logger.debug(
        "Scaled manual consumption for %s: %s x %s = %s",
        component.get("component_type", "component"),
        base,
        order_quantity,
        result["consumption"],
    )
    return result


def process_order_components(
    components: Sequence[Mapping[str, Any]], order_quantity: int | Decimal | None
) -> list[dict[str, Any]]:
    """Scale every manual component of an order. Calculated ones pass through."""
    if not components:
        return []
    if not order_quantity or to_decimal(order_quantity) <= 0:
        logger.warning(
            "Invalid order quantity %r; manual components left unscaled",
            order_quantity,
        )
        return [dict(c) for c in components]
    return [scale_manual_consumption(c, order_quantity) for c in components]


# ── Material consumption ────────────────────────────────────────────────────


def calculate_consumption(
    length: Any, width: Any, roll_width: Any, quantity: Any = 1
) -> Decimal:
    """Metres of roll needed: ``(length * width) / (roll_width * 39.37) * quantity``.

    Dimensions are in inches. Returns zero when any dimension is missing or
    not positive.
    """
    length, width, roll_width = (
        to_decimal(length),
        to_decimal(width),
        to_decimal(roll_width),
    )
    if length <= 0 or width <= 0 or roll_width <= 0:
        return ZERO
    meters = (length * width) / (roll_width * INCHES_PER_METER)
    return quantize(meters * to_decimal(quantity))


def effective_inventory_quantity(item: Any) -> Decimal:
    """Stock moved by a purchase line: ``actual_meter`` when positive, else ``quantity``."""
    actual_meter = to_decimal(_field(item, "actual_meter"))
    if actual_meter > 0:
        return actual_meter
    return to_decimal(_field(item, "quantity"))


# ── Purchase lines ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LineAmounts:
    base_amount: Decimal
    gst_amount: Decimal
    line_total: Decimal


def calculate_purchase_line(
    *,
    quantity: Any,
    unit_price: Any,
    alt_quantity: Any = None,
    alt_unit_price: Any = None,
    gst_rate: Any = 0,
) -> LineAmounts:
    """GST is charged on the alternate-unit amount when both alternate figures exist."""
    alt_quantity = to_decimal(alt_quantity)
    alt_unit_price = to_decimal(alt_unit_price)
    if alt_quantity > 0 and alt_unit_price > 0:
        base = alt_quantity * alt_unit_price
    else:
        base = to_decimal(quantity) * to_decimal(unit_price)
    gst = base * to_decimal(gst_rate) / Decimal("100")
    return LineAmounts(
        base_amount=quantize(base),
        gst_amount=quantize(gst),
        line_total=quantize(base + gst),
    )


def allocate_transport(weights: Sequence[Any], transport_charge: Any) -> list[Decimal]:
    """Split *transport_charge* across lines in proportion to *weights*.

    The last weighted line absorbs the rounding remainder so the shares always
    add up to the charge exactly.
    """
    charge = to_decimal(transport_charge)
    weights = [max(to_decimal(w), ZERO) for w in weights]
    total = sum(weights, ZERO)
    if charge <= 0 or total <= 0:
        return [ZERO for _ in weights]

    shares = [quantize(charge * w / total) for w in weights]
    last = max(i for i, w in enumerate(weights) if w > 0)
    shares[last] += charge - sum(shares, ZERO)
    return shares


# ── Vendor bills and sales invoices ─────────────────────────────────────────


@dataclass(frozen=True)
class BillAmounts:
    subtotal: Decimal
    gst_amount: Decimal
    transport_charge: Decimal
    total_amount: Decimal


def calculate_bill_amounts(
    *,
    quantity: Any,
    rate: Any,
    gst_percentage: Any = 0,
    other_expenses: Any = 0,
    transport_charge: Any = 0,
    transport_included: bool = True,
) -> BillAmounts:
    """``quantity * rate`` plus GST on that subtotal, other expenses and transport.

    Transport is only added when it is billed separately; an included
    transport charge is reported as zero.
    """
    subtotal = to_decimal(quantity) * to_decimal(rate)
    gst = subtotal * to_decimal(gst_percentage) / Decimal("100")
    transport = ZERO if transport_included else to_decimal(transport_charge)
    total = subtotal + gst + transport + to_decimal(other_expenses)
    return BillAmounts(
        subtotal=quantize(subtotal),
        gst_amount=quantize(gst),
        transport_charge=quantize(transport),
        total_amount=quantize(total),
    )


# ── Order costing ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OrderCost:
    material_cost: Decimal
    production_cost: Decimal
    total_cost: Decimal
    cost_per_bag: Decimal


def calculate_order_cost(
    components: Iterable[Any],
    quantity: int,
    *,
    cutting_charge: Any = 0,
    printing_charge: Any = 0,
    stitching_charge: Any = 0,
    transport_charge: Any = 0,
) -> OrderCost:
    """Material cost (``consumption * material_rate``) plus per-bag charges."""
    material = sum(
        (
            to_decimal(_field(c, "consumption")) * to_decimal(_field(c, "material_rate"))
            for c in components
        ),
        ZERO,
    )
    per_bag = sum(
        (to_decimal(x) for x in (cutting_charge, printing_charge, stitching_charge, transport_charge)),
        ZERO,
    )
    production = per_bag * to_decimal(quantity)
    total = material + production
    cost_per_bag = total / to_decimal(quantity) if quantity else ZERO
    return OrderCost(
        material_cost=quantize(material),
        production_cost=quantize(production),
        total_cost=quantize(total),
        cost_per_bag=quantize(cost_per_bag),
    )


def calculate_selling_price(total_cost: Any, margin_percent: Any = None) -> Decimal:
    cost = to_decimal(total_cost)
    if cost <= 0:
        return ZERO
    margin = settings.DEFAULT_MARGIN_PERCENT if margin_percent is None else to_decimal(margin_percent)
    return quantize(cost * (1 + margin / Decimal("100")))
