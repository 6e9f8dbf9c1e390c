"""
Pricing Engine.

Turns a product's cost rows and pricing strategy into a full cost breakdown.
Pure math with no I/O. Quantity x unit price, hours x rate, cost / (1 - margin).

Input: product configuration + material catalog (dicts, ORM rows or pydantic
       models, anything exposing the field names below)
Output: CalculatedPricing dict

    total_material_cost   = sum(unit_price(row.material_id) * row.qty)   materials rows
    total_packaging_cost  = sum(unit_price(row.material_id) * row.qty)   packaging rows
    total_labor_cost      = sum(row.hours * hourly_labor_rate)           labor rows
    total_other_fees_cost = sum(row.qty * row.unit_price)                fee rows
    total_base_cost       = sum of the four buckets

    margin mode: final_price = total_base_cost / (1 - target_margin/100)
                 (falls back to total_base_cost at 100% margin or more)
    price mode:  final_price = target_price
                 required_margin = (final_price - total_base_cost) / final_price * 100

    discounted_price = final_price * (1 - discount/100)
    profit           = discounted_price - total_base_cost

The engine never raises. Missing, non-numeric, non-finite or negative inputs
are read as 0, and a sum or derived figure that overflows to infinity reads as
0 too. Outputs are never clamped: a negative profit is a loss the
user needs to see.
"""

import math
from collections.abc import Mapping


MARGIN_MODE = "margin"
PRICE_MODE = "price"


def _field(obj, name: str, default=None):
    """Read a field from a mapping or an attribute object."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _num(value) -> float:
    """Finite float or 0.0."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _amount(value) -> float:
    """Non-negative finite float for quantities, hours, rates, prices, percents."""
    return max(0.0, _num(value))


def _rows(value) -> list:
    if value is None or isinstance(value, (str, bytes, Mapping)):
        return []
    try:
        return list(value)
    except TypeError:
        return []


def _mode(value) -> str:
    mode = getattr(value, "value", value)
    return PRICE_MODE if mode == PRICE_MODE else MARGIN_MODE


class PricingEngine:
    """
    Computes CalculatedPricing for one product snapshot.

    Holds no state between calls; the same inputs always produce the same
    output, so it is safe to call on every edit.
    """

    def compute(self, product, materials) -> dict:
        """
        Run the four pricing stages.

        Args:
            product: {
                "product_name": str,
                "hourly_labor_rate": float,
                "material_cost_rows": [{"id", "material_id", "qty"}],
                "packaging_cost_rows": [{"id", "material_id", "qty"}],
                "labor_cost_rows": [{"id", "task_name", "hours"}],
                "other_fee_rows": [{"id", "fee_name", "qty", "unit", "unit_price"}],
                "calculation_mode": "margin" | "price",
                "target_margin": float,   # percent of final price
                "target_price": float,
                "discount": float,        # percent
            }
            materials: [{"id": str, "unit_price": float, ...}]

        Returns:
            CalculatedPricing dict
        """
        # --- Stage 1: unit price resolution ---
        unit_prices = self._build_unit_price_index(materials)

        # --- Stage 2: bucketed cost aggregation ---
        material_cost = self._calculate_reference_cost(
            _field(product, "material_cost_rows"), unit_prices,
        )
        packaging_cost = self._calculate_reference_cost(
            _field(product, "packaging_cost_rows"), unit_prices,
        )
        labor_cost = self._calculate_labor_cost(
            _field(product, "labor_cost_rows"),
            _amount(_field(product, "hourly_labor_rate")),
        )
        other_fees_cost = self._calculate_other_fees_cost(_field(product, "other_fee_rows"))

        total_base_cost = _num(material_cost + packaging_cost + labor_cost + other_fees_cost)

        # --- Stage 3: strategy-dependent final price ---
        final_price, required_margin = self._calculate_final_price(product, total_base_cost)

        # --- Stage 4: discount and profit ---
        discount_decimal = _amount(_field(product, "discount")) / 100
        discounted_price = _num(final_price * (1 - discount_decimal))
        profit = _num(discounted_price - total_base_cost)

        return {
            "total_material_cost": material_cost,
            "total_packaging_cost": packaging_cost,
            "total_labor_cost": labor_cost,
            "total_other_fees_cost": other_fees_cost,
            "total_base_cost": total_base_cost,
            "final_price": final_price,
            "required_margin": required_margin,
            "discounted_price": discounted_price,
            "profit": profit,
        }

    def _build_unit_price_index(self, materials) -> dict:
        """material id -> unit price. The first entry wins on duplicate ids."""
        index = {}
        for material in _rows(materials):
            material_id = _field(material, "id")
            if material_id is None:
                continue
            try:
                index.setdefault(material_id, _amount(_field(material, "unit_price")))
            except TypeError:
                # unhashable id, cannot be referenced by any row
                continue
        return index

    def resolve_unit_price(self, material_id, unit_prices: dict) -> float:
        """Catalog unit price for a row reference, 0 when null or stale."""
        if material_id is None:
            return 0.0
        try:
            return unit_prices.get(material_id, 0.0)
        except TypeError:
            return 0.0

    def _calculate_reference_cost(self, rows, unit_prices: dict) -> float:
        total = 0.0
        for row in _rows(rows):
            unit_price = self.resolve_unit_price(_field(row, "material_id"), unit_prices)
            total += unit_price * _amount(_field(row, "qty"))
        return _num(total)

    def _calculate_labor_cost(self, rows, hourly_rate: float) -> float:
        """Every labor row is billed at the product's single hourly rate."""
        total = 0.0
        for row in _rows(rows):
            total += _amount(_field(row, "hours")) * hourly_rate
        return _num(total)

    def _calculate_other_fees_cost(self, rows) -> float:
        total = 0.0
        for row in _rows(rows):
            total += _amount(_field(row, "qty")) * _amount(_field(row, "unit_price"))
        return _num(total)

    def _calculate_final_price(self, product, total_base_cost: float) -> tuple[float, float]:
        """
        Returns (final_price, required_margin).

        margin: margin is profit as a share of the final price, not a markup
                over cost. 100% or more would need an infinite price, so the
                final price falls back to cost.
        price:  the margin is worked backwards from the entered price; a zero
                price reports a 0% margin.
        """
        if _mode(_field(product, "calculation_mode")) == PRICE_MODE:
            final_price = _amount(_field(product, "target_price"))
            if final_price > 0:
                required_margin = _num(((final_price - total_base_cost) / final_price) * 100)
            else:
                required_margin = 0.0
            return final_price, required_margin

        target_margin = _amount(_field(product, "target_margin"))
        margin_decimal = target_margin / 100
        if margin_decimal < 1:
            final_price = _num(total_base_cost / (1 - margin_decimal))
        else:
            final_price = total_base_cost
        return final_price, target_margin


_engine = PricingEngine()


def compute_pricing(product, materials) -> dict:
    """Module-level entry point, see PricingEngine.compute."""
    return _engine.compute(product, materials)
