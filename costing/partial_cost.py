# =============================================================================
# INVENTORY COSTING ENGINE - COST AGGREGATOR
# =============================================================================
# Partial cost of one BOM line and total cost of a finished or semi-finished
# item.
#
# FORMULAS:
# Partial_cost[i] = (Used_amount[i] / Unit_scale[unit_i]) * Cost_price[i]
# Total_cost = SUM_i(Partial_cost[i])
#
# Batch (percentage) costing, used when a product is saved:
# Partial_cost[i] = Cost_per_kg[i] * (Percentage[i] / 100) * (Batch_grams / 1000)
#
# KEY RULE: unresolved components and unrecognized units contribute 0.
# Misses are reported on the output, never raised.
# =============================================================================

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from .catalog import (
    CatalogLike,
    InventoryCatalogEntry,
    as_catalog_entry,
    as_component_line,
    as_raw_material,
    find_entry,
    index_catalog,
)
from .history import record_price_change
from .units import get_unit_scale

logger = logging.getLogger(__name__)


@dataclass
class LineCost:
    """Cost result for one BOM line."""
    component_id: str
    used_amount: float = 0.0
    percentage: float = 0.0
    item_name: str = ""
    unit: str = ""
    cost_price: float = 0.0
    partial_cost: float = 0.0
    resolved: bool = False
    priced: bool = False


@dataclass
class BOMCostOutput:
    """Output structure for BOM cost aggregation."""
    lines: List[LineCost] = field(default_factory=list)
    total_cost: float = 0.0

    # Diagnostics (do not affect total_cost)
    missing_components: List[str] = field(default_factory=list)
    unpriced_components: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class RollupOutput:
    """Recomputed cost prices for every product with a BOM."""
    prices: Dict[str, float] = field(default_factory=dict)
    partial_costs: Dict[str, List[float]] = field(default_factory=dict)
    changed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def compute_partial_cost(
    raw_material: Any,
    used_amount: float,
    scales: Optional[Dict[str, float]] = None
) -> float:
    """
    Calculate the cost of using an amount of a raw material.

    Args:
        raw_material: RawMaterialRef, catalog entry or record with
                      unit and costPrice/currentCostPrice
        used_amount: Amount used in base units (grams for kg/grams,
                     ml for liters/ml, count for pieces)
        scales: Optional unit scale table (defaults to UNIT_SCALE)

    Returns:
        Cost of the used amount (0 for absent or unrecognized units)

    Formula:
        Partial_cost = (used_amount / scale[unit]) * cost_price

    Notes:
        - Negative used_amount is not rejected and yields a negative cost
    """
    material = as_raw_material(raw_material)
    scale = get_unit_scale(material.unit, scales)
    if scale is None:
        return 0.0
    return (used_amount / scale) * material.cost_price


def compute_bom_cost(
    components: Iterable[Any],
    inventory_items: CatalogLike,
    scales: Optional[Dict[str, float]] = None
) -> BOMCostOutput:
    """
    Sum partial costs over every line of a BOM.

    Args:
        components: ComponentLine objects or component records
        inventory_items: Catalog entries/records or an indexed catalog
        scales: Optional unit scale table

    Returns:
        BOMCostOutput with per-line costs, total and miss diagnostics
    """
    output = BOMCostOutput()
    catalog = index_catalog(inventory_items)

    for component in components or []:
        line = as_component_line(component)
        result = LineCost(
            component_id=line.component_id,
            used_amount=line.used_amount,
            percentage=line.percentage,
        )

        entry = find_entry(catalog, line.component_id)
        if entry is None:
            logger.debug("Component %s not in catalog; costed at 0", line.component_id)
            output.missing_components.append(line.component_id)
            output.lines.append(result)
            continue

        result.resolved = True
        result.item_name = entry.item_name
        result.unit = entry.unit
        result.cost_price = entry.cost_price
        result.priced = get_unit_scale(entry.unit, scales) is not None
        if not result.priced:
            logger.debug("Component %s has unit '%s'; costed at 0", entry.id, entry.unit)
            output.unpriced_components.append(entry.id)

        result.partial_cost = compute_partial_cost(entry, line.used_amount, scales)
        output.total_cost += result.partial_cost
        output.lines.append(result)

    return output


def compute_percentage_cost(
    cost_per_kg: float,
    percentage: float,
    batch_weight_grams: float
) -> float:
    """
    Cost of a component's share of a standard batch.

    Formula:
        cost_per_kg * (percentage / 100) * (batch_weight_grams / 1000)
    """
    return cost_per_kg * (percentage / 100) * (batch_weight_grams / 1000)


def compute_batch_cost(
    product: Any,
    inventory_items: CatalogLike
) -> BOMCostOutput:
    """
    Cost of one standard batch of a product using BOM percentages.

    Args:
        product: Catalog entry (or record) with components and
                 standard_batch_weight in grams
        inventory_items: Catalog entries/records or an indexed catalog

    Returns:
        BOMCostOutput; components' cost prices are read as per-kg prices
    """
    product = as_catalog_entry(product)
    catalog = index_catalog(inventory_items)
    output = BOMCostOutput()

    for line in product.components:
        result = LineCost(
            component_id=line.component_id,
            used_amount=line.used_amount,
            percentage=line.percentage,
        )
        entry = find_entry(catalog, line.component_id)
        if entry is None:
            output.missing_components.append(line.component_id)
            output.lines.append(result)
            continue

        result.resolved = True
        result.priced = True
        result.item_name = entry.item_name
        result.unit = entry.unit
        result.cost_price = entry.cost_price
        result.partial_cost = compute_percentage_cost(
            entry.cost_price, line.percentage, product.standard_batch_weight
        )
        output.total_cost += result.partial_cost
        output.lines.append(result)

    return output


def rollup_costs(inventory_items: CatalogLike) -> RollupOutput:
    """
    Recompute cost prices of all final and semi-final products.

    Products are priced depth-first so a semi-final product is costed before
    any product that consumes it. Input entries are not modified.

    Args:
        inventory_items: Catalog entries/records or an indexed catalog

    Returns:
        RollupOutput with new prices, per-line partial costs and the ids
        whose price changed

    Notes:
        - A BOM cycle is reported in errors; the stored price of the item
          that closes the cycle is used
        - Missing components contribute 0
    """
    catalog = index_catalog(inventory_items)
    output = RollupOutput()

    def price_of(item_id: str, visiting: Set[str]) -> float:
        if item_id in output.prices:
            return output.prices[item_id]

        entry = catalog.get(item_id)
        if entry is None:
            return 0.0
        if not entry.is_product or not entry.components:
            return entry.cost_price

        if item_id in visiting:
            message = f"BOM cycle detected at {item_id}; using stored cost price"
            if message not in output.errors:
                output.errors.append(message)
            return entry.cost_price

        visiting.add(item_id)
        partials = []
        for line in entry.components:
            if line.component_id not in catalog:
                partials.append(0.0)
                continue
            cost_per_kg = price_of(line.component_id, visiting)
            partials.append(
                compute_percentage_cost(cost_per_kg, line.percentage, entry.standard_batch_weight)
            )
        visiting.discard(item_id)

        total = sum(partials)
        output.prices[item_id] = total
        output.partial_costs[item_id] = partials
        return total

    for item_id, entry in catalog.items():
        if entry.is_product and entry.components:
            price_of(item_id, set())

    for item_id, price in output.prices.items():
        if abs(price - catalog[item_id].cost_price) > 1e-9:
            output.changed.append(item_id)

    return output


def apply_rollup(
    inventory_items: Iterable[InventoryCatalogEntry],
    rollup: RollupOutput,
    when: Optional[datetime] = None
) -> List[str]:
    """
    Write rolled-up prices and partial costs back onto catalog entries.

    Appends a cost price history entry for every price that changed.

    Returns:
        Ids of entries whose cost price was updated
    """
    when = when or datetime.now()
    updated = []

    for entry in inventory_items:
        if entry.id not in rollup.prices:
            continue
        for line, partial in zip(entry.components, rollup.partial_costs.get(entry.id, [])):
            line.partial_cost = partial
        if record_price_change(entry, "cost", rollup.prices[entry.id], when):
            updated.append(entry.id)

    if updated:
        logger.info("Updated cost price of %d product(s)", len(updated))
    return updated


def validate_bom_cost_output(output: BOMCostOutput) -> List[str]:
    """
    Validate BOM cost output.

    Validations:
        - Total = SUM of partial costs
        - No negative partial costs
        - Every line resolved and priced
    """
    errors = []
    tolerance = 1e-6

    line_sum = sum(line.partial_cost for line in output.lines)
    if abs(output.total_cost - line_sum) > tolerance:
        errors.append(f"Total cost mismatch: {output.total_cost} != {line_sum}")

    for line in output.lines:
        if line.partial_cost < 0:
            errors.append(f"Negative partial cost for {line.component_id}: {line.partial_cost}")

    for component_id in output.missing_components:
        errors.append(f"Component {component_id} not found in catalog (costed at 0)")
    for component_id in output.unpriced_components:
        errors.append(f"Component {component_id} has no recognized unit (costed at 0)")

    return errors


# =============================================================================
# END OF COST AGGREGATOR
# =============================================================================
