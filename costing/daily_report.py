# =============================================================================
# INVENTORY COSTING ENGINE - DAILY PRODUCTION REPORT
# =============================================================================
# Material cost, product value and gross profit of one day's production.
#
# FORMULAS:
# Total_units[p] = Produced[p] + Defected[p]
# Material_cost[p,i] = Partial_cost(material_i, Used_per_unit[i] * Total_units[p])
# Product_value[p] = Produced[p] * Client_price[p]
# Gross_profit[p] = Product_value[p] - SUM_i(Material_cost[p,i])
# Gross_profit_pct[p] = Gross_profit[p] / Product_value[p] * 100
# =============================================================================

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .catalog import CatalogLike, index_catalog, to_float
from .partial_cost import compute_partial_cost
from .production import ProductionTask
from .units import build_unit_scales, display_usage

logger = logging.getLogger(__name__)


@dataclass
class MaterialUsed:
    material_name: str
    quantity_used: float
    unit: str
    cost_per_unit: float
    total_cost: float


@dataclass
class ProductProduced:
    product_name: str
    quantity_produced: float = 0.0
    quantity_defected: float = 0.0
    materials_used: List[MaterialUsed] = field(default_factory=list)
    total_material_cost: float = 0.0
    product_value: float = 0.0
    gross_profit: float = 0.0
    gross_profit_percentage: float = 0.0


@dataclass
class DailyReport:
    date: str
    products_produced: List[ProductProduced] = field(default_factory=list)
    total_material_cost: float = 0.0
    total_product_value: float = 0.0
    total_gross_profit: float = 0.0
    overall_gross_profit_percentage: float = 0.0


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _day_bounds(report_date: Union[str, date]) -> Tuple[datetime, datetime]:
    if isinstance(report_date, datetime):
        day = report_date.date()
    elif isinstance(report_date, date):
        day = report_date
    else:
        day = date.fromisoformat(str(report_date))
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def calculate_daily_report(
    report_date: Union[str, date],
    report_rows: Iterable[Mapping],
    tasks: Iterable[ProductionTask],
    inventory_items: CatalogLike,
    aliases: Optional[Dict[str, str]] = None
) -> DailyReport:
    """
    Build the production report for one day.

    Args:
        report_date: Day to report ("YYYY-MM-DD" or date)
        report_rows: Produced quantities, records with 'product' (item name)
                     and 'quantity'
        tasks: Production tasks; completed production tasks dated on the day
               contribute defected units and their BOM snapshot
        inventory_items: Catalog entries/records or an indexed catalog
        aliases: Optional unit alias mapping for display

    Returns:
        DailyReport (empty when there are no rows)

    Notes:
        - Products not found by name are skipped
        - Material usage comes from the first matching task's BOM snapshot,
          otherwise from the product's components
        - Non-finite values are reported as 0
    """
    day_label = str(report_date)[:10]
    report = DailyReport(date=day_label)
    catalog = index_catalog(inventory_items)
    by_name = {}
    for entry in catalog.values():
        by_name.setdefault(entry.item_name, entry)

    produced_by_product: Dict[str, float] = OrderedDict()
    for row in report_rows:
        name = row.get("product")
        if not name:
            continue
        produced_by_product[name] = produced_by_product.get(name, 0.0) + to_float(row.get("quantity"))

    day_start, day_end = _day_bounds(report_date)
    scales = build_unit_scales(aliases) if aliases else None
    tasks = list(tasks)

    for product_name, total_produced in produced_by_product.items():
        product = by_name.get(product_name)
        if product is None:
            logger.debug("Report product '%s' not in catalog; skipped", product_name)
            continue

        tasks_on_date = [
            task for task in tasks
            if task.product_id == product.id
            and task.status == "Completed"
            and task.task_type == "Production"
            and task.production_date is not None
            and day_start <= task.production_date <= day_end
        ]
        total_defected = sum(task.defected_quantity or 0.0 for task in tasks_on_date)
        total_units = total_produced + total_defected
        if total_units == 0:
            continue

        sample = tasks_on_date[0] if tasks_on_date else None
        lines = sample.bom_data if sample is not None and sample.bom_data else product.components

        produced = ProductProduced(
            product_name=product.item_name,
            quantity_produced=total_produced,
            quantity_defected=total_defected,
        )
        for line in lines:
            if not line.used_amount or line.used_amount <= 0 or not line.component_id:
                continue
            material = catalog.get(line.component_id)
            if material is None:
                continue

            usage = line.used_amount * total_units
            amount, label = display_usage(material.unit, usage, aliases)
            cost = compute_partial_cost(material, usage, scales)
            if not math.isfinite(cost) or not math.isfinite(amount):
                continue

            produced.materials_used.append(MaterialUsed(
                material_name=material.item_name,
                quantity_used=amount,
                unit=label,
                cost_per_unit=material.cost_price or 0.0,
                total_cost=cost,
            ))
            produced.total_material_cost += cost

        value = total_produced * to_float(product.client_price)
        profit = value - produced.total_material_cost
        produced.total_material_cost = _finite(produced.total_material_cost)
        produced.product_value = _finite(value)
        produced.gross_profit = _finite(profit)
        produced.gross_profit_percentage = _finite(profit / value * 100) if value > 0 else 0.0

        report.products_produced.append(produced)

    report.total_material_cost = _finite(
        sum(p.total_material_cost for p in report.products_produced)
    )
    report.total_product_value = _finite(
        sum(p.product_value for p in report.products_produced)
    )
    report.total_gross_profit = _finite(report.total_product_value - report.total_material_cost)
    if report.total_product_value > 0:
        report.overall_gross_profit_percentage = _finite(
            report.total_gross_profit / report.total_product_value * 100
        )

    return report


# =============================================================================
# END OF DAILY PRODUCTION REPORT
# =============================================================================
