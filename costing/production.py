# =============================================================================
# INVENTORY COSTING ENGINE - PRODUCTION MODULE
# =============================================================================
# Finalization of production tasks: consume BOM materials, add produced units.
#
# FORMULAS:
# Total_units = Produced + Defected
# Usage[i] = Used_per_unit[i] * Total_units / Unit_scale[unit_i]
# Stock[i] -= Usage[i]           (type "Used")
# Stock[product] += Produced      (type "Produced")
#
# EXECUTION ORDER:
# 1. plan_finalization builds stock movements without touching the catalog
# 2. finalize_tasks applies the movements and marks tasks Completed
# =============================================================================

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .catalog import (
    CatalogLike,
    ComponentLine,
    InventoryCatalogEntry,
    as_component_line,
    find_entry,
    index_catalog,
    to_datetime,
    to_float,
)
from .history import record_stock_change
from .units import get_unit_scale

logger = logging.getLogger(__name__)


TASK_TYPES = (
    "Production", "Cleaning", "Break", "CoffeeshopOpening",
    "Selling", "Packaging", "Recycling",
)
TASK_STATUSES = ("Pending", "InProgress", "Completed", "Cancelled")


@dataclass
class ProductionTask:
    """Production (or other work) task."""
    id: str
    task_name: str = ""
    product_id: Optional[str] = None
    task_type: str = "Production"
    planned_quantity: float = 0.0
    produced_quantity: float = 0.0
    defected_quantity: float = 0.0
    bom_data: List[ComponentLine] = field(default_factory=list)
    status: str = "Pending"
    production_date: Optional[datetime] = None

    @property
    def total_units(self) -> float:
        return (self.produced_quantity or 0.0) + (self.defected_quantity or 0.0)

    @property
    def batch_reference(self) -> str:
        return f"ProdTask-{self.id}"


@dataclass
class StockMovement:
    item_id: str
    change: float
    change_type: str


@dataclass
class FinalizationPlan:
    """Stock movements required to finalize one task."""
    task_id: str
    movements: List[StockMovement] = field(default_factory=list)
    complete: bool = False
    warnings: List[str] = field(default_factory=list)


def task_from_record(record: Any) -> ProductionTask:
    """Coerce a task record (camelCase or snake_case keys) into a ProductionTask."""
    if isinstance(record, ProductionTask):
        return record

    def pick(*keys, default=None):
        for key in keys:
            if record.get(key) is not None:
                return record[key]
        return default

    product_id = pick("product", "product_id")
    return ProductionTask(
        id=str(pick("_id", "id", default="")),
        task_name=str(pick("taskName", "task_name", default="")),
        product_id=str(product_id) if product_id is not None else None,
        task_type=str(pick("taskType", "task_type", default="Production")),
        planned_quantity=to_float(pick("plannedQuantity", "planned_quantity")),
        produced_quantity=to_float(pick("producedQuantity", "produced_quantity")),
        defected_quantity=to_float(pick("defectedQuantity", "defected_quantity")),
        bom_data=[as_component_line(line) for line in pick("BOMData", "bom_data", default=[])],
        status=str(pick("status", default="Pending")),
        production_date=to_datetime(pick("productionDate", "production_date")),
    )


def load_tasks(data: Dict) -> List[ProductionTask]:
    """Load production tasks from a data dictionary with a 'tasks' list."""
    return [task_from_record(record) for record in data.get("tasks", [])]


def plan_finalization(
    task: ProductionTask,
    inventory_items: CatalogLike
) -> FinalizationPlan:
    """
    Work out the stock movements for finalizing a task.

    Args:
        task: Task to finalize
        inventory_items: Catalog entries/records or an indexed catalog

    Returns:
        FinalizationPlan; complete=False means the task must stay open

    Logic:
        - Non-production tasks and tasks with no units are completed as-is
        - Missing product, batch weight or BOM leaves the task open
        - The task's BOM snapshot overrides the product's components
        - Lines with no usage or an unknown material are skipped
    """
    plan = FinalizationPlan(task_id=task.id)

    if task.task_type != "Production" or task.total_units <= 0:
        plan.complete = True
        return plan

    catalog = index_catalog(inventory_items)
    product = find_entry(catalog, task.product_id)
    if product is None:
        plan.warnings.append(f"Final product not found: {task.product_id}")
        return plan
    if not product.standard_batch_weight or product.standard_batch_weight <= 0:
        plan.warnings.append(f"Missing standard batch weight for product: {product.item_name or product.id}")
        return plan
    if not product.components:
        plan.warnings.append(f"No BOM components found for product: {product.item_name or product.id}")
        return plan

    lines = task.bom_data or product.components
    for line in lines:
        used_per_unit = line.used_amount
        if not used_per_unit or used_per_unit <= 0:
            continue

        material = find_entry(catalog, line.component_id)
        if material is None:
            plan.warnings.append(f"Raw material not found: {line.component_id}")
            continue

        usage = used_per_unit * task.total_units
        scale = get_unit_scale(material.unit)
        if scale is not None:
            usage = usage / scale

        plan.movements.append(StockMovement(material.id, -usage, "Used"))

    if task.produced_quantity > 0:
        plan.movements.append(StockMovement(product.id, task.produced_quantity, "Produced"))

    plan.complete = True
    return plan


def finalize_tasks(
    tasks: Iterable[ProductionTask],
    inventory_items: Iterable[InventoryCatalogEntry],
    when: Optional[datetime] = None
) -> List[FinalizationPlan]:
    """
    Finalize tasks, updating stock and history in place.

    Args:
        tasks: Tasks to finalize (status updated in place)
        inventory_items: Catalog entries (quantities/history updated in place)
        when: Timestamp for history entries

    Returns:
        One FinalizationPlan per task processed
    """
    when = when or datetime.now()
    catalog = {entry.id: entry for entry in inventory_items}
    plans = []

    for task in tasks:
        if task.status == "Completed":
            logger.warning("Task %s already completed; skipped", task.id)
            continue

        plan = plan_finalization(task, catalog)
        for warning in plan.warnings:
            logger.warning(warning)

        for movement in plan.movements:
            record_stock_change(
                catalog[movement.item_id],
                movement.change,
                movement.change_type,
                when,
                batch_reference=task.batch_reference,
            )

        if plan.complete:
            task.status = "Completed"
        plans.append(plan)

    return plans


# =============================================================================
# END OF PRODUCTION MODULE
# =============================================================================
