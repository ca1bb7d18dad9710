"""Transform costing outputs into pandas tables for display and export."""

from __future__ import annotations

from typing import Iterable, List

import pandas as pd

from .catalog import InventoryCatalogEntry
from .daily_report import DailyReport
from .history import SnapshotRow
from .partial_cost import BOMCostOutput


COST_COLUMNS = [
    "component_id",
    "item_name",
    "unit",
    "used_amount",
    "percentage",
    "cost_price",
    "partial_cost",
    "share_pct",
    "resolved",
]


def _safe_pct(num: float, den: float) -> float:
    return (num / den) if den else 0.0


def cost_breakdown_frame(output: BOMCostOutput) -> pd.DataFrame:
    """One row per BOM line with its share of the total cost."""
    rows = []
    for line in output.lines:
        rows.append(
            {
                "component_id": line.component_id,
                "item_name": line.item_name,
                "unit": line.unit,
                "used_amount": float(line.used_amount),
                "percentage": float(line.percentage),
                "cost_price": float(line.cost_price),
                "partial_cost": float(line.partial_cost),
                "share_pct": _safe_pct(line.partial_cost, output.total_cost),
                "resolved": bool(line.resolved),
            }
        )
    return pd.DataFrame(rows, columns=COST_COLUMNS)


def snapshot_frame(rows: Iterable[SnapshotRow]) -> pd.DataFrame:
    frame = pd.DataFrame(
        [
            {
                "item_id": row.item_id,
                "item_name": row.item_name,
                "category": row.category,
                "snapshot_qty": float(row.snapshot_qty),
                "cost_price": float(row.cost_price),
            }
            for row in rows
        ],
        columns=["item_id", "item_name", "category", "snapshot_qty", "cost_price"],
    )
    frame["stock_value"] = frame["snapshot_qty"] * frame["cost_price"]
    return frame


def daily_report_frame(report: DailyReport) -> pd.DataFrame:
    """Flatten a daily report to one row per (product, material)."""
    columns = [
        "date",
        "product_name",
        "material_name",
        "quantity_used",
        "unit",
        "cost_per_unit",
        "total_cost",
    ]
    rows: List[dict] = []
    for product in report.products_produced:
        for material in product.materials_used:
            rows.append(
                {
                    "date": report.date,
                    "product_name": product.product_name,
                    "material_name": material.material_name,
                    "quantity_used": material.quantity_used,
                    "unit": material.unit,
                    "cost_per_unit": material.cost_per_unit,
                    "total_cost": material.total_cost,
                }
            )
    return pd.DataFrame(rows, columns=columns)


def stock_history_frame(entry: InventoryCatalogEntry) -> pd.DataFrame:
    """Stock history of one item with a running balance ending at current stock."""
    frame = pd.DataFrame(
        [
            {
                "date": record.date,
                "type": record.type,
                "change": float(record.change),
                "batch_reference": record.batch_reference or "",
            }
            for record in entry.stock_history
        ],
        columns=["date", "type", "change", "batch_reference"],
    )
    if frame.empty:
        frame["balance"] = pd.Series(dtype=float)
        return frame

    frame = frame.sort_values("date", kind="stable").reset_index(drop=True)
    opening = float(entry.quantity) - frame["change"].sum()
    frame["balance"] = opening + frame["change"].cumsum()
    return frame
