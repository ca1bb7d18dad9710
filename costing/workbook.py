"""Bridge between Excel inventory workbooks and the costing engines."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping

from openpyxl import Workbook, load_workbook

from .catalog import InventoryCatalogEntry, load_catalog
from .partial_cost import BOMCostOutput


INVENTORY_SHEET = "Inventory"
COST_SHEET = "Cost Sheet"

COST_HEADER = [
    "product_id",
    "component_id",
    "item_name",
    "unit",
    "used_amount",
    "cost_price",
    "partial_cost",
]


def parse_components(text) -> List[Dict]:
    """
    Parse a components cell.

    Format: "component_id:grams[:percentage]" separated by ";".
    Blank cells and blank segments give no components.
    """
    if text is None:
        return []
    components = []
    for segment in str(text).split(";"):
        segment = segment.strip()
        if not segment:
            continue
        parts = [p.strip() for p in segment.split(":")]
        component = {"componentId": parts[0]}
        if len(parts) > 1 and parts[1]:
            component["grams"] = float(parts[1])
        if len(parts) > 2 and parts[2]:
            component["percentage"] = float(parts[2])
        components.append(component)
    return components


def format_components(entry: InventoryCatalogEntry) -> str:
    return ";".join(
        f"{line.component_id}:{line.grams:g}:{line.percentage:g}" for line in entry.components
    )


def read_inventory_records(workbook_path: Path, sheet: str = INVENTORY_SHEET) -> List[Dict]:
    """Read inventory rows as records keyed by the header row."""
    wb = load_workbook(workbook_path, data_only=True, read_only=True)
    try:
        ws = wb[sheet]
        rows = ws.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        keys = [str(h).strip() if h is not None else "" for h in header]

        records = []
        for row in rows:
            if row is None or all(v is None for v in row):
                continue
            record = {key: value for key, value in zip(keys, row) if key and value is not None}
            record["components"] = parse_components(record.get("components"))
            records.append(record)
        return records
    finally:
        wb.close()


def load_catalog_from_workbook(
    workbook_path: Path,
    sheet: str = INVENTORY_SHEET
) -> List[InventoryCatalogEntry]:
    """Load catalog entries from an inventory sheet."""
    return load_catalog({"inventory": read_inventory_records(workbook_path, sheet)})


def write_inventory_workbook(
    workbook_path: Path,
    entries: List[InventoryCatalogEntry],
    sheet: str = INVENTORY_SHEET
) -> None:
    """Write catalog entries to an inventory sheet readable by load_catalog_from_workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet
    ws.append([
        "_id", "sku", "itemName", "category", "unit", "quantity", "minQuantity",
        "currentCostPrice", "grams", "standardBatchWeight", "components",
    ])
    for entry in entries:
        ws.append([
            entry.id, entry.sku, entry.item_name, entry.category, entry.unit,
            entry.quantity, entry.min_quantity, entry.cost_price, entry.grams,
            entry.standard_batch_weight, format_components(entry),
        ])
    Path(workbook_path).parent.mkdir(parents=True, exist_ok=True)
    wb.save(workbook_path)


def write_cost_sheet(
    workbook_path: Path,
    outputs: Mapping[str, BOMCostOutput]
) -> None:
    """
    Write BOM cost outputs to a single cost sheet.

    One row per BOM line, followed by a TOTAL row per product.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = COST_SHEET
    ws.append(COST_HEADER)

    for product_id, output in outputs.items():
        for line in output.lines:
            ws.append([
                product_id, line.component_id, line.item_name, line.unit,
                line.used_amount, line.cost_price, line.partial_cost,
            ])
        ws.append([product_id, "TOTAL", "", "", None, None, output.total_cost])

    Path(workbook_path).parent.mkdir(parents=True, exist_ok=True)
    wb.save(workbook_path)
