from pathlib import Path

import pytest
from openpyxl import Workbook, load_workbook

from costing.partial_cost import compute_bom_cost
from costing.workbook import (
    COST_HEADER,
    COST_SHEET,
    load_catalog_from_workbook,
    parse_components,
    read_inventory_records,
    write_cost_sheet,
    write_inventory_workbook,
)


def _write_sheet(path: Path, rows, title="Inventory"):
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append(row)
    wb.save(path)


def test_parse_components():
    assert parse_components("flour:600:60; sugar:300 ;;") == [
        {"componentId": "flour", "grams": 600.0, "percentage": 60.0},
        {"componentId": "sugar", "grams": 300.0},
    ]
    assert parse_components(None) == []
    assert parse_components("") == []


def test_read_inventory_records(tmp_path: Path):
    path = tmp_path / "inventory.xlsx"
    _write_sheet(path, [
        ["_id", "itemName", "category", "unit", "currentCostPrice", "components"],
        ["flour", "Flour", "ProductionRawMaterial", "kg", 2.0, None],
        [None, None, None, None, None, None],
        ["bread", "Bread", "FinalProduct", "pieces", 0, "flour:500:100"],
    ])
    records = read_inventory_records(path)
    assert [r["_id"] for r in records] == ["flour", "bread"]
    assert records[0]["components"] == []
    assert records[1]["components"] == [{"componentId": "flour", "grams": 500.0, "percentage": 100.0}]


def test_catalog_from_workbook_costs(tmp_path: Path):
    path = tmp_path / "inventory.xlsx"
    _write_sheet(path, [
        ["_id", "itemName", "category", "unit", "currentCostPrice", "components"],
        ["flour", "Flour", "ProductionRawMaterial", "kg", 2.0, None],
        ["bread", "Bread", "FinalProduct", "pieces", 0, "flour:500:100"],
    ])
    entries = load_catalog_from_workbook(path)
    output = compute_bom_cost(entries[1].components, entries)
    assert output.total_cost == pytest.approx(1.0)


def test_write_inventory_workbook_reloads(tmp_path: Path, catalog):
    path = tmp_path / "out" / "inventory.xlsx"
    write_inventory_workbook(path, catalog)
    entries = load_catalog_from_workbook(path)
    assert [e.id for e in entries] == [e.id for e in catalog]
    assert entries[-1].components == catalog[-1].components
    assert entries[-1].standard_batch_weight == 500


def test_write_cost_sheet(tmp_path: Path, by_id, catalog):
    path = tmp_path / "costs.xlsx"
    outputs = {
        "dough": compute_bom_cost(by_id["dough"].components, catalog),
        "cake": compute_bom_cost(by_id["cake"].components, catalog),
    }
    write_cost_sheet(path, outputs)

    ws = load_workbook(path)[COST_SHEET]
    rows = list(ws.iter_rows(values_only=True))
    assert list(rows[0]) == COST_HEADER
    # 3 dough lines + TOTAL, 3 cake lines + TOTAL
    assert len(rows) == 1 + 4 + 4
    totals = {row[0]: row[6] for row in rows if row[1] == "TOTAL"}
    assert totals["dough"] == pytest.approx(1.65)
    assert totals["cake"] == pytest.approx(1.66)
