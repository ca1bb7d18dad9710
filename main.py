# =============================================================================
# INVENTORY COSTING ENGINE - MAIN ENTRY POINT
# =============================================================================
# Command-line interface for the costing engines.
#
# Usage:
#   python main.py cost --product <id>
#   python main.py grams --product <id>
#   python main.py rollup --write
#   python main.py validate
# =============================================================================

import argparse
import logging
from datetime import datetime
from pathlib import Path

import yaml

from costing.bom_grams import summarize_bom_grams
from costing.catalog import (
    catalog_to_data,
    find_entry,
    index_catalog,
    load_catalog,
    low_stock_items,
)
from costing.history import snapshot_quantities
from costing.logging_config import configure_logging
from costing.partial_cost import (
    apply_rollup,
    compute_batch_cost,
    compute_bom_cost,
    rollup_costs,
)
from costing.settings import (
    get_catalog_path,
    get_gram_source,
    get_logging_options,
    get_unit_aliases,
    load_settings,
    load_yaml_file,
    validate_settings,
)
from costing.tables import cost_breakdown_frame, snapshot_frame
from costing.units import build_unit_scales
from costing.validation_report import format_report, generate_validation_report
from costing.workbook import load_catalog_from_workbook, write_cost_sheet

logger = logging.getLogger(__name__)


def load_entries(catalog_path: Path):
    """Load catalog entries from a YAML file."""
    logger.debug("Loading catalog from %s", catalog_path)
    return load_catalog(load_yaml_file(catalog_path))


def save_entries(entries, catalog_path: Path):
    catalog_path.parent.mkdir(parents=True, exist_ok=True)
    with open(catalog_path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(catalog_to_data(entries), handle, sort_keys=False)


def get_product(entries, product_id: str):
    product = find_entry(index_catalog(entries), product_id)
    if product is None:
        raise SystemExit(f"Product not found: {product_id}")
    return product


def run_cost(entries, settings, product_id: str, batch: bool):
    """Print the cost breakdown of one product."""
    product = get_product(entries, product_id)
    if batch:
        output = compute_batch_cost(product, entries)
        basis = f"standard batch of {product.standard_batch_weight:,.0f} g"
    else:
        scales = build_unit_scales(get_unit_aliases(settings))
        output = compute_bom_cost(product.components, entries, scales)
        basis = "one unit"

    print(f"\nCOST BREAKDOWN: {product.item_name or product.id} ({basis})")
    print("-" * 60)
    frame = cost_breakdown_frame(output)
    if frame.empty:
        print("  (no components)")
    else:
        print(frame.to_string(index=False))

    print(f"\n  Total Cost:        {output.total_cost:,.4f}")
    if output.missing_components:
        print(f"  Missing:           {', '.join(output.missing_components)}")
    if output.unpriced_components:
        print(f"  Unpriced:          {', '.join(output.unpriced_components)}")
    return output


def run_grams(entries, settings, product_id: str, source: str = None):
    """Print the BOM weight of one product."""
    product = get_product(entries, product_id)
    gram_source = source or get_gram_source(settings)
    output = summarize_bom_grams(product.components, entries, gram_source)

    print(f"\nBOM WEIGHT: {product.item_name or product.id}")
    print("-" * 40)
    print(f"  Total Grams:       {output.total_grams:,.2f}")
    print(f"  Gram Source:       {output.gram_source}")
    if output.excluded_packaging:
        print(f"  Packaging:         {', '.join(output.excluded_packaging)}")
    if output.missing_components:
        print(f"  Missing:           {', '.join(output.missing_components)}")
    return output


def run_rollup(entries, catalog_path: Path, write: bool):
    """Recompute product cost prices, optionally saving them."""
    rollup = rollup_costs(entries)
    by_id = index_catalog(entries)

    print("\n" + "=" * 60)
    print("PRODUCT COST ROLL-UP")
    print("=" * 60)
    for item_id, price in rollup.prices.items():
        marker = "*" if item_id in rollup.changed else " "
        old_price = by_id[item_id].cost_price
        print(f" {marker} {item_id:20}: {old_price:>12,.4f} -> {price:>12,.4f}")

    if rollup.errors:
        print("\nERRORS:")
        for error in rollup.errors:
            print(f"  - {error}")

    if write:
        updated = apply_rollup(entries, rollup)
        save_entries(entries, catalog_path)
        print(f"\nUpdated {len(updated)} product(s) in: {catalog_path}")
    return rollup


def run_snapshot(entries, target: str):
    """Print stock quantities and value as of a past date."""
    target_date = datetime.fromisoformat(target)
    frame = snapshot_frame(snapshot_quantities(entries, target_date))

    print(f"\nSTOCK SNAPSHOT AS OF {target}")
    print("-" * 60)
    print(frame.to_string(index=False))
    print(f"\n  Total Stock Value: {frame['stock_value'].sum():,.2f}")
    return frame


def run_low_stock(entries, limit: int):
    items = low_stock_items(entries, limit)
    print("\nLOW STOCK ITEMS")
    print("-" * 40)
    if not items:
        print("  None")
    for entry in items:
        print(f"  {entry.id:20}: {entry.quantity:>10,.2f} (min {entry.min_quantity:,.2f})")
    return items


def run_validation(entries, settings, profile: str):
    """Run validation and print report."""
    print("\n" + "=" * 60)
    print("RUNNING VALIDATION")
    print("=" * 60)

    report = generate_validation_report(entries, settings, profile)
    print(format_report(report))
    return report


def import_workbook(workbook: Path, output: Path, sheet: str):
    """Convert an inventory sheet into a catalog YAML file."""
    entries = load_catalog_from_workbook(workbook, sheet)
    save_entries(entries, output)
    print(f"Wrote {len(entries)} catalog item(s) to: {output}")


def export_cost_sheet(entries, settings, output: Path):
    """Write the BOM cost of every product to a workbook."""
    scales = build_unit_scales(get_unit_aliases(settings))
    outputs = {
        entry.id: compute_bom_cost(entry.components, entries, scales)
        for entry in entries
        if entry.components
    }
    write_cost_sheet(output, outputs)
    print(f"Wrote cost sheet for {len(outputs)} product(s) to: {output}")


def main():
    parser = argparse.ArgumentParser(description="Inventory Costing Engine")
    parser.add_argument("--dir", "-d", default="data", help="Settings directory")
    parser.add_argument("--profile", "-p", default="base", help="Settings profile")
    parser.add_argument("--catalog", "-c", help="Catalog YAML (overrides catalog.path)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    cost_parser = subparsers.add_parser("cost", help="Cost breakdown of a product")
    cost_parser.add_argument("--product", required=True, help="Product id")
    cost_parser.add_argument("--batch", action="store_true",
                             help="Cost one standard batch from BOM percentages")

    grams_parser = subparsers.add_parser("grams", help="BOM weight of a product")
    grams_parser.add_argument("--product", required=True, help="Product id")
    grams_parser.add_argument("--source", choices=["component", "catalog"],
                              help="Gram source (overrides bom.gram_source)")

    rollup_parser = subparsers.add_parser("rollup", help="Recompute product cost prices")
    rollup_parser.add_argument("--write", action="store_true", help="Save prices to the catalog")

    snap_parser = subparsers.add_parser("snapshot", help="Stock quantities as of a date")
    snap_parser.add_argument("--date", required=True, help="Target date (YYYY-MM-DD)")

    low_parser = subparsers.add_parser("low-stock", help="Items at or below minimum quantity")
    low_parser.add_argument("--limit", type=int, default=25, help="Maximum items")

    subparsers.add_parser("validate", help="Run validation")

    import_parser = subparsers.add_parser(
        "import-workbook",
        help="Generate catalog YAML from an inventory workbook"
    )
    import_parser.add_argument("--xlsx", required=True, help="Path to workbook file")
    import_parser.add_argument("--sheet", default="Inventory", help="Inventory sheet name")
    import_parser.add_argument("--output", default="data/catalog.yaml", help="Output catalog YAML path")

    export_parser = subparsers.add_parser("export-cost-sheet", help="Write BOM costs to a workbook")
    export_parser.add_argument("--output", required=True, help="Output workbook path")

    args = parser.parse_args()

    settings = load_settings(args.profile, Path(args.dir))
    settings_errors = validate_settings(settings)
    configure_logging(*get_logging_options(settings))
    for error in settings_errors:
        logger.warning(error)

    if args.command is None:
        parser.print_help()
        return
    if args.command == "import-workbook":
        import_workbook(Path(args.xlsx), Path(args.output), args.sheet)
        return

    catalog_path = Path(args.catalog or get_catalog_path(settings))
    entries = load_entries(catalog_path)

    if args.command == "cost":
        run_cost(entries, settings, args.product, args.batch)
    elif args.command == "grams":
        run_grams(entries, settings, args.product, args.source)
    elif args.command == "rollup":
        run_rollup(entries, catalog_path, args.write)
    elif args.command == "snapshot":
        run_snapshot(entries, args.date)
    elif args.command == "low-stock":
        run_low_stock(entries, args.limit)
    elif args.command == "validate":
        run_validation(entries, settings, args.profile)
    elif args.command == "export-cost-sheet":
        export_cost_sheet(entries, settings, Path(args.output))


if __name__ == "__main__":
    main()
