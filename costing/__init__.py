# =============================================================================
# INVENTORY COSTING ENGINE - COSTING PACKAGE
# =============================================================================
# Calculation engines for inventory costing.
#
# Modules:
# - units: Unit scale table and display conversion
# - catalog: Inventory catalog records, lookup and validation
# - partial_cost: BOM line cost, BOM total and product cost roll-up
# - bom_grams: BOM weight excluding packaging
# - history: Stock and price history, snapshots
# - production: Production task finalization
# - daily_report: Daily production cost and profit report
# - tables: pandas views of engine outputs
# - workbook: Excel import/export
# - settings: YAML settings
# - validation_report: Catalog consistency checks
# =============================================================================

__version__ = "0.1.0"
