# =============================================================================
# INVENTORY COSTING ENGINE - HISTORY MODULE
# =============================================================================
# Append-only stock and price history for inventory items.
#
# RULES:
# - History entries are only ever appended, never edited or removed
# - Quantity after a stock change is clamped at 0; the unclamped change is
#   still recorded, so a snapshot taken before an over-consumption can
#   report more stock than was on hand
# - A price entry is appended only when the price actually changes
#
# SNAPSHOT FORMULA:
# Qty[target] = Qty[now] - SUM(change for entries dated after target)
# =============================================================================

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from .catalog import (
    PriceHistoryEntry,
    StockHistoryEntry,
    STOCK_CHANGE_TYPES,
    InventoryCatalogEntry,
)

logger = logging.getLogger(__name__)


PRICE_KINDS = ("cost", "client", "business")


@dataclass
class SnapshotRow:
    """Quantity of one item as of a past date."""
    item_id: str
    item_name: str
    category: str
    cost_price: float
    snapshot_qty: float


def record_stock_change(
    entry: InventoryCatalogEntry,
    change: float,
    change_type: str,
    when: Optional[datetime] = None,
    batch_reference: Optional[str] = None,
    reference_document: Optional[str] = None
) -> StockHistoryEntry:
    """
    Append a stock history entry and update the item quantity.

    Args:
        entry: Inventory item to update
        change: Signed quantity change (+ added/produced, - used/sold)
        change_type: One of STOCK_CHANGE_TYPES
        when: Timestamp of the change (defaults to now)
        batch_reference: Optional batch label, e.g. ProdTask-<id>
        reference_document: Optional invoice/document id

    Returns:
        The appended StockHistoryEntry
    """
    if change_type not in STOCK_CHANGE_TYPES:
        raise ValueError(f"Unknown stock change type: {change_type}")

    record = StockHistoryEntry(
        date=when or datetime.now(),
        change=change,
        type=change_type,
        batch_reference=batch_reference,
        reference_document=reference_document,
    )
    entry.stock_history.append(record)
    entry.quantity = max(0.0, entry.quantity + change)
    return record


def _price_history(entry: InventoryCatalogEntry, kind: str) -> List[PriceHistoryEntry]:
    if kind not in PRICE_KINDS:
        raise ValueError(f"Unknown price kind: {kind}")
    return getattr(entry, f"{kind}_price_history")


def record_price_change(
    entry: InventoryCatalogEntry,
    kind: str,
    new_price: float,
    when: Optional[datetime] = None
) -> bool:
    """
    Update a current price and append it to the matching history.

    Args:
        entry: Inventory item to update
        kind: "cost", "client" or "business"
        new_price: New price
        when: Timestamp of the change (defaults to now)

    Returns:
        True if the price changed and history was appended
    """
    history = _price_history(entry, kind)
    current = getattr(entry, f"{kind}_price")
    if current is not None and abs(float(current) - new_price) <= 1e-9:
        return False

    setattr(entry, f"{kind}_price", new_price)
    history.append(PriceHistoryEntry(price=new_price, date=when or datetime.now()))
    return True


def price_at(
    history: Iterable[PriceHistoryEntry],
    when: datetime,
    default: float = 0.0
) -> float:
    """
    Price in force at a given time (step function over history).

    Logic:
        - Use the most recent entry dated <= when
        - If no entry is that old, use default
    """
    applicable = default
    for record in sorted(history, key=lambda r: r.date):
        if record.date <= when:
            applicable = record.price
        else:
            break
    return applicable


def apply_stock_count(
    inventory_items: Iterable[InventoryCatalogEntry],
    counts: Mapping[str, float],
    when: Optional[datetime] = None
) -> Dict[str, float]:
    """
    Apply a manual stock count.

    Args:
        inventory_items: Catalog entries
        counts: New counted quantity by item id
        when: Timestamp of the count

    Returns:
        Difference (counted - previous) by item id for items updated

    Notes:
        - Ids not present in the catalog are skipped
        - Every counted item gets a StockCount entry, even with 0 difference
    """
    by_id = {entry.id: entry for entry in inventory_items}
    differences: Dict[str, float] = {}

    for item_id, new_count in counts.items():
        entry = by_id.get(str(item_id))
        if entry is None:
            logger.warning("Stock count for unknown item %s skipped", item_id)
            continue
        diff = float(new_count) - entry.quantity
        record_stock_change(entry, diff, "StockCount", when, batch_reference="Manual Count")
        entry.quantity = float(new_count)
        differences[entry.id] = diff

    return differences


def sell_product(
    entry: InventoryCatalogEntry,
    quantity: float,
    when: Optional[datetime] = None
) -> StockHistoryEntry:
    """
    Remove sold units of a final product from stock.

    Raises:
        ValueError: quantity <= 0, item is not a FinalProduct, or
                    insufficient quantity available
    """
    if quantity is None or quantity <= 0:
        raise ValueError("Quantity must be greater than 0")
    if entry.category != "FinalProduct":
        raise ValueError(f"Only final products can be sold: {entry.id} is {entry.category}")
    if entry.quantity < quantity:
        raise ValueError(
            f"Insufficient quantity available for {entry.id}: "
            f"{entry.quantity} < {quantity}"
        )
    return record_stock_change(entry, -quantity, "Sold", when)


def snapshot_quantities(
    inventory_items: Iterable[InventoryCatalogEntry],
    target_date: datetime
) -> List[SnapshotRow]:
    """
    Roll stock back to a past date using stock history.

    Args:
        inventory_items: Catalog entries with current quantity and history
        target_date: Date to roll back to

    Returns:
        One SnapshotRow per item

    Logic:
        - Items created after target_date report 0
        - Otherwise subtract every change dated after target_date
    """
    rows = []
    for entry in inventory_items:
        if entry.created_at is not None and entry.created_at > target_date:
            qty = 0.0
        else:
            changes_after = sum(
                record.change for record in entry.stock_history
                if record.date is not None and record.date > target_date
            )
            qty = entry.quantity - changes_after

        rows.append(SnapshotRow(
            item_id=entry.id,
            item_name=entry.item_name,
            category=entry.category,
            cost_price=entry.cost_price or 0.0,
            snapshot_qty=qty,
        ))
    return rows


# =============================================================================
# END OF HISTORY MODULE
# =============================================================================
