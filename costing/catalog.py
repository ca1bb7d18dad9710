# =============================================================================
# INVENTORY COSTING ENGINE - CATALOG MODULE
# =============================================================================
# Inventory catalog data structures and loading.
#
# Records arrive as plain dicts (camelCase keys as stored by the document
# database, or snake_case keys from YAML/workbook sources) and are converted
# into dataclasses. Engines only ever receive catalog snapshots as arguments.
#
# KEY RULE: a lookup miss is an explicit None, never an exception. Callers
# decide how to default it (cost and gram engines default to zero).
# =============================================================================

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .units import RECOGNIZED_UNITS, normalize_unit


CATEGORIES = (
    "ProductionRawMaterial",
    "CoffeeshopRawMaterial",
    "CleaningMaterial",
    "Packaging",
    "DisposableEquipment",
    "FinalProduct",
    "SemiFinalProduct",
)

PACKAGING = "Packaging"
PRODUCT_CATEGORIES = ("FinalProduct", "SemiFinalProduct")

STOCK_CHANGE_TYPES = (
    "Added", "Used", "Spilled", "Produced", "Other", "StockCount", "Sold"
)


@dataclass
class RawMaterialRef:
    """Cost basis of a raw material at calculation time."""
    unit: Optional[str] = None
    cost_price: float = 0.0


@dataclass
class ComponentLine:
    """Single ingredient/material line of a BOM."""
    component_id: str
    grams: float = 0.0  # usage per unit in base units (g, ml or count)
    percentage: float = 0.0
    partial_cost: float = 0.0

    @property
    def used_amount(self) -> float:
        return self.grams


@dataclass
class StockHistoryEntry:
    date: datetime
    change: float
    type: str
    batch_reference: Optional[str] = None
    reference_document: Optional[str] = None


@dataclass
class PriceHistoryEntry:
    price: float
    date: datetime


@dataclass
class InventoryCatalogEntry:
    """Inventory item as seen by the costing engines."""
    id: str
    category: str = ""
    grams: float = 0.0
    unit: str = ""
    cost_price: float = 0.0
    sku: str = ""
    item_name: str = ""
    quantity: float = 0.0
    min_quantity: float = 0.0
    client_price: Optional[float] = None
    business_price: Optional[float] = None
    standard_batch_weight: float = 0.0
    components: List[ComponentLine] = field(default_factory=list)
    stock_history: List[StockHistoryEntry] = field(default_factory=list)
    cost_price_history: List[PriceHistoryEntry] = field(default_factory=list)
    client_price_history: List[PriceHistoryEntry] = field(default_factory=list)
    business_price_history: List[PriceHistoryEntry] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def raw_material(self) -> RawMaterialRef:
        """Snapshot of this item's cost basis."""
        return RawMaterialRef(unit=self.unit or None, cost_price=self.cost_price)

    @property
    def is_product(self) -> bool:
        return self.category in PRODUCT_CATEGORIES


CatalogLike = Union[Mapping[str, Any], Iterable[Any]]


# -----------------------------------------------------------------------------
# Record conversion
# -----------------------------------------------------------------------------

def _first(record: Mapping, keys: Iterable[str], default: Any = None) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return default


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    # History comparisons use naive UTC timestamps throughout.
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def as_raw_material(value: Any) -> RawMaterialRef:
    """
    Coerce a catalog entry, RawMaterialRef or plain record into a RawMaterialRef.

    Price keys are read in order: currentCostPrice, costPrice, cost_price.
    A missing price defaults to 0.
    """
    if isinstance(value, RawMaterialRef):
        return value
    if isinstance(value, InventoryCatalogEntry):
        return value.raw_material()
    if value is None:
        return RawMaterialRef()
    unit = value.get("unit")
    price = _first(value, ("currentCostPrice", "costPrice", "cost_price"), 0.0)
    return RawMaterialRef(unit=unit or None, cost_price=to_float(price))


def as_component_line(value: Any) -> ComponentLine:
    """Coerce a BOM line record into a ComponentLine."""
    if isinstance(value, ComponentLine):
        return value
    component_id = _first(value, ("componentId", "component_id", "rawMaterial"), "")
    grams = _first(
        value, ("grams", "usedAmount", "used_amount", "quantityUsed", "quantity_used"), 0.0
    )
    return ComponentLine(
        component_id=str(component_id),
        grams=to_float(grams),
        percentage=to_float(value.get("percentage")),
        partial_cost=to_float(_first(value, ("partialCost", "partial_cost"), 0.0)),
    )


def _stock_entry_from_record(record: Mapping) -> StockHistoryEntry:
    return StockHistoryEntry(
        date=to_datetime(record.get("date")),
        change=to_float(record.get("change")),
        type=str(record.get("type", "Other")),
        batch_reference=_first(record, ("batchReference", "batch_reference")),
        reference_document=_first(record, ("referenceDocument", "reference_document")),
    )


def _price_entries_from_records(records: Optional[Iterable[Mapping]]) -> List[PriceHistoryEntry]:
    return [
        PriceHistoryEntry(price=to_float(r.get("price")), date=to_datetime(r.get("date")))
        for r in records or []
    ]


def as_catalog_entry(value: Any) -> InventoryCatalogEntry:
    """Coerce an inventory record into an InventoryCatalogEntry."""
    if isinstance(value, InventoryCatalogEntry):
        return value

    def pick(*keys, default=None):
        return _first(value, keys, default)

    return InventoryCatalogEntry(
        id=str(pick("_id", "id", default="")),
        category=str(pick("category", default="")),
        grams=to_float(pick("grams", "weight")),
        unit=str(pick("unit", default="") or ""),
        cost_price=to_float(pick("currentCostPrice", "costPrice", "cost_price")),
        sku=str(pick("sku", default="")),
        item_name=str(pick("itemName", "item_name", default="")),
        quantity=to_float(pick("quantity")),
        min_quantity=to_float(pick("minQuantity", "min_quantity")),
        client_price=to_float(pick("currentClientPrice", "client_price"), None),
        business_price=to_float(pick("currentBusinessPrice", "business_price"), None),
        standard_batch_weight=to_float(pick("standardBatchWeight", "standard_batch_weight")),
        components=[as_component_line(c) for c in pick("components", default=[])],
        stock_history=[
            _stock_entry_from_record(r)
            for r in pick("stockHistory", "stock_history", default=[])
        ],
        cost_price_history=_price_entries_from_records(
            pick("costPriceHistory", "cost_price_history")
        ),
        client_price_history=_price_entries_from_records(
            pick("clientPriceHistory", "client_price_history")
        ),
        business_price_history=_price_entries_from_records(
            pick("businessPriceHistory", "business_price_history")
        ),
        created_at=to_datetime(pick("createdAt", "created_at")),
    )


def load_catalog(data: Dict) -> List[InventoryCatalogEntry]:
    """
    Load inventory entries from a data dictionary.

    Args:
        data: Dictionary with an 'inventory' list of records

    Returns:
        List of InventoryCatalogEntry in source order

    Expected structure:
        inventory:
          - _id: str
            itemName: str
            category: str
            unit: str
            currentCostPrice: float
            components:
              - componentId: str
                grams: float
                percentage: float
    """
    return [as_catalog_entry(record) for record in data.get("inventory", [])]


def entry_to_record(entry: InventoryCatalogEntry) -> Dict:
    """Convert an entry back to a camelCase record (inverse of as_catalog_entry)."""
    record = {
        "_id": entry.id,
        "sku": entry.sku,
        "itemName": entry.item_name,
        "category": entry.category,
        "unit": entry.unit,
        "quantity": entry.quantity,
        "minQuantity": entry.min_quantity,
        "currentCostPrice": entry.cost_price,
        "grams": entry.grams,
        "standardBatchWeight": entry.standard_batch_weight,
        "components": [
            {
                "componentId": line.component_id,
                "grams": line.grams,
                "percentage": line.percentage,
                "partialCost": line.partial_cost,
            }
            for line in entry.components
        ],
        "stockHistory": [
            {
                "date": r.date,
                "change": r.change,
                "type": r.type,
                "batchReference": r.batch_reference,
                "referenceDocument": r.reference_document,
            }
            for r in entry.stock_history
        ],
        "costPriceHistory": [{"price": r.price, "date": r.date} for r in entry.cost_price_history],
        "clientPriceHistory": [{"price": r.price, "date": r.date} for r in entry.client_price_history],
        "businessPriceHistory": [{"price": r.price, "date": r.date} for r in entry.business_price_history],
    }
    if entry.client_price is not None:
        record["currentClientPrice"] = entry.client_price
    if entry.business_price is not None:
        record["currentBusinessPrice"] = entry.business_price
    if entry.created_at is not None:
        record["createdAt"] = entry.created_at
    return record


def catalog_to_data(entries: Iterable[InventoryCatalogEntry]) -> Dict:
    return {"inventory": [entry_to_record(entry) for entry in entries]}


# -----------------------------------------------------------------------------
# Lookup
# -----------------------------------------------------------------------------

def index_catalog(items: CatalogLike) -> Dict[str, InventoryCatalogEntry]:
    """
    Index catalog entries by id.

    Accepts a sequence of entries/records or an existing index. When an id
    appears more than once the first occurrence wins.
    """
    values = items.values() if isinstance(items, Mapping) else items
    result: Dict[str, InventoryCatalogEntry] = {}
    for value in values or []:
        entry = as_catalog_entry(value)
        if entry.id not in result:
            result[entry.id] = entry
    return result


def find_entry(
    catalog: Mapping[str, InventoryCatalogEntry],
    component_id: Any
) -> Optional[InventoryCatalogEntry]:
    """Resolve a component id in an indexed catalog (None on miss)."""
    if component_id is None:
        return None
    return catalog.get(str(component_id))


# -----------------------------------------------------------------------------
# Validation and helpers
# -----------------------------------------------------------------------------

def validate_catalog(entries: Iterable[InventoryCatalogEntry]) -> List[str]:
    """
    Validate catalog completeness and constraints.

    Args:
        entries: Catalog entries

    Returns:
        List of validation errors (empty if valid)

    Validations:
        - Ids are unique
        - Category is one of CATEGORIES
        - Cost price >= 0
        - Unit is absent or recognized
        - Every BOM component resolves, and no item is its own component
    """
    errors = []
    entries = [as_catalog_entry(e) for e in entries]
    seen = set()

    for entry in entries:
        if entry.id in seen:
            errors.append(f"Duplicate inventory id: {entry.id}")
        seen.add(entry.id)

        if entry.category not in CATEGORIES:
            errors.append(f"Unknown category for {entry.id}: '{entry.category}'")

        if entry.cost_price < 0:
            errors.append(f"Negative cost price for {entry.id}: {entry.cost_price}")

        unit = normalize_unit(entry.unit)
        if unit and unit not in RECOGNIZED_UNITS:
            errors.append(f"Unrecognized unit for {entry.id}: '{entry.unit}'")

    for entry in entries:
        for line in entry.components:
            if line.component_id == entry.id:
                errors.append(f"Item {entry.id} lists itself as a component")
            elif line.component_id not in seen:
                errors.append(
                    f"Component {line.component_id} of {entry.id} not found in catalog"
                )

    return errors


def next_sku(existing_skus: Iterable[str], prefix: str = "SKU-") -> str:
    """Return the next sequential SKU, e.g. SKU-00042."""
    highest = 0
    for sku in existing_skus:
        if sku and sku.startswith(prefix):
            suffix = sku[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:05d}"


def low_stock_items(
    entries: Iterable[InventoryCatalogEntry],
    limit: int = 25
) -> List[InventoryCatalogEntry]:
    """Items at or below their minimum quantity, lowest stock first."""
    low = [e for e in entries if e.quantity <= e.min_quantity]
    low.sort(key=lambda e: e.quantity)
    return low[:limit]


# =============================================================================
# END OF CATALOG MODULE
# =============================================================================
