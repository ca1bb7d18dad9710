# =============================================================================
# INVENTORY COSTING ENGINE - UNITS MODULE
# =============================================================================
# Unit conversion table shared by the cost and report engines.
#
# Cost prices are stored per catalog unit (per kg, per liter, per piece...)
# while BOM usage is always recorded in base units (grams, ml, count).
#
# FORMULA:
# Partial_cost = (Used_amount / Unit_scale[unit]) * Cost_price
# =============================================================================

from typing import Dict, Optional, Tuple


# Base units (g, ml or count) contained in one priced unit.
# Adding a unit is a data change only.
UNIT_SCALE: Dict[str, float] = {
    "kg": 1000.0,      # usage in grams, price per kg
    "grams": 1.0,      # usage in grams, price per gram
    "pieces": 1.0,     # usage in count, price per piece
    "liters": 1000.0,  # usage in ml, price per liter
    "ml": 1.0,         # usage in ml, price per ml
}

RECOGNIZED_UNITS = tuple(UNIT_SCALE.keys())

# Alternative spellings found in older catalog records. Not applied unless
# passed explicitly (see build_unit_scales / settings units.aliases).
UNIT_ALIASES: Dict[str, str] = {
    "g": "grams",
    "pcs": "pieces",
    "l": "liters",
}

DISPLAY_LABELS: Dict[str, str] = {
    "kg": "kg",
    "grams": "g",
    "pieces": "pcs",
    "liters": "L",
    "ml": "ml",
}


def normalize_unit(
    unit: Optional[str],
    aliases: Optional[Dict[str, str]] = None
) -> str:
    """
    Normalize a unit string for table lookup.

    Args:
        unit: Unit as stored on the catalog record (may be None or "")
        aliases: Optional mapping of alternative spellings to canonical units

    Returns:
        Lower-cased, trimmed unit ("" when absent)
    """
    if unit is None:
        return ""
    normalized = str(unit).strip().lower()
    if aliases and normalized in aliases:
        return str(aliases[normalized]).strip().lower()
    return normalized


def build_unit_scales(aliases: Optional[Dict[str, str]] = None) -> Dict[str, float]:
    """
    Build a scale table extended with alias spellings.

    Aliases pointing at an unknown canonical unit are ignored.
    """
    scales = dict(UNIT_SCALE)
    for alias, canonical in (aliases or {}).items():
        target = normalize_unit(canonical)
        if target in UNIT_SCALE:
            scales[normalize_unit(alias)] = UNIT_SCALE[target]
    return scales


def get_unit_scale(
    unit: Optional[str],
    scales: Optional[Dict[str, float]] = None
) -> Optional[float]:
    """Return the scale for a unit, or None if unrecognized."""
    table = UNIT_SCALE if scales is None else scales
    return table.get(normalize_unit(unit))


def is_recognized_unit(
    unit: Optional[str],
    scales: Optional[Dict[str, float]] = None
) -> bool:
    return get_unit_scale(unit, scales) is not None


def display_usage(
    unit: Optional[str],
    used_amount: float,
    aliases: Optional[Dict[str, str]] = None
) -> Tuple[float, str]:
    """
    Convert a base-unit usage amount into a display amount and label.

    Args:
        unit: Catalog unit of the material
        used_amount: Usage in base units (grams, ml or count)
        aliases: Optional alias mapping

    Returns:
        (display_amount, display_unit)

    Notes:
        - kg materials are shown in kg, liter materials in L
        - Unknown units are shown unchanged with their raw label
    """
    normalized = normalize_unit(unit, aliases)
    if normalized in UNIT_SCALE:
        return used_amount / UNIT_SCALE[normalized], DISPLAY_LABELS[normalized]
    return used_amount, normalized or "unit"


# =============================================================================
# END OF UNITS MODULE
# =============================================================================
