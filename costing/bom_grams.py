# =============================================================================
# INVENTORY COSTING ENGINE - BOM GRAM AGGREGATOR
# =============================================================================
# Physical weight (grams) of a product's BOM, used for yield calculations.
#
# FORMULA:
# Total_grams = SUM_i(Grams[i]) over resolved, non-Packaging components
#
# Packaging contributes cost but not product weight.
#
# GRAM SOURCE:
# Two historical variants exist; the one in use is selected by name:
# - "component": the BOM line's own grams (default)
# - "catalog":   the resolved catalog entry's grams
# =============================================================================

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List

from .catalog import PACKAGING, CatalogLike, as_component_line, find_entry, index_catalog

logger = logging.getLogger(__name__)


GRAM_SOURCE_COMPONENT = "component"
GRAM_SOURCE_CATALOG = "catalog"
GRAM_SOURCES = (GRAM_SOURCE_COMPONENT, GRAM_SOURCE_CATALOG)


@dataclass
class GramsOutput:
    """BOM weight total with diagnostics."""
    total_grams: float = 0.0
    gram_source: str = GRAM_SOURCE_COMPONENT

    # Diagnostics (do not affect total_grams)
    excluded_packaging: List[str] = field(default_factory=list)
    missing_components: List[str] = field(default_factory=list)


def summarize_bom_grams(
    components: Iterable[Any],
    inventory_items: CatalogLike,
    gram_source: str = GRAM_SOURCE_COMPONENT
) -> GramsOutput:
    """
    Sum BOM weight and report which lines were left out.

    Args:
        components: ComponentLine objects or component records
        inventory_items: Catalog entries/records or an indexed catalog
        gram_source: "component" or "catalog"

    Returns:
        GramsOutput

    Raises:
        ValueError: unknown gram_source
    """
    if gram_source not in GRAM_SOURCES:
        raise ValueError(f"Unknown gram_source '{gram_source}', expected one of {GRAM_SOURCES}")

    output = GramsOutput(gram_source=gram_source)
    catalog = index_catalog(inventory_items)

    for component in components or []:
        line = as_component_line(component)
        entry = find_entry(catalog, line.component_id)

        if entry is None:
            logger.debug("Component %s not in catalog; weighed at 0", line.component_id)
            output.missing_components.append(line.component_id)
            continue

        if entry.category == PACKAGING:
            output.excluded_packaging.append(entry.id)
            continue

        if gram_source == GRAM_SOURCE_CATALOG:
            output.total_grams += entry.grams
        else:
            output.total_grams += line.grams

    return output


def get_total_bom_grams(
    components: Iterable[Any],
    inventory_items: CatalogLike,
    gram_source: str = GRAM_SOURCE_COMPONENT
) -> float:
    """
    Total grams contributed by all non-packaging components.

    Args:
        components: ComponentLine objects or component records
        inventory_items: Catalog entries/records or an indexed catalog
        gram_source: "component" or "catalog"

    Returns:
        Total grams (0 for empty inputs)
    """
    return summarize_bom_grams(components, inventory_items, gram_source).total_grams


# =============================================================================
# END OF BOM GRAM AGGREGATOR
# =============================================================================
