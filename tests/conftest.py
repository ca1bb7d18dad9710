# =============================================================================
# INVENTORY COSTING ENGINE - PYTEST CONFIGURATION
# =============================================================================
# Shared fixtures and configuration for all tests.
# =============================================================================

import pytest
import sys
import os
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


@pytest.fixture
def project_root():
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def data_dir(project_root):
    """Get settings/data directory."""
    return project_root / "data"


@pytest.fixture
def catalog_records():
    """
    Small bakery catalog as stored records.

    Unit costs (usage-based):
        dough = 600g flour + 300g sugar + 100ml milk = 1.2 + 0.3 + 0.15 = 1.65
        cake  = 400g dough + 2 eggs + 1 box = 0.66 + 0.5 + 0.5 = 1.66
    """
    return [
        {
            "_id": "flour", "itemName": "Flour", "category": "ProductionRawMaterial",
            "unit": "kg", "currentCostPrice": 2.0, "grams": 1000,
            "quantity": 40, "minQuantity": 10,
            "createdAt": datetime(2026, 1, 1),
            "stockHistory": [
                {"date": datetime(2026, 1, 5), "change": 50, "type": "Added"},
                {"date": datetime(2026, 2, 10), "change": -10, "type": "Used"},
            ],
        },
        {
            "_id": "sugar", "itemName": "Sugar", "category": "ProductionRawMaterial",
            "unit": "kg", "currentCostPrice": 1.0, "grams": 1000,
            "quantity": 5, "minQuantity": 10,
        },
        {
            "_id": "milk", "itemName": "Milk", "category": "ProductionRawMaterial",
            "unit": "liters", "currentCostPrice": 1.5, "grams": 1030,
            "quantity": 10, "minQuantity": 2,
        },
        {
            "_id": "vanilla", "itemName": "Vanilla", "category": "ProductionRawMaterial",
            "unit": "ml", "currentCostPrice": 0.1, "grams": 1,
            "quantity": 200, "minQuantity": 50,
        },
        {
            "_id": "egg", "itemName": "Egg", "category": "ProductionRawMaterial",
            "unit": "pieces", "currentCostPrice": 0.25, "grams": 60,
            "quantity": 30, "minQuantity": 12,
        },
        {
            "_id": "box", "itemName": "Cake Box", "category": "Packaging",
            "unit": "pieces", "currentCostPrice": 0.5, "grams": 25,
            "quantity": 100, "minQuantity": 20,
        },
        {
            "_id": "dough", "itemName": "Dough", "category": "SemiFinalProduct",
            "unit": "kg", "currentCostPrice": 1.65, "standardBatchWeight": 1000,
            "quantity": 10, "minQuantity": 0,
            "components": [
                {"componentId": "flour", "grams": 600, "percentage": 60},
                {"componentId": "sugar", "grams": 300, "percentage": 30},
                {"componentId": "milk", "grams": 100, "percentage": 10},
            ],
        },
        {
            "_id": "cake", "itemName": "Carrot Cake", "category": "FinalProduct",
            "unit": "pieces", "currentCostPrice": 0, "currentClientPrice": 8.0,
            "standardBatchWeight": 500, "quantity": 5, "minQuantity": 0,
            "components": [
                {"componentId": "dough", "grams": 400, "percentage": 80},
                {"componentId": "egg", "grams": 2, "percentage": 20},
                {"componentId": "box", "grams": 1, "percentage": 0},
            ],
        },
    ]


@pytest.fixture
def catalog(catalog_records):
    """Catalog entries built from catalog_records."""
    from costing.catalog import load_catalog
    return load_catalog({"inventory": catalog_records})


@pytest.fixture
def by_id(catalog):
    """Catalog entries indexed by id."""
    return {entry.id: entry for entry in catalog}


@pytest.fixture
def cake_task():
    """Production task: 10 cakes produced, 2 defected."""
    from costing.production import task_from_record
    return task_from_record({
        "_id": "t1",
        "taskName": "Bake cakes",
        "product": "cake",
        "taskType": "Production",
        "plannedQuantity": 12,
        "producedQuantity": 10,
        "defectedQuantity": 2,
        "status": "InProgress",
        "productionDate": datetime(2026, 3, 2, 10, 0),
    })
