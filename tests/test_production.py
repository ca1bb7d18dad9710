# =============================================================================
# INVENTORY COSTING ENGINE - PRODUCTION TESTS
# =============================================================================
# Unit tests for production task finalization.
# =============================================================================

from datetime import datetime

import pytest

from costing.production import (
    ProductionTask,
    finalize_tasks,
    load_tasks,
    plan_finalization,
)
from costing.catalog import ComponentLine

WHEN = datetime(2026, 3, 2, 18, 0)


class TestTaskRecords:
    """Tests for task loading."""

    def test_task_from_record(self, cake_task):
        assert cake_task.product_id == "cake"
        assert cake_task.total_units == 12
        assert cake_task.batch_reference == "ProdTask-t1"
        assert cake_task.production_date == datetime(2026, 3, 2, 10, 0)

    def test_load_tasks(self):
        tasks = load_tasks({"tasks": [
            {"_id": "a", "taskType": "Cleaning"},
            {"id": "b", "product_id": "cake", "bom_data": [{"componentId": "egg", "grams": 3}]},
        ]})
        assert [t.id for t in tasks] == ["a", "b"]
        assert tasks[0].product_id is None
        assert tasks[1].bom_data == [ComponentLine("egg", 3.0)]


class TestPlanFinalization:
    """Tests for plan_finalization."""

    def test_cake_movements(self, cake_task, catalog):
        """Usage = per-unit usage * (10 produced + 2 defected), kg items in kg."""
        plan = plan_finalization(cake_task, catalog)
        assert plan.complete
        assert plan.warnings == []
        moves = [(m.item_id, m.change, m.change_type) for m in plan.movements]
        assert moves == [
            ("dough", pytest.approx(-4.8), "Used"),
            ("egg", pytest.approx(-24), "Used"),
            ("box", pytest.approx(-12), "Used"),
            ("cake", 10, "Produced"),
        ]

    def test_liters_converted(self, catalog):
        task = ProductionTask("t2", product_id="dough", produced_quantity=1)
        plan = plan_finalization(task, catalog)
        changes = {m.item_id: m.change for m in plan.movements}
        assert changes["flour"] == pytest.approx(-0.6)
        assert changes["sugar"] == pytest.approx(-0.3)
        assert changes["milk"] == pytest.approx(-0.1)

    def test_task_bom_overrides_product(self, cake_task, catalog):
        cake_task.bom_data = [ComponentLine("egg", 1), ComponentLine("flour", 0)]
        plan = plan_finalization(cake_task, catalog)
        assert [m.item_id for m in plan.movements] == ["egg", "cake"]
        assert plan.movements[0].change == -12

    def test_non_production_task_completes(self, catalog):
        task = ProductionTask("t3", task_type="Cleaning", produced_quantity=5)
        plan = plan_finalization(task, catalog)
        assert plan.complete
        assert plan.movements == []

    def test_zero_units_completes(self, catalog):
        plan = plan_finalization(ProductionTask("t4", product_id="cake"), catalog)
        assert plan.complete
        assert plan.movements == []

    def test_missing_product_stays_open(self, catalog):
        task = ProductionTask("t5", product_id="ghost", produced_quantity=1)
        plan = plan_finalization(task, catalog)
        assert not plan.complete
        assert "not found" in plan.warnings[0]

    def test_missing_batch_weight_stays_open(self, by_id, catalog):
        by_id["cake"].standard_batch_weight = 0
        task = ProductionTask("t6", product_id="cake", produced_quantity=1)
        plan = plan_finalization(task, catalog)
        assert not plan.complete
        assert "batch weight" in plan.warnings[0]

    def test_unknown_material_skipped(self, cake_task, catalog):
        cake_task.bom_data = [ComponentLine("ghost", 5), ComponentLine("egg", 1)]
        plan = plan_finalization(cake_task, catalog)
        assert plan.complete
        assert [m.item_id for m in plan.movements] == ["egg", "cake"]
        assert any("ghost" in w for w in plan.warnings)


class TestFinalizeTasks:
    """Tests for finalize_tasks."""

    def test_stock_updated(self, cake_task, by_id, catalog):
        plans = finalize_tasks([cake_task], catalog, WHEN)
        assert len(plans) == 1
        assert cake_task.status == "Completed"
        assert by_id["dough"].quantity == pytest.approx(5.2)
        assert by_id["egg"].quantity == pytest.approx(6)
        assert by_id["box"].quantity == pytest.approx(88)
        assert by_id["cake"].quantity == 15

        last = by_id["cake"].stock_history[-1]
        assert last.type == "Produced"
        assert last.batch_reference == "ProdTask-t1"
        assert last.date == WHEN

    def test_completed_task_skipped(self, cake_task, by_id, catalog):
        cake_task.status = "Completed"
        assert finalize_tasks([cake_task], catalog, WHEN) == []
        assert by_id["cake"].quantity == 5

    def test_open_task_not_completed(self, catalog):
        task = ProductionTask("t7", product_id="ghost", produced_quantity=1)
        finalize_tasks([task], catalog, WHEN)
        assert task.status == "Pending"
