# =============================================================================
# INVENTORY COSTING ENGINE - INTEGRATION TESTS
# =============================================================================
# Tests for the shipped data files and the command-line entry point.
# =============================================================================

import logging
import shutil
import sys

import pytest

import main
from costing.catalog import index_catalog, load_catalog
from costing.history import sell_product
from costing.partial_cost import apply_rollup, compute_bom_cost, rollup_costs
from costing.production import finalize_tasks, task_from_record
from costing.settings import load_settings, load_yaml_file
from costing.validation_report import generate_validation_report


@pytest.fixture(autouse=True)
def restore_root_logger():
    """main() reconfigures logging; put the root logger back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def shipped_catalog(data_dir):
    return load_catalog(load_yaml_file(data_dir / "catalog.yaml"))


class TestShippedData:
    """Tests for the sample catalog and settings."""

    def test_sample_catalog_validates(self, data_dir, shipped_catalog):
        settings = load_settings("base", data_dir)
        report = generate_validation_report(shipped_catalog, settings)
        assert report.overall_passed

    def test_sample_dough_cost(self, shipped_catalog):
        """550g flour, 200g sugar, 200g butter, 45ml milk, 5ml vanilla"""
        dough = index_catalog(shipped_catalog)["sf-dough"]
        output = compute_bom_cost(dough.components, shipped_catalog)
        expected = 0.55 * 1.2 + 0.2 * 0.9 + 0.2 * 7.5 + 0.045 * 1.1 + 5 * 0.08
        assert output.total_cost == pytest.approx(expected)


class TestProductLifecycle:
    """Roll-up, production and sale on one catalog."""

    def test_rollup_produce_sell(self, catalog, by_id, cake_task):
        apply_rollup(catalog, rollup_costs(catalog))
        assert by_id["cake"].cost_price == pytest.approx(0.685)

        finalize_tasks([cake_task], catalog)
        assert by_id["cake"].quantity == 15

        sell_product(by_id["cake"], 15)
        assert by_id["cake"].quantity == 0
        assert [r.type for r in by_id["cake"].stock_history] == ["Produced", "Sold"]

    def test_defected_units_consume_materials(self, catalog, by_id):
        task = task_from_record({
            "_id": "t9", "product": "cake", "producedQuantity": 0, "defectedQuantity": 4,
        })
        finalize_tasks([task], catalog)
        assert by_id["egg"].quantity == pytest.approx(22)
        assert by_id["cake"].quantity == 5


class TestCommandLine:
    """Tests for main.py commands."""

    def test_validate_command(self, data_dir, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["main.py", "--dir", str(data_dir),
                                          "--catalog", str(data_dir / "catalog.yaml"),
                                          "validate"])
        main.main()
        assert "OVERALL: PASSED" in capsys.readouterr().out

    def test_cost_command(self, data_dir, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["main.py", "--dir", str(data_dir),
                                          "--catalog", str(data_dir / "catalog.yaml"),
                                          "cost", "--product", "fp-cookie-box"])
        main.main()
        out = capsys.readouterr().out
        assert "COST BREAKDOWN: Butter Cookies 250g" in out
        assert "pk-box" in out

    def test_unknown_product_exits(self, data_dir, shipped_catalog):
        with pytest.raises(SystemExit):
            main.run_grams(shipped_catalog, load_settings("base", data_dir), "ghost")

    def test_rollup_write(self, data_dir, tmp_path, monkeypatch, capsys):
        catalog_path = tmp_path / "catalog.yaml"
        shutil.copy(data_dir / "catalog.yaml", catalog_path)
        monkeypatch.setattr(sys, "argv", ["main.py", "--dir", str(data_dir),
                                          "--catalog", str(catalog_path),
                                          "rollup", "--write"])
        main.main()
        assert "Updated 2 product(s)" in capsys.readouterr().out

        reloaded = index_catalog(load_catalog(load_yaml_file(catalog_path)))
        dough_price = 1.2 * 0.55 + 0.9 * 0.2 + 7.5 * 0.2 + 1.1 * 0.045 + 0.08 * 0.005
        assert reloaded["sf-dough"].cost_price == pytest.approx(dough_price)
        cookie_price = (dough_price * 0.909 + 0.35 * 0.091) * 0.275
        assert reloaded["fp-cookie-box"].cost_price == pytest.approx(cookie_price)
        assert len(reloaded["fp-cookie-box"].cost_price_history) == 1

    def test_export_cost_sheet(self, data_dir, tmp_path, monkeypatch):
        output = tmp_path / "costs.xlsx"
        monkeypatch.setattr(sys, "argv", ["main.py", "--dir", str(data_dir),
                                          "--catalog", str(data_dir / "catalog.yaml"),
                                          "export-cost-sheet", "--output", str(output)])
        main.main()
        assert output.exists()

    def test_import_workbook(self, catalog, tmp_path, monkeypatch, data_dir):
        from costing.workbook import write_inventory_workbook

        xlsx = tmp_path / "inventory.xlsx"
        output = tmp_path / "catalog.yaml"
        write_inventory_workbook(xlsx, catalog)
        monkeypatch.setattr(sys, "argv", ["main.py", "--dir", str(data_dir),
                                          "import-workbook", "--xlsx", str(xlsx),
                                          "--output", str(output)])
        main.main()
        reloaded = load_catalog(load_yaml_file(output))
        assert [e.id for e in reloaded] == [e.id for e in catalog]

    def test_bad_settings_are_reported_not_raised(self, data_dir, tmp_path, monkeypatch, capsys):
        """An invalid log level or empty section is reported and the command still runs."""
        settings_dir = tmp_path / "settings"
        settings_dir.mkdir()
        (settings_dir / "base.yaml").write_text("logging:\n  level: chatty\nunits:\n", encoding="utf-8")
        monkeypatch.setattr(sys, "argv", ["main.py", "--dir", str(settings_dir),
                                          "--catalog", str(data_dir / "catalog.yaml"),
                                          "validate"])
        main.main()
        out = capsys.readouterr().out
        assert "logging.level invalid" in out
        assert "units must be a mapping" in out
        assert logging.getLogger().level == logging.INFO
