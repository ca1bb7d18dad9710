# =============================================================================
# INVENTORY COSTING ENGINE - VALIDATION REPORT GENERATOR
# =============================================================================
# Runs consistency checks over a catalog snapshot and formats the results.
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .bom_grams import summarize_bom_grams
from .catalog import InventoryCatalogEntry, validate_catalog
from .partial_cost import compute_bom_cost, rollup_costs, validate_bom_cost_output
from .settings import get_gram_source, get_unit_aliases, validate_settings
from .units import build_unit_scales


@dataclass
class CheckResult:
    """Result of a single check."""
    name: str
    passed: bool
    message: str = ""


@dataclass
class ValidationReport:
    """Complete validation report."""
    timestamp: str = ""
    profile: str = ""

    checks: Dict[str, List[CheckResult]] = field(default_factory=dict)

    # Summary
    total_passed: int = 0
    total_failed: int = 0
    overall_passed: bool = False


def _errors_to_checks(name: str, errors: List[str]) -> List[CheckResult]:
    if not errors:
        return [CheckResult(name, True)]
    return [CheckResult(name, False, error) for error in errors]


def validate_cost_engine(
    entries: List[InventoryCatalogEntry],
    scales: Optional[Dict[str, float]] = None
) -> List[CheckResult]:
    """Cost every product BOM and check totals and misses."""
    results = []
    for entry in entries:
        if not entry.components:
            continue
        output = compute_bom_cost(entry.components, entries, scales)
        errors = validate_bom_cost_output(output)
        results.extend(_errors_to_checks(f"bom_cost[{entry.id}]", errors))

    rollup = rollup_costs(entries)
    results.extend(_errors_to_checks("rollup_acyclic", rollup.errors))
    return results


def validate_gram_engine(
    entries: List[InventoryCatalogEntry],
    gram_source: str
) -> List[CheckResult]:
    """Weigh every product BOM and check totals and misses."""
    results = []
    for entry in entries:
        if not entry.components:
            continue
        output = summarize_bom_grams(entry.components, entries, gram_source)
        errors = []
        if output.total_grams < 0:
            errors.append(f"Negative BOM weight for {entry.id}: {output.total_grams}")
        for component_id in output.missing_components:
            errors.append(f"Component {component_id} of {entry.id} not found (weighed at 0)")
        results.extend(_errors_to_checks(f"bom_grams[{entry.id}]", errors))
    return results


def generate_validation_report(
    entries: List[InventoryCatalogEntry],
    settings: Dict,
    profile: str = "base"
) -> ValidationReport:
    """
    Generate validation report for a catalog snapshot.

    Args:
        entries: Catalog entries
        settings: Loaded settings
        profile: Settings profile name (for display)

    Returns:
        ValidationReport with all check results
    """
    report = ValidationReport(
        timestamp=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        profile=profile
    )

    settings_errors = validate_settings(settings)
    report.checks["Settings"] = _errors_to_checks("settings_valid", settings_errors)
    report.checks["Catalog"] = _errors_to_checks("catalog_valid", validate_catalog(entries))

    scales = build_unit_scales(get_unit_aliases(settings))
    report.checks["Cost Aggregator"] = validate_cost_engine(entries, scales)

    if not settings_errors:
        report.checks["Gram Aggregator"] = validate_gram_engine(entries, get_gram_source(settings))

    all_checks = [c for checks in report.checks.values() for c in checks]
    report.total_passed = sum(1 for c in all_checks if c.passed)
    report.total_failed = sum(1 for c in all_checks if not c.passed)
    report.overall_passed = report.total_failed == 0

    return report


def format_report(report: ValidationReport) -> str:
    """Format validation report as text."""
    lines = [
        "=" * 60,
        "VALIDATION REPORT",
        "=" * 60,
        f"Date: {report.timestamp}",
        f"Profile: {report.profile}",
        "",
        "CHECKS",
        "-" * 40
    ]

    for group, checks in report.checks.items():
        passed = sum(1 for c in checks if c.passed)
        total = len(checks)
        status = "PASSED" if passed == total else "FAILED"
        lines.append(f"{group}: {passed}/{total} {status}")
        for check in checks:
            if not check.passed:
                lines.append(f"  - {check.name}: {check.message}")

    lines.extend([
        "",
        "=" * 60,
        f"OVERALL: {'PASSED' if report.overall_passed else 'FAILED'}",
        f"Total: {report.total_passed} passed, {report.total_failed} failed",
        "=" * 60
    ])

    return "\n".join(lines)


# =============================================================================
# END OF VALIDATION REPORT GENERATOR
# =============================================================================
