"""Regression tests for performance budget classification and aggregation."""

from __future__ import annotations

import math

from preview_audit.budgets import (
    BudgetDocument,
    MetricBudget,
    budget_check_value,
    budget_evaluate,
    budget_report_passed,
    budget_should_fail_build,
)


def _build_document(fail_on_exceeded: bool = True) -> BudgetDocument:
    return BudgetDocument.model_validate(
        {
            "metadata": {"version": "1.2.0"},
            "budgets": {
                "lighthouse": {"performance": {"min": 85, "target": 95}},
                "coreWebVitals": {"lcp": {"max": 2500, "target": 2000, "unit": "ms"}},
                "resources": {"totalBundle": {"max": 512000, "target": 400000, "unit": "bytes"}},
            },
            "environments": {
                "production": {"multiplier": 1.0},
                "development": {"multiplier": 1.5},
            },
            "rules": {"failOn": {"budgetExceeded": fail_on_exceeded}},
        }
    )


def test_budgets_maximum_bounded_metric_classification() -> None:
    """Classify 150/250/350 against max=300, target=200 as excellent/good/fail.

    Returns:
        None: Assertions validate maximum-bounded comparator.

    Raises:
        AssertionError: Raised when classification drifts.
    """

    budget = MetricBudget(max=300, target=200, unit="KB")

    assert budget_check_value(150, budget, is_minimum=False).status == "excellent"
    good_result = budget_check_value(250, budget, is_minimum=False)
    assert good_result.status == "good"
    assert good_result.message == "⚠️ 250KB (max: 300KB)"
    failed_result = budget_check_value(350, budget, is_minimum=False)
    assert failed_result.status == "fail"
    assert failed_result.message == "❌ 350KB > 300KB (budget exceeded)"


def test_budgets_minimum_bounded_metric_classification() -> None:
    """Treat higher scores as better for minimum-bounded metrics."""

    budget = MetricBudget(min=85, target=95)

    assert budget_check_value(97, budget, is_minimum=True).status == "excellent"
    assert budget_check_value(90, budget, is_minimum=True).status == "good"
    assert budget_check_value(80, budget, is_minimum=True).message == "❌ 80 < 85 (minimum required)"


def test_budgets_missing_target_and_max_fall_back_to_threshold() -> None:
    """Fall back to the threshold for a missing target and treat a missing max as unbounded."""

    result = budget_check_value(10_000, MetricBudget(unit="ms"), is_minimum=False)

    assert result.status == "excellent"
    assert result.threshold is not None and math.isinf(result.threshold)
    assert budget_check_value(70, MetricBudget(min=80), is_minimum=True).status == "fail"


def test_budgets_non_numeric_value_is_unknown_and_counted_in_total_only() -> None:
    """Report non-numeric observations as unknown without passing or failing them."""

    report = budget_evaluate(
        _build_document(),
        {"lighthouse": {"performance": "n/a"}},
        environment="production",
        timestamp="2026-01-01T00:00:00+00:00",
    )

    assert report.results["lighthouse"]["performance"].status == "unknown"
    assert report.summary.total == 1
    assert (report.summary.passed, report.summary.warnings, report.summary.failed) == (0, 0, 0)


def test_budgets_evaluate_aggregates_counts_across_categories() -> None:
    """Aggregate pass, warning and failure counts across categories."""

    report = budget_evaluate(
        _build_document(),
        {
            "lighthouse": {"performance": 92},
            "coreWebVitals": {"lcp": 2700},
            "resources": {"totalBundle": 300000},
        },
        environment="production",
    )

    assert report.results["lighthouse"]["performance"].status == "good"
    assert report.results["coreWebVitals"]["lcp"].status == "fail"
    assert report.results["resources"]["totalBundle"].status == "excellent"
    assert (report.summary.total, report.summary.passed, report.summary.warnings, report.summary.failed) == (3, 1, 1, 1)
    assert budget_report_passed(report) is False
    assert budget_should_fail_build(_build_document(), report) is True
    assert budget_should_fail_build(_build_document(fail_on_exceeded=False), report) is False


def test_budgets_environment_multiplier_scales_thresholds() -> None:
    """Scale maxima up with ceil and minima down with floor for relaxed environments."""

    report = budget_evaluate(
        _build_document(),
        {"lighthouse": {"performance": 128}, "coreWebVitals": {"lcp": 3200}},
        environment="development",
    )

    lcp_result = report.results["coreWebVitals"]["lcp"]
    performance_result = report.results["lighthouse"]["performance"]
    assert report.multiplier == 1.5
    assert lcp_result.threshold == 3750
    assert lcp_result.status == "good"
    assert performance_result.threshold == 127
    assert performance_result.target == 142
    assert performance_result.status == "good"


def test_budgets_unknown_environment_falls_back_to_production() -> None:
    """Use the production multiplier for an undeclared environment."""

    report = budget_evaluate(_build_document(), {"coreWebVitals": {"lcp": 2400}}, environment="staging")

    assert report.multiplier == 1.0
    assert report.environment == "staging"
    assert report.results["coreWebVitals"]["lcp"].status == "good"


def test_budgets_fractional_budgets_scale_without_rounding() -> None:
    """Keep fractional layout-shift limits precise instead of widening them to 1."""

    document = BudgetDocument.model_validate(
        {
            "budgets": {"coreWebVitals": {"cls": {"max": 0.1, "target": 0.05}}},
            "environments": {"production": {"multiplier": 1.0}, "development": {"multiplier": 1.5}},
        }
    )

    production_result = budget_evaluate(document, {"coreWebVitals": {"cls": 0.5}}).results["coreWebVitals"]["cls"]
    development_result = budget_evaluate(
        document,
        {"coreWebVitals": {"cls": 0.12}},
        environment="development",
    ).results["coreWebVitals"]["cls"]

    assert production_result.status == "fail"
    assert production_result.message == "❌ 0.5 > 0.1 (budget exceeded)"
    assert development_result.threshold == 0.15
    assert development_result.target == 0.075
    assert development_result.status == "good"
