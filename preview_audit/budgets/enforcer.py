"""Performance budget evaluation.

Score-like metrics (Lighthouse categories) are minimum-bounded: higher is
better. Latency and size metrics (Core Web Vitals, resources) are
maximum-bounded: lower is better. Thresholds and targets are scaled by the
environment multiplier before comparison, and violations are reported as
data rather than raised.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Final, Literal, Mapping

from preview_audit.domain import domain_utc_now_iso

from .documents import BudgetDocument, MetricBudget

BudgetStatus = Literal["excellent", "good", "fail", "unknown"]

MINIMUM_BOUNDED_CATEGORIES: Final[tuple[str, ...]] = ("lighthouse",)
MAXIMUM_BOUNDED_CATEGORIES: Final[tuple[str, ...]] = ("coreWebVitals", "resources")
REPORT_CATEGORIES: Final[tuple[str, ...]] = ("lighthouse", "coreWebVitals", "resources", "network")
DEFAULT_ENVIRONMENT: Final[str] = "production"


@dataclass(frozen=True)
class BudgetCheckResult:
    """Classification of one observed metric value.

    Attributes:
        status: `excellent`, `good`, `fail` or `unknown`.
        message: Human-readable verdict.
        value: Observed value.
        threshold: Scaled minimum or maximum; infinite when unbounded.
        target: Scaled target.
        unit: Display unit from the budget.
    """

    status: BudgetStatus
    message: str
    value: Any = None
    threshold: float | None = None
    target: float | None = None
    unit: str | None = None

    def budget_to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"status": self.status, "message": self.message}
        if self.status != "unknown":
            payload.update(
                {
                    "value": self.value,
                    "threshold": None if self.threshold is None or math.isinf(self.threshold) else self.threshold,
                    "target": None if self.target is None or math.isinf(self.target) else self.target,
                }
            )
        return payload


@dataclass(frozen=True)
class BudgetSummary:
    total: int = 0
    passed: int = 0
    warnings: int = 0
    failed: int = 0


@dataclass(frozen=True)
class BudgetReport:
    """Aggregated budget evaluation.

    Attributes:
        environment: Environment profile name used for scaling.
        multiplier: Applied threshold multiplier.
        timestamp: ISO-8601 UTC evaluation time.
        results: Check results keyed by category then metric.
        summary: Status counts.
    """

    environment: str
    multiplier: float
    timestamp: str
    results: dict[str, dict[str, BudgetCheckResult]] = field(default_factory=dict)
    summary: BudgetSummary = field(default_factory=BudgetSummary)

    def budget_to_payload(self) -> dict[str, object]:
        """Return a JSON-ready representation."""

        return {
            "environment": self.environment,
            "multiplier": self.multiplier,
            "timestamp": self.timestamp,
            "results": {
                category: {metric: result.budget_to_payload() for metric, result in metrics.items()}
                for category, metrics in self.results.items()
            },
            "summary": {
                "total": self.summary.total,
                "passed": self.summary.passed,
                "warnings": self.summary.warnings,
                "failed": self.summary.failed,
            },
        }


def budget_format_number(value: float) -> str:
    """Render a number the way it appears in report messages."""

    if isinstance(value, float):
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    return str(value)


def budget_check_value(value: Any, budget: MetricBudget, is_minimum: bool) -> BudgetCheckResult:
    """Classify one observed value against an already scaled budget.

    A zero or missing target falls back to the threshold. A missing maximum is
    unbounded.

    Args:
        value: Observed value.
        budget: Scaled metric budget.
        is_minimum: True for higher-is-better metrics.

    Returns:
        BudgetCheckResult: Classification; non-numeric values are `unknown`.
    """

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return BudgetCheckResult(status="unknown", message="Invalid data", value=value, unit=budget.unit)

    unit = budget.unit or ""
    shown_value = budget_format_number(value)

    if is_minimum:
        threshold = budget.min or 0
        target = budget.target or threshold
        if value >= target:
            status: BudgetStatus = "excellent"
            message = f"✅ {shown_value} (target: {budget_format_number(target)})"
        elif value >= threshold:
            status = "good"
            message = f"⚠️ {shown_value} (min: {budget_format_number(threshold)}, target: {budget_format_number(target)})"
        else:
            status = "fail"
            message = f"❌ {shown_value} < {budget_format_number(threshold)} (minimum required)"
    else:
        threshold = budget.max if budget.max else math.inf
        target = budget.target or threshold
        if value <= target:
            status = "excellent"
            message = f"✅ {shown_value}{unit} (target: {budget_format_number(target)}{unit})"
        elif value <= threshold:
            status = "good"
            message = f"⚠️ {shown_value}{unit} (max: {budget_format_number(threshold)}{unit})"
        else:
            status = "fail"
            message = f"❌ {shown_value}{unit} > {budget_format_number(threshold)}{unit} (budget exceeded)"

    return BudgetCheckResult(
        status=status,
        message=message,
        value=value,
        threshold=threshold,
        target=target,
        unit=budget.unit,
    )


def budget_resolve_multiplier(document: BudgetDocument, environment: str) -> float:
    """Return the environment multiplier, falling back to production then 1.0."""

    profile = document.environments.get(environment) or document.environments.get(DEFAULT_ENVIRONMENT)
    if profile is None or not profile.multiplier:
        return 1.0
    return float(profile.multiplier)


def budget_scale(budget: MetricBudget, multiplier: float, is_minimum: bool) -> MetricBudget:
    """Scale a metric budget by the environment multiplier.

    Whole-number minimum-bounded budgets round down and whole-number
    maximum-bounded budgets round up. Fractional budgets such as CLS keep
    their precision, so a 0.1 limit never widens to 1.
    """

    if is_minimum:
        return budget.model_copy(
            update={
                "min": _budget_scale_bound(budget.min or 0, multiplier, math.floor),
                "target": _budget_scale_bound(budget.target or 0, multiplier, math.floor),
            }
        )
    return budget.model_copy(
        update={
            "max": _budget_scale_bound(budget.max, multiplier, math.ceil) if budget.max else None,
            "target": _budget_scale_bound(budget.target or 0, multiplier, math.ceil),
        }
    )


def _budget_scale_bound(value: float, multiplier: float, rounding: Callable[[float], int]) -> float:
    if float(value).is_integer():
        return rounding(value * multiplier)
    return round(value * multiplier, 10)


def budget_evaluate(
    document: BudgetDocument,
    performance_data: Mapping[str, Mapping[str, Any]],
    environment: str = DEFAULT_ENVIRONMENT,
    timestamp: str | None = None,
) -> BudgetReport:
    """Evaluate observed metrics against the budget document.

    Metrics without an observed value are skipped. `unknown` results count
    towards the total only.

    Args:
        document: Validated budget document.
        performance_data: Observed values keyed by category then metric.
        environment: Environment profile name.
        timestamp: Optional fixed evaluation timestamp.

    Returns:
        BudgetReport: Per-metric results and summary counts.
    """

    multiplier = budget_resolve_multiplier(document, environment)
    category_budgets: dict[str, dict[str, MetricBudget]] = {
        "lighthouse": document.budgets.lighthouse,
        "coreWebVitals": document.budgets.core_web_vitals,
        "resources": document.budgets.resources,
    }
    results: dict[str, dict[str, BudgetCheckResult]] = {category: {} for category in REPORT_CATEGORIES}
    total = passed = warnings = failed = 0

    for category, budgets in category_budgets.items():
        observed = performance_data.get(category)
        if not budgets or not observed:
            continue
        is_minimum = category in MINIMUM_BOUNDED_CATEGORIES
        for metric, budget in budgets.items():
            if metric not in observed:
                continue
            result = budget_check_value(observed[metric], budget_scale(budget, multiplier, is_minimum), is_minimum)
            results[category][metric] = result
            total += 1
            if result.status == "fail":
                failed += 1
            elif result.status == "good":
                warnings += 1
            elif result.status == "excellent":
                passed += 1

    return BudgetReport(
        environment=environment,
        multiplier=multiplier,
        timestamp=timestamp or domain_utc_now_iso(),
        results=results,
        summary=BudgetSummary(total=total, passed=passed, warnings=warnings, failed=failed),
    )


def budget_report_passed(report: BudgetReport) -> bool:
    """Return whether no metric failed its budget."""

    return report.summary.failed == 0


def budget_should_fail_build(document: BudgetDocument, report: BudgetReport) -> bool:
    """Return whether budget violations must fail the build."""

    return not budget_report_passed(report) and document.rules.fail_on.budget_exceeded
