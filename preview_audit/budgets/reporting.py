"""Budget report rendering: console summary, JSON report and PR comment."""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime
from pathlib import Path
from typing import Final

from .enforcer import BudgetCheckResult, BudgetReport, budget_format_number

logger = logging.getLogger(__name__)

BUDGET_REPORT_FILENAME: Final[str] = "performance-budget-report.json"
PR_COMMENT_FILENAME: Final[str] = "pr-budget-comment.md"
_SIZE_UNITS: Final[tuple[str, ...]] = ("B", "KB", "MB", "GB")
_CATEGORY_HEADINGS: Final[dict[str, str]] = {
    "lighthouse": "🔍 Lighthouse Scores",
    "coreWebVitals": "⚡ Core Web Vitals",
    "resources": "📦 Resource Budgets",
}
_BYTES_NUMBER_PATTERN = re.compile(r"(\d+(?:\.\d+)?)(?:bytes)?")


def budget_format_size(size_bytes: float) -> str:
    """Format a byte count as B, KB, MB or GB with up to two decimals.

    Args:
        size_bytes: Byte count.

    Returns:
        str: Human-readable size such as `1.5 KB`.
    """

    if size_bytes <= 0:
        return "0 B"
    exponent = min(int(math.floor(math.log(size_bytes) / math.log(1024))), len(_SIZE_UNITS) - 1)
    scaled = round(size_bytes / (1024**exponent), 2)
    return f"{budget_format_number(float(scaled))} {_SIZE_UNITS[exponent]}"


def budget_display_message(result: BudgetCheckResult) -> str:
    """Return the result message, with byte counts rendered as sizes."""

    if result.unit != "bytes" or result.status == "unknown":
        return result.message
    return _BYTES_NUMBER_PATTERN.sub(lambda match: budget_format_size(float(match.group(1))), result.message)


def budget_print_summary(report: BudgetReport) -> bool:
    """Print per-metric results and the summary to stdout.

    Args:
        report: Evaluated budget report.

    Returns:
        bool: False when any metric failed.
    """

    print(f"🎯 Performance Budget Analysis ({report.environment})")
    print(f"📏 Environment multiplier: {budget_format_number(report.multiplier)}\n")
    for category, heading in _CATEGORY_HEADINGS.items():
        category_results = report.results.get(category) or {}
        if not category_results:
            continue
        print(heading)
        for metric, result in category_results.items():
            metric_label = metric.upper() if category == "coreWebVitals" else metric
            print(f"  {metric_label}: {budget_display_message(result)}")
        print()

    summary = report.summary
    print("📊 Budget Summary")
    print(f"✅ Passed: {summary.passed}")
    print(f"⚠️ Warnings: {summary.warnings}")
    print(f"❌ Failed: {summary.failed}")
    print(f"📝 Total checks: {summary.total}\n")

    if summary.failed > 0:
        print("❌ BUDGET EXCEEDED - Build should fail")
        return False
    if summary.warnings > 0:
        print("⚠️ BUDGET WARNINGS - Consider optimizing")
    else:
        print("✅ ALL BUDGETS PASSED - Excellent performance!")
    return True


def budget_render_pr_comment(report: BudgetReport) -> str:
    """Render the Markdown pull-request comment for a budget report.

    Args:
        report: Evaluated budget report.

    Returns:
        str: Markdown document.
    """

    summary = report.summary
    lines = [
        "## 💰 Performance Budget Report",
        "",
        f"**Environment:** {report.environment}",
        f"**Generated:** {_budget_format_timestamp(report.timestamp)}",
        "",
        "### 📊 Summary",
        "",
        "| Status | Count |",
        "|--------|-------|",
        f"| ✅ Passed | {summary.passed} |",
        f"| ⚠️ Warnings | {summary.warnings} |",
        f"| ❌ Failed | {summary.failed} |",
        f"| **Total** | **{summary.total}** |",
        "",
    ]

    if summary.failed > 0:
        lines.extend(["### ❌ Budget Violations", ""])
        lines.extend(_budget_list_results(report, status="fail"))
        lines.append("")

    if summary.warnings > 0:
        lines.extend(["### ⚠️ Performance Warnings", ""])
        lines.extend(_budget_list_results(report, status="good"))
        lines.append("")

    if summary.failed > 0:
        lines.extend(
            [
                "### 🚫 Result: BUDGET EXCEEDED",
                "",
                "This PR exceeds performance budgets and should not be merged until issues are resolved.",
            ]
        )
    elif summary.warnings > 0:
        lines.extend(
            [
                "### ⚠️ Result: WARNINGS",
                "",
                "This PR has performance warnings. Consider optimizing before merging.",
            ]
        )
    else:
        lines.extend(
            [
                "### ✅ Result: ALL BUDGETS PASSED",
                "",
                "Excellent! This PR meets all performance budgets.",
            ]
        )
    return "\n".join(lines) + "\n"


def budget_write_report(report: BudgetReport, path: str | Path) -> Path | None:
    """Write the JSON budget report; write failures are logged.

    Returns:
        Path | None: Written path, or None when writing failed.
    """

    report_path = Path(path)
    try:
        report_path.write_text(json.dumps(report.budget_to_payload(), indent=2), encoding="utf-8")
    except OSError as error:
        logger.error("Error saving report: %s", error)
        return None
    logger.info("Budget report saved to: %s", report_path)
    return report_path


def budget_write_pr_comment(comment: str, path: str | Path) -> Path:
    """Write the Markdown PR comment.

    Raises:
        OSError: Raised when the file cannot be written.
    """

    comment_path = Path(path)
    comment_path.write_text(comment, encoding="utf-8")
    logger.info("PR comment saved to: %s", comment_path)
    return comment_path


def _budget_list_results(report: BudgetReport, status: str) -> list[str]:
    return [
        f"- **{category}.{metric}**: {result.message}"
        for category, metrics in report.results.items()
        for metric, result in metrics.items()
        if result.status == status
    ]


def _budget_format_timestamp(timestamp: str) -> str:
    try:
        parsed = datetime.fromisoformat(timestamp)
    except ValueError:
        return timestamp
    return parsed.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
