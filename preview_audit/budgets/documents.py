"""Budget document schema and report-file loading."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from preview_audit.adapters import BudgetDocumentError

logger = logging.getLogger(__name__)

BUDGET_DOCUMENT_FILENAME = "performance-budgets.json"
PERFORMANCE_REPORT_MARKER = "performance-report"
BUNDLE_REPORT_MARKER = "bundle-analyzer-report"


class MetricBudget(BaseModel):
    """Threshold, target and display unit for one metric."""

    model_config = ConfigDict(extra="allow")

    min: float | None = None
    max: float | None = None
    target: float | None = None
    unit: str | None = None


class BudgetCategories(BaseModel):
    """Metric budgets grouped by category."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    lighthouse: dict[str, MetricBudget] = Field(default_factory=dict)
    core_web_vitals: dict[str, MetricBudget] = Field(default_factory=dict, alias="coreWebVitals")
    resources: dict[str, MetricBudget] = Field(default_factory=dict)


class EnvironmentProfile(BaseModel):
    model_config = ConfigDict(extra="allow")

    multiplier: float | None = None


class FailOnRules(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    budget_exceeded: bool = Field(default=False, alias="budgetExceeded")


class BudgetRules(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    fail_on: FailOnRules = Field(default_factory=FailOnRules, alias="failOn")


class BudgetMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: str | int | float | None = None


class BudgetDocument(BaseModel):
    """Declarative performance budget document.

    Attributes:
        metadata: Informal version marker.
        budgets: Metric budgets per category.
        environments: Threshold multipliers keyed by environment name.
        rules: Build-failure rules.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    metadata: BudgetMetadata = Field(default_factory=BudgetMetadata)
    budgets: BudgetCategories = Field(default_factory=BudgetCategories)
    environments: dict[str, EnvironmentProfile] = Field(default_factory=dict)
    rules: BudgetRules = Field(default_factory=BudgetRules)


def budget_load_document(path: str | Path) -> BudgetDocument | None:
    """Load and validate a budget document.

    Args:
        path: Document path.

    Returns:
        BudgetDocument | None: Parsed document, or None when the file does not exist.

    Raises:
        BudgetDocumentError: Raised when the file is unreadable, not JSON or fails validation.
    """

    document_path = Path(path)
    if not document_path.exists():
        logger.warning("No %s found", document_path.name)
        return None

    try:
        payload = json.loads(document_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as error:
        raise BudgetDocumentError(f"Error loading performance budgets from {document_path}: {error}") from error

    try:
        document = BudgetDocument.model_validate(payload)
    except ValidationError as error:
        raise BudgetDocumentError(f"Invalid performance budget document {document_path}: {error}") from error

    logger.info("Loaded performance budgets (v%s)", document.metadata.version)
    return document


def budget_load_performance_data(directory: str | Path) -> dict[str, dict[str, Any]]:
    """Collect observed metric values from report files in a directory.

    The first `*performance-report*.json` supplies Lighthouse scores and Core
    Web Vitals. The first `*bundle-analyzer-report*.json` supplies bundle sizes.

    Args:
        directory: Directory holding report files.

    Returns:
        dict[str, dict[str, Any]]: Observed values keyed by category then metric.
    """

    report_directory = Path(directory)
    data: dict[str, dict[str, Any]] = {}

    performance_report = _budget_read_first_report(report_directory, PERFORMANCE_REPORT_MARKER)
    if performance_report is not None:
        data["lighthouse"] = dict(performance_report.get("scores") or {})
        data["coreWebVitals"] = dict(performance_report.get("metrics") or {})

    bundle_report = _budget_read_first_report(report_directory, BUNDLE_REPORT_MARKER)
    if bundle_report is not None:
        data["resources"] = {
            "totalBundle": bundle_report.get("totalSize") or 0,
            "initialBundle": bundle_report.get("initialSize") or 0,
        }

    logger.info("Loaded performance data: %s", ", ".join(sorted(data)) or "none")
    return data


def _budget_read_first_report(directory: Path, marker: str) -> dict[str, Any] | None:
    candidates = sorted(
        path for path in directory.glob(f"*{marker}*.json") if path.is_file()
    )
    if not candidates:
        return None

    try:
        payload = json.loads(candidates[0].read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as error:
        logger.error("Error loading performance data from %s: %s", candidates[0], error)
        return None
    if not isinstance(payload, dict):
        logger.error("Ignoring %s: expected a JSON object", candidates[0])
        return None
    return payload
