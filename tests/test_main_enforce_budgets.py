"""Regression tests for the budget enforcement command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from preview_audit.main import main_enforce_budgets


def _write_budget_fixture(directory: Path, fail_on_exceeded: bool = True) -> None:
    (directory / "performance-budgets.json").write_text(
        json.dumps(
            {
                "metadata": {"version": "1.0.0"},
                "budgets": {
                    "lighthouse": {"performance": {"min": 90, "target": 95}},
                    "resources": {"totalBundle": {"max": 500000, "target": 400000, "unit": "bytes"}},
                },
                "environments": {"production": {"multiplier": 1.0}},
                "rules": {"failOn": {"budgetExceeded": fail_on_exceeded}},
            }
        ),
        encoding="utf-8",
    )
    (directory / "lighthouse-performance-report.json").write_text(
        json.dumps({"scores": {"performance": 72}}),
        encoding="utf-8",
    )
    (directory / "bundle-analyzer-report.json").write_text(
        json.dumps({"totalSize": 450000, "initialSize": 200000}),
        encoding="utf-8",
    )


def test_main_enforce_budgets_skips_without_budget_document(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Exit 0 and write nothing when no budget document exists."""

    assert main_enforce_budgets(tmp_path, "production") == 0
    assert "skipping enforcement" in capsys.readouterr().out
    assert not (tmp_path / "performance-budget-report.json").exists()


def test_main_enforce_budgets_fails_build_and_writes_outputs(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Exit 1 on violations with failOn enabled and persist both outputs.

    Args:
        tmp_path: Pytest temporary directory fixture.
        capsys: Pytest output capture fixture.

    Returns:
        None: Assertions validate exit code and written files.

    Raises:
        AssertionError: Raised when enforcement semantics drift.
    """

    _write_budget_fixture(tmp_path)

    exit_code = main_enforce_budgets(tmp_path, "production")

    report_payload = json.loads((tmp_path / "performance-budget-report.json").read_text(encoding="utf-8"))
    assert exit_code == 1
    assert report_payload["summary"] == {"total": 2, "passed": 0, "warnings": 1, "failed": 1}
    assert report_payload["results"]["lighthouse"]["performance"]["status"] == "fail"
    assert "BUDGET EXCEEDED" in (tmp_path / "pr-budget-comment.md").read_text(encoding="utf-8")
    assert "Failing build due to budget violations" in capsys.readouterr().out


def test_main_enforce_budgets_reports_without_failing_when_rule_disabled(tmp_path: Path) -> None:
    """Exit 0 on violations when budgetExceeded is not a failing rule."""

    _write_budget_fixture(tmp_path, fail_on_exceeded=False)

    assert main_enforce_budgets(tmp_path, "production") == 0
    assert (tmp_path / "pr-budget-comment.md").exists()


def test_main_enforce_budgets_rejects_invalid_document(tmp_path: Path) -> None:
    """Exit 1 when the budget document is malformed."""

    (tmp_path / "performance-budgets.json").write_text("[1, 2", encoding="utf-8")

    assert main_enforce_budgets(tmp_path, "production") == 1
