"""Budget layer package for performance budget evaluation and reporting."""

from .documents import (
    BUDGET_DOCUMENT_FILENAME,
    BudgetCategories,
    BudgetDocument,
    BudgetMetadata,
    BudgetRules,
    EnvironmentProfile,
    FailOnRules,
    MetricBudget,
    budget_load_document,
    budget_load_performance_data,
)
from .enforcer import (
    DEFAULT_ENVIRONMENT,
    MAXIMUM_BOUNDED_CATEGORIES,
    MINIMUM_BOUNDED_CATEGORIES,
    BudgetCheckResult,
    BudgetReport,
    BudgetSummary,
    budget_check_value,
    budget_evaluate,
    budget_format_number,
    budget_report_passed,
    budget_resolve_multiplier,
    budget_scale,
    budget_should_fail_build,
)
from .reporting import (
    BUDGET_REPORT_FILENAME,
    PR_COMMENT_FILENAME,
    budget_display_message,
    budget_format_size,
    budget_print_summary,
    budget_render_pr_comment,
    budget_write_pr_comment,
    budget_write_report,
)

__all__ = [
    "BUDGET_DOCUMENT_FILENAME",
    "BUDGET_REPORT_FILENAME",
    "PR_COMMENT_FILENAME",
    "DEFAULT_ENVIRONMENT",
    "MAXIMUM_BOUNDED_CATEGORIES",
    "MINIMUM_BOUNDED_CATEGORIES",
    "BudgetCategories",
    "BudgetCheckResult",
    "BudgetDocument",
    "BudgetMetadata",
    "BudgetReport",
    "BudgetRules",
    "BudgetSummary",
    "EnvironmentProfile",
    "FailOnRules",
    "MetricBudget",
    "budget_check_value",
    "budget_display_message",
    "budget_evaluate",
    "budget_format_number",
    "budget_format_size",
    "budget_load_document",
    "budget_load_performance_data",
    "budget_print_summary",
    "budget_render_pr_comment",
    "budget_report_passed",
    "budget_resolve_multiplier",
    "budget_scale",
    "budget_should_fail_build",
    "budget_write_pr_comment",
    "budget_write_report",
]
