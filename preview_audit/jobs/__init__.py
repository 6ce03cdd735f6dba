"""Job layer package for audit orchestration boundaries."""

from .interfaces import EnvironmentValidationPort, JobExecutionResult, JobOrchestratorPort, ServerControlPort
from .audit_engine import (
	CI_SKIPPED_AUDITS,
	DEFAULT_AUDIT_CATEGORIES,
	NO_FCP_ERROR_CODE,
	AuditEngine,
	AuditEngineConfig,
	audit_build_lighthouse_config,
	audit_classify_report,
)
from .audit_runner import (
	PERFORMANCE_BENCH_RUNS,
	SUPPORTED_AUDIT_JOBS,
	AuditRunner,
	runner_category_score,
	runner_summarize_performance,
)

__all__ = [
	"JobExecutionResult",
	"JobOrchestratorPort",
	"EnvironmentValidationPort",
	"ServerControlPort",
	"AuditEngine",
	"AuditEngineConfig",
	"CI_SKIPPED_AUDITS",
	"DEFAULT_AUDIT_CATEGORIES",
	"NO_FCP_ERROR_CODE",
	"audit_build_lighthouse_config",
	"audit_classify_report",
	"AuditRunner",
	"PERFORMANCE_BENCH_RUNS",
	"SUPPORTED_AUDIT_JOBS",
	"runner_category_score",
	"runner_summarize_performance",
]
