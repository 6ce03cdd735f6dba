"""Main module entrypoint for CI runtime execution.

This module validates startup configuration and dispatches one of the
server, audit, budget or environment-validation commands.
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import time
from pathlib import Path
from typing import Callable, Sequence

from preview_audit.adapters import BudgetDocumentError, PreviewAuditError
from preview_audit.bootstrap import (
    bootstrap_create_audit_runner,
    bootstrap_create_environment_validator,
    bootstrap_create_server_manager,
)
from preview_audit.budgets import (
    BUDGET_DOCUMENT_FILENAME,
    BUDGET_REPORT_FILENAME,
    PR_COMMENT_FILENAME,
    budget_evaluate,
    budget_load_document,
    budget_load_performance_data,
    budget_print_summary,
    budget_render_pr_comment,
    budget_should_fail_build,
    budget_write_pr_comment,
    budget_write_report,
)
from preview_audit.config import AuditSettings, SettingsLoadError, config_configure_logging, config_load_settings
from preview_audit.jobs import SUPPORTED_AUDIT_JOBS

logger = logging.getLogger(__name__)

DEFAULT_VALIDATION_URL = "http://localhost:4173"


def main(argv: Sequence[str] | None = None) -> None:
    """Run the selected command with validated startup configuration.

    Args:
        argv: Optional argument list, defaults to `sys.argv[1:]`.

    Returns:
        None: This function does not return a runtime value.

    Raises:
        SystemExit: Raised with exit code 1 when the command failed.
    """

    parsed_arguments = main_build_argument_parser().parse_args(argv)

    try:
        settings = config_load_settings()
    except SettingsLoadError as error:
        print(f"💥 {error}")
        raise SystemExit(1) from error
    config_configure_logging(settings)

    if parsed_arguments.command == "serve":
        exit_code = main_serve(settings, preferred_port=parsed_arguments.preferred_port)
    elif parsed_arguments.command == "audit":
        exit_code = main_audit(
            settings,
            audit_type=parsed_arguments.audit_type,
            url=parsed_arguments.url,
            output_path=parsed_arguments.output_path,
        )
    elif parsed_arguments.command == "enforce-budgets":
        exit_code = main_enforce_budgets(directory=Path.cwd(), environment=settings.node_env)
    else:
        exit_code = main_validate_env(settings, url=parsed_arguments.url)

    if exit_code != 0:
        raise SystemExit(exit_code)


def main_build_argument_parser() -> argparse.ArgumentParser:
    """Build the command-line parser.

    Returns:
        argparse.ArgumentParser: Parser with one sub-command per workflow.
    """

    argument_parser = argparse.ArgumentParser(
        prog="preview-audit",
        description="Preview server orchestration, Lighthouse audits and performance budget enforcement",
    )
    subparsers = argument_parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Start the best available preview server and keep it running")
    serve_parser.add_argument("preferred_port", nargs="?", type=int, help="Port whose server is tried first")

    audit_parser = subparsers.add_parser("audit", help="Run a Lighthouse audit and save JSON results")
    audit_parser.add_argument("audit_type", nargs="?", default="performance", choices=SUPPORTED_AUDIT_JOBS)
    audit_parser.add_argument("url", nargs="?", help="Target URL; a local server is started when omitted")
    audit_parser.add_argument("output_path", nargs="?", default="audit-results.json", help="JSON results path")

    subparsers.add_parser("enforce-budgets", help="Check report files against performance-budgets.json")

    validate_parser = subparsers.add_parser("validate-env", help="Check that a URL serves and renders content")
    validate_parser.add_argument("url", nargs="?", default=DEFAULT_VALIDATION_URL)
    return argument_parser


def main_install_signal_handlers(cleanup: Callable[[], None]) -> None:
    """Run cleanup and exit when SIGINT or SIGTERM arrives.

    Args:
        cleanup: Callback stopping every spawned server.
    """

    def _main_handle_signal(signum: int, _frame: object) -> None:
        logger.info("Received %s, cleaning up...", signal.Signals(signum).name)
        cleanup()
        raise SystemExit(0)

    signal.signal(signal.SIGINT, _main_handle_signal)
    signal.signal(signal.SIGTERM, _main_handle_signal)


def main_serve(settings: AuditSettings, preferred_port: int | None = None) -> int:
    """Validate the build output, start a server and block until interrupted.

    Returns:
        int: Process exit code.
    """

    server_manager = bootstrap_create_server_manager(settings)
    main_install_signal_handlers(server_manager.server_stop_all)
    try:
        server_manager.server_validate_dist_directory()
        active_server = server_manager.server_start_best_available(preferred_port=preferred_port)
        print(f"🌟 Server ready: {active_server.url}")
        print("Press Ctrl+C to stop")
        while True:
            time.sleep(1)
    except PreviewAuditError as error:
        print(f"💥 Failed to start server: {error}")
        return 1
    finally:
        server_manager.server_close()


def main_audit(
    settings: AuditSettings,
    audit_type: str,
    url: str | None = None,
    output_path: str = "audit-results.json",
) -> int:
    """Run one audit job.

    Returns:
        int: 0 on success, 1 on failure.
    """

    audit_runner = bootstrap_create_audit_runner(settings)
    main_install_signal_handlers(audit_runner.runner_cleanup)
    try:
        execution_result = audit_runner.job_execute(job_name=audit_type, url=url, output_path=output_path)
    finally:
        audit_runner.runner_close()
    if execution_result.status != "success":
        print(f"💥 Audit failed: {execution_result.detail}")
        return 1
    print("🎉 Audit completed successfully!")
    return 0


def main_enforce_budgets(directory: Path, environment: str) -> int:
    """Evaluate report files in a directory against its budget document.

    A missing budget document skips enforcement.

    Args:
        directory: Directory holding the budget document and report files.
        environment: Budget environment profile.

    Returns:
        int: 1 when violations must fail the build or the document is invalid, else 0.
    """

    print("💰 Performance Budget Enforcement\n")
    try:
        budget_document = budget_load_document(directory / BUDGET_DOCUMENT_FILENAME)
    except BudgetDocumentError as error:
        print(f"❌ {error}")
        return 1
    if budget_document is None:
        print("⚠️ No budgets configured, skipping enforcement")
        return 0

    performance_data = budget_load_performance_data(directory)
    report = budget_evaluate(budget_document, performance_data, environment=environment)
    budget_print_summary(report)
    budget_write_report(report, directory / BUDGET_REPORT_FILENAME)
    try:
        budget_write_pr_comment(budget_render_pr_comment(report), directory / PR_COMMENT_FILENAME)
    except OSError as error:
        logger.error("Error saving PR comment: %s", error)

    if budget_should_fail_build(budget_document, report):
        print("🚫 Failing build due to budget violations")
        return 1
    print("✅ Build can proceed")
    return 0


def main_validate_env(settings: AuditSettings, url: str = DEFAULT_VALIDATION_URL) -> int:
    """Validate server response and rendering for a URL and print the JSON result.

    Returns:
        int: 0 when the environment is valid, else 1.
    """

    environment_validator = bootstrap_create_environment_validator(settings)
    try:
        validation = environment_validator.environment_validate(url)
    finally:
        environment_validator.environment_close()
    print(json.dumps(validation.environment_to_payload(), indent=2))
    return 0 if validation.success else 1


if __name__ == "__main__":
    main()
