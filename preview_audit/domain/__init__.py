"""Domain models used across application layer boundaries."""

from .models import (
    ActiveServer,
    AuditAttempt,
    AuditFailure,
    AuditOutcome,
    AuditRunResult,
    AuditSuccess,
    DistValidationResult,
    ServerConfig,
)
from .timeline import domain_build_stage_event, domain_utc_now_iso

__all__ = [
    "ActiveServer",
    "AuditAttempt",
    "AuditFailure",
    "AuditOutcome",
    "AuditRunResult",
    "AuditSuccess",
    "DistValidationResult",
    "ServerConfig",
    "domain_build_stage_event",
    "domain_utc_now_iso",
]
