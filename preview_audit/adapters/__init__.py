"""Adapter layer package for process, network and audit-tool boundaries."""

from .errors import (
	AllServersFailedError,
	AuditExhaustedError,
	AuditToolError,
	BrowserLaunchError,
	BudgetDocumentError,
	CommandNotFoundError,
	DistValidationError,
	EnvironmentSetupError,
	PortInUseError,
	PreviewAuditError,
	RenderValidationError,
	ServerResponseError,
	ServerStartupError,
)
from .health_check import HttpHealthChecker
from .interfaces import AuditToolPort, HealthCheckPort
from .lighthouse import LighthouseCliAdapter
from .port_probe import port_probe_is_available

__all__ = [
	"AllServersFailedError",
	"AuditExhaustedError",
	"AuditToolError",
	"AuditToolPort",
	"BrowserLaunchError",
	"BudgetDocumentError",
	"CommandNotFoundError",
	"DistValidationError",
	"EnvironmentSetupError",
	"HealthCheckPort",
	"HttpHealthChecker",
	"LighthouseCliAdapter",
	"PortInUseError",
	"PreviewAuditError",
	"RenderValidationError",
	"ServerResponseError",
	"ServerStartupError",
	"port_probe_is_available",
]
