"""Server layer package for local static-file server orchestration."""

from .catalog import SERVER_CONFIGS, server_order_candidates
from .launcher import ServerLauncher
from .manager import ServerManager

__all__ = ["SERVER_CONFIGS", "ServerLauncher", "ServerManager", "server_order_candidates"]
