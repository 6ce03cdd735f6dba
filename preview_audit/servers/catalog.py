"""Static fallback list of local static-file server candidates."""

from __future__ import annotations

from typing import Final, Sequence

from preview_audit.domain import ServerConfig

SERVER_CONFIGS: Final[tuple[ServerConfig, ...]] = (
    ServerConfig(
        name="vite-preview",
        command="npm",
        args=("run", "preview"),
        port=4173,
        priority=1,
        description="Vite preview server (production build)",
    ),
    ServerConfig(
        name="http-server",
        command="npx",
        args=("http-server", "dist", "-p", "8080", "--cors", "-c-1"),
        port=8080,
        priority=2,
        description="HTTP Server (simple static server)",
    ),
    ServerConfig(
        name="serve",
        command="npx",
        args=("serve", "-s", "dist", "-p", "8081"),
        port=8081,
        priority=3,
        description="Serve package (SPA-friendly)",
    ),
    ServerConfig(
        name="python-server",
        command="python3",
        args=("-m", "http.server", "8082", "--directory", "dist"),
        port=8082,
        priority=4,
        description="Python HTTP server (fallback)",
    ),
)


def server_order_candidates(
    server_configs: Sequence[ServerConfig],
    preferred_port: int | None = None,
) -> list[ServerConfig]:
    """Return candidates in launch order.

    Candidates are sorted by ascending priority with a stable sort, so equal
    priorities keep their declaration order. A candidate bound to the
    preferred port moves to the front; the rest keep their relative order.

    Args:
        server_configs: Declared candidates.
        preferred_port: Optional port whose candidate should be tried first.

    Returns:
        list[ServerConfig]: Ordered candidates.
    """

    ordered_configs = sorted(server_configs, key=lambda server_config: server_config.priority)
    if preferred_port is None:
        return ordered_configs

    preferred_configs = [config for config in ordered_configs if config.port == preferred_port][:1]
    if not preferred_configs:
        return ordered_configs
    return preferred_configs + [config for config in ordered_configs if config is not preferred_configs[0]]
