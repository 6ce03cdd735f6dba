"""TCP port availability probe."""

from __future__ import annotations

import errno
import socket
import sys
from typing import Final

_LOOPBACK_ADDRESSES: Final[tuple[tuple[str, socket.AddressFamily], ...]] = (
    ("127.0.0.1", socket.AF_INET),
    ("::1", socket.AF_INET6),
)
_IPV6_UNAVAILABLE_ERRNOS: Final[frozenset[int]] = frozenset({errno.EADDRNOTAVAIL, errno.EAFNOSUPPORT})


def port_probe_is_available(port: int, host: str | None = None) -> bool:
    """Return whether a listener can currently bind the port.

    Without an explicit host both loopback families are probed, so a server
    listening only on `::1` (where `localhost` resolves first on current Node)
    still counts as holding the port. Hosts without IPv6 support skip the
    `::1` probe. Throwaway sockets are bound and released immediately, so no
    state survives the call.

    Args:
        port: TCP port to probe.
        host: Optional single interface address to bind instead of both loopbacks.

    Returns:
        bool: True when every bind succeeded, False on any conflict or invalid port.
    """

    if host is None:
        candidates = _LOOPBACK_ADDRESSES if socket.has_ipv6 else _LOOPBACK_ADDRESSES[:1]
    else:
        candidates = ((host, socket.AF_INET6 if ":" in host else socket.AF_INET),)

    for address, family in candidates:
        try:
            _port_probe_bind(address, family, port)
        except OSError as error:
            if host is None and family == socket.AF_INET6 and error.errno in _IPV6_UNAVAILABLE_ERRNOS:
                continue
            return False
        except (OverflowError, TypeError):
            return False
    return True


def _port_probe_bind(address: str, family: socket.AddressFamily, port: int) -> None:
    with socket.socket(family, socket.SOCK_STREAM) as probe_socket:
        if sys.platform != "win32":
            probe_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        probe_socket.bind((address, port))
        probe_socket.listen(1)
