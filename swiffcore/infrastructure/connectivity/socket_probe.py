"""Connectivity probe that opens TCP connections to well-known hosts.

The probe is connected as soon as any host accepts a connection. The
connection kind is inferred from the interface carrying the default route,
which is only available on Linux; elsewhere it stays unknown.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from swiffcore.domain.interfaces.connectivity import ConnectivityProbe
from swiffcore.domain.models.network import ConnectionKind, NetworkStatus

logger = logging.getLogger(__name__)

DEFAULT_PROBE_HOSTS = ("www.google.com", "www.apple.com", "www.cloudflare.com")
DEFAULT_PROBE_PORT = 443
DEFAULT_PROBE_TIMEOUT = 5.0  # seconds, per host
ROUTE_TABLE = Path("/proc/net/route")

# Interface name prefix -> connection kind
_INTERFACE_PREFIXES = (
    ("wl", ConnectionKind.WIFI),
    ("wwan", ConnectionKind.CELLULAR),
    ("rmnet", ConnectionKind.CELLULAR),
    ("en", ConnectionKind.ETHERNET),
    ("eth", ConnectionKind.ETHERNET),
)


def default_route_interface(route_table: Path = ROUTE_TABLE) -> Optional[str]:
    """Returns the interface of the default IPv4 route, or None."""
    try:
        lines = route_table.read_text().splitlines()[1:]
    except OSError:
        return None
    for line in lines:
        fields = line.split()
        # Destination 00000000 is the default route
        if len(fields) > 1 and fields[1] == "00000000":
            return fields[0]
    return None


def connection_kind_for_interface(interface: Optional[str]) -> ConnectionKind:
    if not interface:
        return ConnectionKind.UNKNOWN
    for prefix, kind in _INTERFACE_PREFIXES:
        if interface.startswith(prefix):
            return kind
    return ConnectionKind.UNKNOWN


class SocketConnectivityProbe(ConnectivityProbe):
    """ConnectivityProbe implementation using plain TCP connects."""

    def __init__(
        self,
        hosts: Sequence[str] = DEFAULT_PROBE_HOSTS,
        port: int = DEFAULT_PROBE_PORT,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        route_table: Path = ROUTE_TABLE,
    ):
        self.hosts = tuple(hosts)
        self.port = port
        self.timeout = timeout
        self.route_table = route_table
        self._status = NetworkStatus.UNKNOWN
        self._kind = ConnectionKind.UNKNOWN
        logger.info(f"SocketConnectivityProbe initialized: hosts={', '.join(self.hosts)}, port={port}")

    def current_status(self) -> NetworkStatus:
        return self._status

    def current_connection_kind(self) -> ConnectionKind:
        return self._kind

    async def can_reach_host(self, host: str) -> bool:
        """Tries one TCP connection to host; any failure counts as unreachable."""
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, self.port), timeout=self.timeout
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug(f"Host {host}:{self.port} unreachable: {e!r}")
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error closing probe connection to {host}: {e!r}")
        logger.debug(f"Host {host}:{self.port} reachable")
        return True

    async def refresh(self) -> NetworkStatus:
        reachable = False
        for host in self.hosts:
            if await self.can_reach_host(host):
                reachable = True
                break

        previous = self._status
        self._status = NetworkStatus.CONNECTED if reachable else NetworkStatus.DISCONNECTED
        self._kind = (
            connection_kind_for_interface(default_route_interface(self.route_table))
            if reachable else ConnectionKind.UNKNOWN
        )
        if previous is not self._status:
            logger.info(f"Network status changed: {previous.value} -> {self._status.value} ({self._kind.display_name})")
        return self._status
