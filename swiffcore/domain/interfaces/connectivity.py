"""Interface for probing network connectivity.

The resilience engine consults the probe before issuing requests; the
probe itself decides how connectivity is measured.
"""

import abc

from swiffcore.domain.models.network import ConnectionKind, NetworkStatus


class ConnectivityProbe(abc.ABC):
    """Abstract Base Class for connectivity status sources."""

    @abc.abstractmethod
    def current_status(self) -> NetworkStatus:
        """Returns the last known connectivity status without blocking."""
        pass

    @abc.abstractmethod
    def current_connection_kind(self) -> ConnectionKind:
        """Returns the last known connection kind without blocking."""
        pass

    @abc.abstractmethod
    async def refresh(self) -> NetworkStatus:
        """Measures connectivity now and updates the last known values."""
        pass
