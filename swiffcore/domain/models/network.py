"""Domain models for the network resilience context.

Includes the closed NetworkError taxonomy, retry backoff configuration,
the result envelope returned by the retry loop, per-operation timeout
defaults and connectivity values.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class NetworkErrorKind(str, Enum):
    """Closed set of network failure classes."""
    OFFLINE = "offline"
    TIMEOUT = "timeout"
    CONNECTION_LOST = "connection_lost"
    DNS_LOOKUP_FAILED = "dns_lookup_failed"
    SSL_ERROR = "ssl_error"
    REQUEST_CANCELLED = "request_cancelled"
    INVALID_URL = "invalid_url"
    INVALID_RESPONSE = "invalid_response"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    MAINTENANCE_MODE = "maintenance_mode"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset({
    NetworkErrorKind.OFFLINE,
    NetworkErrorKind.TIMEOUT,
    NetworkErrorKind.CONNECTION_LOST,
    NetworkErrorKind.SERVER_ERROR,
    NetworkErrorKind.RATE_LIMIT_EXCEEDED,
})

# kind -> (description, recovery suggestion); '{code}' is filled for status errors
_MESSAGES: Dict[NetworkErrorKind, Tuple[str, str]] = {
    NetworkErrorKind.OFFLINE: (
        "No internet connection. Please check your network settings.",
        "Turn on WiFi or cellular data in Settings.",
    ),
    NetworkErrorKind.TIMEOUT: (
        "Request timed out. The server took too long to respond.",
        "Check your internet connection and try again.",
    ),
    NetworkErrorKind.CONNECTION_LOST: (
        "Connection lost. Please check your internet connection.",
        "Move to an area with better signal.",
    ),
    NetworkErrorKind.DNS_LOOKUP_FAILED: (
        "Failed to resolve server address.",
        "Check your DNS settings or try a different network.",
    ),
    NetworkErrorKind.SSL_ERROR: (
        "Secure connection failed. Please check your security settings.",
        "Check your device's date and time settings.",
    ),
    NetworkErrorKind.REQUEST_CANCELLED: (
        "Request was cancelled.",
        "Restart the operation if needed.",
    ),
    NetworkErrorKind.INVALID_URL: (
        "Invalid URL provided.",
        "Contact support to report this issue.",
    ),
    NetworkErrorKind.INVALID_RESPONSE: (
        "Invalid response from server.",
        "Contact support if this persists.",
    ),
    NetworkErrorKind.CLIENT_ERROR: (
        "Request error ({code}). Please check your request.",
        "Check the request parameters and try again.",
    ),
    NetworkErrorKind.SERVER_ERROR: (
        "Server error ({code}). Please try again later.",
        "The server is experiencing issues. Please try again later.",
    ),
    NetworkErrorKind.RATE_LIMIT_EXCEEDED: (
        "Too many requests. Please wait a moment and try again.",
        "Wait 60 seconds before trying again.",
    ),
    NetworkErrorKind.MAINTENANCE_MODE: (
        "Service is under maintenance. Please try again later.",
        "Check back in a few minutes.",
    ),
    NetworkErrorKind.UNKNOWN: (
        "Network error: {underlying}",
        "Try again or contact support if the issue persists.",
    ),
}


class NetworkError(Exception):
    """A classified network failure.

    Raised by operations and by the timeout wrapper, and carried on failed
    RequestResult objects. Retryability and user-facing messages are fixed
    per kind.
    """

    def __init__(
        self,
        kind: NetworkErrorKind,
        status_code: Optional[int] = None,
        underlying: Optional[BaseException] = None,
    ):
        self.kind = kind
        self.status_code = status_code
        self.underlying = underlying
        super().__init__(self.description)

    # Factories for the variants that carry data
    @classmethod
    def client_error(cls, status_code: int) -> "NetworkError":
        return cls(NetworkErrorKind.CLIENT_ERROR, status_code=status_code)

    @classmethod
    def server_error(cls, status_code: int) -> "NetworkError":
        return cls(NetworkErrorKind.SERVER_ERROR, status_code=status_code)

    @classmethod
    def unknown(cls, underlying: BaseException) -> "NetworkError":
        return cls(NetworkErrorKind.UNKNOWN, underlying=underlying)

    @property
    def is_retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def description(self) -> str:
        template = _MESSAGES[self.kind][0]
        return template.format(code=self.status_code, underlying=self.underlying)

    @property
    def recovery_suggestion(self) -> str:
        return _MESSAGES[self.kind][1]

    def __repr__(self) -> str:
        extra = f", status_code={self.status_code}" if self.status_code is not None else ""
        return f"NetworkError({self.kind.value}{extra})"


class OperationType(str, Enum):
    """Kinds of slow operation, each with its own default deadline."""
    NETWORK = "network"
    DATABASE = "database"
    FILE_SYSTEM = "file_system"
    BACKUP = "backup"
    EXPORT = "export"

    @property
    def default_timeout(self) -> float:
        return _DEFAULT_TIMEOUTS[self]

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


# Seconds
_DEFAULT_TIMEOUTS: Dict[OperationType, float] = {
    OperationType.NETWORK: 30.0,
    OperationType.DATABASE: 10.0,
    OperationType.FILE_SYSTEM: 15.0,
    OperationType.BACKUP: 120.0,
    OperationType.EXPORT: 60.0,
}


@dataclass(frozen=True)
class RetryConfiguration:
    """Exponential backoff settings for the retry loop."""
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays must be non-negative")
        if self.multiplier <= 1:
            raise ValueError(f"multiplier must be > 1, got {self.multiplier}")

    def delay(self, attempt: int) -> float:
        """Delay before retrying after the given 1-indexed attempt."""
        exponent = max(attempt - 1, 0)
        return min(self.base_delay * self.multiplier ** exponent, self.max_delay)

    @classmethod
    def from_profile(cls, name: str) -> "RetryConfiguration":
        try:
            return RETRY_PROFILES[name.lower()]
        except KeyError:
            raise ValueError(
                f"Unknown retry profile '{name}'. Choose one of: {', '.join(RETRY_PROFILES)}"
            ) from None


RetryConfiguration.DEFAULT = RetryConfiguration(max_retries=3, base_delay=1.0, max_delay=10.0, multiplier=2.0)  # type: ignore[attr-defined]
RetryConfiguration.AGGRESSIVE = RetryConfiguration(max_retries=5, base_delay=0.5, max_delay=5.0, multiplier=1.5)  # type: ignore[attr-defined]
RetryConfiguration.CONSERVATIVE = RetryConfiguration(max_retries=2, base_delay=2.0, max_delay=15.0, multiplier=3.0)  # type: ignore[attr-defined]

RETRY_PROFILES: Dict[str, RetryConfiguration] = {
    "default": RetryConfiguration.DEFAULT,  # type: ignore[attr-defined]
    "aggressive": RetryConfiguration.AGGRESSIVE,  # type: ignore[attr-defined]
    "conservative": RetryConfiguration.CONSERVATIVE,  # type: ignore[attr-defined]
}


@dataclass(frozen=True)
class RequestResult(Generic[T]):
    """Outcome of a retried operation.

    ``attempts`` counts every call of the operation (the first one included);
    ``retry_count`` counts only the re-attempts.
    """
    data: Optional[T] = None
    status_code: Optional[int] = None
    error: Optional[NetworkError] = None
    retry_count: int = 0
    attempts: int = 0
    total_duration: float = 0.0

    def __post_init__(self) -> None:
        if self.error is not None and self.data is not None:
            raise ValueError("A failed RequestResult cannot carry data")

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def summary(self) -> str:
        outcome = "Success" if self.is_success else "Failed"
        return f"{outcome} after {self.retry_count} retries in {self.total_duration:.2f}s"


class NetworkStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    UNKNOWN = "unknown"

    @property
    def is_connected(self) -> bool:
        return self is NetworkStatus.CONNECTED


class ConnectionKind(str, Enum):
    WIFI = "wifi"
    CELLULAR = "cellular"
    ETHERNET = "ethernet"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return {
            ConnectionKind.WIFI: "WiFi",
            ConnectionKind.CELLULAR: "Cellular",
            ConnectionKind.ETHERNET: "Ethernet",
            ConnectionKind.UNKNOWN: "Unknown",
        }[self]
