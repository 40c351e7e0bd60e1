"""Service for executing network operations with classification, retries and timeouts.

Failures are mapped onto the closed NetworkError taxonomy. Retryable kinds
(offline, timeouts, dropped connections, 5xx other than 503, 429) are retried
with exponential backoff; everything else, maintenance and unclassified
exceptions included, fails fast. The retry loop never raises for a failed
operation: the classified error is carried on the returned RequestResult
instead.
"""

import asyncio
import errno
import http.client
import logging
import socket
import ssl
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar

from swiffcore.domain.events.base import DomainEvent, EventSink
from swiffcore.domain.events.resilience_events import RequestFailed, RequestSucceeded, RetryScheduled
from swiffcore.domain.interfaces.connectivity import ConnectivityProbe
from swiffcore.domain.models.common import ProgressCallback
from swiffcore.domain.models.network import (
    ConnectionKind,
    NetworkError,
    NetworkErrorKind,
    NetworkStatus,
    OperationType,
    RequestResult,
    RetryConfiguration,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
HttpOperation = Callable[[], Awaitable[Tuple[int, T]]]

_OFFLINE_ERRNOS = frozenset({errno.ENETUNREACH, errno.ENETDOWN, errno.EHOSTUNREACH})


# --- Classification ---

def classify_error(error: BaseException) -> NetworkError:
    """Maps a transport exception onto the NetworkError taxonomy.

    Args:
        error: Any exception raised by a network operation.

    Returns:
        The error itself if it is already a NetworkError, otherwise a new
        NetworkError whose ``underlying`` is the original exception.
    """
    if isinstance(error, NetworkError):
        return error
    # gaierror and the ssl errors are OSError subclasses, check them first
    if isinstance(error, socket.gaierror):
        kind = NetworkErrorKind.DNS_LOOKUP_FAILED
    elif isinstance(error, (ssl.SSLError, ssl.CertificateError)):
        kind = NetworkErrorKind.SSL_ERROR
    elif isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        kind = NetworkErrorKind.TIMEOUT
    elif isinstance(error, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError,
                            asyncio.IncompleteReadError)):
        kind = NetworkErrorKind.CONNECTION_LOST
    elif isinstance(error, OSError) and error.errno in _OFFLINE_ERRNOS:
        kind = NetworkErrorKind.OFFLINE
    elif isinstance(error, asyncio.CancelledError):
        kind = NetworkErrorKind.REQUEST_CANCELLED
    elif isinstance(error, http.client.InvalidURL):
        kind = NetworkErrorKind.INVALID_URL
    else:
        return NetworkError.unknown(error)
    return NetworkError(kind, underlying=error)


def classify_status_code(status_code: int) -> Optional[NetworkError]:
    """Maps an HTTP status code to an error, or None for 2xx and 3xx."""
    if 200 <= status_code < 400:
        return None
    if status_code == 429:
        return NetworkError(NetworkErrorKind.RATE_LIMIT_EXCEEDED, status_code=status_code)
    if 400 <= status_code < 500:
        return NetworkError.client_error(status_code)
    if status_code == 503:
        return NetworkError(NetworkErrorKind.MAINTENANCE_MODE, status_code=status_code)
    if 500 <= status_code < 600:
        return NetworkError.server_error(status_code)
    return NetworkError(NetworkErrorKind.INVALID_RESPONSE, status_code=status_code)


# --- Resilience Engine ---

class NetworkResilienceEngine:
    """Runs network operations with retries, timeouts and connectivity checks."""

    def __init__(
        self,
        connectivity_probe: Optional[ConnectivityProbe] = None,
        default_config: RetryConfiguration = RetryConfiguration.DEFAULT,  # type: ignore[attr-defined]
        event_sink: Optional[EventSink] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the NetworkResilienceEngine.

        Args:
            connectivity_probe: Optional probe consulted by perform_request
                and get_network_status.
            default_config: Backoff settings used when a call passes none.
            event_sink: Optional callable receiving retry and outcome events.
            sleep: Awaitable used between attempts.
            clock: Monotonic clock used for durations.
        """
        self.connectivity_probe = connectivity_probe
        self.default_config = default_config
        self._event_sink = event_sink
        self._sleep = sleep
        self._clock = clock

        logger.info(
            f"NetworkResilienceEngine initialized: max_retries={default_config.max_retries}, "
            f"base_delay={default_config.base_delay}s, multiplier={default_config.multiplier}, "
            f"probe={type(connectivity_probe).__name__ if connectivity_probe else 'None'}"
        )

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_sink is not None:
            self._event_sink(event)

    async def _retry_loop(
        self,
        attempt_fn: Callable[[], Awaitable[Tuple[Optional[int], T]]],
        config: RetryConfiguration,
        name: str,
    ) -> RequestResult[T]:
        start = self._clock()
        max_attempts = config.max_retries + 1
        last_status: Optional[int] = None

        for attempt in range(1, max_attempts + 1):
            try:
                status_code, data = await attempt_fn()
            except Exception as e:
                error = classify_error(e)
                if error.status_code is not None:
                    last_status = error.status_code

                if not error.is_retryable or attempt >= max_attempts:
                    duration = self._clock() - start
                    if error.is_retryable:
                        logger.error(f"Max retries ({config.max_retries}) reached for {name}. Last error: {error}")
                    else:
                        logger.error(f"Non-retryable error calling {name} on attempt {attempt}: {error!r}")
                    self._dispatch(
                        RequestFailed(
                            operation=name, attempts=attempt, error_kind=error.kind.value,
                            error_message=error.description, status_code=last_status,
                        )
                    )
                    return RequestResult(
                        status_code=last_status, error=error, retry_count=attempt - 1,
                        attempts=attempt, total_duration=duration,
                    )

                delay = config.delay(attempt)
                logger.warning(
                    f"Retryable error calling {name} on attempt {attempt}/{max_attempts}: "
                    f"{error.kind.value}. Waiting {delay:.2f}s..."
                )
                self._dispatch(
                    RetryScheduled(
                        operation=name, attempt_number=attempt,
                        delay_seconds=delay, error_kind=error.kind.value,
                    )
                )
                await self._sleep(delay)
                continue

            duration = self._clock() - start
            if attempt > 1:
                logger.info(f"{name} succeeded after {attempt - 1} retries")
            self._dispatch(
                RequestSucceeded(
                    operation=name, attempts=attempt,
                    duration_seconds=duration, status_code=status_code,
                )
            )
            return RequestResult(
                data=data, status_code=status_code, retry_count=attempt - 1,
                attempts=attempt, total_duration=duration,
            )

        raise AssertionError("unreachable: retry loop always returns")

    async def perform_with_retry(
        self,
        operation: Operation[T],
        config: Optional[RetryConfiguration] = None,
        operation_name: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> RequestResult[T]:
        """Executes an async operation, retrying retryable failures.

        Args:
            operation: Zero-argument coroutine function to run on every attempt.
            config: Backoff settings; the engine default when None.
            operation_name: Label for logs and events.
            timeout: Optional deadline in seconds for each attempt. An attempt
                that runs out of time fails with ``timeout`` and is retried.

        Returns:
            A RequestResult holding either the operation's value or the
            classified error of the last attempt.
        """
        async def attempt() -> Tuple[Optional[int], T]:
            return None, await self._within(timeout, operation)

        name = operation_name or getattr(operation, "__name__", "operation")
        return await self._retry_loop(attempt, config or self.default_config, name)

    async def perform_request(
        self,
        operation: HttpOperation[T],
        config: Optional[RetryConfiguration] = None,
        operation_name: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> RequestResult[T]:
        """Executes an HTTP-style operation returning ``(status_code, payload)``.

        Every attempt first checks the connectivity probe, failing with
        ``offline`` when it reports disconnected, then classifies the status
        code. Error statuses go through the same retry loop as exceptions.
        ``timeout`` bounds each attempt as in perform_with_retry.
        """
        async def attempt() -> Tuple[Optional[int], T]:
            if (
                self.connectivity_probe is not None
                and self.connectivity_probe.current_status() is NetworkStatus.DISCONNECTED
            ):
                raise NetworkError(NetworkErrorKind.OFFLINE)
            status_code, payload = await self._within(timeout, operation)
            error = classify_status_code(status_code)
            if error is not None:
                raise error
            return status_code, payload

        name = operation_name or getattr(operation, "__name__", "request")
        return await self._retry_loop(attempt, config or self.default_config, name)

    async def _within(self, timeout: Optional[float], operation: Operation[T]) -> T:
        if timeout is None:
            return await operation()
        return await self.with_timeout(timeout, operation)

    async def with_timeout(
        self,
        seconds: Optional[float],
        operation: Operation[T],
        operation_type: OperationType = OperationType.NETWORK,
    ) -> T:
        """Races an operation against a deadline.

        The operation is cancelled and awaited if the deadline wins.

        Args:
            seconds: Deadline in seconds; the operation type's default when None.
            operation: Zero-argument coroutine function.
            operation_type: Chooses the default deadline and labels the log line.

        Raises:
            NetworkError: With kind ``timeout`` when the deadline elapses.
            Exception: Whatever the operation itself raises.
        """
        deadline = operation_type.default_timeout if seconds is None else seconds
        try:
            return await asyncio.wait_for(operation(), timeout=deadline)
        except asyncio.TimeoutError as e:
            logger.warning(f"{operation_type.display_name} operation timed out after {deadline}s")
            raise NetworkError(NetworkErrorKind.TIMEOUT, underlying=e) from e

    async def with_timeout_and_progress(
        self,
        seconds: Optional[float],
        work: Callable[[ProgressCallback], Awaitable[T]],
        progress_handler: ProgressCallback,
        operation_type: OperationType = OperationType.NETWORK,
    ) -> T:
        """Like with_timeout, but hands the work a progress callback.

        Values are forwarded to progress_handler synchronously, in the order
        the work emits them, until the deadline cancels the work.
        """
        async def run() -> T:
            return await work(progress_handler)

        return await self.with_timeout(seconds, run, operation_type)

    # --- Connectivity and presentation helpers ---

    def get_network_status(self) -> NetworkStatus:
        if self.connectivity_probe is None:
            return NetworkStatus.UNKNOWN
        return self.connectivity_probe.current_status()

    def get_connection_kind(self) -> ConnectionKind:
        if self.connectivity_probe is None:
            return ConnectionKind.UNKNOWN
        return self.connectivity_probe.current_connection_kind()

    def network_statistics(self) -> Dict[str, Any]:
        status = self.get_network_status()
        return {
            "is_connected": status.is_connected,
            "connection_type": self.get_connection_kind().display_name,
            "status": status.value,
        }


def user_friendly_message(error: BaseException) -> str:
    return classify_error(error).description


def recovery_suggestion(error: BaseException) -> str:
    return classify_error(error).recovery_suggestion


def should_show_retry(error: BaseException) -> bool:
    """Whether a UI should offer the user a manual retry for this error."""
    return classify_error(error).is_retryable
