"""Reachability polling for localexpose."""

from collections.abc import Callable

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from localexpose.core.exceptions import ConnectionTimeoutError
from localexpose.core.models import ReachabilityResult
from localexpose.utils.logging import get_logger

logger = get_logger(__name__)


def _not_reachable(result: ReachabilityResult) -> bool:
    return not result.reachable


def poll_until_reachable(
    check: Callable[[], ReachabilityResult],
    server: str,
    timeout: float,
    interval: float = 1.0,
) -> ReachabilityResult:
    """Call ``check`` every ``interval`` seconds until it reports reachable.

    The first check runs immediately. Exceptions raised by ``check`` are not
    retried and propagate unchanged.

    Args:
        check: Single reachability check
        server: Server URL being checked, used for logging and errors
        timeout: Overall deadline in seconds
        interval: Fixed delay between checks in seconds

    Returns:
        The successful ReachabilityResult

    Raises:
        ConnectionTimeoutError: If the deadline elapses, carrying the last error
    """

    def before_sleep(retry_state: RetryCallState) -> None:
        """Log each failed attempt before sleeping."""
        result = retry_state.outcome.result() if retry_state.outcome else None
        logger.debug(
            "connection_not_ready",
            server=server,
            attempt=retry_state.attempt_number,
            error=str(result.error) if result and result.error else None,
        )

    retrying = Retrying(
        retry=retry_if_result(_not_reachable),
        stop=stop_after_delay(timeout),
        wait=wait_fixed(interval),
        before_sleep=before_sleep,
        retry_error_callback=lambda retry_state: retry_state.outcome.result(),
    )

    result = retrying(check)
    if not result.reachable:
        logger.warning(
            "connection_poll_timed_out",
            server=server,
            timeout=timeout,
            error=str(result.error) if result.error else None,
        )
        raise ConnectionTimeoutError(server, timeout, result.error)

    return result
