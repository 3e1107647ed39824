"""Drive a located long-running operation to a terminal status.

The poller sleeps for the handle's interval before every status query and
keeps the same interval for the whole operation (no backoff, no jitter, no
deadline). Only one query is ever outstanding. Transport errors raised by
the query function are not retried here; they propagate to the caller.

Two terminal predicates are supported:
- poll(): the query returns an OperationStatus, terminal per OperationStatus
- wait_for_no_content(): the query returns an HTTP status code, 204 is terminal
"""

import logging
import time
from collections.abc import Callable
from http import HTTPStatus

from azvm.operation_locator import OperationHandle
from azvm.operation_status import OperationStatus, is_terminal

logger = logging.getLogger(__name__)

StatusQuery = Callable[[], OperationStatus | None]
StatusCodeQuery = Callable[[], int]


class LroPoller:
    """Poll a single operation until it reaches a terminal state."""

    def __init__(self, sleep: Callable[[float], None] = time.sleep):
        """Initialize poller.

        Args:
            sleep: Function used to wait between polls (injectable for tests)
        """
        self._sleep = sleep

    def poll(self, handle: OperationHandle, query: StatusQuery) -> OperationStatus:
        """Poll until the operation reports a terminal status.

        Args:
            handle: Located operation (interval taken from handle.retry_after)
            query: Performs one remote status query; None means no status yet

        Returns:
            The terminal OperationStatus

        Raises:
            TransportError: Propagated unchanged from query
        """
        attempt = 0
        while True:
            self._sleep(handle.retry_after)
            attempt += 1

            status = query()

            if is_terminal(status):
                logger.debug(f"Operation {handle.id} finished after {attempt} poll(s): {status}")
                return status  # type: ignore[return-value]

            logger.debug(
                f"Operation {handle.id} still {status or 'pending'} (poll {attempt}), "
                f"retrying in {handle.retry_after:g}s"
            )

    def wait_for_no_content(self, handle: OperationHandle, query: StatusCodeQuery) -> int:
        """Poll until the query returns HTTP 204 No Content.

        Any other status code means the operation is not done yet.

        Returns:
            Number of polls performed
        """
        attempt = 0
        while True:
            self._sleep(handle.retry_after)
            attempt += 1

            status_code = query()

            if status_code == HTTPStatus.NO_CONTENT:
                logger.debug(f"Operation {handle.id} completed after {attempt} poll(s)")
                return attempt

            logger.debug(f"Operation {handle.id} returned {status_code} (poll {attempt})")


__all__ = ["LroPoller", "StatusCodeQuery", "StatusQuery"]
