"""Locate the pollable operation behind an asynchronous ARM request.

Azure Resource Manager accepts long-running requests with 202/201 and
points at the operation through response headers:

- Azure-AsyncOperation: operation status URL (preferred)
- Location: operation result URL (fallback)
- Retry-After: seconds to wait before the first poll

The operation id used by the typed status endpoints is the final path
segment of the chosen URL.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlsplit

from requests.structures import CaseInsensitiveDict

from azvm.exceptions import (
    InvalidOperationHandle,
    MalformedOperationHandle,
    MissingOperationHandle,
)

logger = logging.getLogger(__name__)

ASYNC_OPERATION_HEADER = "azure-asyncoperation"
LOCATION_HEADER = "location"
RETRY_AFTER_HEADER = "retry-after"

DEFAULT_RETRY_AFTER = 60.0


@dataclass(frozen=True)
class OperationHandle:
    """Reference to an in-flight long-running operation."""

    id: str
    poll_url: str
    retry_after: float = DEFAULT_RETRY_AFTER


def locate_operation(
    headers: Mapping[str, str], default_retry_after: float = DEFAULT_RETRY_AFTER
) -> OperationHandle:
    """Build an OperationHandle from submission response headers.

    Args:
        headers: Response headers (looked up case-insensitively)
        default_retry_after: Interval used when Retry-After is absent or unparseable

    Returns:
        OperationHandle for the located operation

    Raises:
        MissingOperationHandle: Neither Azure-AsyncOperation nor Location present
        MalformedOperationHandle: Located value is not a well-formed URL
        InvalidOperationHandle: URL has an empty final path segment
    """
    lookup = CaseInsensitiveDict(headers or {})

    value = lookup.get(ASYNC_OPERATION_HEADER) or lookup.get(LOCATION_HEADER)
    if not value:
        raise MissingOperationHandle()

    poll_url = _validate_url(value)
    operation_id = operation_id_from_url(poll_url)
    retry_after = parse_retry_after(lookup.get(RETRY_AFTER_HEADER), default_retry_after)

    logger.debug(f"Located operation {operation_id} (first poll in {retry_after:g}s)")
    return OperationHandle(id=operation_id, poll_url=poll_url, retry_after=retry_after)


def operation_id_from_url(url: str) -> str:
    """Return the final '/'-delimited path segment of an operation URL.

    Raises:
        InvalidOperationHandle: If the final segment is empty
    """
    path = urlsplit(url).path
    segment = path.split("/")[-1] if path else ""
    if not segment:
        raise InvalidOperationHandle(url)
    return segment


def parse_retry_after(value: str | None, default: float = DEFAULT_RETRY_AFTER) -> float:
    """Parse a Retry-After header given in whole seconds.

    Absent, negative or non-integer values fall back to ``default``.
    """
    if value is None:
        return default
    try:
        seconds = int(str(value).strip())
    except ValueError:
        logger.debug(f"Ignoring unparseable Retry-After: {value!r}")
        return default
    if seconds < 0:
        return default
    return float(seconds)


def _validate_url(value: str) -> str:
    value = value.strip()
    try:
        parts = urlsplit(value)
        # Accessing port validates the netloc
        _ = parts.port
    except ValueError as e:
        raise MalformedOperationHandle(value, str(e)) from e

    if not parts.scheme:
        raise MalformedOperationHandle(value, "relative URL without a base")
    if parts.scheme not in ("http", "https"):
        raise MalformedOperationHandle(value, f"unsupported scheme '{parts.scheme}'")
    if not parts.netloc:
        raise MalformedOperationHandle(value, "missing host")
    return value


__all__ = [
    "DEFAULT_RETRY_AFTER",
    "OperationHandle",
    "locate_operation",
    "operation_id_from_url",
    "parse_retry_after",
]
