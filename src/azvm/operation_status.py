"""Operation status values reported by Azure long-running operations.

The provider reports an operation's progress as a free-form status string.
OperationStatus.parse() maps it onto a closed set of states:

- Succeeded, Failed, Canceled, Invalid: terminal
- InProgress: not terminal, keep polling
- anything else: UNKNOWN, terminal by policy so an unrecognized value
  can never keep a poll loop alive forever

An absent status parses to None, which callers treat like InProgress.
"""

from dataclasses import dataclass
from enum import Enum

from azvm.exceptions import UnrecognizedTerminalStatus


class OperationState(str, Enum):
    """Closed set of operation states."""

    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    IN_PROGRESS = "InProgress"
    CANCELED = "Canceled"
    INVALID = "Invalid"
    UNKNOWN = "Unknown"


_KNOWN_STATES = {
    "succeeded": OperationState.SUCCEEDED,
    "failed": OperationState.FAILED,
    "inprogress": OperationState.IN_PROGRESS,
    "canceled": OperationState.CANCELED,
    "cancelled": OperationState.CANCELED,
    "invalid": OperationState.INVALID,
}

_NON_TERMINAL = {OperationState.IN_PROGRESS}


@dataclass(frozen=True)
class OperationStatus:
    """A parsed operation status plus the provider's raw text."""

    state: OperationState
    raw: str

    @classmethod
    def parse(cls, value: str | None) -> "OperationStatus | None":
        """Parse a provider status string.

        Args:
            value: Status text from the provider, or None if absent

        Returns:
            OperationStatus, or None when no status was reported
        """
        if value is None:
            return None
        text = str(value).strip()
        if not text:
            return None
        state = _KNOWN_STATES.get(text.lower(), OperationState.UNKNOWN)
        return cls(state=state, raw=text)

    @classmethod
    def of(cls, state: OperationState) -> "OperationStatus":
        """Build a status for a known state."""
        return cls(state=state, raw=state.value)

    @property
    def is_terminal(self) -> bool:
        """Whether polling should stop at this status."""
        return self.state not in _NON_TERMINAL

    @property
    def succeeded(self) -> bool:
        return self.state == OperationState.SUCCEEDED

    @property
    def is_unknown(self) -> bool:
        return self.state == OperationState.UNKNOWN

    def unknown_error(self) -> UnrecognizedTerminalStatus | None:
        """Return an UnrecognizedTerminalStatus for UNKNOWN statuses, else None."""
        if self.is_unknown:
            return UnrecognizedTerminalStatus(self.raw)
        return None

    def __str__(self) -> str:
        if self.is_unknown:
            return f"Unknown value: {self.raw}"
        return self.state.value


def is_terminal(status: OperationStatus | None) -> bool:
    """Terminal predicate for a possibly-absent status."""
    return status is not None and status.is_terminal


__all__ = ["OperationState", "OperationStatus", "is_terminal"]
