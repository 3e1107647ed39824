"""Converge a batch of resources to a target status by polling their state.

VM start and deallocate expose no usable operation handle, only the power
state reported in each VM's instance view. StatePollTracker re-reads the
state of every resource that has not converged yet, in a fixed order, and
moves matching resources out of the remaining set until it is empty.

There is no timeout: a resource that never reaches the target state keeps
the loop running.
"""

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

POWER_STATE_CODE = "PowerState"
UNKNOWN_POWER_STATE = "Unknown"
DEFAULT_POLL_INTERVAL = 2.0

ProgressCallback = Callable[[int, int, str], None]
StateQuery = Callable[[str], str | None]


@dataclass(frozen=True)
class TargetState:
    """Status text a resource must report to count as converged.

    Provider status text may carry prefixes, so matching is containment,
    not equality.
    """

    text: str

    def matches(self, status: str | None) -> bool:
        """Return True if the reported status contains the target text."""
        if not status:
            return False
        return self.text in status

    def __str__(self) -> str:
        return self.text


VM_RUNNING = TargetState("VM running")
VM_DEALLOCATED = TargetState("VM deallocated")


def power_state_from_statuses(statuses: Iterable[dict[str, Any]] | None) -> str:
    """Pick the power state display text from instance view statuses.

    Args:
        statuses: Instance view ``statuses`` entries (``code``/``displayStatus``)

    Returns:
        displayStatus of the first PowerState entry, or "Unknown"
    """
    for status in statuses or []:
        code = status.get("code") or ""
        if POWER_STATE_CODE in code:
            return status.get("displayStatus") or UNKNOWN_POWER_STATE
    return UNKNOWN_POWER_STATE


class ConvergenceSet:
    """Resources still awaiting the target status.

    Invariant: completed + len(remaining) == total after every update, and
    a resource leaves ``remaining`` at most once. ``done`` lists converged
    names in the order they converged.
    """

    def __init__(self, names: Iterable[str]):
        self._remaining: list[str] = list(dict.fromkeys(names))
        self.total = len(self._remaining)
        self.completed = 0
        self.rounds = 0
        self._done: list[str] = []

    @property
    def remaining(self) -> list[str]:
        """Names still awaiting the target status, in initial order."""
        return list(self._remaining)

    @property
    def done(self) -> list[str]:
        return list(self._done)

    @property
    def is_converged(self) -> bool:
        return not self._remaining

    def mark_done(self, names: Sequence[str]) -> None:
        """Move converged names out of the remaining set.

        Raises:
            ValueError: If a name is not currently remaining
        """
        for name in names:
            if name not in self._remaining:
                raise ValueError(f"'{name}' is not awaiting convergence")
            self._remaining.remove(name)
            self._done.append(name)
            self.completed += 1

    def __repr__(self) -> str:
        return (
            f"ConvergenceSet(completed={self.completed}, total={self.total}, "
            f"remaining={self._remaining!r})"
        )


class StatePollTracker:
    """Poll resource states until every resource matches the target."""

    def __init__(
        self,
        query: StateQuery,
        target: TargetState | str,
        interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize tracker.

        Args:
            query: Returns the current status text for a resource name
            target: Target status (plain strings are wrapped in TargetState)
            interval: Seconds to wait between rounds
            sleep: Function used to wait between rounds (injectable for tests)
        """
        self.query = query
        self.target = target if isinstance(target, TargetState) else TargetState(target)
        self.interval = interval
        self._sleep = sleep

    def run_round(self, convergence: ConvergenceSet) -> list[str]:
        """Query every remaining resource once and record the converged ones.

        Returns:
            Names that converged in this round
        """
        done = []
        for name in convergence.remaining:
            status = self.query(name)
            logger.debug(f"{name}: {status}")
            if self.target.matches(status):
                done.append(name)

        convergence.mark_done(done)
        convergence.rounds += 1
        return done

    def converge(
        self,
        names: Iterable[str],
        on_progress: ProgressCallback | None = None,
        label: str = "",
    ) -> ConvergenceSet:
        """Poll until every named resource reports the target status.

        Args:
            names: Resources to converge (duplicates ignored)
            on_progress: Called as (completed, total, label) after each round
            label: Passed through to on_progress

        Returns:
            The converged ConvergenceSet

        Raises:
            Any exception raised by the query function
        """
        convergence = ConvergenceSet(names)
        logger.info(f"Waiting for {convergence.total} resource(s) to reach '{self.target}'")

        while not convergence.is_converged:
            done = self.run_round(convergence)
            if done:
                logger.info(f"Reached '{self.target}': {', '.join(done)}")

            if on_progress:
                on_progress(convergence.completed, convergence.total, label)

            if convergence.is_converged:
                break
            self._sleep(self.interval)

        return convergence


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "VM_DEALLOCATED",
    "VM_RUNNING",
    "ConvergenceSet",
    "ProgressCallback",
    "StatePollTracker",
    "TargetState",
    "power_state_from_statuses",
]
