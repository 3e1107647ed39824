"""Configuration for retry and polling behavior.

This module provides tunable settings for:
- Transport retries of transient ARM failures (throttling, 5xx, network)
- Polling intervals used while waiting on long-running operations

Defaults work out of the box; every value can be overridden via env vars.
"""

import os
from dataclasses import dataclass

from azvm.operation_locator import DEFAULT_RETRY_AFTER
from azvm.state_tracker import DEFAULT_POLL_INTERVAL


@dataclass
class RetryConfig:
    """Retry configuration for ARM requests.

    These settings apply to individual HTTP requests only. Operation
    polling never retries a failed status query.
    """

    arm_max_attempts: int = 3
    arm_initial_delay: float = 1.0
    arm_max_delay: float = 30.0
    jitter_enabled: bool = True

    # Polling
    vm_poll_interval: float = DEFAULT_POLL_INTERVAL
    default_retry_after: float = DEFAULT_RETRY_AFTER

    # HTTP
    request_timeout: float = 30.0

    @classmethod
    def from_environment(cls) -> "RetryConfig":
        """Load retry configuration from environment variables.

        Environment variables (all optional):
            AZVM_RETRY_MAX_ATTEMPTS: Max attempts per ARM request (default: 3)
            AZVM_RETRY_INITIAL_DELAY: Initial backoff in seconds (default: 1.0)
            AZVM_RETRY_MAX_DELAY: Backoff cap in seconds (default: 30.0)
            AZVM_RETRY_JITTER_ENABLED: Enable jitter (default: true)
            AZVM_VM_POLL_INTERVAL: Seconds between VM state rounds (default: 2)
            AZVM_DEFAULT_RETRY_AFTER: First poll delay without Retry-After (default: 60)
            AZVM_REQUEST_TIMEOUT: HTTP timeout in seconds (default: 30)

        Returns:
            RetryConfig with values from environment or defaults
        """
        return cls(
            arm_max_attempts=int(os.getenv("AZVM_RETRY_MAX_ATTEMPTS", "3")),
            arm_initial_delay=float(os.getenv("AZVM_RETRY_INITIAL_DELAY", "1.0")),
            arm_max_delay=float(os.getenv("AZVM_RETRY_MAX_DELAY", "30.0")),
            jitter_enabled=os.getenv("AZVM_RETRY_JITTER_ENABLED", "true").lower() == "true",
            vm_poll_interval=float(
                os.getenv("AZVM_VM_POLL_INTERVAL", str(DEFAULT_POLL_INTERVAL))
            ),
            default_retry_after=float(
                os.getenv("AZVM_DEFAULT_RETRY_AFTER", str(DEFAULT_RETRY_AFTER))
            ),
            request_timeout=float(os.getenv("AZVM_REQUEST_TIMEOUT", "30.0")),
        )


# Global configuration instance (lazily loaded)
_config: RetryConfig | None = None


def get_retry_config() -> RetryConfig:
    """Get global retry configuration.

    Returns:
        RetryConfig instance (loaded from environment on first access)
    """
    global _config
    if _config is None:
        _config = RetryConfig.from_environment()
    return _config


def reset_retry_config() -> None:
    """Reset global retry configuration.

    Forces reload from environment on next access.
    """
    global _config
    _config = None


__all__ = ["RetryConfig", "get_retry_config", "reset_retry_config"]
