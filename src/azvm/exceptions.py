"""Exception hierarchy for azvm.

All errors raised by azvm derive from AzvmError so the CLI can report them
uniformly:
- OperationHandleError: the operation handle could not be located in a response
- TransportError: network or provider failure from the ARM transport
- UnrecognizedTerminalStatus: provider returned a status outside the known set
- ConfigError: a required default (subscription, group, vault) is missing
- CredentialError: credentials could not be created or a token acquired
"""


class AzvmError(Exception):
    """Base class for all azvm errors."""

    pass


# ============================================================================
# OPERATION HANDLE ERRORS
# ============================================================================


class OperationHandleError(AzvmError):
    """Raised when an operation handle cannot be derived from a response."""

    pass


class MissingOperationHandle(OperationHandleError):
    """Raised when neither Azure-AsyncOperation nor Location is present."""

    def __init__(self, message: str = "The response is missing a location header"):
        super().__init__(message)


class MalformedOperationHandle(OperationHandleError):
    """Raised when the located header value is not a well-formed URL."""

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Malformed operation URL '{value}': {reason}")


class InvalidOperationHandle(OperationHandleError):
    """Raised when the operation URL has no usable final path segment."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Operation URL has no operation id segment: {url}")


# ============================================================================
# TRANSPORT AND STATUS ERRORS
# ============================================================================


class TransportError(AzvmError):
    """Raised when a request to Azure Resource Manager fails."""

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class UnrecognizedTerminalStatus(AzvmError):
    """Raised (or reported) when a status string is outside the known set."""

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"Unrecognized operation status: {raw}")


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================


class ConfigError(AzvmError):
    """Raised when configuration operations fail."""

    pass


class NoSubscriptionError(ConfigError):
    """Raised when no subscription is given and none is configured."""

    def __init__(self):
        super().__init__("No subscription specified")


class NoResourceGroupError(ConfigError):
    """Raised when no resource group is given and none is configured."""

    def __init__(self):
        super().__init__("No resource group specified")


class NoVaultError(ConfigError):
    """Raised when no vault name is given and none is configured."""

    def __init__(self):
        super().__init__("No vault name specified")


class CredentialError(AzvmError):
    """Raised when credential creation or token acquisition fails."""

    pass


__all__ = [
    "AzvmError",
    "ConfigError",
    "CredentialError",
    "InvalidOperationHandle",
    "MalformedOperationHandle",
    "MissingOperationHandle",
    "NoResourceGroupError",
    "NoSubscriptionError",
    "NoVaultError",
    "OperationHandleError",
    "TransportError",
    "UnrecognizedTerminalStatus",
]
