"""Azure Resource Manager transport.

Thin wrapper around requests that:
- Authenticates with an Azure Identity credential (bearer token)
- Adds api-version to every request
- Retries transient failures (network errors, 408/429/5xx) with backoff
- Returns status code + case-insensitive headers + JSON body
- Follows nextLink paging for list calls

Every failure surfaces as TransportError (or CredentialError when no token
can be acquired), after the transport's own retries are exhausted.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import requests
from requests.structures import CaseInsensitiveDict

from azvm.exceptions import CredentialError, TransportError
from azvm.retry_config import RetryConfig, get_retry_config
from azvm.retry_handler import (
    RetryableHttpError,
    retry_with_exponential_backoff,
    safe_error_message,
    should_retry_http_error,
)

logger = logging.getLogger(__name__)

ARM_ENDPOINT = "https://management.azure.com"
ARM_SCOPE = "https://management.azure.com/.default"


@dataclass
class ArmResponse:
    """Result of a single ARM request."""

    status_code: int
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: Any = None
    url: str = ""

    def json(self) -> dict[str, Any]:
        """Return the body as a dict (empty when the response had no body)."""
        return self.body if isinstance(self.body, dict) else {}


class ArmClient:
    """Issue authenticated requests against Azure Resource Manager."""

    def __init__(
        self,
        credential: Any,
        endpoint: str = ARM_ENDPOINT,
        session: requests.Session | None = None,
        retry_config: RetryConfig | None = None,
    ):
        """Initialize client.

        Args:
            credential: Azure Identity TokenCredential
            endpoint: ARM endpoint (override for sovereign clouds)
            session: requests session (created if not supplied)
            retry_config: Retry settings (defaults from environment)
        """
        self.credential = credential
        self.endpoint = endpoint.rstrip("/")
        self.session = session or requests.Session()
        self.retry_config = retry_config or get_retry_config()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, path: str, api_version: str, params: dict[str, str] | None = None) -> ArmResponse:
        return self.request("GET", path, api_version, params=params)

    def post(self, path: str, api_version: str, body: Any = None) -> ArmResponse:
        return self.request("POST", path, api_version, body=body)

    def put(self, path: str, api_version: str, body: Any) -> ArmResponse:
        return self.request("PUT", path, api_version, body=body)

    def get_json(
        self, path: str, api_version: str, params: dict[str, str] | None = None
    ) -> dict[str, Any]:
        return self.get(path, api_version, params=params).json()

    def list_values(
        self, path: str, api_version: str, params: dict[str, str] | None = None
    ) -> list[dict[str, Any]]:
        """Collect ``value`` entries across all pages of a list call."""
        items: list[dict[str, Any]] = []
        page = self.get_json(path, api_version, params=params)

        while True:
            items.extend(page.get("value") or [])
            next_link = page.get("nextLink")
            if not next_link:
                break
            page = self.get_json(next_link, api_version)

        return items

    def request(
        self,
        method: str,
        path: str,
        api_version: str,
        params: dict[str, str] | None = None,
        body: Any = None,
    ) -> ArmResponse:
        """Send a request, retrying transient failures.

        Args:
            method: HTTP method
            path: ARM path (``/subscriptions/...``) or an absolute URL
            api_version: api-version query parameter (skipped if the URL has one)
            params: Extra query parameters
            body: JSON body

        Returns:
            ArmResponse for any 2xx response

        Raises:
            TransportError: Network failure or non-2xx response
            CredentialError: Token acquisition failed
        """
        url = self._url(path)
        query = dict(params or {})
        if "api-version=" not in url:
            query["api-version"] = api_version

        config = self.retry_config

        @retry_with_exponential_backoff(
            max_attempts=config.arm_max_attempts,
            initial_delay=config.arm_initial_delay,
            max_delay=config.arm_max_delay,
            jitter=config.jitter_enabled,
        )
        def _send() -> requests.Response:
            response = self.session.request(
                method,
                url,
                params=query,
                json=body,
                headers=self._headers(),
                timeout=config.request_timeout,
            )
            if should_retry_http_error(response.status_code):
                raise RetryableHttpError(
                    response.status_code,
                    _error_message(response),
                    retry_after=_throttle_delay(response),
                )
            return response

        logger.debug(f"{method} {url}")
        try:
            response = _send()
        except RetryableHttpError as e:
            raise TransportError(
                f"{method} {url} failed with HTTP {e.status_code}: {e}",
                status_code=e.status_code,
                url=url,
            ) from e
        except requests.RequestException as e:
            raise TransportError(
                f"{method} {url} failed: {safe_error_message(e)}", url=url
            ) from e

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"{method} {url} failed with HTTP {response.status_code}: "
                f"{_error_message(response)}",
                status_code=response.status_code,
                url=url,
            )

        return ArmResponse(
            status_code=response.status_code,
            headers=CaseInsensitiveDict(response.headers),
            body=_json_or_none(response),
            url=url,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.endpoint}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        try:
            token = self.credential.get_token(ARM_SCOPE).token
        except Exception as e:
            raise CredentialError(
                f"Failed to acquire Azure access token: {safe_error_message(e)}"
            ) from e
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }


def _json_or_none(response: requests.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(response: requests.Response) -> str:
    """Extract the ARM error message (``error.message``) from a response."""
    body = _json_or_none(response)
    if isinstance(body, dict):
        error = body.get("error") or {}
        if isinstance(error, dict) and error.get("message"):
            code = error.get("code")
            return f"{code}: {error['message']}" if code else str(error["message"])
    return safe_error_message(response.text or response.reason or "")


def _throttle_delay(response: requests.Response) -> float | None:
    if response.status_code != 429:
        return None
    value = response.headers.get("retry-after")
    if value is None:
        return None
    # Only whole seconds override the backoff delay
    try:
        seconds = int(str(value).strip())
    except ValueError:
        return None
    return float(seconds) if seconds >= 0 else None


__all__ = ["ARM_ENDPOINT", "ARM_SCOPE", "ArmClient", "ArmResponse"]
