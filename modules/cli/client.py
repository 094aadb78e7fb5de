"""
HTTP Client for the query service.

Provides an async HTTP client for the coroner REST API. Universe, project
and token travel as query-string parameters; query documents are JSON
bodies.
"""

import json
from typing import Any

import httpx

from modules.core.config import get_service_endpoint, get_settings
from modules.core.exceptions import ExternalServiceError
from modules.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


class CoronerClient:
    """
    HTTP client for query service communication.

    Features:
    - Endpoint, timeout and TLS verification from application.yaml
    - API token from config/.env unless given explicitly
    - Structured logging of requests/responses
    - Request-level errors raised as ExternalServiceError

    Usage:
        client = CoronerClient()
        result = await client.query("acme", "game", {"filter": [{}]})
        await client.close()
    """

    def __init__(
        self,
        endpoint: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        insecure: bool | None = None,
    ):
        """
        Initialize the client.

        Args:
            endpoint: Service base URL. If None, reads from config/settings/application.yaml.
            token: API token. If None, reads CORONER_TOKEN from config/.env.
            timeout: Request timeout in seconds. If None, reads from config.
            insecure: Skip TLS certificate verification. If None, reads from config.
        """
        try:
            config_endpoint, config_timeout, config_insecure = get_service_endpoint()
        except Exception as e:
            if endpoint is None:
                raise RuntimeError(
                    "Could not determine service endpoint from config/settings/application.yaml"
                ) from e
            config_endpoint, config_timeout, config_insecure = endpoint, DEFAULT_TIMEOUT, False

        if token is None:
            try:
                token = get_settings().coroner_token or None
            except Exception:
                token = None

        self.endpoint = (endpoint or config_endpoint).rstrip("/")
        self.token = token
        self.timeout = timeout if timeout is not None else config_timeout
        self.insecure = insecure if insecure is not None else config_insecure
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.endpoint,
                timeout=self.timeout,
                verify=not self.insecure,
                headers={"X-Frontend-ID": "cli"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _params(self, params: dict[str, Any]) -> dict[str, Any]:
        if self.token:
            return {"token": self.token, **params}
        return params

    async def post(self, path: str, params: dict[str, Any], body: Any) -> dict[str, Any]:
        """
        POST a JSON body and return the decoded JSON reply.

        Raises:
            ExternalServiceError: On transport failure, non-200 status,
                invalid JSON, or an ``error`` member in the reply.
        """
        client = await self._get_client()

        log_with_source(logger, "client", "debug", "API request", method="POST", path=path)

        try:
            response = await client.post(path, params=self._params(params), json=body)
        except httpx.HTTPError as e:
            log_with_source(
                logger, "client", "error", "API request failed", path=path, error=str(e),
            )
            raise ExternalServiceError(f"Request to {self.endpoint}{path} failed: {e}") from e

        log_with_source(
            logger,
            "client",
            "debug",
            "API response",
            path=path,
            status_code=response.status_code,
        )

        if response.status_code != 200:
            raise ExternalServiceError(f"HTTP {response.status_code}: {response.reason_phrase}")

        try:
            payload = response.json()
        except json.JSONDecodeError as e:
            raise ExternalServiceError(f"Server sent invalid JSON: {e}") from e

        if isinstance(payload, dict) and payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else None
            raise ExternalServiceError(message or str(error))

        return payload

    async def query(self, universe: str, project: str, document: dict[str, Any]) -> dict[str, Any]:
        """Run a query document against ``universe/project``."""
        return await self.post(
            "/api/query",
            {"universe": universe, "project": project},
            document,
        )

    async def describe(
        self, universe: str, project: str, table: str | None = None,
    ) -> dict[str, Any]:
        """Fetch the column description of ``universe/project``."""
        return await self.post(
            "/api/query",
            {"action": "describe", "universe": universe, "project": project},
            {"table": table} if table else {},
        )
