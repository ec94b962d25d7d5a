"""MLflow tracking-store gateway for deletion and run lookups.

Provides the ``MetadataGateway`` capability consumed by the cascade deleter
and a sync HTTP implementation over the MLflow REST API 2.0 (httpx).

No retries and no default timeout: both are left to the caller, who can pass
``timeout`` or inject a preconfigured ``httpx.Client``.

Environment variables:
- MLFLOW_TRACKING_URI: Base URL of the tracking server (required).
- MLFLOW_TRACKING_TOKEN: Bearer token (optional).
- MLFLOW_TRACKING_USERNAME / MLFLOW_TRACKING_PASSWORD: Basic auth (optional).
- MLFLOW_HTTP_REQUEST_TIMEOUT: Timeout in seconds (optional).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

import httpx

from mlflow_cleanup.config import CleanupConfig
from mlflow_cleanup.exceptions import RemoteError, TransportError
from mlflow_cleanup.models import RunSummary

logger = logging.getLogger(__name__)

_API_PREFIX = "/api/2.0/mlflow"
_JSON_HEADERS = {"Content-Type": "application/json"}


# ---------------------------------------------------------------------------
# Capability interface
# ---------------------------------------------------------------------------


class MetadataGateway(ABC):
    """Tracking-store operations needed by a delete cascade."""

    @abstractmethod
    def delete_experiment_record(self, experiment_id: str) -> None:
        """Mark an experiment deleted. Runs are not cascaded by the server."""

    @abstractmethod
    def delete_run_record(self, run_id: str) -> None:
        """Mark a single run deleted."""

    @abstractmethod
    def search_runs_by_experiment(self, experiment_id: str) -> list[RunSummary]:
        """Return the runs of an experiment in server order (may be empty)."""

    @abstractmethod
    def fetch_run(self, run_id: str) -> RunSummary:
        """Return a single run by id."""


# ---------------------------------------------------------------------------
# HTTP implementation
# ---------------------------------------------------------------------------


class MlflowTrackingClient(MetadataGateway):
    """Sync HTTP client for the MLflow tracking REST API.

    Non-2xx responses are decoded as ``{"error_code", "message"}`` and raised
    as ``RemoteError`` with the server message verbatim. Connection failures
    and undecodable bodies raise ``TransportError``.

    Args:
        base_url: Tracking server base URL. Defaults to config.tracking_uri.
        config: Cleanup settings; read from the environment if omitted.
        timeout: HTTP timeout in seconds; overrides config.request_timeout.
        http_client: Preconfigured httpx.Client. The caller keeps ownership
            and is responsible for closing it.
    """

    def __init__(
        self,
        base_url: str | None = None,
        config: CleanupConfig | None = None,
        timeout: float | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the tracking client configuration."""
        config = config or CleanupConfig.from_env()
        self.base_url: str = (base_url or config.tracking_uri).rstrip("/")
        if not self.base_url:
            raise ValueError(
                "MLflow tracking URI is required. "
                "Set MLFLOW_TRACKING_URI environment variable."
            )
        self.timeout = timeout if timeout is not None else config.request_timeout

        if http_client is not None:
            self._http = http_client
            self._owns_http = False
        else:
            self._http = httpx.Client(
                timeout=self.timeout,
                headers=_auth_headers(config),
                auth=_basic_auth(config),
            )
            self._owns_http = True

    # -- Context manager --------------------------------------------------

    def __enter__(self) -> "MlflowTrackingClient":
        """Enter context manager scope."""
        return self

    def __exit__(self, _exc_type: object, _exc: object, _tb: object) -> None:
        """Exit context manager scope and close resources."""
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http:
            self._http.close()

    # -- Public API --------------------------------------------------------

    def delete_experiment_record(self, experiment_id: str) -> None:
        """Delete an experiment record via ``experiments/delete``.

        Raises:
            RemoteError: If the server rejects the deletion.
            TransportError: On network or decoding failure.
        """
        self._request(
            "POST", "/experiments/delete", body={"experiment_id": experiment_id}
        )
        logger.info("Deleted experiment record %s", experiment_id)

    def delete_run_record(self, run_id: str) -> None:
        """Delete a run record via ``runs/delete``.

        Raises:
            RemoteError: If the server rejects the deletion.
            TransportError: On network or decoding failure.
        """
        self._request("POST", "/runs/delete", body={"run_id": run_id})
        logger.info("Deleted run record %s", run_id)

    def search_runs_by_experiment(self, experiment_id: str) -> list[RunSummary]:
        """Enumerate all runs of an experiment via ``runs/search``.

        Follows ``next_page_token`` until the server stops returning one.

        Returns:
            Run summaries in server order; empty if the experiment has none.

        Raises:
            RemoteError: If the server rejects the search.
            TransportError: On network or decoding failure.
        """
        body: dict[str, Any] = {"experiment_ids": [experiment_id]}
        runs: list[RunSummary] = []
        while True:
            data = self._request("POST", "/runs/search", body=body, expect_body=True)
            raw_runs = data.get("runs") or []
            if not isinstance(raw_runs, list):
                raise TransportError("Search response 'runs' is not a list")
            runs.extend(RunSummary.from_payload(item) for item in raw_runs)

            page_token = data.get("next_page_token")
            if not page_token:
                break
            body = {"experiment_ids": [experiment_id], "page_token": page_token}

        logger.debug("Experiment %s has %d run(s)", experiment_id, len(runs))
        return runs

    def fetch_run(self, run_id: str) -> RunSummary:
        """Fetch a single run via ``runs/get``.

        Raises:
            RemoteError: If the server rejects the lookup.
            TransportError: On network or decoding failure.
        """
        data = self._request(
            "GET", "/runs/get", params={"run_id": run_id}, expect_body=True
        )
        if "run" not in data:
            raise TransportError("Run response is missing 'run'")
        return RunSummary.from_payload(data["run"])

    # -- Internal ----------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        expect_body: bool = False,
    ) -> Mapping[str, Any]:
        """Send one request and map failures to the exception hierarchy."""
        url = f"{self.base_url}{_API_PREFIX}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self._http.request(
                method, url, json=body, params=params, headers=_JSON_HEADERS
            )
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        if not response.is_success:
            raise self._map_http_error(response)

        if not expect_body:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(f"Invalid JSON from {url}: {exc}") from exc
        if not isinstance(data, Mapping):
            raise TransportError(f"Expected a JSON object from {url}")
        return data

    @staticmethod
    def _map_http_error(response: httpx.Response) -> RemoteError | TransportError:
        """Map a non-2xx response to RemoteError using its error body."""
        status = response.status_code
        try:
            error = response.json()
        except ValueError as exc:
            return TransportError(
                f"Undecodable error body for status {status}: {exc}"
            )
        if not isinstance(error, Mapping):
            return TransportError(f"Unexpected error body for status {status}")

        error_code = error.get("error_code")
        message = error.get("message")
        return RemoteError(
            message=str(message) if message is not None else f"HTTP {status}",
            error_code=str(error_code) if error_code is not None else None,
            status_code=status,
        )


def _auth_headers(config: CleanupConfig) -> dict[str, str]:
    """Bearer token header, if a token is configured."""
    if config.tracking_token:
        return {"Authorization": f"Bearer {config.tracking_token}"}
    return {}


def _basic_auth(config: CleanupConfig) -> httpx.BasicAuth | None:
    """Basic auth, used only when no bearer token is configured."""
    if config.tracking_username and not config.tracking_token:
        return httpx.BasicAuth(config.tracking_username, config.tracking_password)
    return None


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def get_tracking_client(base_url: str | None = None) -> MlflowTrackingClient:
    """Create an MlflowTrackingClient using environment configuration.

    Raises ValueError if no tracking URI is given or set in the environment.

    Returns:
        Configured MlflowTrackingClient instance.
    """
    return MlflowTrackingClient(base_url=base_url)
