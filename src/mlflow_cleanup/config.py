"""Configuration for tracking-store and artifact-store cleanup.

Env var names follow the MLflow client where one exists, so the same
environment drives both the MLflow SDK and this package.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_ARTIFACT_BACKENDS = {"gcs", "local"}


@dataclass(frozen=True)
class CleanupConfig:
    """Settings for the tracking client and the artifact store.

    Attributes:
        tracking_uri: Base URL of the MLflow tracking server.
        tracking_token: Bearer token for the tracking server (optional).
        tracking_username: Basic-auth user for the tracking server (optional).
        tracking_password: Basic-auth password for the tracking server.
        request_timeout: HTTP timeout in seconds, or None for no timeout.
        artifact_backend: Artifact store backend ("gcs" or "local").
        local_artifact_root: Root directory for the local backend.
        gcp_project_id: GCP project for the storage client (optional).
    """

    tracking_uri: str = ""
    tracking_token: str = ""
    tracking_username: str = ""
    tracking_password: str = ""
    request_timeout: float | None = None
    artifact_backend: str = "gcs"
    local_artifact_root: str = "mlruns"
    gcp_project_id: str = ""

    @classmethod
    def from_env(cls) -> "CleanupConfig":
        """Create CleanupConfig from environment variables."""
        backend = (os.getenv("ARTIFACT_STORE_BACKEND") or "gcs").strip().lower()
        if backend not in _ARTIFACT_BACKENDS:
            raise ValueError(
                f"Unsupported ARTIFACT_STORE_BACKEND: {backend!r}. "
                f"Use one of: {', '.join(sorted(_ARTIFACT_BACKENDS))}"
            )

        return cls(
            tracking_uri=os.getenv("MLFLOW_TRACKING_URI", "").strip(),
            tracking_token=os.getenv("MLFLOW_TRACKING_TOKEN", ""),
            tracking_username=os.getenv("MLFLOW_TRACKING_USERNAME", ""),
            tracking_password=os.getenv("MLFLOW_TRACKING_PASSWORD", ""),
            request_timeout=_parse_timeout(os.getenv("MLFLOW_HTTP_REQUEST_TIMEOUT")),
            artifact_backend=backend,
            local_artifact_root=os.getenv("LOCAL_ARTIFACT_ROOT") or "mlruns",
            gcp_project_id=os.getenv("GCP_PROJECT_ID", ""),
        )


def _parse_timeout(value: str | None) -> float | None:
    """Parse a timeout in seconds; None when unset, invalid, or non-positive."""
    if not value:
        return None
    try:
        timeout = float(value)
    except ValueError:
        return None
    return timeout if timeout > 0 else None
