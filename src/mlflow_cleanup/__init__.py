"""Cascade deletion of MLflow experiments, runs, and their stored artifacts."""

from mlflow_cleanup.artifact_store import (
    ArtifactStore,
    GcsArtifactStore,
    LocalArtifactStore,
    get_artifact_store,
)
from mlflow_cleanup.cascade import CascadeDeleter, delete_experiment, delete_run
from mlflow_cleanup.config import CleanupConfig
from mlflow_cleanup.exceptions import (
    ArtifactPathError,
    ArtifactStoreError,
    CleanupError,
    RemoteError,
    TransportError,
)
from mlflow_cleanup.models import ExperimentDeletionReport, RunSummary, RunTag
from mlflow_cleanup.tracking_client import (
    MetadataGateway,
    MlflowTrackingClient,
    get_tracking_client,
)

__version__ = "0.1.0"

__all__ = [
    "ArtifactPathError",
    "ArtifactStore",
    "ArtifactStoreError",
    "CascadeDeleter",
    "CleanupConfig",
    "CleanupError",
    "ExperimentDeletionReport",
    "GcsArtifactStore",
    "LocalArtifactStore",
    "MetadataGateway",
    "MlflowTrackingClient",
    "RemoteError",
    "RunSummary",
    "RunTag",
    "TransportError",
    "delete_experiment",
    "delete_run",
    "get_artifact_store",
    "get_tracking_client",
]
