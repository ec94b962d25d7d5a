"""Cascade deletion of MLflow experiments and runs with their artifacts.

Metadata is always deleted before artifacts. A failure between the two steps
can leave orphaned blobs, but artifacts are never removed while their
metadata record survives.

Experiment cascades are best-effort across runs: every run is attempted, and
each outcome lands in the report's deleted or failed collection. Artifacts of
an experiment are removed once, at the experiment prefix, not per run.
"""

from __future__ import annotations

import logging

from mlflow_cleanup.artifact_paths import experiment_artifact_root, strip_scheme
from mlflow_cleanup.artifact_store import ArtifactStore, get_artifact_store
from mlflow_cleanup.config import CleanupConfig
from mlflow_cleanup.exceptions import CleanupError
from mlflow_cleanup.models import ExperimentDeletionReport
from mlflow_cleanup.tracking_client import MetadataGateway, MlflowTrackingClient

logger = logging.getLogger(__name__)


class CascadeDeleter:
    """Delete experiments and runs through a gateway and an artifact store.

    Holds no state between calls; both collaborators are injected.
    """

    def __init__(self, gateway: MetadataGateway, artifact_store: ArtifactStore) -> None:
        self._gateway = gateway
        self._artifact_store = artifact_store

    def delete_run(self, run_id: str, delete_artifact: bool = False) -> None:
        """Delete a run record and, optionally, its artifact root.

        The artifact URI is fetched by id after the record is deleted, never
        carried over from an earlier lookup.

        Raises:
            RemoteError: If the tracking server rejects a call.
            TransportError: On network or decoding failure.
            ArtifactPathError: If the run's artifact URI is malformed.
            ArtifactStoreError: If artifact deletion fails. The run record
                stays deleted.
        """
        self._gateway.delete_run_record(run_id)
        if not delete_artifact:
            return

        run = self._gateway.fetch_run(run_id)
        path = strip_scheme(run.artifact_uri)
        logger.info("Deleting artifacts of run %s at %s", run_id, path)
        self._artifact_store.delete(path)

    def delete_experiment(
        self, experiment_id: str, delete_artifact: bool = False
    ) -> ExperimentDeletionReport:
        """Delete an experiment, all of its runs, and optionally its artifacts.

        Run-level failures are recorded in the report and logged as warnings;
        they do not fail the call.

        Returns:
            ExperimentDeletionReport with per-run outcomes.

        Raises:
            RemoteError: If deleting the experiment or searching its runs fails.
            TransportError: On network or decoding failure in those calls.
            ArtifactPathError: If the first run's artifact URI is malformed.
            ArtifactStoreError: If the experiment artifact deletion fails.
        """
        self._gateway.delete_experiment_record(experiment_id)
        runs = self._gateway.search_runs_by_experiment(experiment_id)

        report = ExperimentDeletionReport(experiment_id=experiment_id)
        for run in runs:
            try:
                self.delete_run(run.run_id, delete_artifact=False)
            except CleanupError as exc:
                logger.warning(
                    "Failed to delete run %s of experiment %s: %s",
                    run.run_id,
                    experiment_id,
                    exc,
                )
                report.failed_runs[run.run_id] = exc.message
            else:
                report.deleted_run_ids.append(run.run_id)

        if report.has_failures:
            logger.warning(
                "Experiment %s: deleted %d run(s), %d failed: %s",
                experiment_id,
                len(report.deleted_run_ids),
                len(report.failed_runs),
                ", ".join(report.failed_run_ids),
            )
        else:
            logger.info(
                "Experiment %s: deleted %d run(s)",
                experiment_id,
                len(report.deleted_run_ids),
            )

        if delete_artifact and runs:
            root = experiment_artifact_root(runs[0].artifact_uri)
            logger.info(
                "Deleting artifacts of experiment %s at %s", experiment_id, root
            )
            self._artifact_store.delete(root)
            report.artifact_path = root

        return report


# ---------------------------------------------------------------------------
# Convenience entry points
# ---------------------------------------------------------------------------


def delete_experiment(
    experiment_id: str,
    delete_artifact: bool = False,
    tracking_uri: str | None = None,
) -> ExperimentDeletionReport:
    """Delete an experiment using environment configuration.

    Args:
        experiment_id: Experiment to delete.
        delete_artifact: Also delete the experiment's artifact prefix.
        tracking_uri: Overrides MLFLOW_TRACKING_URI.
    """
    config = CleanupConfig.from_env()
    with MlflowTrackingClient(base_url=tracking_uri, config=config) as client:
        deleter = CascadeDeleter(client, get_artifact_store(config))
        return deleter.delete_experiment(experiment_id, delete_artifact=delete_artifact)


def delete_run(
    run_id: str,
    delete_artifact: bool = False,
    tracking_uri: str | None = None,
) -> None:
    """Delete a run using environment configuration.

    Args:
        run_id: Run to delete.
        delete_artifact: Also delete the run's artifact root.
        tracking_uri: Overrides MLFLOW_TRACKING_URI.
    """
    config = CleanupConfig.from_env()
    with MlflowTrackingClient(base_url=tracking_uri, config=config) as client:
        CascadeDeleter(client, get_artifact_store(config)).delete_run(
            run_id, delete_artifact=delete_artifact
        )
