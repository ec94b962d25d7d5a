"""Shared fixtures: in-memory tracking gateway and recording artifact store."""

from __future__ import annotations

import pytest

from mlflow_cleanup.artifact_store import ArtifactStore
from mlflow_cleanup.exceptions import ArtifactStoreError, RemoteError
from mlflow_cleanup.models import RunSummary
from mlflow_cleanup.tracking_client import MetadataGateway


class FakeGateway(MetadataGateway):
    """In-memory MetadataGateway recording every call in order.

    ``failing`` maps an operation name to the ids for which it raises
    RemoteError, e.g. {"delete_run_record": {"r2"}}.
    """

    def __init__(self, runs: dict[str, list[RunSummary]] | None = None) -> None:
        self.runs = runs or {}
        self.calls: list[tuple[str, str]] = []
        self.failing: dict[str, set[str]] = {}
        self.deleted_runs: set[str] = set()
        self.deleted_experiments: set[str] = set()

    def _record(self, op: str, ident: str) -> None:
        self.calls.append((op, ident))
        if ident in self.failing.get(op, set()):
            raise RemoteError(
                f"{op} failed for {ident}",
                error_code="INTERNAL_ERROR",
                status_code=500,
            )

    def delete_experiment_record(self, experiment_id: str) -> None:
        self._record("delete_experiment_record", experiment_id)
        self.deleted_experiments.add(experiment_id)

    def delete_run_record(self, run_id: str) -> None:
        self._record("delete_run_record", run_id)
        self.deleted_runs.add(run_id)

    def search_runs_by_experiment(self, experiment_id: str) -> list[RunSummary]:
        self._record("search_runs_by_experiment", experiment_id)
        return list(self.runs.get(experiment_id, []))

    def fetch_run(self, run_id: str) -> RunSummary:
        self._record("fetch_run", run_id)
        for runs in self.runs.values():
            for run in runs:
                if run.run_id == run_id:
                    return run
        raise RemoteError(
            "Run not found", error_code="RESOURCE_DOES_NOT_EXIST", status_code=404
        )

    def ops(self) -> list[str]:
        """Operation names in call order."""
        return [op for op, _ in self.calls]


class RecordingArtifactStore(ArtifactStore):
    """ArtifactStore that records deleted paths; paths in ``failing`` raise."""

    def __init__(self) -> None:
        self.deleted: list[str] = []
        self.failing: set[str] = set()

    def delete(self, path: str) -> None:
        if path in self.failing:
            raise ArtifactStoreError(f"Failed to delete {path}")
        self.deleted.append(path)


def make_run(
    run_id: str, experiment_id: str = "7", bucket: str = "ml-bucket"
) -> RunSummary:
    """RunSummary with the default MLflow GCS artifact layout."""
    return RunSummary(
        run_id=run_id,
        experiment_id=experiment_id,
        user_id="alice",
        lifecycle_stage="active",
        artifact_uri=f"gs://{bucket}/mlruns/{experiment_id}/{run_id}/artifacts",
    )


@pytest.fixture
def fake_gateway() -> FakeGateway:
    """Gateway with experiment "7" holding runs r1, r2, r3 and empty experiment "8"."""
    return FakeGateway(
        runs={
            "7": [make_run("r1"), make_run("r2"), make_run("r3")],
            "8": [],
        }
    )


@pytest.fixture
def artifact_store() -> RecordingArtifactStore:
    """Artifact store that records deletions."""
    return RecordingArtifactStore()
