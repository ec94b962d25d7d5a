"""Data types for tracking-store runs and cascade deletion results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from mlflow_cleanup.exceptions import TransportError


@dataclass(frozen=True)
class RunTag:
    """A single key/value tag attached to a run."""

    key: str
    value: str


@dataclass(frozen=True)
class RunSummary:
    """The subset of run fields needed to drive deletion.

    Attributes:
        run_id: Run identifier.
        experiment_id: Identifier of the owning experiment.
        user_id: User who created the run.
        lifecycle_stage: "active" or "deleted".
        artifact_uri: Scheme-qualified root of the run's artifacts
            (e.g. gs://bucket/1/abc123/artifacts).
        tags: Run tags in server order.
    """

    run_id: str
    experiment_id: str = ""
    user_id: str = ""
    lifecycle_stage: str = ""
    artifact_uri: str = ""
    tags: list[RunTag] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: object) -> RunSummary:
        """Build a RunSummary from a REST ``{info: {...}, data: {...}}`` object.

        Raises:
            TransportError: If the payload does not have the expected shape.
        """
        if not isinstance(payload, Mapping):
            raise TransportError(f"Run payload is not an object: {payload!r}")
        info = payload.get("info")
        if not isinstance(info, Mapping):
            raise TransportError("Run payload is missing 'info'")
        run_id = info.get("run_id")
        if not isinstance(run_id, str) or not run_id:
            raise TransportError("Run payload is missing 'info.run_id'")

        data = payload.get("data") or {}
        if not isinstance(data, Mapping):
            raise TransportError("Run payload 'data' is not an object")
        raw_tags = data.get("tags") or []
        tags: list[RunTag] = []
        for tag in raw_tags:
            if not isinstance(tag, Mapping):
                raise TransportError(f"Run tag is not an object: {tag!r}")
            tags.append(
                RunTag(key=str(tag.get("key", "")), value=str(tag.get("value", "")))
            )

        return cls(
            run_id=run_id,
            experiment_id=str(info.get("experiment_id", "")),
            user_id=str(info.get("user_id", "")),
            lifecycle_stage=str(info.get("lifecycle_stage", "")),
            artifact_uri=str(info.get("artifact_uri", "")),
            tags=tags,
        )


@dataclass
class ExperimentDeletionReport:
    """Outcome of an experiment cascade.

    Run deletions are best-effort, so the experiment call can succeed while
    individual runs failed. ``failed_runs`` maps run id to error message.

    Attributes:
        experiment_id: Experiment that was deleted.
        deleted_run_ids: Runs whose metadata was deleted, in search order.
        failed_runs: Runs whose deletion failed, with the error message.
        artifact_path: Storage prefix deleted, or None if no artifact
            deletion was attempted.
    """

    experiment_id: str
    deleted_run_ids: list[str] = field(default_factory=list)
    failed_runs: dict[str, str] = field(default_factory=dict)
    artifact_path: str | None = None

    @property
    def failed_run_ids(self) -> list[str]:
        """Run ids that could not be deleted, in search order."""
        return list(self.failed_runs)

    @property
    def has_failures(self) -> bool:
        """True if at least one run deletion failed."""
        return bool(self.failed_runs)
