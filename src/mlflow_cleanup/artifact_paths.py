"""Artifact URI to storage path conversion.

Artifact URIs are assumed to carry a 5-character scheme prefix such as
``gs://`` or ``s3://``. The storage path is what follows it:
``gs://bucket/mlruns/<experiment>/<run>/artifacts`` ->
``bucket/mlruns/<experiment>/<run>/artifacts``.
"""

from __future__ import annotations

from mlflow_cleanup.exceptions import ArtifactPathError

SCHEME_PREFIX_LENGTH = 5
EXPERIMENT_ROOT_SEGMENTS = 3


def strip_scheme(artifact_uri: str) -> str:
    """Return the storage-relative path of an artifact URI.

    Raises:
        ArtifactPathError: If the URI is too short or has no scheme separator
            within the prefix.
    """
    if len(artifact_uri) <= SCHEME_PREFIX_LENGTH:
        raise ArtifactPathError(f"Artifact URI too short: {artifact_uri!r}")
    if ":" not in artifact_uri[:SCHEME_PREFIX_LENGTH]:
        raise ArtifactPathError(f"Artifact URI has no scheme prefix: {artifact_uri!r}")
    return artifact_uri[SCHEME_PREFIX_LENGTH:]


def experiment_artifact_root(artifact_uri: str) -> str:
    """Derive the experiment-level prefix from one of its runs' artifact URIs.

    ``gs://bucket/mlruns/7/<run>/artifacts`` -> ``bucket/mlruns/7``: the path
    is split into at most four segments and the first three are kept.

    Raises:
        ArtifactPathError: If the path has fewer than four segments or one of
            the kept segments is empty.
    """
    path = strip_scheme(artifact_uri)
    segments = path.split("/", EXPERIMENT_ROOT_SEGMENTS)
    if len(segments) <= EXPERIMENT_ROOT_SEGMENTS:
        raise ArtifactPathError(
            f"Artifact URI needs at least {EXPERIMENT_ROOT_SEGMENTS + 1} path "
            f"segments: {artifact_uri!r}"
        )
    root = segments[:EXPERIMENT_ROOT_SEGMENTS]
    if not all(root):
        raise ArtifactPathError(f"Artifact URI has an empty segment: {artifact_uri!r}")
    return "/".join(root)
