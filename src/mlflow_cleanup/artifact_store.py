"""Artifact storage backends for deleting run and experiment artifacts.

Supports two backends:
- GCS (production): path is ``bucket/prefix``; every blob under the prefix
  is deleted.
- Local (development): path is resolved under LOCAL_ARTIFACT_ROOT and the
  file or directory tree is removed.

Set ARTIFACT_STORE_BACKEND=local for local development without GCP
credentials. Deletion is idempotent in both backends: a missing path is a
no-op.
"""

from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from google.api_core.exceptions import NotFound
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from mlflow_cleanup.config import CleanupConfig
from mlflow_cleanup.exceptions import ArtifactPathError, ArtifactStoreError

logger = logging.getLogger(__name__)

# Retry transient GCS failures, but never config/path errors or NotFound
_gcs_retry = retry(
    retry=(
        retry_if_exception_type(Exception)
        & retry_if_not_exception_type((ValueError, ArtifactPathError, NotFound))
    ),
    stop=stop_after_attempt(3),
    wait=wait_random_exponential(multiplier=1, min=2, max=10),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


class ArtifactStore(ABC):
    """Delete-by-prefix capability over an artifact backend."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete everything stored under ``path``.

        ``path`` is treated as a prefix with or without a trailing slash.
        A path with nothing under it is not an error.

        Raises:
            ArtifactPathError: If the path is unusable for this backend.
            ArtifactStoreError: If the backend fails to delete.
        """


# --- GCS backend ---


class GcsArtifactStore(ArtifactStore):
    """Delete artifacts from Google Cloud Storage.

    Args:
        project: GCP project for the storage client (optional).
        client: Preconfigured ``google.cloud.storage.Client`` (optional).
    """

    def __init__(
        self, project: str | None = None, client: object | None = None
    ) -> None:
        self._project = project or None
        self._client = client

    def _get_client(self):
        """Return the storage client, creating it on first use."""
        if self._client is None:
            from google.cloud import storage  # type: ignore[import-untyped]

            self._client = storage.Client(project=self._project)
            logger.info("GCS client initialized successfully")
        return self._client

    def delete(self, path: str) -> None:
        """Delete every blob under ``bucket/prefix``."""
        bucket_name, prefix = _parse_gcs_path(path)
        try:
            deleted = self._delete_prefix(bucket_name, prefix)
        except NotFound:
            logger.info("GCS bucket %s not found, nothing to delete", bucket_name)
            return
        except Exception as exc:
            raise ArtifactStoreError(
                f"Failed to delete gs://{bucket_name}/{prefix}: {exc}"
            ) from exc
        logger.info("Deleted %d blob(s) under gs://%s/%s", deleted, bucket_name, prefix)

    @_gcs_retry
    def _delete_prefix(self, bucket_name: str, prefix: str) -> int:
        """Delete all blobs under a prefix, skipping ones already gone."""
        client = self._get_client()
        deleted = 0
        for blob in client.list_blobs(bucket_name, prefix=prefix):
            try:
                blob.delete()
            except NotFound:
                continue
            deleted += 1
        return deleted


def _parse_gcs_path(path: str) -> tuple[str, str]:
    """Split ``bucket/some/prefix`` into (bucket, ``some/prefix/``).

    The prefix always ends with ``/`` so ``mlruns/1`` does not also match
    ``mlruns/10``.

    Raises:
        ArtifactPathError: If there is no bucket or no prefix. Deleting a
            whole bucket is never allowed.
    """
    parts = path.strip("/").split("/", 1)
    if len(parts) < 2 or not parts[0] or not parts[1].strip("/"):
        raise ArtifactPathError(
            f"Invalid GCS artifact path: {path!r}. Must be bucket/path/to/prefix"
        )
    return parts[0], parts[1].strip("/") + "/"


# --- Local backend ---


class LocalArtifactStore(ArtifactStore):
    """Delete artifacts from a directory on the local filesystem."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser().resolve()

    def delete(self, path: str) -> None:
        """Remove the file or directory tree at ``root/path``."""
        target = self._resolve(path)
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif target.exists() or target.is_symlink():
                target.unlink()
            else:
                logger.info("Local storage: nothing to delete at %s", target)
                return
        except FileNotFoundError:
            return
        except OSError as exc:
            raise ArtifactStoreError(f"Failed to delete {target}: {exc}") from exc
        logger.info("Local storage: deleted %s", target)

    def _resolve(self, path: str) -> Path:
        """Resolve a storage path under the root, refusing to escape it.

        A path starting with ``//`` is what remains of a ``file:///abs/...``
        URI and is taken as absolute; any other path is relative to the root.
        """
        if path.startswith("//"):
            candidate = Path("/" + path.lstrip("/"))
        else:
            relative = path.strip("/")
            if not relative:
                raise ArtifactPathError("Refusing to delete the local artifact root")
            candidate = self._root / relative
        target = candidate.resolve()
        if target == self._root or not target.is_relative_to(self._root):
            raise ArtifactPathError(
                f"Artifact path {path!r} resolves outside {self._root}"
            )
        return target


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def get_artifact_store(config: CleanupConfig | None = None) -> ArtifactStore:
    """Create the artifact store selected by configuration.

    Args:
        config: Cleanup settings; read from the environment if omitted.

    Returns:
        ArtifactStore instance (GCS unless ARTIFACT_STORE_BACKEND=local).
    """
    config = config or CleanupConfig.from_env()
    if config.artifact_backend == "local":
        return LocalArtifactStore(config.local_artifact_root)
    return GcsArtifactStore(project=config.gcp_project_id)
