"""Exception hierarchy for tracking-store and artifact-store cleanup.

Every failure raised by this package derives from ``CleanupError`` so callers
can catch one type at the boundary and still branch on the subclass.
"""

from __future__ import annotations


class CleanupError(Exception):
    """Base exception for all cleanup failures."""

    def __init__(self, message: str) -> None:
        """Initialize cleanup error.

        Args:
            message: Human-readable error message.
        """
        self.message = message
        super().__init__(self.message)


class TransportError(CleanupError):
    """Network, connection, or response-decoding failure."""


class RemoteError(CleanupError):
    """Structured application error returned by the tracking server.

    The server message is kept verbatim in ``message``.
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize remote error.

        Args:
            message: Error message from the server body.
            error_code: MLflow error code (e.g. RESOURCE_DOES_NOT_EXIST).
            status_code: HTTP status code of the response.
        """
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ArtifactPathError(CleanupError):
    """Artifact URI or path does not follow the scheme/segment convention."""


class ArtifactStoreError(CleanupError):
    """Artifact backend failed to delete a path."""
