"""
Error taxonomy for ingestion, merge and listing.

Components raise these; the API layer maps each to an HTTP status and a
uniform {"ok": false, "error": message} body using status_code.
"""


class RecordingMergeError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingFileError(RecordingMergeError):
    """Upload request carried no file payload. Client error, not retried."""

    status_code = 400

    def __init__(self, message: str = "Missing file") -> None:
        super().__init__(message)


class MissingParameterError(RecordingMergeError):
    """A required request parameter (e.g. projectId) is absent or malformed."""

    status_code = 400


class StorageFailure(RecordingMergeError):
    """Filesystem create/write failure under the storage root."""

    status_code = 500


class NoSegmentsFound(RecordingMergeError):
    """Merge requested for a bucket that is absent or holds no media segments."""

    status_code = 404

    def __init__(self, message: str = "No segments found") -> None:
        super().__init__(message)


class EncodingFailure(RecordingMergeError):
    """Encoder invocation failed (both concat paths, or a variant)."""

    status_code = 500


class EncodingTimeout(EncodingFailure):
    """Encoder subprocess exceeded its time bound and was killed."""
