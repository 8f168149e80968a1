"""
Custom exception hierarchy for report storage operations.

The S3 publisher translates botocore failures into these so callers can
react to each failure class without inspecting AWS error codes.
"""


class ReportStorageError(Exception):
    """
    Base exception for all report storage errors.

    Raised as-is for S3 error codes that have no dedicated subclass.
    """

    pass


class AccessDeniedError(ReportStorageError):
    """
    Raised when the credentials may not write to the bucket.

    Indicates a configuration/security issue that must be fixed by an administrator.
    """

    pass


class BucketNotFoundError(ReportStorageError):
    """Raised when the configured bucket does not exist."""

    pass


class ThrottlingError(ReportStorageError):
    """
    Raised when S3 keeps throttling (SlowDown) after retry exhaustion.
    """

    pass


class NetworkError(ReportStorageError):
    """
    Raised when network-level failures occur (connection timeout, DNS failure, etc.).

    This is unrecoverable at the publisher level and indicates infrastructure issues.
    """

    pass
