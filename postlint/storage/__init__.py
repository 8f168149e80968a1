"""Storage module - publishes lint reports to S3."""

from .s3_publisher import ReportPublisher
from .exceptions import (
    ReportStorageError,
    AccessDeniedError,
    BucketNotFoundError,
    ThrottlingError,
    NetworkError,
)

__all__ = [
    "ReportPublisher",
    "ReportStorageError",
    "AccessDeniedError",
    "BucketNotFoundError",
    "ThrottlingError",
    "NetworkError",
]
