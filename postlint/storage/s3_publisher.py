"""
S3 publisher for lint reports.

Uploads the JSON and Markdown renderings of a LintReport under a
timestamped key prefix, with retry on throttling and exception translation.
"""

import time
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from postlint.reporting.report import LintReport
from postlint.utils.logger import get_logger, log_operation
from .exceptions import (
    AccessDeniedError,
    BucketNotFoundError,
    NetworkError,
    ReportStorageError,
    ThrottlingError,
)

logger = get_logger(__name__)

THROTTLING_CODES = ("SlowDown", "Throttling", "ThrottlingException", "RequestLimitExceeded")
ACCESS_DENIED_CODES = ("AccessDenied", "AccessDeniedException", "AllAccessDisabled")


class ReportPublisher:
    """
    Publish lint reports to S3.

    Key layout:
        <prefix>/<YYYYMMDDTHHMMSSZ>/report.json
        <prefix>/<YYYYMMDDTHHMMSSZ>/report.md
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "postlint",
        s3_client: Optional[Any] = None,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        region_name: Optional[str] = None,
    ):
        """
        Initialize ReportPublisher.

        Args:
            bucket: Destination bucket name
            prefix: Key prefix (leading/trailing slashes ignored)
            s3_client: boto3 S3 client (default: creates new)
            max_retries: Number of attempts for throttling errors
            backoff_base: Base exponential backoff multiplier (seconds)
            region_name: Region for the default client
        """
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.s3 = s3_client or boto3.client("s3", region_name=region_name)
        self.max_retries = max(1, max_retries)
        self.backoff_base = backoff_base

    def key_prefix(self, now: Optional[datetime] = None) -> str:
        stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")
        return f"{self.prefix}/{stamp}" if self.prefix else stamp

    @log_operation("publish_report")
    def publish(self, report: LintReport, loader, now: Optional[datetime] = None) -> List[str]:
        """
        Upload the report as JSON and Markdown.

        Args:
            report: Report to upload
            loader: TemplateLoader used for the Markdown rendering
            now: Timestamp used in the key (default: current UTC time)

        Returns:
            Uploaded object keys

        Raises:
            AccessDeniedError: If writing to the bucket is forbidden
            BucketNotFoundError: If the bucket does not exist
            ThrottlingError: If throttled after max retries
            NetworkError: If the connection fails
            ReportStorageError: For any other S3 error
        """
        base = self.key_prefix(now)
        uploads: List[Tuple[str, str, str]] = [
            (f"{base}/report.json", report.to_json(), "application/json"),
            (f"{base}/report.md", report.to_markdown(loader), "text/markdown; charset=utf-8"),
        ]

        keys = []
        for key, body, content_type in uploads:
            self._put_object(key, body, content_type)
            keys.append(key)

        logger.info(
            f"Published report to s3://{self.bucket}/{base}/",
            operation="publish_report",
            context={"bucket": self.bucket, "keys": keys},
        )
        return keys

    def _put_object(self, key: str, body: str, content_type: str) -> None:  # noqa: C901
        context = {"bucket": self.bucket, "key": key}

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()
                self.s3.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=body.encode("utf-8"),
                    ContentType=content_type,
                )
                logger.debug(
                    "Uploaded report object",
                    operation="put_object",
                    context={**context, "duration_ms": round((time.time() - start_time) * 1000, 2)},
                )
                return

            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")

                if error_code in THROTTLING_CODES:
                    if attempt < self.max_retries - 1:
                        wait_time = self.backoff_base * (2**attempt)
                        logger.warning(
                            f"Throttled, retrying after {wait_time}s",
                            operation="put_object",
                            context=context,
                            error=error_code,
                        )
                        time.sleep(wait_time)
                        continue
                    logger.error(
                        "Throttling after max retries",
                        operation="put_object",
                        context=context,
                        error=error_code,
                    )
                    raise ThrottlingError(f"S3 throttled after {self.max_retries} attempts") from e

                if error_code in ACCESS_DENIED_CODES:
                    logger.error(
                        "Permission denied", operation="put_object", context=context, error=error_code
                    )
                    raise AccessDeniedError(f"Access denied writing to bucket {self.bucket}") from e

                if error_code == "NoSuchBucket":
                    logger.error(
                        "Bucket not found", operation="put_object", context=context, error=error_code
                    )
                    raise BucketNotFoundError(f"Bucket not found: {self.bucket}") from e

                logger.error("S3 error", operation="put_object", context=context, error=str(e))
                raise ReportStorageError(f"S3 error: {e}") from e

            except (BotoCoreError, OSError) as e:
                logger.error("Network error", operation="put_object", context=context, error=str(e))
                raise NetworkError(f"Network error: {e}") from e
