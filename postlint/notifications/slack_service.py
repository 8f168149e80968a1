"""
Slack webhook notifications client.

Posts lint summaries to a Slack incoming webhook so CI runs over the posts
corpus can alert the editors' channel.
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional

import requests

from postlint.utils.logger import StructuredLogger, get_logger, mask_url

DEFAULT_TOP_FINDINGS = 10


class SlackServiceError(Exception):
    """Raised when the Slack service fails to deliver a message."""


class SlackWebhookClient:
    """
    Client for sending notifications through Slack webhooks.

    Delivery failures are logged and never raised: notifications are not on
    the critical path of a lint run.

    Attributes:
        webhook_url: Slack incoming webhook URL (None disables the client)
        logger: Structured logger instance
        max_retries: Number of retry attempts
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        http_client: Optional[requests.Session] = None,
        logger: Optional[StructuredLogger] = None,
        max_retries: int = 3,
        retry_delay_seconds: float = 0.5,
        timeout: float = 10.0,
    ) -> None:
        """
        Initialize the Slack webhook client.

        Args:
            webhook_url: Slack incoming webhook URL
            http_client: Optional requests-like session (useful for testing)
            logger: Optional structured logger instance
            max_retries: Number of attempts when sending messages
            retry_delay_seconds: Base delay between retries (linear backoff)
            timeout: Per-request timeout in seconds
        """
        self.logger = logger or get_logger(__name__)
        self.http_client = http_client or requests.Session()
        self.max_retries = max(1, max_retries)
        self.retry_delay_seconds = retry_delay_seconds
        self.timeout = timeout

        self.webhook_url = webhook_url or None
        if not self.webhook_url:
            self.logger.warning("Slack webhook URL not configured; Slack notifications disabled")

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def send_lint_summary(self, report, loader, top: int = DEFAULT_TOP_FINDINGS) -> bool:
        """
        Send the ``slack_summary`` rendering of a lint report.

        Args:
            report: LintReport to summarise
            loader: TemplateLoader holding the ``slack_summary`` template
            top: Number of findings listed before "and N more"

        Returns:
            True when Slack accepted the message
        """
        if not self.webhook_url:
            return False

        findings = report.sorted_findings()
        text = loader.render(
            "slack_summary",
            report=report,
            counts=report.counts(),
            top_findings=findings[:top],
            remaining=max(len(findings) - top, 0),
        )
        payload = {"blocks": [{"type": "section", "text": {"type": "mrkdwn", "text": text}}]}
        return self._dispatch(payload, action="send_lint_summary")

    def send_text(self, text: str, channel: Optional[str] = None) -> bool:
        """Send a simple plaintext message via Slack webhook."""
        if not self.webhook_url:
            return False

        payload: Dict[str, Any] = {"text": text}
        if channel:
            payload["channel"] = channel

        return self._dispatch(payload, action="send_text")

    def get_webhook_status(self) -> Dict[str, Any]:
        """Return webhook configuration status."""
        return {
            "webhook_configured": self.webhook_url is not None,
            "webhook_url_masked": mask_url(self.webhook_url) if self.webhook_url else None,
            "max_retries": self.max_retries,
            "retry_delay_seconds": self.retry_delay_seconds,
        }

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _dispatch(
        self,
        payload: Dict[str, Any],
        action: str,
        max_retries: Optional[int] = None,
    ) -> bool:
        """Send payload to Slack webhook with retry handling. Returns True on delivery."""
        max_retries = max_retries or self.max_retries
        body = json.dumps(payload)
        masked = mask_url(self.webhook_url)

        for attempt in range(1, max_retries + 1):
            try:
                self.logger.debug(
                    "Sending Slack notification",
                    operation=action,
                    context={"status": "attempt", "attempt": attempt, "url_masked": masked},
                )

                response = self.http_client.post(
                    self.webhook_url,
                    headers={"Content-Type": "application/json"},
                    data=body,
                    timeout=self.timeout,
                )

                if response.status_code == 429:
                    retry_after = int(response.headers.get("Retry-After", 60))
                    self.logger.warning(
                        "Slack rate limited",
                        operation=action,
                        context={
                            "status": "rate_limited",
                            "attempt": attempt,
                            "retry_after": retry_after,
                        },
                    )
                    if attempt < max_retries:
                        time.sleep(min(retry_after, self.retry_delay_seconds * attempt))
                        continue
                    raise SlackServiceError(f"Rate limited; retry after {retry_after}s")

                if response.status_code >= 400:
                    raise SlackServiceError(
                        f"Slack responded with {response.status_code}: {response.text}"
                    )

                self.logger.debug(
                    "Slack notification delivered",
                    operation=action,
                    context={"status": "success", "attempt": attempt},
                )
                return True

            except (requests.RequestException, SlackServiceError, ValueError) as exc:
                if attempt >= max_retries:
                    self.logger.error(
                        "Slack delivery failed",
                        operation=action,
                        context={"status": "failed", "attempt": attempt},
                        error=str(exc),
                    )
                    return False

                self.logger.warning(
                    "Retrying Slack delivery",
                    operation=action,
                    context={"status": "retry", "attempt": attempt},
                    error=str(exc),
                )
                time.sleep(self.retry_delay_seconds * attempt)

        return False
