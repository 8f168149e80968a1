"""
External link checker.

Resolves http(s) URLs found in articles with HEAD requests (falling back to a
streamed GET for servers that refuse HEAD), retrying rate limits and server
errors with linear backoff. Results are cached per URL.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from postlint import __version__
from postlint.utils.logger import StructuredLogger, get_logger, mask_url

DEFAULT_USER_AGENT = f"postlint/{__version__} (+link-check)"

# HEAD is often refused by servers that answer GET fine
FALLBACK_TO_GET = frozenset({403, 405, 501})


@dataclass(frozen=True)
class LinkStatus:
    """Outcome of checking one URL. ``error`` is set when no HTTP response arrived."""

    url: str
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    final_url: Optional[str] = None

    def describe(self) -> str:
        if self.error:
            return self.error
        return f"HTTP {self.status_code}"


class LinkChecker:
    """
    HTTP reachability checker for external links.

    Attributes:
        session: requests-like session (reused for connection pooling)
        timeout: Per-request timeout in seconds
        max_retries: Attempts per URL for 429, 5xx and connection errors
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        retry_delay_seconds: float = 0.5,
        max_retry_after_seconds: float = 5.0,
        user_agent: str = DEFAULT_USER_AGENT,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Initialize the link checker.

        Args:
            session: Optional requests-like session (useful for testing)
            timeout: Seconds before a request is abandoned
            max_retries: Number of attempts per URL
            retry_delay_seconds: Base delay between retries (linear backoff)
            max_retry_after_seconds: Cap applied to server Retry-After headers
            user_agent: User-Agent header sent with every request
            logger: Optional structured logger instance
        """
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay_seconds = retry_delay_seconds
        self.max_retry_after_seconds = max_retry_after_seconds
        self.headers = {"User-Agent": user_agent}
        self.logger = logger or get_logger(__name__)
        self._cache: Dict[str, LinkStatus] = {}

    def check(self, url: str) -> LinkStatus:
        """Return the (cached) status of ``url``. Never raises for network problems."""
        if url not in self._cache:
            self._cache[url] = self._check_uncached(url)
        return self._cache[url]

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _request(self, url: str):
        response = self.session.head(
            url, allow_redirects=True, timeout=self.timeout, headers=self.headers
        )
        if response.status_code in FALLBACK_TO_GET:
            response.close()
            response = self.session.get(
                url,
                allow_redirects=True,
                timeout=self.timeout,
                headers=self.headers,
                stream=True,
            )
            response.close()
        return response

    def _retry_wait(self, response, attempt: int) -> float:
        retry_after = response.headers.get("Retry-After") if response is not None else None
        if retry_after is not None:
            try:
                return min(float(retry_after), self.max_retry_after_seconds)
            except ValueError:
                pass
        return self.retry_delay_seconds * attempt

    def _check_uncached(self, url: str) -> LinkStatus:
        last: Optional[LinkStatus] = None
        masked = mask_url(url)

        for attempt in range(1, self.max_retries + 1):
            try:
                response = self._request(url)
            except requests.RequestException as exc:
                last = LinkStatus(url=url, ok=False, error=f"{type(exc).__name__}: {exc}")
                if attempt >= self.max_retries:
                    break
                self.logger.warning(
                    "Retrying link check",
                    operation="check_link",
                    context={"url_masked": masked, "attempt": attempt},
                    error=str(exc),
                )
                time.sleep(self.retry_delay_seconds * attempt)
                continue

            status_code = response.status_code
            final_url = getattr(response, "url", None) or url

            if status_code == 429 or status_code >= 500:
                last = LinkStatus(url=url, ok=False, status_code=status_code, final_url=final_url)
                if attempt >= self.max_retries:
                    break
                self.logger.warning(
                    "Retrying link check",
                    operation="check_link",
                    context={"url_masked": masked, "attempt": attempt, "status": status_code},
                )
                time.sleep(self._retry_wait(response, attempt))
                continue

            status = LinkStatus(
                url=url,
                ok=status_code < 400,
                status_code=status_code,
                final_url=final_url,
            )
            self.logger.debug(
                "Link checked",
                operation="check_link",
                context={"url_masked": masked, "status": status_code, "attempt": attempt},
            )
            return status

        self.logger.warning(
            "Link check failed",
            operation="check_link",
            context={"url_masked": masked, "attempts": self.max_retries},
            error=last.describe() if last else None,
        )
        return last
