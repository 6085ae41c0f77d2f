"""EKAPE Grading API Client.

Async HTTP client for the livestock grading confirmation service.
Handles the two-stage lookup, retries, and error classification.

Lookup flow:
    1. issueNo?animalNo=...   -> confirmation issue entries for the animal
    2. cattle?issueNo=...     -> carcass grade detail, one call per issue

Stage 2 is access-gated: while detail-service authorization is pending the
calls fail or time out. Those failures never fail the lookup; they are
captured as a diagnostic string next to the issue-level data.
"""

from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import asyncio
import logging
import time
from urllib.parse import urlencode

import aiohttp

from core.config import DEFAULT_CATTLE_URL, DEFAULT_ISSUE_NO_URL, Settings
from core.models.certificate import CertificateData, GradeDetail, IssueItem
from connectors.ekape.errors import (
    EkapeApiError,
    EkapeNotFoundError,
    EkapeRateLimitError,
    EkapeResponseError,
)
from connectors.ekape.ekape_xml import parse_ekape_items
from label_parser.normalize import TRACE_NUMBER_RE, normalize_trace_number

logger = logging.getLogger(__name__)


NOT_FOUND_MESSAGE = "No grading record for this traceability number"

# Diagnostic bodies are cut to this many characters
DIAGNOSTIC_BODY_LIMIT = 300


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 2
    base_delay: float = 0.5  # seconds
    max_delay: float = 8.0  # seconds
    exponential_base: float = 2.0
    retry_on_status: Tuple[int, ...] = (429, 500, 502, 503, 504)

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for retry attempt (exponential backoff)."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        return min(delay, self.max_delay)


@dataclass
class EkapeConfig:
    """Configuration for the grading API client."""
    api_key: str = ""
    issue_no_url: str = DEFAULT_ISSUE_NO_URL
    cattle_url: str = DEFAULT_CATTLE_URL
    timeout_seconds: float = 15.0
    detail_timeout_seconds: float = 8.0
    retry_config: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_settings(cls, settings: Settings) -> "EkapeConfig":
        """Build client config from application settings.

        A missing API key is allowed; lookups then fail with a configuration
        message.
        """
        return cls(
            api_key=settings.ekape_api_key or "",
            issue_no_url=settings.ekape_issue_no_url,
            cattle_url=settings.ekape_cattle_url,
            timeout_seconds=settings.ekape_timeout_seconds,
            detail_timeout_seconds=settings.ekape_detail_timeout_seconds,
            retry_config=RetryConfig(max_retries=settings.ekape_max_retries),
        )


class EkapeClient:
    """HTTP client for the grading confirmation API.

    Satisfies the certificate lookup interface: `fetch_certificate(trace_number)`
    returns CertificateData or raises.

    Usage:
        async with EkapeClient(EkapeConfig.from_settings(settings)) as client:
            data = await client.fetch_certificate("002-1234-5678-9")
    """

    def __init__(self, config: EkapeConfig, session: Optional[aiohttp.ClientSession] = None):
        """Initialize API client.

        Args:
            config: API configuration
            session: Shared session; when omitted one is created on connect()
        """
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def connect(self) -> None:
        """Open the HTTP session if one was not supplied."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

    async def disconnect(self) -> None:
        """Close the HTTP session if this client opened it."""
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "EkapeClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    def _redact(self, url: str) -> str:
        if self.config.api_key:
            return url.replace(self.config.api_key, "***")
        return url

    async def _get_text(self, url: str, params: Dict[str, str], timeout: float) -> Tuple[int, str]:
        """Perform one GET and return (status, body)."""
        if self._session is None:
            raise EkapeApiError("Not connected. Call connect() first.")

        client_timeout = aiohttp.ClientTimeout(total=timeout)
        async with self._session.get(url, params=params, timeout=client_timeout) as response:
            return response.status, await response.text()

    async def _request(self, url: str, params: Dict[str, str]) -> str:
        """GET with automatic retries on transport errors and 429/5xx.

        Returns:
            Response body of a 2xx response

        Raises:
            EkapeRateLimitError: Rate limit exceeded on the last attempt
            EkapeApiError: Any other non-2xx response or exhausted retries
        """
        retry_config = self.config.retry_config
        last_error: Optional[Exception] = None

        for attempt in range(retry_config.max_retries + 1):
            try:
                status, body = await self._get_text(url, params, self.config.timeout_seconds)

                if 200 <= status < 300:
                    return body

                if status in retry_config.retry_on_status and attempt < retry_config.max_retries:
                    delay = retry_config.get_delay(attempt)
                    logger.warning(
                        f"Request failed with {status}, "
                        f"retrying in {delay:.1f}s (attempt {attempt + 1}/{retry_config.max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue

                if status == 429:
                    raise EkapeRateLimitError("Rate limit exceeded")

                raise EkapeApiError(
                    f"Issue lookup request failed (HTTP {status})",
                    502,
                    body[:DIAGNOSTIC_BODY_LIMIT],
                )

            except (asyncio.TimeoutError, aiohttp.ClientError) as e:
                last_error = e
                if attempt < retry_config.max_retries:
                    delay = retry_config.get_delay(attempt)
                    logger.warning(
                        f"Request failed with {type(e).__name__}: {e}, "
                        f"retrying in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise EkapeApiError(
                    f"Request failed after {retry_config.max_retries} retries: "
                    f"{str(e) or type(e).__name__}"
                )

        raise EkapeApiError(f"Request failed: {last_error}")

    async def fetch_issues(self, animal_no: str) -> List[IssueItem]:
        """Stage 1: confirmation issue entries for a normalized number.

        Raises:
            EkapeNotFoundError: The service has no grading record
            EkapeResponseError: Malformed XML or non-success resultCode
            EkapeApiError: Transport failure
        """
        body = await self._request(
            self.config.issue_no_url,
            {"animalNo": animal_no, "serviceKey": self.config.api_key},
        )
        items = parse_ekape_items(body)
        if not items:
            raise EkapeNotFoundError(NOT_FOUND_MESSAGE)
        return [IssueItem.from_api_item(item) for item in items]

    async def _fetch_detail(self, issue: IssueItem) -> Tuple[List[GradeDetail], Optional[str]]:
        """Stage 2 for one issue entry; failures come back as a diagnostic."""
        if not issue.issue_no:
            return [], "missing issueNo"

        params = {"issueNo": issue.issue_no, "serviceKey": self.config.api_key}
        if issue.issue_date:
            params["issueDate"] = issue.issue_date
        url = self.config.cattle_url

        try:
            status, body = await asyncio.wait_for(
                self._get_text(url, params, self.config.detail_timeout_seconds),
                timeout=self.config.detail_timeout_seconds,
            )
        except asyncio.TimeoutError:
            return [], f"fetch: timeout after {self.config.detail_timeout_seconds:g}s"
        except (aiohttp.ClientError, EkapeApiError) as e:
            target = self._redact(f"{url}?{urlencode(params)}")
            return [], f"fetch: {str(e) or type(e).__name__} | url: {target}"

        if not 200 <= status < 300:
            return [], f"HTTP {status}: {body[:DIAGNOSTIC_BODY_LIMIT]}"

        try:
            items = parse_ekape_items(body)
        except EkapeResponseError as e:
            return [], f"parse: {e} | xml: {body[:DIAGNOSTIC_BODY_LIMIT]}"

        return [GradeDetail.from_api_item(item) for item in items], None

    async def fetch_grade_details(self, issues: List[IssueItem]) -> Tuple[List[GradeDetail], Optional[str]]:
        """Stage 2 for every issue entry concurrently.

        Returns:
            Grade details flattened in issue order, and the per-issue
            diagnostics joined with " || " (None when every call succeeded)
        """
        results = await asyncio.gather(*(self._fetch_detail(issue) for issue in issues))

        details: List[GradeDetail] = []
        diagnostics: List[str] = []
        for issue, (issue_details, diagnostic) in zip(issues, results):
            details.extend(issue_details)
            if diagnostic:
                diagnostics.append(f"[{issue.issue_no or ''}] {diagnostic}")

        return details, (" || ".join(diagnostics) if diagnostics else None)

    async def fetch_certificate(self, trace_number: str) -> CertificateData:
        """Resolve one traceability number into certificate data.

        Args:
            trace_number: Traceability number, hyphens and spaces allowed

        Returns:
            CertificateData; grade_details may be empty with a diagnostic

        Raises:
            EkapeApiError: Invalid number (400), or any stage 1 failure
        """
        animal_no = normalize_trace_number(trace_number)
        if not TRACE_NUMBER_RE.match(animal_no):
            raise EkapeApiError(
                f"Traceability number must be 12 digits without hyphens, got {animal_no!r}",
                400,
            )
        if not self.config.api_key:
            raise EkapeApiError("EKAPE_API_KEY environment variable not set", 500)

        start = time.time()
        issues = await self.fetch_issues(animal_no)
        details, diagnostic = await self.fetch_grade_details(issues)

        logger.debug(
            f"Lookup {animal_no}: {len(issues)} issue(s), {len(details)} grade row(s) "
            f"in {(time.time() - start) * 1000:.0f}ms"
        )

        return CertificateData(
            animal_no=animal_no,
            total_count=len(issues),
            issues=issues,
            grade_details=details,
            grade_detail_diagnostic=diagnostic,
        )
