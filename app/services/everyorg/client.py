"""
Every.org partners API client.

Low-level directory client used by candidate generation (search, browse)
and enrichment (nonprofit details). Transient failures (429, 5xx,
timeouts, transport errors) are retried with exponential backoff; other
4xx responses are raised immediately with a typed error kind.
"""

import asyncio
from enum import Enum
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from app.config import settings
from app.features.recommendations.domain.models import (
    NonprofitCandidate,
    NonprofitDetail,
    NonprofitLocation,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

PROFILE_BASE_URL = "https://www.every.org"
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class DirectoryErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"


class DirectoryError(Exception):
    """Custom exception for nonprofit directory API errors."""

    def __init__(
        self,
        message: str,
        kind: DirectoryErrorKind = DirectoryErrorKind.TRANSIENT,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.response_data = response_data or {}

    @property
    def retryable(self) -> bool:
        return self.kind is DirectoryErrorKind.TRANSIENT


class DirectoryClient(Protocol):
    """What the pipeline needs from a nonprofit directory."""

    async def search(
        self, term: str, causes: list[str] | None = None, take: int = 50
    ) -> list[NonprofitCandidate]: ...

    async def browse(self, cause: str, take: int = 50, page: int = 1) -> list[NonprofitCandidate]: ...

    async def get_details(self, slug: str) -> NonprofitDetail | None: ...


def parse_location(address: str | None) -> NonprofitLocation:
    """Last part is the country, second-to-last the state, first the city."""
    if not address:
        return NonprofitLocation()

    parts = [part.strip() for part in address.split(",") if part.strip()]
    if not parts:
        return NonprofitLocation()

    return NonprofitLocation(
        country=parts[-1],
        state=parts[-2] if len(parts) > 1 else None,
        city=parts[0] if len(parts) > 2 else None,
    )


def parse_candidate(data: dict[str, Any]) -> NonprofitCandidate:
    return NonprofitCandidate(
        slug=data.get("slug") or "",
        name=data.get("name") or "",
        description=data.get("description") or "",
        location_address=data.get("locationAddress"),
        website_url=data.get("websiteUrl"),
        ein=data.get("ein"),
        causes=list(data.get("causes") or []),
        tags=list(data.get("tags") or []),
        logo_url=data.get("logoUrl"),
        ntee_code=data.get("nteeCode"),
        ntee_code_meaning=data.get("nteeCodeMeaning"),
        primary_category=data.get("primaryCategory"),
    )


def parse_detail(data: dict[str, Any]) -> NonprofitDetail:
    slug = data.get("slug") or ""
    return NonprofitDetail(
        slug=slug,
        name=data.get("name") or "",
        description=data.get("description") or "",
        location=parse_location(data.get("locationAddress")),
        categories=list(data.get("categories") or []),
        is_disbursable=data.get("isDisbursable"),
        profile_url=f"{PROFILE_BASE_URL}/{slug}",
        website_url=data.get("websiteUrl"),
        logo_url=data.get("logoUrl"),
        ein=data.get("ein"),
    )


class EveryOrgClient:
    """
    Client for the Every.org partners API.

    Handles search, cause browsing and nonprofit detail lookups with
    retry, backoff and error classification.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_factor: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.EVERY_ORG_API_KEY
        self.base_url = (base_url or settings.EVERY_ORG_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.EVERY_ORG_REQUEST_TIMEOUT
        self.max_retries = max(1, max_retries if max_retries is not None else settings.EVERY_ORG_MAX_RETRIES)
        self.backoff_factor = (
            backoff_factor if backoff_factor is not None else settings.EVERY_ORG_RETRY_BACKOFF
        )
        self._client = client or self._create_client()

        if not self.api_key:
            logger.warning("EVERY_ORG_API_KEY is not set; directory calls will fail")

    def _create_client(self) -> httpx.AsyncClient:
        """Create async HTTP client for the directory API."""
        timeout = httpx.Timeout(self.timeout)
        limits = httpx.Limits(max_keepalive_connections=10, max_connections=20)
        return httpx.AsyncClient(timeout=timeout, limits=limits)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def search(
        self, term: str, causes: list[str] | None = None, take: int = 50
    ) -> list[NonprofitCandidate]:
        params: dict[str, Any] = {"take": take}
        if causes:
            params["causes"] = ",".join(causes)

        payload = await self._get(f"/search/{quote(term.strip(), safe='')}", params, "search")
        return [parse_candidate(item) for item in payload.get("nonprofits") or []]

    async def browse(self, cause: str, take: int = 50, page: int = 1) -> list[NonprofitCandidate]:
        params = {"take": take, "page": page}
        payload = await self._get(f"/browse/{quote(cause.strip(), safe='')}", params, "browse")
        return [parse_candidate(item) for item in payload.get("nonprofits") or []]

    async def get_details(self, slug: str) -> NonprofitDetail | None:
        """Fetch a full profile. Returns None when the slug no longer exists."""
        try:
            payload = await self._get(f"/nonprofit/{quote(slug, safe='')}", {}, "details")
        except DirectoryError as e:
            if e.kind is DirectoryErrorKind.NOT_FOUND:
                logger.info("Nonprofit not found", slug=slug)
                return None
            raise

        body = payload.get("data", payload)
        data = body.get("nonprofit") if isinstance(body, dict) else None
        if not data:
            return None
        return parse_detail(data)

    async def _get(self, path: str, params: dict[str, Any], operation: str) -> dict:
        if not self.api_key:
            raise DirectoryError(
                "Every.org API key is not configured", kind=DirectoryErrorKind.CLIENT_ERROR
            )

        response = await self._request_with_retry(
            "GET", f"{self.base_url}{path}", params={**params, "apiKey": self.api_key}
        )
        return self._handle_api_response(response, operation)

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request with retry and backoff."""
        last_error: DirectoryError | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.TimeoutException as e:
                last_error = DirectoryError(f"Every.org request timed out: {e}")
            except httpx.RequestError as e:
                last_error = DirectoryError(f"Every.org request failed: {e}")
            else:
                if response.status_code not in RETRY_STATUS_CODES:
                    return response
                last_error = DirectoryError(
                    f"Every.org returned HTTP {response.status_code}",
                    status_code=response.status_code,
                )

            if attempt < self.max_retries:
                backoff = self.backoff_factor * (2 ** (attempt - 1))
                logger.debug(
                    "Every.org retrying request",
                    attempt=attempt,
                    status_code=last_error.status_code,
                    error=last_error.message,
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)

        logger.warning(
            "Every.org request failed after retries",
            attempts=self.max_retries,
            status_code=last_error.status_code if last_error else None,
        )
        raise last_error or DirectoryError("Every.org retry loop exhausted")

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict:
        """
        Validate a directory response and classify failures.

        Raises:
            DirectoryError: not_found on 404, client_error on other 4xx,
                transient on an unparseable body
        """
        logger.debug(
            f"Every.org {operation} response",
            status_code=response.status_code,
            response_size=len(response.content),
        )

        if response.is_success:
            try:
                return response.json() if response.content else {}
            except ValueError as e:
                logger.error(f"Failed to parse Every.org {operation} response", error=str(e))
                raise DirectoryError(f"Invalid response format: {e}") from e

        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            error_data = {}

        if response.status_code == 404:
            raise DirectoryError(
                f"Every.org {operation}: resource not found",
                kind=DirectoryErrorKind.NOT_FOUND,
                status_code=404,
                response_data=error_data,
            )

        logger.error(
            f"Every.org {operation} failed",
            status_code=response.status_code,
            error_data=error_data,
        )
        raise DirectoryError(
            f"Every.org {operation} failed with HTTP {response.status_code}",
            kind=DirectoryErrorKind.CLIENT_ERROR,
            status_code=response.status_code,
            response_data=error_data,
        )
