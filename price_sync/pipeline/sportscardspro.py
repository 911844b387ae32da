"""
Card Price Sync - SportsCardsPro API Client

Rate-limited async client for the SportsCardsPro product pricing API.

Endpoints:
    GET /products?q={text}&t={token}  -> {"status": "success", "products": [...]}
    GET /product?id={id}&t={token}    -> single product object

Every HTTP attempt is preceded by a fixed inter-call delay. Responses are
classified into a closed set of kinds (SUCCESS / RETRYABLE / PERMANENT) and the
retry loop switches on that kind: retryable outcomes back off exponentially up
to max_attempts total, permanent outcomes fail immediately.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from price_sync.config import settings
from price_sync.errors import PermanentNetworkError, TransientNetworkError

if TYPE_CHECKING:
    from price_sync.pipeline.stats import RunStats

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


# ---------------------------------------------------------------------------
# Pydantic Response Models
# ---------------------------------------------------------------------------


class RemoteProduct(BaseModel):
    """
    A product as returned by SportsCardsPro.

    Prices arrive as integer cents. Missing, null, empty and zero prices all
    mean "unknown" and are normalised to None.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Remote product identifier")
    product_name: str = Field(
        ..., alias="product-name", description='e.g. "Aaron Judge [Gold Refractor] #99"'
    )
    loose_price: int | None = Field(
        default=None, alias="loose-price", description="Ungraded price in cents"
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        if v is None or isinstance(v, bool):
            raise ValueError("product id is required")
        return str(v)

    @field_validator("loose_price", mode="before")
    @classmethod
    def parse_cents(cls, v: Any) -> int | None:
        """
        Cents as int, or None when the API reports no price (null, "" or 0).

        Anything else that is not a whole number of cents is malformed.
        """
        if v is None or v == "":
            return None
        if isinstance(v, bool):
            raise ValueError(f"price must be integer cents, got {v!r}")
        if isinstance(v, float):
            if not v.is_integer():
                raise ValueError(f"price must be integer cents, got {v!r}")
            v = int(v)
        try:
            cents = int(v)
        except (TypeError, ValueError) as e:
            raise ValueError(f"price must be integer cents, got {v!r}") from e
        return cents or None

    @property
    def has_loose_price_field(self) -> bool:
        """True when the payload carried a loose-price key at all."""
        return "loose_price" in self.model_fields_set


class SearchResponse(BaseModel):
    """Top-level response from the /products search endpoint."""

    status: str = Field(default="success")
    products: list[RemoteProduct] = Field(default_factory=list)

    @field_validator("products", mode="before")
    @classmethod
    def null_products_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


# ---------------------------------------------------------------------------
# Transport Outcome
# ---------------------------------------------------------------------------


class ResponseKind(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    PERMANENT = "permanent"


class TransportOutcome(NamedTuple):
    kind: ResponseKind
    response: httpx.Response | None
    detail: str


def classify_status(status_code: int) -> ResponseKind:
    """Map an HTTP status code onto the retry policy."""
    if 200 <= status_code < 300:
        return ResponseKind.SUCCESS
    if status_code in RETRYABLE_STATUS_CODES:
        return ResponseKind.RETRYABLE
    return ResponseKind.PERMANENT


# ---------------------------------------------------------------------------
# API Client
# ---------------------------------------------------------------------------


class SportsCardsProClient:
    """
    Async client for the SportsCardsPro API.

    Usage:
        async with SportsCardsProClient(call_delay=0.1, stats=stats) as client:
            products = await client.search_by_query("2025 Topps Chrome Aaron Judge #99")
            product = await client.fetch_by_id("1234567")
    """

    def __init__(
        self,
        api_token: str | None = None,
        base_url: str | None = None,
        call_delay: float = 0.0,
        max_attempts: int | None = None,
        base_backoff: float | None = None,
        timeout: float | None = None,
        stats: RunStats | None = None,
    ):
        self._api_token = api_token or settings.SPORTSCARDSPRO_API_TOKEN
        self._base_url = base_url or settings.SPORTSCARDSPRO_BASE_URL
        self._call_delay = call_delay
        self._max_attempts = max_attempts or settings.MAX_ATTEMPTS
        self._base_backoff = (
            settings.RETRY_BASE_DELAY_SECONDS if base_backoff is None else base_backoff
        )
        self._timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS
        self._stats = stats
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> SportsCardsProClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Accept": "application/json"},
            timeout=self._timeout,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def backoff_for(self, attempt: int) -> float:
        """Wait before the attempt after `attempt` (1-based): base, 2*base, 4*base..."""
        return self._base_backoff * (2 ** (attempt - 1))

    async def _send(self, path: str, params: dict[str, Any]) -> TransportOutcome:
        """Issue one GET and classify the result. Never raises for HTTP-level failures."""
        assert self._client is not None, "Client not initialized. Use 'async with'."

        try:
            response = await self._client.get(path, params={**params, "t": self._api_token})
        except httpx.TimeoutException as e:
            return TransportOutcome(ResponseKind.RETRYABLE, None, f"timeout: {e}")
        except httpx.TransportError as e:
            return TransportOutcome(ResponseKind.RETRYABLE, None, f"transport error: {e}")
        except httpx.RequestError as e:
            # Undecodable body, redirect loop: repeating the call will not help
            return TransportOutcome(
                ResponseKind.PERMANENT, None, f"{type(e).__name__}: {e}"
            )

        kind = classify_status(response.status_code)
        return TransportOutcome(kind, response, f"HTTP {response.status_code}")

    async def _request(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        GET with inter-call delay and exponential-backoff retry.

        Raises:
            TransientNetworkError: retryable outcome on every attempt.
            PermanentNetworkError: non-retryable status or non-JSON body.
        """
        outcome: TransportOutcome | None = None

        for attempt in range(1, self._max_attempts + 1):
            if self._call_delay > 0:
                await asyncio.sleep(self._call_delay)

            outcome = await self._send(path, params)

            if outcome.kind is ResponseKind.SUCCESS:
                try:
                    payload = outcome.response.json()
                except ValueError as e:
                    raise PermanentNetworkError(
                        f"SportsCardsPro returned a non-JSON body for {path}",
                        kind=ResponseKind.PERMANENT,
                        status_code=outcome.response.status_code,
                    ) from e
                if not isinstance(payload, dict):
                    raise PermanentNetworkError(
                        f"SportsCardsPro returned an unexpected payload for {path}",
                        kind=ResponseKind.PERMANENT,
                        status_code=outcome.response.status_code,
                    )
                return payload

            status_code = outcome.response.status_code if outcome.response is not None else None

            if outcome.kind is ResponseKind.PERMANENT:
                logger.error(
                    "sportscardspro_permanent_error",
                    path=path,
                    status_code=status_code,
                    attempt=attempt,
                )
                raise PermanentNetworkError(
                    f"SportsCardsPro API error: {outcome.detail}",
                    kind=ResponseKind.PERMANENT,
                    status_code=status_code,
                )

            # ResponseKind.RETRYABLE
            if attempt == self._max_attempts:
                break

            wait_time = self.backoff_for(attempt)
            if self._stats is not None:
                self._stats.record_retry()
            logger.warning(
                "sportscardspro_retrying",
                path=path,
                detail=outcome.detail,
                attempt=attempt,
                wait_seconds=wait_time,
            )
            await asyncio.sleep(wait_time)

        assert outcome is not None
        status_code = outcome.response.status_code if outcome.response is not None else None
        logger.error(
            "sportscardspro_retries_exhausted",
            path=path,
            detail=outcome.detail,
            attempts=self._max_attempts,
        )
        raise TransientNetworkError(
            f"SportsCardsPro API request failed after {self._max_attempts} attempts "
            f"({outcome.detail})",
            kind=ResponseKind.RETRYABLE,
            status_code=status_code,
        )

    @staticmethod
    def _check_status(payload: dict[str, Any], path: str) -> None:
        # The API reports some failures as 200 with status=error
        if payload.get("status") == "error":
            raise PermanentNetworkError(
                f"SportsCardsPro error for {path}: {payload.get('error-message', 'unknown error')}",
                kind=ResponseKind.PERMANENT,
            )

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def search_by_query(self, text: str) -> list[RemoteProduct]:
        """
        Free-text product search.

        Args:
            text: Search text, e.g. "2025 Topps Chrome Aaron Judge #99".

        Returns:
            Products in API order (the matcher relies on this order).
        """
        logger.debug("sportscardspro_search", query=text)

        data = await self._request("/products", {"q": text})
        self._check_status(data, "/products")
        try:
            response = SearchResponse.model_validate(data)
        except ValidationError as e:
            raise PermanentNetworkError(
                f"Malformed search response: {e.error_count()} validation errors",
                kind=ResponseKind.PERMANENT,
            ) from e

        logger.debug(
            "sportscardspro_search_complete",
            query=text,
            results_count=len(response.products),
        )
        return response.products

    async def fetch_by_id(self, remote_id: str) -> RemoteProduct:
        """
        Direct product lookup by remote identifier. No matching step.

        Args:
            remote_id: Identifier stored in card_external_id.external_id.
        """
        logger.debug("sportscardspro_fetch", remote_id=remote_id)

        data = await self._request("/product", {"id": remote_id})
        self._check_status(data, "/product")
        try:
            return RemoteProduct.model_validate(data)
        except ValidationError as e:
            raise PermanentNetworkError(
                f"Malformed product response for id {remote_id}",
                kind=ResponseKind.PERMANENT,
            ) from e
