"""Resilient access to the embedding service.

The pipeline calls the embedding service once per chain and once per search
query. Transient failures (429s, 5xx, dropped connections) are retried with
exponential backoff; when the service is down a circuit breaker fails fast
so deferred chain tasks go back to the queue instead of piling up retries.

``ResilientEmbedder`` is what the pipeline and search service hold. Each
instance owns its own breaker, so its lifecycle follows the service that
constructed it rather than module import order.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from ..exceptions import EmbeddingUnavailableError
from ..tokens import EMBED_TOKEN_LIMIT, count_tokens, truncate_to_tokens
from .base import DOCUMENT, QUERY, EmbeddingProvider, InputType

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry with exponential backoff."""

    max_retries: int = 3
    backoff_base: float = 1.0  # seconds
    backoff_max: float = 30.0  # cap
    backoff_multiplier: float = 2.0
    retryable_status_codes: tuple[int, ...] = (429, 500, 502, 503, 504)
    retryable_exceptions: tuple[type[Exception], ...] = (
        ConnectionError,
        TimeoutError,
        OSError,
    )


class CircuitState(Enum):
    CLOSED = "closed"  # requests flow through
    OPEN = "open"  # requests fail fast
    HALF_OPEN = "half_open"  # one probe request allowed


@dataclass
class CircuitBreaker:
    """Circuit breaker for embedding calls.

    After ``failure_threshold`` consecutive retryable failures the circuit
    opens and calls fail fast for ``reset_timeout`` seconds. Then a single
    probe is allowed; success closes the circuit, failure re-opens it.
    """

    failure_threshold: int = 5
    reset_timeout: float = 60.0

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False, repr=False)
    _failure_count: int = field(default=0, init=False, repr=False)
    _last_failure_time: float = field(default=0.0, init=False, repr=False)
    _total_trips: int = field(default=0, init=False, repr=False)

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN:
            if time.monotonic() - self._last_failure_time >= self.reset_timeout:
                self._state = CircuitState.HALF_OPEN
                logger.info("Embedding circuit HALF_OPEN, allowing probe request")
        return self._state

    def record_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("Embedding circuit CLOSED, service recovered")
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()
        if self._failure_count >= self.failure_threshold:
            if self._state != CircuitState.OPEN:
                self._total_trips += 1
                logger.warning(
                    f"Embedding circuit OPEN after {self._failure_count} consecutive failures "
                    f"(trip #{self._total_trips}), probing again in {self.reset_timeout}s"
                )
            self._state = CircuitState.OPEN

    def allow_request(self) -> bool:
        return self.state != CircuitState.OPEN

    def stats(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "failure_count": self._failure_count,
            "total_trips": self._total_trips,
        }


class CircuitOpenError(Exception):
    """Raised when the circuit breaker is open and requests are rejected."""


def _extract_status_code(exc: Exception) -> int | None:
    """Try to extract an HTTP status code from common SDK exceptions."""
    # OpenAI SDK APIStatusError, Azure HttpResponseError
    for attr in ("status_code", "status", "http_status"):
        status = getattr(exc, attr, None)
        if isinstance(status, int):
            return status
    response = getattr(exc, "response", None)
    if response is not None:
        code = getattr(response, "status_code", None) or getattr(response, "status", None)
        if isinstance(code, int):
            return code
    return None


def _get_retry_after(exc: Exception) -> float | None:
    """Extract Retry-After header value from an exception if present."""
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None) if response is not None else None
    if not headers:
        return None
    retry_after = headers.get("Retry-After") or headers.get("retry-after")
    if retry_after is None:
        return None
    try:
        return float(retry_after)
    except (ValueError, TypeError):
        return None


async def retry_with_backoff(
    fn: Callable[..., Coroutine[Any, Any, T]],
    *args: Any,
    config: RetryConfig | None = None,
    circuit: CircuitBreaker | None = None,
    context_msg: str = "",
    **kwargs: Any,
) -> T:
    """Execute an async function with retry, backoff, and circuit breaker.

    Raises:
        CircuitOpenError: If circuit breaker is open
        Exception: Last exception after all retries exhausted
    """
    cfg = config or RetryConfig()
    ctx = f" [{context_msg}]" if context_msg else ""

    for attempt in range(cfg.max_retries + 1):
        if circuit and not circuit.allow_request():
            raise CircuitOpenError(f"Embedding circuit is OPEN, service unavailable{ctx}")

        try:
            result = await fn(*args, **kwargs)
        except Exception as exc:
            status_code = _extract_status_code(exc)
            is_retryable = isinstance(exc, cfg.retryable_exceptions) or (
                status_code is not None and status_code in cfg.retryable_status_codes
            )

            # Auth and bad-input errors are permanent; they must not trip the breaker
            if circuit and is_retryable:
                circuit.record_failure()

            if not is_retryable or attempt >= cfg.max_retries:
                logger.error(
                    "RETRY_EXHAUSTED: attempt=%d/%d status=%s retryable=%s%s: %s",
                    attempt + 1,
                    cfg.max_retries + 1,
                    status_code,
                    is_retryable,
                    ctx,
                    exc,
                )
                raise

            retry_after = _get_retry_after(exc)
            if retry_after is not None:
                delay = min(retry_after, cfg.backoff_max)
            else:
                delay = min(
                    cfg.backoff_base * (cfg.backoff_multiplier**attempt),
                    cfg.backoff_max,
                )

            if status_code == 429:
                logger.warning(
                    "THROTTLED: 429 Too Many Requests, attempt=%d/%d, retry_after=%.1fs%s",
                    attempt + 1,
                    cfg.max_retries + 1,
                    delay,
                    ctx,
                )
            else:
                logger.warning(
                    "RETRYING: attempt=%d/%d status=%s delay=%.1fs%s: %s",
                    attempt + 1,
                    cfg.max_retries + 1,
                    status_code,
                    delay,
                    ctx,
                    exc,
                )
            await asyncio.sleep(delay)
        else:
            if attempt > 0:
                logger.warning(
                    "RETRY_RECOVERED: succeeded on attempt %d/%d%s",
                    attempt + 1,
                    cfg.max_retries + 1,
                    ctx,
                )
            if circuit:
                circuit.record_success()
            return result

    raise RuntimeError("retry_with_backoff exhausted without raising")  # pragma: no cover


class ResilientEmbedder:
    """Single-text embedding with token truncation, retry and a circuit breaker.

    Every failure mode surfaces as ``EmbeddingUnavailableError`` so callers
    only need one except clause to degrade gracefully.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        retry_config: RetryConfig | None = None,
        circuit: CircuitBreaker | None = None,
        token_limit: int = EMBED_TOKEN_LIMIT,
    ):
        self.provider = provider
        self.retry_config = retry_config or RetryConfig()
        self.circuit = circuit or CircuitBreaker()
        self.token_limit = token_limit

    @property
    def model_name(self) -> str:
        return self.provider.model_name

    async def embed(
        self, text: str, input_type: InputType = DOCUMENT, *, context_msg: str = ""
    ) -> list[float]:
        """Embed one text, raising ``EmbeddingUnavailableError`` on any failure."""
        try:
            token_count = count_tokens(text)
            if token_count > self.token_limit:
                logger.warning(
                    f"Text exceeds embedding token limit ({token_count} > {self.token_limit} "
                    f"tokens), truncating. First 100 chars: {text[:100]!r}"
                )
                text = truncate_to_tokens(text, self.token_limit)

            vectors = await retry_with_backoff(
                self.provider.embed_batch,
                [text],
                input_type,
                config=self.retry_config,
                circuit=self.circuit,
                context_msg=context_msg or input_type,
            )
        except CircuitOpenError as exc:
            logger.warning(f"Skipping {input_type} embedding, circuit open: {exc}")
            raise EmbeddingUnavailableError(input_type, exc) from exc
        except Exception as exc:
            raise EmbeddingUnavailableError(input_type, exc) from exc

        if not vectors or not vectors[0]:
            raise EmbeddingUnavailableError(input_type, ValueError("No embeddings returned"))
        return vectors[0]

    async def embed_document(self, text: str, *, context_msg: str = "") -> list[float]:
        return await self.embed(text, DOCUMENT, context_msg=context_msg)

    async def embed_query(self, text: str) -> list[float]:
        return await self.embed(text, QUERY, context_msg="query")

    def stats(self) -> dict[str, Any]:
        """Expose circuit breaker stats for monitoring/health checks."""
        return {"model": self.model_name, "circuit": self.circuit.stats()}
