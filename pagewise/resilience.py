"""Retry rules for calls to the Ollama server."""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import httpx

from .logging_utils import get_logger

T = TypeVar("T")

_log = get_logger("resilience")

_RETRYABLE_STATUS = frozenset({408, 409, 425, 429, 500, 502, 503, 504})

# Ollama reports these with a 5xx status on some releases; retrying never helps.
_PERMANENT_OLLAMA_ERRORS = (
    "not found",
    "try pulling",
    "requires more system memory",
    "unsupported",
)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_s: float = 0.25
    max_delay_s: float = 5.0
    jitter: float = 0.2


def retry_delay(policy: RetryPolicy, attempt: int, exc: Exception | None = None) -> float:
    """Backoff for ``attempt``; a server ``Retry-After`` wins, capped at ``max_delay_s``."""

    retry_after = _retry_after_seconds(exc)
    if retry_after is not None:
        return min(policy.max_delay_s, retry_after)
    base = min(policy.max_delay_s, policy.base_delay_s * (2**attempt))
    jitter = base * policy.jitter
    return max(0.0, base + random.uniform(-jitter, jitter))


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    is_retryable: Callable[[Exception], bool],
) -> T:
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as exc:
            if attempt >= policy.max_retries or not is_retryable(exc):
                raise
            delay = retry_delay(policy, attempt, exc)
            _log.debug(
                "Retrying after {} (attempt {}, {:.2f}s)", type(exc).__name__, attempt + 1, delay
            )
            await asyncio.sleep(delay)
            attempt += 1


def is_retryable_http_status(status_code: int) -> bool:
    return status_code in _RETRYABLE_STATUS


def ollama_error_message(response: httpx.Response) -> str | None:
    """Return the ``error`` field of an Ollama error body, if it was read."""

    try:
        data = response.json()
    except (httpx.ResponseNotRead, ValueError):
        return None
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return None


def is_retryable_exception(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        if not is_retryable_http_status(exc.response.status_code):
            return False
        message = (ollama_error_message(exc.response) or "").lower()
        return not any(marker in message for marker in _PERMANENT_OLLAMA_ERRORS)
    return isinstance(exc, (httpx.TransportError, TimeoutError, ConnectionError))


def _retry_after_seconds(exc: Exception | None) -> float | None:
    if not isinstance(exc, httpx.HTTPStatusError):
        return None
    value = exc.response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None
