"""Retry and rate-limit settings for outbound model endpoint calls."""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

# Transient statuses worth retrying for chat completion endpoints: request
# timeout, lock conflict, rate limit, and gateway/server hiccups.
RETRYABLE_STATUSES = frozenset({408, 409, 429, 500, 502, 503, 504})


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    total: int = 4
    backoff_factor: float = 0.5
    max_backoff_wait: float = 60.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = field(default_factory=lambda: frozenset({"POST"}))
    status_forcelist: frozenset[int] = RETRYABLE_STATUSES
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )
    backoff_jitter: float = 1.0


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    """Connection settings for one endpoint.

    ``timeout_seconds`` bounds a whole completion, which can take a while for
    long artifacts; ``connect_timeout_seconds`` keeps unreachable hosts from
    stalling a reconciliation.
    """

    name: str
    base_url: str | None = None
    timeout_seconds: float = 60.0
    connect_timeout_seconds: float = 10.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
