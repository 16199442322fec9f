"""
Board Coordinator — Generation Retry with Backoff

Runs one generation attempt with bounded retries:
  - Precondition check (connectivity) before any attempt → OfflineError
  - Up to max_attempts tries (default 3: one call plus 2 retries)
  - Exponential backoff between tries: 1s, then 2s
  - Client/validation failures (4xx except 429) are never retried
  - Malformed payloads are retried within the same budget
  - Every attempt, success and terminal failure is reported to the sink

The request factory is re-invoked per attempt with a zero-based attempt
index so the caller can tighten its prompt on retries.

Usage:
    from board_engine.retry import RetryingRequester, get_retry_policy

    requester = RetryingRequester(get_retry_policy("google"), sink=sink)
    result = await requester.execute(
        lambda attempt: provider.generate(scope, context, attempt),
        step_name="board",
    )
    result.value  # provider result
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from board_engine.config import load_config
from board_engine.errors import (
    ErrorClass,
    GenerationError,
    MalformedResponseError,
    OfflineError,
    ProviderUnavailableError,
    ValidationError,
    classify_error,
    status_of,
)
from board_engine.logging import NullSink, ObservabilitySink, generate_correlation_id

logger = logging.getLogger("board_coordinator.retry")


# ═══════════════════════════════════════════════════════════════════
# Retry Policy
# ═══════════════════════════════════════════════════════════════════

@dataclass
class RetryPolicy:
    """Configuration for generation retry behavior."""
    max_attempts: int = 3
    backoff_base: float = 1.0       # seconds; delay = base * 2^attempt (+ jitter)
    backoff_max: float = 30.0
    jitter: float = 0.0             # fraction of the delay, ±

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")


DEFAULT_POLICY = RetryPolicy()


def get_retry_policy(provider: str | None = None, config: dict | None = None) -> RetryPolicy:
    """
    Load retry policy for the given provider.

    Config format:
        retry:
          default:
            max_attempts: 3
            backoff_base: 1.0
          google:
            max_attempts: 4
    """
    if config is None:
        config = load_config()
    retry_cfg = config.get("retry", {}) or {}

    provider_cfg = dict(retry_cfg.get("default", {}) or {})
    if provider and provider in retry_cfg:
        provider_cfg.update(retry_cfg[provider] or {})

    if not provider_cfg:
        return DEFAULT_POLICY

    return RetryPolicy(
        max_attempts=int(provider_cfg.get("max_attempts", DEFAULT_POLICY.max_attempts)),
        backoff_base=float(provider_cfg.get("backoff_base", DEFAULT_POLICY.backoff_base)),
        backoff_max=float(provider_cfg.get("backoff_max", DEFAULT_POLICY.backoff_max)),
        jitter=float(provider_cfg.get("jitter", DEFAULT_POLICY.jitter)),
    )


def calculate_backoff(attempt: int, policy: RetryPolicy) -> float:
    """Delay after zero-based ``attempt`` failed."""
    capped = min(policy.backoff_base * (2 ** attempt), policy.backoff_max)
    if policy.jitter:
        jitter_range = capped * policy.jitter
        capped += random.uniform(-jitter_range, jitter_range)
    return max(0.0, capped)


# ═══════════════════════════════════════════════════════════════════
# Retry Result
# ═══════════════════════════════════════════════════════════════════

@dataclass
class RetryResult:
    """Result of a generation request with retry."""
    value: Any
    attempts: int                   # 1 = first try succeeded
    total_latency: float
    attempt_log: list[dict[str, Any]] = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════
# Requester
# ═══════════════════════════════════════════════════════════════════

class RetryingRequester:
    """Executes one generation attempt with bounded retries and backoff."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        sink: ObservabilitySink | None = None,
        connectivity_check: Callable[[], bool] | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.policy = policy or DEFAULT_POLICY
        self.sink = sink or NullSink()
        self.connectivity_check = connectivity_check
        self.sleep_fn = sleep_fn

    def _terminal(self, error: GenerationError, step_name: str, attempts: int) -> GenerationError:
        self.sink.report("generation_terminal_failure", {
            "step": step_name,
            "attempts": attempts,
            "error_code": error.code,
            "error": error.message[:200],
            "correlation_id": error.correlation_id,
        })
        return error

    async def execute(
        self,
        factory: Callable[[int], Awaitable[Any]],
        step_name: str = "",
        correlation_id: str | None = None,
    ) -> RetryResult:
        """
        Run ``factory(attempt)`` until it succeeds or the budget is spent.

        Raises:
            OfflineError: connectivity precondition failed, nothing attempted
            ValidationError: provider rejected the request (4xx except 429)
            MalformedResponseError: last attempt returned an unusable payload
            ProviderUnavailableError: transient failures exhausted the budget
        """
        correlation_id = correlation_id or generate_correlation_id()
        policy = self.policy

        if self.connectivity_check is not None and not self.connectivity_check():
            logger.error("Device is offline, skipping generation (step=%s)", step_name)
            raise self._terminal(
                OfflineError("Device is offline. Cannot generate content.", correlation_id),
                step_name, 0,
            )

        attempt_log: list[dict[str, Any]] = []
        last_error: BaseException | None = None
        total_t0 = time.monotonic()

        for attempt in range(policy.max_attempts):
            entry: dict[str, Any] = {"attempt": attempt + 1, "step": step_name}
            t0 = time.monotonic()
            try:
                value = await factory(attempt)
            except Exception as e:
                entry["latency_s"] = round(time.monotonic() - t0, 3)
                entry["error"] = str(e)[:200]
                last_error = e

                if classify_error(e) is ErrorClass.TERMINAL:
                    entry["status"] = "non_retryable"
                    attempt_log.append(entry)
                    logger.error(
                        "Generation non-retryable error (step=%s): %s",
                        step_name, str(e)[:100],
                    )
                    if isinstance(e, GenerationError):
                        e.correlation_id = correlation_id
                        raise self._terminal(e, step_name, attempt + 1) from None
                    raise self._terminal(
                        ValidationError(
                            f"AI Request Rejected: {e or 'Client Error'}",
                            status=status_of(e),
                            correlation_id=correlation_id,
                        ),
                        step_name, attempt + 1,
                    ) from e

                entry["status"] = (
                    "parse_failure" if isinstance(e, MalformedResponseError) else "retryable_error"
                )
                attempt_log.append(entry)
                logger.warning(
                    "Generation attempt failed (attempt %d/%d, step=%s): %s",
                    attempt + 1, policy.max_attempts, step_name, str(e)[:100],
                )
                self.sink.report("generation_attempt_failed", {
                    "step": step_name,
                    "attempt": attempt + 1,
                    "max_attempts": policy.max_attempts,
                    "error": str(e)[:200],
                    "status": entry["status"],
                })

                if attempt < policy.max_attempts - 1:
                    delay = calculate_backoff(attempt, policy)
                    entry["backoff_s"] = round(delay, 2)
                    await self.sleep_fn(delay)
                continue

            entry["latency_s"] = round(time.monotonic() - t0, 3)
            entry["status"] = "success"
            attempt_log.append(entry)
            logger.debug("Generation succeeded (attempt %d, step=%s)", attempt + 1, step_name)
            self.sink.report("generation_attempt_succeeded", {
                "step": step_name,
                "attempts": attempt + 1,
            })
            return RetryResult(
                value=value,
                attempts=attempt + 1,
                total_latency=time.monotonic() - total_t0,
                attempt_log=attempt_log,
            )

        # ── All attempts exhausted ──
        logger.error(
            "All retry attempts exhausted (step=%s, attempts=%d)",
            step_name, len(attempt_log),
        )
        message = str(last_error) if last_error is not None else ""
        if isinstance(last_error, MalformedResponseError):
            error: GenerationError = MalformedResponseError(
                f"AI response could not be parsed after retries. {message}".strip(),
                raw_response=last_error.raw_response,
                correlation_id=correlation_id,
            )
        else:
            error = ProviderUnavailableError(
                f"AI Service unavailable after retries. {message}".strip(),
                correlation_id,
            )
        raise self._terminal(error, step_name, len(attempt_log)) from last_error
