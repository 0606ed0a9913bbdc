"""Retry and fatal classification for durable pipeline steps.

Each step (transfer, describe, index) owns an ordered rule table. A failure
message is matched against the table by substring, first match wins:

* a rule with a backoff hint makes the failure retryable,
* a rule without one makes it fatal,
* no match leaves it unclassified, which is retried until the step's attempt
  ceiling and then becomes fatal.

The triggers are substrings of provider error text and are kept verbatim for
compatibility with the wording the providers emit today.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_TRIGGERS = ("rate limit", "429", "quota")
NETWORK_TRIGGERS = ("timeout", "ECONNREFUSED", "ETIMEDOUT", "network")


class RetryableStepError(Exception):
    """Step failed but may succeed when re-invoked by the worker."""

    def __init__(self, message: str, retry_after_seconds: int | None = None) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class FatalStepError(Exception):
    """Step failed permanently; the run must not be retried."""


@dataclass(frozen=True)
class ClassificationRule:
    """Maps trigger substrings to a retryable or fatal outcome."""

    triggers: tuple[str, ...]
    label: str
    retry_after_seconds: int | None = None

    def matches(self, message: str) -> bool:
        return any(trigger in message for trigger in self.triggers)


@dataclass(frozen=True)
class Retryable:
    message: str
    retry_after_seconds: int


@dataclass(frozen=True)
class Fatal:
    message: str


@dataclass(frozen=True)
class Unclassified:
    message: str


Classification = Retryable | Fatal | Unclassified


@dataclass(frozen=True)
class StepPolicy:
    """Retry policy for one kind of step."""

    name: str
    action: str
    failure_label: str
    max_attempts: int
    rules: tuple[ClassificationRule, ...]


TRANSFER_POLICY = StepPolicy(
    name="transfer",
    action="upload image",
    failure_label="Image upload failed",
    max_attempts=3,
    rules=(
        ClassificationRule(
            RATE_LIMIT_TRIGGERS, "Blob storage rate limited", retry_after_seconds=60
        ),
        # Shadowed by "quota" above except for "storage full".
        ClassificationRule(
            ("quota exceeded", "storage full"), "Storage quota exceeded"
        ),
        ClassificationRule(
            ("invalid file", "unsupported", "400"), "Invalid file type or format"
        ),
    ),
)

DESCRIBE_POLICY = StepPolicy(
    name="describe",
    action="describe image",
    failure_label="Image description failed",
    max_attempts=3,
    rules=(
        ClassificationRule(
            RATE_LIMIT_TRIGGERS, "Vision rate limited", retry_after_seconds=60
        ),
        ClassificationRule(NETWORK_TRIGGERS, "Network error", retry_after_seconds=30),
        ClassificationRule(("invalid", "400"), "Invalid image for description"),
    ),
)

INDEX_POLICY = StepPolicy(
    name="index",
    action="index image",
    failure_label="Search indexing failed",
    max_attempts=5,
    rules=(
        ClassificationRule(
            RATE_LIMIT_TRIGGERS, "Upstash rate limited", retry_after_seconds=60
        ),
        ClassificationRule(NETWORK_TRIGGERS, "Network error", retry_after_seconds=30),
        ClassificationRule(("invalid", "400"), "Invalid data for indexing"),
    ),
)

POLICIES = {
    policy.name: policy for policy in (TRANSFER_POLICY, DESCRIBE_POLICY, INDEX_POLICY)
}


def classify(message: str, rules: tuple[ClassificationRule, ...]) -> Classification:
    """Classify a failure message against an ordered rule table."""
    for rule in rules:
        if not rule.matches(message):
            continue
        text = f"{rule.label}: {message}"
        if rule.retry_after_seconds is None:
            return Fatal(text)
        return Retryable(text, rule.retry_after_seconds)
    return Unclassified(message)


def resolve_failure(
    policy: StepPolicy,
    message: str,
    *,
    step_id: str,
    attempt: int,
    started_at: datetime,
) -> RetryableStepError | FatalStepError:
    """Turn a failure message into the error the worker acts on."""
    classification = classify(message, policy.rules)
    if isinstance(classification, Retryable):
        return RetryableStepError(
            classification.message, classification.retry_after_seconds
        )
    if isinstance(classification, Fatal):
        return FatalStepError(f"[{step_id}] {classification.message}")
    if attempt >= policy.max_attempts:
        return FatalStepError(
            f"[{step_id}] Failed to {policy.action} after {attempt} attempts "
            f"as of {started_at.isoformat()}: {message}"
        )
    return RetryableStepError(f"{policy.failure_label}: {message}")


async def run_step(
    policy: StepPolicy,
    func: Callable[[], Awaitable[T]],
    *,
    step_id: str,
    attempt: int,
    started_at: datetime,
) -> T:
    """Execute a single attempt of a step under its retry policy."""
    _logger.info(
        "[%s] Running %s (attempt %s)",
        step_id,
        policy.name,
        attempt,
        extra={"step": policy.name, "attempt": attempt},
    )
    try:
        result = await func()
    except Exception as exc:
        message = str(exc) or "Unknown error"
        raise resolve_failure(
            policy,
            message,
            step_id=step_id,
            attempt=attempt,
            started_at=started_at,
        ) from exc
    _logger.info(
        "[%s] Finished %s at %s",
        step_id,
        policy.name,
        started_at.isoformat(),
    )
    return result
