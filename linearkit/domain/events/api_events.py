"""Domain Events related to API calls and resilience.

Examples include events for when calls are deferred, retried, fail, or succeed,
and for cache lookups that avoid a remote call.
"""

from dataclasses import dataclass, field
import time
from typing import Any, Callable, Dict, Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Specific API Events ---

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when an API call attempt is about to be made."""
    endpoint: str
    attempt_number: int = 1
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an API call succeeds."""
    endpoint: str
    latency_ms: float
    attempt_number: int = 1
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an API call fails definitively (non-retryable or retries exhausted)."""
    endpoint: str
    error_type: str
    error_message: str
    attempts: int = 1
    context: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallDeferred(DomainEvent):
    """Event triggered when an API call was deferred due to rate limiting."""
    endpoint: str
    wait_time_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed API call."""
    endpoint: str
    attempt_number: int
    delay_seconds: float
    error_message: str = ""
    timestamp: float = field(default_factory=time.time)


@dataclass
class CacheHit(DomainEvent):
    """Event triggered when a cached value answered a call."""
    cache_name: str
    key: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class CacheMiss(DomainEvent):
    """Event triggered when a cache lookup found nothing fresh."""
    cache_name: str
    key: str
    timestamp: float = field(default_factory=time.time)


EventHandler = Callable[[DomainEvent], None]
