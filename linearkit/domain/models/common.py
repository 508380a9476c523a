"""Defines common Value Objects used across different domain contexts.

These objects represent remote payload shapes, the retry backoff policy,
cache lifetimes and the structured results handed to outer layers.
"""

from dataclasses import dataclass
from typing import Any, Dict, NewType, Optional, TypedDict

# === Remote Payloads ===
IssueFilter = NewType("IssueFilter", Dict[str, Any])   # Structured filter in the remote schema's shape
IssueInput = NewType("IssueInput", Dict[str, Any])     # Create/update payload in the remote schema's shape


# --- Structured Data ---

@dataclass(frozen=True)
class RetryPolicy:
    """Value Object representing retry backoff configuration."""
    max_retries: int = 3
    initial_delay: float = 1.0      # seconds
    max_delay: float = 10.0         # seconds
    backoff_multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Returns the sleep before retrying after the given zero-based attempt."""
        return min(self.initial_delay * (self.backoff_multiplier ** attempt), self.max_delay)


DEFAULT_RETRY_POLICY = RetryPolicy()


@dataclass(frozen=True)
class CacheTtls:
    """Time-to-live, in seconds, for each cached reference entity."""
    viewer: float = 5 * 60
    teams: float = 10 * 60
    workflow_states: float = 15 * 60


DEFAULT_CACHE_TTLS = CacheTtls()


class ErrorResponse(TypedDict):
    """Standardized error payload handed to outer layers."""
    status_code: int
    code: str
    message: str
    details: Optional[Any]


class HealthStatus(TypedDict, total=False):
    """Result of a connectivity check against the remote API."""
    status: str              # 'healthy' or 'unhealthy'
    api_connected: bool
    viewer: Dict[str, Optional[str]]
    error: str
