"""Composition Root for linearkit.

Loads configuration, configures logging and wires the rate limiter, retry
service and caches into one LinearService. The process constructs this
instance once and hands it to whatever layer exposes the operations.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

# --- Domain Layer ---
from linearkit.domain.events.api_events import EventHandler
from linearkit.domain.interfaces.linear_api import LinearApi

# --- Core Layer ---
from linearkit.core.services.linear_service import LinearService

# --- Infrastructure Layer ---
# Config
from linearkit.infrastructure.config.settings import (
    DEFAULT_CONFIG_FILE,
    get_cache_ttls,
    get_linear_api_key,
    get_log_file,
    get_log_level,
    get_rate_limit_max,
    get_rate_limit_mutations,
    get_rate_limit_window_seconds,
    get_retry_policy,
    load_configuration,
    redact,
)
# Monitoring
from linearkit.infrastructure.monitoring.logger_setup import setup_logging
# Resilience
from linearkit.infrastructure.resilience.api_retry import ApiRetryService
from linearkit.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def create_dependencies(
    api: LinearApi,
    config_file: Path = DEFAULT_CONFIG_FILE,
    configure_logging: bool = True,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    event_handler: Optional[EventHandler] = None,
) -> Dict[str, Any]:
    """Creates and wires up all dependencies of the facade.

    Args:
        api: The remote capability, already holding its credential.
        config_file: YAML configuration file to read.
        configure_logging: Install the root logging handlers.
        clock: Monotonic clock shared by the caches and the rate limiter.
        sleep: Coroutine function shared by the rate limiter and retries.
        event_handler: Receives API and cache events.

    Returns:
        Mapping with the 'rate_limiter', 'retry_service' and 'linear_service' instances.
    """
    load_configuration(config_file=config_file)
    if configure_logging:
        setup_logging(log_level=get_log_level(), log_file=get_log_file())
    logger.info("Initializing linearkit dependencies...")
    logger.debug(f"Linear API key: {redact(get_linear_api_key())}")

    dependencies: Dict[str, Any] = {}
    dependencies['rate_limiter'] = RateLimiter(
        max_requests=get_rate_limit_max(),
        time_window=get_rate_limit_window_seconds(),
        clock=clock,
        sleep=sleep,
    )
    dependencies['retry_service'] = ApiRetryService(
        policy=get_retry_policy(),
        sleep=sleep,
        event_handler=event_handler,
    )
    dependencies['linear_service'] = LinearService(
        api=api,
        rate_limiter=dependencies['rate_limiter'],
        retry_service=dependencies['retry_service'],
        cache_ttls=get_cache_ttls(),
        rate_limit_mutations=get_rate_limit_mutations(),
        clock=clock,
        event_handler=event_handler,
    )
    logger.info("linearkit dependencies initialized.")
    return dependencies


def create_linear_service(api: LinearApi, **kwargs: Any) -> LinearService:
    """Builds the process-wide LinearService; see create_dependencies for arguments."""
    return create_dependencies(api, **kwargs)['linear_service']
