"""Infrastructure Layer: Contains concrete implementations and adapters.

Provides the cache, rate limiting, retry, configuration and logging
building blocks the core facade is composed from.
"""
