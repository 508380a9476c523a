"""Domain Event definitions.

Represents significant occurrences during remote API calls (deferrals,
retries, failures, cache hits) that observers might react to.
"""
