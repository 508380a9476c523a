"""API Resilience Implementations.

Contains services for bounding the outbound call rate and for retrying
transient failures with exponential backoff.
Bounded Context: API Resilience
"""
