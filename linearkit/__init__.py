"""linearkit: a resilient client facade over the Linear issue-tracking API."""

__version__ = "0.1.0"
