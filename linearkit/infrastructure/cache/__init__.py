"""Caching Service Implementation.

Provides the in-memory TTL cache used for slowly-changing Linear reference
data (viewer, teams, workflow states).
Bounded Context: Cache Management
"""
