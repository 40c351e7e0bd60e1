"""Network Resilience Implementations.

Contains the error classification, retry with exponential backoff and
timeout racing used by networked operations.
Bounded Context: Network Resilience
"""
