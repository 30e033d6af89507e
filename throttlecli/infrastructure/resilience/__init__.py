"""Throttling Resilience Implementations.

Contains the rule-based throttling classifier and the backoff hooks that
the retry executor calls between attempts.
Bounded Context: API Resilience
"""
