"""Domain Event definitions.

Represents significant occurrences during a retried operation that callers
and hooks might react to.
"""
