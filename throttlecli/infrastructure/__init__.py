"""Infrastructure Layer: Contains concrete implementations and adapters.

Provider throttling rules, backoff hooks, configuration loading, logging
setup, the rich console display and subprocess-backed operations.
"""
