"""Core Application Layer: the retry executor and command orchestration.

Works against the domain interfaces. When callers inject nothing, the
default classifier, backoff hooks and command runner come from the
infrastructure layer.
"""
