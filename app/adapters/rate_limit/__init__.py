"""Rate limiting adapters.

Every backend implements the same ``limit(identifier)`` contract so routes can
run against an in-process counter (single instance, development) or a shared
Upstash Redis counter (multi-instance deployments) without changes.
"""
