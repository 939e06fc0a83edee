"""Link storage adapters.

Services depend on AbstractLinkRepository; the in-memory repository backs
development and tests.
"""
