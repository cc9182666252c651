"""Transport adapters and sinks for the observation conventions.

An ASGI middleware for the server side and an httpx transport wrapper for the
client side fill in an exchange context, structlog carries the per-exchange
event, and an in-memory timer store aggregates the low-cardinality tags.
"""
