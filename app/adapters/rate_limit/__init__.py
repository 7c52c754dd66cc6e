"""Rate limiting adapters.

This package provides a small abstraction layer so the service can run with
an in-memory limiter and move to Redis or another shared store without
changing the guard layer.
"""
