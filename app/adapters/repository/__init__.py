"""Persistence adapters.

Services talk to ``AbstractRepository``; the in-memory store backs
development and tests, and a database-backed store can replace it without
changing the service layer.
"""
