"""
Pydantic schema definitions for API payloads.

Schemas are separated from the SQLite rows so that the API
representation can evolve independently of the storage layout.
"""
