"""Database Layer — declarative base for the document store tables.

Invariants:
    - No business logic here; only SQLAlchemy plumbing
"""
