"""Schemas — Pydantic models validating data at the library boundary.

Invariants:
    - Input models reject malformed URIs and empty identities before any remote call
"""
