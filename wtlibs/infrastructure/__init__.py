"""Infrastructure Layer — off-chain storage adapters and cross-cutting concerns.

Invariants:
    - Adapters never import from dataset/ or services/
    - All external calls wrapped with retry/timeout/error mapping

Design Decisions:
    - Resilient wrappers over raw clients (ADR: single responsibility)
"""
