"""wtlibs — client-side data access for hotels backed by a ledger and off-chain documents.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
"""
