"""Core Layer — pure domain types, errors and boundary contracts, no IO.

Invariants:
    - No module in core/ imports from dataset/, services/, infrastructure/ or db/
    - Nothing here awaits anything; async only appears in Protocol signatures

Design Decisions:
    - Functional core separated from imperative shell (ADR: impureim sandwich)
"""
