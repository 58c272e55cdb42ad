"""Dataset Layer — remote-backed field binding and lazy off-chain document pointers.

Invariants:
    - Datasets and pointers own their caches exclusively (no cross-instance sharing)
    - Every remote call is a suspension point; no blocking IO

Design Decisions:
    - One generic dataset for every remote backend; entities differ only in the
      accessors they bind
"""
