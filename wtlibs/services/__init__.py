"""Services Layer — domain entities composing datasets, pointers and the ledger.

Invariants:
    - Entities reach off-chain adapters only through the AdapterRegistry; only the
      WTLibs facade constructs adapters
    - Ledger and wallet are reached only through core/boundary_protocols.py
"""
