"""ORM Models — SQLAlchemy declarative models for the off-chain document store.

Design Decisions:
    - All models imported here so Base.metadata is complete before create_all
"""

from wtlibs.models.stored_document import StoredDocument  # noqa: F401
