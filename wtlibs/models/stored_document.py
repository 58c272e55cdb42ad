"""StoredDocument ORM — one off-chain JSON document addressed by `db://<id>`.

Invariants:
    - id is the opaque URI payload; documents are overwritten in place on update
    - payload is always a JSON object

Design Decisions:
    - String id (uuid4 hex) over native UUID column: portable across sqlite and postgres
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from wtlibs.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredDocument(Base):
    """Off-chain document row."""
    __tablename__ = "stored_documents"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: uuid.uuid4().hex,
    )
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )
