"""SQLAlchemy ORM models for the decision ledger.

A single table records every like/pass an actor has made about a recipient.
The composite primary key doubles as the uniqueness guarantee for a directed
pair, and the secondary indexes mirror the two access paths the service uses:
inbound liker scans ordered newest-first and point lookups for mutual likes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from explore.pagination import utcnow_ms

_UINT64_OFFSET = 2**63


class Base(DeclarativeBase):
    pass


class UnsignedBigInt(TypeDecorator[int]):
    """Store an unsigned 64-bit identifier in a signed ``BIGINT`` column.

    Values are shifted down by ``2**63`` on the way in and back up on the way
    out. The shift is monotonic, so ``ORDER BY`` and range comparisons on the
    stored value agree with the ordering of the identifiers themselves.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value: int | None, dialect) -> int | None:
        if value is None:
            return None
        return int(value) - _UINT64_OFFSET

    def process_result_value(self, value: int | None, dialect) -> int | None:
        if value is None:
            return None
        return int(value) + _UINT64_OFFSET


class Decision(Base):
    """A like (``liked=True``) or pass (``liked=False``) from actor to recipient."""

    __tablename__ = "decisions"

    actor_id: Mapped[int] = mapped_column(
        UnsignedBigInt(),
        primary_key=True,
        doc="Identifier of the user making the decision.",
    )
    recipient_id: Mapped[int] = mapped_column(
        UnsignedBigInt(),
        primary_key=True,
        doc="Identifier of the user being liked or passed.",
    )
    liked: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow_ms,
        doc="First time the actor decided on the recipient. Never rewritten.",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow_ms,
        doc=(
            "Bumped on every decision for the pair. Millisecond precision so the"
            " value round-trips through pagination tokens unchanged."
        ),
    )

    def __repr__(self) -> str:
        arrow = "like" if self.liked else "pass"
        return f"<Decision {self.actor_id} -{arrow}-> {self.recipient_id}>"


Index(
    "ix_decisions_recipient_liked_updated_actor",
    Decision.recipient_id,
    Decision.liked,
    Decision.updated_at.desc(),
    Decision.actor_id.desc(),
)
Index(
    "ix_decisions_actor_recipient_liked",
    Decision.actor_id,
    Decision.recipient_id,
    Decision.liked,
)

__all__ = ["Base", "Decision", "UnsignedBigInt"]
