import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from umamii.models.base import Base

PENDING = "pending"
ACCEPTED = "accepted"


class Friendship(Base):
    """A directed friend edge. Declined and removed edges are deleted, never stored."""

    __tablename__ = "friendships"

    requester_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    recipient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Canonical ordering of the pair: user_id_1 < user_id_2, one edge per pair
    user_id_1: Mapped[uuid.UUID] = mapped_column(nullable=False)
    user_id_2: Mapped[uuid.UUID] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PENDING
    )  # pending, accepted
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("user_id_1", "user_id_2", name="uq_friendships_pair"),
        CheckConstraint("user_id_1 < user_id_2", name="canonical_order"),
        CheckConstraint("status IN ('pending', 'accepted')", name="status"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == PENDING

    @property
    def is_accepted(self) -> bool:
        return self.status == ACCEPTED
