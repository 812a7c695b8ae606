"""Tournament model. The bracket is embedded as a JSON document."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from arena.models.base import Base

TOURNAMENT_TYPES = ("public", "private")
TOURNAMENT_STATUSES = ("registration", "active", "completed", "cancelled")


class Tournament(Base):
    """Single-elimination tournament with entry cost and prize pool."""

    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    type: Mapped[str] = mapped_column(String(16), nullable=False)  # public, private
    max_players: Mapped[int] = mapped_column(Integer, nullable=False)  # bracket size, 4 or 8
    entry_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    prize_pool: Mapped[int] = mapped_column(Integer, nullable=False)
    award_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=80.0)
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="registration", index=True)
    # User ids in join order; this is the seeding order fed to the bracket
    participants: Mapped[list] = mapped_column(JSON, default=list)
    bracket: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    current_round: Mapped[int] = mapped_column(Integer, default=0)
    winner_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    prize_distributed: Mapped[bool] = mapped_column(Boolean, default=False)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    winner = relationship("User", foreign_keys=[winner_id])
    transactions = relationship("Transaction", back_populates="tournament")
