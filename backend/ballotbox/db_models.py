from __future__ import annotations

import uuid
from typing import List, Optional

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ballotbox.db import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class BallotRow(Base):
    __tablename__ = "ballots"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    url_token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    choices: Mapped[List[str]] = mapped_column(JSON, nullable=False)
    creator_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    created_at: Mapped[float] = mapped_column(Float, nullable=False)

    duration_mode: Mapped[str] = mapped_column(String(16), nullable=False)
    time_limit: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    vote_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False)
    closed_at: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    result_visibility: Mapped[str] = mapped_column(String(16), nullable=False)
    show_partial_results: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    results_visible_to_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class VoteRow(Base):
    __tablename__ = "votes"
    __table_args__ = (
        # One vote per voter per ballot; closes the check-then-insert race.
        UniqueConstraint("ballot_id", "voter_id", name="uq_votes_ballot_voter"),
        Index("ix_votes_ballot_id", "ballot_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ballot_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("ballots.id", ondelete="CASCADE"), nullable=False
    )
    voter_id: Mapped[str] = mapped_column(String(128), nullable=False)
    rankings: Mapped[list] = mapped_column(JSON, nullable=False)
    submitted_at: Mapped[float] = mapped_column(Float, nullable=False)


class ActivityRow(Base):
    __tablename__ = "user_ballot_activity"
    __table_args__ = (
        Index("ix_activity_user_id", "user_id"),
        Index("ix_activity_ballot_id", "ballot_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    ballot_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("ballots.id", ondelete="CASCADE"), nullable=False
    )
    activity_type: Mapped[str] = mapped_column(String(16), nullable=False)
    timestamp: Mapped[float] = mapped_column(Float, nullable=False)
