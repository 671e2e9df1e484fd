"""
Relational schema for connections and participants.

The active-pair rule is enforced here as well as in the lifecycle
service: ``uq_connections_active_pair`` is a partial unique index over
``pair_key`` restricted to pending and accepted rows, so two concurrent
requests for the same pair cannot both commit.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

ACTIVE_STATUS_CLAUSE = "status IN ('pending', 'accepted')"
ACTIVE_PAIR_INDEX = "uq_connections_active_pair"


class Base(DeclarativeBase):
    pass


class ConnectionRecord(Base):
    __tablename__ = "connections"
    __table_args__ = (
        CheckConstraint(
            "NOT (requester_kind = receiver_kind AND requester_id = receiver_id)",
            name="ck_connections_not_self",
        ),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'removed')",
            name="ck_connections_status",
        ),
        CheckConstraint(
            "requester_kind IN ('consultant', 'client') AND receiver_kind IN ('consultant', 'client')",
            name="ck_connections_kinds",
        ),
        CheckConstraint(
            "(status = 'pending') = (response_date IS NULL)",
            name="ck_connections_response_date",
        ),
        Index(
            ACTIVE_PAIR_INDEX,
            "pair_key",
            unique=True,
            sqlite_where=text(ACTIVE_STATUS_CLAUSE),
            postgresql_where=text(ACTIVE_STATUS_CLAUSE),
        ),
        Index("ix_connections_requester", "requester_kind", "requester_id"),
        Index("ix_connections_receiver", "receiver_kind", "receiver_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    requester_kind: Mapped[str] = mapped_column(String(20))
    requester_id: Mapped[int] = mapped_column(Integer)
    receiver_kind: Mapped[str] = mapped_column(String(20))
    receiver_id: Mapped[int] = mapped_column(Integer)
    pair_key: Mapped[str] = mapped_column(String(80))
    status: Mapped[str] = mapped_column(String(20), default="pending")
    request_date: Mapped[datetime] = mapped_column(DateTime)
    response_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime)
    updated_at: Mapped[datetime] = mapped_column(DateTime)


class ConsultantRecord(Base):
    __tablename__ = "consultants"

    consultant_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(200), default="")
    email: Mapped[str] = mapped_column(String(255), default="")
    location: Mapped[str] = mapped_column(String(200), default="")
    specialization: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, default=None)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)


class ClientRecord(Base):
    __tablename__ = "clients"

    client_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(200), default="")
    email: Mapped[str] = mapped_column(String(255), default="")
    location: Mapped[str] = mapped_column(String(200), default="")
    company_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, default=None)
    industry: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, default=None)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
