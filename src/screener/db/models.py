from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from screener.db.base import Base


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="member", nullable=False)
    position: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    created_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class PositionRow(Base):
    __tablename__ = "positions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    job_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class HistoryRecordRow(Base):
    __tablename__ = "history_records"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)
    position_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    job_description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    special_requirements: Mapped[str] = mapped_column(Text, default="", nullable=False)
    results: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
