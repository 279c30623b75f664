"""
Database tables.

SQLAlchemy ORM models for users and their recorded ECG results.
"""

from datetime import date, datetime, time
from typing import List

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Time
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class User(Base):
    """Registered application user. Passwords are stored as given."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    ecg_results: Mapped[List["EcgResult"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )


class EcgResult(Base):
    """A single heart rate reading with its derived classification."""

    __tablename__ = "ecg_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Copy of the owner's username at the time of recording
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    tanggal: Mapped[date] = mapped_column(Date, nullable=False)
    waktu: Mapped[time] = mapped_column(Time, nullable=False)
    bpm: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    kondisi: Mapped[str] = mapped_column(String(255), nullable=False)

    user: Mapped[User] = relationship(back_populates="ecg_results")

    __table_args__ = (
        Index("idx_ecg_results_user_recorded", "user_id", "tanggal", "waktu"),
    )
