"""SQLAlchemy models for the reference booking backend."""
from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Flight(Base):
    __tablename__ = "flights"
    __table_args__ = (
        UniqueConstraint("flight_number", name="uq_flight_number"),
        CheckConstraint("seats_available >= 0", name="ck_seats_available_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    flight_number: Mapped[str] = mapped_column(String(10), nullable=False)
    from_city: Mapped[str] = mapped_column(String(60), nullable=False)
    to_city: Mapped[str] = mapped_column(String(60), nullable=False)
    departure_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    arrival_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    cost: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    seats_available: Mapped[int] = mapped_column(Integer, nullable=False)

    bookings: Mapped[List["Booking"]] = relationship(back_populates="flight", cascade="all, delete-orphan")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint("pnr", name="uq_booking_pnr"),
        CheckConstraint("number_of_tickets > 0", name="ck_tickets_positive"),
        # A seat may be re-sold once its previous booking is cancelled.
        Index(
            "uq_booked_flight_seat",
            "flight_id",
            "seat_number",
            unique=True,
            sqlite_where=text("status = 'BOOKED'"),
            postgresql_where=text("status = 'BOOKED'"),
        ),
        Index("ix_booking_email", "email"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    flight_id: Mapped[int] = mapped_column(ForeignKey("flights.id", ondelete="CASCADE"))
    passenger_name: Mapped[str] = mapped_column(String(100), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[str] = mapped_column(String(10), nullable=False)
    meal: Mapped[str] = mapped_column(String(10), nullable=False)
    email: Mapped[str] = mapped_column(String(120), nullable=False)
    number_of_tickets: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    seat_number: Mapped[str] = mapped_column(String(4), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="BOOKED", nullable=False)
    pnr: Mapped[str] = mapped_column(String(8), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    flight: Mapped[Flight] = relationship(back_populates="bookings")
