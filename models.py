import re
from datetime import datetime
from typing import Iterator

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    ForeignKeyConstraint,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, validates

from database import Base

SEAT_NUMBER_PATTERN = re.compile(r"^[0-9]{1,3}[A-Z]$")
SEAT_LETTERS = "ABCDEF"


def generate_seat_numbers(total_seats: int) -> Iterator[str]:
    """Yield 1A..1F, 2A..2F, ... until ``total_seats`` numbers are produced."""
    for index in range(total_seats):
        row, letter = divmod(index, len(SEAT_LETTERS))
        yield f"{row + 1}{SEAT_LETTERS[letter]}"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(100), nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    reservations = relationship("Reservation", back_populates="user")


class Airport(Base):
    __tablename__ = "airports"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(3), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False)
    country = Column(String(100), nullable=False)

    @validates("code")
    def validate_code(self, key, value):
        if not value or len(value) != 3 or not value.isalpha():
            raise ValueError("Airport code must be exactly 3 letters")
        return value.upper()


class Aircraft(Base):
    __tablename__ = "aircraft"
    __table_args__ = (CheckConstraint("total_seats >= 1", name="ck_aircraft_total_seats"),)

    id = Column(Integer, primary_key=True, index=True)
    model = Column(String(100), nullable=False)
    total_seats = Column(Integer, nullable=False)

    flights = relationship("Flight", back_populates="aircraft")


class Flight(Base):
    __tablename__ = "flights"
    __table_args__ = (
        CheckConstraint("departure_time < arrival_time", name="ck_flight_departs_before_arrival"),
        CheckConstraint(
            "origin_airport_id <> destination_airport_id", name="ck_flight_distinct_airports"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    aircraft_id = Column(Integer, ForeignKey("aircraft.id", ondelete="RESTRICT"), nullable=False)
    origin_airport_id = Column(
        Integer, ForeignKey("airports.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    destination_airport_id = Column(
        Integer, ForeignKey("airports.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    departure_time = Column(DateTime, nullable=False, index=True)
    arrival_time = Column(DateTime, nullable=False)

    aircraft = relationship("Aircraft", back_populates="flights")
    origin_airport = relationship("Airport", foreign_keys=[origin_airport_id])
    destination_airport = relationship("Airport", foreign_keys=[destination_airport_id])
    seats = relationship(
        "Seat", back_populates="flight", cascade="all, delete-orphan", order_by="Seat.id"
    )
    reservations = relationship("Reservation", back_populates="flight")


class Seat(Base):
    __tablename__ = "seats"
    __table_args__ = (
        UniqueConstraint("flight_id", "seat_number", name="uq_seat_number_per_flight"),
        # Target of the reservations (seat_id, flight_id) foreign key.
        UniqueConstraint("id", "flight_id", name="uq_seat_on_flight"),
    )

    id = Column(Integer, primary_key=True, index=True)
    flight_id = Column(Integer, ForeignKey("flights.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_number = Column(String(5), nullable=False)
    # Mirrors the existence of a reservation; written only together with it.
    is_booked = Column(Boolean, default=False, nullable=False)

    flight = relationship("Flight", back_populates="seats")
    reservation = relationship(
        "Reservation",
        back_populates="seat",
        uselist=False,
        primaryjoin="Seat.id == Reservation.seat_id",
        foreign_keys="Reservation.seat_id",
    )

    @validates("seat_number")
    def validate_seat_number(self, key, value):
        if not value or not SEAT_NUMBER_PATTERN.match(value):
            raise ValueError(f"Invalid seat number {value!r}")
        return value


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        # The seat must sit on the reservation's flight.
        ForeignKeyConstraint(
            ["seat_id", "flight_id"],
            ["seats.id", "seats.flight_id"],
            name="fk_reservation_seat_on_flight",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    flight_id = Column(Integer, ForeignKey("flights.id"), nullable=False, index=True)
    # The unique index is what keeps a seat from being booked twice.
    seat_id = Column(Integer, nullable=False, unique=True, index=True)
    booking_time = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="reservations")
    flight = relationship("Flight", back_populates="reservations")
    seat = relationship(
        "Seat",
        back_populates="reservation",
        primaryjoin="Reservation.seat_id == Seat.id",
        foreign_keys=[seat_id],
    )
