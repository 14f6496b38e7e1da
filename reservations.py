"""Seat reservation workflow.

A seat on a flight is booked by at most one user. The unique index on
``reservations.seat_id`` is the guarantee; ``Seat.is_booked`` is a
denormalized copy written in the same unit of work as the reservation row,
so readers never see one without the other.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple, Union

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from auth import Principal, is_admin, is_authenticated, is_owner
from database import unit_of_work
from errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    SeatConflictError,
    StoreError,
    UnauthenticatedError,
)
from models import Flight, Reservation, Seat, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeatAvailability:
    seat_id: int
    flight_id: int
    seat_number: str
    is_booked: bool


def _is_valid_id(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _parse_id(value) -> Optional[int]:
    """Positive integer id, also accepted in the decimal string form path segments arrive in."""
    if isinstance(value, str) and value.isascii() and value.isdigit():
        value = int(value)
    return value if _is_valid_id(value) else None


def _seat_reservation_id(session: Session, seat_id: int) -> Optional[int]:
    return session.scalar(select(Reservation.id).where(Reservation.seat_id == seat_id))


def _reservation_query(reservation_id: int):
    return (
        select(Reservation)
        .where(Reservation.id == reservation_id)
        .options(
            joinedload(Reservation.seat),
            joinedload(Reservation.flight).joinedload(Flight.origin_airport),
            joinedload(Reservation.flight).joinedload(Flight.destination_airport),
        )
        .execution_options(populate_existing=True)
    )


def list_seats_with_availability(session: Session, flight_id: int) -> List[SeatAvailability]:
    """Every seat of the flight, in seat-map order, flagged booked when a reservation holds it.

    An unknown flight yields an empty list.
    """
    stmt = (
        select(Seat.id, Seat.flight_id, Seat.seat_number, Reservation.id)
        .outerjoin(Reservation, Reservation.seat_id == Seat.id)
        .where(Seat.flight_id == flight_id)
        .order_by(Seat.id)
    )
    try:
        rows = session.execute(stmt).all()
    except SQLAlchemyError as exc:
        logger.exception("Failed to load seats for flight %s", flight_id)
        raise StoreError() from exc

    return [
        SeatAvailability(
            seat_id=seat_id,
            flight_id=seat_flight_id,
            seat_number=seat_number,
            is_booked=reservation_id is not None,
        )
        for seat_id, seat_flight_id, seat_number, reservation_id in rows
    ]


def create_reservation(
    session: Session, *, flight_id: int, seat_id: int, user: Optional[Principal]
) -> Reservation:
    """Book ``seat_id`` on ``flight_id`` for ``user``.

    Raises, in this order of precedence: UnauthenticatedError, ForbiddenError
    for administrators, InvalidInputError for missing ids, UnauthenticatedError
    again when the account behind the token is gone, NotFoundError when the
    seat does not exist on that flight, SeatConflictError when the seat is
    taken. A booking that loses a concurrent race on the unique seat index is
    reported as SeatConflictError as well.
    """
    if not is_authenticated(user):
        raise UnauthenticatedError()
    if is_admin(user):
        raise ForbiddenError("Administrators cannot book seats")
    if not _is_valid_id(flight_id) or not _is_valid_id(seat_id):
        raise InvalidInputError("Flight ID and Seat ID are required")

    try:
        with unit_of_work(session):
            # A signed token can outlive the account it was issued for.
            if session.scalar(select(User.id).where(User.id == user.id)) is None:
                raise UnauthenticatedError()
            seat = session.scalars(
                select(Seat)
                .where(Seat.id == seat_id, Seat.flight_id == flight_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).first()
            if seat is None:
                raise NotFoundError("Seat not found on this flight")
            if _seat_reservation_id(session, seat.id) is not None:
                raise SeatConflictError()

            reservation = Reservation(
                user_id=user.id,
                flight_id=flight_id,
                seat=seat,
                booking_time=datetime.utcnow(),
            )
            session.add(reservation)
            seat.is_booked = True
            session.flush()
    except IntegrityError as exc:
        if _seat_reservation_id(session, seat_id) is not None:
            logger.warning("Seat %s on flight %s was booked by a concurrent request", seat_id, flight_id)
            raise SeatConflictError() from exc
        logger.exception("Could not store reservation for seat %s on flight %s", seat_id, flight_id)
        raise StoreError() from exc
    except SQLAlchemyError as exc:
        logger.exception("Could not store reservation for seat %s on flight %s", seat_id, flight_id)
        raise StoreError() from exc

    logger.info(
        "Reservation %s created: user=%s flight=%s seat=%s",
        reservation.id,
        user.id,
        flight_id,
        seat.seat_number,
    )
    return reservation


def _release(session: Session, reservation: Reservation):
    seat = session.get(Seat, reservation.seat_id, with_for_update=True, populate_existing=True)
    session.delete(reservation)
    if seat is not None:
        seat.is_booked = False
    session.flush()


def _delete(session: Session, reservation_id: int, user: Principal, *, owner_only: bool) -> Reservation:
    try:
        with unit_of_work(session):
            reservation = session.scalars(
                select(Reservation)
                .where(Reservation.id == reservation_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).first()
            # Other users' reservations are reported as missing, not forbidden.
            if reservation is None or (owner_only and not is_owner(reservation, user)):
                raise NotFoundError("Reservation not found")
            _release(session, reservation)
    except SQLAlchemyError as exc:
        logger.exception("Could not delete reservation %s", reservation_id)
        raise StoreError() from exc
    return reservation


def delete_reservation(session: Session, *, reservation_id: Union[int, str], user: Optional[Principal]) -> None:
    """Cancel the caller's own reservation and free its seat."""
    if not is_authenticated(user):
        raise UnauthenticatedError()
    reservation_id = _parse_id(reservation_id)
    if reservation_id is None:
        raise InvalidInputError("Invalid reservation ID")

    reservation = _delete(session, reservation_id, user, owner_only=True)
    logger.info("Reservation %s cancelled by its owner %s", reservation_id, reservation.user_id)


def cancel_reservation_as_admin(
    session: Session, *, reservation_id: Union[int, str], user: Optional[Principal]
) -> None:
    """Administrative cancellation of any user's reservation."""
    if not is_authenticated(user):
        raise UnauthenticatedError()
    if not is_admin(user):
        raise ForbiddenError("Admin privileges required")
    reservation_id = _parse_id(reservation_id)
    if reservation_id is None:
        raise InvalidInputError("Invalid reservation ID")

    reservation = _delete(session, reservation_id, user, owner_only=False)
    logger.info(
        "Reservation %s of user %s cancelled by administrator %s",
        reservation_id,
        reservation.user_id,
        user.id,
    )


def get_reservation(session: Session, *, reservation_id: Union[int, str], user: Optional[Principal]) -> Reservation:
    if not is_authenticated(user):
        raise UnauthenticatedError()
    reservation_id = _parse_id(reservation_id)
    if reservation_id is None:
        raise InvalidInputError("Invalid reservation ID")

    reservation = session.scalars(_reservation_query(reservation_id)).first()
    if reservation is None or not is_owner(reservation, user):
        raise NotFoundError("Reservation not found")
    return reservation


def list_user_reservations(session: Session, user: Optional[Principal]) -> List[Reservation]:
    if not is_authenticated(user):
        raise UnauthenticatedError()
    stmt = (
        select(Reservation)
        .join(Reservation.flight)
        .where(Reservation.user_id == user.id)
        .options(
            joinedload(Reservation.seat),
            joinedload(Reservation.flight).joinedload(Flight.origin_airport),
            joinedload(Reservation.flight).joinedload(Flight.destination_airport),
        )
        .order_by(Flight.departure_time, Reservation.id)
    )
    return list(session.scalars(stmt))


def list_all_reservations(
    session: Session, *, page: int = 1, page_size: int = 10
) -> Tuple[List[Reservation], int]:
    """One page of every reservation, newest first, with the total count."""
    page = max(page, 1)
    page_size = max(page_size, 1)
    stmt = (
        select(Reservation)
        .options(
            joinedload(Reservation.user),
            joinedload(Reservation.seat),
            joinedload(Reservation.flight).joinedload(Flight.origin_airport),
            joinedload(Reservation.flight).joinedload(Flight.destination_airport),
        )
        .order_by(Reservation.id.desc())
        .limit(page_size)
        .offset((page - 1) * page_size)
    )
    total = session.scalar(select(func.count(Reservation.id))) or 0
    return list(session.scalars(stmt)), total


def get_reservation_for_admin(session: Session, reservation_id: int) -> Reservation:
    reservation = session.scalars(
        _reservation_query(reservation_id).options(joinedload(Reservation.user))
    ).first()
    if reservation is None:
        raise NotFoundError("Reservation not found")
    return reservation
