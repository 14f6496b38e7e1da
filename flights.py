"""Read-only flight, airport and dashboard queries."""
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from errors import InvalidInputError, NotFoundError
from models import Aircraft, Airport, Flight, Reservation, User


def _with_details(stmt):
    return stmt.options(
        joinedload(Flight.origin_airport),
        joinedload(Flight.destination_airport),
        joinedload(Flight.aircraft),
    )


def list_flights(session: Session) -> List[Flight]:
    return list(session.scalars(_with_details(select(Flight)).order_by(Flight.departure_time)))


def get_flight(session: Session, flight_id: int) -> Flight:
    flight = session.scalars(_with_details(select(Flight)).where(Flight.id == flight_id)).first()
    if not flight:
        raise NotFoundError("Flight not found")
    return flight


def list_airports(session: Session) -> List[Airport]:
    return list(session.scalars(select(Airport).order_by(Airport.code)))


def get_airport(session: Session, airport_id: int) -> Airport:
    airport = session.get(Airport, airport_id)
    if not airport:
        raise NotFoundError("Airport not found")
    return airport


def find_airport(session: Session, term: str) -> Optional[Airport]:
    """Match an airport by its code or a fragment of its city name."""
    term = term.strip()
    if not term:
        return None
    stmt = (
        select(Airport)
        .where(or_(Airport.code == term.upper(), Airport.city.ilike(f"%{term}%")))
        .order_by((Airport.code == term.upper()).desc(), Airport.id)
    )
    return session.scalars(stmt).first()


def _parse_day(value: str, field: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field} must be a date formatted as YYYY-MM-DD") from None


def _flights_on_day(session: Session, origin: Airport, destination: Airport, day: datetime) -> List[Flight]:
    stmt = (
        _with_details(select(Flight))
        .where(
            Flight.origin_airport_id == origin.id,
            Flight.destination_airport_id == destination.id,
            Flight.departure_time >= day,
            Flight.departure_time < day + timedelta(days=1),
        )
        .order_by(Flight.departure_time)
    )
    return list(session.scalars(stmt))


def search_flights(
    session: Session,
    *,
    origin: str,
    destination: str,
    departure_date: str,
    return_date: Optional[str] = None,
) -> Dict[str, Optional[List[Flight]]]:
    if not origin or not destination or not departure_date:
        raise InvalidInputError("Missing required search parameters")

    departure_day = _parse_day(departure_date, "departureDate")
    return_day = _parse_day(return_date, "returnDate") if return_date else None

    origin_airport = find_airport(session, origin)
    if not origin_airport:
        raise NotFoundError(f"Origin airport '{origin}' not found. Please check airport code or city name.")
    destination_airport = find_airport(session, destination)
    if not destination_airport:
        raise NotFoundError(
            f"Destination airport '{destination}' not found. Please check airport code or city name."
        )
    if origin_airport.id == destination_airport.id:
        raise InvalidInputError("Origin and destination cannot be the same airport.")
    if return_day is not None and return_day <= departure_day:
        raise InvalidInputError("Return date must be after departure date.")

    outbound = _flights_on_day(session, origin_airport, destination_airport, departure_day)
    inbound = None
    if return_day is not None:
        inbound = _flights_on_day(session, destination_airport, origin_airport, return_day)
    return {"outbound": outbound, "return": inbound}


def dashboard_stats(session: Session) -> Dict[str, int]:
    return {
        "totalFlights": session.scalar(select(func.count(Flight.id))) or 0,
        "totalUsers": session.scalar(select(func.count(User.id))) or 0,
        "totalAircraft": session.scalar(select(func.count(Aircraft.id))) or 0,
        "totalReservations": session.scalar(select(func.count(Reservation.id))) or 0,
    }
