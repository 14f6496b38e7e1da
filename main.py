import logging
import math
import sys
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import auth
import flights
import reservations
from auth import Principal
from config import CORS_ORIGINS, LOG_LEVEL, SEED_DATA
from database import SessionLocal, engine, get_db, init_db
from errors import DomainError, ForbiddenError, InvalidInputError, NotFoundError, UnauthenticatedError
from models import Airport, Flight, Reservation, User
from schemas import (
    AdminReservationOut,
    AdminReservationPage,
    AirportOut,
    DashboardStats,
    FlightOut,
    FlightSearchResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ReservationCreate,
    ReservationOut,
    SeatOut,
    UserCreate,
    UserOut,
)
from seed import seed_database_if_empty

logger = logging.getLogger(__name__)


def configure_logging():
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(LOG_LEVEL)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


#
# Serialization
#

def serialize_user(user: User) -> UserOut:
    return UserOut(user_id=user.id, username=user.username, email=user.email, is_admin=user.is_admin)


def serialize_airport(airport: Airport) -> AirportOut:
    return AirportOut(
        airport_id=airport.id,
        code=airport.code,
        name=airport.name,
        city=airport.city,
        country=airport.country,
    )


def serialize_flight(flight: Flight) -> FlightOut:
    origin = flight.origin_airport
    destination = flight.destination_airport
    return FlightOut(
        flight_id=flight.id,
        aircraft_id=flight.aircraft_id,
        origin_airport_id=flight.origin_airport_id,
        destination_airport_id=flight.destination_airport_id,
        departure_time=flight.departure_time,
        arrival_time=flight.arrival_time,
        origin_code=origin.code if origin else None,
        destination_code=destination.code if destination else None,
        origin_city=origin.city if origin else None,
        destination_city=destination.city if destination else None,
        aircraft_model=flight.aircraft.model if flight.aircraft else None,
    )


def serialize_reservation(reservation: Reservation, include_flight: bool = False) -> ReservationOut:
    return ReservationOut(
        reservation_id=reservation.id,
        user_id=reservation.user_id,
        flight_id=reservation.flight_id,
        seat_id=reservation.seat_id,
        seat_number=reservation.seat.seat_number,
        booking_time=reservation.booking_time,
        flight=serialize_flight(reservation.flight) if include_flight else None,
    )


def serialize_admin_reservation(reservation: Reservation) -> AdminReservationOut:
    return AdminReservationOut(
        reservation_id=reservation.id,
        user_id=reservation.user_id,
        flight_id=reservation.flight_id,
        seat_id=reservation.seat_id,
        seat_number=reservation.seat.seat_number,
        booking_time=reservation.booking_time,
        flight=serialize_flight(reservation.flight),
        user=serialize_user(reservation.user) if reservation.user else None,
    )


#
# Error handlers
#

async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    # Store failures are logged with their traceback where they are raised.
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Unhandled database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def require_user(current_user: Optional[Principal] = Depends(auth.get_current_user)) -> Principal:
    if not auth.is_authenticated(current_user):
        raise UnauthenticatedError()
    return current_user


def require_admin(current_user: Optional[Principal] = Depends(auth.get_current_user)) -> Principal:
    if not auth.is_authenticated(current_user):
        raise UnauthenticatedError()
    if not auth.is_admin(current_user):
        raise ForbiddenError("Admin privileges required")
    return current_user


api = APIRouter(prefix="/api")
admin_api = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin)])

#
# Users
#

@api.post("/users/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    existing = db.scalars(select(User).where(User.username == payload.username)).first()
    if existing:
        raise InvalidInputError("Username is already taken")

    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=auth.hash_password(payload.password),
        is_admin=False,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise InvalidInputError("Username is already taken") from None
    logger.info("User %s registered as %s", user.id, user.username)
    return serialize_user(user)


@api.post("/users/login", response_model=LoginResponse)
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = db.scalars(select(User).where(User.username == payload.username)).first()
    if not user or not auth.verify_password(payload.password, user.password_hash):
        raise UnauthenticatedError("Invalid credentials")
    token = auth.login_user(response, user)
    return LoginResponse(message="Login successful", user=serialize_user(user), token=token)


@api.post("/users/logout", response_model=MessageResponse)
def logout(response: Response):
    auth.logout_user(response)
    return MessageResponse(message="Logout successful")


@api.get("/users/me", response_model=UserOut)
def read_users_me(current_user: Principal = Depends(require_user), db: Session = Depends(get_db)):
    user = db.get(User, current_user.id)
    if not user:
        raise NotFoundError("User not found")
    return serialize_user(user)


@api.get("/users/me/reservations", response_model=List[ReservationOut])
def my_reservations(current_user: Principal = Depends(require_user), db: Session = Depends(get_db)):
    rows = reservations.list_user_reservations(db, current_user)
    return [serialize_reservation(row, include_flight=True) for row in rows]


#
# Airports and flights
#

@api.get("/airports", response_model=List[AirportOut])
def list_airports(db: Session = Depends(get_db)):
    return [serialize_airport(airport) for airport in flights.list_airports(db)]


@api.get("/airports/{airport_id}", response_model=AirportOut)
def airport_detail(airport_id: int, db: Session = Depends(get_db)):
    return serialize_airport(flights.get_airport(db, airport_id))


@api.get("/flights", response_model=List[FlightOut])
def list_flights(db: Session = Depends(get_db)):
    return [serialize_flight(flight) for flight in flights.list_flights(db)]


@api.get("/flights/search", response_model=FlightSearchResponse)
def search_flights(
    origin: str = Query(..., description="Airport code or city, e.g. JFK"),
    destination: str = Query(..., description="Airport code or city, e.g. LAX"),
    departure_date: str = Query(..., alias="departureDate", description="YYYY-MM-DD"),
    return_date: Optional[str] = Query(None, alias="returnDate", description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    found = flights.search_flights(
        db,
        origin=origin,
        destination=destination,
        departure_date=departure_date,
        return_date=return_date,
    )
    inbound = found["return"]
    return FlightSearchResponse(
        outbound=[serialize_flight(flight) for flight in found["outbound"]],
        inbound=[serialize_flight(flight) for flight in inbound] if inbound is not None else None,
    )


@api.get("/flights/{flight_id}", response_model=FlightOut)
def flight_detail(flight_id: int, db: Session = Depends(get_db)):
    return serialize_flight(flights.get_flight(db, flight_id))


@api.get("/flights/{flight_id}/seats", response_model=List[SeatOut])
def seat_map(flight_id: int, db: Session = Depends(get_db)):
    return [
        SeatOut(
            seat_id=seat.seat_id,
            flight_id=seat.flight_id,
            seat_number=seat.seat_number,
            is_booked=seat.is_booked,
        )
        for seat in reservations.list_seats_with_availability(db, flight_id)
    ]


#
# Reservations
#

@api.post("/reservations", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(auth.get_current_user),
):
    # Shape checks on the ids run in the core, after the session checks.
    body = ReservationCreate.model_validate(payload) if isinstance(payload, dict) else ReservationCreate()
    reservation = reservations.create_reservation(
        db,
        flight_id=body.flight_id,
        seat_id=body.seat_id,
        user=current_user,
    )
    return serialize_reservation(reservation)


@api.get("/reservations/{reservation_id}", response_model=ReservationOut)
def reservation_detail(
    reservation_id: str,
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(auth.get_current_user),
):
    reservation = reservations.get_reservation(db, reservation_id=reservation_id, user=current_user)
    return serialize_reservation(reservation, include_flight=True)


@api.delete("/reservations/{reservation_id}")
def cancel_reservation(
    reservation_id: str,
    db: Session = Depends(get_db),
    current_user: Optional[Principal] = Depends(auth.get_current_user),
):
    reservations.delete_reservation(db, reservation_id=reservation_id, user=current_user)
    return Response(status_code=status.HTTP_200_OK)


#
# Administration
#

@admin_api.get("/dashboard", response_model=DashboardStats)
def dashboard(db: Session = Depends(get_db)):
    return DashboardStats(**flights.dashboard_stats(db))


@admin_api.get("/reservations", response_model=AdminReservationPage)
def admin_reservations(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100, alias="pageSize"),
    db: Session = Depends(get_db),
):
    rows, total = reservations.list_all_reservations(db, page=page, page_size=page_size)
    return AdminReservationPage(
        reservations=[serialize_admin_reservation(row) for row in rows],
        total_count=total,
        total_pages=math.ceil(total / page_size),
        current_page=page,
    )


@admin_api.get("/reservations/{reservation_id}", response_model=AdminReservationOut)
def admin_reservation_detail(reservation_id: int, db: Session = Depends(get_db)):
    return serialize_admin_reservation(reservations.get_reservation_for_admin(db, reservation_id))


@admin_api.delete("/reservations/{reservation_id}")
def admin_cancel_reservation(
    reservation_id: int,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(require_admin),
):
    reservations.cancel_reservation_as_admin(db, reservation_id=reservation_id, user=current_user)
    return Response(status_code=status.HTTP_200_OK)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if SEED_DATA:
        seed_database_if_empty(SessionLocal)
    yield
    engine.dispose()


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Airline Reservations", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)

    app.include_router(api)
    app.include_router(admin_api)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
