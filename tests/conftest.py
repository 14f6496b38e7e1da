from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient

from auth import Principal, hash_password, issue_session_token
from database import create_session_factory, get_db, init_db
from main import app
from models import Aircraft, Airport, Flight, Seat, User, generate_seat_numbers

PASSWORD = "secret-password"
PASSWORD_HASH = hash_password(PASSWORD)

DEPARTURE = datetime(2030, 5, 1, 8, 30)
RETURN_DEPARTURE = datetime(2030, 5, 8, 14, 0)


@dataclass
class BookingData:
    flight_id: int
    return_flight_id: int
    seat_ids: Dict[str, int]
    return_seat_ids: Dict[str, int]
    admin: Principal
    alice: Principal
    bob: Principal
    crowd: List[Principal] = field(default_factory=list)


@pytest.fixture
def session_factory(tmp_path):
    engine, factory = create_session_factory(f"sqlite:///{tmp_path / 'reservations.db'}")
    init_db(engine)
    yield factory
    engine.dispose()


@pytest.fixture
def booking_data(session_factory):
    with session_factory() as db:
        jfk = Airport(code="JFK", name="John F. Kennedy International Airport", city="New York", country="United States")
        lax = Airport(code="LAX", name="Los Angeles International Airport", city="Los Angeles", country="United States")
        lhr = Airport(code="LHR", name="London Heathrow Airport", city="London", country="United Kingdom")
        aircraft = Aircraft(model="Airbus A320neo", total_seats=72)
        regional = Aircraft(model="Bombardier Q400", total_seats=8)

        outbound = Flight(
            aircraft=aircraft,
            origin_airport=jfk,
            destination_airport=lax,
            departure_time=DEPARTURE,
            arrival_time=DEPARTURE + timedelta(hours=6),
        )
        outbound.seats = [Seat(seat_number=number) for number in generate_seat_numbers(aircraft.total_seats)]
        inbound = Flight(
            aircraft=regional,
            origin_airport=lax,
            destination_airport=jfk,
            departure_time=RETURN_DEPARTURE,
            arrival_time=RETURN_DEPARTURE + timedelta(hours=5, minutes=30),
        )
        inbound.seats = [Seat(seat_number=number) for number in generate_seat_numbers(regional.total_seats)]

        admin = User(username="admin", email="admin@flyair.com", password_hash=PASSWORD_HASH, is_admin=True)
        alice = User(username="alice", email="alice@example.com", password_hash=PASSWORD_HASH)
        bob = User(username="bob", email="bob@example.com", password_hash=PASSWORD_HASH)
        crowd = [
            User(username=f"traveller{i}", email=f"traveller{i}@example.com", password_hash=PASSWORD_HASH)
            for i in range(8)
        ]
        db.add_all([jfk, lax, lhr, outbound, inbound, admin, alice, bob, *crowd])
        db.commit()

        return BookingData(
            flight_id=outbound.id,
            return_flight_id=inbound.id,
            seat_ids={seat.seat_number: seat.id for seat in outbound.seats},
            return_seat_ids={seat.seat_number: seat.id for seat in inbound.seats},
            admin=Principal(id=admin.id, is_admin=True),
            alice=Principal(id=alice.id),
            bob=Principal(id=bob.id),
            crowd=[Principal(id=user.id) for user in crowd],
        )


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def bearer(principal: Principal) -> Dict[str, str]:
    return {"Authorization": f"Bearer {issue_session_token(principal)}"}


@pytest.fixture
def auth_headers():
    return bearer
