"""Sample data for a fresh database. Run ``python seed.py`` to seed by hand."""
import logging
import random
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from auth import hash_password
from models import Aircraft, Airport, Flight, Seat, User, generate_seat_numbers

logger = logging.getLogger(__name__)

SAMPLE_PASSWORD = "password"

USERS = [
    ("admin", "admin@flyair.com", True),
    ("john_doe", "john.doe@example.com", False),
    ("jane_smith", "jane.smith@example.com", False),
    ("robert_johnson", "robert.johnson@example.com", False),
]

AIRPORTS = [
    ("JFK", "John F. Kennedy International Airport", "New York", "United States"),
    ("LAX", "Los Angeles International Airport", "Los Angeles", "United States"),
    ("LHR", "London Heathrow Airport", "London", "United Kingdom"),
    ("CDG", "Paris Charles de Gaulle Airport", "Paris", "France"),
    ("HND", "Tokyo Haneda Airport", "Tokyo", "Japan"),
]

AIRCRAFT = [
    ("Boeing 737-800", 189),
    ("Airbus A320neo", 180),
    ("Embraer E190", 114),
    ("Bombardier Q400", 90),
]

ROUTES = [
    ("JFK", "LAX", timedelta(hours=6)),
    ("LAX", "JFK", timedelta(hours=5, minutes=30)),
    ("JFK", "LHR", timedelta(hours=7)),
    ("LHR", "JFK", timedelta(hours=8)),
    ("LHR", "CDG", timedelta(hours=1, minutes=15)),
    ("CDG", "LHR", timedelta(hours=1, minutes=20)),
    ("LAX", "HND", timedelta(hours=11, minutes=45)),
    ("HND", "LAX", timedelta(hours=10)),
]


def seed_database_if_empty(session_factory: sessionmaker, days: int = 7) -> bool:
    """Insert users, airports, aircraft, flights and seat maps when no flights exist.

    Returns True when data was inserted.
    """
    with session_factory() as db:
        if db.scalar(select(func.count(Flight.id))):
            logger.info("Database already seeded with flights.")
            return False

        logger.info("Database is empty, seeding with initial flight data...")
        if not db.scalar(select(func.count(User.id))):
            password_hash = hash_password(SAMPLE_PASSWORD)
            for username, email, admin in USERS:
                db.add(User(username=username, email=email, password_hash=password_hash, is_admin=admin))

        airports = {}
        for code, name, city, country in AIRPORTS:
            airport = db.scalars(select(Airport).where(Airport.code == code)).first()
            if airport is None:
                airport = Airport(code=code, name=name, city=city, country=country)
                db.add(airport)
            airports[code] = airport

        fleet = [Aircraft(model=model, total_seats=seats) for model, seats in AIRCRAFT]
        db.add_all(fleet)
        db.flush()

        rng = random.Random(7)
        start = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        flight_count = 0
        for day in range(days):
            for origin, destination, duration in ROUTES:
                aircraft = rng.choice(fleet)
                departure = start + timedelta(days=day, hours=rng.randint(6, 20), minutes=rng.choice([0, 15, 30, 45]))
                flight = Flight(
                    aircraft=aircraft,
                    origin_airport=airports[origin],
                    destination_airport=airports[destination],
                    departure_time=departure,
                    arrival_time=departure + duration,
                )
                flight.seats = [Seat(seat_number=number) for number in generate_seat_numbers(aircraft.total_seats)]
                db.add(flight)
                flight_count += 1

        db.commit()
        logger.info("Database flight seeding complete: %s flights.", flight_count)
        return True


if __name__ == "__main__":
    from database import SessionLocal, init_db

    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    init_db()
    seed_database_if_empty(SessionLocal)
