import pytest

import flights
from errors import InvalidInputError, NotFoundError


def _search(session_factory, **params):
    params.setdefault("departure_date", "2030-05-01")
    with session_factory() as session:
        return flights.search_flights(session, **params)


@pytest.mark.parametrize("origin, destination", [("JFK", "LAX"), ("jfk", "los angeles"), ("New York", "Los")])
def test_search_matches_code_or_city(session_factory, booking_data, origin, destination):
    found = _search(session_factory, origin=origin, destination=destination)

    assert [flight.id for flight in found["outbound"]] == [booking_data.flight_id]
    assert found["return"] is None


def test_search_other_day_is_empty(session_factory, booking_data):
    found = _search(session_factory, origin="JFK", destination="LAX", departure_date="2030-05-02")
    assert found["outbound"] == []


def test_round_trip_search(session_factory, booking_data):
    found = _search(session_factory, origin="JFK", destination="LAX", return_date="2030-05-08")

    assert [flight.id for flight in found["outbound"]] == [booking_data.flight_id]
    assert [flight.id for flight in found["return"]] == [booking_data.return_flight_id]
    assert found["return"][0].origin_airport.code == "LAX"


def test_unknown_airport_is_not_found(session_factory, booking_data):
    with pytest.raises(NotFoundError, match="Origin airport 'Atlantis'"):
        _search(session_factory, origin="Atlantis", destination="LAX")
    with pytest.raises(NotFoundError, match="Destination airport"):
        _search(session_factory, origin="JFK", destination="Atlantis")


@pytest.mark.parametrize(
    "params",
    [
        dict(origin="JFK", destination="JFK"),
        dict(origin="JFK", destination="LAX", departure_date="01/05/2030"),
        dict(origin="JFK", destination="LAX", return_date="2030-05-01"),
        dict(origin="JFK", destination="LAX", return_date="2030-04-20"),
        dict(origin="", destination="LAX"),
    ],
)
def test_invalid_searches(session_factory, booking_data, params):
    with pytest.raises(InvalidInputError):
        _search(session_factory, **params)


def test_exact_code_wins_over_city_fragment(session_factory, booking_data):
    with session_factory() as session:
        assert flights.find_airport(session, "lax").code == "LAX"
        assert flights.find_airport(session, "London").code == "LHR"
        assert flights.find_airport(session, "  ") is None


def test_flight_lookup(session_factory, booking_data):
    with session_factory() as session:
        flight = flights.get_flight(session, booking_data.flight_id)
        assert flight.aircraft.model == "Airbus A320neo"
        assert [f.id for f in flights.list_flights(session)] == [
            booking_data.flight_id,
            booking_data.return_flight_id,
        ]
        with pytest.raises(NotFoundError):
            flights.get_flight(session, 987654)


def test_dashboard_counts(session_factory, booking_data):
    with session_factory() as session:
        assert flights.dashboard_stats(session) == {
            "totalFlights": 2,
            "totalUsers": 11,
            "totalAircraft": 2,
            "totalReservations": 0,
        }


def test_bad_date_error_does_not_chain_the_parse_failure(session_factory, booking_data):
    with pytest.raises(InvalidInputError) as excinfo:
        _search(session_factory, origin="JFK", destination="LAX", departure_date="2030-13-40")

    assert excinfo.value.__cause__ is None
    assert excinfo.value.__suppress_context__ is True
    assert str(excinfo.value) == "departureDate must be a date formatted as YYYY-MM-DD"
