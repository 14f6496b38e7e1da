from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    """JSON keys use the PascalCase names clients already rely on."""

    model_config = ConfigDict(populate_by_name=True)


class AirportOut(ApiModel):
    airport_id: int = Field(alias="AirportID")
    code: str = Field(alias="Code")
    name: str = Field(alias="Name")
    city: str = Field(alias="City")
    country: str = Field(alias="Country")


class FlightOut(ApiModel):
    flight_id: int = Field(alias="FlightID")
    aircraft_id: int = Field(alias="AircraftID")
    origin_airport_id: int = Field(alias="OriginAirportID")
    destination_airport_id: int = Field(alias="DestinationAirportID")
    departure_time: datetime = Field(alias="DepartureTime")
    arrival_time: datetime = Field(alias="ArrivalTime")
    origin_code: Optional[str] = Field(default=None, alias="OriginCode")
    destination_code: Optional[str] = Field(default=None, alias="DestinationCode")
    origin_city: Optional[str] = Field(default=None, alias="OriginCity")
    destination_city: Optional[str] = Field(default=None, alias="DestinationCity")
    aircraft_model: Optional[str] = Field(default=None, alias="AircraftModel")


class FlightSearchResponse(ApiModel):
    outbound: List[FlightOut] = Field(default_factory=list)
    inbound: Optional[List[FlightOut]] = Field(default=None, alias="return")


class SeatOut(ApiModel):
    seat_id: int = Field(alias="SeatID")
    flight_id: int = Field(alias="FlightID")
    seat_number: str = Field(alias="SeatNumber")
    is_booked: bool = Field(alias="IsBooked")


class ReservationCreate(ApiModel):
    # Untyped so that missing or malformed ids are reported after the session checks.
    flight_id: Any = Field(default=None, alias="FlightID")
    seat_id: Any = Field(default=None, alias="SeatID")


class ReservationOut(ApiModel):
    reservation_id: int = Field(alias="ReservationID")
    user_id: int = Field(alias="UserID")
    flight_id: int = Field(alias="FlightID")
    seat_id: int = Field(alias="SeatID")
    seat_number: str = Field(alias="SeatNumber")
    booking_time: datetime = Field(alias="BookingTime")
    flight: Optional[FlightOut] = Field(default=None, alias="Flight")


class UserCreate(ApiModel):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=1)
    email: Optional[str] = Field(default=None, max_length=100)


class LoginRequest(ApiModel):
    username: str
    password: str


class UserOut(ApiModel):
    user_id: int = Field(alias="UserID")
    username: str = Field(alias="Username")
    email: Optional[str] = Field(default=None, alias="Email")
    is_admin: bool = Field(default=False, alias="IsAdmin")


class AdminReservationOut(ReservationOut):
    user: Optional[UserOut] = Field(default=None, alias="User")


class LoginResponse(BaseModel):
    message: str
    user: UserOut
    token: str


class MessageResponse(BaseModel):
    message: str


class AdminReservationPage(ApiModel):
    reservations: List[AdminReservationOut] = Field(default_factory=list)
    total_count: int = Field(alias="totalCount")
    total_pages: int = Field(alias="totalPages")
    current_page: int = Field(alias="currentPage")


class DashboardStats(ApiModel):
    total_flights: int = Field(alias="totalFlights")
    total_users: int = Field(alias="totalUsers")
    total_aircraft: int = Field(alias="totalAircraft")
    total_reservations: int = Field(alias="totalReservations")
