"""
itinerary_engine/schemas/records.py
-----------------------------------
Pydantic boundary records for raw store documents and HTTP payloads.

Every record validates its fields exhaustively and converts to the
dataclass domain model with to_domain(). Use parse_record() when the
input is an untrusted dict: pydantic's errors are re-raised as the
engine's ValidationError so callers only deal with one error type.
"""

from __future__ import annotations
import uuid
import datetime as dt
from typing import Any, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from itinerary_engine.errors import ValidationError
from itinerary_engine.modules.tool_usage.time_tool import parse_hhmm
from itinerary_engine.schemas.itinerary import (
    Activity,
    Budget,
    Cost,
    Day,
    DayType,
    DestinationStay,
    IndoorOutdoor,
    Location,
    Place,
    Trip,
)
from itinerary_engine.schemas.preferences import PreferenceSet
from itinerary_engine.schemas.weather import (
    HourlyForecast,
    Temperature,
    WeatherCondition,
    WeatherConditions,
)

RecordT = TypeVar("RecordT", bound=BaseModel)


def parse_record(model: Type[RecordT], data: Any) -> RecordT:
    """Validate data against model, raising the engine's ValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationError(f"{model.__name__}: {field}: {first.get('msg')}", field=field) from exc


# ─────────────────────────────────────────────────────────────────────────────
# Places and trips
# ─────────────────────────────────────────────────────────────────────────────

class LocationRecord(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    address: str = ""

    def to_domain(self) -> Location:
        return Location(lat=self.lat, lng=self.lng, address=self.address)


class PlaceRecord(BaseModel):
    id: str = ""
    name: str = Field(min_length=1)
    location: Optional[LocationRecord] = None

    def to_domain(self) -> Place:
        return Place(id=self.id, name=self.name,
                     location=self.location.to_domain() if self.location else None)


class DestinationRecord(BaseModel):
    """Dates stay raw: the Day Sequencer skips a stay whose dates do not parse."""
    place: Optional[PlaceRecord] = None
    arrival_date: Optional[str] = None
    departure_date: Optional[str] = None
    order: int = 0

    def to_domain(self) -> DestinationStay:
        return DestinationStay(
            place          = self.place.to_domain() if self.place else None,
            arrival_date   = self.arrival_date,
            departure_date = self.departure_date,
            order          = self.order,
        )


class BudgetRecord(BaseModel):
    total: float = Field(default=0.0, ge=0)
    currency: str = "USD"


class TripRecord(BaseModel):
    id: str = Field(min_length=1)
    destinations: List[DestinationRecord] = []
    destination: Optional[PlaceRecord] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    travelers: int = Field(default=1, ge=1)
    budget: Optional[BudgetRecord] = None

    def to_domain(self) -> Trip:
        return Trip(
            id           = self.id,
            destinations = [d.to_domain() for d in self.destinations],
            destination  = self.destination.to_domain() if self.destination else None,
            start_date   = self.start_date,
            end_date     = self.end_date,
            travelers    = self.travelers,
            budget       = Budget(total=self.budget.total, currency=self.budget.currency) if self.budget else None,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Activities and days
# ─────────────────────────────────────────────────────────────────────────────

class CostRecord(BaseModel):
    amount: float = Field(default=0.0, ge=0)
    currency: str = "USD"
    per_person: bool = False


class ActivityRecord(BaseModel):
    id: str = Field(default_factory=lambda: f"activity-{uuid.uuid4().hex[:12]}")
    name: str = Field(min_length=1)
    start_time: str = "10:00"
    duration_minutes: int = Field(default=120, gt=0)
    location: Optional[LocationRecord] = None
    category: str = ""
    type: str = "activity"
    description: str = ""
    cost: Optional[CostRecord] = None
    booking_required: Optional[bool] = None
    booking_url: str = ""
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    rating_count: int = Field(default=0, ge=0)
    price_level: Optional[int] = Field(default=None, ge=0, le=4)
    expert_recommended: bool = False
    expert_endorsed: bool = False
    novatrek_enhanced: bool = False
    indoor_outdoor: Optional[IndoorOutdoor] = None
    notes: str = ""
    travel_time_minutes: int = Field(default=0, ge=0)
    added_at: str = ""

    @field_validator("start_time")
    @classmethod
    def start_time_is_clock(cls, v: str) -> str:
        parse_hhmm(v)
        return v

    def to_domain(self) -> Activity:
        data = self.model_dump(exclude={"location", "cost"})
        return Activity(
            **data,
            location=self.location.to_domain() if self.location else None,
            cost=Cost(**self.cost.model_dump()) if self.cost else None,
        )


class DayRecord(BaseModel):
    day_number: int = Field(ge=1)
    date: dt.date
    type: DayType = DayType.DESTINATION
    id: str = ""
    trip_id: str = ""
    destination_name: str = ""
    from_destination: str = ""
    to_destination: str = ""
    activities: List[ActivityRecord] = []
    notes: str = ""
    out_of_range: bool = False

    @model_validator(mode="after")
    def endpoints_only_on_travel_days(self) -> "DayRecord":
        if self.type is DayType.DESTINATION and (self.from_destination or self.to_destination):
            raise ValueError("from/to destination is only valid on travel days")
        return self

    def to_domain(self) -> Day:
        return Day(
            day_number       = self.day_number,
            date             = self.date,
            type             = self.type,
            id               = self.id,
            trip_id          = self.trip_id,
            destination_name = self.destination_name,
            from_destination = self.from_destination,
            to_destination   = self.to_destination,
            activities       = [a.to_domain() for a in self.activities],
            notes            = self.notes,
            out_of_range     = self.out_of_range,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Weather
# ─────────────────────────────────────────────────────────────────────────────

class HourlyRecord(BaseModel):
    hour: str
    temp: float
    conditions: WeatherCondition = WeatherCondition.CLEAR
    precip_chance: float = Field(default=0.0, ge=0, le=100)

    @field_validator("hour")
    @classmethod
    def hour_is_clock(cls, v: str) -> str:
        parse_hhmm(v)
        return v


class TemperatureRecord(BaseModel):
    high: float
    low: float

    @model_validator(mode="after")
    def high_not_below_low(self) -> "TemperatureRecord":
        if self.high < self.low:
            raise ValueError("temperature high must not be below low")
        return self


class WeatherRecord(BaseModel):
    date: Optional[dt.date] = None
    temperature: TemperatureRecord
    conditions: WeatherCondition = WeatherCondition.CLEAR
    precipitation: float = Field(default=0.0, ge=0, le=100)
    wind_speed: float = Field(default=0.0, ge=0)
    humidity: float = Field(default=0.0, ge=0, le=100)
    hourly_forecast: List[HourlyRecord] = []

    def to_domain(self) -> WeatherConditions:
        return WeatherConditions(
            date            = self.date,
            temperature     = Temperature(high=self.temperature.high, low=self.temperature.low),
            conditions      = self.conditions,
            precipitation   = self.precipitation,
            wind_speed      = self.wind_speed,
            humidity        = self.humidity,
            hourly_forecast = [HourlyForecast(**h.model_dump()) for h in self.hourly_forecast],
        )


# ─────────────────────────────────────────────────────────────────────────────
# Preferences
# ─────────────────────────────────────────────────────────────────────────────

class PreferenceRecord(BaseModel):
    traveler_id: str = ""
    dietary: List[str] = []
    accessibility: List[str] = []
    interests: List[str] = []
    activities: List[str] = []
    travel_style: List[str] = []
    activity_level: Optional[Literal["low", "moderate", "high"]] = None
    budget: Optional[Literal["budget", "moderate", "flexible", "luxury"]] = None

    def to_domain(self) -> PreferenceSet:
        return PreferenceSet(**self.model_dump())
