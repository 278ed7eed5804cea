from datetime import date
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
)

from tripboard.core.geo_utils import is_valid_coordinate

PoiId = str | int


def poi_key(poi_id: PoiId) -> str:
    """Canonical identity of a POI id, so that 3 and "3" name the same place."""
    return str(poi_id).strip()


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


# =============================================================================
# Itinerary Structure (owned by the itinerary store)
# =============================================================================


class POIReference(BaseModel):
    """Pointer to a place; all display data is resolved separately by id."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    poi_id: PoiId = Field(
        ...,
        validation_alias=AliasChoices("poiId", "poi_id", "id"),
        serialization_alias="poiId",
    )

    @property
    def key(self) -> str:
        return poi_key(self.poi_id)


class Day(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    day_number: int = Field(
        ...,
        ge=1,
        validation_alias=AliasChoices("day", "dayNumber", "day_number"),
        serialization_alias="day",
    )
    # A day without a "pois" key is an empty day, not a malformed one
    pois: tuple[POIReference, ...] = Field(default_factory=tuple)

    @field_validator("pois", mode="before")
    @classmethod
    def null_pois_as_empty(cls, v: Any) -> Any:
        return () if v is None else v

    def index_of(self, poi_id: PoiId) -> int:
        key = poi_key(poi_id)
        for index, poi in enumerate(self.pois):
            if poi.key == key:
                return index
        return -1


class Itinerary(BaseModel):
    """Immutable snapshot of a day-partitioned itinerary."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str | None = None
    days: tuple[Day, ...]

    @field_validator("days")
    @classmethod
    def validate_days(cls, days: tuple[Day, ...]) -> tuple[Day, ...]:
        ordered = tuple(sorted(days, key=lambda d: d.day_number))

        seen_days: set[int] = set()
        seen_pois: set[str] = set()
        for day in ordered:
            if day.day_number in seen_days:
                raise ValueError(f"day {day.day_number} appears more than once")
            seen_days.add(day.day_number)
            for poi in day.pois:
                if poi.key in seen_pois:
                    raise ValueError(f"POI {poi.poi_id} appears more than once")
                seen_pois.add(poi.key)
        return ordered

    def day_index(self, day_number: int) -> int:
        for index, day in enumerate(self.days):
            if day.day_number == day_number:
                return index
        return -1

    def find_day(self, day_number: int | None) -> Day | None:
        if day_number is None:
            return None
        index = self.day_index(day_number)
        return self.days[index] if index != -1 else None

    def has_gaps(self) -> bool:
        numbers = [d.day_number for d in self.days]
        return numbers != list(range(1, len(numbers) + 1))


# =============================================================================
# POI Details (owned by the detail resolver)
# =============================================================================


def _coerce_coordinate(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


class POIDetail(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    poi_id: PoiId = Field(..., validation_alias=AliasChoices("poiId", "poi_id", "id"))
    name: str | None = None
    latitude: float | None = Field(
        None, validation_alias=AliasChoices("latitude", "lat")
    )
    longitude: float | None = Field(
        None, validation_alias=AliasChoices("longitude", "lng", "lon")
    )
    category: str | None = Field(
        None, validation_alias=AliasChoices("category", "type")
    )

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def parse_coordinate(cls, v: Any) -> float | None:
        # Garbage coordinates are kept as missing, never rejected
        return _coerce_coordinate(v)

    @property
    def has_coordinates(self) -> bool:
        return is_valid_coordinate(self.latitude, self.longitude)


# =============================================================================
# Derived Views
# =============================================================================


class LatLng(BaseModel):
    lat: float
    lng: float


class MapBounds(BaseModel):
    south_west: LatLng
    north_east: LatLng


class DaySummary(BaseModel):
    day_number: int
    stop_count: int
    route_summary: str = ""
    distance_km: float = 0.0


class TimelineEntry(BaseModel):
    position: int
    poi_id: PoiId
    name: str
    category: str | None = None
    resolved: bool = False
    can_move_up: bool = True
    can_move_down: bool = True
    distance_to_next_km: float | None = Field(
        None, description="Distance to next stop in kilometers"
    )


class DayTimeline(BaseModel):
    day_number: int
    entries: list[TimelineEntry] = Field(default_factory=list)


class MapActivity(BaseModel):
    poi_id: PoiId
    name: str
    latitude: float
    longitude: float
    category: str | None = None
    label: str = Field(..., description="Marker glyph, 1-based visit order")


class TripStats(BaseModel):
    total_days: int = 0
    total_stops: int = 0


class ItineraryView(BaseModel):
    itinerary_id: str | None = None
    title: str
    stats: TripStats
    summaries: list[DaySummary] = Field(default_factory=list)
    timelines: list[DayTimeline] = Field(default_factory=list)
    selected_day: int | None = None
    activities: list[MapActivity] = Field(default_factory=list)
    route_path: list[LatLng] = Field(default_factory=list)
    bounds: MapBounds | None = None
    unmapped_pois: list[str] = Field(default_factory=list)
    loading: bool = False
    version: int = 0
    dirty: bool = False


# =============================================================================
# Session & Request Schemas
# =============================================================================


class SessionUser(BaseModel):
    """User record as returned by the backend at login."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | int | None = None
    email: str | None = None
    username: str | None = None
    full_name: str | None = Field(
        None, validation_alias=AliasChoices("full_name", "fullName", "name")
    )


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SessionInfo(BaseModel):
    authenticated: bool
    user: SessionUser | None = None
    session_id: str | None = Field(
        None, description="Planner session id, sent back as a Bearer token"
    )


class MovePoiRequest(BaseModel):
    day: int = Field(..., ge=1, description="Day the POI currently belongs to")
    direction: Direction


class AddPoiRequest(BaseModel):
    poi_id: PoiId = Field(..., validation_alias=AliasChoices("poi_id", "poiId"))


class SelectDayRequest(BaseModel):
    day: int | None = Field(None, ge=1)


class TripCard(BaseModel):
    """Dashboard card for one trip."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | int
    city: str | None = None
    start_date: date | None = Field(
        None, validation_alias=AliasChoices("start_date", "startDate")
    )
    end_date: date | None = Field(
        None, validation_alias=AliasChoices("end_date", "endDate")
    )
    duration: int | None = None
    poi_count: int = Field(0, validation_alias=AliasChoices("poi_count", "poiCount"))
    status: str | None = None


# =============================================================================
# Path Parameter Validation
# =============================================================================

ITINERARY_ID_PATTERN = "^[a-zA-Z0-9_-]+$"
