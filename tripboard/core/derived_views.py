"""
Read-only views computed from the itinerary snapshot and the POI detail table.

Everything here is a pure function of its arguments. The editor calls
``build_view`` after every mutation and after every resolver batch; nothing is
cached or tracked between calls.
"""

from typing import Mapping

from tripboard.core.geo_utils import bounding_box, haversine_distance, path_distance
from tripboard.core.schemas import (
    Day,
    DaySummary,
    DayTimeline,
    Itinerary,
    ItineraryView,
    LatLng,
    MapActivity,
    MapBounds,
    PoiId,
    POIDetail,
    TimelineEntry,
    TripStats,
    poi_key,
)

DetailTable = Mapping[str, POIDetail]


def placeholder_name(poi_id: PoiId) -> str:
    return f"Place {poi_id}"


def _detail(details: DetailTable, poi_id: PoiId) -> POIDetail | None:
    return details.get(poi_key(poi_id))


def _display_name(details: DetailTable, poi_id: PoiId) -> str:
    detail = _detail(details, poi_id)
    if detail is not None and detail.name:
        return detail.name
    return placeholder_name(poi_id)


def _coordinates(details: DetailTable, poi_id: PoiId) -> tuple[float, float] | None:
    detail = _detail(details, poi_id)
    if detail is None or not detail.has_coordinates:
        return None
    return detail.latitude, detail.longitude  # type: ignore[return-value]


def reconcile_selection(itinerary: Itinerary, selected_day: int | None) -> int | None:
    """Drop a selection that points at a day no longer in the itinerary."""
    if selected_day is None:
        return None
    return selected_day if itinerary.find_day(selected_day) is not None else None


def route_summary(day: Day, details: DetailTable) -> str:
    """
    Header label for a day: the first stop's name, or "first → last".

    Names that have not resolved yet are left out rather than replaced by
    placeholders, so the label fills in once details arrive.
    """
    if not day.pois:
        return ""

    first = _detail(details, day.pois[0].poi_id)
    start_name = first.name if first is not None else None
    if not start_name:
        return ""

    if len(day.pois) > 1:
        last = _detail(details, day.pois[-1].poi_id)
        end_name = last.name if last is not None else None
        if end_name and end_name != start_name:
            return f"{start_name} → {end_name}"
    return start_name


def _day_distance(day: Day, details: DetailTable) -> float:
    points = [
        coords
        for coords in (_coordinates(details, poi.poi_id) for poi in day.pois)
        if coords is not None
    ]
    return round(path_distance(points), 2)


def day_summaries(itinerary: Itinerary, details: DetailTable) -> list[DaySummary]:
    return [
        DaySummary(
            day_number=day.day_number,
            stop_count=len(day.pois),
            route_summary=route_summary(day, details),
            distance_km=_day_distance(day, details),
        )
        for day in itinerary.days
    ]


def timeline(itinerary: Itinerary, day_number: int, details: DetailTable) -> DayTimeline:
    """
    Ordered stops of one day with what the list UI needs to render them.

    The up button is disabled only on the very first stop of the itinerary and
    the down button only on the very last one; every other edge crosses into
    the adjacent day.
    """
    day_index = itinerary.day_index(day_number)
    if day_index == -1:
        return DayTimeline(day_number=day_number)

    day = itinerary.days[day_index]
    is_first_day = day_index == 0
    is_last_day = day_index == len(itinerary.days) - 1

    entries: list[TimelineEntry] = []
    for index, poi in enumerate(day.pois):
        detail = _detail(details, poi.poi_id)

        distance_to_next = None
        if index < len(day.pois) - 1:
            here = _coordinates(details, poi.poi_id)
            there = _coordinates(details, day.pois[index + 1].poi_id)
            if here is not None and there is not None:
                distance_to_next = round(haversine_distance(*here, *there), 2)

        entries.append(
            TimelineEntry(
                position=index + 1,
                poi_id=poi.poi_id,
                name=_display_name(details, poi.poi_id),
                category=detail.category if detail is not None else None,
                resolved=detail is not None,
                can_move_up=not (is_first_day and index == 0),
                can_move_down=not (is_last_day and index == len(day.pois) - 1),
                distance_to_next_km=distance_to_next,
            )
        )

    return DayTimeline(day_number=day.day_number, entries=entries)


def map_activities(
    itinerary: Itinerary, selected_day: int | None, details: DetailTable
) -> list[MapActivity]:
    """
    Markers for the selected day, in visit order.

    Stops whose coordinates are missing or not finite are skipped; they stay in
    the itinerary but never reach the map.
    """
    day = itinerary.find_day(selected_day)
    if day is None:
        return []

    activities: list[MapActivity] = []
    for poi in day.pois:
        coords = _coordinates(details, poi.poi_id)
        if coords is None:
            continue
        detail = _detail(details, poi.poi_id)
        activities.append(
            MapActivity(
                poi_id=poi.poi_id,
                name=_display_name(details, poi.poi_id),
                latitude=coords[0],
                longitude=coords[1],
                category=detail.category if detail is not None else None,
                label=str(len(activities) + 1),
            )
        )
    return activities


def route_path(activities: list[MapActivity]) -> list[LatLng]:
    """Polyline points; a single marker gets no line."""
    if len(activities) < 2:
        return []
    return [LatLng(lat=a.latitude, lng=a.longitude) for a in activities]


def map_bounds(activities: list[MapActivity]) -> MapBounds | None:
    box = bounding_box((a.latitude, a.longitude) for a in activities)
    if box is None:
        return None
    (south, west), (north, east) = box
    return MapBounds(
        south_west=LatLng(lat=south, lng=west),
        north_east=LatLng(lat=north, lng=east),
    )


def unmapped_pois(itinerary: Itinerary, details: DetailTable) -> list[str]:
    """Names of resolved stops that cannot be placed on the map."""
    names: list[str] = []
    for day in itinerary.days:
        for poi in day.pois:
            detail = _detail(details, poi.poi_id)
            if detail is not None and not detail.has_coordinates:
                names.append(detail.name or placeholder_name(poi.poi_id))
    return names


def trip_stats(itinerary: Itinerary) -> TripStats:
    return TripStats(
        total_days=len(itinerary.days),
        total_stops=sum(len(day.pois) for day in itinerary.days),
    )


def build_view(
    itinerary: Itinerary,
    selected_day: int | None,
    details: DetailTable,
    default_title: str = "My Itinerary",
) -> ItineraryView:
    selected = reconcile_selection(itinerary, selected_day)
    activities = map_activities(itinerary, selected, details)

    return ItineraryView(
        title=itinerary.title or default_title,
        stats=trip_stats(itinerary),
        summaries=day_summaries(itinerary, details),
        timelines=[timeline(itinerary, day.day_number, details) for day in itinerary.days],
        selected_day=selected,
        activities=activities,
        route_path=route_path(activities),
        bounds=map_bounds(activities),
        unmapped_pois=unmapped_pois(itinerary, details),
    )
