"""
Canonical day-partitioned POI ordering for one itinerary.

The store is the only writer of the itinerary structure. Every mutation
produces a new frozen snapshot; the previous snapshot is never touched, so
callers can detect change by identity (``new is not old``) or by ``version``.
Requests that make no sense for the current state (unknown POI, unknown day,
moving past the first or last day) are no-ops, not errors.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import ValidationError

from tripboard.core.derived_views import reconcile_selection
from tripboard.core.errors import LoadError
from tripboard.core.schemas import Day, Direction, Itinerary, PoiId, POIReference

logger = logging.getLogger(__name__)

EMPTY_ITINERARY = Itinerary(days=())


class EmptyDayPolicy(str, Enum):
    """What happens to a day whose last POI is moved away or deleted."""

    KEEP = "keep"  # stays in the structure as an empty day
    DROP = "drop"  # removed; remaining days keep their numbers


class ItineraryStore:
    def __init__(self, empty_day_policy: EmptyDayPolicy | str = EmptyDayPolicy.KEEP):
        self.empty_day_policy = EmptyDayPolicy(empty_day_policy)
        self._snapshot: Itinerary = EMPTY_ITINERARY
        self._version = 0
        self._selected_day: int | None = None

    @property
    def snapshot(self) -> Itinerary:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._version

    @property
    def selected_day(self) -> int | None:
        return self._selected_day

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    def load(self, payload: Any) -> Itinerary:
        """
        Replace the whole structure with a freshly fetched payload.

        Args:
            payload: Mapping shaped like ``{"title": ..., "days": [{"day": 1,
                "pois": [{"poiId": ...}]}]}``

        Returns:
            The new snapshot

        Raises:
            LoadError: payload is malformed; the previous state is kept
        """
        try:
            itinerary = Itinerary.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Rejected itinerary payload: {e.error_count()} validation error(s)")
            raise LoadError(f"Malformed itinerary payload: {e}") from e

        if itinerary.has_gaps():
            logger.warning(
                "Loaded itinerary has non-contiguous day numbers: "
                f"{[d.day_number for d in itinerary.days]}"
            )

        logger.info(
            f"Loaded itinerary with {len(itinerary.days)} day(s) "
            f"and {sum(len(d.pois) for d in itinerary.days)} stop(s)"
        )
        return self._commit(itinerary)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def poi_ids(self) -> list[PoiId]:
        """Every referenced POI id, in itinerary order."""
        return [poi.poi_id for day in self._snapshot.days for poi in day.pois]

    def locate(self, poi_id: PoiId) -> tuple[int, int] | None:
        """Return ``(day_number, index)`` of a POI, or None if absent."""
        for day in self._snapshot.days:
            index = day.index_of(poi_id)
            if index != -1:
                return day.day_number, index
        return None

    def to_payload(self) -> dict[str, Any]:
        """Wire-shaped copy of the current snapshot, for saving."""
        return self._snapshot.model_dump(mode="json", by_alias=True)

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def move_within_day(
        self, poi_id: PoiId, day_number: int, direction: Direction | str
    ) -> Itinerary:
        """Swap a POI with its neighbour inside one day."""
        direction = Direction(direction)
        current = self._snapshot
        day_index = current.day_index(day_number)
        if day_index == -1:
            return current

        pois = list(current.days[day_index].pois)
        index = current.days[day_index].index_of(poi_id)
        if index == -1:
            return current

        target = index - 1 if direction is Direction.UP else index + 1
        if not 0 <= target < len(pois):
            return current

        pois[index], pois[target] = pois[target], pois[index]
        return self._commit(self._rebuild({day_index: tuple(pois)}))

    def move_across_day(
        self, poi_id: PoiId, day_number: int, direction: Direction | str
    ) -> Itinerary:
        """
        Transfer a POI sitting at the edge of its day to the adjacent day.

        Going up, the first POI of a day is appended to the end of the previous
        day. Going down, the last POI of a day is prepended to the next day.
        """
        direction = Direction(direction)
        current = self._snapshot
        day_index = current.day_index(day_number)
        if day_index == -1:
            return current

        day = current.days[day_index]
        index = day.index_of(poi_id)
        if index == -1:
            return current

        moved = day.pois[index]
        remaining = day.pois[:index] + day.pois[index + 1 :]

        if direction is Direction.UP:
            if index != 0 or day_index == 0:
                return current
            neighbour_index = day_index - 1
            neighbour_pois = current.days[neighbour_index].pois + (moved,)
        else:
            if index != len(day.pois) - 1 or day_index == len(current.days) - 1:
                return current
            neighbour_index = day_index + 1
            neighbour_pois = (moved,) + current.days[neighbour_index].pois

        logger.debug(
            f"Moving POI {moved.poi_id} from day {day.day_number} "
            f"to day {current.days[neighbour_index].day_number}"
        )
        return self._commit(
            self._rebuild({day_index: remaining, neighbour_index: neighbour_pois})
        )

    def move_poi(
        self, poi_id: PoiId, day_number: int, direction: Direction | str
    ) -> Itinerary:
        """Swap inside the day, or cross into the adjacent day at the boundary."""
        before = self._snapshot
        after = self.move_within_day(poi_id, day_number, direction)
        if after is not before:
            return after
        return self.move_across_day(poi_id, day_number, direction)

    def delete_poi(self, poi_id: PoiId) -> Itinerary:
        current = self._snapshot
        for day_index, day in enumerate(current.days):
            index = day.index_of(poi_id)
            if index != -1:
                return self._commit(
                    self._rebuild({day_index: day.pois[:index] + day.pois[index + 1 :]})
                )
        return current

    def add_poi(self, poi_id: PoiId, day_number: int) -> Itinerary:
        """Append a new stop to the end of a day. Ids already present are ignored."""
        current = self._snapshot
        day_index = current.day_index(day_number)
        if day_index == -1 or self.locate(poi_id) is not None:
            return current

        poi = POIReference(poi_id=poi_id)
        return self._commit(
            self._rebuild({day_index: current.days[day_index].pois + (poi,)})
        )

    def select_day(self, day_number: int | None) -> int | None:
        self._selected_day = reconcile_selection(self._snapshot, day_number)
        return self._selected_day

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _rebuild(self, updates: dict[int, tuple[POIReference, ...]]) -> Itinerary:
        days: list[Day] = []
        for index, day in enumerate(self._snapshot.days):
            if index not in updates:
                days.append(day)
                continue
            pois = updates[index]
            if not pois and self.empty_day_policy is EmptyDayPolicy.DROP:
                logger.debug(f"Dropping emptied day {day.day_number}")
                continue
            days.append(day.model_copy(update={"pois": pois}))
        return self._snapshot.model_copy(update={"days": tuple(days)})

    def _commit(self, itinerary: Itinerary) -> Itinerary:
        self._snapshot = itinerary
        self._version += 1
        self._selected_day = reconcile_selection(itinerary, self._selected_day)
        return itinerary

