"""
Orchestrates one open itinerary: load, resolve details, edit, save.
"""

import asyncio
import logging

from tripboard.core.api_client import ApiClient
from tripboard.core.detail_resolver import DetailResolver
from tripboard.core.derived_views import build_view
from tripboard.core.errors import ApiError, LoadError, StaleResponseError
from tripboard.core.itinerary_store import ItineraryStore
from tripboard.core.schemas import Direction, ItineraryView, PoiId

logger = logging.getLogger(__name__)


class ItineraryEditor:
    def __init__(
        self,
        api: ApiClient,
        store: ItineraryStore,
        resolver: DetailResolver,
        default_title: str = "My Itinerary",
    ):
        self.api = api
        self.store = store
        self.resolver = resolver
        self.default_title = default_title
        self.itinerary_id: str | None = None
        self.loading = False
        self._saved_version = store.version
        self._open_seq = 0
        self._opening: tuple[str, asyncio.Task] | None = None

    @property
    def is_dirty(self) -> bool:
        return self.itinerary_id is not None and self.store.version != self._saved_version

    def view(self) -> ItineraryView:
        view = build_view(
            self.store.snapshot,
            self.store.selected_day,
            self.resolver.table,
            default_title=self.default_title,
        )
        return view.model_copy(
            update={
                "itinerary_id": self.itinerary_id,
                "loading": self.loading,
                "version": self.store.version,
                "dirty": self.is_dirty,
            }
        )

    async def open(self, itinerary_id: str) -> ItineraryView:
        """
        Fetch an itinerary by id, load it and resolve its POI details.

        Callers opening the id that is already being opened wait for that
        load instead of starting another one.

        Raises:
            LoadError: fetch failed or the payload is malformed; prior state is kept
            StaleResponseError: an ``open`` for another id started while this one was waiting
        """
        if self._opening is not None:
            opening_id, task = self._opening
            if opening_id == itinerary_id and not task.done():
                return await asyncio.shield(task)

        task = asyncio.create_task(self._open(itinerary_id))
        self._opening = (itinerary_id, task)
        return await asyncio.shield(task)

    async def _open(self, itinerary_id: str) -> ItineraryView:
        self._open_seq += 1
        seq = self._open_seq
        self.loading = True
        self.resolver.switch_owner(itinerary_id)

        try:
            try:
                content = await self.api.fetch_itinerary_content(itinerary_id)
            except ApiError as e:
                logger.error(f"Failed to fetch itinerary {itinerary_id}: {e.message}")
                raise LoadError(f"Could not fetch itinerary {itinerary_id}: {e.message}") from e

            if seq != self._open_seq:
                raise StaleResponseError(f"Itinerary {itinerary_id} was superseded")

            self.store.load(content)
            self.itinerary_id = itinerary_id
            self._saved_version = self.store.version
            self.resolver.evict(self.store.poi_ids())

            await self.resolver.resolve_all(self.store.poi_ids(), owner=itinerary_id)
            if seq != self._open_seq:
                raise StaleResponseError(f"Itinerary {itinerary_id} was superseded")
        except LoadError:
            # Keep the resolver pointed at whatever the store still holds
            if seq == self._open_seq:
                self.resolver.switch_owner(self.itinerary_id)
            raise
        finally:
            if seq == self._open_seq:
                self.loading = False

        return self.view()

    def move_poi(self, poi_id: PoiId, day_number: int, direction: Direction | str) -> ItineraryView:
        self.store.move_poi(poi_id, day_number, direction)
        return self.view()

    def delete_poi(self, poi_id: PoiId) -> ItineraryView:
        self.store.delete_poi(poi_id)
        return self.view()

    def select_day(self, day_number: int | None) -> ItineraryView:
        self.store.select_day(day_number)
        return self.view()

    async def add_poi(self, poi_id: PoiId, day_number: int) -> ItineraryView:
        before = self.store.snapshot
        if self.store.add_poi(poi_id, day_number) is not before:
            await self.resolver.resolve_all([poi_id], owner=self.itinerary_id)
        return self.view()

    async def save(self) -> ItineraryView:
        """
        Push the current structure back to the backend.

        Raises:
            ApiError: backend rejected the update
        """
        if self.itinerary_id is None:
            raise LoadError("No itinerary is open")

        version = self.store.version
        await self.api.save_itinerary_content(self.itinerary_id, self.store.to_payload())
        self._saved_version = version
        logger.info(f"Saved itinerary {self.itinerary_id} at version {version}")
        return self.view()
