"""
Resolves POI ids to descriptive records (name, coordinates, category).

Lookups for a batch of ids run concurrently and the detail table is updated
once, when the whole batch has settled. A failed lookup only leaves its own id
unresolved. Each id has at most one lookup in flight at a time.
"""

import asyncio
import logging
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterable, Mapping

from pydantic import ValidationError

from tripboard.core.schemas import PoiId, POIDetail, poi_key

logger = logging.getLogger(__name__)

DetailLookup = Callable[[PoiId], Awaitable[Any]]


class _NotFound:
    """Sentinel returned by ``DetailResolver.get`` for unknown ids."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()

_CURRENT_OWNER: Any = object()


class DetailResolver:
    def __init__(self, lookup: DetailLookup, timeout: float | None = 10):
        """
        Args:
            lookup: coroutine function returning the raw detail mapping for an id
            timeout: seconds allowed per lookup; None disables the limit
        """
        self._lookup = lookup
        self.timeout = timeout
        self.owner: str | None = None
        self._table: dict[str, POIDetail] = {}
        self._in_flight: dict[str, asyncio.Task] = {}

    @property
    def table(self) -> Mapping[str, POIDetail]:
        return MappingProxyType(self._table)

    def get(self, poi_id: PoiId) -> POIDetail | _NotFound:
        return self._table.get(poi_key(poi_id), NOT_FOUND)

    def switch_owner(self, owner: str | None) -> None:
        """Batches issued for any other owner are discarded when they settle."""
        self.owner = owner

    def evict(self, keep_ids: Iterable[PoiId]) -> None:
        keep = {poi_key(poi_id) for poi_id in keep_ids}
        self._table = {key: detail for key, detail in self._table.items() if key in keep}

    async def resolve_all(
        self, poi_ids: Iterable[PoiId], owner: str | None = _CURRENT_OWNER
    ) -> Mapping[str, POIDetail]:
        """
        Fetch every id not already in the table.

        Args:
            poi_ids: ids referenced by the itinerary (duplicates are fine)
            owner: itinerary id the batch belongs to; defaults to the current owner

        Returns:
            Read-only view of the detail table after the batch
        """
        if owner is _CURRENT_OWNER:
            owner = self.owner

        pending: dict[str, PoiId] = {}
        for poi_id in poi_ids:
            key = poi_key(poi_id)
            if key not in self._table and key not in pending:
                pending[key] = poi_id

        if not pending:
            return self.table

        created: list[str] = []
        tasks: list[asyncio.Task] = []
        for key, poi_id in pending.items():
            task = self._in_flight.get(key)
            if task is None:
                task = asyncio.create_task(self._fetch(poi_id))
                task.add_done_callback(lambda t, k=key: self._settled(k, t))
                self._in_flight[key] = task
                created.append(key)
            tasks.append(task)

        logger.info(
            f"Resolving {len(pending)} POI(s), {len(pending) - len(created)} already in flight"
        )
        # Shared tasks must survive a cancelled waiter
        results = await asyncio.gather(*(asyncio.shield(t) for t in tasks))

        if owner != self.owner:
            logger.info(f"Discarding POI details resolved for stale itinerary {owner}")
            return self.table

        resolved = {key: detail for key, detail in zip(pending, results) if detail is not None}
        self._table.update(resolved)
        logger.info(f"Resolved {len(resolved)}/{len(pending)} POI(s)")
        return self.table

    def _settled(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _fetch(self, poi_id: PoiId) -> POIDetail | None:
        try:
            data = await asyncio.wait_for(self._lookup(poi_id), timeout=self.timeout)
            if not isinstance(data, dict):
                raise ValueError(f"unexpected payload type {type(data).__name__}")
            return POIDetail.model_validate({**data, "poiId": poi_id})
        except asyncio.TimeoutError:
            logger.warning(f"Timed out fetching POI {poi_id} after {self.timeout}s")
        except ValidationError as e:
            logger.warning(f"Invalid detail record for POI {poi_id}: {e}")
        except Exception as e:
            logger.warning(f"Failed to fetch POI {poi_id}: {e}")
        return None
