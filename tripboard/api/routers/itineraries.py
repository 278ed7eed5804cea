import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Path, status
from pydantic import ValidationError

from tripboard.core.errors import ApiError, LoadError, StaleResponseError
from tripboard.core.itinerary_editor import ItineraryEditor
from tripboard.core.schemas import (
    ITINERARY_ID_PATTERN,
    AddPoiRequest,
    ItineraryView,
    MovePoiRequest,
    SelectDayRequest,
    TripCard,
)
from tripboard.core.security import Workspace, get_editor, get_workspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/itineraries", tags=["itineraries"])


def _itinerary_id_path() -> Any:
    return Path(
        ...,
        min_length=1,
        max_length=50,
        pattern=ITINERARY_ID_PATTERN,
        description="Itinerary ID",
    )


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, StaleResponseError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, ApiError) and e.status == status.HTTP_401_UNAUTHORIZED:
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    if isinstance(e, ApiError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


def _require_open(editor: ItineraryEditor, itinerary_id: str) -> None:
    if editor.itinerary_id != itinerary_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Itinerary {itinerary_id} is not open",
        )


async def _open(editor: ItineraryEditor, itinerary_id: str) -> ItineraryView:
    try:
        return await editor.open(itinerary_id)
    except (LoadError, StaleResponseError) as e:
        raise _http_error(e)


@router.get("", response_model=list[TripCard])
async def list_trips(workspace: Workspace = Depends(get_workspace)):
    """Trips for the dashboard, newest start date first."""
    try:
        raw = await workspace.api.list_trips()
    except ApiError as e:
        raise _http_error(e)

    if isinstance(raw, dict):
        raw = raw.get("itineraries") or raw.get("trips") or []
    if not isinstance(raw, list):
        raise HTTPException(status_code=502, detail="Unexpected trip list payload")

    cards: list[TripCard] = []
    for item in raw:
        try:
            cards.append(TripCard.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed trip record: {e.error_count()} error(s)")

    cards.sort(key=lambda card: card.start_date or date.min, reverse=True)
    return cards


@router.get("/{itinerary_id}", response_model=ItineraryView)
async def get_itinerary(
    itinerary_id: str = _itinerary_id_path(),
    editor: ItineraryEditor = Depends(get_editor),
):
    """Open the itinerary (if it is not the open one) and return its view."""
    if editor.itinerary_id != itinerary_id:
        return await _open(editor, itinerary_id)
    return editor.view()


@router.post("/{itinerary_id}/reload", response_model=ItineraryView)
async def reload_itinerary(
    itinerary_id: str = _itinerary_id_path(),
    editor: ItineraryEditor = Depends(get_editor),
):
    return await _open(editor, itinerary_id)


@router.post("/{itinerary_id}/pois/{poi_id}/move", response_model=ItineraryView)
async def move_poi(
    itinerary_id: str = _itinerary_id_path(),
    poi_id: str = Path(..., min_length=1, max_length=100, description="POI ID"),
    move: MovePoiRequest = Body(...),
    editor: ItineraryEditor = Depends(get_editor),
):
    """
    Move a stop one position up or down.

    At the edge of a day the stop crosses into the adjacent day. Moves that
    cannot apply (unknown stop, first day going up, last day going down)
    return the unchanged view.
    """
    _require_open(editor, itinerary_id)
    return editor.move_poi(poi_id, move.day, move.direction)


@router.delete("/{itinerary_id}/pois/{poi_id}", response_model=ItineraryView)
async def delete_poi(
    itinerary_id: str = _itinerary_id_path(),
    poi_id: str = Path(..., min_length=1, max_length=100, description="POI ID"),
    editor: ItineraryEditor = Depends(get_editor),
):
    _require_open(editor, itinerary_id)
    return editor.delete_poi(poi_id)


@router.post("/{itinerary_id}/days/{day_number}/pois", response_model=ItineraryView)
async def add_poi(
    itinerary_id: str = _itinerary_id_path(),
    day_number: int = Path(..., ge=1, description="Day number"),
    poi: AddPoiRequest = Body(...),
    editor: ItineraryEditor = Depends(get_editor),
):
    """Append a place to the end of a day and resolve its details."""
    _require_open(editor, itinerary_id)
    return await editor.add_poi(poi.poi_id, day_number)


@router.put("/{itinerary_id}/selection", response_model=ItineraryView)
async def select_day(
    itinerary_id: str = _itinerary_id_path(),
    selection: SelectDayRequest = Body(...),
    editor: ItineraryEditor = Depends(get_editor),
):
    _require_open(editor, itinerary_id)
    return editor.select_day(selection.day)


@router.post("/{itinerary_id}/save", response_model=ItineraryView)
async def save_itinerary(
    itinerary_id: str = _itinerary_id_path(),
    editor: ItineraryEditor = Depends(get_editor),
):
    _require_open(editor, itinerary_id)
    try:
        return await editor.save()
    except ApiError as e:
        logger.error(f"Failed to save itinerary {itinerary_id}: {e!r}")
        raise _http_error(e)
