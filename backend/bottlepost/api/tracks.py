from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from bottlepost.core.errors import GatewayError
from bottlepost.schemas.track import TrackSearchRequest, TrackSearchResponse
from bottlepost.services.track_lookup import TrackLookupGateway, get_track_gateway

router = APIRouter()

@router.post("/search", response_model=TrackSearchResponse)
async def search_tracks(
    request: Request,
    gateway: TrackLookupGateway = Depends(get_track_gateway)
):
    """
    Поиск треков во внешнем каталоге.

    {query} -> 200 {tracks: [...]} (пустой список - это "ничего не найдено"),
    любая ошибка -> 400 {error: ...}.
    """
    # Тело разбираем сами: ошибка валидации FastAPI дала бы 422 вместо {error}
    try:
        payload = TrackSearchRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        raise GatewayError("Search query is required")

    tracks = await gateway.search(payload.query)
    return TrackSearchResponse(tracks=tracks)
