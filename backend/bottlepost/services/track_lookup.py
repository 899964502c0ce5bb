"""
Шлюз поиска треков во внешнем каталоге.

Обменивает client credentials на bearer-токен (grant_type=client_credentials,
Basic-авторизация id:secret), ищет треки и приводит ответ к единому виду.
Токен кешируется до истечения срока минус запас.
"""

import asyncio
import base64
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from bottlepost.core.config import settings
from bottlepost.core.errors import GatewayError
from bottlepost.schemas.track import Track

logger = logging.getLogger(__name__)


def normalize_track(item: Dict[str, Any]) -> Track:
    """Запись каталога -> {id, name, artist, album_art, uri, preview_url}"""
    artists = item.get("artists") or []
    images = (item.get("album") or {}).get("images") or []
    return Track(
        id=item["id"],
        name=item.get("name", ""),
        artist=", ".join(a.get("name", "") for a in artists),
        album_art=images[0].get("url", "") if images else "",
        uri=item.get("uri", ""),
        preview_url=item.get("preview_url"),
    )


class TrackLookupGateway:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = "https://accounts.spotify.com/api/token",
        search_url: str = "https://api.spotify.com/v1/search",
        limit: int = 10,
        expiry_margin: float = 60,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.search_url = search_url
        self.limit = limit
        self.expiry_margin = expiry_margin
        self.timeout = timeout
        self.transport = transport

        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls) -> "TrackLookupGateway":
        return cls(
            client_id=settings.SPOTIFY_CLIENT_ID,
            client_secret=settings.SPOTIFY_CLIENT_SECRET,
            token_url=settings.SPOTIFY_TOKEN_URL,
            search_url=settings.SPOTIFY_SEARCH_URL,
            limit=settings.TRACK_SEARCH_LIMIT,
            expiry_margin=settings.TRACK_TOKEN_EXPIRY_MARGIN_SECONDS,
            timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        )

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def invalidate_token(self):
        self._token = None
        self._token_expires_at = 0.0

    async def search(self, query: str) -> List[Track]:
        query = (query or "").strip()
        if not query:
            raise GatewayError("Search query is required")
        if not self.configured:
            raise GatewayError("Track provider credentials not configured")

        logger.info(f"🎵 Поиск треков: {query!r}")
        try:
            async with self._client() as client:
                token = await self._access_token(client)
                response = await client.get(
                    self.search_url,
                    params={"q": query, "type": "track", "limit": self.limit},
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Каталог недоступен: {e}")
            raise GatewayError("Failed to search tracks")

        if response.status_code == 401:
            self.invalidate_token()
        if not response.is_success:
            logger.error(f"❌ Поиск треков вернул {response.status_code}")
            raise GatewayError("Failed to search tracks")

        try:
            items = (response.json().get("tracks") or {}).get("items") or []
            tracks = [normalize_track(item) for item in items]
        except (ValueError, KeyError, AttributeError) as e:
            logger.error(f"❌ Неожиданный ответ каталога: {e}")
            raise GatewayError("Failed to search tracks")

        logger.info(f"🎵 Найдено треков: {len(tracks)}")
        return tracks

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        async with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at - self.expiry_margin:
                return self._token

            credentials = base64.b64encode(f"{self.client_id}:{self.client_secret}".encode()).decode()
            response = await client.post(
                self.token_url,
                data={"grant_type": "client_credentials"},
                headers={"Authorization": f"Basic {credentials}"},
            )
            if not response.is_success:
                logger.error(f"❌ Ошибка получения токена каталога: {response.status_code}")
                raise GatewayError("Failed to authenticate with track provider")

            try:
                payload = response.json()
                token = payload["access_token"]
                expires_in = float(payload.get("expires_in", 3600))
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error(f"❌ Неожиданный ответ при получении токена: {e}")
                raise GatewayError("Failed to authenticate with track provider")

            self._token = token
            self._token_expires_at = time.monotonic() + expires_in
            logger.debug("🔑 Получен новый токен каталога")
            return token


# Глобальный экземпляр шлюза
track_gateway = TrackLookupGateway.from_settings()


def get_track_gateway() -> TrackLookupGateway:
    return track_gateway
