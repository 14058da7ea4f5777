from typing import Any, Dict, Optional

import httpx

FIELD_MASK = "places.id,places.displayName,places.photos"
MAX_HEIGHT_PX = 800
MAX_WIDTH_PX = 1200


class PlacesClient:
    """Google Places (New) text search. Only builds photo media URLs, never downloads them."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://places.googleapis.com/v1",
        language: str = "en",
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.language = language
        self.timeout = timeout_seconds
        self._transport = transport

    async def search_text(self, text_query: str) -> Dict[str, Any]:
        url = f"{self.base_url}/places:searchText"
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key or "",
            "X-Goog-FieldMask": FIELD_MASK,
        }
        body = {"textQuery": text_query, "languageCode": self.language}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            r = await client.post(url, json=body, headers=headers)
            r.raise_for_status()
            return r.json()

    def photo_media_url(self, photo_name: str) -> str:
        return (
            f"{self.base_url}/{photo_name}/media"
            f"?maxHeightPx={MAX_HEIGHT_PX}&maxWidthPx={MAX_WIDTH_PX}&key={self.api_key}"
        )
