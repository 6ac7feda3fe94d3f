"""
Kakao Local keyword search client for the room location picker.

Never raises: on a missing key or a failed request it returns no places
and an error message, so room creation can fall back to manual entry.
"""

import logging
import os
from typing import List, Optional, Tuple

import httpx

from pickup.models.schemas import PlaceResponse

logger = logging.getLogger(__name__)

KAKAO_KEYWORD_URL = "https://dapi.kakao.com/v2/local/search/keyword.json"
PAGE_SIZE = 15


def _get_kakao_key() -> Optional[str]:
    return os.environ.get("KAKAO_REST_API_KEY")


def _to_place(document: dict) -> PlaceResponse:
    distance = document.get("distance")
    return PlaceResponse(
        name=document.get("place_name", ""),
        address=document.get("address_name", ""),
        road_address=document.get("road_address_name") or None,
        # Kakao returns x = longitude, y = latitude as strings
        latitude=float(document["y"]),
        longitude=float(document["x"]),
        phone=document.get("phone") or None,
        distance=int(distance) if distance else None,
    )


async def search_places(
    query: str,
    x: Optional[float] = None,
    y: Optional[float] = None,
    radius: Optional[int] = None,
) -> Tuple[List[PlaceResponse], Optional[str]]:
    """
    Search places by keyword.

    Args:
        query: Keyword text
        x: Longitude to search around (optional)
        y: Latitude to search around (optional)
        radius: Search radius in meters, only used with x/y

    Returns:
        Tuple of (places, error). Places are sorted by distance when a point
        is given, otherwise by relevance.
    """
    query = (query or "").strip()
    if not query:
        return [], None

    key = _get_kakao_key()
    if not key:
        logger.warning("KAKAO_REST_API_KEY not set; skipping place search")
        return [], "Place search is not configured"

    params = {"query": query, "size": PAGE_SIZE}
    if x is not None and y is not None:
        params.update({"x": x, "y": y, "sort": "distance"})
        if radius:
            params["radius"] = radius
    else:
        params["sort"] = "accuracy"

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.get(
                KAKAO_KEYWORD_URL,
                params=params,
                headers={"Authorization": f"KakaoAK {key}"},
            )
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Place search failed for %r: %s", query, e)
        return [], "Place search failed"

    places = []
    for document in data.get("documents", []):
        try:
            places.append(_to_place(document))
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed place document: %s", document)
    return places, None
