from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from config import Configuration
from errors import CollaboratorError
from models import LatLng


DETAIL_FIELDS = (
    "opening_hours/weekday_text",
    "opening_hours/periods",
    "name",
    "formatted_address",
    "geometry",
    "icon_mask_base_uri",
)

_OK_STATUSES = {"OK", "ZERO_RESULTS"}


class GooglePlacesError(CollaboratorError):
    pass


class GooglePlacesClient:
    """Google Places web service: text search and place details.

    No retries; a failed call fails the request.
    """

    def __init__(self, cfg: Configuration, session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self.base = cfg.google_maps_base_url.rstrip("/")
        self.session = session or requests.Session()

    def _get(self, path: str, params: dict) -> dict:
        url = f"{self.base}{path}"
        headers = {"Accept": "application/json"}
        params = {**params, "key": self.cfg.google_maps_api_key}
        try:
            resp = self.session.get(url, headers=headers, params=params, timeout=self.cfg.google_maps_timeout)
        except requests.RequestException as exc:
            raise GooglePlacesError(f"request error: {exc}") from exc

        if not resp.ok:
            snippet = resp.text[:300]
            raise GooglePlacesError(f"upstream {resp.status_code}: {snippet}")

        try:
            payload = resp.json()
        except ValueError as exc:
            raise GooglePlacesError("invalid json response") from exc

        status = payload.get("status")
        if status not in _OK_STATUSES:
            message = payload.get("error_message") or "no error message"
            raise GooglePlacesError(f"places status {status}: {message}")
        return payload

    def text_search(
        self,
        query: str,
        *,
        location: Optional[LatLng] = None,
        radius: float,
        open_now: Optional[bool] = None,
    ) -> List[Dict[str, Any]]:
        params: dict[str, Any] = {
            "query": query,
            "radius": int(radius),
            "type": "cafe",
        }
        if location is not None:
            params["location"] = f"{location.lat},{location.lng}"
        if open_now:
            params["opennow"] = "true"
        logger.debug("text search query={} location={} radius={}", query, params.get("location"), params["radius"])
        payload = self._get("/maps/api/place/textsearch/json", params)
        return list(payload.get("results") or [])

    def place_details(self, place_id: str) -> Dict[str, Any]:
        if not place_id:
            raise GooglePlacesError("place_id not set")
        payload = self._get(
            "/maps/api/place/details/json",
            {"place_id": place_id, "fields": ",".join(DETAIL_FIELDS)},
        )
        return dict(payload.get("result") or {})
