from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import requests
from loguru import logger

from config import Configuration
from errors import CollaboratorError
from models import Cafe


class CafeStoreError(CollaboratorError):
    pass


def _in_list(values: Iterable[str]) -> str:
    quoted = ",".join('"%s"' % v.replace('"', '\\"') for v in values)
    return f"in.({quoted})"


def _contains(tags: Iterable[str]) -> str:
    quoted = ",".join('"%s"' % t.replace('"', '\\"') for t in tags)
    return "cs.{%s}" % quoted


class SupabaseCafeStore:
    """The `cafes` table, reached through Supabase's PostgREST endpoint."""

    def __init__(self, cfg: Configuration, session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self.base = f"{(cfg.supabase_url or '').rstrip('/')}/rest/v1/{cfg.cafes_table}"
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": cfg.supabase_secret or "",
                "Authorization": f"Bearer {cfg.supabase_secret or ''}",
                "Accept": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        headers: Optional[dict] = None,
        allow_status: Iterable[int] = (),
    ) -> requests.Response:
        try:
            resp = self.session.request(
                method,
                self.base,
                params=params,
                json=json,
                headers=headers,
                timeout=self.cfg.supabase_timeout,
            )
        except requests.RequestException as exc:
            raise CafeStoreError(f"request error: {exc}") from exc
        if not resp.ok and resp.status_code not in set(allow_status):
            raise CafeStoreError(f"store {method} {resp.status_code}: {resp.text[:300]}")
        return resp

    def _rows(self, resp: requests.Response) -> List[Dict[str, Any]]:
        try:
            data = resp.json()
        except ValueError as exc:
            raise CafeStoreError("invalid json response") from exc
        if not isinstance(data, list):
            raise CafeStoreError("unexpected store response shape")
        return data

    def find_cafes(
        self,
        ids: List[str],
        *,
        tags: Optional[List[str]] = None,
        min_rating: Optional[float] = None,
    ) -> List[Cafe]:
        if not ids:
            return []
        params: dict[str, str] = {"select": "*", "id": _in_list(ids)}
        if tags:
            params["tags"] = _contains(tags)
        if min_rating is not None:
            params["rating"] = f"gte.{min_rating}"
        rows = self._rows(self._request("GET", params=params))
        return [Cafe.from_row(r) for r in rows]

    def existing_ids(self, ids: List[str]) -> set[str]:
        if not ids:
            return set()
        rows = self._rows(self._request("GET", params={"select": "id", "id": _in_list(ids)}))
        return {str(r["id"]) for r in rows}

    def insert_cafes(self, cafes: List[Cafe]) -> List[str]:
        """Insert cafes not stored yet. Returns the ids this call wrote.

        Existence is re-checked right before writing, and the write itself
        ignores duplicate keys, so overlapping concurrent requests both succeed.
        """
        if not cafes:
            return []
        existing = self.existing_ids([c.id for c in cafes])
        fresh: list[Cafe] = []
        seen: set[str] = set()
        for cafe in cafes:
            if cafe.id in existing or cafe.id in seen:
                continue
            seen.add(cafe.id)
            fresh.append(cafe)
        if not fresh:
            return []

        resp = self._post_rows(fresh)
        if resp.status_code != 409:
            return [c.id for c in fresh]

        # the batch was rejected as a whole; retry row by row
        logger.warning("duplicate cafe ids on batch insert, retrying per row")
        written: list[str] = []
        for cafe in fresh:
            if self._post_rows([cafe]).status_code == 409:
                logger.warning("cafe {} already present", cafe.id)
                continue
            written.append(cafe.id)
        return written

    def _post_rows(self, cafes: List[Cafe]) -> requests.Response:
        return self._request(
            "POST",
            params={"on_conflict": "id"},
            json=[c.to_row() for c in cafes],
            headers={"Prefer": "resolution=ignore-duplicates,return=minimal"},
            allow_status=(409,),
        )

    def get_cafe(self, cafe_id: str) -> Optional[Cafe]:
        rows = self._rows(self._request("GET", params={"select": "*", "id": f"eq.{cafe_id}"}))
        return Cafe.from_row(rows[0]) if rows else None

    def update_cafe(
        self,
        cafe_id: str,
        fields: Dict[str, Any],
        *,
        expected_num_reviews: Optional[int] = None,
    ) -> bool:
        """PATCH one cafe. Returns False when no row matched.

        With expected_num_reviews the row only changes if nobody else counted
        a review since it was read.
        """
        params = {"id": f"eq.{cafe_id}"}
        if expected_num_reviews is not None:
            params["num_reviews"] = f"eq.{expected_num_reviews}"
        resp = self._request(
            "PATCH",
            params=params,
            json=fields,
            headers={"Prefer": "return=representation"},
        )
        return bool(self._rows(resp))
