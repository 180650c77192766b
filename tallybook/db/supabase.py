"""Hosted backend gateway speaking the PostgREST API."""

from __future__ import annotations

import json
import logging
from urllib.parse import quote

import requests

from ..errors import GatewayError
from .gateway import PersistenceGateway, Row, _check_columns, _check_table

logger = logging.getLogger(__name__)

TIMEOUT = 15
API_BASE_PATH = "/rest/v1/"

_ORDER: dict[str, str] = {
    "receipts": "created_at.asc",
    "budgets": "id.asc",
    "shopping_lists": "created_at.asc",
    "shopping_items": "position.asc",
}


class SupabaseGateway(PersistenceGateway):
    """CRUD over the hosted tables; row-level security scopes by user."""

    def __init__(
        self,
        url: str,
        api_key: str,
        access_token: str = "",
        timeout: float = TIMEOUT,
    ) -> None:
        if not url or not api_key:
            raise ValueError(
                "Supabase URL and key are not set. "
                "Check the config file or the SUPABASE_URL / SUPABASE_KEY "
                "environment variables."
            )
        self._base = url.rstrip("/") + API_BASE_PATH
        self._api_key = api_key
        self._access_token = access_token or api_key
        self._timeout = timeout
        self._http = requests.Session()

    def close(self) -> None:
        self._http.close()

    def _headers(self, prefer: str = "") -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        table: str,
        *,
        query: str = "",
        body=None,
        prefer: str = "",
    ):
        url = self._base + table + (f"?{query}" if query else "")
        logger.debug("%s %s", method, url)
        try:
            response = self._http.request(
                method,
                url,
                headers=self._headers(prefer),
                data=json.dumps(body) if body is not None else None,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise GatewayError(f"{method} {table} failed: {e}") from e
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(f"{method} {table} returned invalid JSON: {e}") from e

    def select(self, table: str, user_id: str) -> list[Row]:
        _check_table(table)
        order = _ORDER[table]
        data = self._request(
            "GET",
            table,
            query=f"select=*&user_id=eq.{quote(user_id)}&order={order}",
        )
        if not isinstance(data, list):
            raise GatewayError(f"GET {table} returned {type(data).__name__}, expected list")
        return data

    def insert(self, table: str, row: Row) -> Row:
        _check_columns(table, row)
        data = self._request(
            "POST", table, body=[row], prefer="return=representation"
        )
        if not isinstance(data, list) or len(data) != 1:
            raise GatewayError(f"POST {table} did not return the inserted row")
        return data[0]

    def update(self, table: str, row_id: str, values: Row) -> None:
        _check_columns(table, values)
        self._request(
            "PATCH",
            table,
            query=f"id=eq.{quote(row_id)}",
            body=values,
            prefer="return=minimal",
        )

    def delete(self, table: str, row_id: str) -> None:
        _check_table(table)
        self._request(
            "DELETE", table, query=f"id=eq.{quote(row_id)}", prefer="return=minimal"
        )

    def upsert(self, table: str, rows: list[Row]) -> None:
        for row in rows:
            _check_columns(table, row)
        if not rows:
            return
        self._request(
            "POST",
            table,
            body=rows,
            prefer="resolution=merge-duplicates,return=minimal",
        )
