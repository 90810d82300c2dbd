# rockmundo/store.py
from __future__ import annotations

import copy
import uuid
from typing import Any, Dict, List, Optional, Sequence

import httpx

from rockmundo.errors import BackendError
from rockmundo.logger import get_logger
from rockmundo.settings import Settings, get_settings

logger = get_logger(__name__)


class GameStore:
    """
    Table-oriented access to the game database.

    Filters are keyword arguments matched by equality; a list or tuple value
    matches any of its members. Rows are plain dicts.
    """

    def select(
        self,
        table: str,
        *,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        **filters: Any,
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def get(self, table: str, **filters: Any) -> Optional[Dict[str, Any]]:
        rows = self.select(table, limit=1, **filters)
        return rows[0] if rows else None

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def update(self, table: str, values: Dict[str, Any], **filters: Any) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def upsert(self, table: str, row: Dict[str, Any], on_conflict: Sequence[str]) -> Dict[str, Any]:
        raise NotImplementedError


def _matches(row: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    for key, want in filters.items():
        have = row.get(key)
        if isinstance(want, (list, tuple, set)):
            if have not in want:
                return False
        elif have != want:
            return False
    return True


class MemoryStore(GameStore):
    """In-process tables. Used for tests and local play."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        for name, rows in (tables or {}).items():
            for row in rows:
                self.insert(name, row)

    def _table(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def select(self, table, *, order=None, limit=None, **filters):
        rows = [copy.deepcopy(r) for r in self._table(table) if _matches(r, filters)]
        if order:
            column, _, direction = order.partition(".")
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)),
                      reverse=(direction == "desc"))
        if limit is not None:
            rows = rows[:limit]
        return rows

    def insert(self, table, row):
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid.uuid4()))
        self._table(table).append(stored)
        return copy.deepcopy(stored)

    def update(self, table, values, **filters):
        updated = []
        for row in self._table(table):
            if _matches(row, filters):
                row.update(copy.deepcopy(values))
                updated.append(copy.deepcopy(row))
        return updated

    def upsert(self, table, row, on_conflict):
        key = {col: row.get(col) for col in on_conflict}
        for existing in self._table(table):
            if _matches(existing, key):
                existing.update(copy.deepcopy(row))
                return copy.deepcopy(existing)
        return self.insert(table, row)


class RestStore(GameStore):
    """Store backed by the hosted database's REST endpoint (/rest/v1)."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = httpx.Client(
            base_url=base_url.rstrip("/") + "/rest/v1",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _params(filters: Dict[str, Any]) -> Dict[str, str]:
        params = {}
        for key, want in filters.items():
            if isinstance(want, (list, tuple, set)):
                params[key] = "in.(" + ",".join(str(v) for v in want) + ")"
            elif want is None:
                params[key] = "is.null"
            elif isinstance(want, bool):
                params[key] = f"eq.{str(want).lower()}"
            else:
                params[key] = f"eq.{want}"
        return params

    def _request(self, method: str, table: str, **kwargs: Any) -> List[Dict[str, Any]]:
        try:
            response = self.client.request(method, f"/{table}", **kwargs)
        except httpx.HTTPError as e:
            logger.error("Backend request failed: %s %s: %s", method, table, e)
            raise BackendError(str(e)) from e

        if response.is_error:
            try:
                message = response.json().get("message") or response.text
            except ValueError:
                message = response.text
            logger.error("Backend rejected %s %s (%s): %s",
                         method, table, response.status_code, message)
            raise BackendError(message)

        if not response.content:
            return []
        body = response.json()
        return body if isinstance(body, list) else [body]

    def select(self, table, *, order=None, limit=None, **filters):
        params = {"select": "*", **self._params(filters)}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        return self._request("GET", table, params=params)

    def insert(self, table, row):
        rows = self._request("POST", table, json=row,
                             headers={"Prefer": "return=representation"})
        return rows[0] if rows else dict(row)

    def update(self, table, values, **filters):
        return self._request("PATCH", table, json=values, params=self._params(filters),
                             headers={"Prefer": "return=representation"})

    def upsert(self, table, row, on_conflict):
        rows = self._request(
            "POST", table, json=row,
            params={"on_conflict": ",".join(on_conflict)},
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        return rows[0] if rows else dict(row)


def get_store(settings: Optional[Settings] = None) -> GameStore:
    settings = settings or get_settings()
    if settings.store == "rest":
        return RestStore(
            settings.backend_url,
            settings.service_role_key,
            timeout=settings.request_timeout,
        )
    return MemoryStore()
