"""Backend implementations: Supabase over HTTP and an in-process store."""

import asyncio
import copy
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from app.clients.base import Backend, BackendError
from app.services.jwt_service import JWTService

logger = logging.getLogger(__name__)


class SupabaseBackend(Backend):
    """Backend talking to Supabase REST (PostgREST) and auth (GoTrue) APIs."""

    name = "supabase"

    def __init__(self, url: str, service_key: str, timeout: int = 10):
        """Initialize Supabase backend.

        Args:
            url: Supabase project URL
            service_key: Service role key used for table access
            timeout: Request timeout in seconds
        """
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            timeout=timeout,
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
            },
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @staticmethod
    def _filter_params(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
        params = {}
        for column, value in (filters or {}).items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            params[column] = f"eq.{value}"
        return params

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.url}{path}"
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Supabase request timed out: {method} {path}")
            raise BackendError(f"Backend request timed out: {method} {path}") from e
        except httpx.RequestError as e:
            logger.error(f"Supabase request failed: {method} {path}: {e}")
            raise BackendError(f"Backend unreachable: {e}") from e
        return response

    async def get_user_id(self, token: str) -> Optional[str]:
        response = await self._request(
            "GET",
            "/auth/v1/user",
            headers={"apikey": self.service_key, "Authorization": f"Bearer {token}"},
        )
        if response.status_code != 200:
            logger.warning(f"Token exchange rejected: status={response.status_code}")
            return None
        return response.json().get("id")

    async def select(
        self, table: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        params = {"select": "*", **self._filter_params(filters)}
        response = await self._request("GET", f"/rest/v1/{table}", params=params)
        if response.status_code != 200:
            raise BackendError(
                f"Select from {table} failed: status={response.status_code}"
            )
        return response.json()

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            content=json.dumps(row, default=str),
            headers={
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            },
        )
        if response.status_code not in (200, 201):
            raise BackendError(
                f"Insert into {table} failed: status={response.status_code}"
            )
        rows = response.json()
        return rows[0] if isinstance(rows, list) and rows else row

    async def update(
        self, table: str, filters: Dict[str, Any], values: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        response = await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=self._filter_params(filters),
            content=json.dumps(values, default=str),
            headers={
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            },
        )
        if response.status_code not in (200, 204):
            raise BackendError(
                f"Update of {table} failed: status={response.status_code}"
            )
        return response.json() if response.content else []

    async def health_check(self) -> bool:
        try:
            response = await self._request("GET", "/rest/v1/")
        except BackendError:
            return False
        return response.status_code == 200


class InMemoryBackend(Backend):
    """Process-local tables for single-instance deployments and tests.

    Bearer tokens are resolved by verifying them as HS256 JWTs signed with the
    project JWT secret, the same tokens the managed auth service issues.
    """

    name = "memory"

    def __init__(
        self,
        jwt_service: Optional[JWTService] = None,
        tables: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    ):
        self.jwt_service = jwt_service or JWTService()
        self._tables: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = asyncio.Lock()
        for table, rows in (tables or {}).items():
            self._tables[table] = [self._with_id(row) for row in rows]

    @classmethod
    def from_seed_file(
        cls, path: str, jwt_service: Optional[JWTService] = None
    ) -> "InMemoryBackend":
        """Build a backend whose tables are loaded from a JSON document."""
        tables = json.loads(Path(path).read_text())
        logger.info(f"Seeded in-memory backend from {path}: {sorted(tables)}")
        return cls(jwt_service=jwt_service, tables=tables)

    @staticmethod
    def _with_id(row: Dict[str, Any]) -> Dict[str, Any]:
        row = copy.deepcopy(row)
        row.setdefault("id", str(uuid.uuid4()))
        return row

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        return all(row.get(column) == value for column, value in (filters or {}).items())

    async def get_user_id(self, token: str) -> Optional[str]:
        payload = self.jwt_service.validate_token(token)
        if not payload:
            return None
        return self.jwt_service.get_user_id(payload)

    async def select(
        self, table: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        async with self._lock:
            rows = self._tables.get(table, [])
            return [copy.deepcopy(row) for row in rows if self._matches(row, filters)]

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            stored = self._with_id(row)
            self._tables.setdefault(table, []).append(stored)
            return copy.deepcopy(stored)

    async def update(
        self, table: str, filters: Dict[str, Any], values: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        async with self._lock:
            updated = []
            for row in self._tables.get(table, []):
                if self._matches(row, filters):
                    row.update(copy.deepcopy(values))
                    updated.append(copy.deepcopy(row))
            return updated
