"""Persistence/auth backend interface.

The core never owns storage: every read and write goes through a
:class:`Backend`, which exposes token resolution plus generic table
``select``/``insert``/``update`` operations in the shape of Supabase's
PostgREST API.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class BackendError(Exception):
    """Raised when the persistence/auth backend cannot be reached or fails."""


class Backend(ABC):
    """Async persistence/auth collaborator."""

    name = "abstract"

    @abstractmethod
    async def get_user_id(self, token: str) -> Optional[str]:
        """Exchange an access token for the authenticated user id.

        Returns:
            User id, or None if the token is not accepted
        """

    @abstractmethod
    async def select(
        self, table: str, filters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Return rows of ``table`` whose columns equal every filter value."""

    @abstractmethod
    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it as stored."""

    @abstractmethod
    async def update(
        self, table: str, filters: Dict[str, Any], values: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        """Update matching rows and return them as stored."""

    async def select_one(
        self, table: str, filters: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        rows = await self.select(table, filters)
        return rows[0] if rows else None

    async def health_check(self) -> bool:
        return True

    async def close(self):
        """Release backend resources."""
