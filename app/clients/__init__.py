"""Clients for the persistence/auth backend."""

from app.clients.base import Backend, BackendError
from app.clients.backend import InMemoryBackend, SupabaseBackend

__all__ = ["Backend", "BackendError", "InMemoryBackend", "SupabaseBackend"]
