"""Store module - read-only access to the 1Password credential store"""

from ..config import Settings
from .client import StoreClient, StoreError, TransportError, DeserializationError
from .memory import InMemoryStore
from .op_cli import OpCliClient


def get_store_client(settings: Settings) -> StoreClient:
    """Get the `op`-backed store client configured by settings"""
    return OpCliClient(binary=settings.op_binary, timeout=settings.op_timeout)


__all__ = [
    "StoreClient",
    "StoreError",
    "TransportError",
    "DeserializationError",
    "InMemoryStore",
    "OpCliClient",
    "get_store_client",
]
