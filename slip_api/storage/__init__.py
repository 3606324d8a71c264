"""
Storage layer: connection lifecycle and index provisioning.
"""

from .gateway import StorageGateway, StorageState
from .indexes import ensure_indexes, INDEX_SPECS

__all__ = [
    "StorageGateway",
    "StorageState",
    "ensure_indexes",
    "INDEX_SPECS",
]
