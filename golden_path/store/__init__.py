"""
State persistence adapters
"""
from .base import ContentCatalogue, StateStore
from .memory import InMemoryContentCatalogue, InMemoryStateStore

__all__ = [
    "StateStore",
    "ContentCatalogue",
    "InMemoryStateStore",
    "InMemoryContentCatalogue",
]
