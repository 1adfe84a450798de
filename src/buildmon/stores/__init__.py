from .base import BaseStore
from .factory import StoreKind
from .jsonfile import JsonStore
from .memory import MemoryStore

__all__ = ["BaseStore", "StoreKind", "JsonStore", "MemoryStore"]
