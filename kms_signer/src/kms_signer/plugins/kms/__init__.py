from .base import KMSService
from .memory import InMemoryKMS

__all__ = ["InMemoryKMS", "KMSService"]
