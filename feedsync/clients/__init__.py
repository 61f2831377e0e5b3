"""HTTP clients for the feed backend."""
from .api import ApiClient, EntityKind, Operation

__all__ = ["ApiClient", "EntityKind", "Operation"]
