"""
Infrastructure layer for gitix.

Contains abstractions for external systems:
- ObjectStoreClient: hosted Git object store (blobs, trees, commits, refs)
- ActorStore: actor registry and permission check (SQLite + bcrypt)

These provide clean interfaces that can be mocked for testing.
"""

from .store_client import ObjectStoreClient, RateLimitStatus
from .actor_store import Actor, ActorStore, AuthResult

__all__ = [
    'ObjectStoreClient',
    'RateLimitStatus',
    'Actor',
    'ActorStore',
    'AuthResult',
]
