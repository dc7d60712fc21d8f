"""
Storage layer for the wikidist crawler.
"""

from .database import StoreBackend, StoreError, MemoryStore, RedisStore, create_store

__all__ = ['StoreBackend', 'StoreError', 'MemoryStore', 'RedisStore', 'create_store']
