"""
CRUD data access.

Provides:
- BaseRepository: typed queries for one model, hiding soft-deleted rows
"""

from .repository import BaseRepository

__all__ = [
    "BaseRepository",
]
