"""
Persistence for the FilmWatch worker
"""
from .seen_store import SeenSetStore

__all__ = ["SeenSetStore"]
