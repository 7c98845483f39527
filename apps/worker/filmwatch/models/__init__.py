"""
Data models for the FilmWatch worker
"""
from .film import DetailContent, DownloadVariant, FilmRecord, ListingEntry, Resolution
from .runs import RunCounters, RunResult
from .seen import SeenRecord, SeenSetDocument

# Export all models
__all__ = [
    "DetailContent",
    "DownloadVariant",
    "FilmRecord",
    "ListingEntry",
    "Resolution",
    "RunCounters",
    "RunResult",
    "SeenRecord",
    "SeenSetDocument",
]
