"""
Scraping and extraction for forum film posts
"""
from .detail import parse_detail
from .engine import extract_film
from .identity import resolve_id, try_resolve_id
from .listing import parse_listing
from .variants import assemble_variants

__all__ = [
    "assemble_variants",
    "extract_film",
    "parse_detail",
    "parse_listing",
    "resolve_id",
    "try_resolve_id",
]
