"""
Listing page parsing - topic links and their ids
"""
from typing import List, Optional, Set
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ..exceptions import ResolutionError
from ..logging_config import setup_logging
from ..models import ListingEntry
from .identity import resolve_id

logger = setup_logging(__name__)

TOPIC_LINK_SELECTORS = [
    '.ipsBox a[href*="/forums/topic/"]',
    'a[href*="/forums/topic/"]',
]


def parse_listing(markup: str, base_url: str = "", max_films: Optional[int] = None) -> List[ListingEntry]:
    """Extract topic entries from listing markup in page order.

    Links without a resolvable topic id are dropped, and the same topic
    linked more than once (pagination anchors, "last post" links) is kept
    only at its first position.
    """
    soup = BeautifulSoup(markup or "", "html.parser")

    anchors = []
    for selector in TOPIC_LINK_SELECTORS:
        anchors = soup.select(selector)
        if anchors:
            break

    entries: List[ListingEntry] = []
    seen_urls: Set[str] = set()
    seen_ids: Set[str] = set()
    unresolved = 0

    for anchor in anchors:
        if max_films is not None and len(entries) >= max_films:
            break

        href = urljoin(base_url, anchor.get("href", "").strip())
        title = anchor.get_text(" ", strip=True)
        if not title or href in seen_urls:
            continue
        seen_urls.add(href)

        try:
            film_id = resolve_id(href)
        except ResolutionError:
            unresolved += 1
            continue

        if film_id in seen_ids:
            continue
        seen_ids.add(film_id)
        entries.append(ListingEntry(id=film_id, source_url=href, raw_title=title))

    logger.info(
        f"Parsed {len(entries)} films from listing page "
        f"({len(anchors)} links, {unresolved} without topic id)"
    )
    return entries
