"""
Download variant assembly

Posts list every quality option as a short caption ("1.2GB 1080p x265 ...")
immediately followed by its links. Each located link is described by running
the field extractors over the text that precedes it, and a direct link is
folded into the magnet variant that shares its resolution and file size.
"""
import html
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional, Tuple

from ..logging_config import setup_logging
from ..models import DownloadVariant, Resolution
from .fields import (
    DIRECT_LINK_PATTERN,
    MAGNET_PATTERN,
    extract_audio,
    extract_codec,
    extract_file_size,
    extract_resolution,
)

logger = setup_logging(__name__)

DEFAULT_WINDOW = 500

MergeKey = Tuple[Resolution, Optional[str]]


def lookback(content: str, offset: int, window: int = DEFAULT_WINDOW) -> str:
    """The ``window`` characters that end at ``offset``."""
    return content[max(0, offset - window):offset]


def describe(caption: str) -> DownloadVariant:
    """Build a link-less variant from the caption text preceding a link."""
    return DownloadVariant(
        resolution=extract_resolution(caption) or Resolution.UNKNOWN,
        file_size=extract_file_size(caption),
        codec=extract_codec(caption),
        audio=extract_audio(caption),
    )


def assemble_variants(content: str, window: int = DEFAULT_WINDOW) -> List[DownloadVariant]:
    """Turn a post body into its ordered list of download variants.

    Magnet links always open a new variant. A direct link joins the earliest
    variant with the same (resolution, file size) that has no direct link
    yet, otherwise it opens a direct-only variant. The result keeps creation
    order: every magnet variant first, then the unmatched direct links.
    """
    if not content:
        return []

    # Entities would otherwise cut links short at "&amp;"
    content = html.unescape(content)

    variants: List[DownloadVariant] = []
    # Variants still waiting for a direct link, oldest first
    open_slots: Dict[MergeKey, Deque[DownloadVariant]] = defaultdict(deque)

    for match in MAGNET_PATTERN.finditer(content):
        variant = describe(lookback(content, match.start(), window))
        variant.magnet_link = match.group(0)
        variants.append(variant)
        open_slots[(variant.resolution, variant.file_size)].append(variant)

    for match in DIRECT_LINK_PATTERN.finditer(content):
        variant = describe(lookback(content, match.start(), window))
        slots = open_slots.get((variant.resolution, variant.file_size))
        if slots:
            slots.popleft().direct_link = match.group(0)
            continue
        variant.direct_link = match.group(0)
        variants.append(variant)

    logger.debug(f"Assembled {len(variants)} download variants")
    return variants
