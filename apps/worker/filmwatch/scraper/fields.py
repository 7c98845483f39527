"""
Field extraction for film posts

Every extractor is a pure function over an explicit span of text and knows
nothing about its neighbours, so the variant assembler can run them over any
window it likes. Fixed vocabularies are kept as ordered ``(alias, value)``
tables: the first alias found in the text wins, which is why the more specific
aliases sit above the ones they contain.
"""
import re
from typing import NamedTuple, Optional, Sequence, Tuple

from ..models import Resolution

LANGUAGES: Tuple[str, ...] = ("Tamil", "Telugu", "Malayalam", "Kannada", "Hindi")

RESOLUTIONS: Sequence[Tuple[str, Resolution]] = (
    ("4K", Resolution.UHD_4K),
    ("2160p", Resolution.UHD_4K),
    ("1080p", Resolution.FHD_1080P),
    ("720p", Resolution.HD_720P),
    ("480p", Resolution.SD_480P),
    ("360p", Resolution.SD_360P),
)

CODECS: Sequence[Tuple[str, str]] = (
    ("HEVC x265", "HEVC x265"),
    ("x265", "x265"),
    ("AVC x264", "AVC x264"),
    ("x264", "x264"),
    ("H.265", "H.265"),
    ("H.264", "H.264"),
)

SUBTITLE_MARKERS: Tuple[str, ...] = ("HC-ESub", "HC ESub", "E-Sub", "ESub")

AUDIO_NOTATIONS: Tuple[str, ...] = (
    r"DD\+?\s*\d\.\d",
    r"AAC(?:\s*\d\.\d)?",
    r"Atmos",
    r"DTS(?:[-\s]?(?:HD|X))?(?:\s*\d\.\d)?",
    r"AC3(?:\s*\d\.\d)?",
)

# Markers that end a title when the raw title carries no year
TITLE_STOP_MARKERS: Tuple[str, ...] = ("[", "(", "4K", "2160p", "1080p", "720p", "480p", "360p")

YEAR_PATTERN = re.compile(r"\((\d{4})\)")
LANGUAGE_PATTERN = re.compile(
    r"\[(?:%s)[^\]]*\]" % "|".join(LANGUAGES), re.IGNORECASE
)
SUBTITLE_PATTERN = re.compile(
    "|".join(re.escape(m) for m in SUBTITLE_MARKERS), re.IGNORECASE
)
FILE_SIZE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(GB|MB|TB)", re.IGNORECASE)
AUDIO_PATTERN = re.compile(
    r"(?:%s)(?:\s*\d+\s?Kbps)?" % "|".join(AUDIO_NOTATIONS), re.IGNORECASE
)
MAGNET_PATTERN = re.compile(r"magnet:\?xt=urn:btih:[a-zA-Z0-9]+[a-zA-Z0-9&=%:/.?_+-]*")
DIRECT_LINK_PATTERN = re.compile(r"https?://(?:cyberloom\.best|[\w-]+\.[\w-]+)/l/[a-zA-Z0-9]+")
POSTER_PATTERN = re.compile(
    r"<img[^>]+src=[\"']([^\"']+\.(?:jpe?g|png)(?:\?[^\"']*)?)[\"']", re.IGNORECASE
)
WHITESPACE = re.compile(r"\s+")


class ParsedTitle(NamedTuple):
    title: str
    year: Optional[int]


def _first_alias(text: str, table: Sequence[Tuple[str, object]]):
    for alias, value in table:
        if alias in text:
            return value
    return None


def parse_title(raw_title: str) -> ParsedTitle:
    """Split "Movie Name (2024) [Tamil] 1080p" into ("Movie Name", 2024)."""
    raw_title = raw_title or ""
    year_match = YEAR_PATTERN.search(raw_title)
    if year_match:
        year = int(year_match.group(1))
        title = raw_title[:year_match.start()]
    else:
        year = None
        cut = len(raw_title)
        for marker in TITLE_STOP_MARKERS:
            idx = raw_title.find(marker)
            if idx != -1:
                cut = min(cut, idx)
        title = raw_title[:cut]

    title = WHITESPACE.sub(" ", title).strip()
    if not title:
        title = WHITESPACE.sub(" ", raw_title).strip()
    return ParsedTitle(title, year)


def extract_language(text: str, default: str = "Tamil") -> str:
    """Bracketed language list such as "Tamil + Telugu", else ``default``."""
    m = LANGUAGE_PATTERN.search(text or "")
    if not m:
        return default
    return m.group(0)[1:-1].strip()


def extract_subtitles(text: str) -> Optional[str]:
    m = SUBTITLE_PATTERN.search(text or "")
    return m.group(0) if m else None


def extract_resolution(text: str) -> Optional[Resolution]:
    return _first_alias(text or "", RESOLUTIONS)


def extract_file_size(text: str) -> Optional[str]:
    m = FILE_SIZE_PATTERN.search(text or "")
    return m.group(0) if m else None


def extract_codec(text: str) -> Optional[str]:
    return _first_alias(text or "", CODECS)


def extract_audio(text: str) -> Optional[str]:
    m = AUDIO_PATTERN.search(text or "")
    return m.group(0).strip() if m else None


def extract_magnet_link(text: str) -> Optional[str]:
    m = MAGNET_PATTERN.search(text or "")
    return m.group(0) if m else None


def extract_direct_link(text: str) -> Optional[str]:
    m = DIRECT_LINK_PATTERN.search(text or "")
    return m.group(0) if m else None


def extract_poster_url(markup: str) -> Optional[str]:
    """First jpg/png image source in a block of markup."""
    m = POSTER_PATTERN.search(markup or "")
    return m.group(1) if m else None
