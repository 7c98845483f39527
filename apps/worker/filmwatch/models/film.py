"""
Film models - listing entries, download variants and extracted film records
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Resolution(str, Enum):
    UHD_4K = "4K"
    FHD_1080P = "1080p"
    HD_720P = "720p"
    SD_480P = "480p"
    SD_360P = "360p"
    UNKNOWN = "Unknown"


class ListingEntry(BaseModel):
    """A topic discovered on the listing page"""
    id: str
    source_url: str
    raw_title: str


class DetailContent(BaseModel):
    """First post of a detail page, in markup and text renderings"""
    post_title: str = ""
    markup: str = ""
    text: str = ""
    poster_url: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.markup.strip() and not self.text.strip()


class DownloadVariant(BaseModel):
    """One quality option of a film with up to two kinds of link"""
    resolution: Resolution = Resolution.UNKNOWN
    file_size: Optional[str] = None
    codec: Optional[str] = None
    audio: Optional[str] = None
    magnet_link: Optional[str] = None
    direct_link: Optional[str] = None

    @property
    def has_link(self) -> bool:
        return bool(self.magnet_link or self.direct_link)


class FilmRecord(BaseModel):
    """Structured film extracted from a detail page"""
    id: str
    title: str
    year: Optional[int] = None
    language: str
    subtitles: Optional[str] = None
    poster_url: Optional[str] = None
    source_url: str
    downloads: List[DownloadVariant] = Field(default_factory=list)
    extracted_at: datetime = Field(default_factory=utcnow)

    @property
    def display_title(self) -> str:
        return f"{self.title} ({self.year})" if self.year else self.title
