"""
Seen-set models - the persisted record of films already published
"""
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from .film import utcnow


class SeenRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    seen_at: datetime = Field(default_factory=utcnow, alias="seenAt")


class SeenSetDocument(BaseModel):
    """On-disk layout: {"films": [...], "lastUpdate": "..."}"""
    model_config = ConfigDict(populate_by_name=True)

    films: List[SeenRecord] = Field(default_factory=list)
    last_update: datetime = Field(default_factory=utcnow, alias="lastUpdate")
