"""
Runs model - outcome of one Discover -> Filter -> Extract -> Publish -> Commit pass
"""
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .film import utcnow


class RunCounters(BaseModel):
    """Run metrics reported to whoever triggered the run"""
    discovered: int = 0
    new: int = 0
    extracted: int = 0
    published: int = 0
    failed: int = 0
    skipped: int = 0


class RunResult(BaseModel):
    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    kind: str = Field(default="manual", description="Type of run: 'manual', 'scheduled'")
    status: str = Field(default="running", description="Run status: 'running', 'success', 'error', 'cancelled'")
    counters: RunCounters = Field(default_factory=RunCounters)
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.status == "success"

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def finish(self, status: str, error: Optional[str] = None) -> "RunResult":
        self.status = status
        self.error = error
        self.finished_at = utcnow()
        return self

    def __repr__(self) -> str:
        return f"<RunResult(run_id={self.run_id}, kind='{self.kind}', status='{self.status}')>"
