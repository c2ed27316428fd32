"""
Pydantic models for probe results and memory readings.
"""
from datetime import datetime
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MemorySnapshot(BaseModel):
    """Point-in-time memory reading, in MiB."""
    free_mib: int
    rss_mib: int
    taken_at: datetime


class RetryRecord(BaseModel):
    """A capacity that could not be allocated and filled."""
    attempted_capacity: int = Field(..., gt=0)
    next_capacity: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_halved(self):
        if self.next_capacity != self.attempted_capacity // 2:
            raise ValueError("next_capacity must be half of attempted_capacity")
        return self


class ProbeResult(BaseModel):
    """
    Outcome of a successful probe.

    ``container`` is the populated list itself. It is not validated or copied,
    and it is left out of dumps and reprs.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    capacity: int = Field(..., gt=0)
    container: Any = Field(..., exclude=True, repr=False)
    retries: List[RetryRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_populated(self):
        if len(self.container) != self.capacity:
            raise ValueError(
                f"container holds {len(self.container)} items, expected {self.capacity}"
            )
        return self

    @property
    def attempts(self) -> int:
        return len(self.retries) + 1
