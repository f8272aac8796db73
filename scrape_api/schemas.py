from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import (
    AliasChoices,
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    computed_field,
    field_validator,
)

from .config import settings

_HTTP_URL = TypeAdapter(AnyHttpUrl)


class ScrapeRequest(BaseModel):
    """A validated scrape request. Constructing one is the validation step."""

    model_config = ConfigDict(frozen=True)

    source_url: str = Field(..., description="Absolute http(s) URL the robot should open")
    # strict: reject bools, fractional floats and numeric strings
    record_limit: int = Field(10, ge=1, le=100, strict=True, description="Max records to capture")

    @field_validator("record_limit", mode="before")
    @classmethod
    def _whole_number(cls, value: Any) -> Any:
        # JSON has a single number type, so 10.0 counts as the integer 10
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @field_validator("source_url", mode="before")
    @classmethod
    def _absolute_url(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("a source URL is required")
        value = value.strip()
        # keep the caller's exact text; only check that it parses
        _HTTP_URL.validate_python(value)
        return value


class TaskHandle(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @classmethod
    def parse(cls, raw: Any) -> "TaskStatus":
        # unknown or missing statuses mean "not ready yet"
        if not isinstance(raw, str):
            return cls.PENDING
        return _STATUS_ALIASES.get(raw.strip().lower(), cls.PENDING)

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAILED)


_STATUS_ALIASES = {
    "pending": TaskStatus.PENDING,
    "queued": TaskStatus.PENDING,
    "running": TaskStatus.RUNNING,
    "in-progress": TaskStatus.RUNNING,
    "in_progress": TaskStatus.RUNNING,
    "successful": TaskStatus.SUCCEEDED,
    "succeeded": TaskStatus.SUCCEEDED,
    "success": TaskStatus.SUCCEEDED,
    "completed": TaskStatus.SUCCEEDED,
    "done": TaskStatus.SUCCEEDED,
    "failed": TaskStatus.FAILED,
    "error": TaskStatus.FAILED,
    "cancelled": TaskStatus.FAILED,
}


class JobRecord(BaseModel):
    """One captured job posting. Missing values stay None, never ""."""

    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    seniority: Optional[str] = None
    education: Optional[str] = None
    employment_types: List[str] = Field(default_factory=list)
    deadline: Optional[str] = None
    posted: Optional[str] = None
    detail_link: Optional[str] = None
    company_link: Optional[str] = None
    sector: Optional[str] = None
    position: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @computed_field  # type: ignore[misc]
    @property
    def employment_type(self) -> Optional[str]:
        return self.employment_types[0] if self.employment_types else None


class RankedJobList(BaseModel):
    matched: List[JobRecord] = Field(default_factory=list)
    unmatched: List[JobRecord] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def jobs(self) -> List[JobRecord]:
        return [*self.matched, *self.unmatched]


# -----------------------
# HTTP bodies
# -----------------------
class ScrapeBody(BaseModel):
    # loosely typed on purpose: the submitter owns validation and its 400 message
    source_url: Any = Field(
        default_factory=lambda: settings.DEFAULT_ORIGIN_URL,
        validation_alias=AliasChoices("sourceUrl", "originUrl"),
    )
    record_limit: Any = Field(
        default_factory=lambda: settings.DEFAULT_RECORD_LIMIT,
        validation_alias=AliasChoices("recordLimit", "job_listings_limit"),
    )


class ScrapeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    task_id: Optional[str] = Field(None, alias="taskId")
    data: Any = None


class RankBody(BaseModel):
    records: List[dict[str, Any]] = Field(default_factory=list)
    # list of keywords or a comma-separated string; None means the configured default
    keywords: Optional[List[str] | str] = None


__all__ = [
    "ScrapeRequest",
    "TaskHandle",
    "TaskStatus",
    "JobRecord",
    "RankedJobList",
    "ScrapeBody",
    "ScrapeResponse",
    "RankBody",
]
