"""Locate the captured job list in a Browse.ai task payload.

The capture key is whatever the robot operator named the list, so it is
probed from a priority list of known names and then by the first list-valued
entry. Shape mismatches give NotFound, never an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Union

from ..logging_config import get_logger
from ..schemas import JobRecord, TaskStatus

logger = get_logger(__name__)

PRIORITY_KEYS = (
    "Job Listings",
    "job_listings",
    "Job listings",
    "jobs",
    "list",
    "data",
    "items",
    "results",
)

# provider column -> JobRecord field
FIELD_MAP = {
    "Job Title": "title",
    "Company Name": "company",
    "Location": "location",
    "Career Level": "seniority",
    "Education Requirement": "education",
    "Application Deadline": "deadline",
    "Date Posted": "posted",
    "Job Details Link": "detail_link",
    "Company Info Link": "company_link",
    "Job Sector": "sector",
    "Job Position": "position",
}

EMPLOYMENT_TYPE_FIELDS = (
    "Job Type",
    "Employment Type",
    "고용형태",
    "채용형태",
    "근무형태",
    "Job Category",
    "직무유형",
    "Career Level",
    "Position Type",
)

PLACEHOLDER = "-"


@dataclass(frozen=True)
class Found:
    key: str
    items: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class NotFound:
    pass


Lookup = Union[Found, NotFound]


def captured_lists(task_payload: Any) -> dict[str, Any]:
    """Return `result.capturedLists` of a task response, or {} when absent."""
    if not isinstance(task_payload, Mapping):
        return {}
    result = task_payload.get("result")
    if not isinstance(result, Mapping):
        return {}
    captured = result.get("capturedLists")
    return dict(captured) if isinstance(captured, Mapping) else {}


def task_status(task_payload: Any) -> TaskStatus:
    result = task_payload.get("result") if isinstance(task_payload, Mapping) else None
    return TaskStatus.parse(result.get("status") if isinstance(result, Mapping) else None)


def locate_list(captured: Any) -> Lookup:
    if not isinstance(captured, Mapping):
        return NotFound()
    # a priority key wins even when its list is empty; lower keys and the
    # first-list fallback are not consulted, even if they hold records
    for key in PRIORITY_KEYS:
        value = captured.get(key)
        if isinstance(value, list):
            return Found(key, value)
    # operator renamed the list: take the first list-valued entry
    for key, value in captured.items():
        if isinstance(value, list):
            return Found(str(key), value)
    return NotFound()


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == PLACEHOLDER:
        return None
    return text


def to_record(item: Mapping[str, Any]) -> JobRecord:
    values = {name: _clean(item.get(column)) for column, name in FIELD_MAP.items()}
    candidates = (_clean(item.get(f)) for f in EMPLOYMENT_TYPE_FIELDS)
    employment_types = list(dict.fromkeys(v for v in candidates if v))
    return JobRecord(**values, employment_types=employment_types, raw=dict(item))


def extract(captured: Any) -> List[JobRecord]:
    """Captured-list mapping -> JobRecords (possibly empty)."""
    lookup = locate_list(captured)
    if isinstance(lookup, NotFound):
        return []
    records: List[JobRecord] = []
    skipped = 0
    for item in lookup.items:
        if isinstance(item, Mapping):
            records.append(to_record(item))
        else:
            skipped += 1
    if skipped:
        logger.warning("skipped %d non-object entries under %r", skipped, lookup.key)
    logger.debug("extracted %d records from %r", len(records), lookup.key)
    return records
