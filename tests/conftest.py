from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest


def _disable_dotenv_credentials() -> None:
    # tests supply credentials explicitly; never pick up a developer's real key
    os.environ.setdefault("BROWSE_API_KEY", "")
    os.environ.setdefault("ROBOT_ID", "")


_disable_dotenv_credentials()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 3, 31, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def raw_job():
    """Build one provider row the way Browse.ai captures a Saramin listing."""

    def _make(title: str = "경영지원 담당자", posted: str | None = "3일 전 등록", **extra):
        row = {
            "Job Title": title,
            "Company Name": "(주)예시컴퍼니",
            "Location": "서울 강남구",
            "Career Level": "경력 3년↑",
            "Education Requirement": "대졸↑",
            "Application Deadline": "~ 04/30(수)",
            "Job Details Link": "https://www.saramin.co.kr/zf_user/jobs/relay/view?rec_idx=1",
            "Company Info Link": "https://www.saramin.co.kr/zf_user/company-info/view?csn=1",
        }
        if posted is not None:
            row["Date Posted"] = posted
        row.update(extra)
        return row

    return _make


@pytest.fixture
def task_payload():
    """Build a Browse.ai GET task response."""

    def _make(items=None, status: str = "in-progress", key: str = "Job Listings", task_id: str = "T1"):
        captured = {} if items is None else {key: items}
        return {
            "statusCode": 200,
            "messageCode": "success",
            "result": {"id": task_id, "status": status, "capturedLists": captured},
        }

    return _make
