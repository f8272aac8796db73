from __future__ import annotations

import io
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from ..logging_config import get_logger
from ..schemas import JobRecord

logger = get_logger(__name__)

PLACEHOLDER = "-"
SHEET_TITLE = "Jobs"

# (header, width, getter); order is the export contract
COLUMNS: List[tuple[str, int, Callable[[JobRecord], Optional[str]]]] = [
    ("Job Title", 40, lambda j: j.title),
    ("Company", 20, lambda j: j.company),
    ("Location", 15, lambda j: j.location),
    ("Career Level", 15, lambda j: j.seniority),
    ("Education", 15, lambda j: j.education),
    ("Employment Type", 15, lambda j: j.employment_type),
    ("Deadline", 12, lambda j: j.deadline),
    ("Posted", 12, lambda j: j.posted),
    ("Job Details Link", 50, lambda j: j.detail_link),
    ("Company Info Link", 50, lambda j: j.company_link),
]
LINK_HEADERS = ("Job Details Link", "Company Info Link")


def export_filename(now: Optional[datetime] = None, prefix: str = "jobs") -> str:
    now = now or datetime.now()
    return f"{prefix}_{now:%Y%m%d_%H%M}.xlsx"


def build_workbook(jobs: Sequence[JobRecord]) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append(["No.", *(header for header, _, _ in COLUMNS)])
    ws.column_dimensions["A"].width = 6
    for idx, (_, width, _) in enumerate(COLUMNS, start=2):
        ws.column_dimensions[get_column_letter(idx)].width = width

    for n, job in enumerate(jobs, start=1):
        ws.append([n, *((getter(job) or PLACEHOLDER) for _, _, getter in COLUMNS)])
        row = n + 1  # header is row 1
        for idx, (header, _, getter) in enumerate(COLUMNS, start=2):
            if header not in LINK_HEADERS:
                continue
            target = getter(job)
            if target:
                cell = ws.cell(row=row, column=idx)
                cell.hyperlink = target
                cell.style = "Hyperlink"
    return wb


def to_bytes(jobs: Sequence[JobRecord]) -> bytes:
    buf = io.BytesIO()
    build_workbook(jobs).save(buf)
    return buf.getvalue()


def write_xlsx(jobs: Sequence[JobRecord], directory: str | Path = ".", now: Optional[datetime] = None) -> Path:
    path = Path(directory) / export_filename(now)
    path.parent.mkdir(parents=True, exist_ok=True)
    build_workbook(jobs).save(path)
    logger.info("wrote %d jobs to %s", len(jobs), path)
    return path
