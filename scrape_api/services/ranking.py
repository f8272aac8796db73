"""Keyword matching and posted-date recency ranking.

`normalize` is pure: the same records, keywords and `now` always give the
same order, so a keyword change only needs a re-run over the records already
fetched.

Posted dates arrive as free text from the job board, e.g.::

    "3일 전 등록"    -> now - 3 days
    "2 weeks ago"    -> now - 14 days
    "1개월 전"       -> now - 1 calendar month
    "오늘 등록"      -> now
    "yesterday"      -> now - 1 day
    "2024-05-01"     -> that day (UTC)
    "May 1, 2024"    -> that day (UTC)
    "-", "", None    -> epoch (sorts last)
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from ..logging_config import get_logger
from ..schemas import JobRecord, RankedJobList

logger = get_logger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_RELATIVE_RE = [
    re.compile(r"(\d+)\s*(일|주|개월|달|년)\s*전"),
    re.compile(r"(\d+)\s*(day|week|month|year)s?\s+ago", re.IGNORECASE),
]

_UNITS = {
    "일": "days",
    "day": "days",
    "주": "weeks",
    "week": "weeks",
    "개월": "months",
    "달": "months",
    "month": "months",
    "년": "years",
    "year": "years",
}

_TODAY = ("오늘", "today")
_YESTERDAY = ("어제", "yesterday")


def parse_keywords(text: Optional[str]) -> List[str]:
    """'인사, 회계,,세무' -> ['인사', '회계', '세무']"""
    if not text:
        return []
    return [k.strip() for k in text.split(",") if k.strip()]


def matches_keywords(title: Optional[str], keywords: Sequence[str]) -> bool:
    # case-sensitive substring match on the title as captured
    title = title or ""
    return any(k in title for k in keywords)


def parse_posted_date(text: Optional[str], now: Optional[datetime] = None) -> datetime:
    if now is None:
        now = datetime.now(timezone.utc)
    if not text or text.strip() in ("", "-"):
        return EPOCH

    for pattern in _RELATIVE_RE:
        m = pattern.search(text)
        if m:
            amount = int(m.group(1))
            unit = _UNITS[m.group(2).lower()]
            try:
                return now - relativedelta(**{unit: amount})
            except (ValueError, OverflowError):
                return EPOCH

    lowered = text.lower()
    if any(marker in lowered for marker in _TODAY):
        return now
    if any(marker in lowered for marker in _YESTERDAY):
        return now - relativedelta(days=1)

    # anything else that carries a calendar date; parts the text omits come from today, at midnight
    default = now.astimezone(timezone.utc).replace(tzinfo=None, hour=0, minute=0, second=0, microsecond=0)
    try:
        parsed = date_parser.parse(text, fuzzy=True, default=default)
    except (ValueError, OverflowError):
        return EPOCH
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _by_recency(records: Iterable[JobRecord], now: datetime) -> List[JobRecord]:
    # sorted() is stable, also with reverse=True: equal dates keep input order
    return sorted(records, key=lambda r: parse_posted_date(r.posted, now), reverse=True)


def normalize(
    records: Sequence[JobRecord],
    keywords: Sequence[str] | str,
    now: Optional[datetime] = None,
) -> RankedJobList:
    """Matched records first, then the rest; each block most recent first."""
    if isinstance(keywords, str):
        keywords = parse_keywords(keywords)
    keywords = list(keywords)
    now = now or datetime.now(timezone.utc)

    matched = [r for r in records if matches_keywords(r.title, keywords)]
    unmatched = [r for r in records if not matches_keywords(r.title, keywords)]

    ranked = RankedJobList(
        matched=_by_recency(matched, now),
        unmatched=_by_recency(unmatched, now),
        keywords=keywords,
    )
    logger.info("keyword ranking: %d matched, %d other", len(ranked.matched), len(ranked.unmatched))
    return ranked
