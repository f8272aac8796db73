from fastapi import APIRouter
from fastapi.responses import Response

from ..config import settings
from ..export.xlsx import export_filename, to_bytes
from ..schemas import RankBody, RankedJobList
from ..services.extractor import to_record
from ..services.ranking import normalize

router = APIRouter(prefix="/jobs", tags=["jobs"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _rank(body: RankBody) -> RankedJobList:
    keywords = settings.DEFAULT_KEYWORDS if body.keywords is None else body.keywords
    return normalize([to_record(r) for r in body.records], keywords)


@router.post("/rank", response_model=RankedJobList)
def rank(body: RankBody):
    """Re-rank already fetched records for a new keyword set."""
    return _rank(body)


@router.post("/export")
def export(body: RankBody):
    ranked = _rank(body)
    filename = export_filename()
    return Response(
        content=to_bytes(ranked.jobs),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
