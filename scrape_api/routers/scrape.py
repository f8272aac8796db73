from typing import Optional

from fastapi import APIRouter, Depends

from ..clients.browse_ai import BrowseAIClient
from ..deps import get_browse_client
from ..errors import ScrapeValidationError
from ..logging_config import get_logger
from ..schemas import ScrapeBody, ScrapeResponse
from ..services.submitter import start_task, validate_request

router = APIRouter(tags=["browse.ai proxy"])
logger = get_logger(__name__)


@router.post("/scrape", response_model=ScrapeResponse)
async def scrape(
    body: Optional[ScrapeBody] = None,
    client: BrowseAIClient = Depends(get_browse_client),
):
    """Start a Browse.ai robot task for `sourceUrl`, capturing up to `recordLimit` jobs."""
    body = body or ScrapeBody()
    request = validate_request(body.source_url, body.record_limit)
    logger.info("starting scrape url=%s limit=%d", request.source_url, request.record_limit)
    handle, data = await start_task(request, client)
    return ScrapeResponse(task_id=handle.task_id, data=data)


@router.get("/task", include_in_schema=False)
@router.get("/task/", include_in_schema=False)
async def task_missing():
    raise ScrapeValidationError("A task id is required.")


@router.get("/task/{task_id}", response_model=ScrapeResponse)
async def task(task_id: str, client: BrowseAIClient = Depends(get_browse_client)):
    """Current status (and captured lists, once available) of a Browse.ai task."""
    task_id = task_id.strip()
    if not task_id:
        raise ScrapeValidationError("A task id is required.")
    logger.info("fetching task %s", task_id)
    data = await client.get_task(task_id)
    return ScrapeResponse(task_id=task_id, data=data)
