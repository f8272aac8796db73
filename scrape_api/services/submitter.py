from typing import Any

from pydantic import ValidationError

from ..clients.browse_ai import BrowseAIClient
from ..errors import ScrapeValidationError
from ..logging_config import get_logger
from ..schemas import ScrapeRequest, TaskHandle

logger = get_logger(__name__)

_FIELD_MESSAGES = {
    "source_url": "Invalid URL: an absolute http(s) URL is required.",
    "record_limit": "The record limit must be an integer between 1 and 100.",
}


def validate_request(source_url: Any, record_limit: Any) -> ScrapeRequest:
    """Build a ScrapeRequest or raise ScrapeValidationError. Never touches the network."""
    try:
        return ScrapeRequest(source_url=source_url, record_limit=record_limit)
    except ValidationError as e:
        # report the first offending field in plain words
        field = str(e.errors()[0]["loc"][0]) if e.errors() else ""
        raise ScrapeValidationError(_FIELD_MESSAGES.get(field, "Invalid scrape request.")) from e


async def start_task(request: ScrapeRequest, client: BrowseAIClient) -> tuple[TaskHandle, dict]:
    """Start a Browse.ai task and return the handle with the provider's raw body."""
    body = await client.create_task(request.source_url, request.record_limit)
    result = body.get("result")
    task_id = result.get("id") if isinstance(result, dict) else None
    if not task_id:
        logger.warning("browse.ai accepted the task but returned no id")
    return TaskHandle(task_id=task_id or None), body


async def submit(request: ScrapeRequest, client: BrowseAIClient) -> TaskHandle:
    """Start a Browse.ai task for a validated request.

    RemoteServiceError from the client propagates untouched. A success answer
    without a task id still yields a handle (task_id=None); callers decide.
    """
    handle, _ = await start_task(request, client)
    return handle
