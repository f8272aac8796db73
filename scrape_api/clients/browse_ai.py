"""Async client for the Browse.ai robot task API.

Keeps every HTTP detail (base URL, auth header, timeouts, connect retries) in
one place. Callers get the decoded JSON body back; anything that is not a 2xx
JSON answer becomes a RemoteServiceError carrying the provider's status and
raw body so the proxy routes can hand it back for diagnostics.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ..config import Settings, settings as default_settings
from ..errors import MissingCredentialsError, RemoteServiceError
from ..logging_config import get_logger

logger = get_logger(__name__)


class BrowseAIClient:
    def __init__(
        self,
        api_key: str,
        robot_id: str,
        *,
        base_url: str = "https://api.browse.ai/v2",
        url_param: str = "originUrl",
        limit_param: str = "job_listings_limit",
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key or not robot_id:
            raise MissingCredentialsError()
        self.api_key = api_key
        self.robot_id = robot_id
        self.base_url = base_url.rstrip("/")
        self.url_param = url_param
        self.limit_param = limit_param
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, cfg: Settings | None = None, **kwargs) -> "BrowseAIClient":
        cfg = cfg or default_settings
        return cls(
            cfg.BROWSE_API_KEY,
            cfg.ROBOT_ID,
            base_url=cfg.BROWSE_API_BASE,
            url_param=cfg.BROWSE_URL_PARAM,
            limit_param=cfg.BROWSE_LIMIT_PARAM,
            timeout_seconds=cfg.REQUEST_TIMEOUT_SECONDS,
            **kwargs,
        )

    def _tasks_url(self, task_id: str | None = None) -> str:
        url = f"{self.base_url}/robots/{self.robot_id}/tasks"
        return f"{url}/{task_id}" if task_id else url

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "User-Agent": "JobScrapeAgent/0.1 httpx",
        }

    async def _request(self, method: str, url: str, payload: Dict[str, Any] | None = None) -> Dict[str, Any]:
        # connect retries only; provider errors are never retried here
        transport = self._transport or httpx.AsyncHTTPTransport(retries=2)
        async with httpx.AsyncClient(
            transport=transport,
            timeout=self.timeout_seconds,
            headers=self._headers(),
        ) as client:
            resp = await client.request(method, url, json=payload)

        try:
            body: Any = resp.json()
        except ValueError:
            body = resp.text

        logger.debug("browse.ai %s %s -> %s %s", method, url, resp.status_code, body)

        if not resp.is_success:
            logger.warning("browse.ai %s %s failed with status=%s", method, url, resp.status_code)
            raise RemoteServiceError(resp.status_code, body)
        if not isinstance(body, dict):
            raise RemoteServiceError(resp.status_code, body, "Browse.ai returned a non-JSON body")
        return body

    async def create_task(self, origin_url: str, limit: int) -> Dict[str, Any]:
        payload = {
            "inputParameters": {
                self.url_param: origin_url,
                self.limit_param: limit,
            }
        }
        body = await self._request("POST", self._tasks_url(), payload)
        result = body.get("result")
        task_id = result.get("id") if isinstance(result, dict) else None
        if task_id:
            logger.info("browse.ai task created id=%s", task_id)
        return body

    async def get_task(self, task_id: str) -> Dict[str, Any]:
        return await self._request("GET", self._tasks_url(task_id))
