"""Error taxonomy shared by the proxy routes, the poller and the CLI."""

from typing import Any, Optional


class ScrapeError(Exception):
    """Base class for every failure surfaced to a caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class ScrapeValidationError(ScrapeError):
    """Bad URL or out-of-range record limit. Raised before any network call."""

    status_code = 400


class MissingCredentialsError(ScrapeError):
    def __init__(self, message: str = "BROWSE_API_KEY or ROBOT_ID is not configured."):
        super().__init__(message)


class RemoteServiceError(ScrapeError):
    """Browse.ai answered with a non-success status (or an unreadable body)."""

    def __init__(self, status_code: Optional[int], body: Any, message: str = "Browse.ai API call failed"):
        super().__init__(message)
        self.remote_status = status_code
        self.body = body

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.body}

    def __str__(self) -> str:
        return f"{self.message} (status={self.remote_status})"


class TaskFailedError(ScrapeError):
    def __init__(self, task_id: Optional[str], status: str):
        super().__init__(f"Browse.ai task {task_id} finished with status {status!r}")
        self.task_id = task_id
        self.status = status


class PollingTimeout(ScrapeError):
    def __init__(self, task_id: Optional[str], attempts: int):
        super().__init__(
            f"Task {task_id} produced no data after {attempts} checks; retry to keep polling."
        )
        self.task_id = task_id
        self.attempts = attempts


class TransientPollError(ScrapeError):
    """One poll tick failed (network, status, JSON). Logged, never raised to callers."""

    def __init__(self, task_id: Optional[str], attempt: int, cause: Exception):
        super().__init__(f"poll attempt {attempt} for task {task_id} failed: {cause!s}")
        self.task_id = task_id
        self.attempt = attempt
        self.cause = cause
