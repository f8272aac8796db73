# scrape_api/deps.py
from .clients.browse_ai import BrowseAIClient
from .config import settings


def get_browse_client() -> BrowseAIClient:
    """Build a Browse.ai client from settings for one request.

    Missing BROWSE_API_KEY / ROBOT_ID raises MissingCredentialsError, which the
    app turns into a 500. Credentials are read per request so a process can
    start without them.
    """
    return BrowseAIClient.from_settings(settings)
