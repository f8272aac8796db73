from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Safe defaults; override via environment or .env file
    APP_NAME: str = "Job Scrape Agent"
    APP_ENV: str = "dev"
    CORS_ALLOW_ORIGINS: str = "*"  # comma-separated

    # Browse.ai credentials are checked per request, never at startup
    BROWSE_API_KEY: str = ""
    ROBOT_ID: str = ""
    BROWSE_API_BASE: str = "https://api.browse.ai/v2"
    # input parameter names configured on the robot
    BROWSE_URL_PARAM: str = "originUrl"
    BROWSE_LIMIT_PARAM: str = "job_listings_limit"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    POLL_INTERVAL_SECONDS: float = 10.0
    POLL_MAX_ATTEMPTS: int = 30

    DEFAULT_ORIGIN_URL: str = (
        "https://www.saramin.co.kr/zf_user/jobs/list/job-category"
        "?cat_kewd=322%2C323%2C2198&panel_type=&search_optional_item=n"
        "&search_done=y&panel_count=y&preview=y"
    )
    DEFAULT_RECORD_LIMIT: int = 10
    DEFAULT_KEYWORDS: str = "인사, 회계, 경리, 경영지원, 세무, 재무"  # comma-separated

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
