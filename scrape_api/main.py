import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .errors import ScrapeError
from .logging_config import get_logger
from .routers import jobs as jobs_router
from .routers import scrape as scrape_router

logger = get_logger(__name__)

app = FastAPI(title=settings.APP_NAME, version="0.1.0")

# CORS
origins = [o.strip() for o in settings.CORS_ALLOW_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- Error shape: {"error": ..., "details"?: ...} ----
@app.exception_handler(ScrapeError)
async def scrape_error_handler(request: Request, exc: ScrapeError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    return JSONResponse(status_code=400, content={"error": first.get("msg", "Invalid request body.")})


@app.exception_handler(httpx.HTTPError)
async def upstream_network_handler(request: Request, exc: httpx.HTTPError):
    logger.error("%s %s could not reach Browse.ai: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": f"Could not reach Browse.ai: {exc!s}"})


app.include_router(scrape_router.router)
app.include_router(jobs_router.router)


@app.get("/health")
async def health():
    return {"ok": True, "env": settings.APP_ENV}
