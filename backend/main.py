"""DriveStream — FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config import settings
from database import init_db
from routers import library, progress, proxy

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    Path(settings.db_path).parent.mkdir(parents=True, exist_ok=True)
    await init_db()
    if not settings.drive_enabled:
        logger.warning("GOOGLE_DRIVE_API_KEY is not set; library requests will fail")
    yield
    # Shutdown (nothing to clean up)


app = FastAPI(
    title="DriveStream",
    description="Browse and play a Google Drive video library",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(library.router, prefix="/api")
app.include_router(progress.router, prefix="/api")
app.include_router(proxy.router, prefix="/api")


@app.get("/api/health")
async def health():
    return {"status": "ok", "drive_configured": settings.drive_enabled}


# In production, the built frontend is served from here.
# During development, the dev server proxies API calls instead.
frontend_dist = Path(__file__).parent.parent / "frontend" / "dist"
if frontend_dist.exists():
    app.mount("/", StaticFiles(directory=str(frontend_dist), html=True), name="frontend")
