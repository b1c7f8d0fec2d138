import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import access_log, config, db, dispatch, responses
from images import router as images_router
from products import router as products_router

access_log.configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # The DB pool is created lazily on first use and shared by all requests.
    try:
        yield
    finally:
        still_running = await dispatch.drain_abandoned(config.request_timeout_seconds())
        if still_running:
            logger.warning("Closing pool with %d abandoned handler(s) still running.", still_running)
        await db.close_pool()


app = FastAPI(title="Catalog API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.middleware("http")(access_log.log_requests)

responses.install_exception_handlers(app)

app.include_router(images_router.router, tags=["images"])
app.include_router(products_router.router, tags=["products"])


@app.get("/health")
@app.get("/.well-known/health", include_in_schema=False)
def health() -> dict:
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}
