import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .routers import availability
from .services.availability import AvailabilityEngine, HttpAvailabilityStore

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.engine = AvailabilityEngine(HttpAvailabilityStore())
    logger.info(f"Availability engine started, store: {settings.store_url}")
    yield


app = FastAPI(title="Availability API", lifespan=lifespan)
app.include_router(availability.router)


@app.get("/health")
def health():
    return {"engine": app.state.engine.state.value}
