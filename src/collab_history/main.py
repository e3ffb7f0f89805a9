from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from collab_history.api.history import get_history_service
from collab_history.api.history import router as history_router
from collab_history.config import settings
from collab_history.logging_config import configure_logging


configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    get_history_service().close()


app = FastAPI(title=settings.app_name, lifespan=lifespan)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


app.include_router(history_router)
