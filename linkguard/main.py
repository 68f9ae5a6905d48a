import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from linkguard.api.deps import get_credential_pool, get_event_sink, get_link_checker, get_scan_queue
from linkguard.api.routes import (
    generic_exception_handler,
    http_exception_handler,
    linkguard_exception_handler,
    router,
    validation_exception_handler,
)
from linkguard.config import get_settings
from linkguard.utils.errors import LinkGuardError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the scan worker alongside the API when configured to."""
    settings = get_settings()
    stop = asyncio.Event()
    worker_task = None

    if settings.run_worker_in_app:
        queue = get_scan_queue()
        worker_task = asyncio.create_task(queue.process(stop))
        logger.info("In-process scan worker started")

    yield

    stop.set()
    if worker_task is not None:
        await worker_task
        logger.info(f"Scan metrics: {get_event_sink().metrics.to_dict()}")
    await get_link_checker().aclose()
    await get_credential_pool().aclose()


app = FastAPI(title="LinkGuard API", version="0.1.0", lifespan=lifespan)

app.include_router(router)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(ValidationError, validation_exception_handler)
app.add_exception_handler(LinkGuardError, linkguard_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    logging.basicConfig(level=get_settings().log_level)
    uvicorn.run("linkguard.main:app", host="0.0.0.0", port=3000)
