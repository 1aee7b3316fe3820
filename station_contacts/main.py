import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from station_contacts.config import Settings
from station_contacts.exceptions.custom import (
    InputValidationError,
    OutputWriteError,
    StationNotFoundError,
)
from station_contacts.exceptions.handlers import (
    input_validation_error_handler,
    output_write_error_handler,
    station_not_found_error_handler,
)
from station_contacts.jobs import JobStore
from station_contacts.routers.pipeline import router as pipeline_router
from station_contacts.services.fetch_client import MAX_REDIRECTS
from station_contacts.services.pipeline import CoordinatorFactory
from station_contacts.services.record_store import RecordStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    async with httpx.AsyncClient(timeout=30.0, max_redirects=MAX_REDIRECTS) as client:
        app.state.coordinator_factory = CoordinatorFactory(settings, client, RecordStore())
        app.state.job_store = JobStore()
        yield


app = FastAPI(title="Station Contacts", lifespan=lifespan)

app.add_exception_handler(InputValidationError, input_validation_error_handler)
app.add_exception_handler(OutputWriteError, output_write_error_handler)
app.add_exception_handler(StationNotFoundError, station_not_found_error_handler)

app.include_router(pipeline_router)
