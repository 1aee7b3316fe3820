from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from station_contacts.schemas.pipeline import SeedSummary, StageRunResult


class JobSubmittedResponse(BaseModel):
    job_id: str
    status: str
    message: str


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    created_at: datetime
    finished_at: datetime | None = None
    task_type: str
    output_file: str | None = None
    result: StageRunResult | SeedSummary | None = None
    error: str | None = None
