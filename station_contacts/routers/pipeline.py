import asyncio
import logging
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from station_contacts.dependencies import CoordinatorFactoryDep, JobStoreDep
from station_contacts.jobs import JobResult, JobStore
from station_contacts.schemas.pipeline import SeedSummary, Stage, StageRunResult
from station_contacts.schemas.responses import JobStatusResponse, JobSubmittedResponse
from station_contacts.services.pipeline import CoordinatorFactory
from station_contacts.services.seed_directory import load_seed_directory, write_seed_records

logger = logging.getLogger(__name__)

router = APIRouter()

SEED_FILE = "fox_affiliates_seed.json"
STATIONS_FILE = "stations.json"

# Each stage reads the previous stage's output by default
DEFAULT_FILES: dict[Stage, tuple[str, str]] = {
    Stage.website: (STATIONS_FILE, "stations_with_websites.json"),
    Stage.site_contacts: ("stations_with_websites.json", "stations_with_site_contacts.json"),
    Stage.fcc: ("stations_with_site_contacts.json", "stations_with_fcc_contacts.json"),
}


class StageRunRequest(BaseModel):
    input_file: str | None = None
    output_file: str | None = None
    limit: int | None = None


class ResumeRequest(BaseModel):
    call_sign: str
    input_file: str | None = None
    output_file: str | None = None


class SeedRequest(BaseModel):
    seed_file: str = SEED_FILE
    output_file: str = STATIONS_FILE


def _paths(
    factory: CoordinatorFactory,
    stage: Stage,
    input_file: str | None,
    output_file: str | None,
) -> tuple[str, str]:
    default_input, default_output = DEFAULT_FILES[stage]
    return (
        str(factory.resolve_path(input_file or default_input)),
        str(factory.resolve_path(output_file or default_output)),
    )


async def _run_job(
    job_id: str,
    store: JobStore,
    work: Callable[[], Awaitable[JobResult]],
) -> None:
    store.mark_running(job_id)
    try:
        result = await work()
        store.mark_completed(job_id, result)
    except Exception as exc:
        logger.exception("Pipeline job %s failed", job_id)
        store.mark_failed(job_id, getattr(exc, "message", str(exc)))


def _already_running(job_id: str, task_type: str, output_file: str) -> JSONResponse:
    return JSONResponse(content={
        "job_id": job_id,
        "status": "already_running",
        "message": f"A {task_type} job is already writing {output_file}",
    })


def _submit(
    store: JobStore,
    task_type: str,
    output_file: str,
    work: Callable[[], Awaitable[JobResult]],
    message: str,
) -> JobSubmittedResponse | JSONResponse:
    existing = store.has_active_job(task_type, output_file)
    if existing:
        return _already_running(existing.job_id, task_type, output_file)

    job = store.create_job(task_type, output_file=output_file)
    asyncio.create_task(_run_job(job.job_id, store, work))
    return JobSubmittedResponse(job_id=job.job_id, status=job.status, message=message)


@router.post("/stages/{stage}/runs", response_model=JobSubmittedResponse, status_code=202)
async def submit_stage_run(
    stage: Stage,
    factory: CoordinatorFactoryDep,
    store: JobStoreDep,
    request: StageRunRequest | None = None,
) -> JobSubmittedResponse:
    request = request or StageRunRequest()
    input_path, output_path = _paths(factory, stage, request.input_file, request.output_file)
    coordinator = factory.create(stage)
    return _submit(
        store,
        stage.value,
        output_path,
        lambda: coordinator.run(input_path, output_path, limit=request.limit),
        f"{stage} run submitted",
    )


@router.post("/stages/{stage}/runs/sync", response_model=StageRunResult)
async def run_stage_sync(
    stage: Stage,
    factory: CoordinatorFactoryDep,
    store: JobStoreDep,
    request: StageRunRequest | None = None,
) -> StageRunResult | JSONResponse:
    request = request or StageRunRequest()
    input_path, output_path = _paths(factory, stage, request.input_file, request.output_file)
    existing = store.has_active_job(stage.value, output_path)
    if existing:
        return _already_running(existing.job_id, stage.value, output_path)

    # Tracked as a running job until the pass ends
    job = store.create_job(stage.value, output_file=output_path)
    store.mark_running(job.job_id)
    try:
        result = await factory.create(stage).run(input_path, output_path, limit=request.limit)
    except Exception as exc:
        store.mark_failed(job.job_id, getattr(exc, "message", str(exc)))
        raise
    store.mark_completed(job.job_id, result)
    return result


@router.post("/stages/{stage}/resume", response_model=JobSubmittedResponse, status_code=202)
async def resume_stage_run(
    stage: Stage,
    request: ResumeRequest,
    factory: CoordinatorFactoryDep,
    store: JobStoreDep,
) -> JobSubmittedResponse:
    input_path, output_path = _paths(factory, stage, request.input_file, request.output_file)
    coordinator = factory.create(stage)
    return _submit(
        store,
        stage.value,
        output_path,
        lambda: coordinator.resume(request.call_sign, input_path, output_path),
        f"{stage} resume from {request.call_sign} submitted",
    )


@router.post("/seed", response_model=SeedSummary)
async def build_seed(
    factory: CoordinatorFactoryDep,
    request: SeedRequest | None = None,
) -> SeedSummary:
    request = request or SeedRequest()
    records = load_seed_directory(factory.resolve_path(request.seed_file))
    return write_seed_records(factory.store, records, factory.resolve_path(request.output_file))


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str, store: JobStoreDep) -> JobStatusResponse:
    job = store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusResponse(**job.model_dump())
