from typing import Annotated

from fastapi import Depends, Request

from station_contacts.jobs import JobStore
from station_contacts.services.pipeline import CoordinatorFactory


def get_coordinator_factory(request: Request) -> CoordinatorFactory:
    return request.app.state.coordinator_factory


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


CoordinatorFactoryDep = Annotated[CoordinatorFactory, Depends(get_coordinator_factory)]
JobStoreDep = Annotated[JobStore, Depends(get_job_store)]
