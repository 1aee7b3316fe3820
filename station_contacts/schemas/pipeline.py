from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class Stage(StrEnum):
    website = "website"  # encyclopedia article -> official website
    site_contacts = "site_contacts"  # station website -> contactDetails
    fcc = "fcc"  # regulator public file -> fccContactInfo


class RunState(StrEnum):
    idle = "idle"
    validating = "validating"
    processing = "processing"
    finalizing = "finalizing"
    done = "done"
    failed = "failed"


class StageSummary(BaseModel):
    total: int = 0
    successful: int = 0
    failed: int = 0
    with_phones: int = 0
    with_emails: int = 0
    with_contact_pages: int = 0
    with_any_contact: int = 0
    total_phones: int = 0
    total_emails: int = 0
    total_contact_pages: int = 0
    # website stage
    found: int = 0
    not_found: int = 0
    errors: int = 0
    found_by_state: dict[str, int] = {}


class StageRunResult(BaseModel):
    stage: Stage
    output_path: str
    processed: int  # records handled in this pass
    total: int  # records in the output, checkpointed ones included
    checkpoint_writes: int
    summary: StageSummary
    report_files: list[str] = []


class SeedSummary(BaseModel):
    total: int
    states: int
    cities: int
    by_state: dict[str, int]
    output_path: str | None = None
