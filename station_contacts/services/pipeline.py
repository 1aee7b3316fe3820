import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from station_contacts.config import Settings
from station_contacts.exceptions.custom import (
    InputValidationError,
    OutputWriteError,
    StationNotFoundError,
)
from station_contacts.mappers.report_builder import (
    build_summary,
    csv_report,
    report_subsets,
    summary_lines,
)
from station_contacts.mappers.website_resolver import call_sign_from_url
from station_contacts.schemas.pipeline import RunState, Stage, StageRunResult
from station_contacts.schemas.station import EnhancedRecord
from station_contacts.services.fcc_contacts import FccContactsService
from station_contacts.services.fetch_client import FetchClient, RetryPolicy
from station_contacts.services.record_store import RecordStore
from station_contacts.services.site_contacts import SiteContactsService
from station_contacts.services.website_finder import WebsiteFinderService

logger = logging.getLogger(__name__)


class StageProcessor(Protocol):
    stage: Stage
    required_fields: tuple[str, ...]
    input_hint: str

    def is_eligible(self, record: EnhancedRecord) -> bool: ...

    def failure_record(self, record: EnhancedRecord, message: str) -> EnhancedRecord: ...

    async def process(self, record: EnhancedRecord) -> EnhancedRecord: ...


def _call_sign(record: EnhancedRecord) -> str | None:
    return record.callSign or call_sign_from_url(record.wikipediaURL or "")


class PipelineCoordinator:
    """Drives one stage over a record set: validate, process in order, checkpoint, finalize.

    Records are handled strictly one at a time with a fixed politeness delay
    between them. Every `checkpoint_every` records the accumulated results are
    written to `<output>.temp`; a later `resume` picks them up from there.
    """

    def __init__(
        self,
        processor: StageProcessor,
        store: RecordStore,
        delay: float,
        checkpoint_every: int = 10,
    ):
        self._processor = processor
        self._store = store
        self._delay = delay
        self._checkpoint_every = checkpoint_every
        self.state = RunState.idle
        self.checkpoint_writes = 0

    @property
    def stage(self) -> Stage:
        return self._processor.stage

    async def run(
        self,
        input_path: str | Path,
        output_path: str | Path,
        limit: int | None = None,
    ) -> StageRunResult:
        records = self._validate(input_path)
        eligible = [r for r in records if self._processor.is_eligible(r)]
        if limit is not None:
            eligible = eligible[:limit]

        logger.info(
            "Starting %s stage: %d of %d record(s) to process",
            self.stage, len(eligible), len(records),
        )
        results = await self._process_pass(eligible, output_path, [])
        return self._finalize(output_path, results, processed=len(eligible))

    async def resume(
        self,
        call_sign: str,
        input_path: str | Path,
        output_path: str | Path,
    ) -> StageRunResult:
        records = self._validate(input_path)

        start = next(
            (i for i, r in enumerate(records) if _call_sign(r) == call_sign), None
        )
        if start is None:
            self.state = RunState.failed
            raise StationNotFoundError(call_sign)

        try:
            previous = self._store.load_checkpoint(output_path)
        except InputValidationError:
            self.state = RunState.failed
            raise

        remaining = [r for r in records[start:] if self._processor.is_eligible(r)]
        logger.info(
            "Resuming %s stage from %s (index %d): %d checkpointed, %d to process",
            self.stage, call_sign, start, len(previous), len(remaining),
        )
        results = await self._process_pass(remaining, output_path, previous)
        return self._finalize(output_path, results, processed=len(remaining))

    def _validate(self, input_path: str | Path) -> list[EnhancedRecord]:
        self.state = RunState.validating
        hint = self._processor.input_hint
        try:
            raw = self._store.load_records(input_path)
            if not raw:
                raise InputValidationError(f"No stations found in {input_path}", hint=hint)

            missing = [f for f in self._processor.required_fields if f not in raw[0]]
            if missing:
                raise InputValidationError(
                    f"Invalid data structure: missing field(s) {', '.join(missing)}",
                    hint=hint,
                )

            try:
                return [EnhancedRecord.model_validate(item) for item in raw]
            except ValidationError as exc:
                raise InputValidationError(
                    f"Invalid station record: {exc.error_count()} error(s)", hint=hint
                ) from exc
        except InputValidationError as exc:
            if exc.hint is None:
                exc.hint = hint
            self.state = RunState.failed
            logger.error("Input validation failed: %s", exc.message)
            raise

    async def _process_pass(
        self,
        records: Sequence[EnhancedRecord],
        output_path: str | Path,
        previous: Sequence[EnhancedRecord],
    ) -> list[EnhancedRecord]:
        self.state = RunState.processing
        results = list(previous)
        total = len(records)

        for index, record in enumerate(records, start=1):
            logger.info("[%d/%d] %s", index, total, _call_sign(record) or record.wikipediaURL)
            try:
                processed = await self._processor.process(record)
            except Exception as exc:
                logger.exception("Unexpected error processing record %d", index)
                processed = self._processor.failure_record(record, str(exc))
            results.append(processed)

            if index % self._checkpoint_every == 0:
                if self._store.save_checkpoint(output_path, results):
                    self.checkpoint_writes += 1
                    logger.info("Progress saved: %d record(s)", len(results))

            if index < total:
                await asyncio.sleep(self._delay)

        return results

    def _finalize(
        self,
        output_path: str | Path,
        results: list[EnhancedRecord],
        processed: int,
    ) -> StageRunResult:
        self.state = RunState.finalizing
        try:
            self._store.write_records(output_path, results)
        except OutputWriteError:
            self.state = RunState.failed
            logger.error("Could not write %s; checkpoint kept", output_path)
            raise
        self._store.remove_checkpoint(output_path)

        report_files = self._write_report(Path(output_path), results)

        summary = build_summary(self.stage, results)
        for line in summary_lines(self.stage, summary):
            logger.info(line)

        self.state = RunState.done
        return StageRunResult(
            stage=self.stage,
            output_path=str(output_path),
            processed=processed,
            total=len(results),
            checkpoint_writes=self.checkpoint_writes,
            summary=summary,
            report_files=report_files,
        )

    def _write_report(self, output_path: Path, results: list[EnhancedRecord]) -> list[str]:
        written: list[str] = []
        csv_path = output_path.with_name(f"{output_path.stem}.csv")
        header, rows = csv_report(self.stage, results)
        try:
            self._store.write_csv(csv_path, header, rows)
            written.append(str(csv_path))
        except OSError as exc:
            logger.warning("Could not write CSV report %s: %s", csv_path, exc)

        for suffix, subset in report_subsets(self.stage, results).items():
            path = output_path.with_name(f"{output_path.stem}{suffix}.json")
            try:
                self._store.write_records(path, subset)
                written.append(str(path))
            except OutputWriteError as exc:
                logger.warning("Could not write report %s: %s", path, exc.message)
        return written


class CoordinatorFactory:
    """Builds a configured coordinator per stage on top of one shared HTTP client."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        store: RecordStore | None = None,
    ):
        self._settings = settings
        self._client = client
        self._store = store or RecordStore()

    @property
    def store(self) -> RecordStore:
        return self._store

    def resolve_path(self, name: str) -> Path:
        path = Path(name)
        if path.is_absolute():
            return path
        return Path(self._settings.data_dir) / path

    def create(self, stage: Stage) -> PipelineCoordinator:
        processor = self._processor(stage)
        options = getattr(self._settings, stage.value)
        return PipelineCoordinator(
            processor,
            self._store,
            delay=options.delay,
            checkpoint_every=self._settings.checkpoint_every,
        )

    def _processor(self, stage: Stage) -> Any:
        if stage == Stage.website:
            opts = self._settings.website
            return WebsiteFinderService(
                FetchClient(self._client, opts.timeout, opts.retry_policy())
            )

        if stage == Stage.site_contacts:
            opts = self._settings.site_contacts
            main_page = FetchClient(
                self._client, opts.timeout, opts.retry_policy(), accept_redirect_status=True
            )
            contact_page = FetchClient(
                self._client,
                opts.contact_page_timeout_ms / 1000,
                RetryPolicy(max_retries=0),
                accept_redirect_status=True,
            )
            return SiteContactsService(
                main_page, contact_page, contact_page_delay=opts.contact_page_delay_ms / 1000
            )

        opts = self._settings.fcc
        return FccContactsService(FetchClient(self._client, opts.timeout, opts.retry_policy()))
