"""Tests for PipelineCoordinator: ordering, checkpoints, resume, validation."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from station_contacts.exceptions.custom import (
    InputValidationError,
    OutputWriteError,
    StationNotFoundError,
)
from station_contacts.mappers.record_merger import merge_stage_result
from station_contacts.schemas.pipeline import RunState, Stage
from station_contacts.schemas.station import EnhancedRecord, RegulatorContactFacts
from station_contacts.services.pipeline import PipelineCoordinator
from station_contacts.services.record_store import RecordStore, checkpoint_path


class FakeProcessor:
    """Records processing order; optionally raises for chosen call signs."""

    stage = Stage.fcc
    required_fields = ("fccURL", "callSign")
    input_hint = '[{"callSign": "WBRC", "fccURL": "..."}]'

    def __init__(self, fail_on: set[str] | None = None):
        self.seen: list[str] = []
        self._fail_on = fail_on or set()

    def is_eligible(self, record: EnhancedRecord) -> bool:
        return bool(record.fccURL)

    def failure_record(self, record: EnhancedRecord, message: str) -> EnhancedRecord:
        return merge_stage_result(record, fccContactInfo=RegulatorContactFacts.failed(message))

    async def process(self, record: EnhancedRecord) -> EnhancedRecord:
        self.seen.append(record.callSign)
        if record.callSign in self._fail_on:
            raise RuntimeError(f"parser crashed on {record.callSign}")
        return merge_stage_result(
            record,
            fccContactInfo=RegulatorContactFacts(phoneNumbers=["(205) 583-4300"], success=True),
        )


def _stations(count: int) -> list[dict]:
    return [
        {
            "callSign": f"W{i:03d}",
            "state": "Alabama",
            "city": "Birmingham",
            "fccURL": f"https://publicfiles.fcc.gov/tv-profile/W{i:03d}",
        }
        for i in range(count)
    ]


@pytest.fixture
def input_file(tmp_path):
    path = tmp_path / "stations.json"
    path.write_text(json.dumps(_stations(25)))
    return path


@pytest.fixture
def output_file(tmp_path):
    return tmp_path / "out" / "stations_with_fcc.json"


@pytest.fixture
def mock_sleep():
    with patch("station_contacts.services.pipeline.asyncio.sleep", new_callable=AsyncMock) as m:
        yield m


def _coordinator(processor, store=None, **kwargs) -> PipelineCoordinator:
    return PipelineCoordinator(processor, store or RecordStore(), delay=2.0, **kwargs)


async def test_run_processes_in_order_with_checkpoints(input_file, output_file, mock_sleep):
    processor = FakeProcessor()
    store = RecordStore()
    coordinator = _coordinator(processor, store)

    with patch.object(store, "save_checkpoint", wraps=store.save_checkpoint) as save:
        result = await coordinator.run(input_file, output_file)

    assert save.call_count == 2
    assert coordinator.checkpoint_writes == 2
    assert coordinator.state == RunState.done

    output = json.loads(output_file.read_text())
    assert [r["callSign"] for r in output] == [f"W{i:03d}" for i in range(25)]
    assert processor.seen == [f"W{i:03d}" for i in range(25)]
    assert result.processed == 25
    assert result.total == 25
    assert not checkpoint_path(output_file).exists()


async def test_delay_after_every_record_but_last(input_file, output_file, mock_sleep):
    await _coordinator(FakeProcessor()).run(input_file, output_file)
    assert mock_sleep.await_count == 24
    mock_sleep.assert_awaited_with(2.0)


async def test_limit_caps_records(input_file, output_file, mock_sleep):
    processor = FakeProcessor()
    result = await _coordinator(processor).run(input_file, output_file, limit=3)
    assert processor.seen == ["W000", "W001", "W002"]
    assert result.total == 3
    assert mock_sleep.await_count == 2


async def test_unexpected_error_becomes_failed_record(input_file, output_file, mock_sleep):
    processor = FakeProcessor(fail_on={"W004"})
    await _coordinator(processor).run(input_file, output_file)

    output = json.loads(output_file.read_text())
    assert len(output) == 25
    failed = output[4]["fccContactInfo"]
    assert failed["success"] is False
    assert "parser crashed" in failed["error"]
    assert output[5]["fccContactInfo"]["success"] is True


async def test_ineligible_records_are_skipped(tmp_path, output_file, mock_sleep):
    stations = _stations(3)
    stations[1]["fccURL"] = ""
    path = tmp_path / "stations.json"
    path.write_text(json.dumps(stations))

    processor = FakeProcessor()
    result = await _coordinator(processor).run(path, output_file)

    assert processor.seen == ["W000", "W002"]
    assert result.total == 2


async def test_resume_from_index_keeps_checkpoint(input_file, output_file, mock_sleep):
    k = 10
    store = RecordStore()
    done = [
        merge_stage_result(
            EnhancedRecord.model_validate(s),
            fccContactInfo=RegulatorContactFacts(emailAddresses=["old@wbrc.com"], success=True),
        )
        for s in _stations(k)
    ]
    store.save_checkpoint(output_file, done)

    processor = FakeProcessor()
    result = await _coordinator(processor, store).resume("W010", input_file, output_file)

    assert processor.seen == [f"W{i:03d}" for i in range(k, 25)]
    assert result.processed == 25 - k
    output = json.loads(output_file.read_text())
    assert len(output) == 25
    assert [r["callSign"] for r in output] == [f"W{i:03d}" for i in range(25)]
    assert output[0]["fccContactInfo"]["emailAddresses"] == ["old@wbrc.com"]
    assert output[k]["fccContactInfo"]["phoneNumbers"] == ["(205) 583-4300"]


async def test_resume_without_checkpoint(input_file, output_file, mock_sleep):
    processor = FakeProcessor()
    result = await _coordinator(processor).resume("W020", input_file, output_file)
    assert processor.seen == ["W020", "W021", "W022", "W023", "W024"]
    assert result.total == 5


async def test_resume_unknown_call_sign(input_file, output_file, mock_sleep):
    coordinator = _coordinator(FakeProcessor())
    with pytest.raises(StationNotFoundError):
        await coordinator.resume("KXYZ", input_file, output_file)
    assert coordinator.state == RunState.failed


async def test_missing_required_field_fails_before_processing(tmp_path, output_file, mock_sleep):
    path = tmp_path / "stations.json"
    path.write_text(json.dumps([{"callSign": "WBRC", "state": "Alabama"}]))
    processor = FakeProcessor()
    coordinator = _coordinator(processor)

    with pytest.raises(InputValidationError) as exc_info:
        await coordinator.run(path, output_file)

    assert "fccURL" in exc_info.value.message
    assert exc_info.value.hint == FakeProcessor.input_hint
    assert coordinator.state == RunState.failed
    assert processor.seen == []
    assert not output_file.exists()


@pytest.mark.parametrize("content", ["[]", "{\"callSign\": \"WBRC\"}", "not json"])
async def test_unusable_input_is_rejected(tmp_path, output_file, content, mock_sleep):
    path = tmp_path / "stations.json"
    path.write_text(content)
    coordinator = _coordinator(FakeProcessor())

    with pytest.raises(InputValidationError):
        await coordinator.run(path, output_file)
    assert coordinator.state == RunState.failed


async def test_missing_input_file(tmp_path, output_file, mock_sleep):
    with pytest.raises(InputValidationError):
        await _coordinator(FakeProcessor()).run(tmp_path / "nope.json", output_file)


async def test_final_write_failure_keeps_checkpoint(input_file, output_file, mock_sleep):
    store = RecordStore()
    coordinator = _coordinator(FakeProcessor(), store)

    with patch.object(
        store, "write_records", side_effect=OutputWriteError("disk full", path=str(output_file))
    ):
        with pytest.raises(OutputWriteError):
            await coordinator.run(input_file, output_file)

    assert coordinator.state == RunState.failed
    assert checkpoint_path(output_file).exists()


async def test_checkpoint_write_failure_does_not_stop_run(input_file, output_file, mock_sleep):
    store = RecordStore()
    coordinator = _coordinator(FakeProcessor(), store)

    with patch.object(store, "save_checkpoint", return_value=False):
        result = await coordinator.run(input_file, output_file)

    assert coordinator.checkpoint_writes == 0
    assert result.total == 25
    assert coordinator.state == RunState.done


async def test_report_files_written(input_file, output_file, mock_sleep):
    result = await _coordinator(FakeProcessor()).run(input_file, output_file)

    csv_file = output_file.with_name("stations_with_fcc.csv")
    contact_file = output_file.with_name("stations_with_fcc_with_contact.json")
    assert result.report_files == [str(csv_file), str(contact_file)]
    assert csv_file.read_text().startswith('"Call Sign","State","City","FCC URL"')
    assert len(json.loads(contact_file.read_text())) == 25
    assert result.summary.with_phones == 25


async def test_checkpoint_holds_records_processed_so_far(input_file, output_file, mock_sleep):
    observed = {}

    class PeekingProcessor(FakeProcessor):
        async def process(self, record):
            if record.callSign == "W010":
                observed["count"] = len(json.loads(checkpoint_path(output_file).read_text()))
            return await super().process(record)

    await _coordinator(PeekingProcessor()).run(input_file, output_file)
    assert observed["count"] == 10
