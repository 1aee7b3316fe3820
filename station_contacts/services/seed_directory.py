import json
import logging
from collections import Counter
from pathlib import Path

from pydantic import BaseModel, ValidationError

from station_contacts.exceptions.custom import InputValidationError
from station_contacts.schemas.pipeline import SeedSummary
from station_contacts.schemas.station import StationRecord
from station_contacts.services.record_store import RecordStore

logger = logging.getLogger(__name__)

WIKIPEDIA_ARTICLE_URL = "https://en.wikipedia.org/wiki/{station}"
FCC_PROFILE_URL = "https://publicfiles.fcc.gov/tv-profile/{call_sign}"

SEED_HINT = '{"Alabama": [{"city": "Birmingham", "station": "WBRC"}]}'


class SeedEntry(BaseModel):
    city: str
    station: str  # article title, e.g. "WALA-TV" or "KBVU_(TV)"


def build_station_record(state: str, entry: SeedEntry) -> StationRecord:
    call_sign = entry.station[:4]
    return StationRecord(
        wikipediaURL=WIKIPEDIA_ARTICLE_URL.format(station=entry.station),
        state=state,
        city=entry.city,
        fccURL=FCC_PROFILE_URL.format(call_sign=call_sign),
        callSign=call_sign,
    )


def build_station_records(directory: dict[str, list[SeedEntry]]) -> list[StationRecord]:
    return [
        build_station_record(state, entry)
        for state, entries in directory.items()
        for entry in entries
    ]


def load_seed_directory(path: str | Path) -> list[StationRecord]:
    """Read a `{state: [{city, station}]}` directory and expand it into station records."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise InputValidationError(f"Failed to load seed directory {path}: {exc}", hint=SEED_HINT) from exc

    if not isinstance(data, dict):
        raise InputValidationError(f"{path} must map state names to station lists", hint=SEED_HINT)

    try:
        directory = {
            state: [SeedEntry.model_validate(item) for item in entries]
            for state, entries in data.items()
        }
    except (TypeError, ValidationError) as exc:
        raise InputValidationError(f"Invalid seed entry in {path}: {exc}", hint=SEED_HINT) from exc

    records = build_station_records(directory)
    logger.info("Extracted %d affiliate stations from %s", len(records), path)
    return records


def summarize_seed(records: list[StationRecord]) -> SeedSummary:
    by_state = Counter(r.state for r in records)
    cities = {(r.city, r.state) for r in records}
    return SeedSummary(
        total=len(records),
        states=len(by_state),
        cities=len(cities),
        by_state=dict(by_state.most_common()),
    )


def write_seed_records(
    store: RecordStore, records: list[StationRecord], output_path: str | Path
) -> SeedSummary:
    """Persist seed records as the website stage's input plus a CSV view."""
    output_path = Path(output_path)
    store.write_records(output_path, records)
    store.write_csv(
        output_path.with_name(f"{output_path.stem}.csv"),
        ["Wikipedia URL", "State", "City"],
        [[r.wikipediaURL or "", r.state or "", r.city or ""] for r in records],
    )

    summary = summarize_seed(records)
    summary.output_path = str(output_path)
    logger.info(
        "Seed summary: %d stations, %d states, %d cities",
        summary.total, summary.states, summary.cities,
    )
    for state, count in summary.by_state.items():
        logger.info("  %s: %d", state, count)
    return summary
