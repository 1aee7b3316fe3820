from typing import Any

from station_contacts.schemas.station import EnhancedRecord, StationRecord

# Fields each stage owns on the shared record
STAGE_FIELDS = frozenset({
    "officialWebsite",
    "status",
    "error",
    "websiteResolution",
    "contactDetails",
    "fccContactInfo",
})


def _present_fields(record: StationRecord) -> set[str]:
    """Fields the record actually carries (input keys plus stage results)."""
    return set(record.model_fields_set) | set(record.model_extra or {})


def dump_record(record: StationRecord) -> dict[str, Any]:
    """JSON-ready dict with the input's fields verbatim plus stage results."""
    present = _present_fields(record)
    data = record.model_dump(mode="json")
    return {key: value for key, value in data.items() if key in present}


def merge_stage_result(record: StationRecord, **stage_fields: Any) -> EnhancedRecord:
    """Return a new record with `stage_fields` added; the input is left untouched.

    Only stage-owned fields may be written, so a stage can never replace the
    station identity or the input's own fields.
    """
    unknown = set(stage_fields) - STAGE_FIELDS
    if unknown:
        raise ValueError(f"Not a stage field: {', '.join(sorted(unknown))}")

    present = _present_fields(record)
    data = {
        key: value
        for key, value in record.model_dump().items()
        if key in present
    }
    data.update(stage_fields)
    return EnhancedRecord.model_validate(data)
