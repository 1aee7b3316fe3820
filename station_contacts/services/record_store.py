import csv
import json
import logging
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from station_contacts.exceptions.custom import InputValidationError, OutputWriteError
from station_contacts.mappers.record_merger import dump_record
from station_contacts.schemas.station import EnhancedRecord, StationRecord

logger = logging.getLogger(__name__)

CHECKPOINT_SUFFIX = ".temp"


def checkpoint_path(output_path: str | Path) -> Path:
    return Path(f"{output_path}{CHECKPOINT_SUFFIX}")


def _write_text(path: Path, text: str) -> None:
    """Write via a sibling temp file so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    partial = path.with_name(path.name + ".part")
    try:
        partial.write_text(text, encoding="utf-8")
        os.replace(partial, path)
    except OSError:
        partial.unlink(missing_ok=True)
        raise


class RecordStore:
    """JSON/CSV persistence for record sets, checkpoints and reports."""

    def load_records(self, path: str | Path) -> list[dict[str, Any]]:
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise InputValidationError(
                f"Failed to load station data from {path}: {exc}"
            ) from exc

        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise InputValidationError(f"{path} must contain a JSON array of station objects")

        logger.info("Loaded %d stations from %s", len(data), path)
        return data

    def write_records(self, path: str | Path, records: Sequence[StationRecord]) -> None:
        try:
            _write_text(Path(path), self._serialize(records))
        except OSError as exc:
            raise OutputWriteError(str(exc), path=str(path)) from exc
        logger.info("Results saved to: %s", path)

    def save_checkpoint(self, output_path: str | Path, records: Sequence[StationRecord]) -> bool:
        path = checkpoint_path(output_path)
        try:
            _write_text(path, self._serialize(records))
        except OSError as exc:
            logger.warning("Could not save progress to %s: %s", path, exc)
            return False
        return True

    def load_checkpoint(self, output_path: str | Path) -> list[EnhancedRecord]:
        path = checkpoint_path(output_path)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            records = [EnhancedRecord.model_validate(item) for item in data]
        except (OSError, json.JSONDecodeError, TypeError, ValidationError) as exc:
            raise InputValidationError(f"Unreadable checkpoint {path}: {exc}") from exc
        logger.info("Loaded %d previously processed stations from %s", len(records), path)
        return records

    def remove_checkpoint(self, output_path: str | Path) -> None:
        path = checkpoint_path(output_path)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove checkpoint %s: %s", path, exc)

    def write_csv(self, path: str | Path, header: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as fh:
            writer = csv.writer(fh, quoting=csv.QUOTE_ALL)
            writer.writerow(header)
            writer.writerows(rows)
        logger.info("CSV report saved to: %s", path)

    @staticmethod
    def _serialize(records: Sequence[StationRecord]) -> str:
        return json.dumps([dump_record(r) for r in records], indent=2, ensure_ascii=False)
