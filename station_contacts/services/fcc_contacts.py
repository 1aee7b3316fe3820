import logging

from bs4 import BeautifulSoup

from station_contacts.mappers.record_merger import merge_stage_result
from station_contacts.mappers.regulator_extractor import extract_regulator_contacts
from station_contacts.schemas.pipeline import Stage
from station_contacts.schemas.station import EnhancedRecord, RegulatorContactFacts
from station_contacts.services.fetch_client import FetchClient, FetchFailure

logger = logging.getLogger(__name__)


class FccContactsService:
    """Extracts contacts from a station's FCC public-file profile."""

    stage = Stage.fcc
    required_fields = ("fccURL", "callSign")
    input_hint = (
        '[{"callSign": "WBRC", "state": "Alabama", "city": "Birmingham", '
        '"fccURL": "https://publicfiles.fcc.gov/tv-profile/WBRC"}]'
    )

    def __init__(self, fetcher: FetchClient):
        self._fetcher = fetcher

    def is_eligible(self, record: EnhancedRecord) -> bool:
        return bool(record.fccURL)

    def failure_record(self, record: EnhancedRecord, message: str) -> EnhancedRecord:
        return merge_stage_result(
            record, fccContactInfo=RegulatorContactFacts.failed(message)
        )

    async def process(self, record: EnhancedRecord) -> EnhancedRecord:
        url = record.fccURL or ""
        logger.info("Fetching FCC profile for %s: %s", record.callSign, url)

        result = await self._fetcher.fetch(url)
        if isinstance(result, FetchFailure):
            logger.info("Failed to fetch FCC page: %s", result.message)
            return self.failure_record(record, result.message)

        soup = BeautifulSoup(result.html, "html.parser")
        facts = extract_regulator_contacts(soup, result.final_url)
        logger.info(
            "Found %d phone(s), %d email(s) for %s",
            len(facts.phoneNumbers), len(facts.emailAddresses), record.callSign,
        )
        return merge_stage_result(record, fccContactInfo=facts)
