import logging

from bs4 import BeautifulSoup

from station_contacts.mappers.record_merger import merge_stage_result
from station_contacts.mappers.website_resolver import call_sign_from_url, resolve_official_website
from station_contacts.schemas.pipeline import Stage
from station_contacts.schemas.station import ContactFacts, EnhancedRecord, ResolutionStatus
from station_contacts.services.fetch_client import FetchClient, FetchFailure

logger = logging.getLogger(__name__)


class WebsiteFinderService:
    """Resolves a station's official website from its encyclopedia article."""

    stage = Stage.website
    required_fields = ("wikipediaURL", "state", "city")
    input_hint = (
        '[{"wikipediaURL": "https://en.wikipedia.org/wiki/WBRC", '
        '"state": "Alabama", "city": "Birmingham"}]'
    )

    def __init__(self, fetcher: FetchClient):
        self._fetcher = fetcher

    def is_eligible(self, record: EnhancedRecord) -> bool:
        return True

    def failure_record(self, record: EnhancedRecord, message: str) -> EnhancedRecord:
        return merge_stage_result(
            record,
            officialWebsite=None,
            status=ResolutionStatus.error.value,
            error=message,
            websiteResolution=ContactFacts.failed(message),
        )

    async def process(self, record: EnhancedRecord) -> EnhancedRecord:
        url = record.wikipediaURL or ""
        logger.info(
            "Processing: %s, %s - %s",
            record.city, record.state, call_sign_from_url(url) or record.callSign,
        )

        result = await self._fetcher.fetch(url)
        if isinstance(result, FetchFailure):
            logger.info("Failed: %s", result.message)
            return self.failure_record(record, result.message)

        soup = BeautifulSoup(result.html, "html.parser")
        website, method = resolve_official_website(soup, url)

        if website:
            logger.info("Found: %s (%s)", website, method)
        else:
            logger.info("No website found for %s", url)

        facts = ContactFacts(
            officialWebsite=website,
            detectionMethods=[method] if method else [],
            scrapedUrl=result.final_url,
            success=True,
        )
        return merge_stage_result(
            record,
            officialWebsite=website,
            status=(ResolutionStatus.found if website else ResolutionStatus.not_found).value,
            error=None,
            websiteResolution=facts,
        )
