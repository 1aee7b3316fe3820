import asyncio
import logging

from bs4 import BeautifulSoup

from station_contacts.mappers.contact_extractor import (
    FactCollector,
    contact_page,
    extract_site_contacts,
)
from station_contacts.mappers.record_merger import merge_stage_result
from station_contacts.schemas.pipeline import Stage
from station_contacts.schemas.station import ContactFacts, EnhancedRecord, ResolutionStatus
from station_contacts.services.fetch_client import FetchClient, FetchFailure

logger = logging.getLogger(__name__)


class SiteContactsService:
    """Extracts contact details from a station's official website.

    After the main page, the first contact-page link found is fetched once
    (short pre-delay, own timeout, no retries) and scanned as well.
    """

    stage = Stage.site_contacts
    required_fields = ("wikipediaURL", "state", "city", "officialWebsite", "status")
    input_hint = (
        '[{"wikipediaURL": "https://en.wikipedia.org/wiki/WBRC", "state": "Alabama", '
        '"city": "Birmingham", "officialWebsite": "https://www.wbrc.com/", "status": "found"}]'
    )

    def __init__(
        self,
        fetcher: FetchClient,
        contact_page_fetcher: FetchClient,
        contact_page_delay: float = 1.0,
    ):
        self._fetcher = fetcher
        self._contact_page_fetcher = contact_page_fetcher
        self._contact_page_delay = contact_page_delay

    def is_eligible(self, record: EnhancedRecord) -> bool:
        return record.status == ResolutionStatus.found and bool(record.officialWebsite)

    def failure_record(self, record: EnhancedRecord, message: str) -> EnhancedRecord:
        return merge_stage_result(record, contactDetails=ContactFacts.failed(message))

    async def process(self, record: EnhancedRecord) -> EnhancedRecord:
        url = record.officialWebsite or ""
        logger.info("Processing: %s, %s - %s", record.city, record.state, url)

        result = await self._fetcher.fetch(url)
        if isinstance(result, FetchFailure):
            logger.info("Failed: %s", result.message)
            return self.failure_record(record, result.message)

        soup = BeautifulSoup(result.html, "html.parser")
        collector = extract_site_contacts(soup, result.final_url)

        if collector.links:
            await self._scrape_contact_page(collector.links[0], collector)

        facts = collector.build(scrapedUrl=result.final_url)
        logger.info(
            "Found %d phone(s), %d email(s), %d contact page(s) for %s",
            len(facts.phoneNumbers), len(facts.emailAddresses),
            len(facts.contactPageLinks), url,
        )
        return merge_stage_result(record, contactDetails=facts)

    async def _scrape_contact_page(self, url: str, collector: FactCollector) -> None:
        await asyncio.sleep(self._contact_page_delay)
        logger.info("Checking contact page: %s", url)

        page = await self._contact_page_fetcher.fetch(url)
        if isinstance(page, FetchFailure):
            logger.info("Contact page failed: %s", page.message)
            return

        try:
            soup = BeautifulSoup(page.html, "html.parser")
            collector.run("contact_page_scrape", contact_page, soup)
        except Exception:
            logger.warning("Contact page %s could not be scanned", url, exc_info=True)
