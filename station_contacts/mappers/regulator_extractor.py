import logging
import re

from bs4 import BeautifulSoup, NavigableString, Tag

from station_contacts.mappers.contact_extractor import (
    Contribution,
    FactCollector,
    extract_email_addresses,
    extract_phone_numbers,
    find_contact_page_links,
)
from station_contacts.schemas.station import CarriageElectionContact, RegulatorContactFacts

logger = logging.getLogger(__name__)

# The regulator's own published help lines, never a station contact
REGULATOR_SUPPORT_NUMBERS = frozenset({
    "(877) 480-3201",
    "(717) 338-2824",
    "(888) 225-5322",
    "(844) 432-2275",
    "(866) 418-0232",
})

STUDIO_ADDRESS_LABEL = "Main Studio Address"

# Contact-role sections, highest priority first
CONTACT_SECTION_LABELS = (
    "Carriage Election Contact",
    "Carriage Election",
    "Election Contact",
    "Contact Information",
)

_BLOCK_TAGS = ("tr", "div", "section", "table")
_SKIPPED_TAGS = frozenset({"script", "style", "noscript", "title", "head"})


def _squash(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def find_labelled_section(soup: BeautifulSoup, label: str) -> Tag | None:
    """Nearest block-level ancestor of the first visible text containing `label`."""

    def _matches(string: NavigableString) -> bool:
        return (
            label in string
            and string.parent is not None
            and string.parent.name not in _SKIPPED_TAGS
        )

    string = soup.find(string=_matches)
    if string is None:
        return None

    element = string.parent
    if element.name in _BLOCK_TAGS:
        return element
    return element.find_parent(_BLOCK_TAGS) or element


def _scoped_contribution(text: str, markup: str = "") -> Contribution:
    return Contribution(
        phones=extract_phone_numbers(text),
        emails=extract_email_addresses(f"{text} {markup}"),
    )


def extract_main_studio(soup: BeautifulSoup) -> tuple[str, Contribution]:
    """Studio address text plus any phone/email inside its block."""
    section = find_labelled_section(soup, STUDIO_ADDRESS_LABEL)
    if section is None:
        return "", Contribution()

    text = _squash(section.get_text(" "))
    address = _squash(text.replace(STUDIO_ADDRESS_LABEL, "", 1)).lstrip(": ")
    scope = text
    if not address:
        # Label sits alone in its row; the address is in the next block
        sibling = section.find_next_sibling()
        if sibling is not None:
            address = _squash(sibling.get_text(" "))
            scope = f"{text} {address}"
    return address, _scoped_contribution(scope, str(section))


def extract_contact_section(soup: BeautifulSoup) -> tuple[str, Contribution]:
    """First labelled contact-role section, in priority order."""
    for label in CONTACT_SECTION_LABELS:
        section = find_labelled_section(soup, label)
        if section is None:
            continue
        text = _squash(section.get_text(" "))
        return text, _scoped_contribution(text, str(section))
    return "", Contribution()


def extract_regulator_contacts(soup: BeautifulSoup, base_url: str) -> RegulatorContactFacts:
    """Contact facts from a regulator public-file page.

    Each extraction step is isolated: a failure in one leaves the others'
    results intact.
    """
    collector = FactCollector(excluded_phones=REGULATOR_SUPPORT_NUMBERS)
    studio_address = ""
    section_text = ""

    try:
        studio_address, contribution = extract_main_studio(soup)
        collector.add("main_studio_section", contribution)
    except Exception:
        logger.warning("Failed to extract main studio address", exc_info=True)

    try:
        section_text, contribution = extract_contact_section(soup)
        collector.add("carriage_election_section", contribution)
    except Exception:
        logger.warning("Failed to extract carriage election contact", exc_info=True)

    try:
        body = soup.body or soup
        collector.add(
            "general_page_scan",
            _scoped_contribution(_squash(body.get_text(" "))),
        )
    except Exception:
        logger.warning("Failed to scan page for general contacts", exc_info=True)

    try:
        collector.add(
            "contact_page_links",
            Contribution(links=find_contact_page_links(soup, base_url)),
        )
    except Exception:
        logger.warning("Failed to extract contact page links", exc_info=True)

    return collector.build(
        RegulatorContactFacts,
        scrapedUrl=base_url,
        mainStudioAddress=studio_address,
        carriageElectionContact=CarriageElectionContact(rawText=section_text),
    )
