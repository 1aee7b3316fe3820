import logging
import re
from collections.abc import Callable, Iterable
from functools import partial
from urllib.parse import unquote, urljoin, urlparse

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel

from station_contacts.mappers.normalizer import (
    is_social_url,
    normalize_email,
    normalize_phone,
    phone_digits,
)
from station_contacts.schemas.station import ContactFacts

logger = logging.getLogger(__name__)

# Pattern families, applied in order; every match goes through normalize_phone
PHONE_PATTERNS = (
    # 205-583-4300, 205.583.4300, 205 583 4300
    re.compile(r"\b\d{3}[-.\s]\d{3}[-.\s]\d{4}\b"),
    # (205) 583-4300
    re.compile(r"\(\d{3}\)[-.\s]*\d{3}[-.\s]*\d{4}\b"),
    re.compile(r"\b\d{3} \d{3} \d{4}\b"),
    # +1 (205) 583-4300, 1-205-583-4300
    re.compile(r"\+?1[-.\s]*\(?\d{3}\)?[-.\s]*\d{3}[-.\s]*\d{4}\b"),
    # 2055834300
    re.compile(r"\b\d{10}\b"),
    # any of the above with an extension
    re.compile(
        r"\b\d{3}[-.\s]\d{3}[-.\s]\d{4}(?:\s*(?:ext\.?|extension|x)\s*\d+)?\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\(\d{3}\)[-.\s]*\d{3}[-.\s]*\d{4}(?:\s*(?:ext\.?|extension|x)\s*\d+)?\b",
        re.IGNORECASE,
    ),
)

_EXT_SEPARATOR = " ext. "

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b")

# "contact", "contact-us", "contact_us", "contactus" in an href
_CONTACT_HREF_RE = re.compile(r"contact", re.IGNORECASE)
# "Contact", "Contact Us", "CONTACT", "Get in Touch" as link text
_CONTACT_TEXT_RE = re.compile(r"\bcontact|get in touch", re.IGNORECASE)

_NON_PAGE_SCHEMES = ("mailto:", "tel:", "javascript:", "sms:")

_CONTACT_SECTION_SELECTOR = (
    "footer, header, .contact, #contact, .footer, #footer, "
    ".contact-info, #contact-info, .contact-us, #contact-us"
)
_CONTACT_SECTION_TEXT_RE = re.compile(r"Contact Us|Phone|Call|Email")
_CONTACT_VIA_EMAIL_RE = re.compile(r"Contact via Email")

_INLINE_TAGS = frozenset({"a", "b", "strong", "em", "i", "span", "label", "small", "u"})
_SKIPPED_TAGS = frozenset({"script", "style", "noscript", "title", "head"})


class Contribution(BaseModel):
    """Facts found by one strategy."""

    phones: list[str] = []
    emails: list[str] = []
    links: list[str] = []

    def is_empty(self) -> bool:
        return not (self.phones or self.emails or self.links)


Strategy = Callable[[BeautifulSoup], Contribution]


def extract_phone_numbers(text: str) -> list[str]:
    """All canonical phone numbers found in `text`, first-seen order.

    A bare number is dropped when the same number was also found with an
    extension.
    """
    phones: list[str] = []
    for pattern in PHONE_PATTERNS:
        for match in pattern.finditer(text):
            normalized = normalize_phone(match.group(0))
            if normalized and normalized not in phones:
                phones.append(normalized)
    extended = {p.split(_EXT_SEPARATOR, 1)[0] for p in phones if _EXT_SEPARATOR in p}
    return [p for p in phones if p not in extended]


def extract_email_addresses(text: str) -> list[str]:
    emails: list[str] = []
    for match in EMAIL_RE.finditer(text):
        email = normalize_email(match.group(0))
        if email and email not in emails:
            emails.append(email)
    return emails


def _origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}/"


def find_contact_page_links(soup: BeautifulSoup, base_url: str) -> list[str]:
    """Absolute URLs of anchors that look like "contact us" pages."""
    origin = _origin(base_url)
    links: list[str] = []

    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if not href or href.startswith("#") or href.lower().startswith(_NON_PAGE_SCHEMES):
            continue
        text = a.get_text(" ", strip=True)
        if not (_CONTACT_HREF_RE.search(href) or _CONTACT_TEXT_RE.search(text)):
            continue

        url = urljoin(origin, href)
        if urlparse(url).scheme not in ("http", "https"):
            continue
        if is_social_url(url):
            continue
        if url not in links:
            links.append(url)

    return links


def _body(soup: BeautifulSoup) -> Tag:
    return soup.body or soup


def _enclosing_block(tag: Tag) -> Tag:
    """Climb out of inline wrappers (<strong>Phone:</strong> 555-...)."""
    while tag.name in _INLINE_TAGS and tag.parent is not None and tag.parent.name != "[document]":
        tag = tag.parent
    return tag


def _text_and_markup(element: Tag) -> str:
    return element.get_text(" ") + " " + str(element)


def page_content(soup: BeautifulSoup) -> Contribution:
    text = _body(soup).get_text(" ")
    return Contribution(
        phones=extract_phone_numbers(text),
        emails=extract_email_addresses(text),
    )


def link_targets(soup: BeautifulSoup) -> Contribution:
    """Phones and emails carried only in tel: and mailto: hrefs."""
    phones: list[str] = []
    emails: list[str] = []
    for a in soup.find_all("a", href=True):
        href = unquote(a["href"].strip())
        lower = href.lower()
        if lower.startswith("tel:"):
            phone = normalize_phone(href[4:])
            if phone and phone not in phones:
                phones.append(phone)
        elif lower.startswith("mailto:"):
            email = normalize_email(href[7:].split("?")[0])
            if email and email not in emails:
                emails.append(email)
    return Contribution(phones=phones, emails=emails)


def _contact_sections(soup: BeautifulSoup) -> list[Tag]:
    sections: list[Tag] = []
    seen: set[int] = set()

    def _add(tag: Tag) -> None:
        if id(tag) not in seen:
            seen.add(id(tag))
            sections.append(tag)

    for tag in soup.select(_CONTACT_SECTION_SELECTOR):
        _add(tag)
    for string in soup.find_all(string=_CONTACT_SECTION_TEXT_RE):
        parent = string.parent
        if parent is None or parent.name in _SKIPPED_TAGS:
            continue
        _add(_enclosing_block(parent))
    return sections


def contact_sections(soup: BeautifulSoup) -> Contribution:
    """Header, footer, contact blocks and blocks labelled Phone/Call/Email."""
    phones: list[str] = []
    emails: list[str] = []
    for section in _contact_sections(soup):
        for phone in extract_phone_numbers(section.get_text(" ")):
            if phone not in phones:
                phones.append(phone)
        for email in extract_email_addresses(_text_and_markup(section)):
            if email not in emails:
                emails.append(email)
    return Contribution(phones=phones, emails=emails)


def contact_via_email(soup: BeautifulSoup) -> Contribution:
    emails: list[str] = []
    for string in soup.find_all(string=_CONTACT_VIA_EMAIL_RE):
        element = string.parent
        if element is None or element.name in _SKIPPED_TAGS:
            continue
        container = element.parent or element
        for email in extract_email_addresses(_text_and_markup(container)):
            if email not in emails:
                emails.append(email)
    return Contribution(emails=emails)


def contact_page_links(soup: BeautifulSoup, base_url: str) -> Contribution:
    return Contribution(links=find_contact_page_links(soup, base_url))


def contact_page(soup: BeautifulSoup) -> Contribution:
    """A dedicated contact page: phones from text, emails from text and markup."""
    body = _body(soup)
    return Contribution(
        phones=extract_phone_numbers(body.get_text(" ")),
        emails=extract_email_addresses(_text_and_markup(body)),
    )


class FactCollector:
    """Union of strategy contributions with per-strategy provenance.

    A strategy that raises contributes nothing; the others still run.
    """

    def __init__(self, excluded_phones: Iterable[str] = ()):
        self._excluded = {phone_digits(p) for p in excluded_phones}
        self._phones: dict[str, str] = {}
        self._emails: dict[str, str] = {}
        self._links: dict[str, str] = {}
        self._methods: list[str] = []

    @property
    def phones(self) -> list[str]:
        return list(self._phones.values())

    @property
    def emails(self) -> list[str]:
        return list(self._emails.values())

    @property
    def links(self) -> list[str]:
        return list(self._links.values())

    @property
    def methods(self) -> list[str]:
        return list(self._methods)

    def run(self, method: str, strategy: Strategy, soup: BeautifulSoup) -> None:
        try:
            contribution = strategy(soup)
        except Exception:
            logger.warning("Strategy %s failed, skipping it", method, exc_info=True)
            return
        self.add(method, contribution)

    def add(self, method: str, contribution: Contribution) -> None:
        found = False
        for phone in contribution.phones:
            key = phone_digits(phone)
            if key in self._excluded:
                continue
            found = True
            self._phones.setdefault(key, phone)
        for email in contribution.emails:
            found = True
            self._emails.setdefault(email.lower(), email.lower())
        for link in contribution.links:
            found = True
            self._links.setdefault(link, link)

        if found and method not in self._methods:
            self._methods.append(method)

    def build(self, model: type[ContactFacts] = ContactFacts, **fields) -> ContactFacts:
        return model(
            phoneNumbers=self.phones,
            emailAddresses=self.emails,
            contactPageLinks=self.links,
            detectionMethods=self.methods,
            success=True,
            **fields,
        )


def site_contact_strategies(base_url: str) -> list[tuple[str, Strategy]]:
    return [
        ("main_page_content", page_content),
        ("link_targets", link_targets),
        ("contact_section", contact_sections),
        ("contact_via_email", contact_via_email),
        ("contact_page_links", partial(contact_page_links, base_url=base_url)),
    ]


def extract_site_contacts(soup: BeautifulSoup, base_url: str) -> FactCollector:
    """Run the station-site strategy chain; `base_url` is the post-redirect URL."""
    collector = FactCollector()
    for method, strategy in site_contact_strategies(base_url):
        collector.run(method, strategy, soup)
    return collector
