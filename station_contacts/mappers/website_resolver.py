import logging
import re
from collections.abc import Callable
from urllib.parse import unquote

from bs4 import BeautifulSoup, Tag

from station_contacts.mappers.normalizer import clean_url, is_map_service_url, is_non_station_url

logger = logging.getLogger(__name__)

_HTTP_HREF_RE = re.compile(r"^https?://")
_EXTERNAL_LINKS_ID_RE = re.compile(r"^External_[Ll]inks$")
_WEBSITE_LABEL_RE = re.compile(r"website|web site")
_OFFICIAL_LABEL_RE = re.compile(r"official (?:website|site)")

WebsiteStrategy = Callable[[BeautifulSoup, str], str | None]


def call_sign_from_url(wikipedia_url: str | None) -> str | None:
    """Article title of a wiki URL: ".../wiki/WALA-TV" -> "WALA-TV"."""
    if not wikipedia_url:
        return None
    match = re.search(r"/wiki/([^/]+)$", wikipedia_url)
    if not match:
        return None
    return unquote(match.group(1)).replace("_", " ")


def _accept(href: str | None) -> str | None:
    url = clean_url(href)
    if url is None or is_non_station_url(url):
        return None
    return url


def _is_heading(tag: Tag) -> bool:
    return tag.name in ("h2", "h3") or "mw-heading" in (tag.get("class") or [])


def external_links_blocks(soup: BeautifulSoup) -> list[Tag]:
    """Blocks between the External links heading and the next heading.

    Handles both the legacy `<h2><span id=...>` markup and the current
    `<div class="mw-heading"><h2 id=...>` markup.
    """
    marker = soup.find(id=_EXTERNAL_LINKS_ID_RE)
    if marker is None:
        return []

    heading = marker if marker.name in ("h2", "h3") else marker.find_parent(["h2", "h3"])
    container = heading or marker
    if container.parent is not None and "mw-heading" in (container.parent.get("class") or []):
        container = container.parent

    blocks: list[Tag] = []
    for sibling in container.find_next_siblings():
        if _is_heading(sibling):
            break
        blocks.append(sibling)
    return blocks


def infobox_website(soup: BeautifulSoup, _wikipedia_url: str) -> str | None:
    for row in soup.select(".infobox tr"):
        labelled = any(
            _WEBSITE_LABEL_RE.search(cell.get_text(" ").lower())
            for cell in row.find_all(["th", "td"])
        )
        if not labelled:
            continue
        link = row.find("a", href=_HTTP_HREF_RE)
        if link is not None:
            return _accept(link["href"])
    return None


def external_links_official(soup: BeautifulSoup, _wikipedia_url: str) -> str | None:
    for block in external_links_blocks(soup):
        items = [block] if block.name == "li" else block.find_all("li")
        for item in items:
            if not _OFFICIAL_LABEL_RE.search(item.get_text(" ").lower()):
                continue
            link = item.find("a", href=_HTTP_HREF_RE)
            if link is not None:
                return _accept(link["href"])
    return None


def infobox_external_link(soup: BeautifulSoup, _wikipedia_url: str) -> str | None:
    for link in soup.select('.infobox a[href^="http"]'):
        url = _accept(link["href"])
        if url:
            return url
    return None


def callsign_domain_guess(soup: BeautifulSoup, wikipedia_url: str) -> str | None:
    """Look for {callsign}.com or fox{digits}.com written on the page."""
    call_sign = call_sign_from_url(wikipedia_url)
    if not call_sign:
        return None

    compact = re.sub(r"[-\s]", "", call_sign).lower()
    digits = re.sub(r"[a-z]", "", compact)
    candidates = [compact, call_sign.lower()]
    if digits:
        candidates.append(f"fox{digits}")

    text = (soup.body or soup).get_text(" ")
    for candidate in candidates:
        match = re.search(rf"{re.escape(candidate)}\.com", text, re.IGNORECASE)
        if match:
            url = _accept(match.group(0).lower())
            if url:
                return url
    return None


def external_links_any(soup: BeautifulSoup, _wikipedia_url: str) -> str | None:
    for block in external_links_blocks(soup):
        links = [block] if block.name == "a" else block.find_all("a", href=_HTTP_HREF_RE)
        for link in links:
            url = _accept(link.get("href"))
            if url:
                return url
    return None


WEBSITE_STRATEGIES: tuple[tuple[str, WebsiteStrategy], ...] = (
    ("infobox_website", infobox_website),
    ("external_links_official", external_links_official),
    ("infobox_external_link", infobox_external_link),
    ("callsign_domain_guess", callsign_domain_guess),
    ("external_links_any", external_links_any),
)


def resolve_official_website(
    soup: BeautifulSoup, wikipedia_url: str
) -> tuple[str | None, str | None]:
    """Return (website, detection method); the first strategy to find one wins.

    A map/geocoding link picked by any strategy is a false positive and
    resolves to (None, None).
    """
    for method, strategy in WEBSITE_STRATEGIES:
        try:
            website = strategy(soup, wikipedia_url)
        except Exception:
            logger.warning("Website strategy %s failed, skipping it", method, exc_info=True)
            continue
        if not website:
            continue
        if is_map_service_url(website):
            logger.info("Discarding map link %s found by %s", website, method)
            return None, None
        return website, method
    return None, None
