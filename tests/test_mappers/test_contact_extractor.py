"""Tests for station-site contact extraction."""

from bs4 import BeautifulSoup

from station_contacts.mappers.contact_extractor import (
    Contribution,
    FactCollector,
    contact_page,
    contact_sections,
    contact_via_email,
    extract_email_addresses,
    extract_phone_numbers,
    extract_site_contacts,
    find_contact_page_links,
    link_targets,
)
from station_contacts.schemas.station import ContactFacts

BASE = "https://www.wbrc.com/news/"


def _soup(body: str) -> BeautifulSoup:
    return BeautifulSoup(f"<html><body>{body}</body></html>", "html.parser")


def test_end_to_end_text_example():
    soup = _soup(
        "<p>Call us at 205-583-4300 or 205.583.8465, email robert@graymedia.com, "
        'or visit <a href="https://facebook.com/station">https://facebook.com/station</a></p>'
    )
    facts = extract_site_contacts(soup, BASE).build()

    assert facts.phoneNumbers == ["(205) 583-4300", "(205) 583-8465"]
    assert facts.emailAddresses == ["robert@graymedia.com"]
    assert facts.contactPageLinks == []
    assert facts.success is True


def test_two_representations_collapse_to_one():
    soup = _soup(
        '<p>Newsroom: (205) 583-4300</p><a href="tel:205.583.4300">Call</a>'
    )
    facts = extract_site_contacts(soup, BASE).build()
    assert facts.phoneNumbers == ["(205) 583-4300"]


def test_extract_phone_numbers_all_formats():
    text = "205-583-4300, (251) 434-1010, +1 801 532 1300, 3342880420"
    assert sorted(extract_phone_numbers(text)) == [
        "(205) 583-4300",
        "(251) 434-1010",
        "(334) 288-0420",
        "(801) 532-1300",
    ]


def test_extract_phone_numbers_prefers_extension_variant():
    text = "Sales 205-583-4300 ext. 12, News (251) 434-1010"
    assert extract_phone_numbers(text) == ["(251) 434-1010", "(205) 583-4300 ext. 12"]


def test_extract_phone_numbers_ignores_short_numbers():
    assert extract_phone_numbers("Channel 6, est. 1949, call 583-4300") == []


def test_extract_email_addresses_lowercases_and_filters():
    text = "News@WBRC.com noreply@wbrc.com news@wbrc.com"
    assert extract_email_addresses(text) == ["news@wbrc.com"]


def test_link_targets_reads_tel_and_mailto():
    soup = _soup(
        '<a href="tel:+12055834300">Call</a>'
        '<a href="mailto:Tips@WBRC.com?subject=Tip">Send a tip</a>'
    )
    result = link_targets(soup)
    assert result.phones == ["(205) 583-4300"]
    assert result.emails == ["tips@wbrc.com"]


def test_contact_sections_reads_footer_markup():
    soup = _soup(
        "<main><p>Weather today</p></main>"
        '<footer><a href="mailto:desk@wbrc.com">Email the desk</a> 205-583-4300</footer>'
    )
    result = contact_sections(soup)
    assert result.phones == ["(205) 583-4300"]
    assert "desk@wbrc.com" in result.emails


def test_contact_sections_climbs_out_of_inline_labels():
    soup = _soup("<div><strong>Phone:</strong> 251-434-1010</div>")
    assert contact_sections(soup).phones == ["(251) 434-1010"]


def test_contact_via_email_reads_sibling_markup():
    soup = _soup(
        '<div><span>Contact via Email</span>'
        '<a href="mailto:newsroom@fox10tv.com">Newsroom</a></div>'
    )
    assert contact_via_email(soup).emails == ["newsroom@fox10tv.com"]


def test_find_contact_page_links_resolves_against_origin():
    soup = _soup(
        '<a href="/contact-us">Contact Us</a>'
        '<a href="about/team">Get in touch</a>'
        '<a href="https://www.wbrc.com/contact-us">Contact</a>'
        '<a href="mailto:news@wbrc.com">Contact</a>'
        '<a href="#contact">Contact</a>'
        '<a href="https://twitter.com/wbrc/contact">Contact</a>'
    )
    assert find_contact_page_links(soup, BASE) == [
        "https://www.wbrc.com/contact-us",
        "https://www.wbrc.com/about/team",
    ]


def test_detection_methods_name_contributing_strategies():
    soup = _soup('<p>Weather</p><a href="/contact">Contact</a>')
    facts = extract_site_contacts(soup, BASE).build()
    assert facts.detectionMethods == ["contact_page_links"]
    assert facts.contactPageLinks == ["https://www.wbrc.com/contact"]


def test_contact_page_strategy_reads_markup_emails():
    soup = _soup('<a href="mailto:gm@wala.com">General Manager</a><p>251-434-1010</p>')
    result = contact_page(soup)
    assert result.phones == ["(251) 434-1010"]
    assert result.emails == ["gm@wala.com"]


def test_failing_strategy_is_skipped():
    def _broken(_soup):
        raise RuntimeError("boom")

    collector = FactCollector()
    collector.run("broken", _broken, _soup(""))
    collector.add("manual", Contribution(phones=["(205) 583-4300"]))

    facts = collector.build()
    assert facts.phoneNumbers == ["(205) 583-4300"]
    assert facts.detectionMethods == ["manual"]


def test_collector_excludes_phones_by_digits():
    collector = FactCollector(excluded_phones=["(877) 480-3201"])
    collector.add("scan", Contribution(phones=["(877) 480-3201", "(205) 583-4300"]))
    assert collector.phones == ["(205) 583-4300"]


def test_empty_contribution_adds_no_method():
    collector = FactCollector()
    collector.add("nothing", Contribution())
    facts = collector.build()
    assert facts.detectionMethods == []
    assert facts.success is True
    assert not facts.has_contact()


def test_build_accepts_model_and_extra_fields():
    collector = FactCollector()
    facts = collector.build(ContactFacts, scrapedUrl=BASE)
    assert facts.scrapedUrl == BASE
