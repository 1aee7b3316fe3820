"""Tests for phone/email/URL normalization."""

import pytest

from station_contacts.mappers.normalizer import (
    clean_url,
    is_map_service_url,
    is_placeholder_email,
    is_station_website,
    normalize_email,
    normalize_phone,
)


# --- Phones ---


@pytest.mark.parametrize("raw", [
    "205-583-4300",
    "205.583.4300",
    "205 583 4300",
    "(205) 583-4300",
    "(205)583-4300",
    "2055834300",
    "+1 (205) 583-4300",
    "1-205-583-4300",
    "12055834300",
])
def test_normalize_phone_canonical_form(raw):
    assert normalize_phone(raw) == "(205) 583-4300"


def test_normalize_phone_is_idempotent():
    once = normalize_phone("205.583.4300")
    assert normalize_phone(once) == once


@pytest.mark.parametrize("raw", [
    "583-4300",
    "20558343001",  # 11 digits without leading 1
    "305-205-583-4300",
    "",
    None,
])
def test_normalize_phone_rejects_other_lengths(raw):
    assert normalize_phone(raw) is None


@pytest.mark.parametrize("raw", [
    "205-583-4300 ext. 12",
    "205-583-4300 ext 12",
    "205-583-4300 extension 12",
    "(205) 583-4300 x12",
])
def test_normalize_phone_keeps_extension(raw):
    assert normalize_phone(raw) == "(205) 583-4300 ext. 12"


def test_extension_canonical_form_is_idempotent():
    canonical = "(205) 583-4300 ext. 12"
    assert normalize_phone(canonical) == canonical


# --- Emails ---


def test_normalize_email_lowercases():
    assert normalize_email("News@WBRC.com") == "news@wbrc.com"


@pytest.mark.parametrize("email", [
    "example@station.com",
    "test@station.com",
    "sample@station.com",
    "noreply@station.com",
    "no-reply@station.com",
    "donotreply@station.com",
    "placeholder@station.com",
    "NoReply@Station.com",
    "TEST@STATION.COM",
])
def test_normalize_email_drops_placeholders(email):
    assert is_placeholder_email(email)
    assert normalize_email(email) is None


def test_normalize_email_drops_asset_names():
    assert normalize_email("logo@2x.png") is None


def test_normalize_email_keeps_real_address():
    assert not is_placeholder_email("newsroom@wala.com")
    assert normalize_email("newsroom@wala.com") == "newsroom@wala.com"


# --- URLs ---


def test_clean_url_adds_scheme_and_drops_fragment():
    assert clean_url("www.wbrc.com/#top") == "https://www.wbrc.com/"
    assert clean_url("//www.wbrc.com") == "https://www.wbrc.com"
    assert clean_url("http://fox10tv.com") == "http://fox10tv.com"


def test_clean_url_rejects_empty():
    assert clean_url("") is None
    assert clean_url(None) is None


def test_map_service_detection():
    assert is_map_service_url("https://geohack.toolforge.org/geohack.php?params=33")
    assert is_map_service_url("https://www.google.com/maps/place/x")
    assert not is_map_service_url("https://www.wbrc.com")


@pytest.mark.parametrize("url,expected", [
    ("https://www.wbrc.com/", True),
    ("https://www.facebook.com/wbrc6", False),
    ("https://en.wikipedia.org/wiki/WBRC", False),
    ("https://publicfiles.fcc.gov/tv-profile/WBRC", False),
    ("https://geohack.toolforge.org/geohack.php", False),
    ("wbrc.com", False),
])
def test_is_station_website(url, expected):
    assert is_station_website(url) is expected
