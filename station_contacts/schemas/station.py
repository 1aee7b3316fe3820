from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from station_contacts.mappers.normalizer import is_station_website, phone_digits


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unique(values: Iterable[str], key: Callable[[str], str] = str) -> list[str]:
    """Drop duplicates under `key`, keeping first-seen order."""
    seen: set[str] = set()
    unique: list[str] = []
    for value in values:
        k = key(value)
        if k in seen:
            continue
        seen.add(k)
        unique.append(value)
    return unique


class ResolutionStatus(StrEnum):
    found = "found"
    not_found = "not_found"
    error = "error"


class ContactFacts(BaseModel):
    phoneNumbers: list[str] = []  # canonical "(AAA) BBB-CCCC[ ext. N]"
    emailAddresses: list[str] = []  # lower-cased
    contactPageLinks: list[str] = []  # absolute URLs
    detectionMethods: list[str] = []
    officialWebsite: str | None = None  # website stage only
    scrapedUrl: str | None = None  # post-redirect URL of the fetched page
    success: bool = False
    error: str | None = None
    scrapedAt: datetime = Field(default_factory=_utcnow)

    @field_validator("phoneNumbers")
    @classmethod
    def _unique_phones(cls, v: list[str]) -> list[str]:
        return _unique(v, key=phone_digits)

    @field_validator("emailAddresses")
    @classmethod
    def _unique_emails(cls, v: list[str]) -> list[str]:
        return _unique(email.lower() for email in v)

    @field_validator("contactPageLinks", "detectionMethods")
    @classmethod
    def _unique_values(cls, v: list[str]) -> list[str]:
        return _unique(v)

    @model_validator(mode="after")
    def _check_invariants(self) -> ContactFacts:
        if not self.success and (
            self.phoneNumbers or self.emailAddresses or self.contactPageLinks
        ):
            raise ValueError("failed extraction cannot carry contact facts")
        if self.officialWebsite is not None and not is_station_website(self.officialWebsite):
            raise ValueError(f"not a station website: {self.officialWebsite}")
        return self

    @classmethod
    def failed(cls, error: str) -> ContactFacts:
        return cls(success=False, error=error)

    def has_contact(self) -> bool:
        return bool(self.phoneNumbers or self.emailAddresses or self.contactPageLinks)


class CarriageElectionContact(BaseModel):
    rawText: str = ""


class RegulatorContactFacts(ContactFacts):
    mainStudioAddress: str = ""
    carriageElectionContact: CarriageElectionContact = Field(
        default_factory=CarriageElectionContact
    )


class StationRecord(BaseModel):
    """Seeded station identity. Unknown input fields are carried verbatim."""

    model_config = ConfigDict(extra="allow", frozen=True)

    callSign: str | None = None
    state: str | None = None
    city: str | None = None
    wikipediaURL: str | None = None
    fccURL: str | None = None


class EnhancedRecord(StationRecord):
    # website stage
    officialWebsite: str | None = None
    status: str | None = None  # ResolutionStatus once resolved
    error: str | None = None
    websiteResolution: ContactFacts | None = None
    # site_contacts stage
    contactDetails: ContactFacts | None = None
    # fcc stage
    fccContactInfo: RegulatorContactFacts | None = None
