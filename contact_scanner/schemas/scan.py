from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from contact_scanner.schemas.address import ScrapedAddress


class ContactKind(StrEnum):
    email = "email"
    phone = "phone"


class ScrapedContact(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    kind: ContactKind
    value: str
    source_page: str
    context: str | None = None  # <= 100 chars of surrounding text


class ExistingFlags(BaseModel):
    has_email: bool = False
    has_phone: bool = False
    has_linkedin: bool = False
    has_address: bool = False


class FetchResult(BaseModel):
    html: str = ""
    ok: bool
    error_reason: str | None = None


class PageExtraction(BaseModel):
    emails: list[ScrapedContact] = []
    phones: list[ScrapedContact] = []
    linkedin_url: str | None = None
    address: ScrapedAddress | None = None


class ScanResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    emails: list[ScrapedContact] = []  # company-domain first
    phones: list[ScrapedContact] = []
    linkedin_url: str | None = None
    address: ScrapedAddress | None = None
    pages_scanned: list[str] = []
    pages_failed: list[str] = []  # "<url> (<reason>)"
    org_has_email: bool = False
    org_has_phone: bool = False
    org_has_linkedin: bool = False
    org_has_address: bool = False
