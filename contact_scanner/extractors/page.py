import logging
from collections.abc import Callable
from typing import TypeVar

from bs4 import BeautifulSoup

from contact_scanner.extractors.address import find_heuristic_address, find_structured_address
from contact_scanner.extractors.contacts import (
    extract_emails,
    extract_phones,
    sort_by_domain,
    strip_non_visible,
)
from contact_scanner.extractors.linkedin import extract_linkedin_url
from contact_scanner.schemas.address import ScrapedAddress
from contact_scanner.schemas.scan import PageExtraction

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _guarded(label: str, page_url: str, func: Callable[..., T], *args, default: T) -> T:
    """Run one extractor; a failure means "nothing found" for that field only."""
    try:
        return func(*args)
    except Exception:
        logger.warning("%s extraction failed on %s", label, page_url, exc_info=True)
        return default


def extract_page(html: str, page_url: str, domain: str) -> PageExtraction:
    """Run every extractor over one page of HTML."""
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception:
        logger.warning("Could not parse HTML from %s", page_url, exc_info=True)
        return PageExtraction()

    # JSON-LD and the LinkedIn scan need the document before scripts are stripped
    structured = _guarded("Structured address", page_url, find_structured_address, soup, default=None)
    linkedin_url = _guarded("LinkedIn", page_url, extract_linkedin_url, soup, html, default=None)

    strip_non_visible(soup)
    emails = _guarded("Email", page_url, extract_emails, soup, page_url, default=[])
    phones = _guarded("Phone", page_url, extract_phones, soup, page_url, default=[])

    parsed = structured or _guarded("Address", page_url, find_heuristic_address, soup, default=None)
    address = ScrapedAddress(**parsed.model_dump(), source_page=page_url) if parsed else None

    return PageExtraction(
        emails=sort_by_domain(emails, domain),
        phones=phones,
        linkedin_url=linkedin_url,
        address=address,
    )
