import asyncio
import logging
from urllib.parse import urlsplit

from contact_scanner.exceptions.custom import InvalidWebsiteUrlError
from contact_scanner.extractors.contacts import sort_by_domain
from contact_scanner.extractors.page import extract_page
from contact_scanner.schemas.address import ScrapedAddress
from contact_scanner.schemas.scan import (
    ExistingFlags,
    PageExtraction,
    ScanResult,
    ScrapedContact,
)
from contact_scanner.services.page_fetcher import DEFAULT_TIMEOUT, PageFetcher

logger = logging.getLogger(__name__)

PAGE_DELAY = 0.2  # seconds between pages

# Crawled in this order; earlier pages win LinkedIn and first-seen ties.
PAGES_TO_CRAWL = (
    "",
    "/contact",
    "/contact-us",
    "/contactus",
    "/about",
    "/about-us",
    "/aboutus",
    "/team",
    "/our-team",
    "/leadership",
    "/management",
    "/people",
    "/staff",
    "/support",
    "/help",
    "/reach-us",
    "/get-in-touch",
)


def normalize_base_url(raw: str | None) -> str:
    """Reduce a website field to scheme://host[:port]. Raises InvalidWebsiteUrlError."""
    if raw is None or not raw.strip():
        raise InvalidWebsiteUrlError("Organization does not have a website URL configured")

    s = raw.strip()
    if "://" not in s:
        s = "https://" + s.lstrip("/")

    try:
        parts = urlsplit(s)
        hostname, _port = parts.hostname, parts.port
    except ValueError:
        raise InvalidWebsiteUrlError("Invalid website URL format") from None

    if parts.scheme.lower() not in ("http", "https"):
        raise InvalidWebsiteUrlError("Invalid website URL format")
    if not hostname or " " in parts.netloc:
        raise InvalidWebsiteUrlError("Invalid website URL format")

    netloc = parts.netloc.rsplit("@", 1)[-1].lower()
    return f"{parts.scheme.lower()}://{netloc}"


def build_page_url(base_url: str, path: str) -> str:
    clean_base = base_url.rstrip("/")
    clean_path = path if path.startswith("/") else f"/{path}"
    return f"{clean_base}{clean_path}"


def root_domain(url: str) -> str:
    hostname = urlsplit(url).hostname or ""
    return hostname.removeprefix("www.")


def _email_key(contact: ScrapedContact) -> str:
    return contact.value.lower()


def _phone_key(contact: ScrapedContact) -> str:
    return " ".join(contact.value.split())


class ScanAccumulator:
    """Cross-page state for one scan run; never shared between scans."""

    def __init__(self, domain: str) -> None:
        self.domain = domain
        self._emails: dict[str, ScrapedContact] = {}
        self._phones: dict[str, ScrapedContact] = {}
        self.linkedin_url: str | None = None
        self.address: ScrapedAddress | None = None
        self.pages_scanned: list[str] = []
        self.pages_failed: list[str] = []

    def record_failure(self, page_url: str, reason: str | None) -> None:
        self.pages_failed.append(f"{page_url} ({reason or 'Unknown error'})")

    def add_page(self, page_url: str, page: PageExtraction) -> None:
        self.pages_scanned.append(page_url)

        for email in page.emails:
            self._emails.setdefault(_email_key(email), email)
        for phone in page.phones:
            self._phones.setdefault(_phone_key(phone), phone)

        if self.linkedin_url is None and page.linkedin_url:
            self.linkedin_url = page.linkedin_url

        if page.address is not None and (
            self.address is None
            or page.address.completeness() > self.address.completeness()
        ):
            self.address = page.address

    def finalize(self, flags: ExistingFlags) -> ScanResult:
        return ScanResult(
            emails=sort_by_domain(list(self._emails.values()), self.domain),
            phones=list(self._phones.values()),
            linkedin_url=self.linkedin_url,
            address=self.address,
            pages_scanned=list(self.pages_scanned),
            pages_failed=list(self.pages_failed),
            org_has_email=flags.has_email,
            org_has_phone=flags.has_phone,
            org_has_linkedin=flags.has_linkedin,
            org_has_address=flags.has_address,
        )


class WebsiteScannerService:
    def __init__(
        self,
        fetcher: PageFetcher,
        page_delay: float = PAGE_DELAY,
        fetch_timeout: float = DEFAULT_TIMEOUT,
        pages: tuple[str, ...] = PAGES_TO_CRAWL,
    ):
        self._fetcher = fetcher
        self._page_delay = page_delay
        self._fetch_timeout = fetch_timeout
        self._pages = pages

    async def scan(self, website_url: str | None, flags: ExistingFlags | None = None) -> ScanResult:
        """Crawl the fixed page list sequentially and merge what each page yields.

        Only a missing or malformed website URL raises; page failures end up
        in pages_failed.
        """
        base_url = normalize_base_url(website_url)
        flags = flags or ExistingFlags()
        acc = ScanAccumulator(root_domain(base_url))

        logger.info("Scanning %s (%d pages)", base_url, len(self._pages))
        for index, path in enumerate(self._pages):
            page_url = build_page_url(base_url, path)
            await self._scan_page(page_url, acc)

            if self._page_delay > 0 and index < len(self._pages) - 1:
                await asyncio.sleep(self._page_delay)

        result = acc.finalize(flags)
        logger.info(
            "Scan of %s done: %d scanned, %d failed, %d emails, %d phones, linkedin=%s, address=%s",
            base_url,
            len(result.pages_scanned),
            len(result.pages_failed),
            len(result.emails),
            len(result.phones),
            bool(result.linkedin_url),
            result.address is not None,
        )
        return result

    async def _scan_page(self, page_url: str, acc: ScanAccumulator) -> None:
        fetched = await self._fetcher.fetch(page_url, timeout=self._fetch_timeout)
        if not fetched.ok or not fetched.html:
            reason = fetched.error_reason if not fetched.ok else "Empty response"
            logger.debug("Page %s failed: %s", page_url, reason)
            acc.record_failure(page_url, reason)
            return

        page = extract_page(fetched.html, page_url, acc.domain)
        acc.add_page(page_url, page)
