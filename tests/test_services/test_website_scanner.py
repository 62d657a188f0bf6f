"""Tests for WebsiteScannerService and its URL helpers."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx
from httpx import Response

from contact_scanner.exceptions.custom import InvalidWebsiteUrlError
from contact_scanner.schemas.scan import ExistingFlags
from contact_scanner.services.page_fetcher import PageFetcher
from contact_scanner.services.website_scanner import (
    PAGES_TO_CRAWL,
    WebsiteScannerService,
    build_page_url,
    normalize_base_url,
    root_domain,
)

BASE = "https://acme.com"
ALL_PAGES = [build_page_url(BASE, path) for path in PAGES_TO_CRAWL]


@pytest.fixture
def scanner():
    return WebsiteScannerService(PageFetcher(httpx.AsyncClient()), page_delay=0)


def _html(body: str, head: str = "") -> str:
    return f"<html><head>{head}</head><body>{body}</body></html>"


def _json_ld(address: dict) -> str:
    data = {"@type": "Organization", "address": {"@type": "PostalAddress", **address}}
    return f'<script type="application/ld+json">{json.dumps(data)}</script>'


def _mock_rest(status: int = 404):
    respx.get(host="acme.com").mock(return_value=Response(status))


# --- URL helpers ---


def test_normalize_strips_path_query_and_case():
    assert normalize_base_url("https://www.Acme.com/contact?x=1") == "https://www.acme.com"


def test_normalize_adds_https_scheme():
    assert normalize_base_url("acme.com/about") == "https://acme.com"


def test_normalize_keeps_port_drops_credentials():
    assert normalize_base_url("http://user:pw@acme.com:8080/x") == "http://acme.com:8080"


def test_normalize_rejects_blank():
    for raw in (None, "", "   "):
        with pytest.raises(InvalidWebsiteUrlError) as exc_info:
            normalize_base_url(raw)
        assert exc_info.value.message == "Organization does not have a website URL configured"


def test_normalize_rejects_malformed():
    for raw in ("ftp://acme.com", "https://exa mple.com", "http://[::1", "https://"):
        with pytest.raises(InvalidWebsiteUrlError) as exc_info:
            normalize_base_url(raw)
        assert exc_info.value.message == "Invalid website URL format"


def test_build_page_url():
    assert build_page_url("https://acme.com/", "/contact") == "https://acme.com/contact"
    assert build_page_url("https://acme.com", "") == "https://acme.com/"


def test_root_domain_drops_www():
    assert root_domain("https://www.acme.com") == "acme.com"
    assert root_domain("https://shop.acme.com:8443") == "shop.acme.com"


# --- Scan ---


@respx.mock
async def test_every_page_failing_still_returns_result(scanner):
    _mock_rest(500)
    result = await scanner.scan(BASE)

    assert result.pages_scanned == []
    assert result.pages_failed == [f"{url} (HTTP 500)" for url in ALL_PAGES]
    assert result.emails == []
    assert result.phones == []
    assert result.linkedin_url is None
    assert result.address is None


@respx.mock
async def test_pages_partitioned_in_crawl_order(scanner):
    respx.get(f"{BASE}/").mock(return_value=Response(200, html=_html("<p>Home</p>")))
    respx.get(f"{BASE}/about").mock(return_value=Response(200, html=_html("<p>About</p>")))
    respx.get(f"{BASE}/team").mock(side_effect=httpx.ReadTimeout("slow"))
    _mock_rest()

    result = await scanner.scan(BASE)

    assert result.pages_scanned == [f"{BASE}/", f"{BASE}/about"]
    assert f"{BASE}/team (Timeout)" in result.pages_failed
    assert f"{BASE}/contact (HTTP 404)" in result.pages_failed
    assert len(result.pages_scanned) + len(result.pages_failed) == len(PAGES_TO_CRAWL)
    failed_urls = [entry.rsplit(" (", 1)[0] for entry in result.pages_failed]
    assert [u for u in ALL_PAGES if u not in result.pages_scanned] == failed_urls


@respx.mock
async def test_empty_body_counts_as_failure(scanner):
    respx.get(f"{BASE}/").mock(return_value=Response(200, text=""))
    _mock_rest()

    result = await scanner.scan(BASE)

    assert f"{BASE}/ (Empty response)" in result.pages_failed
    assert result.pages_scanned == []


@respx.mock
async def test_duplicates_across_pages_keep_first_occurrence(scanner):
    respx.get(f"{BASE}/").mock(return_value=Response(200, html=_html(
        '<a href="mailto:info@acme.com">Mail</a><p>Call (555) 123-4567</p>'
    )))
    respx.get(f"{BASE}/contact").mock(return_value=Response(200, html=_html(
        "<p>INFO@acme.com or (555) 123-4567</p>"
    )))
    _mock_rest()

    result = await scanner.scan(BASE)

    assert [e.value for e in result.emails] == ["info@acme.com"]
    assert result.emails[0].source_page == f"{BASE}/"
    assert [p.value for p in result.phones] == ["(555) 123-4567"]
    assert result.phones[0].source_page == f"{BASE}/"


@respx.mock
async def test_company_emails_sorted_first(scanner):
    respx.get(f"{BASE}/").mock(return_value=Response(200, html=_html(
        '<a href="mailto:bob@other.com">Partner</a>'
    )))
    respx.get(f"{BASE}/contact").mock(return_value=Response(200, html=_html(
        '<a href="mailto:alice@acme.com">Alice</a>'
    )))
    _mock_rest()

    result = await scanner.scan(BASE)

    assert [e.value for e in result.emails] == ["alice@acme.com", "bob@other.com"]


@respx.mock
async def test_first_linkedin_url_wins(scanner):
    respx.get(f"{BASE}/").mock(return_value=Response(200, html=_html(
        '<a href="https://linkedin.com/company/acme-corp">in</a>'
    )))
    respx.get(f"{BASE}/about").mock(return_value=Response(200, html=_html(
        '<a href="https://www.linkedin.com/company/acme-holdings">in</a>'
    )))
    _mock_rest()

    result = await scanner.scan(BASE)

    assert result.linkedin_url == "https://www.linkedin.com/company/acme-corp"


POOR_ADDRESS = {"addressLocality": "Austin", "postalCode": "73301"}
RICH_ADDRESS = {
    "streetAddress": "1 Congress Ave",
    "addressLocality": "Austin",
    "addressRegion": "TX",
    "postalCode": "73301",
}


@respx.mock
async def test_more_complete_address_replaces_earlier_one(scanner):
    respx.get(f"{BASE}/").mock(
        return_value=Response(200, html=_html("<p>Home</p>", _json_ld(POOR_ADDRESS)))
    )
    respx.get(f"{BASE}/contact").mock(
        return_value=Response(200, html=_html("<p>Contact</p>", _json_ld(RICH_ADDRESS)))
    )
    _mock_rest()

    result = await scanner.scan(BASE)

    assert result.address.address_line1 == "1 Congress Ave"
    assert result.address.completeness() == 5
    assert result.address.source_page == f"{BASE}/contact"


@respx.mock
async def test_less_complete_address_does_not_replace(scanner):
    respx.get(f"{BASE}/").mock(
        return_value=Response(200, html=_html("<p>Home</p>", _json_ld(RICH_ADDRESS)))
    )
    respx.get(f"{BASE}/contact").mock(
        return_value=Response(200, html=_html("<p>Contact</p>", _json_ld(POOR_ADDRESS)))
    )
    _mock_rest()

    result = await scanner.scan(BASE)

    assert result.address.source_page == f"{BASE}/"
    assert result.address.region == "TX"


@respx.mock
async def test_equally_complete_address_keeps_first(scanner):
    other = {"addressLocality": "Dallas", "postalCode": "75201"}
    respx.get(f"{BASE}/").mock(
        return_value=Response(200, html=_html("<p>Home</p>", _json_ld(POOR_ADDRESS)))
    )
    respx.get(f"{BASE}/contact").mock(
        return_value=Response(200, html=_html("<p>Contact</p>", _json_ld(other)))
    )
    _mock_rest()

    result = await scanner.scan(BASE)

    assert result.address.city == "Austin"


@respx.mock
async def test_existing_flags_copied_through(scanner):
    _mock_rest()
    result = await scanner.scan(BASE, ExistingFlags(has_email=True, has_address=True))

    assert result.org_has_email is True
    assert result.org_has_phone is False
    assert result.org_has_linkedin is False
    assert result.org_has_address is True


@respx.mock
async def test_scheme_less_url_crawled_over_https(scanner):
    route = respx.get(f"{BASE}/").mock(return_value=Response(200, html=_html("<p>Hi</p>")))
    _mock_rest()

    result = await scanner.scan("acme.com/some/deep/page")

    assert route.called
    assert result.pages_scanned == [f"{BASE}/"]


@respx.mock
async def test_invalid_url_raises_before_any_fetch(scanner):
    with pytest.raises(InvalidWebsiteUrlError):
        await scanner.scan("")
    with pytest.raises(InvalidWebsiteUrlError):
        await scanner.scan("ftp://acme.com")

    assert respx.calls.call_count == 0


@respx.mock
async def test_delay_between_pages_not_after_last():
    _mock_rest()
    service = WebsiteScannerService(PageFetcher(httpx.AsyncClient()), page_delay=0.2)

    with patch(
        "contact_scanner.services.website_scanner.asyncio.sleep", new=AsyncMock()
    ) as sleep:
        await service.scan(BASE)

    assert sleep.await_count == len(PAGES_TO_CRAWL) - 1
    sleep.assert_awaited_with(0.2)


@respx.mock
async def test_custom_page_list():
    respx.get(f"{BASE}/imprint").mock(return_value=Response(200, html=_html("<p>x</p>")))
    service = WebsiteScannerService(
        PageFetcher(httpx.AsyncClient()), page_delay=0, pages=("/imprint",)
    )

    result = await service.scan(BASE)

    assert result.pages_scanned == [f"{BASE}/imprint"]
    assert result.pages_failed == []
