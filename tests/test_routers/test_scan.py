import asyncio
from unittest.mock import AsyncMock, patch

import respx
from httpx import AsyncClient, Response

from contact_scanner.main import app
from contact_scanner.schemas.scan import ScanResult
from contact_scanner.services.website_scanner import WebsiteScannerService

SITE = "https://acme.com"

HOME_HTML = """
<html><body>
  <a href="mailto:info@acme.com">Email us</a>
  <a href="tel:+1-555-123-4567">Call</a>
  <a href="https://www.linkedin.com/company/acme">LinkedIn</a>
  <footer>123 Main St, Springfield, IL 62704</footer>
</body></html>
"""


def _mock_site():
    respx.get(f"{SITE}/").mock(return_value=Response(200, html=HOME_HTML))
    respx.get(host="acme.com").mock(return_value=Response(404))


async def submit_and_wait(client: AsyncClient, json: dict, timeout: float = 5.0):
    """POST /scan-website/jobs → 202, then poll GET /jobs/{job_id} until terminal state."""
    resp = await client.post("/scan-website/jobs", json=json)
    assert resp.status_code == 202

    data = resp.json()
    job_id = data["job_id"]
    assert data["status"] == "pending"

    deadline = asyncio.get_event_loop().time() + timeout
    while asyncio.get_event_loop().time() < deadline:
        await asyncio.sleep(0.05)
        status_resp = await client.get(f"/jobs/{job_id}")
        assert status_resp.status_code == 200
        job = status_resp.json()
        if job["status"] in ("completed", "failed"):
            return job

    raise TimeoutError(f"Job {job_id} did not complete within {timeout}s")


# --- Sync endpoint ---


@respx.mock
async def test_sync_scan(client):
    _mock_site()

    resp = await client.post("/scan-website", json={
        "website_url": SITE,
        "organization_id": "org-1",
        "has_email": True,
    })
    assert resp.status_code == 200

    data = resp.json()
    assert data["success"] is True
    assert data["organization_id"] == "org-1"
    assert data["website_url"] == SITE

    result = data["result"]
    assert result["pagesScanned"] == [f"{SITE}/"]
    assert len(result["pagesFailed"]) == 16
    assert result["pagesFailed"][0] == f"{SITE}/contact (HTTP 404)"
    assert result["emails"][0]["value"] == "info@acme.com"
    assert result["emails"][0]["sourcePage"] == f"{SITE}/"
    assert result["phones"][0]["value"] == "+1-555-123-4567"
    assert result["linkedinUrl"] == "https://www.linkedin.com/company/acme"
    assert result["address"]["postalCode"] == "62704"
    assert result["orgHasEmail"] is True
    assert result["orgHasPhone"] is False


@respx.mock
async def test_sync_scan_missing_website(client):
    resp = await client.post("/scan-website", json={"organization_id": "org-1"})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Organization does not have a website URL configured"
    assert respx.calls.call_count == 0


@respx.mock
async def test_sync_scan_malformed_website(client):
    resp = await client.post("/scan-website", json={"website_url": "ftp://acme.com"})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid website URL format"


async def test_sync_scan_unexpected_failure(client):
    with patch.object(
        WebsiteScannerService, "scan", new=AsyncMock(side_effect=RuntimeError("boom"))
    ):
        resp = await client.post("/scan-website", json={"website_url": SITE})

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Failed to scan website"}


# --- Jobs ---


@respx.mock
async def test_scan_job_completes(client):
    _mock_site()

    job = await submit_and_wait(client, {"website_url": "acme.com", "organization_id": "org-2"})

    assert job["status"] == "completed"
    assert job["target"] == SITE
    assert job["finished_at"] is not None
    assert job["result"]["organization_id"] == "org-2"
    assert job["result"]["result"]["pagesScanned"] == [f"{SITE}/"]
    assert job["result"]["result"]["emails"][0]["value"] == "info@acme.com"


async def test_scan_job_failure_recorded(client):
    with patch.object(
        WebsiteScannerService, "scan", new=AsyncMock(side_effect=RuntimeError("boom"))
    ):
        job = await submit_and_wait(client, {"website_url": SITE})

    assert job["status"] == "failed"
    assert job["error"] == "boom"
    assert job["result"] is None


async def test_scan_job_already_running(client):
    release = asyncio.Event()

    async def slow_scan(*_args, **_kwargs):
        await release.wait()
        return ScanResult()

    with patch.object(WebsiteScannerService, "scan", new=AsyncMock(side_effect=slow_scan)):
        first = await client.post("/scan-website/jobs", json={"website_url": SITE})
        second = await client.post("/scan-website/jobs", json={"website_url": "https://ACME.com/contact"})

        assert first.status_code == 202
        assert second.status_code == 202
        assert second.json()["status"] == "already_running"
        assert second.json()["job_id"] == first.json()["job_id"]
        assert len(app.state.job_store.tasks) == 1

        release.set()
        job_id = first.json()["job_id"]
        for _ in range(100):
            await asyncio.sleep(0.01)
            job = (await client.get(f"/jobs/{job_id}")).json()
            if job["status"] == "completed":
                break

    assert job["status"] == "completed"
    await asyncio.sleep(0)
    assert app.state.job_store.tasks == set()


async def test_scan_job_invalid_url_rejected_upfront(client):
    resp = await client.post("/scan-website/jobs", json={"website_url": "   "})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Organization does not have a website URL configured"


async def test_get_job_nonexistent(client):
    resp = await client.get("/jobs/does_not_exist")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Job not found"
