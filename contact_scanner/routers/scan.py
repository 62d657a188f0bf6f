import asyncio
import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from contact_scanner.dependencies import JobStoreDep, WebsiteScannerDep
from contact_scanner.exceptions.custom import InvalidWebsiteUrlError, ScanError
from contact_scanner.jobs import JobStore
from contact_scanner.schemas.responses import (
    JobStatusResponse,
    JobSubmittedResponse,
    ScanResponse,
)
from contact_scanner.schemas.scan import ExistingFlags
from contact_scanner.services.website_scanner import WebsiteScannerService, normalize_base_url

logger = logging.getLogger(__name__)

router = APIRouter()


class ScanRequest(BaseModel):
    website_url: str | None = None
    organization_id: str | None = None
    has_email: bool = False
    has_phone: bool = False
    has_linkedin: bool = False
    has_address: bool = False

    def flags(self) -> ExistingFlags:
        return ExistingFlags(
            has_email=self.has_email,
            has_phone=self.has_phone,
            has_linkedin=self.has_linkedin,
            has_address=self.has_address,
        )


async def _scan(service: WebsiteScannerService, request: ScanRequest) -> ScanResponse:
    try:
        result = await service.scan(request.website_url, request.flags())
    except InvalidWebsiteUrlError:
        raise
    except Exception as exc:
        logger.exception("Website scan failed for %s", request.website_url)
        raise ScanError(str(exc)) from exc
    return ScanResponse(
        organization_id=request.organization_id,
        website_url=request.website_url or "",
        result=result,
    )


async def _run_scan(
    job_id: str,
    service: WebsiteScannerService,
    store: JobStore,
    request: ScanRequest,
) -> None:
    store.mark_running(job_id)
    try:
        response = await _scan(service, request)
        store.mark_completed(job_id, response)
    except (InvalidWebsiteUrlError, ScanError) as exc:
        store.mark_failed(job_id, exc.message)


@router.post("/scan-website", response_model=ScanResponse)
async def scan_website(service: WebsiteScannerDep, request: ScanRequest) -> ScanResponse:
    return await _scan(service, request)


@router.post("/scan-website/jobs", response_model=JobSubmittedResponse, status_code=202)
async def submit_scan_job(
    service: WebsiteScannerDep,
    store: JobStoreDep,
    request: ScanRequest,
) -> JobSubmittedResponse:
    # Fail fast on a bad URL instead of queueing a job that can only fail
    target = normalize_base_url(request.website_url)

    existing = store.has_active_job(target)
    if existing:
        return JSONResponse(status_code=202, content={
            "job_id": existing.job_id,
            "status": "already_running",
            "message": "A scan for this website is already running",
        })

    job = store.create_job(target=target)
    store.track(asyncio.create_task(_run_scan(job.job_id, service, store, request)))
    return JobSubmittedResponse(
        job_id=job.job_id,
        status=job.status,
        message="Website scan job submitted",
    )


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str, store: JobStoreDep) -> JobStatusResponse:
    job = store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusResponse(**job.model_dump())
