from typing import Annotated

from fastapi import Depends, Request

from contact_scanner.jobs import JobStore
from contact_scanner.services.website_scanner import WebsiteScannerService


def get_website_scanner(request: Request) -> WebsiteScannerService:
    return request.app.state.website_scanner


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


WebsiteScannerDep = Annotated[WebsiteScannerService, Depends(get_website_scanner)]
JobStoreDep = Annotated[JobStore, Depends(get_job_store)]
