from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from contact_scanner.schemas.scan import ScanResult


class ScanResponse(BaseModel):
    success: bool = True
    organization_id: str | None = None
    website_url: str
    result: ScanResult


class JobSubmittedResponse(BaseModel):
    job_id: str
    status: str
    message: str


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    created_at: datetime
    finished_at: datetime | None = None
    target: str | None = None
    result: ScanResponse | None = None
    error: str | None = None
