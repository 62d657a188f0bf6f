import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from contact_scanner.config import Settings
from contact_scanner.exceptions.custom import InvalidWebsiteUrlError, ScanError
from contact_scanner.exceptions.handlers import invalid_website_url_handler, scan_error_handler
from contact_scanner.jobs import JobStore
from contact_scanner.routers.scan import router as scan_router
from contact_scanner.services.page_fetcher import PageFetcher
from contact_scanner.services.website_scanner import WebsiteScannerService


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    async with httpx.AsyncClient(timeout=settings.fetch_timeout) as client:
        fetcher = PageFetcher(
            client,
            user_agent=settings.user_agent,
            max_body=settings.max_body_bytes,
        )
        app.state.website_scanner = WebsiteScannerService(
            fetcher,
            page_delay=settings.page_delay,
            fetch_timeout=settings.fetch_timeout,
        )
        app.state.job_store = JobStore()

        yield


app = FastAPI(title="Contact Scanner", lifespan=lifespan)

app.add_exception_handler(InvalidWebsiteUrlError, invalid_website_url_handler)
app.add_exception_handler(ScanError, scan_error_handler)

app.include_router(scan_router)
