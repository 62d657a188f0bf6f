import re

from bs4 import BeautifulSoup

# Slug ends at the first '/', '?', '#', quote or whitespace.
_LINKEDIN_COMPANY_RE = re.compile(
    r"linkedin\.com/company/([A-Za-z0-9_%.~\-]+)",
    re.IGNORECASE,
)


def _canonical(slug: str) -> str | None:
    slug = slug.strip(".")
    if not slug:
        return None
    return f"https://www.linkedin.com/company/{slug}"


def extract_linkedin_url(soup: BeautifulSoup, raw_html: str) -> str | None:
    """First LinkedIn company page linked from the page.

    Anchor hrefs are checked before the raw HTML so a visible link wins over
    one buried in markup or inline scripts.
    """
    for a in soup.find_all("a", href=True):
        m = _LINKEDIN_COMPANY_RE.search(a["href"])
        if m and (url := _canonical(m.group(1))):
            return url

    for m in _LINKEDIN_COMPANY_RE.finditer(raw_html):
        if url := _canonical(m.group(1)):
            return url
    return None
