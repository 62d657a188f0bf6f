import re
from urllib.parse import unquote

from bs4 import BeautifulSoup, Tag

from contact_scanner.schemas.scan import ContactKind, ScrapedContact

CONTEXT_LIMIT = 100
MAX_EMAIL_LENGTH = 100

EMAIL_RE = re.compile(
    r"[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}",
)

# Loose on purpose: over-match here, is_valid_phone does the filtering.
PHONE_RE = re.compile(
    r"(?:\+?\d{1,4}[\s.\-]?)?(?:\(?\d{2,4}\)?[\s.\-]?)?\d{3,4}[\s.\-]?\d{3,4}[\s.\-]?\d{0,4}",
)

_YEAR_RE = re.compile(r"^(?:19|20)\d{2}$")
_WS_RE = re.compile(r"\s+")

# Asset file names picked up by the email regex (logo@2x.png etc.)
_EXCLUDED_EXTENSIONS = (
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico",
    ".pdf", ".doc", ".docx",
)

# Automated mailboxes nobody reads
_SPAM_EMAIL_PREFIXES = (
    "noreply", "no-reply", "donotreply", "do-not-reply",
    "mailer-daemon", "postmaster", "webmaster",
)

_NON_VISIBLE_TAGS = ("script", "style", "noscript")


def normalize_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def strip_non_visible(soup: BeautifulSoup) -> BeautifulSoup:
    """Drop script/style/noscript so embedded JSON/JS can't produce matches."""
    for element in soup(_NON_VISIBLE_TAGS):
        element.decompose()
    return soup


def visible_text(soup: BeautifulSoup) -> str:
    root = soup.body or soup
    return root.get_text(separator=" ")


def is_valid_email(email: str) -> bool:
    lower = email.lower()
    if lower.endswith(_EXCLUDED_EXTENSIONS):
        return False
    local = lower.split("@")[0]
    if any(spam in local for spam in _SPAM_EMAIL_PREFIXES):
        return False
    if len(email) > MAX_EMAIL_LENGTH:
        return False
    if "@" not in email or "." not in email:
        return False
    return True


def _digits_only(phone: str) -> str:
    return "".join(c for c in phone if c.isdigit())


def is_valid_phone(phone: str) -> bool:
    """7-15 digits, and not just a year (copyright lines, founding dates)."""
    digits = _digits_only(phone)
    if len(digits) < 7 or len(digits) > 15:
        return False
    if _YEAR_RE.match(digits):
        return False
    return True


def clean_phone(phone: str) -> str:
    """Collapse whitespace and trailing separators; digits and punctuation are kept as written."""
    return normalize_whitespace(phone).rstrip(" .-")


def email_domain(email: str) -> str:
    return email.rpartition("@")[2].lower()


def matches_domain(email: str, domain: str) -> bool:
    if not domain:
        return False
    host = email_domain(email)
    return host == domain or host.endswith("." + domain)


def sort_by_domain(emails: list[ScrapedContact], domain: str) -> list[ScrapedContact]:
    """Company-domain emails first; stable otherwise."""
    return sorted(emails, key=lambda c: not matches_domain(c.value, domain))


def _link_context(link: Tag) -> str | None:
    parent = link.parent
    if parent is None:
        return None
    text = normalize_whitespace(parent.get_text(separator=" "))
    return text[:CONTEXT_LIMIT].strip() or None


def _text_context(text: str, start: int, end: int) -> str | None:
    margin = max(0, (CONTEXT_LIMIT - (end - start)) // 2)
    window = normalize_whitespace(text[max(0, start - margin):end + margin])
    return window[:CONTEXT_LIMIT].strip() or None


def _links_with_scheme(soup: BeautifulSoup, scheme: str):
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if href.lower().startswith(scheme):
            yield a, unquote(href[len(scheme):])


def extract_emails(soup: BeautifulSoup, page_url: str) -> list[ScrapedContact]:
    """Emails from mailto: links first, then a regex over visible text.

    Expects a document already passed through strip_non_visible().
    """
    seen: set[str] = set()
    emails: list[ScrapedContact] = []

    for a, target in _links_with_scheme(soup, "mailto:"):
        # mailto:a@x.com,b@x.com lists several recipients
        for recipient in target.split("?")[0].split(","):
            email = recipient.strip().lower()
            if email and is_valid_email(email) and email not in seen:
                seen.add(email)
                emails.append(ScrapedContact(
                    kind=ContactKind.email,
                    value=email,
                    source_page=page_url,
                    context=_link_context(a),
                ))

    text = visible_text(soup)
    for match in EMAIL_RE.finditer(text):
        email = match.group(0).strip().lower()
        if is_valid_email(email) and email not in seen:
            seen.add(email)
            emails.append(ScrapedContact(
                kind=ContactKind.email,
                value=email,
                source_page=page_url,
                context=_text_context(text, match.start(), match.end()),
            ))

    return emails


def extract_phones(soup: BeautifulSoup, page_url: str) -> list[ScrapedContact]:
    """Phones from tel: links first, then the loose regex over visible text."""
    seen: set[str] = set()
    phones: list[ScrapedContact] = []

    for a, target in _links_with_scheme(soup, "tel:"):
        phone = clean_phone(target)
        if phone and is_valid_phone(phone) and phone not in seen:
            seen.add(phone)
            phones.append(ScrapedContact(
                kind=ContactKind.phone,
                value=phone,
                source_page=page_url,
                context=_link_context(a),
            ))

    text = visible_text(soup)
    for match in PHONE_RE.finditer(text):
        phone = clean_phone(match.group(0))
        if is_valid_phone(phone) and phone not in seen:
            seen.add(phone)
            phones.append(ScrapedContact(
                kind=ContactKind.phone,
                value=phone,
                source_page=page_url,
                context=_text_context(text, match.start(), match.end()),
            ))

    return phones
