import json
import logging
import re
from collections.abc import Mapping

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from contact_scanner.extractors.contacts import EMAIL_RE, normalize_whitespace
from contact_scanner.mappers.address_parser import (
    COUNTRY,
    POSTAL_CODE,
    address_from_structured,
    parse_address,
)
from contact_scanner.schemas.address import ParsedAddress

logger = logging.getLogger(__name__)

MIN_CANDIDATE_LENGTH = 10
MAX_CANDIDATE_LENGTH = 1000
MIN_ADDRESS_SCORE = 4
LOCATION_BONUS = 2

STREET_TYPES = (
    r"street|st|avenue|ave|road|rd|boulevard|blvd|drive|dr|lane|ln|way|court|ct|"
    r"place|pl|parkway|pkwy|highway|hwy|square|sq|terrace|circle|plaza|suite|ste|floor"
)

# (signal, pattern, weight). Postal codes are the strongest evidence of an address.
ADDRESS_SIGNALS: list[tuple[str, re.Pattern, int]] = [
    ("postal_code", re.compile(POSTAL_CODE), 4),
    (
        "number_street",
        re.compile(rf"\b\d{{1,6}}\s+(?:[A-Za-z0-9.'\-]+\s+){{0,4}}(?i:{STREET_TYPES})\b"),
        3,
    ),
    ("street_type", re.compile(rf"\b(?:{STREET_TYPES})\b", re.IGNORECASE), 2),
    ("city_state_zip", re.compile(r"\b[A-Z][A-Za-z .'\-]+,\s*[A-Z]{2}\s+\d{5}(?:-\d{4})?\b"), 2),
    ("country", re.compile(COUNTRY, re.IGNORECASE), 1),
]

ADDRESS_KEYWORDS = (
    "headquarters", "head office", "office address", "our address",
    "mailing address", "visit us", "our office", "find us", "located at",
    "corporate office",
)

_FOOTER_SELECTOR = 'footer, [class*="footer" i], [id*="footer" i]'
_ADDRESS_SELECTOR = (
    'address, [class*="address" i], [id*="address" i], '
    '[class*="location" i], [id*="location" i], [itemtype*="PostalAddress"]'
)
_CONTACT_SELECTOR = '[class*="contact" i], [id*="contact" i]'
_KEYWORD_RE = re.compile("|".join(re.escape(k) for k in ADDRESS_KEYWORDS), re.IGNORECASE)

_MICRODATA_PROPS = (
    "streetAddress", "addressLocality", "addressRegion", "postalCode", "addressCountry",
)

_BREAK_TAGS = frozenset({
    "br", "p", "div", "li", "tr", "td", "address", "section", "article",
    "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "dd", "dt",
})

# Cleanup of the winning candidate text
_URL_RE = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)
_PHONE_NOISE_RE = re.compile(r"\+?\d{0,3}[\s.\-]?\(?\d{3}\)?[\s.\-]\d{3}[\s.\-]\d{4}")
_COPYRIGHT_RE = re.compile(r"(?:©|\(c\)|copyright)\s*(?:\d{4}(?:\s*[-–]\s*\d{4})?)?", re.IGNORECASE)
_NOISE_RE = re.compile(
    r"\b(?:call us|email us|contact us|get directions|view map|all rights reserved|"
    r"privacy policy|terms of (?:use|service)|follow us)\b",
    re.IGNORECASE,
)
_LABEL_RE = re.compile(
    r"\b(?:phone|tel|telephone|fax|e-?mail|address|headquarters|head office|office)\s*:",
    re.IGNORECASE,
)
_SEPARATOR_RE = re.compile(r"\s*(?:\n|\||•|·|;|\s-\s)\s*")
_FOCUS_RE = re.compile(
    rf"\b\d{{1,6}}\s+[^,]*?(?i:{STREET_TYPES})\b.*?{POSTAL_CODE}(?:,?\s*{COUNTRY})?",
)


# --- Structured data ---


def _types(node: Mapping) -> list[str]:
    value = node.get("@type")
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str)]
    return []


def _find_postal_address(node, depth: int = 0) -> Mapping | str | None:
    """Depth-first search for a PostalAddress object (or a plain address string)."""
    if depth > 12:
        return None
    if isinstance(node, list):
        for item in node:
            if (found := _find_postal_address(item, depth + 1)) is not None:
                return found
        return None
    if not isinstance(node, Mapping):
        return None

    if "PostalAddress" in _types(node):
        return node

    for key in ("address", "location", "@graph"):
        value = node.get(key)
        if key == "address" and isinstance(value, str) and value.strip():
            return value
        if (found := _find_postal_address(value, depth + 1)) is not None:
            return found

    for key, value in node.items():
        if key in ("address", "location", "@graph"):
            continue
        if isinstance(value, (list, Mapping)):
            if (found := _find_postal_address(value, depth + 1)) is not None:
                return found
    return None


def _json_ld_address(soup: BeautifulSoup) -> ParsedAddress | None:
    for script in soup.find_all("script", attrs={"type": re.compile(r"ld\+json", re.IGNORECASE)}):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug("Skipping invalid JSON-LD block")
            continue

        found = _find_postal_address(data)
        if isinstance(found, str):
            parsed = parse_address(found)
        elif found is not None:
            parsed = address_from_structured(found)
        else:
            parsed = None
        if parsed is not None:
            return parsed
    return None


def _microdata_address(soup: BeautifulSoup) -> ParsedAddress | None:
    values: dict[str, str] = {}
    for prop in _MICRODATA_PROPS:
        el = soup.find(attrs={"itemprop": prop})
        if el is None:
            continue
        value = el.get("content") or el.get_text(separator=" ")
        if value and value.strip():
            values[prop] = value
    if not any(values.get(p) for p in ("streetAddress", "addressLocality", "postalCode")):
        return None
    return address_from_structured(values)


def find_structured_address(soup: BeautifulSoup) -> ParsedAddress | None:
    """JSON-LD PostalAddress first, then schema.org microdata. Needs the unstripped document."""
    return _json_ld_address(soup) or _microdata_address(soup)


# --- Heuristic text scoring ---


def block_text(element: Tag) -> str:
    """Element text with a line break at every block-level boundary."""
    parts: list[str] = []
    for node in element.descendants:
        if isinstance(node, Comment):
            continue
        if isinstance(node, NavigableString):
            parts.append(str(node))
        elif isinstance(node, Tag) and node.name in _BREAK_TAGS:
            parts.append("\n")
    lines = (normalize_whitespace(line) for line in "".join(parts).split("\n"))
    return "\n".join(line for line in lines if line)


def score_address_text(text: str, in_address_region: bool = False) -> int:
    score = sum(weight for _name, pattern, weight in ADDRESS_SIGNALS if pattern.search(text))
    if in_address_region:
        score += LOCATION_BONUS
    return score


def _candidate_regions(soup: BeautifulSoup) -> list[tuple[Tag, bool]]:
    regions: list[tuple[Tag, bool]] = []
    regions.extend((el, True) for el in soup.select(_FOOTER_SELECTOR))
    regions.extend((el, True) for el in soup.select(_ADDRESS_SELECTOR))
    regions.extend((el, False) for el in soup.select(_CONTACT_SELECTOR))
    for string in soup.find_all(string=_KEYWORD_RE):
        holder = string.parent
        if holder is not None and holder.parent is not None:
            regions.append((holder.parent, False))
    return regions


def address_candidates(soup: BeautifulSoup) -> list[tuple[str, bool]]:
    seen: set[str] = set()
    candidates: list[tuple[str, bool]] = []
    for element, tagged in _candidate_regions(soup):
        text = block_text(element)
        if not (MIN_CANDIDATE_LENGTH <= len(text) <= MAX_CANDIDATE_LENGTH):
            continue
        if text in seen:
            continue
        seen.add(text)
        candidates.append((text, tagged))
    return candidates


def best_address_text(soup: BeautifulSoup) -> str | None:
    """Highest-scoring candidate region; the first one wins ties."""
    best_text, best_score = None, 0
    for text, tagged in address_candidates(soup):
        score = score_address_text(text, tagged)
        if score > best_score:
            best_text, best_score = text, score
    if best_score < MIN_ADDRESS_SCORE:
        return None
    return best_text


def clean_address_text(text: str) -> str:
    """Strip contact noise and normalize separators to commas."""
    text = _URL_RE.sub(" ", text)
    text = EMAIL_RE.sub(" ", text)
    text = _PHONE_NOISE_RE.sub(" ", text)
    text = _COPYRIGHT_RE.sub(" ", text)
    text = _NOISE_RE.sub(" ", text)
    text = _LABEL_RE.sub(" ", text)
    text = _SEPARATOR_RE.sub(", ", text)

    segments = (normalize_whitespace(s).strip(" :.-") for s in text.split(","))
    return ", ".join(s for s in segments if s)


def focus_address_span(text: str) -> str:
    """Narrow to "<number> <street> ... <postcode>[, country]" when such a span exists."""
    m = _FOCUS_RE.search(text)
    return m.group(0).strip(" ,") if m else text


def find_heuristic_address(soup: BeautifulSoup) -> ParsedAddress | None:
    text = best_address_text(soup)
    if text is None:
        return None
    cleaned = focus_address_span(clean_address_text(text))
    return parse_address(cleaned)
