import logging
import re
from collections.abc import Mapping

import usaddress

from contact_scanner.schemas.address import ParsedAddress

logger = logging.getLogger(__name__)

MIN_OPAQUE_LENGTH = 10
MAX_OPAQUE_LENGTH = 300

# usaddress labels folded onto our fields; labels left unmapped (Recipient,
# NotAddress...) are ignored.
_TAG_MAPPING = {
    "AddressNumberPrefix": "address_line1",
    "AddressNumber": "address_line1",
    "AddressNumberSuffix": "address_line1",
    "StreetNamePreModifier": "address_line1",
    "StreetNamePreDirectional": "address_line1",
    "StreetNamePreType": "address_line1",
    "StreetName": "address_line1",
    "StreetNamePostType": "address_line1",
    "StreetNamePostDirectional": "address_line1",
    "StreetNamePostModifier": "address_line1",
    "CornerOf": "address_line1",
    "IntersectionSeparator": "address_line1",
    "LandmarkName": "address_line1",
    "USPSBoxType": "address_line1",
    "USPSBoxID": "address_line1",
    "USPSBoxGroupType": "address_line1",
    "USPSBoxGroupID": "address_line1",
    "BuildingName": "address_line2",
    "OccupancyType": "address_line2",
    "OccupancyIdentifier": "address_line2",
    "SubaddressType": "address_line2",
    "SubaddressIdentifier": "address_line2",
    "PlaceName": "city",
    "StateName": "region",
    "ZipCode": "postal_code",
    "CountryName": "country",
}

_MAPPED_FIELDS = frozenset(_TAG_MAPPING.values())

US_ZIP = r"\b\d{5}(?:-\d{4})?\b"
UK_POSTCODE = r"\b[A-Z]{1,2}\d[A-Z\d]?\s*\d[A-Z]{2}\b"
CA_POSTCODE = r"\b[A-Z]\d[A-Z]\s?\d[A-Z]\d\b"
POSTAL_CODE = rf"(?:{US_ZIP}|{UK_POSTCODE}|{CA_POSTCODE})"

COUNTRIES = (
    "United States of America", "United States", "USA", "U.S.A.",
    "United Kingdom", "UK", "Canada", "Australia", "Ireland", "Germany",
    "France", "Netherlands", "Spain", "Italy", "Mexico", "India",
)
COUNTRY = r"\b(?:" + "|".join(re.escape(c) for c in COUNTRIES) + r")(?!\w)"

_POSTAL_RE = re.compile(POSTAL_CODE)
_CITY_STATE_RE = re.compile(r"([A-Za-z][A-Za-z .'\-]*?)\s*,\s*([A-Z]{2})(?![A-Za-z])")
_STREET_LINE_RE = re.compile(r"(?:^|,\s*)(\d{1,6}[A-Za-z]?\s+[A-Za-z][^,]*)")
_UNIT_RE = re.compile(
    r"(?:^|,\s*)((?:(?:suite|ste|unit|floor|fl|apt|room)\b\.?|#)\s*[\w\-]+)",
    re.IGNORECASE,
)
_COUNTRY_RE = re.compile(COUNTRY)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = re.sub(r"\s+", " ", str(value)).strip(" ,;")
    return value or None


def _is_usable(parsed: ParsedAddress) -> bool:
    return bool(parsed.address_line1 or parsed.city or parsed.postal_code)


def library_parse(text: str) -> ParsedAddress | None:
    """Parse with usaddress. None when the tagger fails or finds nothing usable."""
    try:
        tagged, _address_type = usaddress.tag(text, tag_mapping=_TAG_MAPPING)
    except usaddress.RepeatedLabelError:
        logger.debug("usaddress could not tag %r (repeated label)", text)
        return None
    except Exception:
        logger.warning("usaddress failed on %r", text, exc_info=True)
        return None

    fields = {k: _clean(v) for k, v in tagged.items() if k in _MAPPED_FIELDS}
    parsed = ParsedAddress(full_address=text, **fields)
    return parsed if _is_usable(parsed) else None


def manual_parse(text: str) -> ParsedAddress | None:
    """Independent regexes for postcode, "City, ST", street line, unit and country."""
    postal = _POSTAL_RE.search(text)
    city_state = _CITY_STATE_RE.search(text)
    street = _STREET_LINE_RE.search(text)
    unit = _UNIT_RE.search(text)
    country = _COUNTRY_RE.search(text)

    line1 = _clean(street.group(1)) if street else None
    if line1 and postal and postal.group(0) in line1:
        # "62704 Springfield" style segments are postcodes, not street numbers
        line1 = None

    parsed = ParsedAddress(
        full_address=text,
        address_line1=line1,
        address_line2=_clean(unit.group(1)) if unit else None,
        city=_clean(city_state.group(1)) if city_state else None,
        region=city_state.group(2) if city_state else None,
        postal_code=postal.group(0) if postal else None,
        country=_clean(country.group(0)) if country else None,
    )
    return parsed if _is_usable(parsed) else None


def _missed_regional_fields(parsed: ParsedAddress, text: str) -> bool:
    """usaddress only knows US formats; a postcode or country it missed or split means it misread the text."""
    postcodes = [m.group(0) for m in _POSTAL_RE.finditer(text)]
    if postcodes and parsed.postal_code not in postcodes:
        return True
    country = _COUNTRY_RE.search(text)
    return bool(country) and parsed.country != country.group(0)


def parse_address(text: str) -> ParsedAddress | None:
    """Structure a free-text address: library first, regexes second, opaque text last."""
    text = _clean(text)
    if not text:
        return None

    parsed = library_parse(text)
    if parsed is not None and _missed_regional_fields(parsed, text):
        parsed = manual_parse(text) or parsed
    if parsed is None:
        parsed = manual_parse(text)
    if parsed is not None:
        return parsed

    if MIN_OPAQUE_LENGTH <= len(text) <= MAX_OPAQUE_LENGTH:
        return ParsedAddress(full_address=text)
    return None


def _schema_value(value) -> str | None:
    if isinstance(value, Mapping):
        value = value.get("name") or value.get("@id")
    if isinstance(value, list):
        value = ", ".join(str(v) for v in value if v)
    return _clean(value) if value else None


def address_from_structured(data: Mapping) -> ParsedAddress | None:
    """Map schema.org PostalAddress keys (JSON-LD or microdata) onto ParsedAddress."""
    street = _schema_value(data.get("streetAddress"))
    line1, line2 = street, None
    if street:
        unit = _UNIT_RE.search(street)
        if unit and unit.start(1) > 0:
            line1 = _clean(street[:unit.start(1)])
            line2 = _clean(street[unit.start(1):])

    parsed = ParsedAddress(
        address_line1=line1,
        address_line2=line2,
        city=_schema_value(data.get("addressLocality")),
        region=_schema_value(data.get("addressRegion")),
        postal_code=_schema_value(data.get("postalCode")),
        country=_schema_value(data.get("addressCountry")),
    )
    parts = [
        parsed.address_line1, parsed.address_line2, parsed.city,
        " ".join(p for p in (parsed.region, parsed.postal_code) if p),
        parsed.country,
    ]
    full = ", ".join(p for p in parts if p)
    if not full:
        return None
    parsed.full_address = full
    return parsed
