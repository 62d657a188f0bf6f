from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

ADDRESS_FIELDS = (
    "full_address",
    "address_line1",
    "address_line2",
    "city",
    "region",
    "postal_code",
    "country",
)


class ParsedAddress(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    full_address: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    region: str | None = None
    postal_code: str | None = None
    country: str | None = None

    def completeness(self) -> int:
        """Number of non-empty address fields."""
        return sum(1 for name in ADDRESS_FIELDS if (getattr(self, name) or "").strip())


class ScrapedAddress(ParsedAddress):
    source_page: str
