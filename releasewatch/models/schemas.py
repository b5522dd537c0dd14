from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from releasewatch.tools.dates import parse_date


class FeedKind(str, Enum):
    STRUCTURED_RELEASE = "structuredRelease"
    RSS = "rss"


class FeedConfig(BaseModel):
    id: str
    name: str
    vendor: str = ""
    url: str
    enabled: bool = True


class FeedItem(BaseModel):
    id: str
    title: str = ""
    link: str = ""
    summary: str = ""
    published_at: datetime | None = None
    source_name: str = ""
    vendor_name: str = ""
    feed_kind: FeedKind = FeedKind.RSS

    # structured releases only
    version: str | None = None
    vendor_slug: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


# ---------------------------
# Release feed payload
# ---------------------------

class Vendor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    display_name: str | None = None
    slug: str | None = None


class Product(BaseModel):
    model_config = ConfigDict(extra="ignore")

    display_name: str | None = None
    vendor: Vendor | None = None


class ReleaseDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    release_summary: str | None = None
    release_number: str | None = None
    release_name: str | None = None

    @field_validator("release_number", "release_name", mode="before")
    @classmethod
    def _number_to_str(cls, v: Any) -> Any:
        # the feed sends "2", 2 and 2.1 interchangeably
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class Release(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    product: Product | None = None
    release_details: ReleaseDetails | None = None
    release_date: str | None = None
    created_at: str | None = None
    url: str | None = None

    @property
    def released_at(self) -> datetime | None:
        return parse_date(self.release_date)

    @property
    def product_name(self) -> str:
        if self.product and self.product.display_name:
            return self.product.display_name
        return "Unknown Product"

    @property
    def vendor_name(self) -> str:
        if self.product and self.product.vendor:
            return self.product.vendor.display_name or ""
        return ""

    @property
    def version(self) -> str:
        d = self.release_details
        if d is None:
            return ""
        return d.release_number or d.release_name or ""

    def to_feed_item(self, source_name: str = "Release feed") -> FeedItem:
        vendor = self.vendor_name
        slug = self.product.vendor.slug if self.product and self.product.vendor else None
        summary = ""
        if self.release_details and self.release_details.release_summary:
            summary = self.release_details.release_summary.strip()

        return FeedItem(
            id=str(self.id),
            title=f"{vendor} {self.product_name}".strip(),
            link=self.url or "",
            summary=summary,
            published_at=self.released_at,
            source_name=source_name,
            vendor_name=vendor,
            feed_kind=FeedKind.STRUCTURED_RELEASE,
            version=self.version or None,
            vendor_slug=slug or None,
            raw=self.model_dump(),
        )
