"""Record types stored in the ledger."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

NEVER_SEEN = datetime.min.replace(tzinfo=timezone.utc)
"""Sentinel ``last_seen`` value for records never surfaced to a caller."""

PHOTO_PAGE_URL = "https://unsplash.com/photos/{id}"
PUBLISHER_PAGE_URL = "https://unsplash.com/@{username}"


def normalize_timestamp(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class CacheRecord:
    """One remote image plus its local cache status.

    Attributes:
        id: Remote photo id (primary key)
        full_image_url: Source location of the full-resolution asset
        title: Location title, when the photo has one
        publisher_username: Photographer username
        publisher_name_first: Photographer first name
        publisher_name_last: Photographer last name
        publisher_portfolio_url: Photographer portfolio link
        downloaded: True once the asset bytes are in the blob store
        last_seen: When the record was last handed out, or NEVER_SEEN
    """

    id: str
    full_image_url: str
    title: Optional[str] = None
    publisher_username: Optional[str] = None
    publisher_name_first: Optional[str] = None
    publisher_name_last: Optional[str] = None
    publisher_portfolio_url: Optional[str] = None
    downloaded: bool = False
    last_seen: datetime = NEVER_SEEN

    @property
    def is_unseen(self) -> bool:
        """True if the record has never been selected."""
        return self.last_seen == NEVER_SEEN

    @property
    def image_human_url(self) -> str:
        """Public photo page for attribution links."""
        return PHOTO_PAGE_URL.format(id=self.id)

    @property
    def publisher_human_url(self) -> Optional[str]:
        """Public profile page of the photographer, if the username is known."""
        if not self.publisher_username:
            return None
        return PUBLISHER_PAGE_URL.format(username=self.publisher_username)

    @property
    def publisher_display_name(self) -> Optional[str]:
        parts = [p for p in (self.publisher_name_first, self.publisher_name_last) if p]
        if parts:
            return " ".join(parts)
        return self.publisher_username
