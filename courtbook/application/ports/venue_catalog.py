from __future__ import annotations

from abc import ABC, abstractmethod

from courtbook.domain.entities.venue import Court, VenueOperatingConfig


class VenueCatalogPort(ABC):
    @abstractmethod
    def get_venue(self, venue_id: str) -> VenueOperatingConfig | None:
        """Operating configuration of a venue, or None if unknown."""
        raise NotImplementedError

    @abstractmethod
    def list_courts(self, venue_id: str) -> list[Court]:
        """All courts of a venue, active or not."""
        raise NotImplementedError
