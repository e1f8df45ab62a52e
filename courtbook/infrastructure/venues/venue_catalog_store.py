from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from courtbook.application.ports.venue_catalog import VenueCatalogPort
from courtbook.domain.entities.booking_flow import BookingFlowType
from courtbook.domain.entities.venue import (
    WEEKDAYS,
    Court,
    CourtPricing,
    DayHours,
    SpecialRate,
    VenueOperatingConfig,
)


class VenueCatalogStore(VenueCatalogPort):
    def __init__(
        self,
        venues: dict[str, VenueOperatingConfig] | None = None,
        courts: list[Court] | None = None,
    ) -> None:
        self._venues = dict(venues or {})
        self._courts: dict[str, list[Court]] = {}
        for court in courts or []:
            self._courts.setdefault(court.venue_id, []).append(court)

    @classmethod
    def from_json(cls, path: str, default_timezone: str = "Europe/Berlin") -> VenueCatalogStore:
        """Load venues and courts from a JSON document; a missing file yields an empty catalog."""
        logger = logging.getLogger(__name__)
        file_path = Path(path)
        if not file_path.exists():
            logger.warning("Venue catalog file not found", extra={"path": str(file_path)})
            return cls()

        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        venues: dict[str, VenueOperatingConfig] = {}
        courts: list[Court] = []
        for raw in data.get("venues", []):
            venue = _parse_venue(raw, default_timezone)
            venues[venue.venue_id] = venue
            courts.extend(_parse_court(venue.venue_id, raw_court) for raw_court in raw.get("courts", []))

        logger.info("Venue catalog loaded", extra={"venues": len(venues), "courts": len(courts)})
        return cls(venues=venues, courts=courts)

    def get_venue(self, venue_id: str) -> VenueOperatingConfig | None:
        return self._venues.get(venue_id)

    def list_courts(self, venue_id: str) -> list[Court]:
        return list(self._courts.get(venue_id, []))


def _parse_venue(raw: dict[str, Any], default_timezone: str) -> VenueOperatingConfig:
    hours: dict[str, DayHours | None] = {}
    raw_hours = raw.get("operating_hours") or {}
    for day in WEEKDAYS:
        entry = raw_hours.get(day)
        hours[day] = DayHours(open=entry["open"], close=entry["close"]) if entry else None

    try:
        flow = BookingFlowType(raw.get("booking_flow", BookingFlowType.DATE_COURT_TIME_DURATION.value))
    except ValueError:
        flow = BookingFlowType.DATE_COURT_TIME_DURATION

    return VenueOperatingConfig(
        venue_id=raw["id"],
        name=raw.get("name", raw["id"]),
        operating_hours=hours,
        min_booking_time=int(raw.get("min_booking_time", 30)),
        max_booking_time=int(raw.get("max_booking_time", 180)),
        booking_time_step=int(raw.get("booking_time_step", 30)),
        timezone=raw.get("timezone") or default_timezone,
        booking_flow=flow,
        status=raw.get("status", "active"),
    )


def _parse_court(venue_id: str, raw: dict[str, Any]) -> Court:
    pricing = raw.get("pricing") or {}
    special_rates = tuple(
        SpecialRate(
            name=item.get("name", ""),
            rate=float(item["rate"]),
            apply_days=tuple(day.lower() for day in item.get("apply_days", [])),
            start_time=item.get("start_time"),
            end_time=item.get("end_time"),
        )
        for item in pricing.get("special_rates", [])
    )
    return Court(
        id=raw["id"],
        venue_id=venue_id,
        name=raw.get("name", raw["id"]),
        status=raw.get("status", "active"),
        pricing=CourtPricing(
            base_hourly_rate=float(pricing.get("base_hourly_rate", 0.0)),
            peak_hour_rate=pricing.get("peak_hour_rate"),
            weekend_rate=pricing.get("weekend_rate"),
            special_rates=special_rates,
        ),
    )
