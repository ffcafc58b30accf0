"""
Calendar feed ingestion.

Fetches iCalendar (.ics) feeds over HTTP and renders upcoming events as
one line each, e.g.:

    2025-03-14 18:30 – Spring Concert (Main Gym)

Only SUMMARY, DTSTART and LOCATION are read. Events that started more
than `lookback_days` ago are dropped so the corpus stays forward-looking.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import requests

from src.common.config import Config
from src.common.error_handling import IngestionError

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; SchoolContactAssistant/1.0)",
    "Accept": "text/calendar,text/plain;q=0.9,*/*;q=0.5",
}

# 20250314 or 20250314T183000 or 20250314T183000Z
ICS_DATE_PATTERN = re.compile(r"^(\d{8})(?:T(\d{6})(Z)?)?$")


@dataclass
class CalendarEvent:
    """One upcoming event read from a feed."""
    summary: str
    start: datetime
    all_day: bool = False
    location: Optional[str] = None

    def render(self) -> str:
        when = self.start.strftime("%Y-%m-%d") if self.all_day else self.start.strftime("%Y-%m-%d %H:%M")
        line = f"{when} – {self.summary}"
        if self.location:
            line += f" ({self.location})"
        return line


def _unfold(ics_text: str) -> List[str]:
    """Join RFC 5545 folded lines (continuations start with space or tab)."""
    lines: List[str] = []
    for raw in ics_text.splitlines():
        if raw[:1] in (" ", "\t") and lines:
            lines[-1] += raw[1:]
        else:
            lines.append(raw)
    return lines


def _unescape(value: str) -> str:
    return (
        value.replace("\\n", " ")
        .replace("\\N", " ")
        .replace("\\,", ",")
        .replace("\\;", ";")
        .replace("\\\\", "\\")
        .strip()
    )


def _parse_ics_date(value: str) -> Optional[Dict]:
    match = ICS_DATE_PATTERN.match(value.strip())
    if not match:
        return None
    day, clock, utc = match.groups()
    if clock is None:
        return {"start": datetime.strptime(day, "%Y%m%d"), "all_day": True}
    start = datetime.strptime(day + clock, "%Y%m%d%H%M%S")
    if utc:
        # Render UTC times in local wall-clock time
        start = start.replace(tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    return {"start": start, "all_day": False}


def parse_ics_events(ics_text: str) -> List[CalendarEvent]:
    """
    Parse VEVENT blocks from iCalendar text.

    Events without a SUMMARY or a readable DTSTART are skipped.
    """
    events: List[CalendarEvent] = []
    current: Optional[Dict[str, str]] = None

    for line in _unfold(ics_text):
        if line == "BEGIN:VEVENT":
            current = {}
            continue
        if line == "END:VEVENT":
            if current is not None:
                event = _build_event(current)
                if event is not None:
                    events.append(event)
            current = None
            continue
        if current is None or ":" not in line:
            continue

        name_part, value = line.split(":", 1)
        name = name_part.split(";", 1)[0].upper()
        if name in ("SUMMARY", "DTSTART", "LOCATION"):
            current[name] = value

    return events


def _build_event(fields: Dict[str, str]) -> Optional[CalendarEvent]:
    summary = _unescape(fields.get("SUMMARY", ""))
    parsed = _parse_ics_date(fields.get("DTSTART", ""))
    if not summary or parsed is None:
        return None
    location = _unescape(fields.get("LOCATION", "")) or None
    return CalendarEvent(summary=summary, location=location, **parsed)


def filter_upcoming(
    events: List[CalendarEvent],
    lookback_days: int,
    now: Optional[datetime] = None,
) -> List[CalendarEvent]:
    """Keep events starting no earlier than `lookback_days` before now, sorted by start."""
    now = now or datetime.now()
    cutoff = now - timedelta(days=lookback_days)
    return sorted((e for e in events if e.start >= cutoff), key=lambda e: e.start)


class CalendarFeedSource:
    """Calendar collaborator backed by a single .ics URL."""

    def __init__(
        self,
        url: str,
        lookback_days: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.url = url
        self.source_id = f"calendar:{url}"
        self.lookback_days = lookback_days if lookback_days is not None else Config.CALENDAR_LOOKBACK_DAYS
        self.timeout = timeout if timeout is not None else Config.CRAWL_PAGE_TIMEOUT_SECONDS

    def _download(self) -> str:
        try:
            response = requests.get(self.url, headers=HEADERS, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise IngestionError(self.source_id, f"request timed out after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            raise IngestionError(self.source_id, f"network error: {e}")

        if response.status_code != 200:
            raise IngestionError(self.source_id, f"feed returned status {response.status_code}")
        if "BEGIN:VCALENDAR" not in response.text:
            raise IngestionError(self.source_id, "response is not an iCalendar feed")
        return response.text

    def fetch_event_text(self, now: Optional[datetime] = None) -> str:
        events = filter_upcoming(parse_ics_events(self._download()), self.lookback_days, now)
        logger.info(f"Calendar {self.url}: {len(events)} upcoming events")
        return "\n".join(event.render() for event in events)


def calendar_sources_from_config() -> List[CalendarFeedSource]:
    return [CalendarFeedSource(url) for url in Config.CALENDAR_FEED_URLS]
