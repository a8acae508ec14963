"""Extraction of event records from IDA search result HTML."""
import logging
import re
from typing import List, Tuple
from urllib.parse import urlsplit, urlunsplit

from bs4 import BeautifulSoup, ParserRejectedMarkup

from processor.models import Event

logger = logging.getLogger(__name__)

SITE_ORIGIN = 'https://ida.dk'
DEFAULT_CITY = 'København'

# Paths that identify an event or course listing page
EVENT_PATH_PATTERNS = (
    re.compile(r'/event/', re.IGNORECASE),
    re.compile(r'/arrangementer-og-kurser/arrangementer/', re.IGNORECASE),
)

# Characters after </a> searched for date and time
CONTEXT_WINDOW = 800

ANCHOR_RE = re.compile(r'<a[^>]+href="([^"]+)"[^>]*>([\s\S]*?)</a>', re.IGNORECASE)
ABSOLUTE_URL_RE = re.compile(r'^[a-z][a-z0-9+.\-]*://', re.IGNORECASE)
TAG_RE = re.compile(r'<[^>]+>')
DATE_RE = re.compile(r'\b(\d{1,2})[./\-](\d{1,2})[./\-](\d{4}|\d{2})\b')
TIME_RE = re.compile(r'\bkl\.?\s*(\d{1,2})[:.](\d{2})\b', re.IGNORECASE)


def is_event_link(href: str) -> bool:
    """Return True if the href points at an event or course listing."""
    return any(pattern.search(href) for pattern in EVENT_PATH_PATTERNS)


def canonical_url(url: str) -> str:
    """
    Strip query string and fragment from a URL.

    Returns the input unchanged if it cannot be parsed.
    """
    try:
        parts = urlsplit(url)
        return urlunsplit((parts.scheme, parts.netloc, parts.path, '', ''))
    except ValueError:
        return url


def resolve_link(href: str, origin: str = SITE_ORIGIN) -> str:
    """Turn an href into an absolute URL on the site origin."""
    if ABSOLUTE_URL_RE.match(href):
        return href
    if href.startswith('/'):
        return f"{origin}{href}"
    return f"{origin}/{href}"


def strip_tags(fragment: str) -> str:
    """
    Remove markup from an HTML fragment and collapse whitespace.

    Args:
        fragment: HTML text, possibly truncated mid-tag

    Returns:
        Plain text with single spaces
    """
    if not fragment:
        return ''
    try:
        text = BeautifulSoup(fragment, 'html.parser').get_text(' ')
    except ParserRejectedMarkup:
        text = TAG_RE.sub(' ', fragment)
    return ' '.join(text.split())


def parse_date(text: str) -> str:
    """
    Find a numeric d.m.y date in text and return it as YYYY-MM-DD.

    Two-digit years are taken to be in the 2000s. Matches with an
    impossible day or month (e.g. the "19.00-21" in a time range) are
    skipped. Returns an empty string if no date is present.
    """
    for match in DATE_RE.finditer(text):
        day, month, year = match.groups()
        if not (1 <= int(day) <= 31 and 1 <= int(month) <= 12):
            continue
        if len(year) == 2:
            year = f"20{year}"
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    return ''


def parse_time(text: str) -> str:
    """Find a "kl. 19:00" style time in text and return it as HH:MM."""
    match = TIME_RE.search(text)
    if not match:
        return ''
    hour, minute = match.groups()
    return f"{hour.zfill(2)}:{minute}"


def extract_date_and_time(context: str) -> Tuple[str, str]:
    """Extract (date, time) from the HTML that follows an event link."""
    clean = strip_tags(context)
    return parse_date(clean), parse_time(clean)


class EventExtractor:
    """Extracts unique events from a search result HTML fragment."""

    def __init__(self, city: str = DEFAULT_CITY, origin: str = SITE_ORIGIN,
                 context_window: int = CONTEXT_WINDOW):
        """
        Initialize the extractor.

        Args:
            city: City stamped on every event (filtering happens in the search facet)
            origin: Site origin used to resolve relative links
            context_window: Characters after each anchor searched for date/time
        """
        self.city = city
        self.origin = origin
        self.context_window = context_window

    def extract(self, html: str) -> List[Event]:
        """
        Extract events from HTML in document order.

        Later anchors pointing at an already extracted canonical link are
        dropped. Never raises; unparseable anchors are skipped.

        Args:
            html: Search result HTML fragment

        Returns:
            List of Event objects with unique links
        """
        events = []
        seen_links = set()

        for match in ANCHOR_RE.finditer(html or ''):
            try:
                event = self._parse_anchor(html, match)
            except Exception as e:
                logger.warning(f"Failed to parse event anchor: {e}")
                continue

            if event is None or event.link in seen_links:
                continue
            seen_links.add(event.link)
            events.append(event)

        return events

    def _parse_anchor(self, html: str, match: re.Match) -> Event:
        """Build an Event from an anchor match, or None if it is not an event link."""
        href, inner = match.group(1), match.group(2)
        if not is_event_link(href):
            return None

        context = html[match.end():match.end() + self.context_window]
        date, time = extract_date_and_time(context)

        return Event(
            city=self.city,
            title=strip_tags(inner),
            date=date,
            time=time,
            link=canonical_url(resolve_link(href, self.origin)),
        )


def extract_events(html: str) -> List[Event]:
    """Extract events from HTML using the default city and site origin."""
    return EventExtractor().extract(html)
