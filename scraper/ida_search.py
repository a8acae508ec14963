"""Client for the IDA event search API."""
import json
import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import requests

from processor.event_extractor import EventExtractor
from processor.models import Event, PageResult

logger = logging.getLogger(__name__)


class SearchResponseError(ValueError):
    """Raised when the search API returns a body that is not a JSON object."""


def _today_utc() -> str:
    return datetime.now(timezone.utc).date().isoformat()


class IdaSearchClient:
    """Fetches current IDA events for one city from the search API."""

    SEARCH_ENDPOINT = 'https://api.cludo.com/api/v3/2677/12845/search'
    CATEGORY = 'Arrangementer'
    STATUSES = ('Afholdes', 'Venteliste')
    HTML_FIELDS = ('SearchResult', 'SearchResultHtml')
    TOTAL_FIELD = 'TotalDocuments'

    MAX_ATTEMPTS = 3
    BASE_DELAY = 0.5  # seconds

    def __init__(
        self,
        auth_header: str,
        endpoint: str = SEARCH_ENDPOINT,
        per_page: int = 50,
        timeout: int = 15,
        skip_past_events: bool = False,
        extractor: Optional[EventExtractor] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        today: Callable[[], str] = _today_utc,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the search client.

        Args:
            auth_header: Value of the Authorization header (e.g. "SiteKey ...")
            endpoint: Search API URL
            per_page: Results requested per page
            timeout: HTTP request timeout in seconds
            skip_past_events: Drop events dated before today
            extractor: EventExtractor used to parse the HTML payload
            session: requests session (a new one is created if omitted)
            sleep: Delay function used between retries
            today: Returns today's date as YYYY-MM-DD
            clock: Monotonic clock used to enforce the overall request timeout
        """
        self.auth_header = auth_header
        self.endpoint = endpoint
        self.per_page = per_page
        self.timeout = timeout
        self.skip_past_events = skip_past_events
        self.extractor = extractor or EventExtractor()
        self.session = session or requests.Session()
        self.sleep = sleep
        self.today = today
        self.clock = clock

    def build_body(self, page: int) -> Dict[str, Any]:
        """Build the search request body for one page."""
        return {
            'ResponseType': 'JsonHtml',
            'Template': 'SearchContent',
            'facets': {
                'Category': [self.CATEGORY],
                'CourseCategory': [],
                'AdditionalType': [],
                'City': [self.extractor.city],
                'Organizer': [],
                'CourseLanguage': [],
                'RelevantFor': [],
                'date': [],
                'range': [],
                'Status': list(self.STATUSES),
            },
            'filters': {},
            'page': page,
            'query': '*',
            'text': '',
            'traits': [],
            'sort': {
                'StartDate_date': 'asc',
                'DatePublished_date': 'asc',
            },
            'rangeFacets': {},
            'perPage': self.per_page,
            'enableRelatedSearches': False,
            'applyMultiLevelFacets': True,
            'topHitsFields': [{'field': 'TopHits', 'maxFieldValues': 10}],
        }

    def _headers(self) -> Dict[str, str]:
        origin = self.extractor.origin
        return {
            'Authorization': self.auth_header,
            'Content-Type': 'application/json;charset=UTF-8',
            'Accept': 'application/json',
            'Origin': origin,
            'Referer': f"{origin}/soeg",
            'X-Requested-With': 'XMLHttpRequest',
            'User-Agent': 'Mozilla/5.0 (IDA-events-watcher-email)',
        }

    def fetch_page(self, page: int) -> PageResult:
        """
        Fetch and parse one search page with retry logic.

        Args:
            page: 1-based page number

        Returns:
            PageResult with the page's events and the reported total

        Raises:
            requests.RequestException: If all retry attempts fail on the network
            ValueError: If all retry attempts return an unparseable body
        """
        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            try:
                logger.debug(
                    f"Fetching search page {page} (attempt {attempt}/{self.MAX_ATTEMPTS})"
                )
                return self._parse_response(json.loads(self._post(page)))

            except (requests.RequestException, ValueError) as e:
                if attempt >= self.MAX_ATTEMPTS:
                    logger.error(
                        f"All {self.MAX_ATTEMPTS} attempts for page {page} failed. "
                        f"Last error: {e}"
                    )
                    raise
                delay = self.BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(
                    f"Request for page {page} failed (attempt {attempt}/{self.MAX_ATTEMPTS}): "
                    f"{e}. Retrying in {delay} seconds..."
                )
                self.sleep(delay)

    def _post(self, page: int) -> bytes:
        """
        POST one search request and return the raw body.

        requests applies its timeout per socket operation, so the body is
        streamed and the whole exchange is cut off after self.timeout seconds.
        """
        deadline = self.clock() + self.timeout
        with self.session.post(
            self.endpoint,
            json=self.build_body(page),
            headers=self._headers(),
            timeout=self.timeout,
            stream=True
        ) as response:
            response.raise_for_status()
            chunks = []
            for chunk in response.iter_content(chunk_size=8192):
                if self.clock() > deadline:
                    raise requests.Timeout(
                        f"Search request for page {page} exceeded {self.timeout} seconds"
                    )
                chunks.append(chunk)
        return b"".join(chunks)

    def _parse_response(self, data: Any) -> PageResult:
        """Extract events and total count from a decoded response body."""
        if not isinstance(data, dict):
            raise SearchResponseError(
                f"Expected a JSON object, got {type(data).__name__}"
            )

        html = ''
        for field_name in self.HTML_FIELDS:
            if data.get(field_name) is not None:
                html = data[field_name]
                break
        if not isinstance(html, str):
            html = ''

        return PageResult(
            events=self.extractor.extract(html),
            total=self._parse_total(data.get(self.TOTAL_FIELD)),
        )

    @staticmethod
    def _parse_total(value: Any) -> int:
        if isinstance(value, bool):
            return 0
        try:
            total = float(value)
        except (TypeError, ValueError):
            return 0
        if math.isnan(total) or math.isinf(total):
            return 0
        return int(total)

    def fetch_all_events(self) -> List[Event]:
        """
        Fetch every page of current events.

        Page 1 determines the number of pages. Events on later pages whose
        link was already collected are dropped.

        Returns:
            List of Event objects with unique links
        """
        first = self.fetch_page(1)
        events = list(first.events)
        total = first.total
        pages = math.ceil(total / self.per_page) if total > 0 else 1

        logger.info(
            f"TotalDocuments: {total}, pages: {pages}, perPage: {self.per_page}, "
            f"firstPageEvents: {len(first.events)}"
        )

        for page in range(2, pages + 1):
            result = self.fetch_page(page)
            existing = {event.link for event in events}
            new_on_page = [event for event in result.events if event.link not in existing]
            logger.info(
                f"Page {page}: fetched {len(result.events)}, "
                f"new after dedup: {len(new_on_page)}"
            )
            events.extend(new_on_page)

        if self.skip_past_events:
            today = self.today()
            before = len(events)
            # Undated events are kept
            events = [event for event in events if not event.date or event.date >= today]
            logger.info(f"Skipped {before - len(events)} past events")

        return events
