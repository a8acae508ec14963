"""Change detection between fetched events and the seen set."""
import logging
from typing import Iterable, List, Set

from processor.models import CycleResult, Event

logger = logging.getLogger(__name__)


def find_new_events(events: Iterable[Event], seen: Set[str]) -> List[Event]:
    """Return events whose link is not in the seen set, in order."""
    return [event for event in events if event.link not in seen]


class ChangeDetector:
    """
    Runs fetch/diff/persist/notify cycles.

    New links are added to the seen set and saved before the notifier is
    called, so a crash after sending cannot cause the same e-mail twice.
    """

    def __init__(self, client, store, notifier):
        """
        Initialize the detector.

        Args:
            client: Object with fetch_all_events() -> List[Event]
            store: Object with load() -> Set[str] and save(Set[str]) -> bool
            notifier: Object with send(List[Event]) -> str
        """
        self.client = client
        self.store = store
        self.notifier = notifier
        self.seen: Set[str] = set()
        self.loaded = False

    def load_state(self) -> None:
        """Load the seen set from the store."""
        self.seen = self.store.load()
        self.loaded = True
        logger.info(f"Seen set holds {len(self.seen)} links")

    def flush(self) -> bool:
        """Persist the current seen set."""
        return self.store.save(self.seen)

    def run_cycle(self) -> CycleResult:
        """
        Run one cycle. Errors are logged and reported on the result.

        Returns:
            CycleResult describing what happened
        """
        result = CycleResult()
        try:
            events = self.client.fetch_all_events()
            result.fetched = len(events)

            new_events = find_new_events(events, self.seen)
            if not new_events:
                logger.info(f"No new events ({len(events)} current)")
                return result

            result.new_events = new_events
            self.seen.update(event.link for event in new_events)
            result.saved = self.store.save(self.seen)

            logger.info(f"Found {len(new_events)} new events, sending notification")
            self.notifier.send(new_events)
            result.notified = True

        except Exception as e:
            logger.error(
                f"Cycle failed: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            result.error = str(e)

        return result

    def send_current_events(self) -> int:
        """
        Fetch once and notify about every current event.

        The seen set is neither read nor written. Errors propagate.

        Returns:
            Number of events sent
        """
        events = self.client.fetch_all_events()
        if not events:
            logger.info("No events to send")
            return 0

        self.notifier.send(events)
        logger.info(f"One-shot e-mail sent with {len(events)} events")
        return len(events)
