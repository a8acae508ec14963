"""Wiring of watcher components from configuration."""
from notifier.email_notifier import EmailNotifier
from processor.change_detector import ChangeDetector
from scraper.ida_search import IdaSearchClient
from storage.dynamodb_seen_store import DynamoDBSeenStore
from storage.seen_store import JsonSeenStore
from watcher.config import WatcherConfig


def build_store(config: WatcherConfig):
    """Create the seen-set store selected by STATE_BACKEND."""
    if config.state_backend == 'dynamodb':
        return DynamoDBSeenStore(table_name=config.table_name)
    return JsonSeenStore(config.state_file)


def build_client(config: WatcherConfig) -> IdaSearchClient:
    return IdaSearchClient(
        auth_header=config.auth_header,
        endpoint=config.search_endpoint,
        per_page=config.per_page,
        timeout=config.timeout_seconds,
        skip_past_events=config.skip_past_events,
    )


def build_detector(config: WatcherConfig) -> ChangeDetector:
    """Create a ChangeDetector with client, store and notifier."""
    return ChangeDetector(
        client=build_client(config),
        store=build_store(config),
        notifier=EmailNotifier.from_config(config),
    )
