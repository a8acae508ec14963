"""Command line entry point for the IDA event watcher."""
import argparse
import dataclasses
import logging
import signal
import sys
from typing import List, Optional

from dotenv import load_dotenv

from watcher.components import build_detector
from watcher.config import ConfigurationError, WatcherConfig
from watcher.event_watcher import EventWatcher
from watcher.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Watch IDA for new events in København and send e-mail"
    )
    parser.add_argument(
        "--send-now",
        action="store_true",
        help="Send all current events once and exit, ignoring saved state",
    )
    parser.add_argument(
        "--state-file",
        help="Path to the seen-links state file (overrides STATE_FILE)",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (overrides LOG_LEVEL)",
    )
    return parser.parse_args(argv)


def install_signal_handlers(watcher: EventWatcher) -> None:
    """Stop the watcher and exit on SIGINT/SIGTERM.

    A repeated signal while the final save is running is ignored so the
    save always completes.
    """
    shutting_down = []

    def shutdown(signum, frame):
        if shutting_down:
            logger.info(f"Received signal {signum} during shutdown, ignoring")
            return
        shutting_down.append(signum)
        signal.signal(signal.SIGINT, signal.SIG_IGN)
        signal.signal(signal.SIGTERM, signal.SIG_IGN)

        logger.info(f"Received signal {signum}")
        watcher.stop()
        raise SystemExit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the watcher.

    Returns:
        Process exit code: 0 on success, 1 if a one-shot run failed,
        2 on configuration errors
    """
    args = parse_args(argv)
    load_dotenv(override=False)

    try:
        config = WatcherConfig.from_env()
    except ConfigurationError as e:
        setup_logging(args.log_level or 'INFO')
        logger.error(f"Invalid configuration: {e}")
        return 2

    overrides = {}
    if args.state_file:
        overrides['state_file'] = args.state_file
    if args.log_level:
        overrides['log_level'] = args.log_level
    if overrides:
        config = dataclasses.replace(config, **overrides)

    setup_logging(config.log_level)
    detector = build_detector(config)

    if args.send_now:
        try:
            detector.send_current_events()
        except Exception as e:
            logger.error(f"One-shot run failed: {e}", exc_info=True)
            return 1
        return 0

    watcher = EventWatcher(detector, config.poll_interval_seconds)
    install_signal_handlers(watcher)
    watcher.start()
    return 0


if __name__ == "__main__":
    sys.exit(main())
