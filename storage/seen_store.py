"""JSON file store for links that have already been notified."""
import json
import logging
import os
from typing import Set

logger = logging.getLogger(__name__)


class JsonSeenStore:
    """Seen-set persisted as a JSON array of links in a local file."""

    def __init__(self, path: str):
        """
        Initialize the store.

        Args:
            path: Location of the JSON state file
        """
        self.path = path
        self.tmp_path = f"{path}.tmp"

    def load(self) -> Set[str]:
        """
        Read the seen set from disk.

        A missing, unreadable or malformed file yields an empty set.
        """
        if not os.path.exists(self.path):
            logger.info(f"No state file at {self.path}, starting with empty seen set")
            return set()

        try:
            with open(self.path, encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read state file {self.path}: {e}")
            return set()

        if not isinstance(data, list):
            logger.warning(
                f"State file {self.path} does not contain a JSON array, ignoring it"
            )
            return set()

        seen = {link for link in data if isinstance(link, str)}
        logger.info(f"Loaded {len(seen)} seen links from {self.path}")
        return seen

    def save(self, seen: Set[str]) -> bool:
        """
        Write the seen set atomically (temp file, then rename).

        Errors are logged, not raised.

        Returns:
            True if the state was written
        """
        try:
            with open(self.tmp_path, 'w', encoding='utf-8') as f:
                json.dump(sorted(seen), f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(self.tmp_path, self.path)
        except OSError as e:
            logger.error(f"Could not save state to {self.path}: {e}")
            return False

        logger.debug(f"Saved {len(seen)} seen links to {self.path}")
        return True
