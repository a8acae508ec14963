"""DynamoDB store for links that have already been notified."""
import logging
import time
from typing import Set

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class DynamoDBSeenStore:
    """Seen-set kept as one DynamoDB item per link."""

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table (hash key "link")
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        self._persisted: Set[str] = set()
        logger.info(f"Initialized DynamoDBSeenStore for table: {table_name}")

    def load(self) -> Set[str]:
        """
        Retrieve all seen links using a paginated Scan.

        Errors yield an empty set.
        """
        logger.info("Scanning DynamoDB table for seen links")
        try:
            response = self.table.scan(ProjectionExpression='link')
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ProjectionExpression='link',
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error scanning DynamoDB table {self.table_name}: {e}")
            return set()

        seen = {item['link'] for item in items if isinstance(item.get('link'), str)}
        self._persisted = set(seen)
        logger.info(f"Retrieved {len(seen)} seen links from DynamoDB")
        return seen

    def save(self, seen: Set[str]) -> bool:
        """
        Write links not yet stored in the table.

        Errors are logged, not raised.

        Returns:
            True if every pending link was written
        """
        pending = sorted(seen - self._persisted)
        if not pending:
            return True

        first_seen = int(time.time())
        try:
            with self.table.batch_writer() as writer:
                for link in pending:
                    writer.put_item(Item={'link': link, 'first_seen': first_seen})
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error writing seen links to DynamoDB: {e}")
            return False

        self._persisted.update(pending)
        logger.info(f"Wrote {len(pending)} seen links to DynamoDB")
        return True
