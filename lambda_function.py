"""AWS Lambda handler running one IDA watch cycle per invocation."""
import json
import logging
import time
from typing import Dict, Any

from watcher.components import build_detector
from watcher.config import ConfigurationError, WatcherConfig
from watcher.logging_setup import setup_logging


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the IDA event watcher.

    Loads the seen set, runs a single fetch/diff/persist/notify cycle and
    reports what happened. State lives in DynamoDB unless STATE_BACKEND
    says otherwise.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    setup_logging('INFO')
    logger = logging.getLogger(__name__)
    start_time = time.time()

    try:
        config = WatcherConfig.from_env(default_backend='dynamodb')
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Invalid configuration',
                'error': str(e),
                'error_type': type(e).__name__
            })
        }

    setup_logging(config.log_level)

    logger.info(
        "Lambda execution started",
        extra={
            'state_backend': config.state_backend,
            'table_name': config.table_name,
            'per_page': config.per_page
        }
    )

    try:
        detector = build_detector(config)
        detector.load_state()
        result = detector.run_cycle()
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Watch cycle failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }

    duration = time.time() - start_time

    if result.error:
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Watch cycle failed',
                'error': result.error,
                'note': 'Seen links were not updated' if not result.new_events else
                        'Seen links were updated before the failure',
                'duration_seconds': round(duration, 2)
            })
        }

    logger.info(
        "Lambda execution completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'events_fetched': result.fetched,
            'new_events': len(result.new_events),
            'notified': result.notified
        }
    )

    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': 'Watch cycle completed successfully',
            'statistics': {
                'events_fetched': result.fetched,
                'new_events': len(result.new_events),
                'notified': result.notified,
                'state_saved': result.saved,
                'duration_seconds': round(duration, 2)
            },
            'new_links': [e.link for e in result.new_events]
        }, ensure_ascii=False)
    }
