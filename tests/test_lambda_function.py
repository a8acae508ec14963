"""Integration tests for Lambda handler."""
import json
import os
from unittest.mock import Mock, patch

import pytest

from lambda_function import lambda_handler
from processor.models import CycleResult, Event


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'IDA_AUTH': 'SiteKey test',
        'SMTP_HOST': 'smtp.example.com',
        'SMTP_USER': 'user@example.com',
        'SMTP_PASS': 'secret',
        'MAIL_TO': 'a@example.com',
        'TABLE_NAME': 'test-ida-watch-seen',
        'LOG_LEVEL': 'INFO',
    }
    with patch.dict(os.environ, env_vars, clear=True):
        yield env_vars


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'test-function'
    context.aws_request_id = 'test-request-id'
    return context


@pytest.fixture
def new_event():
    return Event(
        city='København',
        title='Test Event',
        date='2026-11-10',
        time='18:00',
        link='https://ida.dk/event/test'
    )


class TestLambdaHandler:
    """Test cases for Lambda handler."""

    @patch('lambda_function.build_detector')
    def test_successful_cycle(self, mock_build, mock_env, mock_context, new_event):
        """Test a cycle with new events returns statistics."""
        detector = Mock()
        detector.run_cycle.return_value = CycleResult(
            fetched=5, new_events=[new_event], notified=True, saved=True
        )
        mock_build.return_value = detector

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['statistics']['events_fetched'] == 5
        assert body['statistics']['new_events'] == 1
        assert body['statistics']['notified'] is True
        assert body['statistics']['state_saved'] is True
        assert body['new_links'] == ['https://ida.dk/event/test']

        detector.load_state.assert_called_once()
        detector.run_cycle.assert_called_once()

    @patch('lambda_function.build_detector')
    def test_defaults_to_dynamodb_backend(self, mock_build, mock_env, mock_context):
        """Test Lambda state lives in DynamoDB unless configured otherwise."""
        mock_build.return_value.run_cycle.return_value = CycleResult()

        lambda_handler({}, mock_context)

        config = mock_build.call_args[0][0]
        assert config.state_backend == 'dynamodb'
        assert config.table_name == 'test-ida-watch-seen'

    @patch('lambda_function.build_detector')
    def test_explicit_backend_is_kept(self, mock_build, mock_env, mock_context):
        mock_build.return_value.run_cycle.return_value = CycleResult()

        with patch.dict(os.environ, {'STATE_BACKEND': 'file', 'STATE_FILE': '/tmp/seen.json'}):
            lambda_handler({}, mock_context)

        assert mock_build.call_args[0][0].state_backend == 'file'

    @patch('lambda_function.build_detector')
    def test_cycle_error(self, mock_build, mock_env, mock_context):
        """Test a failed cycle is reported with status 500."""
        mock_build.return_value.run_cycle.return_value = CycleResult(error='HTTP 503')

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['error'] == 'HTTP 503'
        assert body['note'] == 'Seen links were not updated'

    @patch('lambda_function.build_detector')
    def test_unexpected_error(self, mock_build, mock_env, mock_context):
        mock_build.side_effect = Exception('boto error')

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Watch cycle failed'
        assert body['error_type'] == 'Exception'

    def test_missing_configuration(self, mock_context):
        """Test missing credentials fail fast."""
        with patch.dict(os.environ, {}, clear=True):
            response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Invalid configuration'
        assert 'IDA_AUTH' in body['error']
