"""Unit tests for EmailNotifier."""
import smtplib
from unittest.mock import MagicMock, patch

import pytest

from notifier.email_notifier import EmailNotifier, build_html, build_subject, build_text
from processor.models import Event
from watcher.config import WatcherConfig


@pytest.fixture
def events():
    return [
        Event(city='København', title='AI & <ethics>', date='2026-11-10', time='18:00',
              link='https://ida.dk/event/ai'),
        Event(city='København', title='Python meetup', date='', time='',
              link='https://ida.dk/event/python'),
    ]


@pytest.fixture
def notifier():
    return EmailNotifier(
        host='smtp.example.com',
        port=587,
        username='user',
        password='secret',
        from_address='watch@example.com',
        recipients=['a@example.com', 'b@example.com'],
    )


class TestMessageContent:
    """Test cases for subject and body rendering."""

    def test_subject_single_event_uses_title(self, events):
        assert build_subject(events[:1], 'København') == 'IDA events (København): AI & <ethics>'

    def test_subject_multiple_events_uses_count(self, events):
        assert build_subject(events, 'København') == 'IDA events (København): 2 found'

    def test_html_lists_escaped_titles_and_links(self, events):
        html = build_html(events, 'København')

        assert '<a href="https://ida.dk/event/ai">AI &amp; &lt;ethics&gt;</a>' in html
        assert '<a href="https://ida.dk/event/python">Python meetup</a>' in html
        assert '2026-11-10 18:00' in html
        assert '<strong>2</strong>' in html

    def test_text_lists_title_and_link(self, events):
        text = build_text(events)

        assert text == (
            '• AI & <ethics>\nhttps://ida.dk/event/ai\n\n'
            '• Python meetup\nhttps://ida.dk/event/python'
        )

    def test_build_message_headers(self, notifier, events):
        msg = notifier.build_message(events)

        assert msg['From'] == 'watch@example.com'
        assert msg['To'] == 'a@example.com, b@example.com'
        assert msg['Message-ID']
        assert [part.get_content_type() for part in msg.get_payload()] == [
            'text/plain', 'text/html'
        ]


class TestSend:
    """Test cases for SMTP delivery."""

    @patch('notifier.email_notifier.smtplib.SMTP')
    def test_send_uses_starttls(self, mock_smtp_class, notifier, events):
        server = MagicMock()
        mock_smtp_class.return_value = server
        server.__enter__.return_value = server

        message_id = notifier.send(events)

        mock_smtp_class.assert_called_once_with('smtp.example.com', 587, timeout=30)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with('user', 'secret')
        sent = server.send_message.call_args[0][0]
        assert sent['Message-ID'] == message_id

    @patch('notifier.email_notifier.smtplib.SMTP_SSL')
    def test_send_secure_uses_ssl(self, mock_ssl_class, events):
        server = MagicMock()
        mock_ssl_class.return_value = server
        server.__enter__.return_value = server
        notifier = EmailNotifier(
            host='smtp.example.com', port=465, username='user', password='secret',
            from_address='watch@example.com', recipients=['a@example.com'], secure=True,
        )

        notifier.send(events)

        mock_ssl_class.assert_called_once_with('smtp.example.com', 465, timeout=30)
        server.starttls.assert_not_called()
        server.send_message.assert_called_once()

    @patch('notifier.email_notifier.smtplib.SMTP')
    def test_transport_errors_propagate(self, mock_smtp_class, notifier, events):
        server = MagicMock()
        mock_smtp_class.return_value = server
        server.__enter__.return_value = server
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b'bad credentials')

        with pytest.raises(smtplib.SMTPAuthenticationError):
            notifier.send(events)

    def test_send_without_events_raises(self, notifier):
        with pytest.raises(ValueError):
            notifier.send([])


def test_from_config():
    config = WatcherConfig(
        auth_header='SiteKey x',
        smtp_host='smtp.example.com',
        smtp_user='user',
        smtp_password='secret',
        mail_from='watch@example.com',
        mail_to=('a@example.com',),
        smtp_port=465,
        smtp_secure=True,
    )

    notifier = EmailNotifier.from_config(config)

    assert notifier.host == 'smtp.example.com'
    assert notifier.port == 465
    assert notifier.secure is True
    assert notifier.recipients == ['a@example.com']
