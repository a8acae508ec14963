"""E-mail notification of new IDA events."""
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid
from html import escape
from typing import List, Sequence

from processor.models import Event

logger = logging.getLogger(__name__)


def build_subject(events: Sequence[Event], city: str) -> str:
    """Use the event title for a single event, otherwise a count."""
    base = f"IDA events ({city})"
    if len(events) == 1:
        return f"{base}: {events[0].title}"
    return f"{base}: {len(events)} found"


def _when(event: Event) -> str:
    return ' '.join(part for part in (event.date, event.time) if part)


def build_html(events: Sequence[Event], city: str) -> str:
    """Render the HTML body: one linked list item per event."""
    items = []
    for event in events:
        when = _when(event)
        suffix = f' <span style="color:#666;">({escape(when)})</span>' if when else ''
        items.append(
            f'<li><a href="{escape(event.link, quote=True)}">{escape(event.title)}</a>{suffix}</li>'
        )

    sent_at = datetime.now().strftime('%Y-%m-%d %H:%M')
    return (
        '<div style="font-family:Segoe UI,Arial,sans-serif;font-size:14px;'
        'line-height:1.5;color:#1a1a1a;">\n'
        f'  <p>Found <strong>{len(events)}</strong> IDA event(s) in {escape(city)}:</p>\n'
        f'  <ul>\n    {"".join(items)}\n  </ul>\n'
        f'  <p style="color:#666;margin-top:16px;">Automatic message - {sent_at}</p>\n'
        '</div>'
    )


def build_text(events: Sequence[Event]) -> str:
    """Render the plain-text body."""
    return '\n\n'.join(f"• {event.title}\n{event.link}" for event in events)


class EmailNotifier:
    """Sends event summaries over SMTP."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        recipients: Sequence[str],
        secure: bool = False,
        city: str = 'København',
        timeout: int = 30,
    ):
        """
        Initialize the notifier.

        Args:
            host: SMTP server host
            port: SMTP server port
            username: SMTP login
            password: SMTP password
            from_address: Sender address
            recipients: Recipient addresses
            secure: Use implicit TLS (port 465) instead of STARTTLS
            city: City named in the subject and body
            timeout: SMTP socket timeout in seconds
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.recipients: List[str] = list(recipients)
        self.secure = secure
        self.city = city
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> 'EmailNotifier':
        """Create a notifier from a WatcherConfig."""
        return cls(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_user,
            password=config.smtp_password,
            from_address=config.mail_from,
            recipients=config.mail_to,
            secure=config.smtp_secure,
        )

    def build_message(self, events: Sequence[Event]) -> MIMEMultipart:
        """Compose the multipart message for a list of events."""
        msg = MIMEMultipart('alternative')
        msg['Subject'] = build_subject(events, self.city)
        msg['From'] = self.from_address
        msg['To'] = ', '.join(self.recipients)
        msg['Date'] = formatdate(localtime=True)
        msg['Message-ID'] = make_msgid()

        msg.attach(MIMEText(build_text(events), 'plain', 'utf-8'))
        msg.attach(MIMEText(build_html(events, self.city), 'html', 'utf-8'))
        return msg

    def send(self, events: Sequence[Event]) -> str:
        """
        Send one e-mail listing the events.

        Args:
            events: Non-empty list of events

        Returns:
            Message-ID of the sent message

        Raises:
            ValueError: If events is empty
            smtplib.SMTPException, OSError: If delivery fails
        """
        if not events:
            raise ValueError("Cannot send a notification without events")

        msg = self.build_message(events)

        if self.secure:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)

        with server:
            if not self.secure:
                server.starttls()
            server.login(self.username, self.password)
            server.send_message(msg)

        message_id = msg['Message-ID']
        logger.info(
            f"E-mail sent: {message_id} to {', '.join(self.recipients)}",
            extra={'event_count': len(events)}
        )
        return message_id
