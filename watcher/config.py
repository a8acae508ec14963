"""Watcher configuration loaded once from the environment."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

DEFAULT_SEARCH_ENDPOINT = 'https://api.cludo.com/api/v3/2677/12845/search'
DEFAULT_POLL_INTERVAL_MS = 10 * 60 * 1000


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or invalid."""


def _env_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {'1', 'true', 'yes', 'y', 'on'}


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid integer for {name}: {raw!r}")


def _split_recipients(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(',') if part.strip())


@dataclass(frozen=True)
class WatcherConfig:
    """Immutable settings shared by all watcher components."""
    auth_header: str
    smtp_host: str
    smtp_user: str
    smtp_password: str
    mail_from: str
    mail_to: Tuple[str, ...]
    smtp_port: int = 587
    smtp_secure: bool = False
    search_endpoint: str = DEFAULT_SEARCH_ENDPOINT
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_MS / 1000
    per_page: int = 50
    skip_past_events: bool = False
    state_file: str = 'seen.json'
    state_backend: str = 'file'
    table_name: str = 'ida-watch-seen'
    timeout_seconds: int = 15
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 default_backend: str = 'file') -> 'WatcherConfig':
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)
            default_backend: State backend used when STATE_BACKEND is unset

        Returns:
            WatcherConfig instance

        Raises:
            ConfigurationError: If required variables are missing or invalid
        """
        if environ is None:
            environ = os.environ

        smtp_user = environ.get('SMTP_USER', '')
        required = {
            'IDA_AUTH': environ.get('IDA_AUTH', ''),
            'SMTP_HOST': environ.get('SMTP_HOST', ''),
            'SMTP_USER': smtp_user,
            'SMTP_PASS': environ.get('SMTP_PASS', ''),
            'MAIL_FROM': environ.get('MAIL_FROM') or smtp_user,
            'MAIL_TO': environ.get('MAIL_TO', ''),
        }
        missing = [name for name, value in required.items() if not value.strip()]
        mail_to = _split_recipients(required['MAIL_TO'])
        if required['MAIL_TO'].strip() and not mail_to:
            missing.append('MAIL_TO')
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        state_backend = (environ.get('STATE_BACKEND') or default_backend).strip().lower()
        if state_backend not in ('file', 'dynamodb'):
            raise ConfigurationError(f"Invalid STATE_BACKEND: {state_backend!r}")

        per_page = _env_int(environ, 'PER_PAGE', 50)
        if per_page < 1:
            raise ConfigurationError(f"PER_PAGE must be positive, got {per_page}")
        poll_interval_ms = _env_int(environ, 'POLL_INTERVAL_MS', DEFAULT_POLL_INTERVAL_MS)
        if poll_interval_ms < 1:
            raise ConfigurationError(
                f"POLL_INTERVAL_MS must be positive, got {poll_interval_ms}"
            )

        return cls(
            auth_header=required['IDA_AUTH'],
            smtp_host=required['SMTP_HOST'],
            smtp_user=smtp_user,
            smtp_password=required['SMTP_PASS'],
            mail_from=required['MAIL_FROM'],
            mail_to=mail_to,
            smtp_port=_env_int(environ, 'SMTP_PORT', 587),
            smtp_secure=_env_bool(environ.get('SMTP_SECURE')),
            search_endpoint=environ.get('SEARCH_ENDPOINT') or DEFAULT_SEARCH_ENDPOINT,
            poll_interval_seconds=poll_interval_ms / 1000,
            per_page=per_page,
            skip_past_events=_env_bool(environ.get('SKIP_PAST_EVENTS')),
            state_file=environ.get('STATE_FILE') or os.path.join(os.getcwd(), 'seen.json'),
            state_backend=state_backend,
            table_name=environ.get('TABLE_NAME') or 'ida-watch-seen',
            timeout_seconds=_env_int(environ, 'TIMEOUT_SECONDS', 15),
            log_level=environ.get('LOG_LEVEL', 'INFO'),
        )
