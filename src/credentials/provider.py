"""Role-based credential provider.

Assumes a fixed IAM role through STS and hands out the resulting temporary
credentials. The credentials are cached in a single slot and renewed lazily:
a consumer calling ``get()`` triggers a new ``AssumeRole`` call only when the
cached session is missing or expires within ``RENEW_BUFFER``. Failures while
renewing are logged and absorbed, so consumers keep receiving the last good
credentials (or ``None`` when there never were any).
"""

import os
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import boto3

from src.credentials.clock import Clock, SystemClock, to_millis
from src.credentials.services.sts_client import STSClient

logger = logging.getLogger(__name__)

RENEW_BUFFER = timedelta(milliseconds=60 * 1000)
DURATION_SECONDS = 3600
DEFAULT_SESSION_NAME_PREFIX = "role-based-credential-provider"
ROLE_ARN_ENV_VAR = "AWS_ROLE_ARN"

AssumeRole = Callable[[str, str, int], Dict[str, Any]]


def _parse_expiration(value: Any) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise ValueError(f"Invalid credential expiration: {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class CredentialSession:
    access_key_id: str
    secret_access_key: str
    session_token: str
    expires_at: datetime

    @classmethod
    def from_sts(cls, credentials: Dict[str, Any]) -> "CredentialSession":
        """Build a session from the ``Credentials`` block of an AssumeRole response.

        Raises KeyError/TypeError/ValueError on a malformed block.
        """
        return cls(
            access_key_id=credentials['AccessKeyId'],
            secret_access_key=credentials['SecretAccessKey'],
            session_token=credentials['SessionToken'],
            expires_at=_parse_expiration(credentials['Expiration']),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            'AccessKeyId': self.access_key_id,
            'SecretAccessKey': self.secret_access_key,
            'SessionToken': self.session_token,
            'Expiration': self.expires_at,
        }


class RoleBasedCredentialProvider:
    def __init__(self,
                 role_arn: Optional[str] = None,
                 session_name_prefix: Optional[str] = None,
                 assume_role: Optional[AssumeRole] = None,
                 clock: Optional[Clock] = None,
                 env_lookup: Optional[Callable[[str], Optional[str]]] = None):
        self._role_arn = role_arn
        self._session_name_prefix = session_name_prefix
        self._assume_role = assume_role or STSClient().assume_role
        self._clock = clock or SystemClock()
        self._env_lookup = env_lookup or os.environ.get
        self._lock = threading.Lock()
        self._session: Optional[CredentialSession] = None

    @classmethod
    def from_config(cls, config, **kwargs) -> "RoleBasedCredentialProvider":
        return cls(role_arn=config.role_arn,
                   session_name_prefix=config.session_name_prefix,
                   **kwargs)

    @property
    def role_arn(self) -> Optional[str]:
        return self._role_arn

    @property
    def session_name_prefix(self) -> str:
        return self._session_name_prefix or DEFAULT_SESSION_NAME_PREFIX

    def get(self) -> Optional[CredentialSession]:
        """Return the cached credentials, renewing them first if they are stale.

        The result may still be stale when the renewal failed, and is ``None``
        until a role has been assumed successfully.
        """
        logger.debug("get credentials called")
        if self.needs_new_session():
            self.start_session()
        return self._current()

    def force_refresh(self) -> Optional[CredentialSession]:
        """Assume the role again regardless of the cached session's expiry."""
        logger.debug("forced refresh called")
        self.start_session()
        return self._current()

    def boto3_session(self, region: Optional[str] = None) -> Optional[boto3.Session]:
        session = self.get()
        if session is None:
            return None
        credentials = session.as_dict()
        return boto3.Session(region_name=region,
                             aws_access_key_id=credentials.get('AccessKeyId'),
                             aws_secret_access_key=credentials.get('SecretAccessKey'),
                             aws_session_token=credentials.get('SessionToken'))

    def needs_new_session(self) -> bool:
        session = self._current()
        if session is None:
            logger.warning("Session credentials do not exist. Needs new session")
            return True

        time_remaining = session.expires_at - self._clock.now()
        if time_remaining < RENEW_BUFFER:
            logger.warning(f"Session credentials expire at {session.expires_at.isoformat()}. Needs new session")
            return True
        logger.debug("Session credentials exist and are not expired")
        return False

    def start_session(self) -> Optional[CredentialSession]:
        role_arn = self.resolve_role_arn()
        if not role_arn:
            return self._current()

        session_name = self.generate_session_name()
        try:
            credentials = self._assume_role(role_arn, session_name, DURATION_SECONDS)
            session = CredentialSession.from_sts(credentials)
        except Exception as e:
            logger.warning(f"Unable to start a new session for {role_arn}, keeping previous credentials: {e}")
            return self._current()

        with self._lock:
            self._session = session
        logger.info(f"Assumed role {role_arn} as {session_name}, valid until {session.expires_at.isoformat()}")
        return session

    def resolve_role_arn(self) -> Optional[str]:
        if self._role_arn:
            return self._role_arn

        logger.warning(f"No role configured, checking environment variable {ROLE_ARN_ENV_VAR}")
        role_arn = self._env_lookup(ROLE_ARN_ENV_VAR)
        if not role_arn:
            logger.warning(f"Environment variable {ROLE_ARN_ENV_VAR} not set. Not assuming a role")
            return None
        logger.info(f"Using role ARN {role_arn} from {ROLE_ARN_ENV_VAR}")
        return role_arn

    def generate_session_name(self) -> str:
        return f"{self.session_name_prefix}{to_millis(self._clock.now())}"

    def _current(self) -> Optional[CredentialSession]:
        with self._lock:
            return self._session
