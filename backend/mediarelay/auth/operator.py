"""
Operator (dashboard) credentials.

The login endpoint hands back ``Basic base64(username:password)``; admin
endpoints accept exactly that Authorization header. The token is derived
from the credentials themselves, so it never expires and rotating the
password invalidates it.
"""
import base64
import binascii
import logging
import secrets
from typing import Optional

from mediarelay.config import Settings

logger = logging.getLogger(__name__)


def build_token(username: str, password: str) -> str:
    raw = f"{username}:{password}".encode("utf-8")
    return f"Basic {base64.b64encode(raw).decode('ascii')}"


def _decode_basic(authorization: str) -> Optional[tuple[str, str]]:
    if not authorization.startswith("Basic "):
        return None
    try:
        decoded = base64.b64decode(authorization[6:], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        logger.warning(f"Auth decode error: {e}")
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class OperatorAuth:
    """Checks operator credentials against the configured pair."""

    def __init__(self, settings: Settings):
        self._username = settings.admin_username
        self._password = settings.admin_password

    @property
    def is_configured(self) -> bool:
        return bool(self._username and self._password)

    def check_credentials(self, username: Optional[str], password: Optional[str]) -> bool:
        """Constant-time comparison. Always False when unconfigured."""
        if not self.is_configured or username is None or password is None:
            return False
        user_ok = secrets.compare_digest(username.encode("utf-8"), self._username.encode("utf-8"))
        pass_ok = secrets.compare_digest(password.encode("utf-8"), self._password.encode("utf-8"))
        return user_ok and pass_ok

    def login(self, username: Optional[str], password: Optional[str]) -> Optional[str]:
        """Token for valid credentials, None otherwise."""
        if not self.check_credentials(username, password):
            return None
        return build_token(username, password)

    def is_authorized(self, authorization: Optional[str]) -> bool:
        """Validate an Authorization header produced by login()."""
        if not authorization:
            return False
        credentials = _decode_basic(authorization)
        if credentials is None:
            return False
        return self.check_credentials(*credentials)
