from __future__ import annotations

import hashlib
import hmac
from typing import Optional, Protocol

from .errors import AuthenticationFailed, IdentityUnavailable
from .logging import get_logger

logger = get_logger(__name__)


def hash_owner_id(raw_id: str, salt: str) -> str:
    # Hash respondent ids to avoid storing direct identifiers.
    h = hashlib.sha256()
    h.update((salt + "::" + raw_id).encode("utf-8"))
    return h.hexdigest()


class IdentityProvider(Protocol):
    def current_owner_id(self) -> Optional[str]:
        # Stable opaque id for the current respondent, or None if not known yet.
        ...


class SaltedIdentityProvider:
    """
    Wraps a raw identity (e.g. an auth provider's uid) and exposes only its
    salted hash. The raw id may arrive after construction via sign_in().
    """

    def __init__(self, salt: str, raw_id: Optional[str] = None):
        self._salt = salt
        self._owner_id: Optional[str] = None
        if raw_id:
            self.sign_in(raw_id)

    def sign_in(self, raw_id: str) -> None:
        if not raw_id or not raw_id.strip():
            raise IdentityUnavailable("Empty identity supplied by the auth provider.")
        self._owner_id = hash_owner_id(raw_id.strip(), self._salt)

    def sign_out(self) -> None:
        self._owner_id = None

    def current_owner_id(self) -> Optional[str]:
        return self._owner_id


def require_owner_id(provider: IdentityProvider) -> str:
    owner_id = provider.current_owner_id()
    if not owner_id:
        raise IdentityUnavailable("No respondent identity yet; submission is blocked.")
    return owner_id


class AdminGate:
    """
    Shared-secret gate for the administrative view.

    The passphrase comes from configuration; with none configured every
    attempt fails. This is a convenience lock for an internal tool, not an
    authorization boundary.
    """

    def __init__(self, passphrase: Optional[str]):
        self._passphrase = passphrase or None
        self.authenticated = False

    def authenticate(self, attempt: str) -> None:
        if self._passphrase is None:
            logger.warning("Admin login attempted but no passphrase is configured")
            raise AuthenticationFailed("Administrative access is disabled.")
        if not hmac.compare_digest(attempt.encode("utf-8"), self._passphrase.encode("utf-8")):
            self.authenticated = False
            logger.warning("Admin login failed")
            raise AuthenticationFailed("Incorrect passphrase.")
        self.authenticated = True
        logger.info("Admin login succeeded")

    def logout(self) -> None:
        self.authenticated = False

    def require(self) -> None:
        if not self.authenticated:
            raise AuthenticationFailed("Administrative login required.")
