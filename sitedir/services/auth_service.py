import logging
import secrets
import time
import uuid

from sitedir.repositories.base import AbstractKeyValueStore
from sitedir.services.errors import AuthError

logger = logging.getLogger(__name__)

ADMIN_TOKEN_KEY = "admin_token"
ADMIN_TOKEN_EXPIRY_KEY = "admin_token_expiry"
BEARER_PREFIX = "Bearer "


class AdminCredentialStore:
    """The single process-wide admin token record."""

    def __init__(self, store: AbstractKeyValueStore) -> None:
        self._store = store

    def get_token(self) -> str | None:
        return self._store.get(ADMIN_TOKEN_KEY)

    def get_expiry(self) -> int | None:
        raw = self._store.get(ADMIN_TOKEN_EXPIRY_KEY)
        return int(raw) if raw else None

    def set_token(self, token: str, expires_at_ms: int) -> None:
        self._store.put(ADMIN_TOKEN_KEY, token)
        self._store.put(ADMIN_TOKEN_EXPIRY_KEY, str(expires_at_ms))


class AuthService:
    def __init__(
        self,
        credentials: AdminCredentialStore,
        username: str,
        password: str,
        token_ttl_hours: int = 24,
    ) -> None:
        self._credentials = credentials
        self._username = username
        self._password = password
        self._token_ttl_ms = token_ttl_hours * 60 * 60 * 1000

    def login(self, username: str | None, password: str | None) -> str:
        """
        Check the admin credentials and issue a fresh token.
        The new token replaces any previous one.
        """
        if username != self._username or password != self._password:
            logger.info("[auth] login rejected | username=%s", username)
            raise AuthError("Invalid username or password")

        now_ms = int(time.time() * 1000)
        token = f"{uuid.uuid4()}-{now_ms}"
        self._credentials.set_token(token, now_ms + self._token_ttl_ms)
        logger.info("[auth] admin logged in")
        return token

    def verify(self, authorization: str | None) -> None:
        """
        Raise AuthError unless the header carries the current admin token.
        The stored expiry is not consulted.
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise AuthError("Unauthorized")

        token = authorization[len(BEARER_PREFIX):]
        stored = self._credentials.get_token()
        if stored is None or not secrets.compare_digest(token.encode(), stored.encode()):
            raise AuthError("Unauthorized")
