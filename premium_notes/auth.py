"""
Auth provider client and the view gate derived from the session.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .cache import LocalCache
from .exceptions import NetworkError, RemoteError
from .logging import get_logger
from .remote import RemoteClient, parse_row
from .schemas import AuthSession, AuthUser


logger = get_logger(__name__)

VIEW_LOGIN = "login"
VIEW_FORGOT = "forgot"
VIEW_RESET = "reset"
VIEW_MAIN = "main"

# Refresh a little before the provider would reject the token.
EXPIRY_MARGIN_SECONDS = 60

# Cache slot holding the PKCE verifier between sending a recovery email and
# opening its link.
PKCE_VERIFIER_SLOT = "pkce_code_verifier"


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    USER_UPDATED = "USER_UPDATED"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


AuthListener = Callable[[AuthEvent, Optional[AuthSession]], None]


def parse_session(payload: Mapping[str, Any]) -> AuthSession:
    data: Dict[str, Any] = dict(payload or {})
    if data.get("expires_at") is None and data.get("expires_in") is not None:
        data["expires_at"] = int(time.time()) + int(data["expires_in"])
    return parse_row(AuthSession, data)


def make_code_challenge() -> Tuple[str, str]:
    """Return a fresh PKCE verifier and its S256 challenge."""
    verifier = secrets.token_urlsafe(48)
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


def resolve_view(view: str, has_session: bool, has_local_notes: bool) -> str:
    """
    Decide which screen to render.

    Cached notes keep the main screen reachable without a session so the
    app stays readable offline.
    """
    if view in (VIEW_FORGOT, VIEW_RESET):
        return view
    if not has_session and not has_local_notes:
        return VIEW_LOGIN
    return VIEW_MAIN


class AuthClient:
    """Session holder over the ``/auth/v1`` endpoints."""

    def __init__(
        self,
        remote: RemoteClient,
        store: LocalCache,
        *,
        redirect_url: Optional[str] = None,
    ) -> None:
        self.remote = remote
        self.store = store
        self.redirect_url = redirect_url
        self._session: Optional[AuthSession] = None
        self._listeners: List[AuthListener] = []

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: AuthEvent) -> None:
        logger.info("Auth state changed", auth_event=event.value, signed_in=self._session is not None)
        for listener in list(self._listeners):
            listener(event, self._session)

    def _set_session(self, auth_session: Optional[AuthSession], event: AuthEvent) -> None:
        self._session = auth_session
        self.store.write_session(auth_session)
        self._emit(event)

    def restore_session(self) -> Optional[AuthSession]:
        """Load the persisted session, refreshing it when it has expired."""
        stored = self.store.read_session()
        if stored is not None and self._is_expired(stored) and stored.refresh_token:
            try:
                stored = self._refresh(stored.refresh_token)
                self.store.write_session(stored)
            except NetworkError:
                logger.info("Keeping expired session while offline")
            except RemoteError as exc:
                logger.warning("Session refresh rejected", error=exc.message)
                stored = None
                self.store.write_session(None)
        self._session = stored
        self._emit(AuthEvent.INITIAL_SESSION)
        return stored

    @staticmethod
    def _is_expired(auth_session: AuthSession) -> bool:
        if auth_session.expires_at is None:
            return False
        return auth_session.expires_at - EXPIRY_MARGIN_SECONDS <= time.time()

    def _refresh(self, refresh_token: str) -> AuthSession:
        data = self.remote.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
            authenticated=False,
        )
        return parse_session(data)

    def refresh_if_needed(self) -> None:
        if self._session is None or not self._session.refresh_token:
            return
        if not self._is_expired(self._session):
            return
        self._set_session(self._refresh(self._session.refresh_token), AuthEvent.TOKEN_REFRESHED)

    def sign_in(self, email: str, password: str) -> AuthSession:
        data = self.remote.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            authenticated=False,
        )
        auth_session = parse_session(data)
        self._set_session(auth_session, AuthEvent.SIGNED_IN)
        return auth_session

    def sign_up(self, email: str, password: str) -> Optional[AuthSession]:
        """
        Register a new account.

        Returns the session when the provider signs the user in immediately,
        or None when an email confirmation is pending.
        """
        params = {"redirect_to": self.redirect_url} if self.redirect_url else None
        data = self.remote.request(
            "POST",
            "/auth/v1/signup",
            params=params,
            json={"email": email, "password": password},
            authenticated=False,
        ) or {}
        if data.get("access_token"):
            auth_session = parse_session(data)
            self._set_session(auth_session, AuthEvent.SIGNED_IN)
            return auth_session
        return None

    def reset_password_for_email(self, email: str) -> None:
        """
        Send a recovery email using the PKCE flow.

        The link comes back as ``?code=...``, which the server-side UI can
        read; the verifier stays in the local cache until it is exchanged.
        """
        verifier, challenge = make_code_challenge()
        params = {"redirect_to": self.redirect_url} if self.redirect_url else None
        self.remote.request(
            "POST",
            "/auth/v1/recover",
            params=params,
            json={
                "email": email,
                "code_challenge": challenge,
                "code_challenge_method": "s256",
            },
            authenticated=False,
        )
        self.store.write(PKCE_VERIFIER_SLOT, verifier)

    def update_password(self, password: str) -> None:
        self.remote.request("PUT", "/auth/v1/user", json={"password": password})
        self._emit(AuthEvent.USER_UPDATED)

    def handle_redirect(self, params: Mapping[str, str]) -> bool:
        """
        Consume a password-recovery link.

        Supports the PKCE ``code`` form (exchanged with the verifier saved by
        ``reset_password_for_email``), the ``token_hash`` form (verified
        against ``/verify``) and tokens passed as query parameters. Tokens in
        the URL fragment never reach the server and are not supported.
        Returns True when a recovery session was established.
        """
        if params.get("code"):
            return self._exchange_recovery_code(params["code"])
        if params.get("type") != "recovery":
            return False
        if params.get("token_hash"):
            data = self.remote.request(
                "POST",
                "/auth/v1/verify",
                json={"type": "recovery", "token_hash": params["token_hash"]},
                authenticated=False,
            )
            auth_session = parse_session(data)
        elif params.get("access_token"):
            previous = self._session
            # The user lookup below authenticates with this token.
            self._session = AuthSession(
                access_token=params["access_token"],
                refresh_token=params.get("refresh_token"),
                user=AuthUser(id=""),
            )
            try:
                user = parse_row(AuthUser, self.remote.request("GET", "/auth/v1/user"))
            except RemoteError:
                self._session = previous
                raise
            auth_session = self._session.model_copy(update={"user": user})
        else:
            return False
        self._set_session(auth_session, AuthEvent.PASSWORD_RECOVERY)
        return True

    def _exchange_recovery_code(self, code: str) -> bool:
        verifier = self.store.read(PKCE_VERIFIER_SLOT)
        if not verifier:
            logger.warning("Recovery code received without a pending verifier")
            return False
        data = self.remote.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": verifier},
            authenticated=False,
        )
        self.store.remove(PKCE_VERIFIER_SLOT)
        self._set_session(parse_session(data), AuthEvent.PASSWORD_RECOVERY)
        return True

    def sign_out(self) -> None:
        """
        Revoke the session remotely and always drop it locally.

        Remote failures are re-raised after the local session is gone.
        """
        try:
            if self._session is not None:
                self.remote.request("POST", "/auth/v1/logout")
        finally:
            self._set_session(None, AuthEvent.SIGNED_OUT)


__all__ = [
    "AuthClient",
    "AuthEvent",
    "make_code_challenge",
    "parse_session",
    "PKCE_VERIFIER_SLOT",
    "resolve_view",
    "VIEW_LOGIN",
    "VIEW_FORGOT",
    "VIEW_RESET",
    "VIEW_MAIN",
]
