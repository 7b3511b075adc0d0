from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import requests


logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"
INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"

AuthObserver = Callable[[Optional["AuthSession"]], None]


@dataclass(frozen=True)
class AuthSession:
    uid: str
    email: str
    id_token: str = ""


class AuthFailure(Exception):
    """Sign-in was refused or could not be completed."""

    def __init__(self, message: str = INVALID_CREDENTIALS_MESSAGE):
        super().__init__(message)


class FirebaseAuthGate:
    """Email/password sign-in against Firebase Authentication's REST API.

    Observers registered with :meth:`on_auth_state_changed` are called once
    with the current user on registration and again after every sign-in or
    sign-out, mirroring the Firebase web SDK.
    """

    def __init__(self, api_key: str, *, http: Optional[requests.Session] = None, timeout: float = 15.0):
        self.api_key = api_key
        self.http = http or requests.Session()
        self.timeout = timeout
        self.current_user: Optional[AuthSession] = None
        self._observers: List[AuthObserver] = []

    def on_auth_state_changed(self, observer: AuthObserver) -> Callable[[], None]:
        self._observers.append(observer)
        observer(self.current_user)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        for observer in list(self._observers):
            observer(self.current_user)

    def sign_in_with_email_and_password(self, email: str, password: str) -> AuthSession:
        if not self.api_key:
            raise AuthFailure("Sign-in is not configured (missing Firebase API key)")
        try:
            resp = self.http.post(
                SIGN_IN_URL,
                params={"key": self.api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Sign-in request failed: %s", exc)
            raise AuthFailure() from exc
        if resp.status_code != 200:
            try:
                reason = resp.json().get("error", {}).get("message", "")
            except ValueError:
                reason = resp.text[:200]
            logger.info("Sign-in refused for %s: %s", email, reason or resp.status_code)
            raise AuthFailure()
        try:
            body = resp.json()
        except ValueError as exc:
            logger.warning("Sign-in response was not JSON: %s", resp.text[:200])
            raise AuthFailure() from exc
        self.current_user = AuthSession(
            uid=str(body.get("localId", "")),
            email=str(body.get("email", email)),
            id_token=str(body.get("idToken", "")),
        )
        self._notify()
        return self.current_user

    def sign_out(self) -> None:
        if self.current_user is None:
            return
        self.current_user = None
        self._notify()
