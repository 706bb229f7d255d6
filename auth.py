from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

import requests
from flask import session

from errors import AuthError, ValidationError
from models import SessionUser

logger = logging.getLogger(__name__)

IDENTITY_URL = "https://identitytoolkit.googleapis.com/v1/accounts"
TOKEN_URL = "https://securetoken.googleapis.com/v1/token"
DEFAULT_TOKEN_LIFETIME = 3600
SESSION_KEY = "user"
MIN_PASSWORD_LENGTH = 6

Listener = Callable[[Optional[SessionUser]], None]


def validate_signup(password: str, confirm_password: str) -> None:
    if password != confirm_password:
        raise ValidationError("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


class AuthClient:
    """Password and identity-provider sign-in against the Identity Toolkit REST API."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 15,
        session: Optional[requests.Session] = None,
        base_url: str = IDENTITY_URL,
        token_url: str = TOKEN_URL,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.http = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.token_url = token_url

    def _post(self, url: str, label: str, failure: str, **body: Any) -> Dict[str, Any]:
        try:
            resp = self.http.post(
                url,
                params={"key": self.api_key},
                timeout=self.timeout,
                **body,
            )
        except requests.RequestException as exc:
            logger.error("%s transport error: %s", label, exc)
            raise AuthError(failure) from exc
        if not resp.ok:
            try:
                code = resp.json().get("error", {}).get("message", "")
            except (ValueError, AttributeError):
                code = ""
            logger.warning("%s rejected: %s", label, code or resp.status_code)
            raise AuthError(failure, code=code)
        try:
            data = resp.json()
        except ValueError as exc:
            logger.error("%s returned a non-JSON body", label)
            raise AuthError(failure) from exc
        if not isinstance(data, dict):
            raise AuthError(failure)
        return data

    def _call(self, method: str, payload: Dict[str, Any], failure: str) -> Dict[str, Any]:
        return self._post(f"{self.base_url}:{method}", f"accounts:{method}", failure, json=payload)

    @staticmethod
    def _expiry(seconds: Any) -> float:
        try:
            lifetime = float(seconds)
        except (TypeError, ValueError):
            lifetime = DEFAULT_TOKEN_LIFETIME
        return time.time() + lifetime

    @classmethod
    def _to_user(cls, data: Dict[str, Any]) -> SessionUser:
        return SessionUser(
            uid=data.get("localId", ""),
            email=data.get("email", ""),
            display_name=data.get("displayName", ""),
            photo_url=data.get("photoUrl") or data.get("profilePicture", ""),
            id_token=data.get("idToken", ""),
            refresh_token=data.get("refreshToken", ""),
            expires_at=cls._expiry(data.get("expiresIn")),
        )

    def refresh(self, user: SessionUser) -> SessionUser:
        """Exchange the refresh token for a new ID token."""
        if not user.refresh_token:
            raise AuthError("Your session has expired. Please sign in again.")
        data = self._post(
            self.token_url,
            "token refresh",
            "Your session has expired. Please sign in again.",
            data={"grant_type": "refresh_token", "refresh_token": user.refresh_token},
        )
        return replace(
            user,
            id_token=data.get("id_token", ""),
            refresh_token=data.get("refresh_token") or user.refresh_token,
            expires_at=self._expiry(data.get("expires_in")),
        )

    def sign_in_with_password(self, email: str, password: str) -> SessionUser:
        data = self._call(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
            "Failed to sign in. Please check your email and password.",
        )
        return self._to_user(data)

    def sign_up(self, email: str, password: str, display_name: str = "") -> SessionUser:
        data = self._call(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
            "Failed to create account. Please try again.",
        )
        user = self._to_user(data)
        name = display_name or user.default_username
        return self.update_profile(user, name)

    def sign_in_with_idp(self, provider_id: str, id_token: str, request_uri: str) -> SessionUser:
        data = self._call(
            "signInWithIdp",
            {
                "postBody": f"id_token={id_token}&providerId={provider_id}",
                "requestUri": request_uri,
                "returnIdpCredential": True,
                "returnSecureToken": True,
            },
            f"Failed to sign in with {provider_id}. Please try again.",
        )
        return self._to_user(data)

    def update_profile(self, user: SessionUser, display_name: str) -> SessionUser:
        data = self._call(
            "update",
            {"idToken": user.id_token, "displayName": display_name, "returnSecureToken": True},
            "Failed to update profile.",
        )
        user.display_name = data.get("displayName", display_name)
        if data.get("idToken"):
            user.id_token = data["idToken"]
            user.refresh_token = data.get("refreshToken", user.refresh_token)
            user.expires_at = self._expiry(data.get("expiresIn"))
        return user


class SessionObserver:
    """Holds the signed-in user in the Flask session and notifies subscribers on change."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def current(self) -> Optional[SessionUser]:
        return SessionUser.from_dict(session.get(SESSION_KEY))

    def replace(self, user: Optional[SessionUser]) -> None:
        if user is None:
            session.pop(SESSION_KEY, None)
        else:
            session[SESSION_KEY] = user.to_dict()
        for listener in list(self._listeners):
            try:
                listener(user)
            except Exception:
                logger.exception("Session listener %r failed", listener)
