"""
Identity provider clients: the hosted GoTrue-compatible auth API and an in-memory double.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests


class IdentityError(Exception):
    """Raised when the identity provider rejects a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class IdentityUser:
    id: str
    email: Optional[str]


@dataclass
class AuthSession:
    user: Optional[IdentityUser]
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class IdentityProvider(Protocol):
    """Operations the API needs from the identity provider."""

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        ...

    def create_user(
        self, email: str, password: str, *, email_confirm: bool = True
    ) -> IdentityUser:
        ...

    def delete_user(self, user_id: str) -> None:
        ...


@dataclass
class _StoredAccount:
    user: IdentityUser
    password: str
    email_confirmed: bool


@dataclass
class InMemoryIdentityProvider:
    """Test double for the identity provider."""

    accounts: dict = field(default_factory=dict)

    def reset(self) -> None:
        self.accounts.clear()

    def _find_by_email(self, email: str) -> Optional[_StoredAccount]:
        for account in self.accounts.values():
            if (account.user.email or "").lower() == email.lower():
                return account
        return None

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        account = self._find_by_email(email or "")
        if account is None or account.password != password:
            raise IdentityError("Invalid login credentials", status_code=400)
        if not account.email_confirmed:
            raise IdentityError("Email not confirmed", status_code=400)
        return AuthSession(
            user=account.user,
            access_token=f"access-{uuid.uuid4().hex}",
            refresh_token=f"refresh-{uuid.uuid4().hex}",
        )

    def create_user(
        self, email: str, password: str, *, email_confirm: bool = True
    ) -> IdentityUser:
        if self._find_by_email(email) is not None:
            raise IdentityError(
                "A user with this email address has already been registered",
                status_code=422,
            )
        user = IdentityUser(id=str(uuid.uuid4()), email=email)
        self.accounts[user.id] = _StoredAccount(
            user=user, password=password, email_confirmed=email_confirm
        )
        return user

    def delete_user(self, user_id: str) -> None:
        if self.accounts.pop(user_id, None) is None:
            raise IdentityError("User not found", status_code=404)


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    for key in ("error_description", "msg", "message", "error"):
        if payload.get(key):
            return str(payload[key])
    return f"HTTP {response.status_code}"


def _user_from_payload(payload: Optional[dict]) -> Optional[IdentityUser]:
    if not payload or not payload.get("id"):
        return None
    return IdentityUser(id=payload["id"], email=payload.get("email"))


@dataclass
class GoTrueIdentityProvider:
    """
    REST client for a GoTrue-compatible auth service.

    Password sign-in uses the public (anon) key; account administration uses
    the service-role key, which bypasses access policy.
    """

    base_url: str
    anon_key: str
    service_role_key: str
    timeout: float = 10.0

    def __post_init__(self):
        self.base_url = self.base_url.rstrip("/")
        self._session = requests.Session()

    def _admin_headers(self) -> dict:
        return {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
        }

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            response = self._session.request(
                method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise IdentityError(str(exc)) from exc
        if response.status_code >= 400:
            raise IdentityError(_error_message(response), status_code=response.status_code)
        return response

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        response = self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            headers={"apikey": self.anon_key},
            json={"email": email, "password": password},
        )
        payload = response.json()
        return AuthSession(
            user=_user_from_payload(payload.get("user")),
            access_token=payload.get("access_token"),
            refresh_token=payload.get("refresh_token"),
        )

    def create_user(
        self, email: str, password: str, *, email_confirm: bool = True
    ) -> IdentityUser:
        response = self._request(
            "POST",
            "/admin/users",
            headers=self._admin_headers(),
            json={"email": email, "password": password, "email_confirm": email_confirm},
        )
        user = _user_from_payload(response.json())
        if user is None:
            raise IdentityError("Failed to create user")
        return user

    def delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/admin/users/{user_id}", headers=self._admin_headers())
