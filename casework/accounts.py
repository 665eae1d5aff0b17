"""
Staff authentication and account provisioning.

Provisioning spans two systems: an account in the identity provider and a
profile row in ``user_profiles``. The account is created first; if the
profile insert then fails the account is deleted again. A failed deletion
leaves an orphaned account behind and is logged at CRITICAL.
"""

from __future__ import annotations

import logging
from typing import Optional

from casework.db import DbClient, utc_now_iso
from casework.errors import (
    BackendError,
    Forbidden,
    InvalidRequest,
    Unauthorized,
    UpstreamFailure,
    upstream,
)
from casework.identity import IdentityError, IdentityProvider
from casework.schemas import CreateUserRequest, LoginResult
from casework.tables import USER_PROFILES

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
DEFAULT_ROLE = "field_worker"


def login(
    identity: IdentityProvider, db: DbClient, email: str, password: str
) -> LoginResult:
    try:
        session = identity.sign_in_with_password(email, password)
    except IdentityError as exc:
        raise Unauthorized(exc.message) from exc
    if session.user is None:
        raise Unauthorized("Authentication failed")

    user_id = session.user.id
    try:
        profile = db.select_one(USER_PROFILES, {"id": user_id})
    except BackendError:
        logger.exception("Profile lookup failed for %s", user_id)
        profile = None
    if not profile:
        raise Forbidden("User profile not found. Contact administrator.")
    if not profile.get("is_active"):
        raise Forbidden("Account is inactive. Contact administrator.")

    try:
        db.update(USER_PROFILES, {"last_login": utc_now_iso()}, {"id": user_id})
    except BackendError:
        logger.warning("Could not record last login for %s", user_id, exc_info=True)

    return LoginResult.model_validate(
        {
            "user": {"id": user_id, "email": session.user.email},
            "profile": {
                "full_name": profile.get("full_name"),
                "role": profile.get("role"),
                "can_field_intake": profile.get("can_field_intake"),
                "can_access_dashboard": profile.get("can_access_dashboard"),
            },
            "session": {
                "access_token": session.access_token,
                "refresh_token": session.refresh_token,
            },
        }
    )


def validate_new_user(request: CreateUserRequest) -> None:
    if not request.email or not request.password or not request.full_name:
        raise InvalidRequest("Email, password, and full name are required")
    if len(request.password) < MIN_PASSWORD_LENGTH:
        raise InvalidRequest(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def _profile_values(user_id: str, request: CreateUserRequest) -> dict:
    return {
        "id": user_id,
        "email": request.email,
        "full_name": request.full_name,
        "role": request.role or DEFAULT_ROLE,
        "is_active": True,
        "can_field_intake": True if request.can_field_intake is None else request.can_field_intake,
        "can_access_dashboard": bool(request.can_access_dashboard),
    }


def _compensate(identity: IdentityProvider, user_id: str) -> Optional[Exception]:
    try:
        identity.delete_user(user_id)
    except Exception as exc:
        logger.critical(
            "Compensating delete of identity account %s failed; account is orphaned without a profile",
            user_id,
            exc_info=True,
        )
        return exc
    logger.info("Removed identity account %s after profile failure", user_id)
    return None


def create_staff_user(
    identity: IdentityProvider, db: DbClient, request: CreateUserRequest
) -> dict:
    """
    Create the identity account, then its profile row; undo the account on profile failure.
    """
    validate_new_user(request)

    try:
        user = identity.create_user(request.email, request.password, email_confirm=True)
    except IdentityError as exc:
        raise InvalidRequest(exc.message) from exc

    try:
        return db.insert(USER_PROFILES, _profile_values(user.id, request))
    except BackendError as exc:
        logger.error("Profile insert for %s failed: %s", user.id, exc)
        compensation_error = _compensate(identity, user.id)
        details = str(exc)
        if compensation_error is not None:
            details = f"{details}; account cleanup failed: {compensation_error}"
        raise UpstreamFailure("Failed to create user profile", details=details) from exc


def list_staff_users(db: DbClient) -> list[dict]:
    try:
        return db.select(USER_PROFILES, order_by="created_at", descending=True)
    except BackendError as exc:
        raise upstream("Failed to fetch users", exc) from exc
