"""
Field visits, case events and the worker roster.
"""

from __future__ import annotations

import logging
from typing import Optional

from casework.db import DbClient, utc_now_iso
from casework.errors import BackendError, InvalidRequest, NotFound, upstream
from casework.schemas import CaseEventCreate, FieldVisitCreate, FieldVisitUpdate
from casework.tables import CASE_EVENTS, FIELD_VISITS, USER_PROFILES, VISIT_PHOTOS

logger = logging.getLogger(__name__)

WORKER_ROLES = ("staff", "admin", "volunteer")
WORKER_COLUMNS = ("id", "full_name", "role", "phone", "is_active")


def _blank_to_none(values: dict) -> dict:
    return {key: (None if value == "" else value) for key, value in values.items()}


def create_visit(db: DbClient, visit: FieldVisitCreate) -> dict:
    values = _blank_to_none(visit.model_dump())
    try:
        created = db.insert(FIELD_VISITS, values)
    except BackendError as exc:
        raise upstream("Failed to create visit", exc) from exc
    logger.info("Worker %s logged visit %s", created["staff_member"], created["id"])
    return created


def list_worker_visits(db: DbClient, user_id: Optional[str], limit: int) -> list[dict]:
    if not user_id:
        raise InvalidRequest("User ID required")
    try:
        return db.select(
            FIELD_VISITS,
            filters={"staff_member": user_id},
            order_by="visit_date",
            descending=True,
            limit=limit,
        )
    except BackendError as exc:
        raise upstream("Failed to fetch visits", exc) from exc


def list_all_visits(db: DbClient) -> list[dict]:
    try:
        return db.select(FIELD_VISITS, order_by="visit_date", descending=True)
    except BackendError as exc:
        raise upstream("Failed to fetch field visits", exc) from exc


def get_visit(db: DbClient, visit_id: str) -> dict:
    try:
        visit = db.select_one(FIELD_VISITS, {"id": visit_id})
    except BackendError as exc:
        raise upstream("Failed to fetch visit", exc) from exc
    if visit is None:
        raise NotFound("Visit not found")
    return visit


def update_visit(db: DbClient, visit_id: str, changes: FieldVisitUpdate) -> dict:
    """Apply only the allow-listed fields that were actually sent."""
    values = changes.model_dump(exclude_unset=True)
    if not values:
        raise InvalidRequest("No valid fields to update")
    try:
        rows = db.update(FIELD_VISITS, values, {"id": visit_id})
    except BackendError as exc:
        raise upstream("Failed to update visit", exc) from exc
    if not rows:
        raise NotFound("Visit not found")
    return rows[0]


def delete_visit(db: DbClient, visit_id: str) -> None:
    try:
        removed = db.delete(VISIT_PHOTOS, {"field_visit_id": visit_id})
    except BackendError:
        logger.warning("Could not remove photos of visit %s", visit_id, exc_info=True)
    else:
        if removed:
            logger.info("Removed %d photo records of visit %s", removed, visit_id)
    try:
        db.delete(FIELD_VISITS, {"id": visit_id})
    except BackendError as exc:
        raise upstream("Failed to delete visit", exc) from exc


def create_case_event(db: DbClient, event: CaseEventCreate) -> dict:
    values = _blank_to_none(event.model_dump())
    values["event_date"] = values.get("event_date") or utc_now_iso()
    try:
        return db.insert(CASE_EVENTS, values)
    except BackendError as exc:
        raise upstream("Failed to create case event", exc) from exc


def list_case_events(
    db: DbClient, applicant_id: Optional[str] = None, client_id: Optional[str] = None
) -> list[dict]:
    filters = {}
    if applicant_id:
        filters["applicant_id"] = applicant_id
    if client_id:
        filters["client_id"] = client_id
    try:
        return db.select(CASE_EVENTS, filters=filters, order_by="event_date", descending=True)
    except BackendError as exc:
        raise upstream("Failed to fetch case events", exc) from exc


def list_workers(db: DbClient) -> list[dict]:
    """Active staff, admins and volunteers, sorted by name."""
    try:
        return db.select(
            USER_PROFILES,
            filters={"is_active": True, "role": WORKER_ROLES},
            order_by="full_name",
            columns=WORKER_COLUMNS,
        )
    except BackendError as exc:
        raise upstream("Failed to fetch workers", exc) from exc
