"""
Consolidation of a duplicate applicant into a master applicant.

Child rows (field visits, case events, documents) are repointed to the
master before the duplicate is deleted. Comment merging and client
migration are best-effort: a failure there is logged and the merge goes
on. The sequence is not transactional; if deleting the duplicate fails,
the repointed children stay on the master.
"""

from __future__ import annotations

import logging
from typing import Optional

from casework.db import DbClient
from casework.errors import BackendError, InvalidRequest, NotFound, UpstreamFailure, upstream
from casework.saga import Saga, SagaAborted
from casework.tables import APPLICANTS, APPLICATION_DOCUMENTS, CASE_EVENTS, CLIENTS, FIELD_VISITS

logger = logging.getLogger(__name__)

MERGE_SEPARATOR = "--- Merged from duplicate record ---"

_STEP_FAILURES = {
    "repoint_field_visits": "Failed to merge field visits",
    "repoint_case_events": "Failed to merge case events",
    "repoint_documents": "Failed to merge documents",
    "delete_duplicate": "Failed to delete duplicate record",
}


def merge_comments(master_comments: Optional[str], duplicate_comments: Optional[str]) -> str:
    """Master text, then the separator line, then the duplicate's text."""
    merged = master_comments or ""
    if duplicate_comments:
        if merged:
            merged = f"{merged}\n\n{MERGE_SEPARATOR}\n{duplicate_comments}"
        else:
            merged = duplicate_comments
    return merged


def _load_applicant(db: DbClient, applicant_id: str, missing_message: str) -> dict:
    try:
        applicant = db.select_one(APPLICANTS, {"id": applicant_id})
    except BackendError as exc:
        raise upstream("Failed to load application", exc) from exc
    if applicant is None:
        raise NotFound(missing_message)
    return applicant


def _migrate_client(db: DbClient, master_id: str, duplicate_id: str) -> None:
    # An existing master client always wins; the duplicate's client is left alone.
    master_client = db.select_one(CLIENTS, {"applicant_id": master_id})
    duplicate_client = db.select_one(CLIENTS, {"applicant_id": duplicate_id})
    if duplicate_client and not master_client:
        db.update(CLIENTS, {"applicant_id": master_id}, {"applicant_id": duplicate_id})
        logger.info("Moved client %s to applicant %s", duplicate_client["id"], master_id)


def merge_applicants(db: DbClient, master_id: str, duplicate_id: Optional[str]) -> Optional[dict]:
    """
    Fold ``duplicate_id`` into ``master_id`` and return the refreshed master row.
    """
    if not duplicate_id:
        raise InvalidRequest("duplicateId is required")
    if master_id == duplicate_id:
        raise InvalidRequest("Cannot merge an application with itself")

    master = _load_applicant(db, master_id, "Master application not found")
    duplicate = _load_applicant(db, duplicate_id, "Duplicate application not found")

    original_comments = master.get("comments") or ""
    merged = merge_comments(master.get("comments"), duplicate.get("comments"))

    saga = Saga(f"merge {duplicate_id} -> {master_id}")
    saga.required(
        "repoint_field_visits",
        lambda: db.update(FIELD_VISITS, {"applicant_id": master_id}, {"applicant_id": duplicate_id}),
    )
    saga.required(
        "repoint_case_events",
        lambda: db.update(CASE_EVENTS, {"applicant_id": master_id}, {"applicant_id": duplicate_id}),
    )
    saga.required(
        "repoint_documents",
        lambda: db.update(
            APPLICATION_DOCUMENTS, {"application_id": master_id}, {"application_id": duplicate_id}
        ),
    )
    saga.best_effort("migrate_client", lambda: _migrate_client(db, master_id, duplicate_id))
    if merged != original_comments:
        saga.best_effort(
            "merge_comments",
            lambda: db.update(APPLICANTS, {"comments": merged}, {"id": master_id}),
        )
    saga.required("delete_duplicate", lambda: db.delete(APPLICANTS, {"id": duplicate_id}))

    try:
        result = saga.run()
    except SagaAborted as exc:
        raise UpstreamFailure(
            _STEP_FAILURES.get(exc.step, "Merge failed"), details=str(exc.cause)
        ) from exc

    logger.info(
        "Merged applicant %s into %s (skipped: %s)",
        duplicate_id,
        master_id,
        result.skipped or "none",
    )
    try:
        return db.select_one(APPLICANTS, {"id": master_id})
    except BackendError as exc:
        raise upstream("Failed to load merged application", exc) from exc
