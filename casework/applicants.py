"""
Applicant intake and case records.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from datetime import date, timedelta
from typing import Optional

from casework.db import DbClient
from casework.errors import BackendError, InvalidRequest, NotFound, upstream
from casework.schemas import ApplicationSubmission
from casework.tables import APPLICANTS, APPLICATION_DOCUMENTS, CASE_EVENTS, FIELD_VISITS, USER_PROFILES

logger = logging.getLogger(__name__)

SEARCH_MIN_LENGTH = 2
SEARCH_COLUMNS = ("full_name", "property_address", "phone_number", "email")
SEARCH_RESULT_COLUMNS = (
    "id",
    "full_name",
    "phone_number",
    "email",
    "property_address",
    "property_city",
    "property_county",
    "property_zip",
    "status",
    "created_at",
)
DUPLICATE_SCAN_COLUMNS = (
    "id",
    "full_name",
    "property_address",
    "property_city",
    "property_county",
    "property_zip",
    "phone_number",
    "email",
    "status",
    "created_at",
    "assigned_to",
    "comments",
)


def _hoa_flag(value: Optional[str]) -> Optional[bool]:
    if value == "yes":
        return True
    if value == "no":
        return False
    return None


def build_applicant_record(
    form: ApplicationSubmission, ip_address: str, user_agent: str
) -> dict:
    """Map the intake form onto the applicant row and stamp submission metadata."""
    record = form.model_dump(
        exclude={"is_hoa", "intake_type", "submitted_by_worker", "intake_latitude", "intake_longitude"}
    )
    record.update(
        {
            "is_hoa": _hoa_flag(form.is_hoa),
            "auction_date": form.auction_date or None,
            "status": "pending",
            "source": "field_intake" if form.intake_type == "field" else "web_application",
            "submitted_by_worker": form.submitted_by_worker or None,
            "intake_latitude": form.intake_latitude or None,
            "intake_longitude": form.intake_longitude or None,
            "ip_address": ip_address,
            "user_agent": user_agent,
        }
    )
    return record


def submit_application(
    db: DbClient, form: ApplicationSubmission, ip_address: str, user_agent: str
) -> dict:
    record = build_applicant_record(form, ip_address, user_agent)
    try:
        created = db.insert(APPLICANTS, record)
    except BackendError as exc:
        raise upstream("Failed to submit application", exc) from exc
    logger.info("Received %s application %s", created["source"], created["id"])
    return created


def list_applications(
    db: DbClient, status: Optional[str] = None, limit: int = 1000
) -> list[dict]:
    filters = {"status": status} if status else None
    try:
        return db.select(
            APPLICANTS, filters=filters, order_by="created_at", descending=True, limit=limit
        )
    except BackendError as exc:
        raise upstream("Failed to fetch applications", exc) from exc


def count_applications(db: DbClient, status: Optional[str] = None) -> int:
    """Exact number of applicants matching the filter, independent of any listing cap."""
    filters = {"status": status} if status else None
    try:
        return db.count(APPLICANTS, filters=filters)
    except BackendError as exc:
        raise upstream("Failed to fetch applications", exc) from exc


def get_application(db: DbClient, applicant_id: str) -> dict:
    try:
        applicant = db.select_one(APPLICANTS, {"id": applicant_id})
    except BackendError as exc:
        raise upstream("Failed to fetch application", exc) from exc
    if applicant is None:
        raise NotFound("Application not found")
    return applicant


def update_application(db: DbClient, applicant_id: str, changes: dict) -> dict:
    changes = {key: value for key, value in changes.items() if key != "id"}
    if not changes:
        raise InvalidRequest("No fields to update")
    try:
        rows = db.update(APPLICANTS, changes, {"id": applicant_id})
    except BackendError as exc:
        raise upstream("Failed to update application", exc) from exc
    if not rows:
        raise NotFound("Application not found")
    return rows[0]


def search_applicants(db: DbClient, query: str, limit: int = 20) -> list[dict]:
    """Case-insensitive substring match over name, address, phone and email."""
    if len(query) < SEARCH_MIN_LENGTH:
        return []
    try:
        return db.search(
            APPLICANTS,
            query,
            SEARCH_COLUMNS,
            order_by="created_at",
            descending=True,
            limit=limit,
            select_columns=SEARCH_RESULT_COLUMNS,
        )
    except BackendError as exc:
        raise upstream("Failed to search applicants", exc) from exc


def applicant_visit_history(db: DbClient, applicant_id: str) -> dict:
    """The applicant, their visits with the visiting worker attached, and outcome counts."""
    try:
        visits = db.select(
            FIELD_VISITS,
            filters={"applicant_id": applicant_id},
            order_by="visit_date",
            descending=True,
        )
        staff_ids = sorted({visit["staff_member"] for visit in visits if visit.get("staff_member")})
        workers: dict[str, dict] = {}
        if staff_ids:
            for profile in db.select(
                USER_PROFILES, filters={"id": staff_ids}, columns=("id", "full_name", "email")
            ):
                workers[profile["id"]] = profile
    except BackendError as exc:
        raise upstream("Failed to fetch visits", exc) from exc

    try:
        applicant = db.select_one(APPLICANTS, {"id": applicant_id})
    except BackendError as exc:
        raise upstream("Failed to fetch applicant", exc) from exc
    if applicant is None:
        raise NotFound("Applicant not found")

    for visit in visits:
        visit["worker"] = workers.get(visit.get("staff_member"))
    return {
        "applicant": applicant,
        "visits": visits,
        "visitCount": len(visits),
        "attemptCount": sum(1 for v in visits if v.get("visit_outcome") == "attempt"),
        "engagementCount": sum(1 for v in visits if v.get("visit_outcome") == "engagement"),
    }


def normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def normalize_address(address: Optional[str]) -> str:
    normalized = re.sub(r"\s+", " ", (address or "").strip().lower())
    return normalized.replace(".", "").replace(",", "")


def _count_by(rows: list[dict], key: str) -> dict[str, int]:
    counts: dict[str, int] = defaultdict(int)
    for row in rows:
        if row.get(key):
            counts[row[key]] += 1
    return counts


def find_duplicate_groups(db: DbClient) -> list[dict]:
    """
    Group open applicants that share a name or a property address.

    Name groups are reported first. An address group whose members exactly
    match an already reported group is skipped.
    """
    try:
        applicants = db.select(
            APPLICANTS,
            exclude={"status": "closed"},
            order_by="created_at",
            descending=True,
            columns=DUPLICATE_SCAN_COLUMNS,
        )
        if not applicants:
            return []
        ids = [applicant["id"] for applicant in applicants]
        visit_counts = _count_by(
            db.select(FIELD_VISITS, filters={"applicant_id": ids}, columns=("applicant_id",)),
            "applicant_id",
        )
        event_counts = _count_by(
            db.select(CASE_EVENTS, filters={"applicant_id": ids}, columns=("applicant_id",)),
            "applicant_id",
        )
        document_counts = _count_by(
            db.select(
                APPLICATION_DOCUMENTS, filters={"application_id": ids}, columns=("application_id",)
            ),
            "application_id",
        )
    except BackendError as exc:
        raise upstream("Failed to fetch applicants", exc) from exc

    by_name: dict[str, list[dict]] = defaultdict(list)
    by_address: dict[str, list[dict]] = defaultdict(list)
    for applicant in applicants:
        applicant["visit_count"] = visit_counts.get(applicant["id"], 0)
        applicant["event_count"] = event_counts.get(applicant["id"], 0)
        applicant["document_count"] = document_counts.get(applicant["id"], 0)
        by_name[normalize_name(applicant.get("full_name"))].append(applicant)
        by_address[normalize_address(applicant.get("property_address"))].append(applicant)

    groups: list[dict] = []
    seen_members: set[tuple[str, ...]] = set()
    for match_type, buckets, label in (
        ("name", by_name, "full_name"),
        ("address", by_address, "property_address"),
    ):
        for members in buckets.values():
            if len(members) < 2:
                continue
            key = tuple(sorted(member["id"] for member in members))
            if key in seen_members:
                continue
            seen_members.add(key)
            ordered = sorted(members, key=lambda m: m.get("created_at") or "", reverse=True)
            groups.append(
                {
                    "matchType": match_type,
                    "matchValue": ordered[0].get(label) or "",
                    "applications": ordered,
                }
            )
    return groups


def worker_caseload(db: DbClient, user_id: str) -> list[dict]:
    try:
        return db.select(
            APPLICANTS,
            filters={"assigned_to": user_id},
            exclude={"status": "closed"},
            order_by="created_at",
            descending=True,
        )
    except BackendError as exc:
        raise upstream("Failed to fetch cases", exc) from exc


def parse_calendar_date(value: Optional[str]) -> Optional[date]:
    """Read the date part of an ISO date or timestamp string."""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        logger.warning("Ignoring unparseable date %r", value)
        return None


def urgent_auctions(db: DbClient, window_days: int, today: Optional[date] = None) -> list[dict]:
    """Open cases with an auction on or before ``today + window_days``, soonest first."""
    cutoff = (today or date.today()) + timedelta(days=window_days)
    try:
        applicants = db.select(APPLICANTS, exclude={"status": "closed"})
    except BackendError as exc:
        raise upstream("Failed to fetch applications", exc) from exc
    urgent = []
    for applicant in applicants:
        auction = parse_calendar_date(applicant.get("auction_date"))
        if auction is not None and auction <= cutoff:
            urgent.append((auction, applicant))
    urgent.sort(key=lambda pair: pair[0])
    return [applicant for _, applicant in urgent]
