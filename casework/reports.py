"""
Dashboard report metrics over applications and field visits.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import date, timedelta
from typing import Optional

from casework.applicants import list_applications, parse_calendar_date
from casework.db import DbClient
from casework.errors import InvalidRequest
from casework.field_activity import list_all_visits, list_workers
from casework.schemas import ReportMetrics


def _within(value: Optional[str], start: Optional[str], end: Optional[str]) -> bool:
    day = (value or "")[:10]
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


def _check_bound(name: str, value: Optional[str]) -> None:
    if value and parse_calendar_date(value) is None:
        raise InvalidRequest(f"{name} must be a YYYY-MM-DD date")


def build_report(
    db: DbClient,
    *,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    auction_window_days: int = 7,
    applications_limit: int = 1000,
    today: Optional[date] = None,
) -> ReportMetrics:
    _check_bound("start_date", start_date)
    _check_bound("end_date", end_date)

    applications = [
        app
        for app in list_applications(db, limit=applications_limit)
        if _within(app.get("created_at"), start_date, end_date)
    ]
    visits = [
        visit
        for visit in list_all_visits(db)
        if _within(visit.get("visit_date"), start_date, end_date)
    ]
    names = {worker["id"]: worker.get("full_name") for worker in list_workers(db)}

    auction_cutoff = (today or date.today()) + timedelta(days=auction_window_days)
    status_counts = Counter(app.get("status") for app in applications)

    visits_by_worker: Counter = Counter()
    attempts_by_worker: Counter = Counter()
    engagements_by_worker: Counter = Counter()
    for visit in visits:
        worker = names.get(visit.get("staff_member")) or "Unknown"
        visits_by_worker[worker] += 1
        if visit.get("visit_outcome") == "attempt":
            attempts_by_worker[worker] += 1
        elif visit.get("visit_outcome") == "engagement":
            engagements_by_worker[worker] += 1

    total_attempts = sum(attempts_by_worker.values())
    total_engagements = sum(engagements_by_worker.values())
    engagement_rate = math.floor(total_engagements / len(visits) * 100 + 0.5) if visits else 0

    urgent = 0
    for app in applications:
        auction = parse_calendar_date(app.get("auction_date"))
        if auction is not None and auction <= auction_cutoff:
            urgent += 1

    return ReportMetrics(
        totalApplications=len(applications),
        pendingApplications=status_counts.get("pending", 0),
        inProgressApplications=status_counts.get("in-progress", 0),
        closedApplications=status_counts.get("closed", 0),
        totalFieldVisits=len(visits),
        visitsWithFollowUp=sum(1 for visit in visits if visit.get("requires_follow_up")),
        urgentAuctions=urgent,
        applicationsByCounty=dict(Counter(str(app.get("property_county")) for app in applications)),
        applicationsByStatus={str(key): value for key, value in status_counts.items()},
        visitsByType=dict(Counter(str(visit.get("visit_type")) for visit in visits)),
        visitsByWorker=dict(visits_by_worker),
        totalAttempts=total_attempts,
        totalEngagements=total_engagements,
        attemptsByWorker=dict(attempts_by_worker),
        engagementsByWorker=dict(engagements_by_worker),
        engagementRate=engagement_rate,
    )
