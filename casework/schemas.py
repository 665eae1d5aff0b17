"""
Pydantic schemas for request bodies and response envelopes.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApplicationSubmission(BaseModel):
    """Public intake form, posted with the form's camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    # Personal information
    full_name: str = Field(..., min_length=1)
    phone_number: Optional[str] = None
    email: Optional[str] = None
    primary_language: Optional[str] = None
    preferred_contact_method: Optional[str] = None

    # Property information
    property_address: str = Field(..., min_length=1)
    property_city: Optional[str] = None
    property_county: Optional[str] = None
    property_zip: Optional[str] = None
    property_type: Optional[str] = None
    property_type_other: Optional[str] = None

    # Title and ownership
    name_on_title: Optional[str] = None
    occupant_type: Optional[str] = None
    is_hoa: Optional[str] = Field(default=None, alias="isHOA")

    # Crisis indicators
    has_notice_of_default: Optional[bool] = None
    has_notice_of_trustee_sale: Optional[bool] = None
    cannot_afford_mortgage: Optional[bool] = None
    facing_eviction: Optional[bool] = None
    poor_property_condition: Optional[bool] = None
    wants_to_remain: Optional[bool] = None
    needs_relocation_funds: Optional[bool] = None
    title_holder_deceased: Optional[bool] = None
    tenant_owner_deceased: Optional[bool] = None
    needs_probate_info: Optional[bool] = None
    needs_legal_assistance: Optional[bool] = None
    has_auction_date: Optional[bool] = None
    other_issues: Optional[str] = None

    # Urgency and scheduling
    auction_date: Optional[str] = None
    trustee_name: Optional[str] = None
    appointment_type: Optional[str] = None
    availability: Optional[list[str]] = None

    comments: Optional[str] = None

    # Field intake metadata, sent in snake_case by the worker app
    intake_type: Optional[str] = Field(default=None, alias="intake_type")
    submitted_by_worker: Optional[str] = Field(default=None, alias="submitted_by_worker")
    intake_latitude: Optional[float] = Field(default=None, alias="intake_latitude")
    intake_longitude: Optional[float] = Field(default=None, alias="intake_longitude")


class MergeRequest(BaseModel):
    duplicateId: Optional[str] = None


class CaseEventCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    applicant_id: str
    client_id: Optional[str] = None
    event_type: str
    event_date: Optional[str] = None
    title: str
    description: Optional[str] = None
    contact_method: Optional[str] = None
    outcome: Optional[str] = None
    next_steps: Optional[str] = None
    is_milestone: bool = False
    is_urgent: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_accuracy: Optional[float] = None


class FieldVisitCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    applicant_id: Optional[str] = None
    staff_member: str
    visit_date: str
    visit_type: str
    visit_outcome: Optional[str] = None
    location_address: str
    contact_name: Optional[str] = None
    property_condition_notes: Optional[str] = None
    occupant_situation: Optional[str] = None
    immediate_needs: Optional[str] = None
    general_notes: Optional[str] = None
    requires_follow_up: bool = False
    follow_up_date: Optional[str] = None
    follow_up_notes: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class FieldVisitUpdate(BaseModel):
    """Fields a worker or admin may change on an existing visit; others are dropped."""

    model_config = ConfigDict(extra="ignore")

    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    property_condition_notes: Optional[str] = None
    occupant_situation: Optional[str] = None
    immediate_needs: Optional[str] = None
    general_notes: Optional[str] = None
    requires_follow_up: Optional[bool] = None
    follow_up_date: Optional[str] = None
    follow_up_notes: Optional[str] = None
    interest_level: Optional[str] = None
    visit_outcome: Optional[str] = None
    admin_notes: Optional[str] = None
    edit_latitude: Optional[float] = None
    edit_longitude: Optional[float] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class CreateUserRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    can_field_intake: Optional[bool] = None
    can_access_dashboard: Optional[bool] = None


class DataResponse(BaseModel):
    data: Any = None


class CountedDataResponse(BaseModel):
    data: list[dict]
    count: int


class SuccessResponse(BaseModel):
    success: Literal[True] = True
    message: Optional[str] = None
    data: Any = None


class SessionUser(BaseModel):
    id: str
    email: Optional[str] = None


class SessionProfile(BaseModel):
    full_name: Optional[str] = None
    role: Optional[str] = None
    can_field_intake: Optional[bool] = None
    can_access_dashboard: Optional[bool] = None


class SessionTokens(BaseModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class LoginResult(BaseModel):
    user: SessionUser
    profile: SessionProfile
    session: SessionTokens


class LoginResponse(BaseModel):
    success: Literal[True] = True
    data: LoginResult


class ApplicantVisitsResponse(BaseModel):
    applicant: dict
    visits: list[dict]
    visitCount: int
    attemptCount: int
    engagementCount: int


class DuplicateGroup(BaseModel):
    matchType: Literal["name", "address"]
    matchValue: str
    applications: list[dict]


class DuplicateGroupsResponse(BaseModel):
    data: list[DuplicateGroup]


class ReportMetrics(BaseModel):
    totalApplications: int
    pendingApplications: int
    inProgressApplications: int
    closedApplications: int
    totalFieldVisits: int
    visitsWithFollowUp: int
    urgentAuctions: int
    applicationsByCounty: dict[str, int]
    applicationsByStatus: dict[str, int]
    visitsByType: dict[str, int]
    visitsByWorker: dict[str, int]
    totalAttempts: int
    totalEngagements: int
    attemptsByWorker: dict[str, int]
    engagementsByWorker: dict[str, int]
    engagementRate: int


class ReportResponse(BaseModel):
    data: ReportMetrics
