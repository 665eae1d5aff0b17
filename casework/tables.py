"""
Table definitions shared by the SQL and in-memory database clients.

Timestamps and calendar dates are stored as ISO-8601 strings, matching the
JSON the hosted backend hands back to callers.
"""

from __future__ import annotations

from sqlalchemy import JSON, Boolean, Column, Float, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()

APPLICANTS = "applicants"
USER_PROFILES = "user_profiles"
FIELD_VISITS = "field_visits"
CASE_EVENTS = "case_events"
APPLICATION_DOCUMENTS = "application_documents"
VISIT_PHOTOS = "visit_photos"
CLIENTS = "clients"


class ApplicantRow(Base):
    __tablename__ = APPLICANTS

    id = Column(String, primary_key=True)
    created_at = Column(String, nullable=False, index=True)
    updated_at = Column(String, nullable=False)

    # Personal information
    full_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=True)
    email = Column(String, nullable=True)
    primary_language = Column(String, nullable=True)
    preferred_contact_method = Column(String, nullable=True)

    # Property information
    property_address = Column(String, nullable=False)
    property_city = Column(String, nullable=True)
    property_county = Column(String, nullable=True)
    property_zip = Column(String, nullable=True)
    property_type = Column(String, nullable=True)
    property_type_other = Column(String, nullable=True)

    # Title and ownership
    name_on_title = Column(String, nullable=True)
    occupant_type = Column(String, nullable=True)
    is_hoa = Column(Boolean, nullable=True)

    # Crisis indicators
    has_notice_of_default = Column(Boolean, nullable=True)
    has_notice_of_trustee_sale = Column(Boolean, nullable=True)
    cannot_afford_mortgage = Column(Boolean, nullable=True)
    facing_eviction = Column(Boolean, nullable=True)
    poor_property_condition = Column(Boolean, nullable=True)
    wants_to_remain = Column(Boolean, nullable=True)
    needs_relocation_funds = Column(Boolean, nullable=True)
    title_holder_deceased = Column(Boolean, nullable=True)
    tenant_owner_deceased = Column(Boolean, nullable=True)
    needs_probate_info = Column(Boolean, nullable=True)
    needs_legal_assistance = Column(Boolean, nullable=True)
    has_auction_date = Column(Boolean, nullable=True)
    other_issues = Column(Text, nullable=True)

    # Urgency and scheduling
    auction_date = Column(String, nullable=True)
    trustee_name = Column(String, nullable=True)
    appointment_type = Column(String, nullable=True)
    availability = Column(JSON, nullable=True)

    comments = Column(Text, nullable=True)

    status = Column(String, nullable=False, default="pending", index=True)
    assigned_to = Column(String, nullable=True, index=True)
    close_outcome = Column(String, nullable=True)

    source = Column(String, nullable=False, default="web_application")
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)

    # Field intake metadata
    submitted_by_worker = Column(String, nullable=True)
    intake_latitude = Column(Float, nullable=True)
    intake_longitude = Column(Float, nullable=True)


class UserProfileRow(Base):
    __tablename__ = USER_PROFILES

    id = Column(String, primary_key=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    full_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    role = Column(String, nullable=False, default="field_worker")
    is_active = Column(Boolean, nullable=False, default=True)
    can_field_intake = Column(Boolean, nullable=False, default=True)
    can_access_dashboard = Column(Boolean, nullable=False, default=False)
    last_login = Column(String, nullable=True)


class FieldVisitRow(Base):
    __tablename__ = FIELD_VISITS

    id = Column(String, primary_key=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
    applicant_id = Column(String, nullable=True, index=True)
    staff_member = Column(String, nullable=False, index=True)
    visit_date = Column(String, nullable=False, index=True)
    visit_type = Column(String, nullable=False)
    visit_outcome = Column(String, nullable=True)
    location_address = Column(String, nullable=False)
    contact_name = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    contact_email = Column(String, nullable=True)
    property_condition_notes = Column(Text, nullable=True)
    occupant_situation = Column(Text, nullable=True)
    immediate_needs = Column(Text, nullable=True)
    general_notes = Column(Text, nullable=True)
    requires_follow_up = Column(Boolean, nullable=False, default=False)
    follow_up_date = Column(String, nullable=True)
    follow_up_notes = Column(Text, nullable=True)
    interest_level = Column(String, nullable=True)
    admin_notes = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    edit_latitude = Column(Float, nullable=True)
    edit_longitude = Column(Float, nullable=True)


class CaseEventRow(Base):
    __tablename__ = CASE_EVENTS

    id = Column(String, primary_key=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
    applicant_id = Column(String, nullable=True, index=True)
    client_id = Column(String, nullable=True, index=True)
    event_type = Column(String, nullable=False)
    event_date = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    contact_method = Column(String, nullable=True)
    outcome = Column(String, nullable=True)
    next_steps = Column(Text, nullable=True)
    is_milestone = Column(Boolean, nullable=False, default=False)
    is_urgent = Column(Boolean, nullable=False, default=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    location_accuracy = Column(Float, nullable=True)


class ApplicationDocumentRow(Base):
    __tablename__ = APPLICATION_DOCUMENTS

    id = Column(String, primary_key=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
    application_id = Column(String, nullable=False, index=True)
    file_name = Column(String, nullable=False)
    file_url = Column(String, nullable=False)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String, nullable=True)
    document_type = Column(String, nullable=False, default="other")


class VisitPhotoRow(Base):
    __tablename__ = VISIT_PHOTOS

    id = Column(String, primary_key=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
    field_visit_id = Column(String, nullable=False, index=True)
    file_name = Column(String, nullable=False)
    file_url = Column(String, nullable=False)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String, nullable=True)
    caption = Column(Text, nullable=True)
    photo_type = Column(String, nullable=False, default="other")
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)


class ClientRow(Base):
    __tablename__ = CLIENTS

    id = Column(String, primary_key=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
    applicant_id = Column(String, nullable=True, unique=True)
    status = Column(String, nullable=True)
