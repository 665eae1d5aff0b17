"""
Application documents and visit photos: binary in object storage, metadata row in the database.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from casework.db import DbClient
from casework.errors import BackendError, InvalidRequest, upstream
from casework.storage import StorageClient, StorageError
from casework.tables import APPLICATION_DOCUMENTS, VISIT_PHOTOS

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    """A multipart file, fully buffered in memory."""

    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    def extension(self, default: str) -> str:
        if "." in self.filename:
            suffix = self.filename.rsplit(".", 1)[1]
            if suffix:
                return suffix
        return default


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def document_path(application_id: str, document_type: str, extension: str) -> str:
    return f"{application_id}/{_timestamp_ms()}-{document_type}.{extension}"


def photo_path(visit_id: str, extension: str) -> str:
    return f"{visit_id}/{_timestamp_ms()}.{extension}"


def _store(storage: StorageClient, bucket: str, path: str, upload: UploadedFile, what: str) -> str:
    try:
        storage.upload_bytes(bucket, path, upload.data, content_type=upload.content_type, upsert=False)
    except StorageError as exc:
        raise upstream(f"Failed to upload {what}", exc) from exc
    return storage.public_url(bucket, path)


def upload_document(
    db: DbClient,
    storage: StorageClient,
    bucket: str,
    upload: Optional[UploadedFile],
    application_id: Optional[str],
    document_type: Optional[str],
) -> dict:
    if upload is None or not application_id:
        raise InvalidRequest("File and application ID required")
    document_type = document_type or "other"
    path = document_path(application_id, document_type, upload.extension("pdf"))
    url = _store(storage, bucket, path, upload, "document")
    try:
        row = db.insert(
            APPLICATION_DOCUMENTS,
            {
                "application_id": application_id,
                "file_name": upload.filename,
                "file_url": url,
                "file_size": upload.size,
                "mime_type": upload.content_type,
                "document_type": document_type,
            },
        )
    except BackendError as exc:
        logger.error("Stored %s/%s but could not record it: %s", bucket, path, exc)
        raise upstream("Failed to save document record", exc) from exc
    logger.info("Stored document %s for application %s", path, application_id)
    return row


def list_documents(db: DbClient, application_id: Optional[str]) -> list[dict]:
    if not application_id:
        raise InvalidRequest("Application ID required")
    try:
        return db.select(
            APPLICATION_DOCUMENTS,
            filters={"application_id": application_id},
            order_by="created_at",
        )
    except BackendError as exc:
        raise upstream("Failed to fetch documents", exc) from exc


def _coordinate(value: Optional[str], name: str) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise InvalidRequest(f"{name} must be a number") from exc


def upload_photo(
    db: DbClient,
    storage: StorageClient,
    bucket: str,
    upload: Optional[UploadedFile],
    visit_id: Optional[str],
    *,
    caption: Optional[str] = None,
    photo_type: Optional[str] = None,
    latitude: Optional[str] = None,
    longitude: Optional[str] = None,
) -> dict:
    if upload is None or not visit_id:
        raise InvalidRequest("File and visit ID required")
    lat = _coordinate(latitude, "latitude")
    lng = _coordinate(longitude, "longitude")
    path = photo_path(visit_id, upload.extension("jpg"))
    url = _store(storage, bucket, path, upload, "photo")
    try:
        return db.insert(
            VISIT_PHOTOS,
            {
                "field_visit_id": visit_id,
                "file_name": upload.filename,
                "file_url": url,
                "file_size": upload.size,
                "mime_type": upload.content_type,
                "caption": caption or None,
                "photo_type": photo_type or "other",
                "latitude": lat,
                "longitude": lng,
            },
        )
    except BackendError as exc:
        logger.error("Stored %s/%s but could not record it: %s", bucket, path, exc)
        raise upstream("Failed to save photo record", exc) from exc


def list_photos(db: DbClient, visit_id: Optional[str]) -> list[dict]:
    if not visit_id:
        raise InvalidRequest("Visit ID required")
    try:
        return db.select(VISIT_PHOTOS, filters={"field_visit_id": visit_id}, order_by="created_at")
    except BackendError as exc:
        raise upstream("Failed to fetch photos", exc) from exc
