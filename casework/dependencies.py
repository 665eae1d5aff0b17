"""
Dependency wiring for the FastAPI app.

Backend clients are created once per process and handed to request
handlers through ``Depends``. Tests replace them with
``app.dependency_overrides``.
"""

from __future__ import annotations

import logging

from casework.config import get_settings
from casework.db import DbClient, InMemoryDbClient, SqlDbClient
from casework.identity import GoTrueIdentityProvider, IdentityProvider, InMemoryIdentityProvider
from casework.storage import InMemoryStorageClient, S3StorageClient, StorageClient

logger = logging.getLogger(__name__)

_memory_db: InMemoryDbClient | None = None
_db_client: DbClient | None = None
_service_db_client: DbClient | None = None
_identity_provider: IdentityProvider | None = None
_storage_client: StorageClient | None = None


def _shared_memory_db() -> InMemoryDbClient:
    # Both privilege tiers see the same rows when running without a database.
    global _memory_db
    if _memory_db is None:
        _memory_db = InMemoryDbClient()
    return _memory_db


def get_db_client() -> DbClient:
    """
    Return the restricted client, bound by the backend's row-level security.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = _shared_memory_db()
        logger.info("No database configured; using in-memory tables")
    else:
        _db_client = SqlDbClient(settings.database_url, create_tables=False)
    return _db_client


def get_service_db_client() -> DbClient:
    """
    Return the elevated (service-role) client, which bypasses access policy.
    """
    global _service_db_client
    if _service_db_client:
        return _service_db_client

    settings = get_settings()
    url = settings.service_database_url or settings.database_url
    if settings.use_in_memory_backends or not url:
        _service_db_client = _shared_memory_db()
    else:
        _service_db_client = SqlDbClient(url)
    return _service_db_client


def get_identity_provider() -> IdentityProvider:
    global _identity_provider
    if _identity_provider:
        return _identity_provider

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.auth_url:
        _identity_provider = InMemoryIdentityProvider()
        logger.info("No auth service configured; using in-memory identity provider")
    else:
        _identity_provider = GoTrueIdentityProvider(
            base_url=settings.auth_url,
            anon_key=settings.auth_anon_key or "",
            service_role_key=settings.auth_service_role_key or "",
            timeout=settings.auth_timeout_seconds,
        )
    return _identity_provider


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_endpoint:
        _storage_client = InMemoryStorageClient()
        logger.info("No storage endpoint configured; using in-memory object store")
    else:
        _storage_client = S3StorageClient(
            endpoint=settings.storage_endpoint,
            region=settings.storage_region or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.storage_public_url or settings.storage_endpoint,
        )
    return _storage_client
