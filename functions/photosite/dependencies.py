"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request

from photosite.auth import (
    AdminSession,
    CredentialVerifier,
    DenyAllVerifier,
    HashedPasswordVerifier,
    InMemorySessionStore,
    PlaintextVerifier,
    RedisSessionStore,
    SessionStore,
)
from photosite.config import get_settings
from photosite.content import ContentService
from photosite.legacy_cache import LegacyCache
from photosite.relay import UploadRelay
from photosite.storage import InMemoryObjectStorage, ObjectStorage, S3ObjectStorage
from photosite.store import (
    InMemoryRecordStore,
    RecordStore,
    RestRecordStore,
    SqlRecordStore,
)
from photosite.uploads import UploadRelayClient

logger = logging.getLogger(__name__)

_record_store: RecordStore | None = None
_object_storage: ObjectStorage | None = None
_session_store: SessionStore | None = None


def get_record_store() -> RecordStore:
    """
    Return a singleton record store so in-memory state persists across requests.
    """
    global _record_store
    if _record_store:
        return _record_store

    settings = get_settings()
    if settings.store_backend == "rest":
        _record_store = RestRecordStore(
            settings.store_url,
            settings.store_api_key,
            timeout=settings.store_timeout_seconds,
        )
    elif settings.store_backend == "sql":
        _record_store = SqlRecordStore(settings.database_url)
    else:
        _record_store = InMemoryRecordStore()
    logger.info("Using %s record store", type(_record_store).__name__)
    return _record_store


def get_content_service(
    store: RecordStore = Depends(get_record_store),
) -> ContentService:
    settings = get_settings()
    return ContentService(
        store,
        default_logo_url=settings.default_logo_url,
        default_post_image_url=settings.default_post_image_url,
    )


def get_object_storage() -> Optional[ObjectStorage]:
    """
    Return the relay's object storage, or None when S3 is not configured.
    """
    global _object_storage
    if _object_storage:
        return _object_storage

    settings = get_settings()
    if settings.use_in_memory_storage:
        _object_storage = InMemoryObjectStorage(region=settings.aws_region)
    elif (
        settings.aws_access_key_id
        and settings.aws_secret_access_key
        and settings.aws_bucket_name
    ):
        _object_storage = S3ObjectStorage(
            bucket=settings.aws_bucket_name,
            region=settings.aws_region,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
            endpoint=settings.s3_endpoint,
        )
    return _object_storage


def get_upload_relay() -> UploadRelay:
    return UploadRelay(storage_factory=get_object_storage)


def get_upload_client() -> Optional[UploadRelayClient]:
    """
    Return a client for the configured relay endpoint, or None when no
    endpoint can be derived from settings.
    """
    settings = get_settings()
    endpoint = settings.relay_endpoint
    if not endpoint:
        return None
    return UploadRelayClient(endpoint, settings.store_api_key or "")


def get_session_store() -> SessionStore:
    global _session_store
    if _session_store:
        return _session_store

    settings = get_settings()
    if settings.redis_url:
        _session_store = RedisSessionStore(
            url=settings.redis_url, prefix=settings.redis_session_prefix
        )
    else:
        _session_store = InMemorySessionStore()
    return _session_store


def get_credential_verifier() -> CredentialVerifier:
    settings = get_settings()
    if settings.admin_password_hash:
        return HashedPasswordVerifier(settings.admin_password_hash)
    if settings.admin_password:
        return PlaintextVerifier(settings.admin_password)
    logger.warning("No admin credential configured; admin login is disabled")
    return DenyAllVerifier()


def get_admin_session(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
) -> AdminSession:
    settings = get_settings()
    session = AdminSession(
        store,
        verifier,
        token=request.cookies.get(settings.session_cookie_name),
        ttl_seconds=settings.session_ttl_seconds,
    )
    return session.restore()


def get_legacy_cache() -> LegacyCache:
    return LegacyCache(get_settings().legacy_cache_dir)
