"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional, Union

from fastapi import Depends, Header

from livewall.accounts import AccountService
from livewall.config import Settings, get_settings
from livewall.db import InMemoryDbClient, PostgresDbClient
from livewall.errors import UnauthorizedError
from livewall.passwords import PasswordHasher
from livewall.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from livewall.submissions import SubmissionService

logger = logging.getLogger(__name__)

DbClient = Union[InMemoryDbClient, PostgresDbClient]

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_submission_service: SubmissionService | None = None
_account_service: AccountService | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        logger.warning("DATABASE_URL not set; using in-memory stores")
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_configured:
        logger.warning("S3 bucket or credentials not set; using in-memory storage")
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.aws_s3_bucket_name,
            region=settings.aws_region,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
            endpoint=settings.s3_endpoint_url,
            public_base_url=settings.s3_public_base_url,
        )
    return _storage_client


def get_submission_service() -> SubmissionService:
    global _submission_service
    if _submission_service:
        return _submission_service
    _submission_service = SubmissionService(get_db_client(), get_storage_client())
    return _submission_service


def get_account_service() -> AccountService:
    global _account_service
    if _account_service:
        return _account_service
    settings = get_settings()
    _account_service = AccountService(
        get_db_client(), PasswordHasher(rounds=settings.bcrypt_rounds)
    )
    return _account_service


def require_admin_secret(
    x_admin_secret: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Gate admin creation on the configured shared secret. Unset refuses all calls."""
    required = settings.admin_create_secret
    if not required:
        raise UnauthorizedError("Admin creation is not configured on this server")
    if not x_admin_secret or not secrets.compare_digest(
        x_admin_secret.encode("utf-8"), required.encode("utf-8")
    ):
        raise UnauthorizedError("Invalid admin creation secret")
