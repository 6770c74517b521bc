"""FastAPI dependencies: DB session, object stores, rendering collaborators.

Clients are built explicitly from settings and handed to services; tests
swap them through app.dependency_overrides.
"""

from collections.abc import AsyncIterator
from functools import lru_cache

import boto3
from fastapi import Depends
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from quotedocs.config import settings
from quotedocs.services.object_store import ObjectStoreClient
from quotedocs.services.renderer import (
    DocumentRenderer,
    NullOwnerLookup,
    OwnerLookup,
    TextDocumentRenderer,
)
from quotedocs.services.storage import (
    InMemoryStorageBackend,
    LocalStorageBackend,
    S3StorageBackend,
    StorageBackend,
    UrlSigner,
)


@lru_cache
def get_engine() -> AsyncEngine:
    return create_async_engine(settings.database_url)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session: commit on success, roll back on error."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@lru_cache
def get_url_signer() -> UrlSigner:
    return UrlSigner(settings.public_base_url, settings.url_signing_secret)


@lru_cache
def _s3_client():
    # One network client shared by both buckets
    return boto3.client("s3", region_name=settings.aws_region)


def build_backend(bucket: str) -> StorageBackend:
    if settings.storage_backend == "s3":
        return S3StorageBackend(bucket, client=_s3_client())
    if settings.storage_backend == "memory":
        return InMemoryStorageBackend(bucket, signer=get_url_signer())
    if settings.storage_backend == "local":
        return LocalStorageBackend(bucket, settings.local_storage_dir, signer=get_url_signer())
    raise RuntimeError(f"Unknown storage backend: {settings.storage_backend}")


@lru_cache
def get_photo_store() -> ObjectStoreClient:
    return ObjectStoreClient(build_backend(settings.photos_bucket))


@lru_cache
def get_document_store() -> ObjectStoreClient:
    return ObjectStoreClient(build_backend(settings.documents_bucket))


def get_stores(
    photo_store: ObjectStoreClient = Depends(get_photo_store),
    document_store: ObjectStoreClient = Depends(get_document_store),
) -> dict[str, ObjectStoreClient]:
    """Stores by bucket name."""
    return {photo_store.bucket: photo_store, document_store.bucket: document_store}


def get_renderer() -> DocumentRenderer:
    return TextDocumentRenderer()


def get_owner_lookup() -> OwnerLookup:
    return NullOwnerLookup()
