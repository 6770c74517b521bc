"""Storage abstraction for item photos and rendered documents.

Provides a pluggable blob storage backend per bucket. Default is the local
filesystem; S3 in deployed environments; in-memory for tests.

Backends raise on failure. Which failures are fatal and which are absorbed
is decided one level up, in ObjectStoreClient.
"""

import asyncio
import hashlib
import hmac
import os
import time
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path, PurePosixPath
from urllib.parse import quote as url_quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from quotedocs.core.errors import StorageError

# S3 DeleteObjects accepts at most 1000 keys per call
DELETE_BATCH_SIZE = 1000

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class StorageBackend(ABC):
    """Abstract storage backend bound to one bucket."""

    bucket: str

    @abstractmethod
    async def save(self, key: str, data: bytes, content_type: str) -> str:
        """Save object data. Returns the storage key."""
        ...

    @abstractmethod
    async def load(self, key: str) -> bytes:
        """Load object data by key. Raises FileNotFoundError if missing."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete object by key. No-op if not found."""
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if object exists."""
        ...

    @abstractmethod
    async def list_keys(self, prefix: str) -> list[str]:
        """List all keys starting with prefix."""
        ...

    @abstractmethod
    async def delete_many(self, keys: list[str]) -> int:
        """Delete keys in bulk. Returns how many were deleted."""
        ...

    @abstractmethod
    async def presign(self, key: str, ttl_seconds: int) -> str:
        """Return a URL granting read access to key for ttl_seconds."""
        ...


class UrlSigner:
    """HMAC-signed, expiring download URLs for backends without a native presigner.

    URLs point at the ``/files`` route, which checks them with ``verify``.
    """

    def __init__(self, base_url: str, secret: str):
        self._base_url = base_url.rstrip("/")
        self._secret = secret.encode("utf-8")

    def _signature(self, bucket: str, key: str, expires: int) -> str:
        message = f"{bucket}\n{key}\n{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def sign(self, bucket: str, key: str, ttl_seconds: int, now: float | None = None) -> str:
        expires = int(now if now is not None else time.time()) + ttl_seconds
        signature = self._signature(bucket, key, expires)
        return (
            f"{self._base_url}/files/{bucket}/{url_quote(key)}"
            f"?expires={expires}&signature={signature}"
        )

    def verify(
        self,
        bucket: str,
        key: str,
        expires: int,
        signature: str,
        now: float | None = None,
    ) -> bool:
        current = now if now is not None else time.time()
        if expires < current:
            return False
        expected = self._signature(bucket, key, expires)
        return hmac.compare_digest(expected, signature)


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage. One directory per bucket, keys map to paths.

    Not suitable for production multi-server deployments,
    but works for single-server development.
    """

    def __init__(self, bucket: str, base_dir: str | None = None, signer: UrlSigner | None = None):
        if base_dir is None:
            base_dir = os.environ.get("LOCAL_STORAGE_DIR", "/tmp/quotedocs-storage")
        self.bucket = bucket
        self._root = Path(base_dir) / bucket
        self._root.mkdir(parents=True, exist_ok=True)
        self._signer = signer

    def _path(self, key: str) -> Path:
        # Drop empty, "." and ".." segments to prevent path traversal
        parts = [p for p in key.replace("\\", "/").split("/") if p not in ("", ".", "..")]
        if not parts:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._root.joinpath(*parts)

    async def save(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return key

    async def load(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {key}")
        return path.read_bytes()

    async def delete(self, key: str) -> None:
        path = self._path(key)
        if path.is_file():
            path.unlink()

    async def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    async def list_keys(self, prefix: str) -> list[str]:
        keys = []
        for path in self._root.rglob("*"):
            if path.is_file():
                key = PurePosixPath(path.relative_to(self._root)).as_posix()
                if key.startswith(prefix):
                    keys.append(key)
        return sorted(keys)

    async def delete_many(self, keys: list[str]) -> int:
        deleted = 0
        for key in keys:
            path = self._path(key)
            if path.is_file():
                path.unlink()
                deleted += 1
        return deleted

    async def presign(self, key: str, ttl_seconds: int) -> str:
        if self._signer is None:
            raise StorageError("No URL signer configured for local storage")
        return self._signer.sign(self.bucket, key, ttl_seconds)


class InMemoryStorageBackend(StorageBackend):
    """In-memory storage for testing. No disk I/O."""

    def __init__(self, bucket: str = "memory", signer: UrlSigner | None = None):
        self.bucket = bucket
        self._store: dict[str, bytes] = {}
        self._signer = signer

    async def save(self, key: str, data: bytes, content_type: str) -> str:
        self._store[key] = data
        return key

    async def load(self, key: str) -> bytes:
        if key not in self._store:
            raise FileNotFoundError(f"File not found: {key}")
        return self._store[key]

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def exists(self, key: str) -> bool:
        return key in self._store

    async def list_keys(self, prefix: str) -> list[str]:
        return sorted(k for k in self._store if k.startswith(prefix))

    async def delete_many(self, keys: list[str]) -> int:
        deleted = 0
        for key in keys:
            if self._store.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def presign(self, key: str, ttl_seconds: int) -> str:
        if self._signer is None:
            return f"memory://{self.bucket}/{key}?ttl={ttl_seconds}"
        return self._signer.sign(self.bucket, key, ttl_seconds)


class S3StorageBackend(StorageBackend):
    """Amazon S3 storage backend.

    boto3 is synchronous, so each call runs in a worker thread. The client
    is created once and shared by every backend built from it.
    """

    def __init__(self, bucket: str, client=None, region: str = "us-east-1"):
        self.bucket = bucket
        self._client = client if client is not None else boto3.client("s3", region_name=region)

    async def save(self, key: str, data: bytes, content_type: str) -> str:
        extra = {}
        if content_type == "application/pdf":
            extra["ContentDisposition"] = "inline"
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ServerSideEncryption="AES256",
                **extra,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"put_object failed for {key}: {e}") from e
        return key

    async def load(self, key: str) -> bytes:
        try:
            response = await asyncio.to_thread(
                self._client.get_object, Bucket=self.bucket, Key=key
            )
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise FileNotFoundError(f"File not found: {key}") from e
            raise StorageError(f"get_object failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"get_object failed for {key}: {e}") from e
        return await asyncio.to_thread(response["Body"].read)

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.delete_object, Bucket=self.bucket, Key=key
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"delete_object failed for {key}: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            await asyncio.to_thread(
                self._client.head_object, Bucket=self.bucket, Key=key
            )
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return False
            raise StorageError(f"head_object failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"head_object failed for {key}: {e}") from e
        return True

    async def list_keys(self, prefix: str) -> list[str]:
        def _list() -> list[str]:
            keys = []
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
            return keys

        try:
            return await asyncio.to_thread(_list)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"list_objects_v2 failed for {prefix}: {e}") from e

    async def delete_many(self, keys: list[str]) -> int:
        deleted = 0
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            try:
                response = await asyncio.to_thread(
                    self._client.delete_objects,
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
                )
            except (BotoCoreError, ClientError) as e:
                raise StorageError(f"delete_objects failed: {e}") from e
            errors = response.get("Errors", [])
            deleted += len(batch) - len(errors)
            if errors:
                first = errors[0]
                raise StorageError(
                    f"delete_objects failed for {len(errors)} key(s), "
                    f"first {first.get('Key')}: {first.get('Message')}"
                )
        return deleted

    async def presign(self, key: str, ttl_seconds: int) -> str:
        try:
            return await asyncio.to_thread(
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to presign {key}: {e}") from e


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def sanitize_filename(filename: str) -> str:
    """Strip path components and replace anything outside [A-Za-z0-9._-]."""
    basename = filename.replace("\\", "/").rsplit("/", 1)[-1]
    safe = "".join(c if c.isalnum() or c in (".", "-", "_") else "_" for c in basename)
    return safe[:100] or "unnamed"


def item_photo_prefix(created_at: datetime, owner_id: str, quote_id: str, item_id: str) -> str:
    """Key prefix shared by every photo of one item.

    Format: YYYY/MM/DD/{owner_id}/{quote_id}/{item_id}/

    The date is the quote's creation date and the last segment is the item's
    stable id, so the prefix is fixed for the item's whole life and never
    overlaps another item's.
    """
    return f"{created_at:%Y/%m/%d}/{owner_id}/{quote_id}/{item_id}/"


def generate_photo_key(
    created_at: datetime,
    owner_id: str,
    quote_id: str,
    item_id: str,
    filename: str,
) -> str:
    return item_photo_prefix(created_at, owner_id, quote_id, item_id) + sanitize_filename(filename)


def generate_document_key(owner_id: str, quote_id: str, variant: str, extension: str) -> str:
    """Deterministic document key per (owner, quote, variant).

    Format: {owner_id}/{quote_id}/quote_{quote_id}_{variant}.{extension}
    """
    return f"{owner_id}/{quote_id}/quote_{quote_id}_{variant}.{extension}"
