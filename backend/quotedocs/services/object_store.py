"""Object store client: failure policy on top of a storage backend.

- put: failures propagate as StorageWriteError (nothing may proceed
  without durable storage).
- exists: any failure other than "not found" counts as "does not exist",
  which forces regeneration instead of trusting a dangling reference.
- delete / delete_prefix: best-effort cleanup. Failures are logged and
  returned as a CleanupResult, never raised.
"""

import logging
from dataclasses import dataclass

from quotedocs.core.errors import StorageError, StorageWriteError
from quotedocs.services.storage import StorageBackend

logger = logging.getLogger("quotedocs.storage")


@dataclass(frozen=True)
class CleanupResult:
    """Outcome of one best-effort delete."""

    target: str
    ok: bool
    deleted: int = 0
    error: str | None = None


class ObjectStoreClient:
    def __init__(self, backend: StorageBackend):
        self._backend = backend

    @property
    def bucket(self) -> str:
        return self._backend.bucket

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        try:
            return await self._backend.save(key, data, content_type)
        except Exception as e:
            logger.error("put failed bucket=%s key=%s error=%s", self.bucket, key, e)
            raise StorageWriteError(key, str(e)) from e

    async def get(self, key: str) -> bytes:
        """Raises FileNotFoundError if missing, StorageError on other failures."""
        try:
            return await self._backend.load(key)
        except (FileNotFoundError, StorageError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            return await self._backend.exists(key)
        except Exception as e:
            logger.warning(
                "existence check failed, treating as missing bucket=%s key=%s error=%s",
                self.bucket, key, e,
            )
            return False

    async def list_keys(self, prefix: str) -> list[str]:
        return await self._backend.list_keys(prefix)

    async def delete(self, key: str) -> CleanupResult:
        try:
            await self._backend.delete(key)
        except Exception as e:
            logger.warning("delete failed bucket=%s key=%s error=%s", self.bucket, key, e)
            return CleanupResult(target=key, ok=False, error=str(e))
        return CleanupResult(target=key, ok=True, deleted=1)

    async def delete_prefix(self, prefix: str) -> CleanupResult:
        """List every key under prefix, then bulk-delete them."""
        if not prefix or not prefix.endswith("/"):
            raise ValueError(f"Refusing to delete by non-directory prefix: {prefix!r}")
        try:
            keys = await self._backend.list_keys(prefix)
            deleted = await self._backend.delete_many(keys) if keys else 0
        except Exception as e:
            logger.warning(
                "prefix delete failed bucket=%s prefix=%s error=%s", self.bucket, prefix, e
            )
            return CleanupResult(target=prefix, ok=False, error=str(e))
        logger.info("prefix deleted bucket=%s prefix=%s count=%d", self.bucket, prefix, deleted)
        return CleanupResult(target=prefix, ok=True, deleted=deleted)

    async def presign(self, key: str, ttl_seconds: int) -> str:
        try:
            return await self._backend.presign(key, ttl_seconds)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to presign {key}: {e}") from e
