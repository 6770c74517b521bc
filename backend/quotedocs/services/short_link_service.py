"""Link registry: idempotent upsert, resolve to a fresh URL, purge by quote.

Resolving a slug never re-renders anything. It only hands out a
time-limited URL for the document key the entry currently points at,
reusing the last issued URL while it has more than a minute left.
"""

import logging
import time
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quotedocs.core.errors import ShortLinkNotFoundError
from quotedocs.models.base import utcnow
from quotedocs.models.short_link import ShortLink
from quotedocs.services.object_store import CleanupResult, ObjectStoreClient
from quotedocs.services.slug import generate_slug

logger = logging.getLogger("quotedocs.links")

# A cached URL is reused only if it stays valid at least this much longer
PRESIGNED_URL_REFRESH_BUFFER_SECONDS = 60


@dataclass(frozen=True)
class ResolvedLink:
    slug: str
    quote_id: str
    variant: str
    document_key: str
    url: str
    expires_at: int
    reused: bool


def build_short_url(base_url: str, slug: str) -> str:
    return f"{base_url.rstrip('/')}/{slug}"


async def upsert_short_link(
    db: AsyncSession,
    *,
    quote_id: str,
    variant: str,
    document_key: str,
) -> str:
    """Create or update the entry for (quote_id, variant). Returns the slug.

    Safe to repeat: an existing entry keeps its slug and created_at and only
    gets the new document key and updated_at. If a concurrent request inserts
    the same slug between our read and our insert, its row is updated
    instead, so both callers get the slug.
    """
    slug = generate_slug(quote_id, variant)
    now = utcnow()
    link = await db.get(ShortLink, slug)

    if link is None:
        try:
            async with db.begin_nested():
                db.add(
                    ShortLink(
                        slug=slug,
                        quote_id=quote_id,
                        variant=variant,
                        document_key=document_key,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError:
            # Another request inserted the same slug first; update its row
            link = await db.get(ShortLink, slug)
            if link is None:
                raise
            logger.info("short link insert conflict, updating existing row slug=%s", slug)
        else:
            logger.info(
                "short link created slug=%s quote_id=%s variant=%s", slug, quote_id, variant
            )
            return slug

    if (link.quote_id, link.variant) != (quote_id, variant):
        # Truncated-digest collision. Not handled, see slug module.
        logger.warning(
            "slug collision slug=%s existing=%s/%s incoming=%s/%s",
            slug, link.quote_id, link.variant, quote_id, variant,
        )
    if link.document_key != document_key:
        # The cached URL points at the old key
        link.last_presigned_url = None
        link.last_presigned_expires_at = None
    link.document_key = document_key
    link.updated_at = now
    logger.info("short link updated slug=%s quote_id=%s variant=%s", slug, quote_id, variant)

    await db.flush()
    return slug


async def resolve_short_link(
    db: AsyncSession,
    *,
    slug: str,
    store: ObjectStoreClient,
    ttl_seconds: int,
    now: float | None = None,
) -> ResolvedLink:
    """Return a time-limited URL for the document behind slug.

    Raises ShortLinkNotFoundError if no entry exists. Presign failures
    propagate as StorageError.
    """
    link = await db.get(ShortLink, slug)
    if link is None:
        raise ShortLinkNotFoundError(slug)

    now_ts = int(now if now is not None else time.time())
    if (
        link.last_presigned_url
        and link.last_presigned_expires_at
        and link.last_presigned_expires_at > now_ts + PRESIGNED_URL_REFRESH_BUFFER_SECONDS
    ):
        logger.info("short link resolved from cache slug=%s", slug)
        return ResolvedLink(
            slug=slug,
            quote_id=link.quote_id,
            variant=link.variant,
            document_key=link.document_key,
            url=link.last_presigned_url,
            expires_at=link.last_presigned_expires_at,
            reused=True,
        )

    url = await store.presign(link.document_key, ttl_seconds)
    expires_at = now_ts + ttl_seconds
    link.last_presigned_url = url
    link.last_presigned_expires_at = expires_at
    link.updated_at = utcnow()
    await db.flush()
    logger.info("short link resolved with new url slug=%s expires_at=%d", slug, expires_at)

    return ResolvedLink(
        slug=slug,
        quote_id=link.quote_id,
        variant=link.variant,
        document_key=link.document_key,
        url=url,
        expires_at=expires_at,
        reused=False,
    )


async def purge_short_links_for_quote(db: AsyncSession, *, quote_id: str) -> CleanupResult:
    """Delete every entry for quote_id. Best-effort.

    Each delete runs in its own savepoint, so one failure leaves the others
    in place and the result carries the partial count.
    """
    target = f"short_links:{quote_id}"
    try:
        result = await db.execute(select(ShortLink).where(ShortLink.quote_id == quote_id))
        links = list(result.scalars().all())
    except Exception as e:
        logger.warning("short link lookup failed quote_id=%s error=%s", quote_id, e)
        return CleanupResult(target=target, ok=False, error=str(e))

    deleted = 0
    errors = []
    for link in links:
        slug = link.slug
        try:
            async with db.begin_nested():
                await db.delete(link)
                await db.flush()
        except Exception as e:
            logger.warning("short link delete failed slug=%s quote_id=%s error=%s", slug, quote_id, e)
            errors.append(f"{slug}: {e}")
            continue
        deleted += 1
        logger.info("short link deleted slug=%s quote_id=%s", slug, quote_id)

    if errors:
        return CleanupResult(target=target, ok=False, deleted=deleted, error="; ".join(errors))
    return CleanupResult(target=target, ok=True, deleted=deleted)
