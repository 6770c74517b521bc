"""Document cache: reuse the stored document while the quote's content is unchanged.

Per (quote, variant) request:
1. Load the quote (QuoteNotFoundError if absent).
2. Hash its content.
3. Cache hit iff not forced, both stored key and stored hash exist, the
   stored hash equals the new one, and the object is still in storage.
   The existence check runs on every request; stored metadata alone is not
   trusted.
4. On a miss: render, store (StorageWriteError is fatal and leaves the
   metadata untouched), then overwrite the variant's key and hash.
Either way the link registry entry is upserted; a failure there is logged
and the response simply has no short URL.

There is no locking. Two concurrent misses both render and write the same
key, and the last writer wins on the metadata.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from quotedocs.config import settings
from quotedocs.services import quote_service, short_link_service
from quotedocs.services.content_hash import compute_content_hash
from quotedocs.services.object_store import ObjectStoreClient
from quotedocs.services.renderer import DocumentRenderer, NullOwnerLookup, OwnerLookup
from quotedocs.services.storage import generate_document_key

logger = logging.getLogger("quotedocs.documents")


@dataclass(frozen=True)
class DocumentResult:
    quote_id: str
    variant: str
    document_key: str
    content_hash: str
    url: str
    short_url: str | None
    ttl_seconds: int
    cached: bool


async def _ensure_short_link(
    db: AsyncSession,
    *,
    quote_id: str,
    variant: str,
    document_key: str,
    base_url: str,
) -> str | None:
    try:
        async with db.begin_nested():
            slug = await short_link_service.upsert_short_link(
                db, quote_id=quote_id, variant=variant, document_key=document_key
            )
    except Exception as e:
        logger.warning(
            "short link upsert failed, continuing without it quote_id=%s variant=%s error=%s",
            quote_id, variant, e,
        )
        return None
    return short_link_service.build_short_url(base_url, slug)


async def get_or_create_document(
    db: AsyncSession,
    *,
    quote_id: str,
    variant: str,
    store: ObjectStoreClient,
    renderer: DocumentRenderer,
    owner_lookup: OwnerLookup | None = None,
    force_regenerate: bool = False,
    owner_id: str | None = None,
    ttl_seconds: int | None = None,
    short_link_base_url: str | None = None,
    variants: list[str] | None = None,
) -> DocumentResult:
    """Return a time-limited URL for the quote's document in variant.

    Raises ValueError for an unknown variant, QuoteNotFoundError,
    PermissionError if owner_id is given and does not own the quote, and
    StorageWriteError if a freshly rendered document cannot be stored.
    """
    allowed = variants if variants is not None else settings.document_variants
    if variant not in allowed:
        raise ValueError(f"Invalid variant. Must be one of: {', '.join(allowed)}")
    ttl = ttl_seconds if ttl_seconds is not None else settings.document_url_ttl_seconds
    base_url = short_link_base_url or settings.short_link_base_url

    quote = await quote_service.get_quote(db, quote_id=quote_id)
    if owner_id is not None and quote.owner_id != owner_id:
        raise PermissionError("Quote does not belong to this user")

    new_hash = compute_content_hash(quote)
    stored_key = (quote.document_keys or {}).get(variant)
    stored_hash = (quote.content_hashes or {}).get(variant)

    if force_regenerate:
        reason = "forced"
    elif not stored_key or not stored_hash:
        reason = "no_metadata"
    elif stored_hash != new_hash:
        reason = "hash_changed"
    elif not await store.exists(stored_key):
        reason = "object_missing"
    else:
        reason = None

    if reason is None:
        logger.info(
            "document cache hit quote_id=%s variant=%s key=%s", quote_id, variant, stored_key
        )
        short_url = await _ensure_short_link(
            db, quote_id=quote_id, variant=variant, document_key=stored_key, base_url=base_url
        )
        url = await store.presign(stored_key, ttl)
        return DocumentResult(
            quote_id=quote_id,
            variant=variant,
            document_key=stored_key,
            content_hash=new_hash,
            url=url,
            short_url=short_url,
            ttl_seconds=ttl,
            cached=True,
        )

    logger.info(
        "document cache miss quote_id=%s variant=%s reason=%s old_hash=%s new_hash=%s",
        quote_id, variant, reason, stored_hash, new_hash,
    )
    lookup = owner_lookup or NullOwnerLookup()
    context = await lookup.get_context(quote.owner_id)
    data = renderer.render(quote, variant, context)

    key = generate_document_key(quote.owner_id, quote.id, variant, renderer.extension)
    await store.put(key, data, renderer.content_type)

    quote.document_keys = {**(quote.document_keys or {}), variant: key}
    quote.content_hashes = {**(quote.content_hashes or {}), variant: new_hash}
    await db.flush()
    logger.info(
        "document stored quote_id=%s variant=%s key=%s bytes=%d", quote_id, variant, key, len(data)
    )

    short_url = await _ensure_short_link(
        db, quote_id=quote_id, variant=variant, document_key=key, base_url=base_url
    )
    url = await store.presign(key, ttl)
    return DocumentResult(
        quote_id=quote_id,
        variant=variant,
        document_key=key,
        content_hash=new_hash,
        url=url,
        short_url=short_url,
        ttl_seconds=ttl,
        cached=False,
    )
