"""Asset lifecycle: keep photo and document storage consistent with the quote.

Key rules:
- Photos live under a per-item prefix built from the item's stable id
  (see item_photo_prefix), fixed when the item is created.
- When items are removed, their prefixes are deleted. Retained items are
  matched by id and left alone; new items need no cleanup.
- When a quote is deleted, every item prefix, every variant's document and
  every link registry entry go. Each step is attempted regardless of the
  others failing.
- Nothing here raises on cleanup failure. Callers get a CleanupReport.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from quotedocs.core.errors import ItemNotFoundError
from quotedocs.models.quote import Quote
from quotedocs.schemas.quote import PhotoRef, QuoteItem
from quotedocs.services import short_link_service
from quotedocs.services.object_store import CleanupResult, ObjectStoreClient
from quotedocs.services.storage import generate_photo_key, item_photo_prefix

logger = logging.getLogger("quotedocs.assets")

# Max photo size: 5 MB
MAX_PHOTO_SIZE = 5 * 1024 * 1024
MAX_PHOTOS_PER_ITEM = 3

ALLOWED_PHOTO_CONTENT_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
}


@dataclass
class CleanupReport:
    results: list[CleanupResult] = field(default_factory=list)

    def add(self, result: CleanupResult) -> None:
        self.results.append(result)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failures(self) -> list[CleanupResult]:
        return [r for r in self.results if not r.ok]

    @property
    def deleted(self) -> int:
        return sum(r.deleted for r in self.results)


def _item_id(item: QuoteItem | dict) -> str | None:
    if isinstance(item, QuoteItem):
        return item.item_id
    return item.get("item_id")


def removed_item_ids(old_items: list, new_items: list) -> set[str]:
    """Ids present in old_items but not in new_items."""
    old_ids = {_item_id(i) for i in old_items} - {None}
    new_ids = {_item_id(i) for i in new_items} - {None}
    return old_ids - new_ids


def photo_prefix_for(quote: Quote, item_id: str) -> str:
    return item_photo_prefix(quote.created_at, quote.owner_id, quote.id, item_id)


async def on_items_changed(
    *,
    quote: Quote,
    old_items: list,
    new_items: list,
    photo_store: ObjectStoreClient,
) -> CleanupReport:
    """Delete the photo prefix of every item removed by an update."""
    report = CleanupReport()
    for item_id in sorted(removed_item_ids(old_items, new_items)):
        prefix = photo_prefix_for(quote, item_id)
        report.add(await photo_store.delete_prefix(prefix))
        logger.info("removed item photos purged quote_id=%s item_id=%s", quote.id, item_id)
    if report.failures:
        logger.warning(
            "item cleanup incomplete quote_id=%s failed=%d", quote.id, len(report.failures)
        )
    return report


async def on_quote_deleted(
    db: AsyncSession,
    *,
    quote: Quote,
    photo_store: ObjectStoreClient,
    document_store: ObjectStoreClient,
) -> CleanupReport:
    """Purge all photos, documents and short links of a quote. Best-effort."""
    report = CleanupReport()

    for item_id in sorted({_item_id(i) for i in quote.items or []} - {None}):
        report.add(await photo_store.delete_prefix(photo_prefix_for(quote, item_id)))

    for variant, key in sorted((quote.document_keys or {}).items()):
        result = await document_store.delete(key)
        report.add(result)
        if result.ok:
            logger.info("document deleted quote_id=%s variant=%s key=%s", quote.id, variant, key)

    report.add(await short_link_service.purge_short_links_for_quote(db, quote_id=quote.id))

    logger.info(
        "quote assets purged quote_id=%s deleted=%d failed=%d",
        quote.id, report.deleted, len(report.failures),
    )
    return report


def _find_item(quote: Quote, item_id: str) -> tuple[list[QuoteItem], QuoteItem]:
    items = [QuoteItem.model_validate(raw) for raw in quote.items or []]
    for item in items:
        if item.item_id == item_id:
            return items, item
    raise ItemNotFoundError(quote.id, item_id)


async def upload_photo(
    db: AsyncSession,
    *,
    quote: Quote,
    item_id: str,
    filename: str,
    content_type: str,
    data: bytes,
    photo_store: ObjectStoreClient,
) -> PhotoRef:
    """Store a photo under the item's prefix and attach it to the item.

    Re-uploading the same filename replaces the earlier photo. Does not
    affect the quote's content hash.
    """
    if content_type not in ALLOWED_PHOTO_CONTENT_TYPES:
        raise ValueError(
            f"Unsupported file type: {content_type}. "
            f"Allowed: {', '.join(sorted(ALLOWED_PHOTO_CONTENT_TYPES))}"
        )
    if not data:
        raise ValueError("Photo is empty.")
    if len(data) > MAX_PHOTO_SIZE:
        raise ValueError(f"Photo too large. Maximum size is {MAX_PHOTO_SIZE // (1024*1024)} MB.")

    items, item = _find_item(quote, item_id)
    key = generate_photo_key(quote.created_at, quote.owner_id, quote.id, item.item_id, filename)
    others = [p for p in item.photos if p.key != key]
    if len(others) >= MAX_PHOTOS_PER_ITEM:
        raise ValueError(f"Maximum {MAX_PHOTOS_PER_ITEM} photos allowed per item.")

    await photo_store.put(key, data, content_type)

    photo = PhotoRef(key=key, filename=key.rsplit("/", 1)[-1], content_type=content_type)
    item.photos = others + [photo]
    quote.items = [i.model_dump(mode="json") for i in items]
    await db.flush()
    logger.info("photo uploaded quote_id=%s item_id=%s key=%s", quote.id, item.item_id, key)
    return photo


async def delete_photo(
    db: AsyncSession,
    *,
    quote: Quote,
    item_id: str,
    key: str,
    photo_store: ObjectStoreClient,
) -> CleanupResult:
    """Detach a photo from its item and delete the blob (best-effort).

    Raises PermissionError if key is not under the item's prefix.
    """
    items, item = _find_item(quote, item_id)
    if not key.startswith(photo_prefix_for(quote, item.item_id)) or ".." in key.split("/"):
        raise PermissionError("Photo does not belong to this item")

    result = await photo_store.delete(key)
    item.photos = [p for p in item.photos if p.key != key]
    quote.items = [i.model_dump(mode="json") for i in items]
    await db.flush()
    return result
