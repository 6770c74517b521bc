"""Quote service: create, get, update, delete.

Key rules:
- Every item gets a generated id once; edits that carry a known item_id
  keep it (and the item's photos). Unknown or repeated ids are treated as
  new items, so deleted ids are never reused.
- total_price is always the sum of item prices (cents).
- Storage cleanup runs after the quote change is flushed and never blocks it.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from quotedocs.core.errors import QuoteNotFoundError
from quotedocs.models.base import generate_id
from quotedocs.models.quote import Quote
from quotedocs.schemas.quote import ItemInput, QuoteCreate, QuoteItem, QuoteUpdate
from quotedocs.services import asset_service
from quotedocs.services.asset_service import CleanupReport
from quotedocs.services.object_store import ObjectStoreClient

logger = logging.getLogger("quotedocs.quotes")

_REQUIRED_FIELDS = {"customer_name", "status"}


def build_items(inputs: list[ItemInput], existing: list[QuoteItem] | None = None) -> list[QuoteItem]:
    by_id = {item.item_id: item for item in existing or []}
    items = []
    seen: set[str] = set()
    for data in inputs:
        prior = by_id.get(data.item_id) if data.item_id else None
        if prior is not None and prior.item_id not in seen:
            item_id, photos = prior.item_id, prior.photos
        else:
            item_id, photos = generate_id(), []
        seen.add(item_id)
        items.append(
            QuoteItem(
                item_id=item_id,
                type=data.type,
                description=data.description,
                diameter_in_inches=data.diameter_in_inches,
                height_in_feet=data.height_in_feet,
                risk_factors=list(data.risk_factors),
                price=data.price,
                photos=photos,
            )
        )
    return items


def calculate_total_price(items: list[QuoteItem]) -> int:
    return sum(item.price for item in items)


async def create_quote(db: AsyncSession, *, data: QuoteCreate) -> Quote:
    items = build_items(data.items)
    quote = Quote(
        owner_id=data.owner_id,
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        customer_address=data.customer_address,
        notes=data.notes,
        items=[i.model_dump(mode="json") for i in items],
        total_price=calculate_total_price(items),
        document_keys={},
        content_hashes={},
    )
    db.add(quote)
    await db.flush()
    logger.info(
        "quote created quote_id=%s items=%d total=%d", quote.id, len(items), quote.total_price
    )
    return quote


async def get_quote(db: AsyncSession, *, quote_id: str) -> Quote:
    quote = await db.get(Quote, quote_id)
    if quote is None:
        raise QuoteNotFoundError(quote_id)
    return quote


async def update_quote(
    db: AsyncSession,
    *,
    quote_id: str,
    data: QuoteUpdate,
    photo_store: ObjectStoreClient,
) -> Quote:
    """Apply a partial update. Photos of removed items are purged afterwards."""
    quote = await get_quote(db, quote_id=quote_id)
    fields = data.model_dump(exclude_unset=True, exclude={"items"})
    for name, value in fields.items():
        # An explicit null on a NOT NULL column means "leave as is"
        if name in _REQUIRED_FIELDS and value is None:
            continue
        setattr(quote, name, value)

    old_items = None
    new_items = None
    if data.items is not None:
        old_items = [QuoteItem.model_validate(raw) for raw in quote.items or []]
        new_items = build_items(data.items, old_items)
        quote.items = [i.model_dump(mode="json") for i in new_items]
        quote.total_price = calculate_total_price(new_items)

    await db.flush()
    logger.info("quote updated quote_id=%s fields=%s", quote.id, sorted(data.model_fields_set))

    if old_items is not None:
        await asset_service.on_items_changed(
            quote=quote, old_items=old_items, new_items=new_items, photo_store=photo_store
        )
    return quote


async def delete_quote(
    db: AsyncSession,
    *,
    quote_id: str,
    photo_store: ObjectStoreClient,
    document_store: ObjectStoreClient,
) -> CleanupReport:
    """Delete a quote and purge its photos, documents and short links.

    Cleanup failures are reported, never raised, and do not stop the
    quote row from being deleted.
    """
    quote = await get_quote(db, quote_id=quote_id)
    report = await asset_service.on_quote_deleted(
        db, quote=quote, photo_store=photo_store, document_store=document_store
    )
    await db.delete(quote)
    await db.flush()
    logger.info("quote deleted quote_id=%s cleanup_ok=%s", quote_id, report.ok)
    return report
