"""Content fingerprint of a quote, used to decide whether a cached document is stale.

Only fields that change the rendered text take part: customer details, notes,
total and each item reduced to its textual fields. Status, timestamps, cache
metadata and photo references are left out. Items are sorted by their stable
id so reordering never changes the hash. No salt: the digest must be
reproducible from quote state alone.
"""

import hashlib
import json

from quotedocs.models.quote import Quote
from quotedocs.schemas.quote import QuoteItem


def _canonical_item(item: QuoteItem) -> dict:
    return {
        "item_id": item.item_id,
        "type": item.type.value,
        "description": item.description,
        "diameter_in_inches": item.diameter_in_inches,
        "height_in_feet": item.height_in_feet,
        "risk_factors": list(item.risk_factors),
        "price": item.price,
    }


def canonical_content(quote: Quote) -> dict:
    items = [QuoteItem.model_validate(raw) for raw in quote.items or []]
    items.sort(key=lambda item: item.item_id)
    return {
        "quote_id": quote.id,
        "customer_name": quote.customer_name,
        "customer_phone": quote.customer_phone,
        "customer_address": quote.customer_address,
        "notes": quote.notes,
        "items": [_canonical_item(item) for item in items],
        "total_price": quote.total_price,
    }


def compute_content_hash(quote: Quote) -> str:
    """SHA-256 hex digest (64 chars) of the quote's canonical content."""
    payload = json.dumps(
        canonical_content(quote),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
