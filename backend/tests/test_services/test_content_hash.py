"""Content hash tests: determinism, sensitivity, order independence."""

import copy
from datetime import datetime, timezone

import pytest

from quotedocs.models.quote import Quote, QuoteStatus
from quotedocs.services.content_hash import canonical_content, compute_content_hash


def _item(item_id: str, price: int, **extra) -> dict:
    item = {
        "item_id": item_id,
        "type": "tree_removal",
        "description": f"Item {item_id}",
        "diameter_in_inches": 24.0,
        "height_in_feet": 40.0,
        "risk_factors": ["near_house"],
        "price": price,
        "photos": [],
    }
    item.update(extra)
    return item


def _quote(**overrides) -> Quote:
    fields = dict(
        id="Q1",
        owner_id="user_001",
        customer_name="Jane Doe",
        customer_phone="555-0100",
        customer_address="1 Elm St",
        notes="Gate code 1234",
        status=QuoteStatus.draft,
        items=[_item("A", 100), _item("B", 200)],
        total_price=300,
        document_keys={},
        content_hashes={},
        created_at=datetime(2025, 11, 29, tzinfo=timezone.utc),
        updated_at=datetime(2025, 11, 29, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return Quote(**fields)


def test_hash_is_deterministic():
    quote = _quote()
    assert compute_content_hash(quote) == compute_content_hash(quote)
    assert compute_content_hash(quote) == compute_content_hash(_quote())


def test_hash_is_sha256_hex():
    digest = compute_content_hash(_quote())
    assert len(digest) == 64
    int(digest, 16)


def test_item_order_does_not_change_hash():
    forward = _quote(items=[_item("A", 100), _item("B", 200), _item("C", 50)])
    shuffled = _quote(items=[_item("C", 50), _item("A", 100), _item("B", 200)])
    assert compute_content_hash(forward) == compute_content_hash(shuffled)


def test_item_key_order_does_not_change_hash():
    item = _item("A", 100)
    reversed_keys = dict(reversed(list(item.items())))
    assert compute_content_hash(_quote(items=[item])) == compute_content_hash(
        _quote(items=[reversed_keys])
    )


def test_integer_and_float_measurements_hash_the_same():
    as_int = _quote(items=[_item("A", 100, diameter_in_inches=24)])
    as_float = _quote(items=[_item("A", 100, diameter_in_inches=24.0)])
    assert compute_content_hash(as_int) == compute_content_hash(as_float)


def _with_item_change(**changes):
    items = [_item("A", 100), _item("B", 200)]
    items[1].update(changes)
    return items


@pytest.mark.parametrize(
    "overrides",
    [
        {"items": _with_item_change(description="Remove dead pine")},
        {"items": _with_item_change(price=300)},
        {"items": _with_item_change(risk_factors=["near_house", "power_lines"])},
        {"items": _with_item_change(type="pruning")},
        {"items": _with_item_change(diameter_in_inches=30.0)},
        {"items": _with_item_change(height_in_feet=None)},
        {"items": [_item("A", 100)]},
        {"items": [_item("A", 100), _item("B", 200), _item("C", 0)]},
        {"notes": "Call before arrival"},
        {"customer_name": "John Doe"},
        {"customer_phone": None},
        {"customer_address": "2 Oak Ave"},
        {"total_price": 301},
    ],
)
def test_content_change_changes_hash(overrides):
    assert compute_content_hash(_quote(**overrides)) != compute_content_hash(_quote())


@pytest.mark.parametrize(
    "overrides",
    [
        {"status": QuoteStatus.accepted},
        {"updated_at": datetime(2026, 1, 1, tzinfo=timezone.utc)},
        {"created_at": datetime(2024, 1, 1, tzinfo=timezone.utc)},
        {"document_keys": {"en": "user_001/Q1/quote_Q1_en.txt"}},
        {"content_hashes": {"en": "0" * 64}},
        {
            "items": [
                _item("A", 100),
                _item(
                    "B",
                    200,
                    photos=[
                        {
                            "key": "2025/11/29/user_001/Q1/B/oak.jpg",
                            "filename": "oak.jpg",
                            "content_type": "image/jpeg",
                        }
                    ],
                ),
            ]
        },
    ],
)
def test_non_content_change_keeps_hash(overrides):
    assert compute_content_hash(_quote(**overrides)) == compute_content_hash(_quote())


def test_canonical_content_excludes_photos_and_status():
    quote = _quote()
    content = canonical_content(quote)
    assert "status" not in content
    assert all("photos" not in item for item in content["items"])
    assert [item["item_id"] for item in content["items"]] == ["A", "B"]


def test_price_change_scenario():
    """Item B 200 -> 300 moves the hash from h1 to h2."""
    quote = _quote()
    h1 = compute_content_hash(quote)

    items = copy.deepcopy(quote.items)
    items[1]["price"] = 300
    quote.items = items
    quote.total_price = 400
    h2 = compute_content_hash(quote)

    assert h1 != h2
