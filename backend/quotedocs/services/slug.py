"""Deterministic short-link slugs.

slug = base62(first 48 bits of sha256(f"{quote_id}_{variant}")), 8 chars,
left-padded, lowercased.

The same (quote, variant) always gets the same slug, which is what makes the
link registry upsert idempotent. There is no uniqueness check: two pairs whose
truncated digests collide would share a slug. After lowercasing, 8 chars carry
~41 bits, so the risk is accepted rather than handled.
"""

import hashlib

BASE62_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
SLUG_LENGTH = 8
DIGEST_HEX_CHARS = 12  # 48 bits


def encode_base62(number: int, length: int) -> str:
    """Encode number in base 62, left-padded (or truncated to the low digits) to length."""
    chars = []
    for _ in range(length):
        number, rem = divmod(number, 62)
        chars.append(BASE62_ALPHABET[rem])
    return "".join(reversed(chars))


def generate_slug(quote_id: str, variant: str) -> str:
    digest = hashlib.sha256(f"{quote_id}_{variant}".encode("utf-8")).hexdigest()
    number = int(digest[:DIGEST_HEX_CHARS], 16)
    return encode_base62(number, SLUG_LENGTH).lower()


def is_valid_slug(slug: str) -> bool:
    return len(slug) == SLUG_LENGTH and all(c in BASE62_ALPHABET[:36] for c in slug)
