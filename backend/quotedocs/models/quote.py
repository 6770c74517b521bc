"""Quote model: the record documents are rendered from.

Items are stored inline as a JSON list; each item carries a stable
``item_id`` assigned once at creation. Per-variant cache metadata lives in
two JSON maps (variant -> document key, variant -> content hash) that only
the document cache writes.
"""

import enum

from sqlalchemy import JSON, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quotedocs.models.base import Base, TimestampMixin, generate_id


class QuoteStatus(str, enum.Enum):
    draft = "draft"
    sent = "sent"
    accepted = "accepted"
    rejected = "rejected"


class Quote(TimestampMixin, Base):
    __tablename__ = "quotes"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[QuoteStatus] = mapped_column(
        Enum(QuoteStatus, native_enum=False),
        default=QuoteStatus.draft,
        nullable=False,
    )
    items: Mapped[list[dict]] = mapped_column(JSON, default=list, nullable=False)
    total_price: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Document cache metadata, keyed by variant. Always reassigned, never
    # mutated in place, so SQLAlchemy sees the change.
    document_keys: Mapped[dict[str, str]] = mapped_column(JSON, default=dict, nullable=False)
    content_hashes: Mapped[dict[str, str]] = mapped_column(JSON, default=dict, nullable=False)
