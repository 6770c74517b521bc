"""Link registry: slug -> (quote, variant, current document key).

The slug is a deterministic function of (quote_id, variant), so there is at
most one row per pair. ``quote_id`` is indexed for purge-by-quote lookups.
"""

from sqlalchemy import Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from quotedocs.models.base import Base, TimestampMixin


class ShortLink(TimestampMixin, Base):
    __tablename__ = "short_links"
    __table_args__ = (
        UniqueConstraint("quote_id", "variant", name="uq_short_links_quote_variant"),
    )

    slug: Mapped[str] = mapped_column(String(16), primary_key=True)
    quote_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    variant: Mapped[str] = mapped_column(String(16), nullable=False)
    document_key: Mapped[str] = mapped_column(String(1000), nullable=False)

    # Last issued time-limited URL, reused by the redirect path until it is
    # about to expire.
    last_presigned_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_presigned_expires_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
