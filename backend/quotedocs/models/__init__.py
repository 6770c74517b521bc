# Import all models so Base.metadata is populated for create_all.
from quotedocs.models.quote import Quote  # noqa: F401
from quotedocs.models.short_link import ShortLink  # noqa: F401
