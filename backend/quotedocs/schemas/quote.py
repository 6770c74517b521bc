import enum
from datetime import datetime

from pydantic import BaseModel, Field

from quotedocs.models.quote import QuoteStatus

MAX_ITEMS_PER_QUOTE = 10


class ItemType(str, enum.Enum):
    tree_removal = "tree_removal"
    pruning = "pruning"
    stump_grinding = "stump_grinding"
    cleanup = "cleanup"
    trimming = "trimming"
    emergency_service = "emergency_service"
    other = "other"


class PhotoRef(BaseModel):
    key: str
    filename: str
    content_type: str


class QuoteItem(BaseModel):
    """An item as stored on the quote. ``item_id`` never changes."""

    item_id: str
    type: ItemType
    description: str
    diameter_in_inches: float | None = None
    height_in_feet: float | None = None
    risk_factors: list[str] = Field(default_factory=list)
    price: int = 0
    photos: list[PhotoRef] = Field(default_factory=list)


class ItemInput(BaseModel):
    """An item as sent by clients. Photos are managed by the photo endpoints."""

    item_id: str | None = None
    type: ItemType
    description: str = Field(min_length=1)
    diameter_in_inches: float | None = Field(None, gt=0)
    height_in_feet: float | None = Field(None, gt=0)
    risk_factors: list[str] = Field(default_factory=list)
    price: int = Field(0, ge=0, description="Price in cents")


class QuoteCreate(BaseModel):
    owner_id: str = Field(min_length=1)
    customer_name: str = Field(min_length=1)
    customer_phone: str | None = None
    customer_address: str | None = None
    notes: str | None = None
    items: list[ItemInput] = Field(min_length=1, max_length=MAX_ITEMS_PER_QUOTE)


class QuoteUpdate(BaseModel):
    customer_name: str | None = Field(None, min_length=1)
    customer_phone: str | None = None
    customer_address: str | None = None
    notes: str | None = None
    status: QuoteStatus | None = None
    items: list[ItemInput] | None = Field(None, min_length=1, max_length=MAX_ITEMS_PER_QUOTE)


class QuoteRead(BaseModel):
    id: str
    owner_id: str
    customer_name: str
    customer_phone: str | None = None
    customer_address: str | None = None
    notes: str | None = None
    status: QuoteStatus
    items: list[QuoteItem]
    total_price: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
