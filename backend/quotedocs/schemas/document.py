from pydantic import BaseModel


class DocumentRequest(BaseModel):
    variant: str = "en"
    force_regenerate: bool = False
    owner_id: str | None = None


class DocumentRead(BaseModel):
    quote_id: str
    url: str
    short_url: str | None = None
    ttl_seconds: int
    cached: bool
