"""Short link redirect: GET /q/{slug} -> 302 to a fresh time-limited URL."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from quotedocs.config import settings
from quotedocs.core.errors import ShortLinkNotFoundError, StorageError
from quotedocs.dependencies import get_db, get_document_store
from quotedocs.services import short_link_service
from quotedocs.services.object_store import ObjectStoreClient
from quotedocs.services.slug import is_valid_slug

router = APIRouter(tags=["short-links"])


@router.get("/q/{slug}")
async def redirect_short_link(
    slug: str,
    db: AsyncSession = Depends(get_db),
    store: ObjectStoreClient = Depends(get_document_store),
):
    if not is_valid_slug(slug):
        raise HTTPException(status_code=400, detail="Invalid or missing slug")
    try:
        link = await short_link_service.resolve_short_link(
            db,
            slug=slug,
            store=store,
            ttl_seconds=settings.short_link_url_ttl_seconds,
        )
    except ShortLinkNotFoundError:
        raise HTTPException(status_code=404, detail="Short link not found")
    except StorageError:
        raise HTTPException(status_code=502, detail="Document storage unavailable")

    return RedirectResponse(
        link.url,
        status_code=302,
        headers={"Cache-Control": "no-cache"},
    )
