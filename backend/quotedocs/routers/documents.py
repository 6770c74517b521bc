"""Document routes: get-or-create the rendered document of a quote."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from quotedocs.core.errors import QuoteNotFoundError, StorageError, StorageWriteError
from quotedocs.dependencies import get_db, get_document_store, get_owner_lookup, get_renderer
from quotedocs.schemas.document import DocumentRead, DocumentRequest
from quotedocs.services import document_service
from quotedocs.services.object_store import ObjectStoreClient
from quotedocs.services.renderer import DocumentRenderer, OwnerLookup

router = APIRouter(prefix="/quotes", tags=["documents"])


@router.post("/{quote_id}/documents", response_model=DocumentRead)
async def get_or_create_document(
    quote_id: str,
    body: DocumentRequest,
    db: AsyncSession = Depends(get_db),
    store: ObjectStoreClient = Depends(get_document_store),
    renderer: DocumentRenderer = Depends(get_renderer),
    owner_lookup: OwnerLookup = Depends(get_owner_lookup),
):
    """Return a time-limited document URL, rendering only if the content changed."""
    try:
        result = await document_service.get_or_create_document(
            db,
            quote_id=quote_id,
            variant=body.variant,
            store=store,
            renderer=renderer,
            owner_lookup=owner_lookup,
            force_regenerate=body.force_regenerate,
            owner_id=body.owner_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except QuoteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except StorageWriteError:
        raise HTTPException(status_code=502, detail="Failed to store document")
    except StorageError:
        raise HTTPException(status_code=502, detail="Document storage unavailable")

    return DocumentRead(
        quote_id=result.quote_id,
        url=result.url,
        short_url=result.short_url,
        ttl_seconds=result.ttl_seconds,
        cached=result.cached,
    )
