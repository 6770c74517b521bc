"""Quote routes: create, get, update, delete.

Deleting a quote also purges its photos, documents and short links;
cleanup problems are logged, never returned.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from quotedocs.core.errors import QuoteNotFoundError
from quotedocs.dependencies import get_db, get_document_store, get_photo_store
from quotedocs.schemas.quote import QuoteCreate, QuoteRead, QuoteUpdate
from quotedocs.services import quote_service
from quotedocs.services.object_store import ObjectStoreClient

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("", response_model=QuoteRead, status_code=201)
async def create_quote(
    body: QuoteCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a quote. Item ids are assigned here."""
    quote = await quote_service.create_quote(db, data=body)
    return QuoteRead.model_validate(quote)


@router.get("/{quote_id}", response_model=QuoteRead)
async def get_quote(
    quote_id: str,
    db: AsyncSession = Depends(get_db),
):
    try:
        quote = await quote_service.get_quote(db, quote_id=quote_id)
    except QuoteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return QuoteRead.model_validate(quote)


@router.patch("/{quote_id}", response_model=QuoteRead)
async def update_quote(
    quote_id: str,
    body: QuoteUpdate,
    db: AsyncSession = Depends(get_db),
    photo_store: ObjectStoreClient = Depends(get_photo_store),
):
    """Update a quote. Photos of items dropped from the list are deleted."""
    try:
        quote = await quote_service.update_quote(
            db, quote_id=quote_id, data=body, photo_store=photo_store
        )
    except QuoteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return QuoteRead.model_validate(quote)


@router.delete("/{quote_id}", status_code=204)
async def delete_quote(
    quote_id: str,
    db: AsyncSession = Depends(get_db),
    photo_store: ObjectStoreClient = Depends(get_photo_store),
    document_store: ObjectStoreClient = Depends(get_document_store),
):
    try:
        await quote_service.delete_quote(
            db, quote_id=quote_id, photo_store=photo_store, document_store=document_store
        )
    except QuoteNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
