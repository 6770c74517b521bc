"""Photo routes: upload to and delete from a quote item."""

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from quotedocs.core.errors import ItemNotFoundError, QuoteNotFoundError, StorageWriteError
from quotedocs.dependencies import get_db, get_photo_store
from quotedocs.schemas.quote import PhotoRef
from quotedocs.services import asset_service, quote_service
from quotedocs.services.object_store import ObjectStoreClient

router = APIRouter(prefix="/quotes", tags=["photos"])


@router.post("/{quote_id}/items/{item_id}/photos", response_model=PhotoRef, status_code=201)
async def upload_photo(
    quote_id: str,
    item_id: str,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    photo_store: ObjectStoreClient = Depends(get_photo_store),
):
    data = await file.read()
    content_type = file.content_type or "application/octet-stream"
    filename = file.filename or "photo"

    try:
        quote = await quote_service.get_quote(db, quote_id=quote_id)
        return await asset_service.upload_photo(
            db,
            quote=quote,
            item_id=item_id,
            filename=filename,
            content_type=content_type,
            data=data,
            photo_store=photo_store,
        )
    except (QuoteNotFoundError, ItemNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageWriteError:
        raise HTTPException(status_code=502, detail="Failed to store photo")


@router.delete("/{quote_id}/items/{item_id}/photos", status_code=204)
async def delete_photo(
    quote_id: str,
    item_id: str,
    key: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    photo_store: ObjectStoreClient = Depends(get_photo_store),
):
    """Delete one photo. Idempotent: a blob that is already gone is fine."""
    try:
        quote = await quote_service.get_quote(db, quote_id=quote_id)
        await asset_service.delete_photo(
            db, quote=quote, item_id=item_id, key=key, photo_store=photo_store
        )
    except (QuoteNotFoundError, ItemNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
