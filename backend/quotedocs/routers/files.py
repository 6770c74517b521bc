"""Signed downloads for the local and in-memory storage backends.

S3 deployments never hit this route; their URLs point at S3 directly.
"""

import mimetypes

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from quotedocs.core.errors import StorageError
from quotedocs.dependencies import get_stores, get_url_signer
from quotedocs.services.object_store import ObjectStoreClient
from quotedocs.services.storage import UrlSigner

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/{bucket}/{key:path}")
async def download_file(
    bucket: str,
    key: str,
    expires: int,
    signature: str,
    stores: dict[str, ObjectStoreClient] = Depends(get_stores),
    signer: UrlSigner = Depends(get_url_signer),
):
    if not signer.verify(bucket, key, expires, signature):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    store = stores.get(bucket)
    if store is None:
        raise HTTPException(status_code=404, detail="File not found")
    try:
        data = await store.get(key)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="File not found")
    except StorageError:
        raise HTTPException(status_code=502, detail="Storage unavailable")

    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": "inline"},
    )
