"""Upload endpoint for Apple Health exports."""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, File, HTTPException, UploadFile

from src.dashboard.api.dependencies import StoreDep
from src.dashboard.models.upload import UploadResponse
from src.domain.ports import SourceIOError, UnsupportedSourceError, UploadTooLargeError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/upload", response_model=UploadResponse, response_model_by_alias=True)
async def upload_export(store: StoreDep, file: Optional[UploadFile] = File(None)) -> UploadResponse:
    """Store an uploaded export and return its handle.

    The body is copied to the store in chunks so the export is never held
    in memory.

    Raises:
        HTTPException: 400 for a missing or non-XML file, 413 over the size
            limit, 500 if the file cannot be written
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")

    try:
        file_id, size = await asyncio.to_thread(store.save, file.file, file.filename or "")
    except UnsupportedSourceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UploadTooLargeError as e:
        logger.warning(f"Rejected upload {file.filename!r}: {e}")
        raise HTTPException(status_code=413, detail=str(e))
    except SourceIOError as e:
        logger.error(f"Upload of {file.filename!r} failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload file")
    finally:
        await file.close()

    return UploadResponse(file_id=file_id, file_name=file.filename, size=size)
